"""
Sessions Package.

- SessionRecord / SessionData / Session models
- Redis-backed SessionStore
- Signed SessionCookie
- SessionManager pipeline stage
"""

from web_gateway.sessions.cookies import SessionCookie
from web_gateway.sessions.manager import SessionManager
from web_gateway.sessions.models import Session, SessionData, SessionRecord, new_session_id
from web_gateway.sessions.store import SessionStore

__all__ = [
    "Session",
    "SessionData",
    "SessionRecord",
    "new_session_id",
    "SessionStore",
    "SessionCookie",
    "SessionManager",
]
