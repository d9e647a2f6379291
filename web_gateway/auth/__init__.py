"""
Authentication Package.

- Principal model
- Pluggable Authenticator strategy (NullAuthenticator by default)
- AuthenticationGate pipeline stage with login/logout helpers
"""

from web_gateway.auth.authenticator import Authenticator, NullAuthenticator, load_authenticator
from web_gateway.auth.gate import AuthenticationGate
from web_gateway.auth.models import Principal

__all__ = [
    "Authenticator",
    "NullAuthenticator",
    "load_authenticator",
    "AuthenticationGate",
    "Principal",
]
