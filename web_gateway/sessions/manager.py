"""
Session Manager - session lifecycle around each request.

Per request (``process``):

- no valid cookie            -> new session, not yet stored
- cookie, record in store    -> loaded session
- cookie, record missing or
  expired                    -> new session
- store unreachable          -> detached new session (logged), so requests
                                that never touch the session, /heartbeat
                                included, still succeed

On response emission (``finalize`` -> ``commit``):

- destroyed                  -> record deleted, cookie cleared
- modified                   -> record written, cookie issued
- new (unmodified)           -> cookie issued, nothing written
- loaded (unmodified)        -> expiry refreshed in the store
- detached (unmodified)      -> nothing

The store is the only source of truth: no session survives in memory
between requests.
"""

from typing import TYPE_CHECKING, Optional

from starlette.responses import Response

from web_gateway.core.exceptions import SessionStoreError, StoreClosedError
from web_gateway.observability.logging import get_logger
from web_gateway.observability.metrics import record_session_created
from web_gateway.pipeline.base import StageBase
from web_gateway.pipeline.context import RequestContext
from web_gateway.sessions.cookies import SessionCookie
from web_gateway.sessions.models import Session
from web_gateway.sessions.store import SessionStore

if TYPE_CHECKING:
    from web_gateway.store.connection import StoreConnection

logger = get_logger(__name__)


class SessionManager(StageBase):
    """
    Loads, creates and commits sessions.

    Args:
        store: Shared store connection (borrowed, never closed here).
        cookie: Signer/renderer for the session cookie.
        duration_seconds: Session lifetime; expiry slides on every request.
    """

    def __init__(
        self,
        store: "StoreConnection",
        cookie: SessionCookie,
        duration_seconds: int,
    ) -> None:
        self._store = store
        self._cookie = cookie
        self._duration_seconds = duration_seconds

    @property
    def cookie(self) -> SessionCookie:
        return self._cookie

    def _sessions(self) -> SessionStore:
        return self._store.sessions

    # =========================================================================
    # Pipeline hooks
    # =========================================================================

    async def process(self, context: RequestContext) -> Optional[Response]:
        context.session = await self.load(context.session_id)
        return None

    async def finalize(self, context: RequestContext, response: Response) -> None:
        if context.session is not None:
            await self.commit(context.session, response)

    # =========================================================================
    # Loading
    # =========================================================================

    def create(self, detached: bool = False) -> Session:
        session = Session.create(self._duration_seconds, detached=detached)
        record_session_created()
        logger.debug("Session created", session_id=session.id, detached=detached)
        return session

    async def load(self, session_id: Optional[str]) -> Session:
        """
        Resolve the session for a verified cookie id.

        Args:
            session_id: Id from the signed cookie, None when absent/tampered.

        Returns:
            The stored session, or a new one.
        """
        if session_id is None:
            return self.create()

        try:
            record = await self._sessions().get(session_id)
        except (SessionStoreError, StoreClosedError) as e:
            logger.warning(
                "Session store unavailable, continuing with a detached session",
                session_id=session_id,
                error=str(e),
            )
            return self.create(detached=True)

        if record is None:
            logger.debug("Session not found or expired", session_id=session_id)
            return self.create()

        return Session(record)

    # =========================================================================
    # Committing
    # =========================================================================

    async def commit(self, session: Session, response: Response) -> None:
        """
        Persist session changes and bind the cookie on the response.

        Raises:
            SessionStoreError / StoreClosedError: If a modified or destroyed
                session cannot be written. Refreshing the expiry of an
                unmodified session is best effort.
        """
        if session.destroyed:
            await self._destroy(session, response)
            return

        if session.detached and not session.modified:
            return

        if session.previous_id is not None:
            await self._sessions().delete(session.previous_id)
            session.previous_id = None

        if session.modified:
            session.extend(self._duration_seconds)
            await self._sessions().save(session.record)
            self._bind_cookie(session, response)
            return

        if session.is_new:
            self._bind_cookie(session, response)
            return

        await self._touch(session)

    async def _destroy(self, session: Session, response: Response) -> None:
        ids = [session.id]
        if session.previous_id is not None:
            ids.append(session.previous_id)
        if not (session.is_new and session.previous_id is None):
            for session_id in ids:
                await self._sessions().delete(session_id)
        response.headers.append("set-cookie", self._cookie.render_cleared())
        logger.debug("Session destroyed", session_id=session.id)

    async def _touch(self, session: Session) -> None:
        session.extend(self._duration_seconds)
        try:
            found = await self._sessions().touch(session.record)
        except (SessionStoreError, StoreClosedError) as e:
            logger.warning("Session expiry refresh failed", session_id=session.id, error=str(e))
            return
        if not found:
            logger.debug("Session vanished before expiry refresh", session_id=session.id)

    def _bind_cookie(self, session: Session, response: Response) -> None:
        response.headers.append("set-cookie", self._cookie.render(session.id))
