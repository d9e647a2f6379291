"""
Authentication Gate.

Runs after the Session Manager. When the session holds a principal
reference, the configured Authenticator restores the principal and the gate
attaches it to the request context. A reference that no longer resolves is
removed from the session and the request continues anonymously. Errors
raised by the authenticator are not caught here; they reach the Error
Normalizer like any other stage failure.
"""

from typing import Optional

from starlette.responses import Response

from web_gateway.auth.authenticator import Authenticator
from web_gateway.auth.models import Principal
from web_gateway.observability.logging import get_logger
from web_gateway.pipeline.base import StageBase
from web_gateway.pipeline.context import RequestContext

logger = get_logger(__name__)


class AuthenticationGate(StageBase):
    """Restores the request principal from the session."""

    def __init__(self, authenticator: Authenticator) -> None:
        self._authenticator = authenticator

    @property
    def authenticator(self) -> Authenticator:
        return self._authenticator

    async def process(self, context: RequestContext) -> Optional[Response]:
        session = context.session
        if session is None:
            raise RuntimeError("AuthenticationGate requires the SessionManager stage")

        reference = session.principal
        if reference is None:
            return None

        principal = await self._authenticator.deserialize(reference)
        if principal is None:
            logger.info("Stale principal reference cleared", session_id=session.id)
            session.principal = None
            return None

        context.principal = principal
        return None

    def login(self, context: RequestContext, principal: Principal) -> None:
        """
        Bind principal to the current session.

        The session moves to a fresh id first; the old id is deleted from the
        store when the response is committed.
        """
        session = context.session
        if session is None:
            raise RuntimeError("No session on this request")
        session.regenerate()
        session.principal = self._authenticator.serialize(principal)
        context.principal = principal
        logger.info("Principal logged in", principal_id=principal.id)

    def logout(self, context: RequestContext) -> None:
        """Forget the principal and destroy the session."""
        if context.principal is not None:
            logger.info("Principal logged out", principal_id=context.principal.id)
        context.principal = None
        if context.session is not None:
            context.session.principal = None
            context.session.destroy()
