"""
Server Context.

Every long-lived collaborator of the gateway, built once by create_app()
and handed to the components that need it. Components receive what they
use through their constructors; nothing reads process globals at request
time.
"""

from dataclasses import dataclass
from typing import Optional

from web_gateway.api.errors import ErrorNormalizer
from web_gateway.api.middleware.cors import CorsPolicyFilter
from web_gateway.auth.authenticator import Authenticator, load_authenticator
from web_gateway.auth.gate import AuthenticationGate
from web_gateway.core.config import Settings
from web_gateway.pipeline.base import Stage
from web_gateway.pipeline.stages import BodyCookieDecoder, StoreContextAugmenter
from web_gateway.sessions.cookies import SessionCookie
from web_gateway.sessions.manager import SessionManager
from web_gateway.store.connection import StoreConnection


@dataclass
class ServerContext:
    """
    Process-wide collaborators.

    Attributes:
        settings: Immutable configuration.
        store: The one store connection (owned by the LifecycleManager).
        authenticator: Configured authentication strategy.
        normalizer: Terminal error stage.
        cookie: Session cookie signer/renderer.
        session_manager: Session lifecycle stage.
        auth_gate: Authentication stage, also used by handlers to log in/out.
    """

    settings: Settings
    store: StoreConnection
    authenticator: Authenticator
    normalizer: ErrorNormalizer
    cookie: SessionCookie
    session_manager: SessionManager
    auth_gate: AuthenticationGate

    @classmethod
    def build(
        cls,
        settings: Settings,
        store: Optional[StoreConnection] = None,
        authenticator: Optional[Authenticator] = None,
    ) -> "ServerContext":
        """
        Wire the collaborators from settings.

        Args:
            settings: Loaded settings.
            store: Pre-built connection (tests); built from settings otherwise.
            authenticator: Strategy instance; loaded from settings otherwise.
        """
        if store is None:
            store = StoreConnection.from_settings(settings)
        if authenticator is None:
            authenticator = load_authenticator(settings.authenticator)

        duration = settings.server.session_duration_seconds
        cookie = SessionCookie(
            name=settings.cookie_name,
            secret=settings.session_secret,
            max_age_seconds=duration,
        )
        return cls(
            settings=settings,
            store=store,
            authenticator=authenticator,
            normalizer=ErrorNormalizer(settings.expose_error_detail),
            cookie=cookie,
            session_manager=SessionManager(store, cookie, duration),
            auth_gate=AuthenticationGate(authenticator),
        )

    def stages(self) -> list[Stage]:
        """The pipeline, in execution order."""
        return [
            CorsPolicyFilter(),
            BodyCookieDecoder(self.cookie, self.settings.server.max_body_bytes),
            self.session_manager,
            self.auth_gate,
            StoreContextAugmenter(self.store),
        ]
