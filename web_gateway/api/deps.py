"""
API Dependencies.

FastAPI dependency functions through which route handlers (including the
external /v1 routers) reach the per-request context built by the pipeline
and the process-wide ServerContext. Every function can be replaced in tests
via ``app.dependency_overrides``.
"""

from typing import TYPE_CHECKING, Any, Optional

from starlette.requests import Request

from web_gateway.auth.gate import AuthenticationGate
from web_gateway.auth.models import Principal
from web_gateway.core.config import Settings
from web_gateway.core.exceptions import AuthenticationRequiredError
from web_gateway.pipeline.context import RequestContext
from web_gateway.sessions.models import Session

if TYPE_CHECKING:
    from web_gateway.context import ServerContext
    from web_gateway.store.connection import StoreConnection


def get_server_context(request: Request) -> "ServerContext":
    return request.app.state.context


def get_settings(request: Request) -> Settings:
    """Settings the running app was built with."""
    return get_server_context(request).settings


def get_request_context(request: Request) -> RequestContext:
    """
    The RequestContext for this request.

    Raises:
        RuntimeError: If the request did not pass through the RequestPipeline.
    """
    context = getattr(request.state, "context", None)
    if context is None:
        raise RuntimeError("Request did not pass through the request pipeline")
    return context


def get_session(request: Request) -> Session:
    session = get_request_context(request).session
    if session is None:
        raise RuntimeError("No session attached to this request")
    return session


def get_principal(request: Request) -> Optional[Principal]:
    return get_request_context(request).principal


def require_principal(request: Request) -> Principal:
    """
    The authenticated principal.

    Raises:
        AuthenticationRequiredError: (401) If the request is anonymous.
    """
    principal = get_principal(request)
    if principal is None:
        raise AuthenticationRequiredError()
    return principal


def get_store(request: Request) -> "StoreConnection":
    store = get_request_context(request).store
    if store is None:
        return get_server_context(request).store
    return store


def get_body(request: Request) -> Any:
    """Body decoded by the pipeline ({} when empty, None when not decoded)."""
    return get_request_context(request).body


def get_auth_gate(request: Request) -> AuthenticationGate:
    """Gate exposing login()/logout() to handlers."""
    return get_server_context(request).auth_gate
