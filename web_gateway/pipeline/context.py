"""Per-request context shared by the pipeline stages and route handlers."""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Optional

from starlette.requests import Request

if TYPE_CHECKING:
    from web_gateway.auth.models import Principal
    from web_gateway.sessions.models import Session
    from web_gateway.store.connection import StoreConnection


@dataclass
class RequestContext:
    """
    Everything the pipeline learned about one request.

    Created when the request enters the pipeline, stored on
    ``request.state.context`` and discarded with the response.

    Attributes:
        request: The inbound request.
        request_id: Correlation id echoed in X-Request-ID.
        body: Decoded body (dict/list for JSON, dict for forms), None when
            the content type is not decoded.
        cookies: Raw cookie mapping.
        session_id: Verified id from the session cookie, None if absent or
            tampered.
        session: Session resolved by the Session Manager.
        principal: Principal restored by the Authentication Gate.
        store: Shared store connection attached by the augmenter.
        error: Exception being normalized, if any stage failed.
    """

    request: Request
    request_id: str = ""
    body: Any = None
    cookies: dict[str, str] = field(default_factory=dict)
    session_id: Optional[str] = None
    session: Optional["Session"] = None
    principal: Optional["Principal"] = None
    store: Optional["StoreConnection"] = None
    error: Optional[BaseException] = None

    @property
    def is_authenticated(self) -> bool:
        return self.principal is not None
