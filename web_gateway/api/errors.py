"""
Error Normalizer.

Converts any exception that escapes a pipeline stage or a route handler, and
any unmatched route, into a client-safe response. Two modes, chosen once at
startup from the environment:

- Detail mode (non-production): the error's status (500 when it has none)
  and a JSON body with the message and the full error detail.
- Production: the error's status (404 when it has none, so a failure does not
  confirm that a resource exists) and an empty body.

The normalizer is terminal: it never re-raises.
"""

import traceback
from typing import Any, Optional

from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from web_gateway.core.exceptions import GatewayError, NotFoundError
from web_gateway.observability.logging import get_logger

logger = get_logger(__name__)

DETAIL_DEFAULT_STATUS = 500
PRODUCTION_DEFAULT_STATUS = 404
UNMATCHED_ROUTE_STATUSES = (404, 405)


def resolve_status(exc: BaseException) -> Optional[int]:
    """
    Status code an exception carries, or None.

    - GatewayError: its status_code (may be None)
    - Starlette/FastAPI HTTPException: its status_code
    - RequestValidationError: 422
    - Anything else: None
    """
    if isinstance(exc, GatewayError):
        return exc.status_code
    if isinstance(exc, StarletteHTTPException):
        return exc.status_code
    if isinstance(exc, RequestValidationError):
        return 422
    return None


def resolve_message(exc: BaseException) -> str:
    if isinstance(exc, GatewayError):
        return exc.message
    if isinstance(exc, StarletteHTTPException):
        return str(exc.detail)
    if isinstance(exc, RequestValidationError):
        return "Request validation failed"
    return str(exc) or type(exc).__name__


class ErrorNormalizer:
    """
    Terminal error stage.

    Args:
        expose_error_detail: True outside production; decided once at startup.
    """

    def __init__(self, expose_error_detail: bool) -> None:
        self._expose_error_detail = expose_error_detail

    @property
    def expose_error_detail(self) -> bool:
        return self._expose_error_detail

    def render(self, exc: BaseException, request: Optional[Request] = None) -> Response:
        """Build the response for exc. Never raises."""
        try:
            status = resolve_status(exc)
            self._log(exc, status, request)
            if self._expose_error_detail:
                return self._detailed(exc, status)
            return self._bare(exc, status)
        except Exception as render_error:
            logger.error("Error normalizer failed", error=str(render_error))
            default = DETAIL_DEFAULT_STATUS if self._expose_error_detail else PRODUCTION_DEFAULT_STATUS
            return Response(status_code=default)

    async def handle(self, request: Request, exc: Exception) -> Response:
        """
        Starlette exception handler signature.

        Routing misses, including a known path with an unsupported method,
        become NotFoundError; the Allow header is not passed on.
        """
        if isinstance(exc, StarletteHTTPException) and exc.status_code in UNMATCHED_ROUTE_STATUSES:
            message = str(exc.detail) if exc.status_code == 404 and exc.detail else "Not Found"
            exc = NotFoundError(message).with_traceback(exc.__traceback__)
        return self.render(exc, request)

    # =========================================================================
    # Rendering
    # =========================================================================

    def _detailed(self, exc: BaseException, status: Optional[int]) -> Response:
        status_code = status or DETAIL_DEFAULT_STATUS
        body = {
            "message": resolve_message(exc),
            "error": self._error_detail(exc, status_code),
        }
        return JSONResponse(status_code=status_code, content=body, headers=self._extra_headers(exc))

    def _bare(self, exc: BaseException, status: Optional[int]) -> Response:
        return Response(
            status_code=status or PRODUCTION_DEFAULT_STATUS,
            headers=self._extra_headers(exc),
        )

    @staticmethod
    def _error_detail(exc: BaseException, status_code: int) -> dict[str, Any]:
        detail: dict[str, Any] = {
            "type": type(exc).__name__,
            "status": status_code,
            "stack": "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
        }
        if isinstance(exc, GatewayError):
            detail["code"] = getattr(exc.error_code, "value", exc.error_code)
        if isinstance(exc, RequestValidationError):
            detail["detail"] = _jsonable_errors(exc)
        elif isinstance(exc, StarletteHTTPException):
            detail["detail"] = exc.detail
        if exc.__cause__ is not None:
            detail["cause"] = f"{type(exc.__cause__).__name__}: {exc.__cause__}"
        return detail

    @staticmethod
    def _extra_headers(exc: BaseException) -> Optional[dict[str, str]]:
        # keep Allow on 405, WWW-Authenticate on 401, etc.
        if isinstance(exc, StarletteHTTPException) and exc.headers:
            return dict(exc.headers)
        return None

    @staticmethod
    def _log(exc: BaseException, status: Optional[int], request: Optional[Request]) -> None:
        path = request.url.path if request is not None else None
        method = request.method if request is not None else None
        if status is None or status >= 500:
            logger.error(
                "Request failed",
                method=method,
                path=path,
                status=status,
                error=resolve_message(exc),
                exc_info=exc,
            )
        else:
            logger.info(
                "Request rejected",
                method=method,
                path=path,
                status=status,
                error=resolve_message(exc),
            )


def _jsonable_errors(exc: RequestValidationError) -> list[dict[str, Any]]:
    return [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg"), "type": error.get("type")}
        for error in exc.errors()
    ]
