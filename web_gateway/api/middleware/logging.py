"""
Access Log Middleware.

Development-only request/response log on the stdlib ``web_gateway.access``
logger: method, path, client, status and duration. Request headers are
logged at DEBUG with credentials redacted.
"""

import logging
import time
from typing import Awaitable, Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("web_gateway.access")

# Header names containing any of these are redacted (case-insensitive)
SENSITIVE_HEADER_PATTERNS = [
    "authorization",
    "api-key",
    "apikey",
    "x-auth-token",
    "cookie",
    "sessionid",
]


def redact_sensitive_headers(headers: dict[str, str]) -> dict[str, str]:
    """
    Replace credential-bearing header values with ``[REDACTED]``.

    Args:
        headers: Dictionary of HTTP headers

    Returns:
        A copy with sensitive values redacted
    """
    redacted = {}
    for key, value in headers.items():
        key_lower = key.lower()
        is_sensitive = any(pattern in key_lower for pattern in SENSITIVE_HEADER_PATTERNS)
        redacted[key] = "[REDACTED]" if is_sensitive else value
    return redacted


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs one line per request; 4xx/5xx responses at WARNING."""

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        start_time = time.perf_counter()

        method = request.method
        path = request.url.path
        client_host = request.client.host if request.client else "unknown"

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                f"Request: {method} {path} from {client_host} "
                f"headers={redact_sensitive_headers(dict(request.headers))}"
            )

        try:
            response = await call_next(request)
        except Exception as e:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.error(
                f"Request failed: {method} {path} from {client_host} "
                f"error={type(e).__name__}: {e} duration={duration_ms:.2f}ms"
            )
            raise

        duration_ms = (time.perf_counter() - start_time) * 1000
        log_level = logging.WARNING if response.status_code >= 400 else logging.INFO
        logger.log(
            log_level,
            f"{method} {path} {response.status_code} "
            f"from {client_host} duration={duration_ms:.2f}ms",
        )
        return response
