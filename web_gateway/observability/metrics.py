"""
Prometheus Metrics Module.

Request counters and latency for the gateway plus the number of sessions the
Session Manager creates. Served on /metrics when ``metrics_enabled`` is set.

Dynamic path segments (UUIDs, session ids, numeric ids) are collapsed to
``{id}`` so the path label stays low-cardinality.
"""

import re
import time
from typing import Any, Callable, Optional

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from starlette.requests import Request
from starlette.responses import Response

_PATH_PATTERNS = [
    # UUID: 8-4-4-4-12 hex
    (re.compile(r"/[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}"), "/{id}"),
    # hex ids, including uuid4().hex session ids and 24-char document ids
    (re.compile(r"/[0-9a-fA-F]{8,}(?=/|$)"), "/{id}"),
    (re.compile(r"/\d+(?=/|$)"), "/{id}"),
]


def normalize_path(path: str) -> str:
    """
    Replace dynamic path segments with placeholders.

    Examples:
        >>> normalize_path("/heartbeat")
        '/heartbeat'
        >>> normalize_path("/v1/users/12345")
        '/v1/users/{id}'
    """
    if path == "/":
        return path

    normalized = path
    for pattern, replacement in _PATH_PATTERNS:
        normalized = pattern.sub(replacement, normalized)
    return normalized


REQUESTS_TOTAL = Counter(
    name="web_gateway_requests_total",
    documentation="Total number of HTTP requests",
    labelnames=["method", "path", "status"],
)

REQUEST_DURATION_SECONDS = Histogram(
    name="web_gateway_request_duration_seconds",
    documentation="HTTP request duration in seconds",
    labelnames=["method", "path"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

SESSIONS_CREATED_TOTAL = Counter(
    name="web_gateway_sessions_created_total",
    documentation="Sessions created for requests without a valid session cookie",
)


def record_session_created() -> None:
    SESSIONS_CREATED_TOTAL.inc()


class MetricsMiddleware:
    """
    ASGI middleware recording request count and latency.

    Sits outside the request pipeline so short-circuited (preflight) and
    normalized error responses are counted with their final status.
    """

    def __init__(
        self,
        app: Callable[..., Any],
        exclude_paths: Optional[list[str]] = None,
    ) -> None:
        self.app = app
        self.exclude_paths = exclude_paths or ["/metrics"]

    async def __call__(
        self,
        scope: dict[str, Any],
        receive: Callable[..., Any],
        send: Callable[..., Any],
    ) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        raw_path = scope.get("path", "/")
        if raw_path in self.exclude_paths:
            await self.app(scope, receive, send)
            return

        method = scope.get("method", "GET")
        path = normalize_path(raw_path)
        start_time = time.perf_counter()
        status_code = "500"

        async def send_wrapper(message: dict[str, Any]) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = str(message.get("status", 500))
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            REQUESTS_TOTAL.labels(method=method, path=path, status=status_code).inc()
            REQUEST_DURATION_SECONDS.labels(method=method, path=path).observe(
                time.perf_counter() - start_time
            )


async def metrics_endpoint(request: Request) -> Response:
    """Prometheus exposition of the default registry."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
