"""
Observability Package.

- Structured JSON logging with request IDs (structlog)
- Prometheus request and session metrics
"""

from web_gateway.observability.logging import (
    configure_logging,
    get_logger,
    get_request_id,
    request_id_context,
)
from web_gateway.observability.metrics import (
    MetricsMiddleware,
    metrics_endpoint,
    normalize_path,
    record_session_created,
)

__all__ = [
    # Logging
    "configure_logging",
    "get_logger",
    "get_request_id",
    "request_id_context",
    # Metrics
    "MetricsMiddleware",
    "metrics_endpoint",
    "normalize_path",
    "record_session_created",
]
