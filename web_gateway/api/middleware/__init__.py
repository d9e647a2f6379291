"""HTTP middleware: CORS policy stage and the development access log."""

from web_gateway.api.middleware.cors import CorsPolicyFilter
from web_gateway.api.middleware.logging import RequestLoggingMiddleware, redact_sensitive_headers

__all__ = [
    "CorsPolicyFilter",
    "RequestLoggingMiddleware",
    "redact_sensitive_headers",
]
