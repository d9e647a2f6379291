"""
Custom exceptions for the Web Gateway.

Every error raised by a pipeline stage or a dispatched handler ends up in the
single ErrorNormalizer (web_gateway.api.errors). The normalizer reads
``status_code`` from these exceptions; an exception without one falls back to
the environment default (500 with detail, 404 without).

Reference:
- GUIDELINES: Specific exceptions, always capture with 'as e'
"""

from enum import Enum
from typing import Any, Optional


class ErrorCode(str, Enum):
    """Machine-readable codes attached to gateway exceptions and logs."""

    GATEWAY_ERROR = "GATEWAY_ERROR"
    MALFORMED_BODY = "MALFORMED_BODY"
    PAYLOAD_TOO_LARGE = "PAYLOAD_TOO_LARGE"
    NOT_FOUND = "NOT_FOUND"
    AUTHENTICATION_REQUIRED = "AUTHENTICATION_REQUIRED"
    STORE_ERROR = "STORE_ERROR"
    STORE_CLOSED = "STORE_CLOSED"
    SESSION_STORE_ERROR = "SESSION_STORE_ERROR"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"


# =============================================================================
# Base Exception
# =============================================================================


class GatewayError(Exception):
    """
    Base exception for all Web Gateway errors.

    Attributes:
        message: Human-readable error message.
        status_code: HTTP status the error maps to, or None to let the
            environment default decide.
        error_code: Machine-readable error code from ErrorCode enum.
    """

    status_code: Optional[int] = None
    default_error_code: ErrorCode = ErrorCode.GATEWAY_ERROR

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        error_code: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.error_code = error_code or self.default_error_code

        for key, value in kwargs.items():
            setattr(self, key, value)


# =============================================================================
# Client-class errors (decoding, routing, authentication)
# =============================================================================


class MalformedBodyError(GatewayError):
    """Request body could not be decoded for its declared content type."""

    status_code = 400
    default_error_code = ErrorCode.MALFORMED_BODY


class PayloadTooLargeError(GatewayError):
    """Request body exceeds server.max_body_bytes."""

    status_code = 413
    default_error_code = ErrorCode.PAYLOAD_TOO_LARGE


class NotFoundError(GatewayError):
    """No route matched the request."""

    status_code = 404
    default_error_code = ErrorCode.NOT_FOUND

    def __init__(self, message: str = "Not Found", **kwargs: Any) -> None:
        super().__init__(message, **kwargs)


class AuthenticationRequiredError(GatewayError):
    """Route requires a principal but the request is anonymous."""

    status_code = 401
    default_error_code = ErrorCode.AUTHENTICATION_REQUIRED

    def __init__(self, message: str = "Authentication required", **kwargs: Any) -> None:
        super().__init__(message, **kwargs)


# =============================================================================
# Store errors
# =============================================================================


class StoreError(GatewayError):
    """The persistent store could not serve an operation."""

    status_code = 503
    default_error_code = ErrorCode.STORE_ERROR


class StoreClosedError(StoreError):
    """
    The store connection was used after shutdown closed it.

    Carries no status so that, in production, requests caught in the
    shutdown window get the 404 default rather than a revealing 5xx.
    """

    status_code = None
    default_error_code = ErrorCode.STORE_CLOSED

    def __init__(self, message: str = "Store connection is closed", **kwargs: Any) -> None:
        super().__init__(message, **kwargs)


class SessionStoreError(StoreError):
    """
    Session persistence failed.

    Attributes:
        session_id: ID of the affected session (if known).
    """

    default_error_code = ErrorCode.SESSION_STORE_ERROR

    def __init__(
        self,
        message: str,
        session_id: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.session_id = session_id
