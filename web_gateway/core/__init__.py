"""
Core module for the Web Gateway.

This module contains configuration and the exception hierarchy.
"""

from web_gateway.core.config import DatabaseSettings, ServerSettings, Settings, get_settings
from web_gateway.core.exceptions import (
    AuthenticationRequiredError,
    ErrorCode,
    GatewayError,
    MalformedBodyError,
    NotFoundError,
    PayloadTooLargeError,
    SessionStoreError,
    StoreClosedError,
    StoreError,
)

__all__ = [
    # Config
    "Settings",
    "ServerSettings",
    "DatabaseSettings",
    "get_settings",
    # Exceptions
    "ErrorCode",
    "GatewayError",
    "MalformedBodyError",
    "PayloadTooLargeError",
    "NotFoundError",
    "AuthenticationRequiredError",
    "StoreError",
    "StoreClosedError",
    "SessionStoreError",
]
