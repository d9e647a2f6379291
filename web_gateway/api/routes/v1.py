"""
Version 1 API mount.

The handlers behind ``/v1`` live outside the gateway. They are supplied as a
factory ``(store, settings) -> APIRouter``, configured through
``Settings.v1_router_factory`` (an import string) or passed to
``create_app`` directly.
"""

from typing import TYPE_CHECKING, Callable, Optional

from fastapi import APIRouter
from uvicorn.importer import ImportFromStringError, import_from_string

from web_gateway.core.config import Settings
from web_gateway.core.exceptions import ErrorCode, GatewayError

if TYPE_CHECKING:
    from web_gateway.store.connection import StoreConnection

V1_PREFIX = "/v1"

RouterFactory = Callable[["StoreConnection", Settings], APIRouter]


def empty_router_factory(store: "StoreConnection", settings: Settings) -> APIRouter:
    """Default: no /v1 handlers, so every /v1 path is a 404."""
    return APIRouter()


def resolve_router_factory(import_string: Optional[str]) -> RouterFactory:
    """
    Load the configured factory, or the empty default.

    Raises:
        GatewayError: If the import string cannot be resolved.
    """
    if not import_string:
        return empty_router_factory
    try:
        factory = import_from_string(import_string)
    except ImportFromStringError as e:
        raise GatewayError(
            f"Cannot load v1 router factory {import_string!r}: {e}",
            error_code=ErrorCode.CONFIGURATION_ERROR,
        ) from e
    if not callable(factory):
        raise GatewayError(
            f"{import_string!r} is not callable",
            error_code=ErrorCode.CONFIGURATION_ERROR,
        )
    return factory


def build_v1_router(
    factory: RouterFactory,
    store: "StoreConnection",
    settings: Settings,
) -> APIRouter:
    """Wrap the external router under the /v1 prefix."""
    router = APIRouter(prefix=V1_PREFIX)
    router.include_router(factory(store, settings))
    return router
