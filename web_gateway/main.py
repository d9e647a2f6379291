"""
Web Gateway - Application Entry Point

create_app() builds the FastAPI application:

- ServerContext (settings, store, authenticator, normalizer, stages)
- Routers: /heartbeat, /v1 (external factory), /metrics (optional)
- Exception handlers routing every error to the ErrorNormalizer
- Middleware, outermost first: metrics, access log (development only),
  request pipeline

run() serves it with uvicorn through GatewayServer, which hands SIGINT and
SIGTERM to the LifecycleManager.
"""

import socket
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from web_gateway import __version__
from web_gateway.api.middleware.logging import RequestLoggingMiddleware
from web_gateway.api.routes.heartbeat import router as heartbeat_router
from web_gateway.api.routes.v1 import RouterFactory, build_v1_router, resolve_router_factory
from web_gateway.auth.authenticator import Authenticator
from web_gateway.context import ServerContext
from web_gateway.core.config import Settings, get_settings
from web_gateway.core.exceptions import GatewayError
from web_gateway.lifecycle import LifecycleManager
from web_gateway.observability.logging import configure_logging, get_logger
from web_gateway.observability.metrics import MetricsMiddleware, metrics_endpoint
from web_gateway.pipeline.base import RequestPipeline
from web_gateway.store.connection import StoreConnection

logger = get_logger(__name__)

APP_DESCRIPTION = "Session-aware entry gateway for the versioned REST API"


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[StoreConnection] = None,
    authenticator: Optional[Authenticator] = None,
    v1_router_factory: Optional[RouterFactory] = None,
) -> FastAPI:
    """
    Build the gateway application.

    Args:
        settings: Defaults to get_settings().
        store: Pre-built store connection (tests); built from settings
            otherwise.
        authenticator: Strategy instance; Settings.authenticator otherwise.
        v1_router_factory: Factory for the /v1 router;
            Settings.v1_router_factory otherwise.

    Returns:
        The configured FastAPI application. ``app.state.context`` holds the
        ServerContext and ``app.state.lifecycle`` the LifecycleManager.
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level, force=True)

    context = ServerContext.build(settings, store=store, authenticator=authenticator)
    lifecycle = LifecycleManager(context.store)
    is_production = settings.environment == "production"

    app = FastAPI(
        title=settings.server.name,
        description=APP_DESCRIPTION,
        version=__version__,
        docs_url=None if is_production else "/docs",
        redoc_url=None if is_production else "/redoc",
        openapi_url=None if is_production else "/openapi.json",
        lifespan=lifecycle.lifespan,
    )
    app.state.context = context
    app.state.lifecycle = lifecycle

    app.add_exception_handler(StarletteHTTPException, context.normalizer.handle)
    app.add_exception_handler(RequestValidationError, context.normalizer.handle)
    app.add_exception_handler(GatewayError, context.normalizer.handle)

    app.include_router(heartbeat_router)
    factory = v1_router_factory or resolve_router_factory(settings.v1_router_factory)
    app.include_router(build_v1_router(factory, context.store, settings))
    if settings.metrics_enabled:
        app.add_route("/metrics", metrics_endpoint, methods=["GET"], include_in_schema=False)

    # add_middleware prepends: the last one added runs first
    app.add_middleware(
        RequestPipeline,
        stages=context.stages(),
        normalizer=context.normalizer,
    )
    if settings.access_log_enabled:
        app.add_middleware(RequestLoggingMiddleware)
    if settings.metrics_enabled:
        app.add_middleware(MetricsMiddleware)

    logger.info(
        "Application created",
        name=settings.server.name,
        environment=settings.environment,
        expose_error_detail=settings.expose_error_detail,
    )
    return app


class GatewayServer(uvicorn.Server):
    """
    uvicorn server whose signal handling belongs to the LifecycleManager.

    uvicorn installs handle_exit for SIGINT/SIGTERM; instead of uvicorn's
    graceful drain, the signal goes straight to LifecycleManager.handle_signal.
    """

    def __init__(self, config: uvicorn.Config, lifecycle: LifecycleManager, name: str) -> None:
        super().__init__(config)
        self.lifecycle = lifecycle
        self.name = name

    async def startup(self, sockets: Optional[list[socket.socket]] = None) -> None:
        await super().startup(sockets=sockets)
        if self.started:
            logger.info(f"{self.name} is listening on port {self.config.port}...")

    def handle_exit(self, sig: int, frame: object) -> None:
        self.lifecycle.handle_signal(sig)


def run() -> None:
    """Console entry point: ``web-gateway``."""
    settings = get_settings()
    app = create_app(settings)
    config = uvicorn.Config(
        app,
        host=settings.server.host,
        port=settings.listen_port,
        log_config=None,
        access_log=False,
        log_level=settings.log_level.lower(),
    )
    GatewayServer(config, app.state.lifecycle, settings.server.name).run()


if __name__ == "__main__":
    run()
