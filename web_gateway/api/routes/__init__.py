"""Routes Package - /heartbeat and the /v1 mount.

Import routers from the individual modules:
    from web_gateway.api.routes.heartbeat import router as heartbeat_router
"""

__all__ = ["heartbeat", "v1"]
