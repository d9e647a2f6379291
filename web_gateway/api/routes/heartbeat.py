"""
Heartbeat Router.

``GET /heartbeat`` (HEAD too) answers 200 with an empty body. It passes
through the whole pipeline like any request but never needs the store: a
cookieless request gets a fresh session that is not persisted, and a
failing store read only downgrades the session to a detached one.
"""

from fastapi import APIRouter, Response

router = APIRouter(tags=["Health"])


@router.api_route("/heartbeat", methods=["GET", "HEAD"], include_in_schema=False)
async def heartbeat() -> Response:
    return Response(status_code=200)
