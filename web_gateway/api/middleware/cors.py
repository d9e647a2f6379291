"""
CORS Policy Filter.

First stage of the pipeline. The policy is fixed for the whole API:
credentials are allowed and the caller's Origin is reflected, never ``*``.
Headers are applied in ``finalize`` so that every response leaving the
pipeline carries them, preflight and error responses included.
"""

from typing import Optional

from starlette.responses import Response

from web_gateway.pipeline.base import StageBase
from web_gateway.pipeline.context import RequestContext

ALLOW_HEADERS = "sessionId, Origin, X-Requested-With, Content-Type, Authorization, Accept"
EXPOSE_HEADERS = "sessionId"
ALLOW_METHODS = "GET,HEAD,PUT,PATCH,POST,DELETE,OPTIONS"


class CorsPolicyFilter(StageBase):
    """Short-circuits preflights and decorates every response."""

    async def process(self, context: RequestContext) -> Optional[Response]:
        if context.request.method == "OPTIONS":
            return Response(status_code=204)
        return None

    async def finalize(self, context: RequestContext, response: Response) -> None:
        headers = response.headers
        headers["Access-Control-Allow-Headers"] = ALLOW_HEADERS
        headers["Access-Control-Expose-Headers"] = EXPOSE_HEADERS
        headers["Access-Control-Allow-Methods"] = ALLOW_METHODS
        headers["Access-Control-Allow-Credentials"] = "true"

        origin = context.request.headers.get("origin")
        if origin:
            headers["Access-Control-Allow-Origin"] = origin
            headers.add_vary_header("Origin")
