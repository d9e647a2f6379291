"""
Request pipeline.

The pipeline is an ordered list of stages run inside one Starlette
middleware. Each stage returns either None (continue with the context) or a
Response (short-circuit: later stages and the router are skipped). When
every stage continues, the router dispatches the request.

After a response exists (from a stage, the router, or the ErrorNormalizer),
``finalize`` runs on every stage that ran, in reverse order, so the session
cookie and CORS headers are attached to normal, short-circuited and error
responses alike.

Any exception raised by a stage, the router or a finalizer goes to the
ErrorNormalizer, which is the only place error responses are produced.

Pattern: BaseHTTPMiddleware for request/response interception
"""

from typing import Awaitable, Callable, Optional, Protocol, Sequence, runtime_checkable
from uuid import uuid4

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from web_gateway.api.errors import ErrorNormalizer
from web_gateway.observability.logging import request_id_context
from web_gateway.pipeline.context import RequestContext

REQUEST_ID_HEADER = "X-Request-ID"


@runtime_checkable
class Stage(Protocol):
    """A pipeline stage."""

    async def process(self, context: RequestContext) -> Optional[Response]:
        """Return None to continue, or a Response to short-circuit."""
        ...

    async def finalize(self, context: RequestContext, response: Response) -> None:
        """Amend the outgoing response; may raise to replace it with an error."""
        ...


class StageBase:
    """Convenience base with no-op hooks."""

    async def process(self, context: RequestContext) -> Optional[Response]:
        return None

    async def finalize(self, context: RequestContext, response: Response) -> None:
        return None


class RequestPipeline(BaseHTTPMiddleware):
    """
    Runs the stage chain around the router.

    Args:
        app: The wrapped ASGI app (FastAPI router stack).
        stages: Stages in execution order.
        normalizer: Terminal error stage.
    """

    def __init__(
        self,
        app: ASGIApp,
        stages: Sequence[Stage],
        normalizer: ErrorNormalizer,
    ) -> None:
        super().__init__(app)
        self._stages = list(stages)
        self._normalizer = normalizer

    @property
    def stages(self) -> list[Stage]:
        return list(self._stages)

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid4().hex
        context = RequestContext(request=request, request_id=request_id)
        request.state.context = context

        with request_id_context(request_id):
            completed: list[Stage] = []
            response: Optional[Response] = None

            try:
                for stage in self._stages:
                    completed.append(stage)
                    response = await stage.process(context)
                    if response is not None:
                        break
                else:
                    response = await call_next(request)
            except Exception as exc:
                response = self._fail(context, exc)

            for stage in reversed(completed):
                try:
                    await stage.finalize(context, response)
                except Exception as exc:
                    response = self._fail(context, exc)

            response.headers[REQUEST_ID_HEADER] = request_id
            return response

    def _fail(self, context: RequestContext, exc: Exception) -> Response:
        context.error = exc
        return self._normalizer.render(exc, context.request)
