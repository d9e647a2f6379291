"""
Request Pipeline Package.

- RequestContext: per-request state
- Stage protocol and the RequestPipeline middleware
- Built-in decoder and context augmenter stages
"""

from web_gateway.pipeline.base import REQUEST_ID_HEADER, RequestPipeline, Stage, StageBase
from web_gateway.pipeline.context import RequestContext
from web_gateway.pipeline.stages import BodyCookieDecoder, StoreContextAugmenter

__all__ = [
    "REQUEST_ID_HEADER",
    "RequestContext",
    "RequestPipeline",
    "Stage",
    "StageBase",
    "BodyCookieDecoder",
    "StoreContextAugmenter",
]
