"""
Built-in pipeline stages that need no collaborator beyond configuration.

- BodyCookieDecoder: decodes JSON and form bodies, verifies the session
  cookie.
- StoreContextAugmenter: exposes the shared store connection to handlers.
"""

import json
import re
from typing import TYPE_CHECKING, Any, Optional
from urllib.parse import parse_qsl

from starlette.requests import Request
from starlette.responses import Response

from web_gateway.core.exceptions import MalformedBodyError, PayloadTooLargeError
from web_gateway.pipeline.base import StageBase
from web_gateway.pipeline.context import RequestContext
from web_gateway.sessions.cookies import SessionCookie

if TYPE_CHECKING:
    from web_gateway.store.connection import StoreConnection

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"
JSON_CONTENT_TYPE = "application/json"

# user[name], tags[], a[b][c]
BRACKETED_KEY = re.compile(r"^([^\[\]]+)((?:\[[^\[\]]*\])+)$")
KEY_SEGMENT = re.compile(r"\[([^\[\]]*)\]")


def media_type(content_type: Optional[str]) -> str:
    """``"application/json; charset=utf-8"`` -> ``"application/json"``."""
    if not content_type:
        return ""
    return content_type.split(";", 1)[0].strip().lower()


def is_json(content_type: str) -> bool:
    return content_type == JSON_CONTENT_TYPE or content_type.endswith("+json")


def decode_json(raw: bytes) -> Any:
    """
    Decode a JSON body.

    Only objects and arrays are accepted as top-level values.

    Raises:
        MalformedBodyError: On invalid JSON or a scalar top-level value.
    """
    try:
        value = json.loads(raw)
    except (ValueError, UnicodeDecodeError) as e:
        raise MalformedBodyError(f"Malformed JSON body: {e}") from e
    if not isinstance(value, (dict, list)):
        raise MalformedBodyError("JSON body must be an object or an array")
    return value


def decode_form(raw: bytes) -> dict[str, Any]:
    """
    Decode an urlencoded body.

    Plain keys seen once map to a string, repeated keys to a list of
    strings. Bracketed keys nest: ``user[name]=Ada`` gives
    ``{"user": {"name": "Ada"}}`` and ``tags[]=a&tags[]=b`` gives
    ``{"tags": ["a", "b"]}``. A bracketed key that conflicts with an
    earlier plain value is kept flat under its literal name.

    Raises:
        MalformedBodyError: If the body is not valid UTF-8.
    """
    try:
        pairs = parse_qsl(raw.decode("utf-8"), keep_blank_values=True, errors="strict")
    except (ValueError, UnicodeDecodeError) as e:
        raise MalformedBodyError(f"Malformed form body: {e}") from e

    body: dict[str, Any] = {}
    for key, value in pairs:
        if not _assign_nested(body, split_form_key(key), value):
            _add_value(body, key, value)
    return body


def split_form_key(key: str) -> list[str]:
    """``"a[b][]"`` -> ``["a", "b", ""]``; plain keys -> ``[key]``."""
    match = BRACKETED_KEY.match(key)
    if match is None:
        return [key]
    return [match.group(1), *KEY_SEGMENT.findall(match.group(2))]


def _add_value(target: dict[str, Any], key: str, value: str) -> None:
    if key not in target:
        target[key] = value
    elif isinstance(target[key], list):
        target[key].append(value)
    else:
        target[key] = [target[key], value]


def _assign_nested(body: dict[str, Any], path: list[str], value: str) -> bool:
    append = len(path) > 1 and path[-1] == ""
    if append:
        path = path[:-1]
    if "" in path:
        return False

    target = body
    for segment in path[:-1]:
        child = target.get(segment)
        if child is None:
            child = target[segment] = {}
        elif not isinstance(child, dict):
            return False
        target = child

    leaf = path[-1]
    if not append:
        _add_value(target, leaf, value)
        return True
    existing = target.setdefault(leaf, [])
    if not isinstance(existing, list):
        return False
    existing.append(value)
    return True


async def read_limited(request: Request, limit: int) -> bytes:
    """
    Read the request body, stopping as soon as it exceeds limit bytes.

    Raises:
        PayloadTooLargeError: If the body is larger than limit.
    """
    declared = request.headers.get("content-length")
    if declared and declared.isdigit() and int(declared) > limit:
        raise PayloadTooLargeError(f"Request body of {declared} bytes exceeds {limit} bytes")

    chunks: list[bytes] = []
    received = 0
    async for chunk in request.stream():
        received += len(chunk)
        if received > limit:
            raise PayloadTooLargeError(f"Request body exceeds {limit} bytes")
        chunks.append(chunk)

    raw = b"".join(chunks)
    # what Request.body() caches; handlers and downstream receive() replay it
    request._body = raw
    return raw


class BodyCookieDecoder(StageBase):
    """
    Populates ``context.body``, ``context.cookies`` and ``context.session_id``.

    Args:
        cookie: Session cookie verifier.
        max_body_bytes: Largest accepted body; larger bodies are rejected
            with 413.
    """

    def __init__(self, cookie: SessionCookie, max_body_bytes: int) -> None:
        self._cookie = cookie
        self._max_body_bytes = max_body_bytes

    async def process(self, context: RequestContext) -> Optional[Response]:
        request = context.request

        context.cookies = dict(request.cookies)
        context.session_id = self._cookie.unsign(context.cookies.get(self._cookie.name))

        raw = await read_limited(request, self._max_body_bytes)
        context.body = self.decode(media_type(request.headers.get("content-type")), raw)
        return None

    @staticmethod
    def decode(content_type: str, raw: bytes) -> Any:
        """Decode raw for content_type; None for types left undecoded."""
        if not raw:
            return {}
        if is_json(content_type):
            return decode_json(raw)
        if content_type == FORM_CONTENT_TYPE:
            return decode_form(raw)
        return None


class StoreContextAugmenter(StageBase):
    """Attaches the shared store connection to every request."""

    def __init__(self, store: "StoreConnection") -> None:
        self._store = store

    async def process(self, context: RequestContext) -> Optional[Response]:
        context.store = self._store
        return None
