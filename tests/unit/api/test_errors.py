"""
Unit tests for web_gateway/api/errors.py.
"""

import pytest
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException


def raised(exc: Exception) -> Exception:
    """Return exc with a populated traceback."""
    try:
        raise exc
    except Exception as caught:
        return caught


class TestStatusResolution:
    @pytest.mark.parametrize(
        "exc, expected",
        [
            ("malformed", 400),
            ("http_405", 405),
            ("validation", 422),
            ("plain", None),
            ("closed", None),
        ],
    )
    def test_resolve_status(self, exc, expected):
        from web_gateway.api.errors import resolve_status
        from web_gateway.core.exceptions import MalformedBodyError, StoreClosedError

        errors = {
            "malformed": MalformedBodyError("bad"),
            "http_405": StarletteHTTPException(status_code=405),
            "validation": RequestValidationError([]),
            "plain": ValueError("boom"),
            "closed": StoreClosedError(),
        }

        assert resolve_status(errors[exc]) == expected


class TestDetailMode:
    def test_status_less_error_is_500_with_detail(self):
        import json

        from web_gateway.api.errors import ErrorNormalizer

        response = ErrorNormalizer(expose_error_detail=True).render(raised(ValueError("kaput")))
        body = json.loads(response.body)

        assert response.status_code == 500
        assert body["message"] == "kaput"
        assert body["error"]["type"] == "ValueError"
        assert body["error"]["status"] == 500
        assert "ValueError: kaput" in body["error"]["stack"]

    def test_gateway_error_keeps_status_and_code(self):
        import json

        from web_gateway.api.errors import ErrorNormalizer
        from web_gateway.core.exceptions import AuthenticationRequiredError

        response = ErrorNormalizer(True).render(raised(AuthenticationRequiredError()))
        body = json.loads(response.body)

        assert response.status_code == 401
        assert body["error"]["code"] == "AUTHENTICATION_REQUIRED"

    def test_cause_is_reported(self):
        import json

        from web_gateway.api.errors import ErrorNormalizer
        from web_gateway.core.exceptions import SessionStoreError

        try:
            try:
                raise ConnectionError("refused")
            except ConnectionError as e:
                raise SessionStoreError("save failed") from e
        except SessionStoreError as caught:
            error = caught

        body = json.loads(ErrorNormalizer(True).render(error).body)

        assert body["error"]["cause"] == "ConnectionError: refused"

    def test_http_exception_headers_kept(self):
        from web_gateway.api.errors import ErrorNormalizer

        exc = StarletteHTTPException(status_code=401, headers={"WWW-Authenticate": "Bearer"})

        response = ErrorNormalizer(True).render(exc)

        assert response.status_code == 401
        assert response.headers["www-authenticate"] == "Bearer"


class TestProductionMode:
    def test_status_less_error_is_404_and_empty(self):
        from web_gateway.api.errors import ErrorNormalizer

        response = ErrorNormalizer(expose_error_detail=False).render(raised(ValueError("secret detail")))

        assert response.status_code == 404
        assert response.body == b""

    def test_error_status_kept_body_empty(self):
        from web_gateway.api.errors import ErrorNormalizer
        from web_gateway.core.exceptions import MalformedBodyError

        response = ErrorNormalizer(False).render(MalformedBodyError("bad json"))

        assert response.status_code == 400
        assert response.body == b""

    def test_store_closed_during_shutdown_is_404(self):
        from web_gateway.api.errors import ErrorNormalizer
        from web_gateway.core.exceptions import StoreClosedError

        assert ErrorNormalizer(False).render(StoreClosedError()).status_code == 404


class TestHandle:
    @pytest.mark.asyncio
    async def test_unmatched_route_becomes_not_found(self):
        import json

        from starlette.requests import Request

        from web_gateway.api.errors import ErrorNormalizer

        request = Request({"type": "http", "method": "GET", "path": "/nowhere", "headers": []})

        response = await ErrorNormalizer(True).handle(request, StarletteHTTPException(status_code=404))
        body = json.loads(response.body)

        assert response.status_code == 404
        assert body["message"] == "Not Found"
        assert body["error"]["type"] == "NotFoundError"

    @pytest.mark.asyncio
    async def test_method_miss_becomes_not_found_without_allow(self):
        from starlette.requests import Request

        from web_gateway.api.errors import ErrorNormalizer

        request = Request({"type": "http", "method": "POST", "path": "/heartbeat", "headers": []})
        exc = StarletteHTTPException(status_code=405, headers={"Allow": "GET, HEAD"})

        response = await ErrorNormalizer(False).handle(request, exc)

        assert response.status_code == 404
        assert response.body == b""
        assert "allow" not in response.headers


class TestNeverRaises:
    def test_render_failure_falls_back(self, monkeypatch):
        from web_gateway.api import errors

        def explode(exc, status_code):
            raise TypeError("cannot render")

        normalizer = errors.ErrorNormalizer(True)
        monkeypatch.setattr(normalizer, "_error_detail", explode)

        response = normalizer.render(ValueError("x"))

        assert response.status_code == 500
