"""
Shared fixtures for the Web Gateway test suite.

The store is fakeredis throughout. A single FakeServer backs both the async
client handed to the gateway and the sync client tests use to inspect what
was written, so HTTP tests never touch the TestClient's event loop.
"""

from typing import Any, Iterator, Optional

import fakeredis
import fakeredis.aioredis
import pytest
import pytest_asyncio
from fastapi import APIRouter, Depends, FastAPI
from fastapi.testclient import TestClient

from web_gateway.api.deps import (
    get_auth_gate,
    get_body,
    get_request_context,
    get_session,
    get_store,
    require_principal,
)
from web_gateway.auth.gate import AuthenticationGate
from web_gateway.auth.models import Principal
from web_gateway.core.config import DatabaseSettings, ServerSettings, Settings
from web_gateway.core.exceptions import NotFoundError
from web_gateway.main import create_app
from web_gateway.pipeline.context import RequestContext
from web_gateway.sessions.models import Session
from web_gateway.store.connection import StoreConnection

TEST_SERVER_NAME = "Test Gateway"
TEST_COLLECTION = "test-sessions"
TEST_DURATION_SECONDS = 120
COOKIE_NAME = f"{TEST_SERVER_NAME} Cookie"


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: Unit tests for individual components")
    config.addinivalue_line("markers", "integration: Tests exercising the full HTTP surface")


# =============================================================================
# Test doubles
# =============================================================================


class DictAuthenticator:
    """Authenticator backed by an in-memory user table."""

    def __init__(self, users: Optional[dict[str, str]] = None) -> None:
        self.users = dict(users or {"alice": "Alice", "bob": "Bob"})
        self.deserialize_calls: list[str] = []

    def serialize(self, principal: Principal) -> str:
        return principal.id

    async def deserialize(self, reference: str) -> Optional[Principal]:
        self.deserialize_calls.append(reference)
        name = self.users.get(reference)
        if name is None:
            return None
        return Principal(id=reference, display_name=name)


def build_test_router(store: StoreConnection, settings: Settings) -> APIRouter:
    """A small /v1 API exercising sessions, auth and error paths."""
    router = APIRouter()

    @router.get("/session")
    async def read_session(session: Session = Depends(get_session)) -> dict[str, Any]:
        return {"id": session.id, "is_new": session.is_new, "values": session.data.values}

    @router.post("/session")
    async def write_session(
        body: Any = Depends(get_body),
        session: Session = Depends(get_session),
    ) -> dict[str, Any]:
        for key, value in body.items():
            session.set(key, value)
        return {"id": session.id}

    @router.delete("/session")
    async def destroy_session(session: Session = Depends(get_session)) -> dict[str, Any]:
        session.destroy()
        return {"destroyed": session.id}

    @router.post("/echo")
    async def echo(body: Any = Depends(get_body)) -> dict[str, Any]:
        return {"body": body}

    @router.get("/boom")
    async def boom() -> None:
        raise RuntimeError("handler exploded")

    @router.get("/widgets/{widget_id}")
    async def get_widget(widget_id: int) -> dict[str, Any]:
        raise NotFoundError(f"Widget {widget_id} not found")

    @router.post("/login")
    async def login(
        body: Any = Depends(get_body),
        context: RequestContext = Depends(get_request_context),
        gate: AuthenticationGate = Depends(get_auth_gate),
    ) -> dict[str, Any]:
        gate.login(context, Principal(id=body["user"], display_name=body["user"].title()))
        return {"id": context.session.id}

    @router.post("/logout")
    async def logout(
        context: RequestContext = Depends(get_request_context),
        gate: AuthenticationGate = Depends(get_auth_gate),
    ) -> dict[str, Any]:
        gate.logout(context)
        return {}

    @router.get("/me")
    async def me(principal: Principal = Depends(require_principal)) -> dict[str, Any]:
        return principal.model_dump()

    @router.get("/store")
    async def store_info(connection: StoreConnection = Depends(get_store)) -> dict[str, Any]:
        return {"namespace": connection.namespace, "closed": connection.is_closed}

    return router


# =============================================================================
# Store fixtures
# =============================================================================


@pytest.fixture
def fake_server() -> fakeredis.FakeServer:
    return fakeredis.FakeServer()


@pytest_asyncio.fixture
async def fake_redis(fake_server):
    """Async fake Redis client for unit tests."""
    client = fakeredis.aioredis.FakeRedis(server=fake_server, decode_responses=True)
    yield client
    await client.aclose()


@pytest.fixture
def sync_redis(fake_server) -> fakeredis.FakeRedis:
    """Sync view of the same fake server, for inspecting HTTP test effects."""
    return fakeredis.FakeRedis(server=fake_server, decode_responses=True)


@pytest.fixture
def store(fake_server) -> StoreConnection:
    client = fakeredis.aioredis.FakeRedis(server=fake_server, decode_responses=True)
    return StoreConnection(client=client, namespace=TEST_COLLECTION)


# =============================================================================
# Settings and application fixtures
# =============================================================================


def make_settings(**overrides: Any) -> Settings:
    values: dict[str, Any] = {
        "server": ServerSettings(
            name=TEST_SERVER_NAME,
            session_duration_seconds=TEST_DURATION_SECONDS,
        ),
        "database": DatabaseSettings(collection=TEST_COLLECTION),
        "environment": "development",
        "log_level": "DEBUG",
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def test_settings() -> Settings:
    return make_settings()


@pytest.fixture
def authenticator() -> DictAuthenticator:
    return DictAuthenticator()


@pytest.fixture
def app(test_settings, store, authenticator) -> FastAPI:
    return create_app(
        settings=test_settings,
        store=store,
        authenticator=authenticator,
        v1_router_factory=build_test_router,
    )


@pytest.fixture
def client(app) -> Iterator[TestClient]:
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def production_app(store, authenticator) -> FastAPI:
    return create_app(
        settings=make_settings(environment="production"),
        store=store,
        authenticator=authenticator,
        v1_router_factory=build_test_router,
    )


@pytest.fixture
def production_client(production_app) -> Iterator[TestClient]:
    with TestClient(production_app) as test_client:
        yield test_client


def session_cookie_from(response) -> Optional[str]:
    """Value of the session cookie set on response, if any."""
    for header in response.headers.get_list("set-cookie"):
        name, _, rest = header.partition("=")
        if name == COOKIE_NAME:
            return rest.split(";", 1)[0]
    return None


def cookie_header(value: str) -> dict[str, str]:
    return {"Cookie": f"{COOKIE_NAME}={value}"}
