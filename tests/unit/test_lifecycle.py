"""
Tests for web_gateway/lifecycle.py and the GatewayServer signal hook.

Process exit is replaced with a recorder so the termination path can run
inside the test process.
"""

import asyncio
import signal
from unittest.mock import AsyncMock, MagicMock

import pytest
import redis


class ExitRecorder:
    def __init__(self) -> None:
        self.codes: list[int] = []

    def __call__(self, code: int) -> None:
        self.codes.append(code)


def tracked_connection(fake_redis=None):
    """StoreConnection whose client close calls are counted."""
    from web_gateway.store.connection import StoreConnection

    client = fake_redis if fake_redis is not None else MagicMock()
    client.aclose = AsyncMock()
    if fake_redis is None:
        client.ping = AsyncMock(side_effect=redis.ConnectionError("refused"))
    return StoreConnection(client=client), client


class TestStartup:
    @pytest.mark.asyncio
    async def test_startup_connects_store(self, fake_redis):
        from web_gateway.lifecycle import LifecycleManager

        connection, _ = tracked_connection(fake_redis)
        lifecycle = LifecycleManager(connection, exit_process=ExitRecorder())

        await lifecycle.startup()

        assert connection.is_connected is True

    @pytest.mark.asyncio
    async def test_startup_survives_unreachable_store(self):
        from web_gateway.lifecycle import LifecycleManager

        connection, _ = tracked_connection()
        lifecycle = LifecycleManager(connection, exit_process=ExitRecorder())

        await lifecycle.startup()

        assert connection.is_connected is False
        assert connection.is_closed is False

    @pytest.mark.asyncio
    async def test_orderly_shutdown_closes_store(self, fake_redis):
        from web_gateway.lifecycle import LifecycleManager

        connection, client = tracked_connection(fake_redis)
        exits = ExitRecorder()
        lifecycle = LifecycleManager(connection, exit_process=exits)

        async with lifecycle.lifespan(MagicMock()):
            assert connection.is_connected is True

        assert connection.is_closed is True
        client.aclose.assert_awaited_once()
        assert exits.codes == []


class TestTermination:
    @pytest.mark.asyncio
    async def test_terminate_closes_once_and_exits_zero(self, fake_redis):
        from web_gateway.lifecycle import LifecycleManager

        connection, client = tracked_connection(fake_redis)
        exits = ExitRecorder()
        lifecycle = LifecycleManager(connection, exit_process=exits)

        await lifecycle.terminate()
        await lifecycle.terminate()

        client.aclose.assert_awaited_once()
        assert exits.codes == [0]

    @pytest.mark.asyncio
    async def test_repeated_signals_terminate_once(self, fake_redis):
        from web_gateway.lifecycle import LifecycleManager

        connection, client = tracked_connection(fake_redis)
        exits = ExitRecorder()
        lifecycle = LifecycleManager(connection, exit_process=exits)
        await lifecycle.startup()

        lifecycle.handle_signal(signal.SIGTERM)
        lifecycle.handle_signal(signal.SIGINT)
        lifecycle.handle_signal(signal.SIGTERM)
        await asyncio.wait_for(lifecycle.wait_terminated(), timeout=2)
        await asyncio.sleep(0)

        assert lifecycle.is_terminating is True
        client.aclose.assert_awaited_once()
        assert exits.codes == [0]

    def test_signal_before_startup_terminates_synchronously(self):
        from web_gateway.lifecycle import LifecycleManager

        client = MagicMock()
        client.aclose = AsyncMock()
        from web_gateway.store.connection import StoreConnection

        exits = ExitRecorder()
        lifecycle = LifecycleManager(StoreConnection(client=client), exit_process=exits)

        lifecycle.handle_signal(signal.SIGINT)

        client.aclose.assert_awaited_once()
        assert exits.codes == [0]

    @pytest.mark.asyncio
    async def test_signal_on_running_loop_before_startup(self, fake_redis):
        from web_gateway.lifecycle import LifecycleManager

        connection, client = tracked_connection(fake_redis)
        exits = ExitRecorder()
        lifecycle = LifecycleManager(connection, exit_process=exits)

        lifecycle.handle_signal(signal.SIGTERM)
        lifecycle.handle_signal(signal.SIGINT)
        await asyncio.wait_for(lifecycle.wait_terminated(), timeout=2)

        client.aclose.assert_awaited_once()
        assert exits.codes == [0]

    @pytest.mark.asyncio
    async def test_store_close_failure_still_exits(self):
        from web_gateway.lifecycle import LifecycleManager

        connection, client = tracked_connection()
        client.aclose = AsyncMock(side_effect=redis.ConnectionError("gone"))
        exits = ExitRecorder()

        await LifecycleManager(connection, exit_process=exits).terminate()

        assert exits.codes == [0]


class TestGatewayServer:
    def test_handle_exit_routes_to_lifecycle(self, app):
        import uvicorn

        from web_gateway.main import GatewayServer

        lifecycle = MagicMock()
        server = GatewayServer(uvicorn.Config(app), lifecycle, "Test Gateway")

        server.handle_exit(signal.SIGTERM, None)

        lifecycle.handle_signal.assert_called_once_with(signal.SIGTERM)
        assert server.should_exit is False

    @pytest.mark.asyncio
    async def test_listening_message_after_startup(self, app, monkeypatch):
        import uvicorn
        from structlog.testing import capture_logs

        from web_gateway import main

        async def fake_startup(self, sockets=None):
            self.started = True

        monkeypatch.setattr(uvicorn.Server, "startup", fake_startup)
        server = main.GatewayServer(uvicorn.Config(app, port=4321), MagicMock(), "Test Gateway")

        with capture_logs() as logs:
            await server.startup()

        assert [entry["event"] for entry in logs] == ["Test Gateway is listening on port 4321..."]
