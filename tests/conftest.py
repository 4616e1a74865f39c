"""Shared test fixtures for the topsload test suite."""

from __future__ import annotations

import asyncio
import socket
import threading
from typing import TYPE_CHECKING

import pytest
from aiohttp import web

from topsload.metrics.recorder import InMemoryRecorder

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Iterator


# =============================================================================
# Pytest configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Auto-apply markers based on test directory structure."""
    for item in items:
        test_path = str(item.fspath)
        if "/unit/" in test_path:
            item.add_marker(pytest.mark.unit)
        elif "/integration/" in test_path:
            item.add_marker(pytest.mark.integration)
        elif "/e2e/" in test_path:
            item.add_marker(pytest.mark.e2e)


# =============================================================================
# Network utilities
# =============================================================================


def _get_free_port() -> int:
    """Find an available port on localhost."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("", 0))
        s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        return s.getsockname()[1]


# =============================================================================
# TOPS-like HTTP server
# =============================================================================


def _create_tops_app(endpoint_status: int = 200) -> web.Application:
    """Build a server exposing the health/status endpoints plus test helpers.

    Args:
        endpoint_status: Status returned by ``/api/v1/health`` and
            ``/api/v1/status``.
    """

    async def _endpoint_handler(request: web.Request) -> web.Response:
        return web.json_response({"path": request.path}, status=endpoint_status)

    async def _slow_handler(request: web.Request) -> web.Response:
        delay = float(request.query.get("delay", "0.1"))
        await asyncio.sleep(delay)
        return web.json_response({"delayed_by": delay})

    async def _error_handler(request: web.Request) -> web.Response:
        status = int(request.query.get("status", "500"))
        return web.json_response({"error": True}, status=status)

    app = web.Application()
    app.router.add_get("/api/v1/health", _endpoint_handler)
    app.router.add_get("/api/v1/status", _endpoint_handler)
    app.router.add_get("/slow", _slow_handler)
    app.router.add_get("/error", _error_handler)
    return app


async def _serve(app: web.Application) -> tuple[web.AppRunner, str]:
    port = _get_free_port()
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "127.0.0.1", port)
    await site.start()
    return runner, f"http://127.0.0.1:{port}"


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def recorder() -> InMemoryRecorder:
    """Fresh recorder for one test run."""
    return InMemoryRecorder()


@pytest.fixture
async def tops_server() -> AsyncIterator[str]:
    """Healthy server; yields its base URL, e.g. ``http://127.0.0.1:54321``."""
    runner, base_url = await _serve(_create_tops_app())
    yield base_url
    await runner.cleanup()


@pytest.fixture
async def failing_server() -> AsyncIterator[str]:
    """Server whose health/status endpoints answer 503."""
    runner, base_url = await _serve(_create_tops_app(endpoint_status=503))
    yield base_url
    await runner.cleanup()


@pytest.fixture
def unused_url() -> str:
    """Base URL with nothing listening on it."""
    return f"http://127.0.0.1:{_get_free_port()}"


def _threaded_server(endpoint_status: int) -> Iterator[str]:
    port = _get_free_port()
    started = threading.Event()
    loop_holder: list[asyncio.AbstractEventLoop] = []

    def _thread_target() -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        runner = web.AppRunner(_create_tops_app(endpoint_status))
        loop.run_until_complete(runner.setup())
        site = web.TCPSite(runner, "127.0.0.1", port)
        loop.run_until_complete(site.start())
        loop_holder.append(loop)
        started.set()
        loop.run_forever()
        loop.run_until_complete(runner.cleanup())
        loop.close()

    thread = threading.Thread(target=_thread_target, daemon=True)
    thread.start()
    started.wait(timeout=5.0)

    yield f"http://127.0.0.1:{port}"

    if loop_holder:
        loop_holder[0].call_soon_threadsafe(loop_holder[0].stop)
    thread.join(timeout=5.0)


@pytest.fixture
def sync_tops_server() -> Iterator[str]:
    """Healthy server in a background thread, for CLI tests that block."""
    yield from _threaded_server(200)


@pytest.fixture
def sync_failing_server() -> Iterator[str]:
    """503-answering server in a background thread."""
    yield from _threaded_server(503)
