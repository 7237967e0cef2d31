"""Shared test fixtures for the loadcheck test suite."""

from __future__ import annotations

import asyncio
import socket
import threading
from typing import TYPE_CHECKING

import pytest
from aiohttp import web

from loadcheck.dsl.scenario import registry
from loadcheck.target import create_target_app

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Iterator
    from pathlib import Path


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


@pytest.fixture(autouse=True)
def _clear_registry() -> Iterator[None]:
    """Keep the global scenario registry empty between tests."""
    registry.clear()
    yield
    registry.clear()


# =============================================================================
# Network utilities
# =============================================================================


def _get_free_port() -> int:
    """Find an available port on localhost."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


@pytest.fixture
def unreachable_url() -> str:
    """URL of a local port nothing listens on."""
    return f"http://127.0.0.1:{_get_free_port()}/"


# =============================================================================
# Target server fixtures
# =============================================================================


@pytest.fixture
async def target_server() -> AsyncIterator[str]:
    """Target server in the test's event loop.

    Returns the base URL (e.g. 'http://127.0.0.1:54321'). Use
    ``?status=`` and ``?delay=`` to shape responses.
    """
    runner = web.AppRunner(create_target_app())
    await runner.setup()
    port = _get_free_port()
    site = web.TCPSite(runner, "127.0.0.1", port)
    await site.start()
    yield f"http://127.0.0.1:{port}"
    await runner.cleanup()


@pytest.fixture
def sync_target_server() -> Iterator[str]:
    """Target server in a background thread, for tests that block the main thread."""
    port = _get_free_port()
    started = threading.Event()
    loop_holder: list[asyncio.AbstractEventLoop] = []

    def _thread_target() -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        runner = web.AppRunner(create_target_app())
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
def scenario_file(tmp_path: Path, sync_target_server: str) -> Path:
    """Scenario file that GETs the sync target server and checks for 200."""
    code = f'''\
from __future__ import annotations

from loadcheck import HttpClient, check, scenario


@scenario(name="File Scenario", vus=2, duration="1s")
async def get_root(client: HttpClient) -> None:
    res = await client.get("{sync_target_server}/")
    check(res, {{"status was 200": lambda r: r.status_code == 200}})
'''
    path = tmp_path / "file_scenario.py"
    path.write_text(code)
    return path
