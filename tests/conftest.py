"""Shared fixtures: the mock upstream server and in-memory fake adapters."""

import asyncio
import threading
from collections.abc import Generator

import pytest
from aiohttp import web

from scrapify.activity_log import ActivityLog
from scrapify.catalog import AdapterCatalog
from scrapify.orchestrator import ExtractionOrchestrator
from tests.fakes import FixtureAdapter
from tests.mock_server import SEEN, create_app

# =============================================================================
# Mock upstream server
# =============================================================================


class UpstreamServer:
    """Serves the mock upstream app from its own event loop thread.

    The adapters under test run on pytest-asyncio's loop, so the server needs
    a loop of its own. It binds port 0 and reads back the port the OS picked.
    """

    host = "127.0.0.1"

    def __init__(self, app: web.Application) -> None:
        self.app = app
        self.port = 0
        self._loop = asyncio.new_event_loop()
        self._runner = web.AppRunner(app)
        self._ready = threading.Event()
        self._thread = threading.Thread(target=self._serve, daemon=True)

    @property
    def url(self) -> str:
        return f"http://{self.host}:{self.port}"

    @property
    def seen(self) -> list:
        """Requests recorded by the mock handlers, oldest first."""
        return self.app[SEEN]

    def _serve(self) -> None:
        asyncio.set_event_loop(self._loop)
        self._loop.run_until_complete(self._bind())
        self._ready.set()
        self._loop.run_forever()
        self._loop.close()

    async def _bind(self) -> None:
        await self._runner.setup()
        site = web.TCPSite(self._runner, self.host, 0)
        await site.start()
        self.port = self._runner.addresses[0][1]

    def __enter__(self) -> "UpstreamServer":
        self._thread.start()
        if not self._ready.wait(timeout=5.0):
            raise RuntimeError("mock upstream server did not start")
        return self

    def __exit__(self, *exc_info) -> None:
        asyncio.run_coroutine_threadsafe(
            self._runner.cleanup(), self._loop
        ).result(timeout=5.0)
        self._loop.call_soon_threadsafe(self._loop.stop)
        self._thread.join(timeout=5.0)


@pytest.fixture
def upstream_server() -> Generator[UpstreamServer, None, None]:
    """Start a server running every mock upstream.

    Yields:
        The running UpstreamServer.
    """
    with UpstreamServer(create_app()) as server:
        yield server


@pytest.fixture
def server_url(upstream_server: UpstreamServer) -> str:
    """Base URL of the mock upstream server (e.g. "http://127.0.0.1:41234")."""
    return upstream_server.url


# =============================================================================
# Fake adapters
# =============================================================================


@pytest.fixture
def fixture_adapter() -> FixtureAdapter:
    return FixtureAdapter()


@pytest.fixture
def orchestrator(fixture_adapter: FixtureAdapter) -> ExtractionOrchestrator:
    """Orchestrator over a catalog holding only the fixture adapter."""
    return ExtractionOrchestrator(
        AdapterCatalog([fixture_adapter]), activity_log=ActivityLog()
    )
