"""Pytest configuration and fixtures for integration tests.

Integration tests run the HTTP transport against a scripted recipe backend
served by aiohttp on a free localhost port, so they need no API keys.
"""

import asyncio
import socket
from typing import Any

import pytest
import pytest_asyncio
from aiohttp import web


class ScriptedBackend:
    """Recipe endpoint that replays queued responses and records requests."""

    def __init__(self) -> None:
        self.base_url = ""
        self.requests: list[dict[str, Any]] = []
        self._responses: list[tuple[int, Any, float]] = []

    def queue(self, status: int, body: Any, delay: float = 0.0) -> None:
        """Queue one response.

        Dicts and lists are sent as JSON, strings as plain text, and bytes
        verbatim with a JSON content type.
        """
        self._responses.append((status, body, delay))

    async def handle(self, request: web.Request) -> web.StreamResponse:
        self.requests.append({"headers": dict(request.headers), "json": await request.json()})
        if not self._responses:
            return web.json_response({"recipes": []})

        status, body, delay = self._responses.pop(0)
        if delay:
            await asyncio.sleep(delay)
        if isinstance(body, (dict, list)):
            return web.json_response(body, status=status)
        if isinstance(body, bytes):
            return web.Response(status=status, body=body, content_type="application/json")
        return web.Response(status=status, text=body)


@pytest_asyncio.fixture
async def recipe_backend():
    """Start a ScriptedBackend and yield it with its base_url set."""
    backend = ScriptedBackend()
    app = web.Application()
    app.router.add_post("/api/generate-recipes", backend.handle)

    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "127.0.0.1", 0)
    await site.start()
    host, port = runner.addresses[0][:2]
    backend.base_url = f"http://{host}:{port}"

    yield backend

    await runner.cleanup()


@pytest.fixture
def closed_port_url() -> str:
    """URL of a localhost port nothing listens on."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        port = sock.getsockname()[1]
    return f"http://127.0.0.1:{port}"
