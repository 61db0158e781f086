"""Pytest configuration and fixtures for the cdpharvest test suite.

Shared fakes:
    FakeCDPServer: a real local WebSocket server speaking the CDP wire shape.
        Its ``responder`` decides, per inbound command, what to answer (or to
        stay silent), so tests can hold, reorder and inject responses.
    ScriptedPage: a PageSession stand-in that replays read batches and records
        every navigate / evaluate / sleep, for driving the collector without I/O.

Path Setup:
    The src directory is added to sys.path so tests run without installing:
    ``from cdpharvest.cdp.client import CDPClient``
"""

import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Callable

import pytest
import pytest_asyncio
import websockets
from websockets.exceptions import ConnectionClosed

src_path = Path(__file__).parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from cdpharvest.substack.scripts import REVEAL_SCRIPT, STATS_SCRIPT, SUBSCRIBERS_SCRIPT  # noqa: E402


# ---------------------------------------------------------------------------
# Fake CDP endpoint
# ---------------------------------------------------------------------------


def echo_responder(message: dict) -> dict:
    """Answer every command with a result echoing its method and params."""
    return {"id": message["id"], "result": {"method": message["method"], "params": message.get("params", {})}}


def silent_responder(message: dict) -> None:
    return None


class FakeCDPServer:
    """Local WebSocket server standing in for a browser tab's CDP endpoint."""

    def __init__(self, responder: Callable[[dict], Any] = echo_responder):
        self.responder = responder
        self.received: list[dict] = []
        self.connections: list[Any] = []
        self.port: int | None = None
        self._server: Any = None

    @property
    def url(self) -> str:
        return f"ws://127.0.0.1:{self.port}/devtools/page/TEST"

    async def start(self) -> None:
        self._server = await websockets.serve(self._handle, "127.0.0.1", 0)
        self.port = next(iter(self._server.sockets)).getsockname()[1]

    async def stop(self) -> None:
        await self.drop_connections()
        self._server.close()
        await self._server.wait_closed()

    async def _handle(self, websocket) -> None:
        self.connections.append(websocket)
        try:
            async for raw in websocket:
                message = json.loads(raw)
                self.received.append(message)
                reply = self.responder(message)
                if reply is not None:
                    await websocket.send(json.dumps(reply))
        except ConnectionClosed:
            pass

    async def send(self, payload: Any) -> None:
        """Push a frame to every connected client."""
        raw = payload if isinstance(payload, str) else json.dumps(payload)
        for websocket in list(self.connections):
            await websocket.send(raw)

    async def drop_connections(self) -> None:
        for websocket in list(self.connections):
            await websocket.close()

    async def wait_for_messages(self, count: int, timeout: float = 2.0) -> list[dict]:
        """Wait until at least ``count`` commands have arrived."""
        async def _poll():
            while len(self.received) < count:
                await asyncio.sleep(0.005)

        await asyncio.wait_for(_poll(), timeout)
        return self.received


@pytest_asyncio.fixture
async def cdp_server():
    server = FakeCDPServer()
    await server.start()
    yield server
    await server.stop()


# ---------------------------------------------------------------------------
# Scripted page for collector tests
# ---------------------------------------------------------------------------


def make_entry(key: str, **attributes: str) -> dict:
    """A read-script entry in the ``{identityKey, attributes}`` shape."""
    return {"identityKey": key, "attributes": attributes or {"name": key}}


class ScriptedPage:
    """Replays one read batch per sample; the last batch repeats forever.

    ``fail_on`` maps ("navigate" | "read" | "reveal", call number) to an
    exception raised on that call.
    """

    READ = "read()"
    REVEAL = "reveal()"

    def __init__(self, batches: list[list[dict]], fail_on: dict[tuple[str, int], Exception] | None = None):
        self.batches = batches
        self.fail_on = fail_on or {}
        self.calls: list[tuple[str, Any]] = []
        self.reads = 0
        self.reveals = 0
        self.navigations: list[str] = []
        self.sleeps: list[float] = []

    async def navigate(self, url: str) -> dict:
        self.calls.append(("navigate", url))
        self._maybe_fail("navigate", len(self.navigations) + 1)
        self.navigations.append(url)
        return {"frameId": "F1"}

    async def evaluate(self, expression: str) -> Any:
        if expression == self.READ:
            self.reads += 1
            self.calls.append(("read", self.reads))
            self._maybe_fail("read", self.reads)
            batch = self.batches[min(self.reads, len(self.batches)) - 1]
            return {"records": list(batch)}
        if expression == self.REVEAL:
            self.reveals += 1
            self.calls.append(("reveal", self.reveals))
            self._maybe_fail("reveal", self.reveals)
            return {"ok": True}
        raise AssertionError(f"unexpected expression {expression!r}")

    async def sleep(self, seconds: float) -> None:
        self.calls.append(("sleep", seconds))
        self.sleeps.append(seconds)

    def _maybe_fail(self, kind: str, number: int) -> None:
        error = self.fail_on.get((kind, number))
        if error is not None:
            raise error


# ---------------------------------------------------------------------------
# Simulated Substack dashboard over the wire
# ---------------------------------------------------------------------------


class SubstackPageSimulator:
    """Answers CDP commands the way a Substack dashboard tab would.

    Each reveal renders the next ``page_size`` rows on top of what is already
    shown; the rendered window keeps earlier rows, so reads repeat them.
    """

    def __init__(self, rows: list[dict], page_size: int = 3, stats: dict | None = None):
        self.rows = rows
        self.page_size = page_size
        self.rendered = 0
        self.stats = stats or {}
        self.navigated: list[str] = []

    def __call__(self, message: dict) -> dict:
        method = message["method"]
        params = message.get("params", {})
        if method == "Page.navigate":
            self.navigated.append(params["url"])
            if params["url"].endswith("/publish/subscribers"):
                self.rendered = min(self.page_size, len(self.rows))
            return {"id": message["id"], "result": {"frameId": "F1", "loaderId": "L1"}}
        if method == "Runtime.evaluate":
            expression = params["expression"]
            if expression == SUBSCRIBERS_SCRIPT:
                value = {"records": [make_entry(row["email"], **row) for row in self.rows[: self.rendered]]}
            elif expression == REVEAL_SCRIPT:
                self.rendered = min(self.rendered + self.page_size, len(self.rows))
                value = {"ok": True}
            elif expression == STATS_SCRIPT:
                value = self.stats
            else:
                value = None
            return {"id": message["id"], "result": {"result": {"type": "object", "value": value}}}
        return {"id": message["id"], "result": {}}


def make_rows(count: int) -> list[dict]:
    tiers = ["free", "free", "paid", "founding"]
    return [
        {
            "email": f"reader{i}@example.com",
            "tier": tiers[i % len(tiers)],
            "subscribe_date": f"{(i % 28) + 1} Jan 2024",
            "amount_spent": "$0.00" if tiers[i % len(tiers)] == "free" else "$50.00",
        }
        for i in range(count)
    ]
