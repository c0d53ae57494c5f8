"""Shared test fixtures for promecieus."""

import asyncio
from unittest.mock import MagicMock

import pytest

from promecieus.protocol import OutboundCommand, StatusEvent


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """Keep config and log files out of the real home directory."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    return home


async def settle(rounds: int = 20) -> None:
    """Let pending tasks run without advancing any timers."""
    for _ in range(rounds):
        await asyncio.sleep(0)


async def wait_until(condition, timeout=2.0, interval=0.01):
    """Wait until condition() returns True, or timeout."""
    deadline = asyncio.get_event_loop().time() + timeout
    while not condition():
        if asyncio.get_event_loop().time() > deadline:
            raise TimeoutError(f"Condition not met within {timeout}s")
        await asyncio.sleep(interval)


class FakeClient:
    """In-memory stand-in for SocketClient.

    Inbound items are queued with push(); None means the server closed the
    connection, an exception instance is raised from read_message().
    """

    def __init__(self, url: str = "ws://test/ws/status", fail_connect: bool = False):
        self.url = url
        self.fail_connect = fail_connect
        self.sent: list[OutboundCommand] = []
        self.disconnects = 0
        self.fail_send = False
        self._open = False
        self._inbox: asyncio.Queue = asyncio.Queue()

    @property
    def connected(self) -> bool:
        return self._open

    async def connect(self) -> None:
        if self.fail_connect:
            raise ConnectionError("Connection refused")
        self._open = True

    async def disconnect(self) -> None:
        self.disconnects += 1
        if self._open:
            self._open = False
            self._inbox.put_nowait(None)

    async def read_message(self) -> StatusEvent:
        item = await self._inbox.get()
        if item is None:
            raise ConnectionError("Connection closed by server")
        if isinstance(item, Exception):
            raise item
        return item

    async def send_message(self, command: OutboundCommand) -> None:
        if not self._open or self.fail_send:
            raise ConnectionError("Not connected")
        self.sent.append(command)

    def push(self, item) -> None:
        self._inbox.put_nowait(item)

    def drop(self) -> None:
        """Simulate the server closing the connection."""
        self.push(None)


class FakeClientFactory:
    """Hands out FakeClients; the first ``failures`` of them refuse to connect."""

    def __init__(self, failures: int = 0):
        self.failures = failures
        self.clients: list[FakeClient] = []

    def __call__(self) -> FakeClient:
        client = FakeClient(fail_connect=len(self.clients) < self.failures)
        self.clients.append(client)
        return client

    @property
    def last(self) -> FakeClient:
        return self.clients[-1]


class ManualTimers:
    """Replacement for loop.call_later that records timers instead of running them."""

    def __init__(self, monkeypatch):
        self._monkeypatch = monkeypatch
        self.scheduled: list[tuple[float, object, MagicMock]] = []

    def install(self) -> "ManualTimers":
        """Patch call_later on the running loop. Call from inside the async test."""
        loop = asyncio.get_running_loop()
        self._monkeypatch.setattr(loop, "call_later", self.call_later)
        return self

    def call_later(self, delay, callback, *args, **kwargs):
        handle = MagicMock()
        self.scheduled.append((delay, lambda: callback(*args), handle))
        return handle

    @property
    def delays(self) -> list[float]:
        return [delay for delay, _, _ in self.scheduled]

    def fire_last(self) -> None:
        _, callback, handle = self.scheduled[-1]
        if not handle.cancel.called:
            callback()


@pytest.fixture
def client_factory() -> FakeClientFactory:
    return FakeClientFactory()


@pytest.fixture
def timers(monkeypatch) -> ManualTimers:
    """Manual retry timers.

    Tests must not await real sleeps once installed; use settle() instead.
    """
    return ManualTimers(monkeypatch)
