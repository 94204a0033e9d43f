"""Shared fixtures for journal client tests.

Provides a virtual clock, an in-process fake socket, and a client factory
wired to an httpx.MockTransport.
"""

import asyncio
from typing import Callable, List, Optional

import httpx
import pytest

from journal_client.client import JournalClient
from journal_client.clock import Clock
from journal_client.config import ClientConfig
from journal_client.storage import InMemoryStore

START_TIME = 1_700_000_000.0


class FakeClock(Clock):
    """Virtual time; sleep records the delay, advances time and yields once."""

    def __init__(self, start: float = START_TIME):
        self.now = start
        self.sleeps: List[float] = []

    def monotonic(self) -> float:
        return self.now

    def time(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds
        await asyncio.sleep(0)

    def advance(self, seconds: float) -> None:
        self.now += seconds


_CLOSE = object()


class FakeSocket:
    """Socket double: frames fed by the test are yielded by async iteration."""

    def __init__(self, greeting: Optional[str] = None):
        self.sent: List[str] = []
        self.closed = False
        self._incoming: asyncio.Queue = asyncio.Queue()
        if greeting is not None:
            self.feed(greeting)

    def feed(self, frame) -> None:
        self._incoming.put_nowait(frame)

    def drop(self) -> None:
        """Simulate the server closing the connection."""
        self._incoming.put_nowait(_CLOSE)

    async def send(self, frame: str) -> None:
        if self.closed:
            raise ConnectionError("socket closed")
        self.sent.append(frame)

    async def close(self) -> None:
        self.closed = True
        self._incoming.put_nowait(_CLOSE)

    def __aiter__(self):
        return self

    async def __anext__(self):
        frame = await self._incoming.get()
        if frame is _CLOSE:
            raise StopAsyncIteration
        return frame


class FakeSocketFactory:
    """Opens FakeSockets; the first `failures` calls raise ConnectionRefusedError."""

    def __init__(self, failures: int = 0, greeting: Optional[str] = None):
        self.failures = failures
        self.greeting = greeting
        self.calls = 0
        self.sockets: List[FakeSocket] = []

    async def __call__(self, url: str) -> FakeSocket:
        self.calls += 1
        if self.failures > 0:
            self.failures -= 1
            raise ConnectionRefusedError(f"Connection refused: {url}")
        socket = FakeSocket(greeting=self.greeting)
        self.sockets.append(socket)
        return socket

    @property
    def last(self) -> FakeSocket:
        return self.sockets[-1]


async def settle(rounds: int = 50) -> None:
    """Let background tasks run to quiescence."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def config():
    return ClientConfig(
        base_url="http://journal.test/api",
        socket_url="ws://journal.test:8080",
        request_timeout=5.0,
        max_retries=3,
        circuit_breaker_threshold=3,
    )


@pytest.fixture
def make_client(config, store, clock):
    """Build a JournalClient whose HTTP calls go to `handler`."""
    def _make(handler: Callable, **overrides) -> JournalClient:
        client_config = overrides.pop("config", config)
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        client = JournalClient(
            client_config,
            store=overrides.pop("store", store),
            clock=overrides.pop("clock", clock),
            http_client=http_client,
            socket_factory=overrides.pop("socket_factory", FakeSocketFactory()),
        )
        # Deterministic jitter
        client.executor.backoff.rng = lambda: 0.5
        return client

    return _make
