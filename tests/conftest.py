from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator

import pytest

from pulsettoctl.core.errors import DeviceConnectionError, WriteError
from pulsettoctl.core.listener import SessionListener
from pulsettoctl.core.model import LinkSpec
from pulsettoctl.core.session import DeviceSession


class FakeLink:
    def __init__(self) -> None:
        self.writes: list[bytes] = []
        self.queue: asyncio.Queue[bytes | None] = asyncio.Queue()
        self.fail_writes = False
        self.disconnected = False

    async def write(self, payload: bytes) -> None:
        if self.fail_writes:
            raise WriteError("link lost")
        self.writes.append(payload)

    def subscribe(self) -> AsyncIterator[bytes]:
        return self._drain()

    async def _drain(self) -> AsyncIterator[bytes]:
        while True:
            chunk = await self.queue.get()
            if chunk is None:
                return
            yield chunk

    def push(self, line: str) -> None:
        self.queue.put_nowait(line.encode("latin-1"))

    async def disconnect(self) -> None:
        self.disconnected = True
        self.queue.put_nowait(None)


class FakeTransport:
    def __init__(self, link: FakeLink | None = None, error: Exception | None = None) -> None:
        self.link = link or FakeLink()
        self.error = error
        self.specs: list[LinkSpec] = []

    async def discover_and_connect(self, spec: LinkSpec) -> FakeLink:
        self.specs.append(spec)
        if self.error is not None:
            raise self.error
        return self.link


class FakeClock:
    """Monotonic clock plus sleep. Sleeps whose duration is in ``park`` never return."""

    def __init__(self, park: set[float] | None = None) -> None:
        self.now = 1000.0
        self.park = {3.0, 1.0} if park is None else park
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        if seconds in self.park:
            await asyncio.Event().wait()
        self.now += seconds
        await asyncio.sleep(0)


class RecordingListener(SessionListener):
    def __init__(self) -> None:
        self.events: list[tuple] = []

    def connection_state_changed(self, state):
        self.events.append(("connection", state))

    def device_status_changed(self, field, value):
        self.events.append(("status", field, value))

    def session_elapsed_changed(self, minutes, seconds):
        self.events.append(("elapsed", minutes, seconds))

    def session_started(self):
        self.events.append(("started",))

    def session_stopped(self):
        self.events.append(("stopped",))

    def error(self, kind, message):
        self.events.append(("error", kind, message))

    def of(self, name: str) -> list[tuple]:
        return [event for event in self.events if event[0] == name]


async def settle(rounds: int = 10) -> None:
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def link() -> FakeLink:
    return FakeLink()


@pytest.fixture
def transport(link: FakeLink) -> FakeTransport:
    return FakeTransport(link)


@pytest.fixture
def listener() -> RecordingListener:
    return RecordingListener()


@pytest.fixture
def session(transport: FakeTransport, listener: RecordingListener, clock: FakeClock) -> DeviceSession:
    return DeviceSession(transport, listener=listener, clock=clock, sleep=clock.sleep)


@pytest.fixture
def failing_transport() -> FakeTransport:
    return FakeTransport(error=DeviceConnectionError("No device advertising a name starting with 'Pulsetto'"))
