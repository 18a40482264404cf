from collections import defaultdict

import pytest
from concurrent_tasks import TaskPool

from mpd_signals.config import SignalsConfig
from mpd_signals.streams import Stream


class Source(Stream):
    """Stream fed by hand, recording how many times it was started."""

    def __init__(self, name: str = "source", *, replay: bool = False):
        super().__init__(name, replay=replay)
        self.starts = 0
        self.stops = 0

    def _start(self) -> None:
        self.starts += 1

    def _stop(self) -> None:
        self.stops += 1

    def push(self, *values) -> None:
        for value in values:
            self._emit(value)

    def error(self, exc: Exception) -> None:
        self._fail(exc)

    def complete(self) -> None:
        self._complete()


class FakeConnection:
    def __init__(self, mocker):
        self.listeners: dict[str, list] = defaultdict(list)
        self.status = mocker.AsyncMock(return_value={"state": "stop"})
        self.stats = mocker.AsyncMock(return_value={"songs": "12"})
        self.playlistid = mocker.AsyncMock(
            side_effect=lambda songid: [{"file": f"song{songid}.flac", "id": songid}]
        )
        self.listplaylists = mocker.AsyncMock(return_value=[{"playlist": "favs"}])
        self.readmessages = mocker.AsyncMock(
            return_value=[{"channel": "ratings", "message": "5"}]
        )
        self.listpartitions = mocker.AsyncMock(return_value=[{"partition": "default"}])
        self.channels = mocker.AsyncMock(return_value=[{"channel": "ratings"}])
        self.listneighbors = mocker.AsyncMock(return_value=[])
        self.listmounts = mocker.AsyncMock(return_value=[{"mount": ""}])
        self.outputs = mocker.AsyncMock(return_value=[{"outputid": "0"}])

    def on(self, event, listener):
        self.listeners[event].append(listener)

    def remove_listener(self, event, listener):
        self.listeners[event].remove(listener)

    def emit(self, event, *args):
        for listener in list(self.listeners[event]):
            listener(*args)

    @property
    def listening(self) -> bool:
        return any(self.listeners.values())


class Clock:
    def __init__(self, now: float = 0):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def make_source():
    return Source


@pytest.fixture
def source():
    return Source()


@pytest.fixture
def connection(mocker):
    return FakeConnection(mocker)


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def config():
    return SignalsConfig(debounce=0.01, request_timeout=0.1)


@pytest.fixture
async def pool():
    async with TaskPool(size=4) as p:
        yield p
