import asyncio
import logging
from contextlib import AsyncExitStack
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Self

from concurrent_tasks import TaskPool

from mpd_signals.config import SignalsConfig
from mpd_signals.events import INITIAL, Connection, EventNormalizer
from mpd_signals.models import PlaybackResult, State, Status, Track
from mpd_signals.playback import PlaybackAccumulator
from mpd_signals.streams import (
    Debounce,
    Distinct,
    Fetch,
    Filter,
    Map,
    Stream,
    by_identity,
    by_key,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SignalDefinition:
    # Subsystems triggering a refresh.
    triggers: frozenset[str]
    # Request resolving the emitted value, the trigger itself is emitted when missing.
    fetch: Callable[[Connection], Awaitable[Any]] | None = None
    debounce: bool = False
    # Whether late subscribers get the latest value.
    replay: bool = True


async def _fetch_status(connection: Connection) -> Status:
    return Status.model_validate(await connection.status())


SIGNALS: dict[str, SignalDefinition] = {
    "status": SignalDefinition(
        frozenset({INITIAL, "player", "options", "mixer"}),
        _fetch_status,
        debounce=True,
    ),
    "playlists": SignalDefinition(
        frozenset({INITIAL, "stored_playlist"}),
        lambda c: c.listplaylists(),
        debounce=True,
    ),
    "message": SignalDefinition(
        frozenset({"message"}),
        lambda c: c.readmessages(),
        replay=False,
    ),
    "database_update": SignalDefinition(frozenset({INITIAL, "database"})),
    "stats": SignalDefinition(frozenset({INITIAL, "database"}), lambda c: c.stats()),
    "partition": SignalDefinition(
        frozenset({INITIAL, "partition"}), lambda c: c.listpartitions()
    ),
    "sticker": SignalDefinition(frozenset({INITIAL, "sticker"})),
    "subscription": SignalDefinition(
        frozenset({INITIAL, "subscription"}), lambda c: c.channels()
    ),
    "neighbor": SignalDefinition(
        frozenset({INITIAL, "neighbor"}), lambda c: c.listneighbors()
    ),
    "mount": SignalDefinition(frozenset({INITIAL, "mount"}), lambda c: c.listmounts()),
    "output": SignalDefinition(frozenset({INITIAL, "output"}), lambda c: c.outputs()),
}


class MPDSignals(AsyncExitStack):
    """Derive de-duplicated signals from the notifications of a connection.

    Each signal is a `Stream` refreshed from the server when one of its subsystems changes:
    - status, playlists, message, database_update, stats, partition, sticker,
      subscription, neighbor, mount, output follow the notifications directly,
    - state, current_song and current_song_unique are derived from status,
    - playback reports how long each song has been played.

    Signals only run while subscribed. Leaving the context closes all of them.
    """

    status: Stream[Status]
    state: Stream[State]
    current_song: Stream[Track | None]
    current_song_unique: Stream[Track | None]
    playlists: Stream[Any]
    message: Stream[Any]
    database_update: Stream[str]
    stats: Stream[Any]
    partition: Stream[Any]
    sticker: Stream[str]
    subscription: Stream[Any]
    neighbor: Stream[Any]
    mount: Stream[Any]
    output: Stream[Any]
    playback: Stream[PlaybackResult]

    def __init__(
        self,
        connection: Connection,
        config: SignalsConfig | None = None,
        clock: Callable[[], float] | None = None,
    ):
        super().__init__()
        self._connection = connection
        self._config = config or SignalsConfig()
        self._pool = TaskPool(size=self._config.fetch_concurrency)
        self.events = EventNormalizer(connection)
        self._signals: dict[str, Stream] = {}
        for name, definition in SIGNALS.items():
            self._signals[name] = self._route(name, definition)

        status: Stream[Status] = self._signals["status"]
        self._songids = Distinct(status, "songid", by_key(lambda s: s.songid))
        self._signals["state"] = Distinct(
            Map(status, lambda s: s.state, "status-state"),
            "state",
            replay=True,
        )
        self._signals["current_song"] = current_song = Fetch(
            self._songids,
            self._lookup_song,
            self._pool,
            "current_song",
            replay=True,
            timeout=self._config.request_timeout,
        )
        self._signals["current_song_unique"] = Distinct(
            current_song,
            "current_song_unique",
            by_identity("file"),
            replay=True,
        )
        self._signals["playback"] = PlaybackAccumulator(status, current_song, clock)
        for name, stream in self._signals.items():
            setattr(self, name, stream)

    def _route(self, name: str, definition: SignalDefinition) -> Stream:
        triggers = definition.triggers
        stream: Stream = Filter(
            self.events,
            lambda event: event in triggers,
            f"{name}-triggers",
            replay=definition.replay,
        )
        if definition.debounce:
            stream = Debounce(
                stream,
                self._config.debounce,
                f"{name}-debounced",
                replay=definition.replay,
            )
        if fetch := definition.fetch:
            stream = Fetch(
                stream,
                lambda _: fetch(self._connection),
                self._pool,
                f"{name}-fetch",
                replay=definition.replay,
                timeout=self._config.request_timeout,
            )
        # The last stage is the signal itself.
        stream.name = name
        return stream

    async def _lookup_song(self, status: Status) -> Track | None:
        if status.songid is None:
            return None
        try:
            return Track.from_lookup(await self._connection.playlistid(status.songid))
        except (Exception, asyncio.CancelledError):
            # Timed out or failed, look the same song up again on the next status.
            self._songids.reset()
            raise

    def __getitem__(self, name: str) -> Stream:
        return self._signals[name]

    async def __aenter__(self) -> Self:
        await self.enter_async_context(self._pool)
        self.callback(self.close)
        logger.debug("signals ready")
        return self

    def close(self) -> None:
        """Close every signal, which releases timers and connection listeners."""
        for stream in self._signals.values():
            stream.close()
        self.events.close()


def connect(
    connection: Connection, config: SignalsConfig | None = None
) -> MPDSignals:
    """Derive signals from a connection, to be used as an async context manager."""
    return MPDSignals(connection, config)
