import logging
from typing import Any, Awaitable, Callable, Literal, Protocol

from mpd_signals.streams import Stream, Subscription

logger = logging.getLogger(__name__)

type ConnectionEvent = Literal["system", "error", "close"]

INITIAL = "initial"


class Connection(Protocol):
    """Live connection to the server, as consumed here."""

    def on(self, event: ConnectionEvent, listener: Callable[..., None]) -> Any: ...
    def remove_listener(
        self, event: ConnectionEvent, listener: Callable[..., None]
    ) -> Any: ...

    def status(self) -> Awaitable[Any]: ...
    def stats(self) -> Awaitable[Any]: ...
    def playlistid(self, songid: int) -> Awaitable[Any]: ...
    def listplaylists(self) -> Awaitable[Any]: ...
    def readmessages(self) -> Awaitable[Any]: ...
    def listpartitions(self) -> Awaitable[Any]: ...
    def channels(self) -> Awaitable[Any]: ...
    def listneighbors(self) -> Awaitable[Any]: ...
    def listmounts(self) -> Awaitable[Any]: ...
    def outputs(self) -> Awaitable[Any]: ...


class EventNormalizer(Stream[str]):
    """Expose connection notifications as a single sequence of subsystem names.

    Every subscriber first receives `"initial"`, then the name of each changed subsystem.
    Errors are only logged, closing the connection completes the sequence.
    Listeners are attached to the connection only while someone is subscribed.
    """

    def __init__(self, connection: Connection):
        super().__init__("events")
        self._connection = connection
        self._listening = False

    def subscribe(self, on_value, on_error=None, on_complete=None) -> Subscription:
        subscription = super().subscribe(on_value, on_error, on_complete)
        if not subscription.cancelled and self.active:
            on_value(INITIAL)
        return subscription

    def _start(self) -> None:
        self._connection.on("system", self._on_system)
        self._connection.on("error", self._on_error)
        self._connection.on("close", self._on_close)
        self._listening = True

    def _stop(self) -> None:
        if self._listening:
            self._connection.remove_listener("system", self._on_system)
            self._connection.remove_listener("error", self._on_error)
            self._connection.remove_listener("close", self._on_close)
            self._listening = False

    def _on_system(self, subsystem: str) -> None:
        logger.debug("subsystem changed: %s", subsystem)
        self._emit(subsystem)

    def _on_error(self, exc: Exception) -> None:
        logger.warning("connection error: %r", exc)

    def _on_close(self) -> None:
        logger.debug("connection closed")
        self._complete()
