import asyncio
import logging
from dataclasses import dataclass
from typing import AsyncIterator, Callable, Generic, Self, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
U = TypeVar("U")

type OnValue[T] = Callable[[T], None]
type OnError = Callable[[Exception], None]
type OnComplete = Callable[[], None]


@dataclass(eq=False)
class _Subscriber(Generic[T]):
    on_value: OnValue[T]
    on_error: OnError | None = None
    on_complete: OnComplete | None = None


class Subscription:
    """Handle returned by `Stream.subscribe`, cancel it to detach."""

    def __init__(self, cancel: Callable[[], None]):
        self._cancel: Callable[[], None] | None = cancel

    @property
    def cancelled(self) -> bool:
        return self._cancel is None

    def cancel(self) -> None:
        if self._cancel:
            cancel, self._cancel = self._cancel, None
            cancel()

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.cancel()


class Stream(Generic[T]):
    """Multicast a sequence of values to independent subscribers.

    A stream is started when its first subscriber attaches and stopped when the last one leaves.
    Errors are not terminal: they are relayed to subscribers and the stream keeps running.
    When `replay` is set, late subscribers immediately receive the latest value.
    """

    def __init__(self, name: str, *, replay: bool = False):
        self.name = name
        self._replay = replay
        self._subscribers: list[_Subscriber[T]] = []
        self._latest: tuple[T] | None = None
        self._completed = False

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"

    @property
    def active(self) -> bool:
        return bool(self._subscribers)

    def subscribe(
        self,
        on_value: OnValue[T],
        on_error: OnError | None = None,
        on_complete: OnComplete | None = None,
    ) -> Subscription:
        subscriber = _Subscriber(on_value, on_error, on_complete)
        if self._completed:
            if on_complete:
                on_complete()
            return Subscription(lambda: None)
        self._subscribers.append(subscriber)
        if len(self._subscribers) == 1:
            logger.debug("starting %s", self.name)
            self._start()
        elif self._replay and self._latest is not None:
            on_value(self._latest[0])
        return Subscription(lambda: self._unsubscribe(subscriber))

    def close(self) -> None:
        """Drop every subscriber and stop."""
        if self._subscribers:
            self._subscribers.clear()
            self._shutdown()

    async def __aiter__(self) -> AsyncIterator[T]:
        # Callbacks are synchronous, bridge them through a queue.
        queue: asyncio.Queue[tuple[bool, T | Exception | None]] = asyncio.Queue()
        subscription = self.subscribe(
            lambda value: queue.put_nowait((True, value)),
            lambda exc: queue.put_nowait((False, exc)),
            lambda: queue.put_nowait((False, None)),
        )
        try:
            while True:
                is_value, item = await queue.get()
                if is_value:
                    yield item  # type: ignore[misc]
                elif item is None:
                    return
                else:
                    raise item  # type: ignore[misc]
        finally:
            subscription.cancel()

    def _unsubscribe(self, subscriber: _Subscriber[T]) -> None:
        if subscriber in self._subscribers:
            self._subscribers.remove(subscriber)
            if not self._subscribers:
                self._shutdown()

    def _shutdown(self) -> None:
        logger.debug("stopping %s", self.name)
        self._latest = None
        self._stop()

    def _start(self) -> None: ...

    def _stop(self) -> None: ...

    def _emit(self, value: T) -> None:
        self._latest = (value,)
        # Subscribers may detach while being notified.
        for subscriber in list(self._subscribers):
            subscriber.on_value(value)

    def _fail(self, exc: Exception) -> None:
        for subscriber in list(self._subscribers):
            if subscriber.on_error:
                subscriber.on_error(exc)
            else:
                logger.warning("unhandled error in %s: %r", self.name, exc)

    def _complete(self) -> None:
        logger.debug("%s completed", self.name)
        self._completed = True
        subscribers, self._subscribers = self._subscribers, []
        self._shutdown()
        for subscriber in subscribers:
            if subscriber.on_complete:
                subscriber.on_complete()


class Stage(Stream[U], Generic[T, U]):
    """Stream derived from a single upstream, subscribed only while active."""

    def __init__(self, upstream: Stream[T], name: str, *, replay: bool = False):
        super().__init__(name, replay=replay)
        self.upstream = upstream
        self._subscription: Subscription | None = None

    def _start(self) -> None:
        self._subscription = self.upstream.subscribe(
            self._on_value, self._on_error, self._on_complete
        )

    def _stop(self) -> None:
        if self._subscription:
            self._subscription.cancel()
            self._subscription = None

    def _on_value(self, value: T) -> None:
        raise NotImplementedError

    def _on_error(self, exc: Exception) -> None:
        self._fail(exc)

    def _on_complete(self) -> None:
        self._complete()
