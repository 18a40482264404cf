import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from concurrent_tasks import BackgroundTask, TaskPool

from mpd_signals.streams.stream import Stage, Stream

logger = logging.getLogger(__name__)

T = TypeVar("T")
U = TypeVar("U")


class Filter(Stage[T, T]):
    def __init__(
        self,
        upstream: Stream[T],
        predicate: Callable[[T], bool],
        name: str,
        *,
        replay: bool = False,
    ):
        super().__init__(upstream, name, replay=replay)
        self._predicate = predicate

    def _on_value(self, value: T) -> None:
        if self._predicate(value):
            self._emit(value)


class Map(Stage[T, U]):
    def __init__(
        self,
        upstream: Stream[T],
        func: Callable[[T], U],
        name: str,
        *,
        replay: bool = False,
    ):
        super().__init__(upstream, name, replay=replay)
        self._func = func

    def _on_value(self, value: T) -> None:
        self._emit(self._func(value))


class Debounce(Stage[T, T]):
    """Emit the last value once no other value arrived for `delay` seconds.

    Every new value restarts the timer.
    """

    def __init__(
        self,
        upstream: Stream[T],
        delay: float,
        name: str,
        *,
        replay: bool = False,
    ):
        super().__init__(upstream, name, replay=replay)
        self._delay = delay
        self._pending: tuple[T] | None = None
        self._timer = BackgroundTask(self._settle)

    def _on_value(self, value: T) -> None:
        self._pending = (value,)
        self._timer.cancel()
        self._timer.create()

    async def _settle(self) -> None:
        await asyncio.sleep(self._delay)
        self._flush()

    def _flush(self) -> None:
        if self._pending is not None:
            (value,), self._pending = self._pending, None
            self._emit(value)

    def _on_complete(self) -> None:
        self._timer.cancel()
        self._flush()
        self._complete()

    def _stop(self) -> None:
        super()._stop()
        self._timer.cancel()
        self._pending = None


class Fetch(Stage[T, U]):
    """Resolve every upstream value into the result of an asynchronous request.

    Requests run concurrently in the task pool. Each one is numbered when issued and a result older
    than the last emitted one is dropped. A failed or timed out request is relayed as an error, the
    next value triggers a new request.
    """

    def __init__(
        self,
        upstream: Stream[T],
        fetch: Callable[[T], Awaitable[U]],
        pool: TaskPool,
        name: str,
        *,
        replay: bool = False,
        timeout: float | None = None,
    ):
        super().__init__(upstream, name, replay=replay)
        self._fetch = fetch
        self._timeout = timeout
        self._pool = pool
        # Bumped on every stop so that requests started before are ignored.
        self._generation = 0
        self._issued = 0
        self._applied = 0
        self._in_flight = 0
        self._upstream_completed = False

    def _on_value(self, value: T) -> None:
        self._issued += 1
        self._in_flight += 1
        logger.debug("%s: fetching #%d", self.name, self._issued)
        self._pool.create_task(self._run(value, self._issued, self._generation))

    async def _run(self, value: T, sequence: int, generation: int) -> None:
        try:
            result = await asyncio.wait_for(self._fetch(value), self._timeout)
        except Exception as e:
            if generation == self._generation:
                logger.debug("%s: fetch #%d failed: %r", self.name, sequence, e)
                self._fail(e)
        else:
            if generation != self._generation:
                logger.debug("%s: dropping fetch #%d, stopped", self.name, sequence)
            elif sequence < self._applied:
                logger.debug("%s: dropping stale fetch #%d", self.name, sequence)
            else:
                self._applied = sequence
                self._emit(result)
        finally:
            if generation == self._generation:
                self._in_flight -= 1
                self._maybe_complete()

    def _on_complete(self) -> None:
        self._upstream_completed = True
        self._maybe_complete()

    def _maybe_complete(self) -> None:
        if self._upstream_completed and not self._in_flight:
            self._complete()

    def _stop(self) -> None:
        super()._stop()
        self._generation += 1
        self._issued = self._applied = self._in_flight = 0
        self._upstream_completed = False
