import operator
from typing import Any, Callable, TypeVar

from mpd_signals.streams.stream import Stage, Stream

T = TypeVar("T")

type Equality[T] = Callable[[T, T], bool]


def by_key(key: Callable[[T], Any]) -> Equality[T]:
    """Compare values on `key`."""

    def _eq(a: T, b: T) -> bool:
        return key(a) == key(b)

    return _eq


def by_identity(field: str) -> Equality[Any]:
    """Compare values on an identity field, or entirely when either side is missing."""

    def _eq(a: Any, b: Any) -> bool:
        if a is not None and b is not None:
            return getattr(a, field) == getattr(b, field)
        return a == b

    return _eq


class Distinct(Stage[T, T]):
    """Emit a value only when it differs from the previously emitted one."""

    def __init__(
        self,
        upstream: Stream[T],
        name: str,
        eq: Equality[T] = operator.eq,
        *,
        replay: bool = False,
    ):
        super().__init__(upstream, name, replay=replay)
        self._eq = eq
        self._last: tuple[T] | None = None

    def _on_value(self, value: T) -> None:
        if self._last is not None and self._eq(self._last[0], value):
            return
        self._last = (value,)
        self._emit(value)

    def reset(self) -> None:
        """Forget the last value, the next one is emitted whatever it is."""
        self._last = None

    def _stop(self) -> None:
        super()._stop()
        self.reset()
