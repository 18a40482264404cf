from mpd_signals.streams.filters import Distinct, by_identity, by_key
from mpd_signals.streams.operators import Debounce, Fetch, Filter, Map
from mpd_signals.streams.stream import Stage, Stream, Subscription

__all__ = [
    "Debounce",
    "Distinct",
    "Fetch",
    "Filter",
    "Map",
    "Stage",
    "Stream",
    "Subscription",
    "by_identity",
    "by_key",
]
