from mpd_signals.config import SignalsConfig, setup_logging
from mpd_signals.events import Connection
from mpd_signals.models import PlaybackResult, Status, Track
from mpd_signals.router import MPDSignals, connect

__all__ = [
    "Connection",
    "MPDSignals",
    "PlaybackResult",
    "SignalsConfig",
    "Status",
    "Track",
    "connect",
    "setup_logging",
]
