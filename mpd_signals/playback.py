"""Measure how long each song has been played.

Status changes are timestamped and collected into a window per playback episode. A window closes
when the current song changes or when playback stops, it is then folded into the elapsed play time.
"""

import logging
import time
from typing import Callable, Sequence

from mpd_signals.models import Observation, PlaybackResult, SongTimestamp, Status, Track
from mpd_signals.streams import Distinct, Filter, Map, Stream, Subscription

logger = logging.getLogger(__name__)


def calculate_playback(
    observations: Sequence[Observation], closed_at: float
) -> PlaybackResult | None:
    """Fold a window into the time spent playing.

    Time is only counted while a play reference is active: `play` sets it,
    any other state adds the elapsed time and clears it, `stop` leaves it untouched.
    """
    song: Track | None = None
    playback = 0.0
    reference: float | None = None
    for observation in [*observations, Observation(ts=closed_at)]:
        if song is None:
            song = observation.song
        if observation.state == "stop":
            continue
        if reference is not None:
            # The clock may step backwards.
            playback += max(observation.ts - reference, 0)
            reference = None
        if observation.state == "play":
            reference = observation.ts
    if song is None:
        return None
    return PlaybackResult(song, playback, closed_at)


class PlaybackAccumulator(Stream[PlaybackResult]):
    """Emit the play time of each song once it is superseded or playback stops."""

    def __init__(
        self,
        status: Stream[Status],
        current_song: Stream[Track | None],
        clock: Callable[[], float] | None = None,
    ):
        super().__init__("playback")
        self._clock = clock or time.time
        self._status_times: Stream[SongTimestamp] = Distinct(
            Map(
                status,
                lambda s: SongTimestamp.stamp(s, self._clock()),
                "status-time",
            ),
            "status-time-changed",
        )
        self._songs: Stream[Track | None] = Filter(
            current_song, lambda s: s is not None, "song"
        )
        self._subscriptions: list[Subscription] = []
        self._completed_upstreams = 0
        self._reset()

    def _reset(self) -> None:
        self._song: Track | None = None
        self._status: SongTimestamp | None = None
        self._window: list[Observation] = []

    def _start(self) -> None:
        self._completed_upstreams = 0
        self._subscriptions = [
            self._songs.subscribe(
                self._on_song, self._fail, self._on_upstream_complete
            ),
            self._status_times.subscribe(
                self._on_status, self._fail, self._on_upstream_complete
            ),
        ]

    def _stop(self) -> None:
        for subscription in self._subscriptions:
            subscription.cancel()
        self._subscriptions = []
        self._reset()

    def _on_song(self, song: Track) -> None:
        if self._song is not None:
            self._close(self._clock(), "song changed")
        self._song = song
        if self._status is not None:
            self._observe(song, self._status)

    def _on_status(self, status: SongTimestamp) -> None:
        logger.debug("status %s of %s at %s", status.state, status.songid, status.ts)
        if self._status is not None and status.state == "stop":
            self._close(status.ts, "playback stopped")
        self._status = status
        if self._song is not None:
            self._observe(self._song, status)

    def _observe(self, song: Track, status: SongTimestamp) -> None:
        # A status may still refer to the previous song.
        if song.id != status.songid:
            return
        self._window.append(
            Observation(
                song=song, state=status.state, songid=status.songid, ts=status.ts
            )
        )

    def _close(self, closed_at: float, reason: str) -> None:
        window, self._window = self._window, []
        logger.debug("closing window of %d observations: %s", len(window), reason)
        if result := calculate_playback(window, closed_at):
            logger.debug("played %s for %s", result.song.file, result.playback)
            self._emit(result)

    def _on_upstream_complete(self) -> None:
        self._completed_upstreams += 1
        if self._completed_upstreams == 2:
            self._complete()
