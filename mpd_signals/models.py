from dataclasses import dataclass, field
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict

State = Literal["play", "pause", "stop"]


class Status(BaseModel):
    """Player status snapshot, fields other than the ones used for derivation are kept as extras."""

    model_config = ConfigDict(frozen=True, extra="allow")

    state: State
    songid: int | None = None


class Track(BaseModel):
    """Queue entry, `file` is stable when the same song is requeued with a new `id`."""

    model_config = ConfigDict(frozen=True, extra="allow")

    file: str
    id: int | None = None

    @classmethod
    def from_lookup(cls, data: Any) -> "Track | None":
        # Lookups may return the record itself or a list holding it.
        if isinstance(data, (list, tuple)):
            data = data[0] if data else None
        if data is None:
            return None
        return cls.model_validate(data)


@dataclass(frozen=True)
class SongTimestamp:
    state: State
    songid: int | None
    ts: float = field(compare=False)

    @classmethod
    def stamp(cls, status: Status, ts: float) -> "SongTimestamp":
        return cls(status.state, status.songid, ts)


@dataclass(frozen=True, kw_only=True)
class Observation:
    ts: float
    song: Track | None = None
    state: State | None = None
    songid: int | None = None


@dataclass(frozen=True)
class PlaybackResult:
    song: Track
    # Elapsed play time, in the unit of the clock.
    playback: float
    # When the window closed.
    ts: float
