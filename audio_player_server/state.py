"""Playback state shared by the session, loader and auto-advance."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any


class RepeatMode(str, Enum):
    NONE = "none"
    PLAYLIST = "playlist"
    TRACK = "track"

    def next(self) -> RepeatMode:
        """Toggle order: none -> playlist -> track -> none."""
        order = list(RepeatMode)
        return order[(order.index(self) + 1) % len(order)]


# Playback speeds offered by the speed control, in toggle order
PLAYBACK_RATES: tuple[float, ...] = (0.5, 0.75, 1.0, 1.25, 1.5, 2.0)


def next_rate(rate: float) -> float:
    """Speed after `rate`, wrapping to the slowest. Unknown rates reset to 1x."""
    if rate not in PLAYBACK_RATES:
        return 1.0
    return PLAYBACK_RATES[(PLAYBACK_RATES.index(rate) + 1) % len(PLAYBACK_RATES)]


class Phase(str, Enum):
    IDLE = "idle"        # no active track
    READY = "ready"      # active track, not playing
    LOADING = "loading"  # active track's source is being fetched
    PLAYING = "playing"


@dataclass
class PlaybackState:
    """Per-session playback state.

    `loading_id` names the single in-flight load. `is_playing` is only ever
    true while the active track has a source.
    """

    active_id: str | None = None
    is_playing: bool = False
    repeat_mode: RepeatMode = RepeatMode.NONE
    loading_id: str | None = None
    playback_rate: float = 1.0
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["repeat_mode"] = self.repeat_mode.value
        return data
