"""Track model and registration (path validation + id assignment)."""

from __future__ import annotations

import os
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable

from pydantic import BaseModel, Field

from .errors import ValidationError
from .logging import get_logger

logger = get_logger("tracks")


class TrackInput(BaseModel):
    """A track as submitted by the caller."""

    filePath: str = Field(description="Absolute path to the audio file")
    title: str = Field(description="Display title for the track")
    artist: str | None = Field(default=None, description="Optional artist name")


@dataclass
class Track:
    """One queueable audio item.

    `source` is None until the audio has been resolved (a data URL or a
    streaming URL). Once set it is never cleared or replaced.
    """

    id: str
    file_path: str
    title: str
    artist: str | None = None
    source: str | None = field(default=None, repr=False)

    @property
    def is_loaded(self) -> bool:
        return self.source is not None

    def attach_source(self, source: str) -> str:
        """Set the resolved source, keeping the first one if already set."""
        if not source:
            raise ValueError(f"Empty source for track {self.id}")
        if self.source is None:
            self.source = source
        return self.source

    def to_metadata(self) -> dict[str, Any]:
        """Wire shape sent back to the host and UI."""
        data: dict[str, Any] = {
            "id": self.id,
            "filePath": self.file_path,
            "title": self.title,
        }
        if self.artist is not None:
            data["artist"] = self.artist
        return data


class BatchIdGenerator:
    """Assigns `<batch>-<index>` track ids.

    `<batch>` is a millisecond timestamp, bumped so it strictly increases
    within the process even when two batches land in the same millisecond.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._last = 0
        self._lock = threading.Lock()

    def next_batch(self) -> int:
        with self._lock:
            batch = max(int(self._clock() * 1000), self._last + 1)
            self._last = batch
            return batch

    def ids(self, count: int) -> list[str]:
        batch = self.next_batch()
        return [f"{batch}-{i}" for i in range(count)]


def is_readable_file(path: str) -> bool:
    return os.path.isfile(path) and os.access(path, os.R_OK)


class TrackRegistry:
    """Validates submitted tracks and gives them stable ids.

    Registration is all-or-nothing per batch: the first missing or
    unreadable file aborts the batch with a ValidationError naming the
    resolved absolute path.
    """

    def __init__(self, id_generator: BatchIdGenerator | None = None):
        self.id_generator = id_generator or BatchIdGenerator()

    def register(self, inputs: Iterable[TrackInput | dict]) -> list[Track]:
        entries = [
            item if isinstance(item, TrackInput) else TrackInput.model_validate(item)
            for item in inputs
        ]

        resolved: list[str] = []
        for entry in entries:
            absolute_path = os.path.abspath(os.path.expanduser(entry.filePath))
            if not is_readable_file(absolute_path):
                logger.info(f"Rejecting batch of {len(entries)}: missing {absolute_path}")
                raise ValidationError(absolute_path)
            resolved.append(absolute_path)

        ids = self.id_generator.ids(len(entries))
        tracks = [
            Track(id=track_id, file_path=path, title=entry.title, artist=entry.artist)
            for track_id, path, entry in zip(ids, resolved, entries)
        ]
        logger.debug(f"Registered {len(tracks)} tracks: {[t.id for t in tracks]}")
        return tracks
