"""Error types raised by the audio player core."""

from __future__ import annotations

from dataclasses import dataclass


class AudioPlayerError(Exception):
    """Base class for audio player errors."""

    pass


class ValidationError(AudioPlayerError):
    """Raised when a track's file is missing or unreadable at registration."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"File not found: {path}")


class LoadError(AudioPlayerError):
    """Raised when a track's audio cannot be read at playback time."""

    def __init__(self, path: str, reason: str | None = None):
        self.path = path
        self.reason = reason
        message = f"Failed to load audio: {path}"
        if reason:
            message += f" ({reason})"
        super().__init__(message)


class RangeRequestError(AudioPlayerError):
    """Raised for bad /audio requests. Carries the HTTP status to answer with."""

    def __init__(self, status_code: int, detail: str):
        self.status_code = status_code
        self.detail = detail
        super().__init__(detail)


class ConfigError(AudioPlayerError):
    """Raised when required configuration is missing or invalid."""

    pass


@dataclass(frozen=True)
class AdvisoryWarning:
    """Non-fatal note attached to a successful result (e.g. oversized file)."""

    message: str

    def __str__(self) -> str:
        return self.message
