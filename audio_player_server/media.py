"""Audio MIME type lookup by file extension."""

from __future__ import annotations

import os

AUDIO_MIME_TYPES: dict[str, str] = {
    ".mp3": "audio/mpeg",
    ".wav": "audio/wav",
    ".ogg": "audio/ogg",
    ".m4a": "audio/mp4",
    ".aac": "audio/aac",
}

# Data URLs must carry an audio type for the browser to decode them
DEFAULT_DATA_URL_MIME = "audio/mpeg"
DEFAULT_CONTENT_TYPE = "application/octet-stream"


def _extension(path: str) -> str:
    return os.path.splitext(path)[1].lower()


def data_url_mime_type(path: str) -> str:
    """MIME type for a data URL built from `path` (defaults to audio/mpeg)."""
    return AUDIO_MIME_TYPES.get(_extension(path), DEFAULT_DATA_URL_MIME)


def content_type(path: str) -> str:
    """HTTP Content-Type for serving `path` (defaults to application/octet-stream)."""
    return AUDIO_MIME_TYPES.get(_extension(path), DEFAULT_CONTENT_TYPE)
