"""Lazy audio loading: reading files into data URLs and resolving track sources."""

from __future__ import annotations

import asyncio
import base64
import json
import os
from dataclasses import dataclass
from typing import Any, Awaitable, Callable
from urllib.parse import quote

from .errors import AdvisoryWarning, LoadError
from .logging import get_logger, log_audio_read
from .media import data_url_mime_type
from .state import PlaybackState
from .track_queue import error_text, result_field
from .tracks import Track

logger = get_logger("loader")

SIZE_WARNING_THRESHOLD = 5 * 1024 * 1024  # 5MB

# async (file_path) -> playable source
SourceFetcher = Callable[[str], Awaitable[str]]

# async (tool name, arguments) -> tool result, matching mcp.ClientSession.call_tool
ToolCaller = Callable[[str, dict[str, Any]], Awaitable[Any]]


@dataclass(frozen=True)
class SizeWarningPolicy:
    """Whether and when to attach an advisory for large payloads."""

    enabled: bool = True
    threshold_bytes: int = SIZE_WARNING_THRESHOLD

    def check(self, path: str, size_bytes: int) -> AdvisoryWarning | None:
        if not self.enabled or size_bytes <= self.threshold_bytes:
            return None
        size_mb = size_bytes / 1024 / 1024
        return AdvisoryWarning(
            f"Warning: {os.path.basename(path)} is {size_mb:.1f}MB - large files may load slowly"
        )


@dataclass
class AudioReadResult:
    data_url: str
    size_bytes: int
    warning: AdvisoryWarning | None = None


def encode_data_url(data: bytes, mime_type: str) -> str:
    payload = base64.b64encode(data).decode("ascii")
    return f"data:{mime_type};base64,{payload}"


def read_audio_as_data_url(
    file_path: str,
    policy: SizeWarningPolicy | None = None,
) -> AudioReadResult:
    """Read an audio file fully and embed it in a base64 data URL.

    Raises:
        LoadError: If the file is missing or unreadable
    """
    policy = policy or SizeWarningPolicy()
    absolute_path = os.path.abspath(file_path)
    try:
        with open(absolute_path, "rb") as f:
            data = f.read()
    except OSError as e:
        log_audio_read(logger, absolute_path, None, success=False)
        raise LoadError(absolute_path, e.strerror or str(e)) from e

    log_audio_read(logger, absolute_path, len(data), success=True)
    return AudioReadResult(
        data_url=encode_data_url(data, data_url_mime_type(absolute_path)),
        size_bytes=len(data),
        warning=policy.check(absolute_path, len(data)),
    )


# ------------------------------------------------------
# Source fetchers
# ------------------------------------------------------


def local_data_url_fetcher(policy: SizeWarningPolicy | None = None) -> SourceFetcher:
    """Fetch sources by reading the file directly (in a worker thread)."""

    async def fetch(file_path: str) -> str:
        result = await asyncio.to_thread(read_audio_as_data_url, file_path, policy)
        return result.data_url

    return fetch


def tool_fetcher(call_tool: ToolCaller, tool_name: str = "load_audio") -> SourceFetcher:
    """Fetch sources through the server's `load_audio` tool."""

    async def fetch(file_path: str) -> str:
        try:
            result = await call_tool(tool_name, {"filePath": file_path})
        except LoadError:
            raise
        except Exception as e:
            raise LoadError(file_path, str(e)) from e

        data_url = _data_url_from_result(result)
        if data_url is None:
            raise LoadError(file_path, error_text(result) or "no dataUrl in result")
        return data_url

    return fetch


def stream_url_fetcher(base_url: str) -> SourceFetcher:
    """Point sources at the /audio range endpoint instead of inlining bytes."""
    base = base_url.rstrip("/")

    async def fetch(file_path: str) -> str:
        return f"{base}/audio?path={quote(os.path.abspath(file_path), safe='')}"

    return fetch


def _data_url_from_result(result: Any) -> str | None:
    if result_field(result, "isError", False):
        return None
    structured = result_field(result, "structuredContent") or {}
    data_url = structured.get("dataUrl")
    if data_url:
        return data_url

    # Older servers only return JSON text
    for block in result_field(result, "content") or []:
        text = result_field(block, "text")
        if not text:
            continue
        try:
            parsed = json.loads(text)
        except ValueError:
            continue
        if isinstance(parsed, dict) and parsed.get("dataUrl"):
            return parsed["dataUrl"]
    return None


# ------------------------------------------------------
# Lazy loader
# ------------------------------------------------------


class LazyLoader:
    """Resolves a track's playable source on first use.

    Only one load runs at a time; the in-flight track id lives on the shared
    PlaybackState (`loading_id`) so the UI can disable interaction while it
    is set. `loading_id` is cleared on every exit path.
    """

    def __init__(
        self,
        fetch: SourceFetcher,
        state: PlaybackState,
        on_start: Callable[[Track], None] | None = None,
    ):
        self.fetch = fetch
        self.state = state
        self.on_start = on_start

    @property
    def busy(self) -> bool:
        return self.state.loading_id is not None

    async def resolve(self, track: Track) -> str:
        """Return the track's source, loading it if needed.

        Raises:
            LoadError: If the audio cannot be fetched, or another load is in flight
        """
        if track.source is not None:
            return track.source

        if self.busy:
            raise LoadError(
                track.file_path,
                f"track {self.state.loading_id} is still loading",
            )

        self.state.loading_id = track.id
        logger.debug(f"Loading track {track.id}", extra={"track_id": track.id})
        try:
            if self.on_start is not None:
                self.on_start(track)
            source = await self.fetch(track.file_path)
            track.attach_source(source)
        except LoadError:
            logger.warning(f"Load failed for track {track.id}", extra={"track_id": track.id})
            raise
        except (OSError, ValueError) as e:
            logger.warning(f"Load failed for track {track.id}: {e}", extra={"track_id": track.id})
            raise LoadError(track.file_path, str(e)) from e
        finally:
            self.state.loading_id = None

        logger.info(f"Loaded track {track.id}", extra={"track_id": track.id})
        return track.source
