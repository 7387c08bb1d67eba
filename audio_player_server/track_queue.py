"""Queue projection: merging reported tracks into the ordered queue."""

from __future__ import annotations

import json
from typing import Any, Iterable, Sequence

from .tracks import Track


def merge(existing: Sequence[Track], incoming: Iterable[Track]) -> list[Track]:
    """Append tracks whose id is not already queued.

    Pure: neither input is modified. Order is preserved, and duplicates
    inside `incoming` itself are dropped too, so merging is idempotent.
    """
    merged = list(existing)
    seen = {track.id for track in merged}
    for track in incoming:
        if track.id in seen:
            continue
        seen.add(track.id)
        merged.append(track)
    return merged


def index_of(queue: Sequence[Track], track_id: str | None) -> int:
    """Position of `track_id` in the queue, or -1."""
    if track_id is None:
        return -1
    for i, track in enumerate(queue):
        if track.id == track_id:
            return i
    return -1


def find(queue: Sequence[Track], track_id: str | None) -> Track | None:
    i = index_of(queue, track_id)
    return queue[i] if i >= 0 else None


def result_field(obj: Any, name: str, default: Any = None) -> Any:
    """Read a field from a tool result given as a dict or an mcp.types model."""
    if isinstance(obj, dict):
        return obj.get(name, default)
    return getattr(obj, name, default)


def error_text(result: Any) -> str | None:
    """Joined text content of an `isError` tool result, else None."""
    if not result_field(result, "isError", False):
        return None
    texts = [result_field(block, "text") for block in result_field(result, "content") or []]
    return "\n".join(t for t in texts if t) or "Tool call failed"


def _track_from_metadata(data: dict[str, Any]) -> Track:
    return Track(
        id=str(data["id"]),
        file_path=data.get("filePath", ""),
        title=data.get("title", ""),
        artist=data.get("artist"),
        source=data.get("src") or None,
    )


def parse_tracks(result: Any) -> list[Track]:
    """Extract tracks from a `play_audio` tool result.

    Prefers `structuredContent.tracks`; falls back to a JSON array in the
    text content for servers that only send text. Anything else yields [].
    """
    structured = result_field(result, "structuredContent")
    if isinstance(structured, dict) and isinstance(structured.get("tracks"), list):
        return [_track_from_metadata(t) for t in structured["tracks"] if "id" in t]

    for block in result_field(result, "content") or []:
        if result_field(block, "type") != "text":
            continue
        try:
            data = json.loads(result_field(block, "text") or "")
        except ValueError:
            # Not JSON - likely a summary text
            continue
        if isinstance(data, list):
            return [_track_from_metadata(t) for t in data if isinstance(t, dict) and "id" in t]
        if isinstance(data, dict) and isinstance(data.get("tracks"), list):
            return [_track_from_metadata(t) for t in data["tracks"] if "id" in t]
        break
    return []
