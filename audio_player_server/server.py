"""MCP server exposing the audio player tools, UI resource and /audio route."""

from __future__ import annotations

import asyncio
import json
import os
import time
from pathlib import Path
from typing import Annotated

from mcp import types
from mcp.server.fastmcp import FastMCP
from pydantic import Field
from starlette.applications import Starlette
from starlette.middleware.cors import CORSMiddleware

from .config import Settings
from .errors import LoadError, ValidationError
from .loader import SizeWarningPolicy, read_audio_as_data_url
from .logging import get_logger, log_tool_call, log_tool_result
from .range_server import audio_endpoint
from .tracks import TrackInput, TrackRegistry

RESOURCE_URI = "ui://audio-player/mcp-app.html"
RESOURCE_MIME_TYPE = "text/html;profile=mcp-app"

# Path to the static UI HTML file
STATIC_DIR = Path(__file__).parent / "static"
VIEW_HTML_PATH = STATIC_DIR / "mcp-app.html"

mcp = FastMCP("Audio Player", stateless_http=True)

# Module logger (configured in __main__)
logger = get_logger("server")

registry = TrackRegistry()
settings = Settings.from_env()


def configure(new_settings: Settings) -> None:
    """Replace the module settings (CLI flags override the environment)."""
    global settings
    settings = new_settings


def size_policy() -> SizeWarningPolicy:
    return SizeWarningPolicy(
        enabled=settings.size_warning,
        threshold_bytes=settings.size_warning_bytes,
    )


def _error_result(message: str) -> types.CallToolResult:
    return types.CallToolResult(
        isError=True,
        content=[types.TextContent(type="text", text=message)],
    )


# =============================================================================
# MCP Tools
# =============================================================================


@mcp.tool(
    meta={
        "ui": {"resourceUri": RESOURCE_URI},
        "ui/resourceUri": RESOURCE_URI,  # legacy support
    }
)
async def play_audio(
    tracks: Annotated[list[TrackInput], Field(description="Array of tracks to add to the queue")],
) -> types.CallToolResult:
    """Add one or more audio tracks to the player queue.

    Each track needs an absolute filePath and a title; artist is optional.
    Files are checked but not read: audio loads when a track is first played.
    """
    start_time = time.perf_counter()
    log_tool_call(logger, "play_audio", {"tracks": [t.model_dump(exclude_none=True) for t in tracks]})

    try:
        registered = registry.register(tracks)
    except ValidationError as e:
        log_tool_result(logger, "play_audio", f"rejected: {e.path}", (time.perf_counter() - start_time) * 1000)
        return _error_result(str(e))

    entries = [track.to_metadata() for track in registered]
    warnings: list[str] = []

    if settings.eager:
        policy = size_policy()
        for entry in entries:
            try:
                audio = await asyncio.to_thread(read_audio_as_data_url, entry["filePath"], policy)
            except LoadError as e:
                log_tool_result(logger, "play_audio", f"read failed: {e.path}", (time.perf_counter() - start_time) * 1000)
                return _error_result(f"File not found: {e.path}")
            entry["src"] = audio.data_url
            if audio.warning:
                warnings.append(str(audio.warning))

    structured = {"tracks": entries}

    # JSON text keeps hosts without structuredContent support working
    content = [types.TextContent(type="text", text=json.dumps(entries))]
    if warnings:
        content.append(types.TextContent(type="text", text="\n".join(warnings)))

    log_tool_result(
        logger,
        "play_audio",
        f"{len(entries)} tracks queued" + (f", {len(warnings)} warnings" if warnings else ""),
        (time.perf_counter() - start_time) * 1000,
        structured_content={"tracks": [t.to_metadata() for t in registered]},
    )

    return types.CallToolResult(content=content, structuredContent=structured)


@mcp.tool(meta={"ui": {"visibility": ["app"]}})
async def load_audio(
    filePath: Annotated[str, Field(description="Absolute path to the audio file")],
) -> types.CallToolResult:
    """Load a track's audio as a base64 data URL (UI-only tool)."""
    start_time = time.perf_counter()
    log_tool_call(logger, "load_audio", {"filePath": filePath})

    try:
        audio = await asyncio.to_thread(read_audio_as_data_url, filePath, size_policy())
    except LoadError as e:
        log_tool_result(logger, "load_audio", f"failed: {e}", (time.perf_counter() - start_time) * 1000)
        return _error_result(str(e))

    content = [
        types.TextContent(
            type="text",
            text=f"Loaded {os.path.basename(filePath)} ({audio.size_bytes} bytes)",
        )
    ]
    if audio.warning:
        content.append(types.TextContent(type="text", text=str(audio.warning)))

    log_tool_result(
        logger,
        "load_audio",
        f"{audio.size_bytes} bytes",
        (time.perf_counter() - start_time) * 1000,
        structured_content={"dataUrl": f"<{len(audio.data_url)} chars>"},
    )

    return types.CallToolResult(content=content, structuredContent={"dataUrl": audio.data_url})


# =============================================================================
# UI Resource
# =============================================================================


# External domains used by the UI must be listed in meta.ui.csp.resourceDomains
@mcp.resource(
    RESOURCE_URI,
    mime_type=RESOURCE_MIME_TYPE,
    meta={"ui": {"csp": {"resourceDomains": ["https://esm.sh"]}}},
)
def view() -> str:
    """Player UI HTML (treated as opaque by the server)."""
    return VIEW_HTML_PATH.read_text(encoding="utf-8")


# =============================================================================
# HTTP
# =============================================================================

mcp.custom_route("/audio", methods=["GET"])(audio_endpoint)


def create_app(new_settings: Settings | None = None) -> Starlette:
    """Create the ASGI app: MCP over streamable HTTP plus /audio.

    `new_settings`, when given, replaces the module settings first.
    """
    if new_settings is not None:
        configure(new_settings)
    app = mcp.streamable_http_app()
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    return app
