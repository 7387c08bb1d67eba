"""HTTP endpoint serving local audio files with single byte-range support."""

from __future__ import annotations

import os
import re
from typing import Iterator

from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import PlainTextResponse, Response, StreamingResponse
from starlette.routing import Route

from .errors import RangeRequestError
from .logging import get_logger, log_range_request
from .media import content_type
from .tracks import is_readable_file

logger = get_logger("range_server")

CHUNK_SIZE = 64 * 1024

_RANGE_RE = re.compile(r"^bytes=(\d+)-(\d*)$")


def parse_range(header: str, size: int) -> tuple[int, int]:
    """Parse a single `bytes=<start>-<end>` range against a file of `size` bytes.

    `end` defaults to the last byte and is clamped to it.

    Raises:
        RangeRequestError: 400 for malformed or multi-range headers, 416 when
            the range does not overlap the file
    """
    match = _RANGE_RE.match(header.strip())
    if match is None:
        raise RangeRequestError(400, f"Malformed Range header: {header}")

    start = int(match.group(1))
    end = int(match.group(2)) if match.group(2) else size - 1
    end = min(end, size - 1)

    if start >= size or start > end:
        raise RangeRequestError(416, f"Range not satisfiable: {header} (size {size})")
    return start, end


def iter_file(path: str, start: int = 0, length: int | None = None) -> Iterator[bytes]:
    """Yield a file's bytes from `start`, `length` bytes in total (None = to EOF)."""
    with open(path, "rb") as f:
        f.seek(start)
        remaining = length
        while remaining is None or remaining > 0:
            size = CHUNK_SIZE if remaining is None else min(CHUNK_SIZE, remaining)
            chunk = f.read(size)
            if not chunk:
                break
            if remaining is not None:
                remaining -= len(chunk)
            yield chunk


async def audio_endpoint(request: Request) -> Response:
    """GET /audio?path=<absolute path>, honoring `Range: bytes=<start>-<end>`."""
    file_path = request.query_params.get("path")
    if not file_path:
        log_range_request(logger, "", 400)
        return PlainTextResponse("Missing path query parameter", status_code=400)

    absolute_path = os.path.abspath(file_path)
    if not os.path.isfile(absolute_path):
        log_range_request(logger, absolute_path, 404)
        return PlainTextResponse("File not found", status_code=404)
    if not is_readable_file(absolute_path):
        log_range_request(logger, absolute_path, 403)
        return PlainTextResponse("File not readable", status_code=403)

    file_size = os.path.getsize(absolute_path)
    media_type = content_type(absolute_path)

    range_header = request.headers.get("range")
    if range_header is None:
        log_range_request(logger, absolute_path, 200)
        return StreamingResponse(
            iter_file(absolute_path),
            status_code=200,
            media_type=media_type,
            headers={
                "Content-Length": str(file_size),
                "Accept-Ranges": "bytes",
            },
        )

    try:
        start, end = parse_range(range_header, file_size)
    except RangeRequestError as e:
        log_range_request(logger, absolute_path, e.status_code, range_header)
        headers = {"Content-Range": f"bytes */{file_size}"} if e.status_code == 416 else None
        return PlainTextResponse(e.detail, status_code=e.status_code, headers=headers)

    chunk_size = end - start + 1
    log_range_request(logger, absolute_path, 206, f"{start}-{end}")
    return StreamingResponse(
        iter_file(absolute_path, start, chunk_size),
        status_code=206,
        media_type=media_type,
        headers={
            "Content-Range": f"bytes {start}-{end}/{file_size}",
            "Content-Length": str(chunk_size),
            "Accept-Ranges": "bytes",
        },
    )


def create_audio_app() -> Starlette:
    """Standalone app serving only /audio, with permissive CORS."""
    return Starlette(
        routes=[Route("/audio", audio_endpoint, methods=["GET"])],
        middleware=[
            Middleware(
                CORSMiddleware,
                allow_origins=["*"],
                allow_methods=["*"],
                allow_headers=["*"],
            )
        ],
    )
