"""Structured logging configuration for the Audio Player Server."""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

PACKAGE_LOGGER = "audio_player_server"

# Custom TRACE level for very verbose logging (below DEBUG)
TRACE_LEVEL = 5
logging.addLevelName(TRACE_LEVEL, "TRACE")

# Extra record attributes copied into structured output
_EXTRA_FIELDS = (
    "tool_name",
    "tool_args",
    "tool_result",
    "duration_ms",
    "track_id",
    "file_path",
    "size_bytes",
    "byte_range",
    "status_code",
    "structured_content",
)


class StructuredFormatter(logging.Formatter):
    """JSON formatter for structured log output."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for name in _EXTRA_FIELDS:
            if hasattr(record, name):
                log_data[name] = getattr(record, name)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class ConsoleFormatter(logging.Formatter):
    """Human-readable formatter for console output."""

    COLORS = {
        "TRACE": "\033[35m",    # Magenta
        "DEBUG": "\033[36m",    # Cyan
        "INFO": "\033[32m",     # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",    # Red
        "RESET": "\033[0m",
    }

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, "")
        reset = self.COLORS["RESET"]

        msg = f"{color}[{record.levelname}]{reset} {record.getMessage()}"

        extras = []
        if hasattr(record, "tool_name"):
            extras.append(f"tool={record.tool_name}")
        if hasattr(record, "duration_ms"):
            extras.append(f"duration={record.duration_ms}ms")
        if hasattr(record, "track_id"):
            extras.append(f"track={record.track_id}")
        if hasattr(record, "byte_range"):
            extras.append(f"range={record.byte_range}")
        if hasattr(record, "status_code"):
            extras.append(f"status={record.status_code}")

        if extras:
            msg += f" ({', '.join(extras)})"

        if record.exc_info:
            msg += "\n" + self.formatException(record.exc_info)

        return msg


def setup_logging(
    verbosity: int = 0,
    log_file: Path | str | None = None,
    log_level: str = "INFO",
) -> logging.Logger:
    """Configure logging for the server.

    Args:
        verbosity: Verbosity level (0=normal, 1=verbose/DEBUG, 2+=very verbose/TRACE)
        log_file: Path to structured JSON log file (None for no file logging)
        log_level: Base log level (DEBUG, INFO, WARNING, ERROR)

    Returns:
        Configured root logger for the package
    """
    if verbosity >= 2:
        level = TRACE_LEVEL
    elif verbosity == 1:
        level = logging.DEBUG
    else:
        level = getattr(logging, log_level.upper(), logging.INFO)

    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(level)
    logger.propagate = False

    logger.handlers.clear()

    # stderr keeps stdout free for the stdio transport
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(ConsoleFormatter())
    logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path, mode="a", encoding="utf-8")
        file_handler.setLevel(TRACE_LEVEL)
        file_handler.setFormatter(StructuredFormatter())
        logger.addHandler(file_handler)

        logger.info(f"Logging to file: {log_path}")

    return logger


def get_logger(name: str = PACKAGE_LOGGER) -> logging.Logger:
    """Get a logger instance for the package.

    Args:
        name: Logger name (will be prefixed with package name if not already)
    """
    if not name.startswith(PACKAGE_LOGGER):
        name = f"{PACKAGE_LOGGER}.{name}"
    return logging.getLogger(name)


def log_tool_call(
    logger: logging.Logger,
    tool_name: str,
    args: dict[str, Any],
) -> None:
    """Log an MCP tool call."""
    logger.debug(
        f"Tool call: {tool_name}",
        extra={"tool_name": tool_name, "tool_args": args},
    )


def log_tool_result(
    logger: logging.Logger,
    tool_name: str,
    result_summary: str,
    duration_ms: float,
    structured_content: dict | None = None,
) -> None:
    """Log an MCP tool result.

    The summary goes out at DEBUG; the full structured content only at TRACE
    (-vv), since data URLs can be megabytes long.
    """
    extra: dict = {
        "tool_name": tool_name,
        "tool_result": result_summary,
        "duration_ms": round(duration_ms, 2),
    }

    logger.debug(
        f"Tool result: {tool_name} -> {result_summary}",
        extra=extra,
    )

    if structured_content is not None and logger.isEnabledFor(TRACE_LEVEL):
        extra["structured_content"] = structured_content
        logger.log(
            TRACE_LEVEL,
            f"Tool structuredContent: {json.dumps(structured_content, default=str)}",
            extra=extra,
        )


def log_audio_read(
    logger: logging.Logger,
    file_path: str,
    size_bytes: int | None,
    success: bool,
    track_id: str | None = None,
) -> None:
    """Log a full audio file read (data URL encoding)."""
    extra: dict = {"file_path": file_path}
    if track_id is not None:
        extra["track_id"] = track_id
    if success:
        extra["size_bytes"] = size_bytes
        logger.debug(f"Read audio {file_path} ({size_bytes} bytes)", extra=extra)
    else:
        logger.warning(f"Audio read failed: {file_path}", extra=extra)


def log_range_request(
    logger: logging.Logger,
    file_path: str,
    status_code: int,
    byte_range: str | None = None,
) -> None:
    """Log an /audio request outcome."""
    extra: dict = {"file_path": file_path, "status_code": status_code}
    if byte_range is not None:
        extra["byte_range"] = byte_range
    logger.debug(f"GET /audio {file_path}", extra=extra)
