"""Tests for logging setup."""

import json
import logging

from audio_player_server.logging import (
    TRACE_LEVEL,
    get_logger,
    log_range_request,
    log_tool_result,
    setup_logging,
)


def test_get_logger_is_namespaced() -> None:
    assert get_logger("server").name == "audio_player_server.server"
    assert get_logger("audio_player_server.loader").name == "audio_player_server.loader"


def test_verbosity_levels() -> None:
    assert setup_logging(verbosity=0).level == logging.INFO
    assert setup_logging(verbosity=1).level == logging.DEBUG
    assert setup_logging(verbosity=2).level == TRACE_LEVEL


def test_file_log_is_json_lines(tmp_path) -> None:
    log_file = tmp_path / "logs" / "server.jsonl"
    setup_logging(verbosity=2, log_file=log_file)
    logger = get_logger("test")

    log_range_request(logger, "/music/a.mp3", 206, "0-99")
    log_tool_result(logger, "load_audio", "300 bytes", 1.234, structured_content={"dataUrl": "<x>"})
    for handler in logging.getLogger("audio_player_server").handlers:
        handler.flush()

    records = [json.loads(line) for line in log_file.read_text().splitlines()]
    ranged = next(r for r in records if r.get("byte_range"))
    assert ranged["status_code"] == 206
    assert ranged["file_path"] == "/music/a.mp3"
    assert any(r["level"] == "TRACE" and r["structured_content"] == {"dataUrl": "<x>"} for r in records)

    setup_logging()
