"""Entry point for running as `python -m audio_player_server`.

  python -m audio_player_server           # Streamable HTTP on port 3001 (/mcp and /audio)
  python -m audio_player_server --stdio   # STDIO transport (for Claude Desktop)
"""

from __future__ import annotations

import argparse
import sys
from dataclasses import replace
from pathlib import Path

from .config import Settings
from .errors import ConfigError


def parse_args(defaults: Settings) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Audio Player MCP Server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Start HTTP server with verbose logging (DEBUG level)
  python -m audio_player_server -v

  # Very verbose - includes structuredContent in logs
  python -m audio_player_server -vv --log-file debug.jsonl

  # Start in STDIO mode for Claude Desktop
  python -m audio_player_server --stdio

  # Embed audio in play_audio results instead of loading on first play
  python -m audio_player_server --eager
        """,
    )

    parser.add_argument(
        "--stdio",
        action="store_true",
        help="Run in STDIO mode (for Claude Desktop)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v for DEBUG, -vv for TRACE with structuredContent)",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        metavar="PATH",
        help="Write structured JSON logs to file",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Base log level (default: INFO, overridden by --verbose)",
    )
    parser.add_argument(
        "--host",
        default=defaults.host,
        help=f"Host to bind to (default: {defaults.host})",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=defaults.port,
        help=f"Port to bind to (default: {defaults.port})",
    )
    parser.add_argument(
        "--eager",
        action="store_true",
        default=defaults.eager,
        help="Read audio into play_audio results instead of lazily via load_audio",
    )
    parser.add_argument(
        "--no-size-warning",
        dest="size_warning",
        action="store_false",
        default=defaults.size_warning,
        help="Do not attach large-file warnings to results",
    )

    return parser.parse_args()


def main() -> None:
    """Run the MCP server."""
    try:
        defaults = Settings.from_env()
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)

    args = parse_args(defaults)

    from .logging import setup_logging

    setup_logging(
        verbosity=args.verbose,
        log_file=args.log_file,
        log_level=args.log_level,
    )

    from . import server

    settings = replace(
        defaults,
        host=args.host,
        port=args.port,
        eager=args.eager,
        size_warning=args.size_warning,
    )
    server.configure(settings)
    logger = server.logger

    logger.info("Starting Audio Player MCP Server")
    logger.info(f"Loading mode: {'eager' if settings.eager else 'lazy'}")
    if settings.api_key is None:
        logger.debug("ELEVENLABS_API_KEY not set (only needed by generation tools)")
    if settings.output_dir is not None:
        logger.debug(f"Output directory: {settings.resolve_output_dir()}")

    if args.stdio:
        logger.info("Running in STDIO mode")
        server.mcp.run(transport="stdio")
        return

    import uvicorn

    app = server.create_app(settings)
    logger.info(f"Listening on http://{settings.host}:{settings.port}/mcp")
    try:
        uvicorn.run(app, host=settings.host, port=settings.port)
    except OSError as e:
        logger.error(f"Server failed to start: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
