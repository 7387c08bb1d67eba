"""Environment-driven configuration for the audio player server."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from .errors import ConfigError

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 3001
DEFAULT_SIZE_WARNING_MB = 5.0

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ConfigError(f"{name} must be a boolean (got {raw!r})")


def _env_number(name: str, default: float, kind: type = float):
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return kind(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number (got {raw!r})")


@dataclass
class Settings:
    """Runtime settings.

    Values come from the environment (and a project `.env` file, loaded when
    the package is imported). Command-line flags override them in `__main__`.
    """

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    eager: bool = False
    size_warning: bool = True
    size_warning_mb: float = DEFAULT_SIZE_WARNING_MB
    api_key: str | None = field(default=None, repr=False)
    output_dir: Path | None = None

    @classmethod
    def from_env(cls) -> Settings:
        output_dir = os.environ.get("OUTPUT_DIR")
        return cls(
            host=os.environ.get("HOST", DEFAULT_HOST),
            port=_env_number("PORT", DEFAULT_PORT, int),
            eager=_env_bool("AUDIO_PLAYER_EAGER", False),
            size_warning=_env_bool("AUDIO_SIZE_WARNING", True),
            size_warning_mb=_env_number("AUDIO_SIZE_WARNING_MB", DEFAULT_SIZE_WARNING_MB),
            api_key=os.environ.get("ELEVENLABS_API_KEY") or None,
            output_dir=Path(output_dir).expanduser() if output_dir else None,
        )

    @property
    def size_warning_bytes(self) -> int:
        return int(self.size_warning_mb * 1024 * 1024)

    def require_api_key(self) -> str:
        """Return the generation API credential or fail loudly.

        Raises:
            ConfigError: If ELEVENLABS_API_KEY is not set
        """
        if not self.api_key:
            raise ConfigError(
                "ELEVENLABS_API_KEY environment variable not set. "
                "Add it to your environment or .env file."
            )
        return self.api_key

    def resolve_output_dir(self) -> Path:
        """Directory where generated audio is written (defaults to the CWD)."""
        return (self.output_dir or Path.cwd()).resolve()
