"""Audio Player Server - MCP App for queueing and playing local audio files."""

from pathlib import Path

from dotenv import load_dotenv

# Load .env from the project root (one level up from the package)
_env_path = Path(__file__).parent.parent / ".env"
if _env_path.exists():
    load_dotenv(_env_path)

__version__ = "1.0.0"
