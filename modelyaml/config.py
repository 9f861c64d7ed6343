"""Environment variable loading and configuration."""

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
load_dotenv(_PROJECT_ROOT / ".env")


def get_env(key: str, default: str | None = None) -> str:
    """Get an environment variable or raise if missing and no default."""
    value = os.getenv(key, default)
    if value is None:
        raise ValueError(f"Missing required environment variable: {key}")
    return value


def _split_list(raw: str) -> tuple[str, ...]:
    return tuple(part.strip() for part in raw.split(",") if part.strip())


# Paths
DEFINITIONS_DIR = Path(get_env("MODELYAML_DEFINITIONS_DIR", str(_PROJECT_ROOT / "models")))
EXPORT_DIR = Path(get_env("MODELYAML_EXPORT_DIR", str(_PROJECT_ROOT / "resolved")))

# Runtime defaults used when the host does not describe itself explicitly
DEFAULT_SUPPORTED_FORMATS = _split_list(get_env("MODELYAML_SUPPORTED_FORMATS", "gguf"))
PREFERRED_PARAM_SIZE = os.getenv("MODELYAML_PREFERRED_PARAM_SIZE") or None

# Remote definition fetching
FETCH_TIMEOUT = float(get_env("MODELYAML_FETCH_TIMEOUT", "30"))

# Resolution cache
RESOLVE_CACHE_SIZE = int(get_env("MODELYAML_RESOLVE_CACHE_SIZE", "256"))
