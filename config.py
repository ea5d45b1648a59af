"""
config.py

Loads all environment variables from .env using python-dotenv.
Exposes them as typed constants grouped by section.
Engine credentials are validated on demand, not at import time.
Part of Vesper — Local-First Personal Assistant.
"""

import os
import sys
from pathlib import Path
from dotenv import load_dotenv

# ---------------------------------------------------------------------------
# Load .env file from project root
# ---------------------------------------------------------------------------
_ENV_PATH = Path(__file__).resolve().parent / ".env"
load_dotenv(_ENV_PATH)


def _get_optional(key: str, default: str = "") -> str:
    """
    Retrieve an optional environment variable with a default.

    Args:
        key: The environment variable name.
        default: Fallback value if not set.

    Returns:
        The value string or default.
    """
    return os.getenv(key, default).strip() or default


def _get_bool(key: str, default: bool = False) -> bool:
    """
    Retrieve an environment variable as a boolean.

    Args:
        key: The environment variable name.
        default: Fallback if not set.

    Returns:
        True if the value is "true"/"1"/"yes" (case-insensitive), else False.
    """
    raw = os.getenv(key, "").strip().lower()
    if not raw:
        return default
    return raw in ("true", "1", "yes")


def _get_int(key: str, default: int = 0) -> int:
    """
    Retrieve an environment variable as an integer.

    Args:
        key: The environment variable name.
        default: Fallback if not set or not a valid int.

    Returns:
        The integer value.
    """
    raw = os.getenv(key, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _get_float(key: str, default: float = 0.0) -> float:
    """
    Retrieve an environment variable as a float.

    Args:
        key: The environment variable name.
        default: Fallback if not set or not a valid float.

    Returns:
        The float value.
    """
    raw = os.getenv(key, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


# ===========================================================================
# Project paths (derived, not from .env)
# ===========================================================================

PROJECT_ROOT: Path = Path(__file__).resolve().parent
DATA_DIR: Path = Path(_get_optional("VESPER_DATA_DIR", str(PROJECT_ROOT / "data")))
LOGS_DIR: Path = Path(_get_optional("VESPER_LOGS_DIR", str(PROJECT_ROOT / "logs")))

# Ensure logs directory exists
LOGS_DIR.mkdir(parents=True, exist_ok=True)

# ===========================================================================
# Section 1 — Models
# ===========================================================================

# Ollama — local, no credentials
OLLAMA_BASE_URL: str = _get_optional("OLLAMA_BASE_URL", "http://localhost:11434")
OLLAMA_MODEL: str = _get_optional("OLLAMA_MODEL", "llama3.2")

# Remote OpenAI-compatible endpoint (Venice, OpenRouter, Groq, ...)
REMOTE_BASE_URL: str = _get_optional("REMOTE_BASE_URL", "https://api.venice.ai/api/v1")
REMOTE_API_KEY: str = _get_optional("REMOTE_API_KEY")
REMOTE_MODEL: str = _get_optional("REMOTE_MODEL", "llama-3.3-70b")

DEFAULT_ENGINE: str = _get_optional("DEFAULT_ENGINE", "local")  # local | remote
ROUTING_ENGINE: str = _get_optional("ROUTING_ENGINE")  # empty = same as chat engine
REQUEST_TIMEOUT: float = _get_float("REQUEST_TIMEOUT", 120.0)

# ===========================================================================
# Section 2 — Search
# ===========================================================================

BRAVE_API_KEY: str = _get_optional("BRAVE_API_KEY")
SEARCH_MAX_RESULTS: int = _get_int("SEARCH_MAX_RESULTS", 8)

# ===========================================================================
# Section 3 — Notes & Profile
# ===========================================================================

NOTES_VAULT_PATH: str = _get_optional("NOTES_VAULT_PATH")
PROFILE_DIR: Path = Path(_get_optional("PROFILE_DIR", str(DATA_DIR / "profile")))
PROFILE_FILE: Path = PROFILE_DIR / "profile.md"
MEMORIES_FILE: Path = PROFILE_DIR / "memories.md"
IDENTITY_FILE: Path = PROFILE_DIR / "identity.md"
PERSONALITY_FILE: Path = PROFILE_DIR / "personality.md"

# ===========================================================================
# Section 4 — History store
# ===========================================================================

DATABASE_URL: str = _get_optional("DATABASE_URL", f"sqlite:///{DATA_DIR / 'vesper.db'}")

# ===========================================================================
# Section 5 — Weather
# ===========================================================================

WEATHER_LOCATION: str = _get_optional("WEATHER_LOCATION", "Prague")
WEATHER_LATITUDE: float = _get_float("WEATHER_LATITUDE", 50.0755)
WEATHER_LONGITUDE: float = _get_float("WEATHER_LONGITUDE", 14.4378)

# ===========================================================================
# Section 6 — Pipeline
# ===========================================================================

HISTORY_WINDOW: int = _get_int("HISTORY_WINDOW", 20)
VERIFY_RESPONSES: bool = _get_bool("VERIFY_RESPONSES", default=True)
MODEL_ROUTING_ENABLED: bool = _get_bool("MODEL_ROUTING_ENABLED", default=True)
PIPELINE_WORKERS: int = _get_int("PIPELINE_WORKERS", 4)

# ===========================================================================
# Section 7 — General Config
# ===========================================================================

ASSISTANT_NAME: str = _get_optional("ASSISTANT_NAME", "Vesper")
LOG_LEVEL: str = _get_optional("LOG_LEVEL", "INFO")


# ===========================================================================
# Validation helpers
# ===========================================================================

def validate_required_for_engine(engine: str) -> None:
    """
    Validate that the required credentials exist for a given engine.
    Call this before using a specific engine — not at import time,
    because users may only need one of the two engines.

    Args:
        engine: Engine name — "local" or "remote".

    Raises:
        SystemExit: If required credentials are missing.

    Example:
        validate_required_for_engine("remote")
    """
    checks: dict[str, list[tuple[str, str]]] = {
        "remote": [
            (REMOTE_API_KEY, "REMOTE_API_KEY"),
            (REMOTE_BASE_URL, "REMOTE_BASE_URL"),
        ],
        "local": [],  # Ollama needs no credentials
    }

    required = checks.get(engine, [])
    for value, name in required:
        if not value:
            print(
                f"[Vesper Config Error] Engine '{engine}' requires '{name}' but it is missing.\n"
                f"  → Add it to your .env file. See .env.example for reference.",
                file=sys.stderr,
            )
            raise SystemExit(1)


def as_dict() -> dict[str, str | int | float | bool]:
    """
    Return all configuration values as a flat dictionary.
    Useful for debugging — does NOT include sensitive tokens in logs.

    Returns:
        A dict of all config keys and their current values.

    Example:
        cfg = as_dict()
    """
    return {
        # Models
        "OLLAMA_BASE_URL": OLLAMA_BASE_URL,
        "OLLAMA_MODEL": OLLAMA_MODEL,
        "REMOTE_BASE_URL": REMOTE_BASE_URL,
        "REMOTE_API_KEY": "***set***" if REMOTE_API_KEY else "",
        "REMOTE_MODEL": REMOTE_MODEL,
        "DEFAULT_ENGINE": DEFAULT_ENGINE,
        "ROUTING_ENGINE": ROUTING_ENGINE or "(chat engine)",
        "REQUEST_TIMEOUT": REQUEST_TIMEOUT,
        # Search
        "BRAVE_API_KEY": "***set***" if BRAVE_API_KEY else "",
        "SEARCH_MAX_RESULTS": SEARCH_MAX_RESULTS,
        # Notes & Profile
        "NOTES_VAULT_PATH": NOTES_VAULT_PATH or "(not set)",
        "PROFILE_DIR": str(PROFILE_DIR),
        # History store
        "DATABASE_URL": DATABASE_URL,
        # Weather
        "WEATHER_LOCATION": WEATHER_LOCATION,
        "WEATHER_LATITUDE": WEATHER_LATITUDE,
        "WEATHER_LONGITUDE": WEATHER_LONGITUDE,
        # Pipeline
        "HISTORY_WINDOW": HISTORY_WINDOW,
        "VERIFY_RESPONSES": VERIFY_RESPONSES,
        "MODEL_ROUTING_ENABLED": MODEL_ROUTING_ENABLED,
        "PIPELINE_WORKERS": PIPELINE_WORKERS,
        # General
        "ASSISTANT_NAME": ASSISTANT_NAME,
        "LOG_LEVEL": LOG_LEVEL,
    }
