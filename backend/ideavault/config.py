"""Runtime configuration.

All settings are read from the environment (``.env`` is loaded once at
import time) with safe defaults, so the service starts without any
configuration and degrades to deterministic fallbacks.
"""

from __future__ import annotations

import os

from dotenv import load_dotenv

load_dotenv()


def _env_float(key: str, default: float) -> float:
    try:
        return float(os.getenv(key, str(default)))
    except ValueError:
        return default


def _env_int(key: str, default: int) -> int:
    try:
        return int(os.getenv(key, str(default)))
    except ValueError:
        return default


def _env_bool(key: str, default: bool) -> bool:
    raw = os.getenv(key)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def get_database_url() -> str:
    return os.getenv("DATABASE_URL", "sqlite:///./ideavault.db").strip()


def get_openai_key() -> str:
    """Return OPENAI_API_KEY or an empty string when it is not configured."""
    return os.getenv("OPENAI_API_KEY", "").strip()


def get_openai_model() -> str:
    return os.getenv("OPENAI_MODEL", "gpt-4.1-mini").strip()


def get_openai_request_timeout() -> float:
    return _env_float("OPENAI_REQUEST_TIMEOUT", 12.0)


def get_completion_timeout() -> float:
    """Upper bound (seconds) the engines wait for one completion call."""
    return _env_float("COMPLETION_TIMEOUT", 15.0)


def get_store_timeout() -> float:
    """Upper bound (seconds) the engines wait for one store read."""
    return _env_float("STORE_TIMEOUT", 5.0)


def get_prediction_reuse_hours() -> int:
    return _env_int("PREDICTION_REUSE_HOURS", 24)


def get_cors_origins() -> list[str]:
    raw = os.getenv("CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000")
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


def is_debug() -> bool:
    return _env_bool("DEBUG", False)
