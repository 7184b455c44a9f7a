import os
from typing import Optional

from dotenv import load_dotenv

# Service-side settings: HTTP runtime switches and draw configuration.
# Storage connection details are read by `config/database.py`.
load_dotenv(override=True)


def _get_env_int(key: str, default: int) -> int:
    """Read an integer env var; unset or empty means `default`."""
    raw = os.getenv(key)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"env var {key} expects an integer, got {raw}") from exc


def _get_env_optional_int(key: str) -> Optional[int]:
    raw = os.getenv(key)
    if raw is None or raw.strip() == "":
        return None
    return _get_env_int(key, 0)


def _get_env_bool(key: str, default: bool) -> bool:
    """Read a boolean env var (true/false/1/0/yes/no/on/off)."""
    raw = os.getenv(key)
    if raw is None or raw == "":
        return default
    return raw.lower() in {"1", "true", "y", "yes", "on"}


# ===== FastAPI / Uvicorn =====

SERVER_HOST = os.getenv("SERVER_HOST", "0.0.0.0")
SERVER_PORT = _get_env_int("SERVER_PORT", 8000)
SERVER_RELOAD = _get_env_bool("SERVER_RELOAD", False)
SERVER_LOG_LEVEL = os.getenv("SERVER_LOG_LEVEL", "info")
SERVER_WORKERS = _get_env_int("SERVER_WORKERS", 1) or 1

UVICORN_CONFIG = {
    "host": SERVER_HOST,
    "port": SERVER_PORT,
    "reload": SERVER_RELOAD,
    "log_level": SERVER_LOG_LEVEL,
    "workers": SERVER_WORKERS,
}

# ===== Weighted draw =====
#
# The weight scheme comes from `domain/config/priority_weights.yaml`
# (or PRIORITY_WEIGHTS_PATH); PRIORITY_WEIGHTS overrides single levels inline,
# e.g. "HIGH=6,URGENT=12".

PRIORITY_WEIGHTS = os.getenv("PRIORITY_WEIGHTS", "").strip()

# pool | cumulative
DRAW_STRATEGY = (os.getenv("DRAW_STRATEGY", "pool").strip().lower() or "pool")

# Seeds a dedicated random.Random when set (reproducible draws); otherwise SystemRandom.
DRAW_SEED = _get_env_optional_int("DRAW_SEED")

# Candidates are fetched page by page; every unwatched row takes part in the draw.
DRAW_PAGE_SIZE = _get_env_int("DRAW_PAGE_SIZE", 500) or 500

# Log a warning whenever a candidate's priority is not in the weight table.
DRAW_WARN_UNKNOWN_PRIORITY = _get_env_bool("DRAW_WARN_UNKNOWN_PRIORITY", True)
