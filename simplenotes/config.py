from __future__ import annotations
import logging
import os
from pathlib import Path
from typing import Optional

from rich.logging import RichHandler

STORAGE_KEY = "notes_app_data_v1"
DEFAULT_QUIET_PERIOD = 0.3  # seconds
DEFAULT_SLOT_QUOTA = 5 * 1024 * 1024  # bytes, roughly a browser localStorage budget
UNTITLED = "Untitled"


def get_env(key: str, default: Optional[str] = None) -> Optional[str]:
    return os.getenv(key, default)


def get_env_int(key: str, default: int) -> int:
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def default_db_path() -> Path:
    env_path = get_env("SIMPLENOTES_DB_PATH")
    if env_path:
        return Path(env_path)
    return Path.home() / ".simplenotes" / "simplenotes.db"


def setup_logging(level: Optional[str] = None) -> None:
    """Route log records through Rich; level falls back to SIMPLENOTES_LOG_LEVEL."""
    level = (level or get_env("SIMPLENOTES_LOG_LEVEL", "WARNING") or "WARNING").upper()
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
        force=True,
    )
