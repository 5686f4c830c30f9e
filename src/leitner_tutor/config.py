"""Application configuration and constants."""
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from leitner_tutor import __version__


def _parse_int_env(name: str, default: int) -> int:
    """Parse integer from environment variable."""
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _parse_level_env(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None:
        return default
    if raw.isdigit():
        return int(raw)
    level = logging.getLevelName(raw.upper())
    return level if isinstance(level, int) else default


DEFAULT_DB_PATH = str(Path.home() / ".leitner_tutor" / "progress.db")
DEFAULT_MATERIAL = str(Path.cwd() / "material")
PROGRESS_KEY = "leitner:all"
FETCH_TIMEOUT_SECONDS = 60
NOTIFY_TIMEOUT_SECONDS = 10


@dataclass(frozen=True)
class Settings:
    db_path: str
    material: str
    app_version: str
    fetch_timeout: int
    telegram_token: Optional[str]
    telegram_chat_id: Optional[str]
    log_level: int


def load_settings() -> Settings:
    """Snapshot the environment into a Settings object."""
    return Settings(
        db_path=os.environ.get("LEITNER_DB_PATH", DEFAULT_DB_PATH),
        material=os.environ.get("LEITNER_MATERIAL", DEFAULT_MATERIAL),
        app_version=os.environ.get("LEITNER_APP_VERSION", __version__),
        fetch_timeout=_parse_int_env("LEITNER_FETCH_TIMEOUT", FETCH_TIMEOUT_SECONDS),
        telegram_token=os.environ.get("LEITNER_TELEGRAM_TOKEN") or None,
        telegram_chat_id=os.environ.get("LEITNER_TELEGRAM_CHAT_ID") or None,
        log_level=_parse_level_env("LEITNER_LOG_LEVEL", logging.WARNING),
    )
