"""Configuration loaded from the environment."""
import logging
import os
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

# Read .env if present
load_dotenv()

_logger = logging.getLogger("alignsync")

DEFAULT_API_BASE = "https://api.audioshake.ai"
DEFAULT_DB_FILE = "alignsync.db"
DEFAULT_ASSET_MANIFEST = "./demo-assets.json"
DEFAULT_TASK_MODEL = "alignment"
DEFAULT_MEDIA_TYPES = ["audio/mpeg", "video/mp4", "audio/wav"]
DEFAULT_LIST_LIMIT = 50


def _env_int(name: str, default: Optional[int]) -> Optional[int]:
    """Parse an integer env var, falling back to default on absence or junk."""
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value.strip())
    except ValueError:
        _logger.warning("Ignoring non-integer env var name=%s value=%r", name, value)
        return default


def _env_float(name: str, default: Optional[float]) -> Optional[float]:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return float(value.strip())
    except ValueError:
        _logger.warning("Ignoring non-numeric env var name=%s value=%r", name, value)
        return default


def get_api_base() -> str:
    """Base URL of the remote alignment job API."""
    return (os.getenv("ALIGNSYNC_API_BASE") or DEFAULT_API_BASE).rstrip("/")


def get_seed_api_key() -> Optional[str]:
    """API key from the environment; a key saved in the settings store wins."""
    value = os.getenv("ALIGNSYNC_API_KEY")
    return value.strip() if value and value.strip() else None


def get_db_file() -> str:
    return os.getenv("ALIGNSYNC_DB_FILE") or DEFAULT_DB_FILE


def get_asset_manifest_location() -> str:
    """URL or local path of the demo asset manifest."""
    return os.getenv("ALIGNSYNC_ASSET_MANIFEST") or DEFAULT_ASSET_MANIFEST


def get_task_model() -> str:
    return os.getenv("ALIGNSYNC_TASK_MODEL") or DEFAULT_TASK_MODEL


def get_allowed_media_types() -> List[str]:
    raw = os.getenv("ALIGNSYNC_ALLOWED_MEDIA_TYPES")
    if not raw:
        return list(DEFAULT_MEDIA_TYPES)
    return [item.strip() for item in raw.split(",") if item.strip()]


def get_list_limit() -> int:
    return _env_int("ALIGNSYNC_LIST_LIMIT", DEFAULT_LIST_LIMIT) or DEFAULT_LIST_LIMIT


def get_http_timeout() -> Optional[float]:
    """Per-request timeout in seconds; None means wait forever."""
    return _env_float("ALIGNSYNC_HTTP_TIMEOUT", None)


class PollConfig(BaseModel):
    """
    Polling parameters for a submitted task.

    - interval: seconds to wait between status fetches
    - increment: progress added after each non-terminal status
    - ceiling: progress never exceeds this value before completion
    - max_attempts: give up after this many fetches (None polls forever)
    """

    interval: float = Field(default=4.0, ge=0)
    increment: int = Field(default=10, ge=0)
    ceiling: int = Field(default=95, ge=0, le=100)
    max_attempts: Optional[int] = Field(default=None, ge=1)

    @classmethod
    def from_env(cls) -> "PollConfig":
        cfg = cls(
            interval=_env_float("ALIGNSYNC_POLL_INTERVAL", 4.0),
            increment=_env_int("ALIGNSYNC_POLL_INCREMENT", 10),
            ceiling=_env_int("ALIGNSYNC_POLL_CEILING", 95),
            max_attempts=_env_int("ALIGNSYNC_POLL_MAX_ATTEMPTS", None),
        )
        _logger.info(
            "Poll config loaded interval=%s increment=%s ceiling=%s max_attempts=%s",
            cfg.interval,
            cfg.increment,
            cfg.ceiling,
            cfg.max_attempts,
        )
        return cfg


class FuzzyThresholds(BaseModel):
    """Shared-token thresholds used by the fuzzy name matcher."""

    min_shared: int = Field(default=2, ge=1)
    min_shared_with_first: int = Field(default=1, ge=1)

    @classmethod
    def from_env(cls) -> "FuzzyThresholds":
        return cls(
            min_shared=_env_int("ALIGNSYNC_FUZZY_MIN_SHARED", 2),
            min_shared_with_first=_env_int("ALIGNSYNC_FUZZY_MIN_SHARED_FIRST", 1),
        )
