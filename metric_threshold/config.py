"""Central configuration for metric_threshold."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

logger = logging.getLogger(__name__)

_DEFAULT_BACKEND_URL = "http://localhost:9200/_metric_threshold"
_DEFAULT_STATE_FILE = "/app/data/metric_threshold_state.json"


def _read_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "") or ""
    try:
        value = float(raw) if raw.strip() else default
    except ValueError:
        return default
    return value if value > 0 else default


def _read_int(name: str, default: int) -> int:
    raw = (os.environ.get(name) or "").strip()
    try:
        value = int(raw) if raw else default
    except ValueError:
        return default
    return value if value > 0 else default


@dataclass
class Settings:
    """Configuration settings for metric_threshold.

    All settings are loaded from environment variables with sensible defaults.
    """

    BACKEND_URL: str
    BACKEND_TOKEN: str | None
    BACKEND_TIMEOUT_S: float
    GROUP_BY_PAGE_SIZE: int
    STATE_FILE: str


def _read_settings() -> Settings:
    """Read all configuration from environment variables.

    Note:
        Invalid or non-positive numeric values fall back to the defaults.
    """
    backend_url = (os.environ.get("BACKEND_URL") or _DEFAULT_BACKEND_URL).rstrip("/")
    backend_token = os.environ.get("BACKEND_TOKEN") or None
    backend_timeout = _read_float("BACKEND_TIMEOUT_S", 30.0)

    # Page size the backend uses for composite group pagination
    page_size = _read_int("GROUP_BY_PAGE_SIZE", 10000)

    state_file = os.environ.get("STATE_FILE") or _DEFAULT_STATE_FILE

    return Settings(
        BACKEND_URL=backend_url,
        BACKEND_TOKEN=backend_token,
        BACKEND_TIMEOUT_S=backend_timeout,
        GROUP_BY_PAGE_SIZE=page_size,
        STATE_FILE=state_file,
    )


settings = _read_settings()


def validate_settings() -> None:
    """Log warnings for configuration that is likely a mistake."""
    if not settings.BACKEND_URL.startswith(("http://", "https://")):
        logger.error("BACKEND_URL must be an http(s) URL, got %r", settings.BACKEND_URL)
    if settings.BACKEND_TOKEN is None:
        logger.warning("BACKEND_TOKEN is not set; backend requests are unauthenticated.")


# Exported constants
BACKEND_URL: str = settings.BACKEND_URL
BACKEND_TOKEN: str | None = settings.BACKEND_TOKEN
BACKEND_TIMEOUT_S: float = settings.BACKEND_TIMEOUT_S
GROUP_BY_PAGE_SIZE: int = settings.GROUP_BY_PAGE_SIZE
STATE_FILE: str = settings.STATE_FILE
