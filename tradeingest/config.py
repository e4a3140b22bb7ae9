"""Runtime settings for the ingestion engine.

Reads tuning knobs from environment:
    TRADEINGEST_MAX_ROWS      – hard cap on data rows per import (1000)
    TRADEINGEST_SAMPLE_SIZE   – rows sampled for symbol-based market voting (10)
    TRADEINGEST_PREVIEW_SIZE  – trades shown in an import preview (5)
    TRADEINGEST_SPLIT_MODE    – "naive" comma split or quote-aware "csv"
    TRADEINGEST_LOG_LEVEL     – logging level for entry points (INFO)
    TRADEINGEST_CORS_ORIGINS  – comma-separated origins for the HTTP service

Bad values fall back to the defaults so a misconfigured host still imports.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Optional

logger = logging.getLogger(__name__)

SPLIT_MODES = ("naive", "csv")

_settings: Optional["IngestSettings"] = None


@dataclass(frozen=True)
class IngestSettings:
    max_rows: int = 1000
    sample_size: int = 10
    preview_size: int = 5
    split_mode: str = "naive"
    log_level: str = "INFO"
    cors_origins: tuple[str, ...] = field(default=("http://localhost:3000",))

    @classmethod
    def from_env(cls) -> "IngestSettings":
        defaults = cls()
        split_mode = os.environ.get("TRADEINGEST_SPLIT_MODE", defaults.split_mode).strip().lower()
        if split_mode not in SPLIT_MODES:
            logger.warning(
                "Unknown TRADEINGEST_SPLIT_MODE=%r, using %r", split_mode, defaults.split_mode
            )
            split_mode = defaults.split_mode

        origins_raw = os.environ.get("TRADEINGEST_CORS_ORIGINS")
        if origins_raw:
            origins = tuple(o.strip() for o in origins_raw.split(",") if o.strip())
        else:
            origins = defaults.cors_origins

        return cls(
            max_rows=_env_int("TRADEINGEST_MAX_ROWS", defaults.max_rows),
            sample_size=_env_int("TRADEINGEST_SAMPLE_SIZE", defaults.sample_size),
            preview_size=_env_int("TRADEINGEST_PREVIEW_SIZE", defaults.preview_size),
            split_mode=split_mode,
            log_level=os.environ.get("TRADEINGEST_LOG_LEVEL", defaults.log_level).upper(),
            cors_origins=origins,
        )


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw.strip())
    except ValueError:
        logger.warning("Invalid %s=%r (not an integer), using %d", name, raw, default)
        return default
    if value < 1:
        logger.warning("Invalid %s=%r (must be >= 1), using %d", name, raw, default)
        return default
    return value


def get_settings() -> IngestSettings:
    """Lazy-load settings from the environment. Cached after first call."""
    global _settings
    if _settings is None:
        _settings = IngestSettings.from_env()
    return _settings


def reset_settings() -> None:
    """Drop the cached settings so the next call re-reads the environment."""
    global _settings
    _settings = None


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging for CLI / service entry points."""
    logging.basicConfig(
        level=getattr(logging, (level or get_settings().log_level).upper(), logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    )
