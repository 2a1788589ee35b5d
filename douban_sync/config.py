"""Centralised settings for the Douban sync pipeline.

All runtime configuration is resolved here in one place.  Values can be
overridden via environment variables or a `.env` file in the project root
(loaded automatically when this module is imported).
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

# Load .env from the project root (one level up from this package)
_env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_env_path, override=False)

_DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/115.0.0.0 Safari/537.36"
)


@dataclass
class Settings:
    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------
    request_timeout: float = field(
        default_factory=lambda: float(os.environ.get("DOUBAN_REQUEST_TIMEOUT", "30.0"))
    )
    user_agent: str = field(
        default_factory=lambda: os.environ.get("DOUBAN_USER_AGENT", _DEFAULT_USER_AGENT)
    )

    # ------------------------------------------------------------------
    # Adaptive delay (seconds).  Slow mode kicks in once the request
    # counter passes ``slow_mode_threshold``.
    # ------------------------------------------------------------------
    base_delay: float = field(
        default_factory=lambda: float(os.environ.get("DOUBAN_BASE_DELAY", "4.0"))
    )
    random_delay: float = field(
        default_factory=lambda: float(os.environ.get("DOUBAN_RANDOM_DELAY", "4.0"))
    )
    slow_mode_threshold: int = field(
        default_factory=lambda: int(os.environ.get("DOUBAN_SLOW_MODE_THRESHOLD", "200"))
    )
    slow_delay: float = field(
        default_factory=lambda: float(os.environ.get("DOUBAN_SLOW_DELAY", "10.0"))
    )
    slow_random_delay: float = field(
        default_factory=lambda: float(os.environ.get("DOUBAN_SLOW_RANDOM_DELAY", "5.0"))
    )

    # ------------------------------------------------------------------
    # Retries
    # ------------------------------------------------------------------
    max_retries: int = field(
        default_factory=lambda: int(os.environ.get("DOUBAN_MAX_RETRIES", "3"))
    )
    retry_delay_min: float = field(
        default_factory=lambda: float(os.environ.get("DOUBAN_RETRY_DELAY_MIN", "5.0"))
    )
    retry_delay_max: float = field(
        default_factory=lambda: float(os.environ.get("DOUBAN_RETRY_DELAY_MAX", "10.0"))
    )

    # ------------------------------------------------------------------
    # Batch scraping
    # ------------------------------------------------------------------
    list_page_size: int = field(
        default_factory=lambda: int(os.environ.get("DOUBAN_LIST_PAGE_SIZE", "30"))
    )
    batch_limit: int = field(
        default_factory=lambda: int(os.environ.get("DOUBAN_BATCH_LIMIT", "100"))
    )

    # ------------------------------------------------------------------
    # Logging
    # ------------------------------------------------------------------
    log_level: str = field(
        default_factory=lambda: os.environ.get("DOUBAN_LOG_LEVEL", "INFO")
    )


def configure_logging(level: str | None = None) -> None:
    """Install a basic stderr handler for the ``douban_sync`` loggers.

    Args:
        level: Level name such as ``"DEBUG"``.  Defaults to
            ``settings.log_level``.
    """
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
    )


# Module-level singleton — import this everywhere:
#   from douban_sync.config import settings
settings = Settings()
