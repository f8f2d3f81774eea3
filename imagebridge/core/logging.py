"""Logging configuration module."""

from __future__ import annotations

import logging
from typing import Optional

from imagebridge.core.settings import get_settings

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logger; `level` overrides LOG_LEVEL from settings."""

    name = level or get_settings().log_level
    logging.basicConfig(
        level=getattr(logging, name.upper(), logging.INFO),
        format=LOG_FORMAT,
    )
