"""Centralised logging configuration.

Modules only call ``logging.getLogger(__name__)``; the entry points (API
factory, CLI) call :func:`configure_logging` once.
"""

from __future__ import annotations

import logging
import os
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: Optional[str] = None) -> None:
    level_name = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    logging.basicConfig(level=getattr(logging, level_name, logging.INFO), format=LOG_FORMAT)
    # httpx logs full request URLs, api keys included, at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


__all__ = ["configure_logging", "LOG_FORMAT"]
