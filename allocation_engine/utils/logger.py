"""Process-wide logging setup for the allocation engine."""

from __future__ import annotations

import logging
import sys
from typing import Optional

from allocation_engine.utils.config import get_settings


LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

_LOGGING_CONFIGURED = False


def configure_logging(level: Optional[str] = None) -> None:
    """Install the pipe-separated stdout format on the root logger once.

    `basicConfig` does nothing when the root logger already has handlers,
    so uvicorn's or pytest's own setup wins when it ran first.
    """
    global _LOGGING_CONFIGURED
    if _LOGGING_CONFIGURED:
        return

    logging.basicConfig(
        level=(level or get_settings().log_level).upper(),
        format=LOG_FORMAT,
        stream=sys.stdout,
    )
    _LOGGING_CONFIGURED = True


def get_logger(name: str) -> logging.Logger:
    configure_logging()
    return logging.getLogger(name)
