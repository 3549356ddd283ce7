"""
Console logging configuration.

Usage:
    from ipaws_alert.logging_setup import setup_logging

    setup_logging('DEBUG')
    logger = logging.getLogger(__name__)
"""

import logging
import sys
from typing import Optional, Union

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
DATE_FORMAT = "%H:%M:%S"

_HANDLER_NAME = "ipaws-alert-console"


def setup_logging(level: Optional[Union[str, int]] = None) -> None:
    """Configure the root logger with one console handler; safe to call repeatedly."""
    if level is None:
        from .settings import get_settings
        level = get_settings().log_level
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    root = logging.getLogger()
    root.setLevel(level)

    if not any(h.get_name() == _HANDLER_NAME for h in root.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.set_name(_HANDLER_NAME)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
        root.addHandler(handler)

    # Quieten noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
