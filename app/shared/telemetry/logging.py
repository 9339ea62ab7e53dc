"""Logging setup for the forms service.

Everything goes to stdout. Upload progress and realtime polling are logged
at DEBUG, so production runs at INFO unless settings.debug is on.
"""

import logging
import sys

from app.core.config import get_settings

_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# HTTP clients used for Firestore / Storage REST calls log every request at INFO.
_CHATTY_CLIENT_LOGGERS = ("httpx", "httpcore", "google.auth.transport")


def setup_logging() -> None:
    settings = get_settings()
    level = logging.DEBUG if settings.debug else logging.INFO
    logging.basicConfig(
        level=level,
        format=_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    client_level = logging.DEBUG if settings.debug else logging.WARNING
    for name in _CHATTY_CLIENT_LOGGERS:
        logging.getLogger(name).setLevel(client_level)


def get_logger(name: str) -> logging.Logger:
    """Module logger; pass __name__."""
    return logging.getLogger(name)
