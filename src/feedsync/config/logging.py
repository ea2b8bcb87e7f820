"""Logging setup for the command line."""

from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
_TRANSPORT_LOGGERS = ("httpx", "httpcore", "hishel", "aiolimiter")


def configure_logging(*, level: int = logging.INFO, force: bool = False) -> None:
    """Configure the root logger; a no-op when handlers exist unless ``force`` is set.

    HTTP transport loggers stay at WARNING or above so per-request lines do
    not drown the progress output.
    """

    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt="%H:%M:%S", force=force)
    for name in _TRANSPORT_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
