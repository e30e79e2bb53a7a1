from __future__ import annotations

import logging
import os

_LEVELS = {
    "CRITICAL": logging.CRITICAL,
    "ERROR": logging.ERROR,
    "WARNING": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
}

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"


def setup_logging(level: str | int | None = None) -> None:
    """
    Configure application logging once, for both the CLI and the API server.
    Level comes from the argument, then TRACK_CRAWLER_LOG_LEVEL, then INFO.
    """
    if level is None:
        level = os.getenv("TRACK_CRAWLER_LOG_LEVEL", "INFO")

    if isinstance(level, str):
        level = _LEVELS.get(level.upper(), logging.INFO)

    logging.basicConfig(level=level, format=LOG_FORMAT)
    # aiohttp logs every connection hiccup at DEBUG; keep it at our level or above.
    logging.getLogger("aiohttp").setLevel(max(level, logging.INFO))
