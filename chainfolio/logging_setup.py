"""Logging configuration."""
from __future__ import annotations

import logging

_NOISY_LOGGERS = ("aiohttp", "openai", "httpx", "pymongo")


def configure_logging(level: str = "INFO") -> None:
    """Configure root logger with a timestamped console handler.

    Unknown level names fall back to INFO.
    """
    numeric_level = getattr(logging, str(level).upper(), None)
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    root = logging.getLogger()
    root.setLevel(numeric_level)

    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    root.addHandler(handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
