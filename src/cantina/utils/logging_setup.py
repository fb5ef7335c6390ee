"""Stdlib logging bootstrap for the Cantina server and CLI."""

from __future__ import annotations

import logging

DEFAULT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
QUIET_LOGGERS = ("uvicorn.access",)


def setup_logging(level: int | str = logging.INFO, *, fmt: str = DEFAULT_FORMAT) -> None:
    """Attach a root handler once and keep per-request access logs at WARNING."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(level=level, format=fmt)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
