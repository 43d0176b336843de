"""Utility helpers for structured logging."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TextIO

from pythonjsonlogger.json import JsonFormatter


def configure_logging(level: str = "INFO", stream: TextIO | None = None) -> None:
    """Send root logger output as JSON lines to ``stream`` (stderr by default)."""

    log_level = getattr(logging, level.upper(), logging.INFO)
    logger = logging.getLogger()
    logger.setLevel(log_level)

    # Drop handlers from earlier calls so repeated CLI runs in tests do not duplicate lines
    while logger.handlers:
        logger.handlers.pop()

    handler = logging.StreamHandler(stream)
    handler.setFormatter(
        JsonFormatter(
            "%(asctime)s %(levelname)s %(name)s %(message)s",
            rename_fields={"levelname": "level"},
            timestamp=True,
            json_default=_json_default,
        )
    )
    logger.addHandler(handler)


def _json_default(value: object) -> str:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, (set, frozenset)):
        return str(sorted(value))
    return str(value)
