"""Logging configuration helpers."""

from __future__ import annotations

import json
import logging
import logging.config
from typing import Any

from .config import LoggingSettings


class JsonFormatter(logging.Formatter):
    """Render each record as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "time": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False)


def _structured_formatter() -> dict[str, Any]:
    """Return a dictConfig fragment for structured JSON logs."""
    return {"()": JsonFormatter}


def _plain_formatter() -> dict[str, Any]:
    """Return a dictConfig fragment for human readable logs."""
    return {
        "format": "%(asctime)s %(levelname)s %(name)s %(message)s",
    }


def configure_logging(settings: LoggingSettings) -> None:
    """Configure application logging according to provided settings."""
    formatter = _structured_formatter() if settings.structured else _plain_formatter()

    dict_config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": formatter,
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "level": settings.level,
            },
        },
        "root": {
            "handlers": ["console"],
            "level": settings.level,
        },
        "loggers": {
            # httpx logs every request at INFO, including the endpoint.
            "httpx": {"level": "WARNING"},
        },
    }

    logging.config.dictConfig(dict_config)


__all__ = ["JsonFormatter", "configure_logging"]
