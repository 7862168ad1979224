"""Logging setup for the API process.

``main.py`` calls ``setup_logging()`` once before the app is built. Modules
log through ``logging.getLogger(__name__)`` and never add handlers
themselves.

Env vars
--------
LOG_LEVEL : str
    Root level, default ``INFO``.
LOG_FORMAT : str
    ``json`` (default) for one object per line, ``text`` for local runs.
"""
from __future__ import annotations

import json
import logging
import os
import sys
from typing import Any, Dict

TEXT_FORMAT = "%(asctime)s [%(levelname)-8s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"

# Third-party loggers that are chatty at INFO
_QUIET_LOGGERS = ("urllib3", "httpx", "uvicorn.access", "xhtml2pdf", "pypdf", "google_genai")


class JsonFormatter(logging.Formatter):
    """Render records as single-line JSON objects.

    Messages are escaped properly, so quotes or newlines in upstream error
    text cannot break a line apart.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "time": self.formatTime(record, DATE_FORMAT),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def setup_logging() -> None:
    level_name = os.getenv("LOG_LEVEL", "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    if os.getenv("LOG_FORMAT", "json").lower() == "json":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT, datefmt=DATE_FORMAT))

    root = logging.getLogger()
    # uvicorn --reload re-imports main; replace rather than stack handlers
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


__all__ = ["JsonFormatter", "setup_logging"]
