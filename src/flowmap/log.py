"""Logging setup shared by every flowmap module.

Console output in a human-readable format, with two optional extras driven
by environment variables:
    FLOWMAP_LOG_LEVEL: console level (default INFO)
    FLOWMAP_LOG_FILE:  also write DEBUG-level records to this file
    FLOWMAP_LOG_JSON:  "1" switches the file handler to JSON lines
"""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime, timezone


class JsonFormatter(logging.Formatter):
    """One JSON object per record, for log shippers."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        if record.exc_info and record.exc_info[1]:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False)


def _create_logger() -> logging.Logger:
    _logger = logging.getLogger("flowmap")
    _logger.setLevel(logging.DEBUG)
    _logger.propagate = False
    if _logger.handlers:
        return _logger

    console_level = getattr(logging, os.getenv("FLOWMAP_LOG_LEVEL", "INFO").upper(), logging.INFO)
    fmt = logging.Formatter(
        "[%(asctime)s] %(levelname)-7s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(fmt)
    _logger.addHandler(console)

    log_file = os.getenv("FLOWMAP_LOG_FILE", "").strip()
    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        if os.getenv("FLOWMAP_LOG_JSON", "").strip() == "1":
            file_handler.setFormatter(JsonFormatter())
        else:
            file_handler.setFormatter(fmt)
        _logger.addHandler(file_handler)

    return _logger


logger = _create_logger()
