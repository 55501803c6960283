# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Structured logging for the pipeline engine.

One JSON object per line on stdout. Fields passed through ``extra`` (or
log_event) land at the top level, so pipelineId / executionId / stepId can
be grepped straight out of the log stream.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

# LogRecord attributes that are not caller-supplied fields
_RECORD_ATTRS = set(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}

_TEXT_FORMAT = "%(asctime)s %(levelname)-7s [%(name)s] %(message)s"


class JSONFormatter(logging.Formatter):
    """Render a record and its extra fields as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(
            (key, value) for key, value in record.__dict__.items()
            if key not in _RECORD_ATTRS and not key.startswith("_")
        )
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable format for local development (log_format: text)."""

    def __init__(self):
        super().__init__(fmt=_TEXT_FORMAT, datefmt="%H:%M:%S")


def get_logger(
    name: str,
    log_level: str = "INFO",
    log_format: str = "json",
    log_file: Optional[Path] = None
) -> logging.Logger:
    """
    Logger writing to stdout (and optionally a file) in the given format.

    Handlers are attached once per logger name; later calls only adjust
    the level.
    """
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    if getattr(logger, "_pipeline_engine_configured", False):
        return logger

    formatter = JSONFormatter() if log_format == "json" else TextFormatter()

    stream = logging.StreamHandler(sys.stdout)
    stream.setFormatter(formatter)
    logger.addHandler(stream)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.propagate = False
    logger._pipeline_engine_configured = True
    return logger


def log_event(logger: logging.Logger, event: str, level: str = "INFO", **fields: Any) -> None:
    """Log a named event with structured fields, e.g. pipelineId=..."""
    logger.log(getattr(logging, level.upper(), logging.INFO), event, extra=fields)


def _configured_logger(name: str) -> logging.Logger:
    from pipeline_engine.core.config import get_config
    config = get_config()
    return get_logger(name, log_level=config.log_level, log_format=config.log_format)


def get_api_logger() -> logging.Logger:
    """Logger for the HTTP routes"""
    return _configured_logger("pipeline_engine.api")


def get_service_logger(service_name: str) -> logging.Logger:
    """Logger for a service, composer or executor component"""
    return _configured_logger(f"pipeline_engine.service.{service_name}")
