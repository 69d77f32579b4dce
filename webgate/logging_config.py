"""
Gateway Logging Configuration
=============================

Console or JSON logging with per-request correlation.

Features:
- JSON formatter for machine-readable output
- Colored console formatter for interactive runs
- Request IDs carried in a ContextVar and injected into every record
- Per-module default levels

Usage:
    from webgate.logging_config import setup_logging, set_request_id

    setup_logging(level="INFO", json_format=False)
    set_request_id("req-12345")
    logging.getLogger("webgate.gateway").info("Processing request")

Environment Variables:
    WEBGATE_LOG_LEVEL: Override the configured level
    WEBGATE_LOG_FORMAT: console (default) or json
"""

from __future__ import annotations

import json
import logging
import os
import sys
import time
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional

_request_id: ContextVar[str] = ContextVar("request_id", default="")

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def __init__(self, indent: Optional[int] = None):
        super().__init__()
        self.indent = indent

    def format(self, record: logging.LogRecord) -> str:
        log_dict = {
            "timestamp": time.strftime("%Y-%m-%dT%H:%M:%S", time.gmtime(record.created))
            + f".{int(record.msecs):03d}Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "source": {
                "file": record.filename,
                "line": record.lineno,
                "function": record.funcName,
            },
        }

        request_id = getattr(record, "request_id", "") or get_request_id()
        if request_id:
            log_dict["request_id"] = request_id

        if record.exc_info:
            log_dict["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_dict, default=str, indent=self.indent)


class ColoredFormatter(logging.Formatter):
    """Colored formatter for console output."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(self, use_colors: bool = True, **kwargs):
        super().__init__(**kwargs)
        self.use_colors = use_colors and sys.stdout.isatty()

    def format(self, record: logging.LogRecord) -> str:
        levelname = record.levelname

        if self.use_colors and levelname in self.COLORS:
            record.levelname = f"{self.COLORS[levelname]}{levelname}{self.RESET}"

        formatted = super().format(record)
        record.levelname = levelname
        return formatted


class ContextFilter(logging.Filter):
    """Inject the current request ID into log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = get_request_id()
        return True


def get_request_id() -> str:
    return _request_id.get()


def set_request_id(request_id: str) -> None:
    _request_id.set(request_id)


def generate_request_id() -> str:
    return f"req-{uuid.uuid4().hex[:12]}"


@contextmanager
def request_context(request_id: Optional[str] = None) -> Iterator[str]:
    """
    Bind a request ID for the duration of the block.

    Usage:
        with request_context() as rid:
            logger.info("Handling request")
    """
    token = _request_id.set(request_id or generate_request_id())
    try:
        yield _request_id.get()
    finally:
        _request_id.reset(token)


DEFAULT_MODULE_LEVELS = {
    "webgate": "INFO",
    "webgate.providers": "INFO",
    "webgate.gateway": "INFO",
    "webgate.runtime": "INFO",
    "uvicorn": "INFO",
    "uvicorn.access": "WARNING",
    "fastapi": "WARNING",
    "asyncio": "WARNING",
}


def setup_logging(
    level: str = "INFO",
    json_format: bool = False,
    module_levels: Optional[dict[str, str]] = None,
    colored_console: bool = True,
) -> None:
    """
    Configure the root logger with a single console handler.

    Args:
        level: Default log level
        json_format: Emit one JSON object per line instead of text
        module_levels: Extra per-logger levels merged over the defaults
        colored_console: Use ANSI colors when writing text to a TTY
    """
    level = os.environ.get("WEBGATE_LOG_LEVEL", level).upper()
    if os.environ.get("WEBGATE_LOG_FORMAT", "").lower() == "json":
        json_format = True

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level, logging.INFO))
    root_logger.handlers = []

    levels = {**DEFAULT_MODULE_LEVELS, **(module_levels or {})}
    levels["webgate"] = level
    for module, mod_level in levels.items():
        logging.getLogger(module).setLevel(getattr(logging, mod_level.upper(), logging.INFO))

    handler = logging.StreamHandler(sys.stdout)
    formatter: logging.Formatter
    if json_format:
        formatter = JSONFormatter()
    elif colored_console:
        formatter = ColoredFormatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)
    else:
        formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    handler.setFormatter(formatter)
    handler.addFilter(ContextFilter())
    root_logger.addHandler(handler)

    logging.getLogger("webgate").debug(f"Logging configured (level={level}, json={json_format})")


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


__all__ = [
    "JSONFormatter",
    "ColoredFormatter",
    "ContextFilter",
    "get_request_id",
    "set_request_id",
    "generate_request_id",
    "request_context",
    "setup_logging",
    "get_logger",
    "DEFAULT_MODULE_LEVELS",
]
