# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Logging configuration for the daemon.

Provides:
- Two backends: syslog (default for a detached daemon) and stdout
- JSON formatter for machine-parseable output
- Standard formatter for humans watching a terminal
- An explicit ``DaemonLog`` handle that owns the installed handlers and is
  closed when the process is done with it
"""

from __future__ import annotations

import json
import logging
import logging.handlers
import os
import sys
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from .. import DAEMON_NAME

PACKAGE_LOGGER = "bootstrapd"

_SYSLOG_SOCKETS = ("/dev/log", "/var/run/syslog")


class LogBackend(Enum):
    """Where log records go."""

    SYSLOG = "syslog"
    STDOUT = "stdout"


def default_backend() -> LogBackend:
    """Use stdout when attached to a terminal, syslog otherwise."""
    return LogBackend.STDOUT if sys.stdout.isatty() else LogBackend.SYSLOG


class JSONFormatter(logging.Formatter):
    """JSON log formatter for log aggregation."""

    def format(self, record: logging.LogRecord) -> str:
        """Format a log record as JSON.

        Args:
            record: LogRecord to format.

        Returns:
            JSON string with timestamp, level, logger and message.
        """
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if hasattr(record, "extra_data"):
            log_data["extra"] = record.extra_data

        return json.dumps(log_data)


class StandardFormatter(logging.Formatter):
    """Human-readable formatter with optional colors for terminal output."""

    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def __init__(self, use_colors: bool = True):
        super().__init__(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        self.use_colors = use_colors and sys.stdout.isatty()

    def format(self, record: logging.LogRecord) -> str:
        # Copy so other handlers see the plain level name
        record = logging.makeLogRecord(record.__dict__)

        if self.use_colors:
            color = self.COLORS.get(record.levelname, "")
            record.levelname = f"{color}{record.levelname}{self.RESET}"

        return super().format(record)


class SyslogFormatter(logging.Formatter):
    """Plain single-line format; syslog adds its own timestamp and host."""

    def __init__(self) -> None:
        super().__init__(fmt="%(levelname)s: %(message)s")


class _BelowWarning(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno < logging.WARNING


def _syslog_address() -> str | tuple[str, int]:
    for path in _SYSLOG_SOCKETS:
        if os.path.exists(path):
            return path
    return ("localhost", logging.handlers.SYSLOG_UDP_PORT)


def _build_handlers(backend: LogBackend, json_format: bool) -> list[logging.Handler]:
    if backend is LogBackend.SYSLOG:
        handler = logging.handlers.SysLogHandler(
            address=_syslog_address(),
            facility=logging.handlers.SysLogHandler.LOG_DAEMON,
        )
        handler.ident = f"{DAEMON_NAME}: "
        handler.setFormatter(JSONFormatter() if json_format else SyslogFormatter())
        return [handler]

    formatter: logging.Formatter = JSONFormatter() if json_format else StandardFormatter()

    out_handler = logging.StreamHandler(sys.stdout)
    out_handler.addFilter(_BelowWarning())
    out_handler.setFormatter(formatter)

    err_handler = logging.StreamHandler(sys.stderr)
    err_handler.setLevel(logging.WARNING)
    err_handler.setFormatter(formatter)

    return [out_handler, err_handler]


class DaemonLog:
    """Handle for the daemon's logging setup.

    Created once before the settings file is read and closed at process
    exit. Components log through ``logging.getLogger(__name__)``; this
    handle only owns the handlers attached to the package logger.
    """

    def __init__(self, backend: LogBackend, handlers: list[logging.Handler], level: int):
        self.backend = backend
        self.level = level
        self.logger = logging.getLogger(PACKAGE_LOGGER)
        self._handlers = handlers

        self.logger.setLevel(level)
        for handler in handlers:
            self.logger.addHandler(handler)

    @property
    def closed(self) -> bool:
        return not self._handlers

    def close(self) -> None:
        """Detach and close every handler installed by this handle."""
        for handler in self._handlers:
            self.logger.removeHandler(handler)
            handler.close()
        self._handlers = []

    def __enter__(self) -> DaemonLog:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


def configure_logging(
    backend: LogBackend | None = None,
    level: str | int | None = None,
    json_format: bool | None = None,
) -> DaemonLog:
    """Configure logging for the daemon.

    Args:
        backend: Log backend (picked from the terminal state if None)
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: Use JSON format (from settings if None)

    Returns:
        The DaemonLog handle owning the installed handlers.

    Environment variables:
        BOOTSTRAPD_LOG_LEVEL: Default log level
        BOOTSTRAPD_LOG_FORMAT: Log format ("json" or "text")
    """
    from .config import get_config

    if backend is None:
        backend = default_backend()

    if level is None:
        level = get_config().log_level
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    if json_format is None:
        json_format = get_config().log_format.lower() == "json"

    # Replace anything left over from an earlier handle
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in package_logger.handlers[:]:
        package_logger.removeHandler(handler)
        handler.close()

    return DaemonLog(backend, _build_handlers(backend, json_format), level)

