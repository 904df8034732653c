# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Exception hierarchy for the bootstrap daemon.

Each startup stage has its own exception type. Stage errors are fatal and
are turned into a non-zero exit status by the service runner; per-entry
problems (a bad bootstrap node, a bad relay port) are logged and skipped
instead of raised.
"""

from __future__ import annotations

from typing import Any


class BootstrapdException(Exception):
    """Base exception for all daemon errors."""

    def __init__(self, message: str, details: dict | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


class ConfigError(BootstrapdException):
    """Exception for settings-file errors.

    Raised when:
    - The settings file cannot be read or parsed
    - The listen port is out of range
    - TCP relay is enabled but no relay port survived validation
    """

    def __init__(self, message: str, path: str | None = None):
        details = {}
        if path:
            details["path"] = path
        super().__init__(message, details)
        self.path = path


class ValidationError(BootstrapdException):
    """Exception for a single malformed or out-of-range value."""

    def __init__(self, message: str, field: str | None = None, value: Any = None):
        details = {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)
        super().__init__(message, details)
        self.field = field
        self.value = value


class IdentityIOError(BootstrapdException):
    """Exception for key file errors.

    Raised when:
    - An existing key file has the wrong size
    - A new key file cannot be written completely
    """

    def __init__(self, message: str, path: str | None = None):
        details = {}
        if path:
            details["path"] = path
        super().__init__(message, details)
        self.path = path


class NetworkInitError(BootstrapdException):
    """Exception for network engine construction errors.

    Raised when:
    - No network engine is installed or the selected one can't be loaded
    - Binding the networking core fails (after the IPv4 fallback, if any)
    - The onion, relay or MOTD subsystems can't be set up
    """


class DaemonizeError(BootstrapdException):
    """Exception for fork, session or working directory errors while detaching."""
