# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Shared primitives: environment settings, logging and exceptions."""

from .exceptions import (
    BootstrapdException,
    ConfigError,
    DaemonizeError,
    IdentityIOError,
    NetworkInitError,
    ValidationError,
)

__all__ = [
    "BootstrapdException",
    "ConfigError",
    "DaemonizeError",
    "IdentityIOError",
    "NetworkInitError",
    "ValidationError",
]
