# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Command-line entry point for dht-bootstrapd."""

from bootstrapd.cli.main import main

__all__ = ["main"]
