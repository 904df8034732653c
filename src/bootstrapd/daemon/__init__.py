# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Daemon startup: settings file, detaching, and the service runner."""
