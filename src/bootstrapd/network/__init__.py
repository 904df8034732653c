# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""
Network side of the daemon.

The engine itself is a plugin; this package holds the interface to it,
the bootstrap list processor and the service loop that drives it.
"""
