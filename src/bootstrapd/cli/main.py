#!/usr/bin/env python3
# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""
dht-bootstrapd - DHT bootstrap node daemon.

Usage:
  dht-bootstrapd --config=FILE_PATH [--log-backend=syslog|stdout]
  dht-bootstrapd --help
  dht-bootstrapd --version

Environment Variables:
  BOOTSTRAPD_LOG_LEVEL        Log level (default: INFO)
  BOOTSTRAPD_LOG_FORMAT       'json' or 'text'
  BOOTSTRAPD_NETWORK_ENGINE   Engine plugin name or module:attribute
"""

from __future__ import annotations

import argparse
import sys
from importlib.metadata import PackageNotFoundError, version

from .. import DAEMON_NAME, DAEMON_VERSION_NUMBER
from ..core.logging import LogBackend, default_backend


def get_package_version() -> str:
    """Get the package version from installed metadata.

    Falls back to a dev marker when running from source without install.
    """
    try:
        return version("dht-bootstrapd")
    except PackageNotFoundError:
        return "0.0.0-dev"


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog=DAEMON_NAME,
        description="DHT bootstrap node daemon",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Start with the settings in /etc/dht-bootstrapd.conf, logging to syslog
  dht-bootstrapd --config=/etc/dht-bootstrapd.conf

  # Use default settings and log to the terminal
  touch empty.conf && dht-bootstrapd --config=empty.conf --log-backend=stdout

Environment Variables:
  BOOTSTRAPD_LOG_LEVEL        Log level (default: INFO)
  BOOTSTRAPD_LOG_FORMAT       'json' or 'text'
  BOOTSTRAPD_NETWORK_ENGINE   Engine plugin name or module:attribute
        """,
    )

    parser.add_argument(
        "--config",
        required=True,
        metavar="FILE_PATH",
        help="Path to the config file. Point it at an empty file to use default settings.",
    )
    parser.add_argument(
        "--log-backend",
        choices=[backend.value for backend in LogBackend],
        default=None,
        metavar="BACKEND",
        help="Logging backend: 'syslog' or 'stdout' (default: stdout on a terminal, else syslog)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {get_package_version()} (version number {DAEMON_VERSION_NUMBER})",
    )

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    log_backend = LogBackend(args.log_backend) if args.log_backend else default_backend()

    from ..daemon.service import run_daemon

    return run_daemon(args.config, log_backend)


if __name__ == "__main__":
    sys.exit(main())
