# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Detach the daemon into a background service.

Contract shared by every detacher: ``detach()`` returns ``DetachRole.PARENT``
in a process that should exit 0 right away (the launcher), and
``DetachRole.SERVICE`` in the process that goes on to run the service loop.
The pid of the service process ends up in the pid file.

``ForkDetacher`` is the classic POSIX double-duty fork. ``ForegroundDetacher``
is for supervisors (systemd, runit, containers) and platforms without
``fork``: it stays attached and just records its own pid.

The pid file is appended to and never validated against a live process;
an existing file only triggers a warning.
"""

from __future__ import annotations

import logging
import os
from enum import Enum
from pathlib import Path
from typing import Protocol

from ..core.exceptions import DaemonizeError

logger = logging.getLogger(__name__)

SERVICE_ROOT = "/"


class DetachRole(Enum):
    PARENT = "parent"
    SERVICE = "service"


class ServiceDetacher(Protocol):
    """Turns the current process into a background service instance."""

    def detach(self) -> DetachRole: ...


def warn_if_stale_pid_file(pid_file_path: str | Path) -> bool:
    """Warn if the pid file already exists. Returns True if it does."""
    if Path(pid_file_path).exists():
        logger.warning(
            f"Another instance of the daemon is already running, PID file {pid_file_path} exists."
        )
        return True
    return False


def _open_pid_file(pid_file_path: str | Path):
    try:
        return open(pid_file_path, "a+")
    except OSError as e:
        raise DaemonizeError(f"Couldn't open the PID file for writing: {pid_file_path}: {e}") from e


def _silence_stdio() -> None:
    devnull = os.open(os.devnull, os.O_RDWR)
    try:
        for fd in (0, 1, 2):
            os.dup2(devnull, fd)
    finally:
        if devnull > 2:
            os.close(devnull)


class ForkDetacher:
    """Fork, let the parent record the child's pid, and detach the child.

    Args:
        pid_file_path: Where the service pid is appended.
        keep_stdio: Leave stdin/stdout/stderr open (stdout log backend).
    """

    def __init__(self, pid_file_path: str | Path, keep_stdio: bool = False):
        self.pid_file_path = Path(pid_file_path)
        self.keep_stdio = keep_stdio

    def detach(self) -> DetachRole:
        # Opened before the fork so a bad path fails while still attached
        pid_file = _open_pid_file(self.pid_file_path)

        try:
            pid = os.fork()
        except OSError as e:
            pid_file.close()
            raise DaemonizeError(f"Forking failed: {e}") from e

        if pid > 0:
            with pid_file:
                pid_file.write(f"{pid}\n")
            logger.info(f"Forked successfully: PID: {pid}.")
            return DetachRole.PARENT

        pid_file.close()
        self._become_service()
        return DetachRole.SERVICE

    def _become_service(self) -> None:
        os.umask(0)

        try:
            os.setsid()
        except OSError as e:
            raise DaemonizeError(f"SID creation failure: {e}") from e

        try:
            os.chdir(SERVICE_ROOT)
        except OSError as e:
            raise DaemonizeError(f"Couldn't change working directory to '{SERVICE_ROOT}': {e}") from e

        if not self.keep_stdio:
            _silence_stdio()


class ForegroundDetacher:
    """Stay attached; record our own pid for the supervisor."""

    def __init__(self, pid_file_path: str | Path):
        self.pid_file_path = Path(pid_file_path)

    def detach(self) -> DetachRole:
        with _open_pid_file(self.pid_file_path) as pid_file:
            pid_file.write(f"{os.getpid()}\n")
        logger.info(f"Running in the foreground: PID: {os.getpid()}.")
        return DetachRole.SERVICE


def default_detacher(pid_file_path: str | Path, keep_stdio: bool = False) -> ServiceDetacher:
    """ForkDetacher where ``os.fork`` exists, ForegroundDetacher elsewhere."""
    if hasattr(os, "fork"):
        return ForkDetacher(pid_file_path, keep_stdio=keep_stdio)
    return ForegroundDetacher(pid_file_path)
