# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Bootstrap list processor - seed the DHT with the nodes listed in the settings file.

Each ``[[bootstrap_nodes]]`` table needs ``public_key``, ``port`` and
``address``. Entries are checked in that order, then handed to the engine,
which resolves the address (DNS or literal IP). A bad entry is logged with
its index and skipped; nothing short of an unreadable settings file stops
the stage.
"""

from __future__ import annotations

import logging
import string
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from ..daemon.config import (
    MAX_ALLOWED_PORT,
    MIN_ALLOWED_PORT,
    is_valid_port,
    read_settings_file,
)
from .engine import NetworkEngine

logger = logging.getLogger(__name__)

NAME_BOOTSTRAP_NODES = "bootstrap_nodes"
NAME_PUBLIC_KEY = "public_key"
NAME_PORT = "port"
NAME_ADDRESS = "address"


@dataclass(frozen=True)
class BootstrapEntry:
    """One validated bootstrap node. Dropped once handed to the engine."""

    public_key: str
    port: int
    address: str

    def public_key_bytes(self) -> bytes:
        return bytes.fromhex(self.public_key)


class EntryStatus(Enum):
    ADDED = "added"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class EntryResult:
    """What happened to the entry at ``index``."""

    index: int
    status: EntryStatus
    reason: str | None = None

    @classmethod
    def added(cls, index: int) -> EntryResult:
        return cls(index, EntryStatus.ADDED)

    @classmethod
    def skipped(cls, index: int, reason: str) -> EntryResult:
        return cls(index, EntryStatus.SKIPPED, reason)


@dataclass
class BootstrapReport:
    """Per-entry outcomes, in declaration order."""

    results: list[EntryResult] = field(default_factory=list)

    @property
    def added(self) -> int:
        return sum(1 for r in self.results if r.status is EntryStatus.ADDED)

    @property
    def skipped(self) -> int:
        return sum(1 for r in self.results if r.status is EntryStatus.SKIPPED)


def iter_bootstrap_nodes(data: Mapping[str, Any]) -> Iterator[tuple[int, Any]]:
    """Yield ``(index, raw_entry)`` pairs from a parsed settings file.

    The node list is consumed as it is walked, so an entry is released as
    soon as it has been processed.
    """
    node_list = data.get(NAME_BOOTSTRAP_NODES)

    if node_list is None:
        logger.warning(
            f"No '{NAME_BOOTSTRAP_NODES}' setting in the configuration file. Skipping bootstrapping."
        )
        return

    if not isinstance(node_list, list) or not node_list:
        logger.warning("No bootstrap nodes found. Skipping bootstrapping.")
        return

    # Reverse once so each pop() is O(1) while keeping declaration order
    node_list.reverse()
    index = 0
    while node_list:
        yield index, node_list.pop()
        index += 1


def _lookup(node: Mapping[str, Any], name: str, expected: type) -> Any:
    value = node.get(name)
    if not isinstance(value, expected) or (expected is int and isinstance(value, bool)):
        return None
    return value


def validate_entry(index: int, node: Any, public_key_size: int) -> BootstrapEntry | EntryResult:
    """Check one raw entry.

    Returns:
        A BootstrapEntry ready for the engine, or a skipped EntryResult.
    """
    if not isinstance(node, Mapping):
        return EntryResult.skipped(index, "entry is not a table")

    public_key = _lookup(node, NAME_PUBLIC_KEY, str)
    if public_key is None:
        return EntryResult.skipped(index, f"Couldn't find '{NAME_PUBLIC_KEY}' setting")

    port = _lookup(node, NAME_PORT, int)
    if port is None:
        return EntryResult.skipped(index, f"Couldn't find '{NAME_PORT}' setting")

    address = _lookup(node, NAME_ADDRESS, str)
    if address is None:
        return EntryResult.skipped(index, f"Couldn't find '{NAME_ADDRESS}' setting")

    # Exactly two hex digits per key byte, no separators
    if len(public_key) != public_key_size * 2 or not all(c in string.hexdigits for c in public_key):
        return EntryResult.skipped(index, f"Invalid '{NAME_PUBLIC_KEY}': {public_key}")

    if not is_valid_port(port):
        return EntryResult.skipped(
            index,
            f"Invalid '{NAME_PORT}': {port}, should be in [{MIN_ALLOWED_PORT}, {MAX_ALLOWED_PORT}]",
        )

    return BootstrapEntry(public_key=public_key, port=port, address=address)


def add_bootstrap_node(
    engine: NetworkEngine, index: int, node: Any, enable_ipv6: bool
) -> EntryResult:
    """Validate one entry and, if it passes, hand it to the engine."""
    checked = validate_entry(index, node, engine.public_key_size)
    if isinstance(checked, EntryResult):
        return checked

    resolved = engine.bootstrap_from_address(
        checked.address, enable_ipv6, checked.port, checked.public_key_bytes()
    )
    if not resolved:
        return EntryResult.skipped(index, f"Invalid '{NAME_ADDRESS}': {checked.address}")

    logger.info(
        f"Successfully added bootstrap node #{index}: "
        f"{checked.address}:{checked.port} {checked.public_key}"
    )
    return EntryResult.added(index)


def bootstrap_from_mapping(
    data: Mapping[str, Any], engine: NetworkEngine, enable_ipv6: bool
) -> BootstrapReport:
    """Seed ``engine`` from an already parsed settings mapping."""
    report = BootstrapReport()
    for index, node in iter_bootstrap_nodes(data):
        result = add_bootstrap_node(engine, index, node, enable_ipv6)
        if result.status is EntryStatus.SKIPPED:
            logger.warning(f"Bootstrap node #{index}: {result.reason}. Skipping the node.")
        report.results.append(result)
    return report


def bootstrap_from_config(
    path: str | Path, engine: NetworkEngine, enable_ipv6: bool
) -> BootstrapReport:
    """Seed ``engine`` with every usable node listed in the settings file.

    The file is parsed on its own here, independently of the general
    configuration.

    Raises:
        ConfigError: If the settings file can't be read or parsed.
    """
    data = read_settings_file(path)
    report = bootstrap_from_mapping(data, engine, enable_ipv6)
    logger.info(
        f"List of bootstrap nodes read successfully: {report.added} added, {report.skipped} skipped."
    )
    return report
