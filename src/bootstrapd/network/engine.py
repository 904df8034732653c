# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Network engine interface and plugin loading.

The DHT, onion announce, TCP relay and raw socket I/O live in a separate
engine package. The daemon only talks to it through the narrow protocols
below. Engines register an ``EngineFactory`` under the
``bootstrapd.engines`` entry-point group::

    [project.entry-points."bootstrapd.engines"]
    toxcore = "my_engine.factory:ToxcoreEngineFactory"

or are named directly as ``module:attribute`` through the
``BOOTSTRAPD_NETWORK_ENGINE`` setting.
"""

from __future__ import annotations

import importlib
import logging
from collections.abc import Sequence
from importlib.metadata import entry_points
from typing import Protocol, runtime_checkable

from ..core.exceptions import NetworkInitError
from ..identity.keys import Keypair

logger = logging.getLogger(__name__)

ENGINE_ENTRY_POINT_GROUP = "bootstrapd.engines"


# ---------------------------------------------------------------------------
# Engine protocols
# ---------------------------------------------------------------------------


@runtime_checkable
class RelayServer(Protocol):
    """TCP relay offered to peers that can't use UDP."""

    def iterate(self) -> None:
        """Advance the relay by one non-blocking step."""
        ...


@runtime_checkable
class NetworkEngine(Protocol):
    """Networking core + DHT + onion announce, bound to one port."""

    @property
    def public_key_size(self) -> int: ...

    def iterate(self) -> None:
        """Advance the DHT by one non-blocking step."""
        ...

    def poll(self) -> None:
        """Drain pending datagrams into the engine."""
        ...

    def bootstrap_from_address(
        self, address: str, enable_ipv6: bool, port: int, public_key: bytes
    ) -> bool:
        """Resolve ``address`` and send it a bootstrap request.

        Returns False if the address doesn't resolve.
        """
        ...

    def connection_count(self) -> int:
        """Number of live DHT connections."""
        ...

    def init_lan_discovery(self) -> None: ...

    def send_lan_discovery(self, port: int) -> None: ...

    def set_motd(self, version: int, motd: bytes) -> bool:
        """Install the version/MOTD responder. Returns False if refused."""
        ...

    def create_relay(self, ports: Sequence[int], enable_ipv6: bool) -> RelayServer:
        """Start a TCP relay on ``ports`` sharing this engine's onion."""
        ...


@runtime_checkable
class EngineFactory(Protocol):
    """Entry point object exported by an engine plugin."""

    @property
    def public_key_size(self) -> int: ...

    @property
    def secret_key_size(self) -> int: ...

    def generate_keypair(self) -> Keypair:
        """The engine's key generation primitive."""
        ...

    def create(self, keypair: Keypair, port: int, enable_ipv6: bool) -> NetworkEngine:
        """Bind the networking core and build the DHT and onion on top of it.

        Raises:
            NetworkInitError or OSError: If binding or construction fails.
        """
        ...


# ---------------------------------------------------------------------------
# Plugin loading
# ---------------------------------------------------------------------------


def _import_object(reference: str) -> object:
    module_name, _, attribute = reference.partition(":")
    if not module_name or not attribute:
        raise NetworkInitError(f"Invalid engine reference '{reference}', expected 'module:attribute'")
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise NetworkInitError(f"Couldn't import network engine module '{module_name}': {e}") from e

    obj: object = module
    for part in attribute.split("."):
        try:
            obj = getattr(obj, part)
        except AttributeError as e:
            raise NetworkInitError(f"Network engine '{reference}' not found") from e
    return obj


def _instantiate(obj: object, name: str) -> EngineFactory:
    # Entry points may name a factory class or an already-built instance
    if isinstance(obj, type):
        obj = obj()
    if not isinstance(obj, EngineFactory):
        raise NetworkInitError(f"Network engine '{name}' doesn't provide an EngineFactory")
    return obj


def load_engine_factory(name: str | None = None) -> EngineFactory:
    """Resolve the network engine plugin.

    Args:
        name: Entry point name, ``module:attribute`` reference, or None to
            use the single installed engine.

    Raises:
        NetworkInitError: If no engine (or more than one, with no name
            given) is available, or the plugin can't be loaded.
    """
    if name and ":" in name:
        return _instantiate(_import_object(name), name)

    available = {ep.name: ep for ep in entry_points(group=ENGINE_ENTRY_POINT_GROUP)}

    if name:
        if name not in available:
            raise NetworkInitError(
                f"Network engine '{name}' is not installed",
            )
        selected = available[name]
    elif not available:
        raise NetworkInitError(
            f"No network engine installed (entry point group '{ENGINE_ENTRY_POINT_GROUP}')"
        )
    elif len(available) > 1:
        raise NetworkInitError(
            f"Several network engines installed ({', '.join(sorted(available))}), "
            "set BOOTSTRAPD_NETWORK_ENGINE to pick one"
        )
    else:
        selected = next(iter(available.values()))

    try:
        obj = selected.load()
    except Exception as e:
        raise NetworkInitError(f"Couldn't load network engine '{selected.name}': {e}") from e

    logger.info(f"Using network engine '{selected.name}' ({selected.value})")
    return _instantiate(obj, selected.name)


# ---------------------------------------------------------------------------
# Construction with IPv4 fallback
# ---------------------------------------------------------------------------


def start_networking(
    factory: EngineFactory,
    keypair: Keypair,
    port: int,
    enable_ipv6: bool,
    enable_ipv4_fallback: bool,
) -> tuple[NetworkEngine, bool]:
    """Build the network engine, retrying once over IPv4 if allowed.

    Returns:
        The engine and whether it ended up bound with IPv6.

    Raises:
        NetworkInitError: If construction fails and no fallback applies,
            or the fallback fails too.
    """
    try:
        return factory.create(keypair, port, enable_ipv6), enable_ipv6
    except (NetworkInitError, OSError) as e:
        if not (enable_ipv6 and enable_ipv4_fallback):
            raise NetworkInitError(f"Couldn't initialize networking: {e}") from e
        logger.warning(f"Couldn't initialize IPv6 networking ({e}). Falling back to using IPv4.")

    try:
        return factory.create(keypair, port, False), False
    except (NetworkInitError, OSError) as e:
        raise NetworkInitError(f"Couldn't fallback to IPv4: {e}") from e


def install_motd(engine: NetworkEngine, version: int, motd: bytes) -> None:
    """Install the MOTD responder.

    Raises:
        NetworkInitError: If the engine refuses the MOTD.
    """
    if not engine.set_motd(version, motd):
        text = motd.rstrip(b"\x00").decode("utf-8", "replace")
        raise NetworkInitError(f"Couldn't set MOTD: {text}")
    logger.info("Set MOTD successfully.")


def start_relay(engine: NetworkEngine, ports: Sequence[int], enable_ipv6: bool) -> RelayServer:
    """Start the TCP relay.

    Raises:
        NetworkInitError: If the relay can't be created.
    """
    try:
        relay = engine.create_relay(tuple(ports), enable_ipv6)
    except (NetworkInitError, OSError) as e:
        raise NetworkInitError(f"Couldn't initialize TCP relay: {e}") from e
    if relay is None:
        raise NetworkInitError("Couldn't initialize TCP relay")
    logger.info("Initialized TCP relay successfully.")
    return relay
