# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Settings file loader - turns the operator's TOML file into a DaemonConfig.

Every option has a default. A missing or wrong-typed scalar is logged and
replaced by its default, so an empty file is a valid configuration. The
relay port list is the exception: a ``tcp_relay_ports`` that is present but
not an array is an operator mistake and yields no ports at all, which
``DaemonConfig.validate`` turns into a startup failure when the relay is
enabled.

Example file::

    port = 33445
    keys_file_path = "/var/lib/dht-bootstrapd/keys"
    pid_file_path = "/var/run/dht-bootstrapd/dht-bootstrapd.pid"
    enable_ipv6 = true
    enable_ipv4_fallback = true
    enable_lan_discovery = true
    enable_tcp_relay = true
    tcp_relay_ports = [443, 3389, 33445]
    enable_motd = true
    motd = "dht-bootstrapd"

    [[bootstrap_nodes]]
    address = "node.example.org"
    port = 33445
    public_key = "951C88B7E75C867418ACDB5D273821372BB5BD652740BCDF623A4FA293E75D2F"
"""

from __future__ import annotations

import logging
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any

from .. import DAEMON_NAME
from ..core.exceptions import ConfigError, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_PID_FILE_PATH = f"{DAEMON_NAME}.pid"
DEFAULT_KEYS_FILE_PATH = f"{DAEMON_NAME}.keys"
DEFAULT_PORT = 33445
DEFAULT_ENABLE_IPV6 = True
DEFAULT_ENABLE_IPV4_FALLBACK = True
DEFAULT_ENABLE_LAN_DISCOVERY = True
DEFAULT_ENABLE_TCP_RELAY = True
DEFAULT_TCP_RELAY_PORTS = (443, 3389, 33445)
DEFAULT_ENABLE_MOTD = True
DEFAULT_MOTD = DAEMON_NAME

MIN_ALLOWED_PORT = 1
MAX_ALLOWED_PORT = 65535

# Bytes, including the terminating NUL the engine sends on the wire
MAX_MOTD_LENGTH = 256

NAME_PORT = "port"
NAME_PID_FILE_PATH = "pid_file_path"
NAME_KEYS_FILE_PATH = "keys_file_path"
NAME_ENABLE_IPV6 = "enable_ipv6"
NAME_ENABLE_IPV4_FALLBACK = "enable_ipv4_fallback"
NAME_ENABLE_LAN_DISCOVERY = "enable_lan_discovery"
NAME_ENABLE_TCP_RELAY = "enable_tcp_relay"
NAME_TCP_RELAY_PORTS = "tcp_relay_ports"
NAME_ENABLE_MOTD = "enable_motd"
NAME_MOTD = "motd"


class OptionSource(Enum):
    """Where a resolved option value came from."""

    CONFIGURED = "configured"
    DEFAULT = "default"


def is_valid_port(port: int) -> bool:
    return MIN_ALLOWED_PORT <= port <= MAX_ALLOWED_PORT


def check_port(port: Any, field_name: str = NAME_PORT) -> int:
    """Validate a port number.

    Raises:
        ValidationError: If ``port`` isn't an integer in [1, 65535].
    """
    if isinstance(port, bool) or not isinstance(port, int):
        raise ValidationError(f"Invalid '{field_name}': {port!r}, should be an integer", field_name, port)
    if not is_valid_port(port):
        raise ValidationError(
            f"Invalid '{field_name}': {port}, should be in [{MIN_ALLOWED_PORT}, {MAX_ALLOWED_PORT}]",
            field_name,
            port,
        )
    return port


def clamp_motd(text: str) -> str:
    """Cut the MOTD so that its UTF-8 encoding plus a NUL fits MAX_MOTD_LENGTH.

    Anything after an embedded NUL is dropped, as it would be on the wire.
    """
    text = text.split("\x00", 1)[0]
    encoded = text.encode("utf-8")
    if len(encoded) + 1 <= MAX_MOTD_LENGTH:
        return text
    # Drop a multi-byte character split by the cut
    return encoded[: MAX_MOTD_LENGTH - 1].decode("utf-8", errors="ignore")


@dataclass(frozen=True)
class DaemonConfig:
    """Validated, immutable view of the settings file.

    Created once at startup. ``sources`` records, per option name, whether
    the value came from the file or from the default.
    """

    port: int = DEFAULT_PORT
    pid_file_path: str = DEFAULT_PID_FILE_PATH
    keys_file_path: str = DEFAULT_KEYS_FILE_PATH
    enable_ipv6: bool = DEFAULT_ENABLE_IPV6
    enable_ipv4_fallback: bool = DEFAULT_ENABLE_IPV4_FALLBACK
    enable_lan_discovery: bool = DEFAULT_ENABLE_LAN_DISCOVERY
    enable_tcp_relay: bool = DEFAULT_ENABLE_TCP_RELAY
    tcp_relay_ports: tuple[int, ...] = DEFAULT_TCP_RELAY_PORTS
    enable_motd: bool = DEFAULT_ENABLE_MOTD
    motd: str | None = DEFAULT_MOTD
    sources: Mapping[str, OptionSource] = field(
        default_factory=lambda: MappingProxyType({}),
        compare=False,
        repr=False,
    )

    @property
    def motd_bytes(self) -> bytes | None:
        """NUL-terminated MOTD as handed to the engine."""
        if not self.enable_motd or self.motd is None:
            return None
        return clamp_motd(self.motd).encode("utf-8") + b"\x00"

    def source_of(self, name: str) -> OptionSource:
        return self.sources.get(name, OptionSource.DEFAULT)

    def validate(self) -> None:
        """Checks that make the configuration unusable as a whole.

        Raises:
            ConfigError: If the listen port is out of range, or the TCP relay
                is enabled with no usable port.
        """
        try:
            check_port(self.port, NAME_PORT)
        except ValidationError as e:
            raise ConfigError(e.message) from e

        if self.enable_tcp_relay and not self.tcp_relay_ports:
            raise ConfigError("No TCP relay ports read")


# ---------------------------------------------------------------------------
# File parsing
# ---------------------------------------------------------------------------


def read_settings_file(path: str | Path) -> dict[str, Any]:
    """Parse the settings file.

    Raises:
        ConfigError: If the file can't be opened or isn't valid TOML.
    """
    path = Path(path)
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except OSError as e:
        raise ConfigError(f"Couldn't read config file {path}: {e.strerror or e}", path=str(path)) from e
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"{path}: {e}", path=str(path)) from e


def _describe(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class _SettingsReader:
    """Typed lookups against one parsed file, remembering each value's source."""

    _TYPE_NAMES = {int: "an integer", bool: "a boolean", str: "a string"}

    def __init__(self, data: Mapping[str, Any]):
        self._data = data
        self.sources: dict[str, OptionSource] = {}

    def lookup(self, name: str, expected: type, default: Any) -> Any:
        if name not in self._data:
            logger.warning(f"No '{name}' setting in configuration file.")
            return self._use_default(name, default)

        value = self._data[name]
        # bool is a subclass of int, but `port = true` is still a mistake
        if not isinstance(value, expected) or (expected is int and isinstance(value, bool)):
            logger.warning(
                f"'{name}' setting should be {self._TYPE_NAMES[expected]}, "
                f"got {type(value).__name__}."
            )
            return self._use_default(name, default)

        self.sources[name] = OptionSource.CONFIGURED
        return value

    def _use_default(self, name: str, default: Any) -> Any:
        logger.warning(f"Using default '{name}': {_describe(default)}")
        self.sources[name] = OptionSource.DEFAULT
        return default


def _collect_ports(values: list[Any]) -> tuple[int, ...]:
    ports = []
    for i, value in enumerate(values):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            logger.warning(f"Port #{i}: Not a number. Skipping.")
            continue
        if isinstance(value, float) and not value.is_integer():
            logger.warning(f"Port #{i}: Not an integer: {value}. Skipping.")
            continue
        try:
            ports.append(check_port(int(value), NAME_TCP_RELAY_PORTS))
        except ValidationError:
            logger.warning(
                f"Port #{i}: Invalid port: {int(value)}, should be in "
                f"[{MIN_ALLOWED_PORT}, {MAX_ALLOWED_PORT}]. Skipping."
            )
    return tuple(ports)


def parse_tcp_relay_ports(data: Mapping[str, Any], sources: dict[str, OptionSource] | None = None) -> tuple[int, ...]:
    """Read ``tcp_relay_ports``, keeping valid ports in declaration order.

    A missing setting falls back to DEFAULT_TCP_RELAY_PORTS. A setting
    that is present but not an array, or an empty array, yields no ports.
    Duplicates are kept.
    """
    if sources is None:
        sources = {}

    if NAME_TCP_RELAY_PORTS not in data:
        logger.warning(f"No '{NAME_TCP_RELAY_PORTS}' setting in the configuration file.")
        logger.warning(f"Using default '{NAME_TCP_RELAY_PORTS}':")
        for i, port in enumerate(DEFAULT_TCP_RELAY_PORTS):
            logger.info(f"Port #{i}: {port}")
        sources[NAME_TCP_RELAY_PORTS] = OptionSource.DEFAULT
        return _collect_ports(list(DEFAULT_TCP_RELAY_PORTS))

    sources[NAME_TCP_RELAY_PORTS] = OptionSource.CONFIGURED
    ports_array = data[NAME_TCP_RELAY_PORTS]

    if not isinstance(ports_array, list):
        logger.error(
            f"'{NAME_TCP_RELAY_PORTS}' setting should be an array. "
            "Array syntax: 'setting = [value1, value2, ...]'."
        )
        return ()

    if not ports_array:
        logger.error(f"'{NAME_TCP_RELAY_PORTS}' is empty.")
        return ()

    return _collect_ports(ports_array)


def _log_summary(config: DaemonConfig) -> None:
    def line(name: str, value: Any) -> None:
        logger.info(f"'{name}': {_describe(value)} ({config.source_of(name).value})")

    logger.info("Successfully read:")
    line(NAME_PID_FILE_PATH, config.pid_file_path)
    line(NAME_KEYS_FILE_PATH, config.keys_file_path)
    line(NAME_PORT, config.port)
    line(NAME_ENABLE_IPV6, config.enable_ipv6)
    line(NAME_ENABLE_IPV4_FALLBACK, config.enable_ipv4_fallback)
    line(NAME_ENABLE_LAN_DISCOVERY, config.enable_lan_discovery)
    line(NAME_ENABLE_TCP_RELAY, config.enable_tcp_relay)

    # Ports only matter when the relay is on
    if config.enable_tcp_relay:
        if not config.tcp_relay_ports:
            logger.error("No TCP ports could be read.")
        else:
            logger.info(f"Read {len(config.tcp_relay_ports)} TCP ports:")
            for i, port in enumerate(config.tcp_relay_ports):
                logger.info(f"Port #{i}: {port}")

    line(NAME_ENABLE_MOTD, config.enable_motd)
    if config.enable_motd:
        line(NAME_MOTD, config.motd)


def config_from_mapping(data: Mapping[str, Any]) -> DaemonConfig:
    """Resolve every option from an already parsed settings mapping."""
    reader = _SettingsReader(data)

    port = reader.lookup(NAME_PORT, int, DEFAULT_PORT)
    pid_file_path = reader.lookup(NAME_PID_FILE_PATH, str, DEFAULT_PID_FILE_PATH)
    keys_file_path = reader.lookup(NAME_KEYS_FILE_PATH, str, DEFAULT_KEYS_FILE_PATH)
    enable_ipv6 = reader.lookup(NAME_ENABLE_IPV6, bool, DEFAULT_ENABLE_IPV6)
    enable_ipv4_fallback = reader.lookup(NAME_ENABLE_IPV4_FALLBACK, bool, DEFAULT_ENABLE_IPV4_FALLBACK)
    enable_lan_discovery = reader.lookup(NAME_ENABLE_LAN_DISCOVERY, bool, DEFAULT_ENABLE_LAN_DISCOVERY)
    enable_tcp_relay = reader.lookup(NAME_ENABLE_TCP_RELAY, bool, DEFAULT_ENABLE_TCP_RELAY)

    if enable_tcp_relay:
        tcp_relay_ports = parse_tcp_relay_ports(data, reader.sources)
    else:
        tcp_relay_ports = ()

    enable_motd = reader.lookup(NAME_ENABLE_MOTD, bool, DEFAULT_ENABLE_MOTD)
    motd = None
    if enable_motd:
        motd = clamp_motd(reader.lookup(NAME_MOTD, str, DEFAULT_MOTD))

    config = DaemonConfig(
        port=port,
        pid_file_path=pid_file_path,
        keys_file_path=keys_file_path,
        enable_ipv6=enable_ipv6,
        enable_ipv4_fallback=enable_ipv4_fallback,
        enable_lan_discovery=enable_lan_discovery,
        enable_tcp_relay=enable_tcp_relay,
        tcp_relay_ports=tcp_relay_ports,
        enable_motd=enable_motd,
        motd=motd,
        sources=MappingProxyType(dict(reader.sources)),
    )
    _log_summary(config)
    return config


def load_config(path: str | Path) -> DaemonConfig:
    """Load the settings file at ``path`` into a DaemonConfig.

    Raises:
        ConfigError: If the file can't be read or parsed.
    """
    return config_from_mapping(read_settings_file(path))
