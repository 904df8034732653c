"""Global test fixtures for the dht-bootstrapd test suite."""

from __future__ import annotations

import logging
import os
from collections.abc import Sequence
from pathlib import Path

import pytest

from bootstrapd.core.config import clear_config_cache
from bootstrapd.core.exceptions import NetworkInitError
from bootstrapd.identity.keys import Keypair, generate_keypair

VALID_KEY_HEX = "951C88B7E75C867418ACDB5D273821372BB5BD652740BCDF623A4FA293E75D2F"


# ============================================================================
# Fake network engine
# ============================================================================


class FakeRelay:
    """Records relay iterations."""

    def __init__(self, ports: Sequence[int], enable_ipv6: bool):
        self.ports = tuple(ports)
        self.enable_ipv6 = enable_ipv6
        self.iterations = 0

    def iterate(self) -> None:
        self.iterations += 1


class FakeEngine:
    """In-memory stand-in for a DHT engine, recording every call."""

    public_key_size = 32

    def __init__(self, keypair: Keypair | None = None, port: int = 33445, enable_ipv6: bool = True):
        self.keypair = keypair
        self.port = port
        self.enable_ipv6 = enable_ipv6
        self.calls: list[str] = []
        self.bootstrapped: list[tuple[str, bool, int, bytes]] = []
        self.unresolvable: set[str] = set()
        self.connections = 0
        self.lan_broadcasts: list[int] = []
        self.motd: tuple[int, bytes] | None = None
        self.accept_motd = True
        self.relay: FakeRelay | None = None
        self.fail_relay = False

    def iterate(self) -> None:
        self.calls.append("iterate")

    def poll(self) -> None:
        self.calls.append("poll")

    def bootstrap_from_address(self, address, enable_ipv6, port, public_key) -> bool:
        if address in self.unresolvable:
            return False
        self.bootstrapped.append((address, enable_ipv6, port, public_key))
        return True

    def connection_count(self) -> int:
        return self.connections

    def init_lan_discovery(self) -> None:
        self.calls.append("init_lan_discovery")

    def send_lan_discovery(self, port: int) -> None:
        self.calls.append("send_lan_discovery")
        self.lan_broadcasts.append(port)

    def set_motd(self, version: int, motd: bytes) -> bool:
        self.motd = (version, motd)
        return self.accept_motd

    def create_relay(self, ports, enable_ipv6) -> FakeRelay:
        if self.fail_relay:
            raise OSError("address already in use")
        self.relay = FakeRelay(ports, enable_ipv6)
        return self.relay


class FakeEngineFactory:
    """Engine factory whose bind can be made to fail per address family."""

    public_key_size = 32
    secret_key_size = 32

    def __init__(self, fail_ipv6: bool = False, fail_ipv4: bool = False):
        self.fail_ipv6 = fail_ipv6
        self.fail_ipv4 = fail_ipv4
        self.created: list[FakeEngine] = []
        self.attempts: list[bool] = []
        self.generated = 0

    def generate_keypair(self) -> Keypair:
        self.generated += 1
        return generate_keypair()

    def create(self, keypair: Keypair, port: int, enable_ipv6: bool) -> FakeEngine:
        self.attempts.append(enable_ipv6)
        if enable_ipv6 and self.fail_ipv6:
            raise NetworkInitError("Couldn't bind IPv6 socket")
        if not enable_ipv6 and self.fail_ipv4:
            raise OSError(98, "Address already in use")
        engine = FakeEngine(keypair, port, enable_ipv6)
        self.created.append(engine)
        return engine


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture(autouse=True)
def reset_config():
    """Drop the cached CoreSettings around every test."""
    clear_config_cache()
    yield
    clear_config_cache()


@pytest.fixture(autouse=True)
def reset_package_logger():
    """Leave the bootstrapd logger without handlers and at NOTSET after each test."""
    yield
    package_logger = logging.getLogger("bootstrapd")
    for handler in package_logger.handlers[:]:
        package_logger.removeHandler(handler)
        handler.close()
    package_logger.setLevel(logging.NOTSET)


@pytest.fixture
def clean_env(monkeypatch):
    """Remove all BOOTSTRAPD_ environment variables."""
    for key in list(os.environ.keys()):
        if key.startswith("BOOTSTRAPD_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def fake_engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture
def engine_factory() -> FakeEngineFactory:
    return FakeEngineFactory()


@pytest.fixture
def make_engine_factory():
    """Factory for FakeEngineFactory with configurable bind failures."""

    def factory(fail_ipv6: bool = False, fail_ipv4: bool = False) -> FakeEngineFactory:
        return FakeEngineFactory(fail_ipv6=fail_ipv6, fail_ipv4=fail_ipv4)

    return factory


@pytest.fixture
def make_fake_engine():
    def factory(**kwargs) -> FakeEngine:
        return FakeEngine(**kwargs)

    return factory


@pytest.fixture
def valid_key_hex() -> str:
    return VALID_KEY_HEX


@pytest.fixture
def write_settings(tmp_path: Path):
    """Write a TOML settings file and return its path."""

    def writer(content: str = "", name: str = "bootstrapd.conf") -> Path:
        path = tmp_path / name
        path.write_text(content)
        return path

    return writer
