# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Lifecycle scheduler - the daemon's perpetual service loop.

Each tick:
1. advances the DHT
2. broadcasts a LAN discovery packet if enabled and the interval has passed
3. advances the TCP relay if enabled
4. drains pending datagrams into the engine
5. notes the first time the DHT reports a live connection

then sleeps for the nominal interval. Every engine call is a non-blocking
poll; a slow call delays the whole loop. The loop only ends when the
process is signalled, and nothing is flushed on the way out.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from enum import Enum

from ..daemon.config import DaemonConfig
from .engine import NetworkEngine, RelayServer

logger = logging.getLogger(__name__)

DEFAULT_TICK_INTERVAL = 0.030  # 30 ms
DEFAULT_LAN_DISCOVERY_INTERVAL = 10.0


class LifecycleState(Enum):
    """Coarse connection state; only ever moves forward."""

    AWAITING_CONNECTION = "awaiting-connection"
    CONNECTED = "connected"


class LifecycleScheduler:
    """Drives the network engine from a single thread of control."""

    def __init__(
        self,
        engine: NetworkEngine,
        config: DaemonConfig,
        relay: RelayServer | None = None,
        tick_interval: float = DEFAULT_TICK_INTERVAL,
        lan_discovery_interval: float = DEFAULT_LAN_DISCOVERY_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
    ):
        if config.enable_tcp_relay and relay is None:
            raise ValueError("TCP relay is enabled but no relay server was given")

        self.engine = engine
        self.config = config
        self.relay = relay
        self.tick_interval = tick_interval
        self.lan_discovery_interval = lan_discovery_interval
        self._clock = clock

        self.state = LifecycleState.AWAITING_CONNECTION
        self.tick_count = 0
        self._last_lan_discovery: float | None = None
        self._started = False

    @property
    def connected(self) -> bool:
        return self.state is LifecycleState.CONNECTED

    def start(self) -> None:
        """One-time setup before the first tick."""
        if self._started:
            return
        self._started = True
        if self.config.enable_lan_discovery:
            self.engine.init_lan_discovery()
            logger.info("Initialized LAN discovery.")

    def _lan_discovery_due(self, now: float) -> bool:
        if self._last_lan_discovery is None:
            return True
        return now - self._last_lan_discovery >= self.lan_discovery_interval

    def tick(self) -> None:
        """Run one iteration of the service loop, without the sleep."""
        self.engine.iterate()

        if self.config.enable_lan_discovery:
            now = self._clock()
            if self._lan_discovery_due(now):
                self.engine.send_lan_discovery(self.config.port)
                self._last_lan_discovery = now

        if self.relay is not None:
            self.relay.iterate()

        self.engine.poll()

        if self.state is LifecycleState.AWAITING_CONNECTION and self.engine.connection_count() > 0:
            self.state = LifecycleState.CONNECTED
            logger.info("Connected to other bootstrap node successfully.")

        self.tick_count += 1

    async def run_forever(self) -> None:
        """Tick at the nominal cadence until the process is killed."""
        self.start()
        while True:
            self.tick()
            await asyncio.sleep(self.tick_interval)
