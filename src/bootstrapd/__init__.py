# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""dht-bootstrapd - bootstrap node daemon for a DHT overlay network.

The daemon reads an operator settings file, loads or creates the node's
long-term identity, seeds the network engine with known entry points and
then drives the engine from a perpetual service loop.

Startup:
  settings file (TOML)
    → DaemonConfig (validated, immutable)
    → Keypair (loaded or generated once)
    → NetworkEngine (IPv6 with a single IPv4 fallback)
    → bootstrap_nodes seeded into the engine
    → detach into the background
    → LifecycleScheduler ticks forever

The DHT, onion announce, TCP relay and socket I/O come from an installed
network engine plugin (see ``bootstrapd.network.engine``).

CLI entry point: ``dht-bootstrapd``
"""

__version__ = "0.3.0"

DAEMON_NAME = "dht-bootstrapd"

# Numeric version advertised to peers alongside the MOTD (YYYYMMDDXX).
DAEMON_VERSION_NUMBER = 2026101900
