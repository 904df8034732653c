# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Node identity: the long-term keypair the DHT knows this node by."""

from bootstrapd.identity.keys import (
    PUBLIC_KEY_SIZE,
    SECRET_KEY_SIZE,
    Keypair,
    establish_identity,
    generate_keypair,
)

__all__ = [
    "PUBLIC_KEY_SIZE",
    "SECRET_KEY_SIZE",
    "Keypair",
    "establish_identity",
    "generate_keypair",
]
