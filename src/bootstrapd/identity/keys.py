# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Key manager - load or create the node's identity keypair.

The key file is raw binary: the public key followed by the secret key,
nothing else. An existing file of any other length is refused rather than
turned into a partial identity. A new keypair is written to a temporary
sibling and renamed into place, so a failed write never leaves a file that
looks valid on the next run.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from cryptography.hazmat.primitives.asymmetric.x25519 import X25519PrivateKey
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
    PublicFormat,
)

from ..core.exceptions import IdentityIOError

logger = logging.getLogger(__name__)

# Curve25519 box keys
PUBLIC_KEY_SIZE = 32
SECRET_KEY_SIZE = 32

_KEY_FILE_MODE = 0o600


@dataclass(frozen=True)
class Keypair:
    """Fixed-size public/secret key pair."""

    public_key: bytes
    secret_key: bytes

    def __repr__(self) -> str:
        return f"Keypair(public_key={self.public_key_hex})"

    @property
    def public_key_hex(self) -> str:
        """Upper-case hex of the public key, as peers write it in their configs."""
        return self.public_key.hex().upper()

    def to_bytes(self) -> bytes:
        """Key file layout: public key first, then secret key."""
        return self.public_key + self.secret_key

    @classmethod
    def from_bytes(
        cls,
        data: bytes,
        public_key_size: int = PUBLIC_KEY_SIZE,
        secret_key_size: int = SECRET_KEY_SIZE,
    ) -> Keypair:
        expected = public_key_size + secret_key_size
        if len(data) != expected:
            raise ValueError(f"expected {expected} bytes of key material, got {len(data)}")
        return cls(public_key=data[:public_key_size], secret_key=data[public_key_size:])


def generate_keypair() -> Keypair:
    """Generate a fresh X25519 keypair."""
    private = X25519PrivateKey.generate()
    return Keypair(
        public_key=private.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw),
        secret_key=private.private_bytes(Encoding.Raw, PrivateFormat.Raw, NoEncryption()),
    )


def load_keypair(
    path: str | Path,
    public_key_size: int = PUBLIC_KEY_SIZE,
    secret_key_size: int = SECRET_KEY_SIZE,
) -> Keypair:
    """Read a keypair from an existing key file.

    Raises:
        IdentityIOError: If the file can't be read or has the wrong size.
    """
    path = Path(path)
    expected = public_key_size + secret_key_size

    try:
        with open(path, "rb") as f:
            # Read one byte past the expected size so oversized files are caught
            data = f.read(expected + 1)
    except OSError as e:
        raise IdentityIOError(f"Couldn't read keys file: {e}", path=str(path)) from e

    if len(data) != expected:
        raise IdentityIOError(
            f"Keys file has the wrong size: expected {expected} bytes, "
            f"got {len(data)}{'+' if len(data) > expected else ''}",
            path=str(path),
        )

    return Keypair.from_bytes(data, public_key_size, secret_key_size)


def save_keypair(keypair: Keypair, path: str | Path) -> None:
    """Persist a keypair, replacing ``path`` only after a complete write.

    Raises:
        IdentityIOError: On a short write or any OS error.
    """
    path = Path(path)
    temp_path = path.with_name(f".{path.name}.tmp")
    data = keypair.to_bytes()

    try:
        fd = os.open(temp_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, _KEY_FILE_MODE)
        with os.fdopen(fd, "wb") as f:
            written = f.write(data)
            f.flush()
            os.fsync(f.fileno())
        if written != len(data):
            raise IdentityIOError(
                f"Short write to keys file: {written} of {len(data)} bytes",
                path=str(path),
            )
        os.replace(temp_path, path)
    except OSError as e:
        temp_path.unlink(missing_ok=True)
        raise IdentityIOError(f"Couldn't write keys file: {e}", path=str(path)) from e
    except IdentityIOError:
        temp_path.unlink(missing_ok=True)
        raise


def establish_identity(
    path: str | Path,
    generate: Callable[[], Keypair] = generate_keypair,
    public_key_size: int = PUBLIC_KEY_SIZE,
    secret_key_size: int = SECRET_KEY_SIZE,
) -> Keypair:
    """Load the node identity from ``path``, creating it if the file is absent.

    Called once per process. An existing key file is never regenerated or
    rewritten.

    Args:
        path: Key file location.
        generate: Key generation primitive, normally the engine's.
        public_key_size: Expected public key length in bytes.
        secret_key_size: Expected secret key length in bytes.

    Returns:
        The node's keypair.

    Raises:
        IdentityIOError: If an existing file has the wrong size or a new
            one can't be written.
    """
    path = Path(path)

    if path.exists():
        keypair = load_keypair(path, public_key_size, secret_key_size)
        logger.info(f"Loaded keys from {path}")
        return keypair

    keypair = generate()
    if len(keypair.public_key) != public_key_size or len(keypair.secret_key) != secret_key_size:
        raise IdentityIOError(
            "Generated keypair doesn't match the expected key sizes",
            path=str(path),
        )

    save_keypair(keypair, path)
    logger.info(f"Generated new keys and saved them to {path}")
    return keypair
