"""Tests for the key manager (bootstrapd.identity.keys)."""

from __future__ import annotations

import os
import stat
from pathlib import Path
from unittest.mock import patch

import pytest

from bootstrapd.core.exceptions import IdentityIOError
from bootstrapd.identity.keys import (
    PUBLIC_KEY_SIZE,
    SECRET_KEY_SIZE,
    Keypair,
    establish_identity,
    generate_keypair,
    load_keypair,
    save_keypair,
)

KEYS_SIZE = PUBLIC_KEY_SIZE + SECRET_KEY_SIZE


# ---------------------------------------------------------------------------
# Keypair
# ---------------------------------------------------------------------------


class TestKeypair:
    def test_generate_sizes(self):
        keypair = generate_keypair()
        assert len(keypair.public_key) == PUBLIC_KEY_SIZE
        assert len(keypair.secret_key) == SECRET_KEY_SIZE

    def test_generated_keypairs_differ(self):
        assert generate_keypair() != generate_keypair()

    def test_file_layout_is_public_then_secret(self):
        keypair = Keypair(public_key=b"\x01" * 32, secret_key=b"\x02" * 32)
        assert keypair.to_bytes() == b"\x01" * 32 + b"\x02" * 32

    def test_from_bytes(self):
        data = bytes(range(64))
        keypair = Keypair.from_bytes(data)
        assert keypair.public_key == data[:32]
        assert keypair.secret_key == data[32:]

    def test_from_bytes_wrong_length(self):
        with pytest.raises(ValueError):
            Keypair.from_bytes(b"\x00" * 63)

    def test_public_key_hex_is_upper_case(self):
        keypair = Keypair(public_key=bytes.fromhex("ab" * 32), secret_key=b"\x00" * 32)
        assert keypair.public_key_hex == "AB" * 32

    def test_repr_hides_secret_key(self):
        keypair = Keypair(public_key=b"\x01" * 32, secret_key=b"\xfe" * 32)
        assert "fe" not in repr(keypair).lower().replace(keypair.public_key_hex.lower(), "")


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------


class TestLoadKeypair:
    def test_exact_size_loads(self, tmp_path: Path):
        path = tmp_path / "keys"
        data = os.urandom(KEYS_SIZE)
        path.write_bytes(data)

        assert load_keypair(path).to_bytes() == data

    @pytest.mark.parametrize("size", [0, 1, 32, KEYS_SIZE - 1, KEYS_SIZE + 1, 128])
    def test_wrong_size_is_refused(self, tmp_path: Path, size: int):
        path = tmp_path / "keys"
        path.write_bytes(b"\x00" * size)

        with pytest.raises(IdentityIOError, match="wrong size") as exc_info:
            load_keypair(path)
        assert exc_info.value.path == str(path)

    def test_unreadable_path(self, tmp_path: Path):
        # A directory where the key file should be
        with pytest.raises(IdentityIOError):
            load_keypair(tmp_path)


class TestSaveKeypair:
    def test_writes_exact_bytes(self, tmp_path: Path):
        path = tmp_path / "keys"
        keypair = generate_keypair()

        save_keypair(keypair, path)

        assert path.read_bytes() == keypair.to_bytes()
        assert not (tmp_path / ".keys.tmp").exists()

    def test_file_is_private(self, tmp_path: Path):
        path = tmp_path / "keys"
        save_keypair(generate_keypair(), path)

        assert stat.S_IMODE(path.stat().st_mode) & 0o077 == 0

    def test_missing_directory(self, tmp_path: Path):
        with pytest.raises(IdentityIOError, match="Couldn't write keys file"):
            save_keypair(generate_keypair(), tmp_path / "missing" / "keys")

    def test_failed_rename_leaves_no_file(self, tmp_path: Path):
        path = tmp_path / "keys"

        with patch("bootstrapd.identity.keys.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(IdentityIOError, match="disk full"):
                save_keypair(generate_keypair(), path)

        assert not path.exists()
        assert not (tmp_path / ".keys.tmp").exists()


# ---------------------------------------------------------------------------
# establish_identity
# ---------------------------------------------------------------------------


class TestEstablishIdentity:
    def test_creates_and_persists_when_absent(self, tmp_path: Path):
        path = tmp_path / "keys"

        keypair = establish_identity(path)

        assert path.read_bytes() == keypair.to_bytes()

    def test_round_trip_across_runs(self, tmp_path: Path):
        path = tmp_path / "keys"

        first = establish_identity(path)
        second = establish_identity(path)

        assert second == first
        assert second.public_key == first.public_key
        assert second.secret_key == first.secret_key

    def test_existing_file_is_not_regenerated(self, tmp_path: Path):
        path = tmp_path / "keys"
        data = os.urandom(KEYS_SIZE)
        path.write_bytes(data)
        calls = []

        def generate():
            calls.append(1)
            return generate_keypair()

        keypair = establish_identity(path, generate=generate)

        assert calls == []
        assert keypair.to_bytes() == data

    def test_truncated_file_fails_and_is_left_alone(self, tmp_path: Path):
        path = tmp_path / "keys"
        path.write_bytes(b"\x00" * 10)

        with pytest.raises(IdentityIOError):
            establish_identity(path)

        assert path.read_bytes() == b"\x00" * 10

    def test_uses_supplied_generator(self, tmp_path: Path):
        fixed = Keypair(public_key=b"\x11" * 32, secret_key=b"\x22" * 32)

        keypair = establish_identity(tmp_path / "keys", generate=lambda: fixed)

        assert keypair is fixed

    def test_generator_with_wrong_sizes_is_refused(self, tmp_path: Path):
        bad = Keypair(public_key=b"\x11" * 16, secret_key=b"\x22" * 32)

        with pytest.raises(IdentityIOError, match="key sizes"):
            establish_identity(tmp_path / "keys", generate=lambda: bad)

        assert not (tmp_path / "keys").exists()

    def test_custom_key_sizes(self, tmp_path: Path):
        path = tmp_path / "keys"
        path.write_bytes(b"\x07" * 96)

        keypair = establish_identity(path, public_key_size=32, secret_key_size=64)

        assert len(keypair.public_key) == 32
        assert len(keypair.secret_key) == 64
