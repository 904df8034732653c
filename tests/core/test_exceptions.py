"""Tests for bootstrapd.core.exceptions module."""

from __future__ import annotations

import pytest

from bootstrapd.core.exceptions import (
    BootstrapdException,
    ConfigError,
    DaemonizeError,
    IdentityIOError,
    NetworkInitError,
    ValidationError,
)


class TestBootstrapdException:
    """Tests for the base exception."""

    def test_create_with_message(self):
        exc = BootstrapdException("Something went wrong")
        assert str(exc) == "Something went wrong"
        assert exc.message == "Something went wrong"
        assert exc.details == {}

    def test_to_dict(self):
        exc = BootstrapdException("Boom", details={"stage": "config"})
        assert exc.to_dict() == {
            "error": "BootstrapdException",
            "message": "Boom",
            "details": {"stage": "config"},
        }


class TestStageErrors:
    def test_config_error_records_path(self):
        exc = ConfigError("Couldn't read config file", path="/etc/bootstrapd.conf")
        assert exc.path == "/etc/bootstrapd.conf"
        assert exc.details == {"path": "/etc/bootstrapd.conf"}

    def test_config_error_without_path(self):
        exc = ConfigError("No TCP relay ports read")
        assert exc.path is None
        assert exc.details == {}

    def test_validation_error_records_field_and_value(self):
        exc = ValidationError("Invalid 'port'", field="port", value=0)
        assert exc.field == "port"
        assert exc.value == 0
        assert exc.details == {"field": "port", "value": "0"}

    def test_identity_io_error_records_path(self):
        exc = IdentityIOError("Keys file has the wrong size", path="keys")
        assert exc.to_dict()["details"] == {"path": "keys"}

    @pytest.mark.parametrize(
        "exc_class",
        [ConfigError, ValidationError, IdentityIOError, NetworkInitError, DaemonizeError],
    )
    def test_all_inherit_from_base(self, exc_class):
        assert issubclass(exc_class, BootstrapdException)
        with pytest.raises(BootstrapdException):
            raise exc_class("failure")
