"""Tests for shared validators and diff-suppressors."""
from datetime import timedelta

import pytest

from mcp_routeros.config_engine.errors import CodecInvariantError
from mcp_routeros.config_engine.properties import (
    VALIDATION_AUTO_YES_NO,
    VALIDATION_IP_ADDRESS,
    bool_equal,
    hex_equal,
    int_between,
    string_in_slice,
    time_equal,
    validate_duration,
    validate_hex_number,
    validate_mtu,
)


class TestValidators:
    """Validators return None when the value is fine, else a message."""

    def test_mtu_accepts_auto_and_range(self):
        assert validate_mtu("auto") is None
        assert validate_mtu(1500) is None
        assert validate_mtu("1500") is None
        assert validate_mtu(0) is None
        assert validate_mtu(65535) is None

    def test_mtu_out_of_range_names_value(self):
        message = validate_mtu(70000)
        assert message == "Expected MTU value to be in the range (0 - 65535), got 70000"

    def test_mtu_rejects_garbage(self):
        assert "integer or 'auto'" in validate_mtu("big")
        assert validate_mtu(True) is not None

    def test_int_between(self):
        check = int_between(1, 4094)
        assert check(1) is None
        assert check("4094") is None
        assert "range (1 - 4094)" in check(4095)
        assert "expected an integer" in check("ten")

    def test_string_in_slice(self):
        check = string_in_slice(["rstp", "stp"])
        assert check("rstp") is None
        assert "expected one of" in check("mstp")
        assert string_in_slice(["Yes"], ignore_case=True)("yes") is None

    def test_auto_yes_no(self):
        assert VALIDATION_AUTO_YES_NO("auto") is None
        assert VALIDATION_AUTO_YES_NO("maybe") is not None

    def test_ip_address(self):
        assert VALIDATION_IP_ADDRESS("192.168.88.1/24") is None
        assert VALIDATION_IP_ADDRESS("10.0.0.1") is None
        assert VALIDATION_IP_ADDRESS("") is None
        assert VALIDATION_IP_ADDRESS("300.1.1.1") is not None

    def test_duration(self):
        assert validate_duration("1h30m") is None
        assert validate_duration(90) is None
        assert validate_duration(timedelta(seconds=5)) is None
        assert validate_duration(-1) is not None
        assert validate_duration("soon") is not None
        assert validate_duration(False) is not None

    def test_hex_number(self):
        assert validate_hex_number("0x8100") is None
        assert validate_hex_number("33024") is None
        assert validate_hex_number(2048) is None
        assert validate_hex_number("") is None
        assert "0x8100" in validate_hex_number("zzz")
        assert validate_hex_number(True) is not None


class TestSuppressors:
    """Diff-suppressors decide semantic equality of wire strings."""

    def test_time_equal(self):
        assert time_equal("1h", "3600s")
        assert not time_equal("1h", "2h")
        assert not time_equal("", "1h")
        assert time_equal("", "")

    def test_time_equal_unparseable_is_invariant_violation(self):
        with pytest.raises(CodecInvariantError):
            time_equal("1h", "soon")

    def test_hex_equal(self):
        assert hex_equal("0x8100", "33024")
        assert hex_equal("0x88a8", "0x88A8")
        assert not hex_equal("0x8100", "0x88a8")
        assert not hex_equal("", "0x8100")

    def test_hex_equal_unparseable_is_invariant_violation(self):
        with pytest.raises(CodecInvariantError):
            hex_equal("0x8100", "zz")

    def test_bool_equal(self):
        assert bool_equal("true", "yes")
        assert bool_equal("no", "false")
        assert bool_equal("True", "true")
        assert not bool_equal("true", "no")
        assert not bool_equal("maybe", "yes")
