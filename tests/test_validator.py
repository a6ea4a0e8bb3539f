"""Tests for pre-flight validation."""
import pytest

from mcp_routeros.config_engine import Placement, ResourceSchema, ValidationError, define
from mcp_routeros.config_engine.validator import ConfigValidator, check_identity_value


@pytest.fixture
def scheduler():
    return ConfigValidator(define("system_scheduler"))


class TestConfigValidator:
    """Tests for ConfigValidator.validate()."""

    def test_valid_instance(self, scheduler):
        result = scheduler.validate({"name": "s1", "on_event": "myscript", "interval": "1h"})
        assert result.valid
        assert result.errors == []

    def test_missing_required(self, scheduler):
        result = scheduler.validate({"name": "s1"})
        assert not result.valid
        assert "Missing required field: on_event" in result.errors

    def test_empty_required(self, scheduler):
        result = scheduler.validate({"name": "", "on_event": "x"})
        assert "Missing required field: name" in result.errors

    def test_partial_skips_required(self, scheduler):
        assert scheduler.validate({"interval": "2h"}, partial=True).valid

    def test_unknown_field(self, scheduler):
        result = scheduler.validate({"name": "s1", "on_event": "x", "colour": "blue"})
        assert "Unknown field 'colour' for system_scheduler" in result.errors

    def test_computed_field_supplied(self, scheduler):
        result = scheduler.validate({"name": "s1", "on_event": "x", "run_count": "5"})
        assert any("computed" in e for e in result.errors)

    def test_wrong_type(self, scheduler):
        result = scheduler.validate({"name": "s1", "on_event": "x", "disabled": "no"})
        assert any("Invalid type for 'disabled'" in e for e in result.errors)

    def test_bool_is_not_int(self):
        validator = ConfigValidator(define("interface_vlan"))
        result = validator.validate({"name": "v", "interface": "ether1", "vlan_id": True})
        assert not result.valid

    def test_validator_message(self):
        validator = ConfigValidator(define("interface_bridge"))
        result = validator.validate({"name": "br0", "mtu": 70000})
        assert result.errors == [
            "Invalid value for 'mtu': Expected MTU value to be in the range (0 - 65535), got 70000"
        ]

    def test_mtu_auto_and_number(self):
        validator = ConfigValidator(define("interface_bridge"))
        assert validator.validate({"name": "br0", "mtu": "auto"}).valid
        assert validator.validate({"name": "br0", "mtu": 1500}).valid

    def test_all_errors_reported(self, scheduler):
        result = scheduler.validate({"interval": "soon", "colour": "blue"})
        assert len(result.errors) == 4

    def test_check_raises(self, scheduler):
        with pytest.raises(ValidationError) as exc:
            scheduler.check({"name": "s1"})
        assert exc.value.kind == "system_scheduler"
        assert exc.value.errors == ["Missing required field: on_event"]


class TestDefaultsAndPlacement:
    """Defaults and placement warnings."""

    def test_with_defaults(self, scheduler):
        instance = scheduler.with_defaults({"name": "s1", "on_event": "x"})
        assert instance["interval"] == "0s"
        assert instance["disabled"] is False
        assert "run_count" not in instance

    def test_defaults_do_not_override(self, scheduler):
        assert scheduler.with_defaults({"interval": "1h"})["interval"] == "1h"

    def test_list_default_copied(self):
        validator = ConfigValidator(define("system_script"))
        first = validator.with_defaults({})
        first["policy"].append("reboot")
        assert validator.with_defaults({})["policy"] == ["read", "write", "test"]

    def test_place_before_on_ordered_kind(self):
        result = ConfigValidator(define("ip_firewall_filter")).validate(
            {"chain": "input", "place_before": "*1"}
        )
        assert result.valid
        assert result.warnings == []

    def test_recreate_placement_warns(self):
        firewall = define("ip_firewall_filter")
        schema = ResourceSchema(
            kind="recreated_rule",
            path=firewall.path,
            fields=firewall.fields,
            placement=Placement.RECREATE,
        )
        result = ConfigValidator(schema).validate({"chain": "input", "place_before": "*1"})
        assert result.valid
        assert len(result.warnings) == 1
        assert "new identity" in result.warnings[0]


class TestIdentityValue:
    """Tests for check_identity_value()."""

    def test_opaque_id_required(self):
        with pytest.raises(ValidationError):
            check_identity_value(define("ip_address"), "10.0.0.1/24")
        check_identity_value(define("ip_address"), "*1")

    def test_named_kind_accepts_either(self):
        check_identity_value(define("system_scheduler"), "sched1")
        check_identity_value(define("system_scheduler"), "*1")

    def test_empty_rejected(self):
        with pytest.raises(ValidationError):
            check_identity_value(define("system_scheduler"), "")
