"""Tests for the property codec."""
from datetime import timedelta

import pytest

from mcp_routeros.config_engine import (
    DecodeError,
    Field,
    FieldType,
    ResourceSchema,
    ValidationError,
    define,
)
from mcp_routeros.config_engine.codec import PropertyCodec
from mcp_routeros.config_engine.properties import hex_equal, time_equal
from mcp_routeros.config_engine.schema import Encoding, FieldMode


@pytest.fixture
def codec():
    return PropertyCodec()


@pytest.fixture
def scheduler():
    return define("system_scheduler")


@pytest.fixture
def bridge():
    return define("interface_bridge")


class TestEncode:
    """Typed instance -> device record."""

    def test_wire_names_are_kebab_case(self, codec, scheduler):
        record = codec.encode({"name": "s1", "on_event": "myscript", "start_time": "startup"}, scheduler)
        assert record == {"name": "s1", "on-event": "myscript", "start-time": "startup"}

    def test_none_values_skipped(self, codec, scheduler):
        record = codec.encode({"name": "s1", "comment": None}, scheduler)
        assert record == {"name": "s1"}

    def test_bool_true_false(self, codec, scheduler):
        assert codec.encode({"disabled": True}, scheduler) == {"disabled": "true"}
        assert codec.encode({"disabled": False}, scheduler) == {"disabled": "false"}

    def test_bool_yes_no_convention(self, codec):
        schema = define("ip_dhcp_client")
        record = codec.encode({"use_peer_dns": False, "use_peer_ntp": True}, schema)
        assert record == {"use-peer-dns": "no", "use-peer-ntp": "yes"}

    def test_list_joined(self, codec, scheduler):
        record = codec.encode({"policy": ["read", "write", "test"]}, scheduler)
        assert record == {"policy": "read,write,test"}

    def test_map_fragments(self, codec):
        schema = ResourceSchema(
            kind="test_map",
            path="/test",
            fields={"options": Field(type=FieldType.MAP)},
        )
        record = codec.encode({"options": {"a": "1", "b": "2"}}, schema)
        assert record == {"options": "a=1,b=2"}

    def test_duration_from_seconds_and_text(self, codec, scheduler):
        assert codec.encode({"interval": 3600}, scheduler) == {"interval": "1h"}
        assert codec.encode({"interval": timedelta(minutes=5)}, scheduler) == {"interval": "5m"}
        assert codec.encode({"interval": "1h30m"}, scheduler) == {"interval": "1h30m"}

    def test_duration_invalid(self, codec, scheduler):
        with pytest.raises(ValidationError) as exc:
            codec.encode({"interval": "soon"}, scheduler)
        assert exc.value.field == "interval"

    def test_mtu_auto_and_number(self, codec, bridge):
        assert codec.encode({"mtu": "auto"}, bridge) == {"mtu": "auto"}
        assert codec.encode({"mtu": 1500}, bridge) == {"mtu": "1500"}

    def test_mtu_out_of_range(self, codec, bridge):
        with pytest.raises(ValidationError) as exc:
            codec.encode({"mtu": 70000}, bridge)
        assert "got 70000" in str(exc.value)
        assert exc.value.kind == "interface_bridge"

    def test_hex_from_int(self, codec, bridge):
        assert codec.encode({"ether_type": 0x8100}, bridge) == {"ether-type": "0x8100"}

    def test_hex_rejects_non_number(self, codec, bridge):
        with pytest.raises(ValidationError) as exc:
            codec.encode({"ether_type": "zzz"}, bridge)
        assert exc.value.field == "ether_type"
        assert codec.encode({"ether_type": "0x88a8"}, bridge) == {"ether-type": "0x88a8"}

    def test_int_field(self, codec):
        schema = define("interface_vlan")
        assert codec.encode({"vlan_id": 100}, schema) == {"vlan-id": "100"}
        with pytest.raises(ValidationError):
            codec.encode({"vlan_id": 5000}, schema)

    def test_unknown_field_rejected(self, codec, scheduler):
        with pytest.raises(ValidationError) as exc:
            codec.encode({"name": "s1", "colour": "blue"}, scheduler)
        assert "unknown field 'colour'" in exc.value.errors

    def test_computed_field_not_sent(self, codec, scheduler):
        assert codec.encode({"name": "s1", "run_count": "3"}, scheduler) == {"name": "s1"}

    def test_write_only_excluded_on_request(self, codec):
        schema = define("ip_firewall_filter")
        instance = {"chain": "input", "place_before": "*3"}
        assert codec.encode(instance, schema) == {"chain": "input", "place-before": "*3"}
        assert codec.encode(instance, schema, include_write_only=False) == {"chain": "input"}

    def test_wrong_type(self, codec, scheduler):
        with pytest.raises(ValidationError):
            codec.encode({"disabled": "yes"}, scheduler)


class TestDecode:
    """Device record -> typed instance."""

    def test_round_trip(self, codec, scheduler):
        instance = {
            "name": "s1",
            "on_event": "myscript",
            "interval": "1h",
            "policy": ["read", "test"],
            "disabled": False,
        }
        assert codec.decode(codec.encode(instance, scheduler), scheduler) == instance

    def test_id_and_undeclared_keys_dropped(self, codec, scheduler):
        record = {".id": "*1", "name": "s1", "something-new": "x"}
        assert codec.decode(record, scheduler) == {"name": "s1"}

    def test_computed_fields_decoded(self, codec, scheduler):
        record = {"name": "s1", "run-count": "0", "next-run": "2026-01-02 00:00:00"}
        instance = codec.decode(record, scheduler)
        assert instance["run_count"] == "0"
        assert instance["next_run"] == "2026-01-02 00:00:00"

    def test_bool_both_conventions(self, codec):
        schema = define("ip_dhcp_client")
        instance = codec.decode({"use-peer-dns": "yes", "disabled": "true"}, schema)
        assert instance == {"use_peer_dns": True, "disabled": True}

    def test_empty_list(self, codec, scheduler):
        assert codec.decode({"policy": ""}, scheduler) == {"policy": []}

    def test_mtu_auto_and_number(self, codec, bridge):
        assert codec.decode({"mtu": "auto"}, bridge) == {"mtu": "auto"}
        assert codec.decode({"mtu": "1500"}, bridge) == {"mtu": 1500}

    def test_mtu_non_numeric(self, codec, bridge):
        with pytest.raises(DecodeError) as exc:
            codec.decode({"mtu": "big"}, bridge)
        assert exc.value.field == "mtu"

    def test_mtu_out_of_range(self, codec, bridge):
        with pytest.raises(DecodeError) as exc:
            codec.decode({"mtu": "70000"}, bridge)
        assert "got 70000" in str(exc.value)

    def test_int_field(self, codec):
        schema = define("interface_vlan")
        assert codec.decode({"vlan-id": "100", "l2mtu": "1588"}, schema) == {"vlan_id": 100, "l2mtu": 1588}
        with pytest.raises(DecodeError):
            codec.decode({"vlan-id": "ten"}, schema)

    def test_bool_garbage(self, codec, scheduler):
        with pytest.raises(DecodeError):
            codec.decode({"disabled": "maybe"}, scheduler)

    def test_duration_garbage(self, codec, scheduler):
        with pytest.raises(DecodeError):
            codec.decode({"interval": "soon"}, scheduler)

    def test_map_fragments(self, codec):
        schema = ResourceSchema(
            kind="test_map",
            path="/test",
            fields={"options": Field(type=FieldType.MAP)},
        )
        assert codec.decode({"options": "a=1,b=2"}, schema) == {"options": {"a": "1", "b": "2"}}
        with pytest.raises(DecodeError):
            codec.decode({"options": "a"}, schema)


class TestRoundTripUnderSuppression:
    """Device-side normalisation is invisible through the suppressors."""

    def test_interval_echoed_in_seconds(self, codec, scheduler):
        sent = codec.encode({"interval": "1h"}, scheduler)["interval"]
        echoed = codec.decode({"interval": "3600s"}, scheduler)["interval"]
        assert sent != echoed
        assert time_equal(echoed, sent)

    def test_ether_type_echoed_in_decimal(self, codec, bridge):
        sent = codec.encode({"ether_type": "0x8100"}, bridge)["ether-type"]
        assert hex_equal("33024", sent)

    def test_field_declared_computed_is_not_encoded(self, codec):
        schema = ResourceSchema(
            kind="test_computed",
            path="/test",
            fields={
                "name": Field(),
                "counter": Field(type=FieldType.INT, mode=FieldMode.COMPUTED),
                "period": Field(encoding=Encoding.DURATION),
            },
        )
        record = codec.encode({"name": "a", "counter": 4, "period": 60}, schema)
        assert record == {"name": "a", "period": "1m"}
