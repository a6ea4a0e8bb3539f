"""Tests for resource schemas and the registry."""
import pytest

from mcp_routeros.config_engine import (
    REGISTRY,
    Field,
    IdType,
    Placement,
    ResourceRegistry,
    ResourceSchema,
    define,
    fields,
)
from mcp_routeros.config_engine.schema import FieldMode


class TestResourceSchema:
    """Tests for ResourceSchema."""

    def test_remote_names(self):
        schema = define("system_scheduler")
        assert schema.remote_name("on_event") == "on-event"
        assert schema.field_name("run-count") == "run_count"
        assert schema.field_name(".id") is None

    def test_explicit_remote_name(self):
        schema = ResourceSchema(
            kind="test_override",
            path="/test",
            fields={"ident": Field(remote_name=".about")},
        )
        assert schema.remote_name("ident") == ".about"
        assert schema.field_name(".about") == "ident"

    def test_field_order_kept(self):
        schema = define("system_scheduler")
        assert list(schema.fields)[:3] == ["name", "on_event", "interval"]

    def test_required_and_computed(self):
        schema = define("system_scheduler")
        assert schema.required_fields == ["name", "on_event"]
        assert set(schema.computed_fields) == {"owner", "run_count", "next_run"}

    def test_fields_are_read_only(self):
        schema = define("system_scheduler")
        with pytest.raises(TypeError):
            schema.fields["extra"] = Field()

    def test_natural_key_must_be_declared(self):
        with pytest.raises(ValueError):
            ResourceSchema(
                kind="broken",
                path="/broken",
                id_type=IdType.NAME,
                fields={"comment": Field()},
            )

    def test_ordered_kind(self):
        assert define("ip_firewall_filter").ordered
        assert define("ip_firewall_filter").placement == Placement.MOVE
        assert not define("ip_address").ordered

    def test_to_dict(self):
        described = define("system_scheduler").to_dict()
        assert described["path"] == "/system/scheduler"
        assert described["id_type"] == "name"
        assert described["key_field"] == "name"
        assert described["fields"]["run_count"]["mode"] == FieldMode.COMPUTED.value
        assert described["fields"]["interval"]["suppresses_diff"] is True

    def test_opaque_id_kind_describes_id_key(self):
        assert define("ip_address").to_dict()["key_field"] == ".id"


class TestRegistry:
    """Tests for the shipped registry."""

    def test_shipped_kinds(self):
        assert set(REGISTRY.kinds()) == {
            "system_scheduler",
            "system_script",
            "interface_bridge",
            "interface_vlan",
            "ip_address",
            "ip_dhcp_client",
            "ip_firewall_filter",
        }

    def test_define_is_pure_lookup(self):
        assert define("ip_address") is define("ip_address")

    def test_unknown_kind(self):
        with pytest.raises(KeyError):
            define("ip_route_magic")

    def test_contains(self):
        assert "ip_address" in REGISTRY
        assert "nope" not in REGISTRY

    def test_fields_introspection(self):
        described = fields("interface_vlan")
        assert described["fields"]["vlan_id"]["type"] == "int"
        assert described["fields"]["vlan_id"]["mode"] == "required"

    def test_duplicate_kind_rejected(self):
        schema = define("ip_address")
        with pytest.raises(ValueError):
            ResourceRegistry([schema, schema])
