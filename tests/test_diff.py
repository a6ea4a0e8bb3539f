"""Tests for the diff engine and plan summaries."""
import pytest

from mcp_routeros.config_engine import (
    ChangeType,
    CommandPlan,
    Identity,
    define,
)
from mcp_routeros.config_engine.diff import DiffEngine, summarize_diff, summarize_plan
from mcp_routeros.config_engine.schema import Command, FieldChange, Operation


@pytest.fixture
def diff():
    return DiffEngine()


class TestDiffEngine:
    """Tests for DiffEngine.calculate()."""

    def test_equal_records(self, diff):
        schema = define("system_scheduler")
        record = {"name": "s1", "on-event": "x", "interval": "1h"}
        assert diff.calculate(schema, record, dict(record)) == []

    def test_duration_suppressed(self, diff):
        schema = define("system_scheduler")
        desired = {"name": "s1", "interval": "1h"}
        observed = {"name": "s1", "interval": "3600s"}
        assert diff.calculate(schema, desired, observed) == []

    def test_duration_changed(self, diff):
        schema = define("system_scheduler")
        changes = diff.calculate(schema, {"interval": "2h"}, {"interval": "1h"})
        assert changes == [FieldChange(field="interval", old="1h", new="2h")]

    def test_only_desired_fields_compared(self, diff):
        schema = define("system_scheduler")
        observed = {"name": "s1", "comment": "set by hand", "run-count": "9"}
        assert diff.calculate(schema, {"name": "s1"}, observed) == []

    def test_absent_equals_empty(self, diff):
        schema = define("system_scheduler")
        assert diff.calculate(schema, {"comment": ""}, {}) == []

    def test_absent_differs_from_value(self, diff):
        schema = define("system_scheduler")
        changes = diff.calculate(schema, {"comment": "hi"}, {})
        assert changes == [FieldChange(field="comment", old=None, new="hi")]

    def test_write_only_not_compared(self, diff):
        schema = define("ip_firewall_filter")
        desired = {"chain": "input", "place-before": "*3"}
        assert diff.calculate(schema, desired, {"chain": "input"}) == []

    def test_hex_suppressed(self, diff):
        schema = define("interface_bridge")
        assert diff.calculate(schema, {"ether-type": "0x8100"}, {"ether-type": "33024"}) == []

    def test_equal_uses_suppressor(self, diff):
        schema = define("system_scheduler")
        assert diff.equal(schema, "interval", "1h", "3600s")
        assert not diff.equal(schema, "interval", "1h", "2h")
        assert not diff.equal(schema, "name", "a", "b")

    def test_bool_compared_by_value(self, diff):
        schema = define("ip_dhcp_client")
        desired = {"interface": "ether1", "use-peer-dns": "yes"}
        observed = {"interface": "ether1", "use-peer-dns": "true"}
        assert diff.calculate(schema, desired, observed) == []
        assert diff.equal(schema, "use_peer_dns", "no", "false")
        assert not diff.equal(schema, "use_peer_dns", "true", "no")


class TestSummaries:
    """Human-readable plan output."""

    def test_no_changes(self):
        plan = CommandPlan(kind="ip_address", change_type=ChangeType.NO_CHANGE)
        assert summarize_diff([plan]) == "No changes needed - current state matches desired state"

    def test_update_summary(self):
        plan = CommandPlan(
            kind="system_scheduler",
            change_type=ChangeType.UPDATE,
            identity=Identity.by_name("s1"),
            commands=[Command(Operation.SET, "/system/scheduler", {".id": "*1", "interval": "2h"})],
            changes=[FieldChange(field="interval", old="1h", new="2h")],
        )
        text = summarize_plan(plan)
        assert "[~] Update system_scheduler s1" in text
        assert "interval: '1h' -> '2h'" in text
        assert "$ set /system/scheduler .id=*1 interval=2h" in text

    def test_multiple_plans(self):
        plans = [
            CommandPlan(kind="ip_address", change_type=ChangeType.CREATE),
            CommandPlan(kind="ip_address", change_type=ChangeType.NO_CHANGE),
            CommandPlan(kind="ip_address", change_type=ChangeType.DELETE, identity=Identity.by_id("*4")),
        ]
        text = summarize_diff(plans)
        assert text.startswith("Changes to apply (2 total):")
        assert "[+] Create ip_address" in text
        assert "[-] Delete ip_address *4" in text
