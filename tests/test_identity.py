"""Tests for identity resolution."""
import pytest

from mcp_routeros.config_engine import (
    DecodeError,
    Identity,
    IdType,
    NotFoundError,
    define,
)
from mcp_routeros.config_engine.identity import IdentityResolver, build_read_filter

RECORDS = [
    {".id": "*1", "name": "a"},
    {".id": "*2", "name": "b"},
]


@pytest.fixture
def by_name():
    return IdentityResolver(define("system_scheduler"))


@pytest.fixture
def by_id():
    return IdentityResolver(define("ip_address"))


class TestResolve:
    """Tests for resolve()."""

    def test_natural_key_to_opaque_id(self, by_name):
        assert by_name.resolve("b", RECORDS) == Identity.by_id("*2")

    def test_natural_key_missing(self, by_name):
        with pytest.raises(NotFoundError) as exc:
            by_name.resolve("c", RECORDS)
        assert exc.value.identity == "c"
        assert exc.value.kind == "system_scheduler"

    def test_opaque_id_verified_present(self, by_id):
        assert by_id.resolve("*1", RECORDS) == Identity.by_id("*1")
        with pytest.raises(NotFoundError):
            by_id.resolve("*9", RECORDS)

    def test_opaque_id_lookup_on_named_kind(self, by_name):
        """Kinds addressed by name also accept their .id."""
        assert by_name.resolve("*1", RECORDS) == Identity.by_id("*1")

    def test_record_without_id(self, by_name):
        with pytest.raises(DecodeError):
            by_name.resolve("x", [{"name": "x"}])


class TestLookup:
    """Tests for lookup() and identity_of()."""

    def test_lookup_kinds(self, by_name, by_id):
        assert by_name.lookup("sched1") == Identity(IdType.NAME, "sched1")
        assert by_name.lookup("*4").kind == IdType.ID
        assert by_id.lookup("*4").kind == IdType.ID

    def test_identity_passthrough(self, by_name):
        identity = Identity.by_name("a")
        assert by_name.lookup(identity) is identity

    def test_identity_of(self, by_name, by_id):
        assert by_name.identity_of(RECORDS[0]) == Identity.by_name("a")
        assert by_id.identity_of(RECORDS[0]) == Identity.by_id("*1")
        assert by_id.identity_of({}) is None

    def test_identity_str(self):
        assert str(Identity.by_id("*1")) == "*1"


class TestFilters:
    """Read filters."""

    def test_filters_for(self, by_name):
        assert by_name.filters_for("a") == ["name=a"]
        assert by_name.filters_for("*1") == [".id=*1"]

    def test_build_read_filter(self):
        schema = define("ip_address")
        filters = build_read_filter({"interface": "ether1", "disabled": False, ".id": "*3"}, schema)
        assert filters == ["interface=ether1", "disabled=false", ".id=*3"]

    def test_build_read_filter_translates_names(self):
        schema = define("system_scheduler")
        assert build_read_filter({"on_event": "x"}, schema) == ["on-event=x"]

    def test_build_read_filter_empty(self):
        assert build_read_filter(None, define("ip_address")) == []
