"""Identity resolution: opaque .id versus natural key.

Some device commands only accept the opaque .id even when the caller
addresses an item by name, so every write goes through resolve() first.
"""
from typing import Iterable, Mapping, Optional, Union

from .errors import DecodeError, NotFoundError
from .schema import ID_KEY, Identity, IdType, Record, ResourceSchema


class IdentityResolver:
    """Convert between the identity kinds of a resource schema."""

    def __init__(self, schema: ResourceSchema):
        self.schema = schema

    @property
    def key_wire_name(self) -> str:
        return self.schema.remote_name(self.schema.key_field)

    def lookup(self, value: Union[Identity, str]) -> Identity:
        """
        Turn a caller-supplied handle into an Identity.

        Strings starting with '*' are opaque IDs; anything else is a natural
        key (only valid for kinds addressed by name).
        """
        if isinstance(value, Identity):
            return value
        if value.startswith("*") or self.schema.id_type == IdType.ID:
            return Identity.by_id(value)
        return Identity.by_name(value)

    def find(
        self,
        wanted: Union[Identity, str],
        records: Iterable[Mapping[str, str]],
    ) -> Record:
        """
        Find the observed record addressed by an identity.

        Raises:
            NotFoundError: No record matches (the item drifted away)
        """
        identity = self.lookup(wanted)
        key = ID_KEY if identity.kind == IdType.ID else self.key_wire_name

        for record in records:
            if record.get(key) == identity.value:
                return dict(record)

        raise NotFoundError(
            "no such item",
            kind=self.schema.kind,
            identity=identity.value,
        )

    def resolve(
        self,
        wanted: Union[Identity, str],
        records: Iterable[Mapping[str, str]],
    ) -> Identity:
        """
        Resolve a handle to the device-assigned opaque ID.

        Raises:
            NotFoundError: No record matches
            DecodeError: The matching record carries no .id
        """
        record = self.find(wanted, records)
        opaque = record.get(ID_KEY)
        if not opaque:
            raise DecodeError(
                "record has no .id",
                kind=self.schema.kind,
                identity=self.lookup(wanted).value,
            )
        return Identity.by_id(opaque)

    def identity_of(self, record: Mapping[str, str]) -> Optional[Identity]:
        """Authoritative identity of an observed record, per the schema."""
        if self.schema.id_type == IdType.NAME:
            value = record.get(self.key_wire_name)
            return Identity.by_name(value) if value else None
        value = record.get(ID_KEY)
        return Identity.by_id(value) if value else None

    def filters_for(self, wanted: Union[Identity, str]) -> list[str]:
        """Read filter that selects exactly the addressed item."""
        identity = self.lookup(wanted)
        if identity.kind == IdType.ID:
            return [f"{ID_KEY}={identity.value}"]
        return [f"{self.key_wire_name}={identity.value}"]


def build_read_filter(filters: Optional[Mapping[str, object]], schema: ResourceSchema) -> list[str]:
    """
    Turn a field=value mapping into wire filter fragments.

    Field names are translated to wire names; undeclared keys (like .id) are
    passed through untouched.
    """
    result = []
    for name, value in (filters or {}).items():
        wire = schema.remote_name(name) if name in schema.fields else name
        if isinstance(value, bool):
            value = "true" if value else "false"
        result.append(f"{wire}={value}")
    return result
