"""Schema definitions for the Config Engine.

Declarative description of resource kinds (fields, types, defaults,
validation and diff-suppression rules) plus the dataclasses passed between
the planning, execution and verification steps.
"""
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from types import MappingProxyType
from typing import Any, Callable, Iterable, Mapping, Optional

from ..devices.base import Operation, Record

# Wire key of the device-assigned opaque identifier
ID_KEY = ".id"

Validator = Callable[[Any], Optional[str]]
DiffSuppressor = Callable[[str, str], bool]


class FieldType(str, Enum):
    """Semantic type of a field value."""
    STRING = "string"
    INT = "int"
    BOOL = "bool"
    LIST = "list"
    MAP = "map"


class FieldMode(str, Enum):
    """Who supplies a field value."""
    REQUIRED = "required"
    OPTIONAL = "optional"
    COMPUTED = "computed"   # Device-assigned, never part of desired state


class Encoding(str, Enum):
    """Special wire encodings layered on top of the field type."""
    PLAIN = "plain"
    DURATION = "duration"       # 1h30m, 3600s, ...
    HEX = "hex"                 # 0x0800 == 2048
    INT_OR_AUTO = "int_or_auto"
    YES_NO = "yes_no"           # Booleans written as yes/no instead of true/false


class IdType(IntEnum):
    """How instances of a resource kind are addressed on the device."""
    ID = 0      # Opaque device-assigned .id (*1, *2A, ...)
    NAME = 1    # Natural key, usually the name field


class Placement(str, Enum):
    """How a position change inside an ordered list is applied."""
    MOVE = "move"           # In-place move command
    RECREATE = "recreate"   # Delete, then add at the new position


@dataclass(frozen=True)
class Field:
    """Declaration of a single resource field."""
    type: FieldType = FieldType.STRING
    mode: FieldMode = FieldMode.OPTIONAL
    default: Any = None
    description: str = ""
    validator: Optional[Validator] = None
    diff_suppress: Optional[DiffSuppressor] = None
    encoding: Encoding = Encoding.PLAIN
    delimiter: str = ","
    remote_name: Optional[str] = None
    # Sent on write, never echoed back by the device (not diffed)
    write_only: bool = False

    @property
    def required(self) -> bool:
        return self.mode == FieldMode.REQUIRED

    @property
    def computed(self) -> bool:
        return self.mode == FieldMode.COMPUTED

    def to_dict(self) -> dict:
        """Describe the field for documentation and input validation."""
        return {
            "type": self.type.value,
            "mode": self.mode.value,
            "default": self.default,
            "description": self.description,
            "encoding": self.encoding.value,
            "write_only": self.write_only,
            "suppresses_diff": self.diff_suppress is not None,
        }


def remote_name(name: str, spec: Field) -> str:
    """Wire name of a field: explicit override, else kebab-case."""
    return spec.remote_name or name.replace("_", "-")


@dataclass(frozen=True, eq=False)
class ResourceSchema:
    """Immutable description of one resource kind.

    Fields keep their declaration order.
    """
    kind: str
    path: str
    fields: Mapping[str, Field]
    id_type: IdType = IdType.ID
    key_field: str = "name"
    placement: Optional[Placement] = None
    description: str = ""

    def __post_init__(self):
        if self.id_type == IdType.NAME and self.key_field not in self.fields:
            raise ValueError(
                f"{self.kind}: natural key field '{self.key_field}' is not declared"
            )
        object.__setattr__(self, "fields", MappingProxyType(dict(self.fields)))
        object.__setattr__(self, "_by_remote", MappingProxyType({
            remote_name(name, spec): name for name, spec in self.fields.items()
        }))

    def field(self, name: str) -> Field:
        return self.fields[name]

    def remote_name(self, name: str) -> str:
        return remote_name(name, self.fields[name])

    def field_name(self, wire_name: str) -> Optional[str]:
        """Map a wire name back to its field name, None if undeclared."""
        return self._by_remote.get(wire_name)

    @property
    def required_fields(self) -> list[str]:
        return [n for n, f in self.fields.items() if f.required]

    @property
    def computed_fields(self) -> list[str]:
        return [n for n, f in self.fields.items() if f.computed]

    @property
    def ordered(self) -> bool:
        return self.placement is not None

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "path": self.path,
            "id_type": self.id_type.name.lower(),
            "key_field": self.key_field if self.id_type == IdType.NAME else ID_KEY,
            "placement": self.placement.value if self.placement else None,
            "description": self.description,
            "fields": {name: spec.to_dict() for name, spec in self.fields.items()},
        }


class ResourceRegistry:
    """Read-only lookup of resource schemas by kind.

    Built once at process start and shared afterwards.
    """

    def __init__(self, schemas: Iterable[ResourceSchema]):
        by_kind = {}
        for schema in schemas:
            if schema.kind in by_kind:
                raise ValueError(f"Duplicate resource kind: {schema.kind}")
            by_kind[schema.kind] = schema
        self._schemas = MappingProxyType(by_kind)

    def define(self, kind: str) -> ResourceSchema:
        """Get the schema of a resource kind."""
        if kind not in self._schemas:
            raise KeyError(f"Unknown resource kind: {kind}")
        return self._schemas[kind]

    def fields(self, kind: str) -> Mapping[str, Field]:
        return self.define(kind).fields

    def kinds(self) -> list[str]:
        return list(self._schemas.keys())

    def __contains__(self, kind: str) -> bool:
        return kind in self._schemas


# --- Planning and results ---

class ChangeType(str, Enum):
    """Operation decided by the planner."""
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    MOVE = "move"
    REPLACE = "replace"
    NO_CHANGE = "no_change"


class ReconcileState(str, Enum):
    """Stages a single lifecycle call walks through."""
    PLANNING = "planning"
    EXECUTING = "executing"
    VERIFYING = "verifying"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class Identity:
    """Addressing handle of one resource instance."""
    kind: IdType
    value: str

    @classmethod
    def by_id(cls, value: str) -> "Identity":
        return cls(IdType.ID, value)

    @classmethod
    def by_name(cls, value: str) -> "Identity":
        return cls(IdType.NAME, value)

    def __str__(self) -> str:
        return self.value


@dataclass
class FieldChange:
    """One field that differs between observed and desired state."""
    field: str
    old: Optional[str]
    new: str


@dataclass
class Command:
    """A single command for the transport adapter."""
    operation: Operation
    path: str
    params: Record = field(default_factory=dict)
    filters: list[str] = field(default_factory=list)

    def __str__(self) -> str:
        text = f"{self.operation.value} {self.path}"
        if self.params:
            text += " " + " ".join(f"{k}={v}" for k, v in self.params.items())
        if self.filters:
            text += " where " + " ".join(self.filters)
        return text


@dataclass
class CommandPlan:
    """Planned change for one resource instance."""
    kind: str
    change_type: ChangeType
    identity: Optional[Identity] = None
    commands: list[Command] = field(default_factory=list)
    changes: list[FieldChange] = field(default_factory=list)

    @property
    def no_change(self) -> bool:
        return self.change_type == ChangeType.NO_CHANGE

    @property
    def total_commands(self) -> int:
        return len(self.commands)


@dataclass
class ResourceState:
    """Typed instance together with its identity and the raw device record."""
    kind: str
    identity: Optional[Identity]
    values: dict[str, Any] = field(default_factory=dict)
    record: Record = field(default_factory=dict)

    @property
    def id(self) -> Optional[str]:
        """Device-assigned opaque identifier, if known."""
        return self.record.get(ID_KEY)

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "identity": str(self.identity) if self.identity else None,
            "id": self.id,
            "values": self.values,
        }


@dataclass
class ExecuteOptions:
    """Options for plan execution."""
    dry_run: bool = False
    audit_context: str = ""
    user: Optional[str] = None


@dataclass
class ReconcileResult:
    """Outcome of one lifecycle call."""
    kind: str
    change_type: ChangeType = ChangeType.NO_CHANGE
    state: ReconcileState = ReconcileState.PLANNING
    identity: Optional[Identity] = None
    instance: Optional[ResourceState] = None
    changes: list[FieldChange] = field(default_factory=list)
    commands_executed: list[str] = field(default_factory=list)
    dry_run: bool = False
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.state == ReconcileState.DONE

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "kind": self.kind,
            "change_type": self.change_type.value,
            "state": self.state.value,
            "success": self.success,
            "dry_run": self.dry_run,
            "identity": str(self.identity) if self.identity else None,
            "instance": self.instance.to_dict() if self.instance else None,
            "changes": [
                {"field": c.field, "old": c.old, "new": c.new}
                for c in self.changes
            ],
            "commands_executed": self.commands_executed,
            "error": self.error,
        }


# --- Desired state manifests ---

class ResourceAction(str, Enum):
    """Action to take for a resource in a manifest."""
    PRESENT = "present"   # Create if missing, update if different
    ABSENT = "absent"     # Delete if exists


@dataclass
class ResourceDesiredState:
    """Desired state for a single resource instance."""
    kind: str
    values: dict[str, Any] = field(default_factory=dict)
    identity: Optional[str] = None
    action: ResourceAction = ResourceAction.PRESENT


@dataclass
class DesiredState:
    """Complete desired state for a device."""
    device_id: str
    version: int = 1
    checksum: Optional[str] = None
    resources: list[ResourceDesiredState] = field(default_factory=list)


@dataclass
class ValidationResult:
    """Result of desired state validation."""
    valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


@dataclass
class ApplyResult:
    """Result of applying a manifest to a device."""
    device_id: str
    success: bool = False
    dry_run: bool = False
    results: list[ReconcileResult] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def changes_made(self) -> list[str]:
        return [
            f"{r.change_type.value} {r.kind} {r.identity or ''}".strip()
            for r in self.results
            if r.change_type != ChangeType.NO_CHANGE and r.success
        ]

    def to_dict(self) -> dict:
        return {
            "device_id": self.device_id,
            "success": self.success,
            "dry_run": self.dry_run,
            "changes_made": self.changes_made,
            "results": [r.to_dict() for r in self.results],
            "warnings": self.warnings,
            "error": self.error,
        }
