"""Config Engine - declarative RouterOS configuration.

Resources are described by immutable schemas; the engine reconciles a
desired instance against what the device reports:
- Validation before any device call
- Diffing under per-field suppressors (durations, hex numbers)
- Minimal writes: create, partial update, move, delete
- Drift detection: a vanished item is recreated

Usage:
    from mcp_routeros.config_engine import ConfigEngine

    engine = ConfigEngine(inventory)
    result = await engine.apply_config({
        "device": "core-router",
        "resources": [
            {
                "kind": "system_scheduler",
                "properties": {"name": "sched1", "on_event": "myscript", "interval": "1h"},
            },
        ],
    }, dry_run=True)
"""

from .engine import ConfigEngine, ResourceEngine
from .errors import (
    ReconcileError,
    ValidationError,
    NotFoundError,
    DecodeError,
    TransportError,
    CodecInvariantError,
)
from .schema import (
    Field,
    FieldType,
    FieldMode,
    Encoding,
    IdType,
    Placement,
    ResourceSchema,
    ResourceRegistry,
    Identity,
    ChangeType,
    ReconcileState,
    CommandPlan,
    ExecuteOptions,
    ReconcileResult,
    ResourceState,
    DesiredState,
    ResourceDesiredState,
    ResourceAction,
    ValidationResult,
    ApplyResult,
)
from .resources import REGISTRY, define, fields
from .codec import PropertyCodec
from .identity import IdentityResolver
from .parser import ConfigParser, ParseError, compute_checksum
from .validator import ConfigValidator
from .diff import DiffEngine, summarize_diff, summarize_plan
from .generator import CommandGenerator, MovePlacement, RecreatePlacement
from .executor import ConfigExecutor

__all__ = [
    # Main engines
    "ConfigEngine",
    "ResourceEngine",
    # Errors
    "ReconcileError",
    "ValidationError",
    "NotFoundError",
    "DecodeError",
    "TransportError",
    "CodecInvariantError",
    # Schema classes
    "Field",
    "FieldType",
    "FieldMode",
    "Encoding",
    "IdType",
    "Placement",
    "ResourceSchema",
    "ResourceRegistry",
    "Identity",
    "ChangeType",
    "ReconcileState",
    "CommandPlan",
    "ExecuteOptions",
    "ReconcileResult",
    "ResourceState",
    "DesiredState",
    "ResourceDesiredState",
    "ResourceAction",
    "ValidationResult",
    "ApplyResult",
    # Registry
    "REGISTRY",
    "define",
    "fields",
    # Parser
    "ConfigParser",
    "ParseError",
    "compute_checksum",
    # Components (for advanced use)
    "PropertyCodec",
    "IdentityResolver",
    "ConfigValidator",
    "DiffEngine",
    "summarize_diff",
    "summarize_plan",
    "CommandGenerator",
    "MovePlacement",
    "RecreatePlacement",
    "ConfigExecutor",
]
