"""Error taxonomy for the reconciliation engine.

Every public error carries enough context (resource kind, identity, field,
operation) to be logged meaningfully by the caller. None of them are retried
by the engine.
"""
from typing import Optional


class ReconcileError(Exception):
    """Base class for all errors surfaced by the engine."""

    def __init__(
        self,
        message: str,
        *,
        kind: Optional[str] = None,
        identity: Optional[str] = None,
        field: Optional[str] = None,
        operation: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.identity = identity
        self.field = field
        self.operation = operation
        # Set by the engine: the ReconcileResult of the call that failed
        self.result = None

    def context(self) -> dict:
        """Context fields that are set, for logging and JSON output."""
        ctx = {
            "kind": self.kind,
            "identity": self.identity,
            "field": self.field,
            "operation": self.operation,
        }
        return {k: v for k, v in ctx.items() if v is not None}

    def __str__(self) -> str:
        parts = []
        if self.operation:
            parts.append(self.operation)
        if self.kind:
            parts.append(self.kind)
        if self.identity:
            parts.append(f"[{self.identity}]")
        if self.field:
            parts.append(f"field '{self.field}'")
        prefix = " ".join(parts)
        return f"{prefix}: {self.message}" if prefix else self.message


class ValidationError(ReconcileError):
    """Desired state violates the resource schema. Raised before any remote call."""

    def __init__(self, errors: list[str], **context):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors), **context)


class NotFoundError(ReconcileError):
    """No matching record on the device.

    This is the expected outcome of drift (the item was removed out-of-band),
    so callers usually react by planning a create.
    """


class DecodeError(ReconcileError):
    """A device response could not be parsed per the schema's field types."""


class TransportError(ReconcileError):
    """Opaque failure reported by the transport adapter."""


class CodecInvariantError(AssertionError):
    """The codec failed to parse a value it produced or already validated.

    Indicates a bug in the codec, not a caller fault.
    """
