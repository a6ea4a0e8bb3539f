"""Diff engine for calculating changes between desired and observed records.

Only fields present in the desired record are compared, so the device is free
to report extra (computed or defaulted) properties without causing drift.
"""
from typing import Mapping, Optional

from .properties import bool_equal
from .schema import (
    ChangeType,
    CommandPlan,
    FieldChange,
    FieldType,
    ResourceSchema,
)


class DiffEngine:
    """Calculate differences between desired and observed state."""

    def calculate(
        self,
        schema: ResourceSchema,
        desired: Mapping[str, str],
        observed: Mapping[str, str],
    ) -> list[FieldChange]:
        """
        Calculate field changes needed to make observed match desired.

        Args:
            schema: Schema of the resource kind
            desired: Encoded desired record (wire names)
            observed: Record as read from the device

        Returns:
            List of FieldChange, empty if nothing differs
        """
        changes = []

        for wire_name, new in desired.items():
            name = schema.field_name(wire_name)
            if name is None:
                continue
            spec = schema.fields[name]
            if spec.write_only or spec.computed:
                continue

            old = observed.get(wire_name)
            if not self.equal(schema, name, old, new):
                changes.append(FieldChange(field=name, old=old, new=new))

        return changes

    def equal(
        self,
        schema: ResourceSchema,
        name: str,
        old: Optional[str],
        new: str,
    ) -> bool:
        """Compare two wire values of a field under its diff-suppressor."""
        if old == new:
            return True

        # Absent on the device and empty in desired state mean the same
        if old is None:
            return new == ""

        spec = schema.fields[name]
        suppress = spec.diff_suppress
        if suppress is None and spec.type == FieldType.BOOL:
            suppress = bool_equal
        return bool(suppress and suppress(old, new))


def summarize_plan(plan: CommandPlan) -> str:
    """
    Create a human-readable summary of a plan.

    Useful for dry-run output and logging.
    """
    identity = f" {plan.identity}" if plan.identity else ""

    if plan.change_type == ChangeType.NO_CHANGE:
        return f"  [=] {plan.kind}{identity}: no changes needed"

    markers = {
        ChangeType.CREATE: "+",
        ChangeType.DELETE: "-",
        ChangeType.UPDATE: "~",
        ChangeType.MOVE: ">",
        ChangeType.REPLACE: "!",
    }
    lines = [f"  [{markers[plan.change_type]}] {plan.change_type.value.capitalize()} "
             f"{plan.kind}{identity}"]

    for change in plan.changes:
        if change.old is None:
            lines.append(f"      {change.field}: {change.new!r}")
        else:
            lines.append(f"      {change.field}: {change.old!r} -> {change.new!r}")

    for command in plan.commands:
        lines.append(f"      $ {command}")

    return "\n".join(lines)


def summarize_diff(plans: list[CommandPlan]) -> str:
    """Summarize several plans, e.g. for a whole manifest."""
    pending = [p for p in plans if not p.no_change]
    if not pending:
        return "No changes needed - current state matches desired state"

    lines = [f"Changes to apply ({len(pending)} total):", ""]
    lines.extend(summarize_plan(plan) for plan in pending)
    return "\n".join(lines)
