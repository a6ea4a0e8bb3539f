"""Command generator: turns planning decisions into device commands.

Every planned operation maps to exactly one command, except a position
change under RecreatePlacement, which is a remove followed by an add.
"""
from abc import ABC, abstractmethod
from typing import Iterable, Mapping, Optional

from .schema import (
    ID_KEY,
    ChangeType,
    Command,
    CommandPlan,
    FieldChange,
    Identity,
    Operation,
    Placement,
    Record,
    ResourceSchema,
)

PLACE_BEFORE = "place-before"


class PlacementStrategy(ABC):
    """How a position change is carried out for an ordered resource kind."""

    change_type: ChangeType

    @abstractmethod
    def commands(
        self,
        schema: ResourceSchema,
        opaque_id: str,
        destination: str,
        desired: Mapping[str, str],
    ) -> list[Command]:
        """Commands that place item opaque_id right before destination."""


class MovePlacement(PlacementStrategy):
    """The device reorders the item in place, keeping its .id."""

    change_type = ChangeType.MOVE

    def commands(self, schema, opaque_id, destination, desired):
        return [Command(
            Operation.MOVE,
            schema.path,
            {"numbers": opaque_id, "destination": destination},
        )]


class RecreatePlacement(PlacementStrategy):
    """Remove the item and add it again at the new position (new .id)."""

    change_type = ChangeType.REPLACE

    def commands(self, schema, opaque_id, destination, desired):
        params = {k: v for k, v in desired.items() if k != PLACE_BEFORE}
        params[PLACE_BEFORE] = destination
        return [
            Command(Operation.REMOVE, schema.path, {ID_KEY: opaque_id}),
            Command(Operation.ADD, schema.path, params),
        ]


PLACEMENT_STRATEGIES: dict[Placement, PlacementStrategy] = {
    Placement.MOVE: MovePlacement(),
    Placement.RECREATE: RecreatePlacement(),
}


def placement_strategy(schema: ResourceSchema) -> Optional[PlacementStrategy]:
    """Strategy selected by the resource kind, None for unordered kinds."""
    if schema.placement is None:
        return None
    return PLACEMENT_STRATEGIES[schema.placement]


def needs_move(records: Iterable[Mapping[str, str]], opaque_id: str, destination: str) -> bool:
    """
    Check whether an item is already right before the destination item.

    Args:
        records: All observed records of the list, in device order
        opaque_id: .id of the item being placed
        destination: .id of the item it must precede
    """
    ids = [r.get(ID_KEY) for r in records]
    if opaque_id not in ids:
        return True
    position = ids.index(opaque_id)
    return position + 1 >= len(ids) or ids[position + 1] != destination


class CommandGenerator:
    """Generate device commands from planning decisions."""

    def create(
        self,
        schema: ResourceSchema,
        desired: Record,
        identity: Optional[Identity] = None,
    ) -> CommandPlan:
        """Plan adding a new item with the full desired record."""
        return CommandPlan(
            kind=schema.kind,
            change_type=ChangeType.CREATE,
            identity=identity,
            commands=[Command(Operation.ADD, schema.path, dict(desired))],
            changes=[
                FieldChange(field=schema.field_name(k) or k, old=None, new=v)
                for k, v in desired.items()
            ],
        )

    def update(
        self,
        schema: ResourceSchema,
        identity: Identity,
        opaque_id: str,
        desired: Record,
        changes: list[FieldChange],
        destination: Optional[str] = None,
    ) -> CommandPlan:
        """
        Plan a partial update, plus a position change when destination is set.

        Only changed fields are sent. A position change is expressed through
        the kind's placement strategy.
        """
        plan = CommandPlan(
            kind=schema.kind,
            change_type=ChangeType.NO_CHANGE,
            identity=identity,
            changes=list(changes),
        )

        strategy = placement_strategy(schema) if destination else None

        if isinstance(strategy, RecreatePlacement):
            # The re-added item carries every desired field already
            plan.change_type = strategy.change_type
            plan.commands = strategy.commands(schema, opaque_id, destination, desired)
            return plan

        if changes:
            params: Record = {ID_KEY: opaque_id}
            for change in changes:
                params[schema.remote_name(change.field)] = change.new
            plan.commands.append(Command(Operation.SET, schema.path, params))
            plan.change_type = ChangeType.UPDATE

        if strategy is not None:
            plan.commands.extend(strategy.commands(schema, opaque_id, destination, desired))
            if plan.change_type == ChangeType.NO_CHANGE:
                plan.change_type = strategy.change_type

        return plan

    def delete(self, schema: ResourceSchema, identity: Identity, opaque_id: str) -> CommandPlan:
        """Plan removing an item."""
        return CommandPlan(
            kind=schema.kind,
            change_type=ChangeType.DELETE,
            identity=identity,
            commands=[Command(Operation.REMOVE, schema.path, {ID_KEY: opaque_id})],
        )
