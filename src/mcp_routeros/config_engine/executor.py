"""Executor for applying command plans to devices.

Commands are sent one at a time. Device errors are translated into the
engine's error taxonomy here, so nothing above this layer sees a
DeviceCommandError.
"""
import logging
from dataclasses import dataclass, field
from typing import Optional

from ..devices.base import DeviceCommandError, NetworkDevice, is_not_found
from ..utils.audit_log import log_change
from .errors import NotFoundError, TransportError
from .schema import (
    Command,
    CommandPlan,
    ExecuteOptions,
    Operation,
    Record,
)

logger = logging.getLogger(__name__)

DRY_RUN_PREFIX = "[DRY-RUN] "


@dataclass
class ExecuteOutcome:
    """What a plan execution did on the device."""
    commands_executed: list[str] = field(default_factory=list)
    responses: list[list[Record]] = field(default_factory=list)
    dry_run: bool = False

    @property
    def last_response(self) -> list[Record]:
        return self.responses[-1] if self.responses else []


class ConfigExecutor:
    """Execute command plans on RouterOS devices."""

    def __init__(self, audit: bool = True):
        """
        Initialize executor.

        Args:
            audit: Write an audit record for every plan that changes the device
        """
        self.audit = audit

    async def run(
        self,
        device: NetworkDevice,
        command: Command,
        kind: Optional[str] = None,
        identity: Optional[str] = None,
    ) -> list[Record]:
        """
        Send a single command.

        Raises:
            NotFoundError: The device reports the addressed item does not exist
            TransportError: Any other device failure, annotated with context
        """
        logger.debug(f"{device.device_id}: {command}")
        try:
            return await device.execute(
                command.operation,
                command.path,
                params=command.params,
                filters=command.filters,
            )
        except DeviceCommandError as e:
            context = dict(kind=kind, identity=identity, operation=command.operation.value)
            if is_not_found(e.message):
                raise NotFoundError(e.message, **context) from e
            raise TransportError(e.message, **context) from e

    async def execute(
        self,
        device: NetworkDevice,
        plan: CommandPlan,
        options: ExecuteOptions,
        outcome: Optional[ExecuteOutcome] = None,
    ) -> ExecuteOutcome:
        """
        Execute a command plan, stopping at the first failure.

        In dry-run mode nothing is sent and the commands are returned as
        they would have been executed. Pass an outcome to keep the progress
        of a plan that fails part way.
        """
        if outcome is None:
            outcome = ExecuteOutcome()
        outcome.dry_run = options.dry_run
        identity = str(plan.identity) if plan.identity else None

        if options.dry_run:
            outcome.commands_executed = [f"{DRY_RUN_PREFIX}{cmd}" for cmd in plan.commands]
            return outcome

        if plan.commands:
            logger.info(
                f"{device.device_id}: {plan.change_type.value} {plan.kind} "
                f"{identity or ''} ({plan.total_commands} command(s))"
            )

        for command in plan.commands:
            response = await self.run(device, command, plan.kind, identity)
            outcome.commands_executed.append(str(command))
            outcome.responses.append(response)

        return outcome

    def record(
        self,
        device: NetworkDevice,
        plan: CommandPlan,
        options: ExecuteOptions,
        commands: list[str],
        success: bool,
        before_state: Optional[dict] = None,
        after_state: Optional[dict] = None,
        error: Optional[str] = None,
    ) -> None:
        """Write the audit record for a plan that changes the device."""
        if not self.audit or plan.no_change:
            return
        log_change(
            device_id=device.device_id,
            operation=plan.change_type.value,
            kind=plan.kind,
            identity=str(plan.identity) if plan.identity else None,
            commands=commands or [str(c) for c in plan.commands],
            success=success,
            user=options.user,
            context=options.audit_context,
            dry_run=options.dry_run,
            before_state=before_state,
            after_state=after_state,
            error=error,
        )


def read_command(path: str, filters: Optional[list[str]] = None) -> Command:
    return Command(Operation.READ, path, filters=list(filters or []))
