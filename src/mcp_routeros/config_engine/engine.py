"""Reconciliation engine.

ResourceEngine drives the lifecycle of one resource kind on one device:
every call walks PLANNING -> EXECUTING -> VERIFYING -> DONE, or ends in
FAILED, and the state reached is recorded on the returned ReconcileResult
(or on ``error.result`` when the call raises).

ConfigEngine is the manifest-level entry point:
1. Parsing desired state
2. Validating each resource against its schema
3. Reading observed state and diffing under each field's suppressor
4. Generating per-resource command plans
5. Executing (or dry-running) them, one command at a time
"""
import logging
from typing import Any, Mapping, Optional, Union

from ..config.inventory import DeviceInventory
from ..devices.base import NetworkDevice
from ..utils.logging_config import colorized_debug, timed
from .codec import PropertyCodec
from .diff import DiffEngine, summarize_diff
from .errors import DecodeError, NotFoundError, ReconcileError, ValidationError
from .executor import ConfigExecutor, ExecuteOutcome, read_command
from .generator import PLACE_BEFORE, CommandGenerator, needs_move
from .identity import IdentityResolver, build_read_filter
from .parser import ConfigParser, ParseError
from .resources import REGISTRY
from .schema import (
    ID_KEY,
    ApplyResult,
    ChangeType,
    CommandPlan,
    ExecuteOptions,
    Identity,
    IdType,
    ReconcileResult,
    ReconcileState,
    Record,
    ResourceAction,
    ResourceDesiredState,
    ResourceRegistry,
    ResourceSchema,
    ResourceState,
)
from .validator import ConfigValidator, check_identity_value

logger = logging.getLogger(__name__)

Handle = Union[Identity, str]


class ResourceEngine:
    """
    CRUD and reconciliation for one resource kind on one device.

    Usage:
        engine = ResourceEngine(device, define("system_scheduler"))
        result = await engine.create({"name": "sched1", "on_event": "myscript", "interval": "1h"})
        state = await engine.read(result.identity)
    """

    def __init__(
        self,
        device: NetworkDevice,
        schema: ResourceSchema,
        executor: Optional[ConfigExecutor] = None,
        options: Optional[ExecuteOptions] = None,
    ):
        self.device = device
        self.schema = schema
        self.executor = executor or ConfigExecutor()
        self.options = options or ExecuteOptions()
        self.codec = PropertyCodec()
        self.resolver = IdentityResolver(schema)
        self.validator = ConfigValidator(schema)
        self.diff_engine = DiffEngine()
        self.generator = CommandGenerator()

    @property
    def device_id(self) -> str:
        return self.device.device_id

    # === Reads ===

    @timed("read")
    async def read(
        self,
        wanted: Handle,
        filters: Optional[Mapping[str, Any]] = None,
    ) -> ResourceState:
        """
        Read one instance by opaque ID or natural key.

        Args:
            wanted: Identity, '*N' opaque ID, or natural key value
            filters: Extra field=value constraints on the read

        Raises:
            NotFoundError: No matching item on the device
            DecodeError: The device record does not match the schema
        """
        identity = self._lookup(wanted)
        record = await self._observe(identity, build_read_filter(filters, self.schema))
        return self._state(record)

    @timed("read_all")
    async def read_all(self, filters: Optional[Mapping[str, Any]] = None) -> list[ResourceState]:
        """List all instances matching a field=value filter map."""
        records = await self._read_records(build_read_filter(filters, self.schema))
        return [self._state(record) for record in records]

    # === Lifecycle ===

    @timed("create")
    async def create(self, desired: Mapping[str, Any]) -> ReconcileResult:
        """
        Create a new instance. Schema defaults fill in omitted fields.

        Returns:
            ReconcileResult whose instance carries the device-assigned identity
            and computed fields

        Retrying a failed create may leave a duplicate item on the device.
        """
        result = self._new_result()
        try:
            plan = self._plan_create(desired)
        except ReconcileError as e:
            self._fail(result, e)
            raise
        return await self._apply(plan, result, None)

    @timed("update")
    async def update(self, wanted: Handle, desired: Mapping[str, Any]) -> ReconcileResult:
        """
        Update an existing instance. Only fields that differ are written.

        Raises:
            NotFoundError: The instance no longer exists on the device
        """
        result = self._new_result()
        try:
            identity = self._lookup(wanted)
            result.identity = identity
            desired_record = self._encode_desired(desired, partial=True)
            observed, records = await self._observe_for_update(identity, desired_record)
            plan = self._plan_update(desired_record, observed, records)
        except ReconcileError as e:
            self._fail(result, e)
            raise
        return await self._apply(plan, result, observed)

    @timed("delete")
    async def delete(self, wanted: Handle) -> ReconcileResult:
        """
        Remove an instance.

        Raises:
            NotFoundError: The instance does not exist on the device
        """
        result = self._new_result()
        try:
            plan, observed = await self._plan_delete(wanted)
        except ReconcileError as e:
            result.identity = self.resolver.lookup(wanted)
            self._fail(result, e)
            raise
        return await self._apply(plan, result, observed)

    @timed("reconcile")
    async def reconcile(
        self,
        desired: Mapping[str, Any],
        wanted: Optional[Handle] = None,
    ) -> ReconcileResult:
        """
        Converge the device to the desired instance.

        Creates the instance when no identity is known or the known one has
        drifted away; otherwise updates only the fields that differ. Running it
        twice with the same desired state yields no_change the second time.
        """
        result = self._new_result()
        try:
            plan, observed = await self._plan_reconcile(desired, wanted)
        except ReconcileError as e:
            self._fail(result, e)
            raise
        return await self._apply(plan, result, observed)

    async def plan(
        self,
        desired: Mapping[str, Any],
        wanted: Optional[Handle] = None,
    ) -> CommandPlan:
        """What reconcile() would do, without writing anything."""
        plan, _ = await self._plan_reconcile(desired, wanted)
        return plan

    async def plan_delete(self, wanted: Handle) -> CommandPlan:
        """What delete() would do, without writing anything."""
        plan, _ = await self._plan_delete(wanted)
        return plan

    def diff_suppress(self, field: str, old: Optional[str], new: str) -> bool:
        """Whether two wire values of a field are semantically equal."""
        if field not in self.schema.fields:
            raise ValidationError([f"unknown field '{field}'"], kind=self.schema.kind, field=field)
        spec = self.schema.fields[field]
        for value in (old, new):
            if value is None:
                continue
            try:
                self.codec.decode_value(field, value, spec, self.schema.kind)
            except DecodeError as e:
                raise ValidationError([e.message], kind=self.schema.kind, field=field) from e
        return self.diff_engine.equal(self.schema, field, old, new)

    # === Planning ===

    def _encode_desired(
        self,
        desired: Mapping[str, Any],
        partial: bool = False,
        defaults: bool = False,
    ) -> Record:
        instance = self.validator.with_defaults(desired) if defaults else dict(desired)
        self.validator.check(instance, partial=partial)
        return self.codec.encode(instance, self.schema)

    def _plan_create(self, desired: Mapping[str, Any]) -> CommandPlan:
        record = self._encode_desired(desired, defaults=True)
        identity = None
        if self.schema.id_type == IdType.NAME:
            identity = Identity.by_name(str(desired[self.schema.key_field]))
        return self.generator.create(self.schema, record, identity)

    def _plan_update(
        self,
        desired: Record,
        observed: Record,
        records: list[Record],
    ) -> CommandPlan:
        identity = self.resolver.identity_of(observed)
        opaque = observed.get(ID_KEY)
        if identity is None or not opaque:
            raise DecodeError("observed record has no identity", kind=self.schema.kind)

        # Device values the schema cannot parse fail here as DecodeError
        self.codec.decode(observed, self.schema)
        changes = self.diff_engine.calculate(self.schema, desired, observed)

        destination = None
        wanted_position = desired.get(PLACE_BEFORE)
        if self.schema.ordered and wanted_position and needs_move(records, opaque, wanted_position):
            destination = wanted_position

        # A recreated item must carry over what the caller left unspecified
        full = {**self._writable(observed), **desired}
        return self.generator.update(self.schema, identity, opaque, full, changes, destination)

    async def _plan_reconcile(
        self,
        desired: Mapping[str, Any],
        wanted: Optional[Handle],
    ) -> tuple[CommandPlan, Optional[Record]]:
        if wanted is None and self.schema.id_type == IdType.NAME:
            key = desired.get(self.schema.key_field)
            wanted = str(key) if key is not None else None

        if wanted is None:
            return self._plan_create(desired), None

        identity = self._lookup(wanted)
        desired_record = self._encode_desired(desired)
        try:
            observed, records = await self._observe_for_update(identity, desired_record)
        except NotFoundError:
            colorized_debug(
                logger, "item not found on device, planning create",
                kind=self.schema.kind, identity=identity,
            )
            return self._plan_create(desired), None

        plan = self._plan_update(desired_record, observed, records)
        return plan, observed

    async def _plan_delete(self, wanted: Handle) -> tuple[CommandPlan, Record]:
        identity = self._lookup(wanted)
        observed = await self._observe(identity)
        opaque = self.resolver.resolve(identity, [observed])
        plan = self.generator.delete(
            self.schema, self.resolver.identity_of(observed) or identity, opaque.value
        )
        return plan, observed

    # === Execution and verification ===

    async def _apply(
        self,
        plan: CommandPlan,
        result: ReconcileResult,
        before: Optional[Record],
    ) -> ReconcileResult:
        result.change_type = plan.change_type
        result.identity = plan.identity
        result.changes = list(plan.changes)
        colorized_debug(
            logger, "planned", kind=plan.kind, identity=plan.identity,
            change=plan.change_type.value, commands=plan.total_commands,
        )

        if plan.no_change:
            result.instance = self._state(before) if before else None
            result.state = ReconcileState.DONE
            return result

        outcome = ExecuteOutcome()
        before_values = self._values(before)
        try:
            result.state = ReconcileState.EXECUTING
            await self.executor.execute(self.device, plan, self.options, outcome)
            result.commands_executed = list(outcome.commands_executed)

            if not outcome.dry_run:
                result.state = ReconcileState.VERIFYING
                result.instance = await self._verify(plan, outcome, before)
                if result.instance is not None:
                    result.identity = result.instance.identity
            result.state = ReconcileState.DONE
        except ReconcileError as e:
            result.commands_executed = list(outcome.commands_executed)
            self._fail(result, e)
            self.executor.record(
                self.device, plan, self.options, result.commands_executed,
                success=False, before_state=before_values, error=str(e),
            )
            raise

        self.executor.record(
            self.device, plan, self.options, result.commands_executed,
            success=True,
            before_state=before_values,
            after_state=result.instance.values if result.instance else None,
        )
        return result

    async def _verify(
        self,
        plan: CommandPlan,
        outcome: ExecuteOutcome,
        before: Optional[Record],
    ) -> Optional[ResourceState]:
        """Fetch the state the device actually holds after the write."""
        if plan.change_type == ChangeType.DELETE:
            return None

        if plan.change_type in (ChangeType.CREATE, ChangeType.REPLACE):
            response = outcome.last_response
            opaque = _created_id(response)
            if not opaque:
                raise DecodeError(
                    "create response carries no .id",
                    kind=self.schema.kind, operation="add",
                )
            record = response[0] if response else {}
            if set(record) - {ID_KEY, "ret"}:
                record = {**record, ID_KEY: opaque}
                return self._state(record)
            return self._state(await self._observe(Identity.by_id(opaque)))

        # Guards against the device normalizing or dropping part of the write
        return self._state(await self._observe(Identity.by_id(before[ID_KEY])))

    # === Helpers ===

    def _new_result(self) -> ReconcileResult:
        return ReconcileResult(kind=self.schema.kind, dry_run=self.options.dry_run)

    def _fail(self, result: ReconcileResult, error: ReconcileError) -> None:
        result.state = ReconcileState.FAILED
        result.error = str(error)
        error.result = result
        if isinstance(error, NotFoundError):
            logger.info(f"{self.device_id}: {error}")
        else:
            logger.error(f"{self.device_id}: {error}")

    def _lookup(self, wanted: Handle) -> Identity:
        if isinstance(wanted, str):
            check_identity_value(self.schema, wanted)
        return self.resolver.lookup(wanted)

    async def _read_records(
        self,
        filters: Optional[list[str]] = None,
        identity: Optional[str] = None,
    ) -> list[Record]:
        command = read_command(self.schema.path, filters)
        return await self.executor.run(self.device, command, self.schema.kind, identity)

    async def _observe(self, identity: Identity, filters: Optional[list[str]] = None) -> Record:
        records = await self._read_records(
            self.resolver.filters_for(identity) + list(filters or []),
            identity.value,
        )
        return self.resolver.find(identity, records)

    async def _observe_for_update(
        self,
        identity: Identity,
        desired: Record,
    ) -> tuple[Record, list[Record]]:
        """Observed record, plus the whole list when its position matters."""
        if self.schema.ordered and desired.get(PLACE_BEFORE):
            records = await self._read_records(identity=identity.value)
            return self.resolver.find(identity, records), records
        observed = await self._observe(identity)
        return observed, [observed]

    def _state(self, record: Record) -> ResourceState:
        return ResourceState(
            kind=self.schema.kind,
            identity=self.resolver.identity_of(record),
            values=self.codec.decode(record, self.schema),
            record=dict(record),
        )

    def _values(self, record: Optional[Record]) -> Optional[dict]:
        if record is None:
            return None
        return self.codec.decode(record, self.schema)

    def _writable(self, record: Record) -> Record:
        writable = {}
        for wire_name, value in record.items():
            name = self.schema.field_name(wire_name)
            if name is None:
                continue
            spec = self.schema.fields[name]
            if not spec.computed and not spec.write_only:
                writable[wire_name] = value
        return writable


def _created_id(response: list[Record]) -> Optional[str]:
    """Device-assigned .id from an add response ({'.id': ...} or {'ret': ...})."""
    if not response:
        return None
    record = response[0]
    return record.get(ID_KEY) or record.get("ret")


class ConfigEngine:
    """
    Main Config Engine for applying desired state manifests.

    Usage:
        engine = ConfigEngine(inventory)
        result = await engine.apply_config(manifest, dry_run=True)
    """

    def __init__(
        self,
        inventory: DeviceInventory,
        registry: Optional[ResourceRegistry] = None,
        executor: Optional[ConfigExecutor] = None,
    ):
        """
        Initialize the Config Engine.

        Args:
            inventory: Device inventory for looking up devices
            registry: Resource schemas (defaults to the shipped kinds)
            executor: Command executor shared by all resource engines
        """
        self.inventory = inventory
        self.registry = registry or REGISTRY
        self.parser = ConfigParser(self.registry)
        self.executor = executor or ConfigExecutor()

    def resource(
        self,
        device_id: str,
        kind: str,
        options: Optional[ExecuteOptions] = None,
    ) -> ResourceEngine:
        """Engine for one resource kind on one device.

        Raises:
            KeyError: Unknown device or resource kind
        """
        schema = self.registry.define(kind)
        device = self.inventory.get_device(device_id)
        return ResourceEngine(device, schema, self.executor, options)

    def fields(self, kind: str) -> dict:
        """Schema of a resource kind, for documentation and input validation."""
        return self.registry.define(kind).to_dict()

    async def apply_config(
        self,
        config: dict[str, Any],
        dry_run: bool = False,
        audit_context: str = "",
        user: Optional[str] = None,
    ) -> ApplyResult:
        """
        Apply a desired state manifest to a device.

        Resources are reconciled in manifest order. A failing resource does
        not stop the others; its error is collected and the overall result
        is unsuccessful.

        Args:
            config: Manifest dict (device + resources)
            dry_run: If True, preview changes without applying
            audit_context: Description for audit log
            user: User identifier for audit log
        """
        result = ApplyResult(
            device_id=str(config.get("device_id") or config.get("device") or ""),
            dry_run=dry_run,
        )

        logger.info("Parsing desired state manifest")
        try:
            desired = self.parser.parse(config)
            self.inventory.get_device_config(desired.device_id)
        except ParseError as e:
            result.error = f"Parse error: {e}"
            return result
        except KeyError as e:
            result.error = str(e.args[0]) if e.args else str(e)
            return result
        result.warnings.extend(self.parser.warnings)

        options = ExecuteOptions(dry_run=dry_run, audit_context=audit_context, user=user)
        device = self.inventory.get_device(desired.device_id)
        errors = []

        logger.info(
            f"{'DRY RUN: ' if dry_run else ''}Reconciling {len(desired.resources)} "
            f"resource(s) on {desired.device_id}"
        )
        async with device:
            for item in desired.resources:
                engine = self.resource(desired.device_id, item.kind, options)
                try:
                    outcome = await self._apply_one(engine, item)
                except ReconcileError as e:
                    errors.append(str(e))
                    outcome = e.result or ReconcileResult(
                        kind=item.kind, state=ReconcileState.FAILED, error=str(e),
                    )
                result.results.append(outcome)

        result.success = not errors
        if errors:
            result.error = "; ".join(errors)
        return result

    async def _apply_one(self, engine: ResourceEngine, item: ResourceDesiredState) -> ReconcileResult:
        if item.action == ResourceAction.ABSENT:
            try:
                return await engine.delete(item.identity)
            except NotFoundError:
                # Already gone
                return ReconcileResult(
                    kind=item.kind,
                    state=ReconcileState.DONE,
                    identity=engine.resolver.lookup(item.identity),
                    dry_run=engine.options.dry_run,
                )
        return await engine.reconcile(item.values, item.identity)

    async def preview(self, config: dict[str, Any]) -> str:
        """
        Preview changes without applying.

        Returns human-readable diff summary.
        """
        desired = self.parser.parse(config)
        plans = []

        device = self.inventory.get_device(desired.device_id)
        async with device:
            for item in desired.resources:
                engine = self.resource(desired.device_id, item.kind)
                try:
                    if item.action == ResourceAction.ABSENT:
                        plans.append(await engine.plan_delete(item.identity))
                    else:
                        plans.append(await engine.plan(item.values, item.identity))
                except NotFoundError:
                    continue
                except ValidationError as e:
                    return "Validation failed:\n" + "\n".join(
                        f"  - {item.kind}: {msg}" for msg in e.errors
                    )

        summary = summarize_diff(plans)

        if self.parser.warnings:
            summary += "\n\nWarnings:\n" + "\n".join(
                f"  - {w}" for w in self.parser.warnings
            )

        return summary
