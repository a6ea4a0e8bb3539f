"""MCP Server for declarative RouterOS configuration.

Every RouterOS menu the engine knows (scheduler, scripts, bridges, VLANs,
addresses, DHCP clients, firewall filter rules) is managed through the same
generic CRUD reconciliation engine.

Tools exposed:
- list_devices: List all configured RouterOS devices
- device_status: Get health/status of a device
- list_resource_kinds: List resource kinds the engine can manage
- describe_resource: Field schema of a resource kind
- read_resource: Read one resource instance by .id or name
- list_resources: List instances of a kind, optionally filtered
- create_resource: Create a resource instance
- update_resource: Update fields of a resource instance
- delete_resource: Remove a resource instance
- apply_config: Apply a desired state manifest (declarative)
- preview_config: Show what apply_config would change
- get_audit_log: Recent configuration changes
"""
import asyncio
import json
import logging
from typing import Optional

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import (
    TextContent,
    Tool,
    Resource,
)
from pydantic import AnyUrl

from .config.inventory import DeviceInventory
from .config_engine import ConfigEngine, ExecuteOptions, ReconcileError
from .utils.logging_config import setup_logging, timed_section
from .utils.audit_log import setup_audit_logging, get_recent_changes

logger = logging.getLogger(__name__)

SCHEMA_URI_PREFIX = "routeros://schema/"

# Global inventory (initialized on first tool call)
inventory: Optional[DeviceInventory] = None
engine: Optional[ConfigEngine] = None


def get_inventory() -> DeviceInventory:
    """Get or create the device inventory (ROUTEROS_CONFIG or search path)."""
    global inventory
    if inventory is None:
        inventory = DeviceInventory()
    return inventory


def get_engine() -> ConfigEngine:
    """Get or create the config engine."""
    global engine
    if engine is None:
        engine = ConfigEngine(get_inventory())
    return engine


# Create MCP server
server = Server("mcp-routeros")


def _device_id_property() -> dict:
    return {
        "type": "string",
        "description": "Device ID from devices.yaml (e.g., 'core-router')"
    }


def _kind_property() -> dict:
    return {
        "type": "string",
        "description": "Resource kind (e.g., 'system_scheduler', 'ip_address')"
    }


def _identity_property() -> dict:
    return {
        "type": "string",
        "description": "Opaque .id (e.g., '*1') or, for named kinds, the name"
    }


# === TOOLS ===

@server.list_tools()
async def list_tools() -> list[Tool]:
    """List all available tools."""
    return [
        Tool(
            name="list_devices",
            description="List all configured RouterOS devices with their connection info",
            inputSchema={
                "type": "object",
                "properties": {},
                "required": []
            }
        ),
        Tool(
            name="device_status",
            description="Get health and status information for a RouterOS device",
            inputSchema={
                "type": "object",
                "properties": {"device_id": _device_id_property()},
                "required": ["device_id"]
            }
        ),
        Tool(
            name="list_resource_kinds",
            description="List the resource kinds that can be managed declaratively",
            inputSchema={
                "type": "object",
                "properties": {},
                "required": []
            }
        ),
        Tool(
            name="describe_resource",
            description=(
                "Describe the fields of a resource kind: type, required/optional/computed, "
                "default and description"
            ),
            inputSchema={
                "type": "object",
                "properties": {"kind": _kind_property()},
                "required": ["kind"]
            }
        ),
        Tool(
            name="read_resource",
            description="Read one resource instance from a device",
            inputSchema={
                "type": "object",
                "properties": {
                    "device_id": _device_id_property(),
                    "kind": _kind_property(),
                    "id": _identity_property(),
                },
                "required": ["device_id", "kind", "id"]
            }
        ),
        Tool(
            name="list_resources",
            description="List resource instances of a kind, optionally filtered by field values",
            inputSchema={
                "type": "object",
                "properties": {
                    "device_id": _device_id_property(),
                    "kind": _kind_property(),
                    "filter": {
                        "type": "object",
                        "description": "field=value constraints, e.g. {\"interface\": \"ether1\"}",
                    },
                },
                "required": ["device_id", "kind"]
            }
        ),
        Tool(
            name="create_resource",
            description=(
                "Create a resource instance. Returns the device-assigned identity and computed fields. "
                "Retrying a failed create may produce a duplicate."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "device_id": _device_id_property(),
                    "kind": _kind_property(),
                    "properties": {
                        "type": "object",
                        "description": "Field values (snake_case names, see describe_resource)",
                    },
                    "dry_run": {
                        "type": "boolean",
                        "description": "Preview the commands without executing",
                        "default": False
                    },
                },
                "required": ["device_id", "kind", "properties"]
            }
        ),
        Tool(
            name="update_resource",
            description="Update fields of an existing resource instance. Only differing fields are written.",
            inputSchema={
                "type": "object",
                "properties": {
                    "device_id": _device_id_property(),
                    "kind": _kind_property(),
                    "id": _identity_property(),
                    "properties": {
                        "type": "object",
                        "description": "Fields to change",
                    },
                    "dry_run": {
                        "type": "boolean",
                        "default": False
                    },
                },
                "required": ["device_id", "kind", "id", "properties"]
            }
        ),
        Tool(
            name="delete_resource",
            description="Remove a resource instance from a device",
            inputSchema={
                "type": "object",
                "properties": {
                    "device_id": _device_id_property(),
                    "kind": _kind_property(),
                    "id": _identity_property(),
                    "dry_run": {
                        "type": "boolean",
                        "default": False
                    },
                },
                "required": ["device_id", "kind", "id"]
            }
        ),
        Tool(
            name="apply_config",
            description=(
                "Apply a desired state manifest to a device. Each resource is created, updated, "
                "moved or removed as needed; unchanged resources are left alone. "
                "Use dry_run=true to preview."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "config": {
                        "type": "object",
                        "description": (
                            "Manifest: {device: <id>, resources: [{kind, id?, "
                            "action: present|absent, properties}]}"
                        ),
                    },
                    "dry_run": {
                        "type": "boolean",
                        "description": "Preview changes without applying",
                        "default": False
                    },
                    "audit_context": {
                        "type": "string",
                        "description": "Why the change is made (written to the audit log)",
                        "default": ""
                    },
                },
                "required": ["config"]
            }
        ),
        Tool(
            name="preview_config",
            description="Human-readable summary of what apply_config would change",
            inputSchema={
                "type": "object",
                "properties": {
                    "config": {
                        "type": "object",
                        "description": "Manifest, as for apply_config",
                    },
                },
                "required": ["config"]
            }
        ),
        Tool(
            name="get_audit_log",
            description="Get recent configuration changes from the audit log",
            inputSchema={
                "type": "object",
                "properties": {
                    "device_id": {
                        "type": "string",
                        "description": "Only changes on this device"
                    },
                    "kind": {
                        "type": "string",
                        "description": "Only changes to this resource kind"
                    },
                    "limit": {
                        "type": "integer",
                        "description": "Maximum number of records",
                        "default": 20
                    },
                },
                "required": []
            }
        ),
    ]


@server.call_tool()
async def call_tool(name: str, arguments: dict) -> list[TextContent]:
    """Handle tool calls."""
    device_id = arguments.get("device_id", "N/A")

    async with timed_section(f"tool:{name}", device_id=device_id):
        try:
            if name == "list_devices":
                return await handle_list_devices(get_inventory())

            elif name == "device_status":
                return await handle_device_status(get_inventory(), arguments["device_id"])

            elif name == "list_resource_kinds":
                return await handle_list_resource_kinds(get_engine())

            elif name == "describe_resource":
                return await handle_describe_resource(get_engine(), arguments["kind"])

            elif name == "read_resource":
                return await handle_read_resource(get_engine(), arguments)

            elif name == "list_resources":
                return await handle_list_resources(get_engine(), arguments)

            elif name == "create_resource":
                return await handle_create_resource(get_engine(), arguments)

            elif name == "update_resource":
                return await handle_update_resource(get_engine(), arguments)

            elif name == "delete_resource":
                return await handle_delete_resource(get_engine(), arguments)

            elif name == "apply_config":
                return await handle_apply_config(
                    get_engine(),
                    arguments["config"],
                    arguments.get("dry_run", False),
                    arguments.get("audit_context", ""),
                )

            elif name == "preview_config":
                return await handle_preview_config(get_engine(), arguments["config"])

            elif name == "get_audit_log":
                return await handle_get_audit_log(
                    arguments.get("device_id"),
                    arguments.get("kind"),
                    arguments.get("limit", 20),
                )

            else:
                return [TextContent(type="text", text=f"Unknown tool: {name}")]

        except ReconcileError as e:
            logger.warning(f"Tool {name} failed: {e}")
            return _json(_error_payload(e))

        except Exception as e:
            logger.exception(f"Tool {name} failed")
            return [TextContent(type="text", text=f"Error: {str(e)}")]


def _json(payload: dict) -> list[TextContent]:
    return [TextContent(type="text", text=json.dumps(payload, indent=2, default=str))]


def _error_payload(error: ReconcileError) -> dict:
    payload = {
        "success": False,
        "error": str(error),
        "error_type": type(error).__name__,
        "context": error.context(),
    }
    if error.result is not None:
        payload["result"] = error.result.to_dict()
    return payload


# === TOOL HANDLERS ===

async def handle_list_devices(inv: DeviceInventory) -> list[TextContent]:
    """List all configured devices."""
    return _json({"devices": inv.describe()})


async def handle_device_status(inv: DeviceInventory, device_id: str) -> list[TextContent]:
    """Get device health status."""
    device = inv.get_device(device_id)

    async with device:
        status = await device.check_health()

    return _json({
        "device_id": device_id,
        "reachable": status.reachable,
        "uptime": status.uptime,
        "version": status.firmware_version,
        "board": status.board_name,
        "cpu_load": status.cpu_load,
        "free_memory": status.free_memory,
        "error": status.error,
    })


async def handle_list_resource_kinds(eng: ConfigEngine) -> list[TextContent]:
    """List resource kinds with their menu paths."""
    kinds = []
    for kind in eng.registry.kinds():
        schema = eng.registry.define(kind)
        kinds.append({
            "kind": kind,
            "path": schema.path,
            "identity": schema.id_type.name.lower(),
            "description": schema.description,
        })
    return _json({"kinds": kinds})


async def handle_describe_resource(eng: ConfigEngine, kind: str) -> list[TextContent]:
    """Describe the field schema of a kind."""
    return _json(eng.fields(kind))


async def handle_read_resource(eng: ConfigEngine, args: dict) -> list[TextContent]:
    """Read one resource instance."""
    resource = eng.resource(args["device_id"], args["kind"])
    async with resource.device:
        state = await resource.read(args["id"])
    return _json(state.to_dict())


async def handle_list_resources(eng: ConfigEngine, args: dict) -> list[TextContent]:
    """List resource instances, optionally filtered."""
    resource = eng.resource(args["device_id"], args["kind"])
    async with resource.device:
        states = await resource.read_all(args.get("filter"))
    return _json({
        "kind": args["kind"],
        "count": len(states),
        "items": [s.to_dict() for s in states],
    })


async def handle_create_resource(eng: ConfigEngine, args: dict) -> list[TextContent]:
    """Create a resource instance."""
    options = ExecuteOptions(dry_run=args.get("dry_run", False))
    resource = eng.resource(args["device_id"], args["kind"], options)
    async with resource.device:
        result = await resource.create(args["properties"])
    return _json(result.to_dict())


async def handle_update_resource(eng: ConfigEngine, args: dict) -> list[TextContent]:
    """Update a resource instance."""
    options = ExecuteOptions(dry_run=args.get("dry_run", False))
    resource = eng.resource(args["device_id"], args["kind"], options)
    async with resource.device:
        result = await resource.update(args["id"], args["properties"])
    return _json(result.to_dict())


async def handle_delete_resource(eng: ConfigEngine, args: dict) -> list[TextContent]:
    """Delete a resource instance."""
    options = ExecuteOptions(dry_run=args.get("dry_run", False))
    resource = eng.resource(args["device_id"], args["kind"], options)
    async with resource.device:
        result = await resource.delete(args["id"])
    return _json(result.to_dict())


async def handle_apply_config(
    eng: ConfigEngine,
    config: dict,
    dry_run: bool,
    audit_context: str
) -> list[TextContent]:
    """
    Apply a desired state manifest to a device.

    This is the primary tool for making changes. It:
    1. Validates every resource against its schema
    2. Reads current state and diffs it under each field's suppressor
    3. Creates, updates, moves or removes only what differs
    4. Returns per-resource results

    Use dry_run=True to preview changes without applying.
    """
    result = await eng.apply_config(
        config=config,
        dry_run=dry_run,
        audit_context=audit_context,
    )
    return _json(result.to_dict())


async def handle_preview_config(eng: ConfigEngine, config: dict) -> list[TextContent]:
    """Summarize what a manifest would change."""
    summary = await eng.preview(config)
    return [TextContent(type="text", text=summary)]


async def handle_get_audit_log(
    device_id: Optional[str] = None,
    kind: Optional[str] = None,
    limit: int = 20
) -> list[TextContent]:
    """Get recent configuration changes from the audit log."""
    records = get_recent_changes(device_id=device_id, kind=kind, limit=limit)

    return _json({
        "total_records": len(records),
        "filters": {
            "device_id": device_id,
            "kind": kind,
            "limit": limit,
        },
        "records": [
            {
                "timestamp": r.timestamp,
                "device_id": r.device_id,
                "operation": r.operation,
                "kind": r.kind,
                "identity": r.identity,
                "dry_run": r.dry_run,
                "success": r.success,
                "commands": r.commands,
                "error": r.error,
            }
            for r in records
        ],
    })


# === RESOURCES ===

@server.list_resources()
async def list_resources() -> list[Resource]:
    """One schema document per resource kind."""
    eng = get_engine()
    resources = []

    for kind in eng.registry.kinds():
        schema = eng.registry.define(kind)
        resources.append(Resource(
            uri=AnyUrl(f"{SCHEMA_URI_PREFIX}{kind}"),
            name=f"{kind} schema",
            description=schema.description or f"Fields of {schema.path}",
            mimeType="application/json",
        ))

    return resources


@server.read_resource()
async def read_resource(uri: AnyUrl) -> str:
    """Read a resource."""
    # Parse URI: routeros://schema/<kind>
    uri_str = str(uri)
    if uri_str.startswith(SCHEMA_URI_PREFIX):
        kind = uri_str[len(SCHEMA_URI_PREFIX):]
        eng = get_engine()
        if kind in eng.registry:
            return json.dumps(eng.fields(kind), indent=2, default=str)

    return json.dumps({"error": f"Unknown resource: {uri}"})


def main():
    """Run the MCP server."""
    setup_audit_logging()
    setup_logging()

    async def run():
        async with stdio_server() as (read_stream, write_stream):
            await server.run(
                read_stream,
                write_stream,
                server.create_initialization_options()
            )

    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        pass
    finally:
        # Cleanup
        if inventory:
            asyncio.run(inventory.close_all())


if __name__ == "__main__":
    main()
