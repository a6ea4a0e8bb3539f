"""Parser for desired state manifests.

Converts dict/YAML input to strongly-typed DesiredState objects:

```yaml
device: core-router
resources:
  - kind: system_scheduler
    properties:
      name: nightly-backup
      on_event: /system backup save
      interval: 1d
  - kind: ip_address
    id: "*3"
    action: absent
```
"""
import hashlib
import json
import logging
from typing import Any, Optional

import yaml

from .resources import REGISTRY
from .schema import (
    DesiredState,
    IdType,
    ResourceAction,
    ResourceDesiredState,
    ResourceRegistry,
)

logger = logging.getLogger(__name__)


class ParseError(Exception):
    """Error parsing desired state configuration."""
    pass


class ConfigParser:
    """Parse desired state from dict/YAML format."""

    def __init__(self, registry: Optional[ResourceRegistry] = None):
        self.registry = registry or REGISTRY
        self.warnings: list[str] = []

    def parse(self, config: dict[str, Any]) -> DesiredState:
        """
        Parse a manifest dict into a DesiredState object.

        Args:
            config: Dict with device_id (or device) and a resources list

        Returns:
            DesiredState object

        Raises:
            ParseError: If the manifest is invalid
        """
        if not isinstance(config, dict):
            raise ParseError("Manifest must be a mapping")

        self.warnings = []

        device_id = config.get("device_id") or config.get("device")
        if not device_id:
            raise ParseError("Missing required field: device_id or device")

        checksum = config.get("checksum")
        if checksum and checksum != compute_checksum(config):
            raise ParseError(f"Checksum mismatch: manifest says {checksum}")

        resources_config = config.get("resources", [])
        if not isinstance(resources_config, list):
            raise ParseError("'resources' must be a list")

        resources = [
            self._parse_resource(index, entry)
            for index, entry in enumerate(resources_config)
        ]

        return DesiredState(
            device_id=device_id,
            version=config.get("version", 1),
            checksum=checksum,
            resources=resources,
        )

    def parse_yaml(self, text: str) -> DesiredState:
        """Parse a YAML manifest document."""
        try:
            config = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise ParseError(f"Invalid YAML: {e}") from e
        return self.parse(config)

    def _parse_resource(self, index: int, entry: Any) -> ResourceDesiredState:
        """Parse a single resources[] entry."""
        where = f"resources[{index}]"
        if not isinstance(entry, dict):
            raise ParseError(f"{where}: expected a mapping, got {type(entry).__name__}")

        kind = entry.get("kind")
        if not kind:
            raise ParseError(f"{where}: missing 'kind'")
        if kind not in self.registry:
            raise ParseError(f"{where}: unknown resource kind '{kind}'")
        schema = self.registry.define(kind)

        action_str = entry.get("action", ResourceAction.PRESENT.value)
        try:
            action = ResourceAction(action_str)
        except ValueError:
            raise ParseError(
                f"{where}: invalid action '{action_str}'. Must be 'present' or 'absent'"
            )

        properties = entry.get("properties") or {}
        if not isinstance(properties, dict):
            raise ParseError(f"{where}: 'properties' must be a mapping")

        identity = entry.get("id")
        if identity is not None:
            identity = str(identity)

        if schema.id_type == IdType.ID and identity is None:
            if action == ResourceAction.ABSENT:
                raise ParseError(f"{where}: {kind} needs an 'id' to be removed")
            # Nothing identifies the item on the device: every apply creates it
            warning = (
                f"{where}: {kind} has no 'id'; it will be created on every apply"
            )
            logger.warning(warning)
            self.warnings.append(warning)
        elif identity is None:
            key = properties.get(schema.key_field)
            if key is None:
                raise ParseError(f"{where}: {kind} needs '{schema.key_field}' or 'id'")
            identity = str(key)

        return ResourceDesiredState(
            kind=kind,
            values=dict(properties),
            identity=identity,
            action=action,
        )


def compute_checksum(config: dict[str, Any]) -> str:
    """
    Compute SHA256 checksum of a manifest dict.

    Useful for integrity verification.
    """
    config_copy = {k: v for k, v in config.items() if k != "checksum"}
    config_str = json.dumps(config_copy, sort_keys=True, separators=(",", ":"), default=str)
    hash_bytes = hashlib.sha256(config_str.encode()).hexdigest()
    return f"sha256:{hash_bytes[:16]}"
