"""Device inventory management from YAML configuration."""
import logging
import os
from pathlib import Path
from typing import Optional

import yaml

from ..devices import create_device, NetworkDevice

logger = logging.getLogger(__name__)

CONFIG_ENV = "ROUTEROS_CONFIG"


class DeviceInventory:
    """Manages the RouterOS devices listed in devices.yaml.

    ```yaml
    defaults:
      type: routeros
      username: admin
      password_env: ROUTEROS_PASSWORD
    devices:
      core-router:
        name: Core Router
        host: 192.168.88.1
      lab-hap:
        name: Lab hAP
        host: 10.0.0.2
        verify_ssl: false
    groups:
      lab:
        - lab-hap
    ```
    """

    def __init__(self, config_path: Optional[str] = None):
        self.config_path = config_path or self._find_config()
        self._config: dict = {}
        self._devices: dict[str, NetworkDevice] = {}
        self._load_config()

    def _find_config(self) -> str:
        """Find the devices.yaml config file."""
        env_path = os.environ.get(CONFIG_ENV)
        if env_path:
            return env_path

        search_paths = [
            Path.cwd() / "configs" / "devices.yaml",
            Path.cwd() / "devices.yaml",
            Path.home() / ".config" / "mcp-routeros" / "devices.yaml",
            Path("/etc/mcp-routeros/devices.yaml"),
        ]

        for path in search_paths:
            if path.exists():
                return str(path)

        raise FileNotFoundError(
            f"Could not find devices.yaml. Set {CONFIG_ENV} or create ./configs/devices.yaml"
        )

    def _load_config(self) -> None:
        """Load the YAML configuration."""
        with open(self.config_path) as f:
            self._config = yaml.safe_load(f) or {}

        defaults = self._config.get("defaults", {}) or {}
        devices = self._config.setdefault("devices", {}) or {}
        for device_id, device_config in devices.items():
            for key, value in defaults.items():
                device_config.setdefault(key, value)
            device_config.setdefault("name", device_id)

        self._validate_groups()
        logger.info(f"Loaded {len(devices)} device(s) from {self.config_path}")

    def get_device_ids(self) -> list[str]:
        """Get all device IDs."""
        return list(self._config.get("devices", {}).keys())

    def get_device_config(self, device_id: str) -> dict:
        """Get raw config for a device."""
        devices = self._config.get("devices", {})
        if device_id not in devices:
            raise KeyError(f"Unknown device: {device_id}")
        return devices[device_id]

    def get_device(self, device_id: str) -> NetworkDevice:
        """Get or create a device instance."""
        if device_id not in self._devices:
            config = self.get_device_config(device_id)
            self._devices[device_id] = create_device(device_id, config)
        return self._devices[device_id]

    def describe(self) -> list[dict]:
        """Summaries of all devices, without credentials."""
        result = []
        for device_id in self.get_device_ids():
            config = self.get_device_config(device_id)
            result.append({
                "id": device_id,
                "name": config.get("name", device_id),
                "type": config.get("type"),
                "host": config.get("host"),
                "groups": self.get_device_groups(device_id),
            })
        return result

    async def close_all(self) -> None:
        """Close all device connections."""
        for device in self._devices.values():
            if device.is_connected:
                await device.disconnect()
        self._devices.clear()

    # === Group Management ===

    def _validate_groups(self) -> None:
        """Validate that all group members reference valid devices."""
        groups = self._config.get("groups", {}) or {}
        devices = self._config.get("devices", {})

        for group_name, members in groups.items():
            if not isinstance(members, list):
                logger.warning(f"Group '{group_name}' should be a list of device IDs")
                continue
            for device_id in members:
                if device_id not in devices:
                    logger.warning(
                        f"Group '{group_name}' references unknown device: {device_id}"
                    )

    def get_device_groups(self, device_id: str) -> list[str]:
        """Get all groups a device belongs to."""
        groups = []
        for group_name, members in (self._config.get("groups") or {}).items():
            if isinstance(members, list) and device_id in members:
                groups.append(group_name)
        return groups
