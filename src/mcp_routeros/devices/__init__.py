"""Device transports for RouterOS management APIs."""
from dataclasses import fields

from .base import (
    NetworkDevice,
    DeviceConfig,
    DeviceCommandError,
    DeviceStatus,
    Operation,
    Record,
    is_not_found,
)
from .rest import RouterOSRestDevice

__all__ = [
    "NetworkDevice",
    "DeviceConfig",
    "DeviceCommandError",
    "DeviceStatus",
    "Operation",
    "Record",
    "is_not_found",
    "RouterOSRestDevice",
]

# Device type registry
DEVICE_TYPES = {
    "routeros": RouterOSRestDevice,
    "routeros-rest": RouterOSRestDevice,
}


def create_device(device_id: str, config: dict) -> NetworkDevice:
    """Factory function to create device instances."""
    device_type = config.get("type", "").lower()
    if device_type not in DEVICE_TYPES:
        raise ValueError(f"Unknown device type: {device_type}")

    # Keys the transport does not know (notes, tags) stay in the inventory only
    known = {f.name for f in fields(DeviceConfig)}
    device_class = DEVICE_TYPES[device_type]
    return device_class(device_id, DeviceConfig(**{k: v for k, v in config.items() if k in known}))
