"""Base device abstraction for RouterOS management transports."""
import os
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

logger = logging.getLogger(__name__)

# A record as sent to / returned by the device: wire name -> wire string
Record = dict[str, str]

# Device messages that mean "the addressed item does not exist"
NOT_FOUND_MARKERS = ("no such item",)


class Operation(str, Enum):
    """Commands understood by every transport."""
    READ = "read"
    ADD = "add"
    SET = "set"
    REMOVE = "remove"
    MOVE = "move"


class DeviceCommandError(Exception):
    """The device rejected a command or could not be reached."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status = status


def is_not_found(message: str) -> bool:
    """Check if a device error message reports a missing item."""
    lowered = message.lower()
    return any(marker in lowered for marker in NOT_FOUND_MARKERS)


@dataclass
class DeviceConfig:
    """Configuration for a RouterOS device."""
    type: str
    name: str
    host: str
    username: str = "admin"
    port: Optional[int] = None
    protocol: str = "https"
    password: Optional[str] = None
    password_env: str = "ROUTEROS_PASSWORD"
    timeout: int = 30
    retries: int = 3
    retry_delay: float = 2
    verify_ssl: bool = True

    def get_password(self) -> str:
        """Get password from config or environment variable."""
        if self.password:
            return self.password
        return os.environ.get(self.password_env, "")

    @property
    def base_url(self) -> str:
        port = self.port or (443 if self.protocol == "https" else 80)
        return f"{self.protocol}://{self.host}:{port}"


@dataclass
class DeviceStatus:
    """Device health and status information."""
    reachable: bool
    uptime: Optional[str] = None
    firmware_version: Optional[str] = None
    board_name: Optional[str] = None
    cpu_load: Optional[float] = None
    free_memory: Optional[int] = None
    error: Optional[str] = None


class NetworkDevice(ABC):
    """Abstract base class for device transports."""

    def __init__(self, device_id: str, config: DeviceConfig):
        self.device_id = device_id
        self.config = config
        self._connected = False
        self._connection: Any = None

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def host(self) -> str:
        return self.config.host

    @property
    def is_connected(self) -> bool:
        return self._connected

    # Connection management
    @abstractmethod
    async def connect(self) -> bool:
        """Establish connection to the device."""
        pass

    @abstractmethod
    async def disconnect(self) -> None:
        """Close connection to the device."""
        pass

    @abstractmethod
    async def check_health(self) -> DeviceStatus:
        """Check device health and connectivity."""
        pass

    # Command execution
    @abstractmethod
    async def execute(
        self,
        operation: Operation,
        path: str,
        params: Optional[Record] = None,
        filters: Optional[list[str]] = None,
    ) -> list[Record]:
        """Execute a single command against a menu path.

        Args:
            operation: read, add, set, remove or move
            path: Menu path, e.g. /system/scheduler
            params: Properties to write (wire names); .id addresses an item
            filters: field=value constraints for reads

        Returns:
            Records returned by the device (may be empty)

        Raises:
            DeviceCommandError: The device rejected the command or was unreachable
        """
        pass

    # Context manager support
    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.disconnect()
        return False
