"""Shared fixtures: an in-memory RouterOS device."""
from typing import Optional

import pytest

from mcp_routeros.config_engine.duration import parse_duration
from mcp_routeros.devices.base import (
    DeviceCommandError,
    DeviceConfig,
    DeviceStatus,
    NetworkDevice,
    Operation,
    Record,
)


class FakeRouterOS(NetworkDevice):
    """Keeps one ordered table per menu path and answers like RouterOS does.

    - add assigns a fresh "*N" .id and honours place-before
    - scheduler entries get owner, run-count and next-run filled in
    - addressing a missing .id fails with "no such item"
    """

    def __init__(
        self,
        device_id: str = "fake-router",
        config: Optional[DeviceConfig] = None,
        echo_seconds: bool = False,
    ):
        super().__init__(
            device_id,
            config or DeviceConfig(type="fake", name="Fake Router", host="127.0.0.1"),
        )
        self.tables: dict[str, list[Record]] = {}
        self.calls: list[tuple[Operation, str, dict, list]] = []
        self.echo_seconds = echo_seconds
        self.fail_with: Optional[str] = None
        self._next_id = 1

    async def connect(self) -> bool:
        self._connected = True
        return True

    async def disconnect(self) -> None:
        self._connected = False

    async def check_health(self) -> DeviceStatus:
        return DeviceStatus(reachable=True, firmware_version="7.16")

    def seed(self, path: str, *records: dict) -> list[str]:
        """Put records on the device directly, returning their .ids."""
        table = self.tables.setdefault(path, [])
        ids = []
        for record in records:
            item = {".id": self._allocate_id(), **record}
            table.append(item)
            ids.append(item[".id"])
        return ids

    def writes(self) -> list[Operation]:
        """Operations of all non-read calls, in order."""
        return [op for op, *_ in self.calls if op != Operation.READ]

    async def execute(
        self,
        operation: Operation,
        path: str,
        params: Optional[Record] = None,
        filters: Optional[list[str]] = None,
    ) -> list[Record]:
        params = dict(params or {})
        filters = list(filters or [])
        self.calls.append((operation, path, dict(params), list(filters)))

        if self.fail_with:
            raise DeviceCommandError(self.fail_with, status=400)

        table = self.tables.setdefault(path, [])

        if operation == Operation.READ:
            return [dict(r) for r in table if _matches(r, filters)]

        if operation == Operation.ADD:
            destination = params.pop("place-before", None)
            item = {".id": self._allocate_id(), **params}
            self._normalize(path, item)
            if destination:
                table.insert(table.index(self._get(table, destination)), item)
            else:
                table.append(item)
            return [dict(item)]

        if operation == Operation.SET:
            item = self._get(table, params.pop(".id"))
            item.update(params)
            self._normalize(path, item)
            return []

        if operation == Operation.REMOVE:
            table.remove(self._get(table, params[".id"]))
            return []

        if operation == Operation.MOVE:
            item = self._get(table, params["numbers"])
            destination = self._get(table, params["destination"])
            table.remove(item)
            table.insert(table.index(destination), item)
            return []

        raise DeviceCommandError(f"unsupported operation {operation}")

    def _allocate_id(self) -> str:
        value = f"*{self._next_id:X}"
        self._next_id += 1
        return value

    def _get(self, table: list[Record], item_id: str) -> Record:
        for item in table:
            if item[".id"] == item_id:
                return item
        raise DeviceCommandError("no such item", status=404)

    def _normalize(self, path: str, item: Record) -> None:
        if path == "/system/scheduler":
            item.setdefault("owner", "admin")
            item.setdefault("run-count", "0")
            item.setdefault("next-run", "2026-01-02 00:00:00")
        if self.echo_seconds and item.get("interval"):
            item["interval"] = f"{int(parse_duration(item['interval']))}s"


def _matches(record: Record, filters: list[str]) -> bool:
    for fragment in filters:
        key, _, value = fragment.partition("=")
        if record.get(key) != value:
            return False
    return True


@pytest.fixture
def device():
    """Fake device that stores values as written."""
    return FakeRouterOS()


@pytest.fixture
def seconds_device():
    """Fake device that rewrites intervals as plain seconds."""
    return FakeRouterOS(echo_seconds=True)
