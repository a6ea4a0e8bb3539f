"""RouterOS REST API transport.

RouterOS v7 exposes every menu under /rest:
- GET    /rest/<path>[?prop=value]   read (list)
- GET    /rest/<path>/<id>           read one item
- PUT    /rest/<path>                add
- PATCH  /rest/<path>/<id>           set
- DELETE /rest/<path>/<id>           remove
- POST   /rest/<path>/move           move

Values travel as JSON strings. Errors come back as
{"error": 404, "message": "Not Found", "detail": "no such item"}.
"""
import logging
from typing import Any, Optional
from urllib.parse import quote

import httpx

from .base import (
    DeviceCommandError,
    DeviceConfig,
    DeviceStatus,
    NetworkDevice,
    Operation,
    Record,
)
from ..utils.connection import with_retry
from ..utils.logging_config import timed

logger = logging.getLogger(__name__)

ID_KEY = ".id"


class RouterOSRestDevice(NetworkDevice):
    """RouterOS device handler using the REST API over httpx."""

    def __init__(
        self,
        device_id: str,
        config: DeviceConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(device_id, config)
        self._http: Optional[httpx.AsyncClient] = None
        self._transport = transport

    async def connect(self) -> bool:
        """Open the HTTP session. Credentials are checked on first request."""
        if self._http is None:
            logger.info(f"Connecting to RouterOS {self.device_id} at {self.config.base_url}")
            self._http = httpx.AsyncClient(
                base_url=f"{self.config.base_url}/rest",
                auth=(self.config.username, self.config.get_password()),
                verify=self.config.verify_ssl,
                timeout=httpx.Timeout(self.config.timeout),
                transport=self._transport,
            )
        self._connected = True
        return True

    async def disconnect(self) -> None:
        """Close the HTTP session."""
        if self._http:
            await self._http.aclose()
            self._http = None
        self._connected = False
        logger.info(f"Disconnected from {self.device_id}")

    async def check_health(self) -> DeviceStatus:
        """Check device health and status."""
        try:
            records = await self.execute(Operation.READ, "/system/resource")
        except DeviceCommandError as e:
            return DeviceStatus(reachable=False, error=str(e))

        info = records[0] if records else {}
        cpu_load = info.get("cpu-load")
        free_memory = info.get("free-memory")
        return DeviceStatus(
            reachable=True,
            uptime=info.get("uptime"),
            firmware_version=info.get("version"),
            board_name=info.get("board-name"),
            cpu_load=float(cpu_load) if cpu_load else None,
            free_memory=int(free_memory) if free_memory else None,
        )

    @timed("rest_execute")
    async def execute(
        self,
        operation: Operation,
        path: str,
        params: Optional[Record] = None,
        filters: Optional[list[str]] = None,
    ) -> list[Record]:
        """Execute one command through the REST API."""
        if not self._http:
            await self.connect()

        params = dict(params or {})
        filters = list(filters or [])
        base = path.rstrip("/")

        if operation == Operation.READ:
            item_id = _single_id_filter(filters)
            if item_id is not None:
                return await self._request("GET", _item_url(base, item_id))
            query = dict(f.split("=", 1) for f in filters)
            return await self._request("GET", base, params=query)

        if operation == Operation.ADD:
            params.pop(ID_KEY, None)
            return await self._request("PUT", base, json=params)

        if operation == Operation.SET:
            item_id = _require_id(params, operation)
            return await self._request("PATCH", _item_url(base, item_id), json=params)

        if operation == Operation.REMOVE:
            item_id = _require_id(params, operation)
            return await self._request("DELETE", _item_url(base, item_id))

        if operation == Operation.MOVE:
            return await self._request("POST", f"{base}/move", json=params)

        raise DeviceCommandError(f"Unsupported operation: {operation}")

    @with_retry(max_attempts=3, min_wait=1, max_wait=10)
    async def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        return await self._http.request(method, url, **kwargs)

    async def _request(self, method: str, url: str, **kwargs: Any) -> list[Record]:
        logger.debug(f"{self.device_id}: {method} {url} {kwargs or ''}")
        try:
            resp = await self._send(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise DeviceCommandError(f"{type(e).__name__}: {e}") from e

        if resp.status_code >= 400:
            raise DeviceCommandError(_error_message(resp), status=resp.status_code)

        if not resp.content:
            return []

        body = resp.json()
        if isinstance(body, list):
            return [_to_record(item) for item in body]
        if isinstance(body, dict):
            return [_to_record(body)] if body else []
        # "ret" values of commands like move come back as bare strings
        return [{"ret": str(body)}]


def _single_id_filter(filters: list[str]) -> Optional[str]:
    if len(filters) == 1 and filters[0].startswith(f"{ID_KEY}="):
        return filters[0].split("=", 1)[1]
    return None


def _require_id(params: Record, operation: Operation) -> str:
    item_id = params.pop(ID_KEY, None)
    if not item_id:
        raise DeviceCommandError(f"{operation.value} requires {ID_KEY}")
    return item_id


def _to_record(item: dict) -> Record:
    record = {}
    for key, value in item.items():
        if isinstance(value, bool):
            value = "true" if value else "false"
        record[key] = str(value)
    return record


def _error_message(resp: httpx.Response) -> str:
    """Extract the device's own message from an error response."""
    try:
        body = resp.json()
    except ValueError:
        return f"HTTP {resp.status_code}: {resp.text.strip()}"
    if isinstance(body, dict):
        detail = body.get("detail") or body.get("message")
        if detail:
            return str(detail)
    return f"HTTP {resp.status_code}: {body}"


def _item_url(base: str, item_id: str) -> str:
    return f"{base}/{quote(item_id, safe='*')}"
