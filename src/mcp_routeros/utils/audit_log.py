"""Audit logging for configuration changes.

Every write the engine sends to a device is recorded as one JSON line:
- Timestamped entries for all config modifications
- Before/after state capture
- Separate audit log file
"""
import json
import logging
import os
from datetime import datetime, timezone
from dataclasses import dataclass, asdict
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

# Create dedicated audit logger
audit_logger = logging.getLogger("routeros.audit")

DEFAULT_LOG_DIR = "~/.mcp-routeros"


def setup_audit_logging(log_dir: Optional[str] = None) -> Path:
    """Configure audit logging to file.

    Args:
        log_dir: Directory for audit logs. Defaults to ~/.mcp-routeros/

    Returns:
        Path of the audit log file
    """
    if log_dir is None:
        log_dir = os.path.expanduser(DEFAULT_LOG_DIR)

    Path(log_dir).mkdir(parents=True, exist_ok=True)
    audit_file = Path(log_dir) / "audit.log"

    audit_logger.setLevel(logging.INFO)
    audit_logger.handlers.clear()

    handler = RotatingFileHandler(
        audit_file,
        maxBytes=10 * 1024 * 1024,  # 10MB
        backupCount=10,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    audit_logger.addHandler(handler)

    # Don't propagate to root logger
    audit_logger.propagate = False

    return audit_file


@dataclass
class ChangeRecord:
    """Record of a configuration change."""
    timestamp: str
    device_id: str
    operation: str  # create, update, delete, move, replace
    kind: str
    identity: Optional[str]
    user: str
    dry_run: bool
    success: bool
    commands: list
    context: str = ""
    before_state: Optional[dict] = None
    after_state: Optional[dict] = None
    error: Optional[str] = None

    def to_json(self) -> str:
        """Convert to JSON string."""
        return json.dumps(asdict(self), indent=None)

    @classmethod
    def from_json(cls, json_str: str) -> "ChangeRecord":
        """Parse from JSON string."""
        data = json.loads(json_str)
        return cls(**data)


def log_change(
    device_id: str,
    operation: str,
    kind: str,
    identity: Optional[str],
    commands: list[str],
    success: bool,
    user: Optional[str] = None,
    context: str = "",
    dry_run: bool = False,
    before_state: Optional[dict] = None,
    after_state: Optional[dict] = None,
    error: Optional[str] = None,
) -> ChangeRecord:
    """Log a configuration change.

    Returns:
        The ChangeRecord that was logged
    """
    record = ChangeRecord(
        timestamp=datetime.now(timezone.utc).isoformat(),
        device_id=device_id,
        operation=operation,
        kind=kind,
        identity=identity,
        user=user or "system",
        dry_run=dry_run,
        success=success,
        commands=list(commands),
        context=context,
        before_state=before_state,
        after_state=after_state,
        error=error,
    )

    audit_logger.info(record.to_json())

    return record


def get_recent_changes(
    log_file: Optional[str] = None,
    device_id: Optional[str] = None,
    kind: Optional[str] = None,
    limit: int = 100,
) -> list[ChangeRecord]:
    """Read recent changes from audit log.

    Args:
        log_file: Path to audit log. Defaults to ~/.mcp-routeros/audit.log
        device_id: Filter by device ID
        kind: Filter by resource kind
        limit: Maximum number of records to return

    Returns:
        List of ChangeRecords, most recent first
    """
    if log_file is None:
        log_file = os.path.join(os.path.expanduser(DEFAULT_LOG_DIR), "audit.log")

    if not os.path.exists(log_file):
        return []

    records = []
    with open(log_file, "r") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            try:
                record = ChangeRecord.from_json(line)
            except (json.JSONDecodeError, TypeError):
                continue  # Skip malformed lines

            if device_id and record.device_id != device_id:
                continue
            if kind and record.kind != kind:
                continue

            records.append(record)

    return list(reversed(records[-limit:]))
