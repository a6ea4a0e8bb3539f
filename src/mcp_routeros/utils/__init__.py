"""Utility modules for retries, logging and auditing."""
from .connection import with_retry
from .logging_config import (
    setup_logging,
    colorized_debug,
    timed,
    timed_section,
    perf_logger,
)
from .audit_log import setup_audit_logging, log_change, get_recent_changes

__all__ = [
    "with_retry",
    "setup_logging",
    "colorized_debug",
    "timed",
    "timed_section",
    "perf_logger",
    "setup_audit_logging",
    "log_change",
    "get_recent_changes",
]
