"""RouterOS time interval parsing and formatting.

RouterOS writes intervals as a run of ``<integer><unit>`` tokens, e.g.
``1w2d3h``, ``30s``, ``500ms``. A token without a unit counts as seconds.
Both ``m`` and ``M`` mean minutes.
"""
import re
from datetime import timedelta
from typing import Union

from .errors import CodecInvariantError

UNIT_SECONDS = {
    "ms": 0.001,
    "s": 1,
    "m": 60,
    "M": 60,
    "h": 3600,
    "d": 86400,
    "w": 604800,
}

# "ms" must be tried before "m"
_TOKEN = re.compile(r"(\d+)(ms|s|m|M|h|d|w)?")
_FULL = re.compile(r"^(?:\d+(?:ms|s|m|M|h|d|w)?)+$")


def is_duration(value: str) -> bool:
    """Check if a string follows the interval grammar."""
    return bool(value) and bool(_FULL.match(value))


def parse_duration(value: str) -> float:
    """
    Parse an interval string into seconds.

    Examples:
        "1h" -> 3600.0
        "1h30m" -> 5400.0
        "90" -> 90.0
        "250ms" -> 0.25

    Raises:
        ValueError: If the string does not follow the interval grammar
    """
    if not is_duration(value):
        raise ValueError(f"invalid duration: {value!r}")

    total_ms = 0
    for number, unit in _TOKEN.findall(value):
        # Sum in milliseconds so "1500ms" and "1s500ms" compare exactly
        total_ms += int(number) * int(UNIT_SECONDS[unit or "s"] * 1000)
    return total_ms / 1000


def format_duration(value: Union[int, float, timedelta]) -> str:
    """
    Format seconds (or a timedelta) as a compact interval string.

    Examples:
        3600 -> "1h"
        93784 -> "1d2h3m4s"
        0.25 -> "250ms"
    """
    if isinstance(value, timedelta):
        seconds = value.total_seconds()
    else:
        seconds = float(value)

    if seconds < 0:
        raise ValueError(f"negative duration: {value!r}")

    remaining_ms = int(round(seconds * 1000))
    if remaining_ms == 0:
        return "0s"

    parts = []
    for unit in ("w", "d", "h", "m", "s"):
        unit_ms = UNIT_SECONDS[unit] * 1000
        count, remaining_ms = divmod(remaining_ms, unit_ms)
        if count:
            parts.append(f"{count}{unit}")
    if remaining_ms:
        parts.append(f"{remaining_ms}ms")

    result = "".join(parts)

    if parse_duration(result) != round(seconds, 3):
        raise CodecInvariantError(
            f"formatted duration {result!r} does not parse back to {seconds}s"
        )

    return result


def durations_equal(old: str, new: str) -> bool:
    """Compare two interval strings after normalising both to seconds."""
    return parse_duration(old) == parse_duration(new)
