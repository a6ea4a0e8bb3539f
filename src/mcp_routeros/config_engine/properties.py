"""Shared field declarations, validators and diff-suppressors.

Resource kinds compose their schemas from these building blocks so that the
same property behaves the same way everywhere (e.g. every ``mtu`` accepts
``auto`` or 0..65535, every interval compares by seconds).
"""
import re
from datetime import timedelta
from typing import Any, Iterable, Optional

from .codec import FALSE_VALUES, TRUE_VALUES
from .duration import durations_equal, is_duration
from .errors import CodecInvariantError
from .schema import Encoding, Field, FieldMode, FieldType, Validator

# Field names used by more than one resource kind
KEY_ACTUAL_MTU = "actual_mtu"
KEY_ARP = "arp"
KEY_ARP_TIMEOUT = "arp_timeout"
KEY_COMMENT = "comment"
KEY_DYNAMIC = "dynamic"
KEY_DISABLED = "disabled"
KEY_INTERFACE = "interface"
KEY_INVALID = "invalid"
KEY_L2MTU = "l2mtu"
KEY_MTU = "mtu"
KEY_NAME = "name"
KEY_PLACE_BEFORE = "place_before"
KEY_RUNNING = "running"


# --- Validators ---
# A validator returns None when the value is acceptable, else an error message.

def string_in_slice(valid: Iterable[str], ignore_case: bool = False) -> Validator:
    """Accept only one of the given strings."""
    choices = list(valid)

    def _validate(value: Any) -> Optional[str]:
        if not isinstance(value, str):
            return f"expected a string, got {type(value).__name__}"
        candidates = [c.lower() for c in choices] if ignore_case else choices
        if (value.lower() if ignore_case else value) not in candidates:
            return f"expected one of [{', '.join(choices)}], got {value!r}"
        return None

    return _validate


def string_match(pattern: str, message: str) -> Validator:
    """Accept strings matching a regular expression."""
    compiled = re.compile(pattern)

    def _validate(value: Any) -> Optional[str]:
        if not isinstance(value, str) or not compiled.match(value):
            return f"{message}, got {value!r}"
        return None

    return _validate


def int_between(minimum: int, maximum: int) -> Validator:
    """Accept integers (or integer strings) within an inclusive range."""

    def _validate(value: Any) -> Optional[str]:
        try:
            number = _to_int(value)
        except (TypeError, ValueError):
            return f"expected an integer, got {value!r}"
        if number < minimum or number > maximum:
            return f"expected value to be in the range ({minimum} - {maximum}), got {value}"
        return None

    return _validate


def validate_mtu(value: Any) -> Optional[str]:
    """MTU value can be integer or 'auto'."""
    if value == "auto":
        return None

    try:
        mtu = _to_int(value)
    except (TypeError, ValueError):
        return f"Expected MTU value to be integer or 'auto', got {value!r}"

    if mtu < 0 or mtu > 65535:
        return f"Expected MTU value to be in the range (0 - 65535), got {value}"

    return None


def validate_duration(value: Any) -> Optional[str]:
    """Accept interval strings or a non-negative number of seconds."""
    if isinstance(value, timedelta):
        value = value.total_seconds()
    if isinstance(value, bool):
        return f"expected a time interval, got {value!r}"
    if isinstance(value, (int, float)):
        return None if value >= 0 else f"expected a non-negative interval, got {value}"
    if isinstance(value, str) and is_duration(value):
        return None
    return f"value must be integer[/time], e.g. 30s, 1h30m, got {value!r}"


def validate_hex_number(value: Any) -> Optional[str]:
    """Accept integers or number strings in any base (2048, 0x800)."""
    if value == "":
        return None
    try:
        _to_int(value)
    except (TypeError, ValueError):
        return f"expected a number such as 0x8100 or 33024, got {value!r}"
    return None


def _to_int(value: Any) -> int:
    if isinstance(value, bool):
        raise TypeError("bool is not an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        # Base auto-detection: 1500, 0x5dc
        return int(value.strip(), 0)
    raise TypeError(f"unsupported type {type(value).__name__}")


VALIDATION_TIME = validate_duration
VALIDATION_HEX_NUMBER = validate_hex_number
VALIDATION_AUTO_YES_NO = string_in_slice(["auto", "yes", "no"])
VALIDATION_IP_ADDRESS = string_match(
    r"^$|^(\b(?:(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)\.){3}"
    r"(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)(/([1-2][0-9]|3[0-2]|[0-9]))?)$",
    "Allowed addresses must be a CIDR IP address or an empty string",
)


# --- Diff suppressors ---
# A suppressor gets the observed and desired wire strings and returns True
# when they mean the same thing.

def time_equal(old: str, new: str) -> bool:
    """Intervals are equal when they amount to the same number of seconds."""
    if old == new:
        return True

    if old == "" or new == "":
        return False

    try:
        return durations_equal(old, new)
    except ValueError as e:
        raise CodecInvariantError(f"[time_equal] {e}") from e


def bool_equal(old: str, new: str) -> bool:
    """true/yes and false/no name the same boolean."""
    if old == new:
        return True
    old_value, new_value = _as_bool(old), _as_bool(new)
    return old_value is not None and old_value == new_value


def _as_bool(value: str) -> Optional[bool]:
    lowered = value.lower()
    if lowered in TRUE_VALUES:
        return True
    if lowered in FALSE_VALUES:
        return False
    return None


def hex_equal(old: str, new: str) -> bool:
    """Numbers are equal regardless of base (0x800 == 2048)."""
    if old == new:
        return True

    if old == "" or new == "":
        return False

    try:
        return int(old, 0) == int(new, 0)
    except ValueError as e:
        raise CodecInvariantError(f"[hex_equal] number parse error: {e}") from e


# --- Shared properties ---

PROP_ACTUAL_MTU_RO = Field(type=FieldType.INT, mode=FieldMode.COMPUTED)

PROP_ARP_RW = Field(
    default="enabled",
    description="ARP resolution protocol mode.",
    validator=string_in_slice(
        ["disabled", "enabled", "local-proxy-arp", "proxy-arp", "reply-only"]
    ),
)

PROP_ARP_TIMEOUT_RW = Field(
    default="auto",
    description=(
        "ARP timeout is time how long ARP record is kept in ARP table after no "
        "packets are received from IP. Value auto equals to the value of "
        "arp-timeout in IP/Settings, default is 30s. Can use postfix ms, s, M, "
        "h, d for milliseconds, seconds, minutes, hours or days. If no postfix "
        "is set then seconds (s) is used."
    ),
    validator=string_match(
        r"^$|^auto$|^(\d+(ms|s|M|h|d)?)+$",
        "expected arp_timeout value to be 'auto' string or time value",
    ),
)

PROP_COMMENT_RW = Field()

PROP_DISABLED_RW = Field(type=FieldType.BOOL, default=False)

PROP_DYNAMIC_RO = Field(
    type=FieldType.BOOL,
    mode=FieldMode.COMPUTED,
    description=(
        "Configuration item created by software, not by management interface. "
        "It is not exported, and cannot be directly modified."
    ),
)

PROP_INTERFACE_RW = Field(mode=FieldMode.REQUIRED, description="Name of the interface.")

PROP_INVALID_RO = Field(type=FieldType.BOOL, mode=FieldMode.COMPUTED)

PROP_L2MTU_RO = Field(
    type=FieldType.INT,
    mode=FieldMode.COMPUTED,
    description="Layer2 Maximum transmission unit.",
)

PROP_NAME_RW = Field(mode=FieldMode.REQUIRED)

PROP_PLACE_BEFORE = Field(
    write_only=True,
    description=(
        "Before which position the item will be inserted: the .id of an "
        "existing item."
    ),
)

PROP_RUNNING_RO = Field(type=FieldType.BOOL, mode=FieldMode.COMPUTED)


def prop_mtu_rw() -> Field:
    """MTU value can be integer or 'auto'."""
    return Field(
        encoding=Encoding.INT_OR_AUTO,
        validator=validate_mtu,
        description="Layer3 Maximum transmission unit ('auto', 0 .. 65535)",
    )


def prop_duration_rw(description: str = "", default: Optional[str] = None) -> Field:
    """Time interval compared by its value in seconds."""
    return Field(
        default=default,
        encoding=Encoding.DURATION,
        validator=VALIDATION_TIME,
        diff_suppress=time_equal,
        description=description,
    )
