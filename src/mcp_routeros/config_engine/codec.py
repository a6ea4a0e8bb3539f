"""Property codec: typed field values <-> flat device records.

The device speaks in flat records of kebab-case keys and string values.
Callers work with snake_case field names and native Python values. The codec
converts between the two using each field's type and encoding.
"""
import logging
from datetime import timedelta
from typing import Any, Mapping

from .duration import format_duration, is_duration
from .errors import DecodeError, ValidationError
from .schema import (
    ID_KEY,
    Encoding,
    Field,
    FieldType,
    Record,
    ResourceSchema,
)

logger = logging.getLogger(__name__)

TRUE_VALUES = {"true", "yes"}
FALSE_VALUES = {"false", "no"}


class PropertyCodec:
    """Encode typed instances to records and decode records back."""

    def encode(
        self,
        instance: Mapping[str, Any],
        schema: ResourceSchema,
        include_write_only: bool = True,
    ) -> Record:
        """
        Encode a typed instance into a device record.

        None values and computed fields are skipped.

        Raises:
            ValidationError: Unknown field or value of the wrong type
        """
        unknown = [name for name in instance if name not in schema.fields]
        if unknown:
            raise ValidationError(
                [f"unknown field '{name}'" for name in unknown],
                kind=schema.kind,
            )

        record: Record = {}
        for name, value in instance.items():
            spec = schema.fields[name]
            if value is None or spec.computed:
                continue
            if spec.write_only and not include_write_only:
                continue
            record[schema.remote_name(name)] = self.encode_value(name, value, spec, schema.kind)
        return record

    def encode_value(self, name: str, value: Any, spec: Field, kind: str = "") -> str:
        """Encode a single field value to its wire string.

        The field validator runs first, so out-of-range values never reach the
        device.
        """
        if spec.validator:
            message = spec.validator(value)
            if message:
                raise ValidationError([message], kind=kind, field=name)
        try:
            return _encode(value, spec)
        except (TypeError, ValueError) as e:
            raise ValidationError([str(e)], kind=kind, field=name) from e

    def decode(self, record: Mapping[str, str], schema: ResourceSchema) -> dict[str, Any]:
        """
        Decode a device record into a typed instance.

        The opaque .id and keys the schema does not declare are left out.

        Raises:
            DecodeError: A value cannot be parsed per its declared type
        """
        instance: dict[str, Any] = {}
        for wire_name, raw in record.items():
            if wire_name == ID_KEY:
                continue
            name = schema.field_name(wire_name)
            if name is None:
                logger.debug(f"{schema.kind}: ignoring undeclared property '{wire_name}'")
                continue
            instance[name] = self.decode_value(name, raw, schema.fields[name], schema.kind)
        return instance

    def decode_value(self, name: str, raw: Any, spec: Field, kind: str = "") -> Any:
        """Decode a single wire value."""
        try:
            value = _decode(str(raw), spec)
        except (TypeError, ValueError) as e:
            raise DecodeError(
                f"cannot decode {raw!r} as {spec.type.value}: {e}",
                kind=kind, field=name,
            ) from e

        # Numeric ranges are part of the wire contract
        numeric = spec.type == FieldType.INT or spec.encoding == Encoding.INT_OR_AUTO
        if spec.validator and numeric and value != "":
            message = spec.validator(value)
            if message:
                raise DecodeError(message, kind=kind, field=name)

        return value


def _encode(value: Any, spec: Field) -> str:
    if spec.type == FieldType.BOOL:
        if not isinstance(value, bool):
            raise TypeError(f"expected a boolean, got {value!r}")
        if spec.encoding == Encoding.YES_NO:
            return "yes" if value else "no"
        return "true" if value else "false"

    if spec.type == FieldType.INT:
        if isinstance(value, bool):
            raise TypeError(f"expected an integer, got {value!r}")
        if isinstance(value, str):
            return str(int(value, 0))
        if not isinstance(value, int):
            raise TypeError(f"expected an integer, got {value!r}")
        return str(value)

    if spec.type == FieldType.LIST:
        if isinstance(value, str):
            return value
        if not isinstance(value, (list, tuple)):
            raise TypeError(f"expected a list, got {value!r}")
        return spec.delimiter.join(str(item) for item in value)

    if spec.type == FieldType.MAP:
        if not isinstance(value, Mapping):
            raise TypeError(f"expected a mapping, got {value!r}")
        return spec.delimiter.join(f"{k}={v}" for k, v in value.items())

    # Strings with special encodings
    if spec.encoding == Encoding.DURATION:
        if isinstance(value, bool):
            raise TypeError(f"expected a time interval, got {value!r}")
        if isinstance(value, (int, float, timedelta)):
            return format_duration(value)
        if not is_duration(str(value)):
            raise ValueError(f"invalid time interval {value!r}")
        return str(value)

    if spec.encoding == Encoding.INT_OR_AUTO:
        if value == "auto":
            return "auto"
        if isinstance(value, bool):
            raise TypeError(f"expected integer or 'auto', got {value!r}")
        return str(int(value, 0) if isinstance(value, str) else int(value))

    if spec.encoding == Encoding.HEX:
        if isinstance(value, int) and not isinstance(value, bool):
            return hex(value)
        if isinstance(value, str) and value != "":
            try:
                int(value, 0)
            except ValueError:
                raise ValueError(f"expected a number such as 0x8100, got {value!r}") from None

    if isinstance(value, (dict, list, tuple, bool)):
        raise TypeError(f"expected a string, got {value!r}")
    return str(value)


def _decode(raw: str, spec: Field) -> Any:
    if spec.type == FieldType.BOOL:
        lowered = raw.lower()
        if lowered in TRUE_VALUES:
            return True
        if lowered in FALSE_VALUES:
            return False
        raise ValueError("expected true/false or yes/no")

    if spec.type == FieldType.INT:
        return int(raw, 0)

    if spec.type == FieldType.LIST:
        if raw == "":
            return []
        return raw.split(spec.delimiter)

    if spec.type == FieldType.MAP:
        result = {}
        if raw == "":
            return result
        for fragment in raw.split(spec.delimiter):
            key, sep, value = fragment.partition("=")
            if not sep:
                raise ValueError(f"map fragment {fragment!r} is not key=value")
            result[key] = value
        return result

    if spec.encoding == Encoding.DURATION:
        if raw != "" and not is_duration(raw):
            raise ValueError("not a time interval")
        return raw

    if spec.encoding == Encoding.INT_OR_AUTO:
        if raw == "auto":
            return "auto"
        return int(raw, 0)

    if spec.encoding == Encoding.HEX:
        if raw != "":
            int(raw, 0)
        return raw

    return raw
