"""Pre-flight validation for desired resource state.

Catches schema violations before any device communication, so a rejected
instance never partially applies.
"""
from collections.abc import Mapping as MappingABC
from datetime import timedelta
from typing import Any, Mapping

from .errors import ValidationError
from .schema import (
    FieldType,
    IdType,
    Placement,
    ResourceSchema,
    ValidationResult,
)

# Expected Python types per field type (strings are accepted for lists)
PYTHON_TYPES = {
    FieldType.STRING: (str, int, float, timedelta),
    FieldType.INT: (int, str),
    FieldType.BOOL: (bool,),
    FieldType.LIST: (list, tuple, str),
    FieldType.MAP: (MappingABC,),
}


class ConfigValidator:
    """Validate a typed instance against its resource schema."""

    def __init__(self, schema: ResourceSchema):
        """
        Initialize validator.

        Args:
            schema: Schema of the resource kind being validated
        """
        self.schema = schema

    def validate(
        self,
        instance: Mapping[str, Any],
        partial: bool = False,
    ) -> ValidationResult:
        """
        Validate a desired instance.

        Performs pre-flight checks:
        - Unknown fields
        - Computed fields supplied as desired state
        - Missing required fields
        - Value types
        - Per-field validators

        Args:
            instance: Field name -> desired value
            partial: Skip the required-field check (updates send only what changes)

        Returns:
            ValidationResult with valid flag, errors, and warnings
        """
        errors: list[str] = []
        warnings: list[str] = []

        self._check_fields(instance, errors)
        if not partial:
            self._check_required(instance, errors)
        self._check_values(instance, errors)
        self._check_placement(instance, warnings)

        return ValidationResult(
            valid=len(errors) == 0,
            errors=errors,
            warnings=warnings,
        )

    def check(self, instance: Mapping[str, Any], partial: bool = False) -> ValidationResult:
        """Validate and raise ValidationError on any error."""
        result = self.validate(instance, partial)
        if not result.valid:
            raise ValidationError(result.errors, kind=self.schema.kind)
        return result

    def with_defaults(self, instance: Mapping[str, Any]) -> dict[str, Any]:
        """Copy of the instance with schema defaults filled in for absent fields."""
        result = dict(instance)
        for name, spec in self.schema.fields.items():
            if spec.default is not None and result.get(name) is None and not spec.computed:
                default = spec.default
                result[name] = list(default) if isinstance(default, list) else default
        return result

    def _check_fields(self, instance: Mapping[str, Any], errors: list[str]) -> None:
        for name in instance:
            spec = self.schema.fields.get(name)
            if spec is None:
                errors.append(f"Unknown field '{name}' for {self.schema.kind}")
            elif spec.computed and instance[name] is not None:
                errors.append(
                    f"Field '{name}' is computed by the device and cannot be set"
                )

    def _check_required(self, instance: Mapping[str, Any], errors: list[str]) -> None:
        for name in self.schema.required_fields:
            value = instance.get(name)
            if value is None or value == "":
                errors.append(f"Missing required field: {name}")

    def _check_values(self, instance: Mapping[str, Any], errors: list[str]) -> None:
        for name, value in instance.items():
            spec = self.schema.fields.get(name)
            if spec is None or spec.computed or value is None:
                continue

            expected = PYTHON_TYPES[spec.type]
            if not isinstance(value, expected) or (
                spec.type != FieldType.BOOL and isinstance(value, bool)
            ):
                errors.append(
                    f"Invalid type for '{name}': expected {spec.type.value}, "
                    f"got {type(value).__name__}"
                )
                continue

            if spec.validator:
                message = spec.validator(value)
                if message:
                    errors.append(f"Invalid value for '{name}': {message}")

    def _check_placement(self, instance: Mapping[str, Any], warnings: list[str]) -> None:
        if instance.get("place_before") is None:
            return

        if not self.schema.ordered:
            warnings.append(
                f"{self.schema.kind} is not an ordered list; place_before has no effect"
            )
        elif self.schema.placement == Placement.RECREATE:
            warnings.append(
                f"Moving a {self.schema.kind} item deletes and recreates it "
                f"with a new identity"
            )


def check_identity_value(schema: ResourceSchema, value: str) -> None:
    """Reject identity values that cannot address an item of this kind."""
    if not value:
        raise ValidationError(["identity must not be empty"], kind=schema.kind)
    if schema.id_type == IdType.ID and not value.startswith("*"):
        raise ValidationError(
            [f"expected an opaque .id like '*1', got {value!r}"],
            kind=schema.kind,
        )
