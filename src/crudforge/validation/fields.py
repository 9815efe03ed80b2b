"""Field-level constraint validation and server error mapping.

Local validation runs before any network call:
- required: Field must have a non-empty value
- type shape: the value must convert through the field's type handler
- min/max: Numeric bounds
- minLength/maxLength: String length bounds
- pattern: Regex pattern matching
- enum: value must be one of the decoded options
"""

import logging
import re
from dataclasses import dataclass
from typing import Any

from crudforge.core.types import FieldKind
from crudforge.errors import FieldValueError
from crudforge.metadata.model import FieldDefinition, Schema
from crudforge.validation.types import FieldError, ValidationResult
from crudforge.widgets.dispatcher import decode_options, widget_for

logger = logging.getLogger(__name__)

GENERAL_FAILURE_MESSAGE = "Operation failed"

_TYPE_MESSAGES = {
    FieldKind.NUMBER: "must be a number",
    FieldKind.INTEGER: "must be a whole number",
    FieldKind.BOOLEAN: "must be yes or no",
    FieldKind.DATE: "must be a valid date (YYYY-MM-DD)",
    FieldKind.DATETIME: "must be a valid date and time",
    FieldKind.REFERENCE: "must reference a record",
}


@dataclass
class FieldConstraintValidator:
    """Validates a single field value against its metadata constraints."""

    field: FieldDefinition

    def validate(self, value: Any) -> list[FieldError]:
        errors: list[FieldError] = []
        widget = widget_for(self.field)
        label = self.field.label
        name = self.field.name

        # Unsupported types cannot be edited, so there is nothing to check
        if widget.disabled:
            return errors

        if _is_empty(value):
            if self.field.required:
                errors.append(FieldError(
                    message=f"Please enter {label}",
                    code="REQUIRED",
                    field=name,
                ))
            return errors

        try:
            wire = widget.to_wire(value)
        except FieldValueError:
            reason = _TYPE_MESSAGES.get(widget.kind, "has an invalid value")
            errors.append(FieldError(
                message=f"{label} {reason}",
                code=f"INVALID_{self.field.type}",
                field=name,
            ))
            return errors

        rules = self.field.validation

        if widget.kind in (FieldKind.NUMBER, FieldKind.INTEGER):
            if rules.min is not None and wire < rules.min:
                errors.append(FieldError(
                    message=f"{label} must be at least {rules.min}",
                    code="MIN_VALUE",
                    field=name,
                ))
            if rules.max is not None and wire > rules.max:
                errors.append(FieldError(
                    message=f"{label} must be at most {rules.max}",
                    code="MAX_VALUE",
                    field=name,
                ))

        if isinstance(wire, str):
            if rules.min_length is not None and len(wire) < rules.min_length:
                errors.append(FieldError(
                    message=f"{label} must be at least {rules.min_length} characters",
                    code="MIN_LENGTH",
                    field=name,
                ))
            if rules.max_length is not None and len(wire) > rules.max_length:
                errors.append(FieldError(
                    message=f"{label} must be at most {rules.max_length} characters",
                    code="MAX_LENGTH",
                    field=name,
                ))
            if rules.pattern:
                try:
                    if not re.fullmatch(rules.pattern, wire):
                        errors.append(FieldError(
                            message=f"{label} has an invalid format",
                            code="PATTERN_MISMATCH",
                            field=name,
                        ))
                except re.error:
                    logger.warning(
                        "Invalid pattern %r on field '%s'", rules.pattern, name
                    )

        if widget.kind is FieldKind.ENUM:
            options = decode_options(self.field.options)
            if options and wire not in options:
                errors.append(FieldError(
                    message=f"'{wire}' is not a valid option for {label}",
                    code="INVALID_OPTION",
                    field=name,
                ))

        return errors


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str) and value.strip() == "":
        return True
    if isinstance(value, (list, dict)) and len(value) == 0:
        return True
    return False


def validate_values(schema: Schema, values: dict[str, Any]) -> ValidationResult:
    """Validate form values against every declared field of the schema.

    Keys the schema does not declare are ignored.
    """
    result = ValidationResult()
    for field_def in schema.fields:
        validator = FieldConstraintValidator(field=field_def)
        result.errors.extend(validator.validate(values.get(field_def.name)))
    return result


def map_server_errors(schema: Schema, details: dict[str, Any] | None) -> ValidationResult:
    """Attach a server's field-keyed error structure to declared fields.

    Keys must match a declared field name exactly. Anything else is
    reported once through the general-purpose message.
    """
    result = ValidationResult()
    unmatched: list[str] = []
    for key, message in (details or {}).items():
        if schema.has_field(key):
            text = message if isinstance(message, str) else "; ".join(map(str, message))
            result.errors.append(FieldError(message=text, code="SERVER", field=key))
        else:
            unmatched.append(key)

    if unmatched:
        logger.warning(
            "Server validation errors for undeclared fields %s on schema '%s'",
            unmatched,
            schema.name,
        )
        result.general.append(GENERAL_FAILURE_MESSAGE)
    elif not result.errors:
        result.general.append(GENERAL_FAILURE_MESSAGE)
    return result
