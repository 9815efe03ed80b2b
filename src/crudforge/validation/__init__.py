"""Local field validation and mapping of server-side field errors."""

from crudforge.validation.fields import (
    FieldConstraintValidator,
    map_server_errors,
    validate_values,
)
from crudforge.validation.types import FieldError, ValidationResult

__all__ = [
    "FieldConstraintValidator",
    "FieldError",
    "ValidationResult",
    "map_server_errors",
    "validate_values",
]
