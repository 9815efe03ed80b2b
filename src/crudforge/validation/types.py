"""Validation result types shared by local checks and server error mapping."""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class FieldError:
    """A single validation error.

    Attributes:
        message: Human-readable message shown next to the field
        code: Machine-readable error code (e.g., "REQUIRED")
        field: Declared field name, or None for form-level errors
    """

    message: str
    code: str
    field: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"message": self.message, "code": self.code, "field": self.field}


@dataclass
class ValidationResult:
    """Outcome of validating a form submission.

    Attributes:
        errors: Field-scoped errors, in schema field order
        general: Messages that could not be attached to a declared field
    """

    errors: list[FieldError] = field(default_factory=list)
    general: list[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors and not self.general

    def by_field(self) -> dict[str, list[str]]:
        grouped: dict[str, list[str]] = {}
        for error in self.errors:
            if error.field is not None:
                grouped.setdefault(error.field, []).append(error.message)
        return grouped
