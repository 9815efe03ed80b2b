"""Error taxonomy for the CRUD engine.

The orchestrator turns these into user-facing messages; raw transport
details stay in the log.
"""

from typing import Any


class CrudForgeError(Exception):
    """Base class for engine errors."""
    pass


class SchemaDefinitionError(CrudForgeError, ValueError):
    """A schema or field definition violates the metadata invariants."""
    pass


class FieldValueError(CrudForgeError, ValueError):
    """A value does not have the shape its field type requires."""
    pass


class SchemaNotFound(CrudForgeError):
    """The metadata service has no schema with the requested name."""

    def __init__(self, schema_name: str):
        super().__init__(f"Schema '{schema_name}' not found")
        self.schema_name = schema_name


class TransientFetchError(CrudForgeError):
    """A read or write could not complete; the caller may retry."""

    def __init__(self, message: str, cause: BaseException | None = None):
        super().__init__(message)
        self.cause = cause


class ServerValidationError(CrudForgeError):
    """The data service rejected a write with field-keyed errors."""

    def __init__(self, details: dict[str, Any], message: str = "Validation failed"):
        super().__init__(message)
        self.details = details


class WriteConflict(CrudForgeError):
    """The data service rejected a mutation outright."""
    pass


class ReferenceResolutionError(CrudForgeError):
    """A batched reference lookup for one target schema failed."""

    def __init__(
        self,
        target_schema: str,
        ids: list[str],
        cause: BaseException | None = None,
    ):
        super().__init__(
            f"Could not resolve {len(ids)} reference(s) into '{target_schema}'"
        )
        self.target_schema = target_schema
        self.ids = ids
        self.cause = cause
