"""In-memory schema model and parsing of metadata-service payloads."""

import re
from dataclasses import dataclass, field
from typing import Any

from crudforge.core.types import FieldKind, parse_kind
from crudforge.errors import SchemaDefinitionError

IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


@dataclass(frozen=True)
class ValidationRules:
    pattern: str | None = None
    min: float | None = None
    max: float | None = None
    min_length: int | None = None
    max_length: int | None = None


@dataclass(frozen=True)
class FieldDefinition:
    """One typed field of a schema.

    `type` keeps the declared type name as received, so an unknown type
    can still be shown to the user; `kind` is None in that case.
    """

    name: str
    label: str
    type: str
    required: bool = False
    default: Any = None
    options: Any = None  # raw, decoded by the dispatcher
    related_schema: str | None = None
    related_display_field: str | None = None
    validation: ValidationRules = field(default_factory=ValidationRules)
    order: int = 0

    @property
    def kind(self) -> FieldKind | None:
        return parse_kind(self.type)

    @property
    def is_reference(self) -> bool:
        return self.kind is FieldKind.REFERENCE


@dataclass(frozen=True)
class Schema:
    id: str | None
    name: str
    label: str
    tenant: str | None
    fields: tuple[FieldDefinition, ...] = ()

    def get_field(self, name: str) -> FieldDefinition | None:
        for f in self.fields:
            if f.name == name:
                return f
        return None

    def has_field(self, name: str) -> bool:
        return self.get_field(name) is not None

    @property
    def field_names(self) -> list[str]:
        return [f.name for f in self.fields]

    @property
    def reference_fields(self) -> list[FieldDefinition]:
        return [f for f in self.fields if f.is_reference]


@dataclass
class Record:
    """A stored row. `data` may hold keys the schema no longer declares."""

    id: Any
    schema_name: str
    tenant: str | None
    data: dict[str, Any]
    created_at: str | None = None
    updated_at: str | None = None
    created_by: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Record":
        return cls(
            id=data.get("id"),
            schema_name=data.get("schemaName", ""),
            tenant=data.get("tenantId"),
            data=dict(data.get("data") or {}),
            created_at=data.get("createdAt"),
            updated_at=data.get("updatedAt"),
            created_by=data.get("createdBy"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "tenantId": self.tenant,
            "schemaName": self.schema_name,
            "data": self.data,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "createdBy": self.created_by,
        }


def _to_label(name: str) -> str:
    """Convert camelCase to Title Case."""
    result = []
    for i, char in enumerate(name):
        if char.isupper() and i > 0:
            result.append(" ")
        result.append(char)
    return "".join(result).replace("_", " ").title()


def field_from_dict(data: dict[str, Any]) -> FieldDefinition:
    """Convert a metadata-service field DTO to a FieldDefinition.

    Accepts both the service's camelCase keys (`fieldName`, `fieldType`)
    and the short form used in local YAML files (`name`, `type`).
    """
    name = data.get("fieldName") or data.get("name")
    if not name or not IDENTIFIER_PATTERN.match(str(name)):
        raise SchemaDefinitionError(f"Invalid field name: {name!r}")

    type_name = str(data.get("fieldType") or data.get("type") or "STRING")
    kind = parse_kind(type_name)

    related_schema = data.get("relatedSchemaName") or data.get("relatedSchema")
    related_display = data.get("relatedFieldName") or data.get("relatedDisplayField")
    has_relation = bool(related_schema) and bool(related_display)
    if kind is FieldKind.REFERENCE and not has_relation:
        raise SchemaDefinitionError(
            f"Reference field '{name}' needs both a related schema and a display field"
        )
    if kind is not FieldKind.REFERENCE and (related_schema or related_display):
        raise SchemaDefinitionError(
            f"Field '{name}' of type {type_name} cannot declare a related schema"
        )

    options = data.get("options")
    if kind is not FieldKind.ENUM:
        if isinstance(options, list) and options:
            raise SchemaDefinitionError(
                f"Field '{name}' of type {type_name} cannot declare options"
            )
        options = None

    rules = data.get("validation") or {}
    validation = ValidationRules(
        pattern=rules.get("pattern", data.get("pattern")),
        min=rules.get("min", data.get("min")),
        max=rules.get("max", data.get("max")),
        min_length=rules.get("minLength", data.get("minLength")),
        max_length=rules.get("maxLength", data.get("maxLength")),
    )

    return FieldDefinition(
        name=name,
        label=data.get("label") or data.get("description") or _to_label(name),
        type=kind.value if kind else type_name,
        required=bool(data.get("required", False)),
        default=data.get("defaultValue", data.get("default")),
        options=options,
        related_schema=related_schema if has_relation else None,
        related_display_field=related_display if has_relation else None,
        validation=validation,
        order=int(data.get("orderNum") or data.get("order") or 0),
    )


def schema_from_dict(data: dict[str, Any]) -> Schema:
    """Convert a metadata-service schema DTO to a Schema.

    Fields are ordered by their `orderNum`; ties keep the payload order.
    """
    name = data.get("name")
    if not name or not IDENTIFIER_PATTERN.match(str(name)):
        raise SchemaDefinitionError(f"Invalid schema name: {name!r}")

    fields = [field_from_dict(f) for f in data.get("fields") or []]
    seen: set[str] = set()
    for f in fields:
        if f.name in seen:
            raise SchemaDefinitionError(
                f"Duplicate field '{f.name}' in schema '{name}'"
            )
        seen.add(f.name)
    fields.sort(key=lambda f: f.order)

    return Schema(
        id=data.get("id"),
        name=name,
        label=data.get("label") or data.get("description") or name,
        tenant=data.get("tenantId") or data.get("tenant"),
        fields=tuple(fields),
    )
