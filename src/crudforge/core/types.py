"""Field type taxonomy with wire and UI defaults."""

from dataclasses import dataclass
from enum import Enum


class FieldKind(str, Enum):
    STRING = "STRING"
    TEXT = "TEXT"
    NUMBER = "NUMBER"
    INTEGER = "INTEGER"
    BOOLEAN = "BOOLEAN"
    DATE = "DATE"
    DATETIME = "DATETIME"
    ENUM = "ENUM"
    FILE = "FILE"
    REFERENCE = "REFERENCE"


# Older metadata services still emit these names
TYPE_ALIASES: dict[str, FieldKind] = {
    "TEXTAREA": FieldKind.TEXT,
}


@dataclass
class UIDefaults:
    edit_component: str
    filter_operator: str = "eq"
    alignment: str = "left"
    format: str | None = None


@dataclass
class FieldType:
    kind: FieldKind
    ui: UIDefaults
    query_operators: list[str]


_COMPARABLE = ["eq", "ne", "gt", "gte", "lt", "lte", "in"]

# Built-in field types
FIELD_TYPES: dict[FieldKind, FieldType] = {
    FieldKind.STRING: FieldType(
        kind=FieldKind.STRING,
        ui=UIDefaults(
            edit_component="TextInput",
            filter_operator="like",
        ),
        query_operators=["eq", "ne", "like", "in"],
    ),
    FieldKind.TEXT: FieldType(
        kind=FieldKind.TEXT,
        ui=UIDefaults(
            edit_component="TextArea",
            filter_operator="like",
        ),
        query_operators=["eq", "ne", "like"],
    ),
    FieldKind.NUMBER: FieldType(
        kind=FieldKind.NUMBER,
        ui=UIDefaults(
            edit_component="NumberInput",
            alignment="right",
        ),
        query_operators=_COMPARABLE,
    ),
    FieldKind.INTEGER: FieldType(
        kind=FieldKind.INTEGER,
        ui=UIDefaults(
            edit_component="IntegerInput",
            alignment="right",
            format="#,##0",
        ),
        query_operators=_COMPARABLE,
    ),
    FieldKind.BOOLEAN: FieldType(
        kind=FieldKind.BOOLEAN,
        ui=UIDefaults(
            edit_component="Switch",
        ),
        query_operators=["eq", "ne"],
    ),
    FieldKind.DATE: FieldType(
        kind=FieldKind.DATE,
        ui=UIDefaults(
            edit_component="DatePicker",
            format="%Y-%m-%d",
        ),
        query_operators=_COMPARABLE,
    ),
    FieldKind.DATETIME: FieldType(
        kind=FieldKind.DATETIME,
        ui=UIDefaults(
            edit_component="DateTimePicker",
            format="%Y-%m-%d %H:%M",
        ),
        query_operators=_COMPARABLE,
    ),
    FieldKind.ENUM: FieldType(
        kind=FieldKind.ENUM,
        ui=UIDefaults(
            edit_component="Select",
        ),
        query_operators=["eq", "ne", "in"],
    ),
    FieldKind.FILE: FieldType(
        kind=FieldKind.FILE,
        ui=UIDefaults(
            edit_component="FileUpload",
        ),
        query_operators=["eq"],
    ),
    FieldKind.REFERENCE: FieldType(
        kind=FieldKind.REFERENCE,
        ui=UIDefaults(
            edit_component="ReferenceSelect",
        ),
        query_operators=["eq", "ne", "in"],
    ),
}


def parse_kind(type_name: str | None) -> FieldKind | None:
    """Resolve a declared type name, or None when it is not in the taxonomy."""
    if not type_name:
        return None
    name = str(type_name).upper()
    if name in TYPE_ALIASES:
        return TYPE_ALIASES[name]
    try:
        return FieldKind(name)
    except ValueError:
        return None


def get_field_type(kind: FieldKind) -> FieldType:
    return FIELD_TYPES[kind]
