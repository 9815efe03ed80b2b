"""Field-type dispatcher.

Maps each field's declared type to a widget descriptor: the input
component, validation rules, and the value conversions between the wire
(JSON) form and the in-memory form. Dispatch goes through the HANDLERS
table keyed by FieldKind; anything outside the taxonomy gets the
unsupported handler, which renders a disabled text input.
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any

from crudforge.core.types import FieldKind, get_field_type
from crudforge.errors import FieldValueError
from crudforge.metadata.model import FieldDefinition
from crudforge.widgets.conversions import (
    date_from_wire,
    date_to_wire,
    datetime_from_wire,
    datetime_to_wire,
    same_instant,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Type handlers
# =============================================================================


class FieldTypeHandler:
    """Conversions for one field kind.

    `from_wire` turns a stored/JSON value into the in-memory value a form
    works with; `to_wire` is its inverse. Both pass None through.
    """

    kind: FieldKind | None = None
    editable = True

    def from_wire(self, value: Any) -> Any:
        if value is None:
            return None
        return self._parse(value)

    def to_wire(self, value: Any) -> Any:
        if value is None:
            return None
        return self._serialize(self._parse(value))

    def to_query(self, value: Any) -> str:
        """Encode a filter value as a query-string value."""
        wire = self.to_wire(value)
        return "" if wire is None else str(wire)

    def equal(self, a: Any, b: Any) -> bool:
        return a == b

    def display(self, value: Any) -> str:
        if value is None:
            return ""
        return str(self.from_wire(value))

    def _parse(self, value: Any) -> Any:
        return value

    def _serialize(self, value: Any) -> Any:
        return value


class TextHandler(FieldTypeHandler):
    def __init__(self, kind: FieldKind):
        self.kind = kind

    def _parse(self, value: Any) -> str:
        if isinstance(value, (dict, list)):
            raise FieldValueError(f"Expected text, got {type(value).__name__}")
        return str(value)


class NumberHandler(FieldTypeHandler):
    kind = FieldKind.NUMBER

    def _parse(self, value: Any) -> int | float:
        if isinstance(value, bool):
            raise FieldValueError(f"Expected a number, got {value!r}")
        if isinstance(value, (int, float)):
            return value
        if isinstance(value, str):
            try:
                number = float(value.strip())
            except ValueError as e:
                raise FieldValueError(f"Expected a number, got {value!r}") from e
            return int(number) if number.is_integer() and "." not in value else number
        raise FieldValueError(f"Expected a number, got {value!r}")


class IntegerHandler(FieldTypeHandler):
    kind = FieldKind.INTEGER

    def _parse(self, value: Any) -> int:
        if isinstance(value, bool):
            raise FieldValueError(f"Expected an integer, got {value!r}")
        if isinstance(value, int):
            return value
        if isinstance(value, float):
            if value.is_integer():
                return int(value)
            raise FieldValueError(f"Expected an integer, got {value!r}")
        if isinstance(value, str):
            try:
                return int(value.strip())
            except ValueError as e:
                raise FieldValueError(f"Expected an integer, got {value!r}") from e
        raise FieldValueError(f"Expected an integer, got {value!r}")


class BooleanHandler(FieldTypeHandler):
    kind = FieldKind.BOOLEAN

    _TRUE = ("true", "1", "yes", "on")
    _FALSE = ("false", "0", "no", "off")

    def _parse(self, value: Any) -> bool:
        if isinstance(value, bool):
            return value
        if isinstance(value, int) and value in (0, 1):
            return bool(value)
        if isinstance(value, str):
            text = value.strip().lower()
            if text in self._TRUE:
                return True
            if text in self._FALSE:
                return False
        raise FieldValueError(f"Expected a boolean, got {value!r}")

    def to_query(self, value: Any) -> str:
        return "true" if self._parse(value) else "false"

    def display(self, value: Any) -> str:
        if value is None:
            return ""
        return "Yes" if self._parse(value) else "No"


class DateHandler(FieldTypeHandler):
    kind = FieldKind.DATE

    def _parse(self, value: Any) -> date:
        return date_from_wire(value)

    def _serialize(self, value: date) -> str:
        return date_to_wire(value)

    def equal(self, a: Any, b: Any) -> bool:
        """Same calendar date, whatever time part either side carries."""
        if a is None or b is None:
            return a is b
        return self._parse(a) == self._parse(b)

    def display(self, value: Any) -> str:
        if value is None:
            return ""
        fmt = get_field_type(FieldKind.DATE).ui.format or "%Y-%m-%d"
        return self._parse(value).strftime(fmt)


class DateTimeHandler(FieldTypeHandler):
    kind = FieldKind.DATETIME

    def _parse(self, value: Any) -> datetime:
        return datetime_from_wire(value)

    def _serialize(self, value: datetime) -> str:
        return datetime_to_wire(value)

    def equal(self, a: Any, b: Any) -> bool:
        if a is None or b is None:
            return a is b
        return same_instant(self._parse(a), self._parse(b))

    def display(self, value: Any) -> str:
        if value is None:
            return ""
        fmt = get_field_type(FieldKind.DATETIME).ui.format or "%Y-%m-%d %H:%M"
        return self._parse(value).strftime(fmt)


class EnumHandler(FieldTypeHandler):
    kind = FieldKind.ENUM

    def _parse(self, value: Any) -> str:
        if isinstance(value, (dict, list)):
            raise FieldValueError(f"Expected an option, got {type(value).__name__}")
        return str(value)


class FileHandler(FieldTypeHandler):
    """Files are stored as a URL/path string or an upload descriptor."""

    kind = FieldKind.FILE

    def _parse(self, value: Any) -> str | dict:
        if isinstance(value, (str, dict)):
            return value
        raise FieldValueError(f"Expected a file reference, got {value!r}")

    def display(self, value: Any) -> str:
        if value is None:
            return ""
        parsed = self._parse(value)
        if isinstance(parsed, dict):
            return str(parsed.get("name") or parsed.get("url") or "")
        return parsed


class ReferenceHandler(FieldTypeHandler):
    """Reference values are foreign record ids.

    Record ids are numeric, so a digit-only string typed into a form is
    stored as the integer it names; any other id is kept as received.
    """

    kind = FieldKind.REFERENCE

    def _parse(self, value: Any) -> int | str:
        if isinstance(value, bool) or not isinstance(value, (int, str)):
            raise FieldValueError(f"Expected a record id, got {value!r}")
        if isinstance(value, str):
            text = value.strip()
            if text.isascii() and text.isdigit():
                return int(text)
        return value


class UnsupportedHandler(FieldTypeHandler):
    """Fallback for declared types outside the taxonomy."""

    editable = False


HANDLERS: dict[FieldKind, FieldTypeHandler] = {
    FieldKind.STRING: TextHandler(FieldKind.STRING),
    FieldKind.TEXT: TextHandler(FieldKind.TEXT),
    FieldKind.NUMBER: NumberHandler(),
    FieldKind.INTEGER: IntegerHandler(),
    FieldKind.BOOLEAN: BooleanHandler(),
    FieldKind.DATE: DateHandler(),
    FieldKind.DATETIME: DateTimeHandler(),
    FieldKind.ENUM: EnumHandler(),
    FieldKind.FILE: FileHandler(),
    FieldKind.REFERENCE: ReferenceHandler(),
}

UNSUPPORTED = UnsupportedHandler()


def handler_for(field_def: FieldDefinition) -> FieldTypeHandler:
    kind = field_def.kind
    if kind is None:
        return UNSUPPORTED
    return HANDLERS.get(kind, UNSUPPORTED)


# =============================================================================
# Widget descriptors
# =============================================================================


@dataclass(frozen=True)
class Choice:
    label: str
    value: str


@dataclass(frozen=True)
class WidgetRule:
    """A client-side validation rule attached to a widget.

    kind is one of: required, pattern, min, max, minLength, maxLength.
    """

    kind: str
    value: Any
    message: str


@dataclass(frozen=True)
class WidgetDescriptor:
    field_name: str
    label: str
    kind: FieldKind | None
    component: str
    handler: FieldTypeHandler = field(compare=False, repr=False)
    disabled: bool = False
    required: bool = False
    value_prop: str = "value"
    placeholder: str | None = None
    choices: tuple[Choice, ...] = ()
    rules: tuple[WidgetRule, ...] = ()
    alignment: str = "left"
    format: str | None = None
    default_operator: str = "eq"
    related_schema: str | None = None
    related_display_field: str | None = None

    def to_wire(self, value: Any) -> Any:
        return self.handler.to_wire(value)

    def from_wire(self, value: Any) -> Any:
        return self.handler.from_wire(value)


def decode_options(raw: Any) -> list[str]:
    """Decode stored ENUM options into an ordered list of strings.

    Options may arrive as a list or as a JSON-encoded string (or bytes).
    Anything that does not decode to a list of strings yields [].
    """
    if raw is None:
        return []
    value = raw
    try:
        if isinstance(value, bytes):
            value = value.decode("utf-8")
        if isinstance(value, str):
            value = json.loads(value)
    except (UnicodeDecodeError, ValueError):
        logger.warning("Malformed enum options %r, rendering no choices", raw)
        return []
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        logger.warning("Malformed enum options %r, rendering no choices", raw)
        return []
    return list(value)


def _rules_for(field_def: FieldDefinition) -> tuple[WidgetRule, ...]:
    label = field_def.label
    rules = field_def.validation
    result: list[WidgetRule] = []
    if field_def.required:
        result.append(WidgetRule("required", True, f"Please enter {label}"))
    if rules.pattern:
        result.append(WidgetRule("pattern", rules.pattern, f"{label} has an invalid format"))
    if rules.min is not None:
        result.append(WidgetRule("min", rules.min, f"{label} must be at least {rules.min}"))
    if rules.max is not None:
        result.append(WidgetRule("max", rules.max, f"{label} must be at most {rules.max}"))
    if rules.min_length is not None:
        result.append(WidgetRule(
            "minLength", rules.min_length,
            f"{label} must be at least {rules.min_length} characters",
        ))
    if rules.max_length is not None:
        result.append(WidgetRule(
            "maxLength", rules.max_length,
            f"{label} must be at most {rules.max_length} characters",
        ))
    return tuple(result)


def widget_for(field_def: FieldDefinition) -> WidgetDescriptor:
    """Build the widget descriptor for a field. Never raises on unknown types."""
    handler = handler_for(field_def)

    if handler is UNSUPPORTED:
        logger.debug(
            "Field '%s' has unsupported type %s", field_def.name, field_def.type
        )
        return WidgetDescriptor(
            field_name=field_def.name,
            label=field_def.label,
            kind=None,
            component="TextInput",
            handler=handler,
            disabled=True,
            placeholder=f"Unsupported field type: {field_def.type}",
        )

    kind = handler.kind
    ui = get_field_type(kind).ui
    choices: tuple[Choice, ...] = ()
    if kind is FieldKind.ENUM:
        choices = tuple(Choice(label=o, value=o) for o in decode_options(field_def.options))

    return WidgetDescriptor(
        field_name=field_def.name,
        label=field_def.label,
        kind=kind,
        component=ui.edit_component,
        handler=handler,
        required=field_def.required,
        value_prop="checked" if kind is FieldKind.BOOLEAN else "value",
        choices=choices,
        rules=_rules_for(field_def),
        alignment=ui.alignment,
        format=ui.format,
        default_operator=ui.filter_operator,
        related_schema=field_def.related_schema,
        related_display_field=field_def.related_display_field,
    )
