"""Compose widget descriptors into forms and table columns.

Cells are rendered to display strings. Reference cells read from the
view's ReferenceCache: a placeholder while unresolved, the label once
resolved, and the raw id when the target record is unknown or the lookup
failed.
"""

import logging
from dataclasses import dataclass, field
from typing import Any

from crudforge.core.types import FieldKind
from crudforge.errors import FieldValueError
from crudforge.metadata.model import FieldDefinition, Record, Schema
from crudforge.references.cache import UNKNOWN, ReferenceCache
from crudforge.widgets.dispatcher import WidgetDescriptor, widget_for

logger = logging.getLogger(__name__)

PENDING_PLACEHOLDER = "…"
ID_COLUMN = "id"


@dataclass
class FormField:
    name: str
    label: str
    widget: WidgetDescriptor
    value: Any = None
    errors: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class Column:
    key: str
    title: str
    data_index: tuple[str, ...]
    alignment: str = "left"
    sortable: bool = True


class RenderingEngine:
    def __init__(self, schema: Schema, cache: ReferenceCache | None = None):
        self.schema = schema
        self.cache = cache
        self._widgets = {f.name: widget_for(f) for f in schema.fields}

    def widget(self, name: str) -> WidgetDescriptor:
        return self._widgets[name]

    # Forms

    def form_values(self, record: Record | None = None) -> dict[str, Any]:
        """In-memory values for a create form (defaults) or edit form (record)."""
        values: dict[str, Any] = {}
        for field_def in self.schema.fields:
            widget = self._widgets[field_def.name]
            raw = record.data.get(field_def.name) if record else field_def.default
            try:
                values[field_def.name] = widget.from_wire(raw)
            except FieldValueError:
                logger.debug(
                    "Value %r of '%s' does not match type %s",
                    raw, field_def.name, field_def.type,
                )
                values[field_def.name] = raw
        return values

    def form_fields(
        self,
        record: Record | None = None,
        field_errors: dict[str, list[str]] | None = None,
    ) -> list[FormField]:
        values = self.form_values(record)
        field_errors = field_errors or {}
        return [
            FormField(
                name=f.name,
                label=f.label,
                widget=self._widgets[f.name],
                value=values.get(f.name),
                errors=list(field_errors.get(f.name, [])),
            )
            for f in self.schema.fields
        ]

    def to_payload(self, values: dict[str, Any]) -> dict[str, Any]:
        """Convert submitted form values to the wire data mapping.

        Only declared, editable fields are sent. Raises FieldValueError for a
        value of the wrong shape; callers validate first.
        """
        payload: dict[str, Any] = {}
        for field_def in self.schema.fields:
            widget = self._widgets[field_def.name]
            if widget.disabled or field_def.name not in values:
                continue
            value = values[field_def.name]
            if isinstance(value, str) and value.strip() == "" and widget.kind is not FieldKind.STRING:
                value = None
            payload[field_def.name] = widget.to_wire(value)
        return payload

    # Tables

    def columns(self) -> list[Column]:
        columns = [Column(key=ID_COLUMN, title="ID", data_index=(ID_COLUMN,))]
        for field_def in self.schema.fields:
            widget = self._widgets[field_def.name]
            columns.append(Column(
                key=field_def.name,
                title=field_def.label or field_def.name,
                data_index=("data", field_def.name),
                alignment=widget.alignment,
                sortable=not widget.disabled,
            ))
        return columns

    def cell(self, record: Record, field_def: FieldDefinition) -> str:
        value = record.data.get(field_def.name)
        if value is None:
            return ""
        if field_def.is_reference:
            return self._reference_cell(field_def, value)
        widget = self._widgets[field_def.name]
        try:
            return widget.handler.display(value)
        except FieldValueError:
            logger.debug(
                "Value %r of '%s' does not match type %s",
                value, field_def.name, field_def.type,
            )
            return str(value)

    def _reference_cell(self, field_def: FieldDefinition, value: Any) -> str:
        raw = str(value)
        if self.cache is None:
            return raw
        target = field_def.related_schema
        label = self.cache.label(target, value, field_def.related_display_field)
        if label is UNKNOWN:
            return raw
        if label is None:
            if self.cache.is_failed(target, value):
                return raw
            return PENDING_PLACEHOLDER
        return label or raw

    def row(self, record: Record) -> dict[str, str]:
        """Display strings keyed by column key; undeclared data keys are ignored."""
        cells = {ID_COLUMN: "" if record.id is None else str(record.id)}
        for field_def in self.schema.fields:
            cells[field_def.name] = self.cell(record, field_def)
        return cells

    def rows(self, records: list[Record]) -> list[dict[str, str]]:
        return [self.row(r) for r in records]
