"""Field-type dispatch - widgets, validation rules and value conversions."""

from crudforge.widgets.dispatcher import (
    HANDLERS,
    Choice,
    FieldTypeHandler,
    WidgetDescriptor,
    WidgetRule,
    decode_options,
    handler_for,
    widget_for,
)

__all__ = [
    "HANDLERS",
    "Choice",
    "FieldTypeHandler",
    "WidgetDescriptor",
    "WidgetRule",
    "decode_options",
    "handler_for",
    "widget_for",
]
