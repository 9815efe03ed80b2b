"""Translate search-form state into the generic search endpoint's wire format.

Filters become `fieldName.suffix=value` pairs, followed by `page`, `size`
and, when sorting, `sortBy`/`sortOrder`. Two filters on the same field are
both sent; the server resolves any conflict.
"""

import logging
from collections.abc import Iterable
from typing import Any

from crudforge.core.types import FieldKind, get_field_type
from crudforge.errors import FieldValueError
from crudforge.metadata.model import FieldDefinition, Schema
from crudforge.query.types import (
    Filter,
    Operator,
    QueryDescriptor,
    SortDirection,
    WireQuery,
)
from crudforge.widgets.dispatcher import handler_for

logger = logging.getLogger(__name__)

# Record-level columns every schema can be sorted by
SYSTEM_SORT_FIELDS = ("id", "createdAt", "updatedAt")

_TEXT_KINDS = (FieldKind.STRING, FieldKind.TEXT)


def default_operator(field_def: FieldDefinition) -> Operator:
    """Text fields search by substring; everything else by equality."""
    if field_def.kind in _TEXT_KINDS:
        return Operator.CONTAINS
    return Operator.EQUALS


def supports_operator(field_def: FieldDefinition, operator: Operator) -> bool:
    if field_def.kind is None:
        return operator is Operator.EQUALS
    return operator.value in get_field_type(field_def.kind).query_operators


def _encode_value(field_def: FieldDefinition, operator: Operator, value: Any) -> str:
    handler = handler_for(field_def)
    if operator is Operator.IN:
        values = value if isinstance(value, (list, tuple, set, frozenset)) else [value]
        return ",".join(handler.to_query(v) for v in values)
    if isinstance(value, (list, tuple, set, frozenset)):
        raise FieldValueError(
            f"Operator '{operator.value}' on '{field_def.name}' takes a single value"
        )
    if operator is Operator.CONTAINS:
        return str(value)
    return handler.to_query(value)


class QueryBuilder:
    """Builds WireQuery objects for a schema."""

    def build(self, descriptor: QueryDescriptor, schema: Schema) -> WireQuery:
        pairs: list[tuple[str, Any]] = []

        for flt in descriptor.filters:
            field_def = schema.get_field(flt.field)
            if field_def is None:
                logger.debug(
                    "Dropping filter on undeclared field '%s' of schema '%s'",
                    flt.field,
                    schema.name,
                )
                continue
            operator = flt.operator or default_operator(field_def)
            if not supports_operator(field_def, operator):
                logger.debug(
                    "Dropping '%s' filter on field '%s' of schema '%s'",
                    operator.value,
                    flt.field,
                    schema.name,
                )
                continue
            pairs.append((
                f"{field_def.name}.{operator.value}",
                _encode_value(field_def, operator, flt.value),
            ))

        pairs.append(("page", max(0, descriptor.page)))
        pairs.append(("size", max(1, descriptor.page_size)))

        sort_field = descriptor.sort_field
        if sort_field:
            if schema.has_field(sort_field) or sort_field in SYSTEM_SORT_FIELDS:
                direction = descriptor.sort_direction or SortDirection.ASC
                pairs.append(("sortBy", sort_field))
                pairs.append(("sortOrder", direction.value))
            else:
                logger.debug(
                    "Dropping sort on undeclared field '%s' of schema '%s'",
                    sort_field,
                    schema.name,
                )

        query = WireQuery.from_pairs(pairs)
        logger.debug("Built query for '%s': %s", schema.name, query.params)
        return query

    def build_lookup(self, ids: Iterable[Any]) -> WireQuery:
        """Query fetching the records with the given ids in a single page."""
        id_list = [str(i) for i in ids]
        return WireQuery.from_pairs([
            ("id.in", ",".join(id_list)),
            ("page", 0),
            ("size", max(1, len(id_list))),
        ])


def parse_filter(expression: str) -> Filter:
    """Parse `field.op=value` (or `field=value`) into a Filter.

    `in` values are split on commas. Without a suffix the operator is left
    for the builder to choose.
    """
    key, sep, value = expression.partition("=")
    if not sep or not key:
        raise ValueError(f"Expected field[.op]=value, got {expression!r}")
    name, dot, suffix = key.partition(".")
    if not dot:
        return Filter(field=name, value=value)
    try:
        operator = Operator(suffix)
    except ValueError:
        raise ValueError(f"Unknown operator '{suffix}' in {expression!r}") from None
    if operator is Operator.IN:
        return Filter(field=name, value=[v for v in value.split(",") if v], operator=operator)
    return Filter(field=name, value=value, operator=operator)
