"""Query descriptors and the wire query builder."""

from crudforge.query.builder import QueryBuilder, default_operator, parse_filter, supports_operator
from crudforge.query.types import (
    Filter,
    Operator,
    PageResult,
    QueryDescriptor,
    SortDirection,
    WireQuery,
)

__all__ = [
    "Filter",
    "Operator",
    "PageResult",
    "QueryBuilder",
    "QueryDescriptor",
    "SortDirection",
    "WireQuery",
    "default_operator",
    "parse_filter",
    "supports_operator",
]
