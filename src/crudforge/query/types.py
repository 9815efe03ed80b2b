"""Query descriptor and wire query types."""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from crudforge.metadata.model import Record


class Operator(str, Enum):
    """Filter operators; the value is the wire suffix (`price.gt=100`)."""

    EQUALS = "eq"
    NOT_EQUALS = "ne"
    GREATER = "gt"
    GREATER_OR_EQUAL = "gte"
    LESS = "lt"
    LESS_OR_EQUAL = "lte"
    CONTAINS = "like"
    IN = "in"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


@dataclass(frozen=True)
class Filter:
    """One search condition. operator=None means "pick by field type"."""

    field: str
    value: Any
    operator: Operator | None = None


@dataclass
class QueryDescriptor:
    page: int = 0
    page_size: int = 10
    filters: list[Filter] = field(default_factory=list)
    sort_field: str | None = None
    sort_direction: SortDirection | None = None


@dataclass(frozen=True)
class WireQuery:
    """Flattened query-string pairs, in order. Keys may repeat."""

    params: tuple[tuple[str, str], ...] = ()

    def as_params(self) -> list[tuple[str, str]]:
        return list(self.params)

    def get_all(self, key: str) -> list[str]:
        return [v for k, v in self.params if k == key]

    def get(self, key: str, default: str | None = None) -> str | None:
        values = self.get_all(key)
        return values[0] if values else default

    @classmethod
    def from_pairs(cls, pairs: list[tuple[str, Any]]) -> "WireQuery":
        return cls(params=tuple((str(k), str(v)) for k, v in pairs))


@dataclass
class PageResult:
    """One page of search results."""

    content: list[Record]
    total_elements: int
    page: int
    size: int
    total_pages: int

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PageResult":
        size = int(data.get("size") or 0)
        total = int(data.get("totalElements") or 0)
        total_pages = data.get("totalPages")
        if total_pages is None:
            total_pages = math.ceil(total / size) if size > 0 else 0
        return cls(
            content=[Record.from_dict(r) for r in data.get("content") or []],
            total_elements=total,
            page=int(data.get("page") or 0),
            size=size,
            total_pages=int(total_pages),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "content": [r.to_dict() for r in self.content],
            "totalElements": self.total_elements,
            "page": self.page,
            "size": self.size,
            "totalPages": self.total_pages,
        }
