"""Reference field resolution with a per-view label cache."""

from crudforge.references.cache import UNKNOWN, ReferenceCache
from crudforge.references.resolver import ReferenceResolver

__all__ = ["UNKNOWN", "ReferenceCache", "ReferenceResolver"]
