"""Reference label cache scoped to one schema view.

Entries are keyed by (target schema, record id). Each entry holds the
labels fetched for that record, one per display field requested through
it, or the UNKNOWN sentinel when the target record does not exist. A
cache instance belongs to one orchestrator generation; switching schema
replaces it rather than clearing shared state.
"""

from typing import Any


class _Unknown:
    """Marker for ids the target schema no longer holds."""

    _instance: "_Unknown | None" = None

    def __new__(cls) -> "_Unknown":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNKNOWN"

    def __bool__(self) -> bool:
        return False


UNKNOWN = _Unknown()

CacheKey = tuple[str, str]


def normalize_id(value: Any) -> str:
    return str(value)


class ReferenceCache:
    def __init__(self, schema_name: str | None = None, generation: int = 0):
        self.schema_name = schema_name
        self.generation = generation
        self._entries: dict[CacheKey, dict[str, str] | _Unknown] = {}
        self._pending: set[CacheKey] = set()
        self._failed: set[CacheKey] = set()
        self._epochs: dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def entry(self, target: str, id: Any) -> dict[str, str] | _Unknown | None:
        return self._entries.get((target, normalize_id(id)))

    def label(self, target: str, id: Any, display_field: str) -> str | _Unknown | None:
        """Resolved label, UNKNOWN, or None when not resolved yet."""
        entry = self.entry(target, id)
        if entry is None or entry is UNKNOWN:
            return entry
        return entry.get(display_field)

    def has(self, target: str, id: Any, display_field: str) -> bool:
        entry = self.entry(target, id)
        if entry is UNKNOWN:
            return True
        return entry is not None and display_field in entry

    def put(self, target: str, id: Any, labels: dict[str, str]) -> None:
        key = (target, normalize_id(id))
        existing = self._entries.get(key)
        if isinstance(existing, dict):
            existing.update(labels)
        else:
            self._entries[key] = dict(labels)
        self._failed.discard(key)

    def mark_unknown(self, target: str, id: Any) -> None:
        key = (target, normalize_id(id))
        self._entries[key] = UNKNOWN
        self._failed.discard(key)

    def mark_pending(self, target: str, ids: list[str]) -> None:
        self._pending.update((target, i) for i in ids)

    def clear_pending(self, target: str, ids: list[str]) -> None:
        self._pending.difference_update((target, i) for i in ids)

    def is_pending(self, target: str, id: Any) -> bool:
        return (target, normalize_id(id)) in self._pending

    def mark_failed(self, target: str, ids: list[str]) -> None:
        self._failed.update((target, i) for i in ids)

    def is_failed(self, target: str, id: Any) -> bool:
        return (target, normalize_id(id)) in self._failed

    def epoch(self, target: str) -> int:
        """Number of times `target` has been invalidated."""
        return self._epochs.get(target, 0)

    def invalidate(self, target: str) -> int:
        """Drop every entry pointing into `target`. Returns the number dropped.

        Lookups already in flight for `target` stop counting as pending;
        their results predate the invalidation and are not stored.
        """
        keys = [k for k in self._entries if k[0] == target]
        for key in keys:
            del self._entries[key]
        self._failed = {k for k in self._failed if k[0] != target}
        self._pending = {k for k in self._pending if k[0] != target}
        self._epochs[target] = self.epoch(target) + 1
        return len(keys)

    def clear(self) -> None:
        self._entries.clear()
        self._pending.clear()
        self._failed.clear()

    def targets(self) -> set[str]:
        return {target for target, _ in self._entries}
