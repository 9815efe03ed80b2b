"""Batched resolution of reference fields.

For a page of rows, the resolver collects the distinct foreign ids per
target schema that the cache does not hold yet and issues one lookup per
target schema, however many rows and reference fields point at it. Ids
the lookup does not return are cached as UNKNOWN so later cycles do not
ask for them again. A failed lookup only affects its own target schema.
"""

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from crudforge.client.protocols import DataService
from crudforge.errors import ReferenceResolutionError
from crudforge.metadata.model import FieldDefinition, Record
from crudforge.query.builder import QueryBuilder
from crudforge.references.cache import ReferenceCache, normalize_id

logger = logging.getLogger(__name__)


class _TargetBatch:
    def __init__(self) -> None:
        self.ids: dict[str, None] = {}  # ordered set
        self.display_fields: dict[str, None] = {}


class ReferenceResolver:
    """Fills a ReferenceCache for the rows of one schema view.

    Results are tagged with the cache's generation; when the view has moved
    on (`current_generation()` differs), completed lookups are dropped.
    """

    def __init__(
        self,
        data: DataService,
        tenant: str,
        cache: ReferenceCache,
        current_generation: Callable[[], int] | None = None,
        builder: QueryBuilder | None = None,
    ):
        self.data = data
        self.tenant = tenant
        self.cache = cache
        self.current_generation = current_generation or (lambda: cache.generation)
        self.builder = builder or QueryBuilder()

    def collect(
        self, rows: list[Record], fields: list[FieldDefinition]
    ) -> dict[str, _TargetBatch]:
        """Group the ids still needing a lookup by target schema."""
        batches: dict[str, _TargetBatch] = {}
        for field_def in fields:
            if not field_def.is_reference:
                continue
            target = field_def.related_schema
            display_field = field_def.related_display_field
            for row in rows:
                value = row.data.get(field_def.name)
                if value is None or isinstance(value, (bool, dict, list)):
                    continue
                if value == "":
                    continue
                if self.cache.has(target, value, display_field):
                    continue
                if self.cache.is_pending(target, value):
                    continue
                batch = batches.setdefault(target, _TargetBatch())
                batch.ids[normalize_id(value)] = None
                batch.display_fields[display_field] = None
        return batches

    async def resolve(self, rows: list[Record], fields: list[FieldDefinition]) -> None:
        """Populate the cache for every reference in `rows`.

        Never raises for lookup failures; affected ids are marked failed
        and the error is logged.
        """
        batches = self.collect(rows, fields)
        if not batches:
            return
        generation = self.cache.generation
        await asyncio.gather(*(
            self._resolve_target(target, batch, generation)
            for target, batch in batches.items()
        ))

    async def _resolve_target(
        self, target: str, batch: _TargetBatch, generation: int
    ) -> None:
        ids = list(batch.ids)
        display_fields = list(batch.display_fields)
        epoch = self.cache.epoch(target)
        self.cache.mark_pending(target, ids)
        try:
            page = await self.data.search(
                self.tenant, target, self.builder.build_lookup(ids)
            )
        except Exception as e:
            if epoch != self.cache.epoch(target):
                return
            self.cache.clear_pending(target, ids)
            if generation != self.current_generation():
                return
            error = ReferenceResolutionError(target, ids, cause=e)
            logger.warning("%s: %r", error, e)
            self.cache.mark_failed(target, ids)
            return

        if epoch != self.cache.epoch(target):
            logger.debug("Discarding reference lookup for '%s' made before a write", target)
            return
        self.cache.clear_pending(target, ids)
        if generation != self.current_generation():
            logger.debug(
                "Discarding stale reference lookup for '%s' (generation %s, now %s)",
                target,
                generation,
                self.current_generation(),
            )
            return

        found: dict[str, Record] = {normalize_id(r.id): r for r in page.content}
        for id in ids:
            record = found.get(id)
            if record is None:
                self.cache.mark_unknown(target, id)
                continue
            self.cache.put(target, id, {
                df: _label(record.data.get(df)) for df in display_fields
            })


def _label(value: Any) -> str:
    if value is None:
        return ""
    return str(value)
