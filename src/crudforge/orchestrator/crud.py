"""Page-level controller for one schema view.

State machine:

    Idle -> SchemaLoading -> Ready <-> Querying
                                   <-> Mutating
    SchemaLoading -> SchemaError   (schema missing or metadata failure)

Every schema load bumps a generation counter. Each query, mutation and
reference lookup captures the generation it started under, and its
result is dropped if the counter has moved on by the time it completes.
"""

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from crudforge.client.protocols import DataService, MetadataService
from crudforge.errors import SchemaNotFound, ServerValidationError, WriteConflict
from crudforge.metadata.model import Record, Schema
from crudforge.orchestrator.state import (
    LoadingState,
    MessageLevel,
    MutationResult,
    UserMessage,
)
from crudforge.query.builder import QueryBuilder
from crudforge.query.types import Filter, QueryDescriptor, SortDirection
from crudforge.references.cache import ReferenceCache
from crudforge.references.resolver import ReferenceResolver
from crudforge.rendering.engine import Column, FormField, RenderingEngine
from crudforge.validation.fields import (
    GENERAL_FAILURE_MESSAGE,
    map_server_errors,
    validate_values,
)

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 10

ChangeListener = Callable[["CrudOrchestrator"], None]


class CrudOrchestrator:
    """Wires query building, fetching, rendering and the write path together.

    One instance serves one schema view at a time; the reference cache and
    query descriptor belong to it and are replaced on every schema load.
    """

    def __init__(
        self,
        metadata: MetadataService,
        data: DataService,
        tenant: str,
        page_size: int = DEFAULT_PAGE_SIZE,
        on_change: ChangeListener | None = None,
        builder: QueryBuilder | None = None,
    ):
        self.metadata = metadata
        self.data = data
        self.tenant = tenant
        self.page_size = page_size
        self.builder = builder or QueryBuilder()
        self._listeners: list[ChangeListener] = [on_change] if on_change else []

        self.current_schema: Schema | None = None
        self.current_rows: list[Record] = []
        self.total_elements = 0
        self.total_pages = 0
        self.loading_state = LoadingState.IDLE
        self.descriptor = QueryDescriptor(page_size=page_size)
        self.error: UserMessage | None = None
        self.notice: UserMessage | None = None
        self.field_errors: dict[str, list[str]] = {}

        self._generation = 0
        self._cache = ReferenceCache()
        self._resolutions: set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def cache(self) -> ReferenceCache:
        return self._cache

    def subscribe(self, listener: ChangeListener) -> None:
        self._listeners.append(listener)

    def _notify(self) -> None:
        for listener in self._listeners:
            listener(self)

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    def renderer(self) -> RenderingEngine:
        if self.current_schema is None:
            raise RuntimeError("No schema loaded")
        return RenderingEngine(self.current_schema, self._cache)

    def columns(self) -> list[Column]:
        return self.renderer().columns()

    def display_rows(self) -> list[dict[str, str]]:
        return self.renderer().rows(self.current_rows)

    def form_fields(self, record: Record | None = None) -> list[FormField]:
        return self.renderer().form_fields(record, self.field_errors)

    async def settle(self) -> None:
        """Wait for in-flight reference resolution to finish."""
        while True:
            pending = [t for t in self._resolutions if not t.done()]
            if not pending:
                break
            await asyncio.gather(*pending, return_exceptions=True)
        # Let done-callbacks run before the caller re-renders
        await asyncio.sleep(0)

    # ------------------------------------------------------------------
    # Schema loading
    # ------------------------------------------------------------------

    async def load_schema(self, schema_name: str) -> bool:
        self._generation += 1
        generation = self._generation

        # The old cache handle is dropped here; nothing from the previous
        # schema can be rendered through the new one.
        self._cache = ReferenceCache(schema_name, generation)
        self.descriptor = QueryDescriptor(page_size=self.page_size)
        self.current_schema = None
        self.current_rows = []
        self.total_elements = 0
        self.total_pages = 0
        self.error = None
        self.notice = None
        self.field_errors = {}
        self.loading_state = LoadingState.SCHEMA_LOADING
        self._notify()

        try:
            schema = await self.metadata.get_schema(self.tenant, schema_name)
        except SchemaNotFound:
            if not self._is_current(generation):
                return False
            self._fail_schema(f"Schema '{schema_name}' was not found")
            return False
        except Exception as e:
            if not self._is_current(generation):
                return False
            logger.warning("Loading schema '%s' failed: %r", schema_name, e)
            self._fail_schema("Failed to load schema definition")
            return False

        if not self._is_current(generation):
            logger.debug(
                "Discarding stale schema '%s' (generation %s, now %s)",
                schema_name, generation, self._generation,
            )
            return False

        self.current_schema = schema
        logger.info(
            "Loaded schema '%s' with %d fields (generation %d)",
            schema.name, len(schema.fields), generation,
        )
        return await self._run_query(generation)

    def _fail_schema(self, text: str) -> None:
        self.loading_state = LoadingState.SCHEMA_ERROR
        self.error = UserMessage(MessageLevel.ERROR, text)
        self._notify()

    # ------------------------------------------------------------------
    # Querying
    # ------------------------------------------------------------------

    def _can_act(self) -> bool:
        if self.current_schema is None or self.loading_state is LoadingState.SCHEMA_ERROR:
            logger.debug("Ignoring action: no schema loaded")
            return False
        return True

    async def _run_query(self, generation: int, clamp: bool = True) -> bool:
        schema = self.current_schema
        self.loading_state = LoadingState.QUERYING
        self._notify()

        query = self.builder.build(self.descriptor, schema)
        try:
            page = await self.data.search(self.tenant, schema.name, query)
        except Exception as e:
            if not self._is_current(generation):
                return False
            logger.warning("Search on '%s' failed: %r", schema.name, e)
            # Previous rows stay on screen
            self.error = UserMessage(MessageLevel.ERROR, "Failed to load data", retryable=True)
            self.loading_state = LoadingState.READY
            self._notify()
            return False

        if not self._is_current(generation):
            logger.debug(
                "Discarding stale page of '%s' (generation %s, now %s)",
                schema.name, generation, self._generation,
            )
            return False

        last_page = max(0, page.total_pages - 1)
        if clamp and self.descriptor.page > last_page:
            logger.debug(
                "Page %d is past the last page %d of '%s', clamping",
                self.descriptor.page, last_page, schema.name,
            )
            self.descriptor.page = last_page
            return await self._run_query(generation, clamp=False)

        self.current_rows = page.content
        self.total_elements = page.total_elements
        self.total_pages = page.total_pages
        self.error = None
        self.loading_state = LoadingState.READY
        self._schedule_resolution(generation, schema, page.content)
        self._notify()
        return True

    def _schedule_resolution(
        self, generation: int, schema: Schema, rows: list[Record]
    ) -> None:
        if not schema.reference_fields or not rows:
            return
        resolver = ReferenceResolver(
            self.data,
            self.tenant,
            self._cache,
            current_generation=lambda: self._generation,
            builder=self.builder,
        )
        task = asyncio.create_task(resolver.resolve(rows, list(schema.fields)))
        self._resolutions.add(task)

        def _done(t: asyncio.Task) -> None:
            self._resolutions.discard(t)
            if t.cancelled():
                return
            if t.exception() is not None:
                logger.error("Reference resolution crashed: %r", t.exception())
                return
            if self._is_current(generation):
                self._notify()

        task.add_done_callback(_done)

    async def refresh(self) -> bool:
        if not self._can_act():
            return False
        return await self._run_query(self._generation)

    async def search(self, filters: list[Filter]) -> bool:
        if not self._can_act():
            return False
        self.descriptor.filters = list(filters)
        self.descriptor.page = 0
        return await self._run_query(self._generation)

    async def sort(
        self, field: str | None, direction: SortDirection | None = SortDirection.ASC
    ) -> bool:
        if not self._can_act():
            return False
        self.descriptor.sort_field = field
        self.descriptor.sort_direction = direction if field else None
        return await self._run_query(self._generation)

    async def paginate(self, page: int, page_size: int | None = None) -> bool:
        if not self._can_act():
            return False
        if page_size is not None and page_size > 0:
            self.descriptor.page_size = page_size
        page = max(0, page)
        if self.total_pages > 0 and page_size is None:
            page = min(page, self.total_pages - 1)
        self.descriptor.page = page
        return await self._run_query(self._generation)

    # ------------------------------------------------------------------
    # Mutating
    # ------------------------------------------------------------------

    async def create(self, values: dict[str, Any]) -> MutationResult:
        return await self._mutate("create", None, values)

    async def update(self, record_id: Any, values: dict[str, Any]) -> MutationResult:
        return await self._mutate("update", record_id, values)

    async def delete(self, record_id: Any) -> MutationResult:
        return await self._mutate("delete", record_id, None)

    async def _mutate(
        self, action: str, record_id: Any, values: dict[str, Any] | None
    ) -> MutationResult:
        if not self._can_act():
            return MutationResult(
                ok=False,
                message=UserMessage(MessageLevel.ERROR, "No schema is loaded"),
            )
        schema = self.current_schema
        generation = self._generation
        self.notice = None

        payload: dict[str, Any] | None = None
        if values is not None:
            result = validate_values(schema, values)
            if not result.valid:
                self.field_errors = result.by_field()
                self._notify()
                return MutationResult(ok=False, field_errors=self.field_errors)
            payload = RenderingEngine(schema).to_payload(values)

        self.field_errors = {}
        self.loading_state = LoadingState.MUTATING
        self._notify()

        record: Record | None = None
        try:
            if action == "create":
                record = await self.data.create(self.tenant, schema.name, payload)
            elif action == "update":
                record = await self.data.update(self.tenant, schema.name, record_id, payload)
            else:
                await self.data.delete(self.tenant, schema.name, record_id)
        except ServerValidationError as e:
            if not self._is_current(generation):
                return MutationResult(ok=False, stale=True)
            mapped = map_server_errors(schema, e.details)
            message = None
            if mapped.general:
                message = UserMessage(MessageLevel.ERROR, mapped.general[0])
            return self._finish_failed(MutationResult(
                ok=False, field_errors=mapped.by_field(), message=message,
            ))
        except WriteConflict as e:
            if not self._is_current(generation):
                return MutationResult(ok=False, stale=True)
            logger.warning("%s on '%s' rejected: %s", action, schema.name, e)
            return self._finish_failed(MutationResult(
                ok=False,
                message=UserMessage(MessageLevel.ERROR, GENERAL_FAILURE_MESSAGE),
            ))
        except Exception as e:
            if not self._is_current(generation):
                return MutationResult(ok=False, stale=True)
            logger.warning("%s on '%s' failed: %r", action, schema.name, e)
            return self._finish_failed(MutationResult(
                ok=False,
                message=UserMessage(MessageLevel.ERROR, GENERAL_FAILURE_MESSAGE, retryable=True),
            ))

        if not self._is_current(generation):
            logger.debug(
                "Discarding stale %s result on '%s' (generation %s, now %s)",
                action, schema.name, generation, self._generation,
            )
            return MutationResult(ok=True, record=record, stale=True)

        logger.info("%s on '%s' succeeded", action, schema.name)
        # Labels pointing into the written schema may be out of date now
        self._cache.invalidate(schema.name)
        self.notice = UserMessage(MessageLevel.SUCCESS, _SUCCESS_TEXT[action])
        if action == "create":
            self.descriptor.page = 0
        await self._run_query(generation)
        return MutationResult(ok=True, record=record, message=self.notice)

    def _finish_failed(self, result: MutationResult) -> MutationResult:
        self.field_errors = result.field_errors
        self.error = result.message
        self.loading_state = LoadingState.READY
        self._notify()
        return result


_SUCCESS_TEXT = {
    "create": "Created successfully",
    "update": "Updated successfully",
    "delete": "Deleted",
}
