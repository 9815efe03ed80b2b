"""Collaborator wiring for CLI commands."""

import asyncio
from collections.abc import AsyncIterator, Coroutine
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, TypeVar

import click

from crudforge.client.http import BearerSession, HttpDataService, HttpMetadataService
from crudforge.client.protocols import DataService, MetadataService
from crudforge.config import EngineConfig
from crudforge.errors import CrudForgeError
from crudforge.local.store import SQLiteDataStore
from crudforge.metadata.loader import SchemaLoader

T = TypeVar("T")


@dataclass
class Backend:
    metadata: MetadataService
    data: DataService


def run_or_exit(coro: Coroutine[Any, Any, T]) -> T:
    """Run a coroutine to completion, reporting engine errors and exiting 1."""
    try:
        return asyncio.run(coro)
    except CrudForgeError as e:
        click.echo(click.style(f"Error: {e}", fg="red"), err=True)
        raise SystemExit(1)


@asynccontextmanager
async def open_backend(config: EngineConfig) -> AsyncIterator[Backend]:
    """Remote gateway when CRUDFORGE_API_URL is set, local files otherwise."""
    if config.is_remote:
        session = BearerSession(config.api_url, token=config.token, timeout=config.timeout)
        async with session:
            yield Backend(
                metadata=HttpMetadataService(session),
                data=HttpDataService(session),
            )
        return

    if not config.metadata_path.exists():
        raise CrudForgeError(f"Metadata directory not found at {config.metadata_path}")
    loader = SchemaLoader(config.metadata_path, tenant=config.tenant)
    loader.load_all()
    store = SQLiteDataStore(config.db_path, schemas=loader)
    store.connect()
    try:
        yield Backend(metadata=loader, data=store)
    finally:
        store.close()
