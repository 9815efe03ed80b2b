"""Collaborator interfaces consumed by the engine.

The engine never talks to the network directly: the orchestrator is handed
a metadata service and a data service at construction. The HTTP
implementations in `crudforge.client.http` sit on top of an
`AuthenticatedCall`, the only capability taken from the session layer.
"""

from typing import Any, Protocol, runtime_checkable

import httpx

from crudforge.metadata.model import Record, Schema
from crudforge.query.types import PageResult, WireQuery


@runtime_checkable
class AuthenticatedCall(Protocol):
    """Issue one authenticated request and return the raw response.

    Token handling, refresh and retry belong to the implementation.
    """

    async def __call__(
        self,
        method: str,
        path: str,
        *,
        params: list[tuple[str, str]] | None = None,
        json: Any = None,
    ) -> httpx.Response: ...


@runtime_checkable
class MetadataService(Protocol):
    async def get_schema(self, tenant: str, schema_name: str) -> Schema: ...

    async def list_schemas(self, tenant: str) -> list[Schema]: ...


@runtime_checkable
class DataService(Protocol):
    """Generic, schema-agnostic record access."""

    async def search(
        self, tenant: str, schema_name: str, query: WireQuery
    ) -> PageResult: ...

    async def create(
        self, tenant: str, schema_name: str, data: dict[str, Any]
    ) -> Record: ...

    async def update(
        self, tenant: str, schema_name: str, id: Any, data: dict[str, Any]
    ) -> Record: ...

    async def delete(self, tenant: str, schema_name: str, id: Any) -> None: ...
