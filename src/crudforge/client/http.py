"""HTTP collaborators for the platform gateway.

Paths:
- metadata: GET /api/metadata/schemas/by-tenant/{tenant}[/{name}]
- data:     GET/POST /api/data/{tenant}/{schema}
            PUT/DELETE /api/data/{tenant}/{schema}/{id}
"""

import logging
from collections.abc import Awaitable, Callable
from typing import Any

import httpx

from crudforge.client.protocols import AuthenticatedCall
from crudforge.errors import (
    SchemaNotFound,
    ServerValidationError,
    TransientFetchError,
    WriteConflict,
)
from crudforge.metadata.model import Record, Schema, schema_from_dict
from crudforge.query.types import PageResult, WireQuery

logger = logging.getLogger(__name__)

TokenProvider = Callable[[], Awaitable[str | None]]


class BearerSession:
    """AuthenticatedCall backed by an httpx.AsyncClient.

    The token is read from `token_provider` before every request, so a
    session layer can rotate it without the engine noticing.
    """

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        token_provider: TokenProvider | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._token = token
        self._token_provider = token_provider
        self._http = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers={"Content-Type": "application/json"},
            timeout=timeout,
            transport=transport,
        )

    async def _headers(self) -> dict[str, str]:
        token = self._token
        if self._token_provider is not None:
            token = await self._token_provider()
        return {"Authorization": f"Bearer {token}"} if token else {}

    async def __call__(
        self,
        method: str,
        path: str,
        *,
        params: list[tuple[str, str]] | None = None,
        json: Any = None,
    ) -> httpx.Response:
        return await self._http.request(
            method,
            path,
            params=params,
            json=json,
            headers=await self._headers(),
        )

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> "BearerSession":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()


async def _send(
    call: AuthenticatedCall,
    method: str,
    path: str,
    **kwargs: Any,
) -> httpx.Response:
    try:
        return await call(method, path, **kwargs)
    except httpx.HTTPError as e:
        logger.warning("%s %s failed: %r", method, path, e)
        raise TransientFetchError("Request failed", cause=e) from e


def _error_body(response: httpx.Response) -> dict[str, Any]:
    try:
        body = response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


class HttpMetadataService:
    def __init__(self, call: AuthenticatedCall):
        self.call = call

    async def get_schema(self, tenant: str, schema_name: str) -> Schema:
        path = f"/api/metadata/schemas/by-tenant/{tenant}/{schema_name}"
        response = await _send(self.call, "GET", path)
        if response.status_code == 404:
            raise SchemaNotFound(schema_name)
        if response.is_error:
            logger.warning("GET %s returned %s", path, response.status_code)
            raise TransientFetchError(f"Metadata service returned {response.status_code}")
        return schema_from_dict(response.json())

    async def list_schemas(self, tenant: str) -> list[Schema]:
        path = f"/api/metadata/schemas/by-tenant/{tenant}"
        response = await _send(self.call, "GET", path)
        if response.is_error:
            logger.warning("GET %s returned %s", path, response.status_code)
            raise TransientFetchError(f"Metadata service returned {response.status_code}")
        return [schema_from_dict(s) for s in response.json()]


class HttpDataService:
    def __init__(self, call: AuthenticatedCall):
        self.call = call

    def _path(self, tenant: str, schema_name: str, id: Any = None) -> str:
        path = f"/api/data/{tenant}/{schema_name}"
        return path if id is None else f"{path}/{id}"

    def _check_read(self, method: str, path: str, response: httpx.Response) -> None:
        if response.is_error:
            logger.warning(
                "%s %s returned %s: %s", method, path, response.status_code, response.text
            )
            raise TransientFetchError(f"Data service returned {response.status_code}")

    def _check_write(self, method: str, path: str, response: httpx.Response) -> None:
        """Map a failed mutation response onto the error taxonomy.

        Authentication failures are not special-cased: they surface as
        transient fetch errors like any other non-validation failure.
        """
        if not response.is_error:
            return
        status = response.status_code
        logger.warning("%s %s returned %s: %s", method, path, status, response.text)
        body = _error_body(response)
        details = body.get("details")
        if status in (400, 422) and isinstance(details, dict) and details:
            raise ServerValidationError(details, body.get("message") or "Validation failed")
        if status == 409 or (400 <= status < 500 and status not in (401, 403, 404, 408, 429)):
            raise WriteConflict(body.get("message") or f"Rejected with status {status}")
        raise TransientFetchError(f"Data service returned {status}")

    async def search(self, tenant: str, schema_name: str, query: WireQuery) -> PageResult:
        path = self._path(tenant, schema_name)
        response = await _send(self.call, "GET", path, params=query.as_params())
        self._check_read("GET", path, response)
        return PageResult.from_dict(response.json())

    async def create(self, tenant: str, schema_name: str, data: dict[str, Any]) -> Record:
        path = self._path(tenant, schema_name)
        body = {"tenantId": tenant, "schemaName": schema_name, "data": data}
        response = await _send(self.call, "POST", path, json=body)
        self._check_write("POST", path, response)
        return Record.from_dict(response.json())

    async def update(
        self, tenant: str, schema_name: str, id: Any, data: dict[str, Any]
    ) -> Record:
        path = self._path(tenant, schema_name, id)
        response = await _send(self.call, "PUT", path, json=data)
        self._check_write("PUT", path, response)
        return Record.from_dict(response.json())

    async def delete(self, tenant: str, schema_name: str, id: Any) -> None:
        path = self._path(tenant, schema_name, id)
        response = await _send(self.call, "DELETE", path)
        self._check_write("DELETE", path, response)
