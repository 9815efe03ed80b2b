"""Shared fixtures: sample schemas and in-memory collaborators."""

import asyncio
import math
from typing import Any

import pytest

from crudforge.errors import SchemaNotFound, TransientFetchError
from crudforge.metadata.model import Record, Schema, schema_from_dict
from crudforge.query.types import PageResult, WireQuery


def make_schema(name: str, fields: list[dict], label: str | None = None) -> Schema:
    return schema_from_dict({
        "id": f"s-{name}",
        "name": name,
        "label": label or name,
        "tenantId": "t1",
        "fields": [dict(f, orderNum=i) for i, f in enumerate(fields)],
    })


def make_record(id: Any, schema_name: str, data: dict[str, Any]) -> Record:
    return Record(id=id, schema_name=schema_name, tenant="t1", data=data)


async def wait_until(condition, attempts: int = 50) -> None:
    """Yield to the event loop until `condition()` holds."""
    for _ in range(attempts):
        if condition():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition never became true")


@pytest.fixture
def user_schema() -> Schema:
    return make_schema("User", [
        {"fieldName": "name", "fieldType": "STRING", "label": "Name", "required": True},
        {"fieldName": "email", "fieldType": "STRING", "label": "Email"},
    ])


@pytest.fixture
def car_schema() -> Schema:
    return make_schema("Car", [
        {"fieldName": "brand", "fieldType": "STRING", "label": "Brand", "required": True},
        {"fieldName": "price", "fieldType": "NUMBER", "label": "Price"},
        {"fieldName": "registered", "fieldType": "DATE", "label": "Registered"},
        {
            "fieldName": "owner",
            "fieldType": "REFERENCE",
            "label": "Owner",
            "relatedSchemaName": "User",
            "relatedFieldName": "name",
        },
    ])


class FakeMetadataService:
    """Metadata collaborator holding schemas in memory.

    `gates` lets a test hold a get_schema call open until it sets the event.
    """

    def __init__(self, schemas: list[Schema] | None = None):
        self.schemas = {s.name: s for s in schemas or []}
        self.gates: dict[str, asyncio.Event] = {}
        self.fail = False

    async def get_schema(self, tenant: str, schema_name: str) -> Schema:
        gate = self.gates.get(schema_name)
        if gate is not None:
            await gate.wait()
        if self.fail:
            raise TransientFetchError("metadata down")
        if schema_name not in self.schemas:
            raise SchemaNotFound(schema_name)
        return self.schemas[schema_name]

    async def list_schemas(self, tenant: str) -> list[Schema]:
        return list(self.schemas.values())


class FakeDataService:
    """Data collaborator over in-memory record lists.

    Records every call in `calls`; `gates` holds searches on a schema open,
    `failing` makes searches on a schema raise.
    """

    def __init__(self, records: dict[str, list[Record]] | None = None):
        self.records: dict[str, list[Record]] = records or {}
        self.calls: list[tuple[str, str, Any]] = []
        self.gates: dict[str, asyncio.Event] = {}
        self.failing: set[str] = set()
        self.write_error: Exception | None = None
        self._next_id = 1000

    def searches(self, schema_name: str | None = None) -> list[WireQuery]:
        return [
            q for op, name, q in self.calls
            if op == "search" and (schema_name is None or name == schema_name)
        ]

    def lookups(self, schema_name: str | None = None) -> list[WireQuery]:
        return [q for q in self.searches(schema_name) if q.get("id.in") is not None]

    def writes(self) -> list[tuple[str, str, Any]]:
        return [c for c in self.calls if c[0] != "search"]

    async def search(self, tenant: str, schema_name: str, query: WireQuery) -> PageResult:
        self.calls.append(("search", schema_name, query))
        gate = self.gates.get(schema_name)
        if gate is not None:
            await gate.wait()
        if schema_name in self.failing:
            raise TransientFetchError("search failed")

        rows = list(self.records.get(schema_name, []))
        ids = query.get("id.in")
        if ids is not None:
            wanted = set(ids.split(","))
            rows = [r for r in rows if str(r.id) in wanted]
        page = int(query.get("page", "0"))
        size = int(query.get("size", "10"))
        total = len(rows)
        return PageResult(
            content=rows[page * size:(page + 1) * size],
            total_elements=total,
            page=page,
            size=size,
            total_pages=math.ceil(total / size) if size else 0,
        )

    async def create(self, tenant: str, schema_name: str, data: dict[str, Any]) -> Record:
        self.calls.append(("create", schema_name, data))
        if self.write_error is not None:
            raise self.write_error
        self._next_id += 1
        record = make_record(self._next_id, schema_name, dict(data))
        self.records.setdefault(schema_name, []).insert(0, record)
        return record

    async def update(
        self, tenant: str, schema_name: str, id: Any, data: dict[str, Any]
    ) -> Record:
        self.calls.append(("update", schema_name, (id, data)))
        if self.write_error is not None:
            raise self.write_error
        for record in self.records.get(schema_name, []):
            if str(record.id) == str(id):
                record.data.update(data)
                return record
        raise TransientFetchError("not found")

    async def delete(self, tenant: str, schema_name: str, id: Any) -> None:
        self.calls.append(("delete", schema_name, id))
        if self.write_error is not None:
            raise self.write_error
        self.records[schema_name] = [
            r for r in self.records.get(schema_name, []) if str(r.id) != str(id)
        ]


@pytest.fixture
def users() -> list[Record]:
    return [
        make_record(7, "User", {"name": "Alice", "email": "alice@example.com"}),
        make_record(8, "User", {"name": "Bob", "email": "bob@example.com"}),
    ]


@pytest.fixture
def cars() -> list[Record]:
    return [
        make_record(1, "Car", {"brand": "BMW", "owner": 7}),
        make_record(2, "Car", {"brand": "Audi", "owner": 7}),
    ]


@pytest.fixture
def metadata_service(car_schema, user_schema) -> FakeMetadataService:
    return FakeMetadataService([car_schema, user_schema])


@pytest.fixture
def data_service(cars, users) -> FakeDataService:
    return FakeDataService({"Car": cars, "User": users})
