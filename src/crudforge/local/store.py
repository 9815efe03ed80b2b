"""SQLite-backed data service.

Implements the generic data collaborator locally, honouring the same wire
query the HTTP service receives: `field.op=value` filters, `id.in`,
`page`/`size` and `sortBy`/`sortOrder`. Records of every schema share one
table with the `data` mapping stored as JSON.
"""

import json
import math
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Protocol

from crudforge.core.types import FieldKind
from crudforge.errors import FieldValueError, ServerValidationError, WriteConflict
from crudforge.metadata.model import FieldDefinition, Record, Schema
from crudforge.query.types import Operator, PageResult, WireQuery
from crudforge.validation.fields import validate_values
from crudforge.widgets.dispatcher import handler_for


class SchemaSource(Protocol):
    def get(self, name: str) -> Schema | None: ...


_SYSTEM_COLUMNS = {
    "id": "id",
    "createdAt": "created_at",
    "updatedAt": "updated_at",
}

_COMPARISONS = {
    Operator.EQUALS: "=",
    Operator.NOT_EQUALS: "!=",
    Operator.GREATER: ">",
    Operator.GREATER_OR_EQUAL: ">=",
    Operator.LESS: "<",
    Operator.LESS_OR_EQUAL: "<=",
}


class SQLiteDataStore:
    """Local data service over sqlite3."""

    def __init__(self, db_path: Path | str = ":memory:", schemas: SchemaSource | None = None):
        self.db_path = str(db_path)
        self.schemas = schemas
        self.conn: sqlite3.Connection | None = None

    def connect(self) -> None:
        """Open the database and create the records table."""
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self.conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        self.conn.execute(
            "CREATE TABLE IF NOT EXISTS records ("
            " id INTEGER PRIMARY KEY AUTOINCREMENT,"
            " tenant_id TEXT NOT NULL,"
            " schema_name TEXT NOT NULL,"
            " data TEXT NOT NULL,"
            " created_at TEXT,"
            " updated_at TEXT,"
            " created_by TEXT)"
        )
        self.conn.commit()

    def close(self) -> None:
        if self.conn:
            self.conn.close()
            self.conn = None

    def _require_conn(self) -> sqlite3.Connection:
        if not self.conn:
            raise RuntimeError("Database not connected")
        return self.conn

    def _schema(self, name: str) -> Schema | None:
        return self.schemas.get(name) if self.schemas else None

    def _check(self, schema_name: str, data: dict[str, Any]) -> None:
        """Server-side validation, reported as field-keyed details."""
        schema = self._schema(schema_name)
        if schema is None:
            return
        result = validate_values(schema, data)
        if not result.valid:
            details = {e.field: e.message for e in result.errors if e.field}
            raise ServerValidationError(details)

    def _to_record(self, row: sqlite3.Row) -> Record:
        return Record(
            id=row["id"],
            schema_name=row["schema_name"],
            tenant=row["tenant_id"],
            data=json.loads(row["data"]),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            created_by=row["created_by"],
        )

    def _get(self, tenant: str, schema_name: str, id: Any) -> Record | None:
        row = self._require_conn().execute(
            "SELECT * FROM records WHERE tenant_id = ? AND schema_name = ? AND id = ?",
            [tenant, schema_name, id],
        ).fetchone()
        return self._to_record(row) if row else None

    # Data collaborator interface

    async def create(
        self,
        tenant: str,
        schema_name: str,
        data: dict[str, Any],
        created_by: str | None = None,
    ) -> Record:
        conn = self._require_conn()
        self._check(schema_name, data)
        now = datetime.now(timezone.utc).isoformat()
        cursor = conn.execute(
            "INSERT INTO records (tenant_id, schema_name, data, created_at, updated_at, created_by)"
            " VALUES (?, ?, ?, ?, ?, ?)",
            [tenant, schema_name, json.dumps(data), now, now, created_by],
        )
        conn.commit()
        return self._get(tenant, schema_name, cursor.lastrowid)

    async def update(
        self, tenant: str, schema_name: str, id: Any, data: dict[str, Any]
    ) -> Record:
        conn = self._require_conn()
        existing = self._get(tenant, schema_name, id)
        if existing is None:
            raise WriteConflict(f"Record {id} no longer exists")
        merged = {**existing.data, **data}
        self._check(schema_name, merged)
        conn.execute(
            "UPDATE records SET data = ?, updated_at = ? WHERE id = ?",
            [json.dumps(merged), datetime.now(timezone.utc).isoformat(), existing.id],
        )
        conn.commit()
        return self._get(tenant, schema_name, id)

    async def delete(self, tenant: str, schema_name: str, id: Any) -> None:
        conn = self._require_conn()
        cursor = conn.execute(
            "DELETE FROM records WHERE tenant_id = ? AND schema_name = ? AND id = ?",
            [tenant, schema_name, id],
        )
        conn.commit()
        if cursor.rowcount == 0:
            raise WriteConflict(f"Record {id} no longer exists")

    async def search(self, tenant: str, schema_name: str, query: WireQuery) -> PageResult:
        conn = self._require_conn()
        schema = self._schema(schema_name)

        conditions = ["tenant_id = ?", "schema_name = ?"]
        values: list[Any] = [tenant, schema_name]
        for key, raw in query.params:
            name, dot, suffix = key.partition(".")
            if not dot:
                continue
            try:
                operator = Operator(suffix)
            except ValueError:
                continue
            sql, vals = self._build_condition(schema, name, operator, raw)
            conditions.append(sql)
            values.extend(vals)
        where_clause = " WHERE " + " AND ".join(conditions)

        order_clause = " ORDER BY id ASC"
        sort_by = query.get("sortBy")
        if sort_by:
            direction = "DESC" if query.get("sortOrder") == "desc" else "ASC"
            order_clause = f" ORDER BY {self._column(sort_by)} {direction}, id ASC"

        page = max(0, int(query.get("page", "0")))
        size = max(1, int(query.get("size", "10")))

        total = conn.execute(
            f"SELECT COUNT(*) FROM records{where_clause}", values
        ).fetchone()[0]
        rows = conn.execute(
            f"SELECT * FROM records{where_clause}{order_clause} LIMIT ? OFFSET ?",
            [*values, size, page * size],
        ).fetchall()

        return PageResult(
            content=[self._to_record(r) for r in rows],
            total_elements=total,
            page=page,
            size=size,
            total_pages=math.ceil(total / size),
        )

    def _column(self, name: str) -> str:
        if name in _SYSTEM_COLUMNS:
            return _SYSTEM_COLUMNS[name]
        if not name.replace("_", "").isalnum():
            raise ValueError(f"Invalid field name: {name!r}")
        return f"json_extract(data, '$.{name}')"

    def _build_condition(
        self, schema: Schema | None, name: str, operator: Operator, raw: str
    ) -> tuple[str, list[Any]]:
        """Build SQL condition from one wire filter."""
        column = self._column(name)
        field_def = schema.get_field(name) if schema else None

        if operator is Operator.CONTAINS:
            return f"{column} LIKE ?", [f"%{raw}%"]
        if operator is Operator.IN:
            items = [self._coerce(field_def, name, v) for v in raw.split(",") if v != ""]
            if not items:
                return "0", []
            placeholders = ", ".join(["?" for _ in items])
            return f"{column} IN ({placeholders})", items
        return f"{column} {_COMPARISONS[operator]} ?", [self._coerce(field_def, name, raw)]

    def _coerce(self, field_def: FieldDefinition | None, name: str, raw: str) -> Any:
        """Convert a query-string value to what json_extract yields for the field."""
        if name == "id":
            try:
                return int(raw)
            except ValueError:
                return raw
        if field_def is None:
            return raw
        kind = field_def.kind
        try:
            if kind is FieldKind.BOOLEAN:
                return 1 if handler_for(field_def).from_wire(raw) else 0
            if kind in (FieldKind.NUMBER, FieldKind.INTEGER):
                return handler_for(field_def).from_wire(raw)
            if kind is FieldKind.REFERENCE:
                return int(raw) if raw.lstrip("-").isdigit() else raw
        except FieldValueError:
            return raw
        return raw
