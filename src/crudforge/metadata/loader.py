"""Load schema definitions from YAML files.

Serves as the metadata collaborator for the local backend: one file per
schema under `<metadata_path>/schemas/*.yaml`.

    schema: Car
    label: Cars
    fields:
      - name: brand
        type: STRING
        required: true
      - name: owner
        type: REFERENCE
        relatedSchema: User
        relatedDisplayField: name
"""

from pathlib import Path

import yaml

from crudforge.errors import SchemaNotFound
from crudforge.metadata.model import Schema, schema_from_dict


class SchemaLoader:
    """Loads schema definitions from metadata/schemas/*.yaml files."""

    def __init__(self, metadata_path: Path, tenant: str | None = None):
        self.metadata_path = metadata_path
        self.tenant = tenant
        self.schemas: dict[str, Schema] = {}

    def load_all(self) -> None:
        """Load all schema files."""
        schemas_path = self.metadata_path / "schemas"
        if not schemas_path.exists():
            return

        for yaml_file in sorted(schemas_path.glob("*.yaml")):
            with open(yaml_file) as f:
                data = yaml.safe_load(f)
                if data and "schema" in data:
                    schema = self._resolve_schema(data)
                    self.schemas[schema.name] = schema

    def _resolve_schema(self, data: dict) -> Schema:
        payload = dict(data)
        payload["name"] = data["schema"]
        payload.setdefault("tenantId", self.tenant)
        fields = []
        for index, field_data in enumerate(data.get("fields", [])):
            field_copy = dict(field_data)
            field_copy.setdefault("orderNum", index)
            fields.append(field_copy)
        payload["fields"] = fields
        return schema_from_dict(payload)

    def get(self, name: str) -> Schema | None:
        return self.schemas.get(name)

    def list_names(self) -> list[str]:
        return list(self.schemas.keys())

    # Metadata collaborator interface

    async def get_schema(self, tenant: str, schema_name: str) -> Schema:
        schema = self.schemas.get(schema_name)
        if schema is None:
            raise SchemaNotFound(schema_name)
        return schema

    async def list_schemas(self, tenant: str) -> list[Schema]:
        return list(self.schemas.values())
