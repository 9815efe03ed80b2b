"""Engine configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path


@dataclass
class EngineConfig:
    """Runtime configuration for the engine and CLI.

    When `api_url` is unset the CLI runs against the local backend: YAML
    schemas under `metadata_path` and a SQLite file at `db_path`.
    """

    api_url: str | None = None
    token: str | None = None
    tenant: str = "default"
    page_size: int = 10
    timeout: float = 30.0
    metadata_path: Path = Path("metadata")
    db_path: Path = Path("data") / "crudforge.db"
    log_level: str = "WARNING"

    @classmethod
    def from_env(cls, base_path: Path | None = None) -> EngineConfig:
        """Create config from CRUDFORGE_* environment variables.

        Relative local paths resolve against `base_path` (default: cwd).
        """
        base = base_path or Path.cwd()
        metadata_path = Path(os.environ.get("CRUDFORGE_METADATA_PATH", "metadata"))
        db_path = Path(os.environ.get("CRUDFORGE_DB_PATH", str(Path("data") / "crudforge.db")))
        return cls(
            api_url=os.environ.get("CRUDFORGE_API_URL") or None,
            token=os.environ.get("CRUDFORGE_TOKEN") or None,
            tenant=os.environ.get("CRUDFORGE_TENANT", "default"),
            page_size=int(os.environ.get("CRUDFORGE_PAGE_SIZE", "10")),
            timeout=float(os.environ.get("CRUDFORGE_TIMEOUT", "30")),
            metadata_path=metadata_path if metadata_path.is_absolute() else base / metadata_path,
            db_path=db_path if db_path.is_absolute() else base / db_path,
            log_level=os.environ.get("CRUDFORGE_LOG_LEVEL", "WARNING").upper(),
        )

    @property
    def is_remote(self) -> bool:
        return self.api_url is not None
