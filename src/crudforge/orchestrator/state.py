"""Orchestrator state and outcome types."""

from dataclasses import dataclass, field
from enum import Enum

from crudforge.metadata.model import Record


class LoadingState(str, Enum):
    IDLE = "idle"
    SCHEMA_LOADING = "schemaLoading"
    READY = "ready"
    QUERYING = "querying"
    MUTATING = "mutating"
    SCHEMA_ERROR = "schemaError"


class MessageLevel(str, Enum):
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class UserMessage:
    """A human-readable message for the presentation layer."""

    level: MessageLevel
    text: str
    retryable: bool = False


@dataclass
class MutationResult:
    """Outcome of create/update/delete.

    `stale` is set when the view switched schema while the write was in
    flight; the write may have succeeded but nothing was applied to the view.
    """

    ok: bool
    record: Record | None = None
    field_errors: dict[str, list[str]] = field(default_factory=dict)
    message: UserMessage | None = None
    stale: bool = False
