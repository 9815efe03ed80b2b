"""CRUD orchestrator - one controller per active schema view."""

from crudforge.orchestrator.crud import CrudOrchestrator
from crudforge.orchestrator.state import (
    LoadingState,
    MessageLevel,
    MutationResult,
    UserMessage,
)

__all__ = [
    "CrudOrchestrator",
    "LoadingState",
    "MessageLevel",
    "MutationResult",
    "UserMessage",
]
