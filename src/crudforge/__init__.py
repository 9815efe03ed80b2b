"""crudforge - metadata-driven CRUD rendering and query engine."""

from crudforge.orchestrator import CrudOrchestrator, LoadingState, MutationResult

__version__ = "0.1.0"

__all__ = [
    "CrudOrchestrator",
    "LoadingState",
    "MutationResult",
    "__version__",
]
