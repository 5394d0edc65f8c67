"""Shared FastAPI dependencies.

Routes receive the workspace registry, the embedding function and the
chat service through ``Depends`` so tests can swap them via
``app.dependency_overrides``.
"""

from __future__ import annotations

from fastapi import HTTPException, status

from cartograph.core.snapshot import SnapshotError
from cartograph.core.workspace import Workspace, WorkspaceRegistry
from cartograph.graph.embedder import Embedder, EmbeddingFunction
from cartograph.rag.llm_service import LLMService

_registry = WorkspaceRegistry()


def get_registry() -> WorkspaceRegistry:
    return _registry


def get_embedder() -> EmbeddingFunction:
    return Embedder.get_instance()


def get_llm() -> LLMService | None:
    """Chat service override hook; ``None`` means build from settings on first use."""
    return None


def resolve_workspace(registry: WorkspaceRegistry, path: str) -> Workspace:
    """Look up the workspace for *path*, mapping failures to HTTP errors.

    Raises:
        HTTPException: 404 if the project was never analyzed and has no
            snapshot, 500 if its snapshot is unreadable.
    """
    try:
        return registry.get(path)
    except KeyError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Workspace not analyzed: {path}. Call /analyze first.",
        )
    except SnapshotError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(exc),
        )
