"""Analyzed projects kept in memory between requests.

A :class:`Workspace` pairs a project root with its current graph and its
:class:`VectorIndex`.  The :class:`WorkspaceRegistry` maps resolved root
paths to workspaces and, for a root it has not seen in this process,
falls back to a stored snapshot.
"""

from __future__ import annotations

import pathlib
import threading
from dataclasses import dataclass, field

import structlog

from cartograph.core.snapshot import load_graph, snapshot_path_for
from cartograph.graph.embedder import EmbeddingFunction
from cartograph.graph.vector_store import VectorIndex, VectorStore
from cartograph.models.graph import CodeGraph

logger = structlog.get_logger(__name__)


@dataclass
class Workspace:
    """One analyzed project.

    Attributes:
        root: Resolved project root.
        graph: Current code graph.
        index: Owner of the current vector store.
    """

    root: pathlib.Path
    graph: CodeGraph
    index: VectorIndex = field(default_factory=VectorIndex)

    def rebuild_index(self, embed: EmbeddingFunction, *, concurrency: int | None = None) -> VectorStore:
        """Embed every chunk of the current graph into a fresh store."""
        analyses = [n.analysis for n in self.graph.file_nodes() if n.analysis is not None]
        return self.index.rebuild(analyses, embed, concurrency=concurrency)


class WorkspaceRegistry:
    """Thread-safe ``root -> Workspace`` map with snapshot fallback.

    Args:
        snapshot_dir: Where snapshots are looked up; defaults to
            :pyattr:`Settings.snapshot_dir`.
    """

    def __init__(self, snapshot_dir: str | pathlib.Path | None = None) -> None:
        self._snapshot_dir = snapshot_dir
        self._workspaces: dict[pathlib.Path, Workspace] = {}
        self._lock = threading.Lock()

    def snapshot_path(self, root: str | pathlib.Path) -> pathlib.Path:
        return snapshot_path_for(root, self._snapshot_dir)

    def register(self, root: str | pathlib.Path, graph: CodeGraph) -> Workspace:
        """Store *graph* as the current graph for *root*.

        Re-registering a root replaces its workspace, including its
        vector index.
        """
        key = pathlib.Path(root).resolve()
        workspace = Workspace(root=key, graph=graph)
        with self._lock:
            self._workspaces[key] = workspace
        logger.info("workspace_registered", root=str(key), nodes=len(graph.nodes))
        return workspace

    def get(self, root: str | pathlib.Path) -> Workspace:
        """Return the workspace for *root*.

        Raises:
            KeyError: If *root* was never analyzed and has no snapshot.
        """
        key = pathlib.Path(root).resolve()
        with self._lock:
            workspace = self._workspaces.get(key)
        if workspace is not None:
            return workspace

        snapshot = self.snapshot_path(key)
        if not snapshot.is_file():
            raise KeyError(str(key))

        logger.info("workspace_restored_from_snapshot", root=str(key), snapshot=str(snapshot))
        graph = load_graph(snapshot)
        with self._lock:
            # Another request may have registered the root meanwhile.
            return self._workspaces.setdefault(key, Workspace(root=key, graph=graph))

    def __contains__(self, root: object) -> bool:
        if not isinstance(root, (str, pathlib.Path)):
            return False
        with self._lock:
            return pathlib.Path(root).resolve() in self._workspaces

    def clear(self) -> None:
        with self._lock:
            self._workspaces.clear()
