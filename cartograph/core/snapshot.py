"""JSON persistence for code graphs.

A snapshot is ``CodeGraph.model_dump(mode="json")`` written as a single
UTF-8 JSON document.  Loading validates the document back into a
:class:`CodeGraph` and rejects unknown format versions.
"""

from __future__ import annotations

import hashlib
import json
import pathlib

import structlog

from cartograph.config import settings
from cartograph.models.graph import GRAPH_FORMAT_VERSION, CodeGraph

logger = structlog.get_logger(__name__)


class SnapshotError(ValueError):
    """Raised when a snapshot cannot be decoded into a graph."""


def snapshot_path_for(repo_root: str | pathlib.Path, snapshot_dir: str | pathlib.Path | None = None) -> pathlib.Path:
    """Default snapshot location for the project at *repo_root*.

    Snapshots live under *snapshot_dir* (default
    :pyattr:`Settings.snapshot_dir`), one file per project, named by a
    digest of the resolved root path.
    """
    root = pathlib.Path(repo_root).resolve().as_posix()
    digest = hashlib.sha1(root.encode("utf-8")).hexdigest()[:16]
    directory = pathlib.Path(snapshot_dir or settings.snapshot_dir)
    return directory / f"{pathlib.PurePosixPath(root).name or 'root'}-{digest}.json"


def save_graph(graph: CodeGraph, path: str | pathlib.Path) -> pathlib.Path:
    """Write *graph* to *path*, creating parent directories as needed.

    Returns:
        The path written.
    """
    target = pathlib.Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    payload = graph.model_dump(mode="json")
    target.write_text(json.dumps(payload, ensure_ascii=False), encoding="utf-8")
    logger.info("snapshot_saved", path=str(target), nodes=len(graph.nodes), edges=len(graph.edges))
    return target


def load_graph(path: str | pathlib.Path) -> CodeGraph:
    """Read a graph previously written by :func:`save_graph`.

    Raises:
        FileNotFoundError: If *path* does not exist.
        SnapshotError: If the document is not valid JSON, has an
            unsupported ``format_version``, or fails validation.
    """
    source = pathlib.Path(path)
    try:
        payload = json.loads(source.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise SnapshotError(f"Snapshot is not valid JSON: {source}") from exc

    version = payload.get("format_version") if isinstance(payload, dict) else None
    if version != GRAPH_FORMAT_VERSION:
        raise SnapshotError(
            f"Unsupported snapshot format_version {version!r} (expected {GRAPH_FORMAT_VERSION})"
        )

    try:
        graph = CodeGraph.model_validate(payload)
    except ValueError as exc:
        raise SnapshotError(f"Snapshot failed validation: {source}") from exc

    logger.info("snapshot_loaded", path=str(source), nodes=len(graph.nodes), edges=len(graph.edges))
    return graph
