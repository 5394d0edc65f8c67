"""FastAPI route definitions for analysis and indexing.

Provides two endpoints:

- ``POST /analyze``: scan a repository and return (or stream) its code
  graph; registers the project as a workspace.
- ``POST /index/rebuild``: embed every chunk of a workspace into a fresh
  vector store and swap it in.
"""

from __future__ import annotations

import asyncio
import json
from typing import AsyncIterator

from pydantic import BaseModel, Field

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import StreamingResponse

from cartograph.api.dependencies import get_embedder, get_registry, resolve_workspace
from cartograph.core.ingestion import ingest_repository
from cartograph.core.snapshot import save_graph
from cartograph.core.workspace import WorkspaceRegistry
from cartograph.graph.embedder import EmbeddingFunction
from cartograph.models.analysis import Diagnostic
from cartograph.models.graph import CodeGraph

router = APIRouter()


# ------------------------------------------------------------------
# Request / Response schemas
# ------------------------------------------------------------------


class AnalyzeRequest(BaseModel):
    """Payload for the ``/analyze`` endpoint.

    Attributes:
        path: Absolute local path to the repository to scan.
        blacklist: Optional list of glob patterns to exclude.
        stream: If ``True``, return an NDJSON streaming response.
        snapshot: If ``True``, persist the graph for later sessions.
    """

    path: str = Field(..., description="Absolute local path to the repository.")
    blacklist: list[str] | None = Field(
        None, description="Optional glob patterns to exclude."
    )
    stream: bool = Field(
        False, description="If true, return NDJSON streaming response."
    )
    snapshot: bool = Field(
        False, description="If true, write a JSON snapshot of the graph."
    )


class AnalyzeResponse(BaseModel):
    """Response from the ``/analyze`` endpoint (non-streaming mode)."""

    status: str = Field("success", description="Status message.")
    total_nodes: int = Field(..., description="Number of nodes in the graph.")
    total_edges: int = Field(..., description="Number of edges in the graph.")
    total_diagnostics: int = Field(..., description="Recovered failures.")
    snapshot_path: str | None = Field(None, description="Where the snapshot was written.")
    graph: CodeGraph = Field(..., description="The analyzed code graph.")


class RebuildRequest(BaseModel):
    """Payload for ``POST /index/rebuild``."""

    path: str = Field(..., description="Root of a previously analyzed repository.")


class RebuildResponse(BaseModel):
    """Response from ``POST /index/rebuild``."""

    status: str = Field("success")
    records: int = Field(..., description="Chunks embedded into the new store.")
    diagnostics: list[Diagnostic] = Field(default_factory=list)


# ------------------------------------------------------------------
# Streaming helper
# ------------------------------------------------------------------


async def _stream_ndjson(graph: CodeGraph) -> AsyncIterator[str]:
    """Yield the graph as newline-delimited JSON (NDJSON).

    Each line is a self-contained JSON object with a ``_type`` discriminator
    (``"node"``, ``"edge"`` or ``"diagnostic"``).

    Args:
        graph: The code graph to stream.

    Yields:
        One JSON-encoded line per record, terminated by ``\\n``.
    """
    for node in graph.nodes:
        record = {"_type": "node", **node.model_dump(mode="json")}
        yield json.dumps(record, ensure_ascii=False) + "\n"

    for edge in graph.edges:
        record = {"_type": "edge", **edge.model_dump(mode="json")}
        yield json.dumps(record, ensure_ascii=False) + "\n"

    for diagnostic in graph.diagnostics:
        record = {"_type": "diagnostic", **diagnostic.model_dump(mode="json")}
        yield json.dumps(record, ensure_ascii=False) + "\n"


# ------------------------------------------------------------------
# Endpoints
# ------------------------------------------------------------------


@router.post(
    "/analyze",
    status_code=status.HTTP_200_OK,
    summary="Analyze a local repository",
    description=(
        "Recursively scan a local directory, chunk and analyze every file "
        "with tree-sitter, and return the file/directory graph with import "
        "and call edges.  Set ``stream: true`` to receive NDJSON."
    ),
)
async def analyze(
    request: AnalyzeRequest,
    registry: WorkspaceRegistry = Depends(get_registry),
):
    """Analyze a local repository and return its code graph.

    Args:
        request: Contains the local path, optional blacklist and flags.
        registry: Workspace registry the graph is stored in.

    Returns:
        :class:`AnalyzeResponse` **or** a :class:`StreamingResponse`.

    Raises:
        HTTPException: 400 if the path is invalid or unreadable, 500 on
            unexpected errors.
    """
    try:
        graph: CodeGraph = await ingest_repository(
            repo_path=request.path,
            blacklist=request.blacklist,
        )
    except (FileNotFoundError, NotADirectoryError, PermissionError) as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        )
    except Exception as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Analysis failed: {exc}",
        )

    registry.register(request.path, graph)

    snapshot_path: str | None = None
    if request.snapshot:
        written = await asyncio.to_thread(save_graph, graph, registry.snapshot_path(request.path))
        snapshot_path = str(written)

    # --- Streaming mode ---
    if request.stream:
        return StreamingResponse(
            _stream_ndjson(graph),
            media_type="application/x-ndjson",
            headers={
                "X-Total-Nodes": str(len(graph.nodes)),
                "X-Total-Edges": str(len(graph.edges)),
            },
        )

    # --- Standard JSON mode ---
    return AnalyzeResponse(
        status="success",
        total_nodes=len(graph.nodes),
        total_edges=len(graph.edges),
        total_diagnostics=len(graph.diagnostics),
        snapshot_path=snapshot_path,
        graph=graph,
    )


@router.post(
    "/index/rebuild",
    response_model=RebuildResponse,
    status_code=status.HTTP_200_OK,
    summary="Rebuild the vector index",
    description=(
        "Embed every chunk of an analyzed repository into a brand-new "
        "vector store and make it the current one.  Queries already in "
        "flight keep reading the previous store."
    ),
)
async def rebuild_index(
    request: RebuildRequest,
    registry: WorkspaceRegistry = Depends(get_registry),
    embed: EmbeddingFunction = Depends(get_embedder),
) -> RebuildResponse:
    """Rebuild the vector store of one workspace."""
    workspace = resolve_workspace(registry, request.path)

    try:
        store = await asyncio.to_thread(workspace.rebuild_index, embed)
    except Exception as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Index rebuild failed: {exc}",
        )

    return RebuildResponse(
        status="success",
        records=len(store),
        diagnostics=list(store.diagnostics),
    )
