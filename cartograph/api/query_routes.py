"""FastAPI route definitions for retrieval and question answering.

Provides:

- ``POST /rag/retrieve``: run hybrid retrieval only and return the
  matched chunks grouped by file.
- ``POST /rag/query``: retrieval plus LLM synthesis, returned as JSON
  or streamed as plain text.

Retrieval and LLM calls are synchronous and dispatched via
``asyncio.to_thread``.
"""

from __future__ import annotations

import asyncio

from pydantic import BaseModel, Field
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import StreamingResponse

from cartograph.api.dependencies import get_embedder, get_llm, get_registry, resolve_workspace
from cartograph.core.workspace import WorkspaceRegistry
from cartograph.graph.embedder import EmbeddingFunction
from cartograph.models.analysis import Diagnostic
from cartograph.models.retrieval import IssueContext, RetrievalMatch
from cartograph.rag.llm_service import LLMService
from cartograph.rag.pipeline import RAGPipeline
from cartograph.rag.retriever import HybridRetriever

query_router = APIRouter(prefix="/rag", tags=["RAG"])


# ------------------------------------------------------------------
# Request / Response schemas
# ------------------------------------------------------------------


class RetrieveRequest(BaseModel):
    """Payload for ``POST /rag/retrieve``."""

    path: str = Field(..., description="Root of a previously analyzed repository.")
    query: str = Field(..., min_length=1, description="Natural-language query.")
    issue: IssueContext | None = Field(None, description="Issue steering the retrieval.")
    top_k: int | None = Field(None, ge=1, le=200, description="Semantic result budget.")


class RetrievedFile(BaseModel):
    """Matches for one file, in channel order."""

    file_id: str
    matches: list[RetrievalMatch] = Field(default_factory=list)


class RetrieveResponse(BaseModel):
    """Response from ``POST /rag/retrieve``."""

    files: list[RetrievedFile] = Field(default_factory=list)
    diagnostics: list[Diagnostic] = Field(default_factory=list)


class QueryRequest(BaseModel):
    """Payload for ``POST /rag/query``."""

    path: str = Field(..., description="Root of a previously analyzed repository.")
    question: str = Field(
        ...,
        description="Natural-language developer question about the codebase.",
        min_length=3,
        max_length=4000,
    )
    issue: IssueContext | None = Field(None, description="Issue the question refers to.")
    top_k: int | None = Field(None, ge=1, le=200, description="Semantic result budget.")
    stream: bool = Field(False, description="If true, stream the answer as plain text.")


class SourceFileResponse(BaseModel):
    """A file used as context for the answer."""

    file_id: str
    chunks: int
    methods: list[str] = Field(default_factory=list)
    best_similarity: float = 0.0


class QueryResponse(BaseModel):
    """Response from ``POST /rag/query``."""

    answer: str = Field(..., description="Markdown-formatted LLM answer.")
    sources: list[SourceFileResponse] = Field(
        default_factory=list,
        description="Files used as context for the answer.",
    )
    metadata: dict = Field(
        default_factory=dict,
        description="Timing and size metadata.",
    )
    diagnostics: list[Diagnostic] = Field(default_factory=list)


# ------------------------------------------------------------------
# Endpoints
# ------------------------------------------------------------------


@query_router.post(
    "/retrieve",
    response_model=RetrieveResponse,
    status_code=status.HTTP_200_OK,
    summary="Retrieve code relevant to a query",
    description=(
        "Runs issue-context, semantic, keyword and graph-expansion "
        "retrieval over an analyzed repository without calling the LLM."
    ),
)
async def rag_retrieve(
    request: RetrieveRequest,
    registry: WorkspaceRegistry = Depends(get_registry),
    embed: EmbeddingFunction = Depends(get_embedder),
) -> RetrieveResponse:
    workspace = resolve_workspace(registry, request.path)
    retriever = HybridRetriever(embed)

    result = await asyncio.to_thread(
        retriever.retrieve,
        request.query,
        workspace.graph,
        workspace.index.current,
        request.issue,
        top_k=request.top_k,
    )

    return RetrieveResponse(
        files=[RetrievedFile(file_id=file_id, matches=matches) for file_id, matches in result.files],
        diagnostics=result.diagnostics,
    )


@query_router.post(
    "/query",
    status_code=status.HTTP_200_OK,
    summary="Ask a question about the codebase",
    description=(
        "Retrieves relevant code from an analyzed repository and "
        "synthesizes a structured Markdown answer with an OpenAI-compatible "
        "chat model.  Set ``stream: true`` to receive the answer as it is "
        "generated."
    ),
)
async def rag_query(
    request: QueryRequest,
    registry: WorkspaceRegistry = Depends(get_registry),
    embed: EmbeddingFunction = Depends(get_embedder),
    llm: LLMService | None = Depends(get_llm),
):
    """Run the full RAG pipeline for a developer question."""
    workspace = resolve_workspace(registry, request.path)
    pipeline = RAGPipeline(workspace.graph, workspace.index, embed, llm=llm, top_k=request.top_k)

    if request.stream:
        try:
            retrieved, deltas = await asyncio.to_thread(pipeline.stream, request.question, request.issue)
        except RuntimeError as exc:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail=str(exc),
            )
        return StreamingResponse(
            deltas,
            media_type="text/plain; charset=utf-8",
            headers={"X-Source-Files": str(len(retrieved.files))},
        )

    try:
        result = await asyncio.to_thread(pipeline.query, request.question, request.issue)
    except RuntimeError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(exc),
        )
    except Exception as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"RAG pipeline failed: {exc}",
        )

    return QueryResponse(
        answer=result.answer,
        sources=[
            SourceFileResponse(
                file_id=s.file_id,
                chunks=s.chunks,
                methods=s.methods,
                best_similarity=s.best_similarity,
            )
            for s in result.sources
        ],
        metadata=result.metadata,
        diagnostics=result.diagnostics,
    )
