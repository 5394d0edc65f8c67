"""RAG pipeline: the orchestrator connecting retrieval to synthesis.

Takes a developer question, runs the hybrid retriever against a
workspace's graph and current vector store, then feeds the rendered
context to the LLM.  All methods are **synchronous**; FastAPI endpoints
dispatch via ``asyncio.to_thread``.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Iterator

import structlog

from cartograph.config import settings
from cartograph.graph.embedder import EmbeddingFunction
from cartograph.graph.vector_store import VectorIndex
from cartograph.models.analysis import Diagnostic
from cartograph.models.graph import CodeGraph
from cartograph.models.retrieval import IssueContext
from cartograph.rag.llm_service import NO_CONTEXT_RESPONSE, LLMService, build_context
from cartograph.rag.retriever import HybridRetriever, RetrievalResult

logger = structlog.get_logger(__name__)


# ------------------------------------------------------------------
# Response model
# ------------------------------------------------------------------


@dataclass
class SourceFile:
    """Lightweight reference to a file used as context."""

    file_id: str
    chunks: int
    methods: list[str] = field(default_factory=list)
    best_similarity: float = 0.0


@dataclass
class QueryResult:
    """The final response from the RAG pipeline.

    Attributes:
        answer: Markdown-formatted LLM response.
        sources: Files used as context, in retrieval order.
        metadata: Timing and size info.
        diagnostics: Recovered retrieval failures.
    """

    answer: str
    sources: list[SourceFile] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)
    diagnostics: list[Diagnostic] = field(default_factory=list)


# ------------------------------------------------------------------
# Pipeline
# ------------------------------------------------------------------


class RAGPipeline:
    """End-to-end pipeline: Question → Retrieval → LLM → Answer.

    Usage::

        pipeline = RAGPipeline(graph, index, embed=Embedder.get_instance())
        result = pipeline.query("How is user data validated?")
        print(result.answer)

    Args:
        graph: The workspace graph.
        index: The workspace vector index; its *current* store is read
            once per query.
        embed: Embedding operation the index was built with.
        llm: Chat service; created from settings on first use.
        top_k: Semantic result budget.
    """

    def __init__(
        self,
        graph: CodeGraph,
        index: VectorIndex,
        embed: EmbeddingFunction,
        *,
        llm: LLMService | None = None,
        top_k: int | None = None,
    ) -> None:
        self._graph = graph
        self._index = index
        self._retriever = HybridRetriever(embed, top_k=top_k or settings.rag_top_k)
        self._llm = llm

    @property
    def llm(self) -> LLMService:
        if self._llm is None:
            self._llm = LLMService()
        return self._llm

    def retrieve(self, question: str, issue: IssueContext | None = None) -> RetrievalResult:
        return self._retriever.retrieve(question, self._graph, self._index.current, issue)

    def query(self, question: str, issue: IssueContext | None = None) -> QueryResult:
        """Run the full pipeline for a developer question.

        Args:
            question: Natural-language developer question.
            issue: Optional issue the question refers to.

        Returns:
            A :class:`QueryResult` with the answer, sources and metadata.

        Raises:
            RuntimeError: If the LLM is not configured.
        """
        t_start = time.perf_counter()
        retrieved = self.retrieve(question, issue)
        t_retrieve = time.perf_counter()

        if retrieved.is_empty:
            logger.info("llm_skip_empty_context")
            answer = NO_CONTEXT_RESPONSE
        else:
            answer = self.llm.synthesize(question, build_context(retrieved.files, issue))
        t_synthesize = time.perf_counter()

        result = QueryResult(
            answer=answer,
            sources=summarize_sources(retrieved),
            metadata={
                "retrieval_time_ms": round((t_retrieve - t_start) * 1000),
                "synthesis_time_ms": round((t_synthesize - t_retrieve) * 1000),
                "total_time_ms": round((t_synthesize - t_start) * 1000),
                "files": len(retrieved.files),
                "matches": retrieved.match_count,
                "model": self._llm.model if self._llm is not None else None,
            },
            diagnostics=list(retrieved.diagnostics),
        )
        logger.info("pipeline_complete", question=question[:80], **result.metadata)
        return result

    def stream(
        self, question: str, issue: IssueContext | None = None
    ) -> tuple[RetrievalResult, Iterator[str]]:
        """Retrieve, then return the result and an iterator of answer deltas."""
        retrieved = self.retrieve(question, issue)
        if retrieved.is_empty:
            return retrieved, iter([NO_CONTEXT_RESPONSE])
        return retrieved, self.llm.stream(question, build_context(retrieved.files, issue))


def summarize_sources(retrieved: RetrievalResult) -> list[SourceFile]:
    """Collapse per-chunk matches into one :class:`SourceFile` per file."""
    sources: list[SourceFile] = []
    for file_id, matches in retrieved.files:
        methods: list[str] = []
        for match in matches:
            if match.method.value not in methods:
                methods.append(match.method.value)
        sources.append(
            SourceFile(
                file_id=file_id,
                chunks=len(matches),
                methods=methods,
                best_similarity=max((m.similarity for m in matches), default=0.0),
            )
        )
    return sources
