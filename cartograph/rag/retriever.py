"""Hybrid retriever: issue context + vector search + keywords + graph expansion.

Implements a multi-channel "Search & Expand" strategy over a
:class:`CodeGraph` and a :class:`VectorStore` snapshot:

1. **Issue context**: file names mentioned in an attached issue body
   contribute all of their chunks.
2. **Semantic retrieval**: embed the question (plus issue text) once and
   take the top-*k* chunks by cosine similarity.
3. **Keyword retrieval**: back-tick quoted file names in the question
   contribute all of their chunks.
4. **Graph expansion**: files imported by keyword-matched files
   contribute their leading chunks.

Channels never re-rank each other: results are grouped per file in the
order files were first touched.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

import structlog

from cartograph.config import settings
from cartograph.graph.embedder import EmbeddingFunction
from cartograph.graph.vector_store import VectorStore
from cartograph.models.analysis import Diagnostic, DiagnosticKind
from cartograph.models.graph import CodeGraph, EdgeKind, GraphNode, NodeKind
from cartograph.models.retrieval import IssueContext, RetrievalMatch, RetrievalMethod

logger = structlog.get_logger(__name__)

ISSUE_FILE_PATTERN = re.compile(r"([a-zA-Z0-9_/.-]+\.(?:jsx|js|tsx|ts|mjs|cjs|py|java|go|rs))(?![A-Za-z0-9_])")
KEYWORD_FILE_PATTERN = re.compile(r"`([^`]+\.(?:jsx|js|tsx|ts|mjs|cjs|py|java|go|rs))`")

EXACT_SIMILARITY = 1.0
GRAPH_SIMILARITY = 0.8
GRAPH_CHUNKS_PER_FILE = 2


# ------------------------------------------------------------------
# Data structures
# ------------------------------------------------------------------


@dataclass
class RetrievalResult:
    """Matches grouped per file, in first-insertion order.

    Attributes:
        files: ``(file_id, matches)`` pairs; matches keep channel order.
        diagnostics: Recovered channel failures.
    """

    files: list[tuple[str, list[RetrievalMatch]]] = field(default_factory=list)
    diagnostics: list[Diagnostic] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.files

    @property
    def match_count(self) -> int:
        return sum(len(matches) for _, matches in self.files)


class _Accumulator:
    """Insertion-ordered ``file_id -> matches`` map."""

    def __init__(self) -> None:
        self._files: dict[str, list[RetrievalMatch]] = {}

    def add(self, match: RetrievalMatch) -> None:
        self._files.setdefault(match.file_id, []).append(match)

    def items(self) -> list[tuple[str, list[RetrievalMatch]]]:
        return [(file_id, list(matches)) for file_id, matches in self._files.items()]


def extract_issue_files(body: str) -> list[str]:
    """File-name-like tokens in an issue body, in order of appearance."""
    return _unique(m.group(1) for m in ISSUE_FILE_PATTERN.finditer(body))


def extract_mentioned_files(query: str) -> list[str]:
    """Back-tick quoted file names in a query, in order of appearance."""
    return _unique(m.group(1) for m in KEYWORD_FILE_PATTERN.finditer(query))


def _unique(tokens) -> list[str]:
    seen: set[str] = set()
    result: list[str] = []
    for token in tokens:
        if token not in seen:
            seen.add(token)
            result.append(token)
    return result


# ------------------------------------------------------------------
# Retriever
# ------------------------------------------------------------------


class HybridRetriever:
    """Four-channel retriever over one graph and one vector store snapshot.

    All methods are **synchronous**; FastAPI endpoints dispatch them via
    ``asyncio.to_thread``.  The retriever never mutates the graph or the
    store it is given.

    Args:
        embed: Embedding operation used for the query (must match the
            one the store was built with).
        top_k: Default semantic result budget; falls back to
            :pyattr:`Settings.rag_top_k`.
    """

    def __init__(self, embed: EmbeddingFunction, *, top_k: int | None = None) -> None:
        self._embed = embed
        self.top_k = top_k or settings.rag_top_k

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def retrieve(
        self,
        query: str,
        graph: CodeGraph,
        store: VectorStore,
        issue: IssueContext | None = None,
        *,
        top_k: int | None = None,
    ) -> RetrievalResult:
        """Run every channel and merge their matches.

        Args:
            query: Natural-language developer question.
            graph: The workspace's current graph.
            store: The vector store snapshot to search.
            issue: Optional issue the question refers to.
            top_k: Semantic result budget for this call.

        Returns:
            A :class:`RetrievalResult` grouped by file.
        """
        k = top_k or self.top_k
        acc = _Accumulator()
        diagnostics: list[Diagnostic] = []

        if issue is not None and issue.body:
            self._issue_channel(issue, graph, acc)

        self._semantic_channel(query, issue, store, k, acc, diagnostics)

        keyword_nodes = self._keyword_channel(query, graph, acc)
        self._graph_channel(keyword_nodes, graph, acc)

        result = RetrievalResult(files=acc.items(), diagnostics=diagnostics)
        logger.info(
            "retrieval_complete",
            query=query[:80],
            files=len(result.files),
            matches=result.match_count,
            diagnostics=len(diagnostics),
        )
        return result

    # ------------------------------------------------------------------
    # Channels
    # ------------------------------------------------------------------

    def _issue_channel(self, issue: IssueContext, graph: CodeGraph, acc: _Accumulator) -> None:
        file_nodes = graph.file_nodes()
        added = 0
        for token in extract_issue_files(issue.body):
            node = next((n for n in file_nodes if n.id.endswith(token)), None)
            if node is None:
                continue
            added += _add_chunks(node, acc, RetrievalMethod.ISSUE_CONTEXT, EXACT_SIMILARITY)
        logger.debug("issue_channel_done", matches=added)

    def _semantic_channel(
        self,
        query: str,
        issue: IssueContext | None,
        store: VectorStore,
        k: int,
        acc: _Accumulator,
        diagnostics: list[Diagnostic],
    ) -> None:
        if store.is_empty:
            logger.warning("vector_store_empty")
            diagnostics.append(
                Diagnostic(
                    kind=DiagnosticKind.RETRIEVAL_INPUT_ERROR,
                    message="vector store is empty; semantic retrieval skipped",
                )
            )
            return

        text = query
        if issue is not None and issue.body:
            text = f"{query}\n\nRelated issue: {issue.title}\n{issue.body}"

        try:
            query_vector = self._embed(text)
        except Exception as exc:
            logger.warning("query_embedding_failed", error=str(exc))
            diagnostics.append(
                Diagnostic(
                    kind=DiagnosticKind.EMBEDDING_FAILURE,
                    message="query embedding failed; semantic retrieval skipped",
                    detail=str(exc),
                )
            )
            return

        hits = store.search(query_vector, k)
        for record, similarity in hits:
            acc.add(
                RetrievalMatch(
                    file_id=record.file_id,
                    chunk_index=record.chunk_index,
                    text=record.text,
                    similarity=similarity,
                    method=RetrievalMethod.SEMANTIC,
                    language=record.language,
                )
            )
        logger.info(
            "vector_search_done",
            count=len(hits),
            top=[round(s, 3) for _, s in hits[:5]],
        )

    def _keyword_channel(self, query: str, graph: CodeGraph, acc: _Accumulator) -> list[GraphNode]:
        file_nodes = graph.file_nodes()
        matched: list[GraphNode] = []
        for token in extract_mentioned_files(query):
            node = next(
                (n for n in file_nodes if n.id.endswith(token) or n.label == token),
                None,
            )
            if node is None:
                logger.debug("keyword_file_not_found", token=token)
                continue
            _add_chunks(node, acc, RetrievalMethod.KEYWORD, EXACT_SIMILARITY)
            matched.append(node)
        return matched

    def _graph_channel(self, sources: list[GraphNode], graph: CodeGraph, acc: _Accumulator) -> None:
        for source in sources:
            for edge in graph.outgoing(source.id, EdgeKind.IMPORT):
                target = graph.get_node(edge.target)
                if target is None or target.kind is not NodeKind.FILE:
                    continue
                _add_chunks(
                    target,
                    acc,
                    RetrievalMethod.GRAPH,
                    GRAPH_SIMILARITY,
                    limit=GRAPH_CHUNKS_PER_FILE,
                )


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------


def _add_chunks(
    node: GraphNode,
    acc: _Accumulator,
    method: RetrievalMethod,
    similarity: float,
    *,
    limit: int | None = None,
) -> int:
    """Add *node*'s chunks (optionally only the first *limit*) to *acc*."""
    if node.analysis is None:
        return 0
    chunks = node.analysis.chunks if limit is None else node.analysis.chunks[:limit]
    for chunk in chunks:
        acc.add(
            RetrievalMatch(
                file_id=node.id,
                chunk_index=chunk.index,
                text=chunk.text,
                similarity=similarity,
                method=method,
                language=node.analysis.language,
            )
        )
    return len(chunks)
