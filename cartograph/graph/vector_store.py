"""In-memory embedding store with whole-store rebuilds.

A :class:`VectorStore` is an immutable snapshot: one
:class:`EmbeddingRecord` per successfully embedded chunk.  It is never
updated in place.  :class:`VectorIndex` owns the *current* store
reference for a workspace and replaces it wholesale on every rebuild, so
a query that already holds a store keeps reading a consistent snapshot
while a rebuild is running.
"""

from __future__ import annotations

import math
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Iterable, Sequence

import structlog

from cartograph.config import settings
from cartograph.graph.embedder import EmbeddingFunction
from cartograph.models.analysis import Chunk, Diagnostic, DiagnosticKind, FileAnalysis
from cartograph.models.retrieval import EmbeddingRecord

logger = structlog.get_logger(__name__)


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity of *a* and *b*.

    Returns ``0.0`` when either vector has zero magnitude or the lengths
    differ, so the result is always a finite number.
    """
    if len(a) != len(b):
        return 0.0
    dot = 0.0
    norm_a = 0.0
    norm_b = 0.0
    for x, y in zip(a, b):
        dot += x * y
        norm_a += x * x
        norm_b += y * y
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0
    return dot / (math.sqrt(norm_a) * math.sqrt(norm_b))


def embedding_prompt(file_id: str, chunk_text: str) -> str:
    """Composite prompt embedded for one chunk."""
    return f"File: {file_id}\nCode:\n{chunk_text}"


class VectorStore:
    """An immutable collection of embedding records.

    Args:
        records: Records in store order.
        diagnostics: Embedding failures recorded while building.
    """

    def __init__(
        self,
        records: Iterable[EmbeddingRecord] = (),
        diagnostics: Iterable[Diagnostic] = (),
    ) -> None:
        self._records: tuple[EmbeddingRecord, ...] = tuple(records)
        self._diagnostics: tuple[Diagnostic, ...] = tuple(diagnostics)

    @property
    def records(self) -> tuple[EmbeddingRecord, ...]:
        return self._records

    @property
    def diagnostics(self) -> tuple[Diagnostic, ...]:
        return self._diagnostics

    def __len__(self) -> int:
        return len(self._records)

    @property
    def is_empty(self) -> bool:
        return not self._records

    def search(self, query_vector: Sequence[float], k: int) -> list[tuple[EmbeddingRecord, float]]:
        """Return the *k* records most similar to *query_vector*.

        Records are ranked by descending cosine similarity; ties keep
        store order.

        Args:
            query_vector: Embedded query.
            k: Maximum number of results.

        Returns:
            ``(record, similarity)`` pairs, best first.
        """
        scored = [(record, cosine_similarity(query_vector, record.vector)) for record in self._records]
        # ``sorted`` is stable, so equal scores preserve store order.
        scored = sorted(scored, key=lambda pair: pair[1], reverse=True)
        return scored[: max(k, 0)]


def build_vector_store(
    analyses: Iterable[FileAnalysis],
    embed: EmbeddingFunction,
    *,
    concurrency: int | None = None,
) -> VectorStore:
    """Embed every chunk of every file into a fresh :class:`VectorStore`.

    Each chunk is embedded independently on a bounded worker pool; a
    failing chunk is logged and left out without affecting its siblings.

    Args:
        analyses: Analysis records whose chunks are embedded.
        embed: The embedding operation.
        concurrency: Maximum concurrent embedding calls; defaults to
            :pyattr:`Settings.embedding_concurrency`.

    Returns:
        A new store with one record per successfully embedded chunk, in
        input order.
    """
    jobs: list[tuple[Chunk, str]] = [
        (chunk, analysis.language)
        for analysis in analyses
        for chunk in analysis.chunks
    ]
    workers = max(1, concurrency or settings.embedding_concurrency)

    logger.info("vector_store_build_started", chunks=len(jobs), workers=workers)

    def _embed(job: tuple[Chunk, str]) -> EmbeddingRecord | Diagnostic:
        chunk, language = job
        try:
            vector = embed(embedding_prompt(chunk.file_id, chunk.text))
        except Exception as exc:
            logger.warning(
                "chunk_embedding_failed",
                file=chunk.file_id,
                chunk_index=chunk.index,
                error=str(exc),
            )
            return Diagnostic(
                kind=DiagnosticKind.EMBEDDING_FAILURE,
                message="chunk embedding failed",
                file_id=chunk.file_id,
                detail=f"chunk {chunk.index}: {exc}",
            )
        return EmbeddingRecord(
            file_id=chunk.file_id,
            chunk_index=chunk.index,
            text=chunk.text,
            vector=list(vector),
            language=language,
        )

    if workers == 1:
        outcomes = [_embed(job) for job in jobs]
    else:
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="embed") as pool:
            outcomes = list(pool.map(_embed, jobs))

    records = [o for o in outcomes if isinstance(o, EmbeddingRecord)]
    failures = [o for o in outcomes if isinstance(o, Diagnostic)]

    logger.info("vector_store_built", records=len(records), failed=len(failures))
    return VectorStore(records, failures)


class VectorIndex:
    """Owner of the current :class:`VectorStore` reference.

    Starts with an empty store.  :meth:`rebuild` always builds a brand-new
    store from scratch and swaps it in with a single reference
    assignment; previous stores are never mutated.
    """

    def __init__(self) -> None:
        self._store = VectorStore()
        self._rebuild_lock = threading.Lock()

    @property
    def current(self) -> VectorStore:
        """The store queries should read from."""
        return self._store

    def rebuild(
        self,
        analyses: Iterable[FileAnalysis],
        embed: EmbeddingFunction,
        *,
        concurrency: int | None = None,
    ) -> VectorStore:
        """Replace the current store with a freshly built one.

        Concurrent rebuilds are serialized; readers are never blocked.

        Returns:
            The new current store.
        """
        with self._rebuild_lock:
            store = build_vector_store(analyses, embed, concurrency=concurrency)
            self._store = store
        return store
