"""Tests for the embedding store."""

import math

import pytest

from cartograph.graph.vector_store import (
    VectorIndex,
    VectorStore,
    build_vector_store,
    cosine_similarity,
    embedding_prompt,
)
from cartograph.models.analysis import Chunk, DiagnosticKind, FileAnalysis
from cartograph.models.retrieval import EmbeddingRecord


def _analysis(file_id: str, *texts: str) -> FileAnalysis:
    return FileAnalysis(
        path=f"/repo/{file_id}",
        file_id=file_id,
        language="javascript",
        chunks=[Chunk(file_id=file_id, index=i, text=t) for i, t in enumerate(texts)],
    )


def _record(file_id: str, vector: list[float], index: int = 0) -> EmbeddingRecord:
    return EmbeddingRecord(file_id=file_id, chunk_index=index, text=file_id, vector=vector, language="javascript")


class TestCosineSimilarity:
    def test_self_similarity_is_one(self):
        vec = [0.3, -1.2, 4.0, 0.0]
        assert cosine_similarity(vec, vec) == pytest.approx(1.0)

    def test_zero_vector_is_zero_not_nan(self):
        result = cosine_similarity([0.0, 0.0], [1.0, 2.0])
        assert result == 0.0
        assert not math.isnan(result)

    def test_length_mismatch_is_zero(self):
        assert cosine_similarity([1.0, 2.0, 3.0], [1.0, 2.0]) == 0.0

    def test_orthogonal(self):
        assert cosine_similarity([1.0, 0.0], [0.0, 5.0]) == 0.0


def test_search_orders_by_similarity_with_stable_ties():
    store = VectorStore(
        [
            _record("tie-first.js", [1.0, 1.0]),
            _record("best.js", [1.0, 0.0]),
            _record("tie-second.js", [1.0, 1.0]),
            _record("worst.js", [0.0, 1.0]),
        ]
    )

    hits = store.search([1.0, 0.0], k=3)

    assert [r.file_id for r, _ in hits] == ["best.js", "tie-first.js", "tie-second.js"]
    assert hits[0][1] == pytest.approx(1.0)


def test_build_embeds_composite_prompt(fake_embed):
    prompts: list[str] = []

    def recording_embed(text: str) -> list[float]:
        prompts.append(text)
        return fake_embed(text)

    store = build_vector_store([_analysis("src/a.js", "function a() {}")], recording_embed)

    assert prompts == [embedding_prompt("src/a.js", "function a() {}")]
    assert prompts[0] == "File: src/a.js\nCode:\nfunction a() {}"
    assert len(store) == 1
    assert store.records[0].language == "javascript"


def test_failed_chunk_is_omitted_and_diagnosed(fake_embed):
    def flaky_embed(text: str) -> list[float]:
        if "broken" in text:
            raise ConnectionError("model offline")
        return fake_embed(text)

    analyses = [_analysis("a.js", "one", "broken", "three")]

    store = build_vector_store(analyses, flaky_embed)

    assert [r.chunk_index for r in store.records] == [0, 2]
    assert len(store.diagnostics) == 1
    assert store.diagnostics[0].kind is DiagnosticKind.EMBEDDING_FAILURE
    assert store.diagnostics[0].file_id == "a.js"


def test_parallel_build_keeps_input_order(fake_embed):
    analyses = [_analysis(f"f{i}.js", *(f"chunk {i}-{j}" for j in range(3))) for i in range(5)]

    store = build_vector_store(analyses, fake_embed, concurrency=4)

    assert [(r.file_id, r.chunk_index) for r in store.records] == [
        (f"f{i}.js", j) for i in range(5) for j in range(3)
    ]


def test_rebuild_replaces_instead_of_growing(fake_embed):
    analyses = [_analysis("a.js", "x", "y"), _analysis("b.js", "z")]
    index = VectorIndex()
    assert index.current.is_empty

    first = index.rebuild(analyses, fake_embed)
    second = index.rebuild(analyses, fake_embed)

    assert len(first) == len(second) == 3
    assert index.current is second
    assert first is not second
