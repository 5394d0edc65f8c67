"""End-to-end tests for the HTTP API."""

import json
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from cartograph.api.app import app
from cartograph.api.dependencies import get_embedder, get_llm, get_registry
from cartograph.core.workspace import WorkspaceRegistry

from tests.conftest import FakeLLM, hash_embed


@pytest.fixture
def registry(temp_dir: Path) -> WorkspaceRegistry:
    return WorkspaceRegistry(temp_dir / ".snapshots")


@pytest.fixture
def client(registry: WorkspaceRegistry):
    app.dependency_overrides[get_registry] = lambda: registry
    app.dependency_overrides[get_embedder] = lambda: hash_embed
    app.dependency_overrides[get_llm] = FakeLLM
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def test_analyze_returns_graph(client: TestClient, sample_repo: Path):
    response = client.post("/analyze", json={"path": str(sample_repo)})

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "success"
    assert body["total_nodes"] == len(body["graph"]["nodes"])
    assert body["snapshot_path"] is None
    ids = {n["id"] for n in body["graph"]["nodes"]}
    assert {"a.js", "b.js", "pkg", "pkg/helpers.py"} <= ids


def test_analyze_stream_is_ndjson(client: TestClient, two_file_repo: Path):
    response = client.post("/analyze", json={"path": str(two_file_repo), "stream": True})

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("application/x-ndjson")
    records = [json.loads(line) for line in response.text.splitlines() if line]
    assert [r["_type"] for r in records].count("node") == 2
    assert [r["_type"] for r in records].count("edge") == 2
    assert response.headers["X-Total-Edges"] == "2"


@pytest.mark.parametrize("suffix", ["missing", "file.txt"])
def test_analyze_bad_path_is_400(client: TestClient, temp_dir: Path, suffix: str):
    (temp_dir / "file.txt").write_text("x", encoding="utf-8")

    response = client.post("/analyze", json={"path": str(temp_dir / suffix)})

    assert response.status_code == 400


def test_rebuild_then_retrieve(client: TestClient, sample_repo: Path):
    client.post("/analyze", json={"path": str(sample_repo)})

    rebuild = client.post("/index/rebuild", json={"path": str(sample_repo)})
    assert rebuild.status_code == 200
    assert rebuild.json()["records"] > 0
    assert rebuild.json()["diagnostics"] == []

    response = client.post(
        "/rag/retrieve",
        json={"path": str(sample_repo), "query": "slugify a value", "top_k": 3},
    )
    assert response.status_code == 200
    body = response.json()
    matches = [m for f in body["files"] for m in f["matches"]]
    assert len(matches) == 3
    assert {m["method"] for m in matches} == {"semantic"}


def test_retrieve_before_rebuild_reports_empty_store(client: TestClient, two_file_repo: Path):
    client.post("/analyze", json={"path": str(two_file_repo)})

    response = client.post("/rag/retrieve", json={"path": str(two_file_repo), "query": "see `b.js`"})

    body = response.json()
    assert [f["file_id"] for f in body["files"]] == ["b.js", "a.js"]
    assert body["diagnostics"][0]["kind"] == "retrieval_input_error"


def test_query(client: TestClient, two_file_repo: Path):
    client.post("/analyze", json={"path": str(two_file_repo)})

    response = client.post("/rag/query", json={"path": str(two_file_repo), "question": "What does `b.js` do?"})

    assert response.status_code == 200
    body = response.json()
    assert body["answer"].startswith("## Answer")
    assert [s["file_id"] for s in body["sources"]] == ["b.js", "a.js"]


def test_query_stream(client: TestClient, two_file_repo: Path):
    client.post("/analyze", json={"path": str(two_file_repo)})

    response = client.post(
        "/rag/query",
        json={"path": str(two_file_repo), "question": "Explain `a.js`", "stream": True},
    )

    assert response.status_code == 200
    assert response.text == "## Answer\n\ndone"


def test_unknown_workspace_is_404(client: TestClient, temp_dir: Path):
    response = client.post("/rag/retrieve", json={"path": str(temp_dir / "nowhere"), "query": "hi"})

    assert response.status_code == 404


def test_snapshot_restores_workspace(client: TestClient, registry: WorkspaceRegistry, two_file_repo: Path):
    analyzed = client.post("/analyze", json={"path": str(two_file_repo), "snapshot": True})
    assert Path(analyzed.json()["snapshot_path"]).is_file()

    registry.clear()
    response = client.post("/rag/retrieve", json={"path": str(two_file_repo), "query": "`a.js`"})

    assert response.status_code == 200
    assert [f["file_id"] for f in response.json()["files"]] == ["a.js"]
