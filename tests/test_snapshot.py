"""Tests for graph snapshots and the workspace registry."""

import asyncio
import json
from pathlib import Path

import pytest

from cartograph.core.ingestion import ingest_repository
from cartograph.core.snapshot import SnapshotError, load_graph, save_graph, snapshot_path_for
from cartograph.core.workspace import WorkspaceRegistry


@pytest.fixture
def graph(two_file_repo: Path):
    return asyncio.run(ingest_repository(two_file_repo))


def test_round_trip(graph, temp_dir: Path):
    path = save_graph(graph, temp_dir / "snap" / "graph.json")

    assert load_graph(path) == graph


def test_snapshot_is_plain_json(graph, temp_dir: Path):
    path = save_graph(graph, temp_dir / "graph.json")
    payload = json.loads(path.read_text(encoding="utf-8"))

    assert payload["format_version"] == 1
    assert {e["kind"] for e in payload["edges"]} == {"import", "call"}


def test_unknown_format_version_is_rejected(temp_dir: Path):
    path = temp_dir / "old.json"
    path.write_text(json.dumps({"format_version": 99, "nodes": []}), encoding="utf-8")

    with pytest.raises(SnapshotError):
        load_graph(path)


def test_invalid_json_is_rejected(temp_dir: Path):
    path = temp_dir / "broken.json"
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(SnapshotError):
        load_graph(path)


def test_snapshot_path_is_stable_per_root(temp_dir: Path):
    first = snapshot_path_for(temp_dir / "repo", temp_dir / "snaps")

    assert first == snapshot_path_for(temp_dir / "repo", temp_dir / "snaps")
    assert first != snapshot_path_for(temp_dir / "other", temp_dir / "snaps")
    assert first.parent == temp_dir / "snaps"


class TestWorkspaceRegistry:
    def test_unknown_root_raises_key_error(self, temp_dir: Path):
        registry = WorkspaceRegistry(temp_dir / "snaps")

        with pytest.raises(KeyError):
            registry.get(temp_dir / "never-analyzed")

    def test_falls_back_to_snapshot(self, graph, two_file_repo: Path, temp_dir: Path):
        snaps = temp_dir / "snaps"
        first = WorkspaceRegistry(snaps)
        save_graph(graph, first.snapshot_path(two_file_repo))

        restored = WorkspaceRegistry(snaps).get(two_file_repo)

        assert restored.graph == graph
        assert restored.index.current.is_empty

    def test_register_replaces_workspace(self, graph, two_file_repo: Path, temp_dir: Path, fake_embed):
        registry = WorkspaceRegistry(temp_dir / "snaps")
        workspace = registry.register(two_file_repo, graph)
        workspace.rebuild_index(fake_embed)
        assert len(workspace.index.current) == 2

        replaced = registry.register(two_file_repo, graph)

        assert registry.get(two_file_repo) is replaced
        assert replaced.index.current.is_empty
        assert two_file_repo in registry
