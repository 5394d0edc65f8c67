"""Tests for graph construction."""

from pathlib import Path

import pytest

from cartograph.core.analyzer import FileAnalyzer
from cartograph.core.content_reader import read_source
from cartograph.graph.builder import GraphBuilder
from cartograph.models.analysis import DiagnosticKind
from cartograph.models.graph import CodeGraph, EdgeKind, NodeKind


def _build(root: Path, paths: list[Path], analyze: list[Path] | None = None) -> CodeGraph:
    analyzer = FileAnalyzer(root)
    targets = paths if analyze is None else analyze
    analyses = [analyzer.analyze(p, read_source(p)) for p in targets]
    return GraphBuilder().build(analyses, root, paths)


@pytest.fixture
def two_file_graph(two_file_repo: Path) -> CodeGraph:
    return _build(two_file_repo, [two_file_repo / "a.js", two_file_repo / "b.js"])


class TestTwoFileScenario:
    def test_file_nodes(self, two_file_graph: CodeGraph):
        assert [n.id for n in two_file_graph.file_nodes()] == ["a.js", "b.js"]
        assert all(n.parent is None for n in two_file_graph.nodes)

    def test_single_import_edge(self, two_file_graph: CodeGraph):
        imports = [e for e in two_file_graph.edges if e.kind is EdgeKind.IMPORT]

        assert len(imports) == 1
        assert (imports[0].source, imports[0].target) == ("b.js", "a.js")
        assert imports[0].label == "./a.js"

    def test_single_call_edge(self, two_file_graph: CodeGraph):
        calls = [e for e in two_file_graph.edges if e.kind is EdgeKind.CALL]

        assert len(calls) == 1
        edge = calls[0]
        assert (edge.source, edge.target) == ("b.js", "a.js")
        assert edge.call_line == 5
        assert edge.declaration_line == 2
        assert edge.label == "add()"


def test_directory_nodes_and_placeholders(sample_repo: Path):
    paths = [
        sample_repo / "a.js",
        sample_repo / "docs" / "README.md",
        sample_repo / "pkg" / "app.py",
        sample_repo / "pkg" / "helpers.py",
    ]
    graph = _build(sample_repo, paths, analyze=paths[2:])

    directories = {n.id: n for n in graph.nodes if n.kind is NodeKind.DIRECTORY}
    assert set(directories) == {"docs", "pkg"}
    assert graph.get_node("pkg/app.py").parent == "pkg"

    readme = graph.get_node("docs/README.md")
    assert readme.analysis is not None
    assert readme.analysis.chunks == []
    assert readme.analysis.language == "md"


def test_python_relative_import_and_call(sample_repo: Path):
    paths = [sample_repo / "pkg" / "app.py", sample_repo / "pkg" / "helpers.py"]
    graph = _build(sample_repo, paths)

    edges = {(e.kind, e.source, e.target) for e in graph.edges}
    assert (EdgeKind.IMPORT, "pkg/app.py", "pkg/helpers.py") in edges
    assert (EdgeKind.CALL, "pkg/app.py", "pkg/helpers.py") in edges


def test_call_fan_out_and_same_file_suppression(write_file, temp_dir: Path):
    paths = [
        write_file("x.js", "function util() {}\n"),
        write_file("y.js", "function util() {}\n"),
        write_file("z.js", "function util() {}\nutil();\n"),
    ]
    graph = _build(temp_dir, paths)

    calls = [e for e in graph.edges if e.kind is EdgeKind.CALL]
    assert sorted(e.target for e in calls) == ["x.js", "y.js"]
    assert all(e.source == "z.js" for e in calls)


def test_unresolved_import_is_diagnosed(write_file, temp_dir: Path):
    paths = [write_file("main.js", "import lodash from 'lodash';\n")]
    graph = _build(temp_dir, paths)

    assert graph.edges == []
    unresolved = [d for d in graph.diagnostics if d.kind is DiagnosticKind.RESOLUTION_FAILURE]
    assert [d.detail for d in unresolved] == ["lodash"]


def test_no_dangling_or_self_call_edges(sample_repo: Path):
    paths = sorted(p for p in sample_repo.rglob("*") if p.is_file())
    graph = _build(sample_repo, paths)

    ids = {n.id for n in graph.nodes}
    assert all(e.source in ids and e.target in ids for e in graph.edges)
    assert not any(e.kind is EdgeKind.CALL and e.source == e.target for e in graph.edges)


def test_build_is_deterministic(sample_repo: Path):
    paths = sorted(p for p in sample_repo.rglob("*") if p.is_file())

    assert _build(sample_repo, paths) == _build(sample_repo, paths)


def test_same_line_declarations_get_distinct_call_edges(write_file, temp_dir: Path):
    paths = [
        write_file("min.js", "class A{f(){}} class B{f(){}}\n"),
        write_file("use.js", "f();\n"),
    ]
    graph = _build(temp_dir, paths)

    calls = [e for e in graph.edges if e.kind is EdgeKind.CALL]
    assert len(calls) == 2
    assert len({e.id for e in calls}) == 2
    assert all(e.declaration_line == 1 for e in calls)
