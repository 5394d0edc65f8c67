"""Tests for per-file analysis."""

from pathlib import Path

from cartograph.core.analyzer import FileAnalyzer, count_lines, extension_tag, relative_id
from cartograph.models.analysis import DiagnosticKind
from cartograph.parsers.factory import LanguageRegistry
from cartograph.parsers.javascript_parser import JavaScriptBundle

from tests.conftest import A_JS, B_JS


class _BrokenCallsBundle(JavaScriptBundle):
    def extract_calls(self, root, file_id):
        raise RuntimeError("query exploded")


def test_javascript_file_analysis(two_file_repo: Path):
    analyzer = FileAnalyzer(two_file_repo)

    record = analyzer.analyze(two_file_repo / "b.js", B_JS)

    assert record.file_id == "b.js"
    assert record.language == "javascript"
    assert [s.name for s in record.symbols] == ["main"]
    assert ("add", 5) in [(c.name, c.line) for c in record.calls]
    assert record.imports[0].specifier == "./a.js"
    assert record.imports[0].candidate_path == (two_file_repo.resolve() / "a.js").as_posix()
    assert record.line_count == count_lines(B_JS)
    assert record.diagnostics == []


def test_unknown_extension_is_one_whole_chunk(write_file, temp_dir: Path):
    content = "# Title\n\nSome prose.\n"
    path = write_file("docs/notes.md", content)

    record = FileAnalyzer(temp_dir).analyze(path, content)

    assert record.file_id == "docs/notes.md"
    assert record.language == "md"
    assert [c.text for c in record.chunks] == [content]
    assert record.symbols == [] and record.calls == [] and record.imports == []


def test_empty_unknown_file_is_one_empty_chunk(write_file, temp_dir: Path):
    path = write_file("LICENSE", "")

    record = FileAnalyzer(temp_dir).analyze(path, "")

    assert record.language == "unknown"
    assert [(c.index, c.text) for c in record.chunks] == [(0, "")]


def test_failing_extraction_only_empties_itself(two_file_repo: Path):
    registry = LanguageRegistry()
    registry.register(_BrokenCallsBundle())
    analyzer = FileAnalyzer(two_file_repo, registry)

    record = analyzer.analyze(two_file_repo / "a.js", A_JS)

    assert record.calls == []
    assert [(s.name, s.line) for s in record.symbols] == [("add", 2)]
    assert len(record.chunks) == 1
    assert [d.kind for d in record.diagnostics] == [DiagnosticKind.PARSE_FAILURE]
    assert "calls" in record.diagnostics[0].message


def test_helpers(temp_dir: Path):
    assert relative_id(temp_dir / "src" / "a.js", temp_dir) == "src/a.js"
    assert extension_tag("src/a.tsx") == "tsx"
    assert extension_tag("Makefile") == "unknown"
    assert count_lines("one\ntwo") == 2


def test_symlinked_file_keeps_its_own_id(two_file_repo: Path):
    link = two_file_repo / "link.js"
    link.symlink_to(two_file_repo / "a.js")

    record = FileAnalyzer(two_file_repo).analyze(link, A_JS)

    assert record.file_id == "link.js"
    assert relative_id(link, two_file_repo) == "link.js"
