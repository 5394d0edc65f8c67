"""Tests for heuristic import resolution."""

import pytest

from cartograph.graph.resolver import ImportResolver, clean_specifier

FILE_IDS = [
    "src/app.js",
    "src/util.ts",
    "src/components/index.jsx",
    "src/lib/format.js",
    "pkg/__init__.py",
    "pkg/helpers.py",
    "vendor/lib/format.js",
]


@pytest.fixture
def resolver() -> ImportResolver:
    return ImportResolver(FILE_IDS)


@pytest.mark.parametrize(
    "specifier,importer,expected",
    [
        ("./util", "src/app.js", "src/util.ts"),
        ("./lib/format.js", "src/app.js", "src/lib/format.js"),
        ("./components", "src/app.js", "src/components/index.jsx"),
        ("../pkg", "src/app.js", "pkg/__init__.py"),
        ("./helpers", "pkg/__init__.py", "pkg/helpers.py"),
        ("../src/util", "pkg/helpers.py", "src/util.ts"),
    ],
)
def test_relative_resolution(resolver, specifier, importer, expected):
    assert resolver.resolve(specifier, importer) == expected


def test_basename_fallback_requires_path_overlap(resolver):
    """A stem match is accepted only when the paths overlap textually."""
    assert resolver.resolve("../../lib/format", "src/app.js") == "src/lib/format.js"
    assert resolver.resolve("./other/format", "src/app.js") is None


def test_fallback_follows_node_order(resolver):
    assert resolver.resolve("format", "docs/index.js") == "src/lib/format.js"


def test_importer_is_never_its_own_fallback():
    resolver = ImportResolver(["lib/react.js", "src/app.js"])

    assert resolver.resolve("react", "lib/react.js") is None


def test_unresolved_specifiers(resolver):
    assert resolver.resolve("express", "src/app.js") is None
    assert resolver.resolve("", "src/app.js") is None


def test_resolution_is_pure(resolver):
    first = [resolver.resolve(s, "src/app.js") for s in ("./util", "missing", "./components")]
    second = [resolver.resolve(s, "src/app.js") for s in ("./util", "missing", "./components")]

    assert first == second


def test_clean_specifier():
    assert clean_specifier("./a.js") == "./a"
    assert clean_specifier("./a.json") == "./a.json"
    assert clean_specifier(".py") == ".py"
