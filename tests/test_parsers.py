"""Tests for the JavaScript and Python language bundles."""

import pytest

from cartograph.parsers import default_registry
from cartograph.parsers.javascript_parser import JavaScriptBundle
from cartograph.parsers.python_parser import PythonBundle, module_to_path

JS_SOURCE = """import { a } from './lib/a';
export { b } from "../b.js";
const fs = require('fs');

function declared() {}
const arrow = () => 1;
const expr = function () {};

class Widget {
  render() {
    declared();
    this.helper.format(arrow());
  }
}
"""

PY_SOURCE = """import os
import pkg.sub as alias
from .sibling import thing
from .. import parent_mod, other


def top():
    os.path.join("a", "b")


class Thing:
    def method(self):
        return top()
"""


@pytest.fixture
def js_root():
    bundle = JavaScriptBundle()
    return bundle, bundle.parse(JS_SOURCE.encode("utf-8")).root_node


@pytest.fixture
def py_root():
    bundle = PythonBundle()
    return bundle, bundle.parse(PY_SOURCE.encode("utf-8")).root_node


class TestJavaScriptBundle:
    def test_symbols(self, js_root):
        bundle, root = js_root
        symbols = {(s.name, s.line) for s in bundle.extract_symbols(root, "x.js")}

        assert symbols == {("declared", 5), ("arrow", 6), ("expr", 7), ("render", 10)}

    def test_calls_use_identifier_or_member_property(self, js_root):
        bundle, root = js_root
        calls = [(c.name, c.line) for c in bundle.extract_calls(root, "x.js")]

        assert ("declared", 11) in calls
        assert ("format", 12) in calls
        assert ("arrow", 12) in calls
        assert ("require", 3) in calls

    def test_imports(self, js_root):
        bundle, root = js_root
        specifiers = [spec for spec, _ in bundle.extract_imports(root)]

        assert specifiers == ["./lib/a", "../b.js", "fs"]


class TestPythonBundle:
    def test_symbols(self, py_root):
        bundle, root = py_root
        symbols = [(s.name, s.line) for s in bundle.extract_symbols(root, "x.py")]

        assert symbols == [("top", 7), ("method", 12)]

    def test_calls(self, py_root):
        bundle, root = py_root
        names = [c.name for c in bundle.extract_calls(root, "x.py")]

        assert names == ["join", "top"]

    def test_imports(self, py_root):
        bundle, root = py_root
        imports = bundle.extract_imports(root)

        assert imports == [
            ("os", "./os"),
            ("pkg.sub", "./pkg/sub"),
            (".sibling", "./sibling"),
            ("..parent_mod", "../parent_mod"),
            ("..other", "../other"),
        ]


@pytest.mark.parametrize(
    "module,expected",
    [
        ("pkg.mod", "./pkg/mod"),
        (".mod", "./mod"),
        ("..pkg.mod", "../pkg/mod"),
        ("...deep", "../../deep"),
        (".", "."),
        ("..", ".."),
    ],
)
def test_module_to_path(module, expected):
    assert module_to_path(module) == expected


def test_registry_dispatch_by_extension():
    registry = default_registry()

    assert registry.for_path("src/app.JS").name == "javascript"
    assert registry.for_path("lib/tool.py").name == "python"
    assert registry.for_path("README.md") is None
    assert ".mjs" in registry.supported_extensions
