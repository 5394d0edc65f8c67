"""Tree-sitter capability bundle for Python source files.

Extracts function definitions, call sites, and ``import`` / ``from ...
import`` statements from the Python syntax tree.  Dotted module names
are rewritten to relative path form so the graph builder can resolve
them like any other path specifier.
"""

from __future__ import annotations

import tree_sitter_python as tspython
from tree_sitter import Language, Node

from cartograph.models.analysis import CallSite, Symbol
from cartograph.parsers.base import LanguageBundle

PY_LANGUAGE = Language(tspython.language())


class PythonBundle(LanguageBundle):
    """Symbols, calls and imports for Python.

    - **Symbols**: every ``def`` (module-level functions, nested functions
      and methods, decorated or not).
    - **Calls**: ``name(...)`` and ``obj.name(...)``; the attribute name is
      the callee.
    - **Imports**: ``import a.b`` and ``from .a import b``.  A bare
      relative import (``from . import a, b``) yields one import per name.
    """

    name = "python"
    extensions = (".py",)

    @property
    def language(self) -> Language:
        return PY_LANGUAGE

    # ------------------------------------------------------------------
    # Symbols
    # ------------------------------------------------------------------

    def extract_symbols(self, root: Node, file_id: str) -> list[Symbol]:
        symbols: list[Symbol] = []
        for node in self._walk(root):
            if node.type != "function_definition":
                continue
            name_node = node.child_by_field_name("name")
            if name_node is not None:
                symbols.append(
                    Symbol(name=self._node_text(name_node), file_id=file_id, line=self._line(name_node))
                )
        return symbols

    # ------------------------------------------------------------------
    # Calls
    # ------------------------------------------------------------------

    def extract_calls(self, root: Node, file_id: str) -> list[CallSite]:
        calls: list[CallSite] = []
        for node in self._walk(root):
            if node.type != "call":
                continue
            func = node.child_by_field_name("function")
            if func is None:
                continue
            if func.type == "attribute":
                func = func.child_by_field_name("attribute")
            elif func.type != "identifier":
                func = None
            if func is not None:
                calls.append(CallSite(name=self._node_text(func), file_id=file_id, line=self._line(func)))
        return calls

    # ------------------------------------------------------------------
    # Imports
    # ------------------------------------------------------------------

    def extract_imports(self, root: Node) -> list[tuple[str, str]]:
        imports: list[tuple[str, str]] = []
        for node in self._walk(root):
            if node.type == "import_statement":
                for name_node in node.children_by_field_name("name"):
                    module = self._imported_name(name_node)
                    if module:
                        imports.append((module, module_to_path(module)))
            elif node.type == "import_from_statement":
                module_node = node.child_by_field_name("module_name")
                if module_node is None:
                    continue
                module = self._node_text(module_node)
                if not module:
                    continue
                if module.strip("."):
                    imports.append((module, module_to_path(module)))
                    continue
                # ``from . import a, b`` names sibling modules.
                for name_node in node.children_by_field_name("name"):
                    name = self._imported_name(name_node)
                    if name:
                        imports.append((module + name, module_to_path(module + name)))
        return imports

    def _imported_name(self, node: Node) -> str:
        """Module name of a ``dotted_name`` or ``aliased_import`` node."""
        if node.type == "aliased_import":
            inner = node.child_by_field_name("name")
            return self._node_text(inner) if inner is not None else ""
        return self._node_text(node)


def module_to_path(module: str) -> str:
    """Rewrite a dotted Python module into a relative path specifier.

    ``pkg.mod`` -> ``./pkg/mod``, ``.mod`` -> ``./mod``,
    ``..pkg.mod`` -> ``../pkg/mod``, ``..`` -> ``..``.

    Args:
        module: Module name as written in the import statement.

    Returns:
        Path-form specifier relative to the importing file's directory.
    """
    dots = len(module) - len(module.lstrip("."))
    rest = module[dots:].replace(".", "/")
    prefix = "./" if dots <= 1 else "../" * (dots - 1)
    if not rest:
        return prefix.rstrip("/")
    return prefix + rest
