"""Tree-sitter capability bundle for JavaScript source files.

Extracts function declarations, call sites, and ``import`` / ``export
from`` / ``require`` specifiers from the JavaScript syntax tree.
"""

from __future__ import annotations

from typing import Optional

import tree_sitter_javascript as tsjavascript
from tree_sitter import Language, Node

from cartograph.models.analysis import CallSite, Symbol
from cartograph.parsers.base import LanguageBundle

JS_LANGUAGE = Language(tsjavascript.language())

# Grammar versions disagree on the name of anonymous function expressions.
_FUNCTION_VALUES: frozenset[str] = frozenset({"arrow_function", "function_expression", "function"})


class JavaScriptBundle(LanguageBundle):
    """Symbols, calls and imports for JavaScript.

    Handles:

    - Function declarations (including generators).
    - ``const f = () => {}`` / ``const f = function () {}`` bindings.
    - Class and object method definitions.
    - Calls through identifiers (``add()``) and members (``math.add()``).
    - ES module ``import`` / ``export ... from`` and CommonJS ``require``.
    """

    name = "javascript"
    extensions = (".js", ".jsx", ".mjs", ".cjs")

    @property
    def language(self) -> Language:
        return JS_LANGUAGE

    # ------------------------------------------------------------------
    # Symbols
    # ------------------------------------------------------------------

    def extract_symbols(self, root: Node, file_id: str) -> list[Symbol]:
        symbols: list[Symbol] = []
        for node in self._walk(root):
            name_node: Optional[Node] = None
            if node.type in ("function_declaration", "generator_function_declaration", "method_definition"):
                name_node = node.child_by_field_name("name")
            elif node.type == "variable_declarator":
                value = node.child_by_field_name("value")
                if value is not None and value.type in _FUNCTION_VALUES:
                    name_node = node.child_by_field_name("name")
                    if name_node is not None and name_node.type != "identifier":
                        # Destructuring patterns do not declare a callable name.
                        name_node = None
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
            if node.type != "call_expression":
                continue
            name_node = self._callee_node(node)
            if name_node is not None:
                calls.append(
                    CallSite(name=self._node_text(name_node), file_id=file_id, line=self._line(name_node))
                )
        return calls

    @staticmethod
    def _callee_node(call_node: Node) -> Optional[Node]:
        """Return the node naming the callee of a ``call_expression``.

        ``add()`` yields ``add``; ``math.add()`` yields the ``add`` property.
        """
        func = call_node.child_by_field_name("function")
        if func is None:
            return None
        if func.type == "identifier":
            return func
        if func.type == "member_expression":
            return func.child_by_field_name("property")
        return None

    # ------------------------------------------------------------------
    # Imports
    # ------------------------------------------------------------------

    def extract_imports(self, root: Node) -> list[tuple[str, str]]:
        imports: list[tuple[str, str]] = []
        for node in self._walk(root):
            source_node: Optional[Node] = None
            if node.type in ("import_statement", "export_statement"):
                source_node = node.child_by_field_name("source")
            elif node.type == "call_expression":
                source_node = self._require_argument(node)
            if source_node is None:
                continue
            specifier = self._strip_quotes(self._node_text(source_node))
            if specifier:
                imports.append((specifier, specifier))
        return imports

    def _require_argument(self, call_node: Node) -> Optional[Node]:
        """Return the string argument of a ``require('...')`` call."""
        func = call_node.child_by_field_name("function")
        if func is None or func.type != "identifier" or self._node_text(func) != "require":
            return None
        args = call_node.child_by_field_name("arguments")
        if args is None:
            return None
        first = args.named_children[0] if args.named_children else None
        if first is not None and first.type == "string":
            return first
        return None

