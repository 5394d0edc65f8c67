"""Abstract base class for all language capability bundles.

A bundle pairs a ``tree-sitter`` grammar with the three structural
extractions the file analyzer runs against a parsed tree: symbols,
imports, and call sites.  Every new language must subclass
:class:`LanguageBundle` and implement the abstract extraction methods.
"""

from __future__ import annotations

import abc
import posixpath
from typing import Iterator

from tree_sitter import Language, Node, Parser, Tree

from cartograph.models.analysis import CallSite, Symbol


class LanguageBundle(abc.ABC):
    """Contract that every language bundle must fulfil.

    Subclasses set :attr:`name` and :attr:`extensions` and provide the
    grammar via :attr:`language`.  Bundles hold no per-file state, so a
    single instance may serve any number of concurrent analyses: each
    call to :meth:`parse` uses a fresh ``Parser``.

    Attributes:
        name: Language tag recorded on analysis records.
        extensions: Lowercase file extensions (with dot) handled by the bundle.
    """

    name: str = ""
    extensions: tuple[str, ...] = ()

    @property
    @abc.abstractmethod
    def language(self) -> Language:
        """The ``tree-sitter`` grammar for this language."""

    def parse(self, source: bytes) -> Tree:
        """Parse *source* into a syntax tree.

        Args:
            source: Raw UTF-8 bytes of the file.

        Returns:
            The parsed ``tree_sitter.Tree``.
        """
        return Parser(self.language).parse(source)

    # ------------------------------------------------------------------
    # Structural extractions
    # ------------------------------------------------------------------

    @abc.abstractmethod
    def extract_symbols(self, root: Node, file_id: str) -> list[Symbol]:
        """Return function/method declarations found under *root*."""

    @abc.abstractmethod
    def extract_calls(self, root: Node, file_id: str) -> list[CallSite]:
        """Return call sites found under *root*."""

    @abc.abstractmethod
    def extract_imports(self, root: Node) -> list[tuple[str, str]]:
        """Return ``(specifier, module_path)`` pairs for every import.

        ``specifier`` is the module string as written (quotes stripped);
        ``module_path`` is its path form, resolvable relative to the
        importing file's directory.
        """

    # ------------------------------------------------------------------
    # Helpers available to all subclasses
    # ------------------------------------------------------------------

    @staticmethod
    def _walk(node: Node) -> Iterator[Node]:
        """Yield *node* and all of its descendants in pre-order."""
        stack = [node]
        while stack:
            current = stack.pop()
            yield current
            stack.extend(reversed(current.children))

    @staticmethod
    def _node_text(node: object) -> str:
        """Decode the UTF-8 text of a tree-sitter node.

        Args:
            node: A ``tree_sitter.Node`` instance.

        Returns:
            The decoded text content.
        """
        # tree_sitter.Node exposes ``text`` as ``bytes | None``.
        text: bytes | None = getattr(node, "text", None)
        if text is None:
            return ""
        return text.decode("utf-8", errors="replace")

    @staticmethod
    def _line(node: Node) -> int:
        """1-indexed start line of *node*."""
        return node.start_point[0] + 1

    @staticmethod
    def _strip_quotes(text: str) -> str:
        """Remove surrounding quotes from a string literal."""
        for q in ('"""', "'''", '"', "'", "`"):
            if len(text) >= 2 * len(q) and text.startswith(q) and text.endswith(q):
                return text[len(q) : -len(q)]
        return text


def candidate_path(importer_path: str, module_path: str) -> str:
    """Resolve *module_path* against the directory of *importer_path*.

    Purely textual: nothing is checked against the file system.

    Args:
        importer_path: Absolute POSIX path of the importing file.
        module_path: Path-form import specifier.

    Returns:
        A normalised absolute POSIX path.
    """
    return posixpath.normpath(posixpath.join(posixpath.dirname(importer_path), module_path))
