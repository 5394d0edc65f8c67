"""Deterministic property-graph construction from analysis records.

The builder turns per-file :class:`FileAnalysis` records plus the full
enumerated file list into a :class:`CodeGraph`:

1. **Nodes**: one file node per enumerated file and one directory node per
   ancestor directory, produced by a :class:`GroupingStrategy`.
2. **Edges**: produced by a sequence of :class:`EdgeLinker` instances
   (import resolution, then symbol-based call linking).

Grouping and linking are independent, so either can change without
touching the other.  The builder is single-threaded and pure: the same
inputs always yield the same graph.  It assigns no coordinates; layout
is a downstream concern.
"""

from __future__ import annotations

import abc
import pathlib
import posixpath
from collections import defaultdict
from typing import Iterable, Sequence

import structlog

from cartograph.core.analyzer import extension_tag, relative_id
from cartograph.graph.resolver import ImportResolver
from cartograph.models.analysis import Diagnostic, DiagnosticKind, FileAnalysis
from cartograph.models.graph import CodeGraph, EdgeKind, GraphEdge, GraphNode, NodeKind

logger = structlog.get_logger(__name__)


# ------------------------------------------------------------------
# Grouping
# ------------------------------------------------------------------


class GroupingStrategy(abc.ABC):
    """Decides which container nodes exist and how files nest in them."""

    @abc.abstractmethod
    def containers(self, file_ids: Sequence[str]) -> list[GraphNode]:
        """Return the container nodes for *file_ids*."""

    @abc.abstractmethod
    def parent_of(self, file_id: str) -> str | None:
        """Return the container id enclosing *file_id*."""


class DirectoryTreeGrouping(GroupingStrategy):
    """Groups files by their full directory tree.

    Every ancestor directory of every file becomes one directory node,
    parented to its own parent directory (``None`` at the root).
    """

    def containers(self, file_ids: Sequence[str]) -> list[GraphNode]:
        seen: set[str] = set()
        nodes: list[GraphNode] = []
        for file_id in file_ids:
            for directory in _ancestors(file_id):
                if directory in seen:
                    continue
                seen.add(directory)
                nodes.append(
                    GraphNode(
                        id=directory,
                        kind=NodeKind.DIRECTORY,
                        label=posixpath.basename(directory),
                        parent=_parent_dir(directory),
                    )
                )
        return nodes

    def parent_of(self, file_id: str) -> str | None:
        return _parent_dir(file_id)


def _parent_dir(node_id: str) -> str | None:
    parent = posixpath.dirname(node_id)
    return parent or None


def _ancestors(file_id: str) -> list[str]:
    """Ancestor directories of *file_id*, outermost first."""
    parts = file_id.split("/")[:-1]
    return ["/".join(parts[: i + 1]) for i in range(len(parts))]


# ------------------------------------------------------------------
# Linking
# ------------------------------------------------------------------


class EdgeLinker(abc.ABC):
    """Produces edges between existing file nodes."""

    @abc.abstractmethod
    def link(self, files: Sequence[GraphNode], diagnostics: list[Diagnostic]) -> list[GraphEdge]:
        """Return edges for *files*, appending recovered failures to *diagnostics*."""


class ImportLinker(EdgeLinker):
    """One import edge per successfully resolved raw import."""

    def link(self, files: Sequence[GraphNode], diagnostics: list[Diagnostic]) -> list[GraphEdge]:
        resolver = ImportResolver(f.id for f in files)
        edges: list[GraphEdge] = []

        for node in files:
            if node.analysis is None:
                continue
            for index, raw in enumerate(node.analysis.imports):
                target = resolver.resolve(raw.module_path, node.id)
                if target is None:
                    logger.debug("import_unresolved", file=node.id, specifier=raw.specifier)
                    diagnostics.append(
                        Diagnostic(
                            kind=DiagnosticKind.RESOLUTION_FAILURE,
                            message="import could not be resolved",
                            file_id=node.id,
                            detail=raw.specifier,
                        )
                    )
                    continue
                edges.append(
                    GraphEdge(
                        id=f"import:{node.id}->{target}:{index}",
                        source=node.id,
                        target=target,
                        kind=EdgeKind.IMPORT,
                        label=raw.specifier,
                        specifier=raw.specifier,
                    )
                )
        return edges


class CallLinker(EdgeLinker):
    """Links call sites to same-named declarations in other files.

    A callee name declared in several files yields one edge per declaring
    file and declaration: ambiguity is surfaced, never guessed away.
    Calls to a name declared in the calling file itself are suppressed.
    """

    def link(self, files: Sequence[GraphNode], diagnostics: list[Diagnostic]) -> list[GraphEdge]:
        declarations: dict[str, list[tuple[str, int, int]]] = defaultdict(list)
        for node in files:
            if node.analysis is None:
                continue
            for ordinal, symbol in enumerate(node.analysis.symbols):
                declarations[symbol.name].append((node.id, ordinal, symbol.line))

        edges: list[GraphEdge] = []
        for node in files:
            if node.analysis is None:
                continue
            for index, call in enumerate(node.analysis.calls):
                for target, ordinal, decl_line in declarations.get(call.name, ()):
                    if target == node.id:
                        continue
                    edges.append(
                        GraphEdge(
                            id=f"call:{node.id}:{index}->{target}:{ordinal}",
                            source=node.id,
                            target=target,
                            kind=EdgeKind.CALL,
                            label=f"{call.name}()",
                            call_name=call.name,
                            call_line=call.line,
                            declaration_line=decl_line,
                        )
                    )
        return edges


# ------------------------------------------------------------------
# Builder
# ------------------------------------------------------------------


class GraphBuilder:
    """Builds a :class:`CodeGraph` from analysis records.

    Args:
        grouping: Container strategy; defaults to :class:`DirectoryTreeGrouping`.
        linkers: Edge producers, applied in order; defaults to imports
            then calls.
    """

    def __init__(
        self,
        grouping: GroupingStrategy | None = None,
        linkers: Sequence[EdgeLinker] | None = None,
    ) -> None:
        self.grouping = grouping or DirectoryTreeGrouping()
        self.linkers: tuple[EdgeLinker, ...] = tuple(linkers) if linkers is not None else (ImportLinker(), CallLinker())

    def build(
        self,
        analyses: Iterable[FileAnalysis],
        repo_root: pathlib.Path,
        all_files: Iterable[pathlib.Path],
    ) -> CodeGraph:
        """Build the graph.

        Args:
            analyses: Analysis records, in any order.
            repo_root: Project root the node ids are relative to.
            all_files: Every enumerated file, including files without an
                analysis record; these become leaf nodes carrying an empty
                placeholder record.

        Returns:
            The assembled :class:`CodeGraph`.
        """
        root = repo_root.resolve()
        by_id: dict[str, FileAnalysis] = {a.file_id: a for a in analyses}

        file_ids: list[str] = []
        seen: set[str] = set()
        for path in all_files:
            file_id = relative_id(pathlib.Path(path), root)
            if file_id not in seen:
                seen.add(file_id)
                file_ids.append(file_id)
        # Records for files missing from the listing still get a node.
        for file_id in by_id:
            if file_id not in seen:
                seen.add(file_id)
                file_ids.append(file_id)

        file_nodes = [
            GraphNode(
                id=file_id,
                kind=NodeKind.FILE,
                label=posixpath.basename(file_id),
                parent=self.grouping.parent_of(file_id),
                analysis=by_id.get(file_id) or _placeholder(root, file_id),
            )
            for file_id in file_ids
        ]
        directory_nodes = self.grouping.containers(file_ids)

        diagnostics: list[Diagnostic] = [d for node in file_nodes for d in node.analysis.diagnostics]
        edges: list[GraphEdge] = []
        for linker in self.linkers:
            edges.extend(linker.link(file_nodes, diagnostics))

        node_ids = {n.id for n in file_nodes} | {n.id for n in directory_nodes}
        edges = [e for e in edges if e.source in node_ids and e.target in node_ids]

        unresolved = sum(1 for d in diagnostics if d.kind is DiagnosticKind.RESOLUTION_FAILURE)
        if unresolved:
            logger.warning("imports_unresolved", count=unresolved)

        logger.info(
            "graph_built",
            files=len(file_nodes),
            directories=len(directory_nodes),
            import_edges=sum(1 for e in edges if e.kind is EdgeKind.IMPORT),
            call_edges=sum(1 for e in edges if e.kind is EdgeKind.CALL),
        )

        return CodeGraph(
            root=root.as_posix(),
            nodes=[*directory_nodes, *file_nodes],
            edges=edges,
            diagnostics=diagnostics,
        )


def _placeholder(root: pathlib.Path, file_id: str) -> FileAnalysis:
    """Empty record for a file that was enumerated but not analyzed."""
    return FileAnalysis(
        path=(root / file_id).as_posix(),
        file_id=file_id,
        language=extension_tag(file_id),
        line_count=0,
    )
