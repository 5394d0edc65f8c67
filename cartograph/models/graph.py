"""Graph data models for nodes, edges, and the complete code graph.

These Pydantic v2 models define the plain-JSON document produced by the
graph builder and consumed by layout engines, the retriever, and the
snapshot store.
"""

from __future__ import annotations

import enum
from typing import Optional

from pydantic import BaseModel, Field

from cartograph.models.analysis import Diagnostic, FileAnalysis

GRAPH_FORMAT_VERSION: int = 1


class NodeKind(str, enum.Enum):
    """Enumeration of supported node kinds."""

    FILE = "file"
    DIRECTORY = "directory"


class EdgeKind(str, enum.Enum):
    """Enumeration of supported edge kinds."""

    IMPORT = "import"
    CALL = "call"


class GraphNode(BaseModel):
    """A file or directory in the repository graph.

    Attributes:
        id: Root-relative POSIX path; unique across the graph.
        kind: File or directory.
        label: Display name (basename).
        parent: Id of the enclosing directory node, ``None`` at the root.
        analysis: Full analysis record (file nodes only).
    """

    id: str = Field(..., description="Root-relative path.")
    kind: NodeKind = Field(..., description="File or directory.")
    label: str = Field(..., description="Basename for display.")
    parent: Optional[str] = Field(None, description="Parent directory node id.")
    analysis: Optional[FileAnalysis] = Field(None, description="Analysis record for file nodes.")


class GraphEdge(BaseModel):
    """A directed import or call edge between two file nodes.

    Attributes:
        id: Unique edge id.
        source: Originating node id.
        target: Destination node id.
        kind: Import or call.
        label: Display label (raw specifier or ``name()``).
        specifier: Raw import specifier (import edges).
        call_name: Callee name (call edges).
        call_line: Line of the call site in ``source`` (call edges).
        declaration_line: Line of the declaration in ``target`` (call edges).
    """

    id: str
    source: str
    target: str
    kind: EdgeKind
    label: str = ""
    specifier: Optional[str] = None
    call_name: Optional[str] = None
    call_line: Optional[int] = None
    declaration_line: Optional[int] = None


class CodeGraph(BaseModel):
    """Complete property graph produced by the graph builder.

    Attributes:
        format_version: Schema version of the persisted document.
        root: Absolute project root the ids are relative to.
        nodes: File and directory nodes.
        edges: Import and call edges.
        diagnostics: Recoverable failures from analysis and linking.
    """

    format_version: int = GRAPH_FORMAT_VERSION
    root: str = ""
    nodes: list[GraphNode] = Field(default_factory=list, description="File and directory nodes.")
    edges: list[GraphEdge] = Field(default_factory=list, description="Import and call edges.")
    diagnostics: list[Diagnostic] = Field(default_factory=list, description="Recovered failures.")

    def file_nodes(self) -> list[GraphNode]:
        """Return file nodes in graph order."""
        return [n for n in self.nodes if n.kind is NodeKind.FILE]

    def get_node(self, node_id: str) -> Optional[GraphNode]:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def outgoing(self, node_id: str, kind: EdgeKind | None = None) -> list[GraphEdge]:
        """Return edges leaving ``node_id``, optionally filtered by kind."""
        return [
            e for e in self.edges
            if e.source == node_id and (kind is None or e.kind is kind)
        ]
