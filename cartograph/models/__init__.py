"""Pydantic v2 data models for analysis records, the graph, and retrieval."""

from cartograph.models.analysis import (
    CallSite,
    Chunk,
    Diagnostic,
    DiagnosticKind,
    FileAnalysis,
    RawImport,
    Symbol,
)
from cartograph.models.graph import (
    CodeGraph,
    EdgeKind,
    GraphEdge,
    GraphNode,
    NodeKind,
)
from cartograph.models.retrieval import (
    EmbeddingRecord,
    IssueContext,
    RetrievalMatch,
    RetrievalMethod,
)

__all__ = [
    "CallSite",
    "Chunk",
    "Diagnostic",
    "DiagnosticKind",
    "FileAnalysis",
    "RawImport",
    "Symbol",
    "CodeGraph",
    "EdgeKind",
    "GraphEdge",
    "GraphNode",
    "NodeKind",
    "EmbeddingRecord",
    "IssueContext",
    "RetrievalMatch",
    "RetrievalMethod",
]
