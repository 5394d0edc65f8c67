"""Records for the embedding store and the hybrid retriever."""

from __future__ import annotations

import enum

from pydantic import BaseModel, ConfigDict, Field


class RetrievalMethod(str, enum.Enum):
    """Channel that produced a retrieval match."""

    SEMANTIC = "semantic"
    KEYWORD = "keyword"
    GRAPH = "graph"
    ISSUE_CONTEXT = "issue-context"


class IssueContext(BaseModel):
    """An externally fetched issue used to steer retrieval."""

    title: str = ""
    body: str = ""


class EmbeddingRecord(BaseModel):
    """One embedded chunk in the vector store."""

    model_config = ConfigDict(frozen=True)

    file_id: str
    chunk_index: int = Field(..., ge=0)
    text: str = Field(..., description="Chunk text at embedding time.")
    vector: list[float]
    language: str


class RetrievalMatch(BaseModel):
    """A chunk selected by one retrieval channel."""

    model_config = ConfigDict(frozen=True)

    file_id: str
    chunk_index: int = Field(..., ge=0)
    text: str
    similarity: float
    method: RetrievalMethod
    language: str = ""
