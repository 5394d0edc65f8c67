"""Per-file analysis records produced by the File Analyzer.

A :class:`FileAnalysis` is immutable once built: it is handed to the
graph builder and the vector store, which only read from it.
"""

from __future__ import annotations

import enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class DiagnosticKind(str, enum.Enum):
    """Recoverable failure categories reported on the diagnostic channel."""

    PARSE_FAILURE = "parse_failure"
    RESOLUTION_FAILURE = "resolution_failure"
    EMBEDDING_FAILURE = "embedding_failure"
    RETRIEVAL_INPUT_ERROR = "retrieval_input_error"


class Diagnostic(BaseModel):
    """A failure that was recovered at the smallest possible unit.

    Attributes:
        kind: Failure category.
        message: Short human-readable description.
        file_id: Root-relative id of the affected file, if any.
        detail: Extra context (specifier, chunk index, exception text).
    """

    model_config = ConfigDict(frozen=True)

    kind: DiagnosticKind
    message: str
    file_id: Optional[str] = None
    detail: Optional[str] = None


class Chunk(BaseModel):
    """A bounded, syntactically aligned slice of one file."""

    model_config = ConfigDict(frozen=True)

    file_id: str = Field(..., description="Owning file id.")
    index: int = Field(..., ge=0, description="Ordinal position within the file.")
    text: str = Field(..., description="Chunk source text (trimmed).")
    start_byte: int = Field(0, ge=0, description="Approximate start offset in the UTF-8 source.")
    end_byte: int = Field(0, ge=0, description="Approximate end offset in the UTF-8 source.")


class Symbol(BaseModel):
    """A function or method declaration."""

    model_config = ConfigDict(frozen=True)

    name: str
    file_id: str
    line: int = Field(..., ge=1, description="1-indexed declaration line.")


class CallSite(BaseModel):
    """An unresolved call to ``name`` at ``line``."""

    model_config = ConfigDict(frozen=True)

    name: str
    file_id: str
    line: int = Field(..., ge=1, description="1-indexed call line.")


class RawImport(BaseModel):
    """An import specifier as written, plus its speculative target.

    Attributes:
        specifier: The literal module string (quotes stripped).
        file_id: Importing file id.
        module_path: Path-form specifier used for resolution.  Equal to
            ``specifier`` for path-style languages; dotted Python modules
            become ``./pkg/mod`` or ``../pkg/mod``.
        candidate_path: ``module_path`` resolved against the importer's
            directory.  Not validated against real files.
    """

    model_config = ConfigDict(frozen=True)

    specifier: str
    file_id: str
    module_path: str
    candidate_path: str


class FileAnalysis(BaseModel):
    """The immutable analysis record for one source file.

    Attributes:
        path: Absolute path on disk.
        file_id: POSIX-style root-relative id.
        language: Language tag, or the raw extension in unknown mode.
        chunks: Ordered chunks of the file.
        symbols: Function/method declarations.
        calls: Call sites.
        imports: Raw import specifiers.
        line_count: Number of lines in ``text``.
        text: Full file content.
        diagnostics: Recoverable failures hit while analyzing this file.
    """

    model_config = ConfigDict(frozen=True)

    path: str
    file_id: str
    language: str
    chunks: list[Chunk] = Field(default_factory=list)
    symbols: list[Symbol] = Field(default_factory=list)
    calls: list[CallSite] = Field(default_factory=list)
    imports: list[RawImport] = Field(default_factory=list)
    line_count: int = 0
    text: str = ""
    diagnostics: list[Diagnostic] = Field(default_factory=list)
