"""Per-file structural analysis.

:class:`FileAnalyzer` turns one file's content into an immutable
:class:`FileAnalysis`: chunks plus the symbol, call and import
extractions of the file's language bundle.  Failures are contained at
the smallest unit.  A failing extraction empties only its own result,
and a file whose language has no bundle is still analyzed in "unknown"
mode, so every file yields a record.
"""

from __future__ import annotations

import os
import pathlib
from typing import Callable, TypeVar

import structlog
from tree_sitter import Node

from cartograph.core.chunker import chunk_source
from cartograph.models.analysis import (
    Chunk,
    Diagnostic,
    DiagnosticKind,
    FileAnalysis,
    RawImport,
)
from cartograph.parsers.base import LanguageBundle, candidate_path
from cartograph.parsers.factory import LanguageRegistry, default_registry

logger = structlog.get_logger(__name__)

T = TypeVar("T")


def relative_id(path: pathlib.Path, root: pathlib.Path) -> str:
    """Return the POSIX-style root-relative id of *path*.

    Only *root* is resolved.  A symlinked file keeps the id of its own
    location under the root, not the id of its target.
    """
    root = pathlib.Path(root).resolve()
    absolute = pathlib.Path(os.path.abspath(path))
    relative = os.path.relpath(absolute, root)
    if relative == os.pardir or relative.startswith(os.pardir + os.sep):
        # Caller spelled the root through a symlinked ancestor.
        relative = os.path.relpath(absolute.parent.resolve() / absolute.name, root)
    return pathlib.Path(relative).as_posix()


def count_lines(text: str) -> int:
    """Number of lines in *text*, counting a trailing partial line."""
    return text.count("\n") + 1


class FileAnalyzer:
    """Analyzes files of one repository.

    The analyzer holds no per-file state and can be shared across
    concurrent workers.

    Args:
        repo_root: Project root used to compute file ids.
        registry: Extension → bundle lookup.  Defaults to the built-in
            JavaScript and Python bundles.
        max_chunk_size: Chunk size threshold override.
    """

    def __init__(
        self,
        repo_root: pathlib.Path,
        registry: LanguageRegistry | None = None,
        *,
        max_chunk_size: int | None = None,
    ) -> None:
        self.repo_root = repo_root.resolve()
        self.registry = registry or default_registry()
        self.max_chunk_size = max_chunk_size

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def analyze(self, file_path: pathlib.Path, content: str) -> FileAnalysis:
        """Analyze one file.

        Args:
            file_path: Absolute path to the file.
            content: Decoded file content.

        Returns:
            The file's :class:`FileAnalysis`.  Never raises for
            unsupported or malformed input.
        """
        file_id = relative_id(file_path, self.repo_root)
        # Location under the root, with file symlinks left unfollowed.
        file_path = self.repo_root / file_id
        bundle = self.registry.for_path(file_path)

        if bundle is None:
            return self._analyze_unknown(file_path, file_id, content)

        source = content.encode("utf-8")
        diagnostics: list[Diagnostic] = []

        try:
            tree = bundle.parse(source)
            chunks = chunk_source(source, tree, file_id, self.max_chunk_size)
        except Exception as exc:
            logger.warning("parse_failed", file=file_id, language=bundle.name, error=str(exc))
            diagnostics.append(
                Diagnostic(
                    kind=DiagnosticKind.PARSE_FAILURE,
                    message="syntax tree could not be built",
                    file_id=file_id,
                    detail=str(exc),
                )
            )
            return self._analyze_unknown(file_path, file_id, content, language=bundle.name, diagnostics=diagnostics)

        root = tree.root_node
        symbols = self._guarded("symbols", file_id, diagnostics, lambda: bundle.extract_symbols(root, file_id))
        calls = self._guarded("calls", file_id, diagnostics, lambda: bundle.extract_calls(root, file_id))
        imports = self._guarded("imports", file_id, diagnostics, lambda: self._raw_imports(bundle, root, file_path, file_id))

        logger.debug(
            "file_analyzed",
            file=file_id,
            language=bundle.name,
            chunks=len(chunks),
            symbols=len(symbols),
            calls=len(calls),
            imports=len(imports),
        )

        return FileAnalysis(
            path=file_path.as_posix(),
            file_id=file_id,
            language=bundle.name,
            chunks=chunks,
            symbols=symbols,
            calls=calls,
            imports=imports,
            line_count=count_lines(content),
            text=content,
            diagnostics=diagnostics,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _analyze_unknown(
        self,
        file_path: pathlib.Path,
        file_id: str,
        content: str,
        *,
        language: str | None = None,
        diagnostics: list[Diagnostic] | None = None,
    ) -> FileAnalysis:
        """Whole-content analysis for files without a usable bundle."""
        chunks = [Chunk(file_id=file_id, index=0, text=content, start_byte=0, end_byte=len(content.encode("utf-8")))]
        return FileAnalysis(
            path=file_path.as_posix(),
            file_id=file_id,
            language=language or extension_tag(file_path),
            chunks=chunks,
            line_count=count_lines(content),
            text=content,
            diagnostics=diagnostics or [],
        )

    @staticmethod
    def _raw_imports(
        bundle: LanguageBundle,
        root: Node,
        file_path: pathlib.Path,
        file_id: str,
    ) -> list[RawImport]:
        return [
            RawImport(
                specifier=specifier,
                file_id=file_id,
                module_path=module_path,
                candidate_path=candidate_path(file_path.as_posix(), module_path),
            )
            for specifier, module_path in bundle.extract_imports(root)
        ]

    @staticmethod
    def _guarded(
        extraction: str,
        file_id: str,
        diagnostics: list[Diagnostic],
        run: Callable[[], list[T]],
    ) -> list[T]:
        """Run one structural extraction, degrading failures to ``[]``."""
        try:
            return run()
        except Exception as exc:
            logger.warning("extraction_failed", file=file_id, extraction=extraction, error=str(exc))
            diagnostics.append(
                Diagnostic(
                    kind=DiagnosticKind.PARSE_FAILURE,
                    message=f"{extraction} extraction failed",
                    file_id=file_id,
                    detail=str(exc),
                )
            )
            return []


def extension_tag(path: pathlib.PurePath | str) -> str:
    """Raw extension of *path* without the dot, or ``"unknown"``."""
    suffix = pathlib.PurePath(path).suffix
    return suffix[1:] if suffix else "unknown"
