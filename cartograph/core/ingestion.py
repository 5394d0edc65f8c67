"""Ingestion orchestrator that ties the crawler, analyzer and builder together.

This is the main entry point for scanning a repository: it crawls the
file tree, analyzes each file with its language bundle, and assembles
the results into a single :class:`CodeGraph`.
"""

from __future__ import annotations

import asyncio
import pathlib

import structlog

from cartograph.config import settings
from cartograph.core.analyzer import FileAnalyzer
from cartograph.core.content_reader import read_source
from cartograph.core.crawler import FileCrawler
from cartograph.graph.builder import GraphBuilder
from cartograph.models.analysis import FileAnalysis
from cartograph.models.graph import CodeGraph
from cartograph.parsers.factory import LanguageRegistry

logger = structlog.get_logger(__name__)


async def ingest_repository(
    repo_path: str | pathlib.Path,
    blacklist: list[str] | None = None,
    *,
    workers: int | None = None,
    registry: LanguageRegistry | None = None,
    builder: GraphBuilder | None = None,
) -> CodeGraph:
    """Scan a local repository and produce its code graph.

    This is an **async** function so it can be called directly from
    FastAPI route handlers.  File reads and parsing are blocking, so each
    file is analyzed in a worker thread via ``asyncio.to_thread``, with at
    most *workers* files in flight.

    A file that cannot be read is logged and still appears in the graph
    as an empty leaf node.

    Args:
        repo_path: Path to the repository root directory.
        blacklist: Optional override for the default blacklist.
        workers: Maximum concurrent analyses; defaults to
            :pyattr:`Settings.analysis_workers`.
        registry: Language bundles to analyze with.
        builder: Graph builder; defaults to directory grouping with import
            and call linking.

    Returns:
        The assembled :class:`CodeGraph`.

    Raises:
        FileNotFoundError: If *repo_path* does not exist.
        NotADirectoryError: If *repo_path* is not a directory.
        PermissionError: If *repo_path* cannot be listed.
    """
    root = pathlib.Path(repo_path).resolve()
    crawler = FileCrawler(root, blacklist=blacklist)

    logger.info("ingestion_started", repo=str(root))

    files: list[pathlib.Path] = await asyncio.to_thread(lambda: list(crawler.crawl()))

    analyzer = FileAnalyzer(root, registry, max_chunk_size=settings.max_chunk_size)
    semaphore = asyncio.Semaphore(max(1, workers or settings.analysis_workers))

    async def _analyze(file_path: pathlib.Path) -> FileAnalysis | None:
        async with semaphore:
            try:
                return await asyncio.to_thread(_read_and_analyze, analyzer, file_path)
            except OSError as exc:
                logger.warning("file_read_failed", file=str(file_path), error=str(exc))
                return None

    results = await asyncio.gather(*(_analyze(path) for path in files))
    analyses = [a for a in results if a is not None]

    graph = (builder or GraphBuilder()).build(analyses, root, files)

    logger.info(
        "ingestion_finished",
        repo=str(root),
        files_found=len(files),
        files_analyzed=len(analyses),
        files_failed=len(files) - len(analyses),
        total_nodes=len(graph.nodes),
        total_edges=len(graph.edges),
        diagnostics=len(graph.diagnostics),
    )
    return graph


def _read_and_analyze(analyzer: FileAnalyzer, file_path: pathlib.Path) -> FileAnalysis:
    return analyzer.analyze(file_path, read_source(file_path))
