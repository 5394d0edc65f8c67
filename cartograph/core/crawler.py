"""Recursive file crawler with .gitignore-style blacklist filtering.

Uses ``pathlib`` for all file-system operations and ``pathspec`` for
glob-pattern matching against the configurable blacklist.  Every file
that survives the blacklist is enumerated, whether or not a language
bundle exists for it: unsupported files still become graph leaves.
"""

from __future__ import annotations

import pathlib
from typing import Iterator

import pathspec
import structlog

from cartograph.config import settings

logger = structlog.get_logger(__name__)


class FileCrawler:
    """Recursively walks a directory tree, yielding files in sorted order.

    Args:
        root: The root directory to scan.
        blacklist: Optional list of glob patterns to exclude.  Falls back
            to :pyattr:`cartograph.config.Settings.default_blacklist`.
        max_file_size_bytes: Skip files larger than this.  Falls back to
            :pyattr:`cartograph.config.Settings.max_file_size_bytes`.

    Raises:
        FileNotFoundError: If *root* does not exist.
        NotADirectoryError: If *root* is not a directory.
    """

    def __init__(
        self,
        root: pathlib.Path,
        blacklist: list[str] | None = None,
        max_file_size_bytes: int | None = None,
    ) -> None:
        self.root = root.resolve()
        if not self.root.exists():
            raise FileNotFoundError(f"Repository path does not exist: {self.root}")
        if not self.root.is_dir():
            raise NotADirectoryError(f"Repository path is not a directory: {self.root}")
        self.blacklist = settings.default_blacklist if blacklist is None else blacklist
        self.max_file_size_bytes = max_file_size_bytes or settings.max_file_size_bytes
        self._spec = pathspec.PathSpec.from_lines("gitwildmatch", self.blacklist)

    def _is_excluded(self, path: pathlib.Path) -> bool:
        """Check whether *path* matches any blacklist pattern."""
        try:
            relative = path.relative_to(self.root)
        except ValueError:
            return False
        # pathspec expects forward-slash separated POSIX paths.
        posix = relative.as_posix()
        # For directories, append a trailing slash so directory patterns match.
        if path.is_dir():
            posix += "/"
        return self._spec.match_file(posix)

    def crawl(self) -> Iterator[pathlib.Path]:
        """Yield all non-excluded files under :pyattr:`root`.

        Directories matching the blacklist are pruned entirely so their
        children are never visited.  An unreadable root is fatal; an
        unreadable subdirectory is logged and skipped.

        Yields:
            Absolute ``pathlib.Path`` objects for each file.

        Raises:
            PermissionError: If the root directory itself cannot be listed.
        """
        logger.info("crawl_started", root=str(self.root))
        file_count = 0

        # Listing the root eagerly surfaces an unreadable root to the caller.
        entries = sorted(self.root.iterdir())
        for path in self._walk_entries(entries):
            file_count += 1
            yield path

        logger.info("crawl_finished", root=str(self.root), files_found=file_count)

    def _walk(self, directory: pathlib.Path) -> Iterator[pathlib.Path]:
        try:
            entries = sorted(directory.iterdir())
        except PermissionError:
            logger.warning("permission_denied", path=str(directory))
            return
        yield from self._walk_entries(entries)

    def _walk_entries(self, entries: list[pathlib.Path]) -> Iterator[pathlib.Path]:
        for entry in entries:
            if self._is_excluded(entry):
                logger.debug("excluded", path=str(entry))
                continue

            if entry.is_dir():
                yield from self._walk(entry)
            elif entry.is_file():
                try:
                    size = entry.stat().st_size
                except OSError:
                    logger.warning("stat_failed", path=str(entry))
                    continue
                if size > self.max_file_size_bytes:
                    logger.warning(
                        "file_too_large",
                        path=str(entry),
                        size=size,
                        limit=self.max_file_size_bytes,
                    )
                    continue
                yield entry
