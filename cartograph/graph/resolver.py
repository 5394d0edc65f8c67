"""Best-effort import resolution against the set of known file nodes.

This is a heuristic layer, not a language-correct module resolver.  The
contract is the ordered fallback below, first match wins:

1. The cleaned specifier (known source extension stripped) resolved
   relative to the importer's directory, tried bare and then with each
   of :data:`CANDIDATE_EXTENSIONS` appended.
2. The same path treated as a directory, tried against each of
   :data:`INDEX_FILES`.
3. Basename fallback: the first file node (in node order) whose filename
   stem equals the specifier's stem, accepted only if the node path
   contains the cleaned specifier or the cleaned specifier contains the
   node's extension-less path.

The importer itself is never a candidate in any step: a package import
sharing the importer's name (`require("react")` inside `react.js`) is
external.

Resolution is a pure function of ``(specifier, importer id, node ids)``.
"""

from __future__ import annotations

import posixpath
from typing import Iterable, Optional

KNOWN_SOURCE_EXTENSIONS: tuple[str, ...] = (".js", ".jsx", ".ts", ".tsx", ".mjs", ".cjs", ".py")
CANDIDATE_EXTENSIONS: tuple[str, ...] = (".js", ".jsx", ".ts", ".tsx", ".mjs", ".cjs", ".py")
INDEX_FILES: tuple[str, ...] = ("index.js", "index.ts", "index.jsx", "index.tsx", "__init__.py")


def clean_specifier(specifier: str) -> str:
    """Strip one known source extension from *specifier*."""
    for ext in KNOWN_SOURCE_EXTENSIONS:
        if specifier.endswith(ext) and len(specifier) > len(ext):
            return specifier[: -len(ext)]
    return specifier


def _stem(path: str) -> str:
    return posixpath.splitext(posixpath.basename(path.rstrip("/")))[0]


def _strip_relative_prefix(path: str) -> str:
    parts = [p for p in path.split("/") if p not in ("", ".", "..")]
    return "/".join(parts)


class ImportResolver:
    """Resolves path-form import specifiers to file node ids.

    Args:
        file_ids: Ids of every file node, in graph order.
    """

    def __init__(self, file_ids: Iterable[str]) -> None:
        self._ordered: list[str] = list(file_ids)
        self._ids: frozenset[str] = frozenset(self._ordered)

    def resolve(self, specifier: str, importer_id: str) -> Optional[str]:
        """Return the file id *specifier* refers to, or ``None``.

        Args:
            specifier: Path-form specifier (``./utils``, ``../lib/a.js``).
            importer_id: Root-relative id of the importing file.
        """
        cleaned = clean_specifier(specifier)
        if not cleaned:
            return None
        base = posixpath.normpath(posixpath.join(posixpath.dirname(importer_id), cleaned))

        # 1. Direct file, bare then with candidate extensions.
        for ext in ("",) + CANDIDATE_EXTENSIONS:
            candidate = base + ext
            if candidate != importer_id and candidate in self._ids:
                return candidate

        # 2. Directory with an index file.
        for index_file in INDEX_FILES:
            candidate = posixpath.normpath(posixpath.join(base, index_file))
            if candidate != importer_id and candidate in self._ids:
                return candidate

        # 3. Basename fallback, guarded against accidental stem collisions.
        stem = _stem(cleaned)
        needle = _strip_relative_prefix(cleaned)
        if not stem or not needle:
            return None
        for file_id in self._ordered:
            if file_id == importer_id or _stem(file_id) != stem:
                continue
            without_ext = posixpath.splitext(file_id)[0]
            if needle in file_id or without_ext in needle:
                return file_id
        return None
