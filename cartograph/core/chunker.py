"""AST-aligned chunking of a single source file.

The segmentation unit is a *top-level syntactic construct*: chunks are
built by greedily packing consecutive top-level nodes of the syntax tree
until the next node would push the chunk over the size threshold.  A
construct is never split internally, so a single node larger than the
threshold becomes one oversized chunk.

Sizes and spans are measured in UTF-8 bytes, matching the offsets
reported by ``tree-sitter``.
"""

from __future__ import annotations

from typing import Iterator

from tree_sitter import Tree

from cartograph.config import settings
from cartograph.models.analysis import Chunk


def iter_chunks(
    source: bytes,
    tree: Tree,
    file_id: str,
    max_chunk_size: int | None = None,
) -> Iterator[Chunk]:
    """Yield the chunks of *source* in order.

    Args:
        source: UTF-8 bytes of the file (the bytes *tree* was parsed from).
        tree: Syntax tree of *source*.
        file_id: Owning file id recorded on each chunk.
        max_chunk_size: Size threshold in bytes; defaults to
            :pyattr:`Settings.max_chunk_size`.

    Yields:
        :class:`Chunk` records with consecutive indexes starting at 0.
        Whitespace-only input yields nothing.
    """
    limit = max_chunk_size or settings.max_chunk_size
    index = 0

    if not source.strip():
        return

    if len(source) <= limit:
        yield _make_chunk(source, 0, len(source), file_id, index)
        return

    start = end = 0
    size = 0
    for child in tree.root_node.children:
        node_len = child.end_byte - child.start_byte
        gap = max(child.start_byte - end, 0) if size > 0 else 0

        if size > 0 and size + gap + node_len > limit:
            chunk = _make_chunk(source, start, end, file_id, index)
            if chunk is not None:
                yield chunk
                index += 1
            start, end, size = child.start_byte, child.end_byte, node_len
            continue

        if size == 0:
            start = child.start_byte
        end = child.end_byte
        size += gap + node_len

    if size > 0:
        chunk = _make_chunk(source, start, end, file_id, index)
        if chunk is not None:
            yield chunk


def chunk_source(
    source: bytes,
    tree: Tree,
    file_id: str,
    max_chunk_size: int | None = None,
) -> list[Chunk]:
    """Return all chunks of *source* as a list.  See :func:`iter_chunks`."""
    return list(iter_chunks(source, tree, file_id, max_chunk_size))


def _make_chunk(source: bytes, start: int, end: int, file_id: str, index: int) -> Chunk | None:
    text = source[start:end].decode("utf-8", errors="replace").strip()
    if not text:
        return None
    return Chunk(file_id=file_id, index=index, text=text, start_byte=start, end_byte=end)
