"""Source reader with graceful encoding fallback.

Repositories mix encodings; a file that is not valid UTF-8 is retried
with a single-byte Windows encoding before falling back to
UTF-8 with replacement characters, so reading never fails on content.
"""

from __future__ import annotations

import pathlib
from typing import Optional

import structlog

logger = structlog.get_logger(__name__)

# Encodings to attempt in order when reading source files.
_ENCODING_CHAIN: tuple[str, ...] = ("utf-8", "cp1252")


def read_source(file_path: pathlib.Path) -> str:
    """Read the full text of *file_path*.

    Args:
        file_path: Absolute path to the source file.

    Returns:
        The decoded file content.

    Raises:
        FileNotFoundError: If *file_path* does not exist.
        OSError: If the file cannot be read.
    """
    if not file_path.exists():
        raise FileNotFoundError(f"Source file not found: {file_path}")

    raw = file_path.read_bytes()
    content: Optional[str] = None
    used_encoding: str = _ENCODING_CHAIN[0]

    for encoding in _ENCODING_CHAIN:
        try:
            content = raw.decode(encoding)
            used_encoding = encoding
            break
        except (UnicodeDecodeError, UnicodeError):
            continue

    if content is None:
        logger.warning("encoding_fallback", file=str(file_path), tried=_ENCODING_CHAIN)
        content = raw.decode("utf-8", errors="replace")
        used_encoding = "utf-8(replace)"

    if used_encoding != "utf-8":
        logger.debug("decoded_with_fallback", file=str(file_path), encoding=used_encoding)

    return content
