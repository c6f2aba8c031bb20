"""Chunked reading of large dataset files.

The file is opened in text mode so multi-byte UTF-8 sequences are never split
across chunks; each chunk holds at most ``chunk_size`` characters.
"""

import logging
import os
from typing import Iterator

from nutriflow.ingestion.ingredient_errors import DatasetFileError


logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 1024 * 1024


def read_chunks(path: str, chunk_size: int = DEFAULT_CHUNK_SIZE) -> Iterator[str]:
    """Yield successive text chunks of a file.

    Args:
        path: File to read
        chunk_size: Maximum characters per chunk

    Yields:
        Non-empty string chunks in file order

    Raises:
        DatasetFileError: If the file is missing or unreadable
        ValueError: If chunk_size is not positive
    """
    if chunk_size <= 0:
        raise ValueError(f"Invalid chunk_size: {chunk_size}. Must be positive.")

    path = os.fspath(path)
    try:
        handle = open(path, "r", encoding="utf-8")
    except FileNotFoundError:
        raise DatasetFileError(path, "file not found")
    except OSError as e:
        raise DatasetFileError(path, f"cannot open file ({e.strerror or e})")

    size_mb = _file_size_mb(path)
    logger.info("Reading %s (%.2f MB) in %d-character chunks", path, size_mb, chunk_size)

    with handle:
        while True:
            try:
                chunk = handle.read(chunk_size)
            except (OSError, UnicodeDecodeError) as e:
                raise DatasetFileError(path, f"read failed ({e})")
            if not chunk:
                return
            yield chunk


def _file_size_mb(path: str) -> float:
    try:
        return os.path.getsize(path) / 1024 / 1024
    except OSError:
        return 0.0
