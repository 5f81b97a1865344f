"""
Batch chunker: splits INSERT statements into request-sized batches.

The edge SQL API rejects request bodies above roughly 1 MiB, so writes are
sent as a sequence of chunks, each bounded by a statement count and by the
UTF-8 size of its statements joined with a single space.
"""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)

MAX_CHUNK_COUNT = 1000
MAX_CHUNK_BYTES = int(0.8 * 1024 * 1024)


def byte_length(text: str) -> int:
    """UTF-8 encoded length of text."""
    return len(text.encode("utf-8"))


def chunk_statements(
    statements: list[str],
    max_count: int = MAX_CHUNK_COUNT,
    max_bytes: int = MAX_CHUNK_BYTES,
) -> list[list[str]]:
    """
    Split statements into ordered chunks.

    Small batches come back as a single chunk. Otherwise statements are
    accumulated greedily; a chunk is closed when the next statement would push
    its joined size over max_bytes or its length over max_count.

    A statement that is larger than max_bytes on its own becomes a chunk of
    one. It is sent anyway rather than dropped.
    """
    if max_count < 1:
        raise ValueError("max_count must be at least 1")
    if not statements:
        return []

    total_bytes = byte_length(" ".join(statements))
    if total_bytes < max_bytes and len(statements) < max_count:
        return [list(statements)]

    logger.info(
        "Batch of %d statements (%d bytes) exceeds limits, chunking",
        len(statements), total_bytes,
    )

    chunks: list[list[str]] = []
    current: list[str] = []
    current_bytes = 0  # size of " ".join(current)

    for statement in statements:
        size = byte_length(statement)
        if current and (
            current_bytes + 1 + size > max_bytes
            or len(current) + 1 > max_count
        ):
            chunks.append(current)
            current = [statement]
            current_bytes = size
            continue
        current_bytes = size if not current else current_bytes + 1 + size
        current.append(statement)

    if current:
        chunks.append(current)

    oversized = sum(1 for c in chunks if len(c) == 1 and byte_length(c[0]) > max_bytes)
    if oversized:
        logger.warning("%d statement(s) exceed %d bytes and will be sent alone", oversized, max_bytes)

    logger.debug("Split %d statements into %d chunks", len(statements), len(chunks))
    return chunks
