"""
Result merger for hybrid search.

Similarity scores and FTS5 ranks live on different scales, so the two streams
are never sorted against each other. Each channel gets its own quota and the
streams are interleaved in input order, deduplicated by document id.
"""

from __future__ import annotations

import logging

from edgevec.models import FULLTEXT, SIMILARITY, SearchResult

logger = logging.getLogger(__name__)


def merge_results(
    results: list[SearchResult],
    kfts: int,
    kvector: int,
) -> list[SearchResult]:
    """
    Deduplicate and cap a combined result list.

    A result is accepted only if its id has not been accepted yet and the
    quota for its searchtype is not full. The first occurrence of an id wins,
    so whichever stream is listed first takes priority on duplicates. Stops
    once both quotas are filled.
    """
    merged: list[SearchResult] = []
    seen: set = set()
    similarity_count = 0
    fts_count = 0
    max_items = kfts + kvector

    for result in results:
        if result.id not in seen:
            if result.search_type == SIMILARITY and similarity_count < kvector:
                seen.add(result.id)
                merged.append(result)
                similarity_count += 1
            elif result.search_type == FULLTEXT and fts_count < kfts:
                seen.add(result.id)
                merged.append(result)
                fts_count += 1
        if similarity_count + fts_count == max_items:
            break

    logger.debug(
        "Merged %d candidates into %d results (fts=%d/%d, similarity=%d/%d)",
        len(results), len(merged), fts_count, kfts, similarity_count, kvector,
    )
    return merged
