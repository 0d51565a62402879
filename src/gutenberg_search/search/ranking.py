"""
Ranking helpers for merging and scoring similarity search candidates.
"""

from __future__ import annotations

from dataclasses import replace

from ..storage import BookRecord
from ..vectors import bounded_similarity, coerce_embedding


def candidate_similarity(book: BookRecord, query_embedding: list[float]) -> float | None:
    """Similarity of a candidate to the query, or None if it has no usable embedding."""
    vector = coerce_embedding(book.embedding)
    if vector is None:
        return None
    return bounded_similarity(query_embedding, vector)


def has_quality_results(
    candidates: list[BookRecord],
    query_embedding: list[float],
    *,
    threshold: float,
) -> bool:
    """True when at least one candidate clears *threshold*."""
    for book in candidates:
        similarity = candidate_similarity(book, query_embedding)
        if similarity is None:
            similarity = book.similarity
        if similarity is not None and similarity > threshold:
            return True
    return False


def merge_candidates(
    primary: list[BookRecord], extra: list[BookRecord]
) -> list[BookRecord]:
    """Append *extra* to *primary*, skipping catalog ids already present."""
    merged = list(primary)
    seen = {book.gutenberg_id for book in primary}
    for book in extra:
        if book.gutenberg_id not in seen:
            seen.add(book.gutenberg_id)
            merged.append(book)
    return merged


def rank_books(
    candidates: list[BookRecord],
    *,
    query_embedding: list[float],
    limit: int,
) -> list[BookRecord]:
    """Rescore candidates against the query, sort best first, apply limit.

    Candidates without a usable embedding are dropped. The returned records
    carry a similarity in [0, 1] and no embedding.
    """
    scored: list[BookRecord] = []
    for book in candidates:
        similarity = candidate_similarity(book, query_embedding)
        if similarity is None:
            continue
        scored.append(replace(book, similarity=similarity, embedding=None))

    ordered = sorted(
        scored,
        key=lambda book: (
            -(book.similarity or 0.0),
            book.id if book.id is not None else 10**9,
            book.gutenberg_id,
        ),
    )
    return ordered[: max(limit, 0)]
