"""Search helpers for the book store."""

from .ranking import (
    candidate_similarity,
    has_quality_results,
    merge_candidates,
    rank_books,
)
from .service import (
    BookSearchService,
    SearchConfig,
    SearchOutcome,
    SearchStage,
    validate_query,
)

__all__ = [
    "candidate_similarity",
    "has_quality_results",
    "merge_candidates",
    "rank_books",
    "BookSearchService",
    "SearchConfig",
    "SearchOutcome",
    "SearchStage",
    "validate_query",
]
