"""
Semantic search request pipeline.

Embeds the query, makes sure stored books have embeddings, runs the
similarity search, replenishes from the catalog when results are weak,
re-ranks, and records a search log entry.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ..embeddings import EmbeddingProvider
from ..errors import (
    CatalogError,
    ConfigurationError,
    InvalidQueryError,
    SearchPipelineError,
)
from ..ingestion import EmbeddingBackfillResult, IngestionPipeline
from ..storage import BookRecord, SearchLogRecord, StorageBackend
from .ranking import has_quality_results, merge_candidates, rank_books

logger = logging.getLogger(__name__)


class SearchStage(str, Enum):
    EMBEDDING_QUERY = "embedding_query"
    CHECKING_COVERAGE = "checking_coverage"
    SEARCHING = "searching"
    REPLENISHING = "replenishing"
    RE_SEARCHING = "re_searching"
    RANKING = "ranking"
    LOGGING = "logging"
    RESPONDING = "responding"
    FAILED = "failed"


@dataclass(frozen=True)
class SearchConfig:
    result_limit: int = 10
    match_threshold: float = 0.0
    quality_threshold: float = 0.15
    coverage_batch: int = 50
    replenish_count: int = 50


@dataclass(frozen=True)
class SearchOutcome:
    """Ranked results of one search plus bookkeeping about how they were produced."""

    query: str
    results: list[BookRecord]
    elapsed_ms: int
    coverage: EmbeddingBackfillResult = field(default_factory=EmbeddingBackfillResult)
    replenished: bool = False
    logged: bool = True
    stages: list[SearchStage] = field(default_factory=list)

    @property
    def top_similarity(self) -> float:
        if not self.results:
            return 0.0
        return float(self.results[0].similarity or 0.0)

    def to_response(self) -> dict[str, Any]:
        return {"results": [book.to_result() for book in self.results]}


def validate_query(query: Any) -> str:
    """Return the query text, or raise InvalidQueryError for missing/blank input."""
    if not isinstance(query, str) or not query.strip():
        raise InvalidQueryError("Query is required and must be a string")
    return query.strip()


class BookSearchService:
    """Coordinates embedding, coverage, similarity search and ranking for one query."""

    def __init__(
        self,
        storage: StorageBackend,
        embedding_provider: EmbeddingProvider,
        ingestion: IngestionPipeline | None = None,
        config: SearchConfig | None = None,
    ) -> None:
        self.storage = storage
        self.embedding_provider = embedding_provider
        self.ingestion = ingestion or IngestionPipeline(storage, embedding_provider)
        self.config = config or SearchConfig()

    async def search(self, query: Any) -> SearchOutcome:
        text = validate_query(query)
        started = time.perf_counter()
        stages: list[SearchStage] = []
        stage = SearchStage.EMBEDDING_QUERY

        try:
            stages.append(stage)
            query_embedding = await self.embedding_provider.embed_query(text)

            stage = SearchStage.CHECKING_COVERAGE
            stages.append(stage)
            coverage = await self.ingestion.embed_missing(
                limit=self.config.coverage_batch,
                batch_size=None,
                item_delay=0,
            )

            stage = SearchStage.SEARCHING
            stages.append(stage)
            candidates = self._similar(query_embedding)

            replenished = False
            if not has_quality_results(
                candidates,
                query_embedding,
                threshold=self.config.quality_threshold,
            ):
                logger.info("No good quality results for %r, replenishing", text)
                stage = SearchStage.REPLENISHING
                stages.append(stage)
                replenished = await self._replenish()

                stage = SearchStage.RE_SEARCHING
                stages.append(stage)
                candidates = merge_candidates(candidates, self._similar(query_embedding))

            stage = SearchStage.RANKING
            stages.append(stage)
            results = rank_books(
                candidates,
                query_embedding=query_embedding,
                limit=self.config.result_limit,
            )
        except (InvalidQueryError, ConfigurationError):
            raise
        except Exception as exc:
            logger.exception("Search failed during %s", stage.value)
            stages.append(SearchStage.FAILED)
            raise SearchPipelineError(
                stage.value, str(exc), stages=[s.value for s in stages]
            ) from exc

        elapsed_ms = int((time.perf_counter() - started) * 1000)
        stages.append(SearchStage.LOGGING)
        logged = self._log_search(text, results, elapsed_ms)
        stages.append(SearchStage.RESPONDING)

        for rank, book in enumerate(results, start=1):
            logger.debug("%d. %s - %.1f%%", rank, book.title, (book.similarity or 0.0) * 100)

        return SearchOutcome(
            query=text,
            results=results,
            elapsed_ms=elapsed_ms,
            coverage=coverage,
            replenished=replenished,
            logged=logged,
            stages=stages,
        )

    def _similar(self, query_embedding: list[float]) -> list[BookRecord]:
        return self.storage.search_books_by_similarity(
            query_embedding,
            match_threshold=self.config.match_threshold,
            match_count=self.config.result_limit,
        )

    async def _replenish(self) -> bool:
        if self.ingestion.catalog is None:
            logger.warning("Catalog client not configured; skipping replenishment")
            return False
        try:
            result = await self.ingestion.replenish(self.config.replenish_count)
        except CatalogError as exc:
            logger.warning("Replenishment failed: %s", exc)
            return False
        except Exception:
            logger.exception("Replenishment failed; ranking the books already stored")
            return False
        if result.catalog_error:
            logger.warning("Replenishment stopped early: %s", result.catalog_error)
        return result.processed > 0

    def _log_search(self, query: str, results: list[BookRecord], elapsed_ms: int) -> bool:
        top = float(results[0].similarity or 0.0) if results else 0.0
        try:
            self.storage.insert_search_log(
                SearchLogRecord(
                    query=query,
                    results_count=len(results),
                    top_similarity=top,
                    search_time_ms=elapsed_ms,
                )
            )
        except Exception:
            logger.exception("Failed to record search log for %r", query)
            return False
        return True
