"""
Ingestion pipeline: catalog seeding, replenishment and embedding backfill.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field

from .catalog import CatalogClient, record_to_book
from .embeddings import EmbeddingProvider
from .errors import ConfigurationError, EmbeddingError
from .storage import BookRecord, StorageBackend

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EmbeddingFailure:
    """A book whose embedding could not be computed or stored."""

    gutenberg_id: int
    title: str
    reason: str


@dataclass(frozen=True)
class EmbeddingBackfillResult:
    """Summary output for an embedding run."""

    total: int = 0
    processed: int = 0
    errors: int = 0
    failures: list[EmbeddingFailure] = field(default_factory=list)


@dataclass(frozen=True)
class SeedResult:
    """Summary output for a catalog ingestion run."""

    fetched: int = 0
    processed: int = 0
    skipped: int = 0
    errors: int = 0
    failures: list[EmbeddingFailure] = field(default_factory=list)
    catalog_error: str | None = None


class IngestionPipeline:
    """Populate the book store from the catalog and keep embeddings filled in."""

    def __init__(
        self,
        storage: StorageBackend,
        embedding_provider: EmbeddingProvider,
        catalog: CatalogClient | None = None,
        *,
        item_delay: float = 0.1,
        batch_delay: float = 2.0,
        seed_delay: float = 0.05,
    ) -> None:
        self.storage = storage
        self.embedding_provider = embedding_provider
        self.catalog = catalog
        self.item_delay = item_delay
        self.batch_delay = batch_delay
        self.seed_delay = seed_delay
        # Catalog page the next replenish starts from.
        self.catalog_cursor = 1

    async def embed_books(
        self,
        books: list[BookRecord],
        *,
        batch_size: int | None = None,
        item_delay: float | None = None,
        batch_delay: float | None = None,
    ) -> EmbeddingBackfillResult:
        """Compute and persist embeddings one book at a time.

        A failure on one book is recorded and the run continues.
        """
        if not books:
            return EmbeddingBackfillResult()
        size = max(batch_size or len(books), 1)
        pause = self.item_delay if item_delay is None else item_delay
        batch_pause = self.batch_delay if batch_delay is None else batch_delay

        processed = 0
        failures: list[EmbeddingFailure] = []
        for start in range(0, len(books), size):
            batch = books[start : start + size]
            logger.info(
                "Embedding batch %d/%d (%d books)",
                start // size + 1,
                (len(books) + size - 1) // size,
                len(batch),
            )
            for offset, book in enumerate(batch):
                failure = await self._embed_one(book)
                if failure is None:
                    processed += 1
                else:
                    failures.append(failure)
                if pause > 0 and offset < len(batch) - 1:
                    await asyncio.sleep(pause)
            if batch_pause > 0 and start + size < len(books):
                await asyncio.sleep(batch_pause)

        logger.info(
            "Embedding run complete: %d processed, %d errors", processed, len(failures)
        )
        return EmbeddingBackfillResult(
            total=len(books),
            processed=processed,
            errors=len(failures),
            failures=failures,
        )

    async def embed_missing(
        self,
        *,
        limit: int | None = None,
        batch_size: int | None = 10,
        item_delay: float | None = None,
        batch_delay: float | None = None,
    ) -> EmbeddingBackfillResult:
        """Backfill embeddings for books that do not have one yet."""
        missing = self.storage.list_books_without_embedding(limit=limit)
        if not missing:
            logger.debug("All books have embeddings")
            return EmbeddingBackfillResult()
        logger.info("Found %d books without embeddings", len(missing))
        return await self.embed_books(
            missing,
            batch_size=batch_size,
            item_delay=item_delay,
            batch_delay=batch_delay,
        )

    async def seed(self, total_books: int = 200) -> SeedResult:
        """Fetch new catalog books, embed each and store it with its embedding."""
        catalog = self._require_catalog()
        fetch = await catalog.fetch_books(
            total_books, known_ids=self.storage.known_gutenberg_ids()
        )
        logger.info(
            "Seeding %d new books (%d already known)",
            len(fetch.records),
            fetch.skipped_known,
        )

        processed = 0
        failures: list[EmbeddingFailure] = []
        for index, raw in enumerate(fetch.records):
            book = record_to_book(raw)
            try:
                embedding = await self.embedding_provider.embed_book(book)
            except (EmbeddingError, ValueError) as exc:
                logger.warning("Could not embed %r: %s", book.title, exc)
                failures.append(EmbeddingFailure(book.gutenberg_id, book.title, str(exc)))
                # Stored without an embedding so a later backfill can fill it in.
                self.storage.upsert_books([book])
            else:
                self.storage.upsert_books([book.with_embedding(embedding)])
                processed += 1
            if self.seed_delay > 0 and index < len(fetch.records) - 1:
                await asyncio.sleep(self.seed_delay)

        return SeedResult(
            fetched=len(fetch.records),
            processed=processed,
            skipped=fetch.skipped_known,
            errors=len(failures),
            failures=failures,
            catalog_error=fetch.error,
        )

    async def replenish(self, count: int = 50, *, max_pages: int | None = 10) -> SeedResult:
        """Store a batch of unseen catalog books, then embed them."""
        catalog = self._require_catalog()
        fetch = await catalog.fetch_books(
            count,
            start_page=self.catalog_cursor,
            known_ids=self.storage.known_gutenberg_ids(),
            max_pages=max_pages,
        )
        if fetch.exhausted:
            logger.info("Reached the end of the catalog; next replenish starts over")
            self.catalog_cursor = 1
        elif fetch.next_page is not None:
            self.catalog_cursor = fetch.next_page
        if not fetch.records:
            return SeedResult(skipped=fetch.skipped_known, catalog_error=fetch.error)

        stored = self.storage.upsert_books([record_to_book(raw) for raw in fetch.records])
        logger.info("Stored %d new books from the catalog", len(stored))
        embedded = await self.embed_books(stored)
        return SeedResult(
            fetched=len(fetch.records),
            processed=embedded.processed,
            skipped=fetch.skipped_known,
            errors=embedded.errors,
            failures=embedded.failures,
            catalog_error=fetch.error,
        )

    async def _embed_one(self, book: BookRecord) -> EmbeddingFailure | None:
        try:
            embedding = await self.embedding_provider.embed_book(book)
        except (EmbeddingError, ValueError) as exc:
            logger.warning("Could not embed %r: %s", book.title, exc)
            return EmbeddingFailure(book.gutenberg_id, book.title, str(exc))
        try:
            updated = self.storage.update_embedding(book.gutenberg_id, embedding)
        except Exception as exc:
            logger.exception("Could not store embedding for %r", book.title)
            return EmbeddingFailure(book.gutenberg_id, book.title, str(exc))
        if not updated:
            logger.warning("Embedding for %r not stored: no rows updated", book.title)
            return EmbeddingFailure(book.gutenberg_id, book.title, "no rows updated")
        return None

    def _require_catalog(self) -> CatalogClient:
        if self.catalog is None:
            raise ConfigurationError("Catalog client not configured")
        return self.catalog
