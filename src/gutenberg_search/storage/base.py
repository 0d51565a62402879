"""
Storage interfaces and data models for book persistence.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Protocol


@dataclass(frozen=True)
class BookRecord:
    """A catalog book, optionally carrying its embedding and a similarity score."""

    gutenberg_id: int
    title: str
    author: str
    description: str
    subjects: list[str] = field(default_factory=list)
    languages: list[str] = field(default_factory=list)
    bookshelves: list[str] = field(default_factory=list)
    embedding: list[float] | str | None = None
    id: int | None = None
    created_at: str | None = None
    updated_at: str | None = None
    similarity: float | None = None

    @property
    def has_embedding(self) -> bool:
        return self.embedding is not None and len(self.embedding) > 0

    def with_embedding(self, embedding: list[float] | None) -> BookRecord:
        return replace(self, embedding=embedding)

    def with_similarity(self, similarity: float) -> BookRecord:
        return replace(self, similarity=similarity)

    def to_result(self) -> dict[str, Any]:
        """Public result payload; the raw embedding is never included."""
        payload: dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "author": self.author,
            "description": self.description,
            "gutenbergId": self.gutenberg_id,
            "similarity": self.similarity if self.similarity is not None else 0.0,
        }
        if self.subjects:
            payload["subjects"] = list(self.subjects)
        if self.languages:
            payload["languages"] = list(self.languages)
        if self.bookshelves:
            payload["bookshelves"] = list(self.bookshelves)
        return payload


@dataclass(frozen=True)
class SearchLogRecord:
    """An append-only record of one search request."""

    query: str
    results_count: int
    top_similarity: float
    search_time_ms: int
    id: int | None = None
    created_at: str | None = None


class StorageBackend(Protocol):
    """Protocol for persistence operations used by ingestion and search."""

    def initialize(self) -> None:
        """Initialize required tables."""

    def upsert_books(self, books: list[BookRecord]) -> list[BookRecord]:
        """Insert or update books keyed by gutenberg_id; return stored rows."""

    def update_embedding(self, gutenberg_id: int, embedding: list[float]) -> bool:
        """Overwrite one book's embedding. Return True if a row was updated."""

    def list_books_without_embedding(self, *, limit: int | None = None) -> list[BookRecord]:
        """Books whose embedding is still null."""

    def list_books(self) -> list[BookRecord]:
        """All books ordered by surrogate id."""

    def get_book(self, gutenberg_id: int) -> BookRecord | None:
        """Fetch a single book by catalog id."""

    def known_gutenberg_ids(self) -> set[int]:
        """Catalog ids already present in the store."""

    def count_books(self) -> int:
        """Total number of books."""

    def count_embedded_books(self) -> int:
        """Number of books with an embedding."""

    def search_books_by_similarity(
        self,
        query_embedding: list[float],
        *,
        match_threshold: float = 0.0,
        match_count: int = 10,
    ) -> list[BookRecord]:
        """Nearest books by cosine similarity, best first."""

    def insert_search_log(self, log: SearchLogRecord) -> int:
        """Append a search log entry and return its id."""

    def list_search_logs(self, *, limit: int = 50) -> list[SearchLogRecord]:
        """Most recent search log entries first."""

    def count_search_logs(self) -> int:
        """Total number of logged searches."""
