"""
In-memory storage backend.

Holds an explicitly constructed set of books for the offline demo and for
tests. Nothing is shared between instances.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone
from typing import Iterable

from ..vectors import coerce_embedding, cosine_similarity
from .base import BookRecord, SearchLogRecord


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class InMemoryStorage:
    """Dictionary-backed implementation of StorageBackend."""

    def __init__(self, books: Iterable[BookRecord] = ()) -> None:
        self._books: dict[int, BookRecord] = {}
        self._logs: list[SearchLogRecord] = []
        self._next_book_id = 1
        self._next_log_id = 1
        self.upsert_books(list(books))

    def initialize(self) -> None:
        return None

    def upsert_books(self, books: list[BookRecord]) -> list[BookRecord]:
        touched: list[int] = []
        for book in books:
            key = int(book.gutenberg_id)
            existing = self._books.get(key)
            timestamp = _now()
            if existing is None:
                stored = replace(
                    book,
                    id=self._next_book_id,
                    similarity=None,
                    created_at=timestamp,
                    updated_at=timestamp,
                )
                self._next_book_id += 1
            else:
                stored = replace(
                    book,
                    id=existing.id,
                    embedding=book.embedding if book.has_embedding else existing.embedding,
                    similarity=None,
                    created_at=existing.created_at,
                    updated_at=timestamp,
                )
            self._books[key] = stored
            if key not in touched:
                touched.append(key)
        return sorted((self._books[key] for key in touched), key=lambda b: b.id or 0)

    def update_embedding(self, gutenberg_id: int, embedding: list[float]) -> bool:
        existing = self._books.get(int(gutenberg_id))
        if existing is None:
            return False
        self._books[int(gutenberg_id)] = replace(
            existing, embedding=list(embedding), updated_at=_now()
        )
        return True

    def list_books_without_embedding(self, *, limit: int | None = None) -> list[BookRecord]:
        missing = [book for book in self.list_books() if not book.has_embedding]
        return missing if limit is None else missing[:limit]

    def list_books(self) -> list[BookRecord]:
        return sorted(self._books.values(), key=lambda b: b.id or 0)

    def get_book(self, gutenberg_id: int) -> BookRecord | None:
        return self._books.get(int(gutenberg_id))

    def known_gutenberg_ids(self) -> set[int]:
        return set(self._books)

    def count_books(self) -> int:
        return len(self._books)

    def count_embedded_books(self) -> int:
        return sum(1 for book in self._books.values() if book.has_embedding)

    def search_books_by_similarity(
        self,
        query_embedding: list[float],
        *,
        match_threshold: float = 0.0,
        match_count: int = 10,
    ) -> list[BookRecord]:
        scored: list[BookRecord] = []
        for book in self.list_books():
            vector = coerce_embedding(book.embedding)
            if vector is None:
                continue
            similarity = cosine_similarity(vector, query_embedding)
            if similarity > match_threshold:
                scored.append(book.with_similarity(similarity))
        scored.sort(key=lambda b: (-(b.similarity or 0.0), b.id or 0))
        return scored[: max(match_count, 0)]

    def insert_search_log(self, log: SearchLogRecord) -> int:
        log_id = self._next_log_id
        self._next_log_id += 1
        self._logs.append(replace(log, id=log_id, created_at=_now()))
        return log_id

    def list_search_logs(self, *, limit: int = 50) -> list[SearchLogRecord]:
        return list(reversed(self._logs))[:limit]

    def count_search_logs(self) -> int:
        return len(self._logs)
