"""
DuckDB storage backend for books, embeddings and search logs.
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Any

import duckdb

from ..config import DEFAULT_EMBEDDING_DIM
from .base import BookRecord, SearchLogRecord

logger = logging.getLogger(__name__)

_BOOK_COLUMNS = (
    "id, gutenberg_id, title, author, description, subjects, languages, "
    "bookshelves, embedding, created_at, updated_at"
)


def _timestamp(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


class DuckDBStorage:
    """DuckDB-backed persistence for books and search logs.

    Embeddings live in a fixed-size ``FLOAT[dim]`` column so similarity can
    be computed in SQL with ``array_cosine_similarity``.
    """

    def __init__(
        self,
        db_path: str,
        *,
        embedding_dim: int = DEFAULT_EMBEDDING_DIM,
        read_only: bool = False,
        initialize: bool = True,
    ) -> None:
        if embedding_dim <= 0:
            raise ValueError(f"embedding_dim must be positive, got {embedding_dim}")
        self.db_path = str(Path(db_path).expanduser().resolve())
        self.embedding_dim = int(embedding_dim)
        self.read_only = read_only
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self._conn = duckdb.connect(self.db_path, read_only=read_only)
        if initialize and not read_only:
            self.initialize()

    def close(self) -> None:
        """Close the underlying DuckDB connection."""
        self._conn.close()

    def initialize(self) -> None:
        self._conn.execute("CREATE SEQUENCE IF NOT EXISTS books_id_seq START 1;")
        self._conn.execute("CREATE SEQUENCE IF NOT EXISTS search_logs_id_seq START 1;")
        self._conn.execute(
            f"""
            CREATE TABLE IF NOT EXISTS books (
                id INTEGER PRIMARY KEY DEFAULT nextval('books_id_seq'),
                gutenberg_id INTEGER NOT NULL UNIQUE,
                title VARCHAR NOT NULL,
                author VARCHAR NOT NULL,
                description VARCHAR NOT NULL,
                subjects VARCHAR[] NOT NULL,
                languages VARCHAR[] NOT NULL,
                bookshelves VARCHAR[] NOT NULL,
                embedding FLOAT[{self.embedding_dim}],
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            );
            """
        )
        self._conn.execute(
            """
            CREATE TABLE IF NOT EXISTS search_logs (
                id INTEGER PRIMARY KEY DEFAULT nextval('search_logs_id_seq'),
                query VARCHAR NOT NULL,
                results_count INTEGER NOT NULL,
                top_similarity DOUBLE NOT NULL,
                search_time_ms INTEGER NOT NULL,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            );
            """
        )

    def upsert_books(self, books: list[BookRecord]) -> list[BookRecord]:
        # Later duplicates win; DuckDB rejects updating the same row twice in one statement.
        unique: dict[int, BookRecord] = {}
        for book in books:
            unique[int(book.gutenberg_id)] = book
        if not unique:
            return []

        for book in unique.values():
            params: list[Any] = [
                int(book.gutenberg_id),
                book.title,
                book.author,
                book.description,
                list(book.subjects),
                list(book.languages),
                list(book.bookshelves),
            ]
            if book.has_embedding:
                params.append(self._check_embedding(book.embedding))
                self._conn.execute(
                    f"""
                    INSERT INTO books (
                        gutenberg_id, title, author, description,
                        subjects, languages, bookshelves, embedding
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?::FLOAT[{self.embedding_dim}])
                    ON CONFLICT (gutenberg_id) DO UPDATE SET
                        title = excluded.title,
                        author = excluded.author,
                        description = excluded.description,
                        subjects = excluded.subjects,
                        languages = excluded.languages,
                        bookshelves = excluded.bookshelves,
                        embedding = excluded.embedding,
                        updated_at = now()
                    """,
                    params,
                )
            else:
                self._conn.execute(
                    """
                    INSERT INTO books (
                        gutenberg_id, title, author, description,
                        subjects, languages, bookshelves
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                    ON CONFLICT (gutenberg_id) DO UPDATE SET
                        title = excluded.title,
                        author = excluded.author,
                        description = excluded.description,
                        subjects = excluded.subjects,
                        languages = excluded.languages,
                        bookshelves = excluded.bookshelves,
                        updated_at = now()
                    """,
                    params,
                )

        ids = sorted(unique)
        placeholders = ", ".join(["?"] * len(ids))
        rows = self._conn.execute(
            f"""
            SELECT {_BOOK_COLUMNS}
            FROM books
            WHERE gutenberg_id IN ({placeholders})
            ORDER BY id
            """,
            ids,
        ).fetchall()
        return [self._row_to_book(row) for row in rows]

    def update_embedding(self, gutenberg_id: int, embedding: list[float]) -> bool:
        row = self._conn.execute(
            f"""
            UPDATE books
            SET embedding = ?::FLOAT[{self.embedding_dim}],
                updated_at = now()
            WHERE gutenberg_id = ?
            """,
            [self._check_embedding(embedding), int(gutenberg_id)],
        ).fetchone()
        return bool(row and int(row[0]) > 0)

    def list_books_without_embedding(self, *, limit: int | None = None) -> list[BookRecord]:
        sql = f"SELECT {_BOOK_COLUMNS} FROM books WHERE embedding IS NULL ORDER BY id"
        params: list[Any] = []
        if limit is not None:
            sql += " LIMIT ?"
            params.append(int(limit))
        rows = self._conn.execute(sql, params).fetchall()
        return [self._row_to_book(row) for row in rows]

    def list_books(self) -> list[BookRecord]:
        rows = self._conn.execute(
            f"SELECT {_BOOK_COLUMNS} FROM books ORDER BY id"
        ).fetchall()
        return [self._row_to_book(row) for row in rows]

    def get_book(self, gutenberg_id: int) -> BookRecord | None:
        row = self._conn.execute(
            f"SELECT {_BOOK_COLUMNS} FROM books WHERE gutenberg_id = ? LIMIT 1",
            [int(gutenberg_id)],
        ).fetchone()
        if row is None:
            return None
        return self._row_to_book(row)

    def known_gutenberg_ids(self) -> set[int]:
        rows = self._conn.execute("SELECT gutenberg_id FROM books").fetchall()
        return {int(row[0]) for row in rows}

    def count_books(self) -> int:
        row = self._conn.execute("SELECT COUNT(*) FROM books").fetchone()
        return int(row[0]) if row else 0

    def count_embedded_books(self) -> int:
        row = self._conn.execute(
            "SELECT COUNT(*) FROM books WHERE embedding IS NOT NULL"
        ).fetchone()
        return int(row[0]) if row else 0

    def search_books_by_similarity(
        self,
        query_embedding: list[float],
        *,
        match_threshold: float = 0.0,
        match_count: int = 10,
    ) -> list[BookRecord]:
        if match_count <= 0:
            return []
        rows = self._conn.execute(
            f"""
            SELECT * FROM (
                SELECT
                    {_BOOK_COLUMNS},
                    array_cosine_similarity(
                        embedding, ?::FLOAT[{self.embedding_dim}]
                    ) AS similarity
                FROM books
                WHERE embedding IS NOT NULL
            ) ranked
            WHERE similarity > ?
            ORDER BY similarity DESC, id ASC
            LIMIT ?
            """,
            [
                self._check_embedding(query_embedding),
                float(match_threshold),
                int(match_count),
            ],
        ).fetchall()
        return [
            self._row_to_book(row[:-1]).with_similarity(float(row[-1])) for row in rows
        ]

    def insert_search_log(self, log: SearchLogRecord) -> int:
        row = self._conn.execute(
            """
            INSERT INTO search_logs (query, results_count, top_similarity, search_time_ms)
            VALUES (?, ?, ?, ?)
            RETURNING id
            """,
            [
                log.query,
                int(log.results_count),
                float(log.top_similarity),
                int(log.search_time_ms),
            ],
        ).fetchone()
        if row is None:
            raise RuntimeError("Failed to insert search log")
        return int(row[0])

    def list_search_logs(self, *, limit: int = 50) -> list[SearchLogRecord]:
        rows = self._conn.execute(
            """
            SELECT id, query, results_count, top_similarity, search_time_ms, created_at
            FROM search_logs
            ORDER BY id DESC
            LIMIT ?
            """,
            [int(limit)],
        ).fetchall()
        return [
            SearchLogRecord(
                id=int(row[0]),
                query=str(row[1]),
                results_count=int(row[2]),
                top_similarity=float(row[3]),
                search_time_ms=int(row[4]),
                created_at=_timestamp(row[5]),
            )
            for row in rows
        ]

    def count_search_logs(self) -> int:
        row = self._conn.execute("SELECT COUNT(*) FROM search_logs").fetchone()
        return int(row[0]) if row else 0

    def _check_embedding(self, embedding: Any) -> list[float]:
        values = [float(v) for v in embedding]
        if len(values) != self.embedding_dim:
            raise ValueError(
                f"Embedding has {len(values)} dimensions, expected {self.embedding_dim}"
            )
        return values

    @staticmethod
    def _row_to_book(row: tuple[Any, ...]) -> BookRecord:
        embedding = row[8]
        return BookRecord(
            id=int(row[0]),
            gutenberg_id=int(row[1]),
            title=str(row[2]),
            author=str(row[3]),
            description=str(row[4]),
            subjects=list(row[5] or []),
            languages=list(row[6] or []),
            bookshelves=list(row[7] or []),
            embedding=[float(v) for v in embedding] if embedding is not None else None,
            created_at=_timestamp(row[9]),
            updated_at=_timestamp(row[10]),
        )
