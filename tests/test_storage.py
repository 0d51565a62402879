"""Tests for the DuckDB and in-memory book stores."""

from __future__ import annotations

from pathlib import Path

import pytest

from conftest import DIM, make_book
from gutenberg_search.storage import DuckDBStorage, InMemoryStorage, SearchLogRecord


@pytest.fixture(params=["duckdb", "memory"])
def storage(request, tmp_path: Path):
    if request.param == "duckdb":
        store = DuckDBStorage(str(tmp_path / "books.duckdb"), embedding_dim=DIM)
        yield store
        store.close()
    else:
        yield InMemoryStorage()


def test_upsert_assigns_ids_and_timestamps(storage) -> None:
    stored = storage.upsert_books(
        [make_book(1533, "Macbeth"), make_book(1524, "Hamlet")]
    )

    assert [book.gutenberg_id for book in stored] == [1533, 1524]
    assert all(book.id is not None for book in stored)
    assert all(book.created_at for book in stored)
    assert storage.count_books() == 2


def test_upsert_same_catalog_id_twice_keeps_one_row(storage) -> None:
    first = storage.upsert_books([make_book(1533, "Macbeth")])[0]
    second = storage.upsert_books([make_book(1533, "The Tragedy of Macbeth")])[0]

    assert storage.count_books() == 1
    assert second.id == first.id
    assert storage.get_book(1533).title == "The Tragedy of Macbeth"


def test_upsert_deduplicates_within_a_batch(storage) -> None:
    stored = storage.upsert_books(
        [make_book(84, "Frankenstein"), make_book(84, "Frankenstein; Or, The Modern Prometheus")]
    )

    assert len(stored) == 1
    assert storage.count_books() == 1
    assert storage.get_book(84).title == "Frankenstein; Or, The Modern Prometheus"


def test_upsert_without_embedding_preserves_existing_vector(storage) -> None:
    storage.upsert_books([make_book(11, "Alice", embedding=[1.0, 0.0, 0.0, 0.0])])

    storage.upsert_books([make_book(11, "Alice's Adventures in Wonderland")])

    book = storage.get_book(11)
    assert book.title == "Alice's Adventures in Wonderland"
    assert book.embedding == pytest.approx([1.0, 0.0, 0.0, 0.0])


def test_update_embedding_overwrites_and_reports_missing_rows(storage) -> None:
    storage.upsert_books([make_book(2701, "Moby Dick", embedding=[1.0, 0.0, 0.0, 0.0])])

    assert storage.update_embedding(2701, [0.0, 1.0, 0.0, 0.0]) is True
    assert storage.update_embedding(999999, [0.0, 1.0, 0.0, 0.0]) is False
    assert storage.get_book(2701).embedding == pytest.approx([0.0, 1.0, 0.0, 0.0])


def test_books_without_embedding_are_listed_in_insertion_order(storage) -> None:
    storage.upsert_books(
        [
            make_book(1, "First"),
            make_book(2, "Second", embedding=[1.0, 0.0, 0.0, 0.0]),
            make_book(3, "Third"),
        ]
    )

    missing = storage.list_books_without_embedding()
    limited = storage.list_books_without_embedding(limit=1)

    assert [book.gutenberg_id for book in missing] == [1, 3]
    assert [book.gutenberg_id for book in limited] == [1]
    assert storage.count_embedded_books() == 1
    assert storage.known_gutenberg_ids() == {1, 2, 3}


def test_similarity_search_orders_best_first_and_skips_unembedded(storage) -> None:
    storage.upsert_books(
        [
            make_book(1, "Exact", embedding=[1.0, 0.0, 0.0, 0.0]),
            make_book(2, "Close", embedding=[0.8, 0.6, 0.0, 0.0]),
            make_book(3, "Orthogonal", embedding=[0.0, 0.0, 1.0, 0.0]),
            make_book(4, "Opposite", embedding=[-1.0, 0.0, 0.0, 0.0]),
            make_book(5, "Unembedded"),
        ]
    )

    results = storage.search_books_by_similarity(
        [1.0, 0.0, 0.0, 0.0], match_threshold=0.0, match_count=10
    )

    assert [book.title for book in results] == ["Exact", "Close"]
    assert results[0].similarity == pytest.approx(1.0, abs=1e-5)
    assert results[1].similarity == pytest.approx(0.8, abs=1e-5)


def test_similarity_search_honours_threshold_and_count(storage) -> None:
    storage.upsert_books(
        [
            make_book(1, "Exact", embedding=[1.0, 0.0, 0.0, 0.0]),
            make_book(2, "Close", embedding=[0.8, 0.6, 0.0, 0.0]),
            make_book(3, "Loose", embedding=[0.1, 0.99, 0.0, 0.0]),
        ]
    )

    above = storage.search_books_by_similarity(
        [1.0, 0.0, 0.0, 0.0], match_threshold=0.5, match_count=10
    )
    capped = storage.search_books_by_similarity(
        [1.0, 0.0, 0.0, 0.0], match_threshold=0.0, match_count=1
    )

    assert [book.title for book in above] == ["Exact", "Close"]
    assert [book.title for book in capped] == ["Exact"]


def test_search_logs_are_appended(storage) -> None:
    first = storage.insert_search_log(
        SearchLogRecord(query="whales", results_count=3, top_similarity=0.7, search_time_ms=12)
    )
    second = storage.insert_search_log(
        SearchLogRecord(query="pirates", results_count=0, top_similarity=0.0, search_time_ms=5)
    )

    logs = storage.list_search_logs()

    assert second > first
    assert storage.count_search_logs() == 2
    assert [log.query for log in logs] == ["pirates", "whales"]
    assert logs[1].top_similarity == pytest.approx(0.7)
    assert logs[1].created_at


def test_duckdb_rejects_wrong_dimension(tmp_path: Path) -> None:
    store = DuckDBStorage(str(tmp_path / "books.duckdb"), embedding_dim=DIM)
    try:
        with pytest.raises(ValueError, match="expected 4"):
            store.upsert_books([make_book(1, "Short", embedding=[1.0, 0.0])])
    finally:
        store.close()


def test_duckdb_persists_across_connections(tmp_path: Path) -> None:
    db_path = str(tmp_path / "books.duckdb")
    store = DuckDBStorage(db_path, embedding_dim=DIM)
    store.upsert_books([make_book(345, "Dracula", embedding=[0.0, 0.0, 1.0, 0.0])])
    store.close()

    reopened = DuckDBStorage(db_path, embedding_dim=DIM)
    try:
        book = reopened.get_book(345)
        assert book is not None
        assert book.has_embedding
        assert reopened.count_embedded_books() == 1
    finally:
        reopened.close()


def test_to_result_omits_embedding() -> None:
    book = make_book(1, "Macbeth", embedding=[1.0, 0.0, 0.0, 0.0]).with_similarity(0.5)

    payload = book.to_result()

    assert "embedding" not in payload
    assert payload["gutenbergId"] == 1
    assert payload["similarity"] == 0.5
