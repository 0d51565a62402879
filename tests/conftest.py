"""Shared fakes for the catalog, the embedding provider and the book store."""

from __future__ import annotations

from typing import Any

import httpx
import pytest

from gutenberg_search.catalog import CatalogClient
from gutenberg_search.errors import EmbeddingError
from gutenberg_search.storage import BookRecord

DIM = 4
CATALOG_URL = "https://gutendex.test"


def gutendex_record(
    gutenberg_id: int,
    title: str,
    author: str = "Doe, Jane",
    *,
    subjects: list[str] | None = None,
    bookshelves: list[str] | None = None,
    languages: list[str] | None = None,
    formats: dict[str, str] | None = None,
    summaries: list[str] | None = None,
) -> dict[str, Any]:
    return {
        "id": gutenberg_id,
        "title": title,
        "authors": [{"name": author, "birth_year": None, "death_year": None}],
        "subjects": subjects or [],
        "bookshelves": bookshelves or [],
        "languages": languages or ["en"],
        "formats": formats or {},
        "summaries": summaries or [],
        "download_count": 100,
    }


class FakeGutendex:
    """Serves Gutendex-shaped responses through an httpx.MockTransport."""

    def __init__(
        self,
        pages: dict[int, list[dict[str, Any]]] | None = None,
        *,
        fail_pages: set[int] | None = None,
        texts: dict[str, str] | None = None,
    ) -> None:
        self.pages = pages or {}
        self.fail_pages = fail_pages or set()
        self.texts = texts or {}
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path == "/books/":
            ids = request.url.params.get("ids")
            if ids is not None:
                matches = [
                    record
                    for records in self.pages.values()
                    for record in records
                    if str(record["id"]) == ids
                ]
                return httpx.Response(
                    200, json={"count": len(matches), "next": None, "results": matches}
                )
            page = int(request.url.params.get("page", "1"))
            if page in self.fail_pages:
                return httpx.Response(503, json={"detail": "unavailable"})
            records = self.pages.get(page, [])
            has_next = page + 1 in self.pages or page + 1 in self.fail_pages
            return httpx.Response(
                200,
                json={
                    "count": sum(len(r) for r in self.pages.values()),
                    "next": f"{CATALOG_URL}/books/?page={page + 1}" if has_next else None,
                    "previous": None,
                    "results": records,
                },
            )
        text = self.texts.get(str(request.url))
        if text is not None:
            return httpx.Response(200, text=text)
        return httpx.Response(404, text="Not found")

    def page_requests(self) -> list[int]:
        return [
            int(r.url.params["page"]) for r in self.requests if "page" in r.url.params
        ]

    def client(self) -> CatalogClient:
        transport = httpx.MockTransport(self.handler)
        return CatalogClient(
            base_url=CATALOG_URL,
            client=httpx.AsyncClient(transport=transport),
            page_delay=0,
        )


class FakeEmbeddingProvider:
    """Returns hand-picked vectors keyed by query text or book title."""

    def __init__(
        self,
        *,
        queries: dict[str, list[float]] | None = None,
        books: dict[str, list[float]] | None = None,
        default: list[float] | None = None,
        fail_titles: set[str] | None = None,
        fail_queries: bool = False,
    ) -> None:
        self.dim = DIM
        self.queries = queries or {}
        self.books = books or {}
        self.default = default or [0.0, 0.0, 0.0, 1.0]
        self.fail_titles = fail_titles or set()
        self.fail_queries = fail_queries
        self.calls: list[tuple[str, str]] = []

    async def embed_query(self, query: str) -> list[float]:
        self.calls.append(("query", query))
        if self.fail_queries:
            raise EmbeddingError("Embedding request failed: quota exceeded")
        return list(self.queries.get(query, self.default))

    async def embed_book(self, book: BookRecord) -> list[float]:
        self.calls.append(("book", book.title))
        if book.title in self.fail_titles:
            raise EmbeddingError("Embedding request failed: quota exceeded")
        return list(self.books.get(book.title, self.default))

    def embedded_titles(self) -> list[str]:
        return [value for kind, value in self.calls if kind == "book"]


def make_book(
    gutenberg_id: int,
    title: str,
    *,
    author: str = "Doe, Jane",
    embedding: list[float] | str | None = None,
) -> BookRecord:
    return BookRecord(
        gutenberg_id=gutenberg_id,
        title=title,
        author=author,
        description=f"An English work by {author}.",
        subjects=["Fiction"],
        languages=["en"],
        embedding=embedding,
    )


@pytest.fixture()
def fake_embeddings() -> FakeEmbeddingProvider:
    return FakeEmbeddingProvider()
