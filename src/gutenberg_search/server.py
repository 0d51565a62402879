"""
FastAPI server for Gutenberg Search.

Exposes the semantic search endpoint, book content/summary proxies for the
Gutendex catalog, and administrative seeding/backfill endpoints.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from .catalog import CatalogClient, clean_gutenberg_text, select_text_url
from .config import Settings, configure_logging
from .embeddings import EmbeddingProvider
from .errors import CatalogError, ConfigurationError, InvalidQueryError, SearchPipelineError
from .ingestion import IngestionPipeline
from .search import BookSearchService, validate_query
from .storage import DuckDBStorage

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Gutenberg Search",
    description="Semantic search over public-domain books from Project Gutenberg",
)


class SearchRequest(BaseModel):
    """Request model for search queries."""

    query: Any = None


class SeedRequest(BaseModel):
    """Request model for catalog seeding."""

    totalBooks: int = Field(default=200, ge=1, le=5000)


def get_settings() -> Settings:
    return Settings.from_env()


def open_storage(settings: Settings) -> DuckDBStorage:
    return DuckDBStorage(settings.resolved_db_path(), embedding_dim=settings.embedding_dim)


def build_embedding_provider(settings: Settings) -> EmbeddingProvider:
    return EmbeddingProvider.from_settings(settings)


def build_catalog(settings: Settings) -> CatalogClient:
    return CatalogClient(base_url=settings.catalog_url)


def _parse_book_id(raw_id: str | None) -> int | None:
    if raw_id is None or not raw_id.strip().isdigit():
        return None
    return int(raw_id.strip())


def _book_summary(book: Any) -> dict[str, Any] | None:
    if book is None:
        return None
    return {"title": book.title, "gutenbergId": book.gutenberg_id}


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.post("/api/search")
async def search_books(request: SearchRequest):
    """Embed the query and return the closest books, best first."""
    settings = get_settings()
    try:
        settings.require_search()
    except ConfigurationError as exc:
        logger.error("Search rejected: %s", exc)
        return JSONResponse({"error": str(exc)}, status_code=500)

    try:
        query = validate_query(request.query)
    except InvalidQueryError as exc:
        return JSONResponse({"error": str(exc)}, status_code=400)

    try:
        storage = open_storage(settings)
    except Exception as exc:
        logger.exception("Could not open book store")
        return JSONResponse(
            {"error": "Database not configured", "details": str(exc)}, status_code=500
        )

    catalog = build_catalog(settings)
    try:
        provider = build_embedding_provider(settings)
        service = BookSearchService(
            storage,
            provider,
            IngestionPipeline(storage, provider, catalog),
        )
        outcome = await service.search(query)
        logger.info(
            "Search %r: %d results in %d ms",
            query,
            len(outcome.results),
            outcome.elapsed_ms,
        )
        return outcome.to_response()
    except ConfigurationError as exc:
        return JSONResponse({"error": str(exc)}, status_code=500)
    except SearchPipelineError as exc:
        return JSONResponse(
            {"error": "Internal server error", "details": str(exc), "stage": exc.stage},
            status_code=500,
        )
    except Exception as exc:
        logger.exception("Unexpected search failure")
        return JSONResponse(
            {"error": "Internal server error", "details": str(exc)}, status_code=500
        )
    finally:
        await catalog.aclose()
        storage.close()


@app.get("/api/book-content")
async def book_content(id: str | None = None):
    """Fetch the full text of a book with the Gutenberg boilerplate removed."""
    book_id = _parse_book_id(id)
    if book_id is None:
        return JSONResponse({"error": "Book ID is required"}, status_code=400)

    settings = get_settings()
    catalog = build_catalog(settings)
    try:
        metadata = await catalog.fetch_book(book_id)
        if metadata is None:
            return JSONResponse(
                {"error": "Book not found or content unavailable"}, status_code=404
            )
        text_url = select_text_url(metadata.get("formats"))
        if text_url is None:
            return JSONResponse(
                {"error": "Book not found or content unavailable"}, status_code=404
            )
        content = clean_gutenberg_text(await catalog.fetch_text(text_url))
        return {
            "success": True,
            "data": {"metadata": metadata, "content": content, "textUrl": text_url},
        }
    except CatalogError as exc:
        logger.warning("Content for book %d unavailable: %s", book_id, exc)
        return JSONResponse(
            {"error": "Book not found or content unavailable"}, status_code=404
        )
    except Exception as exc:
        logger.exception("Book content failure for %d", book_id)
        return JSONResponse(
            {"error": "Failed to fetch book content", "details": str(exc)},
            status_code=500,
        )
    finally:
        await catalog.aclose()


@app.get("/api/book-summary")
async def book_summary(id: str | None = None):
    """Return the catalog's generated summary, or an empty answer on any failure."""
    book_id = _parse_book_id(id)
    if book_id is None:
        return JSONResponse({"error": "Book ID is required"}, status_code=400)

    settings = get_settings()
    catalog = build_catalog(settings)
    try:
        summary = await catalog.fetch_summary(book_id)
    except CatalogError as exc:
        logger.warning("Summary for book %d unavailable: %s", book_id, exc)
        summary = None
    finally:
        await catalog.aclose()
    return {"success": True, "summary": summary, "hasSummary": summary is not None}


@app.post("/api/seed")
async def seed_books(request: SeedRequest | None = None):
    """Fetch new catalog books, embed them and store them."""
    total_books = request.totalBooks if request is not None else 200
    settings = get_settings()
    try:
        settings.require_embeddings()
        storage = open_storage(settings)
    except ConfigurationError as exc:
        return JSONResponse({"error": str(exc)}, status_code=500)

    catalog = build_catalog(settings)
    try:
        provider = build_embedding_provider(settings)
        result = await IngestionPipeline(storage, provider, catalog).seed(total_books)
        if result.fetched == 0 and result.skipped == 0:
            return JSONResponse(
                {"error": "No books fetched from API", "details": result.catalog_error},
                status_code=500,
            )
        return {
            "success": True,
            "message": f"Database seeded with {result.processed} books",
            "booksCount": result.fetched,
            "processed": result.processed,
            "skipped": result.skipped,
            "errors": result.errors,
        }
    except Exception as exc:
        logger.exception("Seeding failed")
        return JSONResponse(
            {"error": "Database seeding failed", "details": str(exc)}, status_code=500
        )
    finally:
        await catalog.aclose()
        storage.close()


@app.post("/api/embed-all")
async def embed_all():
    """Backfill embeddings for every stored book that lacks one."""
    settings = get_settings()
    try:
        settings.require_embeddings()
        storage = open_storage(settings)
    except ConfigurationError as exc:
        return JSONResponse({"error": str(exc)}, status_code=500)

    try:
        provider = build_embedding_provider(settings)
        result = await IngestionPipeline(storage, provider).embed_missing(batch_size=10)
        if result.total == 0:
            return {
                "success": True,
                "message": "All books already have embeddings!",
                "booksProcessed": 0,
                "booksWithErrors": 0,
                "totalBooks": 0,
            }
        return {
            "success": True,
            "message": "Embedding generation completed",
            "booksProcessed": result.processed,
            "booksWithErrors": result.errors,
            "totalBooks": result.total,
        }
    except Exception as exc:
        logger.exception("Embedding backfill failed")
        return JSONResponse(
            {"error": "Embedding generation failed", "details": str(exc)},
            status_code=500,
        )
    finally:
        storage.close()


@app.get("/api/status")
async def store_status():
    """Report book, embedding and search log counts for the store."""
    settings = get_settings()
    try:
        storage = open_storage(settings)
    except ConfigurationError as exc:
        return JSONResponse({"error": str(exc)}, status_code=500)
    try:
        books = storage.list_books()
        return {
            "bookCount": len(books),
            "embeddedCount": storage.count_embedded_books(),
            "searchCount": storage.count_search_logs(),
            "firstBook": _book_summary(books[0] if books else None),
            "lastBook": _book_summary(books[-1] if books else None),
        }
    finally:
        storage.close()


def run_server(host: str = "127.0.0.1", port: int = 8000, log_level: str = "INFO"):
    """Run the FastAPI server."""
    import uvicorn

    configure_logging(log_level)
    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    run_server()
