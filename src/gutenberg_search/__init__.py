"""
Gutenberg Search - semantic search over Project Gutenberg books.

Books are pulled from the Gutendex catalog, embedded with Google Gemini
embeddings and stored in DuckDB, where queries are answered by cosine
similarity. When the store has no good match, more books are fetched
from the catalog and the search is retried.

Example usage:
    >>> from gutenberg_search import BookSearchService, DuckDBStorage, EmbeddingProvider
    >>> storage = DuckDBStorage("books.duckdb")
    >>> service = BookSearchService(storage, EmbeddingProvider(api_key="..."))
    >>> outcome = await service.search("a king murdered in Scotland")
"""

from .catalog import CatalogClient
from .config import Settings, configure_logging
from .embeddings import EmbeddingProvider
from .errors import (
    CatalogError,
    ConfigurationError,
    EmbeddingError,
    GutenbergSearchError,
    InvalidQueryError,
    SearchPipelineError,
)
from .ingestion import IngestionPipeline
from .search import BookSearchService, SearchConfig, SearchOutcome
from .storage import BookRecord, DuckDBStorage, InMemoryStorage

__all__ = [
    # Catalog
    "CatalogClient",
    # Config
    "Settings",
    "configure_logging",
    # Embeddings
    "EmbeddingProvider",
    # Errors
    "CatalogError",
    "ConfigurationError",
    "EmbeddingError",
    "GutenbergSearchError",
    "InvalidQueryError",
    "SearchPipelineError",
    # Pipelines
    "IngestionPipeline",
    "BookSearchService",
    "SearchConfig",
    "SearchOutcome",
    # Storage
    "BookRecord",
    "DuckDBStorage",
    "InMemoryStorage",
]
