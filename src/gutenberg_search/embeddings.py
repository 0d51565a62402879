"""
Embedding provider for vector-based semantic search.

Wraps the Google GenAI embedding API (async client) for batch and
single-query embedding with configurable model, dimensions, and batch size.
"""

from __future__ import annotations

import logging
import os
from typing import Any

from google.genai import Client as GenAIClient

from .config import (
    DEFAULT_EMBEDDING_BATCH_SIZE,
    DEFAULT_EMBEDDING_DIM,
    DEFAULT_EMBEDDING_MODEL,
    ENV_API_KEY,
    ENV_EMBEDDING_BATCH_SIZE,
    ENV_EMBEDDING_DIM,
    ENV_EMBEDDING_MODEL,
    Settings,
)
from .errors import ConfigurationError, EmbeddingError
from .storage import BookRecord

logger = logging.getLogger(__name__)


def book_embedding_text(book: BookRecord) -> str:
    """Text that represents a book in embedding space."""
    return f"{book.title} by {book.author}. {book.description}"


class EmbeddingProvider:
    """Generate text embeddings via Google GenAI."""

    def __init__(
        self,
        *,
        api_key: str | None = None,
        model: str | None = None,
        dim: int | None = None,
        batch_size: int | None = None,
        client: Any | None = None,
    ) -> None:
        self.model = model or os.getenv(ENV_EMBEDDING_MODEL, DEFAULT_EMBEDDING_MODEL)
        self.dim = dim or int(os.getenv(ENV_EMBEDDING_DIM, str(DEFAULT_EMBEDDING_DIM)))
        self.batch_size = batch_size or int(
            os.getenv(ENV_EMBEDDING_BATCH_SIZE, str(DEFAULT_EMBEDDING_BATCH_SIZE))
        )

        if client is not None:
            self._client = client
        else:
            resolved_key = api_key or os.getenv(ENV_API_KEY)
            if not resolved_key:
                raise ConfigurationError(
                    f"{ENV_API_KEY} not found. "
                    "Provide api_key or set the environment variable."
                )
            self._client = GenAIClient(api_key=resolved_key)

    @classmethod
    def from_settings(cls, settings: Settings, *, client: Any | None = None) -> EmbeddingProvider:
        if client is None:
            settings.require_embeddings()
        return cls(
            api_key=settings.google_api_key,
            model=settings.embedding_model,
            dim=settings.embedding_dim,
            batch_size=settings.embedding_batch_size,
            client=client,
        )

    async def embed_texts(
        self,
        texts: list[str],
        *,
        task_type: str = "RETRIEVAL_DOCUMENT",
    ) -> list[list[float]]:
        """Embed a list of texts in batches.

        Returns a list of embedding vectors in the same order as *texts*.
        """
        for text in texts:
            self._check_text(text)
        all_embeddings: list[list[float]] = []
        for start in range(0, len(texts), self.batch_size):
            batch = texts[start : start + self.batch_size]
            all_embeddings.extend(await self._embed(batch, task_type=task_type))
        return all_embeddings

    async def embed_query(self, query: str) -> list[float]:
        """Embed a single query text for retrieval."""
        self._check_text(query)
        vectors = await self._embed([query], task_type="RETRIEVAL_QUERY")
        return vectors[0]

    async def embed_book(self, book: BookRecord) -> list[float]:
        """Embed a stored book using its title, author and description."""
        vectors = await self.embed_texts([book_embedding_text(book)])
        return vectors[0]

    async def _embed(self, contents: list[str], *, task_type: str) -> list[list[float]]:
        try:
            result = await self._client.aio.models.embed_content(
                model=self.model,
                contents=contents,
                config={
                    "task_type": task_type,
                    "output_dimensionality": self.dim,
                },
            )
        except Exception as exc:
            raise EmbeddingError(f"Embedding request failed: {exc}") from exc

        embeddings = list(result.embeddings or [])
        if len(embeddings) != len(contents):
            raise EmbeddingError(
                f"Embedding provider returned {len(embeddings)} vectors for {len(contents)} inputs"
            )
        vectors: list[list[float]] = []
        for emb in embeddings:
            values = [float(v) for v in (emb.values or [])]
            if len(values) != self.dim:
                raise EmbeddingError(
                    f"Embedding has {len(values)} dimensions, expected {self.dim}"
                )
            vectors.append(values)
        logger.debug("Embedded %d text(s) with %s", len(contents), self.model)
        return vectors

    @staticmethod
    def _check_text(text: str) -> None:
        if not isinstance(text, str) or not text.strip():
            raise ValueError("Cannot embed empty text")
