"""
Error types shared across the search service.
"""

from __future__ import annotations


class GutenbergSearchError(Exception):
    """Base class for errors raised by gutenberg_search."""


class ConfigurationError(GutenbergSearchError, ValueError):
    """A required setting (API key, database path) is missing or unusable."""


class InvalidQueryError(GutenbergSearchError, ValueError):
    """The search query is missing, not a string, or blank."""


class EmbeddingError(GutenbergSearchError):
    """The embedding provider failed or returned an unusable vector."""


class CatalogError(GutenbergSearchError):
    """The book catalog could not be reached or returned a bad payload."""


class SearchPipelineError(GutenbergSearchError):
    """A search request failed at a specific stage of the pipeline.

    ``stages`` lists the stages entered before the failure, ending in ``failed``.
    """

    def __init__(self, stage: str, message: str, *, stages: list[str] | None = None) -> None:
        super().__init__(message)
        self.stage = stage
        self.stages = list(stages or [])
