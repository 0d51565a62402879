"""
Configuration helpers for the search service.

Settings are read from the environment (a local ``.env`` file is loaded
first when present) and can be overridden explicitly by callers.
"""

from __future__ import annotations

import logging.config
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from .errors import ConfigurationError


DEFAULT_DB_PATH = "~/.gutenberg_search/books.duckdb"
DEFAULT_CATALOG_URL = "https://gutendex.com"
DEFAULT_EMBEDDING_MODEL = "gemini-embedding-001"
DEFAULT_EMBEDDING_DIM = 1536
DEFAULT_EMBEDDING_BATCH_SIZE = 50

ENV_DB_PATH = "GUTENBERG_SEARCH_DB_PATH"
ENV_API_KEY = "GOOGLE_API_KEY"
ENV_EMBEDDING_MODEL = "GUTENBERG_SEARCH_EMBEDDING_MODEL"
ENV_EMBEDDING_DIM = "GUTENBERG_SEARCH_EMBEDDING_DIM"
ENV_EMBEDDING_BATCH_SIZE = "GUTENBERG_SEARCH_EMBEDDING_BATCH_SIZE"
ENV_CATALOG_URL = "GUTENDEX_API_URL"
ENV_LOG_LEVEL = "GUTENBERG_SEARCH_LOG_LEVEL"


def resolve_db_path(override_path: str | None = None) -> str:
    """
    Resolve the DuckDB path from an explicit override, env var, or default.

    Precedence:
    1) explicit override_path
    2) GUTENBERG_SEARCH_DB_PATH
    3) default path
    """
    raw_path = override_path or os.getenv(ENV_DB_PATH) or DEFAULT_DB_PATH
    resolved = Path(raw_path).expanduser().resolve()
    try:
        resolved.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise ConfigurationError(
            f"Database path {resolved} is not usable: {exc}"
        ) from exc
    return str(resolved)


@dataclass(frozen=True)
class Settings:
    """Runtime settings for the API server and CLI."""

    db_path: str | None = None
    google_api_key: str | None = None
    embedding_model: str = DEFAULT_EMBEDDING_MODEL
    embedding_dim: int = DEFAULT_EMBEDDING_DIM
    embedding_batch_size: int = DEFAULT_EMBEDDING_BATCH_SIZE
    catalog_url: str = DEFAULT_CATALOG_URL
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, *, load_env_file: bool = True) -> Settings:
        if load_env_file:
            load_dotenv()
        return cls(
            db_path=os.getenv(ENV_DB_PATH),
            google_api_key=os.getenv(ENV_API_KEY) or None,
            embedding_model=os.getenv(ENV_EMBEDDING_MODEL, DEFAULT_EMBEDDING_MODEL),
            embedding_dim=int(os.getenv(ENV_EMBEDDING_DIM, str(DEFAULT_EMBEDDING_DIM))),
            embedding_batch_size=int(
                os.getenv(ENV_EMBEDDING_BATCH_SIZE, str(DEFAULT_EMBEDDING_BATCH_SIZE))
            ),
            catalog_url=os.getenv(ENV_CATALOG_URL, DEFAULT_CATALOG_URL).rstrip("/"),
            log_level=os.getenv(ENV_LOG_LEVEL, "INFO").upper(),
        )

    def resolved_db_path(self) -> str:
        return resolve_db_path(self.db_path)

    def require_embeddings(self) -> None:
        """Raise ConfigurationError when the embedding provider cannot be built."""
        if not self.google_api_key:
            raise ConfigurationError(
                f"Embedding provider not configured: {ENV_API_KEY} is not set"
            )

    def require_search(self) -> str:
        """Validate everything a search needs and return the database path."""
        self.require_embeddings()
        if self.embedding_dim <= 0:
            raise ConfigurationError(
                f"Database not configured: invalid embedding dimension {self.embedding_dim}"
            )
        return self.resolved_db_path()


def logging_config(level: str = "INFO") -> dict:
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {
                "format": "%(asctime)s [%(levelname)s][%(name)s:%(lineno)d] %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": {
            "console": {
                "level": "DEBUG",
                "formatter": "standard",
                "class": "logging.StreamHandler",
                "stream": "ext://sys.stderr",
            },
        },
        "loggers": {
            "gutenberg_search": {
                "handlers": ["console"],
                "level": level,
                "propagate": False,
            },
            "httpx": {"level": "WARNING"},
            "uvicorn": {"level": "WARNING"},
        },
    }


def configure_logging(level: str = "INFO") -> None:
    """Install the package logging configuration."""
    logging.config.dictConfig(logging_config(level))
