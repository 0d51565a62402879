"""
Client for the Gutendex catalog of Project Gutenberg books.

Provides paginated metadata fetching for seeding the book store, plus
single-book lookups used by the content and summary endpoints.
"""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Iterable

import httpx

from .config import DEFAULT_CATALOG_URL
from .errors import CatalogError
from .storage import BookRecord

logger = logging.getLogger(__name__)

USER_AGENT = "Gutenberg-Search-App/1.0"
PAGE_SIZE = 32

_TEXT_FORMATS: tuple[str, ...] = (
    "text/plain; charset=utf-8",
    "text/plain; charset=us-ascii",
    "text/plain",
)
_START_MARKERS: tuple[str, ...] = ("*** START OF", "*** BEGIN OF")
_END_MARKERS: tuple[str, ...] = ("*** END OF", "*** THE END")
_SUMMARY_DISCLAIMER_RE = re.compile(
    r"\s*\(This is an automatically generated summary\.?\)\s*$", re.IGNORECASE
)


def generate_description(raw: dict[str, Any]) -> str:
    """Build a short prose description from catalog metadata."""
    author = primary_author(raw)
    subjects = [str(s) for s in raw.get("subjects") or []]
    languages = [str(lang) for lang in raw.get("languages") or []]
    bookshelves = [str(b) for b in raw.get("bookshelves") or []]

    language = languages[0] if languages else "classic"
    language_display = "English" if language == "en" else language
    article = "An" if language_display[:1].lower() in ("a", "e", "i", "o", "u") else "A"
    description = f"{article} {language_display} work by {author}."

    if subjects:
        description += f" This book explores themes related to {', '.join(subjects[:3])}."
    if bookshelves:
        description += f" Categorized under {', '.join(bookshelves[:2])}."
    return description


def primary_author(raw: dict[str, Any]) -> str:
    authors = raw.get("authors") or []
    if authors and isinstance(authors[0], dict) and authors[0].get("name"):
        return str(authors[0]["name"])
    return "Unknown Author"


def record_to_book(raw: dict[str, Any]) -> BookRecord:
    """Convert a raw Gutendex record into a BookRecord without embedding."""
    return BookRecord(
        gutenberg_id=int(raw["id"]),
        title=str(raw.get("title") or "Unknown Title"),
        author=primary_author(raw),
        description=generate_description(raw),
        subjects=[str(s) for s in raw.get("subjects") or []],
        languages=[str(lang) for lang in raw.get("languages") or []],
        bookshelves=[str(b) for b in raw.get("bookshelves") or []],
    )


def select_text_url(formats: dict[str, str] | None) -> str | None:
    """Pick the best plain-text download URL, preferring UTF-8."""
    if not formats:
        return None
    for mime_type in _TEXT_FORMATS:
        url = formats.get(mime_type)
        if url:
            return url
    return None


def clean_gutenberg_text(text: str) -> str:
    """Strip the Project Gutenberg license header and footer from a book text."""
    lines = text.split("\n")
    start = 0
    end = len(lines)

    for i in range(min(len(lines), 500)):
        if any(marker in lines[i] for marker in _START_MARKERS):
            start = i + 1
            break

    for i in range(len(lines) - 1, max(0, len(lines) - 200) - 1, -1):
        if any(marker in lines[i] for marker in _END_MARKERS):
            end = i
            break

    return "\n".join(lines[start:end]).strip()


def clean_summary(summary: str | None) -> str | None:
    if not summary:
        return None
    cleaned = _SUMMARY_DISCLAIMER_RE.sub("", summary).strip()
    return cleaned or None


@dataclass(frozen=True)
class CatalogPage:
    """One page of raw catalog records."""

    page: int
    records: list[dict[str, Any]]
    has_next: bool


@dataclass(frozen=True)
class CatalogFetchResult:
    """Outcome of a multi-page catalog fetch."""

    records: list[dict[str, Any]] = field(default_factory=list)
    pages_fetched: int = 0
    skipped_known: int = 0
    next_page: int | None = None
    error: str | None = None

    @property
    def exhausted(self) -> bool:
        return self.next_page is None and self.error is None


class CatalogClient:
    """Async Gutendex client backed by httpx."""

    def __init__(
        self,
        *,
        base_url: str = DEFAULT_CATALOG_URL,
        client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
        page_delay: float = 0.1,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.page_delay = page_delay
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
            headers={"User-Agent": USER_AGENT},
        )

    async def __aenter__(self) -> CatalogClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def fetch_page(self, page: int) -> CatalogPage:
        data = await self._get_json(f"{self.base_url}/books/", params={"page": page})
        results = data.get("results")
        if not isinstance(results, list):
            raise CatalogError(f"Catalog page {page} has no results list")
        return CatalogPage(
            page=page,
            records=[r for r in results if isinstance(r, dict)],
            has_next=bool(data.get("next")),
        )

    async def fetch_books(
        self,
        count: int,
        *,
        start_page: int = 1,
        known_ids: Iterable[int] = (),
        max_pages: int | None = None,
    ) -> CatalogFetchResult:
        """Collect up to *count* records not already in *known_ids*.

        Pages that are entirely known are skipped and the fetch advances to
        the next page. A failed page ends the fetch; whatever was collected
        before it is still returned.
        """
        collected: list[dict[str, Any]] = []
        seen: set[int] = {int(i) for i in known_ids}
        skipped = 0
        pages = 0
        page = start_page
        next_page: int | None = start_page
        error: str | None = None

        while len(collected) < count:
            if max_pages is not None and pages >= max_pages:
                break
            try:
                result = await self.fetch_page(page)
            except CatalogError as exc:
                logger.warning("Catalog fetch stopped at page %d: %s", page, exc)
                error = str(exc)
                next_page = page
                break
            pages += 1

            if not result.records:
                next_page = None
                break

            fresh: list[dict[str, Any]] = []
            for raw in result.records:
                book_id = raw.get("id")
                if not isinstance(book_id, int) or book_id in seen:
                    skipped += 1
                    continue
                seen.add(book_id)
                fresh.append(raw)
            if not fresh:
                logger.info("Catalog page %d already known, advancing", page)
            needed = count - len(collected)
            collected.extend(fresh[:needed])
            logger.debug(
                "Catalog page %d: %d new, %d collected so far", page, len(fresh), len(collected)
            )
            if len(fresh) > needed:
                # Unread records remain on this page.
                next_page = page
                break

            if not result.has_next:
                next_page = None
                break
            page += 1
            next_page = page
            if len(collected) < count and self.page_delay > 0:
                await asyncio.sleep(self.page_delay)

        return CatalogFetchResult(
            records=collected,
            pages_fetched=pages,
            skipped_known=skipped,
            next_page=next_page,
            error=error,
        )

    async def fetch_book(self, gutenberg_id: int) -> dict[str, Any] | None:
        data = await self._get_json(
            f"{self.base_url}/books/", params={"ids": str(int(gutenberg_id))}
        )
        results = data.get("results") or []
        if not results or not isinstance(results[0], dict):
            return None
        return results[0]

    async def fetch_text(self, url: str) -> str:
        try:
            response = await self._client.get(url, headers={"User-Agent": USER_AGENT})
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise CatalogError(f"Failed to fetch content from {url}: {exc}") from exc
        return response.text

    async def fetch_summary(self, gutenberg_id: int) -> str | None:
        book = await self.fetch_book(gutenberg_id)
        if book is None:
            return None
        summaries = book.get("summaries") or []
        if not summaries:
            return None
        return clean_summary(str(summaries[0]))

    async def _get_json(self, url: str, *, params: dict[str, Any]) -> dict[str, Any]:
        try:
            response = await self._client.get(
                url, params=params, headers={"User-Agent": USER_AGENT}
            )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise CatalogError(f"Catalog request failed: {exc}") from exc
        try:
            data = response.json()
        except ValueError as exc:
            raise CatalogError(f"Catalog returned malformed JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise CatalogError("Catalog returned an unexpected payload")
        return data
