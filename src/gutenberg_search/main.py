import asyncio
from dataclasses import replace
from typing import Annotated

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from typer import Argument, Exit, Option, Typer

from .catalog import CatalogClient
from .config import Settings, configure_logging
from .embeddings import EmbeddingProvider
from .errors import ConfigurationError, GutenbergSearchError
from .ingestion import IngestionPipeline
from .samples import sample_books
from .search import BookSearchService, SearchConfig, SearchOutcome
from .storage import DuckDBStorage, InMemoryStorage

app = Typer(help="Semantic search over Project Gutenberg books.")
console = Console()


def _settings(db_path: str | None, log_level: str) -> Settings:
    settings = Settings.from_env()
    if db_path:
        settings = replace(settings, db_path=db_path)
    configure_logging(log_level)
    return settings


def _open_storage(settings: Settings) -> DuckDBStorage:
    return DuckDBStorage(settings.resolved_db_path(), embedding_dim=settings.embedding_dim)


def _print_results(outcome: SearchOutcome) -> None:
    table = Table(title=f"Results for '{outcome.query}' ({outcome.elapsed_ms} ms)")
    table.add_column("#", justify="right")
    table.add_column("Title")
    table.add_column("Author")
    table.add_column("Gutenberg ID", justify="right")
    table.add_column("Similarity", justify="right")
    for rank, book in enumerate(outcome.results, start=1):
        table.add_row(
            str(rank),
            book.title,
            book.author,
            str(book.gutenberg_id),
            f"{(book.similarity or 0.0) * 100:.1f}%",
        )
    console.print(table)
    if outcome.replenished:
        console.print("[yellow]Results were thin; new books were fetched from the catalog.[/]")
    if not outcome.logged:
        console.print("[yellow]The search could not be logged.[/]")


def _fail(exc: Exception) -> None:
    console.print(f"[bold red]Error:[/] {exc}")
    raise Exit(code=1)


async def _run_search(settings: Settings, query: str, limit: int) -> SearchOutcome:
    settings.require_search()
    storage = _open_storage(settings)
    try:
        provider = EmbeddingProvider.from_settings(settings)
        async with CatalogClient(base_url=settings.catalog_url) as catalog:
            service = BookSearchService(
                storage,
                provider,
                IngestionPipeline(storage, provider, catalog),
                SearchConfig(result_limit=limit),
            )
            return await service.search(query)
    finally:
        storage.close()


@app.command()
def serve(
    host: Annotated[str, Option(help="Interface to bind.")] = "127.0.0.1",
    port: Annotated[int, Option(help="Port to listen on.")] = 8000,
    log_level: Annotated[str, Option("--log-level")] = "INFO",
) -> None:
    """Run the HTTP API."""
    from .server import run_server

    run_server(host=host, port=port, log_level=log_level)


@app.command()
def search(
    query: Annotated[str, Argument(help="Natural-language description of the book you want.")],
    limit: Annotated[int, Option("--limit", "-n", min=1, max=50)] = 10,
    db_path: Annotated[str | None, Option("--db-path")] = None,
    log_level: Annotated[str, Option("--log-level")] = "WARNING",
) -> None:
    """Search the book store."""
    settings = _settings(db_path, log_level)
    try:
        outcome = asyncio.run(_run_search(settings, query, limit))
    except GutenbergSearchError as exc:
        _fail(exc)
    _print_results(outcome)


@app.command()
def seed(
    total_books: Annotated[int, Option("--total-books", "-t", min=1)] = 200,
    db_path: Annotated[str | None, Option("--db-path")] = None,
    log_level: Annotated[str, Option("--log-level")] = "INFO",
) -> None:
    """Fetch books from the catalog, embed them and store them."""
    settings = _settings(db_path, log_level)

    async def _seed():
        settings.require_embeddings()
        storage = _open_storage(settings)
        try:
            provider = EmbeddingProvider.from_settings(settings)
            async with CatalogClient(base_url=settings.catalog_url) as catalog:
                return await IngestionPipeline(storage, provider, catalog).seed(total_books)
        finally:
            storage.close()

    try:
        with console.status("Seeding the book store..."):
            result = asyncio.run(_seed())
    except ConfigurationError as exc:
        _fail(exc)
    console.print(
        Panel(
            f"Fetched: {result.fetched}\nStored with embeddings: {result.processed}\n"
            f"Already known: {result.skipped}\nErrors: {result.errors}",
            title="Seed complete",
            title_align="left",
            border_style="bold green" if not result.catalog_error else "bold yellow",
        )
    )
    if result.catalog_error:
        console.print(f"[yellow]Catalog stopped early:[/] {result.catalog_error}")


@app.command("embed-all")
def embed_all(
    db_path: Annotated[str | None, Option("--db-path")] = None,
    log_level: Annotated[str, Option("--log-level")] = "INFO",
) -> None:
    """Compute embeddings for every stored book that lacks one."""
    settings = _settings(db_path, log_level)

    async def _embed():
        settings.require_embeddings()
        storage = _open_storage(settings)
        try:
            provider = EmbeddingProvider.from_settings(settings)
            return await IngestionPipeline(storage, provider).embed_missing(batch_size=10)
        finally:
            storage.close()

    try:
        with console.status("Generating embeddings..."):
            result = asyncio.run(_embed())
    except ConfigurationError as exc:
        _fail(exc)
    console.print(
        f"Processed {result.processed}/{result.total} books, {result.errors} errors"
    )
    for failure in result.failures:
        console.print(f"  [red]{failure.gutenberg_id}[/] {failure.title}: {failure.reason}")


@app.command()
def status(
    db_path: Annotated[str | None, Option("--db-path")] = None,
) -> None:
    """Show how many books, embeddings and searches the store holds."""
    settings = _settings(db_path, "WARNING")
    storage = _open_storage(settings)
    try:
        books = storage.list_books()
        console.print(f"Total books: {len(books)}")
        console.print(f"Books with embeddings: {storage.count_embedded_books()}")
        console.print(f"Logged searches: {storage.count_search_logs()}")
        if books:
            console.print(f"First book: {books[0].title} (ID: {books[0].gutenberg_id})")
            console.print(f"Last book: {books[-1].title} (ID: {books[-1].gutenberg_id})")
    finally:
        storage.close()


@app.command()
def summary(
    book_id: Annotated[int, Argument(help="Gutenberg catalog id.")],
) -> None:
    """Print the catalog's generated summary for a book."""
    settings = _settings(None, "WARNING")

    async def _summary():
        async with CatalogClient(base_url=settings.catalog_url) as catalog:
            return await catalog.fetch_summary(book_id)

    try:
        text = asyncio.run(_summary())
    except GutenbergSearchError as exc:
        _fail(exc)
    if text is None:
        console.print(f"No summary available for book {book_id}.")
    else:
        console.print(Panel(text, title=f"Book {book_id}", title_align="left"))


@app.command()
def demo(
    query: Annotated[str, Argument(help="Query to run against the sample books.")],
    log_level: Annotated[str, Option("--log-level")] = "WARNING",
) -> None:
    """Search a built-in set of fifteen classics held in memory."""
    settings = _settings(None, log_level)

    async def _demo() -> SearchOutcome:
        provider = EmbeddingProvider.from_settings(settings)
        storage = InMemoryStorage(sample_books())
        service = BookSearchService(storage, provider)
        return await service.search(query)

    try:
        with console.status("Embedding sample books..."):
            outcome = asyncio.run(_demo())
    except GutenbergSearchError as exc:
        _fail(exc)
    _print_results(outcome)
