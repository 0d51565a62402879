"""
A small fixed set of well-known Gutenberg books.

Used by the ``demo`` command to search without touching the catalog or the
database: callers build an InMemoryStorage from ``sample_books()``.
"""

from __future__ import annotations

from typing import Any

from .catalog import record_to_book
from .storage import BookRecord


def _record(
    gutenberg_id: int,
    title: str,
    author: str,
    subjects: list[str],
    bookshelves: list[str],
    languages: tuple[str, ...] = ("en",),
) -> dict[str, Any]:
    return {
        "id": gutenberg_id,
        "title": title,
        "authors": [{"name": author}],
        "subjects": subjects,
        "languages": list(languages),
        "bookshelves": bookshelves,
    }


def sample_records() -> list[dict[str, Any]]:
    """Catalog-shaped records for fifteen classics; a fresh list on every call."""
    return [
        _record(
            1533,
            "Macbeth",
            "Shakespeare, William",
            [
                "Macbeth, King of Scotland, active 11th century -- Drama",
                "Regicides -- Drama",
                "Scotland -- History -- To 1603 -- Drama",
            ],
            ["Category: Plays/Films/Dramas", "Category: British Literature"],
        ),
        _record(
            1524,
            "Hamlet, Prince of Denmark",
            "Shakespeare, William",
            ["Hamlet (Legendary character) -- Drama", "Princes -- Drama", "Revenge -- Drama"],
            ["Category: Plays/Films/Dramas", "Category: British Literature"],
        ),
        _record(
            1513,
            "Romeo and Juliet",
            "Shakespeare, William",
            ["Youth -- Drama", "Vendetta -- Drama", "Verona (Italy) -- Drama"],
            ["Category: Plays/Films/Dramas", "Category: Romance"],
        ),
        _record(
            1342,
            "Pride and Prejudice",
            "Austen, Jane",
            ["Courtship -- Fiction", "Sisters -- Fiction", "England -- Fiction"],
            ["Category: Novels", "Category: Romance"],
        ),
        _record(
            84,
            "Frankenstein; Or, The Modern Prometheus",
            "Shelley, Mary Wollstonecraft",
            ["Frankenstein's monster (Fictitious character) -- Fiction", "Scientists -- Fiction", "Horror tales"],
            ["Category: Novels", "Category: Science-Fiction & Fantasy"],
        ),
        _record(
            11,
            "Alice's Adventures in Wonderland",
            "Carroll, Lewis",
            ["Fantasy fiction", "Imaginary places -- Juvenile fiction", "Alice (Fictitious character from Carroll) -- Juvenile fiction"],
            ["Category: Children & Young Adult Reading", "Category: Novels"],
        ),
        _record(
            2701,
            "Moby Dick; Or, The Whale",
            "Melville, Herman",
            ["Whaling -- Fiction", "Sea stories", "Whales -- Fiction"],
            ["Category: Adventure", "Category: American Literature"],
        ),
        _record(
            1661,
            "The Adventures of Sherlock Holmes",
            "Doyle, Arthur Conan",
            ["Detective and mystery stories, English", "Private investigators -- England -- Fiction"],
            ["Category: Crime, Thrillers & Mystery", "Category: Short Stories"],
        ),
        _record(
            98,
            "A Tale of Two Cities",
            "Dickens, Charles",
            ["France -- History -- Revolution, 1789-1799 -- Fiction", "London (England) -- History -- 18th century -- Fiction"],
            ["Category: Historical Novels", "Category: British Literature"],
        ),
        _record(
            345,
            "Dracula",
            "Stoker, Bram",
            ["Vampires -- Fiction", "Horror tales", "Transylvania (Romania) -- Fiction"],
            ["Category: Novels", "Category: Horror"],
        ),
        _record(
            174,
            "The Picture of Dorian Gray",
            "Wilde, Oscar",
            ["Portraits -- Fiction", "Self-destructive behavior -- Fiction", "Conduct of life -- Fiction"],
            ["Category: Novels", "Category: British Literature"],
        ),
        _record(
            2600,
            "War and Peace",
            "Tolstoy, Leo, graf",
            ["Napoleonic Wars, 1800-1815 -- Campaigns -- Russia -- Fiction", "Aristocracy (Social class) -- Russia -- Fiction"],
            ["Category: Historical Novels", "Category: Russian Literature"],
        ),
        _record(
            1232,
            "The Prince",
            "Machiavelli, Niccolò",
            ["Political science -- Early works to 1800", "Political ethics -- Early works to 1800"],
            ["Category: Politics", "Category: Philosophy & Ethics"],
        ),
        _record(
            76,
            "Adventures of Huckleberry Finn",
            "Twain, Mark",
            ["Mississippi River -- Fiction", "Runaway children -- Fiction", "Race relations -- Fiction"],
            ["Category: Adventure", "Category: American Literature"],
        ),
        _record(
            120,
            "Treasure Island",
            "Stevenson, Robert Louis",
            ["Pirates -- Juvenile fiction", "Buried treasure -- Juvenile fiction", "Sea stories"],
            ["Category: Adventure", "Category: Children & Young Adult Reading"],
        ),
    ]


def sample_books() -> list[BookRecord]:
    return [record_to_book(raw) for raw in sample_records()]
