from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from library_lending.exceptions import DuplicateBookError

logger = logging.getLogger("library_lending.catalog")


@dataclass(frozen=True)
class Book:
    """
    Represents a book in the library.

    Attributes:
        isbn (str): Unique identifier for the book.
        title (str): Book title.
        author (str): Author name.
    """
    isbn: str
    title: str
    author: str


class Catalog:
    """
    Book collection keyed by ISBN.

    Serves both as the lookup collaborator for lending and as the
    "Library Catalog" search system.
    """

    def __init__(self) -> None:
        self._books: Dict[str, Book] = {}

    def __len__(self) -> int:
        return len(self._books)

    def add(self, book: Book) -> None:
        """
        Adds a new book to the catalog.

        Raises:
            DuplicateBookError: If a book with the same ISBN already exists.
            ValueError: If ISBN is empty.
        """
        if not book.isbn:
            raise ValueError("isbn cannot be empty")
        if book.isbn in self._books:
            raise DuplicateBookError(f"Book already exists: isbn={book.isbn}")

        self._books[book.isbn] = book
        logger.info("Book added | isbn=%s title=%s", book.isbn, book.title)

    def find_by_isbn(self, isbn: str) -> Optional[Book]:
        return self._books.get(isbn)

    def find_by_author(self, author: str) -> List[Book]:
        needle = author.lower()
        return [b for b in self._books.values() if needle in b.author.lower()]

    def search_by(self, term: str) -> List[Book]:
        needle = term.lower()
        return [
            b
            for b in self._books.values()
            if needle in b.title.lower()
            or needle in b.author.lower()
            or term in b.isbn
        ]

    def filter(self, predicate: Callable[[Book], bool]) -> List[Book]:
        return [b for b in self._books.values() if predicate(b)]
