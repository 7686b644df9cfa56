"""
Search collaborators and the universal search aggregator.

Every collaborator offers the same small surface:
    - search_by(term): case-insensitive substring match over its text fields
    - filter(predicate): items for which predicate(item) is true
    - add(item): the only way to feed it new items
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from library_lending.catalog import Book
from library_lending.exceptions import SearchSystemNotFoundError

logger = logging.getLogger("library_lending.search")

MEDIA_TYPES = ("pdf", "video", "audio", "article")
DOCUMENT_CONDITIONS = ("good", "fair", "deteriorated")


# Items
@dataclass(frozen=True)
class DigitalResource:
    title: str
    url: str
    media_type: str
    published_at: datetime = field(default_factory=datetime.now)

    def __post_init__(self) -> None:
        if self.media_type not in MEDIA_TYPES:
            raise ValueError(f"media_type must be one of {MEDIA_TYPES}")


@dataclass(frozen=True)
class HistoricalDocument:
    title: str
    created_on: date
    author: str
    category: str
    condition: str

    def __post_init__(self) -> None:
        if self.condition not in DOCUMENT_CONDITIONS:
            raise ValueError(f"condition must be one of {DOCUMENT_CONDITIONS}")


@dataclass(frozen=True)
class AcademicArticle:
    title: str
    authors: Sequence[str]
    journal: str
    year: int
    keywords: Sequence[str]
    abstract: str


@dataclass(frozen=True)
class SearchResult:
    """
    One match from a universal search.

    Attributes:
        kind (str): Coarse type label, e.g. "Book".
        item (Any): The matched item.
        source (str): Name of the search system that produced it.
    """
    kind: str
    item: Any
    source: str


def _contains(haystack: str, needle: str) -> bool:
    return needle in haystack.lower()


def _any_contains(values: Iterable[str], needle: str) -> bool:
    return any(_contains(v, needle) for v in values)


# Collaborators
class DigitalLibrary:
    def __init__(self) -> None:
        self._resources: List[DigitalResource] = []

    def add(self, resource: DigitalResource) -> None:
        self._resources.append(resource)

    def search_by(self, term: str) -> List[DigitalResource]:
        needle = term.lower()
        return [
            r
            for r in self._resources
            if _contains(r.title, needle) or _contains(r.url, needle)
        ]

    def filter(self, predicate: Callable[[DigitalResource], bool]) -> List[DigitalResource]:
        return [r for r in self._resources if predicate(r)]

    def find_by_media_type(self, media_type: str) -> List[DigitalResource]:
        return [r for r in self._resources if r.media_type == media_type]


class HistoricalArchive:
    def __init__(self) -> None:
        self._documents: List[HistoricalDocument] = []

    def add(self, document: HistoricalDocument) -> None:
        self._documents.append(document)

    def search_by(self, term: str) -> List[HistoricalDocument]:
        needle = term.lower()
        return [
            d
            for d in self._documents
            if _contains(d.title, needle)
            or _contains(d.author, needle)
            or _contains(d.category, needle)
        ]

    def filter(self, predicate: Callable[[HistoricalDocument], bool]) -> List[HistoricalDocument]:
        return [d for d in self._documents if predicate(d)]

    def find_in_period(self, start: date, end: date) -> List[HistoricalDocument]:
        """
        Documents created between start and end, both inclusive.
        """
        return [d for d in self._documents if start <= d.created_on <= end]


class KnowledgeBase:
    def __init__(self) -> None:
        self._articles: List[AcademicArticle] = []

    def add(self, article: AcademicArticle) -> None:
        self._articles.append(article)

    def search_by(self, term: str) -> List[AcademicArticle]:
        needle = term.lower()
        return [
            a
            for a in self._articles
            if _contains(a.title, needle)
            or _any_contains(a.authors, needle)
            or _contains(a.journal, needle)
            or _any_contains(a.keywords, needle)
            or _contains(a.abstract, needle)
        ]

    def filter(self, predicate: Callable[[AcademicArticle], bool]) -> List[AcademicArticle]:
        return [a for a in self._articles if predicate(a)]

    def find_by_keywords(self, words: Iterable[str]) -> List[AcademicArticle]:
        needles = [w.lower() for w in words]
        return [
            a
            for a in self._articles
            if any(_any_contains(a.keywords, n) for n in needles)
        ]


# Aggregator
_RESULT_KINDS = (
    (Book, "Book"),
    (DigitalResource, "Digital Resource"),
    (HistoricalDocument, "Historical Document"),
    (AcademicArticle, "Academic Article"),
)


def result_kind(item: Any) -> str:
    for item_type, label in _RESULT_KINDS:
        if isinstance(item, item_type):
            return label
    return "Unknown"


class UniversalSearch:
    """
    Fans a query out to every registered search system.

    A system that raises during search_all/filter_all is logged and skipped
    so one broken source never hides the others' results. search_in talks
    to a single system and lets its errors propagate.
    """

    def __init__(self) -> None:
        self._systems: Dict[str, Any] = {}

    def register(self, name: str, system: Any) -> None:
        self._systems[name] = system
        logger.info("Search system registered | name=%s", name)

    def unregister(self, name: str) -> None:
        self._systems.pop(name, None)

    def available_systems(self) -> List[str]:
        return list(self._systems)

    def search_all(self, term: str) -> List[SearchResult]:
        return self._collect("search", lambda system: system.search_by(term))

    def filter_all(self, predicate: Callable[[Any], bool]) -> List[SearchResult]:
        return self._collect("filter", lambda system: system.filter(predicate))

    def search_in(self, name: str, term: str) -> List[Any]:
        return self._get_system(name).search_by(term)

    def _collect(self, action: str, query: Callable[[Any], List[Any]]) -> List[SearchResult]:
        results: List[SearchResult] = []
        for name, system in self._systems.items():
            try:
                matches = query(system)
            except Exception:
                logger.warning("%s failed in search system | name=%s", action, name, exc_info=True)
                continue
            results.extend(SearchResult(result_kind(m), m, name) for m in matches)
        return results

    def _get_system(self, name: str) -> Any:
        """
        Retrieves a system by name or raises SearchSystemNotFoundError.
        """
        system: Optional[Any] = self._systems.get(name)
        if system is None:
            raise SearchSystemNotFoundError(f"Search system not found: name={name}")
        return system
