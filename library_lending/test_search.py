import logging

import pytest
from datetime import date, datetime

from library_lending.catalog import Book, Catalog
from library_lending.exceptions import DuplicateBookError, SearchSystemNotFoundError
from library_lending.search import (
    AcademicArticle,
    DigitalLibrary,
    DigitalResource,
    HistoricalArchive,
    HistoricalDocument,
    KnowledgeBase,
    UniversalSearch,
    result_kind,
)


class BrokenSystem:
    def search_by(self, term):
        raise RuntimeError("index offline")

    def filter(self, predicate):
        raise RuntimeError("index offline")


@pytest.fixture
def catalog():
    c = Catalog()
    c.add(Book("111", "The Hobbit", "J.R.R. Tolkien"))
    c.add(Book("222", "The Silmarillion", "J.R.R. Tolkien"))
    c.add(Book("333", "Dune", "Frank Herbert"))
    return c


@pytest.fixture
def digital():
    d = DigitalLibrary()
    d.add(DigitalResource("Tolkien lecture", "https://example.org/t", "video", datetime(2020, 1, 1)))
    d.add(DigitalResource("Dune audiobook", "https://example.org/dune", "audio", datetime(2021, 1, 1)))
    return d


@pytest.fixture
def archive():
    a = HistoricalArchive()
    a.add(HistoricalDocument("City charter", date(1750, 5, 1), "Council", "Legal", "fair"))
    a.add(HistoricalDocument("Harbour map", date(1820, 3, 2), "Navy office", "Maps", "good"))
    return a


@pytest.fixture
def knowledge():
    k = KnowledgeBase()
    k.add(AcademicArticle(
        "Myth in Middle-earth", ("R. Scholar",), "Inklings Review", 2011,
        ("tolkien", "mythology"), "Sources of the legendarium.",
    ))
    k.add(AcademicArticle(
        "Desert ecology in fiction", ("P. Kynes",), "Ecology Letters", 2015,
        ("ecology",), "Arrakis as a model.",
    ))
    return k


@pytest.fixture
def universal(catalog, digital, archive, knowledge):
    u = UniversalSearch()
    u.register("Library Catalog", catalog)
    u.register("Digital Library", digital)
    u.register("Historical Archive", archive)
    u.register("Knowledge Base", knowledge)
    return u


# -----------------------------
# Collaborators
# -----------------------------
def test_catalog_search_by_title_author_isbn(catalog):
    assert {b.isbn for b in catalog.search_by("tolkien")} == {"111", "222"}
    assert [b.isbn for b in catalog.search_by("DUNE")] == ["333"]
    assert [b.isbn for b in catalog.search_by("22")] == ["222"]


def test_catalog_find_helpers(catalog):
    assert catalog.find_by_isbn("333").title == "Dune"
    assert catalog.find_by_isbn("999") is None
    assert len(catalog.find_by_author("herbert")) == 1


def test_catalog_rejects_duplicates_and_empty_isbn(catalog):
    with pytest.raises(DuplicateBookError):
        catalog.add(Book("111", "Again", "Someone"))
    with pytest.raises(ValueError):
        catalog.add(Book("", "No isbn", "Someone"))


def test_digital_library(digital):
    assert [r.title for r in digital.search_by("example.org/dune")] == ["Dune audiobook"]
    assert [r.title for r in digital.find_by_media_type("video")] == ["Tolkien lecture"]


def test_digital_resource_rejects_unknown_media_type():
    with pytest.raises(ValueError):
        DigitalResource("Slides", "https://example.org/s", "slides")


def test_historical_archive(archive):
    assert [d.title for d in archive.search_by("maps")] == ["Harbour map"]
    found = archive.find_in_period(date(1700, 1, 1), date(1750, 5, 1))
    assert [d.title for d in found] == ["City charter"]


def test_historical_document_rejects_unknown_condition():
    with pytest.raises(ValueError):
        HistoricalDocument("Letter", date(1900, 1, 1), "Anon", "Mail", "pristine")


def test_knowledge_base(knowledge):
    assert [a.title for a in knowledge.search_by("kynes")] == ["Desert ecology in fiction"]
    assert [a.title for a in knowledge.search_by("legendarium")] == ["Myth in Middle-earth"]
    assert len(knowledge.find_by_keywords(["MYTH", "nothing"])) == 1


def test_filter(catalog, archive):
    assert len(catalog.filter(lambda b: b.author.startswith("J.R.R."))) == 2
    assert archive.filter(lambda d: d.condition == "good")[0].title == "Harbour map"


# -----------------------------
# Universal search
# -----------------------------
def test_search_all_tags_source_and_kind(universal):
    results = universal.search_all("Tolkien")

    sources = {r.source for r in results}
    assert sources == {"Library Catalog", "Digital Library", "Knowledge Base"}
    by_source = {(r.source, r.kind) for r in results}
    assert ("Library Catalog", "Book") in by_source
    assert ("Digital Library", "Digital Resource") in by_source
    assert ("Knowledge Base", "Academic Article") in by_source
    assert len(results) == 4


def test_search_all_skips_failing_system(universal, caplog):
    universal.register("Broken", BrokenSystem())
    with caplog.at_level(logging.WARNING, logger="library_lending.search"):
        results = universal.search_all("Dune")

    assert {r.source for r in results} == {"Library Catalog", "Digital Library"}
    assert "Broken" in caplog.text


def test_filter_all_skips_failing_system(universal):
    universal.register("Broken", BrokenSystem())
    results = universal.filter_all(lambda item: "Dune" in item.title)
    assert {r.kind for r in results} == {"Book", "Digital Resource"}


def test_search_in_single_system(universal):
    assert [b.isbn for b in universal.search_in("Library Catalog", "hobbit")] == ["111"]


def test_search_in_unknown_system_raises(universal):
    with pytest.raises(SearchSystemNotFoundError):
        universal.search_in("Missing", "x")


def test_search_in_propagates_system_errors(universal):
    universal.register("Broken", BrokenSystem())
    with pytest.raises(RuntimeError):
        universal.search_in("Broken", "x")


def test_register_replaces_and_unregister(universal):
    assert universal.available_systems() == [
        "Library Catalog", "Digital Library", "Historical Archive", "Knowledge Base",
    ]
    universal.register("Library Catalog", Catalog())
    assert universal.search_in("Library Catalog", "hobbit") == []
    universal.unregister("Knowledge Base")
    universal.unregister("Never registered")
    assert "Knowledge Base" not in universal.available_systems()


def test_result_kind_unknown():
    assert result_kind(object()) == "Unknown"
