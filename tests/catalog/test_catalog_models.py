"""
Tests for provider shapes and their canonical mapping.
"""

import pytest
from pydantic import TypeAdapter

from catalog.models import (
    GoogleBooksVolume, OpenLibraryBooksRecord, OpenLibrarySearchDoc,
    ProviderKind, ProviderRecord, normalize, parse_record
)


def test_google_volume_to_canonical():
    volume = parse_record(ProviderKind.GOOGLE_BOOKS, {
        "title": "Dune",
        "authors": ["Frank Herbert"],
        "publisher": "Chilton",
        "publishedDate": "1965",
        "description": "Desert planet.",
        "pageCount": 412,
        "imageLinks": {"smallThumbnail": "http://img/small", "thumbnail": "http://img/thumb"},
        "industryIdentifiers": [
            {"type": "ISBN_10", "identifier": "0441013597"},
            {"type": "ISBN_13", "identifier": "9780441013593"},
        ],
    })

    book = normalize(volume)

    assert book.title == "Dune"
    assert book.author == "Frank Herbert"
    assert book.isbn == "9780441013593"
    assert book.publish_date == "1965"
    assert book.total_pages == 412
    assert book.cover_image_url == "http://img/thumb"
    assert book.description == "Desert planet."


def test_google_volume_missing_fields_are_empty():
    book = GoogleBooksVolume().to_canonical(isbn="123")

    assert book.title == ""
    assert book.author == ""
    assert book.isbn == "123"
    assert book.total_pages is None
    assert book.cover_image_url == ""


def test_open_library_record_flattens_notes():
    record = OpenLibraryBooksRecord.model_validate({
        "title": "Dune",
        "authors": [{"name": "Frank Herbert"}, {"name": "Brian Herbert"}],
        "publishers": [{"name": "Ace"}, {"name": "Chilton"}],
        "publish_date": "1990",
        "number_of_pages": 535,
        "cover": {"small": "s.jpg", "medium": "m.jpg", "large": "l.jpg"},
        "notes": {"type": "/type/text", "value": "Reissue."},
    })

    book = record.to_canonical(isbn="0441172717")

    assert book.author == "Frank Herbert, Brian Herbert"
    assert book.publisher == "Ace"
    assert book.cover_image_url == "m.jpg"
    assert book.description == "Reissue."
    assert book.isbn == "0441172717"


def test_open_library_search_doc_builds_cover_url():
    doc = OpenLibrarySearchDoc.model_validate({
        "title": "Dune",
        "author_name": ["Frank Herbert"],
        "isbn": ["9780441013593", "0441013597"],
        "publisher": ["Ace"],
        "first_publish_year": 1965,
        "number_of_pages_median": 412,
        "cover_i": 12345,
    })

    book = doc.to_canonical(covers_url="https://covers.example/b/id")

    assert book.isbn == "9780441013593"
    assert book.publish_date == "1965"
    assert book.cover_image_url == "https://covers.example/b/id/12345-M.jpg"
    assert book.description == ""


def test_canonical_book_serializes_camel_case():
    data = OpenLibrarySearchDoc(title="Dune", cover_i=1).to_canonical().model_dump(by_alias=True)

    assert set(data) == {
        "title", "author", "isbn", "publisher", "publishDate",
        "totalPages", "coverImageUrl", "description",
    }


@pytest.mark.parametrize("kind,shape", [
    (ProviderKind.GOOGLE_BOOKS, GoogleBooksVolume),
    (ProviderKind.OPEN_LIBRARY_BOOKS, OpenLibraryBooksRecord),
    (ProviderKind.OPEN_LIBRARY_SEARCH, OpenLibrarySearchDoc),
])
def test_tagged_union_dispatches_on_kind(kind, shape):
    record = TypeAdapter(ProviderRecord).validate_python({"kind": kind, "title": "Dune"})

    assert isinstance(record, shape)
    assert normalize(record).title == "Dune"
