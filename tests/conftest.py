"""
Pytest configuration and shared fixtures.
"""

from datetime import datetime
from unittest.mock import AsyncMock

import pytest
from bson import ObjectId

from tracker.models import Book, Identity, Note, ProgressEntry
from tracker.repositories import BookRepository, NoteRepository, ProgressHistoryRepository, UserRepository

OWNER_ID = "64b000000000000000000001"
OTHER_OWNER_ID = "64b000000000000000000002"
BOOK_ID = "64b0000000000000000000b1"
NOTE_ID = "64b0000000000000000000c1"


@pytest.fixture
def identity():
    """Caller identity used by most service tests."""
    return Identity(user_id=OWNER_ID, email="reader@example.com")


@pytest.fixture
def other_identity():
    return Identity(user_id=OTHER_OWNER_ID, email="someone@example.com")


@pytest.fixture
def book_id():
    return BOOK_ID


@pytest.fixture
def note_id():
    return NOTE_ID


@pytest.fixture
def book_document():
    """Raw MongoDB document for a book owned by ``identity``."""
    now = datetime(2024, 3, 1, 12, 0, 0)
    return {
        "_id": ObjectId(BOOK_ID),
        "user_id": ObjectId(OWNER_ID),
        "title": "The Left Hand of Darkness",
        "author": "Ursula K. Le Guin",
        "isbn": "9780441478125",
        "publisher": "Ace",
        "publish_date": "1969",
        "total_pages": 200,
        "current_page": 0,
        "status": "unread",
        "rating": None,
        "cover_image_url": "",
        "description": "",
        "completed_date": None,
        "created_at": now,
        "updated_at": now,
    }


@pytest.fixture
def make_book(book_document):
    """Factory for ``Book`` records with field overrides."""
    def _make(**overrides):
        document = dict(book_document)
        document.update(overrides)
        return Book.from_document(document)
    return _make


@pytest.fixture
def sample_book(make_book):
    return make_book()


@pytest.fixture
def sample_note():
    return Note(
        id=NOTE_ID,
        user_id=OWNER_ID,
        book_id=BOOK_ID,
        content="Gethen is cold.",
        created_at=datetime(2024, 3, 2, 9, 0, 0),
        updated_at=datetime(2024, 3, 2, 9, 0, 0),
    )


@pytest.fixture
def sample_entry():
    return ProgressEntry(
        id="64b0000000000000000000d1",
        user_id=OWNER_ID,
        book_id=BOOK_ID,
        page=150,
        progress=75,
        recorded_at=datetime(2024, 3, 3, 20, 0, 0),
    )


@pytest.fixture
def mock_user_repository():
    return AsyncMock(spec=UserRepository)


@pytest.fixture
def mock_book_repository():
    return AsyncMock(spec=BookRepository)


@pytest.fixture
def mock_note_repository():
    repository = AsyncMock(spec=NoteRepository)
    repository.delete_for_book.return_value = 0
    return repository


@pytest.fixture
def mock_progress_repository():
    repository = AsyncMock(spec=ProgressHistoryRepository)
    repository.delete_for_book.return_value = 0
    return repository
