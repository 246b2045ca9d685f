"""
Pydantic models for the reading tracker domain.
Records mirror the MongoDB documents; input models carry client payloads.
"""

import math
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel


class BookStatus(str, Enum):
    """Reading status of a book."""
    UNREAD = "unread"
    READING = "reading"
    FINISHED = "finished"
    PAUSED = "paused"

    @classmethod
    def values(cls) -> List[str]:
        return [status.value for status in cls]


class SortField(str, Enum):
    """Sort options for book listings."""
    CREATED_AT = "createdAt"
    UPDATED_AT = "updatedAt"
    TITLE = "title"

    @property
    def document_field(self) -> str:
        return {
            SortField.CREATED_AT: "created_at",
            SortField.UPDATED_AT: "updated_at",
            SortField.TITLE: "title",
        }[self]


class SortOrder(str, Enum):
    """Sort order options."""
    ASC = "asc"
    DESC = "desc"


RATING_MIN = 0.5
RATING_MAX = 5.0


def is_valid_rating(value: float) -> bool:
    """A rating lies in 0.5..5.0 and is a multiple of 0.5."""
    return RATING_MIN <= value <= RATING_MAX and (value * 2) % 1 == 0


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def compute_progress(current_page: int, total_pages: Optional[int]) -> int:
    """
    Percentage of the book read, clamped to 100.

    Books without a positive page count always report 0.
    """
    if not total_pages or total_pages <= 0:
        return 0
    return min(100, round_half_up(current_page / total_pages * 100))


class TrackerModel(BaseModel):
    """Base model: snake_case in Python and MongoDB, camelCase on the wire."""

    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
    }


def _stringify_ids(document: Dict[str, Any], *fields: str) -> Dict[str, Any]:
    data = dict(document)
    data["id"] = str(data.pop("_id"))
    for name in fields:
        if data.get(name) is not None:
            data[name] = str(data[name])
    return data


class Identity(TrackerModel):
    """Caller identity decoded from a bearer token."""
    user_id: str
    email: str


class User(TrackerModel):
    id: str
    username: str
    email: str
    password_hash: str = Field(..., exclude=True)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "User":
        return cls(**_stringify_ids(document))


class Book(TrackerModel):
    id: str
    user_id: str
    title: str
    author: Optional[str] = None
    isbn: Optional[str] = None
    publisher: Optional[str] = None
    publish_date: Optional[str] = None
    total_pages: Optional[int] = None
    current_page: int = 0
    status: BookStatus = BookStatus.UNREAD
    rating: Optional[float] = None
    cover_image_url: Optional[str] = None
    description: Optional[str] = None
    completed_date: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "Book":
        return cls(**_stringify_ids(document, "user_id"))

    @property
    def progress(self) -> int:
        return compute_progress(self.current_page, self.total_pages)


class BookSummary(TrackerModel):
    """Title and author embedded in a note."""
    id: str
    title: str
    author: Optional[str] = None


class Note(TrackerModel):
    id: str
    user_id: str
    book_id: str
    content: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    book: Optional[BookSummary] = None

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "Note":
        return cls(**_stringify_ids(document, "user_id", "book_id"))


class ProgressEntry(TrackerModel):
    """One append-only row of reading progress history."""
    id: str
    user_id: str
    book_id: str
    page: int
    progress: int
    recorded_at: datetime

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "ProgressEntry":
        return cls(**_stringify_ids(document, "user_id", "book_id"))


class BookCreate(TrackerModel):
    """Payload for registering a book."""
    title: Optional[str] = None
    author: Optional[str] = None
    isbn: Optional[str] = None
    publisher: Optional[str] = None
    publish_date: Optional[str] = None
    total_pages: Optional[int] = Field(None, ge=0)
    cover_image_url: Optional[str] = None
    description: Optional[str] = None
    status: Optional[str] = None
    rating: Optional[float] = None


class BookUpdate(TrackerModel):
    """Partial update; only fields present in the payload are applied."""
    title: Optional[str] = None
    author: Optional[str] = None
    isbn: Optional[str] = None
    publisher: Optional[str] = None
    publish_date: Optional[str] = None
    total_pages: Optional[int] = Field(None, ge=0)
    current_page: Optional[int] = Field(None, ge=0)
    status: Optional[str] = None
    rating: Optional[float] = None
    cover_image_url: Optional[str] = None
    description: Optional[str] = None
    completed_date: Optional[datetime] = None


class ProgressUpdate(TrackerModel):
    current_page: Optional[int] = None


class NoteContent(TrackerModel):
    content: Optional[str] = None


class BookFilters(TrackerModel):
    """Filtering, sorting and pagination for the book list."""
    search: Optional[str] = None
    status: Optional[str] = None
    rating: Optional[float] = None
    page: int = 1
    limit: int = 20
    sort_by: str = SortField.UPDATED_AT.value
    sort_order: str = SortOrder.DESC.value

    @property
    def sort_field(self) -> SortField:
        try:
            return SortField(self.sort_by)
        except ValueError:
            return SortField.UPDATED_AT

    @property
    def sort_direction(self) -> int:
        return 1 if self.sort_order == SortOrder.ASC.value else -1

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit


class Pagination(TrackerModel):
    total: int
    page: int
    limit: int
    total_pages: int


class BookPage(TrackerModel):
    books: List[Book]
    pagination: Pagination


class ReadingStats(TrackerModel):
    total_books: int = 0
    reading_count: int = 0
    want_count: int = 0
    finished_count: int = 0
    total_pages_read: int = 0
    average_progress: int = 0
