"""
Book catalog service: owner-scoped CRUD, status lifecycle and listing.
"""

import math
from datetime import datetime
from typing import Any, Dict, Optional

import structlog

from tracker.errors import NotFoundError, ValidationError
from tracker.models import (
    Book, BookCreate, BookFilters, BookPage, BookStatus, BookUpdate,
    Identity, Pagination, ReadingStats, is_valid_rating
)
from tracker.repositories import BookRepository, NoteRepository, ProgressHistoryRepository
from tracker.stats import summarize_books

logger = structlog.get_logger(__name__)

MAX_PAGE_SIZE = 100

BOOK_NOT_FOUND = "The requested book does not exist or you do not have access to it"
INVALID_STATUS = "Status must be one of: " + ", ".join(BookStatus.values())
INVALID_RATING = "Rating must be between 0.5 and 5.0 in steps of 0.5"


def validate_status(status: Optional[str]) -> BookStatus:
    try:
        return BookStatus(status)
    except ValueError:
        raise ValidationError(INVALID_STATUS)


def validate_rating(rating: Optional[float]) -> Optional[float]:
    if rating is not None and not is_valid_rating(rating):
        raise ValidationError(INVALID_RATING)
    return rating


class BookService:
    """
    CRUD over the caller's books.

    Deleting a book also removes its progress history and notes.
    """

    def __init__(
        self,
        books: BookRepository,
        progress: ProgressHistoryRepository,
        notes: NoteRepository,
        lookup=None
    ):
        self.books = books
        self.progress = progress
        self.notes = notes
        self.lookup = lookup

    async def search(self, query: Optional[str]) -> Dict[str, Any]:
        """Search external providers by title or ISBN."""
        if not query or not query.strip():
            raise ValidationError("Please enter a search query")
        return await self.lookup.search(query)

    async def lookup_by_isbn(self, isbn: Optional[str]) -> Dict[str, Any]:
        if not isbn or not isbn.strip():
            raise ValidationError("Please enter an ISBN")
        return await self.lookup.lookup_by_isbn(isbn)

    async def stats(self, identity: Identity) -> ReadingStats:
        books = await self.books.all_owned(identity.user_id)
        return summarize_books(books)

    async def list(self, identity: Identity, filters: BookFilters) -> BookPage:
        if filters.page < 1:
            raise ValidationError("page must be 1 or greater")
        if filters.limit < 1 or filters.limit > MAX_PAGE_SIZE:
            raise ValidationError(f"limit must be between 1 and {MAX_PAGE_SIZE}")
        if filters.status:
            validate_status(filters.status)

        books, total = await self.books.list_owned(identity.user_id, filters)

        return BookPage(
            books=books,
            pagination=Pagination(
                total=total,
                page=filters.page,
                limit=filters.limit,
                total_pages=math.ceil(total / filters.limit),
            ),
        )

    async def get(self, identity: Identity, book_id: str) -> Book:
        book = await self.books.find_owned(identity.user_id, book_id)
        if not book:
            raise NotFoundError(BOOK_NOT_FOUND)
        return book

    async def create(self, identity: Identity, payload: BookCreate) -> Book:
        title = (payload.title or "").strip()
        if not title:
            raise ValidationError("Title is required")

        if "status" in payload.model_fields_set:
            status = validate_status(payload.status)
        else:
            status = BookStatus.UNREAD
        rating = validate_rating(payload.rating)

        fields = payload.model_dump(exclude={"title", "status", "rating"})
        fields.update({
            "title": title,
            "status": status.value,
            "rating": rating,
            "current_page": 0,
            "completed_date": None,
        })

        book = await self.books.insert(identity.user_id, fields)
        logger.info("Book created", book_id=book.id, user_id=identity.user_id)
        return book

    async def update(self, identity: Identity, book_id: str, payload: BookUpdate) -> Book:
        existing = await self.get(identity, book_id)
        changes = payload.model_dump(exclude_unset=True)

        if "title" in changes:
            changes["title"] = (changes["title"] or "").strip()
            if not changes["title"]:
                raise ValidationError("Title is required")

        if "status" in changes:
            changes["status"] = validate_status(changes["status"]).value

        if "rating" in changes:
            validate_rating(changes["rating"])

        if (
            changes.get("status") == BookStatus.FINISHED.value
            and existing.status != BookStatus.FINISHED
            and not changes.get("completed_date")
        ):
            changes["completed_date"] = datetime.utcnow()

        book = await self.books.update_owned(identity.user_id, book_id, changes)
        if not book:
            raise NotFoundError(BOOK_NOT_FOUND)

        logger.info("Book updated", book_id=book_id, fields=sorted(changes))
        return book

    async def delete(self, identity: Identity, book_id: str) -> Book:
        """
        Delete a book and its children.

        Children are removed before the book. A failure leaves the book in
        place and the delete can be retried; the steps are not transactional.
        """
        await self.get(identity, book_id)

        for name, repository in (("progress_history", self.progress), ("notes", self.notes)):
            try:
                removed = await repository.delete_for_book(identity.user_id, book_id)
                logger.debug("Cascade delete", collection=name, book_id=book_id, removed=removed)
            except Exception as e:
                logger.error(
                    "Cascade delete failed; rows may be orphaned until the delete is retried",
                    collection=name,
                    book_id=book_id,
                    error=str(e)
                )
                raise

        deleted = await self.books.delete_owned(identity.user_id, book_id)
        if not deleted:
            raise NotFoundError(BOOK_NOT_FOUND)

        logger.info("Book deleted", book_id=book_id, user_id=identity.user_id)
        return deleted
