"""
Reading progress updates and their append-only history.
"""

from typing import List, Optional

import structlog
from pydantic import BaseModel

from tracker.books import BOOK_NOT_FOUND
from tracker.errors import NotFoundError, ValidationError
from tracker.models import Book, Identity, ProgressEntry, compute_progress
from tracker.repositories import BookRepository, ProgressHistoryRepository

logger = structlog.get_logger(__name__)


class ProgressResult(BaseModel):
    book: Book
    progress: int
    entry: ProgressEntry


class ProgressService:
    def __init__(self, books: BookRepository, history: ProgressHistoryRepository):
        self.books = books
        self.history = history

    async def update_progress(self, identity: Identity, book_id: str, current_page: Optional[int]) -> ProgressResult:
        """
        Store the current page on the book and append a history row.

        The book update and the history append are two separate writes; if the
        second fails the book keeps its new page without a matching row.
        """
        if current_page is None:
            raise ValidationError("Please enter the current page")
        if current_page < 0:
            raise ValidationError("Page number must be 0 or greater")

        book = await self.books.find_owned(identity.user_id, book_id)
        if not book:
            raise NotFoundError(BOOK_NOT_FOUND)

        progress = compute_progress(current_page, book.total_pages)

        updated = await self.books.update_owned(identity.user_id, book_id, {"current_page": current_page})
        if not updated:
            raise NotFoundError(BOOK_NOT_FOUND)

        try:
            entry = await self.history.append(identity.user_id, book_id, current_page, progress)
        except Exception as e:
            logger.error(
                "Progress saved but history append failed",
                book_id=book_id,
                page=current_page,
                error=str(e)
            )
            raise

        logger.info("Progress updated", book_id=book_id, page=current_page, progress=progress)
        return ProgressResult(book=updated, progress=progress, entry=entry)

    async def get_history(self, identity: Identity, book_id: str) -> List[ProgressEntry]:
        """History rows for an owned book, newest first."""
        book = await self.books.find_owned(identity.user_id, book_id)
        if not book:
            raise NotFoundError(BOOK_NOT_FOUND)
        return await self.history.list_for_book(identity.user_id, book_id)
