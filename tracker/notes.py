"""
Free-text notes attached to books.
"""

from typing import List, Optional

import structlog

from tracker.books import BOOK_NOT_FOUND
from tracker.errors import NotFoundError, ValidationError
from tracker.models import BookSummary, Identity, Note
from tracker.repositories import BookRepository, NoteRepository

logger = structlog.get_logger(__name__)

NOTE_NOT_FOUND = "The requested note does not exist or you do not have access to it"


def clean_content(content: Optional[str]) -> str:
    content = (content or "").strip()
    if not content:
        raise ValidationError("Please enter the note content")
    return content


class NoteService:
    """
    Notes are scoped by their own owner. Book ownership is checked when a note
    is listed or created, not afterwards.
    """

    def __init__(self, notes: NoteRepository, books: BookRepository):
        self.notes = notes
        self.books = books

    async def _require_book(self, identity: Identity, book_id: str) -> None:
        if not await self.books.find_owned(identity.user_id, book_id):
            raise NotFoundError(BOOK_NOT_FOUND)

    async def list(self, identity: Identity, book_id: str) -> List[Note]:
        await self._require_book(identity, book_id)
        return await self.notes.list_for_book(identity.user_id, book_id)

    async def create(self, identity: Identity, book_id: str, content: Optional[str]) -> Note:
        content = clean_content(content)
        await self._require_book(identity, book_id)

        note = await self.notes.insert(identity.user_id, book_id, content)
        logger.info("Note created", note_id=note.id, book_id=book_id)
        return note

    async def get(self, identity: Identity, note_id: str) -> Note:
        """Fetch a note with its book's title and author embedded when available."""
        note = await self.notes.find_owned(identity.user_id, note_id)
        if not note:
            raise NotFoundError(NOTE_NOT_FOUND)

        book = await self.books.find_owned(identity.user_id, note.book_id)
        if book:
            note.book = BookSummary(id=book.id, title=book.title, author=book.author)
        return note

    async def update(self, identity: Identity, note_id: str, content: Optional[str]) -> Note:
        content = clean_content(content)
        note = await self.notes.update_content(identity.user_id, note_id, content)
        if not note:
            raise NotFoundError(NOTE_NOT_FOUND)
        return note

    async def delete(self, identity: Identity, note_id: str) -> Note:
        note = await self.notes.delete_owned(identity.user_id, note_id)
        if not note:
            raise NotFoundError(NOTE_NOT_FOUND)
        logger.info("Note deleted", note_id=note_id)
        return note
