"""
Owner-scoped repositories over the MongoDB collections.

Every read, update and delete of a book, note or progress row takes the
caller's ``owner_id`` explicitly and filters on it together with the record id,
so a record owned by another user behaves exactly like a missing one.
"""

import re
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorCollection, AsyncIOMotorDatabase
from pymongo import ReturnDocument

from tracker.database import BOOKS, NOTES, PROGRESS_HISTORY, USERS
from tracker.errors import ValidationError
from tracker.models import Book, BookFilters, Note, ProgressEntry, User


def parse_object_id(value: str, message: str = "Invalid id") -> ObjectId:
    """Convert a string id to an ObjectId, rejecting malformed values."""
    if isinstance(value, ObjectId):
        return value
    if not isinstance(value, str) or not ObjectId.is_valid(value):
        raise ValidationError(message)
    return ObjectId(value)


def owner_filter(owner_id: str, record_id: Optional[str] = None, message: str = "Invalid id") -> Dict[str, Any]:
    query = {"user_id": parse_object_id(owner_id, "Invalid user id")}
    if record_id is not None:
        query["_id"] = parse_object_id(record_id, message)
    return query


class UserRepository:
    """Users are global; uniqueness is on email (lowercased) and username."""

    def __init__(self, collection: AsyncIOMotorCollection):
        self.collection = collection

    async def find_by_email(self, email: str) -> Optional[User]:
        document = await self.collection.find_one({"email": email.lower()})
        return User.from_document(document) if document else None

    async def find_by_username(self, username: str) -> Optional[User]:
        document = await self.collection.find_one({"username": username})
        return User.from_document(document) if document else None

    async def find_by_id(self, user_id: str) -> Optional[User]:
        if not ObjectId.is_valid(user_id):
            return None
        document = await self.collection.find_one({"_id": ObjectId(user_id)})
        return User.from_document(document) if document else None

    async def insert(self, username: str, email: str, password_hash: str) -> User:
        now = datetime.utcnow()
        document = {
            "username": username,
            "email": email.lower(),
            "password_hash": password_hash,
            "created_at": now,
            "updated_at": now,
        }
        result = await self.collection.insert_one(document)
        document["_id"] = result.inserted_id
        return User.from_document(document)


class BookRepository:
    def __init__(self, collection: AsyncIOMotorCollection):
        self.collection = collection

    async def find_owned(self, owner_id: str, book_id: str) -> Optional[Book]:
        document = await self.collection.find_one(owner_filter(owner_id, book_id, "Invalid book id"))
        return Book.from_document(document) if document else None

    async def list_owned(self, owner_id: str, filters: BookFilters) -> Tuple[List[Book], int]:
        """
        Get a page of the owner's books plus the total number of matches.

        Args:
            owner_id: Requesting user id
            filters: Validated filter, sort and pagination parameters

        Returns:
            Tuple of (books on the requested page, total matching books)
        """
        query = owner_filter(owner_id)

        if filters.search:
            pattern = {"$regex": re.escape(filters.search), "$options": "i"}
            query["$or"] = [{"title": pattern}, {"author": pattern}]

        if filters.status:
            query["status"] = filters.status

        if filters.rating is not None:
            query["rating"] = {"$gte": filters.rating}

        sort_query = [(filters.sort_field.document_field, filters.sort_direction)]

        total = await self.collection.count_documents(query)
        cursor = self.collection.find(query).sort(sort_query).skip(filters.skip).limit(filters.limit)
        documents = await cursor.to_list(length=filters.limit)

        return [Book.from_document(document) for document in documents], total

    async def all_owned(self, owner_id: str) -> List[Book]:
        cursor = self.collection.find(owner_filter(owner_id))
        documents = await cursor.to_list(length=None)
        return [Book.from_document(document) for document in documents]

    async def insert(self, owner_id: str, fields: Dict[str, Any]) -> Book:
        now = datetime.utcnow()
        document = dict(fields)
        document.update({
            "user_id": parse_object_id(owner_id, "Invalid user id"),
            "created_at": now,
            "updated_at": now,
        })
        result = await self.collection.insert_one(document)
        document["_id"] = result.inserted_id
        return Book.from_document(document)

    async def update_owned(self, owner_id: str, book_id: str, changes: Dict[str, Any]) -> Optional[Book]:
        """Apply ``changes`` with $set and return the updated book, or None if not owned."""
        update = dict(changes)
        update["updated_at"] = datetime.utcnow()
        document = await self.collection.find_one_and_update(
            owner_filter(owner_id, book_id, "Invalid book id"),
            {"$set": update},
            return_document=ReturnDocument.AFTER,
        )
        return Book.from_document(document) if document else None

    async def delete_owned(self, owner_id: str, book_id: str) -> Optional[Book]:
        document = await self.collection.find_one_and_delete(owner_filter(owner_id, book_id, "Invalid book id"))
        return Book.from_document(document) if document else None


class NoteRepository:
    def __init__(self, collection: AsyncIOMotorCollection):
        self.collection = collection

    async def find_owned(self, owner_id: str, note_id: str) -> Optional[Note]:
        document = await self.collection.find_one(owner_filter(owner_id, note_id, "Invalid note id"))
        return Note.from_document(document) if document else None

    async def list_for_book(self, owner_id: str, book_id: str) -> List[Note]:
        query = owner_filter(owner_id)
        query["book_id"] = parse_object_id(book_id, "Invalid book id")
        cursor = self.collection.find(query).sort("created_at", -1)
        documents = await cursor.to_list(length=None)
        return [Note.from_document(document) for document in documents]

    async def insert(self, owner_id: str, book_id: str, content: str) -> Note:
        now = datetime.utcnow()
        document = {
            "user_id": parse_object_id(owner_id, "Invalid user id"),
            "book_id": parse_object_id(book_id, "Invalid book id"),
            "content": content,
            "created_at": now,
            "updated_at": now,
        }
        result = await self.collection.insert_one(document)
        document["_id"] = result.inserted_id
        return Note.from_document(document)

    async def update_content(self, owner_id: str, note_id: str, content: str) -> Optional[Note]:
        document = await self.collection.find_one_and_update(
            owner_filter(owner_id, note_id, "Invalid note id"),
            {"$set": {"content": content, "updated_at": datetime.utcnow()}},
            return_document=ReturnDocument.AFTER,
        )
        return Note.from_document(document) if document else None

    async def delete_owned(self, owner_id: str, note_id: str) -> Optional[Note]:
        document = await self.collection.find_one_and_delete(owner_filter(owner_id, note_id, "Invalid note id"))
        return Note.from_document(document) if document else None

    async def delete_for_book(self, owner_id: str, book_id: str) -> int:
        query = owner_filter(owner_id)
        query["book_id"] = parse_object_id(book_id, "Invalid book id")
        result = await self.collection.delete_many(query)
        return result.deleted_count


class ProgressHistoryRepository:
    """Append-only: rows are inserted and bulk-deleted, never updated."""

    def __init__(self, collection: AsyncIOMotorCollection):
        self.collection = collection

    async def append(self, owner_id: str, book_id: str, page: int, progress: int) -> ProgressEntry:
        document = {
            "user_id": parse_object_id(owner_id, "Invalid user id"),
            "book_id": parse_object_id(book_id, "Invalid book id"),
            "page": page,
            "progress": progress,
            "recorded_at": datetime.utcnow(),
        }
        result = await self.collection.insert_one(document)
        document["_id"] = result.inserted_id
        return ProgressEntry.from_document(document)

    async def list_for_book(self, owner_id: str, book_id: str) -> List[ProgressEntry]:
        query = owner_filter(owner_id)
        query["book_id"] = parse_object_id(book_id, "Invalid book id")
        cursor = self.collection.find(query).sort("recorded_at", -1)
        documents = await cursor.to_list(length=None)
        return [ProgressEntry.from_document(document) for document in documents]

    async def delete_for_book(self, owner_id: str, book_id: str) -> int:
        query = owner_filter(owner_id)
        query["book_id"] = parse_object_id(book_id, "Invalid book id")
        result = await self.collection.delete_many(query)
        return result.deleted_count


class Repositories:
    """Bundle of repositories built from one database handle."""

    def __init__(self, database: AsyncIOMotorDatabase):
        self.users = UserRepository(database[USERS])
        self.books = BookRepository(database[BOOKS])
        self.notes = NoteRepository(database[NOTES])
        self.progress = ProgressHistoryRepository(database[PROGRESS_HISTORY])
