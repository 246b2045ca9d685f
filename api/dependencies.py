"""
Service wiring for the API.

Services are built once per process in the application lifespan and stored on
``app.state.services``; route handlers reach them through ``get_services``.
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Request

from api.auth import PasswordHasher, TokenManager
from api.config import APIConfig
from catalog.lookup import CatalogLookup
from tracker.books import BookService
from tracker.database import MongoDBManager
from tracker.identity import IdentityService
from tracker.notes import NoteService
from tracker.progress import ProgressService
from tracker.repositories import Repositories


@dataclass
class Services:
    tokens: TokenManager
    identity: IdentityService
    books: BookService
    progress: ProgressService
    notes: NoteService
    lookup: Optional[CatalogLookup] = None
    database: Optional[MongoDBManager] = None


def build_services(
    config: APIConfig,
    repositories: Repositories,
    lookup: CatalogLookup,
    database: Optional[MongoDBManager] = None
) -> Services:
    """Wire repositories, token manager and lookup client into the domain services."""
    tokens = TokenManager(config)
    return Services(
        tokens=tokens,
        identity=IdentityService(repositories.users, tokens, PasswordHasher(), debug=config.debug),
        books=BookService(repositories.books, repositories.progress, repositories.notes, lookup),
        progress=ProgressService(repositories.books, repositories.progress),
        notes=NoteService(repositories.notes, repositories.books),
        lookup=lookup,
        database=database,
    )


def get_services(request: Request) -> Services:
    return request.app.state.services
