"""
Tests for the FastAPI application.
Domain services are mocked; tokens are signed and verified for real.
"""

from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from api.auth import TokenManager
from api.config import APIConfig
from api.dependencies import Services
from api.main import create_app
from catalog.models import CanonicalBook
from tracker.books import BookService
from tracker.errors import AuthError, ConflictError, NotFoundError, ValidationError
from tracker.identity import AuthSession, IdentityService
from tracker.models import BookFilters, BookPage, BookSummary, Pagination, ReadingStats, User
from tracker.notes import NoteService
from tracker.progress import ProgressResult, ProgressService


@pytest.fixture
def config():
    return APIConfig(secret_key="test-secret")


@pytest.fixture
def services(config):
    return Services(
        tokens=TokenManager(config),
        identity=AsyncMock(spec=IdentityService),
        books=AsyncMock(spec=BookService),
        progress=AsyncMock(spec=ProgressService),
        notes=AsyncMock(spec=NoteService),
    )


@pytest.fixture
def client(config, services):
    """Create test client."""
    return TestClient(create_app(config, services))


@pytest.fixture
def auth_headers(services, identity):
    token = services.tokens.issue(identity.user_id, identity.email)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def user(identity):
    return User(id=identity.user_id, username="reader", email=identity.email, password_hash="hashed")


def test_health_check(client):
    """Test health check endpoint."""
    response = client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert "timestamp" in data
    assert data["version"] == "1.0.0"
    assert data["databaseStatus"] == "unknown"


def test_unknown_route(client):
    response = client.get("/shelves")

    assert response.status_code == 404
    assert response.json() == {"error": "not_found", "message": "Endpoint not found"}


def test_unsupported_method(client, auth_headers):
    response = client.patch("/notes/abc", headers=auth_headers)

    assert response.status_code == 404
    assert response.json() == {"error": "not_found", "message": "Endpoint not found"}


class TestGuard:
    def test_missing_token(self, client):
        response = client.get("/books")

        assert response.status_code == 401
        assert response.json()["error"] == "auth_required"

    def test_non_bearer_header(self, client):
        response = client.get("/books", headers={"Authorization": "Basic abc"})

        assert response.status_code == 401
        assert response.json()["error"] == "auth_required"

    def test_garbage_token(self, client):
        response = client.get("/books", headers={"Authorization": "Bearer not.a.token"})

        assert response.status_code == 401
        assert response.json()["error"] == "invalid_token"

    def test_token_signed_with_other_secret(self, client, identity):
        foreign = TokenManager(APIConfig(secret_key="someone-else")).issue(identity.user_id, identity.email)

        response = client.get("/books", headers={"Authorization": f"Bearer {foreign}"})

        assert response.status_code == 401
        assert response.json()["error"] == "invalid_token"

    def test_expired_token(self, client, identity):
        expired = TokenManager(
            APIConfig(secret_key="test-secret", access_token_expire_minutes=-5)
        ).issue(identity.user_id, identity.email)

        response = client.get("/books", headers={"Authorization": f"Bearer {expired}"})

        assert response.status_code == 401
        assert response.json() == {
            "error": "token_expired",
            "message": "Token has expired, please log in again",
        }


class TestAuthRoutes:
    def test_register(self, client, services, user):
        services.identity.register.return_value = AuthSession(user=user, token="new-token")

        response = client.post(
            "/auth/register",
            json={"username": "reader", "email": "reader@example.com", "password": "secret1"}
        )

        assert response.status_code == 201
        data = response.json()
        assert data["token"] == "new-token"
        assert data["user"]["username"] == "reader"
        assert "passwordHash" not in data["user"]
        assert "message" in data
        services.identity.register.assert_awaited_once_with("reader", "reader@example.com", "secret1")

    def test_register_conflict(self, client, services):
        services.identity.register.side_effect = ConflictError("This email address is already registered")

        response = client.post(
            "/auth/register",
            json={"username": "reader", "email": "reader@example.com", "password": "secret1"}
        )

        assert response.status_code == 409
        assert response.json() == {"error": "conflict", "message": "This email address is already registered"}

    def test_register_validation(self, client, services):
        services.identity.register.side_effect = ValidationError("Username, email and password are required")

        response = client.post("/auth/register", json={"email": "reader@example.com"})

        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"

    def test_login_failure(self, client, services):
        services.identity.login.side_effect = AuthError()

        response = client.post("/auth/login", json={"email": "reader@example.com", "password": "nope"})

        assert response.status_code == 401
        assert response.json() == {"error": "auth_error", "message": "Email or password is incorrect"}

    def test_logout_requires_token(self, client, auth_headers):
        assert client.post("/auth/logout").status_code == 401
        assert client.post("/auth/logout", headers=auth_headers).status_code == 200

    def test_me(self, client, services, auth_headers, user):
        services.identity.get_current_user.return_value = user

        response = client.get("/auth/me", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["user"]["email"] == "reader@example.com"

    def test_me_for_deleted_user(self, client, services, auth_headers):
        services.identity.get_current_user.side_effect = NotFoundError("The logged-in user no longer exists")

        response = client.get("/auth/me", headers=auth_headers)

        assert response.status_code == 404

    def test_refresh(self, client, services, auth_headers):
        services.identity.refresh.return_value = "fresh-token"

        response = client.post("/auth/refresh", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["token"] == "fresh-token"


class TestBookRoutes:
    def test_list_books_passes_filters(self, client, services, auth_headers, identity, sample_book):
        services.books.list.return_value = BookPage(
            books=[sample_book],
            pagination=Pagination(total=25, page=3, limit=10, total_pages=3)
        )

        response = client.get(
            "/books?search=guin&status=reading&rating=4&page=3&limit=10&sortBy=title&sortOrder=asc",
            headers=auth_headers
        )

        assert response.status_code == 200
        data = response.json()
        assert data["pagination"] == {"total": 25, "page": 3, "limit": 10, "totalPages": 3}
        assert data["books"][0]["totalPages"] == 200

        called_identity, filters = services.books.list.call_args.args
        assert called_identity.user_id == identity.user_id
        assert filters == BookFilters(
            search="guin", status="reading", rating=4.0, page=3, limit=10, sort_by="title", sort_order="asc"
        )

    def test_list_books_documents_rating_as_minimum(self, client):
        response = client.get("/openapi.json")

        description = response.json()["paths"]["/books"]["get"]["description"]
        assert "Minimum rating" in description
        assert "Exact rating" not in description

    def test_list_books_bad_query_type(self, client, services, auth_headers):
        response = client.get("/books?page=first", headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"
        services.books.list.assert_not_awaited()

    def test_fixed_paths_are_not_ids(self, client, services, auth_headers):
        services.books.stats.return_value = ReadingStats(total_books=2, reading_count=1)

        response = client.get("/books/stats", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["stats"]["totalBooks"] == 2
        services.books.get.assert_not_awaited()

    def test_search(self, client, services, auth_headers):
        services.books.search.return_value = {
            "query": "dune",
            "count": 1,
            "books": [CanonicalBook(title="Dune", author="Frank Herbert", total_pages=412)],
        }

        response = client.get("/books/search?q=dune", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["count"] == 1
        assert data["books"][0]["totalPages"] == 412

    def test_lookup_by_isbn_not_found(self, client, services, auth_headers):
        services.books.lookup_by_isbn.side_effect = NotFoundError("No book found for ISBN 9780000000000")

        response = client.get("/books/lookup-by-isbn/9780000000000", headers=auth_headers)

        assert response.status_code == 404
        services.books.lookup_by_isbn.assert_awaited_once_with("9780000000000")

    def test_get_book_of_other_user(self, client, services, auth_headers, book_id):
        services.books.get.side_effect = NotFoundError("The requested book does not exist or you do not have access to it")

        response = client.get(f"/books/{book_id}", headers=auth_headers)

        assert response.status_code == 404
        assert set(response.json()) == {"error", "message"}

    def test_create_book(self, client, services, auth_headers, sample_book):
        services.books.create.return_value = sample_book

        response = client.post(
            "/books",
            json={"title": "The Left Hand of Darkness", "totalPages": 200, "rating": 4.5},
            headers=auth_headers
        )

        assert response.status_code == 201
        assert response.json()["book"]["title"] == "The Left Hand of Darkness"
        payload = services.books.create.call_args.args[1]
        assert payload.total_pages == 200
        assert payload.rating == 4.5

    def test_update_book_only_sends_supplied_fields(self, client, services, auth_headers, book_id, make_book):
        services.books.update.return_value = make_book(status="finished")

        response = client.put(f"/books/{book_id}", json={"status": "finished"}, headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["book"]["status"] == "finished"
        payload = services.books.update.call_args.args[2]
        assert payload.model_dump(exclude_unset=True) == {"status": "finished"}

    def test_unexpected_failure_is_generic(self, client, services, auth_headers, book_id):
        services.books.update.side_effect = RuntimeError("mongo exploded at 10.0.0.5")

        response = client.put(f"/books/{book_id}", json={"title": "x"}, headers=auth_headers)

        assert response.status_code == 500
        assert response.json() == {"error": "server_error", "message": "Failed to update book"}

    def test_delete_book(self, client, services, auth_headers, book_id, sample_book):
        services.books.delete.return_value = sample_book

        response = client.delete(f"/books/{book_id}", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["book"]["id"] == book_id

    def test_update_progress(self, client, services, auth_headers, book_id, make_book, sample_entry):
        services.progress.update_progress.return_value = ProgressResult(
            book=make_book(current_page=150),
            progress=75,
            entry=sample_entry
        )

        response = client.put(f"/books/{book_id}/progress", json={"currentPage": 150}, headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["progress"] == 75
        assert data["book"]["currentPage"] == 150
        assert data["progressHistory"]["page"] == 150
        assert services.progress.update_progress.call_args.args[2] == 150

    def test_progress_history(self, client, services, auth_headers, book_id, sample_entry):
        services.progress.get_history.return_value = [sample_entry]

        response = client.get(f"/books/{book_id}/progress-history", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["bookId"] == book_id
        assert data["progressHistory"][0]["progress"] == 75


class TestNoteRoutes:
    def test_list_notes(self, client, services, auth_headers, book_id, sample_note):
        services.notes.list.return_value = [sample_note]

        response = client.get(f"/books/{book_id}/notes", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["bookId"] == book_id
        assert data["notes"][0]["content"] == "Gethen is cold."

    def test_create_note(self, client, services, auth_headers, book_id, sample_note):
        services.notes.create.return_value = sample_note

        response = client.post(f"/books/{book_id}/notes", json={"content": "Gethen is cold."}, headers=auth_headers)

        assert response.status_code == 201
        assert response.json()["note"]["bookId"] == book_id
        assert services.notes.create.call_args.args[1:] == (book_id, "Gethen is cold.")

    def test_get_note_embeds_book(self, client, services, auth_headers, note_id, sample_note, sample_book):
        sample_note.book = BookSummary(id=sample_book.id, title=sample_book.title, author=sample_book.author)
        services.notes.get.return_value = sample_note

        response = client.get(f"/notes/{note_id}", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["note"]["book"] == {
            "id": sample_book.id,
            "title": sample_book.title,
            "author": sample_book.author,
        }

    def test_delete_note_not_found(self, client, services, auth_headers, note_id):
        services.notes.delete.side_effect = NotFoundError("The requested note does not exist or you do not have access to it")

        response = client.delete(f"/notes/{note_id}", headers=auth_headers)

        assert response.status_code == 404
        assert response.json()["error"] == "not_found"
