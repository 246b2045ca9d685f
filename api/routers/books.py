"""
Book catalog, external lookup and reading progress endpoints.

Fixed paths (``/search``, ``/stats``, ``/lookup-by-isbn``) are registered
before ``/{book_id}`` so they are never captured as ids.
"""

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse

from api.auth import get_current_identity
from api.dependencies import Services, get_services
from api.models import to_payload
from tracker.errors import ServerError, TrackerError
from tracker.models import BookCreate, BookFilters, BookUpdate, Identity, ProgressUpdate

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/books", tags=["Books"])


@router.get("/search")
async def search_books(
    q: Optional[str] = None,
    identity: Identity = Depends(get_current_identity),
    services: Services = Depends(get_services)
):
    """
    Search external catalogs.

    - **q**: A title, or an ISBN-10/13 (hyphens allowed)
    """
    try:
        result = await services.books.search(q)
        return {
            "query": result["query"],
            "count": result["count"],
            "books": [to_payload(book) for book in result["books"]],
        }
    except TrackerError:
        raise
    except Exception as e:
        logger.error("Book search failed", query=q, error=str(e))
        raise ServerError("Failed to search books")


@router.get("/lookup-by-isbn/{isbn}")
async def lookup_by_isbn(
    isbn: str,
    identity: Identity = Depends(get_current_identity),
    services: Services = Depends(get_services)
):
    try:
        result = await services.books.lookup_by_isbn(isbn)
        return {"book": to_payload(result["book"])}
    except TrackerError:
        raise
    except Exception as e:
        logger.error("ISBN lookup failed", isbn=isbn, error=str(e))
        raise ServerError("Failed to look up book information")


@router.get("/stats")
async def get_stats(
    identity: Identity = Depends(get_current_identity),
    services: Services = Depends(get_services)
):
    """Aggregate counts and progress over the caller's books."""
    try:
        stats = await services.books.stats(identity)
        return {"stats": to_payload(stats)}
    except TrackerError:
        raise
    except Exception as e:
        logger.error("Failed to compute stats", user_id=identity.user_id, error=str(e))
        raise ServerError("Failed to retrieve statistics")


@router.get("")
async def list_books(
    search: Optional[str] = None,
    status_filter: Optional[str] = Query(None, alias="status"),
    rating: Optional[float] = None,
    page: int = 1,
    limit: int = 20,
    sort_by: str = Query("updatedAt", alias="sortBy"),
    sort_order: str = Query("desc", alias="sortOrder"),
    identity: Identity = Depends(get_current_identity),
    services: Services = Depends(get_services)
):
    """
    List the caller's books with filtering, sorting and pagination.

    - **search**: Case-insensitive substring of title or author
    - **status**: unread, reading, finished or paused
    - **rating**: Minimum rating
    - **page**: Page number (starts from 1)
    - **limit**: Items per page (1-100)
    - **sortBy**: createdAt, updatedAt or title
    - **sortOrder**: asc or desc
    """
    try:
        filters = BookFilters(
            search=search,
            status=status_filter,
            rating=rating,
            page=page,
            limit=limit,
            sort_by=sort_by,
            sort_order=sort_order
        )
        result = await services.books.list(identity, filters)
        return to_payload(result)
    except TrackerError:
        raise
    except Exception as e:
        logger.error("Failed to list books", user_id=identity.user_id, error=str(e))
        raise ServerError("Failed to retrieve books")


@router.get("/{book_id}")
async def get_book(
    book_id: str,
    identity: Identity = Depends(get_current_identity),
    services: Services = Depends(get_services)
):
    try:
        book = await services.books.get(identity, book_id)
        return {"book": to_payload(book)}
    except TrackerError:
        raise
    except Exception as e:
        logger.error("Failed to get book", book_id=book_id, error=str(e))
        raise ServerError("Failed to retrieve book")


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_book(
    payload: BookCreate,
    identity: Identity = Depends(get_current_identity),
    services: Services = Depends(get_services)
):
    try:
        book = await services.books.create(identity, payload)
        return JSONResponse(
            status_code=status.HTTP_201_CREATED,
            content={"message": "Book added successfully", "book": to_payload(book)}
        )
    except TrackerError:
        raise
    except Exception as e:
        logger.error("Failed to create book", user_id=identity.user_id, error=str(e))
        raise ServerError("Failed to add book")


@router.put("/{book_id}")
async def update_book(
    book_id: str,
    payload: BookUpdate,
    identity: Identity = Depends(get_current_identity),
    services: Services = Depends(get_services)
):
    """Apply the supplied fields; moving to ``finished`` stamps the completion date."""
    try:
        book = await services.books.update(identity, book_id, payload)
        return {"message": "Book updated successfully", "book": to_payload(book)}
    except TrackerError:
        raise
    except Exception as e:
        logger.error("Failed to update book", book_id=book_id, error=str(e))
        raise ServerError("Failed to update book")


@router.delete("/{book_id}")
async def delete_book(
    book_id: str,
    identity: Identity = Depends(get_current_identity),
    services: Services = Depends(get_services)
):
    try:
        book = await services.books.delete(identity, book_id)
        return {"message": "Book deleted successfully", "book": to_payload(book)}
    except TrackerError:
        raise
    except Exception as e:
        logger.error("Failed to delete book", book_id=book_id, error=str(e))
        raise ServerError("Failed to delete book")


@router.put("/{book_id}/progress")
async def update_progress(
    book_id: str,
    payload: ProgressUpdate,
    identity: Identity = Depends(get_current_identity),
    services: Services = Depends(get_services)
):
    try:
        result = await services.progress.update_progress(identity, book_id, payload.current_page)
        return {
            "message": "Reading progress updated",
            "book": to_payload(result.book),
            "progress": result.progress,
            "progressHistory": to_payload(result.entry),
        }
    except TrackerError:
        raise
    except Exception as e:
        logger.error("Failed to update progress", book_id=book_id, error=str(e))
        raise ServerError("Failed to update reading progress")


@router.get("/{book_id}/progress-history")
async def get_progress_history(
    book_id: str,
    identity: Identity = Depends(get_current_identity),
    services: Services = Depends(get_services)
):
    try:
        history = await services.progress.get_history(identity, book_id)
        return {"bookId": book_id, "progressHistory": [to_payload(entry) for entry in history]}
    except TrackerError:
        raise
    except Exception as e:
        logger.error("Failed to get progress history", book_id=book_id, error=str(e))
        raise ServerError("Failed to retrieve progress history")
