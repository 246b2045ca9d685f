"""
Note endpoints, both nested under a book and addressed directly.
"""

import structlog
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from api.auth import get_current_identity
from api.dependencies import Services, get_services
from api.models import to_payload
from tracker.errors import ServerError, TrackerError
from tracker.models import Identity, NoteContent

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["Notes"])


@router.get("/books/{book_id}/notes")
async def list_notes(
    book_id: str,
    identity: Identity = Depends(get_current_identity),
    services: Services = Depends(get_services)
):
    """Notes for one of the caller's books, newest first."""
    try:
        notes = await services.notes.list(identity, book_id)
        return {"bookId": book_id, "notes": [to_payload(note, exclude={"book"}) for note in notes]}
    except TrackerError:
        raise
    except Exception as e:
        logger.error("Failed to list notes", book_id=book_id, error=str(e))
        raise ServerError("Failed to retrieve notes")


@router.post("/books/{book_id}/notes", status_code=status.HTTP_201_CREATED)
async def create_note(
    book_id: str,
    payload: NoteContent,
    identity: Identity = Depends(get_current_identity),
    services: Services = Depends(get_services)
):
    try:
        note = await services.notes.create(identity, book_id, payload.content)
        return JSONResponse(
            status_code=status.HTTP_201_CREATED,
            content={"message": "Note created successfully", "note": to_payload(note, exclude={"book"})}
        )
    except TrackerError:
        raise
    except Exception as e:
        logger.error("Failed to create note", book_id=book_id, error=str(e))
        raise ServerError("Failed to create note")


@router.get("/notes/{note_id}")
async def get_note(
    note_id: str,
    identity: Identity = Depends(get_current_identity),
    services: Services = Depends(get_services)
):
    try:
        note = await services.notes.get(identity, note_id)
        return {"note": to_payload(note)}
    except TrackerError:
        raise
    except Exception as e:
        logger.error("Failed to get note", note_id=note_id, error=str(e))
        raise ServerError("Failed to retrieve note")


@router.put("/notes/{note_id}")
async def update_note(
    note_id: str,
    payload: NoteContent,
    identity: Identity = Depends(get_current_identity),
    services: Services = Depends(get_services)
):
    try:
        note = await services.notes.update(identity, note_id, payload.content)
        return {"message": "Note updated successfully", "note": to_payload(note, exclude={"book"})}
    except TrackerError:
        raise
    except Exception as e:
        logger.error("Failed to update note", note_id=note_id, error=str(e))
        raise ServerError("Failed to update note")


@router.delete("/notes/{note_id}")
async def delete_note(
    note_id: str,
    identity: Identity = Depends(get_current_identity),
    services: Services = Depends(get_services)
):
    try:
        note = await services.notes.delete(identity, note_id)
        return {"message": "Note deleted successfully", "note": to_payload(note, exclude={"book"})}
    except TrackerError:
        raise
    except Exception as e:
        logger.error("Failed to delete note", note_id=note_id, error=str(e))
        raise ServerError("Failed to delete note")
