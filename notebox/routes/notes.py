"""
Notebox Backend — Notes Route Handlers
========================================

What:  CRUD and pin toggling for notes.
How:   Thin handlers: validate the body (pydantic), delegate to NoteService,
       return the response model or an empty 200.
Who:   Called by the Mini App frontend.

Mutating routes depend on `require_auth`, which only enforces Telegram init
data when TELEGRAM_AUTH_REQUIRED is set.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, Path, Response
from sqlalchemy.ext.asyncio import AsyncSession

from notebox.auth import require_auth
from notebox.database import get_db_session
from notebox.dependencies import get_note_service
from notebox.schemas.note import (
    ErrorResponse,
    NoteCreate,
    NoteCreatedResponse,
    NoteResponse,
    MAX_ROW_ID,
    NoteUpdate,
    PinUpdate,
)
from notebox.services.note_service import NoteService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Notes"])


@router.get(
    "/notes",
    response_model=List[NoteResponse],
    response_model_by_alias=True,
    responses={500: {"description": "Server error", "model": ErrorResponse}},
    summary="List all notes",
)
async def list_notes(
    db: AsyncSession = Depends(get_db_session),
    service: NoteService = Depends(get_note_service),
) -> List[NoteResponse]:
    """Every note with its attachments, ordered by id. No pagination."""
    return await service.list_notes(db)


@router.post(
    "/notes",
    response_model=NoteCreatedResponse,
    status_code=201,
    responses={
        400: {"description": "Invalid body", "model": ErrorResponse},
        500: {"description": "Server error", "model": ErrorResponse},
    },
    summary="Create a note",
    dependencies=[Depends(require_auth)],
)
async def create_note(
    payload: NoteCreate,
    db: AsyncSession = Depends(get_db_session),
    service: NoteService = Depends(get_note_service),
) -> NoteCreatedResponse:
    return await service.create_note(db, payload)


@router.get(
    "/notes/{note_id}",
    response_model=NoteResponse,
    response_model_by_alias=True,
    responses={
        404: {"description": "Note not found", "model": ErrorResponse},
        500: {"description": "Server error", "model": ErrorResponse},
    },
    summary="Get a single note by ID",
)
async def get_note(
    note_id: int = Path(..., ge=1, le=MAX_ROW_ID, description="Note ID"),
    db: AsyncSession = Depends(get_db_session),
    service: NoteService = Depends(get_note_service),
) -> NoteResponse:
    return await service.get_note(db, note_id)


@router.put(
    "/notes/{note_id}",
    status_code=200,
    responses={
        400: {"description": "Invalid body", "model": ErrorResponse},
        404: {"description": "Note not found (NOTE_UPDATE_MISSING=not_found)", "model": ErrorResponse},
        500: {"description": "Server error", "model": ErrorResponse},
    },
    summary="Overwrite a note's title, content and pin flag",
    dependencies=[Depends(require_auth)],
)
async def update_note(
    payload: NoteUpdate,
    note_id: int = Path(..., ge=1, le=MAX_ROW_ID, description="Note ID"),
    db: AsyncSession = Depends(get_db_session),
    service: NoteService = Depends(get_note_service),
) -> Response:
    """
    Full overwrite; also refreshes lastModified.

    Concurrent updates are last-write-wins.
    """
    await service.update_note(db, note_id, payload)
    return Response(status_code=200)


@router.delete(
    "/notes/{note_id}",
    status_code=200,
    responses={
        404: {"description": "Note not found", "model": ErrorResponse},
        500: {"description": "Server error", "model": ErrorResponse},
    },
    summary="Delete a note with all of its attachments",
    dependencies=[Depends(require_auth)],
)
async def delete_note(
    note_id: int = Path(..., ge=1, le=MAX_ROW_ID, description="Note ID"),
    db: AsyncSession = Depends(get_db_session),
    service: NoteService = Depends(get_note_service),
) -> Response:
    await service.delete_note(db, note_id)
    return Response(status_code=200)


@router.put(
    "/notes/{note_id}/toggle-pin",
    status_code=200,
    responses={
        400: {"description": "Invalid body", "model": ErrorResponse},
        500: {"description": "Server error", "model": ErrorResponse},
    },
    summary="Set the pin flag",
    dependencies=[Depends(require_auth)],
)
async def toggle_pin(
    payload: PinUpdate,
    note_id: int = Path(..., ge=1, le=MAX_ROW_ID, description="Note ID"),
    db: AsyncSession = Depends(get_db_session),
    service: NoteService = Depends(get_note_service),
) -> Response:
    """Sets isPinned to the given value; lastModified is left alone."""
    await service.set_pinned(db, note_id, payload.is_pinned)
    return Response(status_code=200)
