"""
Notebox Backend — Note Service
================================

What:  Note CRUD and pin toggling on top of NoteRepository.
How:   Each method receives the request's AsyncSession, delegates to the
       repository, and translates results into response models or
       application exceptions.
Who:   Called by the note route handlers.

Error Handling Strategy:
    missing row             → NotFoundError (404)
    SQLAlchemy failure      → DatabaseError (500), driver text logged only
    application exceptions  → propagate unchanged

Missing-note updates:
    PUT /notes/{id} and toggle-pin against an id that does not exist follow
    the NOTE_UPDATE_MISSING setting: "ignore" succeeds without changing
    anything, "not_found" raises NotFoundError.
"""

import logging
from typing import List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from notebox.config import UPDATE_MISSING_IGNORE, UPDATE_MISSING_NOT_FOUND
from notebox.exceptions import DatabaseError, NotFoundError
from notebox.models.note import Note
from notebox.repositories.note_repository import NoteRepository
from notebox.schemas.note import NoteCreate, NoteCreatedResponse, NoteResponse, NoteUpdate
from notebox.services.attachment_service import AttachmentService, to_attachment_response

logger = logging.getLogger(__name__)


def to_note_response(note: Note) -> NoteResponse:
    return NoteResponse(
        id=note.id,
        user_id=note.user_id,
        title=note.title,
        content=note.content,
        last_modified=note.last_modified,
        is_pinned=note.is_pinned,
        attachments=[to_attachment_response(a) for a in note.attachments],
    )


class NoteService:
    """
    Business logic layer for note operations.

    Holds the AttachmentService (for blob cleanup on delete) and the
    missing-note update policy; everything per-request arrives as arguments.
    """

    def __init__(
        self,
        attachment_service: AttachmentService,
        update_missing: str = UPDATE_MISSING_IGNORE,
    ):
        self.attachment_service = attachment_service
        self.update_missing = update_missing

    async def list_notes(self, db: AsyncSession) -> List[NoteResponse]:
        try:
            notes = await NoteRepository(db).list_notes()
        except SQLAlchemyError as e:
            logger.error("Database error listing notes: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not retrieve notes. Please try again.",
                context={"error_type": type(e).__name__},
            ) from e

        logger.info("Retrieved %d notes", len(notes))
        return [to_note_response(n) for n in notes]

    async def get_note(self, db: AsyncSession, note_id: int) -> NoteResponse:
        """
        Retrieve a single note with its attachments.

        Raises:
            NotFoundError: Note with given ID does not exist (→ 404)
            DatabaseError: Query execution failed (→ 500)
        """
        try:
            note = await NoteRepository(db).get_note(note_id)
        except SQLAlchemyError as e:
            logger.error("Database error fetching note %s: %s", note_id, str(e))
            raise DatabaseError(
                message="Could not retrieve the note. Please try again.",
                context={"note_id": note_id, "error_type": type(e).__name__},
            ) from e

        if note is None:
            raise NotFoundError(resource="note", resource_id=note_id)
        return to_note_response(note)

    async def create_note(self, db: AsyncSession, payload: NoteCreate) -> NoteCreatedResponse:
        try:
            note_id = await NoteRepository(db).insert_note(
                user_id=payload.user_id,
                title=payload.title,
                content=payload.content,
                is_pinned=payload.is_pinned,
            )
        except SQLAlchemyError as e:
            logger.error("Database error creating note: %s", str(e))
            raise DatabaseError(
                message="Could not create the note. Please try again.",
                context={"user_id": payload.user_id, "error_type": type(e).__name__},
            ) from e

        logger.info("Created note %s for user %s", note_id, payload.user_id)
        return NoteCreatedResponse(id=note_id)

    async def update_note(self, db: AsyncSession, note_id: int, payload: NoteUpdate) -> None:
        try:
            rows = await NoteRepository(db).update_note(
                note_id=note_id,
                title=payload.title,
                content=payload.content,
                is_pinned=payload.is_pinned,
            )
        except SQLAlchemyError as e:
            logger.error("Database error updating note %s: %s", note_id, str(e))
            raise DatabaseError(
                message="Could not update the note. Please try again.",
                context={"note_id": note_id, "error_type": type(e).__name__},
            ) from e

        self._check_missing(rows, note_id, "update")
        if rows:
            logger.info("Updated note %s", note_id)

    async def set_pinned(self, db: AsyncSession, note_id: int, is_pinned: bool) -> None:
        try:
            rows = await NoteRepository(db).set_pinned(note_id, is_pinned)
        except SQLAlchemyError as e:
            logger.error("Database error updating pin for note %s: %s", note_id, str(e))
            raise DatabaseError(
                message="Could not update the pin status. Please try again.",
                context={"note_id": note_id, "error_type": type(e).__name__},
            ) from e

        self._check_missing(rows, note_id, "toggle-pin")
        if rows:
            logger.info("Set pin=%s for note %s", is_pinned, note_id)

    async def delete_note(self, db: AsyncSession, note_id: int) -> None:
        """
        Delete a note, its attachment rows and (best-effort) its blobs.

        Blob deletion failures are logged by AttachmentService and do not
        stop the delete; the rows go in one transaction afterwards.

        Raises:
            NotFoundError: Note with given ID does not exist
            DatabaseError: lookup or row deletion failed (nothing deleted)
        """
        repo = NoteRepository(db)
        try:
            note = await repo.get_note(note_id)
        except SQLAlchemyError as e:
            logger.error("Database error fetching note %s for delete: %s", note_id, str(e))
            raise DatabaseError(
                message="Could not delete the note. Please try again.",
                context={"note_id": note_id, "error_type": type(e).__name__},
            ) from e

        if note is None:
            raise NotFoundError(resource="note", resource_id=note_id)

        attachments = list(note.attachments)
        failures = await self.attachment_service.purge_note_objects(note_id, attachments)
        if failures:
            logger.warning(
                "%d of %d objects for note %s could not be deleted and may be orphaned",
                failures,
                len(attachments),
                note_id,
            )

        try:
            await repo.delete_note(note_id)
        except SQLAlchemyError as e:
            logger.error("Database error deleting note %s: %s", note_id, str(e))
            raise DatabaseError(
                message="Could not delete the note. Please try again.",
                context={"note_id": note_id, "error_type": type(e).__name__},
            ) from e

        logger.info("Deleted note %s with %d attachments", note_id, len(attachments))

    def _check_missing(self, rows: int, note_id: int, operation: str) -> None:
        if rows:
            return
        if self.update_missing == UPDATE_MISSING_NOT_FOUND:
            raise NotFoundError(resource="note", resource_id=note_id)
        logger.info("%s on missing note %s ignored", operation, note_id)
