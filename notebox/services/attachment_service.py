"""
Notebox Backend — Attachment Service
======================================

What:  Coordinates attachment upload and deletion across the relational
       store (metadata rows) and the object store (blobs).
Who:   Called by the attachment routes, and by NoteService when a whole
       note is deleted.

Consistency rules (there is no distributed transaction):
    Upload:       blob first, then row. A failed upload writes no row.
                  A failed row insert leaves an orphaned blob (logged).
    Delete:       blob first, then row. A failed blob delete keeps the row
                  so the inconsistency stays visible and retryable.
    Note delete:  blob deletes are best-effort; failures are logged and
                  never stop the rows from being deleted.
"""

import logging
from typing import Iterable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from notebox.exceptions import (
    ConflictError,
    DatabaseError,
    NotFoundError,
    ObjectStoreError,
    ValidationError,
)
from notebox.models.attachment import Attachment
from notebox.repositories.note_repository import NoteRepository
from notebox.schemas.note import AttachmentResponse
from notebox.storage.keys import attachment_object_key, join_filename, split_filename
from notebox.storage.object_store import ObjectStore

logger = logging.getLogger(__name__)


def to_attachment_response(attachment: Attachment) -> AttachmentResponse:
    return AttachmentResponse(
        id=attachment.id,
        note_id=attachment.note_id,
        filename=attachment.file_name,
        size=attachment.size,
        extension=attachment.ext,
        url=attachment.file_url,
    )


class AttachmentService:
    """
    Attachment upload/delete orchestration.

    Holds the process-wide object store and the bucket name; the database
    session is passed in per call.
    """

    def __init__(self, object_store: ObjectStore, bucket: str):
        self.object_store = object_store
        self.bucket = bucket

    async def upload(
        self,
        db: AsyncSession,
        note_id: int,
        filename: str,
        data: bytes,
        content_type: Optional[str] = None,
    ) -> AttachmentResponse:
        """
        Store an uploaded file and record its metadata.

        Steps:
            1. Note must exist (404 otherwise, nothing uploaded)
            2. Split filename into base name + extension (400 if empty)
            3. Reject a second file with the same name on the note (409)
            4. Put the blob under attachment_object_key(...)
            5. Insert the note_files row with size and retrieval URL

        Raises:
            NotFoundError, ValidationError, ConflictError: client errors
            ObjectStoreError: the blob could not be stored (no row written)
            DatabaseError: the row could not be written (blob orphaned)
        """
        file_name, extension = split_filename(filename)
        if not file_name and not extension:
            raise ValidationError(message="Uploaded file has no name", field="file")

        repo = NoteRepository(db)
        try:
            if not await repo.note_exists(note_id):
                raise NotFoundError(resource="note", resource_id=note_id)
            existing = await repo.find_attachment_by_name(note_id, file_name, extension)
        except SQLAlchemyError as e:
            logger.error("Database error preparing upload for note %s: %s", note_id, str(e))
            raise DatabaseError(
                message="Could not upload the file. Please try again.",
                context={"note_id": note_id, "error_type": type(e).__name__},
            ) from e

        if existing is not None:
            raise ConflictError(
                message=(
                    f"Note {note_id} already has an attachment named "
                    f"'{join_filename(file_name, extension)}'"
                ),
                context={"note_id": note_id, "attachment_id": existing.id},
            )

        key = attachment_object_key(note_id, file_name, extension)
        url = await self.object_store.put(self.bucket, key, data, content_type=content_type)
        logger.info("Uploaded %s (%d bytes) for note %s", key, len(data), note_id)

        try:
            attachment = await repo.insert_attachment(
                note_id=note_id,
                file_name=file_name,
                extension=extension,
                size=len(data),
                url=url,
            )
        except SQLAlchemyError as e:
            logger.error(
                "Metadata insert failed after upload; object %s/%s is orphaned: %s",
                self.bucket,
                key,
                str(e),
            )
            raise DatabaseError(
                message="Could not save the file metadata. Please try again.",
                context={"note_id": note_id, "key": key, "error_type": type(e).__name__},
            ) from e

        logger.info("Attachment %s saved for note %s", attachment.id, note_id)
        return to_attachment_response(attachment)

    async def delete(self, db: AsyncSession, note_id: int, attachment_id: int) -> None:
        """
        Delete one attachment: blob first, then the row.

        Raises:
            NotFoundError: no attachment with this id on this note
            ObjectStoreError: blob missing or not deletable; the row is kept
            DatabaseError: row lookup/delete failed
        """
        repo = NoteRepository(db)
        try:
            attachment = await repo.get_attachment(attachment_id, note_id)
        except SQLAlchemyError as e:
            logger.error("Database error looking up attachment %s: %s", attachment_id, str(e))
            raise DatabaseError(
                message="Could not delete the file. Please try again.",
                context={"attachment_id": attachment_id, "error_type": type(e).__name__},
            ) from e

        if attachment is None:
            raise NotFoundError(
                resource="attachment",
                resource_id=attachment_id,
                context={"note_id": note_id},
            )

        key = attachment_object_key(note_id, attachment.file_name, attachment.ext)
        await self.object_store.delete(self.bucket, key)

        try:
            await repo.delete_attachment(attachment_id, note_id)
        except SQLAlchemyError as e:
            logger.error(
                "Object %s deleted but row %s could not be removed: %s",
                key,
                attachment_id,
                str(e),
            )
            raise DatabaseError(
                message="Could not delete the file metadata. Please try again.",
                context={"attachment_id": attachment_id, "error_type": type(e).__name__},
            ) from e

        logger.info("Deleted attachment %s (%s) from note %s", attachment_id, key, note_id)

    async def purge_note_objects(self, note_id: int, attachments: Iterable[Attachment]) -> int:
        """
        Best-effort removal of the blobs behind a note's attachments.

        Failures are logged and counted, never raised: the caller goes on to
        delete the rows regardless. Returns the number of failures.
        """
        failures = 0
        for attachment in attachments:
            key = attachment_object_key(note_id, attachment.file_name, attachment.ext)
            try:
                await self.object_store.delete(self.bucket, key)
            except ObjectStoreError as e:
                failures += 1
                logger.warning(
                    "Could not delete object %s/%s for note %s (continuing): %s",
                    self.bucket,
                    key,
                    note_id,
                    e.message,
                )
        return failures
