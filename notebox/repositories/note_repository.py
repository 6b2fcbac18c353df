"""
Notebox Backend — Note Repository (Relational Store)
======================================================

What:  Every SQL statement the service layer needs for notes and attachments.
How:   Thin async SQLAlchemy 2.0 wrapper around one request-scoped
       AsyncSession. Missing rows come back as None or a zero rowcount;
       driver errors propagate unchanged for the service to translate.
Who:   Constructed per call by NoteService and AttachmentService.

Transactions:
    The session commits once at the end of the request (see
    database.get_db_session). delete_note runs both of its DELETEs inside
    that single transaction: a failure on either one rolls back both.
"""

from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from notebox.models.attachment import Attachment
from notebox.models.note import Note


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class NoteRepository:
    """CRUD for the `notes` and `note_files` tables."""

    def __init__(self, session: AsyncSession):
        self.session = session

    # ── Notes ─────────────────────────────────────────────────────────────

    async def list_notes(self) -> List[Note]:
        """All notes with their attachments. No pagination."""
        result = await self.session.execute(select(Note).order_by(Note.id))
        return list(result.scalars().all())

    async def get_note(self, note_id: int) -> Optional[Note]:
        result = await self.session.execute(select(Note).where(Note.id == note_id))
        return result.scalar_one_or_none()

    async def note_exists(self, note_id: int) -> bool:
        result = await self.session.execute(select(Note.id).where(Note.id == note_id))
        return result.scalar_one_or_none() is not None

    async def insert_note(
        self,
        user_id: int,
        title: str,
        content: str,
        is_pinned: bool,
    ) -> int:
        note = Note(
            user_id=user_id,
            title=title,
            content=content,
            is_pinned=is_pinned,
            last_modified=_utcnow(),
        )
        self.session.add(note)
        await self.session.flush()  # assigns the SERIAL id
        return note.id

    async def update_note(
        self,
        note_id: int,
        title: str,
        content: str,
        is_pinned: bool,
    ) -> int:
        """Overwrites title/content/pin and refreshes last_modified. Returns rows affected."""
        result = await self.session.execute(
            update(Note)
            .where(Note.id == note_id)
            .values(
                title=title,
                content=content,
                is_pinned=is_pinned,
                last_modified=_utcnow(),
            )
        )
        return result.rowcount or 0

    async def set_pinned(self, note_id: int, is_pinned: bool) -> int:
        """Updates only the pin flag. Returns rows affected."""
        result = await self.session.execute(
            update(Note).where(Note.id == note_id).values(is_pinned=is_pinned)
        )
        return result.rowcount or 0

    async def delete_note(self, note_id: int) -> int:
        """
        Delete a note and all of its attachment rows.

        Attachments first (FK), then the note, both in the session's current
        transaction. Returns the number of note rows deleted.
        """
        await self.session.execute(
            delete(Attachment).where(Attachment.note_id == note_id)
        )
        result = await self.session.execute(delete(Note).where(Note.id == note_id))
        return result.rowcount or 0

    # ── Attachments ───────────────────────────────────────────────────────

    async def insert_attachment(
        self,
        note_id: int,
        file_name: str,
        extension: str,
        size: int,
        url: str,
    ) -> Attachment:
        attachment = Attachment(
            note_id=note_id,
            file_name=file_name,
            ext=extension,
            size=size,
            file_url=url,
        )
        self.session.add(attachment)
        await self.session.flush()
        return attachment

    async def list_attachments(self, note_id: int) -> List[Attachment]:
        result = await self.session.execute(
            select(Attachment)
            .where(Attachment.note_id == note_id)
            .order_by(Attachment.id)
        )
        return list(result.scalars().all())

    async def get_attachment(self, attachment_id: int, note_id: int) -> Optional[Attachment]:
        """Scoped by both ids: an attachment of another note is reported missing."""
        result = await self.session.execute(
            select(Attachment).where(
                Attachment.id == attachment_id,
                Attachment.note_id == note_id,
            )
        )
        return result.scalar_one_or_none()

    async def find_attachment_by_name(
        self,
        note_id: int,
        file_name: str,
        extension: str,
    ) -> Optional[Attachment]:
        result = await self.session.execute(
            select(Attachment)
            .where(
                Attachment.note_id == note_id,
                Attachment.file_name == file_name,
                Attachment.ext == extension,
            )
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def delete_attachment(self, attachment_id: int, note_id: int) -> int:
        result = await self.session.execute(
            delete(Attachment).where(
                Attachment.id == attachment_id,
                Attachment.note_id == note_id,
            )
        )
        return result.rowcount or 0
