"""
Notebox Backend — Note SQLAlchemy Model
=========================================

What:  ORM model representing the `notes` table.
How:   Inherits from the shared DeclarativeBase; Alembic reads the metadata.
Who:   Used by NoteRepository for every read and write of notes.

Table Design:
    - id: SERIAL integer primary key, assigned by the database on insert
    - user_id: BIGINT (Telegram user ids exceed 32 bits)
    - last_modified: UTC with timezone, set on insert and on every update
    - is_pin: pin flag, toggled independently of the other fields
    - attachments: loaded together with the note ("selectin"), ordered by id
"""

from datetime import datetime, timezone
from typing import List

from sqlalchemy import TIMESTAMP, BigInteger, Boolean, Integer, Text, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from notebox.database import Base
from notebox.models.attachment import Attachment


class Note(Base):
    """
    A user-owned text note with optional attachments.

    Lifecycle:
        1. Created without attachments (POST /notes)
        2. Title/content/pin updated any number of times (last write wins)
        3. Attachments added/removed through AttachmentService
        4. Deleted together with all attachment rows in one transaction
    """

    __tablename__ = "notes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    user_id: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=0,
        comment="Owning Telegram user id",
    )

    title: Mapped[str] = mapped_column(Text, nullable=False, default="")
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")

    last_modified: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
        comment="Set on creation and every update (UTC)",
    )

    is_pinned: Mapped[bool] = mapped_column(
        "is_pin",
        Boolean,
        nullable=False,
        default=False,
        server_default=text("false"),
    )

    # passive_deletes: the FK's ON DELETE CASCADE removes rows the session
    # has not loaded
    attachments: Mapped[List[Attachment]] = relationship(
        back_populates="note",
        lazy="selectin",
        order_by=Attachment.id,
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return (
            f"<Note(id={self.id}, user_id={self.user_id}, "
            f"pinned={self.is_pinned}, last_modified='{self.last_modified}')>"
        )
