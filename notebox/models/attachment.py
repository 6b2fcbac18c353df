"""
Notebox Backend — Attachment SQLAlchemy Model
===============================================

What:  ORM model for the `note_files` table: metadata of one stored blob.
Who:   Written by AttachmentService, read through Note.attachments.

Column notes:
    - file_name / ext: the uploaded filename split at its last dot; together
      with note_id they determine the object key (see storage.keys).
    - file_url: retrieval URL minted at upload time. It expires; the key
      can always be re-derived to mint a fresh one.
    - note_id: ON DELETE CASCADE, so the database alone guarantees that no
      attachment outlives its note.
"""

from datetime import datetime, timezone
from typing import TYPE_CHECKING

from sqlalchemy import TIMESTAMP, BigInteger, ForeignKey, Integer, Text, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from notebox.database import Base

if TYPE_CHECKING:
    from notebox.models.note import Note


class Attachment(Base):
    """A file attached to exactly one note."""

    __tablename__ = "note_files"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    note_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("notes.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    file_name: Mapped[str] = mapped_column(Text, nullable=False)
    ext: Mapped[str] = mapped_column(Text, nullable=False, default="")
    size: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=0,
        server_default=text("0"),
    )
    file_url: Mapped[str] = mapped_column(Text, nullable=False)

    uploaded_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    note: Mapped["Note"] = relationship(back_populates="attachments")

    def __repr__(self) -> str:
        return (
            f"<Attachment(id={self.id}, note_id={self.note_id}, "
            f"file='{self.file_name}.{self.ext}', size={self.size})>"
        )
