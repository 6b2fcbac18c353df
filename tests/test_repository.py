"""
Notebox Backend — Repository Integration Tests
================================================

What:  NoteRepository against a real SQLite database (aiosqlite).
Why:   Row counts, ordering and the transactional note delete can only be
       checked against an actual database.
"""

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from notebox.models.attachment import Attachment
from notebox.models.note import Note
from notebox.repositories.note_repository import NoteRepository


async def _count(session_factory, model) -> int:
    async with session_factory() as session:
        result = await session.execute(select(func.count()).select_from(model))
        return result.scalar_one()


async def _seed(session_factory, attachments: int = 2) -> int:
    async with session_factory() as session:
        repo = NoteRepository(session)
        note_id = await repo.insert_note(user_id=42, title="Trip", content="pack", is_pinned=False)
        for i in range(attachments):
            await repo.insert_attachment(
                note_id=note_id,
                file_name=f"file{i}",
                extension="txt",
                size=i + 1,
                url=f"http://test/files/notes-files/{note_id}-file{i}.txt",
            )
        await session.commit()
    return note_id


class _FailingSession:
    """Delegates to a real session but fails the Nth execute() call."""

    def __init__(self, session, fail_on_call: int):
        self._session = session
        self._fail_on_call = fail_on_call
        self.calls = 0

    async def execute(self, statement, *args, **kwargs):
        self.calls += 1
        if self.calls == self._fail_on_call:
            raise OperationalError(str(statement), {}, Exception("injected failure"))
        return await self._session.execute(statement, *args, **kwargs)


class TestNoteRows:

    @pytest.mark.asyncio
    async def test_insert_and_get(self, session_factory):
        note_id = await _seed(session_factory, attachments=1)
        async with session_factory() as session:
            note = await NoteRepository(session).get_note(note_id)

        assert note.title == "Trip"
        assert note.user_id == 42
        assert note.last_modified is not None
        assert [a.file_name for a in note.attachments] == ["file0"]

    @pytest.mark.asyncio
    async def test_user_id_beyond_32_bits(self, session_factory):
        async with session_factory() as session:
            repo = NoteRepository(session)
            note_id = await repo.insert_note(user_id=7_000_000_000, title="t", content="", is_pinned=False)
            await session.commit()
        async with session_factory() as session:
            assert (await NoteRepository(session).get_note(note_id)).user_id == 7_000_000_000

    @pytest.mark.asyncio
    async def test_update_missing_returns_zero(self, session_factory):
        async with session_factory() as session:
            repo = NoteRepository(session)
            assert await repo.update_note(999, "t", "c", False) == 0
            assert await repo.set_pinned(999, True) == 0

    @pytest.mark.asyncio
    async def test_set_pinned_leaves_last_modified(self, session_factory):
        note_id = await _seed(session_factory, attachments=0)
        async with session_factory() as session:
            before = (await NoteRepository(session).get_note(note_id)).last_modified

        async with session_factory() as session:
            assert await NoteRepository(session).set_pinned(note_id, True) == 1
            await session.commit()

        async with session_factory() as session:
            note = await NoteRepository(session).get_note(note_id)
        assert note.is_pinned is True
        assert note.last_modified == before

    @pytest.mark.asyncio
    async def test_list_notes_ordered_by_id(self, session_factory):
        first = await _seed(session_factory, attachments=0)
        second = await _seed(session_factory, attachments=0)
        async with session_factory() as session:
            notes = await NoteRepository(session).list_notes()
        assert [n.id for n in notes] == [first, second]


class TestNoteDelete:

    @pytest.mark.asyncio
    async def test_delete_removes_note_and_attachments(self, session_factory):
        note_id = await _seed(session_factory, attachments=3)

        async with session_factory() as session:
            assert await NoteRepository(session).delete_note(note_id) == 1
            await session.commit()

        assert await _count(session_factory, Note) == 0
        assert await _count(session_factory, Attachment) == 0

    @pytest.mark.asyncio
    async def test_failed_note_delete_rolls_back_attachment_delete(self, session_factory):
        """Second DELETE fails → the first one is rolled back with it."""
        note_id = await _seed(session_factory, attachments=2)

        async with session_factory() as session:
            failing = _FailingSession(session, fail_on_call=2)
            with pytest.raises(OperationalError):
                await NoteRepository(failing).delete_note(note_id)
            await session.rollback()

        assert failing.calls == 2
        assert await _count(session_factory, Note) == 1
        assert await _count(session_factory, Attachment) == 2


class TestAttachmentRows:

    @pytest.mark.asyncio
    async def test_get_attachment_is_scoped_to_note(self, session_factory):
        note_a = await _seed(session_factory, attachments=1)
        note_b = await _seed(session_factory, attachments=0)

        async with session_factory() as session:
            repo = NoteRepository(session)
            (attachment,) = await repo.list_attachments(note_a)
            assert await repo.get_attachment(attachment.id, note_a) is not None
            assert await repo.get_attachment(attachment.id, note_b) is None
            assert await repo.delete_attachment(attachment.id, note_b) == 0

    @pytest.mark.asyncio
    async def test_find_attachment_by_name(self, session_factory):
        note_id = await _seed(session_factory, attachments=1)
        async with session_factory() as session:
            repo = NoteRepository(session)
            assert await repo.find_attachment_by_name(note_id, "file0", "txt") is not None
            assert await repo.find_attachment_by_name(note_id, "file0", "pdf") is None
