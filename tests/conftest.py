"""
Notebox Backend — Test Configuration (conftest.py)
====================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Unit tests use `mock_db_session` and mocked collaborators. API and
       repository tests run against a real SQLite file (aiosqlite) and a
       LocalObjectStore, both inside pytest's tmp_path.

Fixture Hierarchy (all function-scoped):
    ├── mock_db_session: Mock AsyncSession (no real DB needed)
    ├── test_settings:   Settings pointing at tmp_path
    ├── local_store:     LocalObjectStore under tmp_path/storage
    ├── app:             create_app(test_settings, local_store) with tables created
    ├── session_factory: the app's session factory, for direct DB assertions
    └── test_client:     HTTPX AsyncClient over ASGITransport
"""

import os
import tempfile
from datetime import datetime, timezone
from typing import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Override settings BEFORE any notebox import: notebox.main builds a
# module-level app from the environment.
_TEST_DIR = tempfile.mkdtemp(prefix="notebox_test_")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TEST_DIR}/module.db"
os.environ["LOCAL_STORAGE_ROOT"] = os.path.join(_TEST_DIR, "storage")
os.environ["S3_ENDPOINT_URL"] = ""
os.environ["TELEGRAM_AUTH_REQUIRED"] = "false"
os.environ["LOG_LEVEL"] = "WARNING"

from notebox.config import Settings  # noqa: E402
from notebox.main import create_app  # noqa: E402
from notebox.storage.local_store import LocalObjectStore  # noqa: E402

TEST_SIGNING_SECRET = "test-signing-secret"


# ══════════════════════════════════════════════════════════════════════════
# Unit-test fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def mock_db_session():
    """
    Provides a mock async database session.

    Usage:
        mock_db_session.execute.return_value.scalar_one_or_none.return_value = note
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def make_attachment():
    """Factory for attachment-like objects as the repository returns them."""

    def _make(id=1, note_id=7, file_name="report", ext="pdf", size=3, file_url="http://u"):
        attachment = MagicMock()
        attachment.id = id
        attachment.note_id = note_id
        attachment.file_name = file_name
        attachment.ext = ext
        attachment.size = size
        attachment.file_url = file_url
        return attachment

    return _make


@pytest.fixture
def make_note():
    """Factory for note-like objects as the repository returns them."""

    def _make(id=7, user_id=42, title="Groceries", content="milk", is_pinned=False, attachments=None):
        note = MagicMock()
        note.id = id
        note.user_id = user_id
        note.title = title
        note.content = content
        note.is_pinned = is_pinned
        note.last_modified = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)
        note.attachments = attachments or []
        return note

    return _make


# ══════════════════════════════════════════════════════════════════════════
# Integration fixtures (SQLite + local object store)
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def test_settings(tmp_path) -> Settings:
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'notebox.db'}",
        local_storage_root=str(tmp_path / "storage"),
        public_base_url="http://test",
        url_signing_secret=TEST_SIGNING_SECRET,
        s3_endpoint_url="",
        telegram_auth_required=False,
        log_level="WARNING",
    )


@pytest.fixture
def local_store(test_settings) -> LocalObjectStore:
    return LocalObjectStore(
        root_dir=test_settings.local_storage_root,
        public_base_url=test_settings.public_base_url,
        signing_secret=test_settings.url_signing_secret,
        url_ttl_seconds=test_settings.presigned_url_ttl_seconds,
    )


@pytest_asyncio.fixture
async def app(test_settings, local_store):
    """A fresh application with empty tables, torn down after the test."""
    application = create_app(settings=test_settings, object_store=local_store)
    await application.state.database.create_all()
    yield application
    await application.state.database.dispose()


@pytest.fixture
def session_factory(app):
    return app.state.database.session_factory


@pytest_asyncio.fixture
async def test_client(app) -> AsyncGenerator[AsyncClient, None]:
    """
    HTTPX AsyncClient routed straight into the app.

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
            assert response.status_code == 200
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
