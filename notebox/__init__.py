"""
Notebox Backend — Application Package Initializer
==================================================

What: Marks the `notebox` directory as a Python package.
Who:  Imported by uvicorn (`notebox.main:app`), Alembic, and pytest.

Architecture Note:
    The backend is layered top to bottom:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │   Services (Note / Attachment)      │  ← Orchestration, error translation
    ├─────────────────────────────────────┤
    │  Repository        │  Object Store  │  ← SQL rows  │  blobs + retrieval URLs
    ├─────────────────────────────────────┤
    │  Async SQLAlchemy  │  boto3 / disk  │
    └─────────────────────────────────────┘

    The database engine and the object store are built once in
    `create_app()` and handed to the layers above through FastAPI
    dependencies; no layer reaches for a module-level handle.
"""

__version__ = "1.0.0"
