"""
Notebox Backend — FastAPI Dependency Providers
================================================

What:  Hands route handlers the process-wide objects built by `create_app()`.
How:   Everything lives on `request.app.state`; these functions just read it,
       so tests can swap any of them through `app.dependency_overrides`.
"""

from fastapi import Request

from notebox.config import Settings
from notebox.services.attachment_service import AttachmentService
from notebox.services.note_service import NoteService
from notebox.storage.object_store import ObjectStore


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_object_store(request: Request) -> ObjectStore:
    return request.app.state.object_store


def get_note_service(request: Request) -> NoteService:
    return request.app.state.note_service


def get_attachment_service(request: Request) -> AttachmentService:
    return request.app.state.attachment_service
