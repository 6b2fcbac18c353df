"""
Notebox Backend — Pydantic Request/Response Schemas
=====================================================

What:  Pydantic models defining the JSON contract with the frontend.
How:   FastAPI validates request bodies against the request models and
       serializes responses through the response models. Field names are
       snake_case in Python and camelCase on the wire (alias generator).

Schemas are separate from the SQLAlchemy models: `is_pinned` is stored in
column `is_pin`, `extension` in `ext`, `url` in `file_url`, and the API
exposes `filename` for the attachment base name.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# Column ranges: notes.id and note_files.id are INTEGER, notes.user_id is BIGINT.
MAX_ROW_ID = 2**31 - 1
MAX_USER_ID = 2**63 - 1


class CamelModel(BaseModel):
    """Accepts and emits camelCase keys; snake_case names also accepted on input."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class NoteCreate(CamelModel):
    """Body of POST /notes."""

    user_id: int = Field(default=0, ge=0, le=MAX_USER_ID, description="Owning Telegram user id (64-bit)")
    title: str = Field(description="Note title")
    content: str = Field(default="", description="Note body")
    is_pinned: bool = Field(default=False)


class NoteUpdate(CamelModel):
    """Body of PUT /notes/{id}. Overwrites every field it carries."""

    title: str
    content: str = ""
    is_pinned: bool = False


class PinUpdate(CamelModel):
    """Body of PUT /notes/{id}/toggle-pin."""

    is_pinned: bool


class AttachmentDelete(CamelModel):
    """Body of DELETE /notes/{id}/delete-file."""

    attachment_id: int = Field(ge=1, le=MAX_ROW_ID)


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class AttachmentResponse(CamelModel):
    """
    One attachment as returned inside a note and by the upload endpoint.

    `url` is a time-limited retrieval URL; it stops working once it expires.
    """

    id: int
    note_id: int
    filename: str = Field(description="Base name without extension")
    size: int = Field(description="Size in bytes")
    extension: str = Field(description="Extension without the leading dot")
    url: str = Field(description="Time-limited retrieval URL")


class NoteResponse(CamelModel):
    id: int
    user_id: int
    title: str
    content: str
    last_modified: datetime
    is_pinned: bool
    attachments: List[AttachmentResponse] = Field(default_factory=list)


class NoteCreatedResponse(BaseModel):
    """Returned by POST /notes."""

    id: int


class ErrorResponse(BaseModel):
    """
    Standardized error body for all API errors.

    Example:
        {
            "error": "not_found",
            "message": "note with ID '42' was not found",
            "request_id": "a1b2c3d4"
        }
    """

    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    """Returned by GET /health."""

    status: str = Field(description="healthy, degraded or unhealthy")
    version: str
    database: str = Field(description="connected or disconnected")
    object_store: str = Field(description="available or unavailable")
    uptime_seconds: float
