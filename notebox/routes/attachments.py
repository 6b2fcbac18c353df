"""
Notebox Backend — Attachment Route Handlers
=============================================

What:  POST /notes/{id}/upload-file and DELETE /notes/{id}/delete-file.
How:   The upload is read from the multipart field `file` in 1MB chunks and
       rejected with 413 once it passes MAX_UPLOAD_SIZE; the bytes are then
       handed to AttachmentService.
"""

import logging

from fastapi import APIRouter, Depends, File, Path, Response, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from notebox.auth import require_auth
from notebox.config import Settings
from notebox.database import get_db_session
from notebox.dependencies import get_app_settings, get_attachment_service
from notebox.exceptions import PayloadTooLargeError
from notebox.schemas.note import MAX_ROW_ID, AttachmentDelete, AttachmentResponse, ErrorResponse
from notebox.services.attachment_service import AttachmentService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Attachments"])

_CHUNK_SIZE = 1024 * 1024


async def read_upload_limited(file: UploadFile, max_bytes: int) -> bytes:
    buf = bytearray()
    while True:
        chunk = await file.read(_CHUNK_SIZE)
        if not chunk:
            break
        buf.extend(chunk)
        if len(buf) > max_bytes:
            raise PayloadTooLargeError(
                max_bytes=max_bytes,
                context={"filename": file.filename},
            )
    return bytes(buf)


@router.post(
    "/notes/{note_id}/upload-file",
    response_model=AttachmentResponse,
    response_model_by_alias=True,
    status_code=201,
    responses={
        400: {"description": "Missing or unnamed file", "model": ErrorResponse},
        404: {"description": "Note not found", "model": ErrorResponse},
        409: {"description": "Same file name already attached", "model": ErrorResponse},
        413: {"description": "File too large", "model": ErrorResponse},
        500: {"description": "Storage or database error", "model": ErrorResponse},
    },
    summary="Attach a file to a note",
    dependencies=[Depends(require_auth)],
)
async def upload_file(
    note_id: int = Path(..., ge=1, le=MAX_ROW_ID, description="Note ID"),
    file: UploadFile = File(..., description="File to attach (any type)"),
    db: AsyncSession = Depends(get_db_session),
    service: AttachmentService = Depends(get_attachment_service),
    settings: Settings = Depends(get_app_settings),
) -> AttachmentResponse:
    """
    Store the file in the object store and record its metadata.

    The response carries the new attachment including its retrieval URL.
    """
    try:
        data = await read_upload_limited(file, settings.max_upload_size)
    finally:
        await file.close()

    return await service.upload(
        db,
        note_id=note_id,
        filename=file.filename or "",
        data=data,
        content_type=file.content_type,
    )


@router.delete(
    "/notes/{note_id}/delete-file",
    status_code=200,
    responses={
        400: {"description": "Invalid body", "model": ErrorResponse},
        404: {"description": "Attachment not found on this note", "model": ErrorResponse},
        500: {"description": "Storage or database error", "model": ErrorResponse},
    },
    summary="Remove one attachment from a note",
    dependencies=[Depends(require_auth)],
)
async def delete_file(
    payload: AttachmentDelete,
    note_id: int = Path(..., ge=1, le=MAX_ROW_ID, description="Note ID"),
    db: AsyncSession = Depends(get_db_session),
    service: AttachmentService = Depends(get_attachment_service),
) -> Response:
    await service.delete(db, note_id=note_id, attachment_id=payload.attachment_id)
    return Response(status_code=200)
