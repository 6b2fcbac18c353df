"""
Notebox Backend — Local Retrieval URL Route
=============================================

What:  Serves blobs of the local filesystem object store through the signed,
       expiring URLs that LocalObjectStore mints.
Who:   Browsers following an attachment `url`. With an S3 store configured
       the URLs point at S3 directly and this route answers 404.
"""

import logging
import mimetypes

from fastapi import APIRouter, Depends, Query, Response

from notebox.dependencies import get_object_store
from notebox.exceptions import ForbiddenError, NotFoundError, ObjectNotFoundError
from notebox.schemas.note import ErrorResponse
from notebox.storage.local_store import LocalObjectStore
from notebox.storage.object_store import ObjectStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Files"])


@router.get(
    "/files/{bucket}/{key:path}",
    responses={
        200: {"description": "Attachment bytes"},
        403: {"description": "Bad signature or expired link", "model": ErrorResponse},
        404: {"description": "Object not found", "model": ErrorResponse},
    },
    summary="Download an attachment through a retrieval URL",
)
async def serve_file(
    bucket: str,
    key: str,
    expires: int = Query(..., description="Unix expiry timestamp"),
    signature: str = Query(..., description="URL signature"),
    store: ObjectStore = Depends(get_object_store),
) -> Response:
    if not isinstance(store, LocalObjectStore):
        raise NotFoundError(resource="file", resource_id=key)

    if not store.verify_signature(bucket, key, expires, signature):
        logger.warning("Rejected retrieval URL for %s/%s", bucket, key)
        raise ForbiddenError(message="Retrieval URL is invalid or has expired")

    try:
        data = await store.get(bucket, key)
    except ObjectNotFoundError as e:
        raise NotFoundError(resource="file", resource_id=key) from e

    media_type = mimetypes.guess_type(key)[0] or "application/octet-stream"
    return Response(
        content=data,
        media_type=media_type,
        headers={"Cache-Control": "private, max-age=3600"},
    )
