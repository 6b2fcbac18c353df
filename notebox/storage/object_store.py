"""
Notebox Backend — Object Store Gateway
========================================

What:  The interface every blob backend implements, plus the factory that
       picks one from settings.
Who:   AttachmentService (put / delete), the /files route (get), the health
       check (ping).

Contract:
    ensure_bucket  idempotent create-if-absent
    put            ensures the bucket, stores the bytes, returns a retrieval
                   URL valid for the configured TTL
    delete         ObjectNotFoundError if the object was absent beforehand;
                   ObjectStoreError if it is still present afterwards
    Every other backend failure surfaces as ObjectStoreError.
"""

import logging
from typing import Optional, Protocol

from notebox.config import Settings

logger = logging.getLogger(__name__)


class ObjectStore(Protocol):
    async def ensure_bucket(self, bucket: str) -> None: ...

    async def put(
        self,
        bucket: str,
        key: str,
        data: bytes,
        *,
        content_type: Optional[str] = None,
    ) -> str: ...

    async def get(self, bucket: str, key: str) -> bytes: ...

    async def exists(self, bucket: str, key: str) -> bool: ...

    async def presigned_url(self, bucket: str, key: str) -> str: ...

    async def delete(self, bucket: str, key: str) -> None: ...

    async def ping(self, bucket: str) -> bool: ...


def build_object_store(settings: Settings) -> ObjectStore:
    """
    Construct the object store described by settings.

    S3 when endpoint and both credentials are configured, otherwise the
    local filesystem store rooted at LOCAL_STORAGE_ROOT.
    """
    if settings.s3_enabled:
        from notebox.storage.s3_store import S3ObjectStore

        logger.info("Object store: S3 at %s", settings.s3_endpoint_url)
        return S3ObjectStore(
            endpoint_url=settings.s3_endpoint_url,
            region=settings.s3_region,
            access_key_id=settings.s3_access_key_id,
            secret_access_key=settings.s3_secret_access_key,
            force_path_style=settings.s3_force_path_style,
            url_ttl_seconds=settings.presigned_url_ttl_seconds,
        )

    from notebox.storage.local_store import LocalObjectStore

    logger.info("Object store: local filesystem at %s", settings.local_storage_root)
    return LocalObjectStore(
        root_dir=settings.local_storage_root,
        public_base_url=settings.public_base_url,
        signing_secret=settings.url_signing_secret,
        url_ttl_seconds=settings.presigned_url_ttl_seconds,
    )
