"""
Notebox Backend — Local Filesystem Object Store
=================================================

What:  Stores blobs under LOCAL_STORAGE_ROOT/<bucket>/<key> and mints
       expiring retrieval URLs that the backend itself serves at
       /files/<bucket>/<key>?expires=<unix>&signature=<sig>.
Who:   Used when no S3 endpoint is configured (local development, tests).

Signed URLs:
    signature = urlsafe_b64(HMAC-SHA256(secret, "<bucket>/<key>:<expires>"))
    The /files route recomputes it and rejects mismatches and expired links,
    so a retrieval URL behaves like an S3 presigned GET.
"""

import base64
import hashlib
import hmac
import logging
import time
from pathlib import Path, PurePosixPath
from typing import Optional
from urllib.parse import quote, urlencode

import aiofiles
from starlette.concurrency import run_in_threadpool

from notebox.exceptions import ObjectNotFoundError, ObjectStoreError

logger = logging.getLogger(__name__)


def _safe_join(root: Path, *segments: str) -> Path:
    parts = []
    for segment in segments:
        parts.extend(p for p in PurePosixPath(segment).parts if p not in {"/", ""})
    if not parts or any(p in {"..", "."} for p in parts):
        raise ObjectStoreError(
            message="Invalid storage key",
            context={"segments": list(segments)},
        )
    return root.joinpath(*parts)


class LocalObjectStore:
    def __init__(
        self,
        *,
        root_dir: str,
        public_base_url: str,
        signing_secret: str,
        url_ttl_seconds: int,
    ) -> None:
        self._root = Path(root_dir).resolve()
        self._public_base_url = public_base_url.rstrip("/")
        self._signing_secret = signing_secret
        self._url_ttl_seconds = url_ttl_seconds

    def resolve_path(self, bucket: str, key: str) -> Path:
        return _safe_join(self._root, bucket, key)

    # ── URL signing ───────────────────────────────────────────────────────

    def _signature(self, bucket: str, key: str, expires: int) -> str:
        message = f"{bucket}/{key}:{expires}"
        digest = hmac.new(
            self._signing_secret.encode("utf-8"),
            message.encode("utf-8"),
            hashlib.sha256,
        ).digest()
        return base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")

    def verify_signature(
        self,
        bucket: str,
        key: str,
        expires: int,
        signature: str,
        now: Optional[float] = None,
    ) -> bool:
        """True when the signature matches and the link has not expired."""
        current = time.time() if now is None else now
        if expires < current:
            return False
        expected = self._signature(bucket, key, expires)
        return hmac.compare_digest(expected, signature)

    async def presigned_url(self, bucket: str, key: str) -> str:
        expires = int(time.time()) + self._url_ttl_seconds
        query = urlencode({"expires": expires, "signature": self._signature(bucket, key, expires)})
        return f"{self._public_base_url}/files/{quote(bucket, safe='')}/{quote(key, safe='')}?{query}"

    # ── Blob operations ───────────────────────────────────────────────────

    async def ensure_bucket(self, bucket: str) -> None:
        bucket_dir = _safe_join(self._root, bucket)
        try:
            await run_in_threadpool(bucket_dir.mkdir, parents=True, exist_ok=True)
        except OSError as e:
            raise ObjectStoreError(
                message=f"Could not provision bucket '{bucket}'",
                context={"bucket": bucket, "os_error": str(e)},
            ) from e

    async def put(
        self,
        bucket: str,
        key: str,
        data: bytes,
        *,
        content_type: Optional[str] = None,
    ) -> str:
        await self.ensure_bucket(bucket)
        path = self.resolve_path(bucket, key)
        tmp_path = path.with_name(path.name + ".tmp")

        logger.info("Writing object %s/%s (%d bytes)", bucket, key, len(data))
        try:
            async with aiofiles.open(tmp_path, "wb") as f:
                await f.write(data)
            await run_in_threadpool(tmp_path.replace, path)
        except OSError as e:
            raise ObjectStoreError(
                message=f"Failed to upload '{key}'",
                context={"bucket": bucket, "key": key, "os_error": str(e)},
            ) from e

        return await self.presigned_url(bucket, key)

    async def get(self, bucket: str, key: str) -> bytes:
        path = self.resolve_path(bucket, key)
        if not path.is_file():
            raise ObjectNotFoundError(bucket, key)
        try:
            async with aiofiles.open(path, "rb") as f:
                return await f.read()
        except OSError as e:
            raise ObjectStoreError(
                message=f"Failed to read '{key}'",
                context={"bucket": bucket, "key": key, "os_error": str(e)},
            ) from e

    async def exists(self, bucket: str, key: str) -> bool:
        return self.resolve_path(bucket, key).is_file()

    async def delete(self, bucket: str, key: str) -> None:
        logger.info("Deleting object %s/%s", bucket, key)
        path = self.resolve_path(bucket, key)
        if not path.is_file():
            raise ObjectNotFoundError(bucket, key)

        try:
            await run_in_threadpool(path.unlink)
        except OSError as e:
            raise ObjectStoreError(
                message=f"Failed to delete '{key}'",
                context={"bucket": bucket, "key": key, "os_error": str(e)},
            ) from e

        if path.exists():
            raise ObjectStoreError(
                message=f"Object '{key}' still exists after deletion",
                context={"bucket": bucket, "key": key},
            )

    async def ping(self, bucket: str) -> bool:
        # The root is created on first upload
        return self._root.is_dir() or self._root.parent.is_dir()
