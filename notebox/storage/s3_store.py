"""
S3-compatible object store (MinIO, AWS S3, ...) on top of boto3.

boto3 is blocking, so every call runs in Starlette's threadpool. The client
is created once and shared by all requests; boto3 clients are thread-safe.
"""

import logging
from typing import Any, Dict, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError
from starlette.concurrency import run_in_threadpool

from notebox.exceptions import ObjectNotFoundError, ObjectStoreError

logger = logging.getLogger(__name__)

_MISSING_CODES = {"404", "NoSuchKey", "NotFound", "NoSuchBucket"}


def _is_missing(exc: ClientError) -> bool:
    return str(exc.response.get("Error", {}).get("Code", "")) in _MISSING_CODES


class S3ObjectStore:
    def __init__(
        self,
        *,
        endpoint_url: str,
        region: str,
        access_key_id: str,
        secret_access_key: str,
        force_path_style: bool,
        url_ttl_seconds: int,
    ) -> None:
        self._url_ttl_seconds = url_ttl_seconds
        addressing_style = "path" if force_path_style else "virtual"
        self._client = boto3.client(
            "s3",
            endpoint_url=endpoint_url,
            region_name=region or None,
            aws_access_key_id=access_key_id,
            aws_secret_access_key=secret_access_key,
            config=Config(s3={"addressing_style": addressing_style}, signature_version="s3v4"),
        )

    async def ensure_bucket(self, bucket: str) -> None:
        def _ensure() -> None:
            try:
                self._client.head_bucket(Bucket=bucket)
                return
            except ClientError as e:
                if not _is_missing(e):
                    raise
            logger.info("Creating bucket %s", bucket)
            try:
                self._client.create_bucket(Bucket=bucket)
            except ClientError as e:
                # Another worker created it between head and create
                code = e.response.get("Error", {}).get("Code", "")
                if code not in {"BucketAlreadyOwnedByYou", "BucketAlreadyExists"}:
                    raise

        try:
            await run_in_threadpool(_ensure)
        except (ClientError, BotoCoreError) as e:
            raise ObjectStoreError(
                message=f"Could not provision bucket '{bucket}'",
                context={"bucket": bucket, "error": str(e)},
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

        def _put() -> None:
            kwargs: Dict[str, Any] = {
                "Bucket": bucket,
                "Key": key,
                "Body": data,
                "ContentType": content_type or "application/octet-stream",
            }
            self._client.put_object(**kwargs)

        logger.info("Uploading object %s/%s (%d bytes)", bucket, key, len(data))
        try:
            await run_in_threadpool(_put)
        except (ClientError, BotoCoreError) as e:
            raise ObjectStoreError(
                message=f"Failed to upload '{key}'",
                context={"bucket": bucket, "key": key, "error": str(e)},
            ) from e

        return await self.presigned_url(bucket, key)

    async def get(self, bucket: str, key: str) -> bytes:
        def _get() -> bytes:
            resp = self._client.get_object(Bucket=bucket, Key=key)
            body = resp.get("Body")
            return body.read() if body is not None else b""

        try:
            return await run_in_threadpool(_get)
        except ClientError as e:
            if _is_missing(e):
                raise ObjectNotFoundError(bucket, key) from e
            raise ObjectStoreError(
                message=f"Failed to read '{key}'",
                context={"bucket": bucket, "key": key, "error": str(e)},
            ) from e
        except BotoCoreError as e:
            raise ObjectStoreError(
                message=f"Failed to read '{key}'",
                context={"bucket": bucket, "key": key, "error": str(e)},
            ) from e

    async def exists(self, bucket: str, key: str) -> bool:
        def _head() -> bool:
            try:
                self._client.head_object(Bucket=bucket, Key=key)
                return True
            except ClientError as e:
                if _is_missing(e):
                    return False
                raise

        try:
            return await run_in_threadpool(_head)
        except (ClientError, BotoCoreError) as e:
            raise ObjectStoreError(
                message=f"Failed to stat '{key}'",
                context={"bucket": bucket, "key": key, "error": str(e)},
            ) from e

    async def presigned_url(self, bucket: str, key: str) -> str:
        def _sign() -> str:
            return self._client.generate_presigned_url(
                "get_object",
                Params={"Bucket": bucket, "Key": key},
                ExpiresIn=self._url_ttl_seconds,
            )

        try:
            return await run_in_threadpool(_sign)
        except (ClientError, BotoCoreError) as e:
            raise ObjectStoreError(
                message=f"Failed to sign a retrieval URL for '{key}'",
                context={"bucket": bucket, "key": key, "error": str(e)},
            ) from e

    async def delete(self, bucket: str, key: str) -> None:
        logger.info("Deleting object %s/%s", bucket, key)
        if not await self.exists(bucket, key):
            raise ObjectNotFoundError(bucket, key)

        def _delete() -> None:
            self._client.delete_object(Bucket=bucket, Key=key)

        try:
            await run_in_threadpool(_delete)
        except (ClientError, BotoCoreError) as e:
            raise ObjectStoreError(
                message=f"Failed to delete '{key}'",
                context={"bucket": bucket, "key": key, "error": str(e)},
            ) from e

        if await self.exists(bucket, key):
            raise ObjectStoreError(
                message=f"Object '{key}' still exists after deletion",
                context={"bucket": bucket, "key": key},
            )

    async def ping(self, bucket: str) -> bool:
        def _head() -> None:
            self._client.head_bucket(Bucket=bucket)

        try:
            await run_in_threadpool(_head)
        except ClientError as e:
            # A missing bucket is created on first upload; the store itself is up
            return _is_missing(e)
        except BotoCoreError as e:
            logger.warning("S3 ping failed: %s", str(e))
            return False
        return True
