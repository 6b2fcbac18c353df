"""
Notebox Backend — Object Store Tests
======================================

What:  Both object store backends against the same contract.
How:   LocalObjectStore writes into tmp_path. S3ObjectStore talks to an
       in-memory fake boto3 client; run_in_threadpool is replaced by an
       inline call so the fake needs no thread safety.
"""

import time
from typing import Any, Dict, List
from urllib.parse import parse_qs, urlparse

import pytest
from botocore.exceptions import ClientError

from notebox.exceptions import ObjectNotFoundError, ObjectStoreError
from notebox.storage.local_store import LocalObjectStore
from notebox.storage.s3_store import S3ObjectStore

BUCKET = "notes-files"


# ══════════════════════════════════════════════════════════════════════════
# Local filesystem store
# ══════════════════════════════════════════════════════════════════════════

def _query(url: str) -> Dict[str, str]:
    return {k: v[0] for k, v in parse_qs(urlparse(url).query).items()}


class TestLocalObjectStore:

    @pytest.mark.asyncio
    async def test_put_then_get(self, local_store):
        url = await local_store.put(BUCKET, "7-report.pdf", b"%PDF-1.7")

        assert url.startswith("http://test/files/notes-files/7-report.pdf?")
        assert await local_store.get(BUCKET, "7-report.pdf") == b"%PDF-1.7"
        assert await local_store.exists(BUCKET, "7-report.pdf")

    @pytest.mark.asyncio
    async def test_retrieval_url_signature(self, local_store):
        """Minted URLs verify; tampered or expired ones do not."""
        url = await local_store.put(BUCKET, "7-a.txt", b"a")
        query = _query(url)
        expires = int(query["expires"])

        assert expires > time.time() + 6 * 24 * 3600
        assert local_store.verify_signature(BUCKET, "7-a.txt", expires, query["signature"])
        assert not local_store.verify_signature(BUCKET, "7-b.txt", expires, query["signature"])
        assert not local_store.verify_signature(BUCKET, "7-a.txt", expires + 1, query["signature"])
        assert not local_store.verify_signature(
            BUCKET, "7-a.txt", expires, query["signature"], now=expires + 1
        )

    @pytest.mark.asyncio
    async def test_delete_removes_object(self, local_store):
        await local_store.put(BUCKET, "7-a.txt", b"a")
        await local_store.delete(BUCKET, "7-a.txt")
        assert not await local_store.exists(BUCKET, "7-a.txt")

    @pytest.mark.asyncio
    async def test_delete_missing_object(self, local_store):
        await local_store.ensure_bucket(BUCKET)
        with pytest.raises(ObjectNotFoundError):
            await local_store.delete(BUCKET, "7-never.txt")

    @pytest.mark.asyncio
    async def test_get_missing_object(self, local_store):
        with pytest.raises(ObjectNotFoundError):
            await local_store.get(BUCKET, "7-never.txt")

    @pytest.mark.asyncio
    async def test_rejects_path_traversal(self, local_store):
        with pytest.raises(ObjectStoreError):
            await local_store.put(BUCKET, "../outside.txt", b"x")

    @pytest.mark.asyncio
    async def test_ensure_bucket_is_idempotent(self, local_store):
        await local_store.ensure_bucket(BUCKET)
        await local_store.ensure_bucket(BUCKET)
        assert await local_store.ping(BUCKET)


# ══════════════════════════════════════════════════════════════════════════
# S3 store (fake boto3 client)
# ══════════════════════════════════════════════════════════════════════════

def _client_error(code: str, operation: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


class _FakeBody:
    def __init__(self, data: bytes) -> None:
        self._data = data

    def read(self) -> bytes:
        return self._data


class _FakeS3Client:
    def __init__(self) -> None:
        self.buckets: set = set()
        self.objects: Dict[tuple, bytes] = {}
        self.put_calls: List[Dict[str, Any]] = []
        self.presign_calls: List[Dict[str, Any]] = []
        self.sticky_deletes = False
        self.fail_puts = False

    def head_bucket(self, *, Bucket: str) -> None:
        if Bucket not in self.buckets:
            raise _client_error("404", "HeadBucket")

    def create_bucket(self, *, Bucket: str) -> None:
        self.buckets.add(Bucket)

    def put_object(self, **kwargs: Any) -> None:
        if self.fail_puts:
            raise _client_error("InternalError", "PutObject")
        self.put_calls.append(dict(kwargs))
        self.objects[(kwargs["Bucket"], kwargs["Key"])] = kwargs["Body"]

    def get_object(self, *, Bucket: str, Key: str) -> Dict[str, Any]:
        if (Bucket, Key) not in self.objects:
            raise _client_error("NoSuchKey", "GetObject")
        return {"Body": _FakeBody(self.objects[(Bucket, Key)])}

    def head_object(self, *, Bucket: str, Key: str) -> Dict[str, Any]:
        if (Bucket, Key) not in self.objects:
            raise _client_error("404", "HeadObject")
        return {"ContentLength": len(self.objects[(Bucket, Key)])}

    def delete_object(self, *, Bucket: str, Key: str) -> None:
        if not self.sticky_deletes:
            self.objects.pop((Bucket, Key), None)

    def generate_presigned_url(self, operation: str, Params: Dict[str, str], ExpiresIn: int) -> str:
        self.presign_calls.append({"operation": operation, "ExpiresIn": ExpiresIn, **Params})
        return f"http://minio:9000/{Params['Bucket']}/{Params['Key']}?X-Amz-Expires={ExpiresIn}"


@pytest.fixture
def fake_s3(monkeypatch: pytest.MonkeyPatch):
    fake = _FakeS3Client()
    boto3_calls: List[Dict[str, Any]] = []

    import boto3

    def _fake_client(service_name: str, **kwargs: Any):
        boto3_calls.append({"service_name": service_name, **kwargs})
        return fake

    async def _run_inline(fn, *args, **kwargs):
        return fn(*args, **kwargs)

    monkeypatch.setattr(boto3, "client", _fake_client)
    monkeypatch.setattr("notebox.storage.s3_store.run_in_threadpool", _run_inline)

    fake.boto3_calls = boto3_calls
    return fake


def _s3_store() -> S3ObjectStore:
    return S3ObjectStore(
        endpoint_url="http://minio:9000",
        region="",
        access_key_id="ak",
        secret_access_key="sk",
        force_path_style=True,
        url_ttl_seconds=604_800,
    )


class TestS3ObjectStore:

    @pytest.mark.asyncio
    async def test_client_configuration(self, fake_s3):
        _s3_store()
        call = fake_s3.boto3_calls[0]
        assert call["service_name"] == "s3"
        assert call["endpoint_url"] == "http://minio:9000"
        assert call["aws_access_key_id"] == "ak"

    @pytest.mark.asyncio
    async def test_put_creates_bucket_and_presigns(self, fake_s3):
        store = _s3_store()
        url = await store.put(BUCKET, "7-report.pdf", b"%PDF", content_type="application/pdf")

        assert BUCKET in fake_s3.buckets
        assert fake_s3.put_calls[0]["Key"] == "7-report.pdf"
        assert fake_s3.put_calls[0]["ContentType"] == "application/pdf"
        assert fake_s3.presign_calls[0]["ExpiresIn"] == 604_800
        assert fake_s3.presign_calls[0]["operation"] == "get_object"
        assert "7-report.pdf" in url

    @pytest.mark.asyncio
    async def test_put_failure_is_object_store_error(self, fake_s3):
        fake_s3.fail_puts = True
        with pytest.raises(ObjectStoreError):
            await _s3_store().put(BUCKET, "7-a.txt", b"a")

    @pytest.mark.asyncio
    async def test_get_roundtrip_and_missing(self, fake_s3):
        store = _s3_store()
        await store.put(BUCKET, "7-a.txt", b"hello")
        assert await store.get(BUCKET, "7-a.txt") == b"hello"
        with pytest.raises(ObjectNotFoundError):
            await store.get(BUCKET, "7-b.txt")

    @pytest.mark.asyncio
    async def test_delete_missing_object(self, fake_s3):
        fake_s3.buckets.add(BUCKET)
        with pytest.raises(ObjectNotFoundError):
            await _s3_store().delete(BUCKET, "7-never.txt")

    @pytest.mark.asyncio
    async def test_delete_verifies_removal(self, fake_s3):
        store = _s3_store()
        await store.put(BUCKET, "7-a.txt", b"a")
        await store.delete(BUCKET, "7-a.txt")
        assert not await store.exists(BUCKET, "7-a.txt")

    @pytest.mark.asyncio
    async def test_delete_object_still_present(self, fake_s3):
        """An object that survives delete_object is reported, not ignored."""
        store = _s3_store()
        await store.put(BUCKET, "7-a.txt", b"a")
        fake_s3.sticky_deletes = True

        with pytest.raises(ObjectStoreError) as exc_info:
            await store.delete(BUCKET, "7-a.txt")
        assert not isinstance(exc_info.value, ObjectNotFoundError)

    @pytest.mark.asyncio
    async def test_ping_with_missing_bucket(self, fake_s3):
        assert await _s3_store().ping(BUCKET)
