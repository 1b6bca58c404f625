"""Unit tests for the blob stores."""

import os
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from symposium.config import Settings
from symposium.kernel.errors import ExternalFailure, InvalidInput
from symposium.services.storage import (
    LocalBlobStore,
    S3BlobStore,
    build_blob_store,
)

PDF = b"%PDF-1.4 body"


@pytest.fixture
def local_store(tmp_path) -> LocalBlobStore:
    return LocalBlobStore(
        upload_dir=str(tmp_path / "uploads"),
        base_url="/uploads",
        max_size=64,
        allowed_types=["application/pdf"],
    )


class TestValidation:
    def test_empty_file(self, local_store):
        with pytest.raises(InvalidInput, match="empty"):
            local_store.validate(b"", "application/pdf")

    def test_too_large(self, local_store):
        with pytest.raises(InvalidInput, match="too large") as exc_info:
            local_store.validate(b"x" * 65, "application/pdf")
        assert exc_info.value.detail["max_size"] == 64

    def test_wrong_type(self, local_store):
        with pytest.raises(InvalidInput, match="Unsupported"):
            local_store.validate(PDF, "image/png")


class TestLocalBlobStore:
    @pytest.mark.asyncio
    async def test_put_then_delete(self, local_store, tmp_path):
        stored = await local_store.put(PDF, "My Paper.PDF", "application/pdf")

        assert stored.url.startswith("/uploads/")
        assert stored.url.endswith(".pdf")
        assert stored.filename == "My Paper.PDF"
        assert stored.size == len(PDF)

        path = tmp_path / "uploads" / os.path.basename(stored.url)
        assert path.read_bytes() == PDF

        await local_store.delete(stored.url)
        assert not path.exists()

    @pytest.mark.asyncio
    async def test_each_put_gets_its_own_name(self, local_store):
        a = await local_store.put(PDF, "paper.pdf", "application/pdf")
        b = await local_store.put(PDF, "paper.pdf", "application/pdf")

        assert a.url != b.url

    @pytest.mark.asyncio
    async def test_deleting_missing_blob_is_fine(self, local_store):
        await local_store.delete("/uploads/does-not-exist.pdf")

    @pytest.mark.asyncio
    async def test_foreign_url_refused(self, local_store):
        with pytest.raises(InvalidInput):
            await local_store.delete("https://elsewhere.example.com/paper.pdf")

    @pytest.mark.asyncio
    async def test_invalid_upload_writes_nothing(self, local_store, tmp_path):
        with pytest.raises(InvalidInput):
            await local_store.put(b"", "paper.pdf", "application/pdf")

        assert not (tmp_path / "uploads").exists()


class TestS3BlobStore:
    def _store(self, client) -> S3BlobStore:
        return S3BlobStore(
            bucket_name="papers",
            region="ap-northeast-2",
            max_size=1024,
            allowed_types=["application/pdf"],
            client=client,
        )

    @pytest.mark.asyncio
    async def test_put_and_delete(self):
        client = MagicMock()
        store = self._store(client)

        stored = await store.put(PDF, "paper.pdf", "application/pdf")

        assert stored.url.startswith("https://papers.s3.ap-northeast-2.amazonaws.com/")
        kwargs = client.put_object.call_args.kwargs
        assert kwargs["Bucket"] == "papers"
        assert kwargs["Body"] == PDF
        assert kwargs["ContentType"] == "application/pdf"
        key = kwargs["Key"]

        await store.delete(stored.url)
        client.delete_object.assert_called_once_with(Bucket="papers", Key=key)

    @pytest.mark.asyncio
    async def test_client_errors_become_external_failures(self):
        client = MagicMock()
        client.put_object.side_effect = ClientError(
            {"Error": {"Code": "AccessDenied", "Message": "denied"}}, "PutObject"
        )
        store = self._store(client)

        with pytest.raises(ExternalFailure) as exc_info:
            await store.put(PDF, "paper.pdf", "application/pdf")
        assert exc_info.value.service == "s3"


class TestBuildBlobStore:
    def test_local_backend(self, tmp_path):
        settings = Settings(storage_backend="local", upload_dir=str(tmp_path))

        assert isinstance(build_blob_store(settings), LocalBlobStore)

    def test_unknown_backend(self):
        with pytest.raises(ValueError):
            build_blob_store(Settings(storage_backend="ftp"))
