"""
Unit tests for SourceFetchTask: upload storage and reference reads.
"""

import io
import uuid
from unittest.mock import MagicMock

import httpx
import pytest
from botocore.exceptions import ClientError

from docingest.core.document_processing.tasks import SourceFetchTask
from docingest.core.exceptions import ExtractionError, SizeLimitExceeded


class TestStoreUpload:
    """Test suite for writing uploads."""

    def test_upload_round_trips_through_local_reference(self, tmp_path):
        # Arrange
        task = SourceFetchTask(upload_directory=str(tmp_path), max_bytes=100)
        document_id = uuid.uuid4()

        # Act
        ref = task.store_upload(document_id, "../../etc/manual.txt", b"hello")

        # Assert
        assert ref.startswith(str(tmp_path.resolve() / str(document_id)))
        assert ref.endswith("_manual.txt")

    async def test_fetch_local_and_file_uri(self, tmp_path):
        task = SourceFetchTask(upload_directory=str(tmp_path), max_bytes=100)
        ref = task.store_upload(uuid.uuid4(), "manual.txt", b"hello")

        assert await task.fetch(ref) == b"hello"
        assert await task.fetch(f"file://{ref}") == b"hello"

    async def test_missing_local_file(self, tmp_path):
        task = SourceFetchTask(upload_directory=str(tmp_path), max_bytes=100)

        with pytest.raises(ExtractionError):
            await task.fetch(str(tmp_path / "gone.pdf"))

    async def test_local_file_over_limit(self, tmp_path):
        path = tmp_path / "big.txt"
        path.write_bytes(b"x" * 101)
        task = SourceFetchTask(upload_directory=str(tmp_path), max_bytes=100)

        with pytest.raises(SizeLimitExceeded):
            await task.fetch(str(path))


class TestRemoteReferences:
    """Test suite for http(s) and s3 references."""

    async def test_http_reference(self, tmp_path):
        client = httpx.AsyncClient(
            transport=httpx.MockTransport(lambda request: httpx.Response(200, content=b"%PDF-1.4"))
        )
        task = SourceFetchTask(upload_directory=str(tmp_path), max_bytes=100, http_client=client)

        assert await task.fetch("https://example.com/manual.pdf") == b"%PDF-1.4"

    async def test_http_error_status(self, tmp_path):
        client = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(404)))
        task = SourceFetchTask(upload_directory=str(tmp_path), max_bytes=100, http_client=client)

        with pytest.raises(ExtractionError) as exc_info:
            await task.fetch("https://example.com/missing.pdf")
        assert "404" in exc_info.value.message

    async def test_http_body_over_limit(self, tmp_path):
        client = httpx.AsyncClient(
            transport=httpx.MockTransport(lambda request: httpx.Response(200, content=b"x" * 101))
        )
        task = SourceFetchTask(upload_directory=str(tmp_path), max_bytes=100, http_client=client)

        with pytest.raises(SizeLimitExceeded):
            await task.fetch("https://example.com/big.pdf")

    async def test_s3_reference(self, tmp_path):
        # Arrange
        s3 = MagicMock()
        s3.get_object.return_value = {"Body": io.BytesIO(b"%PDF-1.4")}
        task = SourceFetchTask(upload_directory=str(tmp_path), max_bytes=100, s3_client=s3)

        # Act
        data = await task.fetch("s3://manuals/devices/manual.pdf")

        # Assert
        assert data == b"%PDF-1.4"
        s3.get_object.assert_called_once_with(Bucket="manuals", Key="devices/manual.pdf")

    async def test_s3_missing_key(self, tmp_path):
        s3 = MagicMock()
        s3.get_object.side_effect = ClientError({"Error": {"Code": "NoSuchKey"}}, "GetObject")
        task = SourceFetchTask(upload_directory=str(tmp_path), max_bytes=100, s3_client=s3)

        with pytest.raises(ExtractionError) as exc_info:
            await task.fetch("s3://manuals/missing.pdf")
        assert "not found" in exc_info.value.message
