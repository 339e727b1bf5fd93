"""
Document source fetch task.

Resolves a source reference to raw bytes. References are local paths,
http(s) URLs, or s3://bucket/key URIs. Raw uploads are first written to the
upload directory so every job carries a re-readable reference.

Dependencies: httpx, boto3
System role: Source stage of document ingestion pipeline
"""

import asyncio
import logging
import shutil
import uuid
from pathlib import Path
from urllib.parse import urlparse

import boto3
import httpx
from botocore.exceptions import BotoCoreError, ClientError

from docingest.core.exceptions import ExtractionError, SizeLimitExceeded

logger = logging.getLogger(__name__)


class SourceFetchTask:
    """Store uploads and read document bytes back from a source reference."""

    def __init__(
        self,
        upload_directory: str,
        max_bytes: int,
        http_client: httpx.AsyncClient | None = None,
        s3_client=None,
        aws_region: str = "us-east-1",
        timeout: float = 60.0,
    ) -> None:
        """
        Initialize source fetch task.

        Args:
            upload_directory: Directory for stored uploads
            max_bytes: Size limit enforced on every fetch
            http_client: Client for http(s) references (created per call if None)
            s3_client: boto3 S3 client (created lazily if None)
            aws_region: Region for the lazily created S3 client
            timeout: HTTP timeout in seconds
        """
        self._upload_dir = Path(upload_directory)
        self._max_bytes = max_bytes
        self._http_client = http_client
        self._s3_client = s3_client
        self._aws_region = aws_region
        self._timeout = timeout

    def store_upload(self, document_id: uuid.UUID, filename: str, data: bytes) -> str:
        """
        Write uploaded bytes to the upload directory.

        Args:
            document_id: Owning document
            filename: Original filename (only its final component is kept)
            data: Raw bytes

        Returns:
            str: Absolute path usable as a source reference
        """
        target_dir = self._upload_dir / str(document_id)
        target_dir.mkdir(parents=True, exist_ok=True)
        target = target_dir / f"{uuid.uuid4().hex}_{Path(filename).name}"
        target.write_bytes(data)
        logger.info(
            f"{__name__}:store_upload - stored {len(data)} bytes",
            extra={"document_id": str(document_id), "path": str(target)},
        )
        return str(target.resolve())

    def prune_uploads(self, document_id: uuid.UUID, keep: str | None = None) -> int:
        """
        Remove a document's stored uploads other than `keep`.

        Args:
            document_id: Owning document
            keep: Source reference still needed by the document's active job

        Returns:
            int: Number of files removed
        """
        target_dir = self._upload_dir / str(document_id)
        if not target_dir.is_dir():
            return 0
        keep_path = Path(keep).resolve() if keep else None
        removed = 0
        for path in target_dir.iterdir():
            if path.is_file() and path.resolve() != keep_path:
                path.unlink()
                removed += 1
        if removed:
            logger.info(
                f"{__name__}:prune_uploads - removed {removed} superseded uploads",
                extra={"document_id": str(document_id)},
            )
        return removed

    def delete_uploads(self, document_id: uuid.UUID) -> None:
        """Remove every stored upload of a document."""
        target_dir = self._upload_dir / str(document_id)
        if target_dir.is_dir():
            shutil.rmtree(target_dir)

    async def fetch(self, source_ref: str) -> bytes:
        """
        Read the bytes behind a source reference.

        Args:
            source_ref: Local path, http(s) URL or s3:// URI

        Returns:
            bytes: Document content

        Raises:
            SizeLimitExceeded: Content is larger than the configured maximum
            ExtractionError: Source cannot be read
        """
        scheme = urlparse(source_ref).scheme.lower()
        if scheme in ("http", "https"):
            data = await self._fetch_http(source_ref)
        elif scheme == "s3":
            data = await asyncio.to_thread(self._fetch_s3, source_ref)
        else:
            data = await asyncio.to_thread(self._fetch_local, source_ref)

        if len(data) > self._max_bytes:
            raise SizeLimitExceeded(len(data), self._max_bytes)
        return data

    def _fetch_local(self, source_ref: str) -> bytes:
        path = Path(source_ref[len("file://"):] if source_ref.startswith("file://") else source_ref)
        if not path.is_file():
            raise ExtractionError(f"Source file not found: {source_ref}")
        size = path.stat().st_size
        if size > self._max_bytes:
            raise SizeLimitExceeded(size, self._max_bytes)
        return path.read_bytes()

    async def _fetch_http(self, url: str) -> bytes:
        client = self._http_client or httpx.AsyncClient(timeout=self._timeout, follow_redirects=True)
        try:
            response = await client.get(url)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise ExtractionError(
                f"Failed to download source: HTTP {e.response.status_code}",
                details={"url": url},
            ) from e
        except httpx.HTTPError as e:
            raise ExtractionError(f"Failed to download source: {e}", details={"url": url}) from e
        finally:
            if self._http_client is None:
                await client.aclose()
        return response.content

    def _fetch_s3(self, uri: str) -> bytes:
        parsed = urlparse(uri)
        bucket, key = parsed.netloc, parsed.path.lstrip("/")
        if not bucket or not key:
            raise ExtractionError(f"Invalid S3 URI: {uri}")

        if self._s3_client is None:
            self._s3_client = boto3.client("s3", region_name=self._aws_region)
        try:
            response = self._s3_client.get_object(Bucket=bucket, Key=key)
            return response["Body"].read()
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            if error_code in ("404", "NoSuchKey"):
                raise ExtractionError(f"File not found in S3: {uri}") from e
            raise ExtractionError(f"Failed to download from S3: {e}") from e
        except BotoCoreError as e:
            raise ExtractionError(f"Failed to download from S3: {e}") from e
