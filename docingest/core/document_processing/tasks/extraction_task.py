"""
Text extraction task.

Turns raw document bytes into pages of text. PDFs and images go through the
configured backend (Mistral OCR over HTTP, or LangChain's PyPDFLoader);
plain-text documents are decoded directly.

Dependencies: httpx, tenacity, langchain_community.document_loaders
System role: First stage of document ingestion pipeline
"""

import asyncio
import base64
import logging
import os
import tempfile
from pathlib import Path
from typing import Awaitable, Callable

import httpx
from langchain_community.document_loaders import PyPDFLoader
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from docingest.core.document_processing.configs import DocumentPipelineSettings
from docingest.core.document_processing.models import ExtractedPage
from docingest.core.document_processing.payload_decoder import decode_ocr_payload
from docingest.core.exceptions import (
    ExtractionError,
    SizeLimitExceeded,
    TransientProviderError,
    UnsupportedDocumentType,
)

logger = logging.getLogger(__name__)

TEXT_EXTENSIONS = (".txt", ".md")
IMAGE_EXTENSIONS = (".png", ".jpg", ".jpeg")
SUPPORTED_EXTENSIONS = (".pdf",) + TEXT_EXTENSIONS + IMAGE_EXTENSIONS

_IMAGE_MIME = {".png": "image/png", ".jpg": "image/jpeg", ".jpeg": "image/jpeg"}

CONFIGURATION_SECTION = "Configuration Required"
ERROR_SECTION = "Error"


def check_document(size_bytes: int, filename: str, max_bytes: int) -> str:
    """
    Validate size and type before any extraction work.

    Args:
        size_bytes: Document size
        filename: Original filename
        max_bytes: Configured maximum size

    Returns:
        str: Lowercased extension

    Raises:
        SizeLimitExceeded: Document is larger than max_bytes
        UnsupportedDocumentType: Extension not in SUPPORTED_EXTENSIONS
    """
    if size_bytes > max_bytes:
        raise SizeLimitExceeded(size_bytes, max_bytes)
    suffix = Path(filename).suffix.lower()
    if suffix not in SUPPORTED_EXTENSIONS:
        raise UnsupportedDocumentType(filename, SUPPORTED_EXTENSIONS)
    return suffix


def notice_page(text: str, section: str) -> ExtractedPage:
    return ExtractedPage(page_number=1, text=text, section=section, synthetic=True)


class ExtractionTask:
    """Extract page text from document bytes."""

    def __init__(
        self,
        settings: DocumentPipelineSettings,
        client: httpx.AsyncClient | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """
        Initialize extraction task.

        Args:
            settings: Pipeline settings (backend, credentials, limits, retries)
            client: HTTP client for the OCR provider (created per call if None)
            sleep: Backoff sleep, replaceable in tests
        """
        self._settings = settings
        self._client = client
        self._sleep = sleep

    async def extract(self, data: bytes, filename: str) -> list[ExtractedPage]:
        """
        Extract pages of text from a document.

        Args:
            data: Raw document bytes
            filename: Original filename, used to pick the extractor

        Returns:
            list[ExtractedPage]: Pages in order; a single synthetic page when
                the backend is unconfigured or returns no text

        Raises:
            SizeLimitExceeded: Document is larger than the configured maximum
            UnsupportedDocumentType: Extension is not supported
            ExtractionError: Backend failed after retries
        """
        suffix = check_document(len(data), filename, self._settings.max_document_bytes)

        if suffix in TEXT_EXTENSIONS:
            pages = self._decode_text(data)
        elif self._settings.extraction_backend == "pypdf":
            if suffix in IMAGE_EXTENSIONS:
                raise ExtractionError(
                    f"Image documents need the mistral_ocr backend: {filename}",
                    details={"backend": "pypdf"},
                )
            pages = await self._extract_pypdf(data, filename)
        else:
            if not self._settings.mistral_api_key:
                logger.warning(
                    f"{__name__}:extract - MISTRAL_API_KEY not set, skipping OCR",
                    extra={"document_name": filename},
                )
                return [
                    notice_page(
                        f'PDF processing requires Mistral API Key. The file "{filename}" was '
                        "uploaded but text extraction was skipped. Please configure the "
                        "MISTRAL_API_KEY environment variable.",
                        CONFIGURATION_SECTION,
                    )
                ]
            pages = await self._extract_ocr(data, filename, suffix)

        pages = [page for page in pages if page.text.strip()]
        if not pages:
            logger.warning(
                f"{__name__}:extract - no text extracted",
                extra={"document_name": filename},
            )
            return [
                notice_page(
                    f'Unable to extract text from "{filename}". The document may be '
                    "scanned without a text layer or empty.",
                    ERROR_SECTION,
                )
            ]

        logger.info(
            f"{__name__}:extract - extracted {len(pages)} pages",
            extra={"document_name": filename},
        )
        return pages

    def _decode_text(self, data: bytes) -> list[ExtractedPage]:
        text = data.decode("utf-8", errors="replace")
        return [
            ExtractedPage(page_number=number, text=page_text)
            for number, page_text in enumerate(text.split("\f"), start=1)
        ]

    async def _extract_pypdf(self, data: bytes, filename: str) -> list[ExtractedPage]:
        """Parse a PDF's text layer with PyPDFLoader on a temp file."""
        temp_dir = tempfile.mkdtemp(prefix="docingest_")
        local_path = os.path.join(temp_dir, Path(filename).name or "document.pdf")
        try:
            with open(local_path, "wb") as f:
                f.write(data)
            documents = await asyncio.wait_for(
                asyncio.to_thread(PyPDFLoader(local_path).load),
                timeout=self._settings.extraction_timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            raise ExtractionError(f"PDF parse timed out: {filename}") from e
        except Exception as e:
            raise ExtractionError(f"Failed to parse PDF: {e}", details={"document_name": filename}) from e
        finally:
            if os.path.exists(local_path):
                os.remove(local_path)
            os.rmdir(temp_dir)

        return [
            ExtractedPage(page_number=int(doc.metadata.get("page", i)) + 1, text=doc.page_content)
            for i, doc in enumerate(documents)
        ]

    async def _extract_ocr(self, data: bytes, filename: str, suffix: str) -> list[ExtractedPage]:
        """Run Mistral OCR with bounded retries on transient failures."""
        encoded = base64.b64encode(data).decode("ascii")
        if suffix in IMAGE_EXTENSIONS:
            document = {"type": "image_url", "image_url": f"data:{_IMAGE_MIME[suffix]};base64,{encoded}"}
        else:
            document = {"type": "document_url", "document_url": f"data:application/pdf;base64,{encoded}"}
        payload = {"model": self._settings.mistral_ocr_model, "document": document}

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._settings.extraction_max_retries + 1),
            wait=wait_exponential(multiplier=self._settings.extraction_base_delay_seconds, max=30),
            retry=retry_if_exception_type(TransientProviderError),
            sleep=self._sleep,
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    body = await self._post_ocr(payload, attempt.retry_state.attempt_number)
        except TransientProviderError as e:
            raise ExtractionError(
                f"OCR provider unavailable after {self._settings.extraction_max_retries} retries: {e.message}",
                details={"document_name": filename, **e.details},
            ) from e

        result = decode_ocr_payload(body)
        if not result.ok:
            logger.warning(
                f"{__name__}:_extract_ocr - undecodable OCR payload",
                extra={"document_name": filename, "error": str(result.error)},
            )
            return []
        logger.info(
            f"{__name__}:_extract_ocr - decoded OCR payload",
            extra={"document_name": filename, "tier": result.tier.value},
        )
        return result.pages

    async def _post_ocr(self, payload: dict, attempt_number: int) -> str:
        headers = {
            "Authorization": f"Bearer {self._settings.mistral_api_key}",
            "Content-Type": "application/json",
        }
        timeout = self._settings.extraction_timeout_seconds
        client = self._client or httpx.AsyncClient(timeout=timeout)
        try:
            response = await client.post(
                self._settings.mistral_ocr_url,
                json=payload,
                headers=headers,
                timeout=timeout,
            )
        except httpx.TimeoutException as e:
            logger.warning(f"{__name__}:_post_ocr - timeout", extra={"attempt": attempt_number})
            raise TransientProviderError("OCR request timed out") from e
        except httpx.TransportError as e:
            raise TransientProviderError(f"OCR transport error: {e}") from e
        finally:
            if self._client is None:
                await client.aclose()

        if response.status_code == 429 or response.status_code >= 500:
            logger.warning(
                f"{__name__}:_post_ocr - transient status {response.status_code}",
                extra={"attempt": attempt_number},
            )
            raise TransientProviderError(
                f"OCR provider returned {response.status_code}",
                status_code=response.status_code,
            )
        if response.status_code >= 400:
            raise ExtractionError(
                f"OCR provider rejected the request: {response.status_code}",
                details={"status_code": response.status_code, "body": response.text[:500]},
            )
        return response.text
