"""
Errors raised by submission, processing, storage and retrieval.

ValidationError subclasses are rejected before a job exists and map to
4xx responses; DocumentProcessingError subclasses end a job as `failed`.
Every error carries a `details` dict that is logged as structured context.

Dependencies: None
System role: Shared error vocabulary for pipeline, services and API
"""

from typing import Any


class IngestionError(Exception):
    """Base exception for all ingestion and retrieval errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ValidationError(IngestionError):
    """Raised when submission input is rejected before a job exists."""

    def __init__(
        self,
        message: str,
        field: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if field:
            details["field"] = field
        super().__init__(message, details)


class SizeLimitExceeded(ValidationError):
    """Raised when a document is larger than the configured maximum."""

    def __init__(self, size_bytes: int, limit_bytes: int) -> None:
        """
        Initialize size limit error.

        Args:
            size_bytes: Actual document size
            limit_bytes: Configured maximum
        """
        self.size_bytes = size_bytes
        self.limit_bytes = limit_bytes
        super().__init__(
            f"Document is {size_bytes} bytes, exceeding the {limit_bytes} byte limit",
            field="source",
            details={"size_bytes": size_bytes, "limit_bytes": limit_bytes},
        )


class UnsupportedDocumentType(ValidationError):
    """Raised when a document's extension is not handled by any extractor."""

    def __init__(self, filename: str, supported: tuple[str, ...]) -> None:
        super().__init__(
            f"Unsupported document type: {filename}",
            field="filename",
            details={"supported": list(supported)},
        )


class DocumentProcessingError(IngestionError):
    """A job-level failure: the job ends `failed` with this message."""

    def __init__(
        self,
        message: str,
        document_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize document processing error.

        Args:
            message: Error message
            document_id: ID of the document that failed
            details: Additional context
        """
        details = details or {}
        if document_id:
            details["document_id"] = document_id
        super().__init__(message, details)


class ExtractionError(DocumentProcessingError):
    """Raised when text extraction fails terminally."""

    pass


class EmbeddingError(DocumentProcessingError):
    """Raised when embedding generation fails after all retries."""

    pass


class TransientProviderError(IngestionError):
    """Raised for retryable provider failures (rate limits, 5xx, timeouts)."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if status_code is not None:
            details["status_code"] = status_code
        self.status_code = status_code
        super().__init__(message, details)


class PayloadParseError(IngestionError):
    """Raised when an extraction provider payload cannot be decoded at all."""

    pass


class ChunkStoreError(IngestionError):
    """Raised when chunk persistence or similarity search fails."""

    def __init__(
        self,
        message: str,
        operation: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize chunk store error.

        Args:
            message: Error message
            operation: Store operation that failed (upsert, search, repair)
            details: Additional context
        """
        details = details or {}
        if operation:
            details["operation"] = operation
        super().__init__(message, details)


class RetrievalError(IngestionError):
    """Raised when a similarity query cannot be answered."""

    pass


class JobNotFoundError(IngestionError):
    """Raised when a job ID does not exist."""

    def __init__(self, job_id: str, details: dict[str, Any] | None = None) -> None:
        """
        Initialize job not found error.

        Args:
            job_id: ID of the missing job
            details: Additional context
        """
        details = details or {}
        details["job_id"] = job_id
        super().__init__(f"Job not found: {job_id}", details)


class JobStateError(IngestionError):
    """Raised on an illegal job state transition."""

    def __init__(self, job_id: str, current: str, requested: str) -> None:
        self.current = current
        self.requested = requested
        super().__init__(
            f"Cannot move job {job_id} from {current} to {requested}",
            {"job_id": job_id, "current": current, "requested": requested},
        )
