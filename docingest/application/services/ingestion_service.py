"""
Ingestion service orchestrator.

The narrow submission API used by the surrounding product: submit a
document, poll its status, query stored chunks, repair incomplete chunks and
re-dispatch jobs still waiting in the store.
Submission validates input synchronously, records the job and hands its ID
to a dispatcher; it never waits for the run.

Dependencies: docingest.core, docingest.boundary.vdb, docingest.workers.dispatcher
System role: Document ingestion orchestration
"""

import asyncio
import logging
import time
import uuid
from datetime import datetime
from pathlib import Path
from typing import Callable
from urllib.parse import urlparse

from pydantic import BaseModel, Field
from sqlalchemy.exc import SQLAlchemyError

from docingest.boundary.db.models import JobStatus, ProcessingStage
from docingest.boundary.vdb import ChunkMatch, ChunkStore, RepairReport
from docingest.core.document_processing.configs import DocumentPipelineSettings
from docingest.core.document_processing.tasks import SourceFetchTask, check_document
from docingest.core.exceptions import IngestionError, ValidationError
from docingest.core.job_tracker import JobSnapshot, JobTracker
from docingest.core.retriever import Retriever
from docingest.core.status_cache import TTLCache
from docingest.workers.dispatcher import Dispatcher

logger = logging.getLogger(__name__)

_STAGE_STATUSES = {
    ProcessingStage.UPLOADING,
    ProcessingStage.EXTRACTING,
    ProcessingStage.CHUNKING,
    ProcessingStage.EMBEDDING,
}


def _local_size(path: Path) -> int:
    return path.stat().st_size if path.is_file() else 0


class DocumentStatusView(BaseModel):
    """Status answer for a document; always well-formed."""

    document_id: uuid.UUID
    status: str = Field(description="pending|queued|processing|uploading|extracting|chunking|embedding|ready|failed|error")
    exists: bool = Field(default=True, description="False when the document is unknown")
    progress_percent: int = Field(default=0, ge=0, le=100)
    chunk_count: int = Field(default=0, description="Chunks stored for the document")
    job_id: uuid.UUID | None = None
    job_status: str | None = None
    stage: str | None = None
    processed_chunks: int = 0
    total_chunks: int = 0
    error: str | None = None
    updated_at: datetime | None = None


class IngestionService:
    """
    Ingestion service orchestrator.

    Wraps the job tracker, chunk store, retriever and dispatcher behind the
    submission API. Status answers are cached per document for a short TTL
    and invalidated on submit.
    """

    def __init__(
        self,
        settings: DocumentPipelineSettings,
        tracker: JobTracker,
        chunk_store: ChunkStore,
        retriever: Retriever,
        source_fetch: SourceFetchTask,
        dispatcher: Dispatcher,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize ingestion service.

        Args:
            settings: Pipeline settings (defaults, limits, cache TTL)
            tracker: Job state machine
            chunk_store: Chunk persistence and repair
            retriever: Similarity retriever
            source_fetch: Upload storage
            dispatcher: Background job dispatcher
            clock: Monotonic clock for the status cache
        """
        self._settings = settings
        self._tracker = tracker
        self._chunk_store = chunk_store
        self._retriever = retriever
        self._source_fetch = source_fetch
        self._dispatcher = dispatcher
        self._status_cache: TTLCache[DocumentStatusView] = TTLCache(
            settings.status_cache_ttl_seconds, clock, max_entries=settings.status_cache_max_entries
        )

    async def submit(
        self,
        document_id: uuid.UUID,
        source: bytes | str,
        chunk_size: int | None = None,
        overlap: int | None = None,
        tenant_id: uuid.UUID | None = None,
        filename: str | None = None,
    ) -> uuid.UUID:
        """
        Submit a document for ingestion.

        Args:
            document_id: Document UUID chosen by the caller
            source: Raw bytes, or a reference (local path, http(s) URL, s3:// URI)
            chunk_size: Chunk size for this run (configured default if None)
            overlap: Chunk overlap for this run (configured default if None)
            tenant_id: Owning tenant
            filename: Original filename; required for raw bytes

        Returns:
            uuid.UUID: ID of the created or reused job

        Raises:
            ValidationError: Missing filename, bad chunk size, oversize or
                unsupported document; raised before any job exists
        """
        chunk_size = self._settings.chunk_size if chunk_size is None else chunk_size
        overlap = self._settings.chunk_overlap if overlap is None else overlap
        if chunk_size <= 0:
            raise ValidationError("chunk_size must be positive", field="chunk_size")
        if overlap < 0:
            raise ValidationError("chunk_overlap cannot be negative", field="chunk_overlap")

        if isinstance(source, (bytes, bytearray)):
            if not filename:
                raise ValidationError("filename is required for uploaded bytes", field="filename")
            check_document(len(source), filename, self._settings.max_document_bytes)
            source_ref = await asyncio.to_thread(
                self._source_fetch.store_upload, document_id, filename, bytes(source)
            )
        else:
            if not source:
                raise ValidationError("source is required", field="source")
            source_ref = source
            filename = filename or Path(urlparse(source).path).name
            if not filename:
                raise ValidationError("filename could not be derived from source", field="filename")
            size = 0 if urlparse(source).scheme else await asyncio.to_thread(_local_size, Path(source))
            check_document(size, filename, self._settings.max_document_bytes)

        job = await self._tracker.submit(
            document_id,
            source_ref=source_ref,
            name=filename,
            chunk_size=chunk_size,
            chunk_overlap=overlap,
            tenant_id=tenant_id,
        )
        self._status_cache.invalidate(document_id)
        # Only the active job's source is still needed.
        await asyncio.to_thread(self._source_fetch.prune_uploads, document_id, job.source_ref)

        if job.status == JobStatus.QUEUED:
            await self._dispatcher.enqueue(job.id)
        logger.info(
            f"{__name__}:submit - submitted",
            extra={"document_id": str(document_id), "job_id": str(job.id), "job_status": job.status.value},
        )
        return job.id

    async def get_status(self, document_id: uuid.UUID) -> DocumentStatusView:
        """
        Status of a document and its latest job.

        Unknown documents answer `pending` with exists=False; store failures
        answer `error`. Never raises.

        Args:
            document_id: Document UUID

        Returns:
            DocumentStatusView: Current status
        """
        cached = self._status_cache.get(document_id)
        if cached is not None:
            return cached.model_copy()

        try:
            view = await self._build_status(document_id)
        except (SQLAlchemyError, IngestionError) as e:
            logger.error(
                f"{__name__}:get_status - status lookup failed",
                extra={"document_id": str(document_id), "error": str(e)},
            )
            return DocumentStatusView(document_id=document_id, status="error", error=str(e))

        self._status_cache.set(document_id, view.model_copy())
        return view

    async def _build_status(self, document_id: uuid.UUID) -> DocumentStatusView:
        document = await self._tracker.get_document(document_id)
        if document is None:
            return DocumentStatusView(document_id=document_id, status="pending", exists=False)

        job = await self._tracker.latest_for_document(document_id)
        chunk_count = await self._chunk_store.count_for_document(document_id)
        view = DocumentStatusView(
            document_id=document_id,
            status=document.status.value,
            chunk_count=chunk_count,
            error=document.error_message,
            updated_at=document.updated_at,
        )
        if job is None:
            return view

        view.job_id = job.id
        view.job_status = job.status.value
        view.stage = job.stage.value
        view.processed_chunks = job.processed_chunks
        view.total_chunks = job.total_chunks
        view.progress_percent = job.progress_percent
        if job.status == JobStatus.QUEUED:
            view.status = "queued"
        elif job.status == JobStatus.PROCESSING:
            view.status = job.stage.value if job.stage in _STAGE_STATUSES else "processing"
        return view

    async def query(
        self,
        text: str,
        document_id: uuid.UUID | None = None,
        threshold: float | None = None,
        count: int | None = None,
        format_for_prompt: bool = False,
    ) -> list[ChunkMatch] | str:
        """
        Similarity query over stored chunks.

        Raises:
            RetrievalError: Query could not be answered
        """
        return await self._retriever.query(
            text,
            document_id=document_id,
            threshold=threshold,
            count=count,
            format_for_prompt=format_for_prompt,
        )

    async def repair(self, batch_size: int | None = None, sweep: bool = False) -> RepairReport:
        """
        Re-embed chunks stored without a vector.

        Args:
            batch_size: Chunks per pass (configured default if None)
            sweep: Keep running passes until done or no progress

        Returns:
            RepairReport: Counts for the pass or sweep
        """
        batch_size = batch_size or self._settings.repair_batch_size
        if sweep:
            return await self._chunk_store.repair_all(batch_size, self._settings.repair_max_batches)
        return await self._chunk_store.repair(batch_size)

    async def drain_queued(self, limit: int | None = None) -> list[uuid.UUID]:
        """
        Re-dispatch jobs left in QUEUED, oldest first.

        A job that is already queued with the dispatcher runs only once;
        the second start finds it no longer QUEUED and skips it.

        Args:
            limit: Jobs dispatched in this drain (configured default if None)

        Returns:
            list[uuid.UUID]: IDs handed to the dispatcher
        """
        jobs = await self._tracker.queued(limit or self._settings.drain_batch_size)
        for job in jobs:
            await self._dispatcher.enqueue(job.id)
        if jobs:
            logger.info(
                f"{__name__}:drain_queued - re-dispatched {len(jobs)} queued jobs",
                extra={"job_ids": [str(job.id) for job in jobs]},
            )
        return [job.id for job in jobs]

    async def get_job(self, job_id: uuid.UUID) -> JobSnapshot:
        """
        Read a job.

        Raises:
            JobNotFoundError: Unknown job ID
        """
        return await self._tracker.get_job(job_id)

    async def delete_document(self, document_id: uuid.UUID) -> bool:
        """Delete a document, its chunks and its stored uploads; jobs are kept."""
        deleted = await self._chunk_store.delete_document(document_id)
        await asyncio.to_thread(self._source_fetch.delete_uploads, document_id)
        self._status_cache.invalidate(document_id)
        return deleted
