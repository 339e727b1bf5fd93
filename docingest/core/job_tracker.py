"""
Job state management logic.

Owns the ingestion job state machine:

    queued -> processing -> completed | failed | error

`failed` is an expected, reported failure; `error` is an unexpected
exception. Both are terminal and never regress. Every transition also moves
the owning Document (ready / failed / error), which is the status other
subsystems read.

Dependencies: sqlalchemy, docingest.boundary.db, docingest.core.exceptions
System role: Job tracking business logic
"""

import logging
import uuid
from datetime import datetime, timedelta

from pydantic import BaseModel, ConfigDict
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from docingest.boundary.db.base import utcnow
from docingest.boundary.db.CRUD import document_crud, job_crud
from docingest.boundary.db.models import (
    DocumentStatus,
    JobModel,
    JobStatus,
    ProcessingStage,
)
from docingest.core.exceptions import JobNotFoundError, JobStateError

logger = logging.getLogger(__name__)

_TERMINAL_DOCUMENT_STATUS = {
    JobStatus.COMPLETED: DocumentStatus.READY,
    JobStatus.FAILED: DocumentStatus.FAILED,
    JobStatus.ERROR: DocumentStatus.ERROR,
}


class JobSnapshot(BaseModel):
    """Read-only view of a job."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    document_id: uuid.UUID
    source_ref: str
    status: JobStatus
    stage: ProcessingStage
    processed_chunks: int
    total_chunks: int
    progress_percent: int
    chunk_size: int
    chunk_overlap: int
    error: str | None = None
    created_at: datetime
    updated_at: datetime
    started_at: datetime | None = None
    completed_at: datetime | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal


class DocumentSnapshot(BaseModel):
    """Read-only view of a document."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    tenant_id: uuid.UUID | None = None
    name: str
    source_ref: str
    status: DocumentStatus
    error_message: str | None = None
    created_at: datetime
    updated_at: datetime


class JobTracker:
    """
    Durable job tracking.

    Each method runs in its own short transaction on the given session
    factory, so workers, pollers and submitters never share a session.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        """
        Initialize job tracker.

        Args:
            session_factory: Async session factory for the durable store
        """
        self._session_factory = session_factory

    async def submit(
        self,
        document_id: uuid.UUID,
        source_ref: str,
        name: str,
        chunk_size: int,
        chunk_overlap: int,
        tenant_id: uuid.UUID | None = None,
    ) -> JobSnapshot:
        """
        Create a queued job, or reuse the document's active job.

        A queued job being reused takes the new source and chunking
        parameters; a processing job is returned unchanged.

        Args:
            document_id: Document UUID
            source_ref: Where the raw bytes live
            name: Original filename
            chunk_size: Requested chunk size
            chunk_overlap: Requested chunk overlap
            tenant_id: Owning tenant

        Returns:
            JobSnapshot: The created or reused job
        """
        try:
            return await self._submit_once(document_id, source_ref, name, chunk_size, chunk_overlap, tenant_id)
        except IntegrityError:
            # A concurrent submission won the active-job slot
            logger.info(
                f"{__name__}:submit - concurrent submission, reusing active job",
                extra={"document_id": str(document_id)},
            )
            async with self._session_factory() as session:
                job = await job_crud.get_active_for_document(session, document_id)
                if job is None:
                    raise
                return JobSnapshot.model_validate(job)

    async def _submit_once(
        self,
        document_id: uuid.UUID,
        source_ref: str,
        name: str,
        chunk_size: int,
        chunk_overlap: int,
        tenant_id: uuid.UUID | None,
    ) -> JobSnapshot:
        async with self._session_factory() as session:
            active = await job_crud.get_active_for_document(session, document_id)

            if active is not None and active.status == JobStatus.PROCESSING:
                logger.info(
                    f"{__name__}:submit - document already processing",
                    extra={"document_id": str(document_id), "job_id": str(active.id)},
                )
                return JobSnapshot.model_validate(active)

            await document_crud.upsert_for_submission(
                session, document_id, name=name, source_ref=source_ref, tenant_id=tenant_id
            )

            if active is not None:
                active.source_ref = source_ref
                active.chunk_size = chunk_size
                active.chunk_overlap = chunk_overlap
                active.updated_at = utcnow()
                job = active
                reused = True
            else:
                job = await job_crud.create(
                    session,
                    document_id=document_id,
                    source_ref=source_ref,
                    status=JobStatus.QUEUED,
                    stage=ProcessingStage.INITIALIZING,
                    processed_chunks=0,
                    total_chunks=0,
                    chunk_size=chunk_size,
                    chunk_overlap=chunk_overlap,
                )
                reused = False

            await session.commit()
            logger.info(
                f"{__name__}:submit - {'reused' if reused else 'created'} job",
                extra={"document_id": str(document_id), "job_id": str(job.id)},
            )
            return JobSnapshot.model_validate(job)

    async def _load(self, session: AsyncSession, job_id: uuid.UUID) -> JobModel:
        job = await job_crud.get_by_id(session, job_id, for_update=True)
        if job is None:
            raise JobNotFoundError(str(job_id))
        return job

    async def get_job(self, job_id: uuid.UUID) -> JobSnapshot:
        """
        Read a job.

        Raises:
            JobNotFoundError: Unknown job ID
        """
        async with self._session_factory() as session:
            job = await job_crud.get_by_id(session, job_id)
            if job is None:
                raise JobNotFoundError(str(job_id))
            return JobSnapshot.model_validate(job)

    async def get_document(self, document_id: uuid.UUID) -> DocumentSnapshot | None:
        """Read a document, or None when it does not exist."""
        async with self._session_factory() as session:
            document = await document_crud.get_by_id(session, document_id)
            return DocumentSnapshot.model_validate(document) if document is not None else None

    async def latest_for_document(self, document_id: uuid.UUID) -> JobSnapshot | None:
        """Most recent job of a document, or None."""
        async with self._session_factory() as session:
            job = await job_crud.get_latest_for_document(session, document_id)
            return JobSnapshot.model_validate(job) if job is not None else None

    async def start(self, job_id: uuid.UUID) -> JobSnapshot:
        """
        Move a job from queued to processing.

        The transition is a conditional UPDATE, so only one worker can win it.

        Args:
            job_id: Job UUID

        Returns:
            JobSnapshot: The started job

        Raises:
            JobNotFoundError: Unknown job ID
            JobStateError: Job is not queued
        """
        now = utcnow()
        async with self._session_factory() as session:
            result = await session.execute(
                update(JobModel)
                .where(JobModel.id == job_id)
                .where(JobModel.status == JobStatus.QUEUED)
                .values(
                    status=JobStatus.PROCESSING,
                    stage=ProcessingStage.STARTING,
                    started_at=now,
                    updated_at=now,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                job = await self._load(session, job_id)
                raise JobStateError(str(job_id), job.status.value, JobStatus.PROCESSING.value)

            job = await self._load(session, job_id)
            await document_crud.update_status(session, job.document_id, DocumentStatus.PROCESSING)
            await session.commit()
            logger.info(f"{__name__}:start - job processing", extra={"job_id": str(job_id)})
            return JobSnapshot.model_validate(job)

    async def set_stage(self, job_id: uuid.UUID, stage: ProcessingStage) -> None:
        """
        Record the coarse pipeline stage of a running job.

        Raises:
            JobNotFoundError: Unknown job ID
            JobStateError: Job is terminal
        """
        async with self._session_factory() as session:
            job = await self._load(session, job_id)
            if job.status.is_terminal:
                raise JobStateError(str(job_id), job.status.value, f"stage:{stage.value}")
            job.stage = stage
            job.updated_at = utcnow()
            await session.commit()

    async def progress(self, job_id: uuid.UUID, processed: int, total: int) -> JobSnapshot:
        """
        Record chunk progress.

        Neither the stored count nor the stored total ever decreases, and
        the count never exceeds the total.

        Args:
            job_id: Job UUID
            processed: Chunks finished so far
            total: Total chunks for the run

        Returns:
            JobSnapshot: Updated job

        Raises:
            JobNotFoundError: Unknown job ID
            JobStateError: Job is not processing
        """
        total = max(0, total)
        async with self._session_factory() as session:
            job = await self._load(session, job_id)
            if job.status != JobStatus.PROCESSING:
                raise JobStateError(str(job_id), job.status.value, "progress")
            job.total_chunks = max(job.total_chunks, total)
            job.processed_chunks = min(max(job.processed_chunks, processed), job.total_chunks)
            job.stage = ProcessingStage.EMBEDDING
            job.updated_at = utcnow()
            await session.commit()
            return JobSnapshot.model_validate(job)

    async def complete(self, job_id: uuid.UUID) -> JobSnapshot:
        """
        Mark a processing job completed and its document ready.

        Raises:
            JobNotFoundError: Unknown job ID
            JobStateError: Job is not processing
        """
        return await self._finish(job_id, JobStatus.COMPLETED, None)

    async def fail(self, job_id: uuid.UUID, reason: str) -> JobSnapshot:
        """
        Mark a job failed (expected failure) and its document failed.

        Raises:
            JobNotFoundError: Unknown job ID
            JobStateError: Job is already terminal
        """
        return await self._finish(job_id, JobStatus.FAILED, reason)

    async def error(self, job_id: uuid.UUID, reason: str) -> JobSnapshot:
        """
        Mark a job errored (unexpected exception) and its document errored.

        Raises:
            JobNotFoundError: Unknown job ID
            JobStateError: Job is already terminal
        """
        return await self._finish(job_id, JobStatus.ERROR, reason)

    async def _finish(self, job_id: uuid.UUID, status: JobStatus, reason: str | None) -> JobSnapshot:
        async with self._session_factory() as session:
            job = await self._load(session, job_id)
            if job.status.is_terminal or (status == JobStatus.COMPLETED and job.status != JobStatus.PROCESSING):
                raise JobStateError(str(job_id), job.status.value, status.value)

            job.status = status
            now = utcnow()
            job.completed_at = now
            job.updated_at = now
            job.error = reason
            if status == JobStatus.COMPLETED:
                job.stage = ProcessingStage.COMPLETED
                job.processed_chunks = job.total_chunks
            else:
                job.stage = ProcessingStage.FAILED

            await document_crud.update_status(
                session,
                job.document_id,
                _TERMINAL_DOCUMENT_STATUS[status],
                error_message=reason,
            )
            await session.commit()

        log = logger.info if status == JobStatus.COMPLETED else logger.warning
        log(
            f"{__name__}:_finish - job {status.value}",
            extra={"job_id": str(job_id), "reason": reason},
        )
        return JobSnapshot.model_validate(job)

    async def find_stale(self, older_than: timedelta) -> list[JobSnapshot]:
        """
        Processing jobs whose start is older than a cutoff.

        Recovery is left to an external supervisor.

        Args:
            older_than: Age beyond which a processing job counts as stale

        Returns:
            list[JobSnapshot]: Stale jobs, oldest first
        """
        cutoff = utcnow() - older_than
        async with self._session_factory() as session:
            jobs = await job_crud.get_stale(session, cutoff)
            return [JobSnapshot.model_validate(job) for job in jobs]

    async def queued(self, limit: int) -> list[JobSnapshot]:
        """Jobs still waiting in QUEUED, oldest first."""
        async with self._session_factory() as session:
            jobs = await job_crud.get_queued(session, limit)
            return [JobSnapshot.model_validate(job) for job in jobs]
