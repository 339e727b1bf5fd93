"""
Job ORM model.

Tracks one ingestion run for a document: status, coarse stage, chunk
progress counters, the chunking parameters requested, and timestamps.

Dependencies: sqlalchemy, docingest.boundary.db.base
System role: Durable job tracking for background ingestion
"""

import enum
import uuid
from datetime import datetime

from sqlalchemy import DateTime, Index, Integer, String, Text, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from docingest.boundary.db.base import Base, UUIDMixin, TimestampMixin, enum_column


class JobStatus(str, enum.Enum):
    """
    Ingestion job states.

    QUEUED: Submitted, awaiting a worker
    PROCESSING: A worker is running the pipeline
    COMPLETED: Terminal; at least one chunk embedded
    FAILED: Terminal; expected, reported failure
    ERROR: Terminal; unexpected exception
    """

    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_JOB_STATUSES


TERMINAL_JOB_STATUSES = frozenset({JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.ERROR})
ACTIVE_JOB_STATUSES = (JobStatus.QUEUED, JobStatus.PROCESSING)


class ProcessingStage(str, enum.Enum):
    """Coarse pipeline stage, used for percent reporting before counts exist."""

    INITIALIZING = "initializing"
    STARTING = "starting"
    UPLOADING = "uploading"
    EXTRACTING = "extracting"
    CHUNKING = "chunking"
    EMBEDDING = "embedding"
    COMPLETED = "completed"
    FAILED = "failed"


STAGE_PERCENT: dict[ProcessingStage, int] = {
    ProcessingStage.INITIALIZING: 5,
    ProcessingStage.STARTING: 10,
    ProcessingStage.UPLOADING: 25,
    ProcessingStage.EXTRACTING: 40,
    ProcessingStage.CHUNKING: 60,
    ProcessingStage.EMBEDDING: 80,
    ProcessingStage.COMPLETED: 100,
    ProcessingStage.FAILED: 0,
}


class JobModel(Base, UUIDMixin, TimestampMixin):
    """
    Job ORM model for document ingestion runs.

    Attributes:
        id: UUID primary key (auto-generated)
        document_id: Document being ingested (no FK; jobs outlive documents)
        source_ref: Source reference captured at submission
        status: Current state (JobStatus)
        stage: Coarse pipeline stage (ProcessingStage)
        processed_chunks: Chunks finished so far (non-decreasing)
        total_chunks: Chunks produced by the chunker (0 until known)
        chunk_size: Requested chunk size for the run
        chunk_overlap: Requested overlap for the run
        error: Failure reason for FAILED/ERROR
        started_at: When the worker moved the job to PROCESSING
        completed_at: When the job reached a terminal state

    Constraints:
        uq_jobs_active_document: at most one QUEUED/PROCESSING job per document
    """

    __tablename__ = "jobs"
    __table_args__ = (
        Index(
            "uq_jobs_active_document",
            "document_id",
            unique=True,
            postgresql_where=text("status IN ('queued', 'processing')"),
            sqlite_where=text("status IN ('queued', 'processing')"),
        ),
    )

    document_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        nullable=False,
    )

    source_ref: Mapped[str] = mapped_column(
        String(2048),
        nullable=False,
    )

    status: Mapped[JobStatus] = mapped_column(
        enum_column(JobStatus),
        nullable=False,
        default=JobStatus.QUEUED,
    )

    stage: Mapped[ProcessingStage] = mapped_column(
        enum_column(ProcessingStage),
        nullable=False,
        default=ProcessingStage.INITIALIZING,
    )

    processed_chunks: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_chunks: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    chunk_size: Mapped[int] = mapped_column(Integer, nullable=False)
    chunk_overlap: Mapped[int] = mapped_column(Integer, nullable=False)

    error: Mapped[str | None] = mapped_column(Text, nullable=True)

    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    @property
    def progress_percent(self) -> int:
        """Percent complete from chunk counts, else from the stage."""
        if self.status == JobStatus.COMPLETED:
            return 100
        if self.total_chunks > 0:
            return round(self.processed_chunks / self.total_chunks * 100)
        return STAGE_PERCENT.get(self.stage, 0)
