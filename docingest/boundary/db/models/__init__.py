"""
Database models package.

Exports:
  - DocumentModel, DocumentStatus: Document ORM model and status enum
  - JobModel, JobStatus, ProcessingStage: Job ORM model and related enums
  - ChunkModel: Chunk ORM model

Dependencies: sqlalchemy, docingest.boundary.db.base
System role: Database model definitions for domain entities
"""

from docingest.boundary.db.models.document_model import DocumentModel, DocumentStatus
from docingest.boundary.db.models.job_model import (
    ACTIVE_JOB_STATUSES,
    STAGE_PERCENT,
    TERMINAL_JOB_STATUSES,
    JobModel,
    JobStatus,
    ProcessingStage,
)
from docingest.boundary.db.models.chunk_model import ChunkModel

__all__ = [
    "DocumentModel",
    "DocumentStatus",
    "JobModel",
    "JobStatus",
    "ProcessingStage",
    "STAGE_PERCENT",
    "ACTIVE_JOB_STATUSES",
    "TERMINAL_JOB_STATUSES",
    "ChunkModel",
]
