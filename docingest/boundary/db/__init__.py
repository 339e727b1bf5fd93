"""
Database boundary layer: ORM models, CRUD operations, and connection management.

Exports:
  - Base, UUIDMixin, TimestampMixin: Model building blocks
  - get_async_engine(), get_async_session_factory(), create_tables(): Async connection management
  - DocumentModel, JobModel, ChunkModel: Core domain entities
  - DocumentStatus, JobStatus, ProcessingStage: Enum types for state tracking
  - document_crud, job_crud, chunk_crud: CRUD operation singletons

Dependencies: sqlalchemy, docingest.configs
System role: Durable store for documents, chunks and ingestion jobs
"""

from docingest.boundary.db.base import Base, TimestampMixin, UUIDMixin
from docingest.boundary.db.connection import (
    create_tables,
    get_async_engine,
    get_async_session_factory,
)
from docingest.boundary.db.models import (
    ChunkModel,
    DocumentModel,
    DocumentStatus,
    JobModel,
    JobStatus,
    ProcessingStage,
)
from docingest.boundary.db.CRUD import (
    BaseCRUD,
    ChunkCRUD,
    DocumentCRUD,
    JobCRUD,
    chunk_crud,
    document_crud,
    job_crud,
)

__all__ = [
    "Base",
    "TimestampMixin",
    "UUIDMixin",
    "create_tables",
    "get_async_engine",
    "get_async_session_factory",
    "ChunkModel",
    "DocumentModel",
    "DocumentStatus",
    "JobModel",
    "JobStatus",
    "ProcessingStage",
    "BaseCRUD",
    "ChunkCRUD",
    "DocumentCRUD",
    "JobCRUD",
    "chunk_crud",
    "document_crud",
    "job_crud",
]
