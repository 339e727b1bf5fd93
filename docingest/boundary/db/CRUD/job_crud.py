"""
Job CRUD operations.

Provides Create, Read, Update, Delete operations for JobModel
with queries for the active job of a document, queued backlogs and stale runs.

Dependencies: sqlalchemy, docingest.boundary.db.models.job_model
System role: Job persistence operations for ingestion tracking
"""

from datetime import datetime
from typing import Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from docingest.boundary.db.models.job_model import ACTIVE_JOB_STATUSES, JobModel, JobStatus
from docingest.boundary.db.CRUD.base_crud import BaseCRUD


class JobCRUD(BaseCRUD[JobModel]):
    """
    CRUD operations for JobModel.

    Extends BaseCRUD with per-document lookups used by submission and
    status polling.
    """

    def __init__(self) -> None:
        """Initialize JobCRUD with JobModel."""
        super().__init__(JobModel)

    async def get_active_for_document(
        self,
        session: AsyncSession,
        document_id: UUID,
    ) -> JobModel | None:
        """
        Retrieve the QUEUED or PROCESSING job of a document.

        Args:
            session: Async database session
            document_id: Document UUID

        Returns:
            Active JobModel if one exists, None otherwise
        """
        stmt = (
            select(JobModel)
            .where(JobModel.document_id == document_id)
            .where(JobModel.status.in_(ACTIVE_JOB_STATUSES))
            .order_by(JobModel.created_at.desc())
        )
        return await self._first(session, stmt)

    async def get_latest_for_document(
        self,
        session: AsyncSession,
        document_id: UUID,
    ) -> JobModel | None:
        """
        Retrieve the most recently created job of a document.

        Args:
            session: Async database session
            document_id: Document UUID

        Returns:
            Latest JobModel if any, None otherwise
        """
        stmt = (
            select(JobModel)
            .where(JobModel.document_id == document_id)
            .order_by(JobModel.created_at.desc())
        )
        return await self._first(session, stmt)

    async def get_stale(
        self,
        session: AsyncSession,
        started_before: datetime,
    ) -> Sequence[JobModel]:
        """
        Retrieve PROCESSING jobs started before a cutoff.

        Args:
            session: Async database session
            started_before: Cutoff timestamp (UTC)

        Returns:
            Sequence of JobModels, oldest first
        """
        stmt = (
            select(JobModel)
            .where(JobModel.status == JobStatus.PROCESSING)
            .where(JobModel.started_at < started_before)
            .order_by(JobModel.started_at.asc())
        )
        return await self._all(session, stmt)

    async def get_queued(
        self,
        session: AsyncSession,
        limit: int,
    ) -> Sequence[JobModel]:
        """
        Retrieve QUEUED jobs, oldest first.

        Args:
            session: Async database session
            limit: Maximum number of jobs returned

        Returns:
            Sequence of JobModels
        """
        stmt = (
            select(JobModel)
            .where(JobModel.status == JobStatus.QUEUED)
            .order_by(JobModel.created_at.asc())
            .limit(limit)
        )
        return await self._all(session, stmt)


job_crud = JobCRUD()
