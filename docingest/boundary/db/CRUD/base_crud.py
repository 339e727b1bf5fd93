"""
Generic CRUD base for the ingestion tables.

Documents, jobs and chunks all key on a UUID primary key. Methods flush but
never commit; the caller's session scope owns the transaction.

Dependencies: sqlalchemy
System role: Shared query helpers for document, job and chunk CRUD
"""

from typing import Any, Generic, Sequence, TypeVar
from uuid import UUID

from sqlalchemy import Select, delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from docingest.boundary.db.base import Base

ModelT = TypeVar("ModelT", bound=Base)


class BaseCRUD(Generic[ModelT]):
    """
    Primary-key operations plus statement helpers for subclasses.

    Attributes:
        model: Mapped class this CRUD operates on
    """

    def __init__(self, model: type[ModelT]) -> None:
        self.model = model

    async def _first(self, session: AsyncSession, stmt: Select) -> ModelT | None:
        result = await session.execute(stmt.limit(1))
        return result.scalar_one_or_none()

    async def _all(self, session: AsyncSession, stmt: Select) -> Sequence[ModelT]:
        result = await session.execute(stmt)
        return result.scalars().all()

    async def _count(self, session: AsyncSession, *criteria: Any) -> int:
        stmt = select(func.count()).select_from(self.model).where(*criteria)
        result = await session.execute(stmt)
        return int(result.scalar_one())

    async def create(self, session: AsyncSession, **values: Any) -> ModelT:
        """
        Add a row and flush so generated IDs and defaults are populated.

        Args:
            session: Async database session
            **values: Column values

        Returns:
            The new instance
        """
        instance = self.model(**values)
        session.add(instance)
        await session.flush()
        return instance

    async def get_by_id(
        self,
        session: AsyncSession,
        id: UUID,
        for_update: bool = False,
    ) -> ModelT | None:
        """
        Load one row by primary key.

        Args:
            session: Async database session
            id: Primary key
            for_update: Take a row lock where the dialect supports it

        Returns:
            The instance, or None when absent
        """
        stmt = select(self.model).where(self.model.id == id)
        if for_update:
            stmt = stmt.with_for_update()
        return await self._first(session, stmt)

    async def update_by_id(self, session: AsyncSession, id: UUID, **values: Any) -> ModelT | None:
        """Set attributes on the row with this key; None when it does not exist."""
        instance = await self.get_by_id(session, id)
        if instance is None:
            return None
        for column, value in values.items():
            setattr(instance, column, value)
        await session.flush()
        return instance

    async def delete_by_id(self, session: AsyncSession, id: UUID) -> bool:
        """Delete the row with this key, reporting whether one existed."""
        result = await session.execute(delete(self.model).where(self.model.id == id))
        return result.rowcount > 0
