"""
Chunk CRUD operations.

Provides the atomic per-chunk upsert keyed by (document_id, content_hash)
and the queries used by deduplication, repair and similarity search. On
PostgreSQL, similarity is ranked inside the database with pgvector.

Dependencies: sqlalchemy, pgvector, docingest.boundary.db.models.chunk_model
System role: Chunk persistence operations
"""

from typing import Any, Iterable, Sequence
from uuid import UUID

from pgvector.sqlalchemy import Vector
from sqlalchemy import JSON, Float, Select, and_, case, cast, delete, func, literal, null, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from docingest.boundary.db.base import utcnow
from docingest.boundary.db.models.chunk_model import ChunkModel
from docingest.boundary.db.CRUD.base_crud import BaseCRUD

_DIALECT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class ChunkCRUD(BaseCRUD[ChunkModel]):
    """
    CRUD operations for ChunkModel.

    Extends BaseCRUD with hash-keyed upserts and embedding-state queries.
    """

    def __init__(self) -> None:
        """Initialize ChunkCRUD with ChunkModel."""
        super().__init__(ChunkModel)

    async def upsert(
        self,
        session: AsyncSession,
        document_id: UUID,
        content: str,
        content_hash: str,
        embedding: list[float] | None,
        token_start: int,
        token_end: int,
        metadata: dict[str, Any],
    ) -> None:
        """
        Insert a chunk or replace the existing row with the same hash.

        A NULL embedding never overwrites a stored vector.

        Args:
            session: Async database session
            document_id: Owning document UUID
            content: Chunk text
            content_hash: SHA-256 hex of content
            embedding: Vector, or None when not computed
            token_start: Start token offset
            token_end: End token offset
            metadata: Page/section/chunk index metadata

        Raises:
            NotImplementedError: If the bound dialect has no ON CONFLICT support
        """
        dialect = session.get_bind().dialect.name
        insert_fn = _DIALECT_INSERTS.get(dialect)
        if insert_fn is None:
            raise NotImplementedError(f"Chunk upsert is not supported on {dialect}")

        table = ChunkModel.__table__
        stmt = insert_fn(table).values(
            {
                "document_id": document_id,
                "content": content,
                "content_hash": content_hash,
                "embedding": embedding,
                "token_start": token_start,
                "token_end": token_end,
                "metadata": metadata,
            }
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[table.c.document_id, table.c.content_hash],
            set_={
                "content": stmt.excluded.content,
                "embedding": func.coalesce(stmt.excluded.embedding, table.c.embedding, type_=JSON),
                "token_start": stmt.excluded.token_start,
                "token_end": stmt.excluded.token_end,
                "metadata": stmt.excluded["metadata"],
                "updated_at": utcnow(),
            },
        )
        await session.execute(stmt)

    async def get_by_hashes(
        self,
        session: AsyncSession,
        document_id: UUID,
        hashes: Iterable[str],
    ) -> Sequence[ChunkModel]:
        """
        Retrieve a document's chunks whose hash is in the given set.

        Args:
            session: Async database session
            document_id: Document UUID
            hashes: Content hashes to look up

        Returns:
            Sequence of matching ChunkModels
        """
        hashes = list(hashes)
        if not hashes:
            return []
        stmt = (
            select(ChunkModel)
            .where(ChunkModel.document_id == document_id)
            .where(ChunkModel.content_hash.in_(hashes))
        )
        return await self._all(session, stmt)

    async def get_incomplete(
        self,
        session: AsyncSession,
        limit: int,
    ) -> Sequence[ChunkModel]:
        """
        Retrieve chunks without an embedding, oldest first.

        Args:
            session: Async database session
            limit: Maximum number of chunks to return

        Returns:
            Sequence of ChunkModels with NULL embedding
        """
        stmt = (
            select(ChunkModel)
            .where(ChunkModel.embedding.is_(None))
            .order_by(ChunkModel.created_at.asc(), ChunkModel.content_hash.asc())
            .limit(limit)
        )
        return await self._all(session, stmt)

    async def get_embedded(
        self,
        session: AsyncSession,
        document_id: UUID | None = None,
    ) -> Sequence[ChunkModel]:
        """
        Retrieve chunks that carry an embedding, optionally for one document.

        Args:
            session: Async database session
            document_id: Restrict to this document when given

        Returns:
            Sequence of ChunkModels with non-NULL embedding
        """
        stmt = select(ChunkModel).where(ChunkModel.embedding.is_not(None))
        if document_id is not None:
            stmt = stmt.where(ChunkModel.document_id == document_id)
        return await self._all(session, stmt)

    def similarity_statement(
        self,
        query_vector: list[float],
        document_id: UUID | None,
        threshold: float,
        count: int,
    ) -> Select:
        """
        Build the pgvector query ranking chunks by cosine similarity.

        Vectors of another dimension than the query get a NULL similarity and
        drop out. Zero-norm vectors, and every vector when the query itself
        has zero norm, score 0.

        Args:
            query_vector: Query embedding
            document_id: Restrict to this document when given
            threshold: Minimum similarity (inclusive)
            count: Maximum number of rows

        Returns:
            Select of (ChunkModel, similarity), descending similarity then
            ascending content hash
        """
        embedding = cast(ChunkModel.embedding, Vector())
        same_dimension = func.vector_dims(ChunkModel.embedding) == len(query_vector)
        if any(query_vector):
            scored = 1 - embedding.cosine_distance(query_vector)
        else:
            scored = literal(0.0, Float)
        similarity = case(
            (and_(same_dimension, func.vector_norm(ChunkModel.embedding) > 0), scored),
            (same_dimension, literal(0.0, Float)),
            else_=null(),
        ).label("similarity")

        stmt = select(ChunkModel, similarity).where(ChunkModel.embedding.is_not(None))
        if document_id is not None:
            stmt = stmt.where(ChunkModel.document_id == document_id)
        return (
            stmt.where(similarity >= threshold)
            .order_by(similarity.desc(), ChunkModel.content_hash.asc())
            .limit(count)
        )

    async def similarity_search(
        self,
        session: AsyncSession,
        query_vector: list[float],
        document_id: UUID | None,
        threshold: float,
        count: int,
    ) -> list[tuple[ChunkModel, float]]:
        """
        Run the pgvector similarity query.

        Returns:
            List of (ChunkModel, similarity) pairs, best first
        """
        stmt = self.similarity_statement(query_vector, document_id, threshold, count)
        result = await session.execute(stmt)
        return [(row, float(similarity)) for row, similarity in result.all()]

    async def set_embedding(
        self,
        session: AsyncSession,
        chunk_id: UUID,
        embedding: list[float],
    ) -> bool:
        """
        Write a vector onto a chunk that still lacks one.

        Args:
            session: Async database session
            chunk_id: Chunk UUID
            embedding: Computed vector

        Returns:
            True if the chunk was updated, False if it was gone or already embedded
        """
        chunk = await self.get_by_id(session, chunk_id)
        if chunk is None or chunk.embedding is not None:
            return False
        chunk.embedding = embedding
        await session.flush()
        return True

    async def count(
        self,
        session: AsyncSession,
        document_id: UUID | None = None,
        incomplete_only: bool = False,
    ) -> int:
        """
        Count chunks.

        Args:
            session: Async database session
            document_id: Restrict to this document when given
            incomplete_only: Count only chunks with NULL embedding

        Returns:
            Number of matching chunks
        """
        criteria = []
        if document_id is not None:
            criteria.append(ChunkModel.document_id == document_id)
        if incomplete_only:
            criteria.append(ChunkModel.embedding.is_(None))
        return await self._count(session, *criteria)

    async def delete_except(
        self,
        session: AsyncSession,
        document_id: UUID,
        keep_hashes: Iterable[str],
    ) -> int:
        """
        Delete a document's chunks whose hash is not in keep_hashes.

        Args:
            session: Async database session
            document_id: Document UUID
            keep_hashes: Hashes produced by the latest run

        Returns:
            Number of rows deleted
        """
        stmt = delete(ChunkModel).where(ChunkModel.document_id == document_id)
        keep_hashes = list(keep_hashes)
        if keep_hashes:
            stmt = stmt.where(ChunkModel.content_hash.not_in(keep_hashes))
        result = await session.execute(stmt)
        return result.rowcount

    async def delete_for_document(self, session: AsyncSession, document_id: UUID) -> int:
        """
        Delete every chunk of a document.

        Args:
            session: Async database session
            document_id: Document UUID

        Returns:
            Number of rows deleted
        """
        result = await session.execute(
            delete(ChunkModel).where(ChunkModel.document_id == document_id)
        )
        return result.rowcount


chunk_crud = ChunkCRUD()
