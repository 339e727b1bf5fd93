"""
Chunk store.

Durable chunk persistence keyed by (document_id, content_hash), repair of
chunks stored without an embedding, and cosine-similarity search over
stored vectors.

Dependencies: sqlalchemy, numpy, pgvector (via chunk_crud), docingest.boundary.db
System role: Vector-bearing storage for ingestion, repair and retrieval
"""

import logging
import uuid
from typing import Any, Iterable

import numpy as np
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from docingest.boundary.db.CRUD import chunk_crud, document_crud
from docingest.boundary.db.models import ChunkModel
from docingest.boundary.vdb.vector_schemas import (
    ChunkMatch,
    EmbeddedChunk,
    RepairReport,
    StoredChunk,
    TokenSpan,
)
from docingest.core.exceptions import ChunkStoreError, EmbeddingError

logger = logging.getLogger(__name__)


def _to_stored(row: ChunkModel) -> StoredChunk:
    return StoredChunk(
        id=row.id,
        document_id=row.document_id,
        content=row.content,
        content_hash=row.content_hash,
        embedding=row.embedding,
        token_start=row.token_start,
        token_end=row.token_end,
        metadata=row.chunk_metadata or {},
    )


def _to_match(row: ChunkModel, similarity: float) -> ChunkMatch:
    return ChunkMatch(
        document_id=row.document_id,
        chunk_hash=row.content_hash,
        content=row.content,
        metadata=row.chunk_metadata or {},
        similarity=similarity,
    )


def cosine_similarities(query: list[float], vectors: list[list[float]]) -> np.ndarray:
    """
    Cosine similarity of a query against each row vector.

    Zero-norm vectors score 0.

    Args:
        query: Query vector of dimension d
        vectors: n vectors of dimension d

    Returns:
        np.ndarray: n similarities
    """
    if not vectors:
        return np.zeros(0)
    matrix = np.asarray(vectors, dtype=np.float64)
    q = np.asarray(query, dtype=np.float64)
    norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(q)
    dots = matrix @ q
    with np.errstate(divide="ignore", invalid="ignore"):
        sims = np.where(norms > 0, dots / norms, 0.0)
    return sims


class ChunkStore:
    """
    Chunk persistence, repair and similarity search.

    Each operation runs in its own short transaction so ingestion and repair
    can interleave safely; both key on content hash.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        embedder=None,
    ) -> None:
        """
        Initialize chunk store.

        Args:
            session_factory: Async session factory
            embedder: EmbeddingTask used by repair (repair is unavailable without it)
        """
        self._session_factory = session_factory
        self._embedder = embedder

    async def upsert_chunk(
        self,
        document_id: uuid.UUID,
        content: str,
        content_hash: str,
        vector: list[float] | None,
        token_span: TokenSpan | tuple[int, int],
        metadata: dict[str, Any] | None = None,
    ) -> None:
        """
        Insert or replace a chunk keyed by (document_id, content_hash).

        Args:
            document_id: Owning document
            content: Non-empty chunk text
            content_hash: SHA-256 hex of content
            vector: Embedding, or None to mark the chunk incomplete
            token_span: (start, end) token offsets
            metadata: Page/section/chunk index metadata

        Raises:
            ValueError: content is empty
            ChunkStoreError: Database write failed
        """
        if not content:
            raise ValueError("Chunk content cannot be empty")
        start, end = (token_span.start, token_span.end) if isinstance(token_span, TokenSpan) else token_span

        try:
            async with self._session_factory() as session:
                await chunk_crud.upsert(
                    session,
                    document_id=document_id,
                    content=content,
                    content_hash=content_hash,
                    embedding=vector,
                    token_start=start,
                    token_end=end,
                    metadata=metadata or {},
                )
                await session.commit()
        except SQLAlchemyError as e:
            raise ChunkStoreError(
                f"Failed to upsert chunk: {e}",
                operation="upsert",
                details={"document_id": str(document_id), "content_hash": content_hash},
            ) from e

    async def get_embedded(
        self,
        document_id: uuid.UUID,
        hashes: Iterable[str],
    ) -> dict[str, EmbeddedChunk]:
        """
        Look up stored vectors for content hashes of a document.

        Args:
            document_id: Document to look in
            hashes: Content hashes about to be embedded

        Returns:
            dict: hash -> EmbeddedChunk, only for chunks with a non-null vector
        """
        try:
            async with self._session_factory() as session:
                rows = await chunk_crud.get_by_hashes(session, document_id, hashes)
        except SQLAlchemyError as e:
            raise ChunkStoreError(f"Failed to read chunks: {e}", operation="get_embedded") from e
        return {
            row.content_hash: EmbeddedChunk(
                vector=row.embedding,
                token_span=TokenSpan(start=row.token_start, end=row.token_end),
            )
            for row in rows
            if row.embedding is not None
        }

    async def find_incomplete(self, batch_size: int) -> list[StoredChunk]:
        """
        Chunks stored without an embedding, oldest first.

        Args:
            batch_size: Maximum number of chunks

        Returns:
            list[StoredChunk]: Incomplete chunks
        """
        if batch_size <= 0:
            return []
        try:
            async with self._session_factory() as session:
                rows = await chunk_crud.get_incomplete(session, batch_size)
        except SQLAlchemyError as e:
            raise ChunkStoreError(f"Failed to read incomplete chunks: {e}", operation="find_incomplete") from e
        return [_to_stored(row) for row in rows]

    async def count_for_document(self, document_id: uuid.UUID) -> int:
        """Number of chunks stored for a document."""
        async with self._session_factory() as session:
            return await chunk_crud.count(session, document_id=document_id)

    async def count_incomplete(self, document_id: uuid.UUID | None = None) -> int:
        """Number of chunks without an embedding."""
        async with self._session_factory() as session:
            return await chunk_crud.count(session, document_id=document_id, incomplete_only=True)

    async def count_embedded(self, document_id: uuid.UUID) -> int:
        """Number of a document's chunks that carry an embedding."""
        async with self._session_factory() as session:
            total = await chunk_crud.count(session, document_id=document_id)
            incomplete = await chunk_crud.count(session, document_id=document_id, incomplete_only=True)
        return total - incomplete

    async def prune_stale(self, document_id: uuid.UUID, keep_hashes: Iterable[str]) -> int:
        """
        Delete a document's chunks not produced by the latest run.

        Args:
            document_id: Document UUID
            keep_hashes: Hashes produced by the run

        Returns:
            int: Number of chunks removed
        """
        keep = list(keep_hashes)
        if not keep:
            return 0
        try:
            async with self._session_factory() as session:
                removed = await chunk_crud.delete_except(session, document_id, keep)
                await session.commit()
        except SQLAlchemyError as e:
            raise ChunkStoreError(f"Failed to prune chunks: {e}", operation="prune_stale") from e
        if removed:
            logger.info(
                f"{__name__}:prune_stale - removed {removed} stale chunks",
                extra={"document_id": str(document_id)},
            )
        return removed

    async def delete_document(self, document_id: uuid.UUID) -> bool:
        """
        Delete a document and all of its chunks.

        Args:
            document_id: Document UUID

        Returns:
            bool: True if the document existed
        """
        try:
            async with self._session_factory() as session:
                await chunk_crud.delete_for_document(session, document_id)
                deleted = await document_crud.delete_by_id(session, document_id)
                await session.commit()
        except SQLAlchemyError as e:
            raise ChunkStoreError(f"Failed to delete document: {e}", operation="delete_document") from e
        return deleted

    async def repair(self, batch_size: int = 20) -> RepairReport:
        """
        Re-embed one batch of incomplete chunks.

        Chunks that gained a vector concurrently are left untouched; chunks
        whose embedding fails again stay incomplete for a later pass.

        Args:
            batch_size: Maximum chunks to process

        Returns:
            RepairReport: Counts for this pass

        Raises:
            ChunkStoreError: No embedder configured, or database failure
        """
        if self._embedder is None:
            raise ChunkStoreError("Repair requires an embedding provider", operation="repair")

        chunks = await self.find_incomplete(batch_size)
        report = RepairReport(attempted=len(chunks), passes=1)

        for chunk in chunks:
            try:
                vector = await self._embedder.embed(chunk.content)
            except EmbeddingError as e:
                report.failed += 1
                logger.warning(
                    f"{__name__}:repair - embedding still failing",
                    extra={"chunk_id": str(chunk.id), "error": e.message},
                )
                continue

            try:
                async with self._session_factory() as session:
                    updated = await chunk_crud.set_embedding(session, chunk.id, vector)
                    await session.commit()
            except SQLAlchemyError as e:
                raise ChunkStoreError(f"Failed to store repaired vector: {e}", operation="repair") from e
            if updated:
                report.repaired += 1

        report.remaining = await self.count_incomplete()
        logger.info(
            f"{__name__}:repair - pass finished",
            extra={
                "attempted": report.attempted,
                "repaired": report.repaired,
                "failed": report.failed,
                "remaining": report.remaining,
            },
        )
        return report

    async def repair_all(self, batch_size: int = 20, max_batches: int = 50) -> RepairReport:
        """
        Run repair passes until nothing is left or a pass makes no progress.

        Args:
            batch_size: Chunks per pass
            max_batches: Upper bound on passes

        Returns:
            RepairReport: Totals across passes
        """
        total = RepairReport()
        for _ in range(max_batches):
            report = await self.repair(batch_size)
            total.attempted += report.attempted
            total.repaired += report.repaired
            total.failed += report.failed
            total.remaining = report.remaining
            total.passes += 1
            if report.remaining == 0 or report.repaired == 0:
                break
        return total

    async def nearest_neighbors(
        self,
        query_vector: list[float],
        document_id: uuid.UUID | None = None,
        threshold: float = 0.5,
        count: int = 5,
    ) -> list[ChunkMatch]:
        """
        Rank stored chunks by cosine similarity to a query vector.

        PostgreSQL ranks and truncates in the database through pgvector; other
        stores are scored in process with numpy.

        Args:
            query_vector: Query embedding
            document_id: Restrict to one document when given
            threshold: Minimum similarity (inclusive)
            count: Maximum number of matches

        Returns:
            list[ChunkMatch]: Descending similarity, ties by ascending chunk hash

        Raises:
            ChunkStoreError: Database read failed
        """
        if count <= 0 or not query_vector:
            return []
        try:
            async with self._session_factory() as session:
                if session.get_bind().dialect.name == "postgresql":
                    scored = await chunk_crud.similarity_search(
                        session, query_vector, document_id, threshold, count
                    )
                    return [_to_match(row, similarity) for row, similarity in scored]
                rows = await chunk_crud.get_embedded(session, document_id)
        except SQLAlchemyError as e:
            raise ChunkStoreError(f"Similarity search failed: {e}", operation="search") from e

        dimension = len(query_vector)
        candidates = [row for row in rows if len(row.embedding) == dimension]
        if len(candidates) != len(rows):
            logger.warning(
                f"{__name__}:nearest_neighbors - skipped {len(rows) - len(candidates)} vectors of other dimension",
                extra={"dimension": dimension},
            )

        sims = cosine_similarities(query_vector, [row.embedding for row in candidates])
        matches = [
            _to_match(row, float(sim))
            for row, sim in zip(candidates, sims)
            if sim >= threshold
        ]
        matches.sort(key=lambda m: (-m.similarity, m.chunk_hash))
        return matches[:count]
