"""
Chunk ORM model.

A bounded span of a document's text with its content hash, optional
embedding vector, token span and free-form metadata.

Dependencies: sqlalchemy, pgvector, docingest.boundary.db.base
System role: Vector-bearing text storage for similarity search
"""

import uuid

from pgvector.sqlalchemy import Vector
from sqlalchemy import JSON, ForeignKey, Index, Integer, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from docingest.boundary.db.base import Base, UUIDMixin, TimestampMixin

# Native pgvector column on PostgreSQL; a JSON float list elsewhere.
EMBEDDING_TYPE = JSON(none_as_null=True).with_variant(Vector(), "postgresql")


class ChunkModel(Base, UUIDMixin, TimestampMixin):
    """
    Chunk ORM model.

    A NULL embedding marks the chunk as incomplete and eligible for repair.

    Attributes:
        document_id: Owning document (cascades on delete)
        content: Chunk text (never empty)
        content_hash: SHA-256 hex of content; natural key with document_id
        embedding: Vector (pgvector on PostgreSQL, JSON list elsewhere), NULL until computed
        token_start: First token offset of the chunk in its page
        token_end: Token offset one past the chunk end
        chunk_metadata: Page, section and chunk index ("metadata" column)

    Constraints:
        uq_chunks_document_hash: UNIQUE(document_id, content_hash)
    """

    __tablename__ = "chunks"
    __table_args__ = (
        UniqueConstraint("document_id", "content_hash", name="uq_chunks_document_hash"),
        Index("ix_chunks_document_created", "document_id", "created_at"),
    )

    document_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("documents.id", ondelete="CASCADE"),
        nullable=False,
    )

    content: Mapped[str] = mapped_column(Text, nullable=False)

    content_hash: Mapped[str] = mapped_column(String(64), nullable=False)

    embedding: Mapped[list[float] | None] = mapped_column(
        EMBEDDING_TYPE,
        nullable=True,
    )

    token_start: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    token_end: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    chunk_metadata: Mapped[dict] = mapped_column(
        "metadata",
        JSON,
        nullable=False,
        default=dict,
    )

    document = relationship("DocumentModel", back_populates="chunks")
