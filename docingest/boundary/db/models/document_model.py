"""
Document ORM model.

A Document is the unit a tenant uploads. Its status is derived from the
latest ingestion job and is the value other subsystems read.

Dependencies: sqlalchemy, docingest.boundary.db.base
System role: Document lifecycle persistence
"""

import enum
import uuid

from sqlalchemy import String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from docingest.boundary.db.base import Base, UUIDMixin, TimestampMixin, enum_column


class DocumentStatus(str, enum.Enum):
    """
    Document lifecycle states.

    PENDING: Created, awaiting a worker
    PROCESSING: An ingestion job is running
    READY: At least one chunk carries an embedding
    FAILED: Expected, reported failure (no usable text, oversize, ...)
    ERROR: Unexpected exception during ingestion
    """

    PENDING = "pending"
    PROCESSING = "processing"
    READY = "ready"
    FAILED = "failed"
    ERROR = "error"


class DocumentModel(Base, UUIDMixin, TimestampMixin):
    """
    Document ORM model.

    Attributes:
        id: UUID primary key (supplied by the caller at submission)
        tenant_id: Owning tenant, opaque to this core
        name: Original filename, used to pick an extractor
        source_ref: Local path, http(s) URL or s3:// URI of the raw bytes
        status: Lifecycle status (DocumentStatus)
        error_message: Reason for FAILED/ERROR
        chunks: Owned chunks, deleted with the document
    """

    __tablename__ = "documents"

    tenant_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        nullable=True,
        index=True,
    )

    name: Mapped[str] = mapped_column(
        String(512),
        nullable=False,
    )

    source_ref: Mapped[str] = mapped_column(
        String(2048),
        nullable=False,
    )

    status: Mapped[DocumentStatus] = mapped_column(
        enum_column(DocumentStatus),
        nullable=False,
        default=DocumentStatus.PENDING,
    )

    error_message: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    chunks = relationship(
        "ChunkModel",
        back_populates="document",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
