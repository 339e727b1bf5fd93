"""
Chunk store schemas.

Pydantic models for stored chunks, similarity matches and repair reports.

Dependencies: pydantic
System role: Type definitions for chunk store operations
"""

import uuid
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class TokenSpan(BaseModel):
    """Token offsets of a chunk within its page."""

    start: int = Field(ge=0)
    end: int = Field(ge=0)


class StoredChunk(BaseModel):
    """A persisted chunk as read back from the store."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    document_id: uuid.UUID
    content: str
    content_hash: str
    embedding: list[float] | None = None
    token_start: int = 0
    token_end: int = 0
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def is_complete(self) -> bool:
        return self.embedding is not None


class EmbeddedChunk(BaseModel):
    """Vector and token span already stored for a content hash."""

    vector: list[float]
    token_span: TokenSpan


class ChunkMatch(BaseModel):
    """Single result from a similarity search."""

    document_id: uuid.UUID = Field(description="Owning document")
    chunk_hash: str = Field(description="SHA-256 hex of the chunk content")
    content: str = Field(description="Chunk text content")
    metadata: dict[str, Any] = Field(default_factory=dict, description="Chunk metadata")
    similarity: float = Field(description="Cosine similarity to the query vector")


class RepairReport(BaseModel):
    """Outcome of one or more repair passes."""

    attempted: int = Field(default=0, description="Incomplete chunks picked up")
    repaired: int = Field(default=0, description="Chunks that received a vector")
    failed: int = Field(default=0, description="Chunks whose embedding still failed")
    remaining: int = Field(default=0, description="Incomplete chunks left in the store")
    passes: int = Field(default=0, description="Repair passes executed")
