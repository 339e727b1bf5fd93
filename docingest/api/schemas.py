"""
Request and response models for the HTTP API.

Dependencies: pydantic
System role: API contract
"""

import uuid

from pydantic import BaseModel, Field

from docingest.boundary.vdb import ChunkMatch


class IngestReferenceRequest(BaseModel):
    """Submit a document by reference instead of upload."""

    source_ref: str = Field(min_length=1, description="Local path, http(s) URL or s3://bucket/key")
    filename: str | None = Field(default=None, description="Original filename (derived from source_ref if omitted)")
    chunk_size: int | None = Field(default=None, gt=0)
    chunk_overlap: int | None = Field(default=None, ge=0)
    tenant_id: uuid.UUID | None = None


class IngestResponse(BaseModel):
    """Accepted submission."""

    job_id: uuid.UUID
    document_id: uuid.UUID
    status: str = "queued"


class QueryRequest(BaseModel):
    """Similarity query."""

    query: str = Field(min_length=1)
    document_id: uuid.UUID | None = None
    threshold: float | None = Field(default=None, ge=-1.0, le=1.0)
    count: int | None = Field(default=None, ge=1, le=50)
    format_for_prompt: bool = False


class QueryResponse(BaseModel):
    """Matches, or the formatted context block when requested."""

    matches: list[ChunkMatch] = Field(default_factory=list)
    context: str | None = None


class RepairRequest(BaseModel):
    """Repair pass parameters."""

    batch_size: int | None = Field(default=None, gt=0, le=500)
    sweep: bool = False


class DrainRequest(BaseModel):
    """Queue drain parameters."""

    limit: int | None = Field(default=None, gt=0, le=1000)


class DrainResponse(BaseModel):
    dispatched: int
    job_ids: list[uuid.UUID] = Field(default_factory=list)
