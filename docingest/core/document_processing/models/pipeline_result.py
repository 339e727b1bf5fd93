"""
Pipeline result model for document processing.

Represents the outcome of running one ingestion job through the pipeline.

Dependencies: pydantic
System role: Return type for DocumentPipeline.process_job()
"""

from pydantic import BaseModel, Field


class PipelineResult(BaseModel):
    """Result of document processing pipeline execution."""

    job_id: str = Field(description="Ingestion job identifier")
    document_id: str = Field(description="Document identifier")
    status: str = Field(description="Terminal job status (completed, failed, error)")
    chunk_count: int = Field(default=0, description="Number of chunks generated")
    embedded_count: int = Field(default=0, description="Chunks stored with an embedding")
    failed_embeddings: int = Field(default=0, description="Chunks stored with a null embedding")
    reused_embeddings: int = Field(default=0, description="Chunks whose stored vector was reused")
    processing_time_ms: float = Field(default=0.0, description="Total processing time in milliseconds")
    error: str | None = Field(default=None, description="Failure reason for failed/error")
