"""
Configuration settings for document processing pipeline.

Provides environment-based configuration for extraction, chunking, embedding,
storage, retrieval and background dispatch.

Dependencies: pydantic, pydantic_settings
System role: Centralized pipeline configuration
"""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class DocumentPipelineSettings(BaseSettings):
    """Settings for document ingestion pipeline."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="DOC_PIPELINE_",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Chunking settings
    chunk_size: int = Field(
        default=1000,
        description="Maximum chunk size (tokens when a tokenizer is available, else characters)",
    )
    chunk_overlap: int = Field(
        default=200,
        description="Overlap between consecutive chunks",
    )
    use_token_splitter: bool = Field(
        default=True,
        description="Measure chunk size in cl100k_base tokens when tiktoken is usable",
    )

    # Extraction settings
    max_document_bytes: int = Field(
        default=10 * 1024 * 1024,
        description="Documents larger than this are rejected before extraction",
    )
    extraction_backend: Literal["mistral_ocr", "pypdf"] = Field(
        default="mistral_ocr",
        description="Text extraction backend for PDFs",
    )
    mistral_api_key: str = Field(
        default="",
        validation_alias="MISTRAL_API_KEY",
        description="Mistral API key; extraction degrades to a notice page without it",
    )
    mistral_ocr_url: str = Field(
        default="https://api.mistral.ai/v1/ocr",
        description="Mistral OCR endpoint",
    )
    mistral_ocr_model: str = Field(
        default="mistral-ocr-latest",
        description="Mistral OCR model name",
    )
    extraction_timeout_seconds: float = Field(
        default=120.0,
        description="Timeout for a single extraction call",
    )
    extraction_max_retries: int = Field(
        default=2,
        description="Retries after the first attempt for transient extraction errors",
    )
    extraction_base_delay_seconds: float = Field(
        default=1.0,
        description="Initial backoff delay for extraction retries",
    )

    # Embedding settings
    embedding_model_id: str = Field(
        default="models/text-embedding-004",
        description="Google Generative AI embedding model ID",
    )
    embedding_dimensions: int = Field(
        default=768,
        description="Fixed output dimensionality of the embedding vectors",
    )
    google_api_key: str = Field(
        default="",
        validation_alias="GOOGLE_API_KEY",
        description="Google API key for the embedding provider",
    )
    embedding_timeout_seconds: float = Field(
        default=30.0,
        description="Timeout for a single embedding call",
    )
    embedding_max_retries: int = Field(
        default=3,
        description="Retries after the first attempt for failed embedding calls",
    )
    embedding_base_delay_seconds: float = Field(
        default=1.0,
        description="Initial backoff delay for embedding retries, doubled per attempt",
    )
    embedding_batch_size: int = Field(
        default=2,
        description="Chunks embedded per sequential batch",
    )
    embedding_batch_delay_seconds: float = Field(
        default=1.0,
        description="Pause between embedding batches",
    )

    # Maintenance
    repair_batch_size: int = Field(
        default=20,
        description="Incomplete chunks re-embedded per repair pass",
    )
    repair_max_batches: int = Field(
        default=50,
        description="Upper bound on repair passes in a full sweep",
    )

    # Retrieval
    similarity_threshold: float = Field(
        default=0.5,
        description="Minimum cosine similarity for a match",
    )
    match_count: int = Field(
        default=5,
        description="Maximum number of matches returned",
    )

    # Status polling
    status_cache_ttl_seconds: float = Field(
        default=5.0,
        description="Seconds a document status answer is served from cache",
    )
    status_cache_max_entries: int = Field(
        default=10_000,
        ge=1,
        description="Most document statuses held in the cache at once",
    )

    # Dispatch
    dispatcher: Literal["inprocess", "celery"] = Field(
        default="inprocess",
        description="Background execution strategy for ingestion jobs",
    )
    worker_concurrency: int = Field(
        default=2,
        description="Number of in-process ingestion workers",
    )
    drain_batch_size: int = Field(
        default=100,
        ge=1,
        description="Queued jobs re-dispatched per drain (at startup and on demand)",
    )

    # Source storage
    upload_directory: str = Field(
        default="./data/uploads",
        description="Directory where uploaded document bytes are written",
    )
    aws_region: str = Field(
        default="us-east-1",
        description="AWS region for s3:// source references",
    )

