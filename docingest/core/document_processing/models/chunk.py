"""
Chunk and page domain models for the document processing pipeline.

Represents extracted pages and the chunk drafts produced from them before
they are embedded and persisted.

Dependencies: pydantic, hashlib
System role: Data structures passed between pipeline stages
"""

import hashlib
from typing import Any

from pydantic import BaseModel, Field


def content_hash(content: str) -> str:
    """
    Hash chunk content.

    Args:
        content: Chunk text

    Returns:
        str: SHA-256 hex digest of the UTF-8 content
    """
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


class ExtractedPage(BaseModel):
    """One page of extracted text."""

    page_number: int = Field(ge=1, description="1-based page number")
    text: str = Field(description="Page text (markdown for OCR output)")
    section: str | None = Field(
        default=None,
        description="Fixed section label for synthetic pages (e.g. 'Configuration Required')",
    )
    synthetic: bool = Field(
        default=False,
        description="True when the page explains an extraction condition instead of holding document text",
    )


class ChunkDraft(BaseModel):
    """Chunk ready for embedding and upsert."""

    content: str = Field(min_length=1, description="Chunk text content")
    content_hash: str = Field(description="SHA-256 hex of content")
    token_start: int = Field(ge=0, description="Start token offset within its page")
    token_end: int = Field(ge=0, description="End token offset within its page")
    metadata: dict[str, Any] = Field(default_factory=dict, description="Page, section and chunk index")

    @classmethod
    def from_text(
        cls,
        content: str,
        token_start: int,
        token_end: int,
        metadata: dict[str, Any] | None = None,
    ) -> "ChunkDraft":
        return cls(
            content=content,
            content_hash=content_hash(content),
            token_start=token_start,
            token_end=token_end,
            metadata=metadata or {},
        )
