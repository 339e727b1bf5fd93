"""
Models for document processing pipeline.

Exports: ExtractedPage, ChunkDraft, content_hash, PipelineResult
"""

from .chunk import ChunkDraft, ExtractedPage, content_hash
from .pipeline_result import PipelineResult

__all__ = [
    "ChunkDraft",
    "ExtractedPage",
    "PipelineResult",
    "content_hash",
]
