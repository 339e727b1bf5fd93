"""
Task modules for document processing pipeline.

Exports: SourceFetchTask, ExtractionTask, ChunkingTask, EmbeddingTask
"""

from .chunking_task import ChunkingTask, clamp_overlap, split_text
from .embedding_task import EmbeddingTask, build_default_embeddings
from .extraction_task import SUPPORTED_EXTENSIONS, ExtractionTask, check_document
from .source_fetch_task import SourceFetchTask

__all__ = [
    "ChunkingTask",
    "EmbeddingTask",
    "ExtractionTask",
    "SourceFetchTask",
    "SUPPORTED_EXTENSIONS",
    "build_default_embeddings",
    "check_document",
    "clamp_overlap",
    "split_text",
]
