"""
Vector-bearing chunk storage.

Exports: ChunkStore and its schemas.
"""

from docingest.boundary.vdb.chunk_store import ChunkStore, cosine_similarities
from docingest.boundary.vdb.vector_schemas import (
    ChunkMatch,
    EmbeddedChunk,
    RepairReport,
    StoredChunk,
    TokenSpan,
)

__all__ = [
    "ChunkStore",
    "ChunkMatch",
    "EmbeddedChunk",
    "RepairReport",
    "StoredChunk",
    "TokenSpan",
    "cosine_similarities",
]
