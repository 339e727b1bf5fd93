"""
Similarity retrieval.

Embeds a query with the same retry policy as ingestion and asks the chunk
store for nearest neighbours, optionally rendering the matches as a prompt
context block for the chat feature.

Dependencies: docingest.boundary.vdb, docingest.core.exceptions
System role: Retrieval business logic
"""

import logging
import math
import uuid
from typing import Any

from docingest.boundary.vdb import ChunkMatch, ChunkStore
from docingest.core.document_processing.tasks import EmbeddingTask
from docingest.core.exceptions import ChunkStoreError, EmbeddingError, RetrievalError

logger = logging.getLogger(__name__)

PROMPT_HEADING = "RELEVANT PRODUCT DOCUMENTATION:"
NO_MATCHES_SENTINEL = "No relevant information found in product documentation."


def _relevance_percent(similarity: float) -> int:
    # Half-up rounding
    return int(math.floor(similarity * 100 + 0.5))


def _format_metadata(metadata: dict[str, Any]) -> str:
    entries = [f"{key}: {metadata[key]}" for key in sorted(metadata) if metadata[key] is not None]
    return f" | {', '.join(entries)}" if entries else ""


def format_matches(matches: list[ChunkMatch]) -> str:
    """
    Render matches as a deterministic prompt context block.

    Args:
        matches: Matches in ranking order

    Returns:
        str: Heading plus one numbered entry per match, or the sentinel
            when there are no matches
    """
    if not matches:
        return NO_MATCHES_SENTINEL

    parts = [f"{PROMPT_HEADING}\n\n"]
    for i, match in enumerate(matches, start=1):
        parts.append(
            f"[Document {i}] (Relevance: {_relevance_percent(match.similarity)}%"
            f"{_format_metadata(match.metadata)})\n{match.content}\n\n"
        )
    return "".join(parts)


class Retriever:
    """Retrieval business logic."""

    def __init__(
        self,
        chunk_store: ChunkStore,
        embedder: EmbeddingTask,
        default_threshold: float = 0.5,
        default_count: int = 5,
    ) -> None:
        """
        Initialize retriever.

        Args:
            chunk_store: Store to search
            embedder: Query embedder (same retry policy as ingestion)
            default_threshold: Similarity threshold when none is given
            default_count: Match count when none is given
        """
        self._chunk_store = chunk_store
        self._embedder = embedder
        self._default_threshold = default_threshold
        self._default_count = default_count

    async def query(
        self,
        text: str,
        document_id: uuid.UUID | None = None,
        threshold: float | None = None,
        count: int | None = None,
        format_for_prompt: bool = False,
    ) -> list[ChunkMatch] | str:
        """
        Find chunks similar to a query.

        Args:
            text: Query text
            document_id: Restrict to one document when given
            threshold: Minimum similarity (default 0.5)
            count: Maximum matches (default 5)
            format_for_prompt: Return a prompt context block instead of matches

        Returns:
            list[ChunkMatch] or str: Matches by descending similarity, or the
                formatted block

        Raises:
            RetrievalError: Empty query, embedding failure, or store failure
        """
        if not text or not text.strip():
            raise RetrievalError("Query text cannot be empty")

        threshold = self._default_threshold if threshold is None else threshold
        count = self._default_count if count is None else count

        try:
            vector = await self._embedder.embed(text)
            matches = await self._chunk_store.nearest_neighbors(
                vector,
                document_id=document_id,
                threshold=threshold,
                count=count,
            )
        except (EmbeddingError, ChunkStoreError) as e:
            raise RetrievalError(
                f"Query failed: {e.message}",
                details={"document_id": str(document_id) if document_id else None, **e.details},
            ) from e

        logger.info(
            f"{__name__}:query - {len(matches)} matches",
            extra={"document_id": str(document_id) if document_id else None, "threshold": threshold},
        )
        return format_matches(matches) if format_for_prompt else matches
