"""
Embedding generation task.

Embeds one text at a time through any LangChain Embeddings provider, with a
per-call timeout and exponential-backoff retries. Timeouts count as
retryable failures.

Dependencies: langchain_core, tenacity
System role: Third stage of document ingestion pipeline, shared with retrieval and repair
"""

import asyncio
import logging
from typing import Awaitable, Callable

from langchain_core.embeddings import Embeddings
from tenacity import AsyncRetrying, RetryError, stop_after_attempt, wait_exponential

from docingest.core.document_processing.configs import DocumentPipelineSettings
from docingest.core.document_processing.embeddings_wrapper import FixedDimensionEmbeddings
from docingest.core.exceptions import EmbeddingError

logger = logging.getLogger(__name__)


def build_default_embeddings(settings: DocumentPipelineSettings) -> Embeddings:
    """
    Construct the configured Google embedding provider.

    Args:
        settings: Pipeline settings (model, dimension, API key)

    Returns:
        Embeddings: FixedDimensionEmbeddings instance
    """
    return FixedDimensionEmbeddings.from_settings(settings)


class EmbeddingTask:
    """Generate embedding vectors with timeout and retry."""

    def __init__(
        self,
        embeddings: Embeddings,
        max_retries: int = 3,
        base_delay: float = 1.0,
        timeout: float = 30.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """
        Initialize embedding task.

        Args:
            embeddings: LangChain embeddings provider
            max_retries: Retries after the first attempt
            base_delay: First backoff delay in seconds, doubled per retry
            timeout: Per-call timeout in seconds
            sleep: Backoff sleep, replaceable in tests

        Raises:
            ValueError: max_retries is negative
        """
        if max_retries < 0:
            raise ValueError("max_retries cannot be negative")
        self._embeddings = embeddings
        self._max_retries = max_retries
        self._base_delay = base_delay
        self._timeout = timeout
        self._sleep = sleep

    @classmethod
    def from_settings(
        cls,
        settings: DocumentPipelineSettings,
        embeddings: Embeddings | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> "EmbeddingTask":
        return cls(
            embeddings=embeddings or build_default_embeddings(settings),
            max_retries=settings.embedding_max_retries,
            base_delay=settings.embedding_base_delay_seconds,
            timeout=settings.embedding_timeout_seconds,
            sleep=sleep,
        )

    async def embed(self, text: str) -> list[float]:
        """
        Embed a text.

        Args:
            text: Non-empty text

        Returns:
            list[float]: Embedding vector

        Raises:
            EmbeddingError: Text is empty, or every attempt failed or timed out
        """
        if not text or not text.strip():
            raise EmbeddingError("Cannot embed empty text")

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._max_retries + 1),
            wait=wait_exponential(multiplier=self._base_delay, max=60),
            sleep=self._sleep,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    vector = await self._embed_once(text, attempt.retry_state.attempt_number)
        except RetryError as e:
            last = e.last_attempt.exception()
            raise EmbeddingError(
                f"Embedding failed after {self._max_retries + 1} attempts: {last}",
                details={"attempts": self._max_retries + 1, "error_type": type(last).__name__},
            ) from last
        return vector

    async def _embed_once(self, text: str, attempt_number: int) -> list[float]:
        try:
            vector = await asyncio.wait_for(
                self._embeddings.aembed_query(text),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(
                f"{__name__}:embed - attempt {attempt_number} timed out",
                extra={"timeout": self._timeout},
            )
            raise
        except Exception as e:
            logger.warning(
                f"{__name__}:embed - attempt {attempt_number} failed",
                extra={"error": str(e)},
            )
            raise

        if not vector:
            raise ValueError("Provider returned an empty vector")
        return [float(x) for x in vector]
