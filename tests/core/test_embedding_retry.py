"""
Unit tests for EmbeddingTask retry, timeout and error behaviour.
"""

import asyncio

import pytest
from langchain_core.embeddings import Embeddings

from docingest.core.document_processing.tasks import EmbeddingTask
from docingest.core.exceptions import EmbeddingError
from tests.fakes import FailingEmbeddings, KeywordEmbeddings


class FailThenSucceed(KeywordEmbeddings):
    def __init__(self, failures: int) -> None:
        super().__init__()
        self.failures = failures
        self.attempts = 0

    def embed_query(self, text: str) -> list[float]:
        self.attempts += 1
        if self.attempts <= self.failures:
            raise ConnectionError("rate limited")
        return super().embed_query(text)


class SlowEmbeddings(Embeddings):
    def embed_documents(self, texts):
        return [[1.0] for _ in texts]

    def embed_query(self, text):
        return [1.0]

    async def aembed_query(self, text):
        await asyncio.sleep(1)
        return [1.0]


class EmptyVectorEmbeddings(Embeddings):
    def embed_documents(self, texts):
        return [[] for _ in texts]

    def embed_query(self, text):
        return []


class TestEmbeddingTask:
    """Test suite for EmbeddingTask.embed."""

    async def test_returns_vector(self, sleeps):
        # Arrange
        task = EmbeddingTask(KeywordEmbeddings(), sleep=sleeps)

        # Act
        vector = await task.embed("refund policy")

        # Assert
        assert vector[0] == 1.0 and vector[1] == 1.0
        assert sleeps.delays == []

    async def test_transient_failures_back_off_exponentially(self, sleeps):
        # Arrange
        provider = FailThenSucceed(failures=2)
        task = EmbeddingTask(provider, max_retries=3, base_delay=1.0, sleep=sleeps)

        # Act
        vector = await task.embed("battery charge")

        # Assert
        assert vector
        assert provider.attempts == 3
        assert sleeps.delays == [1.0, 2.0]

    async def test_exhausted_retries_raise_embedding_error(self, sleeps):
        task = EmbeddingTask(FailingEmbeddings(), max_retries=3, base_delay=1.0, sleep=sleeps)

        with pytest.raises(EmbeddingError) as exc_info:
            await task.embed("battery charge")

        assert sleeps.delays == [1.0, 2.0, 4.0]
        assert exc_info.value.details["attempts"] == 4
        assert exc_info.value.details["error_type"] == "RuntimeError"

    async def test_timeout_counts_as_failure(self, sleeps):
        task = EmbeddingTask(SlowEmbeddings(), max_retries=1, timeout=0.01, sleep=sleeps)

        with pytest.raises(EmbeddingError):
            await task.embed("slow text")

        assert sleeps.delays == [1.0]

    async def test_empty_vector_is_retried_then_fails(self, sleeps):
        task = EmbeddingTask(EmptyVectorEmbeddings(), max_retries=1, sleep=sleeps)

        with pytest.raises(EmbeddingError):
            await task.embed("anything")

    async def test_empty_text_is_rejected_without_calling_provider(self, sleeps):
        provider = KeywordEmbeddings()
        task = EmbeddingTask(provider, sleep=sleeps)

        with pytest.raises(EmbeddingError):
            await task.embed("   ")
        assert provider.calls == []

    def test_negative_retries_rejected(self):
        with pytest.raises(ValueError):
            EmbeddingTask(KeywordEmbeddings(), max_retries=-1)

    def test_from_settings_uses_configured_policy(self, pipeline_settings, sleeps):
        task = EmbeddingTask.from_settings(pipeline_settings, embeddings=KeywordEmbeddings(), sleep=sleeps)

        assert task._max_retries == pipeline_settings.embedding_max_retries
        assert task._timeout == pipeline_settings.embedding_timeout_seconds
