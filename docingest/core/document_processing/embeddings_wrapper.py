"""
Dimension-pinned embeddings adapter.

Wraps a Google Generative AI embeddings provider, requests the configured
output dimension on every call and rejects vectors of any other length,
so a misconfigured model fails the embed attempt instead of storing a
vector the similarity search would skip.

Dependencies: langchain_core, langchain_google_genai
System role: Default embedding provider for chunks and queries
"""

import asyncio
import logging
from typing import List

from langchain_core.embeddings import Embeddings
from langchain_google_genai import GoogleGenerativeAIEmbeddings

from docingest.core.document_processing.configs import DocumentPipelineSettings

logger = logging.getLogger(__name__)


class FixedDimensionEmbeddings(Embeddings):
    """
    Embeddings whose every vector has exactly `dimensions` components.

    Attributes:
        provider: Underlying GoogleGenerativeAIEmbeddings (or compatible) client
        dimensions: Required vector length
    """

    def __init__(self, provider: GoogleGenerativeAIEmbeddings, dimensions: int) -> None:
        if dimensions < 1:
            raise ValueError(f"dimensions must be positive, got {dimensions}")
        self.provider = provider
        self.dimensions = dimensions

    @classmethod
    def from_settings(cls, settings: DocumentPipelineSettings) -> "FixedDimensionEmbeddings":
        """
        Build the Google provider from pipeline settings.

        Args:
            settings: Pipeline settings (model, dimension, API key)

        Returns:
            FixedDimensionEmbeddings: Adapter around a new provider
        """
        kwargs = {}
        if settings.google_api_key:
            kwargs["google_api_key"] = settings.google_api_key
        provider = GoogleGenerativeAIEmbeddings(model=settings.embedding_model_id, **kwargs)
        logger.info(
            f"{__name__}:from_settings - model={settings.embedding_model_id}, "
            f"dimensions={settings.embedding_dimensions}"
        )
        return cls(provider, settings.embedding_dimensions)

    def _checked(self, vector: List[float]) -> List[float]:
        if len(vector) != self.dimensions:
            raise ValueError(f"Expected a {self.dimensions}-dimensional vector, got {len(vector)}")
        return list(vector)

    def embed_documents(self, texts: List[str]) -> List[List[float]]:
        vectors = self.provider.embed_documents(texts, output_dimensionality=self.dimensions)
        return [self._checked(vector) for vector in vectors]

    def embed_query(self, text: str) -> List[float]:
        return self._checked(self.provider.embed_query(text, output_dimensionality=self.dimensions))

    async def aembed_documents(self, texts: List[str]) -> List[List[float]]:
        return await asyncio.to_thread(self.embed_documents, texts)

    async def aembed_query(self, text: str) -> List[float]:
        return await asyncio.to_thread(self.embed_query, text)
