"""
Service container.

Builds the ingestion components from settings once and hands out the same
instances to the API and to Celery workers. Tests inject a session
factory, embeddings provider, HTTP client or dispatcher instead.

Dependencies: docingest.configs, docingest.boundary, docingest.core, docingest.workers
System role: Composition root
"""

import logging

import httpx
from langchain_core.embeddings import Embeddings
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from docingest.application.services import IngestionService
from docingest.boundary.db import create_tables, get_async_engine, get_async_session_factory
from docingest.boundary.vdb import ChunkStore
from docingest.configs import Settings, get_settings
from docingest.core.document_processing.entrypoint import DocumentPipeline
from docingest.core.document_processing.tasks import (
    EmbeddingTask,
    ExtractionTask,
    SourceFetchTask,
)
from docingest.core.job_tracker import JobTracker
from docingest.core.retriever import Retriever
from docingest.workers.dispatcher import CeleryDispatcher, Dispatcher, InProcessDispatcher

logger = logging.getLogger(__name__)


class ServiceContainer:
    """Container for lazily built, shared service instances."""

    def __init__(
        self,
        settings: Settings | None = None,
        engine: AsyncEngine | None = None,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        embeddings: Embeddings | None = None,
        http_client: httpx.AsyncClient | None = None,
        dispatcher: Dispatcher | None = None,
        sleep=None,
    ) -> None:
        """
        Initialize container.

        Args:
            settings: Application settings (cached settings if None)
            engine: Async engine (built from settings if None)
            session_factory: Session factory (bound to engine if None)
            embeddings: LangChain embeddings provider (Google if None)
            http_client: Client for OCR and URL sources
            dispatcher: Job dispatcher (chosen by settings if None)
            sleep: Backoff/batch sleep override for tests
        """
        self.settings = settings or get_settings()
        self._engine = engine
        self._session_factory = session_factory
        self._embeddings = embeddings
        self._http_client = http_client
        self._dispatcher = dispatcher
        self._sleep_kwargs = {"sleep": sleep} if sleep is not None else {}

        self._tracker: JobTracker | None = None
        self._chunk_store: ChunkStore | None = None
        self._embedder: EmbeddingTask | None = None
        self._source_fetch: SourceFetchTask | None = None
        self._extraction: ExtractionTask | None = None
        self._retriever: Retriever | None = None
        self._pipeline: DocumentPipeline | None = None
        self._ingestion_service: IngestionService | None = None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            self._engine = get_async_engine(db_config=self.settings.database)
        return self._engine

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        if self._session_factory is None:
            self._session_factory = get_async_session_factory(self.engine)
        return self._session_factory

    @property
    def tracker(self) -> JobTracker:
        if self._tracker is None:
            self._tracker = JobTracker(self.session_factory)
        return self._tracker

    @property
    def embedder(self) -> EmbeddingTask:
        if self._embedder is None:
            self._embedder = EmbeddingTask.from_settings(
                self.settings.pipeline,
                embeddings=self._embeddings,
                **self._sleep_kwargs,
            )
        return self._embedder

    @property
    def chunk_store(self) -> ChunkStore:
        if self._chunk_store is None:
            self._chunk_store = ChunkStore(self.session_factory, embedder=self.embedder)
        return self._chunk_store

    @property
    def source_fetch(self) -> SourceFetchTask:
        if self._source_fetch is None:
            pipeline = self.settings.pipeline
            self._source_fetch = SourceFetchTask(
                upload_directory=pipeline.upload_directory,
                max_bytes=pipeline.max_document_bytes,
                http_client=self._http_client,
                aws_region=pipeline.aws_region,
            )
        return self._source_fetch

    @property
    def extraction(self) -> ExtractionTask:
        if self._extraction is None:
            self._extraction = ExtractionTask(
                self.settings.pipeline,
                client=self._http_client,
                **self._sleep_kwargs,
            )
        return self._extraction

    @property
    def retriever(self) -> Retriever:
        if self._retriever is None:
            self._retriever = Retriever(
                self.chunk_store,
                self.embedder,
                default_threshold=self.settings.pipeline.similarity_threshold,
                default_count=self.settings.pipeline.match_count,
            )
        return self._retriever

    @property
    def pipeline(self) -> DocumentPipeline:
        if self._pipeline is None:
            self._pipeline = DocumentPipeline(
                settings=self.settings.pipeline,
                tracker=self.tracker,
                chunk_store=self.chunk_store,
                source_fetch=self.source_fetch,
                extraction=self.extraction,
                embedder=self.embedder,
                **self._sleep_kwargs,
            )
        return self._pipeline

    @property
    def dispatcher(self) -> Dispatcher:
        if self._dispatcher is None:
            if self.settings.pipeline.dispatcher == "celery":
                self._dispatcher = CeleryDispatcher(queue=self.settings.celery.ingestion_queue)
            else:
                self._dispatcher = InProcessDispatcher(
                    self.pipeline.process_job,
                    concurrency=self.settings.pipeline.worker_concurrency,
                )
        return self._dispatcher

    @property
    def ingestion_service(self) -> IngestionService:
        if self._ingestion_service is None:
            self._ingestion_service = IngestionService(
                settings=self.settings.pipeline,
                tracker=self.tracker,
                chunk_store=self.chunk_store,
                retriever=self.retriever,
                source_fetch=self.source_fetch,
                dispatcher=self.dispatcher,
            )
        return self._ingestion_service

    async def prepare_database(self) -> None:
        """Create tables when configured to."""
        if self.settings.database.auto_create_tables:
            await create_tables(self.engine)

    async def startup(self) -> None:
        """Prepare the database and start the dispatcher, then resume queued jobs."""
        await self.prepare_database()
        await self.dispatcher.start()
        await self.ingestion_service.drain_queued()
        logger.info(
            f"{__name__}:startup - services ready",
            extra={"dispatcher": self.settings.pipeline.dispatcher},
        )

    async def shutdown(self) -> None:
        """Stop the dispatcher and dispose the engine."""
        if self._dispatcher is not None:
            await self._dispatcher.stop()
        if self._engine is not None:
            await self._engine.dispose()
        logger.info(f"{__name__}:shutdown - services stopped")
