"""
Job dispatchers.

Hand a job ID to background execution without waiting for the run.
InProcessDispatcher runs jobs on an asyncio worker pool inside the API
process; CeleryDispatcher sends them to the Celery ingestion queue.

Dependencies: asyncio (stdlib), celery
System role: Background execution strategy
"""

import asyncio
import logging
import uuid
from typing import Any, Awaitable, Callable, Protocol

from docingest.observability.log_utils import log_exception_with_context

logger = logging.getLogger(__name__)


class Dispatcher(Protocol):
    async def enqueue(self, job_id: uuid.UUID) -> None: ...

    async def start(self) -> None: ...

    async def stop(self) -> None: ...


class InProcessDispatcher:
    """asyncio.Queue drained by a fixed number of worker tasks."""

    def __init__(
        self,
        handler: Callable[[uuid.UUID], Awaitable[Any]],
        concurrency: int = 2,
    ) -> None:
        """
        Initialize dispatcher.

        Args:
            handler: Coroutine run for each job ID (the pipeline's process_job)
            concurrency: Number of worker tasks
        """
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self._handler = handler
        self._concurrency = concurrency
        self._queue: asyncio.Queue[uuid.UUID] | None = None
        self._workers: list[asyncio.Task] = []

    @property
    def running(self) -> bool:
        return bool(self._workers)

    async def start(self) -> None:
        """Start worker tasks on the running loop (idempotent)."""
        if self._workers:
            return
        self._queue = asyncio.Queue()
        self._workers = [
            asyncio.create_task(self._worker(i), name=f"ingestion-worker-{i}")
            for i in range(self._concurrency)
        ]
        logger.info(f"{__name__}:start - started {self._concurrency} ingestion workers")

    async def enqueue(self, job_id: uuid.UUID) -> None:
        """Queue a job for a worker; starts the pool on first use."""
        if not self._workers:
            await self.start()
        await self._queue.put(job_id)
        logger.debug(f"{__name__}:enqueue - queued job", extra={"job_id": str(job_id)})

    async def join(self) -> None:
        """Wait until every queued job has been handled."""
        if self._queue is not None:
            await self._queue.join()

    async def stop(self) -> None:
        """Cancel workers; their queued jobs stay QUEUED and are resumed by the next drain."""
        for worker in self._workers:
            worker.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers = []
        self._queue = None
        logger.info(f"{__name__}:stop - ingestion workers stopped")

    async def _worker(self, index: int) -> None:
        while True:
            job_id = await self._queue.get()
            try:
                await self._handler(job_id)
            except Exception as e:
                log_exception_with_context(
                    logger,
                    f"{__name__}:_worker - job handler raised",
                    e,
                    job_id=job_id,
                    worker=index,
                )
            finally:
                self._queue.task_done()


class CeleryDispatcher:
    """Send job IDs to the Celery ingestion task."""

    def __init__(self, queue: str | None = None) -> None:
        self._queue = queue

    async def start(self) -> None:
        return None

    async def stop(self) -> None:
        return None

    async def enqueue(self, job_id: uuid.UUID) -> None:
        from docingest.workers.tasks.document_ingestion import ingest_document

        options = {"queue": self._queue} if self._queue else {}
        result = await asyncio.to_thread(ingest_document.apply_async, args=[str(job_id)], **options)
        logger.info(
            f"{__name__}:enqueue - sent job to celery",
            extra={"job_id": str(job_id), "task_id": result.id},
        )
