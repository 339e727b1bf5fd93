"""
Document pipeline orchestrator.

Drives one ingestion job from queued to a terminal state:
fetch source -> extract -> chunk -> embed (batched, deduplicated) -> store.

Expected failures (oversize, unsupported type, extraction failure, no text)
end the job as `failed`; anything unexpected ends it as `error`. Nothing
raised inside a run escapes to the caller.

Dependencies: All task modules, docingest.core.job_tracker, docingest.boundary.vdb
System role: Pipeline orchestration (coordinates only)
"""

import asyncio
import logging
import time
import uuid
from typing import Awaitable, Callable

from docingest.boundary.db.models import ProcessingStage
from docingest.boundary.vdb import ChunkStore
from docingest.core.document_processing.configs import DocumentPipelineSettings
from docingest.core.document_processing.models import ChunkDraft, PipelineResult
from docingest.core.document_processing.tasks import (
    ChunkingTask,
    EmbeddingTask,
    ExtractionTask,
    SourceFetchTask,
)
from docingest.core.exceptions import (
    DocumentProcessingError,
    EmbeddingError,
    JobNotFoundError,
    JobStateError,
    ValidationError,
)
from docingest.core.job_tracker import JobSnapshot, JobTracker
from docingest.observability.correlation import correlation_scope
from docingest.observability.log_utils import log_exception_with_context, log_with_context

logger = logging.getLogger(__name__)


class DocumentPipeline:
    """Orchestrate document ingestion for a queued job."""

    def __init__(
        self,
        settings: DocumentPipelineSettings,
        tracker: JobTracker,
        chunk_store: ChunkStore,
        source_fetch: SourceFetchTask,
        extraction: ExtractionTask,
        embedder: EmbeddingTask,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """
        Initialize pipeline with its collaborators.

        Args:
            settings: Pipeline settings (batching, token splitter)
            tracker: Job state machine
            chunk_store: Chunk persistence
            source_fetch: Source reference reader
            extraction: Text extractor
            embedder: Embedding generator
            sleep: Inter-batch delay, replaceable in tests
        """
        self._settings = settings
        self._tracker = tracker
        self._chunk_store = chunk_store
        self._source_fetch = source_fetch
        self._extraction = extraction
        self._embedder = embedder
        self._sleep = sleep

    async def process_job(self, job_id: uuid.UUID) -> PipelineResult:
        """
        Run a queued job to a terminal state.

        Args:
            job_id: Job UUID

        Returns:
            PipelineResult: Outcome; status is the job's final status, or
                "skipped" when the job was missing or not queued
        """
        with correlation_scope(str(job_id)):
            started = time.perf_counter()
            try:
                job = await self._tracker.start(job_id)
            except (JobNotFoundError, JobStateError) as e:
                logger.warning(f"{__name__}:process_job - job not runnable", extra={"reason": e.message})
                return PipelineResult(job_id=str(job_id), document_id="", status="skipped", error=e.message)

            result = await self._run_guarded(job)
            result.processing_time_ms = (time.perf_counter() - started) * 1000
            log_with_context(
                logger,
                logging.INFO,
                f"{__name__}:process_job - finished as {result.status}",
                chunks=result.chunk_count,
                embedded=result.embedded_count,
                duration_ms=round(result.processing_time_ms),
            )
            return result

    async def _run_guarded(self, job: JobSnapshot) -> PipelineResult:
        try:
            return await self._run(job)
        except (ValidationError, DocumentProcessingError) as e:
            await self._tracker.fail(job.id, e.message)
            return self._terminal(job, "failed", e.message)
        except Exception as e:
            log_exception_with_context(
                logger,
                f"{__name__}:_run_guarded - unexpected error",
                e,
                job_id=job.id,
                document_id=job.document_id,
            )
            reason = f"{type(e).__name__}: {e}"
            try:
                await self._tracker.error(job.id, reason)
            except JobStateError as state_error:
                logger.warning(
                    f"{__name__}:_run_guarded - job already terminal",
                    extra={"reason": state_error.message},
                )
            return self._terminal(job, "error", reason)

    @staticmethod
    def _terminal(job: JobSnapshot, status: str, reason: str) -> PipelineResult:
        return PipelineResult(
            job_id=str(job.id),
            document_id=str(job.document_id),
            status=status,
            error=reason,
        )

    async def _run(self, job: JobSnapshot) -> PipelineResult:
        document = await self._tracker.get_document(job.document_id)
        if document is None:
            raise DocumentProcessingError("Document no longer exists", document_id=str(job.document_id))

        await self._tracker.set_stage(job.id, ProcessingStage.UPLOADING)
        data = await self._source_fetch.fetch(job.source_ref)

        await self._tracker.set_stage(job.id, ProcessingStage.EXTRACTING)
        pages = await self._extraction.extract(data, document.name)

        await self._tracker.set_stage(job.id, ProcessingStage.CHUNKING)
        chunker = ChunkingTask(
            chunk_size=job.chunk_size,
            chunk_overlap=job.chunk_overlap,
            use_tokens=self._settings.use_token_splitter,
        )
        drafts = chunker.split_pages(pages)
        if not drafts:
            await self._tracker.fail(job.id, "No extractable text in document")
            return self._terminal(job, "failed", "No extractable text in document")

        result = PipelineResult(
            job_id=str(job.id),
            document_id=str(job.document_id),
            status="processing",
            chunk_count=len(drafts),
        )
        await self._embed_and_store(job, drafts, result)

        if result.embedded_count == 0:
            reason = f"None of the {len(drafts)} chunks could be embedded"
            await self._tracker.fail(job.id, reason)
            result.status, result.error = "failed", reason
            return result

        await self._chunk_store.prune_stale(job.document_id, [d.content_hash for d in drafts])
        await self._tracker.complete(job.id)
        result.status = "completed"
        return result

    async def _embed_and_store(self, job: JobSnapshot, drafts: list[ChunkDraft], result: PipelineResult) -> None:
        """Embed and upsert drafts in sequential batches, reporting progress per batch."""
        total = len(drafts)
        batch_size = max(1, self._settings.embedding_batch_size)
        await self._tracker.progress(job.id, 0, total)

        for batch_start in range(0, total, batch_size):
            batch = drafts[batch_start:batch_start + batch_size]
            existing = await self._chunk_store.get_embedded(job.document_id, [d.content_hash for d in batch])

            for draft in batch:
                stored = existing.get(draft.content_hash)
                if stored is not None:
                    vector = stored.vector
                    result.reused_embeddings += 1
                else:
                    try:
                        vector = await self._embedder.embed(draft.content)
                    except EmbeddingError as e:
                        vector = None
                        result.failed_embeddings += 1
                        logger.warning(
                            f"{__name__}:_embed_and_store - storing chunk without embedding",
                            extra={"content_hash": draft.content_hash, "error": e.message},
                        )

                await self._chunk_store.upsert_chunk(
                    job.document_id,
                    draft.content,
                    draft.content_hash,
                    vector,
                    (draft.token_start, draft.token_end),
                    draft.metadata,
                )
                if vector is not None:
                    result.embedded_count += 1

            processed = min(batch_start + len(batch), total)
            await self._tracker.progress(job.id, processed, total)
            if processed < total and self._settings.embedding_batch_delay_seconds > 0:
                await self._sleep(self._settings.embedding_batch_delay_seconds)
