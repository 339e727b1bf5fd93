"""
Document ingestion Celery task.

Task: docingest.ingest_document(job_id)
Flow: build services -> DocumentPipeline.process_job -> dispose engine

The pipeline records every outcome on the job itself, so the task does not
retry; a crashed worker leaves the job `processing` for find_stale.

Dependencies: celery, docingest.application.container
System role: Out-of-process document processing task
"""

import asyncio
import logging
import uuid

from docingest.workers import celery_app

logger = logging.getLogger(__name__)


async def run_job(job_id: uuid.UUID) -> dict:
    """
    Run one job with a fresh service container.

    Args:
        job_id: Job UUID

    Returns:
        dict: PipelineResult as a plain dict
    """
    from docingest.application.container import ServiceContainer

    container = ServiceContainer()
    try:
        await container.prepare_database()
        result = await container.pipeline.process_job(job_id)
        return result.model_dump()
    finally:
        await container.shutdown()


@celery_app.task(name="docingest.ingest_document")
def ingest_document(job_id: str) -> dict:
    """
    Ingest a document for a queued job.

    Args:
        job_id: Job UUID as string

    Returns:
        dict: Pipeline result with status and chunk counts
    """
    logger.info(f"{__name__}:ingest_document - received job", extra={"job_id": job_id})
    return asyncio.run(run_job(uuid.UUID(job_id)))
