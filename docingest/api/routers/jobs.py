"""
Job API endpoints.

Routes: GET /jobs/{id}

Dependencies: docingest.application.services.ingestion_service
System role: Job status HTTP API
"""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException

from docingest.api.deps import get_ingestion_service
from docingest.application.services import IngestionService
from docingest.core.exceptions import JobNotFoundError
from docingest.core.job_tracker import JobSnapshot

router = APIRouter(prefix="/jobs", tags=["jobs"])


@router.get("/{job_id}", response_model=JobSnapshot)
async def get_job_status(
    job_id: UUID,
    service: IngestionService = Depends(get_ingestion_service),
) -> JobSnapshot:
    """
    Get job status and progress for polling.

    Args:
        job_id: Job UUID
        service: Injected IngestionService

    Returns:
        JobSnapshot: Status, stage, chunk counts, progress_percent, timestamps

    Raises:
        HTTPException(404): Job not found

    Example Response:
        {
            "id": "123e4567-e89b-12d3-a456-426614174000",
            "document_id": "9b2f6c1e-7a4d-4f0e-8d3a-2c5b1e9f0a11",
            "status": "processing",
            "stage": "embedding",
            "processed_chunks": 4,
            "total_chunks": 10,
            "progress_percent": 40,
            ...
        }
    """
    try:
        return await service.get_job(job_id)
    except JobNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
