"""
Maintenance API endpoints.

Routes: POST /maintenance/repair, POST /maintenance/drain

Dependencies: docingest.application.services.ingestion_service
System role: Operational HTTP API (repair sweeps, queue recovery)
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import SQLAlchemyError

from docingest.api.deps import get_ingestion_service
from docingest.api.schemas import DrainRequest, DrainResponse, RepairRequest
from docingest.application.services import IngestionService
from docingest.boundary.vdb import RepairReport
from docingest.core.exceptions import ChunkStoreError

router = APIRouter(prefix="/maintenance", tags=["maintenance"])


@router.post("/repair", response_model=RepairReport)
async def repair_chunks(
    request: RepairRequest | None = None,
    service: IngestionService = Depends(get_ingestion_service),
) -> RepairReport:
    """
    Re-embed chunks stored without an embedding.

    Raises:
        HTTPException(503): Store or embedding provider unavailable
    """
    request = request or RepairRequest()
    try:
        return await service.repair(batch_size=request.batch_size, sweep=request.sweep)
    except ChunkStoreError as e:
        raise HTTPException(status_code=503, detail=e.message)


@router.post("/drain", response_model=DrainResponse)
async def drain_queued_jobs(
    request: DrainRequest | None = None,
    service: IngestionService = Depends(get_ingestion_service),
) -> DrainResponse:
    """
    Re-dispatch jobs still QUEUED in the durable store.

    Raises:
        HTTPException(503): Job store unavailable
    """
    request = request or DrainRequest()
    try:
        job_ids = await service.drain_queued(limit=request.limit)
    except SQLAlchemyError as e:
        raise HTTPException(status_code=503, detail=f"Job store unavailable: {type(e).__name__}")
    return DrainResponse(dispatched=len(job_ids), job_ids=job_ids)
