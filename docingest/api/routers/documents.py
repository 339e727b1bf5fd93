"""
Document ingestion API endpoints.

Routes: POST /documents/{id}/ingest, POST /documents/{id}/ingest-ref,
GET /documents/{id}/status, DELETE /documents/{id}

Dependencies: docingest.application.services.ingestion_service
System role: Document ingestion HTTP API
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, HTTPException, Response, UploadFile, status

from docingest.api.deps import get_ingestion_service
from docingest.api.schemas import IngestReferenceRequest, IngestResponse
from docingest.application.services import DocumentStatusView, IngestionService
from docingest.core.exceptions import SizeLimitExceeded, UnsupportedDocumentType, ValidationError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/documents", tags=["documents"])


def validation_http_error(e: ValidationError) -> HTTPException:
    """Map a submission ValidationError to its HTTP status."""
    if isinstance(e, SizeLimitExceeded):
        code = status.HTTP_413_REQUEST_ENTITY_TOO_LARGE
    elif isinstance(e, UnsupportedDocumentType):
        code = status.HTTP_415_UNSUPPORTED_MEDIA_TYPE
    else:
        code = status.HTTP_400_BAD_REQUEST
    return HTTPException(status_code=code, detail={"message": e.message, **e.details})


@router.post(
    "/{document_id}/ingest",
    response_model=IngestResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def ingest_upload(
    document_id: UUID,
    file: UploadFile = File(...),
    chunk_size: int | None = Form(default=None),
    chunk_overlap: int | None = Form(default=None),
    tenant_id: UUID | None = Form(default=None),
    service: IngestionService = Depends(get_ingestion_service),
) -> IngestResponse:
    """
    Upload a document and queue it for ingestion.

    Validation (size, type, chunk parameters) happens before any job is
    created. Poll GET /documents/{id}/status for progress.

    Args:
        document_id: Document UUID chosen by the caller
        file: Uploaded document (.pdf, .txt, .md, .png, .jpg, .jpeg)
        chunk_size: Optional chunk size override
        chunk_overlap: Optional chunk overlap override
        tenant_id: Owning tenant
        service: Injected IngestionService

    Returns:
        IngestResponse: Job ID of the created or reused job

    Raises:
        HTTPException(400): Invalid parameters
        HTTPException(413): Document exceeds the size limit
        HTTPException(415): Unsupported document type
    """
    data = await file.read()
    try:
        job_id = await service.submit(
            document_id,
            data,
            chunk_size=chunk_size,
            overlap=chunk_overlap,
            tenant_id=tenant_id,
            filename=file.filename,
        )
    except ValidationError as e:
        logger.info(
            f"{__name__}:ingest_upload - rejected",
            extra={"document_id": str(document_id), "reason": e.message},
        )
        raise validation_http_error(e)
    return IngestResponse(job_id=job_id, document_id=document_id)


@router.post(
    "/{document_id}/ingest-ref",
    response_model=IngestResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def ingest_reference(
    document_id: UUID,
    request: IngestReferenceRequest,
    service: IngestionService = Depends(get_ingestion_service),
) -> IngestResponse:
    """
    Queue a document already stored elsewhere for ingestion.

    Raises:
        HTTPException(400|413|415): Submission rejected
    """
    try:
        job_id = await service.submit(
            document_id,
            request.source_ref,
            chunk_size=request.chunk_size,
            overlap=request.chunk_overlap,
            tenant_id=request.tenant_id,
            filename=request.filename,
        )
    except ValidationError as e:
        raise validation_http_error(e)
    return IngestResponse(job_id=job_id, document_id=document_id)


@router.get("/{document_id}/status", response_model=DocumentStatusView)
async def get_document_status(
    document_id: UUID,
    service: IngestionService = Depends(get_ingestion_service),
) -> DocumentStatusView:
    """
    Get document status and ingestion progress for polling.

    Always answers 200; unknown documents report status "pending" with
    exists=false.
    """
    return await service.get_status(document_id)


@router.delete("/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_document(
    document_id: UUID,
    service: IngestionService = Depends(get_ingestion_service),
) -> Response:
    """
    Delete a document and its chunks.

    Raises:
        HTTPException(404): Document not found
    """
    if not await service.delete_document(document_id):
        raise HTTPException(status_code=404, detail=f"Document not found: {document_id}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
