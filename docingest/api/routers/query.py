"""
Similarity query API endpoint.

Routes: POST /query

Dependencies: docingest.application.services.ingestion_service
System role: Retrieval HTTP API for the chat feature
"""

from fastapi import APIRouter, Depends, HTTPException

from docingest.api.deps import get_ingestion_service
from docingest.api.schemas import QueryRequest, QueryResponse
from docingest.application.services import IngestionService
from docingest.core.exceptions import RetrievalError

router = APIRouter(prefix="/query", tags=["query"])


@router.post("", response_model=QueryResponse)
async def query_chunks(
    request: QueryRequest,
    service: IngestionService = Depends(get_ingestion_service),
) -> QueryResponse:
    """
    Find stored chunks similar to a query.

    With format_for_prompt=true the response carries the rendered context
    block in `context` instead of `matches`.

    Raises:
        HTTPException(503): Embedding provider or store unavailable
    """
    try:
        result = await service.query(
            request.query,
            document_id=request.document_id,
            threshold=request.threshold,
            count=request.count,
            format_for_prompt=request.format_for_prompt,
        )
    except RetrievalError as e:
        raise HTTPException(status_code=503, detail=e.message)

    if isinstance(result, str):
        return QueryResponse(context=result)
    return QueryResponse(matches=result)
