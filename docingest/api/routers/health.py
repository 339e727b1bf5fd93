"""
Health check API endpoints.

Routes: GET /health, GET /health/db

Dependencies: sqlalchemy, docingest.api.deps
System role: Health check HTTP API
"""

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from docingest.api.deps import get_service_container
from docingest.application.container import ServiceContainer


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    message: str


router = APIRouter(prefix="/health", tags=["health"])


@router.get("", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Basic health check."""
    return HealthResponse(status="healthy", message="Server Healthy")


@router.get("/db", response_model=HealthResponse)
async def health_check_db(
    container: ServiceContainer = Depends(get_service_container),
) -> HealthResponse:
    """
    Database health check.

    Raises:
        HTTPException(503): Database unreachable
    """
    try:
        async with container.session_factory() as session:
            await session.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        raise HTTPException(status_code=503, detail=f"Database unavailable: {type(e).__name__}")
    return HealthResponse(status="healthy", message="Database connection OK")
