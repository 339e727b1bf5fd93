"""API routers."""

from .documents import router as documents_router
from .health import router as health_router
from .jobs import router as jobs_router
from .maintenance import router as maintenance_router
from .query import router as query_router

__all__ = [
    "documents_router",
    "health_router",
    "jobs_router",
    "maintenance_router",
    "query_router",
]
