"""
FastAPI application with assembled routers.

Initializes the FastAPI app, starts and stops the ingestion services with
the application lifespan, and configures the uvicorn server.

Dependencies: fastapi, uvicorn, docingest.api.routers, docingest.application
System role: API entry point with router assembly and server launch
"""

import logging
from contextlib import asynccontextmanager

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from docingest.api.deps import get_service_container, set_service_container
from docingest.application.container import ServiceContainer
from docingest.configs import get_settings
from docingest.observability.logger import configure_logging
from docingest.observability.middleware import CorrelationMiddleware, RequestLoggingMiddleware
from .routers import (
    documents_router,
    health_router,
    jobs_router,
    maintenance_router,
    query_router,
)

logger = logging.getLogger(__name__)


def create_app(container: ServiceContainer | None = None) -> FastAPI:
    """
    Create and configure FastAPI application with routers.

    Args:
        container: Service container to serve from (process default if None)

    Returns:
        FastAPI: Configured application instance with all routers registered
    """
    if container is not None:
        set_service_container(container)
    settings = get_service_container().settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        services = get_service_container()
        configure_logging(services.settings.log_level)
        logger.info("Starting ingestion services...")
        await services.startup()

        yield

        await services.shutdown()
        logger.info("Ingestion services stopped")

    app = FastAPI(
        title="Document Ingestion API",
        description="Document ingestion, chunk embedding and similarity retrieval",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(CorrelationMiddleware)

    # All routers versioned under /api/v1
    app.include_router(health_router, prefix="/api/v1")
    app.include_router(documents_router, prefix="/api/v1")
    app.include_router(query_router, prefix="/api/v1")
    app.include_router(maintenance_router, prefix="/api/v1")
    app.include_router(jobs_router, prefix="/api/v1")

    return app


if __name__ == "__main__":
    load_dotenv()
    server_settings = get_settings()
    uvicorn.run(
        "docingest.api.main:create_app",
        factory=True,
        host=server_settings.api_host,
        port=server_settings.api_port,
    )
