"""
Dependency injection container.

Factory functions for FastAPI dependencies.

Dependencies: docingest.application
System role: DI container for service injection
"""

from docingest.application.container import ServiceContainer
from docingest.application.services import IngestionService

_container: ServiceContainer | None = None


def get_service_container() -> ServiceContainer:
    """Get the process-wide service container, building it on first use."""
    global _container
    if _container is None:
        _container = ServiceContainer()
    return _container


def set_service_container(container: ServiceContainer | None) -> None:
    """Replace the process-wide service container (None resets it)."""
    global _container
    _container = container


def get_ingestion_service() -> IngestionService:
    """
    Get ingestion service instance.

    Returns:
        IngestionService: Shared ingestion service
    """
    return get_service_container().ingestion_service
