"""API-specific dependencies."""

from .dependencies import get_ingestion_service, get_service_container, set_service_container

__all__ = [
    "get_ingestion_service",
    "get_service_container",
    "set_service_container",
]
