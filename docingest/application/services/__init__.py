"""
Application services.

Exports: IngestionService and its status view.
"""

from docingest.application.services.ingestion_service import DocumentStatusView, IngestionService

__all__ = ["DocumentStatusView", "IngestionService"]
