"""
CRUD operations for database models.

Exports base CRUD class and model-specific CRUD implementations
with pre-instantiated singletons for direct use.

Usage:
    from docingest.boundary.db.CRUD import document_crud, job_crud, chunk_crud

    job = await job_crud.get_active_for_document(db, document_id)
"""

from docingest.boundary.db.CRUD.base_crud import BaseCRUD
from docingest.boundary.db.CRUD.document_crud import DocumentCRUD, document_crud
from docingest.boundary.db.CRUD.job_crud import JobCRUD, job_crud
from docingest.boundary.db.CRUD.chunk_crud import ChunkCRUD, chunk_crud

__all__ = [
    "BaseCRUD",
    "DocumentCRUD",
    "document_crud",
    "JobCRUD",
    "job_crud",
    "ChunkCRUD",
    "chunk_crud",
]
