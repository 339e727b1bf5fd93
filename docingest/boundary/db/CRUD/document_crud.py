"""
Document CRUD operations.

Provides Create, Read, Update, Delete operations for DocumentModel
with status transitions driven by the job tracker.

Dependencies: sqlalchemy, docingest.boundary.db.models.document_model
System role: Document persistence operations
"""

from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from docingest.boundary.db.models.document_model import DocumentModel, DocumentStatus
from docingest.boundary.db.CRUD.base_crud import BaseCRUD


class DocumentCRUD(BaseCRUD[DocumentModel]):
    """
    CRUD operations for DocumentModel.

    Extends BaseCRUD with create-or-reset for submissions and status updates.
    """

    def __init__(self) -> None:
        """Initialize DocumentCRUD with DocumentModel."""
        super().__init__(DocumentModel)

    async def upsert_for_submission(
        self,
        session: AsyncSession,
        id: UUID,
        name: str,
        source_ref: str,
        tenant_id: UUID | None = None,
    ) -> DocumentModel:
        """
        Create the document, or reset an existing one to PENDING.

        Args:
            session: Async database session
            id: Document UUID chosen by the caller
            name: Original filename
            source_ref: Where the raw bytes live
            tenant_id: Owning tenant (kept when not supplied)

        Returns:
            DocumentModel in PENDING state
        """
        document = await self.get_by_id(session, id)
        if document is None:
            return await self.create(
                session,
                id=id,
                name=name,
                source_ref=source_ref,
                tenant_id=tenant_id,
                status=DocumentStatus.PENDING,
            )

        document.name = name
        document.source_ref = source_ref
        if tenant_id is not None:
            document.tenant_id = tenant_id
        document.status = DocumentStatus.PENDING
        document.error_message = None
        await session.flush()
        return document

    async def update_status(
        self,
        session: AsyncSession,
        id: UUID,
        status: DocumentStatus,
        error_message: str | None = None,
    ) -> DocumentModel | None:
        """
        Update document processing status.

        Args:
            session: Async database session
            id: Document UUID
            status: New processing status
            error_message: Error details for FAILED/ERROR (cleared otherwise)

        Returns:
            Updated DocumentModel if found, None otherwise
        """
        return await self.update_by_id(session, id, status=status, error_message=error_message)


document_crud = DocumentCRUD()
