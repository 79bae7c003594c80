import logging
from collections.abc import Iterable
from uuid import UUID

from tortoise import timezone
from tortoise.exceptions import BaseORMException

from legalease.core.config import Settings
from legalease.core.errors import DocumentNotFoundError, PersistenceError
from legalease.core.text import truncate
from legalease.models import Document
from legalease.models.document import DocumentStatus
from legalease.pipeline.analysis import DocumentAnalysis

logger = logging.getLogger(__name__)

_ANALYSIS_CLEARED = {
    "simplified_summary": None,
    "key_points": None,
    "legal_terms": None,
    "warnings": None,
}


class DocumentStore:
    """
    Persistence for Document records and their status transitions.

    Status writes are single conditional UPDATE statements: a write only lands
    when the row is still in one of the `expected` statuses, so concurrent
    pipeline runs cannot silently overwrite each other.
    """

    def __init__(self, original_text_limit: int | None = None):
        self.original_text_limit = original_text_limit or Settings().ORIGINAL_TEXT_MAX_CHARS

    async def get(self, document_id: UUID | str) -> Document:
        document = await Document.get_or_none(id=document_id)
        if document is None:
            raise DocumentNotFoundError(document_id)
        return document

    async def create(
        self,
        *,
        user_id: str,
        title: str,
        original_filename: str,
        file_type: str,
        file_size: int,
        file_path: str,
        status: str = DocumentStatus.PROCESSING,
    ) -> Document:
        document = await Document.create(
            user_id=user_id,
            title=title,
            original_filename=original_filename,
            file_type=file_type,
            file_size=file_size,
            file_path=file_path,
            processing_status=status,
        )
        logger.info(f"Created document with ID: {document.id}")
        return document

    async def get_status(self, document_id: UUID | str) -> str | None:
        """Current processing status, or None if the document no longer exists."""
        return await Document.filter(id=document_id).first().values_list("processing_status", flat=True)

    async def list_documents(self, user_id: str | None = None, status: str | None = None) -> list[Document]:
        """List documents, newest first."""
        query = Document.all()
        if user_id is not None:
            query = query.filter(user_id=user_id)
        if status is not None:
            query = query.filter(processing_status=status)
        return await query.order_by("-created_at")

    async def list_by_status(self, status: str) -> list[Document]:
        """List documents in `status`, oldest first."""
        return await Document.filter(processing_status=status).order_by("created_at")

    async def update_status(
        self,
        document_id: UUID | str,
        status: str,
        expected: str | Iterable[str] | None = None,
        error: str | None = None,
    ) -> bool:
        """
        Move a document to `status`.

        Args:
            document_id: Document to update
            status: New processing status
            expected: Only update when the current status is one of these
            error: Error message to record (cleared when None)

        Returns:
            True if a row was updated
        """
        if status not in DocumentStatus.ALL:
            raise ValueError(f"Unknown processing status: {status}")

        values = {"processing_status": status, "processing_errors": error, "updated_at": timezone.now()}
        if status != DocumentStatus.COMPLETED:
            # Analysis fields are only ever visible on completed documents
            values.update(_ANALYSIS_CLEARED)

        query = Document.filter(id=document_id)
        if expected is not None:
            expected = [expected] if isinstance(expected, str) else list(expected)
            query = query.filter(processing_status__in=expected)

        updated = await query.update(**values)
        if not updated:
            logger.info(f"Status update of document {document_id} to '{status}' skipped (expected {expected})")
        return bool(updated)

    async def update_analysis(
        self,
        document_id: UUID | str,
        text: str,
        analysis: DocumentAnalysis,
        expected: Iterable[str] = (DocumentStatus.PROCESSING, DocumentStatus.ERROR),
    ) -> bool:
        """
        Store the extracted text and analysis and mark the document completed.

        Status and analysis fields are written in one UPDATE statement, so they
        become visible together.

        Returns:
            True if the document was updated, False if it was no longer in an
            expected status (for example, another run completed it first)

        Raises:
            PersistenceError: If the database write fails
        """
        try:
            updated = await Document.filter(id=document_id, processing_status__in=list(expected)).update(
                processing_status=DocumentStatus.COMPLETED,
                processing_errors=None,
                original_text=truncate(text, self.original_text_limit),
                simplified_summary=analysis.summary,
                key_points=list(analysis.key_points),
                legal_terms=[term.model_dump() for term in analysis.legal_terms],
                warnings=list(analysis.warnings),
                updated_at=timezone.now(),
            )
        except BaseORMException as e:
            raise PersistenceError(f"Failed to store analysis for document {document_id}: {e}") from e

        if not updated:
            logger.warning(f"Analysis for document {document_id} discarded: document is no longer processing")
        return bool(updated)

    async def delete(self, document_id: UUID | str) -> Document:
        """Delete a document (sessions and messages cascade) and return the deleted record."""
        document = await self.get(document_id)
        await document.delete()
        logger.info(f"Deleted document {document_id}")
        return document
