"""
Dramatiq actors for background document processing.

Actors run without automatic retries: a failed run leaves the document in
`error` (or, if even that write failed, in `processing`), and the reprocess
sweep is the only retry mechanism.
"""

import logging
from uuid import UUID

import dramatiq
from tortoise import Tortoise

from legalease.core import queue  # noqa: F401 - Initialize Dramatiq broker for worker
from legalease.core.config import TORTOISE_ORM
from legalease.services.ingestion_service import IngestionService, ProcessResult, SweepReport

logger = logging.getLogger(__name__)


async def _process_document_job(document_id: str) -> ProcessResult:
    """
    Core logic for processing an uploaded document.

    Separated from the Dramatiq actor to make testing easier.

    Args:
        document_id: The UUID of the document to process (as string)
    """
    # Initialize Tortoise ORM connection for this worker
    await Tortoise.init(config=TORTOISE_ORM)

    try:
        ingestion_service = IngestionService()
        result = await ingestion_service.process_document(UUID(document_id))

        if result.stuck:
            logger.error(f"Document {document_id} could not be marked as errored and may remain processing")
        return result

    except Exception as e:
        logger.error(f"Error processing document {document_id}: {e}", exc_info=True)
        # Re-raise so Dramatiq records the failed message
        raise

    finally:
        # Close Tortoise connections
        await Tortoise.close_connections()


async def _reprocess_stuck_documents_job() -> SweepReport:
    await Tortoise.init(config=TORTOISE_ORM)
    try:
        return await IngestionService().reprocess_stuck_documents()
    finally:
        await Tortoise.close_connections()


@dramatiq.actor(max_retries=0)
async def process_document_job(document_id: str) -> None:
    """
    Dramatiq actor for processing a document asynchronously.

    Args:
        document_id: The UUID of the document to process (as string)
    """
    await _process_document_job(document_id)


@dramatiq.actor(max_retries=0)
async def reprocess_stuck_documents_job() -> None:
    """Dramatiq actor for the reprocess sweep."""
    await _reprocess_stuck_documents_job()
