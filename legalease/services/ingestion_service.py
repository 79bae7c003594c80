import logging
from dataclasses import dataclass, field
from uuid import UUID, uuid4

from legalease.core.config import Settings
from legalease.core.errors import DocumentNotFoundError, UploadRejectedError
from legalease.core.storage import LocalObjectStorage, ObjectStorage
from legalease.models import Document
from legalease.models.document import DocumentStatus, FileType
from legalease.pipeline.analysis import AnalysisRequester, DocumentAnalysis, ParseStatus
from legalease.pipeline.extractor import TextExtractor
from legalease.pipeline.graph import IngestionNodes, build_graph
from legalease.pipeline.llm import DspyTextGenerator, TextGenerator

from .document_store import DocumentStore

logger = logging.getLogger(__name__)


@dataclass
class ProcessResult:
    """
    Result of one ingestion pipeline run.

    `stuck` is set when the run failed and the follow-up write marking the
    document as errored also failed, so the document may remain in
    `processing` until the next reprocess sweep.
    """

    document_id: UUID
    success: bool
    status: str
    analysis: DocumentAnalysis | None = None
    parse_status: ParseStatus | None = None
    applied: bool = False  # False when another run completed the document first
    error: str | None = None
    stuck: bool = False


@dataclass
class SweepReport:
    """Result of reprocessing every document stuck in `processing`."""

    total: int = 0
    succeeded: list[UUID] = field(default_factory=list)
    failed: list[UUID] = field(default_factory=list)


class IngestionService:
    """
    Service for orchestrating the ingestion of uploaded documents.
    Handles upload, text extraction, LLM analysis, persistence and status tracking.
    """

    def __init__(
        self,
        store: DocumentStore | None = None,
        storage: ObjectStorage | None = None,
        extractor: TextExtractor | None = None,
        generator: TextGenerator | None = None,
        requester: AnalysisRequester | None = None,
        settings: Settings | None = None,
    ):
        self.settings = settings or Settings()
        self.store = store or DocumentStore(self.settings.ORIGINAL_TEXT_MAX_CHARS)
        self.storage = storage or LocalObjectStorage(self.settings.STORAGE_DIR)
        self.extractor = extractor or TextExtractor(
            self.settings.MIN_EXTRACTED_CHARS, self.settings.PLACEHOLDER_BELOW_CHARS
        )
        self.requester = requester or AnalysisRequester(
            generator or DspyTextGenerator(),
            max_input_chars=self.settings.ANALYSIS_MAX_INPUT_CHARS,
            temperature=self.settings.ANALYSIS_TEMPERATURE,
            max_tokens=self.settings.ANALYSIS_MAX_TOKENS,
        )

        # Compile the graph once per service instance.
        self.compiled_graph = build_graph(IngestionNodes(self.storage, self.extractor, self.requester, self.store))

    async def upload_document(self, user_id: str, filename: str, data: bytes, title: str | None = None) -> Document:
        """
        Store an uploaded file, create its document record and enqueue processing.

        Args:
            user_id: Owner of the document
            filename: Original filename, used to derive the file type
            data: Raw file bytes
            title: Optional display title (defaults to the filename without extension)

        Returns:
            The created Document, in `processing` status

        Raises:
            UploadRejectedError: If the file is empty or too large
        """
        # Import here to avoid circular dependency
        from legalease.jobs.ingestion_job import process_document_job

        if not data:
            raise UploadRejectedError("Uploaded file is empty.")
        if len(data) > self.settings.MAX_UPLOAD_BYTES:
            raise UploadRejectedError(f"Uploaded file is too large (max: {self.settings.MAX_UPLOAD_BYTES} bytes).")

        file_type = FileType.from_filename(filename)
        stem, dot, ext = filename.rpartition(".")
        extension = ext.lower() if dot and ext else "bin"
        key = f"{user_id}/{uuid4().hex}.{extension}"

        file_path = await self.storage.upload(key, data)
        document = await self.store.create(
            user_id=user_id,
            title=(title or "").strip() or (stem if dot and stem else filename),
            original_filename=filename,
            file_type=file_type,
            file_size=len(data),
            file_path=file_path,
        )

        process_document_job.send(str(document.id))
        logger.info(f"Enqueued processing job for document {document.id}")

        return document

    async def process_document(self, document_id: UUID | str) -> ProcessResult:
        """
        Run the full ingestion pipeline for one document.

        Re-entrant: documents already `processing`, `error` or `completed` can
        be processed again.

        Raises:
            DocumentNotFoundError: If the document does not exist (nothing is mutated)
        """
        document = await self.store.get(document_id)

        try:
            if document.processing_status != DocumentStatus.PROCESSING:
                claimed = await self.store.update_status(
                    document.id, DocumentStatus.PROCESSING, expected=document.processing_status
                )
                if not claimed:
                    # Status changed since it was read; another run got there first
                    current = await self._current_status(document.id)
                    if current != DocumentStatus.PROCESSING:
                        logger.info(f"Skipping document {document.id}: status changed to '{current}'")
                        return ProcessResult(
                            document_id=document.id,
                            success=current == DocumentStatus.COMPLETED,
                            status=current,
                        )
                document.processing_status = DocumentStatus.PROCESSING
            logger.info(f"Processing document {document.id}")

            final_state = await self.compiled_graph.ainvoke({"document": document})

        except DocumentNotFoundError:
            raise

        except Exception as e:
            logger.error(f"Error processing document {document.id}: {e}", exc_info=True)
            error = f"{type(e).__name__}: {e}"
            marked = await self._mark_error(document.id, error)
            if marked is None:
                status = DocumentStatus.PROCESSING
            elif marked:
                status = DocumentStatus.ERROR
            else:
                status = await self._current_status(document.id)
            return ProcessResult(
                document_id=document.id,
                success=False,
                status=status,
                error=error,
                stuck=marked is None,
            )

        outcome = final_state["outcome"]
        applied = final_state["applied"]
        if applied:
            logger.info(f"Successfully completed processing document {document.id}")
            status = DocumentStatus.COMPLETED
        else:
            status = await self._current_status(document.id)

        return ProcessResult(
            document_id=document.id,
            success=True,
            status=status,
            analysis=outcome.analysis,
            parse_status=outcome.parse_status,
            applied=applied,
        )

    async def _current_status(self, document_id: UUID) -> str:
        status = await self.store.get_status(document_id)
        if status is None:
            raise DocumentNotFoundError(document_id)
        return status

    async def _mark_error(self, document_id: UUID, error: str) -> bool | None:
        """
        Best-effort transition to `error`, only if the document is still processing.

        Returns:
            Whether the write landed, or None if the status write itself failed
        """
        try:
            return await self.store.update_status(
                document_id,
                DocumentStatus.ERROR,
                expected=DocumentStatus.PROCESSING,
                error=error,
            )
        except Exception as save_error:
            logger.error(f"Failed to update status of document {document_id}: {save_error}")
            return None

    async def reprocess_stuck_documents(self) -> SweepReport:
        """
        Re-run the pipeline for every document stuck in `processing`, one at a time.

        A failure on one document never stops the sweep.
        """
        stuck = await self.store.list_by_status(DocumentStatus.PROCESSING)
        report = SweepReport(total=len(stuck))

        if not stuck:
            logger.info("No stuck documents found")
            return report

        logger.info(f"Found {len(stuck)} stuck documents. Reprocessing...")

        for document in stuck:
            try:
                result = await self.process_document(document.id)
            except Exception as e:
                logger.error(f"Failed to reprocess document {document.id}: {e}")
                report.failed.append(document.id)
                continue

            if result.success:
                report.succeeded.append(document.id)
            else:
                report.failed.append(document.id)

        logger.info(f"Reprocess sweep finished: {len(report.succeeded)} succeeded, {len(report.failed)} failed")
        return report

    def enqueue_reprocess_sweep(self) -> None:
        """Enqueue the reprocess sweep as a background job."""
        # Import here to avoid circular dependency
        from legalease.jobs.ingestion_job import reprocess_stuck_documents_job

        reprocess_stuck_documents_job.send()
        logger.info("Enqueued reprocess sweep job")

    async def delete_document(self, document_id: UUID | str) -> None:
        """Delete the document record, then its stored file (storage errors are only logged)."""
        document = await self.store.delete(document_id)

        if document.file_path:
            try:
                await self.storage.remove([document.file_path])
            except Exception as e:
                logger.error(f"Storage deletion error for {document.file_path}: {e}")
