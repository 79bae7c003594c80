from uuid import UUID

from fastapi import APIRouter, File, Form, HTTPException, Query, UploadFile

from legalease.core.errors import NotFoundError, UploadRejectedError
from legalease.schemas.document import (
    DocumentDetailResponse,
    DocumentResponse,
    ProcessResponse,
    SweepAcceptedResponse,
)
from legalease.services.ingestion_service import IngestionService

router = APIRouter()
ingestion_service = IngestionService()


@router.post("/documents", status_code=201, response_model=DocumentResponse)
async def upload_document(
    file: UploadFile = File(...),
    user_id: str = Form(...),
    title: str | None = Form(None),
) -> DocumentResponse:
    """
    Uploads a document and enqueues it for analysis.

    The file is stored, a document record is created in `processing` status and
    a background job extracts and analyzes its text. Returns immediately with
    a 201 Created status.
    """
    try:
        data = await file.read()
        document = await ingestion_service.upload_document(
            user_id=user_id,
            filename=file.filename or "document",
            data=data,
            title=title,
        )
        return DocumentResponse.model_validate(document)
    except UploadRejectedError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"An unexpected error occurred: {e}") from e


@router.get("/documents", response_model=list[DocumentResponse])
async def list_documents(user_id: str | None = Query(None), status: str | None = Query(None)):
    """Lists documents, newest first."""
    documents = await ingestion_service.store.list_documents(user_id=user_id, status=status)
    return [DocumentResponse.model_validate(d) for d in documents]


@router.post("/documents/reprocess-stuck", status_code=202, response_model=SweepAcceptedResponse)
async def reprocess_stuck_documents() -> SweepAcceptedResponse:
    """
    Enqueues a background sweep that re-runs the ingestion pipeline for every
    document stuck in `processing`. Returns immediately with 202 Accepted.
    """
    try:
        ingestion_service.enqueue_reprocess_sweep()
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"An unexpected error occurred: {e}") from e
    return SweepAcceptedResponse(message="Reprocess sweep accepted for processing")


@router.get("/documents/{document_id}", response_model=DocumentDetailResponse)
async def get_document(document_id: UUID) -> DocumentDetailResponse:
    try:
        document = await ingestion_service.store.get(document_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    return DocumentDetailResponse.model_validate(document)


@router.post("/documents/{document_id}/process", response_model=ProcessResponse)
async def process_document(document_id: UUID) -> ProcessResponse:
    """
    Runs the ingestion pipeline for a document synchronously.

    Pipeline failures are reported in the body (`success: false`) after the
    document has been marked `error`.
    """
    try:
        result = await ingestion_service.process_document(document_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"An unexpected error occurred: {e}") from e

    return ProcessResponse(
        success=result.success,
        document_id=result.document_id,
        status=result.status,
        analysis=result.analysis,
        parse_status=result.parse_status.value if result.parse_status else None,
        applied=result.applied,
        error=result.error,
        stuck=result.stuck,
    )


@router.delete("/documents/{document_id}", status_code=204)
async def delete_document(document_id: UUID) -> None:
    """Deletes a document, its chat sessions and its stored file."""
    try:
        await ingestion_service.delete_document(document_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
