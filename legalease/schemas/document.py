from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from legalease.pipeline.analysis import DocumentAnalysis, LegalTerm


class DocumentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: str | None = None
    title: str
    original_filename: str
    file_type: str
    file_size: int
    processing_status: str = Field(..., description="pending, processing, completed or error")
    processing_errors: str | None = None
    simplified_summary: str | None = None
    key_points: list[str] | None = None
    legal_terms: list[LegalTerm] | None = None
    warnings: list[str] | None = None
    created_at: datetime | None = None


class DocumentDetailResponse(DocumentResponse):
    original_text: str | None = None


class ProcessResponse(BaseModel):
    success: bool
    document_id: UUID
    status: str
    analysis: DocumentAnalysis | None = None
    parse_status: str | None = Field(None, description="parsed, partial or defaulted")
    applied: bool = False
    error: str | None = None
    stuck: bool = Field(False, description="True if the document could not be marked as errored")


class SweepAcceptedResponse(BaseModel):
    message: str = Field(..., description="Confirmation that the reprocess sweep was enqueued.")
