from tortoise import fields

from .base import TimestampedModel


class DocumentStatus:
    """Document processing status constants."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"

    ALL = (PENDING, PROCESSING, COMPLETED, ERROR)


class FileType:
    """Declared file type of an uploaded document."""

    PDF = "pdf"
    DOCX = "docx"
    TXT = "txt"
    OTHER = "other"

    ALL = (PDF, DOCX, TXT, OTHER)

    @classmethod
    def from_filename(cls, filename: str) -> str:
        """Map a filename's extension onto a known file type, or OTHER."""
        _, dot, ext = filename.rpartition(".")
        ext = ext.lower() if dot else ""
        return ext if ext in (cls.PDF, cls.DOCX, cls.TXT) else cls.OTHER


class Document(TimestampedModel):
    user_id = fields.CharField(max_length=255, null=True, db_index=True)
    title = fields.CharField(max_length=255)
    original_filename = fields.CharField(max_length=255)
    file_type = fields.CharField(max_length=10, default=FileType.OTHER)
    file_size = fields.BigIntField(default=0)
    file_path = fields.CharField(max_length=512)
    processing_status = fields.CharField(
        max_length=20,
        default=DocumentStatus.PENDING,
        db_index=True,
        description="Processing status: pending, processing, completed, or error",
    )
    processing_errors = fields.TextField(null=True, description="Error message from the last failed processing run")

    # Analysis fields, populated together when processing completes
    original_text = fields.TextField(null=True)
    simplified_summary = fields.TextField(null=True)
    key_points = fields.JSONField(null=True)
    legal_terms = fields.JSONField(null=True)
    warnings = fields.JSONField(null=True)

    @property
    def has_analysis(self) -> bool:
        return self.processing_status == DocumentStatus.COMPLETED and self.simplified_summary is not None

    class Meta:
        table = "documents"
        table_description = "Uploaded documents and their analysis"
