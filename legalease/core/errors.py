"""Exception types raised across the ingestion and chat pipelines."""


class LegalEaseError(Exception):
    """Base class for all application errors."""


class NotFoundError(LegalEaseError):
    """A referenced record does not exist."""


class DocumentNotFoundError(NotFoundError):
    def __init__(self, document_id):
        super().__init__(f"Document {document_id} not found")
        self.document_id = document_id


class SessionNotFoundError(NotFoundError):
    def __init__(self, session_id):
        super().__init__(f"Chat session {session_id} not found")
        self.session_id = session_id


class DownloadError(LegalEaseError):
    """The stored file could not be read back from object storage."""


class LLMServiceError(LegalEaseError):
    """The text-generation endpoint failed or returned no usable reply."""


class PersistenceError(LegalEaseError):
    """A write to the document store failed."""


class UploadRejectedError(LegalEaseError):
    """An uploaded file was refused before anything was stored."""
