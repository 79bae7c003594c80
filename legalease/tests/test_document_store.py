import uuid

import pytest

from legalease.core.errors import DocumentNotFoundError
from legalease.models import ChatMessage, ChatSession, Document
from legalease.models.document import DocumentStatus
from legalease.pipeline.analysis import DocumentAnalysis, LegalTerm

ANALYSIS = DocumentAnalysis(
    summary="A residential lease.",
    key_points=["Rent is due on the first of the month."],
    legal_terms=[LegalTerm(term="Lessor", explanation="The landlord.")],
    warnings=["The deposit is non-refundable."],
)


class TestDocumentStore:
    async def test_create_defaults_to_processing(self, make_document):
        document = await make_document()

        assert document.processing_status == DocumentStatus.PROCESSING
        assert document.processing_errors is None
        assert document.simplified_summary is None
        assert not document.has_analysis

    async def test_get_missing_document(self, store):
        with pytest.raises(DocumentNotFoundError):
            await store.get(uuid.uuid4())

    async def test_update_analysis_writes_everything_at_once(self, store, make_document):
        document = await make_document()

        applied = await store.update_analysis(document.id, "Lease text", ANALYSIS)

        assert applied
        stored = await Document.get(id=document.id)
        assert stored.processing_status == DocumentStatus.COMPLETED
        assert stored.processing_errors is None
        assert stored.original_text == "Lease text"
        assert stored.simplified_summary == "A residential lease."
        assert stored.key_points == ["Rent is due on the first of the month."]
        assert stored.legal_terms == [{"term": "Lessor", "explanation": "The landlord."}]
        assert stored.warnings == ["The deposit is non-refundable."]
        assert stored.has_analysis

    async def test_original_text_is_truncated(self, make_document):
        from legalease.services.document_store import DocumentStore

        store = DocumentStore(original_text_limit=10_000)
        document = await make_document()

        await store.update_analysis(document.id, "a" * 15_000, ANALYSIS)

        stored = await Document.get(id=document.id)
        assert stored.original_text == "a" * 10_000

    async def test_completed_document_is_not_completed_twice(self, store, make_document):
        document = await make_document()
        await store.update_analysis(document.id, "first", ANALYSIS)

        second = ANALYSIS.model_copy(update={"summary": "A different summary."})
        applied = await store.update_analysis(document.id, "second", second)

        assert not applied
        stored = await Document.get(id=document.id)
        assert stored.original_text == "first"
        assert stored.simplified_summary == "A residential lease."

    async def test_errored_document_can_be_completed(self, store, make_document):
        document = await make_document(status=DocumentStatus.ERROR)

        assert await store.update_analysis(document.id, "text", ANALYSIS)

        stored = await Document.get(id=document.id)
        assert stored.processing_status == DocumentStatus.COMPLETED

    async def test_error_only_overwrites_processing(self, store, make_document):
        document = await make_document()
        await store.update_analysis(document.id, "text", ANALYSIS)

        applied = await store.update_status(
            document.id, DocumentStatus.ERROR, expected=DocumentStatus.PROCESSING, error="late failure"
        )

        assert not applied
        stored = await Document.get(id=document.id)
        assert stored.processing_status == DocumentStatus.COMPLETED
        assert stored.processing_errors is None

    async def test_leaving_completed_clears_analysis(self, store, make_document):
        document = await make_document()
        await store.update_analysis(document.id, "text", ANALYSIS)

        assert await store.update_status(document.id, DocumentStatus.PROCESSING)

        stored = await Document.get(id=document.id)
        assert stored.processing_status == DocumentStatus.PROCESSING
        assert stored.simplified_summary is None
        assert stored.key_points is None
        assert stored.legal_terms is None
        assert stored.warnings is None
        assert not stored.has_analysis

    async def test_error_message_is_recorded_and_cleared(self, store, make_document):
        document = await make_document()

        await store.update_status(document.id, DocumentStatus.ERROR, error="DownloadError: gone")
        assert (await Document.get(id=document.id)).processing_errors == "DownloadError: gone"

        await store.update_status(document.id, DocumentStatus.PROCESSING)
        assert (await Document.get(id=document.id)).processing_errors is None

    async def test_unknown_status_is_rejected(self, store, make_document):
        document = await make_document()

        with pytest.raises(ValueError):
            await store.update_status(document.id, "archived")

    async def test_list_by_status_oldest_first(self, store, make_document):
        first = await make_document(filename="a.txt")
        await make_document(filename="b.txt", status=DocumentStatus.COMPLETED)
        third = await make_document(filename="c.txt")

        stuck = await store.list_by_status(DocumentStatus.PROCESSING)

        assert [d.id for d in stuck] == [first.id, third.id]

    async def test_list_documents_filters_by_user(self, store, make_document):
        await make_document(user_id="alice", filename="a.txt")
        mine = await make_document(user_id="bob", filename="b.txt")

        documents = await store.list_documents(user_id="bob")

        assert [d.id for d in documents] == [mine.id]

    async def test_delete_cascades_to_chat(self, store, make_document):
        document = await make_document()
        session = await ChatSession.create(document=document, user_id="user-1", title="Chat about Agreement")
        await ChatMessage.create(chat_session=session, role="user", content="Hi")

        deleted = await store.delete(document.id)

        assert deleted.id == document.id
        assert await Document.get_or_none(id=document.id) is None
        assert await ChatSession.filter(id=session.id).count() == 0
        assert await ChatMessage.all().count() == 0
