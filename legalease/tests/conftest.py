import json
import os

os.environ.setdefault("DATABASE_URL", "sqlite://:memory:")
os.environ.setdefault("APP_ENV", "test")

import pytest  # noqa: E402
from tortoise import Tortoise  # noqa: E402

from legalease.core.storage import LocalObjectStorage  # noqa: E402
from legalease.models.document import DocumentStatus, FileType  # noqa: E402
from legalease.services.document_store import DocumentStore  # noqa: E402
from legalease.services.ingestion_service import IngestionService  # noqa: E402

VALID_ANALYSIS = {
    "summary": "This agreement sets out which country's laws apply to it.",
    "keyPoints": ["The agreement is governed by the laws of X."],
    "legalTerms": [{"term": "Governing law", "explanation": "The legal system used to interpret the contract."}],
    "warnings": ["Disputes will be decided under the laws of X."],
}


class StubGenerator:
    """In-memory TextGenerator that records calls and returns canned replies."""

    def __init__(self, reply: str | None = None, error: Exception | None = None):
        self.reply = reply if reply is not None else json.dumps(VALID_ANALYSIS)
        self.error = error
        self.calls = []

    async def generate(self, messages, *, temperature, max_tokens):
        self.calls.append({"messages": messages, "temperature": temperature, "max_tokens": max_tokens})
        if self.error is not None:
            raise self.error
        return self.reply


@pytest.fixture(autouse=True)
async def db_session():
    await Tortoise.init(db_url="sqlite://:memory:", modules={"models": ["legalease.models"]})
    await Tortoise.generate_schemas()

    yield
    await Tortoise.close_connections()


@pytest.fixture
def generator():
    return StubGenerator()


@pytest.fixture
def storage(tmp_path):
    return LocalObjectStorage(tmp_path / "storage")


@pytest.fixture
def store():
    return DocumentStore()


@pytest.fixture
def ingestion_service(store, storage, generator):
    return IngestionService(store=store, storage=storage, generator=generator)


@pytest.fixture
def make_document(store, storage):
    """Store file bytes and create a matching document record."""

    async def _make(
        data: bytes = b"This Agreement is governed by the laws of X.",
        filename: str = "agreement.txt",
        status: str = DocumentStatus.PROCESSING,
        user_id: str = "user-1",
        title: str = "Agreement",
    ):
        path = await storage.upload(f"{user_id}/{filename}", data)
        return await store.create(
            user_id=user_id,
            title=title,
            original_filename=filename,
            file_type=FileType.from_filename(filename),
            file_size=len(data),
            file_path=path,
            status=status,
        )

    return _make
