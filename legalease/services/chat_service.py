import json
import logging
from dataclasses import dataclass
from uuid import UUID

from legalease.core.config import Settings
from legalease.core.errors import SessionNotFoundError
from legalease.core.text import truncate
from legalease.models import ChatMessage, ChatSession, Document
from legalease.models.chat import MessageRole
from legalease.pipeline.llm import ChatTurn, DspyTextGenerator, TextGenerator

from .document_store import DocumentStore

logger = logging.getLogger(__name__)

ASSISTANT_INSTRUCTIONS = """Your role is to:
1. Answer questions about this specific document
2. Explain legal terms in simple language
3. Highlight important clauses and their implications
4. Provide guidance on next steps or actions needed
5. Always remind users that this is informational and they should consult a lawyer for official legal advice

Be conversational, helpful, and always reference the specific document when answering questions."""


@dataclass
class ChatReply:
    session_id: UUID
    message: str
    message_id: UUID


def _as_json(value) -> str:
    return json.dumps(value, ensure_ascii=False) if value else "None"


class ChatService:
    """
    Service for document-scoped chat.

    Each call loads (or starts) a session, replays its recent history together
    with the document's analysis as context, asks the model for a reply and
    appends both turns to the session.
    """

    def __init__(
        self,
        generator: TextGenerator | None = None,
        store: DocumentStore | None = None,
        settings: Settings | None = None,
    ):
        self.settings = settings or Settings()
        self.generator = generator or DspyTextGenerator()
        self.store = store or DocumentStore(self.settings.ORIGINAL_TEXT_MAX_CHARS)
        self.history_limit = self.settings.CHAT_HISTORY_LIMIT
        self.context_chars = self.settings.CHAT_CONTEXT_TEXT_CHARS

    def build_context(self, document: Document) -> str:
        """Render the system prompt embedding the document's analysis and a text preview."""
        preview = truncate(document.original_text, self.context_chars) or "Not available"
        document_context = (
            f"Document Title: {document.title}\n"
            f"Document Summary: {document.simplified_summary or 'Not yet processed'}\n"
            f"Key Points: {_as_json(document.key_points)}\n"
            f"Legal Terms: {_as_json(document.legal_terms)}\n"
            f"Warnings: {_as_json(document.warnings)}\n"
            f"Original Text Preview: {preview}"
        )
        return (
            "You are a helpful legal assistant that helps users understand their legal documents. "
            f"You have access to the following document:\n\n{document_context}\n\n{ASSISTANT_INSTRUCTIONS}"
        )

    async def _resolve_session(self, document: Document, user_id: str, session_id: UUID | str | None) -> ChatSession:
        if session_id is None:
            session = await ChatSession.create(
                document=document,
                user_id=user_id,
                title=f"Chat about {document.title}",
            )
            logger.info(f"Created chat session {session.id} for document {document.id}")
            return session

        session = await ChatSession.get_or_none(id=session_id, document_id=document.id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    async def load_history(self, session_id: UUID | str) -> list[ChatMessage]:
        """The most recent messages of a session, in ascending creation order."""
        recent = await (
            ChatMessage.filter(chat_session_id=session_id).order_by("-created_at").limit(self.history_limit)
        )
        return list(reversed(recent))

    async def chat(
        self,
        document_id: UUID | str,
        user_id: str,
        message: str,
        session_id: UUID | str | None = None,
    ) -> ChatReply:
        """
        Answer a user message about a document.

        The user message is stored before the model is called and is not rolled
        back if a later step fails.

        Raises:
            ValueError: If the message is empty
            DocumentNotFoundError: If the document does not exist
            SessionNotFoundError: If `session_id` does not belong to the document
            LLMServiceError: If the model call fails
        """
        if not message or not message.strip():
            raise ValueError("Message cannot be empty.")

        document = await self.store.get(document_id)
        session = await self._resolve_session(document, user_id, session_id)
        history = await self.load_history(session.id)

        await ChatMessage.create(chat_session=session, role=MessageRole.USER, content=message)

        messages: list[ChatTurn] = [{"role": "system", "content": self.build_context(document)}]
        messages.extend({"role": m.role, "content": m.content} for m in history)
        messages.append({"role": "user", "content": message})

        logger.info(f"Chat request for document {document.id} in session {session.id} ({len(history)} prior messages)")

        reply = await self.generator.generate(
            messages,
            temperature=self.settings.CHAT_TEMPERATURE,
            max_tokens=self.settings.CHAT_MAX_TOKENS,
        )

        saved = await ChatMessage.create(chat_session=session, role=MessageRole.ASSISTANT, content=reply)

        return ChatReply(session_id=session.id, message=reply, message_id=saved.id)

    async def latest_session(self, document_id: UUID | str, user_id: str) -> ChatSession | None:
        """The canonical session for a (document, user) pair: the most recently created one."""
        await self.store.get(document_id)
        return await ChatSession.filter(document_id=document_id, user_id=user_id).order_by("-created_at").first()

    async def list_messages(self, session_id: UUID | str) -> list[ChatMessage]:
        session = await ChatSession.get_or_none(id=session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return await ChatMessage.filter(chat_session_id=session.id).order_by("created_at")
