from uuid import UUID

from fastapi import APIRouter, HTTPException, Query

from legalease.core.errors import LLMServiceError, NotFoundError
from legalease.schemas.chat import ChatMessageResponse, ChatRequest, ChatResponse, ChatSessionResponse
from legalease.services.chat_service import ChatService

router = APIRouter()
chat_service = ChatService()


@router.post("/chat", response_model=ChatResponse)
async def chat_with_document(payload: ChatRequest) -> ChatResponse:
    """
    Answers a message about a document.

    Starts a new chat session when `session_id` is omitted; the returned
    `session_id` continues the same conversation on later calls.
    """
    try:
        reply = await chat_service.chat(
            document_id=payload.document_id,
            user_id=payload.user_id,
            message=payload.message,
            session_id=payload.session_id,
        )
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    except LLMServiceError as e:
        raise HTTPException(status_code=502, detail="Failed to get AI response") from e
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"An unexpected error occurred: {e}") from e

    return ChatResponse(message=reply.message, session_id=reply.session_id, message_id=reply.message_id)


@router.get("/documents/{document_id}/chat-sessions/latest", response_model=ChatSessionResponse | None)
async def latest_chat_session(document_id: UUID, user_id: str = Query(...)):
    """Returns the user's most recent chat session for a document, or null."""
    try:
        session = await chat_service.latest_session(document_id, user_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    return ChatSessionResponse.model_validate(session) if session else None


@router.get("/chat-sessions/{session_id}/messages", response_model=list[ChatMessageResponse])
async def list_chat_messages(session_id: UUID):
    try:
        messages = await chat_service.list_messages(session_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    return [ChatMessageResponse.model_validate(m) for m in messages]
