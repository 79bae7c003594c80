from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class ChatRequest(BaseModel):
    message: str = Field(..., min_length=1, description="The user's message.")
    document_id: UUID = Field(..., description="The document the conversation is about.")
    user_id: str = Field(..., min_length=1, description="The user sending the message.")
    session_id: UUID | None = Field(None, description="Existing session to continue; a new one is created if omitted.")


class ChatResponse(BaseModel):
    success: bool = True
    message: str = Field(..., description="The assistant's reply.")
    session_id: UUID
    message_id: UUID


class ChatSessionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    document_id: UUID
    user_id: str
    title: str
    created_at: datetime


class ChatMessageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    chat_session_id: UUID
    role: str
    content: str
    created_at: datetime
