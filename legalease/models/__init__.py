from .base import TimestampedModel, UUIDModel
from .chat import ChatMessage, ChatSession
from .document import Document

__all__ = ["TimestampedModel", "UUIDModel", "Document", "ChatSession", "ChatMessage"]
