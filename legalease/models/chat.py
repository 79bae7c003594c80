from tortoise import fields

from .base import UUIDModel


class MessageRole:
    USER = "user"
    ASSISTANT = "assistant"


class ChatSession(UUIDModel):
    document = fields.ForeignKeyField("models.Document", related_name="chat_sessions", on_delete=fields.CASCADE)
    user_id = fields.CharField(max_length=255, db_index=True)
    title = fields.CharField(max_length=255)
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "chat_sessions"


class ChatMessage(UUIDModel):
    chat_session = fields.ForeignKeyField("models.ChatSession", related_name="messages", on_delete=fields.CASCADE)
    role = fields.CharField(max_length=20)
    content = fields.TextField()
    created_at = fields.DatetimeField(auto_now_add=True, db_index=True)

    class Meta:
        table = "chat_messages"
