"""Chat-related Pydantic schemas."""
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from deepbug.core.messages import DELETED_MESSAGE_PLACEHOLDER
from deepbug.models import BanRecord, ChatMessage


class ChatMessageOut(BaseModel):
    """Message as rendered to clients; deleted bodies are redacted."""

    id: int
    user_id: str
    user_name: str
    user_avatar: str | None = None
    message: str
    message_type: str = "text"
    is_admin: bool = False
    is_deleted: bool = False
    deleted_by: str | None = None
    created_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)

    @classmethod
    def from_model(cls, message: ChatMessage) -> ChatMessageOut:
        out = cls.model_validate(message)
        if out.is_deleted:
            out.message = DELETED_MESSAGE_PLACEHOLDER
        return out


class SendMessageRequest(BaseModel):
    message: str = Field(..., description="Message body (1-1000 characters)")


class BanRequest(BaseModel):
    user_id: str
    reason: str = ""
    duration_seconds: int | None = Field(
        None,
        gt=0,
        description="Ban length; omit for a permanent ban.",
    )


class BanOut(BaseModel):
    id: int
    user_id: str
    banned_by: str
    reason: str
    banned_at: datetime | None = None
    expires_at: datetime | None = None
    is_active: bool

    model_config = ConfigDict(from_attributes=True)

    @classmethod
    def from_model(cls, ban: BanRecord) -> BanOut:
        return cls.model_validate(ban)


class ChatStatus(BaseModel):
    is_open: bool
