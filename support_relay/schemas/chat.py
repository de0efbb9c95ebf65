"""Pydantic schemas for chat requests, events, and responses.

Wire format is camelCase (``sessionId``, ``createdAt``); Python attributes
stay snake_case.
"""

from datetime import datetime
from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

MAX_MESSAGE_LENGTH = 4000


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ChatMessageCreate(CamelModel):
    """Inbound chat message (HTTP body and WebSocket sendMessage payload)."""

    session_id: UUID | None = Field(default=None, description="Existing session, omitted to start one")
    content: str = Field(..., min_length=1, max_length=MAX_MESSAGE_LENGTH)

    @field_validator("content")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("content must not be blank")
        return value


class TypingEvent(CamelModel):
    """Typing indicator payload."""

    session_id: UUID
    is_typing: bool = True


class StopTypingEvent(CamelModel):
    session_id: UUID


class MessageRead(CamelModel):
    id: UUID
    session_id: UUID
    role: Literal["user", "assistant", "system"]
    content: str
    created_at: datetime


class SessionRead(CamelModel):
    """Session with all of its messages, oldest first."""

    id: UUID
    created_at: datetime
    metadata: dict[str, Any] = Field(default_factory=dict)
    messages: list[MessageRead] = Field(default_factory=list)


class ChatCompleteResponse(CamelModel):
    """Non-streaming turn result."""

    session_id: UUID
    message: MessageRead
