"""Pydantic schemas for API request/response validation."""

from support_relay.schemas.chat import (  # noqa: F401
    MAX_MESSAGE_LENGTH,
    ChatCompleteResponse,
    ChatMessageCreate,
    MessageRead,
    SessionRead,
    StopTypingEvent,
    TypingEvent,
)
