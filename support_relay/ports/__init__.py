"""Formal port interfaces for dependency inversion.

The chat engine depends on these abstractions rather than on SQLAlchemy or
a concrete transport, so each piece can be exercised with in-memory fakes.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Protocol
from uuid import UUID

if TYPE_CHECKING:
    from support_relay.models import ChatSession, Message


class ChatStore(ABC):
    """Durable session/message repository.

    Implementations raise ``StorageError`` when the backing store fails.
    """

    @abstractmethod
    async def create_session(self, metadata: dict[str, Any] | None = None) -> "ChatSession":
        """Create a session with a fresh identity."""
        pass

    @abstractmethod
    async def get_session(self, session_id: UUID) -> "ChatSession | None":
        """Find a session by id."""
        pass

    @abstractmethod
    async def save_message(self, *, session_id: UUID, role: str, content: str) -> "Message":
        """Durably write a message (committed before returning)."""
        pass

    @abstractmethod
    async def list_recent_messages(self, session_id: UUID, limit: int) -> list["Message"]:
        """Return the ``limit`` most recent messages, newest first."""
        pass

    @abstractmethod
    async def get_session_with_messages(
        self, session_id: UUID
    ) -> "tuple[ChatSession, list[Message]] | None":
        """Return the session and all of its messages in chronological order."""
        pass


class TokenSink(Protocol):
    """Per-turn delivery capability implemented by each transport."""

    async def on_token(self, fragment: str) -> None:
        """Deliver one fragment, in provider order."""
        ...

    async def on_done(self, message: "Message") -> None:
        """Called exactly once with the persisted assistant message."""
        ...


__all__ = ["ChatStore", "TokenSink"]
