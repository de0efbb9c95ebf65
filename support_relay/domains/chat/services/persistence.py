"""ChatPersistenceService: SQLAlchemy implementation of the ChatStore port."""

import logging
import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from support_relay.exceptions import StorageError
from support_relay.models import ChatSession, Message
from support_relay.ports import ChatStore

logger = logging.getLogger("chat")


class ChatPersistenceService(ChatStore):
    """Service for persisting chat sessions and messages.

    Responsibilities:
    - Create and look up sessions
    - Save user and assistant messages (committed immediately)
    - Read recent history and full transcripts

    Every SQLAlchemy failure is rolled back and re-raised as StorageError.
    """

    def __init__(self, db: AsyncSession) -> None:
        """Initialize persistence service.

        Args:
            db: Database session
        """
        self.db = db

    async def _fail(self, operation: str, exc: SQLAlchemyError) -> StorageError:
        try:
            await self.db.rollback()
        except SQLAlchemyError:
            logger.debug("Rollback failed", extra={"service": "chat", "operation": operation})
        logger.error(
            "Store operation failed",
            extra={
                "service": "chat",
                "operation": operation,
                "error_category": "storage",
                "error_type": type(exc).__name__,
            },
        )
        return StorageError(
            message=f"{operation} failed: {type(exc).__name__}",
            details={"operation": operation},
        )

    async def create_session(self, metadata: dict[str, Any] | None = None) -> ChatSession:
        session = ChatSession(
            id=uuid.uuid4(),
            created_at=datetime.utcnow(),
            meta=dict(metadata or {}),
        )
        try:
            self.db.add(session)
            await self.db.commit()
        except SQLAlchemyError as exc:
            raise await self._fail("create_session", exc) from exc
        logger.info(
            "Session created",
            extra={"service": "chat", "session_id": str(session.id), "metadata": session.meta},
        )
        return session

    async def get_session(self, session_id: uuid.UUID) -> ChatSession | None:
        try:
            result = await self.db.execute(
                select(ChatSession).where(ChatSession.id == session_id)
            )
        except SQLAlchemyError as exc:
            raise await self._fail("get_session", exc) from exc
        return result.scalar_one_or_none()

    async def save_message(self, *, session_id: uuid.UUID, role: str, content: str) -> Message:
        """Save a user or assistant message.

        Args:
            session_id: Session ID
            role: Message role ("user", "assistant" or "system")
            content: Message content

        Returns:
            The created Message record
        """
        message = Message(
            id=uuid.uuid4(),
            session_id=session_id,
            role=role,
            content=content,
            created_at=datetime.utcnow(),
        )
        try:
            self.db.add(message)
            await self.db.commit()
        except SQLAlchemyError as exc:
            raise await self._fail("save_message", exc) from exc
        logger.debug(
            f"Saved {role} message",
            extra={
                "service": "chat",
                "session_id": str(session_id),
                "message_id": str(message.id),
            },
        )
        return message

    async def list_recent_messages(self, session_id: uuid.UUID, limit: int) -> list[Message]:
        try:
            result = await self.db.execute(
                select(Message)
                .where(Message.session_id == session_id)
                .order_by(Message.created_at.desc())
                .limit(limit)
            )
        except SQLAlchemyError as exc:
            raise await self._fail("list_recent_messages", exc) from exc
        return list(result.scalars().all())

    async def get_session_with_messages(
        self, session_id: uuid.UUID
    ) -> tuple[ChatSession, list[Message]] | None:
        try:
            session = await self.get_session(session_id)
            if session is None:
                return None
            result = await self.db.execute(
                select(Message)
                .where(Message.session_id == session_id)
                .order_by(Message.created_at.asc())
            )
        except SQLAlchemyError as exc:
            raise await self._fail("get_session_with_messages", exc) from exc
        return session, list(result.scalars().all())
