"""HistoryReader: recent conversation history, cache first."""

import logging
from datetime import datetime
from typing import Any
from uuid import UUID

from support_relay.ai.providers.base import LLMMessage
from support_relay.domains.chat.keys import history_key
from support_relay.infrastructure.cache import CacheService
from support_relay.models import Message
from support_relay.ports import ChatStore

logger = logging.getLogger("chat")


def _from_cached(entry: dict[str, Any]) -> Message:
    return Message(
        id=UUID(entry["id"]),
        session_id=UUID(entry["sessionId"]),
        role=entry["role"],
        content=entry["content"],
        created_at=datetime.fromisoformat(entry["createdAt"]),
    )


class HistoryReader:
    """Reads the last N messages of a session.

    The cache holds the newest-first list under ``history:{id}``; the reader
    returns it re-reversed to chronological order. Only reads at or below the
    default limit use the cache, and only default-limit reads write it, so a
    cached list is never shorter than a request it serves. Cache failures
    degrade to a store read. Store failures propagate as StorageError. This
    class has no write path to the store.
    """

    def __init__(
        self,
        store: ChatStore,
        cache: CacheService,
        *,
        default_limit: int = 10,
        ttl_seconds: int = 3600,
    ) -> None:
        self.store = store
        self.cache = cache
        self.default_limit = default_limit
        self.ttl_seconds = ttl_seconds

    async def recent_history(self, session_id: UUID, limit: int | None = None) -> list[Message]:
        """Return up to ``limit`` most recent messages, oldest first.

        Args:
            session_id: Session to read
            limit: Maximum messages (defaults to the configured history cap);
                an explicit 0 returns an empty list

        Returns:
            Messages in strictly chronological order
        """
        if limit is None:
            limit = self.default_limit
        if limit <= 0:
            return []
        key = history_key(session_id)
        use_cache = limit <= self.default_limit

        newest_first: list[Message] | None = None
        cached = await self.cache.get_json(key) if use_cache else None
        if isinstance(cached, list):
            try:
                newest_first = [_from_cached(entry) for entry in cached][:limit]
            except (KeyError, TypeError, ValueError):
                logger.warning(
                    "Discarding malformed cached history",
                    extra={"service": "chat", "key": key},
                )
                newest_first = None

        if newest_first is None:
            newest_first = await self.store.list_recent_messages(session_id, limit)
            if newest_first and limit == self.default_limit:
                await self.cache.set_json(
                    key,
                    [m.to_dict() for m in newest_first],
                    ttl_seconds=self.ttl_seconds,
                )
            logger.debug(
                "History loaded from store",
                extra={"service": "chat", "session_id": str(session_id), "key": key},
            )

        return list(reversed(newest_first))


def to_llm_messages(messages: list[Message]) -> list[LLMMessage]:
    """Convert stored messages to provider-neutral LLM messages."""
    return [LLMMessage(role=m.role, content=m.content) for m in messages]
