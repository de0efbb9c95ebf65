"""ChatService: runs one support-chat turn end to end."""

import logging
from dataclasses import dataclass
from typing import Any
from uuid import UUID

from support_relay.ai.providers.base import LLMProvider
from support_relay.config import Settings
from support_relay.domains.chat.keys import session_view_key, turn_keys
from support_relay.domains.chat.services.classifier import classify
from support_relay.domains.chat.services.history import HistoryReader, to_llm_messages
from support_relay.domains.chat.services.invoker import ModelFallbackInvoker
from support_relay.domains.chat.services.sessions import SessionManager
from support_relay.domains.chat.services.streaming import StreamingRelay
from support_relay.exceptions import AppError, SessionNotFoundError, ValidationError
from support_relay.infrastructure.cache import CacheService
from support_relay.infrastructure.logging import set_request_context
from support_relay.models import ChatSession, Message
from support_relay.ports import ChatStore, TokenSink

logger = logging.getLogger("chat")


@dataclass
class TurnResult:
    """Outcome of a successful turn."""

    session: ChatSession
    message: Message
    model: str


class ChatService:
    """Orchestrates a turn.

    Order of work: validate, resolve session, read prior history, persist
    the user message, invoke the fallback matrix, relay, persist the
    answer. Nothing touches the store or the provider before validation
    passes, and a failure to resolve the session ends the turn.
    """

    def __init__(
        self,
        store: ChatStore,
        cache: CacheService,
        llm_provider: LLMProvider,
        settings: Settings,
    ) -> None:
        self.store = store
        self.cache = cache
        self.settings = settings
        self.sessions = SessionManager(store)
        self.history = HistoryReader(
            store,
            cache,
            default_limit=settings.history_limit,
            ttl_seconds=settings.cache_ttl_seconds,
        )
        self.invoker = ModelFallbackInvoker(
            llm_provider,
            settings.model_candidates,
            settings.strategy_order,
            temperature=settings.llm_temperature,
            max_tokens=settings.llm_max_tokens,
        )
        self.relay = StreamingRelay(store, cache)

    def validate_content(self, content: Any) -> str:
        """Return the content if it is a non-blank string within the length cap."""
        limit = self.settings.max_message_length
        if not isinstance(content, str) or not content.strip():
            raise ValidationError(
                message="Message content must not be empty.",
                details={"field": "content"},
            )
        if len(content) > limit:
            raise ValidationError(
                message=f"Message content must be at most {limit} characters.",
                details={"field": "content", "length": len(content), "max_length": limit},
            )
        return content

    async def resolve_session(self, session_id: UUID | None, origin: str = "api") -> ChatSession:
        session = await self.sessions.resolve(session_id, origin=origin)
        set_request_context(session_id=str(session.id))
        return session

    async def run_turn(
        self,
        content: Any,
        sink: TokenSink,
        session_id: UUID | None = None,
        origin: str = "api",
    ) -> TurnResult:
        """Run one turn and deliver the answer through ``sink``.

        Args:
            content: Raw user message
            sink: Transport capability for fragments and completion
            session_id: Existing session, or None to create one
            origin: Metadata tag for newly created sessions

        Returns:
            TurnResult with the session, assistant message and winning model

        Raises:
            ValidationError: Before any side effect, for empty or oversized content
            StorageError: If the store fails at any point
            ProviderError: Once every model/strategy attempt has failed
        """
        content = self.validate_content(content)
        session = await self.resolve_session(session_id, origin=origin)

        model: str | None = None
        try:
            prior = await self.history.recent_history(session.id)

            await self.store.save_message(session_id=session.id, role="user", content=content)
            await self.cache.delete(*turn_keys(session.id))

            invocation = await self.invoker.invoke(
                self.settings.system_prompt,
                to_llm_messages(prior),
                content,
            )
            model = invocation.model
            message = await self.relay.relay(
                invocation.stream,
                session.id,
                sink,
                model=model,
            )
        except AppError:
            raise
        except Exception as exc:
            # Mid-stream provider failures surface here unclassified
            raise classify(exc, model=model) from exc
        return TurnResult(session=session, message=message, model=model)

    async def get_session_view(self, session_id: UUID) -> dict[str, Any]:
        """Session with all messages, chronological, in client shape.

        Raises:
            SessionNotFoundError: If no session has this id
        """
        key = session_view_key(session_id)
        cached = await self.cache.get_json(key)
        if isinstance(cached, dict):
            return cached

        found = await self.store.get_session_with_messages(session_id)
        if found is None:
            raise SessionNotFoundError(session_id)
        session, messages = found
        view = {
            "id": str(session.id),
            "createdAt": session.created_at.isoformat(),
            "metadata": session.meta or {},
            "messages": [m.to_dict() for m in messages],
        }
        await self.cache.set_json(key, view, ttl_seconds=self.settings.cache_ttl_seconds)
        return view
