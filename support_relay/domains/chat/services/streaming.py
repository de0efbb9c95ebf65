"""StreamingRelay: forwards provider fragments to a transport and persists the answer."""

import logging
import time
from uuid import UUID

from support_relay.ai.providers.base import LLMStream
from support_relay.domains.chat.keys import turn_keys
from support_relay.exceptions import ProviderUnknownError
from support_relay.infrastructure.cache import CacheService
from support_relay.models import Message
from support_relay.ports import ChatStore, TokenSink

logger = logging.getLogger("chat")


class StreamingRelay:
    """Consumes one provider stream for one turn.

    Fragments reach the sink in provider order, one call per fragment.
    After the stream ends the trimmed text is persisted as the assistant
    message, the session's cache keys are dropped, and ``on_done`` fires
    exactly once. A StorageError while persisting propagates to the caller.
    """

    def __init__(self, store: ChatStore, cache: CacheService) -> None:
        self.store = store
        self.cache = cache

    async def relay(
        self,
        stream: LLMStream,
        session_id: UUID,
        sink: TokenSink,
        *,
        model: str | None = None,
    ) -> Message:
        """Relay a started stream to the sink.

        Args:
            stream: Stream returned by the fallback invoker
            session_id: Session the answer belongs to
            sink: Transport capability receiving fragments and completion
            model: Model ID, for logging

        Returns:
            The persisted assistant message

        Raises:
            ProviderUnknownError: If the provider produced no text at all
            StorageError: If the answer could not be persisted
        """
        start = time.monotonic()
        parts: list[str] = []

        async for fragment in stream:
            if not fragment:
                continue
            parts.append(fragment)
            await sink.on_token(fragment)

        if not parts:
            logger.info(
                "Stream produced no fragments, fetching final response",
                extra={"service": "chat", "session_id": str(session_id), "model": model},
            )
            final = await stream.final_text()
            if final:
                parts.append(final)
                await sink.on_token(final)

        content = "".join(parts).strip()
        if not content:
            raise ProviderUnknownError(message="The model returned an empty response", model=model)

        message = await self.store.save_message(
            session_id=session_id,
            role="assistant",
            content=content,
        )
        await self.cache.delete(*turn_keys(session_id))

        logger.info(
            "Assistant reply persisted",
            extra={
                "service": "chat",
                "session_id": str(session_id),
                "message_id": str(message.id),
                "model": model,
                "fragments": len(parts),
                "duration_ms": int((time.monotonic() - start) * 1000),
            },
        )

        await sink.on_done(message)
        return message
