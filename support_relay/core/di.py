"""Dependency injection container."""

from collections.abc import AsyncIterator, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from support_relay.ai.providers import get_llm_provider
from support_relay.ai.providers.base import LLMProvider
from support_relay.config import Settings, get_settings
from support_relay.infrastructure.cache import CacheService, get_cache
from support_relay.ports import ChatStore

if TYPE_CHECKING:
    from support_relay.domains.chat.service import ChatService


@asynccontextmanager
async def sql_store_scope() -> AsyncIterator[ChatStore]:
    """One database session wrapped as a ChatStore."""
    from support_relay.domains.chat.services.persistence import ChatPersistenceService
    from support_relay.infrastructure.database import get_session_context

    async with get_session_context() as db:
        yield ChatPersistenceService(db)


@dataclass
class Container:
    """DI container for the chat engine's collaborators."""

    settings: Settings
    llm_provider: LLMProvider
    cache: CacheService
    store_scope: Callable[[], AbstractAsyncContextManager[ChatStore]] = field(
        default=sql_store_scope
    )

    def create_chat_service(self, store: ChatStore) -> "ChatService":
        """Create a ChatService bound to one store scope.

        Args:
            store: ChatStore for the duration of the turn

        Returns:
            ChatService instance
        """
        from support_relay.domains.chat.service import ChatService

        return ChatService(
            store=store,
            cache=self.cache,
            llm_provider=self.llm_provider,
            settings=self.settings,
        )

    @asynccontextmanager
    async def chat_service(self) -> AsyncIterator["ChatService"]:
        """Open a store scope and yield a ChatService bound to it."""
        async with self.store_scope() as store:
            yield self.create_chat_service(store)


_container: Container | None = None


def get_container() -> Container:
    """Get the DI container with provider and cache instances."""
    global _container
    if _container is None:
        _container = Container(
            settings=get_settings(),
            llm_provider=get_llm_provider(),
            cache=get_cache(),
        )
    return _container


def set_container(container: Container | None) -> None:
    """Replace the global container (tests); None resets to defaults."""
    global _container
    _container = container
