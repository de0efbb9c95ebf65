"""Test configuration: in-memory store, fake Redis, scripted provider."""

import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import pytest

os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("LLM_PROVIDER", "stub")
os.environ.setdefault("STUB_LLM_STREAM_DELAY_MS", "0")

from support_relay.api.ws.manager import reset_connection_manager  # noqa: E402
from support_relay.config import Settings  # noqa: E402
from support_relay.core.di import Container, set_container  # noqa: E402
from support_relay.infrastructure.cache import CacheService  # noqa: E402
from tests.fakes import (  # noqa: E402
    FakeRedis,
    InMemoryChatStore,
    RecordingSink,
    ScriptedProvider,
)


@pytest.fixture
def settings() -> Settings:
    """Settings with a three-model candidate list and no .env lookup."""
    return Settings(
        _env_file=None,
        environment="development",
        llm_provider="stub",
        google_api_key="",
        llm_model_id="model-a",
        llm_fallback_models="model-b,model-c",
        llm_strategies="stateless,stateful",
        system_prompt="You are a support agent for Spur.",
        history_limit=10,
        cache_ttl_seconds=3600,
        max_message_length=4000,
    )


@pytest.fixture
def store() -> InMemoryChatStore:
    return InMemoryChatStore()


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def cache(fake_redis: FakeRedis) -> CacheService:
    return CacheService(redis=fake_redis, retry_interval_seconds=30.0)


@pytest.fixture
def provider() -> ScriptedProvider:
    return ScriptedProvider()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def container(settings, store, cache, provider) -> Container:
    """Container whose store scope always yields the shared in-memory store."""

    @asynccontextmanager
    async def store_scope() -> AsyncIterator[InMemoryChatStore]:
        yield store

    return Container(
        settings=settings,
        llm_provider=provider,
        cache=cache,
        store_scope=store_scope,
    )


@pytest.fixture
def installed_container(container: Container):
    """Install the test container globally for the ASGI app."""
    set_container(container)
    reset_connection_manager()
    yield container
    set_container(None)
    reset_connection_manager()
