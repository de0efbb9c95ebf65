"""Tests for HistoryReader."""

import json
import uuid

import pytest

from support_relay.domains.chat.keys import history_key
from support_relay.domains.chat.services.history import HistoryReader, to_llm_messages
from support_relay.exceptions import StorageError
from support_relay.infrastructure.cache import CacheService
from tests.fakes import FailingRedis


@pytest.fixture
def reader(store, cache) -> HistoryReader:
    return HistoryReader(store, cache, default_limit=10, ttl_seconds=3600)


class TestHistoryReader:
    async def test_returns_chronological_order(self, reader, store):
        session = store.seed_session(("user", "q1"), ("assistant", "a1"), ("user", "q2"))

        history = await reader.recent_history(session.id)

        assert [m.content for m in history] == ["q1", "a1", "q2"]

    async def test_limit_keeps_most_recent(self, reader, store):
        pairs = [("user" if i % 2 == 0 else "assistant", f"m{i}") for i in range(14)]
        session = store.seed_session(*pairs)

        history = await reader.recent_history(session.id)

        assert [m.content for m in history] == [f"m{i}" for i in range(4, 14)]

    async def test_empty_session(self, reader, store, fake_redis):
        session = store.seed_session()

        assert await reader.recent_history(session.id) == []
        # Nothing worth caching
        assert history_key(session.id) not in fake_redis.data

    async def test_populates_cache_newest_first(self, reader, store, fake_redis):
        session = store.seed_session(("user", "q1"), ("assistant", "a1"))

        await reader.recent_history(session.id)

        cached = json.loads(fake_redis.data[history_key(session.id)])
        assert [entry["content"] for entry in cached] == ["a1", "q1"]
        assert fake_redis.ttls[history_key(session.id)] == 3600

    async def test_cache_hit_skips_store(self, reader, store):
        session = store.seed_session(("user", "q1"), ("assistant", "a1"))
        await reader.recent_history(session.id)
        store.calls.clear()

        history = await reader.recent_history(session.id)

        assert [m.content for m in history] == ["q1", "a1"]
        assert store.calls == []

    async def test_malformed_cache_entry_falls_back_to_store(self, reader, store, fake_redis):
        session = store.seed_session(("user", "q1"))
        fake_redis.data[history_key(session.id)] = json.dumps([{"role": "user"}])

        history = await reader.recent_history(session.id)

        assert [m.content for m in history] == ["q1"]
        assert "list_recent_messages" in store.calls

    async def test_cache_down_reads_store(self, store):
        reader = HistoryReader(store, CacheService(redis=FailingRedis()))
        session = store.seed_session(("user", "q1"), ("assistant", "a1"))

        history = await reader.recent_history(session.id)

        assert [m.content for m in history] == ["q1", "a1"]

    async def test_zero_limit_returns_nothing(self, reader, store):
        session = store.seed_session(("user", "q1"))

        assert await reader.recent_history(session.id, limit=0) == []
        assert "list_recent_messages" not in store.calls

    async def test_larger_limit_bypasses_default_cache(self, reader, store, fake_redis):
        pairs = [("user" if i % 2 == 0 else "assistant", f"m{i}") for i in range(14)]
        session = store.seed_session(*pairs)
        await reader.recent_history(session.id)
        store.calls.clear()

        history = await reader.recent_history(session.id, limit=12)

        assert [m.content for m in history] == [f"m{i}" for i in range(2, 14)]
        assert store.calls == ["list_recent_messages"]
        # The default-limit entry is left as written
        assert len(json.loads(fake_redis.data[history_key(session.id)])) == 10

    async def test_smaller_limit_served_from_cache(self, reader, store):
        pairs = [("user" if i % 2 == 0 else "assistant", f"m{i}") for i in range(14)]
        session = store.seed_session(*pairs)
        await reader.recent_history(session.id)
        store.calls.clear()

        history = await reader.recent_history(session.id, limit=3)

        assert [m.content for m in history] == ["m11", "m12", "m13"]
        assert store.calls == []

    async def test_non_default_limit_does_not_write_cache(self, reader, store, fake_redis):
        session = store.seed_session(("user", "q1"), ("assistant", "a1"))

        await reader.recent_history(session.id, limit=1)

        assert history_key(session.id) not in fake_redis.data

    async def test_store_failure_propagates(self, reader, store):
        store.fail_on.add("list_recent_messages")

        with pytest.raises(StorageError):
            await reader.recent_history(uuid.uuid4())


def test_to_llm_messages(store):
    session = store.seed_session(("user", "q1"), ("assistant", "a1"))

    messages = to_llm_messages(store.messages[session.id])

    assert [(m.role, m.content) for m in messages] == [("user", "q1"), ("assistant", "a1")]
