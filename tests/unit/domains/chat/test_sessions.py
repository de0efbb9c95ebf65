"""Tests for SessionManager."""

import uuid

import pytest

from support_relay.domains.chat.services.sessions import SessionManager
from support_relay.exceptions import StorageError


class TestSessionManager:
    async def test_creates_session_when_no_id(self, store):
        session = await SessionManager(store).resolve(None, origin="ws")

        assert session.id in store.sessions
        assert session.meta == {"source": "ws"}

    async def test_known_id_is_returned_without_create(self, store):
        existing = store.seed_session()
        manager = SessionManager(store)

        first = await manager.resolve(existing.id)
        second = await manager.resolve(existing.id)

        assert first is existing
        assert second.id == first.id
        assert store.calls.count("create_session") == 0
        assert len(store.sessions) == 1

    async def test_unknown_id_creates_exactly_one_session(self, store):
        requested = uuid.uuid4()

        session = await SessionManager(store).resolve(requested)

        assert session.id != requested
        assert store.calls.count("create_session") == 1
        assert len(store.sessions) == 1

    async def test_store_failure_propagates(self, store):
        store.fail_on.add("create_session")

        with pytest.raises(StorageError):
            await SessionManager(store).resolve(None)
