"""Tests for the WebSocket connection manager and session rooms."""

import asyncio
import uuid

import pytest

from support_relay.api.ws.manager import ConnectionManager
from support_relay.domains.chat.keys import online_key
from tests.fakes import FakeWebSocket


@pytest.fixture
def manager(cache) -> ConnectionManager:
    return ConnectionManager(cache=cache)


class TestConnectionManager:
    async def test_connect_without_session(self, manager):
        ws = FakeWebSocket()

        connection = await manager.connect(ws)

        assert ws.accepted
        assert connection.session_id is None
        assert manager.connection_count == 1

    async def test_connect_with_session_joins_room(self, manager, fake_redis):
        session_id = uuid.uuid4()
        ws = FakeWebSocket()

        connection = await manager.connect(ws, session_id)

        assert connection.session_id == session_id
        assert manager.members(session_id) == {connection.connection_id}
        assert fake_redis.data[online_key(session_id)] == "1"

    async def test_join_announces_to_existing_members(self, manager):
        session_id = uuid.uuid4()
        first, second = FakeWebSocket(), FakeWebSocket()
        await manager.connect(first, session_id)

        await manager.connect(second, session_id)

        assert first.sent == [{"type": "userOnline", "payload": {"sessionId": str(session_id)}}]
        assert second.sent == []

    async def test_disconnect_leaves_room_and_drops_counter(self, manager, fake_redis):
        session_id = uuid.uuid4()
        ws = FakeWebSocket()
        await manager.connect(ws, session_id)

        await manager.disconnect(ws)

        assert manager.member_count(session_id) == 0
        assert manager.connection_count == 0
        assert online_key(session_id) not in fake_redis.data

    async def test_counter_tracks_multiple_members(self, manager, fake_redis):
        session_id = uuid.uuid4()
        first, second = FakeWebSocket(), FakeWebSocket()
        await manager.connect(first, session_id)
        await manager.connect(second, session_id)

        await manager.disconnect(first)

        assert fake_redis.data[online_key(session_id)] == "1"
        assert manager.member_count(session_id) == 1

    async def test_joining_new_room_leaves_previous(self, manager):
        room_a, room_b = uuid.uuid4(), uuid.uuid4()
        ws = FakeWebSocket()
        await manager.connect(ws, room_a)

        await manager.join_session(ws, room_b)

        assert manager.member_count(room_a) == 0
        assert manager.member_count(room_b) == 1

    async def test_rejoining_same_room_is_noop(self, manager, fake_redis):
        session_id = uuid.uuid4()
        ws = FakeWebSocket()
        await manager.connect(ws, session_id)

        await manager.join_session(ws, session_id)

        assert fake_redis.data[online_key(session_id)] == "1"

    async def test_disconnect_unknown_socket_is_noop(self, manager):
        await manager.disconnect(FakeWebSocket())

    async def test_broadcast_excludes_sender(self, manager):
        session_id = uuid.uuid4()
        sender, peer, outsider = FakeWebSocket(), FakeWebSocket(), FakeWebSocket()
        await manager.connect(sender, session_id)
        await manager.connect(peer, session_id)
        await manager.connect(outsider)
        sender.sent.clear()

        sent = await manager.broadcast_to_session(session_id, {"type": "typing"}, exclude=sender)

        assert sent == 1
        assert peer.types()[-1] == "typing"
        assert sender.sent == []
        assert outsider.sent == []

    async def test_send_to_closed_socket_returns_false(self, manager):
        ws = FakeWebSocket()
        await manager.connect(ws)
        ws.close_client()

        assert await manager.send_message(ws, {"type": "pong"}) is False
        assert ws.sent == []

    async def test_send_failure_returns_false(self, manager):
        ws = FakeWebSocket(fail_sends=True)
        await manager.connect(ws)

        assert await manager.send_message(ws, {"type": "pong"}) is False

    async def test_concurrent_joins_and_leaves_keep_membership_consistent(self, manager):
        session_id = uuid.uuid4()
        sockets = [FakeWebSocket() for _ in range(20)]

        await asyncio.gather(*(manager.connect(ws, session_id) for ws in sockets))
        await asyncio.gather(*(manager.disconnect(ws) for ws in sockets[:15]))

        assert manager.member_count(session_id) == 5
        assert manager.connection_count == 5

    async def test_cache_down_does_not_break_rooms(self):
        from support_relay.infrastructure.cache import CacheService
        from tests.fakes import FailingRedis

        manager = ConnectionManager(cache=CacheService(redis=FailingRedis()))
        session_id = uuid.uuid4()
        first, second = FakeWebSocket(), FakeWebSocket()

        await manager.connect(first, session_id)
        await manager.connect(second, session_id)
        await manager.disconnect(first)

        assert manager.member_count(session_id) == 1
