"""Tests for ChatPersistenceService against a mocked AsyncSession."""

from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
from sqlalchemy.exc import OperationalError

from support_relay.domains.chat.services.persistence import ChatPersistenceService
from support_relay.exceptions import StorageError
from support_relay.models import ChatSession, Message


def _db_error() -> OperationalError:
    return OperationalError("SELECT 1", {}, Exception("connection refused"))


def _result(*, scalar=None, rows=None) -> MagicMock:
    result = MagicMock()
    result.scalar_one_or_none = MagicMock(return_value=scalar)
    result.scalars.return_value.all.return_value = rows or []
    return result


def _sql(statement) -> str:
    return " ".join(str(statement).split())


@pytest.fixture
def mock_db() -> MagicMock:
    db = MagicMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    db.execute = AsyncMock(return_value=_result())
    return db


class TestChatPersistenceService:
    def test_initialization(self, mock_db):
        service = ChatPersistenceService(db=mock_db)

        assert service.db is mock_db

    async def test_create_session_commits(self, mock_db):
        service = ChatPersistenceService(db=mock_db)

        session = await service.create_session({"source": "ws"})

        mock_db.add.assert_called_once_with(session)
        mock_db.commit.assert_awaited_once()
        assert session.meta == {"source": "ws"}

    async def test_save_message_commits(self, mock_db):
        service = ChatPersistenceService(db=mock_db)
        session_id = uuid4()

        message = await service.save_message(session_id=session_id, role="assistant", content="Hello!")

        added = mock_db.add.call_args[0][0]
        assert added is message
        assert added.session_id == session_id
        assert added.role == "assistant"
        assert added.content == "Hello!"
        mock_db.commit.assert_awaited_once()

    async def test_get_session_not_found(self, mock_db):
        service = ChatPersistenceService(db=mock_db)

        assert await service.get_session(uuid4()) is None

    async def test_list_recent_messages_newest_first_with_limit(self, mock_db):
        rows = [MagicMock(spec=Message), MagicMock(spec=Message)]
        mock_db.execute = AsyncMock(return_value=_result(rows=rows))
        service = ChatPersistenceService(db=mock_db)

        messages = await service.list_recent_messages(uuid4(), 10)

        assert messages == rows
        statement = mock_db.execute.call_args[0][0]
        sql = _sql(statement)
        assert "ORDER BY messages.created_at DESC" in sql
        assert "LIMIT" in sql
        assert 10 in statement.compile().params.values()

    async def test_get_session_with_messages_oldest_first(self, mock_db):
        session = MagicMock(spec=ChatSession)
        rows = [MagicMock(spec=Message)]
        mock_db.execute = AsyncMock(side_effect=[_result(scalar=session), _result(rows=rows)])
        service = ChatPersistenceService(db=mock_db)

        found, messages = await service.get_session_with_messages(uuid4())

        assert found is session
        assert messages == rows
        sql = _sql(mock_db.execute.call_args_list[1][0][0])
        assert "ORDER BY messages.created_at ASC" in sql
        assert "LIMIT" not in sql

    async def test_get_session_with_messages_unknown_session(self, mock_db):
        service = ChatPersistenceService(db=mock_db)

        assert await service.get_session_with_messages(uuid4()) is None
        assert mock_db.execute.await_count == 1

    async def test_failed_commit_rolls_back(self, mock_db):
        mock_db.commit = AsyncMock(side_effect=_db_error())
        service = ChatPersistenceService(db=mock_db)

        with pytest.raises(StorageError) as exc_info:
            await service.save_message(session_id=uuid4(), role="user", content="hi")

        mock_db.rollback.assert_awaited_once()
        assert exc_info.value.details == {"operation": "save_message"}
        assert exc_info.value.retryable is True

    async def test_failed_create_session_rolls_back(self, mock_db):
        mock_db.commit = AsyncMock(side_effect=_db_error())
        service = ChatPersistenceService(db=mock_db)

        with pytest.raises(StorageError):
            await service.create_session()

        mock_db.rollback.assert_awaited_once()

    @pytest.mark.parametrize(
        ("operation", "args"),
        [
            ("get_session", ()),
            ("list_recent_messages", (10,)),
            ("get_session_with_messages", ()),
        ],
    )
    async def test_failed_query_rolls_back(self, mock_db, operation, args):
        mock_db.execute = AsyncMock(side_effect=_db_error())
        service = ChatPersistenceService(db=mock_db)

        with pytest.raises(StorageError):
            await getattr(service, operation)(uuid4(), *args)

        mock_db.rollback.assert_awaited_once()

    async def test_rollback_failure_still_raises_storage_error(self, mock_db):
        mock_db.commit = AsyncMock(side_effect=_db_error())
        mock_db.rollback = AsyncMock(side_effect=_db_error())
        service = ChatPersistenceService(db=mock_db)

        with pytest.raises(StorageError):
            await service.create_session()
