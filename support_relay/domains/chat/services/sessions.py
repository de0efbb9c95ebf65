"""SessionManager: resolves or creates the session a turn belongs to."""

import logging
from uuid import UUID

from support_relay.models import ChatSession
from support_relay.ports import ChatStore

logger = logging.getLogger("chat")


class SessionManager:
    """Resolve-or-create for chat sessions.

    A known id is returned unchanged and never triggers a create. An
    unknown or missing id creates exactly one new session tagged with the
    caller's origin. Store failures propagate as StorageError.
    """

    def __init__(self, store: ChatStore) -> None:
        self.store = store

    async def resolve(self, session_id: UUID | None = None, origin: str = "api") -> ChatSession:
        if session_id is not None:
            session = await self.store.get_session(session_id)
            if session is not None:
                return session
            logger.info(
                "Unknown session id, creating a new session",
                extra={"service": "chat", "metadata": {"requested_session_id": str(session_id)}},
            )
        return await self.store.create_session({"source": origin})
