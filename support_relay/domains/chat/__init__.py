"""Chat domain - support conversations relayed from an LLM.

Services:
    - ChatService: turn orchestration (validate, resolve, history, invoke, relay)

Components (see .services):
    - SessionManager, HistoryReader, ModelFallbackInvoker, StreamingRelay
    - ChatPersistenceService: SQLAlchemy store
"""

from support_relay.domains.chat.service import ChatService, TurnResult

__all__ = [
    "ChatService",
    "TurnResult",
]
