"""Chat engine components.

- SessionManager: resolve-or-create the session for a turn
- HistoryReader: cache-first recent history
- ModelFallbackInvoker: (model, strategy) fallback matrix
- StreamingRelay: fragment relay and assistant persistence
- ChatPersistenceService: SQLAlchemy store
- classifier: failure taxonomy and redaction
"""

from .history import HistoryReader
from .invoker import Attempt, Invocation, ModelFallbackInvoker
from .persistence import ChatPersistenceService
from .sessions import SessionManager
from .streaming import StreamingRelay

__all__ = [
    "Attempt",
    "ChatPersistenceService",
    "HistoryReader",
    "Invocation",
    "ModelFallbackInvoker",
    "SessionManager",
    "StreamingRelay",
]
