"""SQLAlchemy models."""

from support_relay.models.message import Message
from support_relay.models.session import ChatSession

__all__ = [
    "ChatSession",
    "Message",
]
