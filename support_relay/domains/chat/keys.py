"""Cache key builders for chat data."""

from uuid import UUID


def history_key(session_id: UUID | str) -> str:
    return f"history:{session_id}"


def session_view_key(session_id: UUID | str) -> str:
    return f"session:{session_id}:full"


def online_key(session_id: UUID | str) -> str:
    return f"session:{session_id}:online"


def turn_keys(session_id: UUID | str) -> tuple[str, str]:
    """Keys that must be dropped after any message write for the session."""
    return history_key(session_id), session_view_key(session_id)
