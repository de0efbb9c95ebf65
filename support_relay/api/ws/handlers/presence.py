"""Typing indicator WebSocket handlers.

Typing events are relayed to the other members of the session room; the
sender never receives its own indicator.
"""

import logging
from typing import Any

from fastapi import WebSocket
from pydantic import ValidationError as PydanticValidationError

from support_relay.api.ws.manager import ConnectionManager
from support_relay.api.ws.router import get_router
from support_relay.schemas.chat import StopTypingEvent, TypingEvent

logger = logging.getLogger("ws")
router = get_router()


async def _invalid_payload(websocket: WebSocket, manager: ConnectionManager, exc: Exception) -> None:
    logger.warning(
        "Invalid typing payload",
        extra={"service": "ws", "error": str(exc)},
    )
    await manager.send_message(
        websocket,
        {
            "type": "error",
            "payload": {
                "code": "INVALID_PAYLOAD",
                "message": "Typing events require a valid sessionId",
            },
        },
    )


@router.handler("typing")
async def handle_typing(
    websocket: WebSocket,
    payload: Any,
    manager: ConnectionManager,
) -> None:
    """Broadcast a typing indicator to room peers."""
    try:
        event = TypingEvent.model_validate(payload)
    except PydanticValidationError as exc:
        await _invalid_payload(websocket, manager, exc)
        return

    await manager.broadcast_to_session(
        event.session_id,
        {
            "type": "typing",
            "payload": {"sessionId": str(event.session_id), "isTyping": event.is_typing},
        },
        exclude=websocket,
    )


@router.handler("stopTyping")
async def handle_stop_typing(
    websocket: WebSocket,
    payload: Any,
    manager: ConnectionManager,
) -> None:
    """Broadcast ``isTyping: false`` to room peers."""
    try:
        event = StopTypingEvent.model_validate(payload)
    except PydanticValidationError as exc:
        await _invalid_payload(websocket, manager, exc)
        return

    await manager.broadcast_to_session(
        event.session_id,
        {
            "type": "typing",
            "payload": {"sessionId": str(event.session_id), "isTyping": False},
        },
        exclude=websocket,
    )
