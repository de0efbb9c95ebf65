"""sendMessage WebSocket handler.

Drives a full turn and streams the answer back to the sending connection
only. Failures always end with an ``error`` event followed by a synthetic
``streamComplete`` so the client can leave its waiting state.
"""

import logging
from typing import Any
from uuid import UUID

from fastapi import WebSocket
from pydantic import ValidationError as PydanticValidationError

from support_relay.api.ws.manager import ConnectionManager
from support_relay.api.ws.router import get_router
from support_relay.core.di import get_container
from support_relay.domains.chat.services.classifier import classify, log_failure
from support_relay.exceptions import AppError, ValidationError
from support_relay.models import Message
from support_relay.schemas.chat import ChatMessageCreate

logger = logging.getLogger("chat")

router = get_router()


class WebSocketTokenSink:
    """TokenSink that emits streamChunk/streamComplete to one connection."""

    def __init__(self, websocket: WebSocket, manager: ConnectionManager) -> None:
        self.websocket = websocket
        self.manager = manager

    async def on_token(self, fragment: str) -> None:
        await self.manager.send_message(
            self.websocket,
            {"type": "streamChunk", "payload": fragment},
        )

    async def on_done(self, message: Message) -> None:
        await self.manager.send_message(
            self.websocket,
            {"type": "streamComplete", "payload": message.to_dict()},
        )


async def emit_failure(
    websocket: WebSocket,
    manager: ConnectionManager,
    error: AppError,
    session_id: UUID | str | None,
) -> None:
    """Send the error event and the synthetic completion."""
    await manager.send_message(
        websocket,
        {
            "type": "error",
            "payload": {
                "code": error.code,
                "message": error.user_message,
                "retryable": error.retryable,
            },
        },
    )
    await manager.send_message(
        websocket,
        {
            "type": "streamComplete",
            "payload": {
                "id": "error",
                "role": "assistant",
                "content": error.user_message,
                "error": True,
                "sessionId": str(session_id) if session_id else None,
            },
        },
    )


def _validation_error(exc: PydanticValidationError) -> ValidationError:
    first = exc.errors()[0] if exc.errors() else {}
    field = ".".join(str(p) for p in first.get("loc", ())) or "payload"
    return ValidationError(
        message=f"Invalid {field}: {first.get('msg', 'invalid value')}",
        details={"field": field},
    )


@router.handler("sendMessage")
async def handle_send_message(
    websocket: WebSocket,
    payload: Any,
    manager: ConnectionManager,
) -> None:
    """Handle sendMessage {sessionId?, content}."""
    raw_session_id = payload.get("sessionId") if isinstance(payload, dict) else None

    try:
        data = ChatMessageCreate.model_validate(payload)
    except PydanticValidationError as exc:
        error = _validation_error(exc)
        log_failure(error, transport="ws")
        await emit_failure(websocket, manager, error, raw_session_id)
        return

    container = get_container()
    sink = WebSocketTokenSink(websocket, manager)
    session_id: UUID | None = data.session_id

    try:
        async with container.chat_service() as service:
            content = service.validate_content(data.content)
            session = await service.resolve_session(data.session_id, origin="ws")
            session_id = session.id

            # No-op when already in the room; moves the connection otherwise
            await manager.join_session(websocket, session.id)

            await service.run_turn(content, sink, session_id=session.id, origin="ws")
    except Exception as exc:
        error = classify(exc)
        log_failure(error, transport="ws", session_id=str(session_id) if session_id else None)
        await emit_failure(websocket, manager, error, session_id)
