"""WebSocket endpoint."""

import asyncio
import contextlib
import logging
from uuid import UUID

from fastapi import WebSocket, WebSocketDisconnect
from starlette.websockets import WebSocketState

from support_relay.api.ws.manager import get_connection_manager
from support_relay.api.ws.router import get_router
from support_relay.infrastructure.logging import clear_request_context, set_request_context

logger = logging.getLogger("ws")

# Long-running handlers must not block the receive loop (typing events keep flowing)
ASYNC_MESSAGE_TYPES = {"sendMessage"}

# Turns keep running after their connection closes; hold references here
_background_turns: set[asyncio.Task[None]] = set()


def _track_task(task: asyncio.Task[None]) -> None:
    _background_turns.add(task)

    def _done(t: asyncio.Task[None]) -> None:
        _background_turns.discard(t)
        with contextlib.suppress(asyncio.CancelledError):
            exc = t.exception()
            if exc is not None:
                logger.error(
                    "WebSocket handler task failed",
                    extra={"service": "ws", "error": str(exc)},
                    exc_info=exc,
                )

    task.add_done_callback(_done)


async def wait_for_background_turns(timeout: float | None = None) -> None:
    """Wait for sendMessage turns still running (shutdown and tests)."""
    if _background_turns:
        await asyncio.wait(set(_background_turns), timeout=timeout)


async def cancel_background_turns(grace: float = 5.0) -> None:
    """Cancel sendMessage turns still running at shutdown after a grace period."""
    await wait_for_background_turns(timeout=grace)
    for task in list(_background_turns):
        task.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await asyncio.gather(*_background_turns, return_exceptions=True)


def _parse_session_id(raw: str | None) -> UUID | None:
    if not raw:
        return None
    try:
        return UUID(raw)
    except ValueError:
        return None


async def websocket_endpoint(websocket: WebSocket) -> None:
    """Main WebSocket endpoint handler.

    Handles the connection lifecycle:
    1. Accept and join the session room from ``?sessionId=``
    2. Receive and route messages
    3. Leave the room on disconnect (in-flight turns are left to finish)
    """
    manager = get_connection_manager()
    router = get_router()

    raw_session_id = websocket.query_params.get("sessionId")
    session_id = _parse_session_id(raw_session_id)

    connection = await manager.connect(websocket, session_id)
    set_request_context(
        connection_id=connection.connection_id,
        session_id=str(session_id) if session_id else None,
    )

    if raw_session_id and session_id is None:
        await manager.send_message(
            websocket,
            {
                "type": "error",
                "payload": {
                    "code": "INVALID_SESSION_ID",
                    "message": "sessionId must be a UUID",
                },
            },
        )

    try:
        while True:
            try:
                message = await websocket.receive_json()
            except (ValueError, KeyError) as e:
                # KeyError: binary frame where a text frame was expected
                logger.warning(
                    "Invalid JSON received",
                    extra={"service": "ws", "error": str(e)},
                )
                await manager.send_message(
                    websocket,
                    {
                        "type": "error",
                        "payload": {
                            "code": "INVALID_JSON",
                            "message": "Message must be valid JSON",
                        },
                    },
                )
                continue

            message_type = message.get("type") if isinstance(message, dict) else None
            if message_type in ASYNC_MESSAGE_TYPES:
                _track_task(asyncio.create_task(router.route(websocket, message, manager)))
            else:
                await router.route(websocket, message, manager)

    except WebSocketDisconnect:
        logger.info(
            "WebSocket disconnected by client",
            extra={"service": "ws", "connection_id": connection.connection_id},
        )
    except Exception as e:
        logger.error(
            "WebSocket error",
            extra={"service": "ws", "error": str(e)},
            exc_info=True,
        )
        if websocket.application_state == WebSocketState.CONNECTED:
            with contextlib.suppress(Exception):
                await manager.send_message(
                    websocket,
                    {
                        "type": "error",
                        "payload": {
                            "code": "SERVER_ERROR",
                            "message": "An unexpected error occurred",
                        },
                    },
                )
    finally:
        await manager.disconnect(websocket)
        clear_request_context()
