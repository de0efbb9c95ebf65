"""Ping/pong WebSocket handler for keepalive."""

import logging
from typing import Any

from fastapi import WebSocket

from support_relay.api.ws.manager import ConnectionManager
from support_relay.api.ws.router import get_router

logger = logging.getLogger("ws")
router = get_router()


@router.handler("ping")
async def handle_ping(
    websocket: WebSocket,
    _payload: Any,
    manager: ConnectionManager,
) -> None:
    """Respond with pong."""
    await manager.send_message(websocket, {"type": "pong"})
