"""WebSocket API layer."""

from support_relay.api.ws.endpoint import websocket_endpoint
from support_relay.api.ws.manager import ConnectionManager, get_connection_manager

__all__ = [
    "websocket_endpoint",
    "ConnectionManager",
    "get_connection_manager",
]
