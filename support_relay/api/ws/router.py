"""WebSocket message router."""

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from fastapi import WebSocket

from support_relay.api.ws.manager import ConnectionManager

logger = logging.getLogger("ws")

# Type alias for message handlers
MessageHandler = Callable[[WebSocket, Any, ConnectionManager], Awaitable[None]]


class MessageRouter:
    """Routes ``{"type", "payload"}`` envelopes to registered handlers."""

    def __init__(self):
        self._handlers: dict[str, MessageHandler] = {}

    @property
    def message_types(self) -> list[str]:
        return list(self._handlers)

    def register(self, message_type: str, handler: MessageHandler) -> None:
        """Register a handler for a message type.

        Args:
            message_type: The message type to handle (e.g., 'sendMessage', 'ping')
            handler: Async function to handle the message
        """
        self._handlers[message_type] = handler
        logger.debug(
            "Handler registered",
            extra={"service": "ws", "event_type": message_type},
        )

    def handler(self, message_type: str) -> Callable[[MessageHandler], MessageHandler]:
        """Decorator to register a message handler.

        Usage:
            @router.handler("typing")
            async def handle_typing(websocket, payload, manager):
                ...
        """

        def decorator(func: MessageHandler) -> MessageHandler:
            self.register(message_type, func)
            return func

        return decorator

    async def route(
        self,
        websocket: WebSocket,
        message: Any,
        manager: ConnectionManager,
    ) -> None:
        """Route a message to its handler.

        Args:
            websocket: The WebSocket that sent the message
            message: The parsed message
            manager: Connection manager instance
        """
        message_type = message.get("type") if isinstance(message, dict) else None

        if not message_type:
            logger.warning(
                "Message missing type field",
                extra={"service": "ws"},
            )
            await manager.send_message(
                websocket,
                {
                    "type": "error",
                    "payload": {
                        "code": "INVALID_MESSAGE",
                        "message": "Message must include 'type' field",
                    },
                },
            )
            return

        handler = self._handlers.get(message_type)

        if not handler:
            logger.warning(
                "Unknown message type",
                extra={"service": "ws", "event_type": message_type},
            )
            await manager.send_message(
                websocket,
                {
                    "type": "error",
                    "payload": {
                        "code": "UNKNOWN_MESSAGE_TYPE",
                        "message": f"Unknown message type: {message_type}",
                    },
                },
            )
            return

        logger.debug(
            "Routing message",
            extra={"service": "ws", "event_type": message_type},
        )

        try:
            payload = message.get("payload")
            await handler(websocket, {} if payload is None else payload, manager)
        except Exception as e:
            logger.error(
                "Handler error",
                extra={
                    "service": "ws",
                    "event_type": message_type,
                    "error": str(e),
                },
                exc_info=True,
            )
            await manager.send_message(
                websocket,
                {
                    "type": "error",
                    "payload": {
                        "code": "HANDLER_ERROR",
                        "message": "An error occurred processing your request",
                    },
                },
            )


# Global router instance
_router: MessageRouter | None = None
_handlers_imported: bool = False


def get_router() -> MessageRouter:
    """Get global message router instance.

    On first call, creates the router and imports all handlers.
    """
    global _router, _handlers_imported

    if _router is None:
        _router = MessageRouter()

    if not _handlers_imported:
        _handlers_imported = True
        _import_handlers()

    return _router


def _import_handlers() -> None:
    """Import handler modules so their decorators register them.

    Done lazily on first get_router() call to avoid circular imports.
    """
    from support_relay.api.ws.handlers import chat, ping, presence  # noqa: F401

    logger.info(
        "Handlers registered",
        extra={"service": "ws", "metadata": {"handlers": _router.message_types}},
    )
