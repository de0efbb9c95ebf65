"""HTTP endpoints for support chat.

``POST /chat`` streams raw answer bytes as they arrive. The turn itself
runs as a background task feeding a queue, so a client that disconnects
mid-stream stops receiving bytes but the answer is still persisted.
"""

import asyncio
import contextlib
import logging
from uuid import UUID

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from support_relay.core.di import Container, get_container
from support_relay.domains.chat.services.classifier import classify, log_failure
from support_relay.models import Message
from support_relay.schemas.chat import (
    ChatCompleteResponse,
    ChatMessageCreate,
    MessageRead,
    SessionRead,
)

logger = logging.getLogger("http")

router = APIRouter(prefix="/chat", tags=["chat"])

STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}
STREAM_MEDIA_TYPE = "text/event-stream; charset=utf-8"

_CLOSE = object()

# Turns outlive their HTTP response; keep references so they are not collected
_pending_turns: set[asyncio.Task[None]] = set()


class QueueTokenSink:
    """TokenSink that hands fragments to the response body through a queue."""

    def __init__(self) -> None:
        self.queue: asyncio.Queue[object] = asyncio.Queue()
        self.message: Message | None = None

    async def on_token(self, fragment: str) -> None:
        await self.queue.put(fragment)

    async def on_done(self, message: Message) -> None:
        self.message = message

    def close(self) -> None:
        self.queue.put_nowait(_CLOSE)

    async def body(self):
        while True:
            item = await self.queue.get()
            if item is _CLOSE:
                return
            yield str(item).encode("utf-8")


class CollectingSink:
    """TokenSink that keeps the completed message for a JSON response."""

    def __init__(self) -> None:
        self.fragments: list[str] = []
        self.message: Message | None = None

    async def on_token(self, fragment: str) -> None:
        self.fragments.append(fragment)

    async def on_done(self, message: Message) -> None:
        self.message = message


async def _run_streaming_turn(
    container: Container,
    content: str,
    session_id: UUID,
    sink: QueueTokenSink,
) -> None:
    try:
        async with container.chat_service() as service:
            await service.run_turn(content, sink, session_id=session_id, origin="api")
    except Exception as exc:
        error = classify(exc)
        log_failure(error, transport="http", session_id=str(session_id))
        await sink.on_token("\n" + error.user_message)
    finally:
        sink.close()


def _track(task: asyncio.Task[None]) -> None:
    _pending_turns.add(task)
    task.add_done_callback(_pending_turns.discard)


async def wait_for_pending_turns(timeout: float | None = None) -> None:
    """Wait for background turns to finish (shutdown and tests)."""
    if _pending_turns:
        await asyncio.wait(set(_pending_turns), timeout=timeout)


@router.post("")
async def stream_chat(
    payload: ChatMessageCreate,
    container: Container = Depends(get_container),
) -> StreamingResponse:
    """Stream an answer for one user message.

    The session is resolved before the response starts, so a store failure
    is reported as a normal error response rather than a broken stream.
    """

    async with container.chat_service() as service:
        content = service.validate_content(payload.content)
        session = await service.resolve_session(payload.session_id, origin="api")

    sink = QueueTokenSink()
    _track(asyncio.create_task(_run_streaming_turn(container, content, session.id, sink)))

    return StreamingResponse(
        sink.body(),
        media_type=STREAM_MEDIA_TYPE,
        headers={**STREAM_HEADERS, "X-Session-Id": str(session.id)},
    )


@router.post("/complete", response_model=ChatCompleteResponse)
async def complete_chat(
    payload: ChatMessageCreate,
    container: Container = Depends(get_container),
) -> ChatCompleteResponse:
    """Run a turn without streaming and return the assistant message."""

    sink = CollectingSink()
    async with container.chat_service() as service:
        result = await service.run_turn(
            payload.content,
            sink,
            session_id=payload.session_id,
            origin="api",
        )
    return ChatCompleteResponse(
        session_id=result.session.id,
        message=MessageRead.model_validate(result.message.to_dict()),
    )


@router.get("/{session_id}", response_model=SessionRead)
async def get_chat_history(
    session_id: UUID,
    container: Container = Depends(get_container),
) -> SessionRead:
    """Return the session with all messages, oldest first."""

    async with container.chat_service() as service:
        view = await service.get_session_view(session_id)
    return SessionRead.model_validate(view)


async def cancel_pending_turns() -> None:
    """Cancel turns still running at shutdown after a grace period."""
    await wait_for_pending_turns(timeout=5.0)
    for task in list(_pending_turns):
        task.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await asyncio.gather(*_pending_turns, return_exceptions=True)
