"""Stub LLM provider for testing and development.

Behaviour is controlled with environment variables so end-to-end runs can
exercise failure paths without a real provider:

    STUB_LLM_STREAM_TEXT         text to stream (default: a canned support answer)
    STUB_LLM_STREAM_CHUNK_SIZE   characters per fragment (default 4, 0 = one fragment)
    STUB_LLM_STREAM_DELAY_MS     delay between fragments (default 5)
    STUB_LLM_STREAM_MODE         normal | empty | mid_stream_failure | reject
    STUB_LLM_FAIL_AFTER_CHUNKS   fragments emitted before a mid-stream failure (default 3)
    STUB_LLM_REJECT_MESSAGE      error raised at start in "reject" mode
"""

import asyncio
import os
from collections.abc import AsyncIterator

from support_relay.ai.providers.base import LLMMessage, LLMProvider, LLMStream
from support_relay.ai.providers.registry import register_llm_provider

DEFAULT_STUB_TEXT = (
    "You can return most items within 30 days of delivery for a full refund, "
    "as long as they are unused and in their original packaging."
)


def _env_str(name: str) -> str | None:
    value = os.environ.get(name)
    if value is None:
        return None
    s = str(value).strip()
    return s if s else None


def _env_int(name: str, default: int) -> int:
    raw = _env_str(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _chunk_text(text: str, chunk_size: int) -> list[str]:
    if chunk_size <= 0:
        return [text]
    return [text[i : i + chunk_size] for i in range(0, len(text), chunk_size)]


class StubStream(LLMStream):
    """Replays canned text as fragments."""

    def __init__(
        self,
        text: str,
        *,
        chunk_size: int = 4,
        delay_ms: int = 0,
        mode: str = "normal",
        fail_after: int = 3,
    ) -> None:
        self._text = text
        self._chunk_size = chunk_size
        self._delay_ms = delay_ms
        self._mode = mode
        self._fail_after = fail_after

    async def __aiter__(self) -> AsyncIterator[str]:
        if self._mode == "empty":
            return
        should_fail = self._mode in ("mid_stream_failure", "midstream_failure", "fail_after")
        for emitted, chunk in enumerate(_chunk_text(self._text, self._chunk_size)):
            if should_fail and emitted >= max(0, self._fail_after):
                raise RuntimeError("stub_llm_mid_stream_failure")
            if self._delay_ms > 0:
                await asyncio.sleep(self._delay_ms / 1000)
            yield chunk

    async def final_text(self) -> str:
        return self._text


@register_llm_provider
class StubLLMProvider(LLMProvider):
    """Stub LLM provider for testing."""

    DEFAULT_MODEL = "stub-model"

    @property
    def name(self) -> str:
        return "stub"

    def _stream(self) -> StubStream:
        mode = (_env_str("STUB_LLM_STREAM_MODE") or "normal").lower()
        if mode == "reject":
            raise RuntimeError(
                _env_str("STUB_LLM_REJECT_MESSAGE") or "503 Service Unavailable: stub rejected request"
            )
        return StubStream(
            _env_str("STUB_LLM_STREAM_TEXT") or DEFAULT_STUB_TEXT,
            chunk_size=_env_int("STUB_LLM_STREAM_CHUNK_SIZE", 4),
            delay_ms=_env_int("STUB_LLM_STREAM_DELAY_MS", 5),
            mode=mode,
            fail_after=_env_int("STUB_LLM_FAIL_AFTER_CHUNKS", 3),
        )

    async def start_prompt_stream(
        self,
        prompt: str,
        model: str | None = None,
        temperature: float = 0.2,
        max_tokens: int = 300,
    ) -> StubStream:
        """Return a stub stream."""
        return self._stream()

    async def start_chat_stream(
        self,
        system_instruction: str,
        history: list[LLMMessage],
        content: str,
        model: str | None = None,
        temperature: float = 0.2,
        max_tokens: int = 300,
    ) -> StubStream:
        """Return a stub stream."""
        return self._stream()
