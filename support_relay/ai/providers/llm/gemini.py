"""Google Gemini LLM provider."""

import logging
from collections.abc import AsyncIterator
from typing import Any

from support_relay.ai.providers.base import LLMMessage, LLMProvider, LLMStream
from support_relay.ai.providers.registry import register_llm_provider

logger = logging.getLogger("providers.gemini")


def _chunk_text(chunk: Any) -> str:
    # .text raises ValueError when a chunk carries no text part (safety block, empty candidate)
    try:
        return chunk.text or ""
    except ValueError:
        return ""


class GeminiStream(LLMStream):
    """Wraps a streaming ``AsyncGenerateContentResponse``."""

    def __init__(self, response: Any, model: str) -> None:
        self._response = response
        self.model = model

    async def __aiter__(self) -> AsyncIterator[str]:
        async for chunk in self._response:
            text = _chunk_text(chunk)
            if text:
                yield text

    async def final_text(self) -> str:
        await self._response.resolve()
        return _chunk_text(self._response)


@register_llm_provider
class GeminiProvider(LLMProvider):
    """LLM provider using Google's Gemini API."""

    DEFAULT_MODEL = "gemini-2.0-flash"

    def __init__(self, api_key: str, model: str | None = None):
        self._api_key = api_key
        self._model = model or self.DEFAULT_MODEL
        self._configured = False

    @property
    def name(self) -> str:
        return "gemini"

    def _genai(self):
        """Import and configure the SDK on first use."""
        import google.generativeai as genai

        if not self._configured:
            genai.configure(api_key=self._api_key)
            self._configured = True
        return genai

    def _convert_history(self, history: list[LLMMessage]) -> list[dict]:
        """Convert LLMMessage list to Gemini chat history.

        Gemini only knows 'user' and 'model' roles; system messages travel
        in system_instruction and are skipped here.
        """
        converted = []
        for msg in history:
            if msg.role == "user":
                converted.append({"role": "user", "parts": [msg.content]})
            elif msg.role == "assistant":
                converted.append({"role": "model", "parts": [msg.content]})
        return converted

    async def start_prompt_stream(
        self,
        prompt: str,
        model: str | None = None,
        temperature: float = 0.2,
        max_tokens: int = 300,
    ) -> GeminiStream:
        """Stream a completion for a single flattened prompt."""
        genai = self._genai()
        model_id = self.resolve_model(model) or self._model

        logger.debug(
            "Gemini prompt stream started",
            extra={
                "service": "providers.gemini",
                "model": model_id,
                "strategy": "stateless",
                "metadata": {"prompt_chars": len(prompt), "temperature": temperature},
            },
        )

        gen_model = genai.GenerativeModel(
            model_name=model_id,
            generation_config=genai.GenerationConfig(
                temperature=temperature,
                max_output_tokens=max_tokens,
            ),
        )
        response = await gen_model.generate_content_async(prompt, stream=True)
        return GeminiStream(response, model_id)

    async def start_chat_stream(
        self,
        system_instruction: str,
        history: list[LLMMessage],
        content: str,
        model: str | None = None,
        temperature: float = 0.2,
        max_tokens: int = 300,
    ) -> GeminiStream:
        """Stream the next turn of a chat seeded with prior messages."""
        genai = self._genai()
        model_id = self.resolve_model(model) or self._model
        chat_history = self._convert_history(history)

        logger.debug(
            "Gemini chat stream started",
            extra={
                "service": "providers.gemini",
                "model": model_id,
                "strategy": "stateful",
                "metadata": {"history_turns": len(chat_history), "temperature": temperature},
            },
        )

        gen_model = genai.GenerativeModel(
            model_name=model_id,
            system_instruction=system_instruction or None,
            generation_config=genai.GenerationConfig(
                temperature=temperature,
                max_output_tokens=max_tokens,
            ),
        )
        chat = gen_model.start_chat(history=chat_history)
        response = await chat.send_message_async(content, stream=True)
        return GeminiStream(response, model_id)
