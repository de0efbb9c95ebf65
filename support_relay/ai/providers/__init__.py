"""AI provider implementations."""

from support_relay.ai.providers.base import LLMMessage, LLMProvider, LLMStream
from support_relay.ai.providers.factory import get_llm_provider
from support_relay.ai.providers.llm import GeminiProvider, StubLLMProvider

__all__ = [
    "get_llm_provider",
    "LLMProvider",
    "LLMStream",
    "LLMMessage",
    "GeminiProvider",
    "StubLLMProvider",
]
