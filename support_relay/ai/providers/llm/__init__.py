"""LLM provider implementations."""

from support_relay.ai.providers.llm.gemini import GeminiProvider
from support_relay.ai.providers.llm.stub import StubLLMProvider

__all__ = [
    "GeminiProvider",
    "StubLLMProvider",
]
