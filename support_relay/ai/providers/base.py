"""Abstract base classes for LLM providers."""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from dataclasses import dataclass


@dataclass
class LLMMessage:
    """A message in an LLM conversation."""

    role: str  # 'system', 'user', 'assistant'
    content: str


class LLMStream(ABC):
    """A started streaming completion.

    Iterating yields text fragments in the order the provider produced
    them. ``final_text`` is the non-streaming fallback used when the
    stream produced no text at all.
    """

    @abstractmethod
    def __aiter__(self) -> AsyncIterator[str]:
        pass

    @abstractmethod
    async def final_text(self) -> str:
        """Fetch the provider's complete response text."""
        pass


class LLMProvider(ABC):
    """Abstract base class for LLM providers (e.g., Gemini)."""

    DEFAULT_MODEL: str | None = None

    @classmethod
    def resolve_model(cls, model: str | None) -> str | None:
        """Resolve a model ID for this provider.

        Returns the requested model if set, otherwise DEFAULT_MODEL.
        Candidate models are passed through verbatim so the fallback
        matrix sees the provider's own rejection.
        """

        m = (model or "").strip() if model is not None else ""
        return m or cls.DEFAULT_MODEL

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name for logging."""
        pass

    @abstractmethod
    async def start_prompt_stream(
        self,
        prompt: str,
        model: str | None = None,
        temperature: float = 0.2,
        max_tokens: int = 300,
    ) -> LLMStream:
        """Start a stateless streaming completion for a single flattened prompt.

        Args:
            prompt: Full prompt text (system prompt and transcript included)
            model: Model ID (provider-specific)
            temperature: Sampling temperature
            max_tokens: Maximum tokens to generate

        Returns:
            LLMStream, once the provider has accepted the request

        Raises:
            Exception: Whatever the provider SDK raises on rejection
        """
        pass

    @abstractmethod
    async def start_chat_stream(
        self,
        system_instruction: str,
        history: list[LLMMessage],
        content: str,
        model: str | None = None,
        temperature: float = 0.2,
        max_tokens: int = 300,
    ) -> LLMStream:
        """Start a stateful chat seeded with prior turns and stream the new turn.

        Args:
            system_instruction: System prompt, sent on its own channel
            history: Prior messages in chronological order
            content: The new user message
            model: Model ID (provider-specific)
            temperature: Sampling temperature
            max_tokens: Maximum tokens to generate

        Returns:
            LLMStream, once the provider has accepted the request
        """
        pass
