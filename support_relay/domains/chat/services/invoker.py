"""ModelFallbackInvoker: walks the (model, strategy) matrix until a stream starts.

Providers can reject a model name, a system-instruction field, or a chat
history shape independently, so both dimensions are retried. The attempt
plan is plain data built from settings and folded left to right with an
early exit on the first stream that starts without raising.
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from support_relay.ai.providers.base import LLMMessage, LLMProvider, LLMStream
from support_relay.domains.chat.services.classifier import classify
from support_relay.exceptions import ProviderError, ProviderUnknownError

logger = logging.getLogger("chat")

STATELESS = "stateless"
STATEFUL = "stateful"

_ROLE_LABELS = {"user": "User", "assistant": "Assistant", "system": "System"}


@dataclass(frozen=True)
class Attempt:
    """One cell of the fallback matrix."""

    model: str
    strategy: str


@dataclass
class Invocation:
    """The winning attempt and the stream it started."""

    stream: LLMStream
    model: str
    strategy: str
    attempts: list[Attempt] = field(default_factory=list)


def dedupe_models(models: list[str]) -> list[str]:
    """Drop blanks and duplicates, keeping first-occurrence order."""
    seen: list[str] = []
    for model in models:
        model = (model or "").strip()
        if model and model not in seen:
            seen.append(model)
    return seen


def build_attempt_plan(models: list[str], strategies: list[str]) -> list[Attempt]:
    """Model-major ordered list of attempts."""
    return [Attempt(model, strategy) for model in dedupe_models(models) for strategy in strategies]


def render_prompt(system_prompt: str, history: list[LLMMessage], content: str) -> str:
    """Flatten system prompt and transcript into a single stateless prompt."""
    lines = [system_prompt.strip(), ""]
    for message in history:
        label = _ROLE_LABELS.get(message.role, message.role.capitalize())
        lines.append(f"{label}: {message.content}")
    lines.append(f"User: {content}")
    lines.append("Assistant:")
    return "\n".join(lines)


class ModelFallbackInvoker:
    """Try each (model, strategy) pair in order; return the first stream that starts."""

    def __init__(
        self,
        provider: LLMProvider,
        models: list[str],
        strategies: list[str] | None = None,
        *,
        temperature: float = 0.2,
        max_tokens: int = 300,
    ) -> None:
        self.provider = provider
        self.models = dedupe_models(models)
        self.strategies = list(strategies or [STATELESS, STATEFUL])
        self.temperature = temperature
        self.max_tokens = max_tokens
        unknown = [s for s in self.strategies if s not in (STATELESS, STATEFUL)]
        if unknown:
            raise ValueError(f"Unknown invocation strategies: {unknown}")

    def build_attempt_plan(self) -> list[Attempt]:
        return build_attempt_plan(self.models, self.strategies)

    def _starter(
        self,
        attempt: Attempt,
        system_prompt: str,
        history: list[LLMMessage],
        content: str,
    ) -> Callable[[], Awaitable[LLMStream]]:
        if attempt.strategy == STATELESS:
            prompt = render_prompt(system_prompt, history, content)
            return lambda: self.provider.start_prompt_stream(
                prompt,
                model=attempt.model,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        return lambda: self.provider.start_chat_stream(
            system_prompt,
            history,
            content,
            model=attempt.model,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )

    async def invoke(
        self,
        system_prompt: str,
        history: list[LLMMessage],
        content: str,
    ) -> Invocation:
        """Start a streaming completion, falling back across models and strategies.

        Args:
            system_prompt: System instruction text
            history: Prior messages, chronological
            content: The new user message

        Returns:
            Invocation with the started stream and the winning model/strategy

        Raises:
            ProviderError: Classified from the last failure once every attempt failed
        """
        plan = self.build_attempt_plan()
        tried: list[Attempt] = []
        last_error: Exception | None = None

        for number, attempt in enumerate(plan, start=1):
            tried.append(attempt)
            try:
                stream = await self._starter(attempt, system_prompt, history, content)()
            except Exception as exc:
                last_error = exc
                logger.warning(
                    "LLM attempt failed",
                    extra={
                        "service": "chat",
                        "provider": self.provider.name,
                        "model": attempt.model,
                        "strategy": attempt.strategy,
                        "attempt": number,
                        "error_type": type(exc).__name__,
                        "error_code": classify(exc, model=attempt.model).code,
                    },
                )
                continue

            logger.info(
                "LLM stream started",
                extra={
                    "service": "chat",
                    "provider": self.provider.name,
                    "model": attempt.model,
                    "strategy": attempt.strategy,
                    "attempt": number,
                },
            )
            return Invocation(
                stream=stream,
                model=attempt.model,
                strategy=attempt.strategy,
                attempts=tried,
            )

        if last_error is None:
            raise ProviderUnknownError(message="No models configured")

        error = classify(last_error, model=tried[-1].model)
        if not isinstance(error, ProviderError):
            error = ProviderUnknownError(message=error.message, model=tried[-1].model)
        error.details["attempts"] = len(tried)
        raise error from last_error
