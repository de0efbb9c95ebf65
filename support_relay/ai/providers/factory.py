"""Factory functions for creating provider instances.

This module uses the provider registry pattern. Providers self-register
at import time, so this factory doesn't need to know about specific providers.
"""

import logging
from functools import lru_cache

from support_relay.ai.providers.base import LLMProvider
from support_relay.ai.providers.llm.stub import StubLLMProvider
from support_relay.ai.providers.registry import get_provider_class
from support_relay.config import get_settings

logger = logging.getLogger("providers")

_API_KEY_ENV_VARS = {
    "gemini": "GOOGLE_API_KEY",
}


def _get_env_var_for_provider(provider: str) -> str:
    return _API_KEY_ENV_VARS.get(provider, f"{provider.upper()}_API_KEY")


def _get_api_key_for_provider(provider: str) -> str | None:
    settings = get_settings()
    if provider == "gemini":
        return settings.google_api_key or None
    return None


@lru_cache
def get_llm_provider(provider: str | None = None) -> LLMProvider:
    """Get an LLM provider instance.

    Args:
        provider: Provider name (e.g., 'gemini', 'stub').
            If None, uses settings.llm_provider.

    Returns:
        LLMProvider instance. Falls back to the stub provider when the API
        key is missing or the provider fails to initialise.

    Raises:
        UnknownProviderError: If provider is not registered
    """
    settings = get_settings()

    if provider is None:
        provider = settings.llm_provider

    provider = (provider or "").lower().strip() or "gemini"

    provider_class = get_provider_class(provider)

    if provider == "stub":
        logger.warning(
            "Using stub LLM provider (explicitly requested)",
            extra={
                "service": "providers",
                "provider": "stub",
                "metadata": {"reason": "explicit_request"},
            },
        )
        return provider_class()

    api_key = _get_api_key_for_provider(provider)
    if api_key is None:
        env_var = _get_env_var_for_provider(provider)
        logger.warning(
            f"Using stub LLM provider - {env_var} not configured",
            extra={
                "service": "providers",
                "provider": "stub",
                "metadata": {
                    "reason": "missing_api_key",
                    "expected_env_var": env_var,
                    "requested_provider": provider,
                },
            },
        )
        return StubLLMProvider()

    try:
        instance = provider_class(api_key=api_key, model=settings.llm_model_id)
        logger.info(
            "LLM provider initialized",
            extra={
                "service": "providers",
                "provider": provider,
                "model": settings.llm_model_id,
            },
        )
        return instance
    except Exception as e:
        logger.warning(
            f"Using stub LLM provider - failed to initialize {provider}: {type(e).__name__}",
            extra={
                "service": "providers",
                "provider": "stub",
                "error_type": type(e).__name__,
                "metadata": {"reason": "initialization_error", "requested_provider": provider},
            },
        )
        return StubLLMProvider()
