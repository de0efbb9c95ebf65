"""Provider registry for self-registration of LLM providers.

Providers register themselves at import time, so the factory does not need
to know about every available provider.

Usage:
    # In provider module (e.g., support_relay/ai/providers/llm/gemini.py):
    from support_relay.ai.providers.registry import register_llm_provider

    @register_llm_provider
    class GeminiProvider(LLMProvider):
        ...
"""

from typing import TYPE_CHECKING, TypeVar

if TYPE_CHECKING:
    from support_relay.ai.providers.base import LLMProvider

LLM = TypeVar("LLM", bound="LLMProvider")

# Populated by the decorator at import time
_llm_registry: dict[str, type["LLMProvider"]] = {}


class ProviderRegistryError(Exception):
    """Base error for provider registry issues."""
    pass


class UnknownProviderError(ProviderRegistryError):
    """Raised when a requested provider is not registered."""
    pass


class DuplicateProviderError(ProviderRegistryError):
    """Raised when trying to register a provider with a name that's already taken."""
    pass


def _provider_name(provider_class: type) -> str:
    name = getattr(provider_class, "name", None)
    if name is None:
        raise ProviderRegistryError(
            f"Provider {provider_class.__name__} is missing required 'name' property"
        )
    # Properties on the class are descriptors; call the getter directly
    if isinstance(name, property):
        if name.fget is None:
            raise ProviderRegistryError(
                f"Provider {provider_class.__name__} has a 'name' property without a getter"
            )
        name = name.fget(provider_class)
    elif callable(name):
        name = name()
    if not isinstance(name, str):
        raise ProviderRegistryError(
            f"Provider {provider_class.__name__} has an invalid 'name' property type: {type(name)}"
        )
    return name


def register_llm_provider(provider_class: type[LLM]) -> type[LLM]:
    """Register an LLM provider class.

    Args:
        provider_class: A subclass of LLMProvider with a `name` property.

    Returns:
        The provider class (unchanged).

    Raises:
        DuplicateProviderError: If a provider with this name is already registered.
    """
    name = _provider_name(provider_class)
    if name in _llm_registry:
        raise DuplicateProviderError(
            f"LLM provider '{name}' is already registered"
        )
    _llm_registry[name] = provider_class
    return provider_class


def get_provider_class(name: str) -> type["LLMProvider"]:
    """Look up a provider class by name.

    Raises:
        UnknownProviderError: If provider is not registered
    """
    if name not in _llm_registry:
        registered = ", ".join(sorted(_llm_registry)) or "(none)"
        raise UnknownProviderError(
            f"Unknown LLM provider: '{name}'. Registered providers: {registered}"
        )
    return _llm_registry[name]


def get_registered_llm_providers() -> dict[str, type["LLMProvider"]]:
    """Get a copy of the registered LLM providers."""
    return _llm_registry.copy()


def is_llm_provider_registered(name: str) -> bool:
    """Check if an LLM provider is registered."""
    return name in _llm_registry
