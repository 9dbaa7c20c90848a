"""AI Provider abstraction for task analysis.

Supports multiple LLM providers (OpenAI, Anthropic) with a common interface.
"""

from .base import AIProvider, AIProviderError, AIResponse
from .openai_provider import OpenAIProvider
from .anthropic_provider import AnthropicProvider

__all__ = [
    "AIProvider",
    "AIProviderError",
    "AIResponse",
    "OpenAIProvider",
    "AnthropicProvider",
    "get_provider",
]

PROVIDERS: dict[str, type[AIProvider]] = {
    "openai": OpenAIProvider,
    "anthropic": AnthropicProvider,
}


def get_provider(provider_name: str, **kwargs) -> AIProvider:
    """Factory function to get an AI provider by name.

    Args:
        provider_name: Name of the provider ('openai' or 'anthropic')
        **kwargs: Provider-specific configuration

    Returns:
        Configured AIProvider instance

    Raises:
        ValueError: If provider_name is not recognized
    """
    provider_class = PROVIDERS.get(provider_name.lower())
    if not provider_class:
        raise ValueError(f"Unknown AI provider: {provider_name}. Supported: {list(PROVIDERS.keys())}")

    return provider_class(**kwargs)
