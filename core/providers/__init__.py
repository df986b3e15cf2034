"""AI provider implementations."""

import logging

from .base_provider import BaseAIProvider
from .gemini_provider import GeminiProvider
from .mock_provider import MockProvider
from .openai_provider import OpenAIProvider

logger = logging.getLogger(__name__)

PROVIDERS: dict[str, type[BaseAIProvider]] = {
    "gemini": GeminiProvider,
    "openai": OpenAIProvider,
    "mock": MockProvider,
}


def create_provider(settings) -> BaseAIProvider:
    """Instantiate the provider named by AI_PROVIDER (defaults to Gemini)."""
    key = settings.AI_PROVIDER.lower().strip()
    provider_cls = PROVIDERS.get(key)
    if provider_cls is None:
        logger.warning(f"Unknown AI_PROVIDER '{settings.AI_PROVIDER}', falling back to gemini")
        provider_cls = GeminiProvider
    return provider_cls(settings)


__all__ = [
    "BaseAIProvider",
    "GeminiProvider",
    "OpenAIProvider",
    "MockProvider",
    "create_provider",
]
