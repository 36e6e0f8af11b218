"""Provider factory: returns the right provider instance or falls back to mock."""

from __future__ import annotations

import logging

from pagelens.core.config import PipelineConfig

from .base import IMAGE_DATA_PREFIX, BaseProvider, ProviderResult, split_data_url
from .mock import MockProvider

logger = logging.getLogger(__name__)

__all__ = [
    "get_provider",
    "BaseProvider",
    "ProviderResult",
    "MockProvider",
    "IMAGE_DATA_PREFIX",
    "split_data_url",
]


def get_provider(provider_name: str, config: PipelineConfig) -> BaseProvider:
    """Return a provider instance for *provider_name*.

    If the requested provider is not in the allowlist, has no API key,
    or is unknown, we fall back to ``MockProvider`` with a warning.
    """
    name = provider_name.lower().strip()

    if name not in config.allowed_providers:
        logger.warning("Provider %r not in allowlist, falling back to mock", name)
        return MockProvider()

    if name == "mock":
        return MockProvider()

    if name == "claude":
        api_key = config.provider_keys.get("claude", "")
        if not api_key:
            logger.warning("ANTHROPIC_API_KEY not set, falling back to mock")
            return MockProvider()
        from .claude import ClaudeProvider

        return ClaudeProvider(api_key=api_key)

    if name == "openai":
        api_key = config.provider_keys.get("openai", "")
        if not api_key:
            logger.warning("OPENAI_API_KEY not set, falling back to mock")
            return MockProvider()
        from .openai import OpenAIProvider

        return OpenAIProvider(api_key=api_key)

    logger.warning("Unknown provider %r, falling back to mock", name)
    return MockProvider()
