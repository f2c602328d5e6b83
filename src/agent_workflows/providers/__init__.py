"""
Provider abstraction layer.

This module provides a unified streaming interface over different LLM providers.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from ..errors import ConfigurationError
from .anthropic import ANTHROPIC_AVAILABLE, AnthropicProvider
from .base import BaseProvider, Provider
from .google import GOOGLE_AVAILABLE, GoogleProvider
from .openai import OpenAIProvider
from .types import (
    Message,
    MessageInput,
    Role,
    StreamEvent,
    StreamEventType,
    Usage,
    normalize_messages,
)

if TYPE_CHECKING:
    from ..config import ProviderConfig

PROVIDER_CLASSES: dict[str, type[BaseProvider]] = {
    "openai": OpenAIProvider,
    "anthropic": AnthropicProvider,
    "google": GoogleProvider,
}


def create_provider(name: str, model: str | None = None, config: ProviderConfig | None = None) -> BaseProvider:
    """
    Build a provider by key.

    Args:
        name: "openai", "anthropic" or "google"
        model: Model name; falls back to ``config.default_model``
        config: Provider settings (API key, base URL, timeout, retries)
    """
    provider_cls = PROVIDER_CLASSES.get(name)
    if provider_cls is None:
        raise ConfigurationError(f"Unknown provider: {name!r}")

    model = model or (config.default_model if config else None)
    if not model:
        raise ConfigurationError(f"No model configured for provider {name!r}")

    if config is None:
        return provider_cls(model)
    if provider_cls is OpenAIProvider:
        return OpenAIProvider(
            model,
            api_key=config.api_key,
            base_url=config.base_url,
            organization=config.organization,
            timeout=config.timeout,
            max_retries=config.max_retries,
        )
    if provider_cls is AnthropicProvider:
        return AnthropicProvider(
            model,
            api_key=config.api_key,
            base_url=config.base_url,
            timeout=config.timeout,
            max_retries=config.max_retries,
            max_tokens=config.default_max_tokens or 4096,
        )
    return GoogleProvider(model, api_key=config.api_key, base_url=config.base_url)


__all__ = [
    # Protocols and base classes
    "Provider",
    "BaseProvider",
    # Provider implementations
    "OpenAIProvider",
    "AnthropicProvider",
    "ANTHROPIC_AVAILABLE",
    "GoogleProvider",
    "GOOGLE_AVAILABLE",
    "PROVIDER_CLASSES",
    "create_provider",
    # Types
    "Role",
    "StreamEventType",
    "Message",
    "Usage",
    "StreamEvent",
    "MessageInput",
    "normalize_messages",
]
