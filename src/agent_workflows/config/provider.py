"""
Provider configuration classes.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import ClassVar


@dataclass
class ProviderConfig:
    """Configuration for an LLM provider."""

    # API settings
    api_key: str | None = None
    base_url: str | None = None
    organization: str | None = None

    # Request settings
    timeout: float = 60.0
    max_retries: int = 2

    # Model defaults
    default_model: str | None = None
    default_temperature: float | None = None
    default_max_tokens: int | None = None

    # Environment variable the API key is read from, for error messages
    api_key_env: ClassVar[str | None] = None

    def __post_init__(self):
        """Validate configuration after initialization."""
        if self.timeout <= 0:
            raise ValueError("timeout must be positive")
        if self.max_retries < 0:
            raise ValueError("max_retries cannot be negative")
        if self.default_temperature is not None and not 0.0 <= self.default_temperature <= 2.0:
            raise ValueError("default_temperature must be between 0.0 and 2.0")
        if self.default_max_tokens is not None and self.default_max_tokens < 1:
            raise ValueError("default_max_tokens must be positive")


@dataclass
class OpenAIConfig(ProviderConfig):
    """OpenAI-specific configuration."""

    api_key: str | None = field(default_factory=lambda: os.getenv("OPENAI_API_KEY"))
    default_model: str = "gpt-4o-mini"
    api_key_env: ClassVar[str | None] = "OPENAI_API_KEY"


@dataclass
class AnthropicConfig(ProviderConfig):
    """Anthropic-specific configuration."""

    api_key: str | None = field(default_factory=lambda: os.getenv("ANTHROPIC_API_KEY"))
    default_model: str = "claude-3-5-sonnet-latest"
    default_max_tokens: int | None = 4096
    api_key_env: ClassVar[str | None] = "ANTHROPIC_API_KEY"


@dataclass
class GoogleConfig(ProviderConfig):
    """Google-specific configuration."""

    api_key: str | None = field(default_factory=lambda: os.getenv("GOOGLE_API_KEY") or os.getenv("GEMINI_API_KEY"))
    default_model: str = "gemini-2.0-flash"
    api_key_env: ClassVar[str | None] = "GOOGLE_API_KEY"


__all__ = ["ProviderConfig", "OpenAIConfig", "AnthropicConfig", "GoogleConfig"]
