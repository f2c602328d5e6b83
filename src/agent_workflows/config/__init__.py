"""
Configuration system for agent workflows.

This package provides typed configuration classes with:
- Dataclass-based settings with validation
- Environment variable loading
- YAML/TOML file loading
- Sensible defaults with override capability
"""

from .base import LogFormat, LogLevel, ProviderName
from .logging import LoggingConfig
from .provider import AnthropicConfig, GoogleConfig, OpenAIConfig, ProviderConfig
from .settings import Settings, configure, get_settings, load_env
from .workflow import WorkflowDefaults

__all__ = [
    # Types
    "LogLevel",
    "LogFormat",
    "ProviderName",
    # Provider configs
    "ProviderConfig",
    "OpenAIConfig",
    "AnthropicConfig",
    "GoogleConfig",
    # Other configs
    "WorkflowDefaults",
    "LoggingConfig",
    # Master config
    "Settings",
    # Global functions
    "get_settings",
    "configure",
    "load_env",
]
