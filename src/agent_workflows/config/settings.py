"""
Settings master configuration and global helpers.
"""

from __future__ import annotations

import dataclasses
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import jsonschema
from dotenv import find_dotenv, load_dotenv

from ..config_schema import CONFIG_SCHEMA
from .logging import LoggingConfig
from .provider import AnthropicConfig, GoogleConfig, OpenAIConfig, ProviderConfig
from .workflow import WorkflowDefaults

_SECTION_TYPES: dict[str, type] = {
    "openai": OpenAIConfig,
    "anthropic": AnthropicConfig,
    "google": GoogleConfig,
    "workflow": WorkflowDefaults,
    "logging": LoggingConfig,
}


@dataclass
class Settings:
    """
    Master configuration for agent workflows.

    This aggregates all configuration sections into a single object
    that can be loaded from environment variables, files, or constructed
    programmatically.
    """

    # Provider configurations
    openai: OpenAIConfig = field(default_factory=OpenAIConfig)
    anthropic: AnthropicConfig = field(default_factory=AnthropicConfig)
    google: GoogleConfig = field(default_factory=GoogleConfig)

    # Workflow defaults
    workflow: WorkflowDefaults = field(default_factory=WorkflowDefaults)

    # Logging configuration
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def provider_config(self, name: str) -> ProviderConfig | None:
        """Provider section by key, or None for unknown providers."""
        section = getattr(self, name, None)
        return section if isinstance(section, ProviderConfig) else None

    @classmethod
    def from_env(cls, prefix: str = "WORKFLOW_") -> Settings:
        """
        Load settings from environment variables.

        Environment variables are prefixed (default: WORKFLOW_) and use
        underscore-separated paths for nested settings.

        Example:
            WORKFLOW_OPENAI_API_KEY=sk-...
            WORKFLOW_MAX_RETRIES=2
            WORKFLOW_LOG_LEVEL=DEBUG
        """
        settings = cls()

        # Provider settings
        for name in ("openai", "anthropic", "google"):
            section = getattr(settings, name)
            upper = name.upper()
            if key := os.getenv(f"{prefix}{upper}_API_KEY"):
                section.api_key = key
            if url := os.getenv(f"{prefix}{upper}_BASE_URL"):
                section.base_url = url
            if model := os.getenv(f"{prefix}{upper}_MODEL"):
                section.default_model = model

        # Workflow defaults
        workflow_overrides: dict[str, Any] = {}
        if provider := os.getenv(f"{prefix}PROVIDER"):
            workflow_overrides["provider"] = provider.lower()
        if model := os.getenv(f"{prefix}MODEL"):
            workflow_overrides["model"] = model
        if max_steps := os.getenv(f"{prefix}MAX_STEPS"):
            workflow_overrides["max_steps"] = int(max_steps)
        if max_retries := os.getenv(f"{prefix}MAX_RETRIES"):
            workflow_overrides["max_retries"] = int(max_retries)
        if retry_delay := os.getenv(f"{prefix}RETRY_DELAY"):
            workflow_overrides["retry_delay"] = float(retry_delay)
        if timeout := os.getenv(f"{prefix}TIMEOUT"):
            workflow_overrides["timeout"] = float(timeout)
        if threshold := os.getenv(f"{prefix}QUALITY_THRESHOLD"):
            workflow_overrides["quality_threshold"] = int(threshold)
        if max_iterations := os.getenv(f"{prefix}MAX_ITERATIONS"):
            workflow_overrides["max_iterations"] = int(max_iterations)
        if workflow_overrides:
            settings.workflow = dataclasses.replace(settings.workflow, **workflow_overrides)

        # Logging settings
        logging_overrides: dict[str, Any] = {}
        if level := os.getenv(f"{prefix}LOG_LEVEL"):
            logging_overrides["level"] = level.upper()
        if log_format := os.getenv(f"{prefix}LOG_FORMAT"):
            logging_overrides["format"] = log_format.lower()
        if logging_overrides:
            settings.logging = dataclasses.replace(settings.logging, **logging_overrides)

        return settings

    @classmethod
    def from_file(cls, path: str | Path) -> Settings:
        """
        Load settings from a YAML or TOML file.

        Args:
            path: Path to configuration file (.yaml, .yml, or .toml)

        Returns:
            Settings object with values from file
        """
        path = Path(path)

        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        suffix = path.suffix.lower()

        if suffix in (".yaml", ".yml"):
            try:
                import yaml  # type: ignore[import-untyped]
            except ImportError as exc:
                raise ImportError("PyYAML is required for YAML config files: pip install pyyaml") from exc
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        elif suffix == ".toml":
            import tomllib

            with open(path, "rb") as f:
                data = tomllib.load(f)
        else:
            raise ValueError(f"Unsupported config file format: {suffix}")

        return cls.from_dict(data)

    @classmethod
    def default(cls) -> Settings:
        """Create default configuration."""
        return cls()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Settings:
        """
        Create Settings from a dictionary.

        The dictionary is validated against the configuration schema before
        any section is built; each section then runs its own validation.
        """
        try:
            jsonschema.validate(instance=data, schema=CONFIG_SCHEMA)
        except jsonschema.ValidationError as e:
            raise ValueError(f"Configuration validation failed: {e.message}") from e

        sections = {
            name: section_type(**data[name])
            for name, section_type in _SECTION_TYPES.items()
            if name in data
        }
        return cls(**sections)

    def to_dict(self) -> dict[str, Any]:
        """Convert settings to dictionary."""
        return dataclasses.asdict(self)


# =============================================================================
# Global Settings & Helpers
# =============================================================================

_global_settings: Settings | None = None


def get_settings() -> Settings:
    """Get the global settings instance, creating from the environment if needed."""
    global _global_settings
    if _global_settings is None:
        _global_settings = Settings.from_env()
    return _global_settings


def configure(settings: Settings | None = None, **kwargs) -> Settings:
    """
    Configure global settings.

    Args:
        settings: Settings object to use globally
        **kwargs: Override specific sections

    Returns:
        The configured Settings object
    """
    global _global_settings

    if settings is not None:
        _global_settings = settings
    elif _global_settings is None:
        _global_settings = Settings.from_env()

    for key, value in kwargs.items():
        if hasattr(_global_settings, key):
            setattr(_global_settings, key, value)

    return _global_settings


def load_env(path: str | None = None, *, override: bool = False) -> bool:
    """
    Load environment variables from a .env file.

    Args:
        path: Optional path to a .env file. If not provided, uses find_dotenv().
        override: Whether to override existing environment variables.

    Returns:
        True if a .env file was found and loaded, False otherwise.
    """
    env_path = path or find_dotenv(usecwd=True)
    if not env_path:
        return False
    return load_dotenv(env_path, override=override)


__all__ = ["Settings", "get_settings", "configure", "load_env"]
