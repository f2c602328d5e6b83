"""
Workflow default configuration.
"""

from __future__ import annotations

from dataclasses import dataclass

from .base import ProviderName


@dataclass
class WorkflowDefaults:
    """Defaults applied when a workflow config leaves a value unset."""

    # Model used when neither the workflow nor the agent names one
    provider: ProviderName = "openai"
    model: str | None = None
    temperature: float | None = None
    max_tokens: int | None = None

    # Agent execution
    max_steps: int = 5
    max_retries: int = 0
    retry_delay: float = 1.0
    retry_backoff: float = 1.0
    timeout: float | None = None

    # Strategy defaults
    min_successful_agents: int = 1
    quality_threshold: int = 90
    max_iterations: int = 5

    def __post_init__(self):
        if self.provider not in ("openai", "anthropic", "google", "custom"):
            raise ValueError(f"Invalid provider: {self.provider}")
        if self.max_steps < 1:
            raise ValueError("max_steps must be at least 1")
        if self.max_retries < 0:
            raise ValueError("max_retries cannot be negative")
        if self.retry_delay < 0:
            raise ValueError("retry_delay cannot be negative")
        if self.retry_backoff < 1.0:
            raise ValueError("retry_backoff must be at least 1.0")
        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be positive")
        if self.min_successful_agents < 1:
            raise ValueError("min_successful_agents must be at least 1")
        if not 0 <= self.quality_threshold <= 100:
            raise ValueError("quality_threshold must be between 0 and 100")
        if self.max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")


__all__ = ["WorkflowDefaults"]
