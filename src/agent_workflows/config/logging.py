"""
Logging configuration.
"""

from __future__ import annotations

from dataclasses import dataclass

from .base import LogFormat, LogLevel


@dataclass
class LoggingConfig:
    """Configuration for logging."""

    level: LogLevel = "INFO"
    format: LogFormat = "json"
    logger_name: str = "agent_workflows"

    # What to log
    log_workflow_events: bool = True
    log_step_events: bool = True

    def __post_init__(self):
        """Validate configuration after initialization."""
        valid_levels = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
        if self.level not in valid_levels:
            raise ValueError(f"Invalid log level: {self.level}. Must be one of {valid_levels}")
        valid_formats = ("text", "json")
        if self.format not in valid_formats:
            raise ValueError(f"Invalid log format: {self.format}. Must be one of {valid_formats}")

    def build_logger(self):
        """Create a StructuredLogger from this configuration."""
        from ..logging import StructuredLogger

        return StructuredLogger(
            self.logger_name,
            level=self.level,
            json_output=self.format == "json",
            log_workflow_events=self.log_workflow_events,
            log_step_events=self.log_step_events,
        )


__all__ = ["LoggingConfig"]
