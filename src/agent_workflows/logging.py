"""
Structured Logging for agent workflows.

This module provides:
- Structured JSON logging with consistent fields
- Workflow and step records correlated by execution id
- Timing helpers for step and run durations
- Log level filtering and formatting options
"""

from __future__ import annotations

import json
import logging
import sys
import time
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any

# =============================================================================
# Log Record Types
# =============================================================================


def _utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class LogContext:
    """Context information attached to log records."""

    trace_id: str | None = None
    execution_id: str | None = None
    workflow: str | None = None
    agent_id: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        d = {k: v for k, v in asdict(self).items() if v is not None and k != "extra"}
        d.update(self.extra)
        return d

    def with_update(self, **kwargs) -> LogContext:
        """Create a new context with updated values."""
        return LogContext(
            trace_id=kwargs.get("trace_id", self.trace_id),
            execution_id=kwargs.get("execution_id", self.execution_id),
            workflow=kwargs.get("workflow", self.workflow),
            agent_id=kwargs.get("agent_id", self.agent_id),
            extra={**self.extra, **kwargs.get("extra", {})},
        )


@dataclass
class StepLog:
    """Log record for one agent step."""

    execution_id: str
    step_id: str
    agent_id: str
    agent_name: str

    timestamp: str = field(default_factory=_utcnow_iso)
    duration_ms: float | None = None

    success: bool = True
    error: str | None = None
    attempt: int = 1

    input_preview: str | None = None
    output_preview: str | None = None
    output_length: int = 0

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}


@dataclass
class WorkflowLog:
    """Log record for a workflow run reaching a terminal status."""

    execution_id: str
    workflow: str
    status: str

    timestamp: str = field(default_factory=_utcnow_iso)
    duration_ms: float | None = None

    step_count: int = 0
    total_tokens: int = 0
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}


# =============================================================================
# Structured Logger
# =============================================================================


class StructuredLogger:
    """
    Logger with structured JSON output and context tracking.

    The current context lives in a context variable, so concurrent runs
    (and the tasks they spawn) each see their own execution id.

    Example:
        ```python
        logger = StructuredLogger("agent_workflows")

        with logger.trace_context(execution_id=state.execution_id, workflow="sequential"):
            logger.log_step(StepLog(...))
        ```
    """

    def __init__(
        self,
        name: str = "agent_workflows",
        level: str = "INFO",
        json_output: bool = True,
        log_workflow_events: bool = True,
        log_step_events: bool = True,
    ):
        self.name = name
        self.json_output = json_output
        self.log_workflow_events = log_workflow_events
        self.log_step_events = log_step_events

        self._logger = logging.getLogger(name)
        self._logger.setLevel(getattr(logging, level.upper()))

        self._context: ContextVar[LogContext] = ContextVar(
            f"{name}_log_context", default=LogContext()
        )

        if not self._logger.handlers:
            handler = logging.StreamHandler(sys.stdout)
            if json_output:
                handler.setFormatter(JSONFormatter())
            else:
                handler.setFormatter(TextFormatter())
            self._logger.addHandler(handler)

    @property
    def context(self) -> LogContext:
        return self._context.get()

    def set_context(self, **kwargs) -> None:
        """Update the current log context."""
        self._context.set(self._context.get().with_update(**kwargs))

    @contextmanager
    def trace_context(
        self,
        trace_id: str | None = None,
        **kwargs,
    ) -> Iterator[str]:
        """
        Context manager for trace correlation.

        Args:
            trace_id: Trace ID (auto-generated if not provided)
            **kwargs: Additional context fields

        Yields:
            The trace ID
        """
        trace_id = trace_id or generate_trace_id()
        token = self._context.set(self._context.get().with_update(trace_id=trace_id, **kwargs))
        try:
            yield trace_id
        finally:
            self._context.reset(token)

    def _log(
        self,
        level: int,
        message: str,
        event_type: str | None = None,
        data: dict[str, Any] | None = None,
    ) -> None:
        """Internal logging method."""
        if not self._logger.isEnabledFor(level):
            return

        record_data = {
            "message": message,
            **self._context.get().to_dict(),
        }

        if event_type:
            record_data["event_type"] = event_type

        if data:
            record_data.update(data)

        if self.json_output:
            self._logger.log(level, json.dumps(record_data, default=str))
        else:
            extras = " ".join(f"{k}={v}" for k, v in record_data.items() if k != "message")
            self._logger.log(level, f"{message} {extras}")

    def debug(self, message: str, **kwargs) -> None:
        self._log(logging.DEBUG, message, data=kwargs)

    def info(self, message: str, **kwargs) -> None:
        self._log(logging.INFO, message, data=kwargs)

    def warning(self, message: str, **kwargs) -> None:
        self._log(logging.WARNING, message, data=kwargs)

    def error(self, message: str, **kwargs) -> None:
        self._log(logging.ERROR, message, data=kwargs)

    # Typed logging methods

    def log_workflow_start(self, execution_id: str, workflow: str, total_steps: int) -> None:
        """Log the start of a workflow run."""
        if not self.log_workflow_events:
            return
        self._log(
            logging.INFO,
            f"Workflow {workflow} started",
            event_type="workflow_start",
            data={"execution_id": execution_id, "workflow": workflow, "total_steps": total_steps},
        )

    def log_workflow(self, record: WorkflowLog) -> None:
        """Log a workflow run reaching a terminal status."""
        if not self.log_workflow_events:
            return
        level = logging.INFO if record.status == "completed" else logging.WARNING
        message = f"Workflow {record.workflow} {record.status}"
        if record.duration_ms is not None:
            message += f" ({record.duration_ms:.0f}ms)"
        self._log(level, message, event_type="workflow", data=record.to_dict())

    def log_step(self, record: StepLog) -> None:
        """Log a finished agent step."""
        if not self.log_step_events:
            return
        level = logging.DEBUG if record.success else logging.WARNING
        message = f"Step {record.step_id} ({record.agent_name})"
        message += " completed" if record.success else " failed"
        self._log(level, message, event_type="step", data=record.to_dict())

    def log_retry(self, agent_id: str, attempt: int, delay: float, error: BaseException) -> None:
        """Log a retried agent invocation."""
        self._log(
            logging.WARNING,
            f"Retrying agent {agent_id} (attempt {attempt}) in {delay:.2f}s",
            event_type="retry",
            data={
                "agent_id": agent_id,
                "attempt": attempt,
                "delay_s": delay,
                "error_type": type(error).__name__,
                "error_message": str(error),
            },
        )

    def log_error(
        self,
        error: BaseException,
        message: str | None = None,
        **kwargs,
    ) -> None:
        """Log an error with context."""
        error_data = {
            "error_type": type(error).__name__,
            "error_message": str(error),
            **kwargs,
        }

        # Extra fields carried by WorkflowError
        if hasattr(error, "code"):
            error_data["error_code"] = str(error.code.value)
        if hasattr(error, "retryable"):
            error_data["retryable"] = error.retryable
        if hasattr(error, "context") and error.context:
            error_data["error_context"] = error.context.to_dict()

        self._log(
            logging.ERROR,
            message or f"Error: {error}",
            event_type="error",
            data=error_data,
        )


# =============================================================================
# Formatters
# =============================================================================


class JSONFormatter(logging.Formatter):
    """JSON log formatter."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": _utcnow_iso(),
            "level": record.levelname,
            "logger": record.name,
        }

        try:
            message_data = json.loads(record.getMessage())
        except (json.JSONDecodeError, TypeError):
            message_data = None

        if isinstance(message_data, dict):
            log_data.update(message_data)
        else:
            log_data["message"] = record.getMessage()

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable text formatter."""

    LEVEL_COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.now(timezone.utc).strftime("%H:%M:%S.%f")[:-3]
        color = self.LEVEL_COLORS.get(record.levelname, "")
        reset = self.RESET if color else ""

        return f"{timestamp} {color}{record.levelname:8}{reset} {record.getMessage()}"


# =============================================================================
# Utilities
# =============================================================================


def generate_trace_id() -> str:
    """Generate a unique trace ID."""
    return f"trace_{uuid.uuid4().hex[:16]}"


def generate_execution_id() -> str:
    """Generate a unique workflow execution ID (``wf_<millis>_<random>``)."""
    return f"wf_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


def redact_api_key(key: str | None) -> str:
    """Redact an API key for safe logging."""
    if not key:
        return "<not set>"
    if len(key) <= 8:
        return "***"
    return f"{key[:4]}...{key[-4:]}"


def truncate_for_log(text: str, max_length: int = 200) -> str:
    """Truncate text for logging."""
    if len(text) <= max_length:
        return text
    return text[:max_length] + f"... ({len(text)} chars total)"


# =============================================================================
# Timing Utilities
# =============================================================================


@dataclass
class Timer:
    """Simple timer for measuring durations."""

    start_time: float = field(default_factory=time.perf_counter)
    end_time: float | None = None

    def stop(self) -> float:
        """Stop the timer and return duration in milliseconds."""
        self.end_time = time.perf_counter()
        return self.elapsed_ms

    @property
    def elapsed_ms(self) -> float:
        """Elapsed time in milliseconds."""
        end = self.end_time or time.perf_counter()
        return (end - self.start_time) * 1000

    @property
    def elapsed_s(self) -> float:
        """Elapsed time in seconds."""
        return self.elapsed_ms / 1000


@contextmanager
def timed() -> Iterator[Timer]:
    """Context manager for timing operations."""
    timer = Timer()
    try:
        yield timer
    finally:
        timer.stop()


# =============================================================================
# Global Logger
# =============================================================================

_default_logger: StructuredLogger | None = None


def get_logger(name: str = "agent_workflows") -> StructuredLogger:
    """Get or create a structured logger."""
    global _default_logger
    if _default_logger is None or _default_logger.name != name:
        _default_logger = StructuredLogger(name)
    return _default_logger


def configure_logging(
    level: str = "INFO",
    json_output: bool = True,
    **kwargs: Any,
) -> StructuredLogger:
    """Configure the default logger."""
    global _default_logger
    _default_logger = StructuredLogger(
        level=level,
        json_output=json_output,
        **kwargs,
    )
    return _default_logger


__all__ = [
    # Context
    "LogContext",
    # Log records
    "StepLog",
    "WorkflowLog",
    # Logger
    "StructuredLogger",
    # Formatters
    "JSONFormatter",
    "TextFormatter",
    # Timing
    "Timer",
    "timed",
    # Utilities
    "generate_trace_id",
    "generate_execution_id",
    "redact_api_key",
    "truncate_for_log",
    # Global
    "get_logger",
    "configure_logging",
]
