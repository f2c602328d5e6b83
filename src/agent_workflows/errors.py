"""
Error taxonomy for agent-workflows.

This module provides a hierarchical exception system with:
- Error codes for programmatic handling
- Retryable vs non-retryable classification
- Structured context (execution, workflow, agent, step) for debugging
- Provider HTTP status mapping
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Standardized error codes for workflow execution."""

    # Provider errors (1xxx)
    PROVIDER_ERROR = "ERR_1000"
    RATE_LIMIT = "ERR_1001"
    AUTHENTICATION = "ERR_1002"
    PROVIDER_UNAVAILABLE = "ERR_1007"
    PROVIDER_TIMEOUT = "ERR_1008"
    INVALID_RESPONSE = "ERR_1009"

    # Workflow errors (5xxx)
    WORKFLOW_ERROR = "ERR_5000"
    WORKFLOW_CANCELLED = "ERR_5001"
    WORKFLOW_TIMEOUT = "ERR_5002"
    INSUFFICIENT_RESULTS = "ERR_5003"
    NO_ROUTE_MATCHED = "ERR_5004"
    INVALID_STATE = "ERR_5005"

    # Configuration errors (6xxx)
    CONFIG_ERROR = "ERR_6000"
    MISSING_API_KEY = "ERR_6001"

    # Internal errors (9xxx)
    INTERNAL_ERROR = "ERR_9000"


@dataclass
class ErrorContext:
    """Structured context for error debugging."""

    execution_id: str | None = None
    workflow: str | None = None
    agent_id: str | None = None
    step_id: str | None = None
    attempt: int = 1
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "execution_id": self.execution_id,
            "workflow": self.workflow,
            "agent_id": self.agent_id,
            "step_id": self.step_id,
            "attempt": self.attempt,
            **self.extra,
        }


class WorkflowError(Exception):
    """
    Base exception for all agent-workflows errors.

    Attributes:
        code: Standardized error code for programmatic handling
        message: Human-readable error message
        retryable: Whether the failed operation can be retried
        context: Structured debugging context
        cause: Original exception that caused this error
    """

    code: ErrorCode = ErrorCode.INTERNAL_ERROR
    retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        code: ErrorCode | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        if retryable is not None:
            self.retryable = retryable
        self.context = context or ErrorContext()
        self.cause = cause

    def __str__(self) -> str:
        parts = [f"[{self.code.value}] {self.message}"]
        if self.context.execution_id:
            parts.append(f"(execution_id={self.context.execution_id})")
        return " ".join(parts)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "code": self.code.value,
            "message": self.message,
            "retryable": self.retryable,
            "context": self.context.to_dict(),
            "cause": str(self.cause) if self.cause else None,
        }


# =============================================================================
# Provider Errors
# =============================================================================


class ProviderError(WorkflowError):
    """Base class for errors raised by a chat provider."""

    code = ErrorCode.PROVIDER_ERROR
    retryable = False
    http_status: int | None = None

    def __init__(
        self,
        message: str,
        *,
        http_status: int | None = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        self.http_status = http_status


class RateLimitError(ProviderError):
    """Rate limit exceeded. Operation can be retried after a delay."""

    code = ErrorCode.RATE_LIMIT
    retryable = True

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        *,
        retry_after: float | None = None,
        **kwargs,
    ):
        super().__init__(message, http_status=429, **kwargs)
        self.retry_after = retry_after


class AuthenticationError(ProviderError):
    """Invalid or missing API key. Not retryable."""

    code = ErrorCode.AUTHENTICATION

    def __init__(
        self,
        message: str = "Authentication failed. Check your API key.",
        **kwargs,
    ):
        super().__init__(message, http_status=401, **kwargs)


class ProviderUnavailableError(ProviderError):
    """Provider service is temporarily unavailable. Retryable."""

    code = ErrorCode.PROVIDER_UNAVAILABLE
    retryable = True

    def __init__(
        self,
        message: str = "Provider service unavailable",
        **kwargs,
    ):
        super().__init__(message, http_status=503, **kwargs)


class ProviderTimeoutError(ProviderError):
    """Request to provider timed out. Retryable."""

    code = ErrorCode.PROVIDER_TIMEOUT
    retryable = True

    def __init__(
        self,
        message: str = "Request timed out",
        **kwargs,
    ):
        super().__init__(message, http_status=504, **kwargs)


class InvalidResponseError(ProviderError):
    """Provider returned an invalid or unexpected response."""

    code = ErrorCode.INVALID_RESPONSE

    def __init__(
        self,
        message: str = "Invalid response from provider",
        **kwargs,
    ):
        super().__init__(message, http_status=500, **kwargs)


# =============================================================================
# Workflow Errors
# =============================================================================


class WorkflowCancelledError(WorkflowError):
    """The run was cancelled through its cancellation token."""

    code = ErrorCode.WORKFLOW_CANCELLED

    def __init__(self, message: str = "Workflow cancelled by user", **kwargs):
        super().__init__(message, **kwargs)


class WorkflowTimeoutError(WorkflowError):
    """Cumulative wall-clock time exceeded the configured timeout."""

    code = ErrorCode.WORKFLOW_TIMEOUT

    def __init__(
        self,
        message: str = "Workflow timeout exceeded",
        *,
        timeout: float | None = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        self.timeout = timeout


class InsufficientResultsError(WorkflowError):
    """Fewer parallel agents succeeded than the configured minimum."""

    code = ErrorCode.INSUFFICIENT_RESULTS

    def __init__(
        self,
        successful: int,
        required: int,
        failed: int,
        **kwargs,
    ):
        message = (
            f"Insufficient successful agents: {successful}/{required} required. "
            f"{failed} agent(s) failed."
        )
        super().__init__(message, **kwargs)
        self.successful = successful
        self.required = required
        self.failed = failed


class NoRouteMatchedError(WorkflowError):
    """Classification matched no route and no fallback agent exists."""

    code = ErrorCode.NO_ROUTE_MATCHED

    def __init__(
        self,
        message: str = "No routes matched and no fallback agent configured",
        **kwargs,
    ):
        super().__init__(message, **kwargs)


class InvalidStateError(WorkflowError):
    """Illegal run-state transition, e.g. executing a finished runner again."""

    code = ErrorCode.INVALID_STATE


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(WorkflowError):
    """Workflow or provider configuration is invalid."""

    code = ErrorCode.CONFIG_ERROR


class MissingAPIKeyError(ConfigurationError):
    """Required API key is not set."""

    code = ErrorCode.MISSING_API_KEY

    def __init__(
        self,
        message: str = "API key not found",
        *,
        provider: str | None = None,
        env_var: str | None = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        self.provider = provider
        self.env_var = env_var


# =============================================================================
# Helpers
# =============================================================================


def error_from_status(
    status: int | None,
    message: str,
    *,
    context: ErrorContext | None = None,
) -> ProviderError:
    """
    Create an appropriate ProviderError from an HTTP status code.

    Args:
        status: HTTP status code (``None`` for transport-level failures)
        message: Error message from the provider
        context: Additional error context

    Returns:
        Appropriate ProviderError subclass
    """
    error_map: dict[int, type[ProviderError]] = {
        401: AuthenticationError,
        403: AuthenticationError,
        429: RateLimitError,
        500: InvalidResponseError,
        502: ProviderUnavailableError,
        503: ProviderUnavailableError,
        504: ProviderTimeoutError,
    }

    error_class = error_map.get(status or 0)
    if error_class is None:
        return ProviderError(message, http_status=status, context=context)
    return error_class(message, context=context)


def error_message(error: BaseException) -> str:
    """Plain message of an error, without the code prefix added by ``__str__``."""
    if isinstance(error, WorkflowError):
        return error.message
    return str(error)


def is_retryable(error: BaseException) -> bool:
    """
    Check if an error is retryable by its own classification.

    Workflow errors carry a ``retryable`` flag; timeouts and connection
    failures from the standard library count as retryable.
    """
    if isinstance(error, WorkflowError):
        return error.retryable

    retryable_types = (
        asyncio.TimeoutError,
        ConnectionError,
        TimeoutError,
    )
    return isinstance(error, retryable_types)


__all__ = [
    # Base
    "ErrorCode",
    "ErrorContext",
    "WorkflowError",
    # Provider errors
    "ProviderError",
    "RateLimitError",
    "AuthenticationError",
    "ProviderUnavailableError",
    "ProviderTimeoutError",
    "InvalidResponseError",
    # Workflow errors
    "WorkflowCancelledError",
    "WorkflowTimeoutError",
    "InsufficientResultsError",
    "NoRouteMatchedError",
    "InvalidStateError",
    # Config errors
    "ConfigurationError",
    "MissingAPIKeyError",
    # Utilities
    "error_from_status",
    "error_message",
    "is_retryable",
]
