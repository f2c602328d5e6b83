"""
Retry policy for agent invocations.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable

from .errors import ConfigurationError, WorkflowCancelledError, error_message


@dataclass(frozen=True)
class RetryPolicy:
    """
    Bounded retry with back-off for a single agent invocation.

    Attributes:
        max_retries: Retries after the first attempt (total attempts = max_retries + 1)
        delay: Seconds to wait before the first retry
        backoff: Multiplier applied to the delay after each retry (1.0 = constant)
        max_delay: Upper bound for the computed delay, in seconds
        retryable_errors: Allowlist of substrings or regular expressions matched
            against the error message. ``None`` means no allowlist.
        retry_if: Predicate over the raised exception; overrides the allowlist.
    """

    max_retries: int = 3
    delay: float = 1.0
    backoff: float = 1.0
    max_delay: float = 30.0
    retryable_errors: tuple[str, ...] | None = None
    retry_if: Callable[[BaseException], bool] | None = None

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ConfigurationError("max_retries must be >= 0")
        if self.delay < 0:
            raise ConfigurationError("delay must be >= 0")
        if self.backoff < 1.0:
            raise ConfigurationError("backoff must be >= 1.0")
        if self.max_delay < 0:
            raise ConfigurationError("max_delay must be >= 0")
        if self.retryable_errors is not None and not isinstance(self.retryable_errors, tuple):
            # Accept any iterable of patterns while keeping the value hashable
            object.__setattr__(self, "retryable_errors", tuple(self.retryable_errors))

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after failed attempt number ``attempt`` (1-based)."""
        return min(self.delay * (self.backoff ** (attempt - 1)), self.max_delay)

    def is_retryable(self, error: BaseException) -> bool:
        if isinstance(error, (WorkflowCancelledError, ConfigurationError)):
            return False
        if self.retry_if is not None:
            return bool(self.retry_if(error))
        if self.retryable_errors is None:
            return getattr(error, "retryable", True)

        message = error_message(error)
        return any(_matches(pattern, message) for pattern in self.retryable_errors)


def _matches(pattern: str, message: str) -> bool:
    if pattern in message:
        return True
    try:
        return re.search(pattern, message) is not None
    except re.error:
        return False


__all__ = ["RetryPolicy"]
