"""Tests for RetryPolicy."""

from __future__ import annotations

import pytest

from agent_workflows.errors import (
    ConfigurationError,
    ProviderError,
    RateLimitError,
    WorkflowCancelledError,
)
from agent_workflows.retry import RetryPolicy


class TestDelays:
    def test_constant(self):
        policy = RetryPolicy(max_retries=3, delay=1.5)
        assert [policy.delay_for(n) for n in (1, 2, 3)] == [1.5, 1.5, 1.5]

    def test_exponential(self):
        policy = RetryPolicy(delay=1.0, backoff=2.0)
        assert [policy.delay_for(n) for n in (1, 2, 3, 4)] == [1.0, 2.0, 4.0, 8.0]

    def test_capped(self):
        policy = RetryPolicy(delay=10.0, backoff=3.0, max_delay=20.0)
        assert policy.delay_for(3) == 20.0

    def test_max_attempts(self):
        assert RetryPolicy(max_retries=0).max_attempts == 1
        assert RetryPolicy(max_retries=2).max_attempts == 3


class TestIsRetryable:
    def test_uses_error_classification_without_allowlist(self):
        policy = RetryPolicy()
        assert policy.is_retryable(RateLimitError())
        assert not policy.is_retryable(ProviderError("bad request"))
        # Plain exceptions carry no classification and are retried
        assert policy.is_retryable(RuntimeError("flaky"))

    def test_never_retries_cancellation_or_config(self):
        policy = RetryPolicy(retry_if=lambda e: True)
        assert not policy.is_retryable(WorkflowCancelledError())
        assert not policy.is_retryable(ConfigurationError("bad"))

    def test_allowlist_substring(self):
        policy = RetryPolicy(retryable_errors=("timeout",))
        assert policy.is_retryable(RuntimeError("read timeout"))
        assert not policy.is_retryable(RuntimeError("bad input"))

    def test_allowlist_matches_message_without_code(self):
        policy = RetryPolicy(retryable_errors=("^overloaded",))
        assert policy.is_retryable(ProviderError("overloaded, try later"))

    def test_allowlist_regex(self):
        policy = RetryPolicy(retryable_errors=(r"status 5\d\d",))
        assert policy.is_retryable(RuntimeError("status 503 from upstream"))
        assert not policy.is_retryable(RuntimeError("status 404"))

    def test_invalid_regex_is_treated_as_substring_only(self):
        policy = RetryPolicy(retryable_errors=("[unclosed",))
        assert policy.is_retryable(RuntimeError("got [unclosed bracket"))
        assert not policy.is_retryable(RuntimeError("other"))

    def test_predicate_overrides_allowlist(self):
        policy = RetryPolicy(retryable_errors=("never",), retry_if=lambda e: isinstance(e, KeyError))
        assert policy.is_retryable(KeyError("k"))
        assert not policy.is_retryable(RuntimeError("never"))

    def test_allowlist_list_is_normalized(self):
        policy = RetryPolicy(retryable_errors=["a", "b"])
        assert policy.retryable_errors == ("a", "b")


@pytest.mark.parametrize(
    "kwargs",
    [
        {"max_retries": -1},
        {"delay": -0.1},
        {"backoff": 0.5},
        {"max_delay": -1},
    ],
)
def test_validation(kwargs):
    with pytest.raises(ConfigurationError):
        RetryPolicy(**kwargs)
