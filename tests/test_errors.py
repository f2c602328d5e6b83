"""Tests for the error taxonomy."""

from __future__ import annotations

import asyncio

import pytest

from agent_workflows.errors import (
    AuthenticationError,
    ConfigurationError,
    ErrorCode,
    ErrorContext,
    InsufficientResultsError,
    InvalidResponseError,
    MissingAPIKeyError,
    NoRouteMatchedError,
    ProviderError,
    ProviderTimeoutError,
    ProviderUnavailableError,
    RateLimitError,
    WorkflowCancelledError,
    WorkflowError,
    error_from_status,
    error_message,
    is_retryable,
)


class TestWorkflowError:
    """Base error behavior."""

    def test_str_includes_code(self):
        error = WorkflowError("boom")
        assert str(error) == "[ERR_9000] boom"

    def test_str_includes_execution_id(self):
        error = WorkflowError("boom", context=ErrorContext(execution_id="wf_1"))
        assert str(error) == "[ERR_9000] boom (execution_id=wf_1)"

    def test_overrides(self):
        error = WorkflowError("boom", code=ErrorCode.WORKFLOW_ERROR, retryable=True)
        assert error.code == ErrorCode.WORKFLOW_ERROR
        assert error.retryable is True

    def test_to_dict(self):
        cause = ValueError("root")
        error = ProviderError(
            "upstream",
            context=ErrorContext(agent_id="a", extra={"model": "m"}),
            cause=cause,
        )

        data = error.to_dict()

        assert data["error_type"] == "ProviderError"
        assert data["code"] == "ERR_1000"
        assert data["retryable"] is False
        assert data["context"]["agent_id"] == "a"
        assert data["context"]["model"] == "m"
        assert data["cause"] == "root"


class TestSubclasses:
    def test_retryable_classification(self):
        assert RateLimitError().retryable
        assert ProviderUnavailableError().retryable
        assert ProviderTimeoutError().retryable
        assert not AuthenticationError().retryable
        assert not InvalidResponseError().retryable
        assert not WorkflowCancelledError().retryable

    def test_rate_limit_retry_after(self):
        error = RateLimitError(retry_after=2.5)
        assert error.retry_after == 2.5
        assert error.http_status == 429

    def test_insufficient_results_message(self):
        error = InsufficientResultsError(successful=1, required=2, failed=1)
        assert error.message == "Insufficient successful agents: 1/2 required. 1 agent(s) failed."
        assert error.code == ErrorCode.INSUFFICIENT_RESULTS

    def test_defaults(self):
        assert WorkflowCancelledError().message == "Workflow cancelled by user"
        assert NoRouteMatchedError().message == "No routes matched and no fallback agent configured"

    def test_missing_api_key_is_configuration_error(self):
        error = MissingAPIKeyError(provider="openai", env_var="OPENAI_API_KEY")
        assert isinstance(error, ConfigurationError)
        assert error.env_var == "OPENAI_API_KEY"
        assert error.code == ErrorCode.MISSING_API_KEY


class TestErrorFromStatus:
    @pytest.mark.parametrize(
        "status,error_cls",
        [
            (401, AuthenticationError),
            (403, AuthenticationError),
            (429, RateLimitError),
            (500, InvalidResponseError),
            (502, ProviderUnavailableError),
            (503, ProviderUnavailableError),
            (504, ProviderTimeoutError),
        ],
    )
    def test_mapping(self, status, error_cls):
        error = error_from_status(status, "msg")
        assert type(error) is error_cls
        assert error.message == "msg"

    def test_unknown_status(self):
        error = error_from_status(418, "teapot")
        assert type(error) is ProviderError
        assert error.http_status == 418

    def test_no_status(self):
        assert type(error_from_status(None, "network")) is ProviderError


def test_error_message_strips_code():
    assert error_message(ProviderError("plain")) == "plain"
    assert error_message(ValueError("value")) == "value"


@pytest.mark.parametrize(
    "error,expected",
    [
        (RateLimitError(), True),
        (ProviderError("x"), False),
        (asyncio.TimeoutError(), True),
        (ConnectionResetError(), True),
        (ValueError("x"), False),
    ],
)
def test_is_retryable(error, expected):
    assert is_retryable(error) is expected
