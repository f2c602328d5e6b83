"""Tests for structured logging."""

from __future__ import annotations

import json
import logging

import pytest

from agent_workflows.errors import ErrorContext, RateLimitError
from agent_workflows.logging import (
    JSONFormatter,
    LogContext,
    StepLog,
    StructuredLogger,
    Timer,
    WorkflowLog,
    generate_execution_id,
    generate_trace_id,
    redact_api_key,
    timed,
    truncate_for_log,
)


@pytest.fixture
def logger():
    return StructuredLogger("agent_workflows.test_logging", level="DEBUG")


def messages(caplog) -> list[dict]:
    return [json.loads(r.getMessage()) for r in caplog.records]


class TestStructuredLogger:
    def test_plain_messages_carry_fields(self, logger, caplog):
        with caplog.at_level(logging.DEBUG, logger=logger.name):
            logger.info("hello", answer=42)

        (record,) = messages(caplog)
        assert record == {"message": "hello", "answer": 42}

    def test_trace_context(self, logger, caplog):
        with caplog.at_level(logging.DEBUG, logger=logger.name):
            with logger.trace_context(execution_id="wf_1", workflow="parallel") as trace_id:
                logger.info("inside")
            logger.info("outside")

        inside, outside = messages(caplog)
        assert inside["trace_id"] == trace_id
        assert inside["execution_id"] == "wf_1"
        assert inside["workflow"] == "parallel"
        assert "execution_id" not in outside

    def test_level_filtering(self, caplog):
        logger = StructuredLogger("agent_workflows.test_logging_warn", level="WARNING")
        with caplog.at_level(logging.WARNING, logger=logger.name):
            logger.info("quiet")
            logger.warning("loud")

        assert [r["message"] for r in messages(caplog)] == ["loud"]

    def test_step_levels(self, logger, caplog):
        with caplog.at_level(logging.DEBUG, logger=logger.name):
            logger.log_step(StepLog(execution_id="wf", step_id="step_1", agent_id="a", agent_name="A"))
            logger.log_step(
                StepLog(execution_id="wf", step_id="step_2", agent_id="a", agent_name="A", success=False, error="x")
            )

        assert [r.levelno for r in caplog.records] == [logging.DEBUG, logging.WARNING]
        ok, failed = messages(caplog)
        assert ok["message"] == "Step step_1 (A) completed"
        assert failed["message"] == "Step step_2 (A) failed"
        assert failed["error"] == "x"

    def test_step_events_can_be_disabled(self, caplog):
        logger = StructuredLogger("agent_workflows.test_logging_nostep", level="DEBUG", log_step_events=False)
        with caplog.at_level(logging.DEBUG, logger=logger.name):
            logger.log_step(StepLog(execution_id="wf", step_id="s", agent_id="a", agent_name="A"))

        assert caplog.records == []

    def test_workflow_record(self, logger, caplog):
        with caplog.at_level(logging.DEBUG, logger=logger.name):
            logger.log_workflow(WorkflowLog(execution_id="wf", workflow="routing", status="error", duration_ms=12.4))

        (record,) = messages(caplog)
        assert caplog.records[0].levelno == logging.WARNING
        assert record["message"] == "Workflow routing error (12ms)"
        assert record["event_type"] == "workflow"

    def test_log_error_with_workflow_error(self, logger, caplog):
        error = RateLimitError(context=ErrorContext(agent_id="a", attempt=2))
        with caplog.at_level(logging.DEBUG, logger=logger.name):
            logger.log_error(error)

        (record,) = messages(caplog)
        assert record["error_type"] == "RateLimitError"
        assert record["error_code"] == "ERR_1001"
        assert record["retryable"] is True
        assert record["error_context"]["attempt"] == 2

    def test_log_retry(self, logger, caplog):
        with caplog.at_level(logging.DEBUG, logger=logger.name):
            logger.log_retry("a", 1, 0.5, RuntimeError("flaky"))

        (record,) = messages(caplog)
        assert record["event_type"] == "retry"
        assert record["delay_s"] == 0.5
        assert record["error_message"] == "flaky"

    def test_text_output(self, caplog):
        logger = StructuredLogger("agent_workflows.test_logging_text", json_output=False)
        with caplog.at_level(logging.INFO, logger=logger.name):
            logger.info("hello", answer=42)

        assert caplog.records[0].getMessage() == "hello answer=42"


class TestJSONFormatter:
    def test_merges_json_message(self):
        record = logging.LogRecord("n", logging.INFO, __file__, 1, json.dumps({"message": "m", "k": 1}), None, None)
        data = json.loads(JSONFormatter().format(record))
        assert data["level"] == "INFO"
        assert data["k"] == 1

    def test_plain_message(self):
        record = logging.LogRecord("n", logging.INFO, __file__, 1, "plain text", None, None)
        assert json.loads(JSONFormatter().format(record))["message"] == "plain text"


def test_log_context_update():
    context = LogContext(trace_id="t", extra={"a": 1}).with_update(agent_id="x", extra={"b": 2})
    assert context.to_dict() == {"trace_id": "t", "agent_id": "x", "a": 1, "b": 2}


def test_ids():
    assert generate_trace_id().startswith("trace_")
    assert generate_execution_id().startswith("wf_")
    assert generate_execution_id() != generate_execution_id()


@pytest.mark.parametrize(
    "key,expected",
    [(None, "<not set>"), ("short", "***"), ("sk-1234567890abcd", "sk-1...abcd")],
)
def test_redact_api_key(key, expected):
    assert redact_api_key(key) == expected


def test_truncate_for_log():
    assert truncate_for_log("abc", 5) == "abc"
    assert truncate_for_log("abcdefgh", 3) == "abc... (8 chars total)"


def test_timer():
    with timed() as timer:
        pass
    assert isinstance(timer, Timer)
    assert timer.end_time is not None
    assert timer.elapsed_ms >= 0
