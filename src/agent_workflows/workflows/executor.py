"""
Agent execution base shared by every workflow runner.

AgentExecutor owns a RunState, invokes single agents through a ChatBackend,
records each invocation as an ExecutionStep, emits progress events and
applies the configured RetryPolicy. Subclasses implement ``_run`` and get
the run lifecycle (status transitions, terminal events, logging) for free.
"""

from __future__ import annotations

import asyncio
import itertools
from abc import ABC, abstractmethod
from collections.abc import Iterable
from dataclasses import replace
from typing import Any, Generic, TypeVar

from ..cancellation import CancellationToken
from ..chat.types import ChatBackend, ModelConfig, TokenUsage, utcnow
from ..errors import ErrorContext, WorkflowCancelledError, WorkflowError, error_message
from ..logging import StepLog, StructuredLogger, Timer, WorkflowLog, get_logger, truncate_for_log
from .events import (
    ProgressCallback,
    ProgressEvent,
    StepCompleted,
    StepFailed,
    StepProgress,
    StepStarted,
    WorkflowCompleted,
    WorkflowFailed,
    WorkflowStarted,
)
from .types import (
    DEFAULT_MAX_STEPS,
    AgentSpec,
    ExecutionResult,
    ExecutionStep,
    RunState,
    RunStatus,
    WorkflowConfig,
    WorkflowKind,
    WorkflowRequest,
)

STEP_SEPARATOR = "\n\n---\n\n"

ConfigT = TypeVar("ConfigT", bound=WorkflowConfig)


class AgentExecutor(ABC, Generic[ConfigT]):
    """
    Base class for workflow runners.

    Args:
        config: Validated workflow configuration
        backend: Chat backend used for every agent invocation
        logger: Structured logger (defaults to the package logger)
    """

    kind: WorkflowKind

    def __init__(
        self,
        config: ConfigT,
        backend: ChatBackend,
        *,
        logger: StructuredLogger | None = None,
    ) -> None:
        self.config = config
        self.backend = backend
        self.logger = logger or get_logger()
        self._state = self._new_state()
        self._token = CancellationToken()
        self._step_ids = itertools.count(1)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    def _total_steps(self) -> int:
        return len(self.config.agents)

    def _new_state(self) -> RunState:
        return RunState(workflow=self.kind, total_steps=self._total_steps())

    @property
    def state(self) -> RunState:
        """Snapshot of the current run state."""
        return self._state.snapshot()

    def reset(self) -> None:
        """Discard the current run; the next execute() starts from a fresh state."""
        self._state = self._new_state()
        self._token = CancellationToken()
        self._step_ids = itertools.count(1)

    def cancel(self) -> None:
        """Request cancellation; the run stops at the next checked boundary."""
        if self._state.status == RunStatus.RUNNING:
            self._token.cancel()

    @property
    def is_cancelled(self) -> bool:
        return self._token.is_cancelled

    def total_tokens(self) -> TokenUsage:
        return sum((s.tokens for s in self._state.steps), TokenUsage())

    def get_steps(self) -> list[ExecutionStep]:
        return list(self._state.steps)

    # ------------------------------------------------------------------
    # Run lifecycle
    # ------------------------------------------------------------------

    async def execute(self, request: WorkflowRequest) -> ExecutionResult:
        """
        Run the workflow once.

        Raises:
            InvalidStateError: The runner already ran; call reset() first
            WorkflowCancelledError: Cancelled through cancel() or the request token
            WorkflowTimeoutError: The configured timeout elapsed
            Exception: Any error from an agent invocation, after retries
        """
        state = self._state
        state.transition(RunStatus.RUNNING)
        if request.context:
            state.metadata["context"] = dict(request.context)
        self._token.link(request.cancellation_token)

        timer = Timer()
        self._emit(request.on_progress, WorkflowStarted(state.execution_id, state=state.snapshot()))
        self.logger.log_workflow_start(state.execution_id, self.kind.value, state.total_steps)

        with self.logger.trace_context(execution_id=state.execution_id, workflow=self.kind.value):
            try:
                result = await self._run(request, timer)
            except Exception as exc:
                message = error_message(exc)
                state.error = message
                if isinstance(exc, WorkflowCancelledError):
                    state.transition(RunStatus.CANCELLED)
                else:
                    state.transition(RunStatus.ERROR)
                    self.logger.log_error(exc, f"Workflow {self.kind.value} failed")
                self._log_finish(timer)
                self._emit(
                    request.on_progress,
                    WorkflowFailed(state.execution_id, error=message, state=state.snapshot()),
                )
                raise
            finally:
                self._token.unlink(request.cancellation_token)

            state.result = result
            state.transition(RunStatus.COMPLETED)
            self._log_finish(timer)
            self._emit(
                request.on_progress,
                WorkflowCompleted(state.execution_id, result=result, state=state.snapshot()),
            )

        return ExecutionResult(
            result=result,
            state=state.snapshot(),
            total_tokens=self.total_tokens(),
            execution_time_ms=timer.elapsed_ms,
        )

    @abstractmethod
    async def _run(self, request: WorkflowRequest, timer: Timer) -> str:
        """Strategy body; returns the final result string."""

    def _log_finish(self, timer: Timer) -> None:
        state = self._state
        self.logger.log_workflow(
            WorkflowLog(
                execution_id=state.execution_id,
                workflow=self.kind.value,
                status=state.status.value,
                duration_ms=timer.elapsed_ms,
                step_count=len(state.steps),
                total_tokens=self.total_tokens().total_tokens,
                error=state.error,
            )
        )

    @staticmethod
    def _emit(callback: ProgressCallback | None, event: ProgressEvent) -> None:
        if callback is not None:
            callback(event)

    def _check_cancelled(self) -> None:
        self._token.raise_if_cancelled()

    @staticmethod
    def _gated(callback: ProgressCallback | None, silenced: set[int], index: int) -> ProgressCallback | None:
        """Forward events for task ``index`` until it is added to ``silenced``."""
        if callback is None:
            return None

        def forward(event: ProgressEvent) -> None:
            if index not in silenced:
                callback(event)

        return forward

    def _record_steps(self, steps: Iterable[ExecutionStep]) -> None:
        """Append steps in start-time order so step timestamps never decrease."""
        for step in sorted(steps, key=lambda s: s.timestamp):
            self._state.add_step(step)

    # ------------------------------------------------------------------
    # Agent invocation
    # ------------------------------------------------------------------

    def _model_config_for(self, agent: AgentSpec) -> ModelConfig | None:
        default = self.config.default_model_config
        if default is None:
            return agent.model_config
        return default.merged(agent.model_config)

    def _error_context(self, agent: AgentSpec, step_id: str, attempt: int = 1) -> ErrorContext:
        return ErrorContext(
            execution_id=self._state.execution_id,
            workflow=self.kind.value,
            agent_id=agent.id,
            step_id=step_id,
            attempt=attempt,
        )

    async def run_agent(
        self,
        agent: AgentSpec,
        input: str,
        conversation_id: str,
        on_progress: ProgressCallback | None = None,
        *,
        metadata: dict[str, Any] | None = None,
    ) -> ExecutionStep:
        """
        Invoke one agent and return its step record.

        The step is not added to the run state; callers decide when to
        record it. Failures emit StepFailed and re-raise the original error.
        """
        step = ExecutionStep(
            id=f"step_{next(self._step_ids)}",
            agent_id=agent.id,
            agent_name=agent.name,
            input=input,
            timestamp=utcnow(),
            metadata=dict(metadata or {}),
        )
        execution_id = self._state.execution_id
        self._emit(on_progress, StepStarted(execution_id, step=step))

        def on_chunk(delta: str, content: str) -> None:
            self._emit(on_progress, StepProgress(execution_id, step=replace(step, output=content), delta=delta))

        timer = Timer()
        try:
            response = await self.backend.send_prompt(
                conversation_id,
                input,
                system_prompt=agent.system_prompt or None,
                model_config=self._model_config_for(agent),
                max_steps=agent.max_steps or self.config.default_max_steps,
                on_chunk=on_chunk,
            )
        except Exception as exc:
            message = error_message(exc)
            failed = replace(
                step,
                execution_time_ms=timer.stop(),
                error=message,
                metadata={**step.metadata, "error": message},
            )
            if isinstance(exc, WorkflowError) and exc.context.execution_id is None:
                exc.context = self._error_context(agent, step.id)
            self._log_step(failed)
            self._emit(on_progress, StepFailed(execution_id, step=failed, error=message))
            raise

        completed = replace(
            step,
            output=response.content,
            execution_time_ms=timer.stop(),
            tokens=response.usage,
        )
        self._log_step(completed)
        self._emit(on_progress, StepCompleted(execution_id, step=completed))
        return completed

    async def run_agent_with_retry(
        self,
        agent: AgentSpec,
        input: str,
        conversation_id: str,
        on_progress: ProgressCallback | None = None,
        *,
        metadata: dict[str, Any] | None = None,
    ) -> ExecutionStep:
        """run_agent() under the configured RetryPolicy."""
        policy = self.config.retry
        if policy is None:
            return await self.run_agent(agent, input, conversation_id, on_progress, metadata=metadata)

        attempt = 1
        while True:
            try:
                return await self.run_agent(agent, input, conversation_id, on_progress, metadata=metadata)
            except Exception as exc:
                if attempt >= policy.max_attempts or not policy.is_retryable(exc):
                    raise
                delay = policy.delay_for(attempt)
                self.logger.log_retry(agent.id, attempt + 1, delay, exc)
                if delay > 0:
                    await asyncio.sleep(delay)
                self._check_cancelled()
                attempt += 1

    def _log_step(self, step: ExecutionStep) -> None:
        self.logger.log_step(
            StepLog(
                execution_id=self._state.execution_id,
                step_id=step.id,
                agent_id=step.agent_id,
                agent_name=step.agent_name,
                duration_ms=step.execution_time_ms,
                success=step.ok,
                error=step.error,
                input_preview=truncate_for_log(step.input),
                output_preview=truncate_for_log(step.output) if step.output else None,
                output_length=len(step.output),
                prompt_tokens=step.tokens.prompt_tokens,
                completion_tokens=step.tokens.completion_tokens,
                total_tokens=step.tokens.total_tokens,
            )
        )


__all__ = ["AgentExecutor", "DEFAULT_MAX_STEPS", "STEP_SEPARATOR"]
