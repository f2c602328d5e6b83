"""
Types for multi-agent workflows.

This module defines the core values shared by every runner:
- AgentSpec: an immutable agent definition
- ExecutionStep: the record of one agent invocation
- RunState: the mutable state of a single workflow run
- WorkflowRequest / ExecutionResult: the execute() input and output
- WorkflowConfig: fields common to every workflow configuration
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from ..chat.types import ModelConfig, TokenUsage, utcnow
from ..errors import ConfigurationError, InvalidStateError
from ..logging import generate_execution_id
from ..retry import RetryPolicy

if TYPE_CHECKING:
    from ..cancellation import CancellationToken
    from .events import ProgressCallback

DEFAULT_MAX_STEPS = 5


class AgentRole(str, Enum):
    """Common agent roles. Any string is accepted as a role label."""

    RESEARCHER = "researcher"
    ANALYST = "analyst"
    WRITER = "writer"
    REVIEWER = "reviewer"
    ROUTER = "router"
    SPECIALIST = "specialist"
    GENERATOR = "generator"
    EVALUATOR = "evaluator"
    OPTIMIZER = "optimizer"
    SYNTHESIZER = "synthesizer"
    CUSTOM = "custom"


@dataclass(frozen=True)
class AgentSpec:
    """
    Immutable agent definition.

    Attributes:
        id: Unique agent id
        name: Display name, used in prompts and transcripts
        system_prompt: Sent as the system prompt of every invocation
        role: Free-form role label
        model_config: Overrides the workflow default model config field by field
        max_steps: Reasoning steps passed to the backend (default 5)
        metadata: Read-only extra data
    """

    id: str
    name: str
    system_prompt: str = ""
    role: str = AgentRole.CUSTOM.value
    model_config: ModelConfig | None = None
    max_steps: int | None = None
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.id:
            raise ConfigurationError("Agent id is required")
        if not self.name:
            raise ConfigurationError(f"Agent {self.id!r} needs a name")
        if self.max_steps is not None and self.max_steps < 1:
            raise ConfigurationError(f"Agent {self.id!r}: max_steps must be at least 1")
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))


@dataclass(frozen=True)
class ExecutionStep:
    """Immutable record of one agent invocation."""

    id: str
    agent_id: str
    agent_name: str
    input: str
    output: str = ""
    timestamp: datetime = field(default_factory=utcnow)
    execution_time_ms: float = 0.0
    tokens: TokenUsage = field(default_factory=TokenUsage)
    error: str | None = None
    metadata: Mapping[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "agent_id": self.agent_id,
            "agent_name": self.agent_name,
            "input": self.input,
            "output": self.output,
            "timestamp": self.timestamp.isoformat(),
            "execution_time_ms": self.execution_time_ms,
            "tokens": self.tokens.to_dict(),
            "error": self.error,
            "metadata": dict(self.metadata),
        }


class RunStatus(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    ERROR = "error"
    CANCELLED = "cancelled"


_TRANSITIONS: dict[RunStatus, frozenset[RunStatus]] = {
    RunStatus.IDLE: frozenset({RunStatus.RUNNING}),
    RunStatus.RUNNING: frozenset({RunStatus.COMPLETED, RunStatus.ERROR, RunStatus.CANCELLED}),
    RunStatus.COMPLETED: frozenset(),
    RunStatus.ERROR: frozenset(),
    RunStatus.CANCELLED: frozenset(),
}


class WorkflowKind(str, Enum):
    SEQUENTIAL = "sequential"
    PARALLEL = "parallel"
    ROUTING = "routing"
    EVALUATOR_OPTIMIZER = "evaluator-optimizer"


@dataclass
class RunState:
    """Mutable state of one workflow run."""

    workflow: WorkflowKind
    total_steps: int = 0
    execution_id: str = field(default_factory=generate_execution_id)
    status: RunStatus = RunStatus.IDLE
    steps: list[ExecutionStep] = field(default_factory=list)
    current_step_index: int = 0
    result: str | None = None
    error: str | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def is_terminal(self) -> bool:
        return self.status in (RunStatus.COMPLETED, RunStatus.ERROR, RunStatus.CANCELLED)

    def transition(self, status: RunStatus) -> None:
        """Move to ``status``; only idle -> running -> terminal is allowed."""
        if status not in _TRANSITIONS[self.status]:
            raise InvalidStateError(
                f"Invalid status transition {self.status.value} -> {status.value}"
                + (" (call reset() before executing again)" if self.is_terminal else "")
            )
        self.status = status
        if status == RunStatus.RUNNING:
            self.started_at = utcnow()
        elif self.is_terminal:
            self.completed_at = utcnow()

    def add_step(self, step: ExecutionStep) -> None:
        self.steps.append(step)
        self.current_step_index = len(self.steps)

    def snapshot(self) -> RunState:
        """Copy safe to hand out; steps are immutable so a shallow list copy suffices."""
        return replace(self, steps=list(self.steps), metadata=dict(self.metadata))

    def to_dict(self) -> dict[str, Any]:
        return {
            "execution_id": self.execution_id,
            "workflow": self.workflow.value,
            "status": self.status.value,
            "steps": [s.to_dict() for s in self.steps],
            "current_step_index": self.current_step_index,
            "total_steps": self.total_steps,
            "result": self.result,
            "error": self.error,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "metadata": dict(self.metadata),
        }


@dataclass
class WorkflowRequest:
    """Input to ``execute()``."""

    conversation_id: str
    input: str
    context: Mapping[str, Any] | None = None
    on_progress: ProgressCallback | None = None
    cancellation_token: CancellationToken | None = None


@dataclass(frozen=True)
class ExecutionResult:
    """Output of ``execute()``."""

    result: str
    state: RunState
    total_tokens: TokenUsage
    execution_time_ms: float


@dataclass
class WorkflowConfig:
    """
    Fields shared by every workflow configuration.

    Attributes:
        agents: Agents run by the workflow, in order
        default_model_config: Base model config merged under each agent's override
        retry: Retry policy for every agent invocation (None = no retry)
        timeout: Seconds; checked between sequential steps and evaluator iterations
        default_max_steps: Step budget passed to the backend for agents without max_steps
    """

    agents: list[AgentSpec] = field(default_factory=list)
    default_model_config: ModelConfig | None = None
    retry: RetryPolicy | None = None
    timeout: float | None = None
    default_max_steps: int = DEFAULT_MAX_STEPS

    def __post_init__(self) -> None:
        self.agents = list(self.agents)
        if self.timeout is not None and self.timeout <= 0:
            raise ConfigurationError("timeout must be positive")
        if self.default_max_steps < 1:
            raise ConfigurationError("default_max_steps must be at least 1")

    def _require_agents(self) -> None:
        if not self.agents:
            raise ConfigurationError("At least one agent is required")


__all__ = [
    "AgentRole",
    "AgentSpec",
    "ExecutionStep",
    "RunStatus",
    "WorkflowKind",
    "RunState",
    "WorkflowRequest",
    "ExecutionResult",
    "WorkflowConfig",
    "DEFAULT_MAX_STEPS",
    "ModelConfig",
    "TokenUsage",
]
