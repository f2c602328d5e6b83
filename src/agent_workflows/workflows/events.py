"""
Progress events emitted by workflow runners.

Events are a tagged union of frozen dataclasses; each carries its ``type``
as a class attribute so callers can either ``match`` on the class or switch
on ``event.type``. Step payloads are snapshots, never live objects.

Order within a run:
    WorkflowStarted, then per step StepStarted, StepProgress*, and
    StepCompleted or StepFailed, then WorkflowCompleted or WorkflowFailed.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Union

from .types import ExecutionStep, RunState


class ProgressEventType(str, Enum):
    WORKFLOW_STARTED = "workflow.started"
    STEP_STARTED = "step.started"
    STEP_PROGRESS = "step.progress"
    STEP_COMPLETED = "step.completed"
    STEP_FAILED = "step.failed"
    WORKFLOW_COMPLETED = "workflow.completed"
    WORKFLOW_FAILED = "workflow.failed"


@dataclass(frozen=True)
class _Event:
    execution_id: str
    timestamp: float = field(default_factory=time.time, kw_only=True)

    type: ClassVar[ProgressEventType]

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "type": self.type.value,
            "execution_id": self.execution_id,
            "timestamp": self.timestamp,
        }
        step = getattr(self, "step", None)
        if step is not None:
            data["step"] = step.to_dict()
        for name in ("delta", "error", "result"):
            if getattr(self, name, None) is not None:
                data[name] = getattr(self, name)
        return data


@dataclass(frozen=True)
class WorkflowStarted(_Event):
    state: RunState
    type: ClassVar[ProgressEventType] = ProgressEventType.WORKFLOW_STARTED


@dataclass(frozen=True)
class StepStarted(_Event):
    step: ExecutionStep
    type: ClassVar[ProgressEventType] = ProgressEventType.STEP_STARTED


@dataclass(frozen=True)
class StepProgress(_Event):
    step: ExecutionStep
    delta: str
    type: ClassVar[ProgressEventType] = ProgressEventType.STEP_PROGRESS


@dataclass(frozen=True)
class StepCompleted(_Event):
    step: ExecutionStep
    type: ClassVar[ProgressEventType] = ProgressEventType.STEP_COMPLETED


@dataclass(frozen=True)
class StepFailed(_Event):
    step: ExecutionStep
    error: str
    type: ClassVar[ProgressEventType] = ProgressEventType.STEP_FAILED


@dataclass(frozen=True)
class WorkflowCompleted(_Event):
    result: str
    state: RunState
    type: ClassVar[ProgressEventType] = ProgressEventType.WORKFLOW_COMPLETED


@dataclass(frozen=True)
class WorkflowFailed(_Event):
    error: str
    state: RunState
    type: ClassVar[ProgressEventType] = ProgressEventType.WORKFLOW_FAILED


ProgressEvent = Union[
    WorkflowStarted,
    StepStarted,
    StepProgress,
    StepCompleted,
    StepFailed,
    WorkflowCompleted,
    WorkflowFailed,
]

ProgressCallback = Callable[[ProgressEvent], None]


__all__ = [
    "ProgressEventType",
    "WorkflowStarted",
    "StepStarted",
    "StepProgress",
    "StepCompleted",
    "StepFailed",
    "WorkflowCompleted",
    "WorkflowFailed",
    "ProgressEvent",
    "ProgressCallback",
]
