"""
Multi-agent workflow runners.

Four orchestration strategies share the AgentExecutor base:
- SequentialRunner: a chain of agents
- ParallelRunner: fan-out and aggregation
- RoutingRunner: classification and dispatch to specialised agents
- EvaluatorOptimizerRunner: generate, evaluate and refine in a loop
"""

from .evaluator import (
    EvaluationResult,
    EvaluatorOptimizerConfig,
    EvaluatorOptimizerRunner,
    IterationRecord,
    parse_evaluation,
)
from .events import (
    ProgressCallback,
    ProgressEvent,
    ProgressEventType,
    StepCompleted,
    StepFailed,
    StepProgress,
    StepStarted,
    WorkflowCompleted,
    WorkflowFailed,
    WorkflowStarted,
)
from .executor import AgentExecutor
from .factory import (
    create_evaluator_optimizer_workflow,
    create_parallel_workflow,
    create_routing_workflow,
    create_runner,
    create_sequential_workflow,
    model_config_from_settings,
    retry_policy_from_settings,
)
from .parallel import AggregationStrategy, ParallelConfig, ParallelRunner
from .routing import Classification, RouteSpec, RoutingConfig, RoutingRunner
from .sequential import SequentialConfig, SequentialRunner
from .types import (
    AgentRole,
    AgentSpec,
    ExecutionResult,
    ExecutionStep,
    RunState,
    RunStatus,
    WorkflowConfig,
    WorkflowKind,
    WorkflowRequest,
)

__all__ = [
    # Core types
    "AgentRole",
    "AgentSpec",
    "ExecutionStep",
    "RunState",
    "RunStatus",
    "WorkflowKind",
    "WorkflowRequest",
    "ExecutionResult",
    "WorkflowConfig",
    "AgentExecutor",
    # Events
    "ProgressEventType",
    "ProgressEvent",
    "ProgressCallback",
    "WorkflowStarted",
    "StepStarted",
    "StepProgress",
    "StepCompleted",
    "StepFailed",
    "WorkflowCompleted",
    "WorkflowFailed",
    # Sequential
    "SequentialConfig",
    "SequentialRunner",
    # Parallel
    "AggregationStrategy",
    "ParallelConfig",
    "ParallelRunner",
    # Routing
    "Classification",
    "RouteSpec",
    "RoutingConfig",
    "RoutingRunner",
    # Evaluator-optimizer
    "EvaluationResult",
    "IterationRecord",
    "EvaluatorOptimizerConfig",
    "EvaluatorOptimizerRunner",
    "parse_evaluation",
    # Factory
    "create_sequential_workflow",
    "create_parallel_workflow",
    "create_routing_workflow",
    "create_evaluator_optimizer_workflow",
    "create_runner",
    "retry_policy_from_settings",
    "model_config_from_settings",
]
