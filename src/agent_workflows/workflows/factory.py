"""
Convenience constructors for workflow configs and runners.

Each ``create_*_workflow`` helper returns a validated config. When
``defaults`` (usually ``get_settings().workflow``) is passed, values the
caller leaves out are taken from it.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from ..chat.types import ChatBackend, ModelConfig
from ..config.workflow import WorkflowDefaults
from ..errors import ConfigurationError
from ..logging import StructuredLogger
from ..retry import RetryPolicy
from .evaluator import EvaluatorOptimizerConfig, EvaluatorOptimizerRunner
from .executor import AgentExecutor
from .parallel import ParallelConfig, ParallelRunner
from .routing import RouteSpec, RoutingConfig, RoutingRunner
from .sequential import SequentialConfig, SequentialRunner
from .types import AgentSpec, WorkflowConfig

RUNNER_CLASSES: dict[type[WorkflowConfig], type[AgentExecutor]] = {
    SequentialConfig: SequentialRunner,
    ParallelConfig: ParallelRunner,
    RoutingConfig: RoutingRunner,
    EvaluatorOptimizerConfig: EvaluatorOptimizerRunner,
}


def retry_policy_from_settings(defaults: WorkflowDefaults) -> RetryPolicy | None:
    """RetryPolicy from workflow defaults; None when retries are disabled."""
    if defaults.max_retries == 0:
        return None
    return RetryPolicy(
        max_retries=defaults.max_retries,
        delay=defaults.retry_delay,
        backoff=defaults.retry_backoff,
    )


def model_config_from_settings(defaults: WorkflowDefaults) -> ModelConfig:
    return ModelConfig(
        provider=defaults.provider,
        model_id=defaults.model,
        temperature=defaults.temperature,
        max_tokens=defaults.max_tokens,
    )


def _with_defaults(options: dict[str, Any], defaults: WorkflowDefaults | None, **extra: Any) -> dict[str, Any]:
    if defaults is None:
        return options
    base: dict[str, Any] = {
        "default_model_config": model_config_from_settings(defaults),
        "retry": retry_policy_from_settings(defaults),
        "timeout": defaults.timeout,
        "default_max_steps": defaults.max_steps,
        **extra,
    }
    return {**base, **options}


def create_sequential_workflow(
    agents: Sequence[AgentSpec],
    *,
    defaults: WorkflowDefaults | None = None,
    **options: Any,
) -> SequentialConfig:
    return SequentialConfig(agents=list(agents), **_with_defaults(options, defaults))


def create_parallel_workflow(
    agents: Sequence[AgentSpec],
    *,
    defaults: WorkflowDefaults | None = None,
    **options: Any,
) -> ParallelConfig:
    extra = {"min_successful_agents": defaults.min_successful_agents} if defaults else {}
    return ParallelConfig(agents=list(agents), **_with_defaults(options, defaults, **extra))


def create_routing_workflow(
    router_agent: AgentSpec,
    routes: Sequence[RouteSpec],
    *,
    defaults: WorkflowDefaults | None = None,
    **options: Any,
) -> RoutingConfig:
    return RoutingConfig(router_agent=router_agent, routes=list(routes), **_with_defaults(options, defaults))


def create_evaluator_optimizer_workflow(
    generator: AgentSpec,
    evaluator: AgentSpec,
    optimizer: AgentSpec,
    *,
    defaults: WorkflowDefaults | None = None,
    **options: Any,
) -> EvaluatorOptimizerConfig:
    extra = (
        {"quality_threshold": defaults.quality_threshold, "max_iterations": defaults.max_iterations}
        if defaults
        else {}
    )
    return EvaluatorOptimizerConfig(
        generator_agent=generator,
        evaluator_agent=evaluator,
        optimizer_agent=optimizer,
        **_with_defaults(options, defaults, **extra),
    )


def create_runner(
    config: WorkflowConfig,
    backend: ChatBackend,
    *,
    logger: StructuredLogger | None = None,
) -> AgentExecutor:
    """Runner for ``config``, chosen by config type."""
    for config_cls, runner_cls in RUNNER_CLASSES.items():
        if isinstance(config, config_cls):
            return runner_cls(config, backend, logger=logger)
    raise ConfigurationError(f"No runner for config type {type(config).__name__}")


__all__ = [
    "RUNNER_CLASSES",
    "create_sequential_workflow",
    "create_parallel_workflow",
    "create_routing_workflow",
    "create_evaluator_optimizer_workflow",
    "create_runner",
    "retry_policy_from_settings",
    "model_config_from_settings",
]
