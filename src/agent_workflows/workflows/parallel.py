"""
Parallel workflow: the same input fans out to every agent concurrently and
the successful outputs are aggregated, optionally through a synthesizer.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from ..errors import ConfigurationError, InsufficientResultsError, error_message
from ..logging import Timer
from .events import ProgressCallback
from .executor import STEP_SEPARATOR, AgentExecutor
from .types import AgentSpec, ExecutionStep, WorkflowConfig, WorkflowKind, WorkflowRequest

Aggregator = Callable[[list[str], list[ExecutionStep]], str]


class AggregationStrategy(str, Enum):
    CONCATENATE = "concatenate"
    VOTE = "vote"
    FIRST = "first"
    CUSTOM = "custom"


@dataclass
class ParallelConfig(WorkflowConfig):
    """
    Attributes:
        aggregation_strategy: How successful outputs are combined
        aggregate_results: ``(outputs, steps) -> str``; required for CUSTOM
        synthesizer_agent: Receives the aggregate and produces the final result
        wait_for_all: False returns after the first agent settles
        max_wait_time: Seconds to wait before continuing with settled results
        min_successful_agents: Fewer successes raise InsufficientResultsError
    """

    aggregation_strategy: AggregationStrategy = AggregationStrategy.CONCATENATE
    aggregate_results: Aggregator | None = None
    synthesizer_agent: AgentSpec | None = None
    wait_for_all: bool = True
    max_wait_time: float | None = None
    min_successful_agents: int = 1

    def __post_init__(self) -> None:
        super().__post_init__()
        self._require_agents()
        self.aggregation_strategy = AggregationStrategy(self.aggregation_strategy)
        if self.aggregation_strategy == AggregationStrategy.CUSTOM and self.aggregate_results is None:
            raise ConfigurationError("Custom aggregation strategy requires aggregate_results")
        if self.min_successful_agents < 1:
            raise ConfigurationError("min_successful_agents must be at least 1")
        if self.max_wait_time is not None and self.max_wait_time <= 0:
            raise ConfigurationError("max_wait_time must be positive")


@dataclass(frozen=True)
class AgentOutcome:
    """Settled result of one fanned-out agent."""

    agent: AgentSpec
    step: ExecutionStep | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.step is not None


# =============================================================================
# Aggregation
# =============================================================================


def concatenate_outputs(outputs: list[str], steps: list[ExecutionStep]) -> str:
    return STEP_SEPARATOR.join(
        f"## {step.agent_name}\n\n{output}" for output, step in zip(outputs, steps)
    )


def vote_outputs(outputs: list[str]) -> str:
    """
    Most frequent output after trimming and lower-casing.

    Ties go to the output seen first; the winning form is returned as its
    first original occurrence.
    """
    counts: dict[str, int] = {}
    first_seen: dict[str, str] = {}
    for output in outputs:
        key = output.strip().lower()
        counts[key] = counts.get(key, 0) + 1
        first_seen.setdefault(key, output)

    best_key = None
    best_count = 0
    for key, count in counts.items():
        if count > best_count:
            best_key, best_count = key, count
    return first_seen[best_key] if best_key is not None else ""


def aggregate(
    strategy: AggregationStrategy,
    outputs: list[str],
    steps: list[ExecutionStep],
    custom: Aggregator | None = None,
) -> str:
    if strategy == AggregationStrategy.CONCATENATE:
        return concatenate_outputs(outputs, steps)
    if strategy == AggregationStrategy.VOTE:
        return vote_outputs(outputs)
    if strategy == AggregationStrategy.FIRST:
        return outputs[0] if outputs else ""
    if custom is None:
        raise ConfigurationError("Custom aggregation strategy requires aggregate_results")
    return custom(outputs, steps)


# =============================================================================
# Runner
# =============================================================================


class ParallelRunner(AgentExecutor[ParallelConfig]):
    """
    Runs every agent on the same input concurrently.

    Agents that have not settled when waiting ends keep running in the
    background; their results and progress events are discarded.
    """

    kind = WorkflowKind.PARALLEL

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._background: set[asyncio.Task] = set()
        self._synthesized_output: str | None = None

    def _total_steps(self) -> int:
        return len(self.config.agents) + (1 if self.config.synthesizer_agent else 0)

    def reset(self) -> None:
        super().reset()
        self._synthesized_output = None

    async def _run_tagged(
        self,
        agent: AgentSpec,
        request: WorkflowRequest,
        on_progress: ProgressCallback | None,
    ) -> AgentOutcome:
        try:
            step = await self.run_agent_with_retry(agent, request.input, request.conversation_id, on_progress)
        except Exception as exc:
            return AgentOutcome(agent=agent, error=error_message(exc))
        return AgentOutcome(agent=agent, step=step)

    async def _fan_out(self, request: WorkflowRequest) -> list[AgentOutcome]:
        config = self.config
        detached: set[int] = set()
        tasks = [
            asyncio.create_task(self._run_tagged(agent, request, self._gated(request.on_progress, detached, i)))
            for i, agent in enumerate(config.agents)
        ]

        if not config.wait_for_all:
            done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
            settled = [next(t for t in tasks if t in done)]
            pending = {t for t in tasks if t is not settled[0]}
        elif config.max_wait_time is not None:
            done, pending = await asyncio.wait(tasks, timeout=config.max_wait_time)
            settled = [t for t in tasks if t in done]
            if pending:
                self.logger.warning(
                    "Max wait time exceeded, using partial results",
                    settled=len(settled),
                    pending=len(pending),
                )
        else:
            await asyncio.gather(*tasks)
            settled, pending = tasks, set()

        for index, task in enumerate(tasks):
            if task in pending:
                detached.add(index)
                self._background.add(task)
                task.add_done_callback(self._background.discard)

        return [task.result() for task in settled]

    async def _run(self, request: WorkflowRequest, timer: Timer) -> str:
        config = self.config
        self._check_cancelled()

        outcomes = await self._fan_out(request)
        successes = [o for o in outcomes if o.ok]
        failures = [o for o in outcomes if not o.ok]

        self._state.metadata.update(
            successful_agents=len(successes),
            failed_agents=len(failures),
            failures={o.agent.id: o.error for o in failures},
        )
        if len(successes) < config.min_successful_agents:
            raise InsufficientResultsError(len(successes), config.min_successful_agents, len(failures))

        steps = [o.step for o in successes]
        self._record_steps(steps)

        outputs = [step.output for step in steps]
        result = aggregate(config.aggregation_strategy, outputs, steps, config.aggregate_results)

        if config.synthesizer_agent is not None:
            self._check_cancelled()
            synth_step = await self.run_agent_with_retry(
                config.synthesizer_agent,
                f"Please synthesize the following outputs:\n\n{result}",
                request.conversation_id,
                request.on_progress,
                metadata={"synthesizer": True},
            )
            self._state.add_step(synth_step)
            result = synth_step.output
            self._synthesized_output = result

        return result

    # -- inspection --------------------------------------------------------

    def get_parallel_outputs(self) -> dict[str, str]:
        """Outputs of the fanned-out agents by agent id (synthesizer excluded)."""
        return {
            step.agent_id: step.output
            for step in self._state.steps
            if not step.metadata.get("synthesizer")
        }

    def get_synthesized_output(self) -> str | None:
        return self._synthesized_output


__all__ = [
    "AggregationStrategy",
    "ParallelConfig",
    "ParallelRunner",
    "AgentOutcome",
    "aggregate",
    "concatenate_outputs",
    "vote_outputs",
]
