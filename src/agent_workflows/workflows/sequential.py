"""
Sequential workflow: agents run one after another, each consuming the
previous agent's output (or the whole chain so far).
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from ..errors import WorkflowTimeoutError
from ..logging import Timer
from .executor import AgentExecutor
from .types import ExecutionStep, WorkflowConfig, WorkflowKind, WorkflowRequest

OutputTransform = Callable[[str, int], str]
StopCondition = Callable[[str, int], bool]


@dataclass
class SequentialConfig(WorkflowConfig):
    """
    Attributes:
        include_previous_context: Feed each agent every prior step plus the
            original input, instead of only the previous output
        transform_output: ``(output, index) -> output`` applied after each step
        should_stop: ``(output, index) -> bool``; True ends the chain early
    """

    include_previous_context: bool = False
    transform_output: OutputTransform | None = None
    should_stop: StopCondition | None = None

    def __post_init__(self) -> None:
        super().__post_init__()
        self._require_agents()


def build_context_input(steps: list[ExecutionStep], original_input: str) -> str:
    history = "\n\n".join(
        f"Step {index} ({step.agent_name}): {step.output}" for index, step in enumerate(steps, 1)
    )
    return f"{history}\n\nNow process the following:\n{original_input}"


class SequentialRunner(AgentExecutor[SequentialConfig]):
    """
    Runs ``config.agents`` in order.

    Cancellation and the cumulative timeout are checked before every step.
    """

    kind = WorkflowKind.SEQUENTIAL

    async def _run(self, request: WorkflowRequest, timer: Timer) -> str:
        config = self.config
        agents = config.agents
        current_input = request.input

        for index, agent in enumerate(agents):
            self._check_cancelled()
            if config.timeout is not None and timer.elapsed_s > config.timeout:
                raise WorkflowTimeoutError(timeout=config.timeout)

            step = await self.run_agent_with_retry(
                agent,
                current_input,
                request.conversation_id,
                request.on_progress,
            )
            self._state.add_step(step)

            output = step.output
            if config.transform_output is not None:
                output = config.transform_output(output, index)

            if config.should_stop is not None and config.should_stop(output, index):
                self.logger.info(
                    "Sequential workflow stopped early",
                    step_index=index,
                    agent_id=agent.id,
                )
                return output

            is_last = index == len(agents) - 1
            if not is_last and config.include_previous_context:
                current_input = build_context_input(self._state.steps, request.input)
            else:
                current_input = output

        return current_input

    # -- inspection --------------------------------------------------------

    def get_step_output(self, index: int) -> str | None:
        steps = self._state.steps
        if 0 <= index < len(steps):
            return steps[index].output
        return None

    def get_all_outputs(self) -> list[str]:
        return [step.output for step in self._state.steps]

    def get_step_by_agent_id(self, agent_id: str) -> ExecutionStep | None:
        for step in self._state.steps:
            if step.agent_id == agent_id:
                return step
        return None


__all__ = ["SequentialConfig", "SequentialRunner", "build_context_input"]
