"""
Evaluator-optimizer workflow: generate once, then evaluate and refine until
the quality threshold is met, improvement stalls or iterations run out.

The default evaluation parser understands evaluator output such as::

    SCORE: 82
    FEEDBACK: Clear, but misses the edge cases.
    ISSUES: no error handling
    no tests
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from ..chat.types import utcnow
from ..errors import ConfigurationError, WorkflowTimeoutError
from ..logging import Timer
from .executor import STEP_SEPARATOR, AgentExecutor
from .types import AgentSpec, WorkflowConfig, WorkflowKind, WorkflowRequest

DEFAULT_QUALITY_THRESHOLD = 90
DEFAULT_MAX_ITERATIONS = 5

_SCORE_RE = re.compile(r"(?:SCORE|Score|score):\s*(\d+)", re.IGNORECASE)
_RATING_RE = re.compile(r"(\d+)\s*/\s*100")
_FEEDBACK_RE = re.compile(r"feedback:\s*(.+)", re.IGNORECASE | re.DOTALL)
_ISSUES_RE = re.compile(r"issues:\s*(.+?)(?=\n\n|\Z)", re.IGNORECASE | re.DOTALL)
_SUGGESTIONS_RE = re.compile(r"suggestions:\s*(.+?)(?=\n\n|\Z)", re.IGNORECASE | re.DOTALL)


@dataclass(frozen=True)
class EvaluationResult:
    score: int = 0
    feedback: str = ""
    acceptable: bool = False
    issues: list[str] | None = None
    suggestions: list[str] | None = None
    raw: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "score": self.score,
            "feedback": self.feedback,
            "acceptable": self.acceptable,
            "issues": self.issues,
            "suggestions": self.suggestions,
        }


@dataclass(frozen=True)
class IterationRecord:
    iteration: int
    output: str
    evaluation: EvaluationResult
    success: bool
    timestamp: datetime = field(default_factory=utcnow)


def _split_lines(text: str) -> list[str]:
    return [line.strip() for line in text.split("\n") if line.strip()]


def parse_evaluation(output: str, threshold: int = DEFAULT_QUALITY_THRESHOLD) -> EvaluationResult:
    """
    Parse free-form evaluator output.

    The score comes from ``SCORE: n`` or else ``n/100`` and is clamped to
    0..100 (0 when absent). Feedback defaults to the whole output.
    """
    score = 0
    match = _SCORE_RE.search(output) or _RATING_RE.search(output)
    if match:
        score = max(0, min(100, int(match.group(1))))

    feedback = output
    match = _FEEDBACK_RE.search(output)
    if match:
        feedback = match.group(1).strip()

    issues = None
    match = _ISSUES_RE.search(output)
    if match:
        issues = _split_lines(match.group(1))

    suggestions = None
    match = _SUGGESTIONS_RE.search(output)
    if match:
        suggestions = _split_lines(match.group(1))

    return EvaluationResult(
        score=score,
        feedback=feedback,
        acceptable=score >= threshold,
        issues=issues,
        suggestions=suggestions,
        raw=output,
    )


EvaluationParser = Callable[[str], EvaluationResult]
StopCondition = Callable[[int, EvaluationResult, EvaluationResult | None], bool]


@dataclass
class EvaluatorOptimizerConfig(WorkflowConfig):
    """
    Attributes:
        generator_agent: Produces the first candidate
        evaluator_agent: Scores each candidate
        optimizer_agent: Refines a candidate using the evaluation feedback
        evaluation_criteria: Prefix for the evaluator prompt
        quality_threshold: Score (0-100) at which a candidate is acceptable
        max_iterations: Upper bound on evaluate/refine rounds
        min_improvement: Stop when a round improves the score by less than this
        return_all_iterations: Return a transcript of every round
        parse_evaluation: Replaces the default evaluation parser
        should_stop: ``(iteration, evaluation, previous) -> bool``; replaces
            the min_improvement rule. Reaching quality_threshold or
            max_iterations always stops the loop.
    """

    generator_agent: AgentSpec | None = None
    evaluator_agent: AgentSpec | None = None
    optimizer_agent: AgentSpec | None = None
    evaluation_criteria: str | None = None
    quality_threshold: int = DEFAULT_QUALITY_THRESHOLD
    max_iterations: int = DEFAULT_MAX_ITERATIONS
    min_improvement: int | None = None
    return_all_iterations: bool = False
    parse_evaluation: EvaluationParser | None = None
    should_stop: StopCondition | None = None

    def __post_init__(self) -> None:
        super().__post_init__()
        if self.generator_agent is None:
            raise ConfigurationError("Generator agent is required")
        if self.evaluator_agent is None:
            raise ConfigurationError("Evaluator agent is required")
        if self.optimizer_agent is None:
            raise ConfigurationError("Optimizer agent is required")
        if not 0 <= self.quality_threshold <= 100:
            raise ConfigurationError("quality_threshold must be between 0 and 100")
        if self.max_iterations < 1:
            raise ConfigurationError("max_iterations must be at least 1")
        if self.min_improvement is not None and self.min_improvement < 0:
            raise ConfigurationError("min_improvement must be non-negative")


class EvaluatorOptimizerRunner(AgentExecutor[EvaluatorOptimizerConfig]):
    """
    Generate, then loop evaluate -> (stop?) -> optimize.

    The default stop rule ends the loop when the score reaches the threshold,
    or when the score rose by less than ``min_improvement`` since the previous
    round. A score drop never stops the loop by itself.
    """

    kind = WorkflowKind.EVALUATOR_OPTIMIZER

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._iterations: list[IterationRecord] = []

    def _total_steps(self) -> int:
        return self.config.max_iterations * 3

    def reset(self) -> None:
        super().reset()
        self._iterations = []

    # -- prompts -----------------------------------------------------------

    def _evaluation_prompt(self, original: str, output: str) -> str:
        if self.config.evaluation_criteria:
            return f"{self.config.evaluation_criteria}\n\nOriginal Request: {original}\n\nOutput to Evaluate:\n{output}"
        return (
            "Evaluate the following output based on the original request.\n\n"
            f"Original Request: {original}\n\nOutput:\n{output}"
        )

    @staticmethod
    def _optimization_prompt(original: str, output: str, evaluation: EvaluationResult) -> str:
        return (
            f"Original Request: {original}\n\n"
            f"Current Output:\n{output}\n\n"
            f"Evaluation Feedback (Score: {evaluation.score}/100):\n{evaluation.feedback}\n\n"
            "Please refine the output to address the feedback and improve quality."
        )

    def _parse(self, output: str) -> EvaluationResult:
        if self.config.parse_evaluation is not None:
            return self.config.parse_evaluation(output)
        return parse_evaluation(output, self.config.quality_threshold)

    def _should_stop(
        self,
        iteration: int,
        evaluation: EvaluationResult,
        previous: EvaluationResult | None,
    ) -> bool:
        config = self.config
        if config.should_stop is not None:
            return config.should_stop(iteration, evaluation, previous)
        if evaluation.score >= config.quality_threshold:
            return True
        if previous is not None and config.min_improvement:
            improvement = evaluation.score - previous.score
            if 0 <= improvement < config.min_improvement:
                self.logger.info(
                    "Insufficient improvement, stopping",
                    improvement=improvement,
                    min_improvement=config.min_improvement,
                )
                return True
        return False

    # -- run ---------------------------------------------------------------

    async def _step(self, agent: AgentSpec, prompt: str, request: WorkflowRequest, phase: str) -> str:
        step = await self.run_agent_with_retry(
            agent,
            prompt,
            request.conversation_id,
            request.on_progress,
            metadata={"phase": phase},
        )
        self._state.add_step(step)
        return step.output

    async def _run(self, request: WorkflowRequest, timer: Timer) -> str:
        config = self.config
        self._check_cancelled()

        output = await self._step(config.generator_agent, request.input, request, "generate")
        previous: EvaluationResult | None = None

        for iteration in range(1, config.max_iterations + 1):
            self._check_cancelled()
            if config.timeout is not None and timer.elapsed_s > config.timeout:
                raise WorkflowTimeoutError(timeout=config.timeout)

            evaluator_output = await self._step(
                config.evaluator_agent,
                self._evaluation_prompt(request.input, output),
                request,
                "evaluate",
            )
            evaluation = self._parse(evaluator_output)
            self.logger.debug("Output evaluated", iteration=iteration, score=evaluation.score)

            self._iterations.append(
                IterationRecord(
                    iteration=iteration,
                    output=output,
                    evaluation=evaluation,
                    success=evaluation.acceptable,
                )
            )

            if self._should_stop(iteration, evaluation, previous):
                break
            if iteration == config.max_iterations or evaluation.score >= config.quality_threshold:
                break

            output = await self._step(
                config.optimizer_agent,
                self._optimization_prompt(request.input, output, evaluation),
                request,
                "optimize",
            )
            previous = evaluation

        final = self._iterations[-1]
        self._state.metadata.update(
            iterations=len(self._iterations),
            scores=self.get_score_progression(),
            final_score=final.evaluation.score,
            quality_threshold_met=final.evaluation.acceptable,
        )
        if config.return_all_iterations:
            return self.format_iterations()
        return final.output

    # -- inspection --------------------------------------------------------

    def format_iterations(self) -> str:
        """Transcript of every iteration followed by the final result."""
        if not self._iterations:
            return ""
        sections = [
            f"## Iteration {record.iteration}\n\n"
            f"**Score:** {record.evaluation.score}/100\n\n"
            f"**Feedback:** {record.evaluation.feedback}\n\n"
            f"**Output:**\n{record.output}"
            for record in self._iterations
        ]
        final = self._iterations[-1]
        return (
            STEP_SEPARATOR.join(sections)
            + f"\n\n## Final Result (Score: {final.evaluation.score}/100)\n\n{final.output}"
        )

    def get_iterations(self) -> list[IterationRecord]:
        return list(self._iterations)

    def get_final_iteration(self) -> IterationRecord | None:
        return self._iterations[-1] if self._iterations else None

    def get_score_progression(self) -> list[int]:
        return [record.evaluation.score for record in self._iterations]


__all__ = [
    "EvaluationResult",
    "IterationRecord",
    "EvaluatorOptimizerConfig",
    "EvaluatorOptimizerRunner",
    "parse_evaluation",
    "DEFAULT_QUALITY_THRESHOLD",
    "DEFAULT_MAX_ITERATIONS",
]
