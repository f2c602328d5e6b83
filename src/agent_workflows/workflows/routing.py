"""
Routing workflow: a router agent classifies the input, the classification is
matched against declared routes, and the selected route agent(s) answer.

Classification output is read either as a JSON object::

    {"routes": ["billing", "tech"]}
    {"route": "billing", "reasoning": "...", "confidence": 0.9}

or, when it is not a JSON object, by case-insensitive substring matching of
each route id and trigger keyword against the router's text.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

from ..errors import ConfigurationError, NoRouteMatchedError, WorkflowTimeoutError
from ..logging import Timer
from .executor import STEP_SEPARATOR, AgentExecutor
from .types import AgentSpec, ExecutionStep, WorkflowConfig, WorkflowKind, WorkflowRequest

FALLBACK_ROUTE_ID = "fallback"


@dataclass(frozen=True)
class Classification:
    """Parsed router output."""

    route_ids: list[str] = field(default_factory=list)
    reasoning: str | None = None
    confidence: float | None = None
    raw: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "route_ids": list(self.route_ids),
            "reasoning": self.reasoning,
            "confidence": self.confidence,
            "raw": self.raw,
        }


RouteCondition = Callable[[str, Classification], bool]


@dataclass(frozen=True)
class RouteSpec:
    """
    A routing target.

    Attributes:
        id: Route id the router is expected to name
        name: Display name used in combined output and explanations
        description: When the route applies
        agent: Agent that handles the route
        triggers: Keywords that select the route in free-text classification
        priority: Higher runs first when several routes match
        condition: ``(input, classification) -> bool``; False drops the route
    """

    id: str
    name: str
    agent: AgentSpec
    description: str = ""
    triggers: tuple[str, ...] = ()
    priority: int = 0
    condition: RouteCondition | None = None

    def __post_init__(self) -> None:
        if not self.id:
            raise ConfigurationError("Route id is required")
        object.__setattr__(self, "triggers", tuple(self.triggers))


RouteSelector = Callable[[str, Classification, Sequence[RouteSpec]], RouteSpec | None]


@dataclass
class RoutingConfig(WorkflowConfig):
    """
    Attributes:
        router_agent: Agent that classifies the input
        routes: Declared routes
        classification_prompt: Prefix for the router prompt
        fallback_agent: Runs when no route is selected
        include_routing_explanation: Prefix the result with the route names
        select_route: Custom selector; replaces the default selection entirely
        allow_multiple_routes: Run every selected route concurrently
        max_routes_to_execute: Cap on the number of selected routes
    """

    router_agent: AgentSpec | None = None
    routes: list[RouteSpec] = field(default_factory=list)
    classification_prompt: str | None = None
    fallback_agent: AgentSpec | None = None
    include_routing_explanation: bool = False
    select_route: RouteSelector | None = None
    allow_multiple_routes: bool = False
    max_routes_to_execute: int | None = None

    def __post_init__(self) -> None:
        super().__post_init__()
        if self.router_agent is None:
            raise ConfigurationError("Router agent is required")
        self.routes = list(self.routes)
        if not self.routes:
            raise ConfigurationError("At least one route is required")
        seen: set[str] = set()
        for route in self.routes:
            if route.id in seen:
                raise ConfigurationError(f"Duplicate route id: {route.id}")
            seen.add(route.id)
        if self.max_routes_to_execute is not None and self.max_routes_to_execute < 1:
            raise ConfigurationError("max_routes_to_execute must be at least 1")


# =============================================================================
# Classification and selection
# =============================================================================


def _dedupe(ids: list[str]) -> list[str]:
    return list(dict.fromkeys(ids))


def parse_classification(output: str, routes: Sequence[RouteSpec]) -> Classification:
    """Read router output as a JSON object, else match route ids and triggers in the text."""
    trimmed = output.strip()
    try:
        parsed = json.loads(trimmed)
    except ValueError:
        parsed = None

    if isinstance(parsed, dict):
        candidates = parsed.get("routes")
        if isinstance(candidates, list):
            route_ids = [r for r in candidates if isinstance(r, str)]
        else:
            single = parsed.get("route") or parsed.get("category")
            route_ids = [single] if isinstance(single, str) else []

        reasoning = parsed.get("reasoning")
        confidence = parsed.get("confidence")
        return Classification(
            route_ids=_dedupe(route_ids),
            reasoning=reasoning if isinstance(reasoning, str) else None,
            confidence=float(confidence) if isinstance(confidence, (int, float)) else None,
            raw=output,
        )

    text = trimmed.lower()
    route_ids = []
    for route in routes:
        if route.id.lower() in text:
            route_ids.append(route.id)
        elif any(trigger.lower() in text for trigger in route.triggers):
            route_ids.append(route.id)
    return Classification(route_ids=_dedupe(route_ids), raw=output)


def select_routes(input: str, classification: Classification, config: RoutingConfig) -> list[RouteSpec]:
    if config.select_route is not None:
        selected = config.select_route(input, classification, config.routes)
        return [selected] if selected is not None else []

    by_id = {route.id: route for route in config.routes}
    matched = []
    for route_id in classification.route_ids:
        route = by_id.get(route_id)
        if route is None:
            continue
        if route.condition is not None and not route.condition(input, classification):
            continue
        matched.append(route)

    # sorted() is stable, so equal priorities keep classification order
    return sorted(matched, key=lambda r: r.priority, reverse=True)


def combine_route_results(results: list[str], routes: Sequence[RouteSpec]) -> str:
    return STEP_SEPARATOR.join(f"## {route.name}\n\n{result}" for result, route in zip(results, routes))


# =============================================================================
# Runner
# =============================================================================


class RoutingRunner(AgentExecutor[RoutingConfig]):
    """Classify, select, then run the selected route agent(s) on the raw input."""

    kind = WorkflowKind.ROUTING

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._classification: Classification | None = None

    def _total_steps(self) -> int:
        # router + one route until the selection is known
        return 2

    def reset(self) -> None:
        super().reset()
        self._classification = None

    def _fallback_route(self) -> RouteSpec:
        if self.config.fallback_agent is None:
            raise NoRouteMatchedError()
        return RouteSpec(
            id=FALLBACK_ROUTE_ID,
            name="Fallback",
            description="Default fallback agent",
            agent=self.config.fallback_agent,
        )

    async def _run_routes(self, routes: Sequence[RouteSpec], request: WorkflowRequest) -> list[ExecutionStep]:
        """Run route agents concurrently; the first failure cancels and silences the rest."""
        silenced: set[int] = set()
        tasks = [
            asyncio.create_task(
                self.run_agent_with_retry(
                    route.agent,
                    request.input,
                    request.conversation_id,
                    self._gated(request.on_progress, silenced, i),
                    metadata={"route_id": route.id},
                )
            )
            for i, route in enumerate(routes)
        ]
        try:
            await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
        finally:
            pending = [task for task in tasks if not task.done()]
            silenced.update(i for i, task in enumerate(tasks) if not task.done())
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)

        failures = [task.exception() for task in tasks if not task.cancelled() and task.exception() is not None]
        if failures:
            raise failures[0]
        return [task.result() for task in tasks]

    async def _run(self, request: WorkflowRequest, timer: Timer) -> str:
        config = self.config
        self._check_cancelled()

        prompt = request.input
        if config.classification_prompt:
            prompt = f"{config.classification_prompt}\n\nInput: {request.input}"

        router_step = await self.run_agent_with_retry(
            config.router_agent,
            prompt,
            request.conversation_id,
            request.on_progress,
            metadata={"router": True},
        )
        self._state.add_step(router_step)

        classification = parse_classification(router_step.output, config.routes)
        self._classification = classification
        self._state.metadata["classification"] = classification.to_dict()
        self.logger.debug("Input classified", route_ids=classification.route_ids)

        selected = select_routes(request.input, classification, config)
        if not selected:
            self.logger.info("No routes matched, using fallback agent")
            selected = [self._fallback_route()]
        if config.max_routes_to_execute is not None:
            selected = selected[: config.max_routes_to_execute]
        if not config.allow_multiple_routes:
            selected = selected[:1]

        self._check_cancelled()
        if config.timeout is not None and timer.elapsed_s > config.timeout:
            raise WorkflowTimeoutError(timeout=config.timeout)

        self.logger.info("Executing routes", routes=[r.name for r in selected])
        self._state.metadata["selected_routes"] = [r.id for r in selected]
        self._state.total_steps = 1 + len(selected)

        if len(selected) > 1:
            steps = await self._run_routes(selected, request)
            self._record_steps(steps)
            result = combine_route_results([s.output for s in steps], selected)
        else:
            route = selected[0]
            step = await self.run_agent_with_retry(
                route.agent,
                request.input,
                request.conversation_id,
                request.on_progress,
                metadata={"route_id": route.id},
            )
            self._state.add_step(step)
            result = step.output

        if config.include_routing_explanation:
            names = ", ".join(route.name for route in selected)
            result = f"[Routed to: {names}]\n\n{result}"
        return result

    # -- inspection --------------------------------------------------------

    def get_classification(self) -> Classification | None:
        return self._classification

    def get_selected_routes(self) -> list[str]:
        return list(self._state.metadata.get("selected_routes", []))


__all__ = [
    "Classification",
    "RouteSpec",
    "RoutingConfig",
    "RoutingRunner",
    "FALLBACK_ROUTE_ID",
    "parse_classification",
    "select_routes",
    "combine_route_results",
]
