"""
Shared test fixtures and fakes for agent-workflows tests.

This module provides:
- A scripted in-memory ChatBackend (no network)
- Agent and route factories
- A progress event recorder
- A fake streaming provider for the chat layer
"""

from __future__ import annotations

import asyncio
import re
from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass, field
from typing import Any

import pytest

from agent_workflows.chat.types import ChatResponse, ModelConfig, TokenUsage, generate_id
from agent_workflows.providers.types import StreamEvent, StreamEventType, Usage
from agent_workflows.workflows.events import ProgressEvent, ProgressEventType
from agent_workflows.workflows.routing import RouteSpec
from agent_workflows.workflows.types import AgentSpec

# =============================================================================
# Factories
# =============================================================================


def make_agent(agent_id: str = "agent", name: str | None = None, **kwargs: Any) -> AgentSpec:
    """
    Create an AgentSpec whose system prompt is its id.

    FakeChatBackend scripts responses by system prompt, so by default the
    script key is the agent id.
    """
    kwargs.setdefault("system_prompt", agent_id)
    return AgentSpec(id=agent_id, name=name or agent_id, **kwargs)


def make_route(route_id: str, agent: AgentSpec | None = None, **kwargs: Any) -> RouteSpec:
    kwargs.setdefault("name", route_id.title())
    return RouteSpec(id=route_id, agent=agent or make_agent(f"{route_id}-agent"), **kwargs)


# =============================================================================
# Fake chat backend
# =============================================================================


@dataclass
class FakeCall:
    conversation_id: str
    prompt: str
    system_prompt: str | None
    model_config: ModelConfig | None
    max_steps: int


Script = str | Exception | Callable[[str], str] | list


@dataclass
class FakeChatBackend:
    """
    ChatBackend double.

    ``responses`` maps a system prompt (the agent id, see make_agent) to:
    - a string, returned on every call
    - an exception, raised on every call
    - a callable ``prompt -> str``
    - a list of the above, consumed one per call (the last entry repeats)

    ``delays`` maps a system prompt to seconds slept before answering.
    """

    responses: dict[str, Script] = field(default_factory=dict)
    delays: dict[str, float] = field(default_factory=dict)
    default: str = "ok"
    usage: TokenUsage = field(default_factory=lambda: TokenUsage(10, 5, 15))
    calls: list[FakeCall] = field(default_factory=list)
    _cursor: dict[str, int] = field(default_factory=dict)

    def calls_for(self, key: str) -> list[FakeCall]:
        return [c for c in self.calls if c.system_prompt == key]

    def _next(self, key: str) -> Script:
        script = self.responses.get(key, self.default)
        if isinstance(script, list):
            index = self._cursor.get(key, 0)
            self._cursor[key] = index + 1
            return script[min(index, len(script) - 1)]
        return script

    async def send_prompt(
        self,
        conversation_id: str,
        prompt: str,
        *,
        system_prompt: str | None = None,
        model_config: ModelConfig | None = None,
        max_steps: int = 5,
        on_chunk: Callable[[str, str], None] | None = None,
    ) -> ChatResponse:
        key = system_prompt or ""
        self.calls.append(FakeCall(conversation_id, prompt, system_prompt, model_config, max_steps))
        script = self._next(key)

        delay = self.delays.get(key)
        if delay:
            await asyncio.sleep(delay)

        if isinstance(script, Exception):
            raise script
        content = script(prompt) if callable(script) else script

        streamed = ""
        for delta in re.findall(r"\S+\s*", content):
            streamed += delta
            if on_chunk is not None:
                on_chunk(delta, streamed)

        return ChatResponse(content=content, usage=self.usage, message_id=generate_id("msg"))


# =============================================================================
# Progress recorder
# =============================================================================


@dataclass
class ProgressRecorder:
    events: list[ProgressEvent] = field(default_factory=list)

    def __call__(self, event: ProgressEvent) -> None:
        self.events.append(event)

    @property
    def types(self) -> list[ProgressEventType]:
        return [e.type for e in self.events]

    def lifecycle(self) -> list[ProgressEventType]:
        """Event types without StepProgress."""
        return [t for t in self.types if t != ProgressEventType.STEP_PROGRESS]

    def of_type(self, event_type: ProgressEventType) -> list[ProgressEvent]:
        return [e for e in self.events if e.type == event_type]


# =============================================================================
# Fake provider
# =============================================================================


class FakeProvider:
    """Streams a fixed reply token by token, or fails with an ERROR event."""

    name = "custom"

    def __init__(
        self,
        reply: str = "Hello there",
        *,
        model: str = "fake-model",
        error: dict[str, Any] | None = None,
        raises: Exception | None = None,
    ):
        self._model = model
        self.reply = reply
        self.error = error
        self.raises = raises
        self.requests: list[dict[str, Any]] = []
        self.closed = False

    @property
    def model_name(self) -> str:
        return self._model

    async def stream(self, messages, **kwargs) -> AsyncIterator[StreamEvent]:
        self.requests.append({"messages": list(messages), **kwargs})
        yield StreamEvent(type=StreamEventType.META, data={"model": self._model})
        if self.raises is not None:
            raise self.raises
        for token in re.findall(r"\S+\s*", self.reply):
            yield StreamEvent(type=StreamEventType.TOKEN, data=token)
        if self.error is not None:
            yield StreamEvent(type=StreamEventType.ERROR, data=self.error)
            return
        yield StreamEvent(type=StreamEventType.USAGE, data=Usage(input_tokens=7, output_tokens=3, total_tokens=10))
        yield StreamEvent(type=StreamEventType.DONE, data=self.reply)

    async def close(self) -> None:
        self.closed = True


# =============================================================================
# Pytest Fixtures
# =============================================================================


@pytest.fixture
def backend():
    """Fixture providing an empty scripted backend."""
    return FakeChatBackend()


@pytest.fixture
def recorder():
    """Fixture providing a progress event recorder."""
    return ProgressRecorder()


@pytest.fixture
def agent():
    """Fixture providing the agent factory."""
    return make_agent


@pytest.fixture
def route():
    """Fixture providing the route factory."""
    return make_route


@pytest.fixture
def fake_provider():
    """Fixture providing a factory for fake providers."""

    def _factory(reply: str = "Hello there", **kwargs):
        return FakeProvider(reply, **kwargs)

    return _factory
