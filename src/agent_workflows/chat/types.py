"""
Chat-layer data types.

These are the values shared between the chat backend and the workflow
runners: model selection, token usage, messages, conversations, and the
``ChatBackend`` protocol the runners call.
"""

from __future__ import annotations

import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field, fields, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Protocol, runtime_checkable

from ..errors import ConfigurationError


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def generate_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:16]}"


class MessageRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"
    TOOL = "tool"


class MessageStatus(str, Enum):
    PENDING = "pending"
    STREAMING = "streaming"
    COMPLETED = "completed"
    ERROR = "error"


class ConversationStatus(str, Enum):
    ACTIVE = "active"
    ARCHIVED = "archived"
    DELETED = "deleted"


PROVIDERS = ("openai", "anthropic", "google", "custom")


@dataclass(frozen=True)
class ModelConfig:
    """Provider and sampling settings for one LLM call."""

    provider: str = "openai"
    model_id: str | None = None
    temperature: float | None = None
    max_tokens: int | None = None

    def __post_init__(self) -> None:
        if self.provider not in PROVIDERS:
            raise ConfigurationError(f"Unknown provider: {self.provider!r}. Must be one of {PROVIDERS}")
        if self.temperature is not None and not 0.0 <= self.temperature <= 2.0:
            raise ConfigurationError("temperature must be between 0.0 and 2.0")
        if self.max_tokens is not None and self.max_tokens < 1:
            raise ConfigurationError("max_tokens must be positive")

    def merged(self, override: ModelConfig | None) -> ModelConfig:
        """Return a copy where every non-None field of ``override`` wins."""
        if override is None:
            return self
        changes = {
            f.name: getattr(override, f.name)
            for f in fields(override)
            if getattr(override, f.name) is not None
        }
        return replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        return {
            "provider": self.provider,
            "model_id": self.model_id,
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }


@dataclass(frozen=True)
class TokenUsage:
    """Prompt / completion / total token counts."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    def __add__(self, other: TokenUsage) -> TokenUsage:
        if not isinstance(other, TokenUsage):
            return NotImplemented
        return TokenUsage(
            prompt_tokens=self.prompt_tokens + other.prompt_tokens,
            completion_tokens=self.completion_tokens + other.completion_tokens,
            total_tokens=self.total_tokens + other.total_tokens,
        )

    def to_dict(self) -> dict[str, int]:
        return {
            "prompt_tokens": self.prompt_tokens,
            "completion_tokens": self.completion_tokens,
            "total_tokens": self.total_tokens,
        }


@dataclass
class ChatMessage:
    """A single message held by the MessageStore."""

    conversation_id: str
    role: MessageRole
    content: str = ""
    id: str = field(default_factory=lambda: generate_id("msg"))
    status: MessageStatus = MessageStatus.COMPLETED
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    model: str | None = None
    provider: str | None = None
    usage: TokenUsage | None = None
    error: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "conversation_id": self.conversation_id,
            "role": self.role.value,
            "content": self.content,
            "status": self.status.value,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "model": self.model,
            "provider": self.provider,
            "usage": self.usage.to_dict() if self.usage else None,
            "error": self.error,
            "metadata": dict(self.metadata),
        }


@dataclass
class Conversation:
    """Conversation metadata held by the ConversationStore."""

    title: str = "New Conversation"
    model_config: ModelConfig = field(default_factory=ModelConfig)
    system_prompt: str | None = None
    id: str = field(default_factory=lambda: generate_id("conv"))
    status: ConversationStatus = ConversationStatus.ACTIVE
    is_pinned: bool = False
    tags: list[str] = field(default_factory=list)
    message_count: int = 0
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    last_message_at: datetime | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ChatResponse:
    """What a ChatBackend returns for one prompt."""

    content: str
    usage: TokenUsage = field(default_factory=TokenUsage)
    message_id: str | None = None
    model: str | None = None


OnChunk = Callable[[str, str], None]
"""Chunk callback: ``(delta, accumulated_content)``."""


@runtime_checkable
class ChatBackend(Protocol):
    """
    Sends one prompt in a conversation and streams the reply.

    Implementations call ``on_chunk`` for every text delta and return the
    full reply with token usage.
    """

    def send_prompt(
        self,
        conversation_id: str,
        prompt: str,
        *,
        system_prompt: str | None = None,
        model_config: ModelConfig | None = None,
        max_steps: int = 5,
        on_chunk: OnChunk | None = None,
    ) -> Awaitable[ChatResponse]:
        ...


__all__ = [
    "MessageRole",
    "MessageStatus",
    "ConversationStatus",
    "PROVIDERS",
    "ModelConfig",
    "TokenUsage",
    "ChatMessage",
    "Conversation",
    "ChatResponse",
    "OnChunk",
    "ChatBackend",
    "generate_id",
    "utcnow",
]
