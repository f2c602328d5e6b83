"""
Core types for the provider abstraction layer.

These types give one streaming interface over OpenAI, Anthropic and Google
text generation.
"""

from __future__ import annotations

import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Role(str, Enum):
    """Message roles in a provider request."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


class StreamEventType(str, Enum):
    """Types of events emitted during streaming."""

    # Content events
    TOKEN = "token"

    # Metadata events
    META = "meta"
    USAGE = "usage"

    # Terminal events
    DONE = "done"
    ERROR = "error"


@dataclass
class Message:
    """A message sent to a provider."""

    role: Role
    content: str

    def to_dict(self) -> dict[str, Any]:
        """Convert to API-compatible dictionary format."""
        return {"role": self.role.value, "content": self.content}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Message:
        return cls(role=Role(data["role"]), content=data.get("content") or "")

    @classmethod
    def user(cls, content: str) -> Message:
        return cls(role=Role.USER, content=content)

    @classmethod
    def assistant(cls, content: str) -> Message:
        return cls(role=Role.ASSISTANT, content=content)

    @classmethod
    def system(cls, content: str) -> Message:
        return cls(role=Role.SYSTEM, content=content)


@dataclass
class Usage:
    """Token usage statistics reported by a provider."""

    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "input_tokens": self.input_tokens,
            "output_tokens": self.output_tokens,
            "total_tokens": self.total_tokens,
        }


@dataclass
class StreamEvent:
    """
    A unified streaming event emitted by providers.

    Event types and their data:
    - TOKEN: str (the token text)
    - META: dict (model info, stream metadata)
    - USAGE: Usage (token counts)
    - DONE: str (full accumulated text)
    - ERROR: dict (error info with status and message)
    """

    type: StreamEventType
    data: Any
    timestamp: float = field(default_factory=time.time)


MessageInput = str | dict[str, Any] | Message | Sequence[str | dict[str, Any] | Message]


def normalize_messages(messages: MessageInput) -> list[Message]:
    """
    Normalize various message input formats to a list of Message objects.

    Accepts:
    - str: Converted to single user message
    - dict: Converted using Message.from_dict
    - Message: Used as-is
    - List of the above
    """
    if isinstance(messages, str):
        return [Message.user(messages)]

    if isinstance(messages, Message):
        return [messages]

    if isinstance(messages, dict):
        return [Message.from_dict(messages)]

    if isinstance(messages, (list, tuple)):
        result = []
        for msg in messages:
            if isinstance(msg, str):
                result.append(Message.user(msg))
            elif isinstance(msg, Message):
                result.append(msg)
            elif isinstance(msg, dict):
                result.append(Message.from_dict(msg))
            else:
                raise TypeError(f"Unsupported message type: {type(msg)}")
        return result

    raise TypeError(f"Unsupported messages type: {type(messages)}")


def split_system(messages: Sequence[Message]) -> tuple[str | None, list[Message]]:
    """Separate system messages (joined) from the conversational turns."""
    system_parts = [m.content for m in messages if m.role == Role.SYSTEM and m.content]
    rest = [m for m in messages if m.role != Role.SYSTEM]
    return ("\n\n".join(system_parts) or None), rest


__all__ = [
    "Role",
    "StreamEventType",
    "Message",
    "Usage",
    "StreamEvent",
    "MessageInput",
    "normalize_messages",
    "split_system",
]
