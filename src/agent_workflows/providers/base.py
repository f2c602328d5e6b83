"""
Provider protocol and base classes.

This module defines the streaming interface every LLM provider implements,
so the chat layer can stay provider-agnostic.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from typing import Any, Protocol, runtime_checkable

from .types import Message, MessageInput, StreamEvent, StreamEventType, Usage, normalize_messages


@runtime_checkable
class Provider(Protocol):
    """
    Protocol defining the interface for LLM providers.
    """

    @property
    def name(self) -> str:
        """Provider key, e.g. ``"openai"``."""
        ...

    @property
    def model_name(self) -> str:
        """Get the model name string."""
        ...

    def stream(
        self,
        messages: MessageInput,
        *,
        temperature: float | None = None,
        max_tokens: int | None = None,
        model: str | None = None,
        **kwargs: Any,
    ) -> AsyncIterator[StreamEvent]:
        """
        Stream a completion as a series of events.

        Args:
            messages: Input messages
            temperature: Sampling temperature
            max_tokens: Maximum tokens
            model: Per-call model override
            **kwargs: Provider-specific parameters

        Yields:
            StreamEvent objects: META, TOKEN..., USAGE, then DONE or ERROR.
        """
        ...

    async def close(self) -> None:
        """Clean up provider resources."""
        ...

    async def __aenter__(self) -> Provider:
        ...

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        ...


class BaseProvider(Provider, ABC):
    """
    Abstract base class for provider implementations.

    Provides common functionality while requiring subclasses to implement
    the provider-specific stream.
    """

    name: str = "custom"

    def __init__(self, model: str, **kwargs: Any) -> None:
        if not model or not isinstance(model, str):
            raise ValueError("Model must be a non-empty model name string")
        self._model_name = model

    @property
    def model_name(self) -> str:
        return self._model_name

    @staticmethod
    def _normalize_messages(messages: MessageInput) -> list[Message]:
        """Normalize message input to list of Message objects."""
        return normalize_messages(messages)

    @staticmethod
    def _messages_to_api_format(messages: list[Message]) -> list[dict[str, Any]]:
        """Convert Message objects to API-compatible format."""
        return [msg.to_dict() for msg in messages]

    @staticmethod
    def _usage_event(input_tokens: int, output_tokens: int, total_tokens: int | None = None) -> StreamEvent:
        usage = Usage(
            input_tokens=int(input_tokens or 0),
            output_tokens=int(output_tokens or 0),
            total_tokens=int(total_tokens or 0) or int(input_tokens or 0) + int(output_tokens or 0),
        )
        return StreamEvent(type=StreamEventType.USAGE, data=usage)

    @staticmethod
    def _error_event(status: int | None, message: str) -> StreamEvent:
        return StreamEvent(type=StreamEventType.ERROR, data={"status": status, "error": message})

    @abstractmethod
    def stream(
        self,
        messages: MessageInput,
        *,
        temperature: float | None = None,
        max_tokens: int | None = None,
        model: str | None = None,
        **kwargs: Any,
    ) -> AsyncIterator[StreamEvent]:
        """Stream a completion as a series of events."""
        ...

    async def close(self) -> None:
        """
        Clean up provider resources.

        Override in subclasses that need cleanup.
        """
        pass

    async def __aenter__(self) -> Provider:
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.close()


__all__ = [
    "Provider",
    "BaseProvider",
]
