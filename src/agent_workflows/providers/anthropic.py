"""
Anthropic (Claude) provider implementation.

This module implements the Provider protocol for Anthropic's Messages API
in streaming mode.
"""

from __future__ import annotations

import os
from collections.abc import AsyncIterator
from typing import Any, cast

from .base import BaseProvider
from .types import Message, MessageInput, Role, StreamEvent, StreamEventType, Usage, split_system

try:
    import anthropic
    from anthropic import AsyncAnthropic

    ANTHROPIC_AVAILABLE = True
except Exception:  # pragma: no cover - import guard
    anthropic = None  # type: ignore[assignment]
    AsyncAnthropic = None  # type: ignore[assignment, misc]
    ANTHROPIC_AVAILABLE = False


class AnthropicProvider(BaseProvider):
    """
    Anthropic Claude API provider implementation.

    Example:
        ```python
        provider = AnthropicProvider(model="claude-3-5-sonnet-latest")
        async for event in provider.stream("Hello!"):
            ...
        ```
    """

    name = "anthropic"

    def __init__(
        self,
        model: str,
        *,
        api_key: str | None = None,
        base_url: str | None = None,
        max_tokens: int = 4096,
        default_temperature: float | None = None,
        max_retries: int = 2,
        timeout: float | None = None,
    ) -> None:
        """
        Initialize the Anthropic provider.

        Args:
            model: Model name (e.g., "claude-3-5-sonnet-latest")
            api_key: Anthropic API key (defaults to ANTHROPIC_API_KEY env var)
            base_url: Custom API base URL
            max_tokens: Default max tokens (Anthropic requires this)
            default_temperature: Default temperature for completions
            max_retries: Number of retries for transient failures (SDK built-in)
            timeout: Request timeout in seconds
        """
        if not ANTHROPIC_AVAILABLE:
            raise ImportError("anthropic package is not installed. Install it with: pip install anthropic")

        super().__init__(model)

        self.max_tokens = max_tokens
        self.default_temperature = default_temperature

        client_kwargs: dict[str, Any] = {
            "max_retries": max_retries,
        }
        if timeout is not None:
            client_kwargs["timeout"] = timeout
        if api_key:
            client_kwargs["api_key"] = api_key
        elif os.environ.get("ANTHROPIC_API_KEY"):
            client_kwargs["api_key"] = os.environ["ANTHROPIC_API_KEY"]
        if base_url:
            client_kwargs["base_url"] = base_url

        self.client = AsyncAnthropic(**client_kwargs)

    async def close(self) -> None:
        await self.client.close()

    @staticmethod
    def _convert_messages(messages: list[Message]) -> tuple[str | None, list[dict[str, Any]]]:
        """
        Split out the system prompt and merge consecutive same-role turns,
        since the Messages API expects alternating user/assistant turns.
        """
        system, turns = split_system(messages)
        converted: list[dict[str, Any]] = []
        for msg in turns:
            role = "assistant" if msg.role == Role.ASSISTANT else "user"
            if converted and converted[-1]["role"] == role:
                converted[-1]["content"] += "\n\n" + msg.content
            else:
                converted.append({"role": role, "content": msg.content})
        return system, converted

    async def stream(
        self,
        messages: MessageInput,
        *,
        temperature: float | None = None,
        max_tokens: int | None = None,
        model: str | None = None,
        **kwargs: Any,
    ) -> AsyncIterator[StreamEvent]:
        """
        Stream a completion as events.

        Anthropic emits message_start (input usage), content_block_delta
        (text), message_delta (output usage) and message_stop.
        """
        msg_objects = self._normalize_messages(messages)
        system_message, anthropic_messages = self._convert_messages(msg_objects)
        model_name = model or self.model_name

        params: dict[str, Any] = {
            "model": model_name,
            "messages": anthropic_messages,
            "max_tokens": max_tokens or self.max_tokens,
        }
        if system_message:
            params["system"] = system_message
        if temperature is not None:
            params["temperature"] = temperature
        elif self.default_temperature is not None:
            params["temperature"] = self.default_temperature
        params.update(kwargs)

        yield StreamEvent(
            type=StreamEventType.META, data={"model": model_name, "stream": True, "provider": "anthropic"}
        )

        content_buffer = ""
        usage = Usage()
        try:
            async with self.client.messages.stream(**params) as stream:
                async for raw_event in stream:
                    event = cast(Any, raw_event)
                    event_type = event.type

                    if event_type == "content_block_delta":
                        delta = event.delta
                        if getattr(delta, "type", None) == "text_delta":
                            content_buffer += delta.text
                            yield StreamEvent(type=StreamEventType.TOKEN, data=delta.text)

                    elif event_type == "message_start":
                        if getattr(event.message, "usage", None):
                            usage.input_tokens = event.message.usage.input_tokens

                    elif event_type == "message_delta":
                        if getattr(event, "usage", None):
                            usage.output_tokens = event.usage.output_tokens

            yield self._usage_event(usage.input_tokens, usage.output_tokens)
            yield StreamEvent(type=StreamEventType.DONE, data=content_buffer)

        except anthropic.APIConnectionError as e:
            yield self._error_event(None, f"Connection error: {e}")
        except anthropic.RateLimitError as e:
            yield self._error_event(429, f"Rate limit exceeded: {e}")
        except anthropic.APIStatusError as e:
            yield self._error_event(e.status_code, str(e.message))
        except Exception as e:
            yield self._error_event(500, str(e))


__all__ = ["AnthropicProvider", "ANTHROPIC_AVAILABLE"]
