"""
OpenAI provider implementation.

This module implements the Provider protocol for OpenAI's chat completions
API in streaming mode.
"""

from __future__ import annotations

import inspect
from collections.abc import AsyncIterator
from typing import Any

import openai
from openai import AsyncOpenAI

from .base import BaseProvider
from .types import MessageInput, StreamEvent, StreamEventType


class OpenAIProvider(BaseProvider):
    """
    OpenAI API provider implementation.

    Example:
        ```python
        provider = OpenAIProvider(model="gpt-4o-mini")
        async for event in provider.stream("Hello, world!"):
            if event.type == StreamEventType.TOKEN:
                print(event.data, end="")
        ```
    """

    name = "openai"

    def __init__(
        self,
        model: str,
        *,
        api_key: str | None = None,
        base_url: str | None = None,
        organization: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
    ) -> None:
        """
        Initialize the OpenAI provider.

        Args:
            model: Model name, e.g. "gpt-4o-mini"
            api_key: OpenAI API key (defaults to OPENAI_API_KEY env var)
            base_url: Custom API base URL
            organization: OpenAI organization ID
            timeout: Request timeout in seconds
            max_retries: SDK-level retries
        """
        super().__init__(model)

        client_kwargs: dict[str, Any] = {}
        if api_key:
            client_kwargs["api_key"] = api_key
        if base_url:
            client_kwargs["base_url"] = base_url
        if organization:
            client_kwargs["organization"] = organization
        if timeout is not None:
            client_kwargs["timeout"] = timeout
        if max_retries is not None:
            client_kwargs["max_retries"] = max_retries

        self.client = AsyncOpenAI(**client_kwargs)

    async def close(self) -> None:
        """Close provider resources."""
        close_fn = getattr(self.client, "close", None)
        if close_fn:
            res = close_fn()
            if inspect.isawaitable(res):
                await res

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

        Args:
            messages: Input messages
            temperature: Sampling temperature
            max_tokens: Maximum output tokens
            model: Per-call model override
            **kwargs: Additional API parameters

        Yields:
            StreamEvent objects for each chunk
        """
        msg_objects = self._normalize_messages(messages)
        model_name = model or self.model_name

        params: dict[str, Any] = {
            "model": model_name,
            "messages": self._messages_to_api_format(msg_objects),
            "stream": True,
            "stream_options": {"include_usage": True},
        }
        if temperature is not None:
            params["temperature"] = temperature
        if max_tokens is not None:
            params["max_tokens"] = max_tokens
        params.update(kwargs)

        yield StreamEvent(type=StreamEventType.META, data={"model": model_name, "stream": True})

        content_buffer = ""
        try:
            stream = await self.client.chat.completions.create(**params)

            async for chunk in stream:
                # Usage arrives in a final chunk without choices
                if not chunk.choices and chunk.usage:
                    yield self._usage_event(
                        chunk.usage.prompt_tokens,
                        chunk.usage.completion_tokens,
                        chunk.usage.total_tokens,
                    )
                    continue

                if not chunk.choices:
                    continue

                delta = chunk.choices[0].delta
                if delta.content:
                    content_buffer += delta.content
                    yield StreamEvent(type=StreamEventType.TOKEN, data=delta.content)

            yield StreamEvent(type=StreamEventType.DONE, data=content_buffer)

        except openai.APIConnectionError as e:
            yield self._error_event(None, str(e.__cause__ or e))
        except openai.RateLimitError as e:
            yield self._error_event(429, f"Rate limit exceeded: {e}")
        except openai.APIStatusError as e:
            yield self._error_event(e.status_code, str(e))
        except Exception as e:
            yield self._error_event(500, str(e))


__all__ = ["OpenAIProvider"]
