"""
Google Gemini provider implementation.

Uses the google-genai SDK.
"""

from __future__ import annotations

import os
from collections.abc import AsyncIterator
from typing import Any

from .base import BaseProvider
from .types import Message, MessageInput, Role, StreamEvent, StreamEventType, split_system

try:
    from google import genai
    from google.genai import errors as genai_errors
    from google.genai import types

    GOOGLE_AVAILABLE = True
except ImportError:
    GOOGLE_AVAILABLE = False
    genai = None
    types = None
    genai_errors = None


class GoogleProvider(BaseProvider):
    """
    Google Gemini provider implementation.
    """

    name = "google"

    def __init__(
        self,
        model: str,
        *,
        api_key: str | None = None,
        base_url: str | None = None,
    ) -> None:
        """
        Args:
            model: Model name, e.g. "gemini-2.0-flash"
            api_key: API key (defaults to GEMINI_API_KEY or GOOGLE_API_KEY env var)
            base_url: Custom API base URL
        """
        if not GOOGLE_AVAILABLE:
            raise ImportError("google-genai is not installed. Install with `pip install agent-workflows[google]`")
        super().__init__(model)

        self.api_key = api_key or os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY")
        if not self.api_key:
            raise ValueError("GEMINI_API_KEY or GOOGLE_API_KEY is required")

        client_kwargs: dict[str, Any] = {"api_key": self.api_key}
        if base_url:
            client_kwargs["http_options"] = types.HttpOptions(base_url=base_url)

        self._client = genai.Client(**client_kwargs)

    @staticmethod
    def _convert_messages(messages: list[Message]) -> tuple[str | None, list[Any]]:
        """
        Convert messages to Gemini format.

        Returns:
            (system_instruction, history)
        """
        system_instruction, turns = split_system(messages)
        history = [
            types.Content(
                role="model" if msg.role == Role.ASSISTANT else "user",
                parts=[types.Part.from_text(text=msg.content)],
            )
            for msg in turns
            if msg.content
        ]
        return system_instruction, history

    async def stream(
        self,
        messages: MessageInput,
        *,
        temperature: float | None = None,
        max_tokens: int | None = None,
        model: str | None = None,
        **kwargs: Any,
    ) -> AsyncIterator[StreamEvent]:
        msgs = self._normalize_messages(messages)
        system_instruction, history = self._convert_messages(msgs)
        model_name = model or self.model_name

        config_kwargs: dict[str, Any] = dict(kwargs)
        if system_instruction:
            config_kwargs["system_instruction"] = system_instruction
        if temperature is not None:
            config_kwargs["temperature"] = temperature
        if max_tokens is not None:
            config_kwargs["max_output_tokens"] = max_tokens
        config = types.GenerateContentConfig(**config_kwargs)

        yield StreamEvent(
            type=StreamEventType.META, data={"model": model_name, "stream": True, "provider": "google"}
        )

        try:
            stream_response = await self._client.aio.models.generate_content_stream(
                model=model_name,
                contents=history,
                config=config,
            )

            content_buffer = ""
            usage_event: StreamEvent | None = None

            async for chunk in stream_response:
                if chunk.candidates and chunk.candidates[0].content:
                    for part in chunk.candidates[0].content.parts or []:
                        if getattr(part, "text", None):
                            content_buffer += part.text
                            yield StreamEvent(type=StreamEventType.TOKEN, data=part.text)

                # Usage metadata is cumulative; keep only the last report
                if getattr(chunk, "usage_metadata", None):
                    meta = chunk.usage_metadata
                    usage_event = self._usage_event(
                        getattr(meta, "prompt_token_count", 0) or 0,
                        getattr(meta, "candidates_token_count", 0) or 0,
                        getattr(meta, "total_token_count", 0) or 0,
                    )

            if usage_event is not None:
                yield usage_event
            yield StreamEvent(type=StreamEventType.DONE, data=content_buffer)

        except genai_errors.APIError as e:
            yield self._error_event(getattr(e, "code", 500), getattr(e, "message", None) or str(e))
        except Exception as e:
            yield self._error_event(500, str(e))

    async def close(self) -> None:
        """Uses aclose() for the async client as per google-genai SDK docs."""
        aclose = getattr(self._client.aio, "aclose", None)
        if aclose is not None:
            await aclose()


__all__ = ["GoogleProvider", "GOOGLE_AVAILABLE"]
