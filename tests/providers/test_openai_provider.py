"""
Tests for the OpenAI provider implementation.

The SDK client is mocked; no network calls are made.
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import openai
import pytest

from agent_workflows.providers import OpenAIProvider, create_provider
from agent_workflows.providers.types import Message, StreamEventType, Usage


def chunk(content=None, usage=None):
    if usage is not None:
        return SimpleNamespace(choices=[], usage=usage)
    return SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=content))], usage=None)


async def stream_of(*chunks):
    for item in chunks:
        yield item


@pytest.fixture
def mock_openai_client():
    with patch("agent_workflows.providers.openai.AsyncOpenAI") as mock:
        client = MagicMock()
        client.close = AsyncMock()
        mock.return_value = client
        yield client


@pytest.fixture
def provider(mock_openai_client):
    return OpenAIProvider("gpt-4o-mini", api_key="sk-test")


async def collect(provider, *args, **kwargs):
    return [event async for event in provider.stream(*args, **kwargs)]


class TestOpenAIProviderInit:
    def test_client_kwargs(self):
        with patch("agent_workflows.providers.openai.AsyncOpenAI") as mock:
            OpenAIProvider("gpt-4o", api_key="sk", base_url="http://local", timeout=5.0, max_retries=0)

        mock.assert_called_once_with(api_key="sk", base_url="http://local", timeout=5.0, max_retries=0)

    def test_requires_model(self, mock_openai_client):
        with pytest.raises(ValueError):
            OpenAIProvider("")

    def test_created_from_settings(self, mock_openai_client):
        from agent_workflows.config import OpenAIConfig

        provider = create_provider("openai", None, OpenAIConfig(api_key="sk", default_model="gpt-4.1"))

        assert isinstance(provider, OpenAIProvider)
        assert provider.model_name == "gpt-4.1"


class TestOpenAIStreaming:
    @pytest.mark.asyncio
    async def test_event_sequence(self, provider, mock_openai_client):
        mock_openai_client.chat.completions.create = AsyncMock(
            return_value=stream_of(
                chunk("Hello"),
                chunk(None),
                chunk(" world"),
                chunk(usage=SimpleNamespace(prompt_tokens=5, completion_tokens=2, total_tokens=7)),
            )
        )

        events = await collect(provider, "Hi")

        assert [e.type for e in events] == [
            StreamEventType.META,
            StreamEventType.TOKEN,
            StreamEventType.TOKEN,
            StreamEventType.USAGE,
            StreamEventType.DONE,
        ]
        assert events[3].data == Usage(input_tokens=5, output_tokens=2, total_tokens=7)
        assert events[-1].data == "Hello world"

    @pytest.mark.asyncio
    async def test_request_params(self, provider, mock_openai_client):
        create = AsyncMock(return_value=stream_of())
        mock_openai_client.chat.completions.create = create

        await collect(
            provider,
            [Message.system("sys"), Message.user("hi")],
            temperature=0.3,
            max_tokens=20,
            model="gpt-4o",
        )

        params = create.call_args.kwargs
        assert params["model"] == "gpt-4o"
        assert params["messages"] == [
            {"role": "system", "content": "sys"},
            {"role": "user", "content": "hi"},
        ]
        assert params["stream"] is True
        assert params["stream_options"] == {"include_usage": True}
        assert params["temperature"] == 0.3
        assert params["max_tokens"] == 20

    @pytest.mark.asyncio
    async def test_unset_sampling_params_are_omitted(self, provider, mock_openai_client):
        create = AsyncMock(return_value=stream_of())
        mock_openai_client.chat.completions.create = create

        await collect(provider, "hi")

        assert "temperature" not in create.call_args.kwargs
        assert "max_tokens" not in create.call_args.kwargs


class TestOpenAIErrors:
    @pytest.mark.asyncio
    async def test_rate_limit(self, provider, mock_openai_client):
        error = openai.RateLimitError("slow down", response=MagicMock(status_code=429), body=None)
        mock_openai_client.chat.completions.create = AsyncMock(side_effect=error)

        events = await collect(provider, "hi")

        assert events[-1].type == StreamEventType.ERROR
        assert events[-1].data["status"] == 429
        assert "Rate limit exceeded" in events[-1].data["error"]

    @pytest.mark.asyncio
    async def test_status_error(self, provider, mock_openai_client):
        error = openai.BadRequestError("bad request", response=MagicMock(status_code=400), body=None)
        mock_openai_client.chat.completions.create = AsyncMock(side_effect=error)

        events = await collect(provider, "hi")

        assert events[-1].data["status"] == 400

    @pytest.mark.asyncio
    async def test_connection_error(self, provider, mock_openai_client):
        error = openai.APIConnectionError(request=MagicMock())
        mock_openai_client.chat.completions.create = AsyncMock(side_effect=error)

        events = await collect(provider, "hi")

        assert events[-1].type == StreamEventType.ERROR
        assert events[-1].data["status"] is None

    @pytest.mark.asyncio
    async def test_unexpected_error(self, provider, mock_openai_client):
        mock_openai_client.chat.completions.create = AsyncMock(side_effect=RuntimeError("boom"))

        events = await collect(provider, "hi")

        assert events[-1].data == {"status": 500, "error": "boom"}


@pytest.mark.asyncio
async def test_close(provider, mock_openai_client):
    async with provider:
        pass
    mock_openai_client.close.assert_awaited_once()
