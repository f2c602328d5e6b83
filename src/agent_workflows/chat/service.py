"""
Chat service: the concrete ChatBackend used by workflow runners.

Each prompt is recorded in the MessageStore, sent with the conversation's
history to the provider selected by the model config, and streamed back
into an assistant message.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ..errors import (
    ConfigurationError,
    ErrorContext,
    MissingAPIKeyError,
    ProviderError,
    error_from_status,
)
from ..providers import Provider, create_provider
from ..providers.types import Message, Role, StreamEventType, Usage
from .messages import MessageStore, StreamingStatus
from .types import ChatMessage, ChatResponse, MessageRole, MessageStatus, ModelConfig, OnChunk, TokenUsage

if TYPE_CHECKING:
    from ..config import Settings
    from .conversations import ConversationStore

logger = logging.getLogger(__name__)

_ROLE_MAP = {
    MessageRole.USER: Role.USER,
    MessageRole.ASSISTANT: Role.ASSISTANT,
    MessageRole.SYSTEM: Role.SYSTEM,
    MessageRole.TOOL: Role.USER,
}


class ChatService:
    """
    Sends prompts through LLM providers and records the exchange.

    Args:
        message_store: Where user and assistant messages are recorded
        providers: Pre-built providers keyed by provider name ("openai", ...)
        settings: Used to build providers that were not registered
        default_model_config: Applied under any per-call model config
        conversation_store: Optional; message counts are kept up to date
        include_history: Send earlier conversation messages with each prompt
    """

    def __init__(
        self,
        message_store: MessageStore | None = None,
        *,
        providers: dict[str, Provider] | None = None,
        settings: Settings | None = None,
        default_model_config: ModelConfig | None = None,
        conversation_store: ConversationStore | None = None,
        include_history: bool = True,
    ) -> None:
        self.message_store = message_store or MessageStore()
        self.conversation_store = conversation_store
        self.default_model_config = default_model_config or ModelConfig()
        self.include_history = include_history
        self._settings = settings
        self._providers: dict[str, Provider] = dict(providers or {})

    def register_provider(self, name: str, provider: Provider) -> None:
        self._providers[name] = provider

    def _resolve_provider(self, model_config: ModelConfig) -> Provider:
        name = model_config.provider
        provider = self._providers.get(name)
        if provider is not None:
            return provider
        if name == "custom":
            raise ConfigurationError("No provider registered under 'custom'")

        if self._settings is None:
            from ..config import get_settings

            self._settings = get_settings()

        provider_config = self._settings.provider_config(name)
        if provider_config is None:
            raise ConfigurationError(f"Unknown provider: {name!r}")
        if not provider_config.api_key:
            raise MissingAPIKeyError(
                f"API key not found for provider {name!r}",
                provider=name,
                env_var=provider_config.api_key_env,
            )

        provider = create_provider(name, model_config.model_id, provider_config)
        self._providers[name] = provider
        return provider

    def _build_messages(
        self,
        history: list[ChatMessage],
        system_prompt: str | None,
    ) -> list[Message]:
        messages: list[Message] = []
        if system_prompt:
            messages.append(Message.system(system_prompt))
        for item in history:
            if item.status == MessageStatus.ERROR or not item.content:
                continue
            messages.append(Message(role=_ROLE_MAP[item.role], content=item.content))
        return messages

    def _record(self, message: ChatMessage) -> ChatMessage:
        self.message_store.add_message(message)
        if self.conversation_store is not None:
            self.conversation_store.increment_message_count(message.conversation_id)
        return message

    async def send_prompt(
        self,
        conversation_id: str,
        prompt: str,
        *,
        system_prompt: str | None = None,
        model_config: ModelConfig | None = None,
        max_steps: int = 5,
        on_chunk: OnChunk | None = None,
    ) -> ChatResponse:
        """
        Send ``prompt`` in ``conversation_id`` and stream the reply.

        Raises:
            ConfigurationError: Unknown provider or missing API key
            ProviderError: The provider reported an error
        """
        config = self.default_model_config.merged(model_config)
        provider = self._resolve_provider(config)

        history = self.message_store.get_messages(conversation_id) if self.include_history else []
        user_message = self._record(
            ChatMessage(conversation_id=conversation_id, role=MessageRole.USER, content=prompt)
        )
        api_messages = self._build_messages([*history, user_message], system_prompt)

        assistant = self.message_store.add_message(
            ChatMessage(
                conversation_id=conversation_id,
                role=MessageRole.ASSISTANT,
                status=MessageStatus.STREAMING,
                model=config.model_id or provider.model_name,
                provider=config.provider,
                metadata={"max_steps": max_steps},
            )
        )
        self.message_store.set_streaming_status(StreamingStatus.STREAMING, assistant.id)

        content = ""
        usage = Usage()
        try:
            async for event in provider.stream(
                api_messages,
                temperature=config.temperature,
                max_tokens=config.max_tokens,
                model=config.model_id,
            ):
                if event.type == StreamEventType.TOKEN:
                    content += event.data
                    self.message_store.append_content(conversation_id, assistant.id, event.data)
                    if on_chunk is not None:
                        on_chunk(event.data, content)
                elif event.type == StreamEventType.USAGE:
                    usage = event.data
                elif event.type == StreamEventType.ERROR:
                    raise error_from_status(
                        event.data.get("status"),
                        event.data.get("error") or "Provider error",
                        context=ErrorContext(extra={"provider": config.provider, "conversation_id": conversation_id}),
                    )
        except ProviderError as exc:
            self._fail(conversation_id, assistant.id, exc.message)
            raise
        except Exception as exc:
            self._fail(conversation_id, assistant.id, str(exc))
            raise

        token_usage = TokenUsage(
            prompt_tokens=usage.input_tokens,
            completion_tokens=usage.output_tokens,
            total_tokens=usage.total_tokens or usage.input_tokens + usage.output_tokens,
        )
        self.message_store.update_message(
            conversation_id,
            assistant.id,
            content=content,
            status=MessageStatus.COMPLETED,
            usage=token_usage,
        )
        if self.conversation_store is not None:
            self.conversation_store.increment_message_count(conversation_id)
        self.message_store.set_streaming_status(StreamingStatus.COMPLETED, assistant.id)

        return ChatResponse(
            content=content,
            usage=token_usage,
            message_id=assistant.id,
            model=config.model_id or provider.model_name,
        )

    def _fail(self, conversation_id: str, message_id: str, error: str) -> None:
        logger.warning("Chat request failed in conversation %s: %s", conversation_id, error)
        self.message_store.update_message(
            conversation_id,
            message_id,
            status=MessageStatus.ERROR,
            error=error,
        )
        self.message_store.set_streaming_status(StreamingStatus.ERROR, message_id)

    async def close(self) -> None:
        for provider in self._providers.values():
            await provider.close()


__all__ = ["ChatService"]
