"""
In-memory message store.

Messages are kept per conversation in insertion order. Listeners registered
with ``subscribe`` are called with the store after every mutation.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import replace
from enum import Enum
from typing import Any

from .types import ChatMessage, utcnow

logger = logging.getLogger(__name__)

Listener = Callable[["MessageStore"], None]


class StreamingStatus(str, Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    STREAMING = "streaming"
    COMPLETED = "completed"
    ERROR = "error"


class MessageStore:
    """Ordered, per-conversation message storage with change notification."""

    def __init__(self) -> None:
        self._messages: dict[str, list[ChatMessage]] = {}
        self._listeners: list[Listener] = []
        self.streaming_status = StreamingStatus.IDLE
        self.streaming_message_id: str | None = None

    # -- subscriptions -----------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    # -- reads -------------------------------------------------------------

    def get_messages(self, conversation_id: str) -> list[ChatMessage]:
        return list(self._messages.get(conversation_id, ()))

    def get_message(self, conversation_id: str, message_id: str) -> ChatMessage | None:
        for message in self._messages.get(conversation_id, ()):
            if message.id == message_id:
                return message
        return None

    def get_last_message(self, conversation_id: str) -> ChatMessage | None:
        messages = self._messages.get(conversation_id)
        return messages[-1] if messages else None

    def get_message_count(self, conversation_id: str) -> int:
        return len(self._messages.get(conversation_id, ()))

    @property
    def conversation_ids(self) -> list[str]:
        return list(self._messages)

    # -- writes ------------------------------------------------------------

    def add_message(self, message: ChatMessage) -> ChatMessage:
        self._messages.setdefault(message.conversation_id, []).append(message)
        self._notify()
        return message

    def update_message(self, conversation_id: str, message_id: str, **updates: Any) -> ChatMessage | None:
        """Replace fields of a message. Unknown ids are logged and ignored."""
        messages = self._messages.get(conversation_id, [])
        for index, message in enumerate(messages):
            if message.id == message_id:
                updated = replace(message, **updates, updated_at=utcnow())
                messages[index] = updated
                self._notify()
                return updated

        logger.warning("Message %s not found in conversation %s", message_id, conversation_id)
        return None

    def append_content(self, conversation_id: str, message_id: str, delta: str) -> ChatMessage | None:
        message = self.get_message(conversation_id, message_id)
        if message is None:
            logger.warning("Message %s not found in conversation %s", message_id, conversation_id)
            return None
        return self.update_message(conversation_id, message_id, content=message.content + delta)

    def delete_message(self, conversation_id: str, message_id: str) -> bool:
        messages = self._messages.get(conversation_id, [])
        remaining = [m for m in messages if m.id != message_id]
        if len(remaining) == len(messages):
            return False
        self._messages[conversation_id] = remaining
        self._notify()
        return True

    def clear_conversation(self, conversation_id: str) -> None:
        self._messages.pop(conversation_id, None)
        self._notify()

    # -- streaming status --------------------------------------------------

    def set_streaming_status(self, status: StreamingStatus, message_id: str | None = None) -> None:
        self.streaming_status = StreamingStatus(status)
        self.streaming_message_id = message_id
        self._notify()

    def get_streaming_status(self) -> StreamingStatus:
        return self.streaming_status

    def is_streaming(self) -> bool:
        return self.streaming_status in (StreamingStatus.CONNECTING, StreamingStatus.STREAMING)

    def reset(self) -> None:
        self._messages = {}
        self.streaming_status = StreamingStatus.IDLE
        self.streaming_message_id = None
        self._notify()


__all__ = ["MessageStore", "StreamingStatus"]
