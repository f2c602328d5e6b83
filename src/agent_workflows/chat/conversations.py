"""
In-memory conversation store with filtering, sorting and pagination.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Any

from .types import Conversation, ConversationStatus, ModelConfig, utcnow

logger = logging.getLogger(__name__)

Listener = Callable[["ConversationStore"], None]


class SortField(str, Enum):
    CREATED_AT = "created_at"
    UPDATED_AT = "updated_at"
    LAST_MESSAGE_AT = "last_message_at"
    TITLE = "title"
    MESSAGE_COUNT = "message_count"


@dataclass(frozen=True)
class ConversationFilter:
    """Every set criterion must match. Tag, status and provider lists match any member."""

    status: tuple[ConversationStatus, ...] | None = None
    tags: tuple[str, ...] | None = None
    is_pinned: bool | None = None
    provider: tuple[str, ...] | None = None
    search_query: str | None = None
    date_from: datetime | None = None
    date_to: datetime | None = None

    def matches(self, conv: Conversation) -> bool:
        if self.status and conv.status not in self.status:
            return False
        if self.tags and not any(tag in conv.tags for tag in self.tags):
            return False
        if self.is_pinned is not None and conv.is_pinned != self.is_pinned:
            return False
        if self.provider and conv.model_config.provider not in self.provider:
            return False
        if self.search_query:
            query = self.search_query.lower()
            in_title = query in conv.title.lower()
            in_prompt = query in (conv.system_prompt or "").lower()
            if not (in_title or in_prompt):
                return False

        activity = conv.last_message_at or conv.updated_at
        if self.date_from and activity < self.date_from:
            return False
        if self.date_to and activity > self.date_to:
            return False
        return True


@dataclass(frozen=True)
class ConversationSort:
    field: SortField = SortField.LAST_MESSAGE_AT
    descending: bool = True

    def key(self, conv: Conversation) -> Any:
        if self.field == SortField.CREATED_AT:
            return conv.created_at
        if self.field == SortField.UPDATED_AT:
            return conv.updated_at
        if self.field == SortField.LAST_MESSAGE_AT:
            return conv.last_message_at or conv.updated_at
        if self.field == SortField.TITLE:
            return conv.title.lower()
        return conv.message_count


class ConversationStore:
    """Conversation metadata keyed by id, plus the active conversation pointer."""

    def __init__(self) -> None:
        self._conversations: dict[str, Conversation] = {}
        self._listeners: list[Listener] = []
        self.active_conversation_id: str | None = None

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

    # -- CRUD --------------------------------------------------------------

    def create(
        self,
        title: str = "New Conversation",
        *,
        model_config: ModelConfig | None = None,
        system_prompt: str | None = None,
        tags: Iterable[str] = (),
        metadata: dict[str, Any] | None = None,
    ) -> Conversation:
        """Create a conversation and make it the active one."""
        conversation = Conversation(
            title=title,
            model_config=model_config or ModelConfig(),
            system_prompt=system_prompt,
            tags=list(tags),
            metadata=dict(metadata or {}),
        )
        self._conversations[conversation.id] = conversation
        self.active_conversation_id = conversation.id
        self._notify()
        return conversation

    def get(self, conversation_id: str) -> Conversation | None:
        return self._conversations.get(conversation_id)

    def all(self) -> list[Conversation]:
        return list(self._conversations.values())

    def update(self, conversation_id: str, **updates: Any) -> Conversation | None:
        """Replace fields of a conversation. Unknown ids are logged and ignored."""
        conversation = self._conversations.get(conversation_id)
        if conversation is None:
            logger.warning("Conversation %s not found", conversation_id)
            return None
        updated = replace(conversation, **updates, updated_at=utcnow())
        self._conversations[conversation_id] = updated
        self._notify()
        return updated

    def delete(self, conversation_id: str) -> bool:
        removed = self._conversations.pop(conversation_id, None)
        if self.active_conversation_id == conversation_id:
            self.active_conversation_id = None
        self._notify()
        return removed is not None

    def bulk_delete(self, conversation_ids: Iterable[str]) -> int:
        ids = set(conversation_ids)
        before = len(self._conversations)
        self._conversations = {k: v for k, v in self._conversations.items() if k not in ids}
        if self.active_conversation_id in ids:
            self.active_conversation_id = None
        self._notify()
        return before - len(self._conversations)

    def import_conversations(self, conversations: Iterable[Conversation]) -> None:
        """Merge conversations in, replacing any with the same id."""
        for conversation in conversations:
            self._conversations[conversation.id] = conversation
        self._notify()

    def reset(self) -> None:
        self._conversations = {}
        self.active_conversation_id = None
        self._notify()

    # -- querying ----------------------------------------------------------

    def list(
        self,
        filter: ConversationFilter | None = None,
        sort: ConversationSort | None = None,
        *,
        offset: int = 0,
        limit: int | None = None,
    ) -> list[Conversation]:
        conversations = self.all()
        if filter is not None:
            conversations = [c for c in conversations if filter.matches(c)]
        if sort is not None:
            conversations = sorted(conversations, key=sort.key, reverse=sort.descending)
        if limit is not None:
            return conversations[offset:offset + limit]
        return conversations[offset:]

    def search(self, query: str) -> list[Conversation]:
        return self.list(ConversationFilter(search_query=query), ConversationSort())

    def get_pinned(self) -> list[Conversation]:
        return self.list(ConversationFilter(is_pinned=True), ConversationSort())

    def get_by_status(self, status: ConversationStatus) -> list[Conversation]:
        return self.list(ConversationFilter(status=(ConversationStatus(status),)), ConversationSort())

    def count(self) -> int:
        return len(self._conversations)

    # -- active conversation -----------------------------------------------

    def set_active(self, conversation_id: str) -> None:
        if conversation_id not in self._conversations:
            logger.warning("Cannot set active conversation: %s not found", conversation_id)
            return
        self.active_conversation_id = conversation_id
        self._notify()

    def get_active(self) -> Conversation | None:
        if self.active_conversation_id is None:
            return None
        return self._conversations.get(self.active_conversation_id)

    def clear_active(self) -> None:
        self.active_conversation_id = None
        self._notify()

    # -- convenience mutations ---------------------------------------------

    def archive(self, conversation_id: str) -> Conversation | None:
        return self.update(conversation_id, status=ConversationStatus.ARCHIVED)

    def activate(self, conversation_id: str) -> Conversation | None:
        return self.update(conversation_id, status=ConversationStatus.ACTIVE)

    def toggle_pin(self, conversation_id: str) -> Conversation | None:
        conversation = self.get(conversation_id)
        if conversation is None:
            return None
        return self.update(conversation_id, is_pinned=not conversation.is_pinned)

    def add_tag(self, conversation_id: str, tag: str) -> Conversation | None:
        conversation = self.get(conversation_id)
        if conversation is None or tag in conversation.tags:
            return conversation
        return self.update(conversation_id, tags=[*conversation.tags, tag])

    def remove_tag(self, conversation_id: str, tag: str) -> Conversation | None:
        conversation = self.get(conversation_id)
        if conversation is None:
            return None
        return self.update(conversation_id, tags=[t for t in conversation.tags if t != tag])

    def increment_message_count(self, conversation_id: str) -> Conversation | None:
        conversation = self.get(conversation_id)
        if conversation is None:
            return None
        now = utcnow()
        return self.update(
            conversation_id,
            message_count=conversation.message_count + 1,
            last_message_at=now,
        )


__all__ = [
    "ConversationStore",
    "ConversationFilter",
    "ConversationSort",
    "SortField",
]
