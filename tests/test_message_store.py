"""Tests for the in-memory MessageStore."""

from __future__ import annotations

import logging

from agent_workflows.chat import ChatMessage, MessageRole, MessageStatus, MessageStore
from agent_workflows.chat.messages import StreamingStatus


def message(conversation_id: str = "c1", content: str = "hi", role: MessageRole = MessageRole.USER) -> ChatMessage:
    return ChatMessage(conversation_id=conversation_id, role=role, content=content)


class TestMessageStore:
    def test_messages_kept_per_conversation_in_order(self):
        store = MessageStore()
        first = store.add_message(message(content="one"))
        second = store.add_message(message(content="two"))
        store.add_message(message("c2", "other"))

        assert [m.id for m in store.get_messages("c1")] == [first.id, second.id]
        assert store.get_message_count("c2") == 1
        assert store.get_last_message("c1") is second
        assert store.conversation_ids == ["c1", "c2"]

    def test_unknown_conversation(self):
        store = MessageStore()
        assert store.get_messages("missing") == []
        assert store.get_last_message("missing") is None

    def test_update_message(self):
        store = MessageStore()
        original = store.add_message(message(content="draft"))

        updated = store.update_message("c1", original.id, content="final", status=MessageStatus.COMPLETED)

        assert updated.content == "final"
        assert updated.updated_at >= original.updated_at
        assert store.get_message("c1", original.id).content == "final"

    def test_update_unknown_message_is_logged(self, caplog):
        store = MessageStore()
        with caplog.at_level(logging.WARNING):
            assert store.update_message("c1", "nope", content="x") is None
        assert "not found" in caplog.text

    def test_append_content(self):
        store = MessageStore()
        reply = store.add_message(message(role=MessageRole.ASSISTANT, content=""))

        store.append_content("c1", reply.id, "Hel")
        store.append_content("c1", reply.id, "lo")

        assert store.get_message("c1", reply.id).content == "Hello"

    def test_delete_and_clear(self):
        store = MessageStore()
        kept = store.add_message(message(content="keep"))
        dropped = store.add_message(message(content="drop"))

        assert store.delete_message("c1", dropped.id) is True
        assert store.delete_message("c1", dropped.id) is False
        assert store.get_messages("c1") == [kept]

        store.clear_conversation("c1")
        assert store.get_messages("c1") == []

    def test_streaming_status(self):
        store = MessageStore()
        assert not store.is_streaming()

        store.set_streaming_status(StreamingStatus.STREAMING, "msg_1")

        assert store.is_streaming()
        assert store.streaming_message_id == "msg_1"

        store.reset()
        assert store.get_streaming_status() == StreamingStatus.IDLE
        assert store.conversation_ids == []

    def test_subscribe_and_unsubscribe(self):
        store = MessageStore()
        seen = []
        unsubscribe = store.subscribe(lambda s: seen.append(s.get_message_count("c1")))

        store.add_message(message())
        unsubscribe()
        store.add_message(message())

        assert seen == [1]

    def test_to_dict(self):
        data = message(content="hello").to_dict()
        assert data["role"] == "user"
        assert data["status"] == "completed"
        assert data["usage"] is None
