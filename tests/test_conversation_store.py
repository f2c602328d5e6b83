"""Tests for the in-memory ConversationStore."""

from __future__ import annotations

from datetime import timedelta

import pytest

from agent_workflows.chat import ConversationStatus, ConversationStore, ModelConfig
from agent_workflows.chat.conversations import ConversationFilter, ConversationSort, SortField
from agent_workflows.chat.types import utcnow


@pytest.fixture
def store():
    return ConversationStore()


class TestCrud:
    def test_create_sets_active(self, store):
        conv = store.create("Planning", tags=["work"])

        assert store.get(conv.id) is conv
        assert store.get_active() is conv
        assert conv.status == ConversationStatus.ACTIVE
        assert conv.tags == ["work"]
        assert conv.id.startswith("conv_")

    def test_update(self, store):
        conv = store.create("Old")
        updated = store.update(conv.id, title="New")
        assert updated.title == "New"
        assert store.get(conv.id).title == "New"

    def test_update_unknown(self, store):
        assert store.update("missing", title="x") is None

    def test_delete_clears_active(self, store):
        conv = store.create()
        assert store.delete(conv.id) is True
        assert store.get_active() is None
        assert store.delete(conv.id) is False

    def test_bulk_delete(self, store):
        a, b, c = store.create("a"), store.create("b"), store.create("c")
        assert store.bulk_delete([a.id, c.id, "missing"]) == 2
        assert [x.id for x in store.all()] == [b.id]

    def test_import_replaces_same_id(self, store):
        conv = store.create("Original")
        copy = store.update(conv.id, title="Imported")
        store.reset()

        store.import_conversations([copy])

        assert store.get(conv.id).title == "Imported"
        assert store.count() == 1


class TestMutations:
    def test_archive_and_activate(self, store):
        conv = store.create()
        assert store.archive(conv.id).status == ConversationStatus.ARCHIVED
        assert store.activate(conv.id).status == ConversationStatus.ACTIVE

    def test_toggle_pin(self, store):
        conv = store.create()
        assert store.toggle_pin(conv.id).is_pinned is True
        assert store.toggle_pin(conv.id).is_pinned is False

    def test_tags(self, store):
        conv = store.create(tags=["a"])
        store.add_tag(conv.id, "b")
        store.add_tag(conv.id, "b")
        assert store.get(conv.id).tags == ["a", "b"]
        assert store.remove_tag(conv.id, "a").tags == ["b"]

    def test_increment_message_count(self, store):
        conv = store.create()
        updated = store.increment_message_count(conv.id)
        assert updated.message_count == 1
        assert updated.last_message_at is not None


class TestQuerying:
    def test_filter_by_status_tag_and_provider(self, store):
        work = store.create("Work", tags=["work"], model_config=ModelConfig(provider="anthropic"))
        store.create("Home", tags=["home"])
        archived = store.create("Old work", tags=["work"])
        store.archive(archived.id)

        result = store.list(
            ConversationFilter(
                status=(ConversationStatus.ACTIVE,),
                tags=("work",),
                provider=("anthropic",),
            )
        )

        assert [c.id for c in result] == [work.id]

    def test_search_title_and_system_prompt(self, store):
        a = store.create("Trip to Rome")
        b = store.create("Notes", system_prompt="You plan ROME itineraries")
        store.create("Other")

        assert {c.id for c in store.search("rome")} == {a.id, b.id}

    def test_date_range(self, store):
        old = store.create("old")
        new = store.create("new")
        store.update(old.id, last_message_at=utcnow() - timedelta(days=10))

        result = store.list(ConversationFilter(date_from=utcnow() - timedelta(days=1)))

        assert [c.id for c in result] == [new.id]

    def test_sort_and_paginate(self, store):
        for title in ("b", "C", "a"):
            store.create(title)

        ascending = ConversationSort(field=SortField.TITLE, descending=False)

        assert [c.title for c in store.list(sort=ascending)] == ["a", "b", "C"]
        assert [c.title for c in store.list(sort=ascending, offset=1, limit=1)] == ["b"]

    def test_pinned_and_by_status(self, store):
        pinned = store.create("p")
        store.toggle_pin(pinned.id)
        store.create("q")

        assert [c.id for c in store.get_pinned()] == [pinned.id]
        assert len(store.get_by_status(ConversationStatus.ACTIVE)) == 2


class TestActive:
    def test_set_active_unknown_is_ignored(self, store):
        conv = store.create()
        store.set_active("missing")
        assert store.active_conversation_id == conv.id

    def test_clear_active(self, store):
        store.create()
        store.clear_active()
        assert store.get_active() is None

    def test_listeners(self, store):
        counts = []
        unsubscribe = store.subscribe(lambda s: counts.append(s.count()))
        store.create()
        unsubscribe()
        store.create()
        assert counts == [1]
