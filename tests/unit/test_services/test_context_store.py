"""Tests for the per-user context store."""

from unittest.mock import patch

import pytest

from chat_model.models.turn import ConversationTurn
from chat_model.services.context_store import ContextStore, apply_system_prompt, trim_context
from chat_model.services.storage import CONTEXT_TABLE
from tests.fixtures import turns


class TestContextStore:
    @pytest.fixture
    def store(self, database):
        return ContextStore(database)

    @pytest.mark.asyncio
    async def test_load_unknown_user(self, store):
        assert await store.load("new-user") == []

    @pytest.mark.asyncio
    async def test_save_inserts_then_updates(self, store, database):
        with patch("chat_model.services.context_store.time.time", return_value=1.5):
            await store.save("u1", turns(("system", "S"), ("user", "hi")))

        row = (await database.get(CONTEXT_TABLE, {"userId": "u1"}))[0]
        assert row["updatedAt"] == 1500
        assert row["context"] == [
            {"role": "system", "content": "S"},
            {"role": "user", "content": "hi"},
        ]

        await store.save("u1", turns(("system", "S2")))

        assert await store.load("u1") == [ConversationTurn(role="system", content="S2")]
        assert len(database.tables[CONTEXT_TABLE]) == 1

    @pytest.mark.asyncio
    async def test_clear_keeps_record(self, store, database):
        await store.save("u1", turns(("system", "S"), ("user", "hi"), ("assistant", "yo")))

        with patch("chat_model.services.context_store.time.time", return_value=99):
            await store.clear("u1")

        assert await store.load("u1") == []
        row = (await database.get(CONTEXT_TABLE, {"userId": "u1"}))[0]
        assert row["context"] == []
        assert row["updatedAt"] == 99000

    @pytest.mark.asyncio
    async def test_clear_unknown_user_is_noop(self, store, database):
        await store.clear("ghost")

        assert await database.get(CONTEXT_TABLE, {"userId": "ghost"}) == []

    @pytest.mark.asyncio
    async def test_users_are_isolated(self, store):
        await store.save("a", turns(("user", "from a")))
        await store.save("b", turns(("user", "from b")))

        assert (await store.load("a"))[0].content == "from a"
        assert (await store.load("b"))[0].content == "from b"


class TestTrimContext:
    def test_removes_oldest_pair_after_system(self):
        history = turns(
            ("system", "S"), ("user", "u1"), ("assistant", "a1"),
            ("user", "u2"), ("assistant", "a2"), ("user", "u3"),
        )

        trim_context(history, 5)

        assert [t.content for t in history] == ["S", "u2", "a2", "u3"]

    def test_never_evicts_system_turn(self):
        history = turns(("system", "S"), ("user", "u1"), ("assistant", "a1"), ("user", "u2"))

        trim_context(history, 1)

        assert history[0].role == "system"
        assert [t.content for t in history] == ["S", "u2"]

    def test_within_limit_untouched(self):
        history = turns(("system", "S"), ("user", "u1"))

        assert trim_context(history, 3) is history
        assert len(history) == 2

    def test_without_system_turn(self):
        history = turns(("user", "u1"), ("assistant", "a1"), ("user", "u2"))

        trim_context(history, 2)

        assert [t.content for t in history] == ["u2"]

    def test_unanswered_user_turn_evicted_alone(self):
        history = turns(
            ("system", "S"), ("user", "u1"), ("user", "u2"), ("assistant", "a2"), ("user", "u3"),
        )

        trim_context(history, 4)

        assert [t.content for t in history] == ["S", "u2", "a2", "u3"]

    def test_exchange_with_unanswered_turn_keeps_user_first(self):
        history = turns(
            ("system", "S"), ("user", "u1"), ("assistant", "a1"), ("user", "u2"),
            ("user", "u3"), ("assistant", "a3"), ("user", "u4"),
        )

        trim_context(history, 4)

        assert [t.content for t in history] == ["S", "u3", "a3", "u4"]
        assert history[1].role == "user"

    def test_newest_exchange_survives(self):
        history = turns(("system", "S"), ("user", "u1"), ("assistant", "a1"))

        trim_context(history, 1)

        assert [t.content for t in history] == ["S", "u1", "a1"]


class TestApplySystemPrompt:
    def test_inserts_when_missing(self):
        history = turns(("user", "hi"))

        apply_system_prompt(history, "S")

        assert history[0] == ConversationTurn(role="system", content="S")
        assert len(history) == 2

    def test_overwrites_existing(self):
        history = turns(("system", "old"), ("user", "hi"))

        apply_system_prompt(history, "new")

        assert [t.content for t in history] == ["new", "hi"]
        assert sum(1 for t in history if t.role == "system") == 1
