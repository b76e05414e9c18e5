"""Tests for the storage backends."""

import pytest
import pytest_asyncio

from chat_model.services.storage import (
    CONTEXT_TABLE,
    USAGE_TABLE,
    MemoryDatabase,
    SQLiteDatabase,
)


@pytest_asyncio.fixture(params=["memory", "sqlite"])
async def db(request, tmp_path):
    if request.param == "memory":
        database = MemoryDatabase()
    else:
        database = SQLiteDatabase(str(tmp_path / "chat.db"))
    yield database
    await database.close()


class TestDatabaseContract:
    """Both backends behave the same way."""

    @pytest.mark.asyncio
    async def test_get_missing_returns_empty_list(self, db):
        assert await db.get(CONTEXT_TABLE, {"userId": "nobody"}) == []

    @pytest.mark.asyncio
    async def test_set_missing_affects_no_rows(self, db):
        assert await db.set(USAGE_TABLE, {"userId": "nobody"}, {"dailyCount": 1}) == 0

    @pytest.mark.asyncio
    async def test_create_then_get(self, db):
        context = [{"role": "system", "content": "S"}, {"role": "user", "content": "hi"}]
        await db.create(CONTEXT_TABLE, {"userId": "u1", "context": context, "updatedAt": 1})

        rows = await db.get(CONTEXT_TABLE, {"userId": "u1"})

        assert rows == [{"userId": "u1", "context": context, "updatedAt": 1}]

    @pytest.mark.asyncio
    async def test_set_patches_fields(self, db):
        await db.create(USAGE_TABLE, {"userId": "u1", "dailyCount": 1, "lastResetDate": "2024-01-01"})

        assert await db.set(USAGE_TABLE, {"userId": "u1"}, {"dailyCount": 2}) == 1

        rows = await db.get(USAGE_TABLE, {"userId": "u1"})
        assert rows[0]["dailyCount"] == 2
        assert rows[0]["lastResetDate"] == "2024-01-01"

    @pytest.mark.asyncio
    async def test_tables_are_separate(self, db):
        await db.create(USAGE_TABLE, {"userId": "u1", "dailyCount": 1, "lastResetDate": "d"})

        assert await db.get(CONTEXT_TABLE, {"userId": "u1"}) == []


class TestMemoryDatabase:
    @pytest.mark.asyncio
    async def test_returned_rows_are_copies(self):
        db = MemoryDatabase()
        await db.create(CONTEXT_TABLE, {"userId": "u1", "context": [], "updatedAt": 1})

        rows = await db.get(CONTEXT_TABLE, {"userId": "u1"})
        rows[0]["context"].append({"role": "user", "content": "sneaky"})

        assert (await db.get(CONTEXT_TABLE, {"userId": "u1"}))[0]["context"] == []

    @pytest.mark.asyncio
    async def test_duplicate_create_rejected(self):
        db = MemoryDatabase()
        await db.create(CONTEXT_TABLE, {"userId": "u1", "context": [], "updatedAt": 1})

        with pytest.raises(ValueError, match="Duplicate"):
            await db.create(CONTEXT_TABLE, {"userId": "u1", "context": [], "updatedAt": 2})


class TestSQLiteDatabase:
    @pytest.mark.asyncio
    async def test_persists_across_connections(self, tmp_path):
        path = str(tmp_path / "chat.db")
        first = SQLiteDatabase(path)
        await first.create(CONTEXT_TABLE, {"userId": "u1", "context": [{"role": "user", "content": "你好"}], "updatedAt": 5})
        await first.close()

        second = SQLiteDatabase(path)
        rows = await second.get(CONTEXT_TABLE, {"userId": "u1"})
        await second.close()

        assert rows[0]["context"] == [{"role": "user", "content": "你好"}]

    @pytest.mark.asyncio
    async def test_rejects_unknown_columns(self, tmp_path):
        db = SQLiteDatabase(str(tmp_path / "chat.db"))

        with pytest.raises(ValueError, match="Unknown columns"):
            await db.set(CONTEXT_TABLE, {"userId": "u1"}, {"bogus": 1})
        await db.close()

    @pytest.mark.asyncio
    async def test_rejects_unknown_table(self, tmp_path):
        db = SQLiteDatabase(str(tmp_path / "chat.db"))

        with pytest.raises(ValueError, match="Unknown table"):
            await db.get("other", {"userId": "u1"})
        await db.close()
