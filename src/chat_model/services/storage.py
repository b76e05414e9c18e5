"""Persistent storage used by the context store and usage limiter."""

import asyncio
import copy
import json
import logging
import sqlite3
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping

logger = logging.getLogger(__name__)

CONTEXT_TABLE = "chatModelContext"
USAGE_TABLE = "chatModelUsage"

PRIMARY_KEY = "userId"


class Database(ABC):
    """Key-value tables keyed by ``userId``.

    Mirrors the host framework's database service: ``get`` returns matching
    rows, ``set`` patches matching rows and returns the affected row count,
    ``create`` inserts a row.
    """

    @abstractmethod
    async def get(self, table: str, query: Mapping[str, Any]) -> List[Dict[str, Any]]:
        ...

    @abstractmethod
    async def set(self, table: str, query: Mapping[str, Any], patch: Mapping[str, Any]) -> int:
        ...

    @abstractmethod
    async def create(self, table: str, record: Mapping[str, Any]) -> Dict[str, Any]:
        ...

    async def close(self) -> None:
        """Release the underlying connection."""


class MemoryDatabase(Database):
    """In-process storage, lost on restart."""

    def __init__(self):
        self.tables: Dict[str, Dict[str, Dict[str, Any]]] = {}

    async def get(self, table: str, query: Mapping[str, Any]) -> List[Dict[str, Any]]:
        row = self.tables.get(table, {}).get(query[PRIMARY_KEY])
        return [copy.deepcopy(row)] if row is not None else []

    async def set(self, table: str, query: Mapping[str, Any], patch: Mapping[str, Any]) -> int:
        row = self.tables.get(table, {}).get(query[PRIMARY_KEY])
        if row is None:
            return 0
        row.update(copy.deepcopy(dict(patch)))
        return 1

    async def create(self, table: str, record: Mapping[str, Any]) -> Dict[str, Any]:
        rows = self.tables.setdefault(table, {})
        key = record[PRIMARY_KEY]
        if key in rows:
            raise ValueError(f"Duplicate {PRIMARY_KEY} {key!r} in {table}")
        rows[key] = copy.deepcopy(dict(record))
        return copy.deepcopy(rows[key])


_SCHEMA = {
    CONTEXT_TABLE: {"userId": "TEXT PRIMARY KEY", "context": "TEXT", "updatedAt": "INTEGER"},
    USAGE_TABLE: {"userId": "TEXT PRIMARY KEY", "dailyCount": "INTEGER", "lastResetDate": "TEXT"},
}

# Columns holding JSON-encoded values.
_JSON_COLUMNS = {CONTEXT_TABLE: {"context"}}


class SQLiteDatabase(Database):
    """SQLite-backed storage for the two plugin tables.

    Queries run in a worker thread so the event loop is not blocked.
    """

    def __init__(self, path: str = "chat_model.db"):
        self.path = path
        self._conn = sqlite3.connect(path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._lock = asyncio.Lock()
        self._ensure_schema()
        logger.info(f"SQLite storage opened at {path}")

    def _ensure_schema(self) -> None:
        for table, columns in _SCHEMA.items():
            column_sql = ", ".join(f'"{name}" {kind}' for name, kind in columns.items())
            self._conn.execute(f'CREATE TABLE IF NOT EXISTS "{table}" ({column_sql})')
        self._conn.commit()

    def _columns(self, table: str, names) -> List[str]:
        if table not in _SCHEMA:
            raise ValueError(f"Unknown table: {table}")
        unknown = [name for name in names if name not in _SCHEMA[table]]
        if unknown:
            raise ValueError(f"Unknown columns for {table}: {unknown}")
        return list(names)

    def _encode(self, table: str, values: Mapping[str, Any]) -> Dict[str, Any]:
        json_columns = _JSON_COLUMNS.get(table, set())
        return {
            key: json.dumps(value, ensure_ascii=False) if key in json_columns else value
            for key, value in values.items()
        }

    def _decode(self, table: str, row: sqlite3.Row) -> Dict[str, Any]:
        json_columns = _JSON_COLUMNS.get(table, set())
        result = dict(row)
        for key in json_columns:
            if result.get(key) is not None:
                result[key] = json.loads(result[key])
        return result

    def _get(self, table: str, query: Mapping[str, Any]) -> List[Dict[str, Any]]:
        self._columns(table, query.keys())
        where = " AND ".join(f'"{name}" = ?' for name in query)
        rows = self._conn.execute(
            f'SELECT * FROM "{table}" WHERE {where}', tuple(query.values())
        ).fetchall()
        return [self._decode(table, row) for row in rows]

    def _set(self, table: str, query: Mapping[str, Any], patch: Mapping[str, Any]) -> int:
        self._columns(table, list(query.keys()) + list(patch.keys()))
        values = self._encode(table, patch)
        assignments = ", ".join(f'"{name}" = ?' for name in values)
        where = " AND ".join(f'"{name}" = ?' for name in query)
        cursor = self._conn.execute(
            f'UPDATE "{table}" SET {assignments} WHERE {where}',
            tuple(values.values()) + tuple(query.values()),
        )
        self._conn.commit()
        return cursor.rowcount

    def _create(self, table: str, record: Mapping[str, Any]) -> Dict[str, Any]:
        columns = self._columns(table, record.keys())
        values = self._encode(table, record)
        placeholders = ", ".join("?" for _ in columns)
        column_sql = ", ".join(f'"{name}"' for name in columns)
        self._conn.execute(
            f'INSERT INTO "{table}" ({column_sql}) VALUES ({placeholders})',
            tuple(values[name] for name in columns),
        )
        self._conn.commit()
        return dict(record)

    async def get(self, table: str, query: Mapping[str, Any]) -> List[Dict[str, Any]]:
        async with self._lock:
            return await asyncio.to_thread(self._get, table, query)

    async def set(self, table: str, query: Mapping[str, Any], patch: Mapping[str, Any]) -> int:
        async with self._lock:
            return await asyncio.to_thread(self._set, table, query, patch)

    async def create(self, table: str, record: Mapping[str, Any]) -> Dict[str, Any]:
        async with self._lock:
            return await asyncio.to_thread(self._create, table, record)

    async def close(self) -> None:
        async with self._lock:
            self._conn.close()
        logger.info("SQLite storage closed")
