"""Service components for the chat model plugin."""

from .context_store import ContextStore
from .storage import Database, MemoryDatabase, SQLiteDatabase
from .usage import UsageLimiter

__all__ = ["ContextStore", "Database", "MemoryDatabase", "SQLiteDatabase", "UsageLimiter"]
