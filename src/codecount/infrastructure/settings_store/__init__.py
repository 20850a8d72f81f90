"""
Settings store implementations.

SQLite, JSON sidecar and in-memory persistence for per-directory settings.
"""

from .factory import create_settings_store
from .json_store import JsonFileSettingsStore
from .memory_store import InMemorySettingsStore
from .schema import initialize_schema
from .sqlite_store import SqliteSettingsStore

__all__ = [
    # Stores
    "SqliteSettingsStore",
    "JsonFileSettingsStore",
    "InMemorySettingsStore",
    # Schema
    "initialize_schema",
    # Factory
    "create_settings_store",
]
