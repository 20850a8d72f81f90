"""
Infrastructure Layer - settings persistence and file watching.
"""

from codecount.infrastructure.fakes import FakeFileWatcher, InMemoryFileSystem
from codecount.infrastructure.file_watcher import FileWatcher, FileWatcherInterface
from codecount.infrastructure.settings_store import (
    InMemorySettingsStore,
    JsonFileSettingsStore,
    SqliteSettingsStore,
    create_settings_store,
)

__all__ = [
    # Settings stores
    "SqliteSettingsStore",
    "JsonFileSettingsStore",
    "InMemorySettingsStore",
    "create_settings_store",
    # File watcher
    "FileWatcherInterface",
    "FileWatcher",
    # Fakes for testing
    "InMemoryFileSystem",
    "FakeFileWatcher",
]
