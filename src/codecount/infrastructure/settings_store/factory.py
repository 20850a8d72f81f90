"""
Factory selecting a settings store implementation from configuration.
"""

from pathlib import Path

from codecount.core.settings.interfaces import SettingsStoreInterface

from .json_store import JsonFileSettingsStore
from .memory_store import InMemorySettingsStore
from .sqlite_store import SqliteSettingsStore


def create_settings_store(
    kind: str,
    root: Path | str,
    db_path: Path | str | None = None,
) -> SettingsStoreInterface:
    """
    Create a settings store.

    Args:
        kind: 'sqlite', 'json' or 'memory'
        root: Workspace root (sidecar files live below it; relative db paths
            resolve against it)
        db_path: SQLite database path for the 'sqlite' kind

    Raises:
        ValueError: If ``kind`` is unknown
    """
    kind = kind.lower()
    if kind == "sqlite":
        path = Path(db_path) if db_path else Path(".codecount/settings.db")
        if not path.is_absolute():
            path = Path(root) / path
        return SqliteSettingsStore(path)
    if kind == "json":
        return JsonFileSettingsStore(root)
    if kind == "memory":
        return InMemorySettingsStore()
    raise ValueError(f"Unknown settings store: {kind!r} (expected sqlite, json or memory)")
