"""
In-memory settings store for tests and ephemeral sessions.
"""

import threading
from typing import Any

from codecount.core.errors import SettingsStoreError
from codecount.core.settings.interfaces import SettingsStoreInterface
from codecount.core.settings.models import DirectorySettings


class InMemorySettingsStore(SettingsStoreInterface):
    """
    Dict-backed settings store.

    Entries are kept in their serialized form so ``put_raw`` can plant corrupt
    data the way a damaged file or database row would look.
    """

    def __init__(self) -> None:
        self._entries: dict[str, Any] = {}
        self._lock = threading.Lock()
        self.put_count = 0

    def get(self, path: str) -> DirectorySettings | None:
        with self._lock:
            if path not in self._entries:
                return None
            data = self._entries[path]
        if isinstance(data, Exception):
            raise SettingsStoreError(str(data))
        return DirectorySettings.from_dict(path, data)

    def put(self, path: str, settings: DirectorySettings) -> None:
        with self._lock:
            self._entries[path] = settings.to_dict()
            self.put_count += 1

    def put_raw(self, path: str, data: Any) -> None:
        """Store arbitrary data (or an exception to raise on read) under a key."""
        with self._lock:
            self._entries[path] = data

    def delete(self, path: str) -> bool:
        with self._lock:
            return self._entries.pop(path, None) is not None

    def list_paths(self) -> list[str]:
        with self._lock:
            return sorted(self._entries)
