"""
Fake implementations for testing.

Provides in-memory implementations of infrastructure interfaces
for use in unit and integration tests without touching the disk.
"""

from __future__ import annotations

import itertools
import threading
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING

from codecount.core.errors import FileAccessError
from codecount.core.filesystem import DirEntry, FileStat, FileSystemInterface
from codecount.infrastructure.settings_store.memory_store import InMemorySettingsStore

if TYPE_CHECKING:
    from codecount.core.file_events import FileEvent

__all__ = ["FakeFileWatcher", "InMemoryFileSystem", "InMemorySettingsStore"]


class InMemoryFileSystem(FileSystemInterface):
    """
    Dict-backed file tree.

    Modification times come from a monotonically increasing counter so every
    write or ``touch`` produces a new fingerprint. ``read_count`` tracks how
    many reads reached the fake, which lets tests tell cache hits from misses.
    """

    def __init__(self) -> None:
        self._files: dict[Path, tuple[bytes, int]] = {}
        self._dirs: set[Path] = set()
        self._unreadable: set[Path] = set()
        self._clock = itertools.count(1_000_000_000)
        self._lock = threading.Lock()
        self.read_count = 0

    def _add_parents(self, path: Path) -> None:
        for parent in path.parents:
            self._dirs.add(parent)

    def add_file(self, path: Path | str, content: bytes | str = b"") -> Path:
        path = Path(path)
        data = content.encode("utf-8") if isinstance(content, str) else content
        with self._lock:
            self._files[path] = (data, next(self._clock))
            self._add_parents(path)
        return path

    def add_directory(self, path: Path | str) -> Path:
        path = Path(path)
        with self._lock:
            self._dirs.add(path)
            self._add_parents(path)
        return path

    def touch(self, path: Path | str) -> None:
        """Bump a file's modification time without changing its content."""
        path = Path(path)
        with self._lock:
            data, _ = self._files[path]
            self._files[path] = (data, next(self._clock))

    def remove(self, path: Path | str) -> None:
        path = Path(path)
        with self._lock:
            self._files.pop(path, None)

    def make_unreadable(self, path: Path | str) -> None:
        with self._lock:
            self._unreadable.add(Path(path))

    def _check_readable(self, path: Path) -> None:
        if path in self._unreadable:
            raise FileAccessError(str(path), "permission denied")

    def list_entries(self, directory: Path) -> list[DirEntry]:
        directory = Path(directory)
        with self._lock:
            self._check_readable(directory)
            if directory not in self._dirs:
                raise FileAccessError(str(directory), "no such directory")
            entries = [
                DirEntry(name=d.name, is_directory=True)
                for d in self._dirs
                if d.parent == directory and d != directory
            ]
            entries.extend(
                DirEntry(name=f.name, is_directory=False)
                for f in self._files
                if f.parent == directory
            )
        return entries

    def read_bytes(self, path: Path, offset: int, length: int) -> bytes:
        path = Path(path)
        with self._lock:
            self._check_readable(path)
            if path not in self._files:
                raise FileAccessError(str(path), "no such file")
            self.read_count += 1
            data, _ = self._files[path]
        return data[offset:offset + length]

    def stat(self, path: Path) -> FileStat:
        path = Path(path)
        with self._lock:
            if path not in self._files:
                raise FileAccessError(str(path), "no such file")
            data, mtime_ns = self._files[path]
        return FileStat(size=len(data), mtime_ns=mtime_ns)


class FakeFileWatcher:
    """
    Fake file watcher for testing.

    Allows manual triggering of file events without actual file system monitoring.
    Implements the same interface as FileWatcher for use in tests.
    """

    def __init__(self) -> None:
        self._callback: Callable[[FileEvent], None] | None = None
        self._watch_path: Path | None = None
        self._running = False
        self._events: list[FileEvent] = []

    def start(self, path: Path, callback: Callable[[FileEvent], None]) -> None:
        if self._running:
            raise RuntimeError("File watcher is already running")
        self._watch_path = Path(path)
        self._callback = callback
        self._running = True

    def stop(self) -> None:
        self._running = False
        self._callback = None
        self._watch_path = None

    def is_running(self) -> bool:
        return self._running

    def trigger_event(self, event: FileEvent) -> None:
        """
        Manually trigger a file event.

        Raises:
            RuntimeError: If the watcher is not running
        """
        if not self._running:
            raise RuntimeError("File watcher is not running")
        self._events.append(event)
        if self._callback is not None:
            self._callback(event)

    def get_triggered_events(self) -> list[FileEvent]:
        return list(self._events)
