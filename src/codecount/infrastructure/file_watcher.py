"""
File watcher infrastructure component.

Adapts watchdog's observer to FileEvents. The usual callback is
``ChangeQueue.publish``: events are only queued here and get applied when
the cache or the settings resolver next drains its subscription.
"""

import logging
import os
import threading
from collections.abc import Callable
from pathlib import Path
from typing import Protocol

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from codecount.core.file_events import FileEvent, FileEventType
from codecount.core.pattern_matcher import PatternMatcher, normalize_path

logger = logging.getLogger(__name__)

# Paths whose changes never affect counts or settings
DEFAULT_WATCH_IGNORE = ["**/.git/**", "**/.codecount.json.*.tmp"]


class FileWatcherInterface(Protocol):
    """Anything that can feed FileEvents for a directory tree into a callback."""

    def start(self, path: Path, callback: Callable[[FileEvent], None]) -> None: ...

    def stop(self) -> None: ...

    def is_running(self) -> bool: ...


class FileWatcher(FileWatcherInterface):
    """
    watchdog-backed watcher for a workspace root.

    File events of every kind are forwarded, including changes to settings
    sidecar files. Directory deletions and moves are forwarded too so that
    cached entries below them can be dropped.
    """

    def __init__(
        self,
        ignore_patterns: list[str] | None = None,
        matcher: PatternMatcher | None = None,
    ):
        """
        Args:
            ignore_patterns: Root-relative globs whose events are dropped
                (defaults to DEFAULT_WATCH_IGNORE)
            matcher: PatternMatcher used to apply them
        """
        if ignore_patterns is None:
            ignore_patterns = DEFAULT_WATCH_IGNORE
        self._ignore_patterns = list(ignore_patterns)
        self._matcher = matcher or PatternMatcher()
        self._observer: Observer | None = None
        self._callback: Callable[[FileEvent], None] | None = None
        self._root: Path | None = None
        self._lock = threading.Lock()

    def start(self, path: Path, callback: Callable[[FileEvent], None]) -> None:
        """
        Begin forwarding events under ``path`` to ``callback``.

        Raises:
            ValueError: If ``path`` is not an existing directory
            RuntimeError: If this watcher is already running
        """
        root = Path(path).resolve()
        if not root.is_dir():
            raise ValueError(f"Cannot watch {root}: not an existing directory")

        with self._lock:
            if self._observer is not None and self._observer.is_alive():
                raise RuntimeError(f"Already watching {self._root}")

            self._root = root
            self._callback = callback
            observer = Observer()
            observer.schedule(
                _WatchdogEventHandler(self._handle_event, self._should_ignore),
                str(root),
                recursive=True,
            )
            observer.start()
            self._observer = observer

        logger.info(f"Watching {root} for changes")

    def stop(self) -> None:
        with self._lock:
            observer, self._observer = self._observer, None
            root, self._root = self._root, None
            self._callback = None
        if observer is not None:
            observer.stop()
            observer.join(timeout=5.0)
            logger.info(f"No longer watching {root}")

    def is_running(self) -> bool:
        with self._lock:
            return self._observer is not None and self._observer.is_alive()

    def _should_ignore(self, path: Path) -> bool:
        root = self._root
        if root is None:
            return False
        try:
            rel = normalize_path(path, root)
        except ValueError:
            # outside the watched tree
            return True
        return self._matcher.is_excluded(rel, self._ignore_patterns)

    def _handle_event(self, event: FileEvent) -> None:
        callback = self._callback
        if callback is None:
            return
        try:
            callback(event)
        except Exception as e:
            # the observer thread must survive a failing consumer
            logger.error(f"Change callback failed for {event.file_path}: {e}")


class _WatchdogEventHandler(FileSystemEventHandler):
    """Translates watchdog events into FileEvents, dropping ignored paths."""

    # watchdog event_type -> FileEventType; opened/closed events are not changes
    _KINDS = {
        "created": FileEventType.CREATED,
        "modified": FileEventType.MODIFIED,
        "deleted": FileEventType.DELETED,
        "moved": FileEventType.MOVED,
    }

    def __init__(
        self,
        callback: Callable[[FileEvent], None],
        should_ignore: Callable[[Path], bool],
    ):
        super().__init__()
        self._callback = callback
        self._should_ignore = should_ignore

    def on_any_event(self, event: FileSystemEvent) -> None:
        kind = self._KINDS.get(event.event_type)
        if kind is None:
            return
        # a new or touched directory changes nothing until files appear in it
        if event.is_directory and kind in (FileEventType.CREATED, FileEventType.MODIFIED):
            return

        src = Path(os.fsdecode(event.src_path))
        if kind is not FileEventType.MOVED:
            if not self._should_ignore(src):
                self._emit(FileEvent(kind, src))
            return

        dest = Path(os.fsdecode(event.dest_path))
        src_watched = not self._should_ignore(src)
        if not self._should_ignore(dest):
            self._emit(FileEvent(kind, dest, old_path=src if src_watched else None))
        elif src_watched:
            # moved out of view
            self._emit(FileEvent(FileEventType.DELETED, src))

    def _emit(self, event: FileEvent) -> None:
        logger.debug(f"{event.event_type.value}: {event.file_path}")
        self._callback(event)
