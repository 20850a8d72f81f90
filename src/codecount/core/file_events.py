"""
Change notifications delivered to the cache and the settings resolver.

Watchers (or tests) publish FileEvents into a ChangeQueue. Each consumer holds
its own subscription and drains it at a defined point: the resolver at the
start of every resolution, the cache at the start of every scan. Nothing
reacts to an event in the middle of an operation.
"""

import threading
import time
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


class FileEventType(Enum):
    """What happened to a path."""

    CREATED = "created"
    MODIFIED = "modified"
    DELETED = "deleted"
    MOVED = "moved"


@dataclass
class FileEvent:
    """
    A single file system event.

    Attributes:
        event_type: What happened
        file_path: Path to the affected file (the destination for MOVED)
        old_path: Source path of a move, when it was inside the watched tree
        timestamp: When the event was observed (time.time())
    """

    event_type: FileEventType
    file_path: Path
    old_path: Path | None = None
    timestamp: float = field(default_factory=time.time)

    def __post_init__(self) -> None:
        if isinstance(self.file_path, str):
            self.file_path = Path(self.file_path)
        if isinstance(self.old_path, str):
            self.old_path = Path(self.old_path)


@dataclass
class ChangeBatch:
    """
    Coalesced events drained from a subscription.

    A create followed by a delete cancels out, repeated modifications collapse
    to one entry, and a move is a delete of the old path plus a create of the
    new one.
    """

    created: set[Path] = field(default_factory=set)
    modified: set[Path] = field(default_factory=set)
    deleted: set[Path] = field(default_factory=set)

    def is_empty(self) -> bool:
        return not (self.created or self.modified or self.deleted)

    def merge(self, event: FileEvent) -> None:
        """Merge one event into the batch."""
        if event.event_type is FileEventType.MOVED:
            if event.old_path is not None:
                self._remove(event.old_path)
            self._add(event.file_path)
        elif event.event_type is FileEventType.DELETED:
            self._remove(event.file_path)
        elif event.event_type is FileEventType.CREATED:
            self._add(event.file_path)
        else:
            path = event.file_path
            if path in self.deleted:
                self.deleted.discard(path)
                self.modified.add(path)
            elif path not in self.created:
                self.modified.add(path)

    def _add(self, path: Path) -> None:
        if path in self.deleted:
            # recreated within the batch
            self.deleted.discard(path)
            self.modified.add(path)
        elif path not in self.created and path not in self.modified:
            self.created.add(path)

    def _remove(self, path: Path) -> None:
        if path in self.created:
            self.created.discard(path)
        else:
            self.modified.discard(path)
            self.deleted.add(path)

    def changed_paths(self) -> set[Path]:
        """Every path whose previous state is now stale."""
        return self.created | self.modified | self.deleted

    def total_count(self) -> int:
        return len(self.created) + len(self.modified) + len(self.deleted)


class ChangeSubscription:
    """One consumer's view of a ChangeQueue."""

    def __init__(self, name: str):
        self.name = name
        self._events: deque[FileEvent] = deque()
        self._lock = threading.Lock()

    def _append(self, event: FileEvent) -> None:
        with self._lock:
            self._events.append(event)

    def pending(self) -> int:
        with self._lock:
            return len(self._events)

    def drain(self) -> ChangeBatch:
        """Remove all pending events and return them coalesced."""
        with self._lock:
            events = list(self._events)
            self._events.clear()
        batch = ChangeBatch()
        for event in events:
            batch.merge(event)
        return batch


class ChangeQueue:
    """
    Thread-safe fan-out of file events to subscriptions.

    ``publish`` may be called from any thread, typically a watcher's
    observer thread.
    """

    def __init__(self) -> None:
        self._subscriptions: list[ChangeSubscription] = []
        self._lock = threading.Lock()

    def subscribe(self, name: str) -> ChangeSubscription:
        subscription = ChangeSubscription(name)
        with self._lock:
            self._subscriptions.append(subscription)
        return subscription

    def publish(self, event: FileEvent) -> None:
        with self._lock:
            subscriptions = list(self._subscriptions)
        for subscription in subscriptions:
            subscription._append(event)
