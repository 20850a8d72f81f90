"""
Modification-aware cache of per-file line counts.

Entries are keyed by absolute path and validated against the file's current
fingerprint (size, mtime) on every lookup, so a stale entry is never handed
out. Writes for one key are serialized by a striped lock; lookups of
different keys proceed in parallel.
"""

import json
import logging
import os
import tempfile
import threading
from collections import OrderedDict
from dataclasses import dataclass
from pathlib import Path

from codecount.core.binary_classifier import BinaryClassification
from codecount.core.errors import CacheInconsistency, FileAccessError
from codecount.core.file_events import ChangeSubscription
from codecount.core.models import Fingerprint, FileRecord

from .counting_worker import FileCounter

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1


@dataclass(frozen=True)
class CacheEntry:
    """Cached record plus the fingerprint it was computed against."""

    record: FileRecord
    fingerprint: Fingerprint


@dataclass(frozen=True)
class CacheResult:
    """
    Outcome of a cache lookup.

    Attributes:
        record: Line counts, or None when the file is binary
        hit: True when served from the cache
        classification: Binary verdict computed on a miss, None on a hit
    """

    record: FileRecord | None
    hit: bool
    classification: BinaryClassification | None = None


@dataclass
class CacheStats:
    """Counters describing cache behaviour since creation."""

    hits: int = 0
    misses: int = 0
    invalidations: int = 0
    discarded_writes: int = 0
    evictions: int = 0
    inconsistencies: int = 0


class LineCountCache:
    """
    Session-scoped line count cache.

    Construct one per session and hand it to the orchestrator; there is no
    shared global instance.
    """

    def __init__(
        self,
        counter: FileCounter,
        max_entries: int | None = None,
        lock_stripes: int = 16,
        changes: ChangeSubscription | None = None,
    ):
        """
        Initialize the cache.

        Args:
            counter: Computes records on a miss
            max_entries: Optional LRU bound; None or 0 means unbounded
            lock_stripes: Number of per-key write locks
            changes: Subscription drained by ``process_changes``
        """
        self._counter = counter
        self._filesystem = counter.filesystem
        self._max_entries = max_entries or None
        self._stripes = [threading.Lock() for _ in range(max(1, lock_stripes))]
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._index_lock = threading.Lock()
        # generation counters exist only while a computation for the key is in flight
        self._generations: dict[str, int] = {}
        self._in_flight: dict[str, int] = {}
        self._changes = changes
        self._stats = CacheStats()
        self._stats_lock = threading.Lock()

    @property
    def stats(self) -> CacheStats:
        with self._stats_lock:
            return CacheStats(**vars(self._stats))

    def __len__(self) -> int:
        with self._index_lock:
            return len(self._entries)

    def __contains__(self, path: object) -> bool:
        with self._index_lock:
            return str(path) in self._entries

    def _stripe(self, key: str) -> threading.Lock:
        return self._stripes[hash(key) % len(self._stripes)]

    def _count(self, counter: str, amount: int = 1) -> None:
        with self._stats_lock:
            setattr(self._stats, counter, getattr(self._stats, counter) + amount)

    # ─────────────────────────────────────────────────────────────────
    # Lookup
    # ─────────────────────────────────────────────────────────────────

    def get_or_compute(self, path: Path | str) -> CacheResult:
        """
        Return the record for a file, computing it on a miss.

        Raises:
            FileAccessError: If the file cannot be stat'ed or read
        """
        path = Path(path)
        key = str(path)
        fingerprint = self._filesystem.stat(path).fingerprint

        with self._index_lock:
            entry = self._entries.get(key)
            if entry is not None and entry.fingerprint == fingerprint:
                self._entries.move_to_end(key)

        if entry is not None:
            if entry.fingerprint == fingerprint:
                try:
                    self._check_entry(key, entry)
                except CacheInconsistency as e:
                    logger.warning(f"{e}; recomputing")
                    self._count("inconsistencies")
                else:
                    self._count("hits")
                    return CacheResult(record=entry.record, hit=True)
            else:
                logger.debug(f"Fingerprint changed for {key}, recomputing")

        self._count("misses")
        with self._stripe(key):
            generation = self._generations.get(key, 0)
            self._in_flight[key] = self._in_flight.get(key, 0) + 1

        try:
            outcome = self._counter.count(path, fingerprint)
            if outcome.record is None:
                self._drop(key)
            else:
                self._store(key, path, fingerprint, generation, outcome.record)
        finally:
            self._finish(key)
        return CacheResult(record=outcome.record, hit=False, classification=outcome.classification)

    def _check_entry(self, key: str, entry: CacheEntry) -> None:
        if not entry.record.is_consistent():
            raise CacheInconsistency(key, "line categories do not add up to the total")
        if entry.record.fingerprint != entry.fingerprint:
            raise CacheInconsistency(key, "record and entry fingerprints disagree")

    def _store(
        self, key: str, path: Path, fingerprint: Fingerprint, generation: int, record: FileRecord
    ) -> None:
        """Write an entry unless the file or the key changed while computing."""
        with self._stripe(key):
            if self._generations.get(key, 0) != generation:
                self._count("discarded_writes")
                logger.debug(f"Discarding write for {key}: invalidated during computation")
                return
            try:
                current = self._filesystem.stat(path).fingerprint
            except FileAccessError:
                current = None
            if current != fingerprint:
                self._count("discarded_writes")
                logger.debug(f"Discarding write for {key}: file changed during computation")
                return

            evicted = 0
            with self._index_lock:
                self._entries[key] = CacheEntry(record=record, fingerprint=fingerprint)
                self._entries.move_to_end(key)
                if self._max_entries is not None:
                    while len(self._entries) > self._max_entries:
                        self._entries.popitem(last=False)
                        evicted += 1
        if evicted:
            self._count("evictions", evicted)

    def _finish(self, key: str) -> None:
        with self._stripe(key):
            remaining = self._in_flight[key] - 1
            if remaining:
                self._in_flight[key] = remaining
            else:
                del self._in_flight[key]
                self._generations.pop(key, None)

    def _drop(self, key: str) -> None:
        with self._index_lock:
            self._entries.pop(key, None)

    # ─────────────────────────────────────────────────────────────────
    # Invalidation
    # ─────────────────────────────────────────────────────────────────

    def invalidate(self, path: Path | str) -> bool:
        """
        Remove the entry for a path unconditionally.

        Any computation already in flight for the path will not be stored.

        Returns:
            True if an entry was removed
        """
        key = str(Path(path))
        with self._stripe(key):
            if key in self._in_flight:
                self._generations[key] = self._generations.get(key, 0) + 1
            with self._index_lock:
                removed = self._entries.pop(key, None) is not None
        self._count("invalidations")
        return removed

    def invalidate_prefix(self, directory: Path | str) -> int:
        """Invalidate every entry below a directory."""
        prefix = str(Path(directory)) + os.sep
        with self._index_lock:
            keys = [k for k in self._entries if k.startswith(prefix)]
        for key in keys:
            self.invalidate(key)
        return len(keys)

    def clear(self) -> None:
        with self._index_lock:
            keys = list(self._entries)
        for key in keys:
            self.invalidate(key)

    def process_changes(self) -> int:
        """
        Drain pending change events and invalidate what they touch.

        Returns:
            Number of paths invalidated
        """
        if self._changes is None or not self._changes.pending():
            return 0
        batch = self._changes.drain()
        for path in batch.changed_paths():
            self.invalidate(path)
        for path in batch.deleted:
            # the deleted path may have been a directory
            self.invalidate_prefix(path)
        count = batch.total_count()
        logger.debug(f"Applied {count} change events to line count cache")
        return count

    # ─────────────────────────────────────────────────────────────────
    # Snapshots
    # ─────────────────────────────────────────────────────────────────

    def save_snapshot(self, snapshot_path: Path | str) -> int:
        """
        Persist current entries to a JSON file.

        Returns:
            Number of entries written
        """
        snapshot_path = Path(snapshot_path)
        with self._index_lock:
            records = [entry.record.to_dict() for entry in self._entries.values()]
        content = json.dumps({"version": SNAPSHOT_VERSION, "entries": records})

        snapshot_path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f"{snapshot_path.name}.", suffix=".tmp", dir=snapshot_path.parent
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
            os.replace(tmp_name, snapshot_path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        logger.info(f"Saved {len(records)} cache entries to {snapshot_path}")
        return len(records)

    def load_snapshot(self, snapshot_path: Path | str) -> int:
        """
        Load entries saved by ``save_snapshot``.

        Malformed entries are skipped; loaded entries are still validated
        against the file's fingerprint when looked up.

        Returns:
            Number of entries loaded
        """
        snapshot_path = Path(snapshot_path)
        try:
            data = json.loads(snapshot_path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return 0
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable cache snapshot {snapshot_path}: {e}")
            return 0

        if not isinstance(data, dict) or data.get("version") != SNAPSHOT_VERSION:
            logger.warning(f"Ignoring cache snapshot {snapshot_path}: unsupported format")
            return 0

        loaded = 0
        for raw in data.get("entries") or []:
            try:
                record = _record_from_snapshot(raw)
            except CacheInconsistency as e:
                logger.warning(f"Skipping snapshot entry: {e}")
                self._count("inconsistencies")
                continue
            with self._index_lock:
                self._entries[record.path] = CacheEntry(
                    record=record, fingerprint=record.fingerprint
                )
            loaded += 1

        if self._max_entries is not None:
            with self._index_lock:
                while len(self._entries) > self._max_entries:
                    self._entries.popitem(last=False)
        logger.info(f"Loaded {loaded} cache entries from {snapshot_path}")
        return loaded


def _record_from_snapshot(raw: object) -> FileRecord:
    if not isinstance(raw, dict):
        raise CacheInconsistency("<snapshot>", "entry is not an object")
    try:
        record = FileRecord.from_dict(raw)
    except (KeyError, TypeError, ValueError) as e:
        raise CacheInconsistency(str(raw.get("path", "<snapshot>")), f"malformed entry: {e}") from e
    if not record.is_consistent():
        raise CacheInconsistency(record.path, "line categories do not add up to the total")
    return record
