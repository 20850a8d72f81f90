"""
Centralized services container module for codecount.

Builds one session's worth of collaborators (file system, classifier, cache,
settings resolver, orchestrator) from configuration and wires them to a
shared change queue. Nothing here is a process-wide singleton.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from codecount.core.binary_classifier import BinaryClassifier
from codecount.core.config import CodeCountConfig, load_config
from codecount.core.file_events import ChangeQueue
from codecount.core.filesystem import FileSystemInterface, LocalFileSystem
from codecount.core.languages import LanguageRegistry
from codecount.core.pattern_matcher import PatternMatcher
from codecount.core.settings import SettingsResolver, SettingsStoreInterface
from codecount.infrastructure.file_watcher import FileWatcher, FileWatcherInterface
from codecount.infrastructure.settings_store import create_settings_store

from .counting_worker import FileCounter
from .line_count_cache import LineCountCache
from .scan_orchestrator import ScanOrchestrator

logger = logging.getLogger(__name__)


@dataclass
class ServicesContainer:
    """
    Container holding all service instances of one session.

    Attributes:
        root: Resolved workspace root
        config: Application configuration
        changes: Queue fanning file events out to the cache and the resolver
        filesystem: File system capability used for every read
        registry: Language profiles
        matcher: Shared pattern matcher
        classifier: Binary/text classifier
        cache: Line count cache
        settings_store: Persistence for per-directory settings
        resolver: Hierarchical settings resolver
        orchestrator: Scan orchestrator
        watcher: File watcher, set once ``start_watching`` has been called
    """

    root: Path
    config: CodeCountConfig
    changes: ChangeQueue
    filesystem: FileSystemInterface
    registry: LanguageRegistry
    matcher: PatternMatcher
    classifier: BinaryClassifier
    cache: LineCountCache
    settings_store: SettingsStoreInterface
    resolver: SettingsResolver
    orchestrator: ScanOrchestrator
    watcher: Optional[FileWatcherInterface] = field(default=None)

    def start_watching(self, watcher: Optional[FileWatcherInterface] = None) -> FileWatcherInterface:
        """
        Start forwarding file system events into the change queue.

        Args:
            watcher: Watcher to use; defaults to a watchdog-backed FileWatcher
        """
        if self.watcher is not None and self.watcher.is_running():
            return self.watcher
        self.watcher = watcher or FileWatcher(matcher=self.matcher)
        self.watcher.start(self.root, self.changes.publish)
        return self.watcher

    def snapshot_path(self) -> Path | None:
        """Configured cache snapshot location, resolved against the root."""
        if not self.config.cache.snapshot_path:
            return None
        path = Path(self.config.cache.snapshot_path)
        return path if path.is_absolute() else self.root / path

    def close(self) -> None:
        """Stop watching, persist the cache snapshot and release the store."""
        if self.watcher is not None:
            self.watcher.stop()
        snapshot = self.snapshot_path()
        if snapshot is not None:
            self.cache.save_snapshot(snapshot)
        close = getattr(self.settings_store, "close", None)
        if callable(close):
            close()


def create_services(
    root: Path | str,
    config: Optional[CodeCountConfig] = None,
    config_path: Optional[Path] = None,
    filesystem: Optional[FileSystemInterface] = None,
    settings_store: Optional[SettingsStoreInterface] = None,
    progress_callback: Optional[Callable[[int, int, str], None]] = None,
) -> ServicesContainer:
    """
    Create and wire all services for a workspace.

    Args:
        root: Workspace root directory
        config: Configuration to use; loaded from ``config_path`` (or
            defaults plus environment) when None
        config_path: Optional path to a configuration file
        filesystem: File system capability; defaults to the local disk
        settings_store: Settings persistence; defaults to the store named
            by ``config.settings.store``
        progress_callback: Optional scan progress callback(current, total, message)

    Returns:
        ServicesContainer with all initialized services.

    Raises:
        ValueError: If the configured settings store is unknown
        PatternSyntaxError: If a configured default pattern is malformed
    """
    if config is None:
        config = load_config(config_path)

    root = Path(root).resolve()
    changes = ChangeQueue()
    filesystem = filesystem or LocalFileSystem()
    registry = LanguageRegistry()
    matcher = PatternMatcher()

    classifier = BinaryClassifier(
        filesystem,
        magic_prefix_bytes=config.binary.magic_prefix_bytes,
        sample_bytes=config.binary.sample_bytes,
        nul_threshold=config.binary.nul_threshold,
        control_threshold=config.binary.control_threshold,
    )

    counter = FileCounter(
        filesystem,
        classifier,
        registry,
        root=root,
        max_file_bytes=config.scan.max_file_bytes,
        stream_threshold_bytes=config.scan.stream_threshold_bytes,
        read_chunk_bytes=config.scan.read_chunk_bytes,
    )
    cache = LineCountCache(
        counter,
        max_entries=config.cache.max_entries,
        lock_stripes=config.cache.lock_stripes,
        changes=changes.subscribe("cache"),
    )

    if settings_store is None:
        settings_store = create_settings_store(
            config.settings.store, root, db_path=config.settings.db_path
        )
    resolver = SettingsResolver(
        root,
        settings_store,
        default_exclude_patterns=config.settings.default_exclude_patterns,
        default_include_patterns=config.settings.default_include_patterns,
        mid_threshold=config.settings.mid_threshold,
        high_threshold=config.settings.high_threshold,
        changes=changes.subscribe("settings"),
    )

    orchestrator = ScanOrchestrator(
        root,
        filesystem,
        resolver,
        cache,
        matcher=matcher,
        max_workers=config.scan.max_workers,
        follow_symlinks=config.scan.follow_symlinks,
        progress_callback=progress_callback,
    )

    container = ServicesContainer(
        root=root,
        config=config,
        changes=changes,
        filesystem=filesystem,
        registry=registry,
        matcher=matcher,
        classifier=classifier,
        cache=cache,
        settings_store=settings_store,
        resolver=resolver,
        orchestrator=orchestrator,
    )

    snapshot = container.snapshot_path()
    if snapshot is not None:
        cache.load_snapshot(snapshot)

    logger.debug(f"Created services for {root} (settings store: {config.settings.store})")
    return container
