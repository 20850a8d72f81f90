"""
Scan orchestration: enumerate, filter, batch, count, aggregate.
"""

import logging
import time
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Optional

from codecount.core.errors import CodeCountError, FileAccessError
from codecount.core.filesystem import FileSystemInterface
from codecount.core.models import ScanError, ScanResult
from codecount.core.pattern_matcher import PatternMatcher, normalize_path
from codecount.core.settings import SettingsResolver

from .cancellation import CancellationToken
from .line_count_cache import LineCountCache

logger = logging.getLogger(__name__)

# (candidate count upper bound, batch size); larger trees use FALLBACK_BATCH_SIZE
BATCH_SIZE_TIERS: tuple[tuple[int, int], ...] = ((100, 20), (1000, 50), (5000, 100))
FALLBACK_BATCH_SIZE = 200


def adaptive_batch_size(candidate_count: int) -> int:
    """Batch size for a scan with ``candidate_count`` files to count."""
    for limit, size in BATCH_SIZE_TIERS:
        if candidate_count < limit:
            return size
    return FALLBACK_BATCH_SIZE


class ScanOrchestrator:
    """
    Runs scans of a workspace.

    Enumeration is sequential and applies the settings resolved for each
    directory. Counting runs in batches on a bounded thread pool; batches are
    the checkpoints at which cancellation is honoured. Followed symlinks must
    stay inside the workspace; those that leave it are reported as errors.
    """

    def __init__(
        self,
        root: Path | str,
        filesystem: FileSystemInterface,
        resolver: SettingsResolver,
        cache: LineCountCache,
        matcher: PatternMatcher | None = None,
        max_workers: int = 4,
        follow_symlinks: bool = False,
        progress_callback: Optional[Callable[[int, int, str], None]] = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            root: Workspace root; record paths and patterns are relative to it
            filesystem: File system capability
            resolver: Per-directory settings
            cache: Line count cache (consulted for every candidate)
            matcher: Pattern matcher (shares compiled patterns across scans)
            max_workers: Thread pool size
            follow_symlinks: Whether to descend into / count symlinks
            progress_callback: Optional callback(current, total, message)
        """
        self._root = Path(root).resolve()
        self._filesystem = filesystem
        self._resolver = resolver
        self._cache = cache
        self._matcher = matcher or PatternMatcher()
        self._max_workers = max(1, max_workers)
        self._follow_symlinks = follow_symlinks
        self._progress_callback = progress_callback

    @property
    def root(self) -> Path:
        return self._root

    def _report_progress(self, current: int, total: int, message: str) -> None:
        """Report progress if callback is set."""
        if self._progress_callback:
            self._progress_callback(current, total, message)
        logger.debug(f"Progress: {current}/{total} - {message}")

    def scan(
        self,
        root: Path | str | None = None,
        cancellation_token: CancellationToken | None = None,
    ) -> ScanResult:
        """
        Scan the workspace, or a directory inside it.

        Args:
            root: Directory to scan; defaults to the workspace root
            cancellation_token: Checked before every batch

        Returns:
            ScanResult; partial and marked ``cancelled`` if cancelled

        Raises:
            ValueError: If ``root`` lies outside the workspace
        """
        started_at = time.time()
        token = cancellation_token or CancellationToken()
        scan_root = self._root if root is None else Path(root).resolve()
        normalize_path(scan_root, self._root)

        result = ScanResult(root=str(scan_root))
        result.stats.started_at = started_at

        # pending change notifications are applied before anything is read
        self._cache.process_changes()
        self._resolver.process_changes()

        self._report_progress(0, 0, "Enumerating files...")
        candidates = self._enumerate(scan_root, result, token)
        total = len(candidates)
        batch_size = adaptive_batch_size(total)
        result.stats.batch_size = batch_size

        if token.is_cancelled:
            result.cancelled = True
        elif candidates:
            self._count_in_batches(candidates, batch_size, result, token)

        result.finalize()
        result.stats.duration_seconds = time.time() - started_at

        logger.info(
            "Scan completed" if not result.cancelled else "Scan cancelled",
            extra={
                "root": result.root,
                "total_files": result.total_files,
                "total_lines": result.total_lines,
                "binary_files": result.binary_files,
                "errors": len(result.errors),
                "batches": result.stats.batch_count,
                "cache_hits": result.stats.cache_hits,
                "duration_seconds": result.stats.duration_seconds,
            },
        )
        return result

    def _enumerate(
        self, scan_root: Path, result: ScanResult, token: CancellationToken
    ) -> list[tuple[Path, str]]:
        """
        Walk the tree top-down and collect files to count.

        Excluded directories are pruned before descending. Returns
        ``(absolute path, relative path)`` pairs sorted by relative path.
        """
        candidates: list[tuple[Path, str]] = []
        visited: set[Path] = set()
        stack = [scan_root]

        while stack:
            if token.is_cancelled:
                logger.info("Scan cancelled during enumeration")
                break

            directory = stack.pop()
            rel_dir = normalize_path(directory, self._root)

            if self._follow_symlinks:
                real = directory.resolve()
                if not real.is_relative_to(self._root):
                    logger.warning(f"Skipping symlink leaving the workspace: {directory} -> {real}")
                    reason = f"symlink leaves the workspace: {real}"
                    result.errors.append(ScanError(rel_dir, "FileAccessError", reason))
                    continue
                if real in visited:
                    logger.debug(f"Skipping recursive cycle: {directory} -> {real}")
                    continue
                visited.add(real)

            try:
                entries = self._filesystem.list_entries(directory)
            except FileAccessError as e:
                logger.warning(f"Error accessing directory: {directory} - {e.reason}")
                result.errors.append(ScanError(rel_dir or ".", "FileAccessError", e.reason))
                continue

            settings = self._resolver.resolve(directory)
            excludes = settings.exclude_patterns
            includes = settings.include_patterns

            subdirs: list[Path] = []
            for entry in sorted(entries, key=lambda e: e.name):
                path = directory / entry.name
                rel = f"{rel_dir}/{entry.name}" if rel_dir else entry.name

                if entry.is_symlink and not self._follow_symlinks:
                    logger.debug(f"Skipping symlink (follow_symlinks=False): {path}")
                    continue

                if entry.is_directory:
                    if self._matcher.is_directory_pruned(rel, excludes, includes):
                        logger.debug(f"Pruning excluded directory: {rel}")
                        continue
                    subdirs.append(path)
                elif self._matcher.should_skip(rel, excludes, includes):
                    result.excluded_files += 1
                elif entry.is_symlink and not path.resolve().is_relative_to(self._root):
                    logger.warning(f"Skipping symlink leaving the workspace: {path}")
                    result.errors.append(
                        ScanError(rel, "FileAccessError", "symlink leaves the workspace")
                    )
                else:
                    candidates.append((path, rel))

            stack.extend(reversed(subdirs))

        candidates.sort(key=lambda item: item[1])
        return candidates

    def _count_in_batches(
        self,
        candidates: list[tuple[Path, str]],
        batch_size: int,
        result: ScanResult,
        token: CancellationToken,
    ) -> None:
        total = len(candidates)
        processed = 0
        self._report_progress(0, total, "Counting lines...")

        with ThreadPoolExecutor(
            max_workers=self._max_workers, thread_name_prefix="codecount-scan"
        ) as executor:
            for start in range(0, total, batch_size):
                if token.is_cancelled:
                    logger.info(f"Scan cancelled after {processed} of {total} files")
                    result.cancelled = True
                    break

                batch = candidates[start:start + batch_size]
                futures = [
                    (executor.submit(self._cache.get_or_compute, path), rel)
                    for path, rel in batch
                ]
                for future, rel in futures:
                    try:
                        outcome = future.result()
                    except FileAccessError as e:
                        logger.warning(f"Skipping unreadable file {rel}: {e.reason}")
                        result.errors.append(ScanError(rel, "FileAccessError", e.reason))
                        continue
                    except CodeCountError as e:
                        logger.warning(f"Skipping {rel}: {e}")
                        result.errors.append(ScanError(rel, type(e).__name__, str(e)))
                        continue
                    except Exception as e:
                        logger.error(f"Failed to count {rel}: {e}")
                        result.errors.append(ScanError(rel, type(e).__name__, str(e)))
                        continue

                    if outcome.hit:
                        result.stats.cache_hits += 1
                    else:
                        result.stats.cache_misses += 1

                    if outcome.record is None:
                        result.binary_files += 1
                    else:
                        result.add_record(outcome.record)

                processed += len(batch)
                result.stats.batch_count += 1
                self._report_progress(processed, total, f"Counted {processed} files")
