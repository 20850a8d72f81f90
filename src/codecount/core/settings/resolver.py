"""
Hierarchical settings resolution.

Effective settings of a directory are built from the process-wide defaults
followed by every explicit DirectorySettings from the workspace root down to
the directory. Pattern lists accumulate (root first, duplicates dropped);
scalar values are taken from the nearest directory that sets them.
"""

import logging
import threading
from pathlib import Path, PurePosixPath

from codecount.core.errors import SettingsResolutionError, SettingsStoreError
from codecount.core.file_events import ChangeSubscription
from codecount.core.pattern_matcher import normalize_path, normalize_pattern, validate_pattern

from .interfaces import SettingsStoreInterface
from .models import DEFAULTS_ORIGIN, ROOT_KEY, DirectorySettings, ResolvedSettings

logger = logging.getLogger(__name__)

# Sidecar file name used by the JSON settings store
SETTINGS_FILENAME = ".codecount.json"

# Minimum gap enforced between the warning and danger thresholds
THRESHOLD_GAP = 100

_UNSET = object()


def parent_key(key: str) -> str | None:
    """Key of the parent directory, or None for the root."""
    if key == ROOT_KEY:
        return None
    return PurePosixPath(key).parent.as_posix()


def _is_within(key: str, ancestor: str) -> bool:
    return ancestor == ROOT_KEY or key == ancestor or key.startswith(ancestor + "/")


class SettingsResolver:
    """
    Resolves, memoizes and edits per-directory settings.

    One memo table maps directory keys to ResolvedSettings; resolving a
    directory reuses its parent's entry. Any change to a directory's explicit
    settings drops the memo for that directory and everything below it.
    """

    def __init__(
        self,
        root: Path | str,
        store: SettingsStoreInterface,
        default_exclude_patterns: list[str] | None = None,
        default_include_patterns: list[str] | None = None,
        mid_threshold: int = 300,
        high_threshold: int = 1000,
        changes: ChangeSubscription | None = None,
    ):
        """
        Initialize the resolver.

        Args:
            root: Workspace root; settings never apply above it
            store: Persistence for explicit settings
            default_exclude_patterns: Exclusions applied everywhere, below any
                explicit settings
            default_include_patterns: Inclusions applied everywhere
            mid_threshold: Default warning threshold
            high_threshold: Default danger threshold
            changes: Subscription whose settings-file events invalidate the memo

        Raises:
            PatternSyntaxError: If a default pattern is malformed
        """
        self._root = Path(root).resolve()
        self._store = store
        self._changes = changes
        self._memo: dict[str, ResolvedSettings] = {}
        self._lock = threading.RLock()

        excludes = _dedupe(validate_pattern(p) for p in default_exclude_patterns or [])
        includes = _dedupe(validate_pattern(p) for p in default_include_patterns or [])
        origin = {p: DEFAULTS_ORIGIN for p in includes}
        origin.update({p: DEFAULTS_ORIGIN for p in excludes})
        mid, high, warnings = _fix_thresholds(mid_threshold, high_threshold)
        self._defaults = ResolvedSettings(
            directory=DEFAULTS_ORIGIN,
            exclude_patterns=tuple(excludes),
            include_patterns=tuple(includes),
            origin_of=origin,
            mid_threshold=mid,
            high_threshold=high,
            source=DEFAULTS_ORIGIN,
            warnings=tuple(warnings),
        )

    @property
    def root(self) -> Path:
        return self._root

    @property
    def defaults(self) -> ResolvedSettings:
        return self._defaults

    def key_for(self, directory: Path | str) -> str:
        """
        Canonical store key of a directory.

        Relative paths are taken relative to the workspace root.

        Raises:
            ValueError: If the directory lies outside the workspace root
        """
        path = Path(directory)
        if not path.is_absolute():
            path = self._root / path
        rel = normalize_path(path.resolve(), self._root)
        return rel or ROOT_KEY

    # ─────────────────────────────────────────────────────────────────
    # Resolution
    # ─────────────────────────────────────────────────────────────────

    def resolve(self, directory: Path | str) -> ResolvedSettings:
        """Effective settings for a directory."""
        self.process_changes()
        key = self.key_for(directory)
        with self._lock:
            return self._resolve_key(key)

    def resolve_for_file(self, file_path: Path | str) -> ResolvedSettings:
        """Effective settings for the directory containing a file."""
        path = Path(file_path)
        if not path.is_absolute():
            path = self._root / path
        return self.resolve(path.parent)

    def _resolve_key(self, key: str) -> ResolvedSettings:
        cached = self._memo.get(key)
        if cached is not None:
            return cached

        parent = parent_key(key)
        inherited = self._defaults if parent is None else self._resolve_key(parent)

        explicit, warning = self._load_explicit(key)
        if explicit is None:
            resolved = inherited.for_directory(key)
            if warning:
                resolved = _with_warnings(resolved, (warning,))
        else:
            resolved = self._merge(inherited, explicit)

        self._memo[key] = resolved
        return resolved

    def _load_explicit(self, key: str) -> tuple[DirectorySettings | None, str | None]:
        """Read a directory's explicit settings, treating corrupt entries as absent."""
        try:
            return self._store.get(key), None
        except SettingsStoreError as e:
            error = SettingsResolutionError(key, str(e))
            logger.warning(f"{error}; inheriting from parent")
            return None, str(error)

    def _merge(self, inherited: ResolvedSettings, explicit: DirectorySettings) -> ResolvedSettings:
        key = explicit.path
        warnings: list[str] = []
        origin = dict(inherited.origin_of)

        def accumulate(base: tuple[str, ...], added: list[str] | None) -> tuple[str, ...]:
            result = list(base)
            seen = set(base)
            for raw in added or []:
                pattern = normalize_pattern(raw)
                if pattern in seen:
                    continue
                try:
                    validate_pattern(pattern)
                except ValueError as e:
                    warnings.append(f"Ignoring pattern in {key!r}: {e}")
                    logger.warning(f"Ignoring invalid stored pattern in {key!r}: {e}")
                    continue
                seen.add(pattern)
                result.append(pattern)
                origin.setdefault(pattern, key)
            return tuple(result)

        excludes = accumulate(inherited.exclude_patterns, explicit.exclude_patterns)
        includes = accumulate(inherited.include_patterns, explicit.include_patterns)

        mid = explicit.mid_threshold if explicit.mid_threshold is not None else inherited.mid_threshold
        high = explicit.high_threshold if explicit.high_threshold is not None else inherited.high_threshold
        mid, high, threshold_warnings = _fix_thresholds(mid, high)
        warnings.extend(threshold_warnings)

        return ResolvedSettings(
            directory=key,
            exclude_patterns=excludes,
            include_patterns=includes,
            origin_of=origin,
            mid_threshold=mid,
            high_threshold=high,
            source=key,
            warnings=tuple(warnings),
        )

    # ─────────────────────────────────────────────────────────────────
    # Editing
    # ─────────────────────────────────────────────────────────────────

    def explicit_settings(self, directory: Path | str) -> DirectorySettings | None:
        """Explicit settings stored for a directory, or None."""
        explicit, _ = self._load_explicit(self.key_for(directory))
        return explicit

    def edit(
        self,
        directory: Path | str,
        *,
        add_excludes: list[str] | tuple[str, ...] = (),
        remove_excludes: list[str] | tuple[str, ...] = (),
        add_includes: list[str] | tuple[str, ...] = (),
        remove_includes: list[str] | tuple[str, ...] = (),
        mid_threshold=_UNSET,
        high_threshold=_UNSET,
    ) -> DirectorySettings:
        """
        Apply a change to a directory's explicit settings.

        Copy-then-modify: when the directory has no explicit settings yet, the
        edited pattern list is seeded with its currently inherited value.
        Patterns are validated before anything is persisted.

        Returns:
            A copy of the stored DirectorySettings

        Raises:
            PatternSyntaxError: If an added pattern is malformed
            ValueError: If a threshold is not a non-negative integer
        """
        added_excludes = [validate_pattern(p) for p in add_excludes]
        added_includes = [validate_pattern(p) for p in add_includes]
        removed_excludes = [normalize_pattern(p) for p in remove_excludes]
        removed_includes = [normalize_pattern(p) for p in remove_includes]
        for name, value in (("mid_threshold", mid_threshold), ("high_threshold", high_threshold)):
            if value is _UNSET or value is None:
                continue
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise ValueError(f"{name} must be a non-negative integer, got {value!r}")

        self.process_changes()
        key = self.key_for(directory)

        with self._lock:
            current, _ = self._load_explicit(key)
            resolved = self._resolve_key(key)
            settings = current.copy() if current is not None else DirectorySettings(path=key)

            touches_excludes = bool(added_excludes or removed_excludes)
            touches_includes = bool(added_includes or removed_includes)
            if current is None and touches_excludes:
                settings.exclude_patterns = list(resolved.exclude_patterns)
            if touches_includes and settings.include_patterns is None:
                settings.include_patterns = list(resolved.include_patterns)

            _apply(settings.exclude_patterns, added_excludes, removed_excludes)
            if settings.include_patterns is not None:
                _apply(settings.include_patterns, added_includes, removed_includes)

            if mid_threshold is not _UNSET:
                settings.mid_threshold = mid_threshold
            if high_threshold is not _UNSET:
                settings.high_threshold = high_threshold

            self._store.put(key, settings)
            self._invalidate_locked(key)
            logger.info(
                f"Updated settings for {key}",
                extra={
                    "directory": key,
                    "exclude_patterns": len(settings.exclude_patterns),
                    "include_patterns": len(settings.include_patterns or []),
                },
            )

            self._warn_still_inherited(key, removed_excludes, removed_includes)
            return settings.copy()

    def _warn_still_inherited(
        self, key: str, removed_excludes: list[str], removed_includes: list[str]
    ) -> None:
        parent = parent_key(key)
        inherited = self._defaults if parent is None else self._resolve_key(parent)
        for pattern in removed_excludes:
            if pattern in inherited.exclude_patterns:
                logger.warning(
                    f"Pattern {pattern!r} removed at {key} is still inherited from "
                    f"{inherited.origin_of.get(pattern, DEFAULTS_ORIGIN)}"
                )
        for pattern in removed_includes:
            if pattern in inherited.include_patterns:
                logger.warning(
                    f"Include pattern {pattern!r} removed at {key} is still inherited from "
                    f"{inherited.origin_of.get(pattern, DEFAULTS_ORIGIN)}"
                )

    def add_exclude_pattern(self, directory: Path | str, pattern: str) -> DirectorySettings:
        return self.edit(directory, add_excludes=[pattern])

    def remove_exclude_pattern(self, directory: Path | str, pattern: str) -> DirectorySettings:
        return self.edit(directory, remove_excludes=[pattern])

    def add_include_pattern(self, directory: Path | str, pattern: str) -> DirectorySettings:
        return self.edit(directory, add_includes=[pattern])

    def remove_include_pattern(self, directory: Path | str, pattern: str) -> DirectorySettings:
        return self.edit(directory, remove_includes=[pattern])

    def set_thresholds(
        self,
        directory: Path | str,
        mid_threshold: int | None = None,
        high_threshold: int | None = None,
    ) -> DirectorySettings:
        """Set (or with None, clear) the thresholds stored at a directory."""
        return self.edit(directory, mid_threshold=mid_threshold, high_threshold=high_threshold)

    def reset_to_parent(self, directory: Path | str) -> bool:
        """
        Delete a directory's explicit settings so it inherits again.

        Returns:
            True if explicit settings existed
        """
        key = self.key_for(directory)
        with self._lock:
            deleted = self._store.delete(key)
            self._invalidate_locked(key)
        if deleted:
            logger.info(f"Reset settings for {key} to inherited values")
        return deleted

    # ─────────────────────────────────────────────────────────────────
    # Invalidation
    # ─────────────────────────────────────────────────────────────────

    def invalidate_subtree(self, directory: Path | str) -> int:
        """Drop memoized settings for a directory and all its descendants."""
        key = self.key_for(directory)
        with self._lock:
            return self._invalidate_locked(key)

    def invalidate_all(self) -> None:
        with self._lock:
            self._memo.clear()

    def _invalidate_locked(self, key: str) -> int:
        stale = [k for k in self._memo if _is_within(k, key)]
        for k in stale:
            del self._memo[k]
        return len(stale)

    def process_changes(self) -> int:
        """
        Drain pending change events and invalidate affected subtrees.

        Only settings sidecar files matter here; everything else is the
        cache's business.

        Returns:
            Number of subtrees invalidated
        """
        if self._changes is None or not self._changes.pending():
            return 0
        batch = self._changes.drain()
        invalidated = 0
        for path in batch.changed_paths():
            if path.name != SETTINGS_FILENAME:
                continue
            try:
                self.invalidate_subtree(path.parent)
            except ValueError:
                logger.debug(f"Ignoring settings change outside workspace: {path}")
                continue
            invalidated += 1
        if invalidated:
            logger.debug(f"Invalidated {invalidated} settings subtrees from change events")
        return invalidated


def _apply(patterns: list[str], added: list[str], removed: list[str]) -> None:
    for pattern in removed:
        while pattern in patterns:
            patterns.remove(pattern)
    for pattern in added:
        if pattern not in patterns:
            patterns.append(pattern)


def _dedupe(patterns) -> list[str]:
    result: list[str] = []
    for pattern in patterns:
        if pattern not in result:
            result.append(pattern)
    return result


def _fix_thresholds(mid: int, high: int) -> tuple[int, int, list[str]]:
    if high <= mid:
        fixed = mid + THRESHOLD_GAP
        message = (
            f"High threshold ({high}) must be higher than mid threshold ({mid}); using {fixed}"
        )
        logger.warning(message)
        return mid, fixed, [message]
    return mid, high, []


def _with_warnings(resolved: ResolvedSettings, warnings: tuple[str, ...]) -> ResolvedSettings:
    return ResolvedSettings(
        directory=resolved.directory,
        exclude_patterns=resolved.exclude_patterns,
        include_patterns=resolved.include_patterns,
        origin_of=resolved.origin_of,
        mid_threshold=resolved.mid_threshold,
        high_threshold=resolved.high_threshold,
        source=resolved.source,
        warnings=warnings,
    )
