"""
Data models for hierarchical directory settings.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from codecount.core.errors import SettingsStoreError

# Key of the workspace root in settings stores and origin maps
ROOT_KEY = "."

# Origin recorded for patterns contributed by process-wide defaults
DEFAULTS_ORIGIN = "<defaults>"


class SizeCategory(Enum):
    """Size classification of a file by its line count."""

    NORMAL = "normal"
    WARNING = "warning"
    DANGER = "danger"


@dataclass
class DirectorySettings:
    """
    Settings explicitly stored for one directory.

    Attributes:
        path: Directory key, root-relative POSIX path ('.' for the root)
        exclude_patterns: Exclusion globs added at this directory
        include_patterns: Inclusion globs; None means inherit unchanged
        mid_threshold: Line count at which a file becomes 'warning'
        high_threshold: Line count at which a file becomes 'danger'
        is_explicit: Always True for stored entries
    """

    path: str
    exclude_patterns: list[str] = field(default_factory=list)
    include_patterns: list[str] | None = None
    mid_threshold: int | None = None
    high_threshold: int | None = None
    is_explicit: bool = True

    def is_empty(self) -> bool:
        return (
            not self.exclude_patterns
            and not self.include_patterns
            and self.mid_threshold is None
            and self.high_threshold is None
        )

    def copy(self) -> "DirectorySettings":
        return DirectorySettings(
            path=self.path,
            exclude_patterns=list(self.exclude_patterns),
            include_patterns=(
                list(self.include_patterns) if self.include_patterns is not None else None
            ),
            mid_threshold=self.mid_threshold,
            high_threshold=self.high_threshold,
            is_explicit=self.is_explicit,
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"exclude_patterns": list(self.exclude_patterns)}
        if self.include_patterns is not None:
            data["include_patterns"] = list(self.include_patterns)
        if self.mid_threshold is not None:
            data["mid_threshold"] = self.mid_threshold
        if self.high_threshold is not None:
            data["high_threshold"] = self.high_threshold
        return data

    @classmethod
    def from_dict(cls, path: str, data: Any) -> "DirectorySettings":
        """
        Build settings from their stored form.

        Raises:
            SettingsStoreError: If the stored data has the wrong shape
        """
        if not isinstance(data, dict):
            raise SettingsStoreError(f"Settings for {path!r} must be an object, got {type(data).__name__}")

        excludes = data.get("exclude_patterns", [])
        includes = data.get("include_patterns")
        if not _is_str_list(excludes):
            raise SettingsStoreError(f"exclude_patterns for {path!r} must be a list of strings")
        if includes is not None and not _is_str_list(includes):
            raise SettingsStoreError(f"include_patterns for {path!r} must be a list of strings")

        thresholds = {}
        for key in ("mid_threshold", "high_threshold"):
            value = data.get(key)
            if value is not None and (isinstance(value, bool) or not isinstance(value, int) or value < 0):
                raise SettingsStoreError(f"{key} for {path!r} must be a non-negative integer")
            thresholds[key] = value

        return cls(
            path=path,
            exclude_patterns=list(excludes),
            include_patterns=list(includes) if includes is not None else None,
            **thresholds,
        )


def _is_str_list(value: Any) -> bool:
    return isinstance(value, list) and all(isinstance(item, str) for item in value)


@dataclass(frozen=True)
class ResolvedSettings:
    """
    Effective settings of a directory after inheritance.

    Attributes:
        directory: Directory key these settings were resolved for
        exclude_patterns: Accumulated exclusion globs, root first, deduplicated
        include_patterns: Accumulated inclusion globs, root first, deduplicated
        origin_of: Pattern -> directory key that first contributed it
        mid_threshold: Effective warning threshold
        high_threshold: Effective danger threshold (always > mid_threshold)
        source: Nearest directory with explicit settings, or '<defaults>'
        warnings: Problems met while resolving (corrupt entries, threshold fixes)
    """

    directory: str
    exclude_patterns: tuple[str, ...]
    include_patterns: tuple[str, ...]
    origin_of: dict[str, str]
    mid_threshold: int
    high_threshold: int
    source: str = DEFAULTS_ORIGIN
    warnings: tuple[str, ...] = ()

    def classify(self, line_count: int) -> SizeCategory:
        """Classify a line count against the effective thresholds."""
        if line_count >= self.high_threshold:
            return SizeCategory.DANGER
        if line_count >= self.mid_threshold:
            return SizeCategory.WARNING
        return SizeCategory.NORMAL

    def for_directory(self, directory: str) -> "ResolvedSettings":
        """Same effective settings, attributed to an inheriting child."""
        return ResolvedSettings(
            directory=directory,
            exclude_patterns=self.exclude_patterns,
            include_patterns=self.include_patterns,
            origin_of=self.origin_of,
            mid_threshold=self.mid_threshold,
            high_threshold=self.high_threshold,
            source=self.source,
            warnings=(),
        )
