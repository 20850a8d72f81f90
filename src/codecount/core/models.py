"""
Data models shared by the cache, the counting worker and the scan orchestrator.
"""

from dataclasses import asdict, dataclass, field
from typing import Any


@dataclass(frozen=True)
class Fingerprint:
    """Size and modification time identifying one version of a file."""

    size: int
    mtime_ns: int


@dataclass(frozen=True)
class FileRecord:
    """
    Line counts for a single text file.

    Attributes:
        path: Absolute path of the file
        relative_path: POSIX path relative to the scan root
        language: Detected language name
        size: Size in bytes at the time of counting
        fingerprint: Fingerprint the counts were computed against
        lines: Total number of lines
        code_lines: Lines containing code
        comment_lines: Lines containing only comments
        blank_lines: Whitespace-only lines outside comments
        truncated: True when the read budget cut the file short
    """

    path: str
    relative_path: str
    language: str
    size: int
    fingerprint: Fingerprint
    lines: int
    code_lines: int
    comment_lines: int
    blank_lines: int
    truncated: bool = False

    def is_consistent(self) -> bool:
        """Check that the line categories add up to the total."""
        return self.lines == self.code_lines + self.comment_lines + self.blank_lines

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FileRecord":
        fingerprint = data["fingerprint"]
        return cls(
            path=str(data["path"]),
            relative_path=str(data["relative_path"]),
            language=str(data["language"]),
            size=int(data["size"]),
            fingerprint=Fingerprint(
                size=int(fingerprint["size"]), mtime_ns=int(fingerprint["mtime_ns"])
            ),
            lines=int(data["lines"]),
            code_lines=int(data["code_lines"]),
            comment_lines=int(data["comment_lines"]),
            blank_lines=int(data["blank_lines"]),
            truncated=bool(data.get("truncated", False)),
        )


@dataclass
class LanguageTotals:
    """Aggregated counts for one language."""

    files: int = 0
    lines: int = 0
    code_lines: int = 0
    comment_lines: int = 0
    blank_lines: int = 0

    def add(self, record: FileRecord) -> None:
        self.files += 1
        self.lines += record.lines
        self.code_lines += record.code_lines
        self.comment_lines += record.comment_lines
        self.blank_lines += record.blank_lines


@dataclass(frozen=True)
class ScanError:
    """A file or directory that was skipped because it could not be processed."""

    path: str
    error_type: str
    message: str


@dataclass
class ScanStats:
    """Timing and cache statistics for one scan; not part of the comparable result."""

    started_at: float = 0.0
    duration_seconds: float = 0.0
    batch_count: int = 0
    batch_size: int = 0
    cache_hits: int = 0
    cache_misses: int = 0


@dataclass
class ScanResult:
    """
    Outcome of scanning a directory tree.

    Everything except ``stats`` is deterministic for an unchanged tree, so two
    scans can be compared with ``to_dict()``.
    """

    root: str
    files: list[FileRecord] = field(default_factory=list)
    languages: dict[str, LanguageTotals] = field(default_factory=dict)
    errors: list[ScanError] = field(default_factory=list)
    binary_files: int = 0
    excluded_files: int = 0
    cancelled: bool = False
    stats: ScanStats = field(default_factory=ScanStats)

    @property
    def total_files(self) -> int:
        return len(self.files)

    @property
    def total_lines(self) -> int:
        return sum(record.lines for record in self.files)

    @property
    def total_code_lines(self) -> int:
        return sum(record.code_lines for record in self.files)

    @property
    def total_comment_lines(self) -> int:
        return sum(record.comment_lines for record in self.files)

    @property
    def total_blank_lines(self) -> int:
        return sum(record.blank_lines for record in self.files)

    def add_record(self, record: FileRecord) -> None:
        self.files.append(record)
        self.languages.setdefault(record.language, LanguageTotals()).add(record)

    def finalize(self) -> None:
        """Sort files, languages and errors so the result is order-independent."""
        self.files.sort(key=lambda r: r.relative_path)
        self.errors.sort(key=lambda e: (e.path, e.error_type))
        self.languages = dict(sorted(self.languages.items()))

    def to_dict(self, include_stats: bool = False) -> dict[str, Any]:
        data = {
            "root": self.root,
            "total_files": self.total_files,
            "total_lines": self.total_lines,
            "total_code_lines": self.total_code_lines,
            "total_comment_lines": self.total_comment_lines,
            "total_blank_lines": self.total_blank_lines,
            "files": [record.to_dict() for record in self.files],
            "languages": {name: asdict(totals) for name, totals in self.languages.items()},
            "errors": [asdict(error) for error in self.errors],
            "binary_files": self.binary_files,
            "excluded_files": self.excluded_files,
            "cancelled": self.cancelled,
        }
        if include_stats:
            data["stats"] = asdict(self.stats)
        return data
