"""
Per-file counting: binary check, bounded read, line classification.

Runs on the scan orchestrator's worker threads via the line count cache.
"""

import codecs
import logging
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path

from codecount.core.binary_classifier import BinaryClassification, BinaryClassifier
from codecount.core.filesystem import FileSystemInterface
from codecount.core.languages import LanguageRegistry
from codecount.core.line_classifier import classify_lines, iter_text_lines
from codecount.core.models import Fingerprint, FileRecord
from codecount.core.pattern_matcher import normalize_path

logger = logging.getLogger(__name__)

DEFAULT_MAX_FILE_BYTES = 50 * 1024 * 1024
DEFAULT_STREAM_THRESHOLD_BYTES = 10 * 1024 * 1024
DEFAULT_READ_CHUNK_BYTES = 64 * 1024


@dataclass(frozen=True)
class CountOutcome:
    """Result of counting one file; ``record`` is None for binary files."""

    record: FileRecord | None
    classification: BinaryClassification


class FileCounter:
    """
    Counts the lines of a single file.

    Reads are capped at ``max_file_bytes``; files larger than
    ``stream_threshold_bytes`` are decoded and classified chunk by chunk so
    memory stays bounded regardless of file size.
    """

    def __init__(
        self,
        filesystem: FileSystemInterface,
        classifier: BinaryClassifier,
        registry: LanguageRegistry,
        root: Path | None = None,
        max_file_bytes: int = DEFAULT_MAX_FILE_BYTES,
        stream_threshold_bytes: int = DEFAULT_STREAM_THRESHOLD_BYTES,
        read_chunk_bytes: int = DEFAULT_READ_CHUNK_BYTES,
    ):
        self._filesystem = filesystem
        self._classifier = classifier
        self._registry = registry
        self._root = root
        self._max_file_bytes = max_file_bytes
        self._stream_threshold_bytes = stream_threshold_bytes
        self._read_chunk_bytes = max(1, read_chunk_bytes)

    @property
    def filesystem(self) -> FileSystemInterface:
        return self._filesystem

    def count(self, path: Path, fingerprint: Fingerprint) -> CountOutcome:
        """
        Classify and count a file.

        Args:
            path: Absolute path of the file
            fingerprint: Fingerprint observed just before counting

        Raises:
            FileAccessError: If the file cannot be read
        """
        classification = self._classifier.classify(path)
        if classification.is_binary:
            return CountOutcome(record=None, classification=classification)

        profile = self._registry.detect(path)
        budget = min(fingerprint.size, self._max_file_bytes)
        truncated = fingerprint.size > self._max_file_bytes
        if truncated:
            logger.warning(
                f"Reading only the first {budget} bytes of {path} ({fingerprint.size} bytes)"
            )

        counts = classify_lines(iter_text_lines(self._read_text(path, budget)), profile)

        record = FileRecord(
            path=str(path),
            relative_path=self._relative(path),
            language=profile.name,
            size=fingerprint.size,
            fingerprint=fingerprint,
            lines=counts.lines,
            code_lines=counts.code,
            comment_lines=counts.comment,
            blank_lines=counts.blank,
            truncated=truncated,
        )
        return CountOutcome(record=record, classification=classification)

    def _relative(self, path: Path) -> str:
        if self._root is None:
            return Path(path).as_posix()
        try:
            return normalize_path(path, self._root)
        except ValueError:
            return Path(path).as_posix()

    def _read_text(self, path: Path, budget: int) -> Iterator[str]:
        """Yield decoded text from the first ``budget`` bytes of a file."""
        decoder = codecs.getincrementaldecoder("utf-8-sig")(errors="replace")

        if budget <= self._stream_threshold_bytes:
            data = self._filesystem.read_bytes(path, 0, budget)
            yield decoder.decode(data, final=True)
            return

        offset = 0
        while offset < budget:
            length = min(self._read_chunk_bytes, budget - offset)
            data = self._filesystem.read_bytes(path, offset, length)
            if not data:
                break
            offset += len(data)
            yield decoder.decode(data)
        yield decoder.decode(b"", final=True)
