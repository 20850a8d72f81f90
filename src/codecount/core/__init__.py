"""
Core Layer - Language profiles, line classification, binary detection,
pattern matching, hierarchical settings and configuration.
"""

from codecount.core.binary_classifier import (
    BINARY_EXTENSIONS,
    MAGIC_SIGNATURES,
    TEXT_EXTENSIONS,
    BinaryClassification,
    BinaryClassifier,
    MagicSignature,
)
from codecount.core.config import (
    BinaryDetectionConfig,
    CacheConfig,
    CodeCountConfig,
    LoggingConfig,
    ScanConfig,
    SettingsConfig,
    load_config,
    setup_logging,
)
from codecount.core.errors import (
    CacheInconsistency,
    CodeCountError,
    FileAccessError,
    PatternSyntaxError,
    SettingsResolutionError,
    SettingsStoreError,
)
from codecount.core.file_events import (
    ChangeBatch,
    ChangeQueue,
    ChangeSubscription,
    FileEvent,
    FileEventType,
)
from codecount.core.filesystem import (
    DirEntry,
    FileStat,
    FileSystemInterface,
    LocalFileSystem,
)
from codecount.core.languages import (
    UNKNOWN_LANGUAGE,
    BlockDelimiter,
    LanguageProfile,
    LanguageRegistry,
)
from codecount.core.line_classifier import (
    LineClassifier,
    LineCounts,
    LineKind,
    classify_lines,
    classify_text,
    iter_text_lines,
)
from codecount.core.models import (
    FileRecord,
    Fingerprint,
    LanguageTotals,
    ScanError,
    ScanResult,
    ScanStats,
)
from codecount.core.pattern_matcher import (
    PatternMatcher,
    normalize_path,
    normalize_pattern,
    validate_pattern,
)
from codecount.core.settings import (
    DirectorySettings,
    ResolvedSettings,
    SettingsResolver,
    SettingsStoreInterface,
    SizeCategory,
)

__all__ = [
    # Config
    "CodeCountConfig",
    "ScanConfig",
    "BinaryDetectionConfig",
    "CacheConfig",
    "SettingsConfig",
    "LoggingConfig",
    "load_config",
    "setup_logging",
    # Errors
    "CodeCountError",
    "FileAccessError",
    "PatternSyntaxError",
    "SettingsStoreError",
    "SettingsResolutionError",
    "CacheInconsistency",
    # File system
    "DirEntry",
    "FileStat",
    "FileSystemInterface",
    "LocalFileSystem",
    # Change events
    "FileEvent",
    "FileEventType",
    "ChangeBatch",
    "ChangeQueue",
    "ChangeSubscription",
    # Languages
    "BlockDelimiter",
    "LanguageProfile",
    "LanguageRegistry",
    "UNKNOWN_LANGUAGE",
    # Line classification
    "LineKind",
    "LineCounts",
    "LineClassifier",
    "classify_lines",
    "classify_text",
    "iter_text_lines",
    # Binary detection
    "BinaryClassification",
    "BinaryClassifier",
    "MagicSignature",
    "MAGIC_SIGNATURES",
    "BINARY_EXTENSIONS",
    "TEXT_EXTENSIONS",
    # Patterns
    "PatternMatcher",
    "normalize_pattern",
    "normalize_path",
    "validate_pattern",
    # Settings
    "DirectorySettings",
    "ResolvedSettings",
    "SettingsResolver",
    "SettingsStoreInterface",
    "SizeCategory",
    # Models
    "Fingerprint",
    "FileRecord",
    "LanguageTotals",
    "ScanError",
    "ScanResult",
    "ScanStats",
]
