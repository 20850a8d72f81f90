"""
Exception hierarchy for codecount.

None of these abort a whole scan: callers record them against the offending
file or directory and carry on.
"""


class CodeCountError(Exception):
    """Base exception for codecount errors."""
    pass


class FileAccessError(CodeCountError):
    """Raised when a file or directory cannot be read or stat'ed."""

    def __init__(self, path: str, reason: str):
        self.path = str(path)
        self.reason = reason
        super().__init__(f"Cannot access {self.path}: {reason}")


class PatternSyntaxError(CodeCountError, ValueError):
    """Raised when an exclusion or inclusion pattern is malformed."""

    def __init__(self, pattern: str, reason: str):
        self.pattern = pattern
        self.reason = reason
        super().__init__(f"Invalid pattern {pattern!r}: {reason}")


class SettingsStoreError(CodeCountError):
    """Raised when the settings store cannot read or write an entry."""
    pass


class SettingsResolutionError(CodeCountError):
    """Raised when a directory's explicit settings are corrupt or unreadable."""

    def __init__(self, directory: str, reason: str):
        self.directory = directory
        self.reason = reason
        super().__init__(f"Cannot read settings for {directory!r}: {reason}")


class CacheInconsistency(CodeCountError):
    """Raised when a cache entry disagrees with itself or the file it describes."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Inconsistent cache entry for {path}: {reason}")
