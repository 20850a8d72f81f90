"""
Abstract interface for persisting per-directory settings.
"""

from abc import ABC, abstractmethod

from .models import DirectorySettings


class SettingsStoreInterface(ABC):
    """
    Key-value persistence for DirectorySettings.

    Keys are root-relative POSIX directory paths ('.' for the root). A write
    must be atomic: readers see either the old or the new entry, never a mix.
    """

    @abstractmethod
    def get(self, path: str) -> DirectorySettings | None:
        """
        Return the explicit settings stored for ``path``, or None.

        Raises:
            SettingsStoreError: If the stored entry is corrupt or unreadable
        """
        pass

    @abstractmethod
    def put(self, path: str, settings: DirectorySettings) -> None:
        """Store settings for ``path``, replacing any previous entry."""
        pass

    @abstractmethod
    def delete(self, path: str) -> bool:
        """Remove the entry for ``path``. Returns True if one existed."""
        pass

    @abstractmethod
    def list_paths(self) -> list[str]:
        """Return every key that has a stored entry, sorted."""
        pass
