"""
File system capability used by the classifier, the cache and the orchestrator.

Everything that touches the disk goes through FileSystemInterface so tests can
swap in an in-memory tree.
"""

import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

from .errors import FileAccessError
from .models import Fingerprint


@dataclass(frozen=True)
class DirEntry:
    """One child of a directory."""

    name: str
    is_directory: bool
    is_symlink: bool = False


@dataclass(frozen=True)
class FileStat:
    """Subset of stat information the core relies on."""

    size: int
    mtime_ns: int

    @property
    def fingerprint(self) -> Fingerprint:
        return Fingerprint(size=self.size, mtime_ns=self.mtime_ns)


class FileSystemInterface(ABC):
    """
    Abstract interface for file system access.

    All methods raise FileAccessError when the underlying operation fails.
    """

    @abstractmethod
    def list_entries(self, directory: Path) -> list[DirEntry]:
        """
        List the children of a directory.

        Args:
            directory: Directory to list

        Returns:
            Entries in unspecified order
        """
        pass

    @abstractmethod
    def read_bytes(self, path: Path, offset: int, length: int) -> bytes:
        """
        Read up to ``length`` bytes starting at ``offset``.

        Returns fewer bytes at end of file and ``b""`` past it.
        """
        pass

    @abstractmethod
    def stat(self, path: Path) -> FileStat:
        """Return size and modification time of a file."""
        pass


class LocalFileSystem(FileSystemInterface):
    """FileSystemInterface backed by the operating system."""

    def list_entries(self, directory: Path) -> list[DirEntry]:
        try:
            with os.scandir(directory) as it:
                entries = []
                for entry in it:
                    is_symlink = entry.is_symlink()
                    entries.append(
                        DirEntry(
                            name=entry.name,
                            is_directory=entry.is_dir(follow_symlinks=True),
                            is_symlink=is_symlink,
                        )
                    )
                return entries
        except PermissionError as e:
            raise FileAccessError(str(directory), f"permission denied: {e}") from e
        except OSError as e:
            raise FileAccessError(str(directory), str(e)) from e

    def read_bytes(self, path: Path, offset: int, length: int) -> bytes:
        try:
            with open(path, "rb") as f:
                if offset:
                    f.seek(offset)
                return f.read(length)
        except PermissionError as e:
            raise FileAccessError(str(path), f"permission denied: {e}") from e
        except OSError as e:
            raise FileAccessError(str(path), str(e)) from e

    def stat(self, path: Path) -> FileStat:
        try:
            st = os.stat(path)
        except OSError as e:
            raise FileAccessError(str(path), str(e)) from e
        return FileStat(size=st.st_size, mtime_ns=st.st_mtime_ns)
