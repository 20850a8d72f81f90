"""
Settings stored as JSON sidecar files next to the directories they govern.

Each directory with explicit settings carries a ``.codecount.json`` file.
Writes go to a temporary file in the same directory and are moved into place
with ``os.replace``.
"""

import json
import logging
import os
import tempfile
from pathlib import Path

from codecount.core.errors import SettingsStoreError
from codecount.core.settings.interfaces import SettingsStoreInterface
from codecount.core.settings.models import ROOT_KEY, DirectorySettings
from codecount.core.settings.resolver import SETTINGS_FILENAME

logger = logging.getLogger(__name__)


class JsonFileSettingsStore(SettingsStoreInterface):
    """Per-directory sidecar file persistence rooted at a workspace."""

    def __init__(self, root: Path | str, filename: str = SETTINGS_FILENAME):
        self._root = Path(root).resolve()
        self._filename = filename

    @property
    def filename(self) -> str:
        return self._filename

    def _file_for(self, path: str) -> Path:
        directory = self._root if path == ROOT_KEY else self._root / path
        return directory / self._filename

    def get(self, path: str) -> DirectorySettings | None:
        settings_file = self._file_for(path)
        try:
            content = settings_file.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            raise SettingsStoreError(f"Cannot read {settings_file}: {e}") from e

        try:
            data = json.loads(content) if content.strip() else {}
        except json.JSONDecodeError as e:
            raise SettingsStoreError(f"Invalid JSON in {settings_file}: {e}") from e
        return DirectorySettings.from_dict(path, data)

    def put(self, path: str, settings: DirectorySettings) -> None:
        settings_file = self._file_for(path)
        if settings.is_empty():
            # nothing left to override; fall back to inheritance
            self.delete(path)
            return
        if not settings_file.parent.is_dir():
            raise SettingsStoreError(f"Directory does not exist: {settings_file.parent}")

        content = json.dumps(settings.to_dict(), indent=2) + "\n"
        try:
            fd, tmp_name = tempfile.mkstemp(
                prefix=f"{self._filename}.", suffix=".tmp", dir=settings_file.parent
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(content)
                os.replace(tmp_name, settings_file)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise SettingsStoreError(f"Cannot write {settings_file}: {e}") from e
        logger.debug(f"Wrote settings file {settings_file}")

    def delete(self, path: str) -> bool:
        settings_file = self._file_for(path)
        try:
            settings_file.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise SettingsStoreError(f"Cannot delete {settings_file}: {e}") from e
        logger.debug(f"Deleted settings file {settings_file}")
        return True

    def list_paths(self) -> list[str]:
        paths = []
        for dirpath, _dirnames, filenames in os.walk(self._root):
            if self._filename in filenames:
                rel = Path(dirpath).relative_to(self._root).as_posix()
                paths.append(ROOT_KEY if rel == "." else rel)
        return sorted(paths)
