"""
Hierarchical per-directory settings: models, store interface and resolver.
"""

from .interfaces import SettingsStoreInterface
from .models import (
    DEFAULTS_ORIGIN,
    ROOT_KEY,
    DirectorySettings,
    ResolvedSettings,
    SizeCategory,
)
from .resolver import SETTINGS_FILENAME, SettingsResolver, parent_key

__all__ = [
    "DirectorySettings",
    "ResolvedSettings",
    "SizeCategory",
    "SettingsStoreInterface",
    "SettingsResolver",
    "parent_key",
    # Constants
    "DEFAULTS_ORIGIN",
    "ROOT_KEY",
    "SETTINGS_FILENAME",
]
