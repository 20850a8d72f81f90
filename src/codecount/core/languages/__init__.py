"""
Language profiles and the registry that maps file names to them.
"""

from .models import UNKNOWN_LANGUAGE, UNKNOWN_PROFILE, BlockDelimiter, LanguageProfile
from .registry import LanguageRegistry

__all__ = [
    "BlockDelimiter",
    "LanguageProfile",
    "LanguageRegistry",
    "UNKNOWN_LANGUAGE",
    "UNKNOWN_PROFILE",
]
