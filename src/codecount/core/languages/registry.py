"""
Language registry for mapping file names and extensions to language profiles.
"""

import logging
from pathlib import Path, PurePath
from typing import Any

import yaml

from .models import UNKNOWN_PROFILE, BlockDelimiter, LanguageProfile

logger = logging.getLogger(__name__)

# Bundled language table
_DEFAULT_LANGUAGES_CONFIG = Path(__file__).parent.parent / "languages.yaml"


class LanguageRegistry:
    """
    Data-driven registry of language profiles.

    Each registry is an explicitly constructed instance; pass it to whatever
    needs it rather than sharing a process-wide one.

    Extension conflicts are resolved deterministically: the first language to
    claim an extension keeps it unless ``extension_overrides`` names another
    winner.

    Example:
        >>> registry = LanguageRegistry()
        >>> registry.detect(Path("setup.py")).name
        'Python'
        >>> registry.register(LanguageProfile("Elixir", frozenset({".ex"}), line_comments=("#",)))
    """

    def __init__(self, load_defaults: bool = True):
        """
        Create a registry, optionally seeded from the bundled language table.

        Args:
            load_defaults: If True, load the bundled profiles from languages.yaml.
        """
        self._profiles: dict[str, LanguageProfile] = {}
        self._extension_to_language: dict[str, str] = {}
        self._filename_to_language: dict[str, str] = {}
        self._overrides: dict[str, str] = {}

        if load_defaults:
            self._load_from_yaml(_DEFAULT_LANGUAGES_CONFIG)

    @classmethod
    def from_yaml(cls, config_path: Path | str) -> "LanguageRegistry":
        """
        Build a registry from a custom language table instead of the bundled one.

        Raises:
            FileNotFoundError: If ``config_path`` is missing
            ValueError: If the file is not valid YAML or a profile is malformed
        """
        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(f"No language table at {config_path}")
        registry = cls(load_defaults=False)
        registry._load_from_yaml(config_path)
        return registry

    def _load_from_yaml(self, config_path: Path) -> None:
        """
        Load language profiles from a YAML file.

        Expected format:
            languages:
              Name:
                extensions: [.ext]
                filenames: [Exact]
                line_comments: ["#"]
                block_comments: [["/*", "*/"]]
            extension_overrides:
              .ext: Name
        """
        if not config_path.exists():
            logger.warning(f"No language table at {config_path}; registry starts empty")
            return

        try:
            data = yaml.safe_load(config_path.read_text(encoding="utf-8"))
        except yaml.YAMLError as e:
            logger.error(f"Cannot parse language table {config_path}: {e}")
            raise ValueError(f"{config_path} is not valid YAML: {e}") from e

        if data is None:
            return
        if not isinstance(data, dict):
            raise ValueError(f"Invalid languages config format: expected dict, got {type(data)}")

        for ext, language in (data.get("extension_overrides") or {}).items():
            self._overrides[str(ext).lower()] = str(language)

        languages = data.get("languages") or {}
        if not isinstance(languages, dict):
            raise ValueError(
                f"Invalid languages section: expected dict, got {type(languages)}"
            )
        for name, entry in languages.items():
            if not isinstance(entry, dict):
                logger.warning(f"Invalid profile for {name}: expected dict, got {type(entry)}")
                continue
            self.register(_profile_from_dict(str(name), entry))

    def _claim(self, table: dict[str, str], key: str, language: str) -> None:
        owner = table.get(key)
        if owner is None or owner == language:
            table[key] = language
        elif self._overrides.get(key) == language:
            logger.debug(f"{key} reassigned from {owner} to {language} by override")
            table[key] = language
        else:
            logger.debug(f"{key} already claimed by {owner}, ignoring claim by {language}")

    def register(self, profile: LanguageProfile) -> "LanguageRegistry":
        """
        Register a language profile, replacing any profile with the same name.

        Returns:
            Self for method chaining
        """
        if profile.name in self._profiles:
            self.unregister(profile.name)
        self._profiles[profile.name] = profile
        for ext in profile.extensions:
            self._claim(self._extension_to_language, ext.lower(), profile.name)
        for filename in profile.filenames:
            self._claim(self._filename_to_language, filename, profile.name)
        return self

    def unregister(self, language: str) -> "LanguageRegistry":
        """Remove a language and all extensions it owns."""
        self._profiles.pop(language, None)
        for table in (self._extension_to_language, self._filename_to_language):
            for key in [k for k, owner in table.items() if owner == language]:
                del table[key]
        return self

    def get_profile(self, language: str) -> LanguageProfile | None:
        return self._profiles.get(language)

    def detect(self, file_path: PurePath | str) -> LanguageProfile:
        """
        Detect the language profile of a file.

        Exact file names (``Dockerfile``) win over extensions. Unrecognized
        files get the unknown profile, which has no comment tokens.
        """
        path = PurePath(file_path)
        language = self._filename_to_language.get(path.name)
        if language is None:
            language = self._extension_to_language.get(path.suffix.lower())
        if language is None:
            return UNKNOWN_PROFILE
        return self._profiles[language]

    def get_all_extensions(self) -> set[str]:
        """Every extension some profile claims."""
        return set(self._extension_to_language)

    def get_all_languages(self) -> set[str]:
        """Names of all registered profiles."""
        return set(self._profiles)

    def is_supported(self, extension: str) -> bool:
        """Whether some profile claims ``extension``."""
        return extension.lower() in self._extension_to_language


def _profile_from_dict(name: str, entry: dict[str, Any]) -> LanguageProfile:
    blocks = []
    for pair in entry.get("block_comments") or []:
        if not isinstance(pair, (list, tuple)) or len(pair) != 2:
            raise ValueError(f"Invalid block comment for {name}: {pair!r}")
        blocks.append(BlockDelimiter(start=str(pair[0]), end=str(pair[1])))
    return LanguageProfile(
        name=name,
        extensions=frozenset(str(ext).lower() for ext in entry.get("extensions") or []),
        filenames=frozenset(str(f) for f in entry.get("filenames") or []),
        line_comments=tuple(str(token) for token in entry.get("line_comments") or []),
        block_comments=tuple(blocks),
    )
