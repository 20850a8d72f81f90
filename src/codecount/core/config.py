"""
codecount configuration.

Every setting has a default in ``defaults.yaml`` next to this module. A YAML
or JSON file can replace any section, and ``CODECOUNT_<SECTION>_<KEY>``
environment variables override individual values on top of that.
"""

import json
import logging
import os
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Callable, Optional

import yaml

logger = logging.getLogger(__name__)

_DEFAULTS_CONFIG_PATH = Path(__file__).parent / "defaults.yaml"

ENV_PREFIX = "CODECOUNT"

# parsed defaults.yaml, loaded on first use
_defaults_cache: dict[str, Any] | None = None


def _load_defaults() -> dict[str, Any]:
    """Parsed contents of defaults.yaml; empty if it is missing or broken."""
    global _defaults_cache

    if _defaults_cache is None:
        try:
            raw = _DEFAULTS_CONFIG_PATH.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.warning(f"No defaults file at {_DEFAULTS_CONFIG_PATH}, using built-in values")
            raw = ""
        try:
            _defaults_cache = yaml.safe_load(raw) or {}
        except yaml.YAMLError as e:
            logger.error(f"Ignoring unparseable {_DEFAULTS_CONFIG_PATH.name}: {e}")
            _defaults_cache = {}

    return _defaults_cache


def _get_default(section: str, key: str, fallback: Any = None) -> Any:
    """Default for ``section.key``, falling back to ``fallback``."""
    value = _load_defaults().get(section, {}).get(key, fallback)
    # lists are mutable; every config instance gets its own copy
    return list(value) if isinstance(value, list) else value


def _default(section: str, key: str, fallback: Any) -> Any:
    """dataclass field whose default is looked up in defaults.yaml."""
    return field(default_factory=lambda: _get_default(section, key, fallback))


@dataclass
class ScanConfig:
    """Enumeration and per-file read limits."""

    max_workers: int = _default("scan", "max_workers", 4)
    max_file_bytes: int = _default("scan", "max_file_bytes", 50 * 1024 * 1024)
    stream_threshold_bytes: int = _default("scan", "stream_threshold_bytes", 10 * 1024 * 1024)
    read_chunk_bytes: int = _default("scan", "read_chunk_bytes", 64 * 1024)
    follow_symlinks: bool = _default("scan", "follow_symlinks", False)


@dataclass
class BinaryDetectionConfig:
    """Binary/text classifier tiers."""

    magic_prefix_bytes: int = _default("binary", "magic_prefix_bytes", 32)
    sample_bytes: int = _default("binary", "sample_bytes", 8192)
    nul_threshold: float = _default("binary", "nul_threshold", 0.0)
    control_threshold: float = _default("binary", "control_threshold", 0.10)


@dataclass
class CacheConfig:
    """
    Line count cache.

    ``max_entries`` 0 is unbounded; an empty ``snapshot_path`` disables snapshots.
    """

    max_entries: int = _default("cache", "max_entries", 0)
    lock_stripes: int = _default("cache", "lock_stripes", 16)
    snapshot_path: str = _default("cache", "snapshot_path", "")


@dataclass
class SettingsConfig:
    """Per-directory settings: where they live and what every directory starts from."""

    store: str = _default("settings", "store", "json")
    db_path: str = _default("settings", "db_path", ".codecount/settings.db")
    mid_threshold: int = _default("settings", "mid_threshold", 300)
    high_threshold: int = _default("settings", "high_threshold", 1000)
    default_exclude_patterns: list[str] = _default(
        "settings",
        "default_exclude_patterns",
        ["**/node_modules/**", "**/.git/**", "**/.*", "**/.codecount.json"],
    )
    default_include_patterns: list[str] = _default("settings", "default_include_patterns", [])


@dataclass
class LoggingConfig:
    level: str = _default("logging", "level", "INFO")
    format: str = _default(
        "logging", "format", "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


_SECTIONS: dict[str, type] = {
    "scan": ScanConfig,
    "binary": BinaryDetectionConfig,
    "cache": CacheConfig,
    "settings": SettingsConfig,
    "logging": LoggingConfig,
}


@dataclass
class CodeCountConfig:
    """Top-level configuration, one attribute per section."""

    scan: ScanConfig = field(default_factory=ScanConfig)
    binary: BinaryDetectionConfig = field(default_factory=BinaryDetectionConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    settings: SettingsConfig = field(default_factory=SettingsConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_file(cls, path: Path | str) -> "CodeCountConfig":
        """
        Read a ``.yaml``, ``.yml`` or ``.json`` configuration file.

        Sections missing from the file keep their defaults.

        Raises:
            FileNotFoundError: If ``path`` does not exist
            ValueError: If the suffix is not a supported format
            TypeError: If a section contains an unknown key
        """
        path = Path(path)
        if not path.is_file():
            raise FileNotFoundError(f"No configuration file at {path}")

        loads = _loader_for(path)
        text = path.read_text(encoding="utf-8")
        data = loads(text) if text.strip() else None
        return cls._from_dict(data or {})

    @classmethod
    def _from_dict(cls, data: dict) -> "CodeCountConfig":
        config = cls()
        for name, section_cls in _SECTIONS.items():
            if name in data:
                setattr(config, name, section_cls(**(data[name] or {})))
        return config

    def apply_env_overrides(self) -> "CodeCountConfig":
        """
        Override values from ``CODECOUNT_<SECTION>_<KEY>`` variables.

        The variable name is derived from the field, e.g.
        ``CODECOUNT_SCAN_MAX_WORKERS`` or ``CODECOUNT_SETTINGS_STORE``. Values
        are converted to the field's declared type; list fields take a
        comma-separated string and booleans accept true/1/yes/on.

        Raises:
            ValueError: If a value cannot be converted
        """
        for name in _SECTIONS:
            section = getattr(self, name)
            for f in fields(section):
                env_var = f"{ENV_PREFIX}_{name}_{f.name}".upper()
                raw = os.environ.get(env_var)
                if raw is None:
                    continue
                convert = _converter_for(f.type)
                setattr(section, f.name, convert(raw))
                logger.debug(f"{env_var} overrides {name}.{f.name}")
        return self

    def to_dict(self) -> dict:
        return asdict(self)

    def to_yaml(self) -> str:
        return yaml.dump(self.to_dict(), default_flow_style=False, sort_keys=False)

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)

    def save(self, path: Path | str) -> None:
        """
        Write the configuration in the format implied by the suffix.

        Raises:
            ValueError: If the suffix is not a supported format
        """
        path = Path(path)
        _loader_for(path)
        content = self.to_json() if path.suffix == ".json" else self.to_yaml()
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")


def _loader_for(path: Path) -> Callable[[str], Any]:
    if path.suffix in (".yaml", ".yml"):
        return yaml.safe_load
    if path.suffix == ".json":
        return json.loads
    raise ValueError(f"Unsupported config file format: {path.suffix or path.name}")


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("true", "1", "yes", "on")


def _parse_list(value: str) -> list[str]:
    """Comma-separated items, blanks dropped."""
    return [item.strip() for item in value.split(",") if item.strip()]


def _converter_for(annotation: Any) -> Callable[[str], Any]:
    if annotation is bool:
        return _parse_bool
    if getattr(annotation, "__origin__", None) is list:
        return _parse_list
    if annotation in (int, float):
        return annotation
    return str


def load_config(
    config_path: Optional[Path | str] = None, apply_env: bool = True
) -> CodeCountConfig:
    """
    Build the effective configuration.

    Args:
        config_path: File to read; defaults only when None
        apply_env: Whether CODECOUNT_* environment variables are applied
    """
    config = CodeCountConfig.from_file(config_path) if config_path else CodeCountConfig()
    return config.apply_env_overrides() if apply_env else config


def setup_logging(config: LoggingConfig) -> None:
    """Configure the root logger from a LoggingConfig."""
    level = logging.getLevelName(config.level.upper())
    if not isinstance(level, int):
        logger.warning(f"Unknown log level {config.level!r}, using INFO")
        level = logging.INFO
    logging.basicConfig(level=level, format=config.format, force=True)
