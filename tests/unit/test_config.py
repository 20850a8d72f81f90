"""Tests for configuration defaults, files, environment overrides and logging setup."""

import logging
import os

import pytest
import yaml

from codecount.core.config import (
    _DEFAULTS_CONFIG_PATH,
    CodeCountConfig,
    LoggingConfig,
    load_config,
    setup_logging,
)


@pytest.fixture
def clean_env(monkeypatch):
    """Remove any CODECOUNT_* variables inherited from the developer shell."""
    for name in list(os.environ):
        if name.startswith("CODECOUNT_"):
            monkeypatch.delenv(name)
    return monkeypatch


def test_defaults_come_from_defaults_yaml():
    defaults = yaml.safe_load(_DEFAULTS_CONFIG_PATH.read_text(encoding="utf-8"))
    config = CodeCountConfig()

    assert config.to_dict() == defaults


def test_default_lists_are_not_shared():
    first = CodeCountConfig()
    second = CodeCountConfig()

    first.settings.default_exclude_patterns.append("**/*.tmp")

    assert "**/*.tmp" not in second.settings.default_exclude_patterns


def test_partial_file_keeps_other_defaults(tmp_path):
    path = tmp_path / "codecount.yaml"
    path.write_text("scan:\n  max_workers: 9\ncache:\n  max_entries: 500\n", encoding="utf-8")

    config = CodeCountConfig.from_file(path)

    assert config.scan.max_workers == 9
    assert config.cache.max_entries == 500
    assert config.settings == CodeCountConfig().settings
    assert config.logging == CodeCountConfig().logging


def test_empty_files_give_defaults(tmp_path):
    (tmp_path / "a.yaml").write_text("", encoding="utf-8")
    (tmp_path / "b.json").write_text("  ", encoding="utf-8")

    assert CodeCountConfig.from_file(tmp_path / "a.yaml") == CodeCountConfig()
    assert CodeCountConfig.from_file(tmp_path / "b.json") == CodeCountConfig()


def test_save_and_load_json(tmp_path):
    config = CodeCountConfig()
    config.settings.store = "sqlite"
    config.binary.control_threshold = 0.25
    path = tmp_path / "nested" / "config.json"

    config.save(path)

    assert CodeCountConfig.from_file(path) == config


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        CodeCountConfig.from_file(tmp_path / "nope.yaml")


def test_unsupported_format(tmp_path):
    path = tmp_path / "config.toml"
    path.write_text("[scan]\n", encoding="utf-8")

    with pytest.raises(ValueError):
        CodeCountConfig.from_file(path)
    with pytest.raises(ValueError):
        CodeCountConfig().save(path)


def test_unknown_key_is_rejected(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("scan:\n  turbo: true\n", encoding="utf-8")

    with pytest.raises(TypeError):
        CodeCountConfig.from_file(path)


class TestEnvironmentOverrides:
    def test_scalar_overrides(self, clean_env):
        clean_env.setenv("CODECOUNT_SCAN_MAX_WORKERS", "12")
        clean_env.setenv("CODECOUNT_BINARY_CONTROL_THRESHOLD", "0.5")
        clean_env.setenv("CODECOUNT_SETTINGS_STORE", "sqlite")
        clean_env.setenv("CODECOUNT_LOGGING_LEVEL", "DEBUG")
        clean_env.setenv("CODECOUNT_CACHE_SNAPSHOT_PATH", "state/cache.json")

        config = load_config()

        assert config.scan.max_workers == 12
        assert config.binary.control_threshold == 0.5
        assert config.settings.store == "sqlite"
        assert config.logging.level == "DEBUG"
        assert config.cache.snapshot_path == "state/cache.json"

    @pytest.mark.parametrize(
        "raw,expected",
        [("true", True), ("1", True), ("YES", True), ("on", True), ("false", False), ("0", False)],
    )
    def test_boolean_override(self, clean_env, raw, expected):
        clean_env.setenv("CODECOUNT_SCAN_FOLLOW_SYMLINKS", raw)

        assert load_config().scan.follow_symlinks is expected

    def test_list_override(self, clean_env):
        clean_env.setenv("CODECOUNT_SETTINGS_DEFAULT_EXCLUDE_PATTERNS", "**/*.log, build/** ,,")

        config = load_config()

        assert config.settings.default_exclude_patterns == ["**/*.log", "build/**"]

    def test_env_wins_over_file(self, clean_env, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("scan:\n  max_workers: 3\n", encoding="utf-8")
        clean_env.setenv("CODECOUNT_SCAN_MAX_WORKERS", "7")

        assert load_config(path).scan.max_workers == 7
        assert load_config(path, apply_env=False).scan.max_workers == 3

    def test_invalid_number_raises(self, clean_env):
        clean_env.setenv("CODECOUNT_CACHE_MAX_ENTRIES", "lots")

        with pytest.raises(ValueError):
            load_config()


class TestSetupLogging:
    @pytest.fixture
    def basic_config_calls(self, monkeypatch):
        calls = []
        monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: calls.append(kwargs))
        return calls

    def test_applies_level_and_format(self, basic_config_calls):
        setup_logging(LoggingConfig(level="warning", format="%(message)s"))

        assert basic_config_calls == [
            {"level": logging.WARNING, "format": "%(message)s", "force": True}
        ]

    def test_unknown_level_falls_back_to_info(self, basic_config_calls, caplog):
        with caplog.at_level(logging.WARNING, logger="codecount.core.config"):
            setup_logging(LoggingConfig(level="chatty", format="%(message)s"))

        assert basic_config_calls[0]["level"] == logging.INFO
        assert "Unknown log level" in caplog.text
