"""Tests for hierarchical settings resolution and editing."""

import logging
from pathlib import Path

import pytest

from codecount.core.errors import PatternSyntaxError, SettingsStoreError
from codecount.core.file_events import ChangeQueue, FileEvent, FileEventType
from codecount.core.settings import (
    DEFAULTS_ORIGIN,
    DirectorySettings,
    SettingsResolver,
    SizeCategory,
)
from codecount.infrastructure.fakes import InMemorySettingsStore

ROOT = Path("/ws")
DEFAULTS = ["**/node_modules/**", "**/.git/**"]


class CountingStore(InMemorySettingsStore):
    """In-memory store that counts reads."""

    def __init__(self):
        super().__init__()
        self.get_count = 0

    def get(self, path):
        self.get_count += 1
        return super().get(path)


@pytest.fixture
def store():
    return CountingStore()


@pytest.fixture
def resolver(store):
    return SettingsResolver(ROOT, store, default_exclude_patterns=DEFAULTS)


def test_defaults_apply_everywhere(resolver):
    resolved = resolver.resolve("a/b/c")

    assert resolved.exclude_patterns == tuple(DEFAULTS)
    assert resolved.include_patterns == ()
    assert resolved.source == DEFAULTS_ORIGIN
    assert resolved.origin_of == {p: DEFAULTS_ORIGIN for p in DEFAULTS}
    assert (resolved.mid_threshold, resolved.high_threshold) == (300, 1000)


def test_directory_without_settings_matches_nearest_ancestor(resolver):
    resolver.add_exclude_pattern("pkg", "**/*.log")
    resolver.set_thresholds("pkg", mid_threshold=50, high_threshold=80)

    parent = resolver.resolve("pkg")
    child = resolver.resolve("pkg/sub/deeper")

    assert child.exclude_patterns == parent.exclude_patterns
    assert child.include_patterns == parent.include_patterns
    assert child.origin_of == parent.origin_of
    assert (child.mid_threshold, child.high_threshold) == (50, 80)
    assert child.source == "pkg"
    assert child.directory == "pkg/sub/deeper"


def test_patterns_accumulate_without_duplicates(resolver):
    resolver.add_exclude_pattern(".", "**/*.log")
    resolver.add_exclude_pattern("pkg", "**/*.tmp")
    resolver.add_exclude_pattern("pkg", "**/*.log")

    resolved = resolver.resolve("pkg/sub")

    assert resolved.exclude_patterns == (*DEFAULTS, "**/*.log", "**/*.tmp")
    assert resolved.origin_of["**/*.log"] == "."
    assert resolved.origin_of["**/*.tmp"] == "pkg"
    assert resolved.origin_of["**/node_modules/**"] == DEFAULTS_ORIGIN


def test_sibling_directories_do_not_share_settings(resolver):
    resolver.add_exclude_pattern("a", "**/*.gen.py")

    assert "**/*.gen.py" in resolver.resolve("a/x").exclude_patterns
    assert "**/*.gen.py" not in resolver.resolve("b/x").exclude_patterns


def test_resolution_is_memoized(resolver, store):
    resolver.resolve("a/b/c")
    reads = store.get_count

    resolver.resolve("a/b/c")
    resolver.resolve("a/b")

    assert store.get_count == reads


def test_editing_an_ancestor_invalidates_descendants(resolver):
    before = resolver.resolve("pkg/sub")
    resolver.add_exclude_pattern(".", "**/*.bak")
    after = resolver.resolve("pkg/sub")

    assert "**/*.bak" not in before.exclude_patterns
    assert "**/*.bak" in after.exclude_patterns


def test_first_edit_seeds_from_inherited_value(resolver, store):
    resolver.add_exclude_pattern(".", "**/*.log")
    settings = resolver.add_exclude_pattern("pkg", "**/*.tmp")

    assert settings.exclude_patterns == [*DEFAULTS, "**/*.log", "**/*.tmp"]
    assert store.get("pkg").exclude_patterns == settings.exclude_patterns


def test_edit_returns_a_copy(resolver, store):
    settings = resolver.add_exclude_pattern("pkg", "**/*.tmp")
    settings.exclude_patterns.append("mutated")

    assert "mutated" not in store.get("pkg").exclude_patterns


def test_invalid_pattern_aborts_edit_before_persisting(resolver, store):
    with pytest.raises(PatternSyntaxError):
        resolver.edit("pkg", add_excludes=["**/*.ok", "[broken"])

    assert store.put_count == 0
    assert store.get("pkg") is None


def test_patterns_are_stored_in_canonical_form(resolver, store):
    resolver.add_exclude_pattern("pkg", "/generated/**")

    assert "generated/**" in store.get("pkg").exclude_patterns


def test_removing_inherited_pattern_warns(resolver, caplog):
    resolver.add_exclude_pattern(".", "**/*.log")

    with caplog.at_level(logging.WARNING, logger="codecount.core.settings.resolver"):
        resolver.remove_exclude_pattern("pkg", "**/*.log")

    assert "still inherited from ." in caplog.text
    # accumulation brings the ancestor's pattern back
    assert "**/*.log" in resolver.resolve("pkg").exclude_patterns


def test_removing_own_pattern(resolver):
    resolver.add_exclude_pattern("pkg", "**/*.tmp")
    resolver.remove_exclude_pattern("pkg", "**/*.tmp")

    assert "**/*.tmp" not in resolver.resolve("pkg").exclude_patterns


def test_include_patterns(resolver):
    resolver.add_include_pattern("pkg", "keep/**")

    assert resolver.resolve("pkg/a").include_patterns == ("keep/**",)
    assert resolver.resolve("other").include_patterns == ()

    resolver.remove_include_pattern("pkg", "keep/**")
    assert resolver.resolve("pkg/a").include_patterns == ()


def test_reset_to_parent(resolver):
    resolver.add_exclude_pattern(".", "**/*.log")
    resolver.add_exclude_pattern("pkg", "**/*.tmp")

    assert resolver.reset_to_parent("pkg") is True
    assert resolver.resolve("pkg").exclude_patterns == resolver.resolve(".").exclude_patterns
    assert resolver.explicit_settings("pkg") is None
    assert resolver.reset_to_parent("pkg") is False


class TestThresholds:
    def test_classification(self, resolver):
        resolved = resolver.resolve("src")

        assert resolved.classify(299) is SizeCategory.NORMAL
        assert resolved.classify(300) is SizeCategory.WARNING
        assert resolved.classify(999) is SizeCategory.WARNING
        assert resolved.classify(1000) is SizeCategory.DANGER

    def test_high_not_above_mid_is_fixed(self, resolver):
        resolver.set_thresholds("pkg", mid_threshold=500, high_threshold=400)
        resolved = resolver.resolve("pkg/x")

        assert resolved.mid_threshold == 500
        assert resolved.high_threshold == 600
        assert resolver.resolve("pkg").warnings
        assert resolved.classify(599) is SizeCategory.WARNING
        assert resolved.classify(600) is SizeCategory.DANGER

    def test_nearest_scalar_wins(self, resolver):
        resolver.set_thresholds(".", mid_threshold=100, high_threshold=200)
        resolver.set_thresholds("pkg", high_threshold=150)

        resolved = resolver.resolve("pkg")
        assert (resolved.mid_threshold, resolved.high_threshold) == (100, 150)

    def test_invalid_default_thresholds_are_fixed(self, store):
        resolver = SettingsResolver(ROOT, store, mid_threshold=200, high_threshold=200)

        assert resolver.defaults.high_threshold == 300

    def test_negative_threshold_rejected(self, resolver, store):
        with pytest.raises(ValueError):
            resolver.set_thresholds("pkg", mid_threshold=-1)
        assert store.put_count == 0


class TestCorruptEntries:
    def test_malformed_entry_is_treated_as_absent(self, resolver, store):
        resolver.add_exclude_pattern(".", "**/*.log")
        resolver.add_exclude_pattern("other", "**/*.tmp")
        store.put_raw("pkg", {"exclude_patterns": "not-a-list"})

        resolved = resolver.resolve("pkg")

        assert resolved.exclude_patterns == resolver.resolve(".").exclude_patterns
        assert resolved.warnings
        assert "**/*.tmp" in resolver.resolve("other").exclude_patterns
        assert resolver.resolve(".").warnings == ()

    def test_unreadable_entry_is_treated_as_absent(self, resolver, store):
        store.put_raw("pkg", SettingsStoreError("disk on fire"))

        resolved = resolver.resolve("pkg/sub")

        assert resolved.exclude_patterns == tuple(DEFAULTS)
        assert resolver.resolve("pkg").warnings

    def test_invalid_stored_pattern_is_skipped(self, resolver, store):
        store.put_raw("pkg", {"exclude_patterns": ["gen/**", "[broken"]})

        resolved = resolver.resolve("pkg")

        assert "gen/**" in resolved.exclude_patterns
        assert "[broken" not in resolved.exclude_patterns
        assert resolved.warnings


def test_invalid_default_pattern_rejected(store):
    with pytest.raises(PatternSyntaxError):
        SettingsResolver(ROOT, store, default_exclude_patterns=["!negated"])


def test_key_for(resolver):
    assert resolver.key_for(ROOT) == "."
    assert resolver.key_for(".") == "."
    assert resolver.key_for("pkg/sub") == "pkg/sub"
    assert resolver.key_for(ROOT / "pkg" / "sub") == "pkg/sub"
    with pytest.raises(ValueError):
        resolver.key_for("/elsewhere")


def test_resolve_for_file_uses_containing_directory(resolver):
    resolver.add_exclude_pattern("pkg", "**/*.tmp")

    assert resolver.resolve_for_file("pkg/module.py") == resolver.resolve("pkg")


def test_settings_file_events_invalidate_subtree(store):
    changes = ChangeQueue()
    resolver = SettingsResolver(
        ROOT, store, default_exclude_patterns=DEFAULTS, changes=changes.subscribe("settings")
    )
    resolver.resolve("pkg/sub")

    # an out-of-band write the resolver did not make
    store.put("pkg", DirectorySettings(path="pkg", exclude_patterns=["**/*.tmp"]))
    assert "**/*.tmp" not in resolver.resolve("pkg/sub").exclude_patterns

    changes.publish(FileEvent(FileEventType.MODIFIED, ROOT / "pkg" / ".codecount.json"))
    assert "**/*.tmp" in resolver.resolve("pkg/sub").exclude_patterns


def test_other_file_events_keep_memo(store):
    changes = ChangeQueue()
    resolver = SettingsResolver(ROOT, store, changes=changes.subscribe("settings"))
    resolver.resolve("pkg")
    reads = store.get_count

    changes.publish(FileEvent(FileEventType.MODIFIED, ROOT / "pkg" / "module.py"))
    resolver.resolve("pkg")

    assert store.get_count == reads
