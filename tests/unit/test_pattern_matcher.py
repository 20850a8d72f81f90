"""Tests for pattern normalization, validation and matching."""

from pathlib import Path, PurePosixPath

import pytest

from codecount.core.errors import PatternSyntaxError
from codecount.core.pattern_matcher import (
    PatternMatcher,
    expand_braces,
    normalize_path,
    normalize_pattern,
    validate_pattern,
)


@pytest.fixture
def matcher():
    return PatternMatcher(case_sensitive=True)


class TestNormalization:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("src/*.py", "src/*.py"),
            ("/src/*.py", "src/*.py"),
            ("./src/*.py", "src/*.py"),
            (".\\src\\*.py", "src/*.py"),
            ("  **//*.log  ", "**/*.log"),
            ("///a", "a"),
        ],
    )
    def test_normalize_pattern(self, raw, expected):
        assert normalize_pattern(raw) == expected

    def test_normalize_path_relative_to_root(self):
        root = Path("/ws")

        assert normalize_path(Path("/ws/src/a.py"), root) == "src/a.py"
        assert normalize_path(Path("/ws"), root) == ""
        assert normalize_path(PurePosixPath("src/a.py")) == "src/a.py"
        assert normalize_path(".") == ""

    def test_normalize_path_outside_root(self):
        with pytest.raises(ValueError):
            normalize_path(Path("/elsewhere/a.py"), Path("/ws"))


class TestValidation:
    def test_returns_canonical_form(self):
        assert validate_pattern("/src/**/*.py") == "src/**/*.py"

    @pytest.mark.parametrize(
        "raw",
        ["", "   ", "/", "!keep.py", "#comment", "a/../b", "..", "[abc", "src/[a/b]", "a\x00b"],
    )
    def test_rejects_malformed(self, raw):
        with pytest.raises(PatternSyntaxError):
            validate_pattern(raw)

    def test_rejects_non_string(self):
        with pytest.raises(PatternSyntaxError):
            validate_pattern(42)

    def test_error_is_a_value_error(self):
        with pytest.raises(ValueError) as excinfo:
            validate_pattern("")
        assert excinfo.value.pattern == ""

    @pytest.mark.parametrize(
        "raw", ["*.log", "**/node_modules/**", "build/", "src/[ab]*.py", "a?c", "{a,b}.py", "{x"]
    )
    def test_accepts_well_formed(self, raw):
        assert validate_pattern(raw)

    @pytest.mark.parametrize(
        "raw", ["{,}", "{a,..}/x.py", "{a,b}{c,d}{e,f}{g,h}{i,j}{k,l}{m,n}{o,p}{q,r}"]
    )
    def test_rejects_bad_brace_expansions(self, raw):
        with pytest.raises(PatternSyntaxError):
            validate_pattern(raw)

    def test_braces_are_kept_unexpanded(self):
        assert validate_pattern("/src/{a,b}.py") == "src/{a,b}.py"


class TestBraceExpansion:
    @pytest.mark.parametrize(
        "pattern,expected",
        [
            ("*.py", ["*.py"]),
            ("{a,b}.py", ["a.py", "b.py"]),
            ("src/{a,b}/*.{py,pyi}", ["src/a/*.py", "src/a/*.pyi", "src/b/*.py", "src/b/*.pyi"]),
            ("{a,{b,c}}", ["a", "b", "c"]),
            ("{a,}.py", ["a.py", ".py"]),
            ("{a}.py", ["{a}.py"]),
            ("{a,b", ["{a,b"]),
            ("{{a,b}}", ["{a}", "{b}"]),
        ],
    )
    def test_expand_braces(self, pattern, expected):
        assert expand_braces(pattern) == expected


class TestMatching:
    def test_double_star_spans_segments(self, matcher):
        patterns = ["**/*.log"]

        assert matcher.is_excluded("a.log", patterns)
        assert matcher.is_excluded("x/y/z/a.log", patterns)
        assert not matcher.is_excluded("a.logx", patterns)

    def test_single_star_stays_in_one_segment(self, matcher):
        patterns = ["src/*.py"]

        assert matcher.is_excluded("src/a.py", patterns)
        assert not matcher.is_excluded("src/sub/a.py", patterns)
        assert not matcher.is_excluded("lib/src/a.py", patterns)

    def test_leading_separator_is_insignificant(self, matcher):
        for path in ["src/a.py", "src/sub/a.py", "lib/src/a.py"]:
            assert matcher.is_excluded(path, ["/src/*.py"]) == matcher.is_excluded(
                path, ["src/*.py"]
            )

    def test_slash_free_pattern_is_anchored_at_root(self, matcher):
        assert matcher.is_excluded("x.log", ["*.log"])
        assert not matcher.is_excluded("sub/x.log", ["*.log"])
        assert not matcher.is_excluded("pkg/sub/x.log", ["*.log"])

    def test_literal_name_is_anchored_at_root(self, matcher):
        assert matcher.is_excluded("build/a.c", ["build"])
        assert not matcher.is_excluded("pkg/build/a.c", ["build"])
        assert not matcher.is_excluded("pkg/build", ["build/"], is_dir=True)

    def test_brace_alternatives(self, matcher):
        patterns = ["{a,b}.py"]

        assert matcher.is_excluded("a.py", patterns)
        assert matcher.is_excluded("b.py", patterns)
        assert not matcher.is_excluded("c.py", patterns)
        assert not matcher.is_excluded("sub/a.py", patterns)

    def test_brace_alternatives_at_any_depth(self, matcher):
        patterns = ["**/*.{log,tmp}"]

        assert matcher.is_excluded("x/y/a.tmp", patterns)
        assert matcher.is_excluded("a.log", patterns)
        assert not matcher.is_excluded("x/a.txt", patterns)
        assert matcher.first_match("x/a.tmp", ["**/*.md", "**/*.{log,tmp}"]) == "**/*.{log,tmp}"

    def test_directory_only_pattern(self, matcher):
        assert matcher.is_excluded("build", ["build/"], is_dir=True)
        assert not matcher.is_excluded("build", ["build/"])
        assert matcher.is_excluded("build/out.txt", ["build/"])

    def test_empty_inputs_never_match(self, matcher):
        assert not matcher.is_excluded("a.py", [])
        assert not matcher.is_excluded("", ["**"])

    def test_first_match(self, matcher):
        patterns = ["**/*.md", "docs/**", "**/*.txt"]

        assert matcher.first_match("docs/a.txt", patterns) == "docs/**"
        assert matcher.first_match("src/a.py", patterns) is None

    def test_case_insensitive_matching(self):
        matcher = PatternMatcher(case_sensitive=False)

        assert matcher.is_excluded("SRC/Main.PY", ["src/*.py"])
        assert not PatternMatcher(case_sensitive=True).is_excluded("SRC/Main.PY", ["src/*.py"])

    def test_include_overrides_exclude(self, matcher):
        excludes = ["**/*.json"]
        includes = ["config/settings.json"]

        assert matcher.should_skip("data/a.json", excludes, includes)
        assert not matcher.should_skip("config/settings.json", excludes, includes)
        assert not matcher.should_skip("src/a.py", excludes, includes)


class TestDirectoryPruning:
    def test_prunes_double_star_suffix(self, matcher):
        excludes = ["**/node_modules/**"]

        assert matcher.is_directory_pruned("node_modules", excludes)
        assert matcher.is_directory_pruned("web/node_modules", excludes)
        assert not matcher.is_directory_pruned("web/src", excludes)

    def test_anchored_directory_pattern_prunes_only_at_root(self, matcher):
        assert matcher.is_directory_pruned("src", ["src/**"])
        assert not matcher.is_directory_pruned("pkg/src", ["src/**"])
        assert not matcher.is_excluded("pkg/src/a.py", ["src/**"])

    def test_literal_name_prunes_only_at_root(self, matcher):
        assert matcher.is_directory_pruned("build", ["build"])
        assert not matcher.is_directory_pruned("pkg/build", ["build"])
        assert not matcher.is_directory_pruned("pkg/build", ["build/"])

    def test_brace_directories_prune(self, matcher):
        excludes = ["{dist,out}/**"]

        assert matcher.is_directory_pruned("dist", excludes)
        assert matcher.is_directory_pruned("out", excludes)
        assert not matcher.is_directory_pruned("web/out", excludes)

    def test_prunes_direct_match(self, matcher):
        assert matcher.is_directory_pruned(".git", ["**/.*"])
        assert matcher.is_directory_pruned("build", ["build/"])

    def test_pattern_for_files_does_not_prune(self, matcher):
        assert not matcher.is_directory_pruned("logs", ["**/*.log"])

    def test_active_includes_disable_pruning(self, matcher):
        assert not matcher.is_directory_pruned(
            "node_modules", ["**/node_modules/**"], ["node_modules/keep/*.js"]
        )

    def test_root_is_never_pruned(self, matcher):
        assert not matcher.is_directory_pruned("", ["**"])
