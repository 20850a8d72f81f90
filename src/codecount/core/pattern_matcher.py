"""
Glob-style exclusion and inclusion matching.

Patterns and candidate paths share one canonical form: POSIX separators,
relative to the workspace root, no leading separator. ``/src/*.py`` and
``src/*.py`` therefore mean the same thing. Every pattern is anchored at the
root: ``*.log`` matches ``a.log`` but not ``sub/a.log``; write ``**/*.log`` to
match at any depth. ``{a,b}`` alternatives are expanded before compiling.
Beyond that, matching uses pathspec's git-wildmatch semantics: ``**`` spans
any number of segments, ``*`` stays within one segment.
"""

import logging
import sys
import threading
from pathlib import Path, PurePath, PurePosixPath

import pathspec

from .errors import PatternSyntaxError

logger = logging.getLogger(__name__)

# Upper bound on the patterns one brace expression may expand into
MAX_BRACE_EXPANSIONS = 256


def normalize_pattern(raw: str) -> str:
    """Bring a user-supplied pattern into canonical form."""
    pattern = raw.strip().replace("\\", "/")
    while "//" in pattern:
        pattern = pattern.replace("//", "/")
    while pattern.startswith("./"):
        pattern = pattern[2:]
    return pattern.lstrip("/")


def normalize_path(path: PurePath | str, root: Path | None = None) -> str:
    """
    Bring a candidate path into canonical form.

    Absolute paths are made relative to ``root``; the root itself becomes ``""``.
    """
    path = PurePath(path)
    if root is not None and path.is_absolute():
        path = path.relative_to(root)
    rel = PurePosixPath(*path.parts).as_posix() if path.parts else ""
    if rel == ".":
        return ""
    return rel.lstrip("/")


def validate_pattern(raw: str) -> str:
    """
    Validate a pattern and return its canonical form.

    Raises:
        PatternSyntaxError: If the pattern is empty, negated, contains NUL or
            ``..`` segments, has an unterminated character class, expands
            into too many brace alternatives, or is rejected by the glob
            compiler
    """
    if not isinstance(raw, str):
        raise PatternSyntaxError(repr(raw), "pattern must be a string")
    if "\x00" in raw:
        raise PatternSyntaxError(raw, "contains a NUL character")

    pattern = normalize_pattern(raw)
    if not pattern:
        raise PatternSyntaxError(raw, "pattern is empty")
    if pattern.startswith("!"):
        raise PatternSyntaxError(raw, "negated patterns are not supported; use an include pattern")
    if pattern.startswith("#"):
        raise PatternSyntaxError(raw, "pattern would be read as a comment")
    _check_brackets(raw, pattern)

    try:
        alternatives = expand_braces(pattern, limit=MAX_BRACE_EXPANSIONS)
    except ValueError as e:
        raise PatternSyntaxError(raw, str(e)) from e
    for alternative in alternatives:
        if not alternative.strip("/"):
            raise PatternSyntaxError(raw, "a brace alternative leaves the pattern empty")
        if ".." in alternative.split("/"):
            raise PatternSyntaxError(raw, "'..' segments are not allowed")
        try:
            compiled = pathspec.patterns.GitWildMatchPattern(_anchor(alternative))
        except ValueError as e:
            raise PatternSyntaxError(raw, str(e)) from e
        if compiled.include is None:
            raise PatternSyntaxError(raw, "pattern matches nothing")
    return pattern


def expand_braces(pattern: str, limit: int | None = None) -> list[str]:
    """
    Expand ``{a,b}`` alternatives, nested groups included.

    ``src/{a,b}/*.{py,pyi}`` becomes four patterns. A brace without a partner,
    or a group without a top-level comma such as ``{a}``, is kept literally.

    Raises:
        ValueError: If the expansion yields more than ``limit`` patterns
    """
    group = _find_brace_group(pattern)
    if group is None:
        return [pattern]
    start, end, choices = group
    prefix = pattern[:start]
    tails = expand_braces(pattern[end + 1 :], limit)
    expanded = []
    for choice in choices:
        for head in expand_braces(choice, limit):
            expanded.extend(prefix + head + tail for tail in tails)
            if limit is not None and len(expanded) > limit:
                raise ValueError(f"braces expand to more than {limit} patterns")
    return expanded


def _find_brace_group(pattern: str) -> tuple[int, int, list[str]] | None:
    """(open index, close index, alternatives) of the first expandable group."""
    for start, char in enumerate(pattern):
        if char != "{":
            continue
        depth = 0
        choices: list[str] = []
        piece_start = start + 1
        for index in range(start, len(pattern)):
            char = pattern[index]
            if char == "{":
                depth += 1
            elif char == "," and depth == 1:
                choices.append(pattern[piece_start:index])
                piece_start = index + 1
            elif char == "}":
                depth -= 1
                if depth == 0:
                    if choices:
                        choices.append(pattern[piece_start:index])
                        return start, index, choices
                    break
    return None


def _anchor(pattern: str) -> str:
    """Pin a canonical pattern to the root; ``**`` prefixes keep matching at any depth."""
    if pattern == "**" or pattern.startswith("**/"):
        return pattern
    return "/" + pattern


def _check_brackets(raw: str, pattern: str) -> None:
    depth_open = False
    escaped = False
    for char in pattern:
        if escaped:
            escaped = False
        elif char == "\\":
            escaped = True
        elif char == "[" and not depth_open:
            depth_open = True
        elif char == "]" and depth_open:
            depth_open = False
        elif char == "/" and depth_open:
            raise PatternSyntaxError(raw, "character class spans a path separator")
    if depth_open:
        raise PatternSyntaxError(raw, "unterminated character class '['")


class PatternMatcher:
    """
    Matches canonical paths against lists of glob patterns.

    Compiled pattern sets are cached per distinct pattern tuple, so repeated
    calls with the resolved settings of many directories stay cheap.
    """

    def __init__(self, case_sensitive: bool | None = None):
        """
        Args:
            case_sensitive: Override case sensitivity (None = auto-detect from platform)
        """
        if case_sensitive is None:
            # Windows is case-insensitive, POSIX is case-sensitive
            self._case_sensitive = sys.platform != "win32"
        else:
            self._case_sensitive = case_sensitive
        self._compiled: dict[tuple[str, ...], tuple[pathspec.PathSpec, pathspec.PathSpec]] = {}
        self._lock = threading.Lock()

    @property
    def case_sensitive(self) -> bool:
        return self._case_sensitive

    def _fold(self, text: str) -> str:
        return text if self._case_sensitive else text.lower()

    def _specs(self, patterns: tuple[str, ...]) -> tuple[pathspec.PathSpec, pathspec.PathSpec]:
        """Return (file spec, directory spec) for a pattern tuple."""
        with self._lock:
            cached = self._compiled.get(patterns)
            if cached is not None:
                return cached

        lines = []
        for raw in patterns:
            pattern = self._fold(normalize_pattern(raw))
            if pattern:
                lines.extend(expand_braces(pattern))
        file_spec = pathspec.PathSpec.from_lines(
            pathspec.patterns.GitWildMatchPattern, [_anchor(line) for line in lines]
        )

        # "dir/**" excludes everything below dir, so dir itself can be pruned
        dir_lines = [_anchor(line) for line in lines]
        for line in lines:
            if line.endswith("/**") and len(line) > 3:
                dir_lines.append(_anchor(line[:-3]))
        dir_spec = pathspec.PathSpec.from_lines(pathspec.patterns.GitWildMatchPattern, dir_lines)

        with self._lock:
            self._compiled[patterns] = (file_spec, dir_spec)
        logger.debug(f"Compiled pattern set of {len(lines)} patterns")
        return file_spec, dir_spec

    def is_excluded(
        self, path: str, patterns: list[str] | tuple[str, ...], is_dir: bool = False
    ) -> bool:
        """True if any pattern matches the canonical ``path``."""
        if not patterns or not path:
            return False
        file_spec, _ = self._specs(tuple(patterns))
        folded = self._fold(path)
        if file_spec.match_file(folded):
            return True
        # directory-only patterns ("build/") need the trailing separator
        return is_dir and file_spec.match_file(folded + "/")

    def first_match(self, path: str, patterns: list[str] | tuple[str, ...]) -> str | None:
        """Return the first pattern that matches ``path``, or None."""
        folded = self._fold(path)
        for pattern in patterns:
            file_spec, _ = self._specs((pattern,))
            if file_spec.match_file(folded):
                return pattern
        return None

    def should_skip(
        self,
        path: str,
        excludes: list[str] | tuple[str, ...],
        includes: list[str] | tuple[str, ...] = (),
    ) -> bool:
        """Excluded and not rescued by an include pattern."""
        if not self.is_excluded(path, excludes):
            return False
        return not self.is_excluded(path, includes)

    def is_directory_pruned(
        self,
        directory: str,
        excludes: list[str] | tuple[str, ...],
        includes: list[str] | tuple[str, ...] = (),
    ) -> bool:
        """
        True if nothing below ``directory`` can survive the exclude patterns.

        Active include patterns disable pruning: a file deep inside an excluded
        directory might still be included.
        """
        if not excludes or not directory or includes:
            return False
        _, dir_spec = self._specs(tuple(excludes))
        folded = self._fold(directory)
        return dir_spec.match_file(folded) or dir_spec.match_file(folded + "/")
