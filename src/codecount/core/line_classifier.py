"""
Line classifier: sorts each line of a text file into code, comment or blank.

The classifier is a two-state machine (outside / inside a block comment)
driven by a LanguageProfile. Block comments do not nest, and a line holding
any non-comment text counts as code even when it also carries a comment.
"""

import re
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from enum import Enum

from .languages import BlockDelimiter, LanguageProfile

_LINE_BREAK = re.compile(r"\r\n|\r|\n")


class LineKind(Enum):
    """Classification of a single line."""

    CODE = "code"
    COMMENT = "comment"
    BLANK = "blank"


@dataclass
class LineCounts:
    """Running totals for one file."""

    lines: int = 0
    code: int = 0
    comment: int = 0
    blank: int = 0

    def add(self, kind: LineKind) -> None:
        self.lines += 1
        if kind is LineKind.CODE:
            self.code += 1
        elif kind is LineKind.COMMENT:
            self.comment += 1
        else:
            self.blank += 1


class LineClassifier:
    """
    Stateful per-file classifier.

    Create one per file and feed it lines in order; ``inside_block`` is the
    active delimiter while a block comment is open.
    """

    def __init__(self, profile: LanguageProfile):
        self._profile = profile
        self._line_tokens = profile.line_comments
        self._block_starts = profile.block_comments
        self.inside_block: BlockDelimiter | None = None

    def classify(self, line: str) -> LineKind:
        """Classify one line (without its terminator) and advance the state."""
        if self.inside_block is None and not line.strip():
            return LineKind.BLANK

        has_code = False
        has_comment = False
        rest = line

        if self.inside_block is not None:
            has_comment = True
            end = self.inside_block.end
            idx = rest.find(end)
            if idx < 0:
                return LineKind.COMMENT
            rest = rest[idx + len(end):]
            self.inside_block = None

        while rest:
            pos, token, block = self._next_comment_start(rest)
            if token is None:
                if rest.strip():
                    has_code = True
                break

            if rest[:pos].strip():
                has_code = True
            has_comment = True

            if block is None:
                # single-line comment runs to end of line
                break

            after = rest[pos + len(block.start):]
            idx = after.find(block.end)
            if idx < 0:
                self.inside_block = block
                break
            rest = after[idx + len(block.end):]

        if has_code:
            return LineKind.CODE
        if has_comment:
            return LineKind.COMMENT
        return LineKind.BLANK

    def _next_comment_start(
        self, text: str
    ) -> tuple[int, str | None, BlockDelimiter | None]:
        """
        Find the earliest comment token in ``text``.

        At equal positions the longest token wins, so ``--[[`` beats ``--``.
        Returns ``(position, token, block)`` where block is None for
        single-line tokens and token is None when nothing was found.
        """
        best_pos = -1
        best_token: str | None = None
        best_block: BlockDelimiter | None = None

        candidates: list[tuple[str, BlockDelimiter | None]] = [
            (token, None) for token in self._line_tokens
        ]
        candidates.extend((block.start, block) for block in self._block_starts)

        for token, block in candidates:
            pos = text.find(token)
            if pos < 0:
                continue
            if (
                best_token is None
                or pos < best_pos
                or (pos == best_pos and len(token) > len(best_token))
            ):
                best_pos, best_token, best_block = pos, token, block

        return best_pos, best_token, best_block


def classify_lines(lines: Iterable[str], profile: LanguageProfile) -> LineCounts:
    """Classify a sequence of lines, returning the totals."""
    classifier = LineClassifier(profile)
    counts = LineCounts()
    for line in lines:
        counts.add(classifier.classify(line))
    return counts


def classify_text(text: str, profile: LanguageProfile) -> LineCounts:
    """Classify a whole decoded document."""
    return classify_lines(iter_text_lines([text]), profile)


def iter_text_lines(chunks: Iterable[str]) -> Iterator[str]:
    """
    Split decoded text chunks into lines.

    Accepts ``\\n``, ``\\r\\n`` and ``\\r`` terminators, including a ``\\r\\n``
    split across two chunks. A terminator ends the current line; it does not
    open a new one, so ``"a\\n"`` is one line and ``""`` is none.
    """
    pending = ""
    for chunk in chunks:
        buffer = pending + chunk
        held = ""
        if buffer.endswith("\r"):
            buffer, held = buffer[:-1], "\r"
        parts = _LINE_BREAK.split(buffer)
        pending = parts.pop() + held
        yield from parts

    if pending:
        parts = _LINE_BREAK.split(pending)
        if parts[-1] == "":
            parts.pop()
        yield from parts
