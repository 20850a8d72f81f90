"""
Immutable language profiles consumed by the line classifier.
"""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class BlockDelimiter:
    """Start and end tokens of a block comment."""

    start: str
    end: str


@dataclass(frozen=True)
class LanguageProfile:
    """
    Comment syntax of one language.

    Attributes:
        name: Display name used to group counts (e.g. 'Python')
        extensions: Lower-cased extensions including the dot
        filenames: Exact file names claimed regardless of extension
        line_comments: Tokens that start a comment running to end of line
        block_comments: Delimiter pairs of non-nesting block comments
    """

    name: str
    extensions: frozenset[str] = field(default_factory=frozenset)
    filenames: frozenset[str] = field(default_factory=frozenset)
    line_comments: tuple[str, ...] = ()
    block_comments: tuple[BlockDelimiter, ...] = ()

    @property
    def has_comments(self) -> bool:
        return bool(self.line_comments or self.block_comments)


UNKNOWN_LANGUAGE = "Unknown"

# Profile for text files no registered language claims: every non-blank line is code.
UNKNOWN_PROFILE = LanguageProfile(name=UNKNOWN_LANGUAGE)
