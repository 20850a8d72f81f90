"""
Tiered binary/text classification.

Tier 1 looks only at the extension, tier 2 matches magic-number signatures
in the first bytes of the file, tier 3 samples the head of the file for NUL
and control bytes. A known-binary extension settles the question without
I/O; everything else goes through the content tiers so that a PNG renamed
to ``image.txt`` is still caught.
"""

import logging
from dataclasses import dataclass
from pathlib import Path, PurePath

from .filesystem import FileSystemInterface

logger = logging.getLogger(__name__)


BINARY_EXTENSIONS: frozenset[str] = frozenset({
    # Images
    ".png", ".jpg", ".jpeg", ".gif", ".bmp", ".ico", ".tiff", ".tif", ".webp",
    ".svg", ".psd", ".ai", ".eps", ".raw", ".cr2", ".nef", ".orf", ".sr2", ".dng",
    ".heic", ".heif", ".avif", ".jxl",
    # Video
    ".mp4", ".avi", ".mov", ".mkv", ".wmv", ".flv", ".webm", ".m4v", ".mpg",
    ".mpeg", ".3gp", ".ogv", ".asf", ".rm", ".rmvb",
    # Audio
    ".mp3", ".wav", ".flac", ".aac", ".ogg", ".wma", ".m4a", ".opus", ".ape",
    ".ac3", ".dts", ".amr",
    # Archives
    ".zip", ".rar", ".7z", ".tar", ".gz", ".bz2", ".xz", ".lzma", ".cab", ".iso",
    ".dmg", ".pkg", ".deb", ".rpm",
    # Documents
    ".pdf", ".doc", ".docx", ".xls", ".xlsx", ".ppt", ".pptx", ".odt", ".ods",
    ".odp", ".pages", ".numbers", ".key",
    # Executables and libraries
    ".exe", ".dll", ".so", ".dylib", ".app", ".msi", ".appx", ".bin", ".run",
    ".snap", ".flatpak", ".class", ".pyc", ".pyo", ".o", ".a", ".lib", ".wasm",
    # Databases
    ".db", ".sqlite", ".sqlite3", ".mdb", ".accdb", ".dbf",
    # System and temporary
    ".tmp", ".temp", ".cache", ".lock", ".pid", ".swap", ".bak", ".backup",
    ".old", ".orig",
    # Fonts
    ".ttf", ".otf", ".woff", ".woff2", ".eot",
    # CAD and 3D
    ".dwg", ".dxf", ".step", ".iges", ".stl", ".obj", ".3ds",
    # Virtual machine images
    ".vmdk", ".vdi", ".qcow2", ".vhd", ".vhdx",
    # Game assets
    ".unity", ".unitypackage", ".asset", ".prefab",
})

TEXT_EXTENSIONS: frozenset[str] = frozenset({
    # Programming languages
    ".js", ".jsx", ".ts", ".tsx", ".py", ".java", ".c", ".cpp", ".cc", ".cxx",
    ".h", ".hpp", ".hxx", ".cs", ".php", ".rb", ".go", ".rs", ".swift", ".kt",
    ".kts", ".scala", ".sc", ".sbt", ".dart", ".lua", ".r", ".m", ".pl", ".pm",
    ".hs", ".erl", ".ex", ".exs", ".clj", ".cljs", ".cljc", ".fs", ".fsx", ".fsi",
    ".ml", ".mli", ".asm", ".s", ".cbl", ".cob", ".cpy", ".f", ".f90", ".f95",
    ".f03", ".f08", ".vb", ".bas", ".pas", ".pp", ".ads", ".adb", ".groovy",
    ".gradle", ".jl", ".nim", ".cr", ".mm", ".dpr", ".dfm", ".vala", ".zig", ".v",
    ".scm", ".ss", ".rkt", ".coffee", ".ls", ".elm", ".purs", ".tcl", ".tk",
    ".awk", ".gawk",
    # Shell and scripts
    ".sh", ".bash", ".zsh", ".fish", ".csh", ".ksh", ".bat", ".cmd", ".ps1",
    ".psm1", ".psd1",
    # Web
    ".html", ".htm", ".xhtml", ".css", ".scss", ".sass", ".less", ".stylus",
    ".vue", ".svelte", ".astro",
    # Data and configuration
    ".json", ".jsonc", ".json5", ".xml", ".xsd", ".xsl", ".xslt", ".yaml", ".yml",
    ".toml", ".ini", ".cfg", ".conf", ".config", ".properties", ".env",
    ".htaccess", ".gitignore", ".gitattributes", ".editorconfig",
    # Documentation
    ".md", ".markdown", ".mdown", ".mkd", ".rst", ".txt", ".text", ".rtf", ".tex",
    ".latex", ".org", ".adoc", ".asciidoc",
    # Query languages
    ".sql", ".psql", ".mysql", ".cypher", ".sparql", ".graphql", ".gql",
    # Build files
    ".dockerfile", ".dockerignore", ".makefile", ".make", ".mk", ".cmake",
    ".maven", ".ant", ".rake", ".gemfile",
    # Logs and tabular data
    ".log", ".logs", ".out", ".err", ".trace", ".csv", ".tsv", ".tab",
    # Grammars and schemas
    ".proto", ".g4", ".bnf", ".ebnf", ".lex", ".yacc", ".bison",
})


@dataclass(frozen=True)
class MagicSignature:
    """Byte sequence expected at a fixed offset."""

    label: str
    offset: int
    magic: bytes

    def matches(self, head: bytes) -> bool:
        return head[self.offset:self.offset + len(self.magic)] == self.magic


def _sig(label: str, magic: bytes, offset: int = 0) -> MagicSignature:
    return MagicSignature(label=label, offset=offset, magic=magic)


MAGIC_SIGNATURES: tuple[MagicSignature, ...] = (
    _sig("png", b"\x89PNG\r\n\x1a\n"),
    _sig("jpeg", b"\xff\xd8\xff"),
    _sig("gif", b"GIF87a"),
    _sig("gif", b"GIF89a"),
    _sig("webp", b"WEBP", offset=8),
    _sig("tiff", b"II*\x00"),
    _sig("tiff", b"MM\x00*"),
    _sig("psd", b"8BPS"),
    _sig("pdf", b"%PDF-"),
    _sig("zip", b"PK\x03\x04"),
    _sig("zip", b"PK\x05\x06"),
    _sig("gzip", b"\x1f\x8b"),
    _sig("7z", b"7z\xbc\xaf\x27\x1c"),
    _sig("rar", b"Rar!\x1a\x07"),
    _sig("xz", b"\xfd7zXZ\x00"),
    _sig("zstd", b"\x28\xb5\x2f\xfd"),
    _sig("elf", b"\x7fELF"),
    _sig("mach-o", b"\xfe\xed\xfa\xce"),
    _sig("mach-o", b"\xfe\xed\xfa\xcf"),
    _sig("mach-o", b"\xce\xfa\xed\xfe"),
    _sig("mach-o", b"\xcf\xfa\xed\xfe"),
    _sig("java-class", b"\xca\xfe\xba\xbe"),
    _sig("wasm", b"\x00asm"),
    _sig("sqlite", b"SQLite format 3\x00"),
    _sig("ogg", b"OggS"),
    _sig("flac", b"fLaC"),
    _sig("mp3", b"ID3"),
    _sig("wav", b"WAVE", offset=8),
    _sig("avi", b"AVI ", offset=8),
    _sig("mp4", b"ftyp", offset=4),
    _sig("matroska", b"\x1a\x45\xdf\xa3"),
    _sig("woff", b"wOFF"),
    _sig("woff2", b"wOF2"),
    _sig("otf", b"OTTO"),
    _sig("ttf", b"\x00\x01\x00\x00\x00"),
)

# Control bytes that legitimately appear in text: tab, LF, VT, FF, CR, ESC, backspace.
_TEXT_CONTROL_BYTES = frozenset({0x08, 0x09, 0x0A, 0x0B, 0x0C, 0x0D, 0x1B})


@dataclass(frozen=True)
class BinaryClassification:
    """
    Verdict for one file.

    Attributes:
        is_binary: True when the file must be excluded from counting
        method: Which tier decided ('binary_extension', 'magic:<label>',
            'null_bytes', 'control_bytes', 'empty', 'text_extension', 'content')
        extension: Lower-cased extension of the file
    """

    is_binary: bool
    method: str
    extension: str


class BinaryClassifier:
    """
    Tiered classifier deciding whether a file is binary.

    Reads go through the injected FileSystemInterface; read failures surface
    as FileAccessError.
    """

    def __init__(
        self,
        filesystem: FileSystemInterface,
        magic_prefix_bytes: int = 32,
        sample_bytes: int = 8192,
        nul_threshold: float = 0.0,
        control_threshold: float = 0.10,
        signatures: tuple[MagicSignature, ...] = MAGIC_SIGNATURES,
    ):
        """
        Initialize the classifier.

        Args:
            filesystem: Source of file bytes
            magic_prefix_bytes: Bytes read for signature matching
            sample_bytes: Bytes sampled for the NUL/control heuristic
            nul_threshold: Fraction of NUL bytes above which a file is binary
            control_threshold: Fraction of non-text control bytes above which
                a file is binary
            signatures: Magic-number table
        """
        self._filesystem = filesystem
        self._signatures = signatures
        self._magic_prefix_bytes = max(
            magic_prefix_bytes,
            max((s.offset + len(s.magic) for s in signatures), default=0),
        )
        self._sample_bytes = max(sample_bytes, self._magic_prefix_bytes)
        self._nul_threshold = nul_threshold
        self._control_threshold = control_threshold

    def classify(self, path: Path) -> BinaryClassification:
        """
        Classify a file.

        Raises:
            FileAccessError: If the file cannot be read
        """
        extension = PurePath(path).suffix.lower()

        if extension in BINARY_EXTENSIONS:
            return BinaryClassification(True, "binary_extension", extension)

        sample = self._filesystem.read_bytes(path, 0, self._sample_bytes)
        result = self.classify_bytes(sample, extension)
        if result.is_binary:
            logger.debug(f"Classified {path} as binary ({result.method})")
        return result

    def classify_bytes(self, sample: bytes, extension: str = "") -> BinaryClassification:
        """Run the content tiers on the head of a file."""
        if not sample:
            return BinaryClassification(False, "empty", extension)

        head = sample[:self._magic_prefix_bytes]
        for signature in self._signatures:
            if signature.matches(head):
                return BinaryClassification(True, f"magic:{signature.label}", extension)

        nul_count = sample.count(0)
        if nul_count / len(sample) > self._nul_threshold:
            return BinaryClassification(True, "null_bytes", extension)

        control_count = sum(
            1 for byte in sample
            if (byte < 0x20 and byte not in _TEXT_CONTROL_BYTES) or byte == 0x7F
        )
        if control_count / len(sample) > self._control_threshold:
            return BinaryClassification(True, "control_bytes", extension)

        method = "text_extension" if extension in TEXT_EXTENSIONS else "content"
        return BinaryClassification(False, method, extension)

    def is_binary(self, path: Path) -> bool:
        return self.classify(path).is_binary
