"""Shared data structures for rolecheck rules."""

from __future__ import annotations

import dataclasses
import functools
import typing as typ
from pathlib import PurePosixPath

from .errors import ParseError

if typ.TYPE_CHECKING:
    from pathlib import Path

    from .nodes import Document

Severity = typ.Literal["error", "warning"]
Category = typ.Literal[
    "defaults", "vars", "tasks", "handlers", "templates", "meta", "other"
]

SEVERITY_RANK: dict[str, int] = {"warning": 1, "error": 2}
CATEGORIES: tuple[Category, ...] = (
    "defaults",
    "vars",
    "tasks",
    "handlers",
    "templates",
    "meta",
)
STRUCTURED_SUFFIXES = frozenset({".yml", ".yaml"})

# Pseudo-path used by findings that concern the role as a whole.
REPOSITORY_FILE = "."


@dataclasses.dataclass(frozen=True)
class Span:
    """Source range inside one file; lines and columns are 1-based."""

    file: str
    line: int = 1
    column: int = 1
    end_line: int | None = None
    end_column: int | None = None

    def __post_init__(self) -> None:
        """Default the end to the start and reject empty positions."""
        if self.line < 1 or self.column < 1:
            message = f"span positions are 1-based, got {self.line}:{self.column}"
            raise ValueError(message)
        if self.end_line is None:
            object.__setattr__(self, "end_line", self.line)
        if self.end_column is None:
            object.__setattr__(self, "end_column", self.column)

    @property
    def start(self) -> tuple[int, int]:
        """Return the (line, column) pair where the span begins."""
        return (self.line, self.column)


@dataclasses.dataclass(frozen=True)
class RuleDefinition:
    """Metadata describing a rolecheck rule."""

    rule_id: str
    name: str
    short_description: str
    long_description: str
    level: Severity
    help_uri: str | None = None


@dataclasses.dataclass(frozen=True)
class Finding:
    """Single convention violation emitted by a rule."""

    rule_id: str
    severity: Severity
    span: Span
    message: str
    properties: dict[str, typ.Any] | None = dataclasses.field(
        default=None, compare=False, hash=False
    )

    @property
    def file(self) -> str:
        """Return the repository-relative path of the finding."""
        return self.span.file

    @property
    def line(self) -> int:
        """Return the 1-based start line."""
        return self.span.line

    @property
    def column(self) -> int:
        """Return the 1-based start column."""
        return self.span.column

    @property
    def identity(self) -> tuple[str, str, int, int, int, int, str]:
        """Key used to drop exact duplicates."""
        return (
            self.rule_id,
            self.span.file,
            self.span.line,
            self.span.column,
            typ.cast("int", self.span.end_line),
            typ.cast("int", self.span.end_column),
            self.message,
        )

    @property
    def sort_key(self) -> tuple[str, int, int, str, str]:
        """Order findings by file, line, column and rule id."""
        return (
            self.span.file,
            self.span.line,
            self.span.column,
            self.rule_id,
            self.message,
        )


@dataclasses.dataclass(frozen=True)
class ParseOutcome:
    """Result of parsing one file: a document or the error that prevented it."""

    document: Document | None
    error: ParseError | None = None


@dataclasses.dataclass(frozen=True)
class SourceFile:
    """One collected file with its raw bytes and lazily parsed document."""

    path: Path
    relpath: str
    category: Category
    content: bytes = dataclasses.field(repr=False)
    parse_failed: bool = False

    @property
    def is_structured(self) -> bool:
        """Return True for YAML files."""
        return PurePosixPath(self.relpath).suffix.lower() in STRUCTURED_SUFFIXES

    @property
    def name(self) -> str:
        """Return the file name without directories."""
        return PurePosixPath(self.relpath).name

    @functools.cached_property
    def text(self) -> str:
        """Decoded content; undecodable bytes are replaced."""
        return self.content.decode("utf-8", errors="replace")

    @functools.cached_property
    def lines(self) -> tuple[str, ...]:
        """Return the text split into lines without terminators."""
        return tuple(self.text.splitlines())

    @functools.cached_property
    def outcome(self) -> ParseOutcome:
        """Parse the file on first access and cache the result."""
        if self.parse_failed or not self.is_structured:
            return ParseOutcome(document=None)
        from .parser import decode_source, parse_document

        try:
            return ParseOutcome(
                document=parse_document(decode_source(self), self.relpath)
            )
        except ParseError as error:
            return ParseOutcome(document=None, error=error)

    @property
    def document(self) -> Document | None:
        """Return the parsed document, or None when unavailable."""
        return self.outcome.document

    def line_text(self, line: int) -> str:
        """Return the text of a 1-based line, or an empty string."""
        if 1 <= line <= len(self.lines):
            return self.lines[line - 1]
        return ""


@dataclasses.dataclass(frozen=True)
class UnreadableFile:
    """A collected path whose bytes could not be read."""

    relpath: str
    reason: str


@dataclasses.dataclass(frozen=True)
class RoleRepository:
    """Immutable snapshot of a role directory handed to every rule."""

    root: Path
    role_name: str
    files: tuple[SourceFile, ...]
    directories: tuple[str, ...] = ()
    unreadable: tuple[UnreadableFile, ...] = ()

    @property
    def prefix(self) -> str:
        """Return the prefix required on public role variables."""
        return f"{self.role_name}_"

    @property
    def internal_prefix(self) -> str:
        """Return the prefix required on internal role variables."""
        return f"__{self.role_name}_"

    @functools.cached_property
    def _index(self) -> dict[str, SourceFile]:
        return {source.relpath: source for source in self.files}

    def get(self, relpath: str) -> SourceFile | None:
        """Look up a file by its repository-relative path."""
        return self._index.get(relpath)

    def has(self, relpath: str) -> bool:
        """Return True when the relative path exists in the role."""
        if relpath in self._index:
            return True
        return any(entry.relpath == relpath for entry in self.unreadable)

    def files_in(self, *categories: Category) -> tuple[SourceFile, ...]:
        """Return the files of the given categories in path order."""
        wanted = set(categories)
        return tuple(source for source in self.files if source.category in wanted)

    def documents_in(
        self, *categories: Category
    ) -> typ.Iterator[tuple[SourceFile, Document]]:
        """Yield (file, document) pairs for parsed files of the categories."""
        for source in self.files_in(*categories):
            document = source.document
            if document is not None:
                yield source, document

    def with_files(self, files: typ.Iterable[SourceFile]) -> RoleRepository:
        """Return a new snapshot holding the given files in path order."""
        ordered = tuple(sorted(files, key=lambda source: source.relpath))
        return dataclasses.replace(self, files=ordered)


RuleHandler = typ.Callable[[RoleRepository], typ.Iterable[Finding]]
