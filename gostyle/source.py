"""In-memory source model shared by every evaluator.

A :class:`SourceUnit` is built once per file by :mod:`gostyle.adapter` and is
never mutated afterwards. Evaluators only read from it.
"""

from __future__ import annotations

import bisect
from dataclasses import dataclass
from enum import Enum
from functools import cached_property
from typing import Dict, Iterator, List, Optional, Tuple


@dataclass(frozen=True, order=True)
class Position:
    line: int
    column: int
    offset: int

    def to_dict(self) -> Dict[str, int]:
        return {"line": self.line, "column": self.column, "offset": self.offset}


@dataclass(frozen=True, order=True)
class Span:
    """Half-open text range ``[start.offset, end.offset)``."""

    start: Position
    end: Position

    @property
    def line_count(self) -> int:
        return self.end.line - self.start.line + 1

    def overlaps(self, other: "Span") -> bool:
        return self.start.offset < other.end.offset and other.start.offset < self.end.offset

    def contains(self, other: "Span") -> bool:
        return self.start.offset <= other.start.offset and other.end.offset <= self.end.offset

    def to_dict(self) -> Dict[str, Dict[str, int]]:
        return {"start": self.start.to_dict(), "end": self.end.to_dict()}


class DeclKind(str, Enum):
    PACKAGE = "package"
    IMPORT = "import"
    TYPE = "type"
    FUNCTION = "function"
    METHOD = "method"
    CONSTANT = "constant"
    VARIABLE = "variable"


class ScopeKind(str, Enum):
    FILE = "file"
    FUNCTION = "function"
    BLOCK = "block"


@dataclass(frozen=True)
class CommentBlock:
    """A run of adjacent comments, as the parser grouped them."""

    span: Span
    lines: Tuple[str, ...]

    @property
    def text(self) -> str:
        """Comment text with the ``//`` and ``/* */`` markers removed."""

        parts: List[str] = []
        for raw in self.lines:
            if raw.startswith("//"):
                parts.append(raw[2:].strip())
            elif raw.startswith("/*"):
                body = raw[2:-2] if raw.endswith("*/") else raw[2:]
                parts.extend(line.strip() for line in body.splitlines())
            else:
                parts.append(raw.strip())
        return "\n".join(parts).strip()


@dataclass(frozen=True)
class Receiver:
    name: Optional[str]
    type_name: str
    pointer: bool
    span: Span


@dataclass(frozen=True)
class Param:
    name: Optional[str]
    type_text: str
    span: Span


@dataclass(frozen=True)
class Argument:
    """One call argument.

    ``kind`` is ``string`` for interpreted or raw string literals (``value``
    holds the decoded text), ``ident`` for bare identifiers and ``other``
    for everything else.
    """

    kind: str
    text: str
    span: Span
    value: Optional[str] = None


@dataclass(frozen=True)
class CallSite:
    callee: str
    args: Tuple[Argument, ...]
    span: Span
    context: str
    scope_id: int
    targets: Tuple[str, ...] = ()
    target_spans: Tuple[Span, ...] = ()
    results: Optional[Tuple[str, ...]] = None
    annotation: Optional[str] = None

    @property
    def name(self) -> str:
        return self.callee.rsplit(".", 1)[-1]


@dataclass(frozen=True)
class Identifier:
    name: str
    span: Span
    selector: bool = False


@dataclass(frozen=True)
class Declaration:
    name: str
    kind: DeclKind
    exported: bool
    scope_id: int
    span: Span
    name_span: Span
    doc: Optional[CommentBlock] = None
    detached_doc: Optional[CommentBlock] = None
    group_doc: Optional[CommentBlock] = None
    receiver: Optional[Receiver] = None
    params: Tuple[Param, ...] = ()
    results: Tuple[str, ...] = ()
    is_parameter: bool = False
    init_call: Optional[CallSite] = None
    body_scope_id: Optional[int] = None


@dataclass(frozen=True)
class Scope:
    id: int
    kind: ScopeKind
    span: Span
    parent: Optional[int]
    children: Tuple[int, ...] = ()
    declarations: Tuple[int, ...] = ()
    depth: int = 0

    @property
    def line_count(self) -> int:
        return self.span.line_count


@dataclass(frozen=True)
class ImportEntry:
    path: str
    alias: Optional[str]
    span: Span
    path_span: Span
    alias_span: Optional[Span] = None
    comment: Optional[str] = None

    @property
    def default_name(self) -> str:
        return self.path.rstrip("/").rsplit("/", 1)[-1]


@dataclass(frozen=True)
class ImportGroup:
    """Import entries separated from their neighbours by blank lines."""

    entries: Tuple[ImportEntry, ...]

    @property
    def span(self) -> Span:
        return Span(self.entries[0].span.start, self.entries[-1].span.end)


@dataclass(frozen=True)
class ImportDecl:
    span: Span
    parenthesized: bool
    groups: Tuple[ImportGroup, ...]
    body_span: Optional[Span] = None


@dataclass(frozen=True)
class SourceUnit:
    """One Go source file in normalized form."""

    path: str
    text: str
    package_name: str
    package_span: Span
    package_doc: Optional[CommentBlock]
    declarations: Tuple[Declaration, ...]
    scopes: Tuple[Scope, ...]
    comments: Tuple[CommentBlock, ...] = ()
    import_decls: Tuple[ImportDecl, ...] = ()
    identifiers: Tuple[Identifier, ...] = ()
    calls: Tuple[CallSite, ...] = ()

    @cached_property
    def lines(self) -> Tuple[str, ...]:
        return tuple(self.text.split("\n"))

    @property
    def root(self) -> Scope:
        return self.scopes[0]

    @property
    def is_test_file(self) -> bool:
        return self.path.endswith("_test.go")

    @property
    def import_groups(self) -> Tuple[ImportGroup, ...]:
        return tuple(group for decl in self.import_decls for group in decl.groups)

    def line_text(self, line: int) -> str:
        if 1 <= line <= len(self.lines):
            return self.lines[line - 1]
        return ""

    def text_at(self, span: Span) -> str:
        return self.text[span.start.offset:span.end.offset]

    def contains_span(self, span: Span) -> bool:
        return 0 <= span.start.offset <= span.end.offset <= len(self.text)

    def scope(self, scope_id: int) -> Scope:
        return self.scopes[scope_id]

    def enclosing_function(self, scope_id: int) -> Optional[Scope]:
        current: Optional[int] = scope_id
        while current is not None:
            scope = self.scopes[current]
            if scope.kind is ScopeKind.FUNCTION:
                return scope
            current = scope.parent
        return None

    def exported_declarations(self) -> Iterator[Declaration]:
        for decl in self.declarations:
            if decl.exported and decl.scope_id == 0 and decl.kind not in (DeclKind.PACKAGE, DeclKind.IMPORT):
                yield decl

    def functions(self) -> Iterator[Declaration]:
        for decl in self.declarations:
            if decl.kind in (DeclKind.FUNCTION, DeclKind.METHOD):
                yield decl

    def find_declarations(self, name: str) -> List[Declaration]:
        return [decl for decl in self.declarations if decl.name == name]

    def occurrences(self, name: str) -> List[Identifier]:
        return [ident for ident in self.identifiers if ident.name == name]

    @cached_property
    def line_starts(self) -> Tuple[int, ...]:
        starts = [0]
        for index, char in enumerate(self.text):
            if char == "\n":
                starts.append(index + 1)
        return tuple(starts)

    def position_at(self, offset: int) -> Position:
        """Return the line/column position of a text index."""

        line_index = bisect.bisect_right(self.line_starts, offset) - 1
        return Position(line_index + 1, offset - self.line_starts[line_index] + 1, offset)

    def span_of(self, start: int, end: int) -> Span:
        return Span(self.position_at(start), self.position_at(end))
