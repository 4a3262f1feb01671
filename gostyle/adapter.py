"""Convert a parser's tree document into a :class:`~gostyle.source.SourceUnit`."""

from __future__ import annotations

import bisect
import logging
import re
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .errors import MalformedInputError
from .source import (
    Argument,
    CallSite,
    CommentBlock,
    DeclKind,
    Declaration,
    Identifier,
    ImportDecl,
    ImportEntry,
    ImportGroup,
    Param,
    Position,
    Receiver,
    Scope,
    ScopeKind,
    SourceUnit,
    Span,
)

logger = logging.getLogger(__name__)

SKIPPED_KEYS = {"kind", "pos", "end", "doc", "comment", "comments"}
SCOPED_STATEMENTS = {
    "IfStmt",
    "ForStmt",
    "RangeStmt",
    "SwitchStmt",
    "TypeSwitchStmt",
    "SelectStmt",
}
CLAUSES = {"CaseClause", "CommClause"}
CALL_CONTEXTS = {"ExprStmt": "expr", "GoStmt": "go", "DeferStmt": "defer", "ReturnStmt": "return"}

_ESCAPE_RE = re.compile(r"\\(U[0-9a-fA-F]{8}|u[0-9a-fA-F]{4}|x[0-9a-fA-F]{2}|[0-7]{3}|.)")
_SIMPLE_ESCAPES = {
    "a": "\a",
    "b": "\b",
    "f": "\f",
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "v": "\v",
    "\\": "\\",
    '"': '"',
    "'": "'",
}


def decode_string_literal(raw: str) -> str:
    """Return the value of a Go string literal given its source text."""

    if raw.startswith("`"):
        return raw[1:-1]

    def replace(match: "re.Match[str]") -> str:
        escape = match.group(1)
        if escape[0] in "Uux":
            return chr(int(escape[1:], 16))
        if len(escape) == 3 and escape.isdigit():
            return chr(int(escape, 8))
        return _SIMPLE_ESCAPES.get(escape, escape)

    return _ESCAPE_RE.sub(replace, raw[1:-1])


def is_exported(name: str) -> bool:
    return bool(name) and name[0].isupper()


def byte_to_char_offsets(text: str) -> List[int]:
    """Map every UTF-8 byte offset of ``text`` to the index of its character.

    The table has one extra entry for the end of the text. Offsets inside a
    multi-byte character map to that character.
    """

    table: List[int] = []
    for index, char in enumerate(text):
        table.extend([index] * len(char.encode("utf-8")))
    table.append(len(text))
    return table


class _ScopeDraft:
    def __init__(self, scope_id: int, kind: ScopeKind, span: Span, parent: Optional[int], depth: int) -> None:
        self.id = scope_id
        self.kind = kind
        self.span = span
        self.parent = parent
        self.depth = depth
        self.children: List[int] = []
        self.declarations: List[int] = []

    def freeze(self) -> Scope:
        return Scope(
            id=self.id,
            kind=self.kind,
            span=self.span,
            parent=self.parent,
            children=tuple(self.children),
            declarations=tuple(self.declarations),
            depth=self.depth,
        )


class SourceModelAdapter:
    """Map one parse tree onto the engine's source model.

    The adapter trusts the parser for structure but checks that every node it
    visits carries ``pos`` and ``end`` positions.
    """

    def __init__(self, path: str, text: str) -> None:
        self.path = path
        self.text = text
        self._char_offsets = None if text.isascii() else byte_to_char_offsets(text)
        self._line_starts = [0] + [index + 1 for index, char in enumerate(text) if char == "\n"]
        self._scopes: List[_ScopeDraft] = []
        self._declarations: List[Declaration] = []
        self._identifiers: List[Identifier] = []
        self._calls: List[CallSite] = []
        self._comments: List[CommentBlock] = []
        self._import_decls: List[ImportDecl] = []
        self._docs_by_end_line: Dict[int, CommentBlock] = {}
        self._lines = text.split("\n")

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------
    def adapt(self, tree: Mapping[str, Any]) -> SourceUnit:
        if not isinstance(tree, Mapping) or tree.get("kind") != "File":
            raise MalformedInputError("tree root must be a File node", self.path)

        file_span = self._file_span()
        self._collect_comments(tree)
        root = self._open_scope(ScopeKind.FILE, file_span, None)

        package = tree.get("package")
        if not isinstance(package, Mapping):
            raise MalformedInputError("File node has no package clause", self.path)
        package_name = str(package.get("name", ""))
        package_span = Span(self._position(tree, "pos"), self._span(package).end)
        package_doc = self._leading_comment(package_span.start.line)
        self._declare(
            Declaration(
                name=package_name,
                kind=DeclKind.PACKAGE,
                exported=False,
                scope_id=root,
                span=package_span,
                name_span=self._span(package),
                doc=package_doc,
            )
        )

        for decl in tree.get("decls") or []:
            if not isinstance(decl, Mapping):
                continue
            kind = decl.get("kind")
            if kind == "GenDecl":
                self._top_level_gen_decl(decl, root)
            elif kind == "FuncDecl":
                self._func_decl(decl, root)
            else:
                self._walk(decl, root)

        unit = SourceUnit(
            path=self.path,
            text=self.text,
            package_name=package_name,
            package_span=package_span,
            package_doc=package_doc,
            declarations=tuple(self._declarations),
            scopes=tuple(scope.freeze() for scope in self._scopes),
            comments=tuple(self._comments),
            import_decls=tuple(self._import_decls),
            identifiers=tuple(sorted(self._identifiers, key=lambda ident: ident.span.start.offset)),
            calls=tuple(self._annotate_calls()),
        )
        logger.debug(
            "adapted %s: %d declarations, %d scopes, %d calls",
            self.path,
            len(unit.declarations),
            len(unit.scopes),
            len(unit.calls),
        )
        return unit

    # ------------------------------------------------------------------
    # Positions
    # ------------------------------------------------------------------
    def _char_offset(self, byte_offset: int) -> int:
        if self._char_offsets is None or byte_offset < 0:
            return byte_offset
        if byte_offset >= len(self._char_offsets):
            return len(self.text) + byte_offset - len(self._char_offsets) + 1
        return self._char_offsets[byte_offset]

    def _position(self, node: Mapping[str, Any], key: str) -> Position:
        raw = node.get(key)
        if not isinstance(raw, Mapping):
            raise MalformedInputError(f"{node.get('kind', 'node')} node has no '{key}' position", self.path)
        try:
            line = int(raw["line"])
            if int(raw["column"]) < 1:
                raise ValueError(raw["column"])
            offset = self._char_offset(int(raw["offset"]))
        except (KeyError, TypeError, ValueError):
            raise MalformedInputError(
                f"{node.get('kind', 'node')} node has an incomplete '{key}' position", self.path
            ) from None
        if offset < 0 or offset > len(self.text):
            raise MalformedInputError(f"{node.get('kind', 'node')} offset {offset} is outside the source", self.path)
        # Columns are recomputed in characters; the parser reports bytes.
        position = self._position_at(offset)
        if position.line != line:
            raise MalformedInputError(
                f"{node.get('kind', 'node')} line {line} does not match offset {offset}", self.path
            )
        return position

    def _span(self, node: Mapping[str, Any]) -> Span:
        return Span(self._position(node, "pos"), self._position(node, "end"))

    def _position_at(self, offset: int) -> Position:
        line_index = bisect.bisect_right(self._line_starts, offset) - 1
        return Position(line_index + 1, offset - self._line_starts[line_index] + 1, offset)

    def _file_span(self) -> Span:
        return Span(Position(1, 1, 0), self._position_at(len(self.text)))

    def _source(self, node: Mapping[str, Any]) -> str:
        span = self._span(node)
        return self.text[span.start.offset:span.end.offset]

    def _line_is_blank(self, line: int) -> bool:
        return 1 <= line <= len(self._lines) and not self._lines[line - 1].strip()

    # ------------------------------------------------------------------
    # Comments
    # ------------------------------------------------------------------
    def _collect_comments(self, tree: Mapping[str, Any]) -> None:
        groups: Dict[int, Mapping[str, Any]] = {}
        candidates = list(tree.get("comments") or [])
        candidates.extend(self._embedded_comment_groups(tree))
        for group in candidates:
            if isinstance(group, Mapping) and group.get("list"):
                groups.setdefault(self._position(group, "pos").offset, group)
        for offset in sorted(groups):
            block = self._comment_block(groups[offset])
            self._comments.append(block)
            start_line_text = self._lines[block.span.start.line - 1]
            if not start_line_text[: block.span.start.column - 1].strip():
                self._docs_by_end_line[block.span.end.line] = block

    def _embedded_comment_groups(self, node: Any) -> Iterable[Mapping[str, Any]]:
        if isinstance(node, Mapping):
            for key in ("doc", "comment"):
                if isinstance(node.get(key), Mapping):
                    yield node[key]
            for key, value in node.items():
                if key not in SKIPPED_KEYS:
                    yield from self._embedded_comment_groups(value)
        elif isinstance(node, list):
            for item in node:
                yield from self._embedded_comment_groups(item)

    def _comment_block(self, group: Mapping[str, Any]) -> CommentBlock:
        entries = [entry for entry in group.get("list") or [] if isinstance(entry, Mapping)]
        lines = tuple(str(entry.get("text", "")) for entry in entries)
        return CommentBlock(span=self._span(group), lines=lines)

    def _leading_comment(self, line: int) -> Optional[CommentBlock]:
        return self._docs_by_end_line.get(line - 1)

    def _detached_comment(self, line: int) -> Optional[CommentBlock]:
        if self._line_is_blank(line - 1):
            return self._docs_by_end_line.get(line - 2)
        return None

    def _trailing_comment(self, line: int, after_offset: int) -> Optional[CommentBlock]:
        for block in self._comments:
            if block.span.start.line == line and block.span.start.offset >= after_offset:
                return block
        return None

    # ------------------------------------------------------------------
    # Scopes and declarations
    # ------------------------------------------------------------------
    def _open_scope(self, kind: ScopeKind, span: Span, parent: Optional[int], deepen: bool = True) -> int:
        if parent is None or kind is ScopeKind.FUNCTION:
            depth = 0
        else:
            depth = self._scopes[parent].depth + (1 if deepen else 0)
        scope_id = len(self._scopes)
        self._scopes.append(_ScopeDraft(scope_id, kind, span, parent, depth))
        if parent is not None:
            self._scopes[parent].children.append(scope_id)
        return scope_id

    def _declare(self, declaration: Declaration) -> None:
        index = len(self._declarations)
        self._declarations.append(declaration)
        self._scopes[declaration.scope_id].declarations.append(index)

    def _top_level_gen_decl(self, decl: Mapping[str, Any], root: int) -> None:
        token = decl.get("tok")
        if token == "import":
            self._import_decl(decl, root)
            return
        decl_span = self._span(decl)
        specs = [spec for spec in decl.get("specs") or [] if isinstance(spec, Mapping)]
        grouped = self._is_parenthesized(decl)
        group_doc = self._leading_comment(decl_span.start.line) if grouped else None
        for spec in specs:
            spec_span = self._span(spec)
            anchor = spec_span if grouped else decl_span
            doc = self._leading_comment(anchor.start.line)
            detached = None if doc else self._detached_comment(anchor.start.line)
            if token == "type":
                name_node = spec.get("name") or {}
                self._record_ident(name_node)
                self._walk(spec.get("type"), root)
                self._declare(
                    Declaration(
                        name=str(name_node.get("name", "")),
                        kind=DeclKind.TYPE,
                        exported=is_exported(str(name_node.get("name", ""))),
                        scope_id=root,
                        span=anchor,
                        name_span=self._span(name_node),
                        doc=doc,
                        detached_doc=detached,
                        group_doc=group_doc,
                    )
                )
            else:
                self._value_spec(spec, token, root, anchor, doc, detached, group_doc)

    def _value_spec(
        self,
        spec: Mapping[str, Any],
        token: Any,
        scope_id: int,
        anchor: Span,
        doc: Optional[CommentBlock] = None,
        detached: Optional[CommentBlock] = None,
        group_doc: Optional[CommentBlock] = None,
    ) -> None:
        kind = DeclKind.CONSTANT if token == "const" else DeclKind.VARIABLE
        names = [name for name in spec.get("names") or [] if isinstance(name, Mapping)]
        values = [value for value in spec.get("values") or [] if isinstance(value, Mapping)]
        self._walk(spec.get("type"), scope_id)
        calls_before = len(self._calls)
        for value in values:
            self._walk(value, scope_id, context="value")
        value_calls = {call.span.start.offset: call for call in self._calls[calls_before:]}
        for index, name_node in enumerate(names):
            name = str(name_node.get("name", ""))
            self._record_ident(name_node)
            if name == "_":
                continue
            init_call = None
            if len(values) == len(names) and values[index].get("kind") == "CallExpr":
                init_call = value_calls.get(self._position(values[index], "pos").offset)
            name_span = self._span(name_node)
            # Later names in `var A, B T` start their own span at the name.
            span = anchor if index == 0 else Span(name_span.start, anchor.end)
            self._declare(
                Declaration(
                    name=name,
                    kind=kind,
                    exported=scope_id == 0 and is_exported(name),
                    scope_id=scope_id,
                    span=span,
                    name_span=name_span,
                    doc=doc,
                    detached_doc=detached,
                    group_doc=group_doc,
                    init_call=init_call,
                )
            )

    def _is_parenthesized(self, decl: Mapping[str, Any]) -> bool:
        if "lparen" in decl:
            return bool(decl.get("lparen"))
        span = self._span(decl)
        head = self.text[span.start.offset:span.end.offset]
        keyword = str(decl.get("tok", ""))
        return head[len(keyword):].lstrip().startswith("(")

    # ------------------------------------------------------------------
    # Imports
    # ------------------------------------------------------------------
    def _import_decl(self, decl: Mapping[str, Any], root: int) -> None:
        decl_span = self._span(decl)
        parenthesized = self._is_parenthesized(decl)
        groups: List[List[ImportEntry]] = []
        previous_end_line: Optional[int] = None
        for spec in decl.get("specs") or []:
            if not isinstance(spec, Mapping):
                continue
            entry = self._import_entry(spec)
            starts_group = previous_end_line is None or any(
                self._line_is_blank(line) for line in range(previous_end_line + 1, entry.span.start.line)
            )
            if starts_group:
                groups.append([])
            groups[-1].append(entry)
            previous_end_line = entry.span.end.line
            self._declare(
                Declaration(
                    name=entry.alias or entry.default_name,
                    kind=DeclKind.IMPORT,
                    exported=False,
                    scope_id=root,
                    span=entry.span,
                    name_span=entry.alias_span or entry.path_span,
                )
            )

        body_span = None
        if parenthesized:
            open_paren = self.text.find("(", decl_span.start.offset, decl_span.end.offset)
            close_paren = self.text.rfind(")", decl_span.start.offset, decl_span.end.offset)
            if 0 <= open_paren < close_paren:
                body_span = Span(self._position_at(open_paren + 1), self._position_at(close_paren))
        self._import_decls.append(
            ImportDecl(
                span=decl_span,
                parenthesized=parenthesized,
                groups=tuple(ImportGroup(tuple(group)) for group in groups),
                body_span=body_span,
            )
        )

    def _import_entry(self, spec: Mapping[str, Any]) -> ImportEntry:
        path_node = spec.get("path")
        if not isinstance(path_node, Mapping):
            raise MalformedInputError("ImportSpec has no path", self.path)
        alias_node = spec.get("name") if isinstance(spec.get("name"), Mapping) else None
        span = self._span(spec)
        trailing = self._trailing_comment(span.end.line, span.end.offset)
        return ImportEntry(
            path=decode_string_literal(str(path_node.get("value", '""'))),
            alias=str(alias_node.get("name")) if alias_node else None,
            span=span,
            path_span=self._span(path_node),
            alias_span=self._span(alias_node) if alias_node else None,
            comment=trailing.text if trailing else None,
        )

    # ------------------------------------------------------------------
    # Functions
    # ------------------------------------------------------------------
    def _func_decl(self, decl: Mapping[str, Any], root: int) -> None:
        span = self._span(decl)
        name_node = decl.get("name") or {}
        name = str(name_node.get("name", ""))
        self._record_ident(name_node)
        func_type = decl.get("type") or {}
        receiver = self._receiver(decl.get("recv"))
        scope_id = self._open_scope(ScopeKind.FUNCTION, span, root)
        params = self._declare_params(func_type.get("params"), scope_id)
        results = self._field_types(func_type.get("results"), scope_id)
        doc = self._leading_comment(span.start.line)
        self._declare(
            Declaration(
                name=name,
                kind=DeclKind.METHOD if receiver else DeclKind.FUNCTION,
                exported=is_exported(name),
                scope_id=root,
                span=span,
                name_span=self._span(name_node),
                doc=doc,
                detached_doc=None if doc else self._detached_comment(span.start.line),
                receiver=receiver,
                params=params,
                results=results,
                body_scope_id=scope_id,
            )
        )
        body = decl.get("body")
        if isinstance(body, Mapping):
            self._walk_block_contents(body, scope_id)

    def _receiver(self, field_list: Any) -> Optional[Receiver]:
        fields = self._fields(field_list)
        if not fields:
            return None
        field = fields[0]
        names = [name for name in field.get("names") or [] if isinstance(name, Mapping)]
        type_node = field.get("type") or {}
        pointer = type_node.get("kind") == "StarExpr"
        base = type_node.get("x") if pointer else type_node
        while isinstance(base, Mapping) and base.get("kind") in ("IndexExpr", "IndexListExpr", "ParenExpr"):
            base = base.get("x")
        if isinstance(base, Mapping) and base.get("kind") == "Ident":
            type_name = str(base.get("name", ""))
            self._record_ident(base)
        else:
            type_name = self._source(type_node)
        for name_node in names:
            self._record_ident(name_node)
        return Receiver(
            name=str(names[0].get("name")) if names else None,
            type_name=type_name,
            pointer=pointer,
            span=self._span(field),
        )

    def _fields(self, field_list: Any) -> List[Mapping[str, Any]]:
        if not isinstance(field_list, Mapping):
            return []
        return [field for field in field_list.get("list") or [] if isinstance(field, Mapping)]

    def _declare_params(self, field_list: Any, scope_id: int) -> Tuple[Param, ...]:
        params: List[Param] = []
        for field in self._fields(field_list):
            type_text = self._source(field["type"]) if isinstance(field.get("type"), Mapping) else ""
            self._walk(field.get("type"), scope_id)
            names = [name for name in field.get("names") or [] if isinstance(name, Mapping)]
            if not names:
                params.append(Param(name=None, type_text=type_text, span=self._span(field)))
                continue
            for name_node in names:
                name = str(name_node.get("name", ""))
                name_span = self._span(name_node)
                self._record_ident(name_node)
                params.append(Param(name=name, type_text=type_text, span=name_span))
                if name != "_":
                    self._declare(
                        Declaration(
                            name=name,
                            kind=DeclKind.VARIABLE,
                            exported=False,
                            scope_id=scope_id,
                            span=name_span,
                            name_span=name_span,
                            is_parameter=True,
                        )
                    )
        return tuple(params)

    def _field_types(self, field_list: Any, scope_id: int) -> Tuple[str, ...]:
        results: List[str] = []
        for field in self._fields(field_list):
            type_text = self._source(field["type"]) if isinstance(field.get("type"), Mapping) else ""
            self._walk(field.get("type"), scope_id)
            names = [name for name in field.get("names") or [] if isinstance(name, Mapping)]
            for name_node in names:
                self._record_ident(name_node)
            results.extend([type_text] * max(1, len(names)))
        return tuple(results)

    # ------------------------------------------------------------------
    # Statement and expression walking
    # ------------------------------------------------------------------
    def _walk_block_contents(self, block: Mapping[str, Any], scope_id: int) -> None:
        self._span(block)
        for statement in block.get("list") or []:
            self._walk(statement, scope_id)

    def _walk(self, node: Any, scope_id: int, context: str = "other") -> None:
        if isinstance(node, list):
            for item in node:
                self._walk(item, scope_id, context)
            return
        if not isinstance(node, Mapping):
            return
        kind = node.get("kind")
        if kind is None:
            return
        span = self._span(node)

        if kind == "Ident":
            self._record_ident(node)
        elif kind == "SelectorExpr":
            self._walk(node.get("x"), scope_id, context)
            self._record_ident(node.get("sel"), selector=True)
        elif kind == "CallExpr":
            self._call(node, scope_id, context)
        elif kind == "BlockStmt":
            inner = self._open_scope(ScopeKind.BLOCK, span, scope_id)
            self._walk_block_contents(node, inner)
        elif kind == "FuncLit":
            inner = self._open_scope(ScopeKind.FUNCTION, span, scope_id)
            func_type = node.get("type") or {}
            self._declare_params(func_type.get("params"), inner)
            self._field_types(func_type.get("results"), inner)
            if isinstance(node.get("body"), Mapping):
                self._walk_block_contents(node["body"], inner)
        elif kind == "IfStmt":
            inner = self._open_scope(ScopeKind.BLOCK, span, scope_id)
            self._walk(node.get("init"), inner)
            self._walk(node.get("cond"), inner)
            if isinstance(node.get("body"), Mapping):
                self._walk_block_contents(node["body"], inner)
            alternative = node.get("else")
            if isinstance(alternative, Mapping) and alternative.get("kind") == "IfStmt":
                self._walk(alternative, scope_id)
            elif isinstance(alternative, Mapping) and alternative.get("kind") == "BlockStmt":
                sibling = self._open_scope(ScopeKind.BLOCK, self._span(alternative), scope_id)
                self._walk_block_contents(alternative, sibling)
        elif kind in SCOPED_STATEMENTS:
            inner = self._open_scope(ScopeKind.BLOCK, span, scope_id)
            if kind == "RangeStmt" and node.get("tok") == ":=":
                self._define([node.get("key"), node.get("value")], inner)
            for key, value in node.items():
                if key in SKIPPED_KEYS:
                    continue
                if key == "body" and isinstance(value, Mapping):
                    self._walk_block_contents(value, inner)
                else:
                    self._walk(value, inner)
        elif kind in CLAUSES:
            inner = self._open_scope(ScopeKind.BLOCK, span, scope_id, deepen=False)
            self._walk(node.get("list"), inner)
            self._walk(node.get("comm"), inner)
            self._walk(node.get("body"), inner)
        elif kind == "AssignStmt":
            self._assign(node, scope_id)
        elif kind == "DeclStmt":
            decl = node.get("decl") or {}
            for spec in decl.get("specs") or []:
                if not isinstance(spec, Mapping):
                    continue
                if decl.get("tok") in ("var", "const"):
                    self._value_spec(spec, decl.get("tok"), scope_id, self._span(spec))
                else:
                    self._walk(spec, scope_id)
        elif kind in CALL_CONTEXTS:
            statement_context = CALL_CONTEXTS[kind]
            for key, value in node.items():
                if key not in SKIPPED_KEYS:
                    self._walk(value, scope_id, statement_context)
        else:
            for key, value in node.items():
                if key not in SKIPPED_KEYS:
                    self._walk(value, scope_id)

    def _define(self, targets: Sequence[Any], scope_id: int) -> None:
        for target in targets:
            if not isinstance(target, Mapping) or target.get("kind") != "Ident":
                continue
            name = str(target.get("name", ""))
            if name == "_" or self._already_declared(name, scope_id):
                continue
            name_span = self._span(target)
            self._declare(
                Declaration(
                    name=name,
                    kind=DeclKind.VARIABLE,
                    exported=False,
                    scope_id=scope_id,
                    span=name_span,
                    name_span=name_span,
                )
            )

    def _already_declared(self, name: str, scope_id: int) -> bool:
        return any(self._declarations[index].name == name for index in self._scopes[scope_id].declarations)

    def _assign(self, node: Mapping[str, Any], scope_id: int) -> None:
        lhs = [item for item in node.get("lhs") or [] if isinstance(item, Mapping)]
        rhs = [item for item in node.get("rhs") or [] if isinstance(item, Mapping)]
        token = node.get("tok", "=")
        context = "define" if token == ":=" else "assign"
        if token == ":=":
            self._define(lhs, scope_id)
        for target in lhs:
            self._walk(target, scope_id)
        if len(rhs) == 1 and rhs[0].get("kind") == "CallExpr":
            self._call(rhs[0], scope_id, context, targets=lhs)
        elif len(rhs) == len(lhs):
            for target, value in zip(lhs, rhs):
                if value.get("kind") == "CallExpr":
                    self._call(value, scope_id, context, targets=[target])
                else:
                    self._walk(value, scope_id)
        else:
            self._walk(rhs, scope_id)

    def _call(
        self,
        node: Mapping[str, Any],
        scope_id: int,
        context: str,
        targets: Sequence[Mapping[str, Any]] = (),
    ) -> None:
        fun = node.get("fun") or {}
        self._walk(fun, scope_id)
        args: List[Argument] = []
        for arg in node.get("args") or []:
            if not isinstance(arg, Mapping):
                continue
            args.append(self._argument(arg))
            self._walk(arg, scope_id)
        results = node.get("results")
        self._calls.append(
            CallSite(
                callee=self._callee_name(fun),
                args=tuple(args),
                span=self._span(node),
                context=context,
                scope_id=scope_id,
                targets=tuple(self._target_name(target) for target in targets),
                target_spans=tuple(self._span(target) for target in targets),
                results=tuple(str(item) for item in results) if isinstance(results, list) else None,
            )
        )

    def _callee_name(self, fun: Mapping[str, Any]) -> str:
        kind = fun.get("kind")
        if kind == "Ident":
            return str(fun.get("name", ""))
        if kind == "SelectorExpr":
            sel = fun.get("sel") or {}
            return f"{self._callee_name(fun.get('x') or {})}.{sel.get('name', '')}"
        if kind == "ParenExpr":
            return self._callee_name(fun.get("x") or {})
        if "pos" in fun:
            return self._source(fun)
        return ""

    def _target_name(self, target: Mapping[str, Any]) -> str:
        if target.get("kind") == "Ident":
            return str(target.get("name", ""))
        return self._source(target)

    def _argument(self, arg: Mapping[str, Any]) -> Argument:
        text = self._source(arg)
        span = self._span(arg)
        if arg.get("kind") == "BasicLit" and text[:1] in ('"', "`"):
            return Argument(kind="string", text=text, span=span, value=decode_string_literal(text))
        if arg.get("kind") == "Ident":
            return Argument(kind="ident", text=text, span=span)
        return Argument(kind="other", text=text, span=span)

    def _record_ident(self, node: Any, selector: bool = False) -> None:
        if isinstance(node, Mapping) and node.get("kind") == "Ident":
            name = str(node.get("name", ""))
            self._identifiers.append(Identifier(name=name, span=self._span(node), selector=selector))

    def _annotate_calls(self) -> Iterable[CallSite]:
        for call in self._calls:
            line = call.span.start.line
            comment = self._trailing_comment(call.span.end.line, call.span.end.offset)
            if comment is None:
                comment = self._docs_by_end_line.get(line - 1)
            if comment is None:
                yield call
                continue
            yield CallSite(
                callee=call.callee,
                args=call.args,
                span=call.span,
                context=call.context,
                scope_id=call.scope_id,
                targets=call.targets,
                target_spans=call.target_spans,
                results=call.results,
                annotation=comment.text,
            )


def build_source_unit(path: str, text: str, tree: Mapping[str, Any]) -> SourceUnit:
    """Adapt ``tree`` (parsed from ``text``) into a SourceUnit."""

    return SourceModelAdapter(path, text).adapt(tree)
