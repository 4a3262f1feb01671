"""Build go/ast-shaped tree documents from small Go snippets.

Only the slice of Go the test-suite uses is understood: package clauses,
import/const/var/type declarations, functions and methods, the common
statements and simple expressions. Struct and interface bodies are skipped.
Positions are computed from the snippet, so they are always exact.
"""

from __future__ import annotations

import re
from typing import Any, Dict, List, Optional

from gostyle.adapter import build_source_unit
from gostyle.source import SourceUnit

KEYWORDS = {
    "break", "case", "chan", "const", "continue", "default", "defer", "else", "fallthrough",
    "for", "func", "go", "goto", "if", "import", "interface", "map", "package", "range",
    "return", "select", "struct", "switch", "type", "var",
}
TERMINATING_KEYWORDS = {"return", "break", "continue", "fallthrough"}
STATEMENT_ENDINGS = {")", "]", "}", "++", "--"}
ASSIGN_OPS = {"=", ":=", "+=", "-=", "*=", "/="}
BINARY_OPS = {"||", "&&", "==", "!=", "<", "<=", ">", ">=", "+", "-", "|", "^", "*", "/", "%", "<<", ">>", "&^", "&"}
TYPE_STARTS = {"*", "[", "map", "chan", "func", "struct", "interface", "<-", "(", "..."}

TOKEN_PATTERN = re.compile(
    r"""
      (?P<space>[ \t\r]+)
    | (?P<newline>\n)
    | (?P<comment>//[^\n]*|/\*.*?\*/)
    | (?P<ident>[^\W\d]\w*)
    | (?P<number>\d[\w.]*)
    | (?P<string>"(?:[^"\\\n]|\\.)*"|`[^`]*`)
    | (?P<char>'(?:[^'\\\n]|\\.)*')
    | (?P<op>\.\.\.|:=|<-|&&|\|\||==|!=|<=|>=|\+\+|--|\+=|-=|\*=|/=|<<|>>|&\^|[-+*/%&|^<>=!.,;:(){}\[\]~])
    """,
    re.VERBOSE | re.DOTALL,
)


class Token:
    def __init__(self, kind: str, text: str, start: int, end: int, auto: bool = False) -> None:
        self.kind = kind
        self.text = text
        self.start = start
        self.end = end
        self.auto = auto

    def __repr__(self) -> str:
        return f"Token({self.kind}, {self.text!r}, {self.start})"


def _ends_statement(token: Optional[Token]) -> bool:
    if token is None:
        return False
    if token.kind == "ident":
        return token.text not in KEYWORDS or token.text in TERMINATING_KEYWORDS
    if token.kind in ("number", "string", "char"):
        return True
    return token.text in STATEMENT_ENDINGS


def tokenize(text: str):
    tokens: List[Token] = []
    comments: List[Token] = []
    last: Optional[Token] = None
    index = 0
    while index < len(text):
        match = TOKEN_PATTERN.match(text, index)
        if match is None:
            raise SyntaxError(f"unexpected character {text[index]!r} at offset {index}")
        kind = match.lastgroup
        start, end = match.span()
        index = end
        if kind == "space":
            continue
        if kind == "comment":
            comments.append(Token("comment", match.group(), start, end))
            if "\n" in match.group() and _ends_statement(last):
                last = Token("op", ";", start, start, auto=True)
                tokens.append(last)
            continue
        if kind == "newline":
            if _ends_statement(last):
                last = Token("op", ";", start, start, auto=True)
                tokens.append(last)
            continue
        last = Token(kind, match.group(), start, end)
        tokens.append(last)
    if _ends_statement(last):
        tokens.append(Token("op", ";", len(text), len(text), auto=True))
    tokens.append(Token("eof", "", len(text), len(text)))
    return tokens, comments


class GoTreeParser:
    """Recursive-descent parser producing go/ast-shaped dictionaries."""

    def __init__(self, text: str) -> None:
        self.text = text
        self.tokens, self.comments = tokenize(text)
        self.index = 0
        self.last_end = 0
        self.no_literal = False

    # ------------------------------------------------------------------
    # Token handling
    # ------------------------------------------------------------------
    def peek(self, ahead: int = 0) -> Token:
        return self.tokens[min(self.index + ahead, len(self.tokens) - 1)]

    def next(self) -> Token:
        token = self.tokens[self.index]
        if token.kind != "eof":
            self.index += 1
        if not token.auto:
            self.last_end = token.end
        return token

    def at(self, text: str) -> bool:
        token = self.peek()
        return token.kind in ("op", "ident") and token.text == text

    def accept(self, text: str) -> Optional[Token]:
        if self.at(text):
            return self.next()
        return None

    def expect(self, text: str) -> Token:
        token = self.accept(text)
        if token is None:
            found = self.peek()
            raise SyntaxError(f"expected {text!r} at offset {found.start}, found {found.text!r}")
        return token

    def position(self, offset: int) -> Dict[str, int]:
        line_start = self.text.rfind("\n", 0, offset) + 1
        return {
            "line": self.text.count("\n", 0, offset) + 1,
            "column": len(self.text[line_start:offset].encode("utf-8")) + 1,
            "offset": len(self.text[:offset].encode("utf-8")),
        }

    def node(self, kind: str, start: int, end: Optional[int] = None, **fields: Any) -> Dict[str, Any]:
        result = {"kind": kind, "pos": self.position(start), "end": self.position(self.last_end if end is None else end)}
        result.update(fields)
        return result

    # ------------------------------------------------------------------
    # File and declarations
    # ------------------------------------------------------------------
    def parse_file(self) -> Dict[str, Any]:
        start = self.expect("package").start
        name = self.ident()
        self.accept(";")
        decls = []
        while self.peek().kind != "eof":
            if self.accept(";"):
                continue
            if self.at("func"):
                decls.append(self.func_decl())
            elif self.peek().text in ("import", "const", "var", "type"):
                decls.append(self.gen_decl())
            else:
                raise SyntaxError(f"unexpected {self.peek().text!r} at offset {self.peek().start}")
        return self.node(
            "File",
            start,
            len(self.text),
            package=name,
            doc=None,
            decls=decls,
            comments=self.comment_groups(),
        )

    def comment_groups(self) -> List[Dict[str, Any]]:
        groups: List[List[Token]] = []
        for comment in self.comments:
            if groups:
                gap = self.text[groups[-1][-1].end:comment.start]
                if not gap.strip() and gap.count("\n") <= 1:
                    groups[-1].append(comment)
                    continue
            groups.append([comment])
        return [
            self.node(
                "CommentGroup",
                group[0].start,
                group[-1].end,
                list=[self.node("Comment", item.start, item.end, text=item.text) for item in group],
            )
            for group in groups
        ]

    def gen_decl(self) -> Dict[str, Any]:
        keyword = self.next()
        specs = []
        lparen = False
        if self.accept("("):
            lparen = True
            while not self.at(")"):
                if self.accept(";"):
                    continue
                specs.append(self.spec(keyword.text))
            self.expect(")")
        else:
            specs.append(self.spec(keyword.text))
        return self.node("GenDecl", keyword.start, tok=keyword.text, lparen=lparen, doc=None, specs=specs)

    def spec(self, keyword: str) -> Dict[str, Any]:
        start = self.peek().start
        if keyword == "import":
            name = None
            if self.peek().kind == "ident" or self.at(".") or self.at("_"):
                token = self.next()
                name = self.node("Ident", token.start, token.end, name=token.text)
            path = self.next()
            spec = self.node("ImportSpec", start, name=name, path=self.literal(path), doc=None, comment=None)
        elif keyword == "type":
            name = self.ident()
            self.accept("=")
            spec = self.node("TypeSpec", start, name=name, type=self.parse_type(), doc=None)
        else:
            names = [self.ident()]
            while self.accept(","):
                names.append(self.ident())
            type_node = None
            if not (self.at("=") or self.at(";") or self.at(")")):
                type_node = self.parse_type()
            values = self.expr_list() if self.accept("=") else []
            spec = self.node("ValueSpec", start, names=names, type=type_node, values=values, doc=None)
        self.accept(";")
        return spec

    def func_decl(self) -> Dict[str, Any]:
        start = self.expect("func").start
        recv = self.field_list() if self.at("(") else None
        name = self.ident()
        type_start = self.peek().start
        params = self.field_list()
        results = self.results()
        func_type = self.node("FuncType", type_start, params=params, results=results)
        body = self.block() if self.at("{") else None
        return self.node("FuncDecl", start, name=name, doc=None, recv=recv, type=func_type, body=body)

    # ------------------------------------------------------------------
    # Types and fields
    # ------------------------------------------------------------------
    def field_list(self) -> Dict[str, Any]:
        start = self.expect("(").start
        entries = []
        while not self.at(")"):
            token, following = self.peek(), self.peek(1)
            if (
                token.kind == "ident"
                and token.text not in KEYWORDS
                and following.text not in (",", ")", ".")
            ):
                entries.append((self.ident(), self.parse_type()))
            else:
                entries.append((None, self.parse_type()))
            if not self.accept(","):
                break
            self.accept(";")
        self.expect(")")

        fields = []
        if any(name is not None for name, _ in entries):
            pending: List[Dict[str, Any]] = []
            for name, type_node in entries:
                if name is None:
                    pending.append(type_node)
                    continue
                names = pending + [name]
                fields.append(
                    self.node("Field", self._offset(names[0], "pos"), self._offset(type_node, "end"), names=names, type=type_node)
                )
                pending = []
        else:
            for _, type_node in entries:
                fields.append(
                    self.node("Field", self._offset(type_node, "pos"), self._offset(type_node, "end"), names=[], type=type_node)
                )
        return self.node("FieldList", start, list=fields)

    def _offset(self, node: Dict[str, Any], key: str) -> int:
        # Nodes record byte offsets; map them back to text indices.
        target = node[key]["offset"]
        return len(self.text.encode("utf-8")[:target].decode("utf-8"))

    def results(self) -> Optional[Dict[str, Any]]:
        if self.at("("):
            return self.field_list()
        token = self.peek()
        if token.text in TYPE_STARTS - {"(", "..."} or (token.kind == "ident" and token.text not in KEYWORDS):
            start = token.start
            type_node = self.parse_type()
            field = self.node("Field", start, names=[], type=type_node)
            return self.node("FieldList", start, list=[field])
        return None

    def parse_type(self) -> Dict[str, Any]:
        token = self.peek()
        start = token.start
        if self.accept("*"):
            return self.node("StarExpr", start, x=self.parse_type())
        if self.accept("..."):
            return self.node("Ellipsis", start, elt=self.parse_type())
        if self.accept("("):
            inner = self.parse_type()
            self.expect(")")
            return self.node("ParenExpr", start, x=inner)
        if self.accept("["):
            length = None
            if not self.at("]"):
                length = self.expr()
            self.expect("]")
            return self.node("ArrayType", start, len=length, elt=self.parse_type())
        if self.accept("map"):
            self.expect("[")
            key = self.parse_type()
            self.expect("]")
            return self.node("MapType", start, key=key, value=self.parse_type())
        if self.accept("chan"):
            self.accept("<-")
            return self.node("ChanType", start, value=self.parse_type())
        if self.accept("<-"):
            self.expect("chan")
            return self.node("ChanType", start, value=self.parse_type())
        if self.accept("func"):
            params = self.field_list()
            return self.node("FuncType", start, params=params, results=self.results())
        if self.at("struct") or self.at("interface"):
            keyword = self.next()
            self.skip_braces()
            return self.node("StructType" if keyword.text == "struct" else "InterfaceType", start)
        name = self.ident()
        if self.accept("."):
            return self.node("SelectorExpr", start, x=name, sel=self.ident())
        return name

    def skip_braces(self) -> None:
        self.expect("{")
        depth = 1
        while depth:
            token = self.next()
            if token.kind == "eof":
                raise SyntaxError("unbalanced braces")
            if token.text == "{" and token.kind == "op":
                depth += 1
            elif token.text == "}" and token.kind == "op":
                depth -= 1

    def ident(self) -> Dict[str, Any]:
        token = self.next()
        if token.kind != "ident":
            raise SyntaxError(f"expected identifier at offset {token.start}, found {token.text!r}")
        return self.node("Ident", token.start, token.end, name=token.text)

    def literal(self, token: Token) -> Dict[str, Any]:
        kinds = {"string": "STRING", "number": "INT", "char": "CHAR"}
        return self.node("BasicLit", token.start, token.end, value=token.text, literal=kinds.get(token.kind, "STRING"))

    # ------------------------------------------------------------------
    # Statements
    # ------------------------------------------------------------------
    def block(self) -> Dict[str, Any]:
        start = self.expect("{").start
        saved, self.no_literal = self.no_literal, False
        statements = self.statement_list(("}",))
        self.no_literal = saved
        self.expect("}")
        return self.node("BlockStmt", start, list=statements)

    def statement_list(self, stops) -> List[Dict[str, Any]]:
        statements = []
        while not any(self.at(stop) for stop in stops) and self.peek().kind != "eof":
            if self.accept(";"):
                continue
            statements.append(self.statement())
            self.accept(";")
        return statements

    def statement(self) -> Dict[str, Any]:
        token = self.peek()
        start = token.start
        if token.kind == "ident" and token.text in KEYWORDS:
            keyword = token.text
            if keyword == "if":
                return self.if_statement()
            if keyword == "for":
                return self.for_statement()
            if keyword == "switch":
                return self.switch_statement()
            if keyword == "return":
                self.next()
                results = [] if self.at(";") or self.at("}") else self.expr_list()
                return self.node("ReturnStmt", start, results=results)
            if keyword in ("go", "defer"):
                self.next()
                call = self.expr()
                return self.node("GoStmt" if keyword == "go" else "DeferStmt", start, call=call)
            if keyword in ("var", "const", "type"):
                decl = self.gen_decl()
                return self.node("DeclStmt", start, decl=decl)
            if keyword in ("break", "continue", "fallthrough"):
                self.next()
                return self.node("BranchStmt", start, tok=keyword)
        if self.at("{"):
            return self.block()
        return self.simple_statement()

    def simple_statement(self) -> Dict[str, Any]:
        start = self.peek().start
        lhs = self.expr_list()
        if self.peek().text in ASSIGN_OPS and self.peek().kind == "op":
            token = self.next().text
            rhs = self.expr_list()
            return self.node("AssignStmt", start, lhs=lhs, tok=token, rhs=rhs)
        if self.at("++") or self.at("--"):
            token = self.next().text
            return self.node("IncDecStmt", start, x=lhs[0], tok=token)
        return self.node("ExprStmt", start, x=lhs[0])

    def if_statement(self) -> Dict[str, Any]:
        start = self.expect("if").start
        saved, self.no_literal = self.no_literal, True
        init = None
        header = self.simple_statement()
        if self.accept(";"):
            init = header
            cond = self.expr()
        else:
            cond = header["x"]
        self.no_literal = saved
        body = self.block()
        alternative = None
        if self.accept("else"):
            alternative = self.if_statement() if self.at("if") else self.block()
        return self.node("IfStmt", start, init=init, cond=cond, body=body, **{"else": alternative})

    def _header_has_range(self) -> bool:
        depth = 0
        ahead = 0
        while True:
            token = self.peek(ahead)
            if token.kind == "eof":
                return False
            if token.text in ("(", "["):
                depth += 1
            elif token.text in (")", "]"):
                depth -= 1
            elif token.text == "{" and depth == 0:
                return False
            elif token.text == "range" and token.kind == "ident":
                return True
            ahead += 1

    def for_statement(self) -> Dict[str, Any]:
        start = self.expect("for").start
        saved, self.no_literal = self.no_literal, True
        if self._header_has_range():
            key = value = None
            token = None
            if not self.at("range"):
                targets = self.expr_list()
                key = targets[0]
                value = targets[1] if len(targets) > 1 else None
                token = self.next().text
            self.expect("range")
            iterable = self.expr()
            self.no_literal = saved
            body = self.block()
            return self.node("RangeStmt", start, key=key, value=value, tok=token, x=iterable, body=body)

        init = cond = post = None
        if not self.at("{"):
            first = None if self.at(";") else self.simple_statement()
            if self.accept(";"):
                init = first
                if not self.at(";"):
                    cond = self.expr()
                self.expect(";")
                if not self.at("{"):
                    post = self.simple_statement()
            else:
                cond = first["x"] if first else None
        self.no_literal = saved
        body = self.block()
        return self.node("ForStmt", start, init=init, cond=cond, post=post, body=body)

    def switch_statement(self) -> Dict[str, Any]:
        start = self.expect("switch").start
        saved, self.no_literal = self.no_literal, True
        init = tag = None
        kind = "SwitchStmt"
        if not self.at("{"):
            header = self.simple_statement()
            if self.accept(";"):
                init = header
                header = None if self.at("{") else self.simple_statement()
            if header is not None:
                if "(type)" in self.text[self._offset(header, "pos"):self.last_end]:
                    kind = "TypeSwitchStmt"
                tag = header
        self.no_literal = saved
        body_start = self.expect("{").start
        clauses = []
        while not self.at("}"):
            if self.accept(";"):
                continue
            clause_start = self.peek().start
            if self.accept("case"):
                labels = self.expr_list()
            else:
                self.expect("default")
                labels = []
            self.expect(":")
            statements = self.statement_list(("case", "default", "}"))
            clauses.append(self.node("CaseClause", clause_start, list=labels, body=statements))
        self.expect("}")
        body = self.node("BlockStmt", body_start, list=clauses)
        if kind == "TypeSwitchStmt":
            return self.node(kind, start, init=init, assign=tag, body=body)
        tag_expr = tag["x"] if tag is not None and tag["kind"] == "ExprStmt" else tag
        return self.node(kind, start, init=init, tag=tag_expr, body=body)

    # ------------------------------------------------------------------
    # Expressions
    # ------------------------------------------------------------------
    def expr_list(self) -> List[Dict[str, Any]]:
        items = [self.expr()]
        while self.accept(","):
            items.append(self.expr())
        return items

    def expr(self) -> Dict[str, Any]:
        start = self.peek().start
        left = self.unary()
        while self.peek().kind == "op" and self.peek().text in BINARY_OPS:
            operator = self.next().text
            right = self.unary()
            left = self.node("BinaryExpr", start, x=left, op=operator, y=right)
        return left

    def unary(self) -> Dict[str, Any]:
        token = self.peek()
        if token.kind == "op" and token.text in ("-", "+", "!", "^", "&", "<-"):
            self.next()
            return self.node("UnaryExpr", token.start, op=token.text, x=self.unary())
        if self.at("*"):
            self.next()
            return self.node("StarExpr", token.start, x=self.unary())
        return self.primary()

    def primary(self) -> Dict[str, Any]:
        token = self.peek()
        start = token.start
        if token.kind in ("string", "number", "char"):
            node = self.literal(self.next())
        elif self.at("("):
            self.next()
            saved, self.no_literal = self.no_literal, False
            inner = self.expr()
            self.no_literal = saved
            self.expect(")")
            node = self.node("ParenExpr", start, x=inner)
        elif self.at("func"):
            self.next()
            type_start = self.peek().start
            params = self.field_list()
            results = self.results()
            func_type = self.node("FuncType", type_start, params=params, results=results)
            node = self.node("FuncLit", start, type=func_type, body=self.block())
        elif self.at("{"):
            node = self.composite(None, start)
        elif token.text in ("[", "map", "struct", "interface", "chan"):
            node = self.parse_type()
        else:
            node = self.ident()
        return self.postfix(node, start)

    def postfix(self, node: Dict[str, Any], start: int) -> Dict[str, Any]:
        while True:
            if self.accept("."):
                if self.accept("("):
                    asserted = None if self.accept("type") else self.parse_type()
                    self.expect(")")
                    node = self.node("TypeAssertExpr", start, x=node, type=asserted)
                else:
                    node = self.node("SelectorExpr", start, x=node, sel=self.ident())
            elif self.at("("):
                self.next()
                saved, self.no_literal = self.no_literal, False
                args = []
                while not self.at(")"):
                    args.append(self.expr())
                    self.accept("...")
                    if not self.accept(","):
                        break
                    self.accept(";")
                self.no_literal = saved
                self.expect(")")
                node = self.node("CallExpr", start, fun=node, args=args)
            elif self.at("["):
                self.next()
                index = None if self.at(":") else self.expr()
                while self.accept(":"):
                    if not self.at("]"):
                        self.expr()
                self.expect("]")
                node = self.node("IndexExpr", start, x=node, index=index)
            elif self.at("{") and not self.no_literal:
                node = self.composite(node, start)
            else:
                return node

    def composite(self, type_node: Optional[Dict[str, Any]], start: int) -> Dict[str, Any]:
        self.expect("{")
        saved, self.no_literal = self.no_literal, False
        elements = []
        while not self.at("}"):
            if self.accept(";") or self.accept(","):
                continue
            element = self.expr()
            if self.accept(":"):
                element = self.node(
                    "KeyValueExpr", self._offset(element, "pos"), key=element, value=self.expr()
                )
            elements.append(element)
        self.no_literal = saved
        self.expect("}")
        return self.node("CompositeLit", start, type=type_node, elts=elements)


def parse(text: str) -> Dict[str, Any]:
    """Return the File tree for ``text``."""

    return GoTreeParser(text).parse_file()


def document(text: str, path: str = "widget/widget.go", embed_source: bool = True) -> Dict[str, Any]:
    data: Dict[str, Any] = {"path": path, "tree": parse(text)}
    if embed_source:
        data["source"] = text
    return data


def unit(text: str, path: str = "widget/widget.go") -> SourceUnit:
    return build_source_unit(path, text, parse(text))
