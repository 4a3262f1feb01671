"""Doc comment conventions."""

from __future__ import annotations

from typing import List, Optional

from gostyle.registry import Category
from gostyle.result import Finding, FixRequest
from gostyle.source import CommentBlock, Declaration, DeclKind, SourceUnit

from . import AnalysisContext, Evaluator

ARTICLES = ("A", "An", "The")
SENTENCE_ENDINGS = (".", "!", "?")


def starts_with_name(comment: CommentBlock, name: str) -> bool:
    tokens = comment.text.split()
    if not tokens:
        return False
    if tokens[0] in ARTICLES and len(tokens) > 1:
        return tokens[1] == name or tokens[0] == name
    return tokens[0] == name


class DocumentationEvaluator:
    """Require name-prefixed doc comments and a single package comment."""

    category = Category.DOCUMENTATION

    def evaluate(self, context: AnalysisContext) -> List[Finding]:
        unit = context.unit
        exemptions = context.settings.doc_exemptions
        findings: List[Finding] = []
        if unit.is_test_file and "test-files" in exemptions:
            return findings
        if context.enabled("DOC002"):
            findings.extend(self._check_package_comment(context))
        if context.enabled("DOC003") and unit.package_doc is not None:
            findings.extend(self._check_sentence(context, unit.package_doc))

        for decl in unit.exported_declarations():
            if (
                "unexported-receivers" in exemptions
                and decl.kind is DeclKind.METHOD
                and decl.receiver
                and not decl.receiver.type_name[:1].isupper()
            ):
                continue
            findings.extend(self._check_declaration(context, decl))
        return findings

    def _check_declaration(self, context: AnalysisContext, decl: Declaration) -> List[Finding]:
        findings: List[Finding] = []
        label = decl.kind.value
        if decl.doc is not None:
            if context.enabled("DOC001") and not starts_with_name(decl.doc, decl.name):
                findings.append(
                    context.finding(
                        "DOC001",
                        decl.span,
                        f"comment on exported {label} {decl.name} should be of the form \"{decl.name} ...\"",
                    )
                )
            elif context.enabled("DOC003"):
                findings.extend(self._check_sentence(context, decl.doc))
            return findings

        detached = decl.detached_doc
        if detached is not None and starts_with_name(detached, decl.name) and context.enabled("DOC004"):
            findings.append(self._detached(context, decl, detached))
            return findings
        if decl.group_doc is not None and "group-comment" in context.settings.doc_exemptions:
            return findings
        if context.enabled("DOC001"):
            findings.append(
                context.finding(
                    "DOC001",
                    decl.span,
                    f"exported {label} {decl.name} should have a comment starting with its name",
                )
            )
        return findings

    def _detached(self, context: AnalysisContext, decl: Declaration, comment: CommentBlock) -> Finding:
        unit = context.unit
        line_start = decl.span.start.offset - (decl.span.start.column - 1)
        gap = unit.text[comment.span.end.offset:line_start]
        fix = None
        if not gap.strip():
            fix = FixRequest(
                template="replace",
                span=unit.span_of(comment.span.end.offset, line_start),
                replacement="\n",
            )
        return context.finding(
            "DOC004",
            decl.span,
            f"doc comment for {decl.name} is separated from the declaration by a blank line",
            fix=fix,
        )

    # ------------------------------------------------------------------
    # Package comment
    # ------------------------------------------------------------------
    def _check_package_comment(self, context: AnalysisContext) -> List[Finding]:
        unit = context.unit
        name = unit.package_name
        package_comments: List[CommentBlock] = []
        if unit.package_doc is not None:
            package_comments.append(unit.package_doc)
        for comment in unit.comments:
            if comment == unit.package_doc:
                continue
            if comment.text.startswith(f"Package {name} ") or comment.text == f"Package {name}":
                package_comments.append(comment)

        if not package_comments:
            if not context.settings.require_package_comment:
                return []
            return [
                context.finding(
                    "DOC002",
                    unit.package_span,
                    f"package {name} has no package comment",
                )
            ]
        findings: List[Finding] = []
        if len(package_comments) > 1:
            extra = sorted(package_comments, key=lambda comment: comment.span.start.offset)[1]
            findings.append(
                context.finding(
                    "DOC002",
                    extra.span,
                    f"package {name} has {len(package_comments)} package comments; keep exactly one",
                )
            )
        doc = unit.package_doc
        if doc is not None and name != "main" and not doc.text.startswith(f"Package {name}"):
            findings.append(
                context.finding(
                    "DOC002",
                    doc.span,
                    f'package comment should be of the form "Package {name} ..."',
                )
            )
        return findings

    # ------------------------------------------------------------------
    # Sentences
    # ------------------------------------------------------------------
    def _check_sentence(self, context: AnalysisContext, comment: CommentBlock) -> List[Finding]:
        text = comment.text.rstrip()
        if not text or text.endswith(SENTENCE_ENDINGS):
            return []
        last_line = comment.lines[-1]
        if not last_line.startswith("//") or last_line[2:3] == "\t" or last_line[2:4] == "  ":
            # Block comments and indented code samples are skipped.
            return []
        return [
            context.finding(
                "DOC003",
                comment.span,
                "doc comment should be a full sentence ending with a period",
                fix=self._append_period(context.unit, comment),
            )
        ]

    def _append_period(self, unit: SourceUnit, comment: CommentBlock) -> Optional[FixRequest]:
        end = comment.span.end.offset
        while end > comment.span.start.offset and unit.text[end - 1] in " \t":
            end -= 1
        insertion = unit.span_of(end, end)
        return FixRequest(template="replace", span=insertion, replacement=".")


def get_evaluator() -> Evaluator:
    return DocumentationEvaluator()
