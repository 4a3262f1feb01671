"""Layout advisories the canonical formatter leaves alone.

Whitespace normalization belongs to gofmt. These rules only cover what gofmt
never changes: line length and how imports are split across declarations.
"""

from __future__ import annotations

from typing import List, Set

from gostyle.registry import Category
from gostyle.result import Finding
from gostyle.source import SourceUnit

from . import AnalysisContext, Evaluator

TAB_WIDTH = 4
UNWRAPPABLE_MARKERS = ("http://", "https://", "//go:", "//nolint", "// +build")


def comment_lines(unit: SourceUnit) -> Set[int]:
    """Lines that hold nothing but comment text."""

    lines: Set[int] = set()
    for comment in unit.comments:
        first = unit.line_text(comment.span.start.line)
        if first[: comment.span.start.column - 1].strip():
            continue
        lines.update(range(comment.span.start.line, comment.span.end.line + 1))
    return lines


def display_width(line: str) -> int:
    return len(line.expandtabs(TAB_WIDTH))


class FormattingEvaluator:
    """Advisory length limits and import declaration layout."""

    category = Category.FORMATTING

    def evaluate(self, context: AnalysisContext) -> List[Finding]:
        unit = context.unit
        settings = context.settings
        findings: List[Finding] = []
        in_comment = comment_lines(unit)

        for number, line in enumerate(unit.lines, start=1):
            if any(marker in line for marker in UNWRAPPABLE_MARKERS):
                continue
            width = display_width(line)
            if number in in_comment:
                rule_id, limit, label = "FMT002", settings.max_comment_line_length, "comment line"
            else:
                rule_id, limit, label = "FMT001", settings.max_line_length, "line"
            if width <= limit or not context.enabled(rule_id):
                continue
            start = unit.line_starts[number - 1]
            findings.append(
                context.finding(
                    rule_id,
                    unit.span_of(start, start + len(line)),
                    f"{label} is {width} columns wide (limit {limit})",
                )
            )

        if context.enabled("FMT003") and len(unit.import_decls) > 1:
            for decl in unit.import_decls[1:]:
                findings.append(
                    context.finding(
                        "FMT003",
                        decl.span,
                        f"{len(unit.import_decls)} import declarations; merge them into one factored block",
                    )
                )
        return findings


def get_evaluator() -> Evaluator:
    return FormattingEvaluator()
