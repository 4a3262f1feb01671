"""Code organization: function size, parameters, nesting and package state."""

from __future__ import annotations

from typing import List

from gostyle.registry import Category
from gostyle.result import Finding
from gostyle.source import DeclKind, ScopeKind

from . import AnalysisContext, Evaluator
from .error_handling import ERROR_CONSTRUCTORS


class OrganizationEvaluator:
    """Advisory checks on how code is laid out into functions and packages."""

    category = Category.ORGANIZATION

    def evaluate(self, context: AnalysisContext) -> List[Finding]:
        unit = context.unit
        settings = context.settings
        findings: List[Finding] = []

        for decl in unit.functions():
            if context.enabled("ORG001") and decl.span.line_count > settings.max_function_lines:
                findings.append(
                    context.finding(
                        "ORG001",
                        decl.name_span,
                        f"{decl.name} is {decl.span.line_count} lines long (limit {settings.max_function_lines})",
                    )
                )
            if context.enabled("ORG002") and len(decl.params) > settings.max_parameters:
                findings.append(
                    context.finding(
                        "ORG002",
                        decl.name_span,
                        f"{decl.name} takes {len(decl.params)} parameters (limit {settings.max_parameters})",
                    )
                )
            if (
                context.enabled("ORG005")
                and decl.kind is DeclKind.FUNCTION
                and decl.name == "init"
                and not unit.is_test_file
            ):
                findings.append(
                    context.finding("ORG005", decl.name_span, "init function hides initialisation order from callers")
                )

        if context.enabled("ORG003"):
            for scope in unit.scopes:
                if scope.kind is not ScopeKind.BLOCK or scope.depth != settings.max_nesting_depth + 1:
                    continue
                parent = unit.scope(scope.parent) if scope.parent is not None else None
                if parent is not None and parent.depth > settings.max_nesting_depth:
                    continue
                findings.append(
                    context.finding(
                        "ORG003",
                        unit.span_of(scope.span.start.offset, scope.span.start.offset),
                        f"block is nested {scope.depth} levels deep (limit {settings.max_nesting_depth})",
                    )
                )

        if context.enabled("ORG004"):
            for decl in unit.exported_declarations():
                if decl.kind is not DeclKind.VARIABLE:
                    continue
                if decl.init_call is not None and decl.init_call.callee in ERROR_CONSTRUCTORS:
                    continue
                findings.append(
                    context.finding(
                        "ORG004",
                        decl.name_span,
                        f"exported package-level variable {decl.name} is mutable global state",
                    )
                )
        return findings


def get_evaluator() -> Evaluator:
    return OrganizationEvaluator()
