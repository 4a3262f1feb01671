"""Rule evaluators, one per rule category."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Protocol

from gostyle.config import Settings
from gostyle.registry import Category, RuleSet
from gostyle.result import Finding, FixRequest
from gostyle.source import SourceUnit, Span


class Evaluator(Protocol):
    """Protocol implemented by all rule evaluators."""

    category: Category

    def evaluate(self, context: "AnalysisContext") -> List[Finding]:
        """Return the findings for the enabled rules of this category.

        Implementations must not mutate ``context.unit``.
        """


@dataclass(frozen=True)
class AnalysisContext:
    """Bundle inputs shared across evaluators."""

    unit: SourceUnit
    rules: RuleSet
    settings: Settings = field(default_factory=Settings)

    def enabled(self, rule_id: str) -> bool:
        return rule_id in self.rules

    def finding(
        self,
        rule_id: str,
        span: Span,
        message: str,
        fix: Optional[FixRequest] = None,
        guidance: Optional[str] = None,
    ) -> Finding:
        rule = self.rules.get(rule_id)
        if rule is None:
            raise KeyError(f"rule {rule_id} is not enabled for this run")
        return Finding(
            rule_id=rule.id,
            category=rule.category.value,
            severity=rule.severity,
            path=self.unit.path,
            span=span,
            message=message,
            guidance=guidance if guidance is not None else rule.guidance,
            fix=fix if rule.fix else None,
        )


def load_evaluators() -> List[Evaluator]:
    from . import documentation, error_handling, formatting, imports, naming, organization

    return [
        naming.get_evaluator(),
        error_handling.get_evaluator(),
        imports.get_evaluator(),
        documentation.get_evaluator(),
        organization.get_evaluator(),
        formatting.get_evaluator(),
    ]
