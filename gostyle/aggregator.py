"""Diagnostic Aggregator: merge, order and number findings."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Dict, Iterable, List, Tuple

from .fixes import FixSynthesizer
from .registry import Category
from .result import AnalysisResult, Finding
from .source import SourceUnit

logger = logging.getLogger(__name__)


class DiagnosticAggregator:
    """Collect findings for one SourceUnit.

    Findings from an evaluator are accepted all at once or not at all, so a
    failing evaluator never publishes a partial batch.
    """

    def __init__(self, unit: SourceUnit) -> None:
        self.unit = unit
        self._findings: List[Finding] = []

    def add(self, findings: Iterable[Finding]) -> None:
        batch = list(findings)
        for finding in batch:
            if not self.unit.contains_span(finding.span):
                raise ValueError(
                    f"{finding.rule_id} reported span {finding.span.start.offset}-{finding.span.end.offset} "
                    f"outside {self.unit.path}"
                )
        self._findings.extend(batch)

    def __len__(self) -> int:
        return len(self._findings)

    def result(self) -> AnalysisResult:
        """Deduplicate, sort, attach patches and assign ordinals."""

        unique: Dict[Tuple[str, int, int], Finding] = {}
        internal: List[Finding] = []
        for finding in self._findings:
            if finding.category == Category.INTERNAL.value:
                # Every evaluator failure is reported, even at a shared span.
                internal.append(finding)
                continue
            if finding.key in unique:
                logger.debug("dropping duplicate %s at %s", finding.rule_id, finding.location())
                continue
            unique[finding.key] = finding
        ordered = sorted([*unique.values(), *internal], key=Finding.sort_key)
        patched = FixSynthesizer(self.unit).synthesize(ordered)
        numbered = [replace(finding, ordinal=ordinal) for ordinal, finding in enumerate(patched, start=1)]
        return AnalysisResult.from_findings(self.unit.path, numbered)
