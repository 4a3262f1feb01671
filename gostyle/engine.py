"""Analysis entry points.

One run takes a SourceUnit through every evaluator whose category has enabled
rules, then hands the findings to the aggregator. Runs share nothing mutable,
so several units can be analysed in parallel.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Sequence

from .aggregator import DiagnosticAggregator
from .config import Settings
from .errors import AnalysisCancelled, RuleEvaluationError
from .fixes import apply_patches
from .registry import RuleRegistry, default_registry
from .result import AnalysisResult, Finding
from .rules import AnalysisContext, Evaluator, load_evaluators
from .source import SourceUnit
from .utils.tree import load_source_unit

logger = logging.getLogger(__name__)

INTERNAL_RULE = "INT001"

__all__ = ["analyze", "analyze_document", "analyze_many", "apply_patches"]


def analyze(
    unit: SourceUnit,
    registry: Optional[RuleRegistry] = None,
    settings: Optional[Settings] = None,
    exclude: Iterable[str] = (),
    should_cancel: Optional[Callable[[], bool]] = None,
    evaluators: Optional[Sequence[Evaluator]] = None,
) -> AnalysisResult:
    """Analyse one SourceUnit and return its ordered findings.

    ``exclude`` is merged with ``settings.exclude``. ``should_cancel`` is
    polled before each evaluator; a true answer raises
    :class:`AnalysisCancelled` and discards everything collected so far.
    """

    registry = registry or default_registry()
    settings = settings or Settings()
    rules = registry.subset(set(settings.exclude) | set(exclude))
    aggregator = DiagnosticAggregator(unit)
    logger.debug("analysing %s with %d rules", unit.path, len(rules))

    for evaluator in evaluators if evaluators is not None else load_evaluators():
        subset = rules.for_category(evaluator.category)
        if not len(subset):
            continue
        if should_cancel is not None and should_cancel():
            logger.info("analysis of %s cancelled before %s", unit.path, evaluator.category.value)
            raise AnalysisCancelled(f"analysis of {unit.path} was cancelled")
        context = AnalysisContext(unit=unit, rules=subset, settings=settings)
        try:
            aggregator.add(evaluator.evaluate(context))
        except Exception as exc:
            failure = RuleEvaluationError(evaluator.category.value, exc)
            logger.exception("%s: %s", unit.path, failure)
            aggregator.add([_internal_finding(registry, unit, failure)])

    result = aggregator.result()
    logger.debug("finished %s: %d findings", unit.path, len(result.findings))
    return result


def _internal_finding(registry: RuleRegistry, unit: SourceUnit, failure: RuleEvaluationError) -> Finding:
    rule = registry.rule(INTERNAL_RULE)
    return Finding(
        rule_id=rule.id,
        category=rule.category.value,
        severity=rule.severity,
        path=unit.path,
        span=unit.package_span,
        message=str(failure),
        guidance=rule.guidance,
    )


def analyze_document(path: Path, **options) -> AnalysisResult:
    """Load a tree document from ``path`` and analyse it."""

    return analyze(load_source_unit(Path(path)), **options)


def analyze_many(units: Sequence[SourceUnit], jobs: int = 1, **options) -> List[AnalysisResult]:
    """Analyse independent units, in parallel when ``jobs`` > 1.

    Results come back in the order of ``units``.
    """

    if jobs <= 1 or len(units) <= 1:
        return [analyze(unit, **options) for unit in units]
    with ThreadPoolExecutor(max_workers=jobs) as pool:
        return list(pool.map(lambda unit: analyze(unit, **options), units))
