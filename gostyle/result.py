"""Core result data structures for the engine."""

from __future__ import annotations

from dataclasses import dataclass, field, asdict
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from .severity import Severity
from .source import Span

SEVERITY_ORDER: Sequence[Severity] = (
    Severity.ERROR,
    Severity.WARNING,
    Severity.SUGGESTION,
)


@dataclass(frozen=True)
class FixRequest:
    """What an evaluator knows about a mechanical correction.

    The Fix Synthesizer turns requests into patches. ``rename`` requests carry
    ``old_name``/``new_name`` and optionally ``within``, the span that bounds
    the occurrences to rewrite. ``replace`` and ``reorder-imports`` carry the
    ``replacement`` text for ``span``.
    """

    template: str
    span: Span
    replacement: Optional[str] = None
    old_name: Optional[str] = None
    new_name: Optional[str] = None
    within: Optional[Span] = None
    include_selectors: bool = False


@dataclass(frozen=True)
class TextEdit:
    span: Span
    new_text: str

    def to_dict(self) -> Dict[str, Any]:
        return {"span": self.span.to_dict(), "new_text": self.new_text}


@dataclass(frozen=True)
class Patch:
    """A set of non-overlapping edits that fix one finding."""

    rule_id: str
    edits: Tuple[TextEdit, ...]
    description: str = ""

    @property
    def span(self) -> Span:
        start = min(edit.span.start for edit in self.edits)
        end = max(edit.span.end for edit in self.edits)
        return Span(start, end)

    def overlaps(self, other: "Patch") -> bool:
        for mine in self.edits:
            for theirs in other.edits:
                if mine.span.overlaps(theirs.span) or mine.span.start.offset == theirs.span.start.offset:
                    return True
        return False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rule_id": self.rule_id,
            "description": self.description,
            "edits": [edit.to_dict() for edit in self.edits],
        }


@dataclass(frozen=True)
class Finding:
    """Capture a single detected style issue."""

    rule_id: str
    category: str
    severity: Severity
    path: str
    span: Span
    message: str
    guidance: str = ""
    fix: Optional[FixRequest] = field(default=None, compare=False)
    patch: Optional[Patch] = None
    ordinal: int = 0

    @property
    def key(self) -> Tuple[str, int, int]:
        return (self.rule_id, self.span.start.offset, self.span.end.offset)

    def sort_key(self) -> Tuple[int, int, str, int]:
        return (self.span.start.offset, -self.severity.rank, self.rule_id, self.span.end.offset)

    def location(self) -> str:
        return f"{self.path}:{self.span.start.line}:{self.span.start.column}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ordinal": self.ordinal,
            "rule_id": self.rule_id,
            "category": self.category,
            "severity": self.severity.value,
            "path": self.path,
            "span": self.span.to_dict(),
            "message": self.message,
            "guidance": self.guidance,
            "patch": self.patch.to_dict() if self.patch else None,
        }


@dataclass
class Summary:
    """Aggregate finding counts by severity."""

    error: int = 0
    warning: int = 0
    suggestion: int = 0

    def increment(self, severity: Severity) -> None:
        setattr(self, severity.value, getattr(self, severity.value) + 1)

    def merge(self, other: "Summary") -> None:
        for severity in SEVERITY_ORDER:
            setattr(self, severity.value, getattr(self, severity.value) + getattr(other, severity.value))

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)

    def as_rows(self) -> List[Tuple[str, int]]:
        """Return severity/count pairs ordered for reporting."""

        return [(severity.value, getattr(self, severity.value)) for severity in SEVERITY_ORDER]

    @property
    def total(self) -> int:
        return sum(getattr(self, severity.value) for severity in SEVERITY_ORDER)


@dataclass
class AnalysisResult:
    """Findings of one analysis run, in their final order."""

    path: str
    findings: List[Finding] = field(default_factory=list)
    summary: Summary = field(default_factory=Summary)

    @classmethod
    def from_findings(cls, path: str, findings: Iterable[Finding]) -> "AnalysisResult":
        result = cls(path=path)
        for finding in findings:
            result.summary.increment(finding.severity)
            result.findings.append(finding)
        return result

    @property
    def passed(self) -> bool:
        return self.summary.error == 0 and self.summary.warning == 0

    @property
    def patches(self) -> List[Patch]:
        return [finding.patch for finding in self.findings if finding.patch is not None]

    def by_rule(self, rule_id: str) -> List[Finding]:
        return [finding for finding in self.findings if finding.rule_id == rule_id]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "summary": self.summary.to_dict(),
            "findings": [finding.to_dict() for finding in self.findings],
            "passed": self.passed,
        }


@dataclass
class Report:
    """Bundle the results of every analysed file."""

    results: List[AnalysisResult] = field(default_factory=list)

    @property
    def summary(self) -> Summary:
        total = Summary()
        for result in self.results:
            total.merge(result.summary)
        return total

    @property
    def findings(self) -> List[Finding]:
        return [finding for result in self.results for finding in result.findings]

    @property
    def passed(self) -> bool:
        return all(result.passed for result in self.results)

    def exit_code(self) -> int:
        summary = self.summary
        if summary.error > 0:
            return 2
        if summary.warning > 0:
            return 1
        return 0

    def top_findings(self, limit: int = 5) -> List[Finding]:
        """Return findings ordered by severity ranking."""

        ordered = sorted(
            self.findings,
            key=lambda finding: (-finding.severity.rank, finding.path, finding.span.start.offset, finding.rule_id),
        )
        return ordered[:limit]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "summary": self.summary.to_dict(),
            "files": [result.to_dict() for result in self.results],
            "passed": self.passed,
        }


def format_summary_table(report: Report, max_findings: int = 5) -> str:
    """Create a human-readable summary table for console output."""

    lines: List[str] = []
    lines.append("Style Summary")
    lines.append("=" * 40)
    header = f"{'Severity':<10} | {'Count':>5}"
    lines.append(header)
    lines.append("-" * len(header))
    for severity, count in report.summary.as_rows():
        lines.append(f"{severity:<10} | {count:>5}")
    lines.append("-" * len(header))
    status = "PASS" if report.passed else "FAIL"
    lines.append(f"Status    : {status}")
    lines.append(f"Files     : {len(report.results)}")
    lines.append(f"Findings  : {report.summary.total}")

    findings = report.top_findings(max_findings)
    if findings:
        lines.append("")
        lines.append("Top Findings")
        lines.append("-" * 40)
        for finding in findings:
            lines.append(f"[{finding.severity.value}] {finding.rule_id} {finding.message}")
            lines.append(f"  Location: {finding.location()}")
    return "\n".join(lines)


def format_finding_lines(report: Report) -> str:
    """Render one ``path:line:col: [RULE] message`` line per finding."""

    lines = []
    for finding in report.findings:
        marker = " (fixable)" if finding.patch else ""
        lines.append(f"{finding.location()}: [{finding.rule_id}] {finding.message}{marker}")
    return "\n".join(lines)
