"""Import grouping, aliasing and side-effect import checks."""

from __future__ import annotations

from enum import IntEnum
from typing import FrozenSet, List, Optional, Sequence, Tuple

from gostyle.config import Settings
from gostyle.registry import Category
from gostyle.result import Finding, FixRequest
from gostyle.source import ImportDecl, ImportEntry, SourceUnit

from . import AnalysisContext, Evaluator

# Top-level standard library import paths (Go 1.22).
STDLIB_ROOTS: FrozenSet[str] = frozenset(
    {
        "archive", "bufio", "builtin", "bytes", "cmp", "compress", "container", "context",
        "crypto", "database", "debug", "embed", "encoding", "errors", "expvar", "flag", "fmt",
        "go", "hash", "html", "image", "index", "io", "iter", "log", "maps", "math", "mime",
        "net", "os", "path", "plugin", "reflect", "regexp", "runtime", "slices", "sort",
        "strconv", "strings", "sync", "syscall", "testing", "text", "time", "unicode",
        "unique", "unsafe", "C",
    }
)
SIDE_EFFECT_EXEMPT = {"embed"}


class ImportCategory(IntEnum):
    """Canonical group order."""

    STANDARD = 0
    THIRD_PARTY = 1
    GENERATED = 2
    SIDE_EFFECT = 3

    @property
    def label(self) -> str:
        return self.name.lower().replace("_", "-")


def classify(entry: ImportEntry, settings: Settings) -> ImportCategory:
    if entry.alias == "_":
        return ImportCategory.SIDE_EFFECT
    if entry.default_name.endswith(tuple(settings.generated_suffixes)):
        return ImportCategory.GENERATED
    root = entry.path.split("/", 1)[0]
    if root in STDLIB_ROOTS or entry.path in settings.extra_stdlib or root in settings.extra_stdlib:
        return ImportCategory.STANDARD
    return ImportCategory.THIRD_PARTY


class ImportsEvaluator:
    """Verify import grouping order and alias usage."""

    category = Category.IMPORTS

    def evaluate(self, context: AnalysisContext) -> List[Finding]:
        findings: List[Finding] = []
        for decl in context.unit.import_decls:
            if context.enabled("IMP001") and decl.parenthesized:
                findings.extend(self._check_grouping(context, decl))
            for group in decl.groups:
                for entry in group.entries:
                    findings.extend(self._check_entry(context, entry))
        return findings

    # ------------------------------------------------------------------
    # Grouping
    # ------------------------------------------------------------------
    def _check_grouping(self, context: AnalysisContext, decl: ImportDecl) -> List[Finding]:
        settings = context.settings
        group_categories: List[Tuple[ImportCategory, ...]] = [
            tuple(sorted({classify(entry, settings) for entry in group.entries})) for group in decl.groups
        ]
        problem: Optional[str] = None
        for categories in group_categories:
            if len(categories) > 1:
                labels = ", ".join(category.label for category in categories)
                problem = f"import group mixes {labels} imports"
                break
        if problem is None:
            order = [categories[0] for categories in group_categories if categories]
            if any(later <= earlier for earlier, later in zip(order, order[1:])):
                labels = ", ".join(category.label for category in order)
                problem = f"import groups are out of order ({labels})"
        if problem is None:
            return []

        span = decl.body_span or decl.span
        replacement = self._canonical_body(context.unit, decl, settings)
        fix = FixRequest(template="reorder-imports", span=span, replacement=replacement) if replacement else None
        return [
            context.finding(
                "IMP001",
                span,
                f"{problem}; expected standard library, third-party, generated protocol, side-effect",
                fix=fix,
            )
        ]

    def _canonical_body(self, unit: SourceUnit, decl: ImportDecl, settings: Settings) -> Optional[str]:
        if decl.body_span is None:
            return None
        entry_lines = {entry.span.start.line for group in decl.groups for entry in group.entries}
        for comment in unit.comments:
            if decl.body_span.contains(comment.span) and comment.span.start.line not in entry_lines:
                # Free-standing comments have no unambiguous new position.
                return None

        buckets: List[List[Tuple[str, str]]] = [[] for _ in ImportCategory]
        for group in decl.groups:
            for entry in group.entries:
                rendered = self._entry_text(unit, entry)
                buckets[classify(entry, settings)].append((entry.path, rendered))
        blocks = [
            "\n".join(f"\t{text}" for _, text in sorted(bucket))
            for bucket in buckets
            if bucket
        ]
        return "\n" + "\n\n".join(blocks) + "\n"

    def _entry_text(self, unit: SourceUnit, entry: ImportEntry) -> str:
        lines = [unit.line_text(line) for line in range(entry.span.start.line, entry.span.end.line + 1)]
        first = lines[0][entry.span.start.column - 1:]
        return "\n".join([first] + lines[1:]).rstrip()

    # ------------------------------------------------------------------
    # Entries
    # ------------------------------------------------------------------
    def _check_entry(self, context: AnalysisContext, entry: ImportEntry) -> Sequence[Finding]:
        unit = context.unit
        findings: List[Finding] = []
        category = classify(entry, context.settings)

        if entry.alias == "." and context.enabled("IMP002"):
            findings.append(
                context.finding("IMP002", entry.span, f'dot import of "{entry.path}"; import it by name')
            )
        if (
            entry.alias == "_"
            and context.enabled("IMP003")
            and entry.path not in SIDE_EFFECT_EXEMPT
            and unit.package_name not in context.settings.side_effect_roots
            and not unit.is_test_file
        ):
            findings.append(
                context.finding(
                    "IMP003",
                    entry.span,
                    f'side-effect import of "{entry.path}" in package {unit.package_name}; '
                    "blank imports belong in main packages and tests",
                )
            )
        if (
            entry.alias not in (None, "_", ".")
            and entry.alias == entry.default_name
            and context.enabled("IMP004")
            and entry.alias_span is not None
        ):
            removal = unit.span_of(entry.alias_span.start.offset, entry.path_span.start.offset)
            findings.append(
                context.finding(
                    "IMP004",
                    entry.alias_span,
                    f'import alias {entry.alias} repeats the package name of "{entry.path}"',
                    fix=FixRequest(template="replace", span=removal, replacement=""),
                )
            )
        if category is ImportCategory.GENERATED and context.enabled("IMP005"):
            name = entry.alias or entry.default_name
            if not name.endswith("pb"):
                findings.append(
                    context.finding(
                        "IMP005",
                        entry.span,
                        f'generated protocol package "{entry.path}" should be imported with a pb-suffixed alias',
                    )
                )
        return findings


def get_evaluator() -> Evaluator:
    return ImportsEvaluator()
