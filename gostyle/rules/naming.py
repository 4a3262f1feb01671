"""Naming conventions: casing, stutter, receivers, initialisms and name length."""

from __future__ import annotations

from typing import Dict, List, Optional

from gostyle.registry import Category
from gostyle.result import Finding, FixRequest
from gostyle.source import Declaration, DeclKind, SourceUnit
from gostyle.utils.identifiers import (
    INITIALISMS,
    has_underscore_words,
    split_words,
    to_mixed_caps,
    words,
)

from . import AnalysisContext, Evaluator

GENERIC_RECEIVERS = {"self", "this", "me"}
TEST_FUNCTION_PREFIXES = ("Test", "Benchmark", "Example", "Fuzz")
TESTING_TYPES = {"*testing.T", "*testing.B", "*testing.F", "*testing.M", "testing.TB"}
NAMED_KINDS = {DeclKind.TYPE, DeclKind.FUNCTION, DeclKind.METHOD, DeclKind.CONSTANT, DeclKind.VARIABLE}


class NamingEvaluator:
    """Flag names that break Go's naming conventions."""

    category = Category.NAMING

    def evaluate(self, context: AnalysisContext) -> List[Finding]:
        unit = context.unit
        findings: List[Finding] = []
        named = [decl for decl in unit.declarations if decl.kind in NAMED_KINDS and decl.name not in ("", "_")]

        if context.enabled("NAM008"):
            findings.extend(self._check_package_name(context))
        for decl in named:
            if context.enabled("NAM001"):
                findings.extend(self._check_mixed_caps(context, decl))
            if context.enabled("NAM006"):
                findings.extend(self._check_initialisms(context, decl))
        if context.enabled("NAM002") and unit.package_name != "main" and not unit.is_test_file:
            for decl in unit.exported_declarations():
                if decl.kind is not DeclKind.METHOD:
                    findings.extend(self._check_stutter(context, decl))
        if context.enabled("NAM003"):
            findings.extend(self._check_receiver_consistency(context))
        if context.enabled("NAM004"):
            findings.extend(self._check_generic_receivers(context))
        if context.enabled("NAM005"):
            for decl in named:
                if decl.kind is DeclKind.VARIABLE and decl.scope_id != 0:
                    findings.extend(self._check_scope_length(context, decl))
        if context.enabled("NAM007"):
            for decl in unit.functions():
                findings.extend(self._check_getter(context, decl))
        return findings

    # ------------------------------------------------------------------
    # Casing
    # ------------------------------------------------------------------
    def _check_mixed_caps(self, context: AnalysisContext, decl: Declaration) -> List[Finding]:
        name = decl.name
        if name.startswith("_") or not has_underscore_words(name):
            return []
        if context.unit.is_test_file and name.startswith(TEST_FUNCTION_PREFIXES):
            return []
        replacement = to_mixed_caps(name, exported=name[0].isupper())
        if not replacement or replacement == name:
            return []
        visibility = "exported" if decl.exported else "unexported" if decl.scope_id == 0 else "local"
        return [
            context.finding(
                "NAM001",
                decl.name_span,
                f"{visibility} {decl.kind.value} {name} should use MixedCaps: {replacement}",
                fix=self._rename(context.unit, decl, replacement),
            )
        ]

    def _check_initialisms(self, context: AnalysisContext, decl: Declaration) -> List[Finding]:
        name = decl.name
        if has_underscore_words(name):
            return []
        leading_lower = name[0].islower()
        pieces: List[str] = []
        cursor = 0
        changed = []
        for word, start in split_words(name):
            pieces.append(name[cursor:start])
            cursor = start + len(word)
            if word.upper() not in INITIALISMS or word.isupper() or word.islower():
                pieces.append(word)
                continue
            expected = word.lower() if start == 0 and leading_lower else word.upper()
            pieces.append(expected)
            changed.append((word, expected))
        pieces.append(name[cursor:])
        if not changed:
            return []
        replacement = "".join(pieces)
        rendered = ", ".join(f"{word} -> {expected}" for word, expected in changed)
        return [
            context.finding(
                "NAM006",
                decl.name_span,
                f"{decl.kind.value} {name} has an inconsistently cased initialism ({rendered}); use {replacement}",
                fix=self._rename(context.unit, decl, replacement),
            )
        ]

    def _check_package_name(self, context: AnalysisContext) -> List[Finding]:
        unit = context.unit
        name = unit.package_name
        if name.endswith("_test"):
            name = name[: -len("_test")]
        if name == "main":
            return []
        package_decl = next(decl for decl in unit.declarations if decl.kind is DeclKind.PACKAGE)
        if name != name.lower() or "_" in name:
            return [
                context.finding(
                    "NAM008",
                    package_decl.name_span,
                    f"package name {unit.package_name} should be a single lowercase word",
                )
            ]
        if name in context.settings.generic_package_names:
            return [
                context.finding(
                    "NAM008",
                    package_decl.name_span,
                    f"package name {name} is too generic to tell callers what it provides",
                )
            ]
        return []

    # ------------------------------------------------------------------
    # Repetition
    # ------------------------------------------------------------------
    def _check_stutter(self, context: AnalysisContext, decl: Declaration) -> List[Finding]:
        package = context.unit.package_name.lower()
        tokens = words(decl.name)
        if len(tokens) < 2:
            return []
        prefix = any("".join(tokens[:count]).lower() == package for count in range(1, len(tokens)))
        suffix = any("".join(tokens[count:]).lower() == package for count in range(1, len(tokens)))
        if not prefix and not suffix:
            return []

        qualified = f"{context.unit.package_name}.{decl.name}"
        exported_types = [
            item.name for item in context.unit.exported_declarations() if item.kind is DeclKind.TYPE
        ]
        if (
            decl.kind is DeclKind.FUNCTION
            and tokens[0] == "New"
            and len(exported_types) == 1
            and decl.name == f"New{exported_types[0]}"
        ):
            message = (
                f"{qualified} stutters; {exported_types[0]} is the package's only exported type, "
                f"so name the constructor {context.unit.package_name}.New"
            )
        else:
            message = f"{qualified} stutters; drop the redundant '{package}' from the name"
        return [context.finding("NAM002", decl.name_span, message)]

    # ------------------------------------------------------------------
    # Receivers
    # ------------------------------------------------------------------
    def _check_receiver_consistency(self, context: AnalysisContext) -> List[Finding]:
        findings: List[Finding] = []
        canonical: Dict[str, str] = {}
        reported = set()
        for decl in context.unit.functions():
            receiver = decl.receiver
            if receiver is None or not receiver.name or receiver.name == "_":
                continue
            type_name = receiver.type_name
            if type_name not in canonical:
                canonical[type_name] = receiver.name
                continue
            if receiver.name == canonical[type_name] or type_name in reported:
                continue
            reported.add(type_name)
            findings.append(
                context.finding(
                    "NAM003",
                    receiver.span,
                    f"receiver name {receiver.name} of {type_name}.{decl.name} should be consistent "
                    f"with previous receiver name {canonical[type_name]}",
                )
            )
        return findings

    def _check_generic_receivers(self, context: AnalysisContext) -> List[Finding]:
        findings: List[Finding] = []
        for decl in context.unit.functions():
            receiver = decl.receiver
            if receiver is None or receiver.name not in GENERIC_RECEIVERS:
                continue
            findings.append(
                context.finding(
                    "NAM004",
                    receiver.span,
                    f"receiver name {receiver.name} of {receiver.type_name}.{decl.name} should be a short "
                    f"abbreviation of {receiver.type_name}",
                )
            )
        return findings

    # ------------------------------------------------------------------
    # Length
    # ------------------------------------------------------------------
    def _check_scope_length(self, context: AnalysisContext, decl: Declaration) -> List[Finding]:
        name = decl.name
        if name in context.settings.short_name_allowlist:
            return []
        if decl.is_parameter and self._is_testing_param(context.unit, decl):
            return []
        line_count = context.unit.scope(decl.scope_id).line_count
        band = context.settings.band_for(line_count)
        token_count = max(1, len(words(name)))
        problem: Optional[str] = None
        if len(name) == 1 and not band.single_letter:
            problem = "too short"
        elif token_count < band.min_tokens:
            problem = "too short"
        elif token_count > band.max_tokens:
            problem = "too long"
        if problem is None:
            return []
        return [
            context.finding(
                "NAM005",
                decl.name_span,
                f"local name {name} is {problem} for a {line_count}-line scope",
            )
        ]

    def _is_testing_param(self, unit: SourceUnit, decl: Declaration) -> bool:
        for function in unit.functions():
            if function.body_scope_id != decl.scope_id:
                continue
            for param in function.params:
                if param.name == decl.name and param.type_text in TESTING_TYPES:
                    return True
        return False

    # ------------------------------------------------------------------
    # Getters
    # ------------------------------------------------------------------
    def _check_getter(self, context: AnalysisContext, decl: Declaration) -> List[Finding]:
        name = decl.name
        if not decl.exported or len(name) <= 3 or not name.startswith("Get") or not name[3].isupper():
            return []
        if decl.params or not decl.results:
            return []
        replacement = name[3:]
        fix = self._rename(context.unit, decl, replacement)
        return [
            context.finding(
                "NAM007",
                decl.name_span,
                f"getter {name} should drop the Get prefix: {replacement}",
                fix=fix,
            )
        ]

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _rename(self, unit: SourceUnit, decl: Declaration, replacement: str) -> Optional[FixRequest]:
        """Return a rename request, or None if ``replacement`` is already visible there."""

        within = None if decl.scope_id == 0 else unit.scope(decl.scope_id).span
        for other in unit.find_declarations(replacement):
            if within is None or other.scope_id == 0:
                return None
            other_scope = unit.scope(other.scope_id).span
            if other_scope.contains(within) or within.contains(other_scope):
                return None
        return FixRequest(
            template="rename",
            span=decl.name_span,
            old_name=decl.name,
            new_name=replacement,
            within=within,
            include_selectors=decl.kind is DeclKind.METHOD,
        )


def get_evaluator() -> Evaluator:
    return NamingEvaluator()
