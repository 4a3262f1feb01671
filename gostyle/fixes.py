"""Fix Synthesizer: turn fix requests into textual patches.

Only mechanical, syntax-preserving corrections become patches. Findings that
need judgment keep their guidance text and carry no patch.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from .errors import PatchConflictError
from .result import Finding, FixRequest, Patch, TextEdit
from .source import SourceUnit

logger = logging.getLogger(__name__)

DEMOTION_NOTE = "Patch withheld: it overlaps the patch of a higher-severity finding."


class FixSynthesizer:
    """Build patches for one SourceUnit and resolve overlaps between them."""

    def __init__(self, unit: SourceUnit) -> None:
        self.unit = unit
        self._templates: Dict[str, Callable[[Finding, FixRequest], Optional[Patch]]] = {
            "rename": self._rename,
            "replace": self._replace,
            "reorder-imports": self._reorder_imports,
        }

    def synthesize(self, findings: Sequence[Finding]) -> List[Finding]:
        """Attach patches to ``findings``; the order of the input is kept."""

        patched = [self._with_patch(finding) for finding in findings]
        return self._resolve_conflicts(patched)

    def _with_patch(self, finding: Finding) -> Finding:
        request = finding.fix
        if request is None:
            return finding
        builder = self._templates.get(request.template)
        if builder is None:
            logger.warning("no fix template named %s for %s", request.template, finding.rule_id)
            return finding
        patch = builder(finding, request)
        if patch is None:
            return finding
        return replace(finding, patch=patch)

    # ------------------------------------------------------------------
    # Templates
    # ------------------------------------------------------------------
    def _rename(self, finding: Finding, request: FixRequest) -> Optional[Patch]:
        if not request.old_name or not request.new_name or request.old_name == request.new_name:
            return None
        edits = []
        for ident in self.unit.occurrences(request.old_name):
            if ident.selector and not request.include_selectors:
                continue
            if request.within is not None and not request.within.contains(ident.span):
                continue
            edits.append(TextEdit(span=ident.span, new_text=request.new_name))
        if not any(edit.span == request.span for edit in edits):
            edits.append(TextEdit(span=request.span, new_text=request.new_name))
        edits.sort(key=lambda edit: edit.span.start.offset)
        return Patch(
            rule_id=finding.rule_id,
            edits=tuple(edits),
            description=f"rename {request.old_name} to {request.new_name}",
        )

    def _replace(self, finding: Finding, request: FixRequest) -> Optional[Patch]:
        if request.replacement is None:
            return None
        if self.unit.text_at(request.span) == request.replacement:
            return None
        return Patch(
            rule_id=finding.rule_id,
            edits=(TextEdit(span=request.span, new_text=request.replacement),),
            description=f"replace {self.unit.text_at(request.span)!r} with {request.replacement!r}",
        )

    def _reorder_imports(self, finding: Finding, request: FixRequest) -> Optional[Patch]:
        if request.replacement is None:
            return None
        original = self.unit.text_at(request.span)
        # Reordering may only move lines and blank separators around.
        if sorted(_content_lines(original)) != sorted(_content_lines(request.replacement)):
            logger.warning("%s: import reorder would change content, patch dropped", self.unit.path)
            return None
        if original == request.replacement:
            return None
        return Patch(
            rule_id=finding.rule_id,
            edits=(TextEdit(span=request.span, new_text=request.replacement),),
            description="regroup imports in canonical order",
        )

    # ------------------------------------------------------------------
    # Conflicts
    # ------------------------------------------------------------------
    def _resolve_conflicts(self, findings: List[Finding]) -> List[Finding]:
        """Keep the higher-severity patch when two patches overlap.

        The losing finding is demoted to guidance only. Ties go to the finding
        that sorts first, so resolution is deterministic.
        """

        ranked = sorted(
            range(len(findings)),
            key=lambda index: (-findings[index].severity.rank,) + findings[index].sort_key(),
        )
        accepted: List[Patch] = []
        result = list(findings)
        for index in ranked:
            finding = result[index]
            patch = finding.patch
            if patch is None:
                continue
            try:
                check_conflicts(accepted + [patch])
            except PatchConflictError as conflict:
                logger.warning("%s: %s; keeping %s", self.unit.path, conflict, conflict.first)
                guidance = f"{finding.guidance} {DEMOTION_NOTE}".strip()
                result[index] = replace(finding, patch=None, guidance=guidance)
                continue
            accepted.append(patch)
        return result


def _content_lines(text: str) -> List[str]:
    return [line.strip() for line in text.splitlines() if line.strip()]


def check_conflicts(patches: Iterable[Patch]) -> None:
    """Raise :class:`PatchConflictError` if any two patches overlap."""

    seen: List[Patch] = []
    for patch in patches:
        for other in seen:
            if patch.overlaps(other):
                raise PatchConflictError(other.rule_id, patch.rule_id)
        seen.append(patch)


def apply_patches(text: str, patches: Iterable[Patch]) -> str:
    """Apply non-overlapping patches to ``text`` and return the new text."""

    patches = list(patches)
    check_conflicts(patches)
    edits = sorted(
        (edit for patch in patches for edit in patch.edits),
        key=lambda edit: edit.span.start.offset,
        reverse=True,
    )
    for edit in edits:
        text = text[: edit.span.start.offset] + edit.new_text + text[edit.span.end.offset:]
    return text
