"""Error handling conventions: result position, discards, messages and wrapping."""

from __future__ import annotations

import re
from typing import Dict, List, Optional, Set, Tuple

from gostyle.registry import Category
from gostyle.result import Finding, FixRequest
from gostyle.source import CallSite, Declaration, DeclKind, SourceUnit

from . import AnalysisContext, Evaluator

ERROR_CONSTRUCTORS = {"errors.New", "fmt.Errorf", "errors.Errorf", "xerrors.New", "xerrors.Errorf"}
WRAP_VERB = "%w"
TRAILING_PUNCTUATION = ".!?:;"
SENTINEL_NAME_PATTERN = re.compile(r"^(Err|err)([A-Z0-9]|$)")
FIRST_WORD_PATTERN = re.compile(r"[A-Za-z0-9_]+")
FORMAT_VERB_PATTERN = re.compile(r"%[-+# 0-9.]*[a-zA-Z%]")

# Result arity of common standard library calls whose last result is an error.
KNOWN_ERROR_RESULTS: Dict[str, int] = {
    "os.Chdir": 1,
    "os.Chmod": 1,
    "os.MkdirAll": 1,
    "os.Remove": 1,
    "os.RemoveAll": 1,
    "os.Rename": 1,
    "os.Setenv": 1,
    "os.WriteFile": 1,
    "os.Create": 2,
    "os.Open": 2,
    "os.ReadFile": 2,
    "io.Copy": 2,
    "io.ReadAll": 2,
    "ioutil.ReadAll": 2,
    "json.Marshal": 2,
    "json.Unmarshal": 1,
    "strconv.Atoi": 2,
    "strconv.ParseBool": 2,
    "strconv.ParseFloat": 2,
    "strconv.ParseInt": 2,
    "time.Parse": 2,
    "url.Parse": 2,
    "filepath.Abs": 2,
    "http.Get": 2,
}


class ErrorHandlingEvaluator:
    """Check how errors are returned, created, handled and wrapped."""

    category = Category.ERROR_HANDLING

    def evaluate(self, context: AnalysisContext) -> List[Finding]:
        unit = context.unit
        findings: List[Finding] = []
        if context.enabled("ERR001"):
            for decl in unit.functions():
                findings.extend(self._check_error_last(context, decl))
        if context.enabled("ERR005"):
            for decl in unit.declarations:
                findings.extend(self._check_sentinel_name(context, decl))

        exported_names = {decl.name for decl in unit.exported_declarations()}
        for call in unit.calls:
            if context.enabled("ERR002"):
                findings.extend(self._check_discard(context, call))
            if call.callee in ERROR_CONSTRUCTORS and call.args and call.args[0].kind == "string":
                if context.enabled("ERR003"):
                    findings.extend(self._check_error_string(context, call, exported_names))
                if context.enabled("ERR004"):
                    findings.extend(self._check_wrap_context(context, call))
            if call.callee == "panic" and context.enabled("ERR006"):
                findings.extend(self._check_panic(context, call))
        return findings

    # ------------------------------------------------------------------
    # Signatures
    # ------------------------------------------------------------------
    def _check_error_last(self, context: AnalysisContext, decl: Declaration) -> List[Finding]:
        results = decl.results
        if "error" not in results or results[-1] == "error":
            return []
        position = results.index("error") + 1
        return [
            context.finding(
                "ERR001",
                decl.name_span,
                f"{decl.name} returns error as result {position} of {len(results)}; error should be the last result",
            )
        ]

    # ------------------------------------------------------------------
    # Discarded results
    # ------------------------------------------------------------------
    def _check_discard(self, context: AnalysisContext, call: CallSite) -> List[Finding]:
        error_positions, arity = self._error_positions(context.unit, call)
        if not error_positions:
            return []
        if call.annotation and self._is_discard_annotation(context, call.annotation):
            return []

        if call.context in ("expr", "go"):
            discarded = True
        elif call.context in ("define", "assign") and len(call.targets) == arity:
            discarded = any(call.targets[index] == "_" for index in error_positions)
        else:
            discarded = False
        if not discarded:
            return []
        return [
            context.finding(
                "ERR002",
                call.span,
                f"error returned by {call.callee} is discarded",
            )
        ]

    def _error_positions(self, unit: SourceUnit, call: CallSite) -> Tuple[List[int], int]:
        if call.results is not None:
            return [index for index, kind in enumerate(call.results) if kind == "error"], len(call.results)
        if call.callee in KNOWN_ERROR_RESULTS:
            arity = KNOWN_ERROR_RESULTS[call.callee]
            return [arity - 1], arity
        results = self._local_results(unit, call)
        if results is None:
            return [], 0
        return [index for index, kind in enumerate(results) if kind == "error"], len(results)

    def _local_results(self, unit: SourceUnit, call: CallSite) -> Optional[Tuple[str, ...]]:
        if "." not in call.callee:
            candidates = [decl for decl in unit.functions() if decl.kind is DeclKind.FUNCTION and decl.name == call.callee]
        else:
            qualifier = call.callee.rsplit(".", 1)[0]
            if any(decl.kind is DeclKind.IMPORT and decl.name == qualifier for decl in unit.declarations):
                return None
            candidates = [decl for decl in unit.functions() if decl.kind is DeclKind.METHOD and decl.name == call.name]
        signatures = {decl.results for decl in candidates}
        if len(signatures) != 1:
            return None
        return signatures.pop()

    def _is_discard_annotation(self, context: AnalysisContext, annotation: str) -> bool:
        lowered = annotation.lower()
        return any(marker.lower() in lowered for marker in context.settings.discard_markers)

    # ------------------------------------------------------------------
    # Error strings
    # ------------------------------------------------------------------
    def _check_error_string(self, context: AnalysisContext, call: CallSite, exported_names: Set[str]) -> List[Finding]:
        literal = call.args[0]
        message = literal.value or ""
        capitalized = self._is_capitalized(context, message, exported_names)
        punctuated = self._strip_trailing(message) != message
        if not capitalized and not punctuated:
            return []

        replacement = self._fix_literal(literal.text, capitalized, punctuated)
        problems = []
        if capitalized:
            problems.append("be capitalized")
        if punctuated:
            problems.append("end with punctuation")
        fix = None
        if replacement != literal.text:
            fix = FixRequest(template="replace", span=literal.span, replacement=replacement)
        return [
            context.finding(
                "ERR003",
                literal.span,
                f"error strings should not {' or '.join(problems)}: {replacement}",
                fix=fix,
            )
        ]

    def _is_capitalized(self, context: AnalysisContext, message: str, exported_names: Set[str]) -> bool:
        match = FIRST_WORD_PATTERN.match(message)
        if not match or not message[0].isupper():
            return False
        word = match.group(0)
        if word in context.settings.proper_nouns or word in exported_names:
            return False
        # Acronyms and MixedCaps words name things; leave them alone.
        if len(word) > 1 and any(char.isupper() for char in word[1:]):
            return False
        return True

    def _strip_trailing(self, message: str) -> str:
        return message.rstrip(TRAILING_PUNCTUATION + " \t\n")

    def _fix_literal(self, raw: str, capitalized: bool, punctuated: bool) -> str:
        quote, inner = raw[0], raw[1:-1]
        if punctuated:
            while True:
                trimmed = inner.rstrip(TRAILING_PUNCTUATION + " \t")
                if quote == '"' and trimmed.endswith("\\n"):
                    trimmed = trimmed[:-2]
                if trimmed == inner:
                    break
                inner = trimmed
        if capitalized and inner[:1].isalpha():
            inner = inner[0].lower() + inner[1:]
        return f"{quote}{inner}{quote}"

    # ------------------------------------------------------------------
    # Wrapping
    # ------------------------------------------------------------------
    def _check_wrap_context(self, context: AnalysisContext, call: CallSite) -> List[Finding]:
        template = call.args[0].value or ""
        if call.name != "Errorf" or WRAP_VERB not in template:
            return []
        wrapped = [arg for arg in call.args[1:] if arg.kind == "ident"]
        if not wrapped:
            return []
        added = FORMAT_VERB_PATTERN.sub("", template.split(WRAP_VERB, 1)[0]).strip(" :-,")
        if not added:
            return []
        original = self._wrapped_message(context.unit, wrapped[-1].text, call)
        if original is None or added.lower() not in original.lower():
            return []
        return [
            context.finding(
                "ERR004",
                call.args[0].span,
                f'wrap context "{added}" repeats the wrapped error "{original}"',
            )
        ]

    def _wrapped_message(self, unit: SourceUnit, name: str, wrap: CallSite) -> Optional[str]:
        function = unit.enclosing_function(wrap.scope_id)
        latest: Optional[CallSite] = None
        for call in unit.calls:
            if call.span.start.offset >= wrap.span.start.offset or name not in call.targets:
                continue
            if call.callee not in ERROR_CONSTRUCTORS or not call.args or call.args[0].kind != "string":
                continue
            caller = unit.enclosing_function(call.scope_id)
            if function is not None and caller is not None and caller.id == function.id:
                latest = call
        if latest is not None:
            return latest.args[0].value
        for decl in unit.find_declarations(name):
            init = decl.init_call
            if decl.scope_id == 0 and init and init.callee in ERROR_CONSTRUCTORS and init.args:
                if init.args[0].kind == "string":
                    return init.args[0].value
        return None

    # ------------------------------------------------------------------
    # Sentinels and panics
    # ------------------------------------------------------------------
    def _check_sentinel_name(self, context: AnalysisContext, decl: Declaration) -> List[Finding]:
        if decl.kind is not DeclKind.VARIABLE or decl.scope_id != 0 or decl.init_call is None:
            return []
        if decl.init_call.callee not in ERROR_CONSTRUCTORS or SENTINEL_NAME_PATTERN.match(decl.name):
            return []
        prefix = "Err" if decl.exported else "err"
        core = decl.name
        if core.lower().startswith("error"):
            core = core[len("error"):]
        elif core.endswith("Error"):
            core = core[: -len("Error")]
        fix = None
        replacement = None
        if core:
            replacement = prefix + core[0].upper() + core[1:]
            if not context.unit.find_declarations(replacement):
                fix = FixRequest(template="rename", span=decl.name_span, old_name=decl.name, new_name=replacement)
        suggestion = f"; use {replacement}" if replacement else ""
        return [
            context.finding(
                "ERR005",
                decl.name_span,
                f"sentinel error {decl.name} should be named {prefix}Xxx{suggestion}",
                fix=fix,
            )
        ]

    def _check_panic(self, context: AnalysisContext, call: CallSite) -> List[Finding]:
        unit = context.unit
        if unit.package_name == "main" or unit.is_test_file:
            return []
        scope = unit.enclosing_function(call.scope_id)
        owner = None
        if scope is not None:
            owner = next((decl for decl in unit.functions() if decl.body_scope_id == scope.id), None)
        if owner is not None and (owner.name == "init" or owner.name.startswith("Must")):
            return []
        return [
            context.finding(
                "ERR006",
                call.span,
                f"library package {unit.package_name} panics; return an error instead",
            )
        ]


def get_evaluator() -> Evaluator:
    return ErrorHandlingEvaluator()
