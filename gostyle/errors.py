"""Exception taxonomy for the style engine."""

from __future__ import annotations

from typing import Optional


class GoStyleError(Exception):
    """Base class for every error raised by gostyle."""


class MalformedInputError(GoStyleError):
    """The parse tree cannot be turned into a SourceUnit.

    Raised when position information is missing or the document does not
    have the expected shape. The whole run aborts and no findings are
    returned.
    """

    def __init__(self, message: str, path: Optional[str] = None) -> None:
        self.path = path
        if path:
            message = f"{path}: {message}"
        super().__init__(message)


class RuleEvaluationError(GoStyleError):
    """A single evaluator failed; other evaluators still run."""

    def __init__(self, category: str, cause: BaseException) -> None:
        self.category = category
        self.cause = cause
        super().__init__(f"{category} evaluator failed: {type(cause).__name__}: {cause}")


class PatchConflictError(GoStyleError):
    """Two patches edit overlapping text."""

    def __init__(self, first: str, second: str) -> None:
        self.first = first
        self.second = second
        super().__init__(f"patch for {second} overlaps patch for {first}")


class RegistryError(GoStyleError):
    """The rule catalog is malformed or a rule id is unknown."""


class ConfigError(GoStyleError):
    """A configuration value has the wrong type or shape."""


class AnalysisCancelled(GoStyleError):
    """The caller abandoned the run between evaluator invocations."""
