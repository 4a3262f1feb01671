"""Severity definitions for style findings."""

from __future__ import annotations

from enum import Enum


class Severity(str, Enum):
    """Enumerate the supported severity levels for findings."""

    ERROR = "error"
    WARNING = "warning"
    SUGGESTION = "suggestion"

    @property
    def rank(self) -> int:
        """Return an integer ranking; higher is more severe."""

        ordering = {
            Severity.ERROR: 2,
            Severity.WARNING: 1,
            Severity.SUGGESTION: 0,
        }
        return ordering[self]

    @classmethod
    def parse(cls, value: str) -> "Severity":
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"unknown severity: {value!r}") from None
