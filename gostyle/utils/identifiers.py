"""Identifier tokenizing and case helpers shared by the naming rules."""

from __future__ import annotations

import re
from typing import FrozenSet, List, Tuple

WORD_PATTERN = re.compile(r"[A-Z]+[0-9]*(?![a-z])|[A-Z]?[a-z]+[0-9]*|[0-9]+")

# Mirrors the list golint has carried for years.
INITIALISMS: FrozenSet[str] = frozenset(
    {
        "ACL", "API", "ASCII", "CPU", "CSS", "DB", "DNS", "EOF", "GID", "GUID",
        "HTML", "HTTP", "HTTPS", "ID", "IP", "JSON", "LHS", "QPS", "RAM", "RHS",
        "RPC", "SLA", "SMTP", "SQL", "SSH", "TCP", "TLS", "TTL", "UDP", "UI",
        "UID", "URI", "URL", "UTF8", "UUID", "VM", "XML", "XMPP", "XSRF", "XSS",
    }
)


def split_words(name: str) -> List[Tuple[str, int]]:
    """Split an identifier into ``(word, start index)`` pairs.

    Underscores separate words and are not returned. Runs of capitals are
    kept together, so ``HTTPServer`` gives ``HTTP`` and ``Server``.
    """

    return [(match.group(0), match.start()) for match in WORD_PATTERN.finditer(name)]


def words(name: str) -> List[str]:
    return [word for word, _ in split_words(name)]


def is_initialism(word: str) -> bool:
    return word.upper() in INITIALISMS


def _capitalize(word: str) -> str:
    if is_initialism(word):
        return word.upper()
    return word[:1].upper() + word[1:].lower()


def to_mixed_caps(name: str, exported: bool) -> str:
    """Rewrite an underscore-separated name as MixedCaps or mixedCaps."""

    parts = [part for part in words(name) if part]
    if not parts:
        return name
    rendered = [_capitalize(part) for part in parts]
    if not exported:
        rendered[0] = parts[0].lower()
    return "".join(rendered)


def has_underscore_words(name: str) -> bool:
    stripped = name.strip("_")
    return "_" in stripped and stripped != ""
