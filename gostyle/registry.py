"""Rule catalog and the read-only registry built from it.

The catalog is loaded once per process. Nothing mutates a registry after it
is built; a run that needs different rules asks for a subset instead.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from importlib import resources
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Iterable, Iterator, Mapping, Optional, Tuple

import yaml

from .errors import RegistryError
from .severity import Severity

logger = logging.getLogger(__name__)

CATALOG_RESOURCE = "catalog.yaml"
MIN_RULES_PER_CATEGORY = 3
MAX_RULES_PER_CATEGORY = 8
FIX_TEMPLATES = {"rename", "replace", "reorder-imports"}


class Category(str, Enum):
    NAMING = "naming"
    ERROR_HANDLING = "error-handling"
    IMPORTS = "imports"
    DOCUMENTATION = "documentation"
    ORGANIZATION = "organization"
    FORMATTING = "formatting"
    INTERNAL = "internal"


@dataclass(frozen=True)
class Rule:
    """Immutable catalog entry."""

    id: str
    name: str
    category: Category
    severity: Severity
    summary: str
    guidance: str = ""
    fix: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category.value,
            "severity": self.severity.value,
            "summary": self.summary,
            "fix": self.fix,
        }


class RuleSet:
    """The rules enabled for one analysis run."""

    def __init__(self, rules: Iterable[Rule]) -> None:
        self._rules: Mapping[str, Rule] = MappingProxyType({rule.id: rule for rule in rules})

    def __contains__(self, rule_id: object) -> bool:
        return rule_id in self._rules

    def __iter__(self) -> Iterator[Rule]:
        return iter(self._rules.values())

    def __len__(self) -> int:
        return len(self._rules)

    def get(self, rule_id: str) -> Optional[Rule]:
        return self._rules.get(rule_id)

    def for_category(self, category: Category) -> "RuleSet":
        return RuleSet(rule for rule in self if rule.category is category)

    @property
    def ids(self) -> Tuple[str, ...]:
        return tuple(self._rules)


class RuleRegistry(RuleSet):
    """Versioned, read-only catalog of every known rule."""

    def __init__(self, version: int, rules: Iterable[Rule]) -> None:
        super().__init__(rules)
        self.version = version

    def rule(self, rule_id: str) -> Rule:
        try:
            return self._rules[rule_id]
        except KeyError:
            raise RegistryError(f"unknown rule id: {rule_id}") from None

    def subset(self, exclude: Iterable[str] = (), strict: bool = False) -> RuleSet:
        """Return the registry minus ``exclude``.

        Unknown ids are logged, or raise :class:`RegistryError` when
        ``strict`` is set.
        """

        excluded = {rule_id.strip().upper() for rule_id in exclude if rule_id.strip()}
        unknown = sorted(excluded - set(self.ids))
        if unknown:
            if strict:
                raise RegistryError(f"unknown rule ids in exclusion list: {', '.join(unknown)}")
            logger.warning("ignoring unknown rule ids: %s", ", ".join(unknown))
        return RuleSet(rule for rule in self if rule.id not in excluded)


def _parse_rule(entry: Any) -> Rule:
    if not isinstance(entry, dict):
        raise RegistryError(f"catalog entry is not a mapping: {entry!r}")
    try:
        rule_id = str(entry["id"])
        category = Category(entry["category"])
        severity = Severity.parse(entry["severity"])
    except KeyError as exc:
        raise RegistryError(f"catalog entry {entry.get('id', '?')} is missing {exc}") from None
    except ValueError as exc:
        raise RegistryError(f"catalog entry {entry.get('id', '?')}: {exc}") from None
    fix = entry.get("fix")
    if fix is not None and fix not in FIX_TEMPLATES:
        raise RegistryError(f"rule {rule_id} names unknown fix template {fix!r}")
    return Rule(
        id=rule_id,
        name=str(entry.get("name", rule_id.lower())),
        category=category,
        severity=severity,
        summary=str(entry.get("summary", "")),
        guidance=str(entry.get("guidance", "")),
        fix=fix,
    )


def build_registry(data: Any) -> RuleRegistry:
    """Validate catalog data and build a registry from it."""

    if not isinstance(data, dict) or not isinstance(data.get("rules"), list):
        raise RegistryError("catalog must be a mapping with a 'rules' list")
    rules = [_parse_rule(entry) for entry in data["rules"]]

    seen: Dict[str, Rule] = {}
    for rule in rules:
        if rule.id in seen:
            raise RegistryError(f"duplicate rule id: {rule.id}")
        seen[rule.id] = rule

    for category in Category:
        if category is Category.INTERNAL:
            continue
        count = sum(1 for rule in rules if rule.category is category)
        if not MIN_RULES_PER_CATEGORY <= count <= MAX_RULES_PER_CATEGORY:
            raise RegistryError(
                f"category {category.value} has {count} rules, expected "
                f"{MIN_RULES_PER_CATEGORY}-{MAX_RULES_PER_CATEGORY}"
            )
    return RuleRegistry(int(data.get("version", 0)), rules)


def load_registry(path: Optional[Path] = None) -> RuleRegistry:
    """Load a catalog file, or the packaged catalog when ``path`` is None."""

    try:
        if path is None:
            raw = resources.files(__package__).joinpath(CATALOG_RESOURCE).read_text(encoding="utf-8")
        else:
            raw = Path(path).read_text(encoding="utf-8")
        data = yaml.safe_load(raw)
    except (OSError, yaml.YAMLError) as exc:
        raise RegistryError(f"cannot load rule catalog: {exc}") from exc
    registry = build_registry(data)
    logger.debug("loaded rule catalog v%s with %d rules", registry.version, len(registry))
    return registry


@lru_cache(maxsize=None)
def default_registry() -> RuleRegistry:
    """Return the process-wide registry, loading it on first use."""

    return load_registry()
