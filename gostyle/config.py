"""Configuration for analysis runs.

Settings are read from ``.gostyle.yaml`` (or the file passed with
``--config``). Every threshold here tunes an advisory rule; none of them turns
a suggestion into a hard failure.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, FrozenSet, Optional, Tuple

import yaml

from .errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = ".gostyle.yaml"

# Opt-in relaxations of the documentation rules that follow common Go practice.
DOC_EXEMPTIONS = frozenset({"group-comment", "test-files", "unexported-receivers"})


@dataclass(frozen=True)
class ScopeBand:
    """Expected name length for locals whose scope spans up to ``max_lines``."""

    max_lines: Optional[int]
    min_tokens: int
    max_tokens: int
    single_letter: bool = False

    def covers(self, line_count: int) -> bool:
        return self.max_lines is None or line_count <= self.max_lines


DEFAULT_SCOPE_BANDS: Tuple[ScopeBand, ...] = (
    ScopeBand(max_lines=7, min_tokens=1, max_tokens=2, single_letter=True),
    ScopeBand(max_lines=15, min_tokens=1, max_tokens=3),
    ScopeBand(max_lines=25, min_tokens=1, max_tokens=3),
    ScopeBand(max_lines=None, min_tokens=1, max_tokens=4),
)


@dataclass(frozen=True)
class Settings:
    """Tunable parameters of an analysis run."""

    exclude: FrozenSet[str] = frozenset()
    max_line_length: int = 100
    max_comment_line_length: int = 80
    max_function_lines: int = 60
    max_parameters: int = 5
    max_nesting_depth: int = 4
    scope_bands: Tuple[ScopeBand, ...] = DEFAULT_SCOPE_BANDS
    short_name_allowlist: FrozenSet[str] = frozenset({"_"})
    proper_nouns: FrozenSet[str] = frozenset(
        {"Go", "Google", "GitHub", "Linux", "Windows", "macOS", "Unix", "Kubernetes", "Docker", "AWS"}
    )
    discard_markers: Tuple[str, ...] = (
        "nolint:errcheck",
        "ignore error",
        "ignored",
        "intentionally",
        "best effort",
        "best-effort",
    )
    generic_package_names: FrozenSet[str] = frozenset(
        {"util", "utils", "common", "misc", "helper", "helpers", "base", "shared", "lib", "types", "interfaces"}
    )
    extra_stdlib: FrozenSet[str] = frozenset()
    generated_suffixes: Tuple[str, ...] = ("_go_proto", "_proto", "pb", "_grpc")
    side_effect_roots: FrozenSet[str] = frozenset({"main"})
    require_package_comment: bool = True
    doc_exemptions: FrozenSet[str] = frozenset()
    log_level: str = "WARNING"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Settings":
        known = {item.name for item in fields(cls)}
        values: Dict[str, Any] = {}
        for key, value in data.items():
            if key not in known:
                logger.warning("ignoring unknown configuration key: %s", key)
                continue
            values[key] = _coerce(key, value, getattr(cls(), key))
        return replace(cls(), **values)

    @classmethod
    def from_yaml(cls, path: Path) -> "Settings":
        """Load settings from a YAML file."""

        try:
            with Path(path).open("r", encoding="utf-8") as handle:
                data = yaml.safe_load(handle) or {}
        except OSError as exc:
            raise ConfigError(f"cannot read configuration {path}: {exc}") from exc
        except yaml.YAMLError as exc:
            raise ConfigError(f"invalid YAML in {path}: {exc}") from exc
        if not isinstance(data, dict):
            raise ConfigError(f"configuration {path} must be a mapping")
        settings = cls.from_dict(data)
        logger.info("configuration loaded from %s", path)
        return settings

    def with_exclusions(self, rule_ids: Optional[Tuple[str, ...]]) -> "Settings":
        if not rule_ids:
            return self
        return replace(self, exclude=self.exclude | frozenset(rule_id.upper() for rule_id in rule_ids))

    def band_for(self, line_count: int) -> ScopeBand:
        for band in self.scope_bands:
            if band.covers(line_count):
                return band
        return self.scope_bands[-1]


def _coerce(key: str, value: Any, default: Any) -> Any:
    if key == "scope_bands":
        return _parse_bands(value)
    if isinstance(default, bool):
        if not isinstance(value, bool):
            raise ConfigError(f"{key} must be a boolean")
        return value
    if isinstance(default, int):
        if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
            raise ConfigError(f"{key} must be a positive integer")
        return value
    if isinstance(default, str):
        if not isinstance(value, str):
            raise ConfigError(f"{key} must be a string")
        return value
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple, set)):
        raise ConfigError(f"{key} must be a list")
    items = [str(item) for item in value]
    if key == "exclude":
        items = [item.upper() for item in items]
    if key == "doc_exemptions":
        unknown = sorted(set(items) - DOC_EXEMPTIONS)
        if unknown:
            raise ConfigError(f"unknown doc_exemptions: {', '.join(unknown)}")
    if isinstance(default, frozenset):
        return frozenset(items)
    return tuple(items)


def _parse_bands(value: Any) -> Tuple[ScopeBand, ...]:
    if not isinstance(value, list) or not value:
        raise ConfigError("scope_bands must be a non-empty list")
    bands = []
    for entry in value:
        if not isinstance(entry, dict):
            raise ConfigError("each scope band must be a mapping")
        try:
            band = ScopeBand(
                max_lines=None if entry.get("max_lines") is None else int(entry["max_lines"]),
                min_tokens=int(entry.get("min_tokens", 1)),
                max_tokens=int(entry.get("max_tokens", 4)),
                single_letter=bool(entry.get("single_letter", False)),
            )
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"invalid scope band {entry!r}: {exc}") from exc
        if band.min_tokens > band.max_tokens:
            raise ConfigError(f"scope band {entry!r} has min_tokens above max_tokens")
        bands.append(band)
    return tuple(bands)


def load_settings(path: Optional[str] = None) -> Settings:
    """Load ``path``, or the default file when present, or the defaults."""

    if path:
        return Settings.from_yaml(Path(path))
    default_path = Path(DEFAULT_CONFIG_FILE)
    if default_path.exists():
        return Settings.from_yaml(default_path)
    return Settings()
