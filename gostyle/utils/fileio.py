"""Basic file IO helpers."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import yaml


def read_yaml_file(path: Path) -> Any:
    """Return the parsed YAML if the file exists, otherwise ``None``."""

    if not path.exists():
        return None
    with path.open("r", encoding="utf-8") as handle:
        return yaml.safe_load(handle)


def read_structured_file(path: Path) -> Any:
    """Parse a JSON or YAML document, choosing the parser by suffix.

    JSON is a subset of YAML, but the json module is far faster on the
    large documents parsers emit.
    """

    if not path.exists():
        return None
    if path.suffix == ".json":
        with path.open("r", encoding="utf-8") as handle:
            return json.load(handle)
    return read_yaml_file(path)


def read_text_file(path: Path) -> str:
    """Return the file contents as UTF-8 text, or an empty string if missing."""

    if not path.exists():
        return ""
    return path.read_text(encoding="utf-8")


def write_text_file(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
