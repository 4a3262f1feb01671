"""Tree document helpers."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict

import yaml

from ..adapter import build_source_unit
from ..errors import MalformedInputError
from ..source import SourceUnit
from .fileio import read_structured_file, read_text_file


def load_document(path: Path) -> Dict[str, Any]:
    """Load a parser tree document into a dictionary."""

    try:
        data = read_structured_file(path)
    except (ValueError, yaml.YAMLError) as exc:
        raise MalformedInputError(f"cannot parse tree document: {exc}", str(path)) from exc
    if data is None:
        raise MalformedInputError("tree document not found", str(path))
    if not isinstance(data, dict):
        raise MalformedInputError("tree document is not a mapping", str(path))
    return data


def unit_from_document(document: Dict[str, Any], base_dir: Path = Path(".")) -> SourceUnit:
    """Resolve the document's source text and adapt its tree."""

    path = document.get("path")
    if not isinstance(path, str) or not path:
        raise MalformedInputError("tree document has no 'path'")
    text = document.get("source")
    if text is None:
        source_path = source_path_for(document, base_dir)
        if not source_path.exists():
            raise MalformedInputError(f"source file {source_path} not found", path)
        text = read_text_file(source_path)
    if not isinstance(text, str):
        raise MalformedInputError("'source' must be a string", path)
    tree = document.get("tree")
    if not isinstance(tree, dict):
        raise MalformedInputError("tree document has no 'tree'", path)
    return build_source_unit(path, text, tree)


def source_path_for(document: Dict[str, Any], base_dir: Path) -> Path:
    path = Path(str(document.get("path", "")))
    return path if path.is_absolute() else base_dir / path


def load_source_unit(path: Path) -> SourceUnit:
    return unit_from_document(load_document(path), base_dir=path.parent)
