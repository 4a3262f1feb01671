"""Tree document discovery."""

from __future__ import annotations

from pathlib import Path
from typing import Generator, Iterable

DOCUMENT_SUFFIXES = (".ast.json", ".ast.yaml", ".ast.yml")


def iter_document_files(
    root_paths: Iterable[str], suffixes: tuple[str, ...] = DOCUMENT_SUFFIXES
) -> Generator[Path, None, None]:
    """Yield tree documents named directly or found beneath directories."""

    for root in root_paths:
        root_path = Path(root)
        if root_path.is_file():
            yield root_path
            continue
        for path in sorted(root_path.rglob("*")):
            if path.is_file() and path.name.endswith(suffixes):
                yield path
