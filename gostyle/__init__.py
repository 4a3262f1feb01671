"""Style-conformance analysis engine for Go parse trees."""

from importlib.metadata import version, PackageNotFoundError

from .engine import analyze, analyze_document, analyze_many, apply_patches

try:
    __version__ = version("gostyle")
except PackageNotFoundError:  # pragma: no cover
    __version__ = "0.1.0-dev"

__all__ = ["__version__", "analyze", "analyze_document", "analyze_many", "apply_patches"]
