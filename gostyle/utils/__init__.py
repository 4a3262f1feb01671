"""Utility helpers for the style engine."""

from .code import iter_document_files
from .fileio import read_structured_file, read_text_file, read_yaml_file, write_text_file
from .identifiers import INITIALISMS, split_words, to_mixed_caps, words

__all__ = [
    "INITIALISMS",
    "iter_document_files",
    "read_structured_file",
    "read_text_file",
    "read_yaml_file",
    "split_words",
    "to_mixed_caps",
    "words",
    "write_text_file",
]
