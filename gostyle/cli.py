"""Command-line entry point for the gostyle analyser."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional, Tuple

from .config import load_settings
from .engine import analyze_many
from .errors import GoStyleError, MalformedInputError
from .fixes import apply_patches
from .registry import RuleRegistry, default_registry
from .result import AnalysisResult, Report, format_finding_lines, format_summary_table
from .source import SourceUnit
from .utils import iter_document_files, write_text_file
from .utils.logger import setup_logging
from .utils.tree import load_document, source_path_for, unit_from_document

logger = logging.getLogger(__name__)

EXIT_UNUSABLE_INPUT = 3


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gostyle",
        description="Style-conformance analysis for Go parse-tree documents",
    )
    parser.add_argument(
        "documents",
        nargs="*",
        metavar="DOCUMENT",
        help="Tree document (.ast.json/.ast.yaml) or directory containing them.",
    )
    parser.add_argument(
        "--config",
        "-c",
        default=None,
        help="Path to a settings file (defaults to .gostyle.yaml when present).",
    )
    parser.add_argument(
        "--exclude",
        "-x",
        action="append",
        default=[],
        metavar="RULE_ID",
        help="Rule id to suppress for this run (repeatable, comma lists accepted).",
    )
    parser.add_argument(
        "--format",
        choices=["text", "json"],
        default="text",
        help="Report format (defaults to text).",
    )
    parser.add_argument(
        "--out",
        "--output",
        dest="output_path",
        type=str,
        default=None,
        help="Path to write the report (e.g., artifacts/style.json).",
    )
    parser.add_argument(
        "--jobs",
        "-j",
        type=int,
        default=1,
        help="Number of files analysed in parallel.",
    )
    parser.add_argument(
        "--apply",
        action="store_true",
        help="Write patched sources back to the files named in the documents.",
    )
    parser.add_argument(
        "--list-rules",
        action="store_true",
        help="Print the rule catalog and exit.",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Diagnostic log level (overrides the settings file).",
    )
    parser.add_argument(
        "--log-file",
        default=None,
        help="Also write diagnostics to this file.",
    )
    return parser


def split_rule_ids(values: List[str]) -> Tuple[str, ...]:
    ids = []
    for value in values:
        ids.extend(part.strip().upper() for part in value.split(",") if part.strip())
    return tuple(ids)


def format_rule_table(registry: RuleRegistry) -> str:
    lines = [f"Rule catalog v{registry.version}", "=" * 40]
    for rule in registry:
        fix = f" [fix: {rule.fix}]" if rule.fix else ""
        lines.append(f"{rule.id:<7} {rule.severity.value:<10} {rule.category.value:<15} {rule.summary}{fix}")
    return "\n".join(lines)


def load_units(documents: List[str]) -> List[Tuple[SourceUnit, Optional[Path]]]:
    """Load every tree document; the path is set when the source came from a file."""

    units: List[Tuple[SourceUnit, Optional[Path]]] = []
    for document_path in iter_document_files(documents):
        document = load_document(document_path)
        unit = unit_from_document(document, base_dir=document_path.parent)
        source_file = None
        if document.get("source") is None:
            source_file = source_path_for(document, document_path.parent)
        units.append((unit, source_file))
        logger.debug("loaded %s from %s", unit.path, document_path)
    if not units:
        raise MalformedInputError(f"no tree documents found in {', '.join(documents)}")
    return units


def apply_fixes(units: List[Tuple[SourceUnit, Optional[Path]]], results: List[AnalysisResult]) -> int:
    """Write patched sources back and return the number of files changed."""

    changed = 0
    for (unit, source_file), result in zip(units, results):
        patches = result.patches
        if not patches:
            continue
        if source_file is None:
            logger.warning("%s: source is embedded in the document, patches not applied", unit.path)
            continue
        write_text_file(source_file, apply_patches(unit.text, patches))
        logger.info("%s: applied %d patches", source_file, len(patches))
        changed += 1
    return changed


def write_output(report: Report, output_path: Optional[str], report_format: str) -> None:
    summary = format_summary_table(report)
    print(summary)

    if report_format == "json":
        payload = json.dumps(report.to_dict(), indent=2)
    else:
        payload = format_finding_lines(report)
    if output_path:
        output_file = Path(output_path)
        output_file.parent.mkdir(parents=True, exist_ok=True)
        output_file.write_text(payload + "\n", encoding="utf-8")
        print(f"\nReport written to {output_path}")
    elif payload:
        print("\nJSON Report" if report_format == "json" else "\nFindings")
        print(payload)


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        settings = load_settings(args.config).with_exclusions(split_rule_ids(args.exclude))
        setup_logging(args.log_level or settings.log_level, args.log_file)
        registry = default_registry()
        if args.list_rules:
            print(format_rule_table(registry))
            return 0
        if not args.documents:
            parser.error("at least one DOCUMENT is required")
        units = load_units(args.documents)
        results = analyze_many(
            [unit for unit, _ in units],
            jobs=args.jobs,
            registry=registry,
            settings=settings,
        )
        report = Report(results)
        write_output(report, args.output_path, args.format)
        if args.apply:
            changed = apply_fixes(units, results)
            print(f"\nPatched {changed} file(s)")
    except GoStyleError as exc:
        print(f"gostyle: {exc}", file=sys.stderr)
        return EXIT_UNUSABLE_INPUT
    return report.exit_code()


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
