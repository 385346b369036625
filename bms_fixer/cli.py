#!/usr/bin/env python3
"""
bms-fixer — Find and repair over-long measure length values in BMS charts

Scans .bms / .bme / .bml / .bmx files for channel 02 (measure length)
values longer than 10 characters, which many BMS players refuse to load,
and truncates them.  By default nothing is written (dry run).

Usage:
    bms-fixer <chart_file_or_directory> [...]
    bms-fixer "songs/"
    bms-fixer --fix --backup "songs/foo/7key_hyper.bms"
    bms-fixer --fix --workers 8 -v "songs/"

Flags:
    --fix       Write corrected charts back to disk
    --backup    Keep a <chart>.bak copy before overwriting
    --verbose   Log every correction (-vv for debug output)
    --json      Output results as JSON
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from loguru import logger

from bms_fixer.config import (
    CHART_ENCODING,
    CHART_EXTENSIONS,
    DEBUG,
    LOG_LEVEL,
    VERBOSE,
    WORKERS,
    parse_extensions,
)
from bms_fixer.services.chart_fixer import FixResult, fix_chart_files
from bms_fixer.services.file_enumerator import (
    InvalidPathError,
    find_chart_files,
    unique_paths,
)

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


def configure_logging(verbose: int = 0) -> None:
    """Replace loguru's default handler with a single stderr sink."""
    logger.remove()
    level = "DEBUG" if DEBUG or verbose >= 2 else LOG_LEVEL
    logger.add(
        sys.stderr,
        level=level,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <level>{message}</level>",
        colorize=True,
    )


# ---------------------------------------------------------------------------
# Reporting
# ---------------------------------------------------------------------------


def _print_report(
    results: List[FixResult], invalid_targets: List[str], write: bool
) -> None:
    for result in results:
        if not (result.modified or result.has_error):
            continue
        print()
        print("=" * 60)
        print(result.summary())
        print("-" * 60)
        for fix in result.fixes:
            print(f"  line {fix.line}: {fix.original} → {fix.corrected}")

    for target in invalid_targets:
        print(f"❌ Not a valid target: {target}")

    modified = sum(1 for r in results if r.modified)
    saved = sum(1 for r in results if r.saved)
    failed = sum(1 for r in results if r.has_error)
    print()
    print(
        f"Checked {len(results)} chart(s): {modified} need fixing, "
        f"{saved} saved, {failed} failed"
    )
    if modified and not write:
        print("Dry run — re-run with --fix to write the corrections.")


def _json_report(results: List[FixResult], invalid_targets: List[str]) -> Dict[str, Any]:
    return {
        "results": [r.to_dict() for r in results],
        "invalid_targets": invalid_targets,
        "counts": {
            "checked": len(results),
            "modified": sum(1 for r in results if r.modified),
            "saved": sum(1 for r in results if r.saved),
            "failed": sum(1 for r in results if r.has_error),
        },
    }


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bms-fixer",
        description="Find and repair over-long measure length values in BMS charts",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "path", nargs="+", help="Chart file(s) or directories to scan recursively"
    )
    parser.add_argument(
        "--fix", action="store_true", help="Write corrected charts back to disk"
    )
    parser.add_argument(
        "--backup",
        action="store_true",
        help="Keep a copy of each original chart before overwriting it",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="count",
        default=VERBOSE,
        help="Log each correction; repeat for debug output",
    )
    parser.add_argument("--json", action="store_true", help="Output results as JSON")
    parser.add_argument(
        "--workers",
        type=int,
        default=WORKERS,
        help=f"Charts to process in parallel (default: {WORKERS})",
    )
    parser.add_argument(
        "--encoding",
        default=CHART_ENCODING,
        help=f"Text encoding of the charts (default: {CHART_ENCODING})",
    )
    parser.add_argument(
        "--ext",
        action="append",
        help=(
            "Chart extension to include; may be repeated "
            f"(default: {' '.join(CHART_EXTENSIONS)})"
        ),
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    extensions = parse_extensions(",".join(args.ext)) if args.ext else CHART_EXTENSIONS

    chart_paths: List[Path] = []
    invalid_targets: List[str] = []
    for target in args.path:
        try:
            chart_paths.extend(find_chart_files(target, extensions))
        except InvalidPathError as e:
            logger.error("Not a valid target: {}", e.path)
            invalid_targets.append(e.path)
        except OSError as e:
            logger.error("Cannot scan {}: {}", target, e)
            invalid_targets.append(str(target))

    chart_paths = unique_paths(chart_paths)
    logger.info("Found {} file(s) to process.", len(chart_paths))

    results = fix_chart_files(
        chart_paths,
        write=args.fix,
        backup=args.backup,
        verbose=args.verbose,
        encoding=args.encoding,
        workers=args.workers,
    )

    if args.json:
        print(json.dumps(_json_report(results, invalid_targets), indent=2))
    else:
        _print_report(results, invalid_targets, args.fix)

    if invalid_targets or any(r.has_error for r in results):
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
