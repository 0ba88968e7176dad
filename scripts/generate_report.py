#!/usr/bin/env python3
"""Generate the response-rate outcome report.

Loads the observations spreadsheet and writes the markdown report with its
figures (Vega-Lite specs, CSV data, optional PNG) and LaTeX summary tables.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from orrstrata.analysis import (
    AnalysisError,
    Outcome,
    build_report,
    load_observations,
    write_report,
)
from orrstrata.analysis.config import config
from orrstrata.analysis.figures import default_style
from orrstrata.analysis.figures.spec_builder import apply_publication_theme


def main() -> int:
    """Run the report generation script."""
    parser = argparse.ArgumentParser(
        description="Generate the response-rate outcome report",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("input", type=Path, help="Path to the .xlsx workbook")
    parser.add_argument(
        "--sheet",
        type=str,
        default=config.sheet_name,
        help=f"Sheet holding the observations (default: {config.sheet_name})",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=Path("docs/report"),
        help="Output directory (default: docs/report)",
    )
    parser.add_argument(
        "--outcomes",
        type=str,
        default="all",
        help="Comma-separated outcomes: "
        + ", ".join(o.slug for o in Outcome)
        + " (default: all)",
    )
    parser.add_argument(
        "--no-render",
        action="store_true",
        help="Skip rendering to PNG (only generate specs and CSVs)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.outcomes == "all":
        outcomes = list(Outcome)
    else:
        try:
            outcomes = [Outcome.from_string(name) for name in args.outcomes.split(",")]
        except ValueError as e:
            parser.error(f"Unknown outcome: {e}")

    print(f"Loading observations from {args.input}")
    try:
        df = load_observations(args.input, sheet_name=args.sheet)
    except AnalysisError as e:
        print(f"ERROR: {e}")
        return 1
    print(f"  Observations: {len(df)}")

    apply_publication_theme()
    reports = build_report(df, outcomes, default_style())

    print(f"\nWriting report to {args.output_dir}...")
    report_path = write_report(reports, args.output_dir, render=not args.no_render)

    # Summary
    print(f"\n{'=' * 70}")
    print(f"Report: {report_path}")
    for report in reports:
        failed_groups = [g.label for g in report.group_models.values() if not g.ok]
        problems = list(report.errors) + [f"group:{label}" for label in failed_groups]
        status = "✓" if not problems else f"⚠ not fitted: {', '.join(problems)}"
        print(f"  {report.outcome.slug}: {status}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
