"""Command-line entry point for the run history dashboard.

Loads a local run directory (a manifest.json plus the run files it lists)
and prints or writes the derived views: a run summary report, a two-run
comparison, the pass-rate timeline, and the CSV export.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from testtrend.analysis.diff import default_pair, diff
from testtrend.analysis.timeline import (
    build_series,
    cpu_series,
    detect_regressions,
    throughput_series,
    tick_interval,
)
from testtrend.config import DashboardConfig
from testtrend.filtering.query import apply_filters, select_runs, sort_runs
from testtrend.filtering.state import FilterSession
from testtrend.ingest.manifest import ManifestError, load_manifest, load_runs
from testtrend.model import Run
from testtrend.reporting.exporter import to_csv, write_csv
from testtrend.reporting.reporter import Reporter


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Test run history dashboard - diffs, trends, and exports"
    )
    parser.add_argument(
        "--config-file",
        type=Path,
        default=None,
        help="Path to the .testtrend_config JSON file",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        default=False,
        help="Enable debug logging",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    def add_common(sub: argparse.ArgumentParser) -> None:
        sub.add_argument(
            "--manifest",
            type=Path,
            required=True,
            help="Path to manifest.json; run files are resolved relative to it",
        )
        sub.add_argument(
            "--filter",
            type=str,
            default="",
            help="Encoded filter, e.g. 'category=ConfigGap&dateFrom=2025-03-01'",
        )

    summary_parser = subparsers.add_parser(
        "summary",
        help="Print run summaries or write a full report",
    )
    add_common(summary_parser)
    summary_parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Path to write the report file",
    )
    summary_parser.add_argument(
        "--format",
        choices=["json", "yaml"],
        default="json",
        help="Report file format (default: json)",
    )

    compare_parser = subparsers.add_parser(
        "compare",
        help="Show new failures, fixed tests, and unchanged failures between two runs",
    )
    add_common(compare_parser)
    compare_parser.add_argument(
        "--run-a",
        type=str,
        default=None,
        help="Baseline run id (default: second newest run)",
    )
    compare_parser.add_argument(
        "--run-b",
        type=str,
        default=None,
        help="Compared run id (default: newest run)",
    )

    timeline_parser = subparsers.add_parser(
        "timeline",
        help="Print the pass-rate timeline with regression markers",
    )
    add_common(timeline_parser)
    timeline_parser.add_argument(
        "--threshold",
        type=float,
        default=None,
        help="Pass-rate drop in points flagged as a regression",
    )

    export_parser = subparsers.add_parser(
        "export",
        help="Export the filtered run history as CSV",
    )
    add_common(export_parser)
    export_parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Path to write the CSV file (default: stdout)",
    )

    return parser.parse_args(argv)


def _load(args: argparse.Namespace, config: DashboardConfig) -> tuple[list[Run], FilterSession] | None:
    """Load runs from the manifest and restore the filter.

    Returns:
        Runs (newest first) and the filter session, or None on error.
    """
    try:
        manifest = load_manifest(args.manifest)
    except ManifestError as e:
        print(f"Error: {e}", file=sys.stderr)
        return None

    runs = load_runs(manifest, args.manifest.parent, max_runs=config.max_runs)
    session = FilterSession()
    session.restore(args.filter)
    return runs, session


def cmd_summary(args: argparse.Namespace, config: DashboardConfig) -> int:
    """Print one line per run, or write the full report."""
    loaded = _load(args, config)
    if loaded is None:
        return 1
    runs, session = loaded

    views = apply_filters(runs, session.state)
    reporter = Reporter(regression_threshold=config.regression_threshold)
    reporter.add_runs(views)
    reporter.set_filter_query(session.query)

    if args.output is not None:
        if args.format == "yaml":
            reporter.write_yaml(args.output)
        else:
            reporter.write_report(args.output)
        print(f"Report written to {args.output}")
        return 0

    if not views:
        print("No runs match the current filter.")
        return 0

    report = reporter.generate_report()["report"]
    for run in report["runs"]:
        line = (
            f"{run['label']:<28} {run['pass_rate']:>5.1f}% [{run['badge']}] "
            f"{run['passed']} passed / {run['failed']} failed / {run['total']} total"
        )
        if "duration" in run:
            line += f"  {run['duration']}"
        print(line)
    summary = report["summary"]
    print()
    print(f"Runs: {summary['runs']}  Regressions: {summary['regressions']}")
    return 0


def cmd_compare(args: argparse.Namespace, config: DashboardConfig) -> int:
    """Print the diff between two runs."""
    loaded = _load(args, config)
    if loaded is None:
        return 1
    runs, session = loaded

    views = sort_runs(apply_filters(runs, session.state))
    by_id = {run.id: run for run in views}

    if args.run_a or args.run_b:
        pair = _explicit_pair(views, by_id, args.run_a, args.run_b)
    else:
        selected = select_runs(views, session.state)
        pair = (selected[0], selected[1]) if len(selected) >= 2 else default_pair(views)

    if pair is None:
        print("Error: comparison needs two runs", file=sys.stderr)
        return 1

    run_a, run_b = pair
    result = diff(run_a, run_b)
    print(f"Comparison: {run_a.label} vs {run_b.label}")
    for title, tests in (
        ("New Failures", result.new_failures),
        ("Fixed", result.fixed),
        ("Unchanged Failures", result.unchanged_failures),
    ):
        print(f"\n{title} ({len(tests)})")
        if not tests:
            print("  None")
        for test in tests:
            suffix = f" [{test.category}]" if test.category else ""
            print(f"  {test.spec} / {test.scenario}{suffix}")

    if result.is_empty:
        print("\nNo test differences found between these runs.")
    return 0


def _explicit_pair(
    views: list[Run],
    by_id: dict[str, Run],
    run_a: str | None,
    run_b: str | None,
) -> tuple[Run, Run] | None:
    """Resolve --run-a/--run-b, defaulting the missing side like the default pair."""
    default = default_pair(views)
    a = by_id.get(run_a) if run_a else (default[0] if default else None)
    b = by_id.get(run_b) if run_b else (default[1] if default else None)
    if a is None or b is None:
        return None
    return a, b


def cmd_timeline(args: argparse.Namespace, config: DashboardConfig) -> int:
    """Print the pass-rate series with regression markers."""
    loaded = _load(args, config)
    if loaded is None:
        return 1
    runs, session = loaded

    points = build_series(apply_filters(runs, session.state))
    if not points:
        print("No historical run data available.")
        return 0

    threshold = args.threshold if args.threshold is not None else config.regression_threshold
    regressions = {e.index: e for e in detect_regressions(points, threshold)}

    for i, point in enumerate(points):
        line = f"{point.date_str}  {point.pass_rate:5.1f}%  {point.tier:<8} {point.commit_sha[:8]}"
        if i in regressions:
            line += f"  ↓{regressions[i].magnitude:.0f}%"
        print(line)

    throughput = throughput_series(points, config.throughput_fallback_max)
    cpu = cpu_series(points, config.cpu_fallback_max)
    print()
    print(f"Regressions: {len(regressions)} (threshold {threshold:g} points)")
    print(f"Tick interval: {tick_interval(len(points), config.max_ticks)} day(s)")
    if not throughput.empty:
        print(f"Throughput: {len(throughput.points)} point(s), scale 0-{throughput.domain[1]:.1f}/min")
    if not cpu.empty:
        print(f"CPU: {len(cpu.points)} point(s), scale 0-{cpu.domain[1]:.0f}m")
    return 0


def cmd_export(args: argparse.Namespace, config: DashboardConfig) -> int:
    """Write or print the CSV export, one row per timeline point."""
    loaded = _load(args, config)
    if loaded is None:
        return 1
    runs, session = loaded

    views = sort_runs(apply_filters(runs, session.state), newest_first=False)
    dated = [run for run in views if run.timestamp is not None]
    if args.output is not None:
        write_csv(dated, args.output)
        print(f"Exported {len(dated)} run(s) to {args.output}")
    else:
        print(to_csv(dated))
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    if args.verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        )

    if args.command is None:
        parse_args(["--help"])
        return 1

    config = DashboardConfig(args.config_file)

    if args.command == "summary":
        return cmd_summary(args, config)
    elif args.command == "compare":
        return cmd_compare(args, config)
    elif args.command == "timeline":
        return cmd_timeline(args, config)
    elif args.command == "export":
        return cmd_export(args, config)
    else:
        print(f"Unknown command: {args.command}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
