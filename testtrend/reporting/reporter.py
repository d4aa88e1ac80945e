"""Structured report of the filtered run history.

Collects runs (already filtered) and produces a report dict covering the
run-by-run table, failure groups, pass-rate regressions, and a comparison
of two runs. The report can be written as JSON or YAML.
"""

from __future__ import annotations

import datetime
import json
from pathlib import Path
from typing import Any

import yaml

from testtrend.analysis.classifier import group_failures
from testtrend.analysis.diff import RunDiff, annotate_runs, default_pair, diff
from testtrend.analysis.timeline import (
    REGRESSION_THRESHOLD,
    build_series,
    detect_regressions,
    point_pass_rate,
    tier,
)
from testtrend.filtering.query import sort_runs
from testtrend.model import Run, TestResult


# Lower bound (inclusive) of each run badge
BADGE_PASS = 80.0
BADGE_WARN = 50.0


def badge(pass_rate: float) -> str:
    """Badge of a run card: pass, warn or fail."""
    if pass_rate >= BADGE_PASS:
        return "pass"
    if pass_rate >= BADGE_WARN:
        return "warn"
    return "fail"


class Reporter:
    """Collects runs and generates history reports.

    Runs may be added in any order; the report lists them newest first.
    A comparison defaults to the two newest runs unless set explicitly.
    """

    def __init__(self, regression_threshold: float = REGRESSION_THRESHOLD) -> None:
        self.runs: list[Run] = []
        self.filter_query: str | None = None
        self.comparison: tuple[Run, Run] | None = None
        self.regression_threshold = regression_threshold

    def add_run(self, run: Run) -> None:
        """Add a run to the report."""
        self.runs.append(run)

    def add_runs(self, runs: list[Run]) -> None:
        """Add multiple runs to the report."""
        self.runs.extend(runs)

    def set_filter_query(self, query: str) -> None:
        """Record the encoded filter the runs were selected with.

        Args:
            query: Output of ``encode()``; empty means no filter.
        """
        self.filter_query = query

    def set_comparison(self, run_a: Run, run_b: Run) -> None:
        """Compare run_a (baseline) with run_b instead of the default pair."""
        self.comparison = (run_a, run_b)

    def generate_report(self) -> dict[str, Any]:
        """Generate the report data structure.

        Returns:
            Dictionary representing the full report, suitable for JSON or
            YAML serialization.
        """
        runs_desc = sort_runs(self.runs, newest_first=True)
        points = build_series(runs_desc)
        regressions = detect_regressions(points, self.regression_threshold)

        pair = self.comparison or default_pair(runs_desc)
        run_diff = diff(*pair) if pair is not None else None

        now = datetime.datetime.now(tz=datetime.timezone.utc).isoformat()
        report: dict[str, Any] = {
            "generated_at": now,
            "summary": self._compute_summary(runs_desc, len(regressions), run_diff),
        }

        if self.filter_query:
            report["filter"] = self.filter_query

        report["runs"] = [
            self._format_run(run, marks) for run, marks in annotate_runs(runs_desc)
        ]
        report["regressions"] = [event.to_dict() for event in regressions]

        if pair is not None and run_diff is not None:
            report["comparison"] = {
                "run_a": pair[0].id,
                "run_b": pair[1].id,
                **run_diff.to_dict(),
            }

        return {"report": report}

    def write_report(self, path: Path) -> None:
        """Write the report as a JSON file."""
        report = self.generate_report()
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(report, f, indent=2)

    def write_yaml(self, path: Path) -> None:
        """Write the report as a YAML file."""
        report = self.generate_report()
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            yaml.dump(
                report,
                f,
                default_flow_style=False,
                sort_keys=False,
            )

    def _compute_summary(
        self,
        runs_desc: list[Run],
        regression_count: int,
        run_diff: RunDiff | None,
    ) -> dict[str, Any]:
        """Compute headline numbers for the report."""
        summary: dict[str, Any] = {
            "runs": len(runs_desc),
            "regressions": regression_count,
        }
        if runs_desc:
            latest = runs_desc[0]
            summary["latest_run"] = latest.id
            latest_rate = point_pass_rate(latest.total, latest.passed)
            summary["latest_pass_rate"] = round(latest_rate, 1)
            summary["latest_tier"] = tier(latest_rate)
        if run_diff is not None:
            summary["new_failures"] = len(run_diff.new_failures)
            summary["fixed"] = len(run_diff.fixed)
            summary["unchanged_failures"] = len(run_diff.unchanged_failures)
        return summary

    def _format_run(self, run: Run, marks: dict[str, str]) -> dict[str, Any]:
        """Format one run card, failing tests first.

        The pass rate is recomputed from the counts, as on the timeline.
        """
        pass_rate = point_pass_rate(run.total, run.passed)
        entry: dict[str, Any] = {
            "id": run.id,
            "date": run.date,
            "label": run.label,
            "pass_rate": round(pass_rate, 1),
            "badge": badge(pass_rate),
            "passed": run.passed,
            "failed": run.failed,
            "total": run.total,
        }
        if run.duration:
            entry["duration"] = run.duration
        if run.commit_sha:
            entry["commit"] = run.commit_sha
        if run.categories:
            entry["categories"] = dict(run.categories)

        groups = group_failures(run)
        if groups:
            entry["failure_groups"] = [
                {"category": g.category, "count": g.count, "tests": list(g.tests)}
                for g in groups
            ]

        ordered = sorted(run.tests, key=lambda t: 0 if t.failed else 1)
        entry["tests"] = [self._format_test(t, marks.get(t.key)) for t in ordered]
        return entry

    def _format_test(self, test: TestResult, mark: str | None) -> dict[str, Any]:
        """Format a single test row."""
        row: dict[str, Any] = {
            "spec": test.spec,
            "scenario": test.scenario,
            "status": test.status,
        }
        if mark:
            row["mark"] = mark
        if test.duration:
            row["duration"] = test.duration
        if test.category:
            row["category"] = test.category
        if test.error:
            row["error"] = test.error
        return row
