"""Unit tests for the history reporter."""

from __future__ import annotations

import json
import tempfile
from pathlib import Path

import pytest
import yaml

from testtrend.ingest.normalizer import normalize
from testtrend.model import Run
from testtrend.reporting.reporter import Reporter, badge


def _run(run_id: str, date: str, tests: list[dict]) -> Run:
    return normalize({"id": run_id, "date": date, "tests": tests})


def _history():
    """Older run with one failure, newer run where it is fixed and another fails."""
    older = _run("r1", "2025-03-01", [
        {"spec": "S1", "scenario": "t1", "status": "fail", "error": "secret not found"},
        {"spec": "S1", "scenario": "t2", "status": "pass"},
    ])
    newer = _run("r2", "2025-03-02", [
        {"spec": "S1", "scenario": "t2", "status": "fail", "error": "timeout"},
        {"spec": "S1", "scenario": "t1", "status": "pass"},
    ])
    return older, newer


class TestBadge:
    """Tests for run card badges."""

    @pytest.mark.parametrize("rate,expected", [
        (100, "pass"), (80, "pass"), (79.9, "warn"), (50, "warn"), (49.9, "fail"), (0, "fail"),
    ])
    def test_thresholds(self, rate, expected):
        assert badge(rate) == expected


class TestGenerateReport:
    """Tests for the report structure."""

    def test_empty(self):
        report = Reporter().generate_report()["report"]
        assert report["summary"] == {"runs": 0, "regressions": 0}
        assert report["runs"] == []
        assert report["regressions"] == []
        assert "comparison" not in report
        assert "filter" not in report

    def test_runs_newest_first(self):
        older, newer = _history()
        reporter = Reporter()
        reporter.add_run(older)
        reporter.add_run(newer)
        report = reporter.generate_report()["report"]
        assert [r["id"] for r in report["runs"]] == ["r2", "r1"]
        assert report["summary"]["latest_run"] == "r2"
        assert report["summary"]["latest_tier"] == "poor"

    def test_tests_failing_first_with_marks(self):
        older, newer = _history()
        reporter = Reporter()
        reporter.add_runs([older, newer])
        newest = reporter.generate_report()["report"]["runs"][0]

        assert [t["scenario"] for t in newest["tests"]] == ["t2", "t1"]
        assert newest["tests"][0]["mark"] == "regression"
        assert newest["tests"][1]["mark"] == "fixed"
        assert newest["badge"] == "warn"

    def test_failure_groups(self):
        older, _newer = _history()
        reporter = Reporter()
        reporter.add_run(older)
        run = reporter.generate_report()["report"]["runs"][0]
        assert run["failure_groups"] == [
            {"category": "ConfigGap", "count": 1, "tests": ["S1::t1"]},
        ]
        assert run["categories"] == {"ConfigGap": 1}

    def test_default_comparison(self):
        older, newer = _history()
        reporter = Reporter()
        reporter.add_runs([newer, older])
        report = reporter.generate_report()["report"]
        assert report["comparison"] == {
            "run_a": "r1",
            "run_b": "r2",
            "new_failures": ["S1::t2"],
            "fixed": ["S1::t1"],
            "unchanged_failures": [],
        }
        assert report["summary"]["new_failures"] == 1
        assert report["summary"]["fixed"] == 1

    def test_explicit_comparison(self):
        older, newer = _history()
        reporter = Reporter()
        reporter.add_runs([older, newer])
        reporter.set_comparison(newer, older)
        comparison = reporter.generate_report()["report"]["comparison"]
        assert comparison["run_a"] == "r2"
        assert comparison["new_failures"] == ["S1::t1"]

    def test_regressions(self):
        reporter = Reporter()
        reporter.add_runs([
            normalize({"date": "2025-03-01", "total": 10, "passed": 10, "failed": 0}),
            normalize({"date": "2025-03-02", "total": 10, "passed": 5, "failed": 5}),
        ])
        report = reporter.generate_report()["report"]
        assert report["summary"]["regressions"] == 1
        assert report["regressions"][0]["magnitude"] == 50.0

    def test_custom_threshold(self):
        reporter = Reporter(regression_threshold=60)
        reporter.add_runs([
            normalize({"date": "2025-03-01", "total": 10, "passed": 10, "failed": 0}),
            normalize({"date": "2025-03-02", "total": 10, "passed": 5, "failed": 5}),
        ])
        assert reporter.generate_report()["report"]["regressions"] == []

    def test_pass_rate_follows_counts(self):
        """A recorded pass_rate that disagrees with the counts is not used."""
        reporter = Reporter()
        reporter.add_run(normalize({
            "date": "2025-03-01", "total": 4, "passed": 1, "failed": 3, "pass_rate": 95.0,
        }))
        report = reporter.generate_report()["report"]
        assert report["runs"][0]["pass_rate"] == 25.0
        assert report["runs"][0]["badge"] == "fail"
        assert report["summary"]["latest_pass_rate"] == 25.0
        assert report["summary"]["latest_tier"] == "critical"

    def test_filter_recorded(self):
        reporter = Reporter()
        reporter.set_filter_query("category=ConfigGap")
        assert reporter.generate_report()["report"]["filter"] == "category=ConfigGap"


class TestWriteReport:
    """Tests for writing reports to disk."""

    def test_write_json(self):
        older, newer = _history()
        reporter = Reporter()
        reporter.add_runs([older, newer])
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "sub" / "report.json"
            reporter.write_report(path)
            data = json.loads(path.read_text())
            assert data["report"]["summary"]["runs"] == 2

    def test_write_yaml(self):
        older, newer = _history()
        reporter = Reporter()
        reporter.add_runs([older, newer])
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "report.yaml"
            reporter.write_yaml(path)
            data = yaml.safe_load(path.read_text())
            assert [r["id"] for r in data["report"]["runs"]] == ["r2", "r1"]
            assert list(data["report"])[:2] == ["generated_at", "summary"]
