"""Unit tests for cross-run identity and diffs."""

from __future__ import annotations

from typing import Any

from testtrend.analysis.diff import (
    FIXED,
    REGRESSION,
    annotate_runs,
    build_index,
    default_pair,
    diff,
    result_key,
    step_regressions,
)
from testtrend.ingest.normalizer import normalize
from testtrend.model import Run, TestResult


def _run(date: str, tests: list[dict[str, Any]]) -> Run:
    """Create a run from compact test dicts."""
    return normalize({"date": date, "tests": tests})


def _t(scenario: str, status: str, spec: str = "S1") -> dict[str, Any]:
    return {"spec": spec, "scenario": scenario, "status": status}


class TestIdentity:
    """Tests for the test key and run index."""

    def test_key_uses_spec_and_scenario(self):
        """Key is spec::scenario."""
        assert result_key(TestResult(spec="Pipelines", scenario="run")) == "Pipelines::run"

    def test_key_falls_back_to_name(self):
        """A test with only a name uses it as the scenario."""
        run = _run("2025-03-01", [{"spec": "S", "name": "by-name", "status": "pass"}])
        assert result_key(run.tests[0]) == "S::by-name"

    def test_index_last_write_wins(self):
        """Duplicate keys keep the last entry."""
        run = _run("2025-03-01", [_t("t1", "pass"), _t("t1", "fail")])
        index = build_index(run)
        assert len(index) == 1
        assert index["S1::t1"].status == "fail"

    def test_equal_key_means_same_test(self):
        """Tests with the same key correlate regardless of other fields."""
        run_a = _run("2025-03-01", [{"spec": "S1", "scenario": "t1", "status": "fail", "duration": "1s"}])
        run_b = _run("2025-03-02", [{"spec": "S1", "scenario": "t1", "status": "fail", "duration": "9s",
                                     "category": "ConfigGap"}])
        result = diff(run_a, run_b)
        assert [t.key for t in result.unchanged_failures] == ["S1::t1"]


class TestDiff:
    """Tests for the new-failure / fixed / unchanged partition."""

    def test_fixed_and_new_failure(self):
        """A failing test that now passes is fixed; a new failing test is new."""
        run_a = _run("2025-03-01", [_t("t1", "fail")])
        run_b = _run("2025-03-02", [_t("t1", "pass"), _t("t2", "fail")])

        result = diff(run_a, run_b)

        assert [t.scenario for t in result.fixed] == ["t1"]
        assert [t.scenario for t in result.new_failures] == ["t2"]
        assert result.unchanged_failures == []

    def test_pass_to_fail_is_new_failure(self):
        """A test that passed in A and fails in B is a new failure."""
        run_a = _run("2025-03-01", [_t("t1", "pass")])
        run_b = _run("2025-03-02", [_t("t1", "fail")])
        assert [t.scenario for t in diff(run_a, run_b).new_failures] == ["t1"]

    def test_unchanged_failure(self):
        """Failing in both runs is unchanged."""
        run_a = _run("2025-03-01", [_t("t1", "fail")])
        run_b = _run("2025-03-02", [_t("t1", "failed")])
        result = diff(run_a, run_b)
        assert [t.scenario for t in result.unchanged_failures] == ["t1"]
        assert result.new_failures == []

    def test_fixed_reports_run_b_test(self):
        """Fixed entries are taken from run B."""
        run_a = _run("2025-03-01", [{"spec": "S1", "scenario": "t1", "status": "fail", "duration": "1s"}])
        run_b = _run("2025-03-02", [{"spec": "S1", "scenario": "t1", "status": "pass", "duration": "2s"}])
        assert diff(run_a, run_b).fixed[0].duration == "2s"

    def test_passing_tests_not_reported(self):
        """Tests passing in B appear in no list unless they were fixed."""
        run_a = _run("2025-03-01", [_t("t1", "pass")])
        run_b = _run("2025-03-02", [_t("t1", "pass"), _t("t2", "pass")])
        assert diff(run_a, run_b).is_empty

    def test_ordering_follows_runs(self):
        """New/unchanged follow B's order, fixed follows A's order."""
        run_a = _run("2025-03-01", [_t("f2", "fail"), _t("f1", "fail"), _t("u", "fail")])
        run_b = _run("2025-03-02", [
            _t("n2", "fail"), _t("f1", "pass"), _t("u", "fail"), _t("n1", "fail"), _t("f2", "pass"),
        ])
        result = diff(run_a, run_b)
        assert [t.scenario for t in result.new_failures] == ["n2", "n1"]
        assert [t.scenario for t in result.fixed] == ["f2", "f1"]

    def test_partition_is_exact(self):
        """Every failing test in B lands in exactly one of the two failure lists."""
        run_a = _run("2025-03-01", [_t("a", "fail"), _t("b", "pass"), _t("c", "fail")])
        run_b = _run("2025-03-02", [_t("a", "fail"), _t("b", "fail"), _t("d", "fail"), _t("c", "pass")])
        result = diff(run_a, run_b)

        failing_b = {t.key for t in run_b.tests if t.failed}
        new_keys = {t.key for t in result.new_failures}
        unchanged_keys = {t.key for t in result.unchanged_failures}
        assert new_keys | unchanged_keys == failing_b
        assert new_keys & unchanged_keys == set()
        assert {t.key for t in result.fixed} == {"S1::c"}

    def test_removed_tests_are_invisible(self):
        """Known limitation: a test missing from B is neither fixed nor failing."""
        run_a = _run("2025-03-01", [_t("gone", "fail"), _t("stays", "fail")])
        run_b = _run("2025-03-02", [_t("stays", "fail")])
        result = diff(run_a, run_b)
        assert result.fixed == []
        assert [t.scenario for t in result.unchanged_failures] == ["stays"]
        assert "S1::gone" not in {t.key for t in result.new_failures}

    def test_unknown_status_counts_as_not_failing(self):
        """An unknown status in B after a failure in A counts as fixed."""
        run_a = _run("2025-03-01", [_t("t1", "fail")])
        run_b = _run("2025-03-02", [{"spec": "S1", "scenario": "t1"}])
        assert [t.scenario for t in diff(run_a, run_b).fixed] == ["t1"]

    def test_empty_runs(self):
        """Runs without tests give an empty diff."""
        result = diff(_run("2025-03-01", []), _run("2025-03-02", []))
        assert result.is_empty
        assert result.to_dict() == {"new_failures": [], "fixed": [], "unchanged_failures": []}


class TestStepRegressions:
    """Tests for adjacent-run flip marks."""

    def test_flips_marked(self):
        """pass->fail is a regression, fail->pass is fixed."""
        previous = _run("2025-03-01", [_t("a", "pass"), _t("b", "fail"), _t("c", "pass")])
        current = _run("2025-03-02", [_t("a", "fail"), _t("b", "pass"), _t("c", "pass"), _t("d", "fail")])
        assert step_regressions(current, previous) == {"S1::a": REGRESSION, "S1::b": FIXED}

    def test_no_previous(self):
        """Without a previous run there are no marks."""
        current = _run("2025-03-02", [_t("a", "fail")])
        assert step_regressions(current, None) == {}


class TestRunPairs:
    """Tests for per-run annotation and the default comparison pair."""

    def test_annotate_newest_first(self):
        """Each run is compared with the next older one."""
        newest = _run("2025-03-03", [_t("a", "fail")])
        middle = _run("2025-03-02", [_t("a", "pass")])
        oldest = _run("2025-03-01", [_t("a", "fail")])

        annotated = annotate_runs([newest, middle, oldest])

        assert [marks for _run_, marks in annotated] == [
            {"S1::a": REGRESSION},
            {"S1::a": FIXED},
            {},
        ]

    def test_default_pair(self):
        """A is the second newest run and B the newest."""
        newest = _run("2025-03-03", [])
        older = _run("2025-03-02", [])
        assert default_pair([newest, older]) == (older, newest)
        assert default_pair([newest]) is None
