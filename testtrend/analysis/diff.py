"""Cross-run test identity and status transitions.

Tests are correlated across runs by their key (``spec::scenario``). Any
status other than ``fail`` counts as passing for transition purposes.

Tests that exist in the older run but not in the newer one never show up
in a diff: the diff reports status changes of tests that still exist, not
changes in which tests exist.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from testtrend.model import Run, TestResult


# Step marks produced by step_regressions()
REGRESSION = "regression"
FIXED = "fixed"


@dataclass
class RunDiff:
    """Status transitions between an older run A and a newer run B."""

    new_failures: list[TestResult] = field(default_factory=list)
    fixed: list[TestResult] = field(default_factory=list)
    unchanged_failures: list[TestResult] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.new_failures or self.fixed or self.unchanged_failures)

    def to_dict(self) -> dict[str, list[str]]:
        """Test keys per transition set, for reports."""
        return {
            "new_failures": [t.key for t in self.new_failures],
            "fixed": [t.key for t in self.fixed],
            "unchanged_failures": [t.key for t in self.unchanged_failures],
        }


def result_key(test: TestResult) -> str:
    """Return the cross-run identity of a test."""
    return test.key


def build_index(run: Run) -> dict[str, TestResult]:
    """Index a run's tests by key.

    A duplicated key keeps its first position but the last entry's value.
    """
    index: dict[str, TestResult] = {}
    for test in run.tests:
        index[result_key(test)] = test
    return index


def diff(run_a: Run, run_b: Run) -> RunDiff:
    """Compute status transitions from run A (older) to run B (newer).

    Args:
        run_a: The baseline run.
        run_b: The run being compared against the baseline.

    Returns:
        RunDiff where new_failures and unchanged_failures hold B's tests in
        B's order, and fixed holds B's tests in A's order.
    """
    index_a = build_index(run_a)
    index_b = build_index(run_b)
    result = RunDiff()

    for key, test_b in index_b.items():
        if not test_b.failed:
            continue
        test_a = index_a.get(key)
        if test_a is None or not test_a.failed:
            result.new_failures.append(test_b)
        else:
            result.unchanged_failures.append(test_b)

    for key, test_a in index_a.items():
        test_b = index_b.get(key)
        if test_a.failed and test_b is not None and not test_b.failed:
            result.fixed.append(test_b)

    return result


def step_regressions(current: Run, previous: Run | None) -> dict[str, str]:
    """Mark tests that flipped between two adjacent runs.

    Args:
        current: The newer run.
        previous: The run immediately before it, or None.

    Returns:
        Map of test key to "regression" (pass -> fail) or "fixed"
        (fail -> pass). Tests without a match in ``previous`` and tests
        that did not flip are absent.
    """
    marks: dict[str, str] = {}
    if previous is None:
        return marks

    previous_index = build_index(previous)
    for test in current.tests:
        key = result_key(test)
        prev = previous_index.get(key)
        if prev is None:
            continue
        if test.failed and not prev.failed:
            marks[key] = REGRESSION
        elif not test.failed and prev.failed:
            marks[key] = FIXED
    return marks


def annotate_runs(runs_desc: list[Run]) -> list[tuple[Run, dict[str, str]]]:
    """Pair each run of a newest-first list with its step marks.

    The oldest run has no predecessor and gets an empty map.
    """
    annotated: list[tuple[Run, dict[str, str]]] = []
    for i, run in enumerate(runs_desc):
        previous = runs_desc[i + 1] if i + 1 < len(runs_desc) else None
        annotated.append((run, step_regressions(run, previous)))
    return annotated


def default_pair(runs_desc: list[Run]) -> tuple[Run, Run] | None:
    """Default comparison: second newest run (A) against the newest (B)."""
    if len(runs_desc) < 2:
        return None
    return runs_desc[1], runs_desc[0]
