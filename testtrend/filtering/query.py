"""Applying filter predicates to runs and tests."""

from __future__ import annotations

import datetime
from dataclasses import replace

from testtrend.filtering.state import FilterState
from testtrend.ingest.normalizer import canonical_status, parse_timestamp
from testtrend.model import STATUS_FAIL, STATUS_PASS, STATUS_UNKNOWN, Run, TestResult


def _date_bounds(
    state: FilterState,
) -> tuple[datetime.datetime | None, datetime.datetime | None]:
    """Resolve the date range; the upper bound covers its whole day."""
    lower = parse_timestamp(state.date_from) if state.date_from else None
    if lower is not None:
        lower = datetime.datetime.combine(lower.date(), datetime.time.min)

    upper = parse_timestamp(state.date_to) if state.date_to else None
    if upper is not None:
        upper = datetime.datetime.combine(upper.date(), datetime.time(23, 59, 59))
    return lower, upper


def filter_runs(runs: list[Run], state: FilterState) -> list[Run]:
    """Keep runs whose date falls inside the inclusive date range.

    A bound that cannot be parsed is ignored. A run whose own date could
    not be parsed is dropped whenever any bound is in effect.
    """
    if not runs:
        return []
    lower, upper = _date_bounds(state)
    if lower is None and upper is None:
        return list(runs)

    kept: list[Run] = []
    for run in runs:
        if run.timestamp is None:
            continue
        if lower is not None and run.timestamp < lower:
            continue
        if upper is not None and run.timestamp > upper:
            continue
        kept.append(run)
    return kept


def _status_matches(test: TestResult, wanted: str) -> bool:
    """Compare statuses with "pass"/"passed" and "fail"/"failed" as synonyms."""
    wanted_status = canonical_status(wanted)
    if wanted_status == STATUS_UNKNOWN:
        return test.status == wanted.strip().lower()
    return test.status == wanted_status


def filter_tests(tests: list[TestResult] | tuple[TestResult, ...], state: FilterState) -> list[TestResult]:
    """Keep tests that satisfy every set predicate."""
    if not tests:
        return []

    component = state.component.lower() if state.component else None
    search = state.search.lower() if state.search else None

    kept: list[TestResult] = []
    for test in tests:
        if state.category and test.category != state.category:
            continue
        if state.status and not _status_matches(test, state.status):
            continue
        if component is not None and component not in test.spec.lower():
            continue
        if search is not None and search not in test.scenario.lower():
            continue
        kept.append(test)
    return kept


def has_test_predicates(state: FilterState) -> bool:
    """Whether any predicate that narrows tests (not runs) is set."""
    return bool(state.category or state.status or state.component or state.search)


def apply_filters(runs: list[Run], state: FilterState) -> list[Run]:
    """Filter runs by date, then each run's tests by the test predicates.

    When a test predicate is set, counts and pass rate of each returned run
    are recomputed from the tests that survive, so charts and tables
    reflect the active filter. Without one, runs keep their recorded
    counts, which matters for runs that carry no per-test detail.
    """
    date_only = filter_runs(runs, state)
    if not has_test_predicates(state):
        return date_only

    views: list[Run] = []
    for run in date_only:
        tests = filter_tests(run.tests, state)
        passed = sum(1 for t in tests if t.status == STATUS_PASS)
        failed = sum(1 for t in tests if t.status == STATUS_FAIL)
        views.append(replace(
            run,
            tests=tuple(tests),
            passed=passed,
            failed=failed,
            total=len(tests),
            pass_rate=passed / len(tests) * 100 if tests else 0.0,
        ))
    return views


def select_runs(runs: list[Run], state: FilterState) -> list[Run]:
    """Runs named in ``selected_runs``, in selection order."""
    by_id = {run.id: run for run in runs}
    return [by_id[run_id] for run_id in state.selected_runs if run_id in by_id]


def sort_runs(runs: list[Run], newest_first: bool = True) -> list[Run]:
    """Order runs by timestamp; runs without one always go last."""
    dated = [r for r in runs if r.timestamp is not None]
    undated = [r for r in runs if r.timestamp is None]
    dated.sort(key=lambda r: r.timestamp, reverse=newest_first)
    return dated + undated
