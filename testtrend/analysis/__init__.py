"""Run analysis: failure classification, run diffs, and pass-rate timelines."""

from testtrend.analysis.classifier import CategoryGroup, categorize, group_failures
from testtrend.analysis.diff import (
    RunDiff,
    annotate_runs,
    build_index,
    default_pair,
    diff,
    result_key,
    step_regressions,
)
from testtrend.analysis.timeline import (
    AuxiliarySeries,
    RegressionEvent,
    TimelinePoint,
    build_series,
    category_max,
    category_series,
    cpu_series,
    detect_regressions,
    throughput_series,
    tick_interval,
    tier,
)

__all__ = [
    "AuxiliarySeries",
    "CategoryGroup",
    "RegressionEvent",
    "RunDiff",
    "TimelinePoint",
    "annotate_runs",
    "build_index",
    "build_series",
    "categorize",
    "category_max",
    "category_series",
    "cpu_series",
    "default_pair",
    "detect_regressions",
    "diff",
    "group_failures",
    "result_key",
    "step_regressions",
    "throughput_series",
    "tick_interval",
    "tier",
]
