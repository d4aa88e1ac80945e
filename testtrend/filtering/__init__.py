"""Filter engine: predicate state, its URL encoding, and run/test filtering."""

from testtrend.filtering.query import (
    apply_filters,
    filter_runs,
    filter_tests,
    has_test_predicates,
    select_runs,
    sort_runs,
)
from testtrend.filtering.state import FilterSession, FilterState, decode, encode

__all__ = [
    "FilterSession",
    "FilterState",
    "apply_filters",
    "decode",
    "encode",
    "filter_runs",
    "filter_tests",
    "has_test_predicates",
    "select_runs",
    "sort_runs",
]
