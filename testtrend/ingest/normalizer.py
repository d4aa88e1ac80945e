"""Normalization of run payloads into the canonical model.

Run files have been produced by several generations of the publisher, so a
single run can arrive in any of a handful of shapes: ``timestamp`` instead of
``date``, boolean ``passed`` instead of ``status`` on tests,
``error_message`` instead of ``error``, categories as a list of groups
instead of a map, and so on. Everything is resolved here; no field is ever
reported as missing to the rest of the package.
"""

from __future__ import annotations

import datetime
import logging
import math
from typing import Any

from testtrend.analysis.classifier import categorize
from testtrend.model import (
    STATUS_FAIL,
    STATUS_PASS,
    STATUS_UNKNOWN,
    UPSTREAM_REGRESSION,
    PerformanceMetrics,
    ResourceMetrics,
    Run,
    TestResult,
)

logger = logging.getLogger(__name__)

# Accepted spellings of the two definite statuses
_STATUS_SYNONYMS: dict[str, str] = {
    "pass": STATUS_PASS,
    "passed": STATUS_PASS,
    "fail": STATUS_FAIL,
    "failed": STATUS_FAIL,
}


def parse_timestamp(text: Any) -> datetime.datetime | None:
    """Parse an ISO 8601 date or datetime string.

    Any offset is dropped and the wall-clock time is kept as written, so
    the calendar day of the result is always the day in the source text.

    Args:
        text: Date text such as "2025-03-01" or "2025-03-01T02:00:00Z".

    Returns:
        Naive datetime, or None if the text cannot be parsed.
    """
    if not isinstance(text, str) or not text.strip():
        return None
    try:
        dt = datetime.datetime.fromisoformat(text.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    return dt.replace(tzinfo=None)


def canonical_status(status: Any) -> str:
    """Map a status spelling onto pass, fail or unknown."""
    if not isinstance(status, str):
        return STATUS_UNKNOWN
    return _STATUS_SYNONYMS.get(status.strip().lower(), STATUS_UNKNOWN)


def format_duration_secs(secs: Any) -> str:
    """Render a duration in seconds as "{m}m {s}s", or "{s}s" under a minute.

    Returns an empty string for missing or non-numeric input.
    """
    value = _as_float(secs)
    if value is None or value < 0:
        return ""
    minutes = int(value // 60)
    seconds = int(value % 60)
    if minutes > 0:
        return f"{minutes}m {seconds}s"
    return f"{seconds}s"


def normalize_test(raw: Any) -> TestResult:
    """Normalize one test entry of a run payload."""
    if not isinstance(raw, dict):
        raw = {}

    status_field = raw.get("status")
    if status_field:
        status = canonical_status(status_field)
    elif isinstance(raw.get("passed"), bool):
        status = STATUS_PASS if raw["passed"] else STATUS_FAIL
    else:
        status = STATUS_UNKNOWN

    error = raw.get("error") or raw.get("error_message") or None

    category = raw.get("category") or None
    if category is None and status == STATUS_FAIL and error:
        category = categorize(error)

    duration = raw.get("duration") or None
    if duration is None and raw.get("duration_secs") is not None:
        duration = format_duration_secs(raw["duration_secs"]) or None

    return TestResult(
        spec=str(raw.get("spec") or ""),
        scenario=str(raw.get("scenario") or raw.get("name") or ""),
        status=status,
        category=category,
        duration=str(duration) if duration is not None else None,
        error=str(error) if error is not None else None,
    )


def normalize(raw: Any) -> Run:
    """Normalize a raw run payload into a Run.

    Args:
        raw: Parsed JSON object for one run, optionally merged with its
            manifest entry. Non-dict input is treated as an empty record.

    Returns:
        A fully populated Run.
    """
    if not isinstance(raw, dict):
        logger.debug("Ignoring non-object run payload of type %s", type(raw).__name__)
        raw = {}

    date = raw.get("date") or raw.get("timestamp") or ""
    date = str(date)
    timestamp = parse_timestamp(date)
    if timestamp is None and date:
        logger.debug("Unparseable run date %r", date)

    raw_tests = raw.get("tests")
    tests = tuple(normalize_test(t) for t in raw_tests) if isinstance(raw_tests, list) else ()

    passed = _as_count(raw.get("passed"))
    if passed is None:
        passed = sum(1 for t in tests if t.passed)
    failed = _as_count(raw.get("failed"))
    if failed is None:
        failed = sum(1 for t in tests if t.failed)
    total = _as_count(raw.get("total"))
    if total is None:
        total = len(tests)
    total = max(total, passed + failed)

    pass_rate = _as_float(raw.get("pass_rate"))
    if pass_rate is None:
        pass_rate = passed / total * 100 if total > 0 else 0.0
    pass_rate = min(100.0, max(0.0, pass_rate))

    duration = raw.get("duration") or format_duration_secs(raw.get("duration_secs"))

    commit_sha, commit_message = _commit_fields(raw)

    categories = _normalize_categories(raw.get("categories"))
    if categories is None:
        categories = _count_categories(tests)

    label = raw.get("label") or _default_label(timestamp, date, passed, total)

    return Run(
        id=str(raw.get("id") or raw.get("file") or date),
        date=date,
        timestamp=timestamp,
        label=str(label),
        total=total,
        passed=passed,
        failed=failed,
        pass_rate=pass_rate,
        tests=tests,
        duration=str(duration or ""),
        commit_sha=commit_sha,
        commit_message=commit_message,
        categories=categories,
        performance=_performance(raw.get("performance")),
        resources=_resources(
            raw.get("performance_resources") or raw.get("resource_profile")
        ),
    )


def normalize_all(raws: list[Any]) -> list[Run]:
    """Normalize a list of run payloads, preserving order."""
    return [normalize(r) for r in raws or []]


def _as_float(value: Any) -> float | None:
    """Coerce a JSON number to float; None for anything non-numeric."""
    if isinstance(value, bool) or value is None:
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(result) or math.isinf(result):
        return None
    return result


def _as_count(value: Any) -> int | None:
    """Coerce a JSON number to a non-negative int count."""
    number = _as_float(value)
    if number is None:
        return None
    return max(0, int(number))


def _commit_fields(raw: dict[str, Any]) -> tuple[str | None, str | None]:
    """Extract commit sha and message from either payload shape."""
    first_ref: dict[str, Any] = {}
    refs = raw.get("component_refs")
    if isinstance(refs, list) and refs and isinstance(refs[0], dict):
        first_ref = refs[0]

    sha = raw.get("commit_sha") or first_ref.get("sha") or None
    message = first_ref.get("message") or raw.get("commit_message") or None
    return (
        str(sha) if sha is not None else None,
        str(message) if message is not None else None,
    )


def _normalize_categories(value: Any) -> dict[str, int] | None:
    """Turn a categories summary into a {category: count} map.

    Accepts either a list of ``{category|name, count}`` groups or a map.
    Returns None when no summary was supplied.
    """
    if isinstance(value, list):
        result: dict[str, int] = {}
        for group in value:
            if not isinstance(group, dict):
                continue
            name = group.get("category") or group.get("name")
            if name:
                result[str(name)] = _as_count(group.get("count")) or 0
        return result
    if isinstance(value, dict):
        return {str(k): _as_count(v) or 0 for k, v in value.items()}
    return None


def _count_categories(tests: tuple[TestResult, ...]) -> dict[str, int]:
    """Derive the categories summary from failed tests."""
    counts: dict[str, int] = {}
    for test in tests:
        if test.failed:
            category = test.category or UPSTREAM_REGRESSION
            counts[category] = counts.get(category, 0) + 1
    return counts


def _default_label(
    timestamp: datetime.datetime | None, date: str, passed: int, total: int,
) -> str:
    day = timestamp.date().isoformat() if timestamp is not None else (date or "unknown date")
    return f"{day} ({passed}/{total})"


def _performance(value: Any) -> PerformanceMetrics | None:
    if not isinstance(value, dict):
        return None
    metrics = value.get("metrics")
    if not isinstance(metrics, dict):
        metrics = {}
    scenario = value.get("scenario")
    return PerformanceMetrics(
        scenario=str(scenario) if scenario else None,
        throughput_per_minute=_as_float(metrics.get("throughput_per_minute")),
        p50_latency_seconds=_as_float(metrics.get("p50_latency_seconds")),
        p95_latency_seconds=_as_float(metrics.get("p95_latency_seconds")),
    )


def _resources(value: Any) -> ResourceMetrics | None:
    if not isinstance(value, dict):
        return None
    return ResourceMetrics(
        peak_cpu_millicores=_as_float(value.get("peak_cpu_millicores")),
        peak_memory=_as_float(value.get("peak_memory")),
        pod_count=_as_count(value.get("pod_count")),
    )
