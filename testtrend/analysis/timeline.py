"""Pass-rate time series and the series derived from it.

Everything here produces plain data for a chart to draw: the ordered
points, regression markers, colour tiers, auxiliary metric series with
their own scale domains, and the axis tick spacing.
"""

from __future__ import annotations

import datetime
import math
from dataclasses import dataclass, field

from testtrend.model import CATEGORIES, PerformanceMetrics, ResourceMetrics, Run


# Drop in percentage points between adjacent points that counts as a regression
REGRESSION_THRESHOLD = 10.0

# Headroom above the observed maximum of an auxiliary series
HEADROOM = 0.10

# Scale maxima used when an auxiliary series has no usable data
THROUGHPUT_FALLBACK_MAX = 100.0
CPU_FALLBACK_MAX = 1000.0

# Target number of labelled ticks on the date axis
MAX_TICKS = 10

# Lower bound (inclusive) of each pass-rate tier, highest first
TIERS: tuple[tuple[float, str], ...] = (
    (100.0, "perfect"),
    (90.0, "good"),
    (70.0, "fair"),
    (50.0, "poor"),
)
LOWEST_TIER = "critical"


@dataclass
class TimelinePoint:
    """One run placed on the time axis."""

    date: datetime.datetime
    date_str: str
    pass_rate: float
    total: int = 0
    passed: int = 0
    failed: int = 0
    commit_sha: str = "N/A"
    commit_message: str = ""
    performance: PerformanceMetrics | None = None
    resources: ResourceMetrics | None = None
    run_id: str = ""

    @property
    def tier(self) -> str:
        return tier(self.pass_rate)


@dataclass
class RegressionEvent:
    """A pass-rate drop between two adjacent points."""

    date: datetime.datetime
    from_rate: float
    to_rate: float
    index: int

    @property
    def magnitude(self) -> float:
        return self.from_rate - self.to_rate

    def to_dict(self) -> dict[str, object]:
        return {
            "date": self.date.isoformat(),
            "from_rate": round(self.from_rate, 1),
            "to_rate": round(self.to_rate, 1),
            "magnitude": round(self.magnitude, 1),
        }


@dataclass
class AuxiliarySeries:
    """A metric series drawn on its own scale next to the pass rate."""

    name: str
    points: list[tuple[datetime.datetime, float]] = field(default_factory=list)
    domain: tuple[float, float] = (0.0, 0.0)

    @property
    def empty(self) -> bool:
        return not self.points


def point_pass_rate(total: int, passed: int) -> float:
    """Pass rate in percent, 0 when nothing ran."""
    if total <= 0:
        return 0.0
    return passed / total * 100


def build_series(runs: list[Run]) -> list[TimelinePoint]:
    """Project runs onto a date-ascending series.

    Runs whose date could not be parsed have no place on the axis and are
    skipped. Runs with equal timestamps keep their input order.
    """
    points = [
        TimelinePoint(
            date=run.timestamp,
            date_str=run.date_str,
            pass_rate=point_pass_rate(run.total, run.passed),
            total=run.total,
            passed=run.passed,
            failed=run.failed,
            commit_sha=run.commit_sha or "N/A",
            commit_message=run.commit_message or "",
            performance=run.performance,
            resources=run.resources,
            run_id=run.id,
        )
        for run in runs
        if run.timestamp is not None
    ]
    points.sort(key=lambda p: p.date)
    return points


def detect_regressions(
    points: list[TimelinePoint],
    threshold: float = REGRESSION_THRESHOLD,
) -> list[RegressionEvent]:
    """Find adjacent pairs whose pass rate fell by more than ``threshold``.

    A drop of exactly ``threshold`` is not flagged.
    """
    events: list[RegressionEvent] = []
    for i in range(1, len(points)):
        prev = points[i - 1]
        curr = points[i]
        if prev.pass_rate - curr.pass_rate > threshold:
            events.append(RegressionEvent(
                date=curr.date,
                from_rate=prev.pass_rate,
                to_rate=curr.pass_rate,
                index=i,
            ))
    return events


def tier(pass_rate: float) -> str:
    """Severity tier of a pass rate: perfect, good, fair, poor or critical."""
    for lower_bound, name in TIERS:
        if pass_rate >= lower_bound:
            return name
    return LOWEST_TIER


def throughput_series(
    points: list[TimelinePoint],
    fallback_max: float = THROUGHPUT_FALLBACK_MAX,
) -> AuxiliarySeries:
    """Throughput (runs/min) over the points that recorded it."""
    values = [
        (p.date, p.performance.throughput_per_minute)
        for p in points
        if p.performance is not None and p.performance.throughput_per_minute is not None
    ]
    return AuxiliarySeries(
        name="throughput",
        points=values,
        domain=_domain([v for _d, v in values], fallback_max),
    )


def cpu_series(
    points: list[TimelinePoint],
    fallback_max: float = CPU_FALLBACK_MAX,
) -> AuxiliarySeries:
    """Peak CPU millicores over the points that recorded it."""
    values = [
        (p.date, p.resources.peak_cpu_millicores)
        for p in points
        if p.resources is not None and p.resources.peak_cpu_millicores is not None
    ]
    return AuxiliarySeries(
        name="cpu",
        points=values,
        domain=_domain([v for _d, v in values], fallback_max),
    )


def _domain(values: list[float], fallback_max: float) -> tuple[float, float]:
    """Scale domain from zero to the maximum plus headroom."""
    observed = max(values, default=0.0)
    if observed <= 0:
        return (0.0, fallback_max)
    return (0.0, observed * (1 + HEADROOM))


def tick_interval(point_count: int, max_ticks: int = MAX_TICKS) -> int:
    """Days between labelled ticks so that at most ~max_ticks are shown."""
    if point_count <= 0 or max_ticks <= 0:
        return 1
    return max(1, math.ceil(point_count / max_ticks))


def category_series(runs: list[Run]) -> list[dict[str, object]]:
    """Failure counts per category for each dated run, oldest first.

    Every category is present in every row, zero when the run has none.
    """
    rows: list[dict[str, object]] = []
    for run in sorted(
        (r for r in runs if r.timestamp is not None), key=lambda r: r.timestamp,
    ):
        row: dict[str, object] = {"date": run.timestamp, "label": run.date_str}
        for category in CATEGORIES:
            row[category] = run.categories.get(category, 0)
        rows.append(row)
    return rows


def category_max(rows: list[dict[str, object]]) -> int:
    """Largest stacked total across rows, at least 1."""
    best = 0
    for row in rows:
        stacked = sum(int(row.get(c, 0)) for c in CATEGORIES)
        best = max(best, stacked)
    return best or 1
