"""Canonical run and test records.

Every payload shape accepted by the normalizer collapses into these frozen
dataclasses, so downstream analysis never has to check whether a field was
present in the source record.
"""

from __future__ import annotations

import datetime
from dataclasses import dataclass, field


# Canonical test statuses
STATUS_PASS = "pass"
STATUS_FAIL = "fail"
STATUS_UNKNOWN = "unknown"

VALID_STATUSES = frozenset({STATUS_PASS, STATUS_FAIL, STATUS_UNKNOWN})

# Failure categories, in classifier priority order
MISSING_COMPONENT = "MissingComponent"
UPGRADE_PREREQ = "UpgradePrereq"
PLATFORM_ISSUE = "PlatformIssue"
CONFIG_GAP = "ConfigGap"
UPSTREAM_REGRESSION = "UpstreamRegression"

CATEGORIES: tuple[str, ...] = (
    MISSING_COMPONENT,
    UPGRADE_PREREQ,
    PLATFORM_ISSUE,
    CONFIG_GAP,
    UPSTREAM_REGRESSION,
)

# Separator between spec and scenario in a test key
KEY_SEPARATOR = "::"


@dataclass(frozen=True)
class TestResult:
    """Outcome of one test case within a run."""

    __test__ = False

    spec: str = ""
    scenario: str = ""
    status: str = STATUS_UNKNOWN
    category: str | None = None
    duration: str | None = None
    error: str | None = None

    @property
    def key(self) -> str:
        """Identity used to correlate the same test across runs."""
        return self.spec + KEY_SEPARATOR + self.scenario

    @property
    def failed(self) -> bool:
        return self.status == STATUS_FAIL

    @property
    def passed(self) -> bool:
        return self.status == STATUS_PASS


@dataclass(frozen=True)
class PerformanceMetrics:
    """Throughput and latency figures recorded alongside a run."""

    scenario: str | None = None
    throughput_per_minute: float | None = None
    p50_latency_seconds: float | None = None
    p95_latency_seconds: float | None = None


@dataclass(frozen=True)
class ResourceMetrics:
    """Peak resource usage recorded alongside a run."""

    peak_cpu_millicores: float | None = None
    peak_memory: float | None = None
    pod_count: int | None = None


@dataclass(frozen=True)
class Run:
    """One execution of the test suite.

    ``timestamp`` is None when the source date could not be parsed; such a
    run sorts last and is excluded by any date-range filter.
    """

    id: str
    date: str
    timestamp: datetime.datetime | None
    label: str = ""
    total: int = 0
    passed: int = 0
    failed: int = 0
    pass_rate: float = 0.0
    tests: tuple[TestResult, ...] = ()
    duration: str = ""
    commit_sha: str | None = None
    commit_message: str | None = None
    categories: dict[str, int] = field(default_factory=dict)
    performance: PerformanceMetrics | None = None
    resources: ResourceMetrics | None = None

    @property
    def date_str(self) -> str:
        """Calendar-date portion of the source date text."""
        return self.date.split("T")[0]
