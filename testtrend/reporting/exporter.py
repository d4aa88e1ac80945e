"""CSV export of the filtered run history.

Fields are joined with bare commas and never quoted. Every exported field
is numeric, a date, or a commit sha, so none is expected to contain a
comma; a value that does will shift the columns of its row.
"""

from __future__ import annotations

from pathlib import Path

from testtrend.analysis.timeline import point_pass_rate
from testtrend.model import Run


CSV_HEADER: tuple[str, ...] = (
    "Date",
    "Pass Rate (%)",
    "Passed",
    "Failed",
    "Total",
    "Commit SHA",
    "Throughput (runs/min)",
    "P50 Latency (s)",
)


def _row(run: Run) -> list[str]:
    throughput = ""
    p50 = ""
    if run.performance is not None:
        if run.performance.throughput_per_minute is not None:
            throughput = f"{run.performance.throughput_per_minute:.1f}"
        if run.performance.p50_latency_seconds is not None:
            p50 = f"{run.performance.p50_latency_seconds:.2f}"

    return [
        run.date_str,
        f"{point_pass_rate(run.total, run.passed):.1f}",
        str(run.passed),
        str(run.failed),
        str(run.total),
        run.commit_sha or "N/A",
        throughput,
        p50,
    ]


def to_csv(runs: list[Run]) -> str:
    """Render runs as CSV text, one row per run in the given order.

    The header row is always present, even with no runs.
    """
    lines = [",".join(CSV_HEADER)]
    lines.extend(",".join(_row(run)) for run in runs)
    return "\n".join(lines)


def write_csv(runs: list[Run], path: Path) -> None:
    """Write the CSV export of runs to a file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(to_csv(runs) + "\n")
