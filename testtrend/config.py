"""Dashboard configuration file management.

Reads and writes the optional .testtrend_config JSON file that overrides
the history window and the timeline constants.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from testtrend.analysis.timeline import (
    CPU_FALLBACK_MAX,
    MAX_TICKS,
    REGRESSION_THRESHOLD,
    THROUGHPUT_FALLBACK_MAX,
)
from testtrend.ingest.manifest import MAX_RUNS

# Default configuration values
DEFAULT_CONFIG: dict[str, Any] = {
    "max_runs": MAX_RUNS,
    "regression_threshold": REGRESSION_THRESHOLD,
    "max_ticks": MAX_TICKS,
    "throughput_fallback_max": THROUGHPUT_FALLBACK_MAX,
    "cpu_fallback_max": CPU_FALLBACK_MAX,
}


class DashboardConfig:
    """Manages the .testtrend_config JSON configuration file."""

    def __init__(self, path: Path | None = None) -> None:
        self.path = path
        self._data: dict[str, Any] = dict(DEFAULT_CONFIG)
        if path is not None and path.exists():
            self._load()

    def _load(self) -> None:
        """Load config from the file."""
        assert self.path is not None
        try:
            text = self.path.read_text()
            data = json.loads(text)
            if isinstance(data, dict):
                self._data = {**DEFAULT_CONFIG, **data}
        except (json.JSONDecodeError, OSError):
            self._data = dict(DEFAULT_CONFIG)

    def save(self) -> None:
        """Write config to the file."""
        if self.path is None:
            raise ValueError("No config file path specified")
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w") as f:
            json.dump(self._data, f, indent=2)
            f.write("\n")

    @property
    def config(self) -> dict[str, Any]:
        """Get the full configuration dict."""
        return dict(self._data)

    @property
    def max_runs(self) -> int:
        """Get the number of most recent runs to load."""
        return int(self._data.get("max_runs", DEFAULT_CONFIG["max_runs"]))

    @property
    def regression_threshold(self) -> float:
        """Get the pass-rate drop (percentage points) flagged as a regression."""
        return float(
            self._data.get(
                "regression_threshold",
                DEFAULT_CONFIG["regression_threshold"],
            )
        )

    @property
    def max_ticks(self) -> int:
        """Get the target number of date axis ticks."""
        return int(self._data.get("max_ticks", DEFAULT_CONFIG["max_ticks"]))

    @property
    def throughput_fallback_max(self) -> float:
        """Get the throughput scale maximum used when there is no data."""
        return float(
            self._data.get(
                "throughput_fallback_max",
                DEFAULT_CONFIG["throughput_fallback_max"],
            )
        )

    @property
    def cpu_fallback_max(self) -> float:
        """Get the CPU scale maximum used when there is no data."""
        return float(
            self._data.get(
                "cpu_fallback_max",
                DEFAULT_CONFIG["cpu_fallback_max"],
            )
        )

    def set_config(
        self,
        max_runs: int | None = None,
        regression_threshold: float | None = None,
    ) -> None:
        """Update configuration values."""
        if max_runs is not None:
            self._data["max_runs"] = max_runs
        if regression_threshold is not None:
            self._data["regression_threshold"] = regression_threshold
