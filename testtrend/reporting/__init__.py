"""Run history output: CSV export and JSON/YAML reports."""

from testtrend.reporting.exporter import CSV_HEADER, to_csv, write_csv
from testtrend.reporting.reporter import Reporter, badge

__all__ = [
    "CSV_HEADER",
    "Reporter",
    "badge",
    "to_csv",
    "write_csv",
]
