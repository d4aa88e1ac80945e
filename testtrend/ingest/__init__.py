"""Run ingestion: payload normalization and manifest loading."""

from testtrend.ingest.manifest import ManifestError, load_manifest, load_runs, select_entries
from testtrend.ingest.normalizer import normalize, normalize_all, normalize_test, parse_timestamp

__all__ = [
    "ManifestError",
    "load_manifest",
    "load_runs",
    "normalize",
    "normalize_all",
    "normalize_test",
    "parse_timestamp",
    "select_entries",
]
