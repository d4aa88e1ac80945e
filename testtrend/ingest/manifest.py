"""Run manifest handling.

A manifest lists the available run files::

    {"runs": [{"date": "...", "file": "runs/2025-03-01.json", "label": "..."}]}

Only the newest ``max_runs`` entries are loaded. Each entry is merged with
the payload of its run file; an entry whose file cannot be read is still
shown, using whatever summary fields the manifest itself carries.
"""

from __future__ import annotations

import datetime
import json
import logging
from pathlib import Path
from typing import Any

from testtrend.ingest.normalizer import normalize, parse_timestamp
from testtrend.model import Run

logger = logging.getLogger(__name__)

# Number of most recent runs loaded from a manifest
MAX_RUNS = 10


class ManifestError(Exception):
    """Raised when a manifest file is missing or not a JSON object."""


def load_manifest(path: str | Path) -> dict[str, Any]:
    """Read and parse a manifest file.

    Raises:
        ManifestError: If the file does not exist or is not valid JSON.
    """
    manifest_path = Path(path)
    try:
        data = json.loads(manifest_path.read_text())
    except FileNotFoundError:
        raise ManifestError(f"Manifest file not found: {manifest_path}")
    except (json.JSONDecodeError, OSError) as e:
        raise ManifestError(f"Invalid manifest {manifest_path}: {e}")

    if not isinstance(data, dict):
        raise ManifestError(f"Manifest {manifest_path} is not a JSON object")
    return data


def select_entries(
    manifest: dict[str, Any], max_runs: int = MAX_RUNS,
) -> list[dict[str, Any]]:
    """Pick the newest manifest entries.

    Entries carrying only ``timestamp`` get it copied to ``date``. Entries
    with an unparseable date sort after all dated ones.

    Returns:
        Copies of at most ``max_runs`` entries, newest first.
    """
    dated: list[tuple[datetime.datetime, dict[str, Any]]] = []
    undated: list[dict[str, Any]] = []
    for entry in manifest.get("runs") or []:
        if not isinstance(entry, dict):
            continue
        entry = dict(entry)
        if not entry.get("date") and entry.get("timestamp"):
            entry["date"] = entry["timestamp"]
        ts = parse_timestamp(entry.get("date"))
        if ts is None:
            undated.append(entry)
        else:
            dated.append((ts, entry))

    dated.sort(key=lambda pair: pair[0], reverse=True)
    entries = [entry for _ts, entry in dated] + undated
    return entries[:max(0, max_runs)]


def load_runs(
    manifest: dict[str, Any],
    base_dir: str | Path,
    max_runs: int = MAX_RUNS,
) -> list[Run]:
    """Load and normalize the newest runs listed in a manifest.

    Args:
        manifest: Parsed manifest dict with a ``runs`` list.
        base_dir: Directory that entry ``file`` paths are relative to.
        max_runs: Size of the window of most recent runs.

    Returns:
        Normalized runs, newest first.
    """
    base_path = Path(base_dir)
    runs: list[Run] = []
    for entry in select_entries(manifest, max_runs):
        payload = _read_run_file(base_path, entry.get("file"))
        if payload is not None:
            runs.append(normalize({**entry, **payload}))
        else:
            runs.append(normalize(entry))
    return runs


def _read_run_file(base_path: Path, file_name: Any) -> dict[str, Any] | None:
    """Read one run payload; None when absent or unreadable."""
    if not file_name:
        return None
    file_path = base_path / str(file_name)
    try:
        data = json.loads(file_path.read_text())
    except (json.JSONDecodeError, OSError) as e:
        logger.warning("Could not read run file %s: %s", file_path, e)
        return None
    if not isinstance(data, dict):
        logger.warning("Run file %s is not a JSON object", file_path)
        return None
    return data
