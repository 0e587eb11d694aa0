"""
Edit metrics — tracks batch outcomes in a JSONL log file.
"""

from __future__ import annotations

import json
import logging
import os
from collections import Counter
from datetime import datetime, timezone

from .results import ApplyReport

logger = logging.getLogger(__name__)

DEFAULT_METRICS_DIR = "~/.apply_edits"
_METRICS_FILE = "edit_metrics.jsonl"


def _metrics_path(metrics_dir: str | None = None) -> str:
    """Return the absolute path to the metrics file.

    The log lives outside any working directory an edit batch touches.
    """
    base = os.path.expanduser(metrics_dir or DEFAULT_METRICS_DIR)
    return os.path.abspath(os.path.join(base, _METRICS_FILE))


def metric_from_report(report: ApplyReport) -> dict:
    """Summarize an ``ApplyReport`` into the fields stored per batch."""
    return {
        "ops": len(report.edits),
        "applied": report.applied,
        "failed": report.failed,
        "error_kinds": dict(Counter(e.error_kind for e in report.failures)),
        "op_types": dict(Counter(e.type for e in report.edits)),
        "dry_run": report.dry_run,
        "committed": report.committed,
        "rolled_back": report.rolled_back,
    }


def log_edit_metric(data: dict, metrics_dir: str | None = None) -> None:
    """Append a single batch metric entry to the JSONL log.

    Parameters
    ----------
    data:
        Metric fields to log (ops, applied, failed, error_kinds, etc.).
    metrics_dir:
        Directory holding the log. Defaults to ``~/.apply_edits``.
    """
    path = _metrics_path(metrics_dir)

    entry = {"timestamp": datetime.now(timezone.utc).isoformat()}
    entry.update(data)

    try:
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "a", encoding="utf-8") as f:
            f.write(json.dumps(entry) + "\n")
    except OSError as exc:
        logger.warning("[ApplyEdits] Failed to write metrics: %s", exc)


def read_edit_stats(
    last_n: int = 50,
    metrics_dir: str | None = None,
) -> dict:
    """Compute rolling statistics from the metrics log.

    Parameters
    ----------
    last_n:
        Number of most-recent entries to include.
    metrics_dir:
        Directory holding the log. Defaults to ``~/.apply_edits``.

    Returns
    -------
    dict
        Statistics including total_batches, success_rate, rollback_rate,
        avg_ops, error_kinds (percent of failed operations per kind).
    """
    path = _metrics_path(metrics_dir)

    entries: list[dict] = []
    if os.path.isfile(path):
        try:
            with open(path, "r", encoding="utf-8") as f:
                for line in f:
                    line = line.strip()
                    if line:
                        try:
                            entries.append(json.loads(line))
                        except json.JSONDecodeError:
                            continue
        except OSError as exc:
            logger.warning("[ApplyEdits] Failed to read metrics: %s", exc)

    # Take last N entries
    entries = entries[-last_n:]

    if not entries:
        return {
            "total_batches": 0,
            "success_rate": 0.0,
            "rollback_rate": 0.0,
            "avg_ops": 0.0,
            "error_kinds": {},
        }

    total = len(entries)
    successes = sum(1 for e in entries if e.get("failed", 0) == 0)
    rollbacks = sum(1 for e in entries if e.get("rolled_back", False))
    ops = [e.get("ops", 0) for e in entries]

    kinds: Counter = Counter()
    for e in entries:
        error_kinds = e.get("error_kinds")
        if isinstance(error_kinds, dict):
            kinds.update({k: v for k, v in error_kinds.items() if isinstance(v, int)})
    failed_ops = sum(kinds.values())

    return {
        "total_batches": total,
        "success_rate": successes / total * 100,
        "rollback_rate": rollbacks / total * 100,
        "avg_ops": sum(ops) / total,
        "error_kinds": {
            kind: count / failed_ops * 100
            for kind, count in kinds.most_common()
        },
    }
