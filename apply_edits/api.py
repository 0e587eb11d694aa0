"""
Programmatic API for apply-edits — use as a library from Python code.

Example usage::

    from apply_edits import apply_edits

    report = apply_edits(
        {"edits": [{"path": "app.py", "type": "replace",
                    "search": "DEBUG = True", "replace": "DEBUG = False"}]},
        workdir="/path/to/repo",
    )
    print(report.success)
    print(report.to_json())
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from .config import Config
from .editing.applier import EditApplier, FileChange
from .editing.locator import TextLocator
from .editing.metrics import log_edit_metric, metric_from_report
from .editing.normalizer import normalize_request, parse_request
from .editing.operations import EditRequest
from .editing.results import ApplyReport

_logger = logging.getLogger(__name__)


def build_applier(
    cfg: Config,
    *,
    dry_run: bool = False,
    partial: bool = False,
    require_unique: bool | None = None,
    approve: Callable[[list[FileChange]], bool] | None = None,
) -> EditApplier:
    """Build an ``EditApplier`` from configuration plus per-call overrides."""
    locator = TextLocator(
        similarity_threshold=cfg.SIMILARITY_THRESHOLD,
        max_candidates=cfg.MAX_CANDIDATES,
    )
    return EditApplier(
        locator=locator,
        dry_run=dry_run,
        partial=partial,
        require_unique=cfg.REQUIRE_UNIQUE if require_unique is None else require_unique,
        approve=approve,
        preview_length=cfg.PREVIEW_LENGTH,
    )


def to_request(batch: Any) -> EditRequest:
    """Accept JSON text, a parsed document or an ``EditRequest``."""
    if isinstance(batch, EditRequest):
        return batch
    if isinstance(batch, str):
        return parse_request(batch)
    return normalize_request(batch)


def apply_edits(
    batch: Any,
    workdir: str,
    *,
    dry_run: bool = False,
    partial: bool = False,
    require_unique: bool | None = None,
    approve: Callable[[list[FileChange]], bool] | None = None,
    config: Config | None = None,
    record_metrics: bool = False,
) -> ApplyReport:
    """Apply an edit batch to *workdir* all-or-nothing.

    Args:
        batch: JSON text, a parsed ``{"edits": [...]}`` document, a bare list
            of operations, or an ``EditRequest``. Lenient field names are
            normalized first.
        workdir: Directory every operation path is relative to.
        dry_run: Resolve everything but write nothing.
        partial: Commit the operations that resolved even if others failed.
        require_unique: Reject ambiguous search/anchor targets
            (default: from config).
        approve: Review hook called with the pending changes before writing.
        config: Configuration (default: ``Config.load()``).
        record_metrics: Append the outcome to the metrics log in
            ``config.METRICS_DIR`` (never inside *workdir*).

    Raises:
        RequestParseError: If *batch* is not an edit request at all.
    """
    cfg = config or Config.load()
    request = to_request(batch)
    applier = build_applier(cfg, dry_run=dry_run, partial=partial,
                            require_unique=require_unique, approve=approve)
    report = applier.apply(request, workdir)

    _logger.info("[ApplyEdits] %d applied, %d failed (committed=%s)",
                 report.applied, report.failed, report.committed)
    if record_metrics and cfg.METRICS_ENABLED:
        log_edit_metric(metric_from_report(report), metrics_dir=cfg.METRICS_DIR)
    return report
