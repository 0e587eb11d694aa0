"""
Result types — per-operation outcomes and the batch-level ApplyReport.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Optional

# Error kinds surfaced per operation
VALIDATION = "validation"
NOT_FOUND = "not_found"
AMBIGUOUS = "ambiguous"
ALREADY_EXISTS = "already_exists"
MISSING_FILE = "missing_file"
LINE_OUT_OF_RANGE = "line_out_of_range"
IO_ERROR = "io_error"

ERROR_KINDS = (
    VALIDATION, NOT_FOUND, AMBIGUOUS, ALREADY_EXISTS,
    MISSING_FILE, LINE_OUT_OF_RANGE, IO_ERROR,
)

STATUS_APPLIED = "applied"
STATUS_ERROR = "error"


@dataclass
class MatchCandidate:
    """A close (but not exact) match for a search or anchor string."""
    line: int                  # 1-indexed first line of the window
    content: str               # original, non-normalized window text
    similarity: float          # 0.0 – 1.0
    context_before: list[str] = field(default_factory=list)
    context_after: list[str] = field(default_factory=list)

    @property
    def percent(self) -> int:
        return int(round(self.similarity * 100))

    def to_dict(self) -> dict:
        return {
            "line": self.line,
            "content": self.content,
            "similarity": round(self.similarity, 4),
            "context_before": list(self.context_before),
            "context_after": list(self.context_after),
        }


@dataclass
class OperationResult:
    """Outcome of a single edit operation within a batch."""
    index: int
    path: str
    type: str
    status: str = STATUS_APPLIED
    message: Optional[str] = None
    error_kind: Optional[str] = None
    search_preview: Optional[str] = None
    closest_matches: Optional[list[MatchCandidate]] = None
    suggested_search: Optional[str] = None
    hint: Optional[str] = None
    lines: Optional[tuple[int, int]] = None

    @property
    def ok(self) -> bool:
        return self.status == STATUS_APPLIED

    def to_dict(self) -> dict:
        data: dict = {
            "index": self.index,
            "path": self.path,
            "type": self.type,
            "status": self.status,
        }
        if self.error_kind is not None:
            data["error_kind"] = self.error_kind
        if self.message is not None:
            data["message"] = self.message
        if self.lines is not None:
            data["lines"] = list(self.lines)
        if self.search_preview is not None:
            data["search_preview"] = self.search_preview
        if self.closest_matches is not None:
            data["closest_matches"] = [m.to_dict() for m in self.closest_matches]
        if self.suggested_search is not None:
            data["suggested_search"] = self.suggested_search
        if self.hint is not None:
            data["hint"] = self.hint
        return data


@dataclass
class ApplyReport:
    """Structured result of applying one batch."""
    edits: list[OperationResult] = field(default_factory=list)
    dry_run: bool = False
    committed: bool = False
    rolled_back: bool = False
    reason: Optional[str] = None
    summary: Optional[str] = None
    commit_message: Optional[str] = None

    @property
    def applied(self) -> int:
        return sum(1 for e in self.edits if e.ok)

    @property
    def failed(self) -> int:
        return sum(1 for e in self.edits if not e.ok)

    @property
    def success(self) -> bool:
        return self.failed == 0

    @property
    def failures(self) -> list[OperationResult]:
        return [e for e in self.edits if not e.ok]

    def to_dict(self) -> dict:
        data = {
            "success": self.success,
            "applied": self.applied,
            "failed": self.failed,
            "edits": [e.to_dict() for e in self.edits],
            "dry_run": self.dry_run,
            "committed": self.committed,
            "rolled_back": self.rolled_back,
        }
        if self.reason is not None:
            data["reason"] = self.reason
        if self.summary is not None:
            data["summary"] = self.summary
        if self.commit_message is not None:
            data["commit_message"] = self.commit_message
        return data

    def to_json(self, indent: int | None = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)
