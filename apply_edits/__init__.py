"""
apply_edits — targeted, atomic text edits for LLM-driven code changes.

Public API for library usage::

    from apply_edits import apply_edits, ApplyReport

    report = apply_edits({"edits": [...]}, workdir=".")
"""

from .api import apply_edits
from .editing import ApplyReport, EditApplier, OperationResult, RequestParseError

__all__ = ["apply_edits", "ApplyReport", "EditApplier", "OperationResult",
           "RequestParseError"]
