"""Targeted text editing — locate, validate and atomically apply edit batches."""

from .locator import TextLocator, Span, Found, NotFound
from .operations import EditOperation, EditRequest, OPERATION_TYPES, operation_from_dict
from .normalizer import RequestParseError, normalize_request, parse_request
from .validator import EditPlanValidator, ValidationError
from .autocorrect import Suggestion, suggest_correction
from .applier import EditApplier, EditError, FileChange
from .results import ApplyReport, OperationResult, MatchCandidate
from .metrics import log_edit_metric, read_edit_stats, metric_from_report

__all__ = [
    "TextLocator", "Span", "Found", "NotFound",
    "EditOperation", "EditRequest", "OPERATION_TYPES", "operation_from_dict",
    "RequestParseError", "normalize_request", "parse_request",
    "EditPlanValidator", "ValidationError",
    "Suggestion", "suggest_correction",
    "EditApplier", "EditError", "FileChange",
    "ApplyReport", "OperationResult", "MatchCandidate",
    "log_edit_metric", "read_edit_stats", "metric_from_report",
]
