"""
Auto-correction suggestions and fix hints for failed edits.

Suggestions are computed for a failed search/anchor and surfaced to the
caller as ``suggested_search``; they are never applied automatically.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from . import results
from .locator import join_lines, text_lines
from .results import MatchCandidate

logger = logging.getLogger(__name__)

INDENTATION = "indentation"
TRAILING_WHITESPACE = "trailing_whitespace"
LINE_ENDING = "line_ending"
FUZZY = "fuzzy"
TYPO = "typo"

_FUZZY_MIN_SIMILARITY = 0.9
_TYPO_MIN_LEN = 5
_TYPO_MAX_LEN = 200


@dataclass
class Suggestion:
    """A corrected search string that would match the file exactly."""
    search: str
    reason: str
    confidence: float
    kind: str
    line: Optional[int] = None


def _indent_width(line: str) -> int:
    return len(line) - len(line.lstrip())


def _try_indentation(text: str, target: str) -> Optional[Suggestion]:
    target_lines = [l.strip() for l in text_lines(target)]
    if not target_lines or not "".join(target_lines):
        return None
    file_lines = text_lines(text)
    size = len(target_lines)

    for start in range(len(file_lines) - size + 1):
        window = file_lines[start:start + size]
        if all(w.strip() == t for w, t in zip(window, target_lines)):
            first_target = text_lines(target)[0]
            return Suggestion(
                search=join_lines(window),
                reason=(
                    f"Search had {_indent_width(first_target)} leading "
                    f"whitespace character(s), file has "
                    f"{_indent_width(window[0])} at line {start + 1}"
                ),
                confidence=0.95,
                kind=INDENTATION,
                line=start + 1,
            )
    return None


def _try_trailing_whitespace(text: str, target: str) -> Optional[Suggestion]:
    trimmed = "\n".join(l.rstrip() for l in target.split("\n"))
    if trimmed == target or not trimmed.strip() or trimmed not in text:
        return None
    return Suggestion(
        search=trimmed,
        reason="Removed trailing whitespace from search string",
        confidence=0.9,
        kind=TRAILING_WHITESPACE,
    )


def _try_line_endings(text: str, target: str) -> Optional[Suggestion]:
    if "\r\n" in target and "\r\n" not in text:
        candidate = target.replace("\r\n", "\n")
        if candidate in text:
            return Suggestion(candidate, "Converted CRLF to LF line endings",
                              0.95, LINE_ENDING)
    if "\r\n" in text and "\r\n" not in target and "\n" in target:
        candidate = target.replace("\n", "\r\n")
        if candidate in text:
            return Suggestion(candidate, "Converted LF to CRLF line endings",
                              0.95, LINE_ENDING)
    return None


def _try_fuzzy(candidates: list[MatchCandidate]) -> Optional[Suggestion]:
    if not candidates or candidates[0].similarity < _FUZZY_MIN_SIMILARITY:
        return None
    best = candidates[0]
    return Suggestion(
        search=best.content,
        reason=f"Found {best.percent}% similar content at line {best.line}",
        confidence=best.similarity,
        kind=FUZZY,
        line=best.line,
    )


def _try_typo(text: str, target: str) -> Optional[Suggestion]:
    if not (_TYPO_MIN_LEN <= len(target) <= _TYPO_MAX_LEN):
        return None
    for i in range(len(target)):
        candidate = target[:i] + target[i + 1:]
        if candidate and candidate in text:
            return Suggestion(
                search=candidate,
                reason=f"Removed extra character {target[i]!r} at position {i}",
                confidence=0.85,
                kind=TYPO,
            )
    return None


def suggest_correction(
    text: str,
    target: str,
    candidates: list[MatchCandidate],
) -> Optional[Suggestion]:
    """Suggest a corrected search string, most reliable correction first."""
    for attempt in (
        lambda: _try_line_endings(text, target),
        lambda: _try_indentation(text, target),
        lambda: _try_trailing_whitespace(text, target),
        lambda: _try_fuzzy(candidates),
        lambda: _try_typo(text, target),
    ):
        suggestion = attempt()
        if suggestion is not None:
            logger.debug(
                "[ApplyEdits] Suggested %s correction (%.2f)",
                suggestion.kind, suggestion.confidence,
            )
            return suggestion
    return None


def hint_for_not_found(
    candidates: list[MatchCandidate],
    suggestion: Optional[Suggestion] = None,
    anchor: bool = False,
) -> str:
    """Build an actionable hint for a search/anchor that was not found."""
    if suggestion is not None and suggestion.kind in (INDENTATION, TRAILING_WHITESPACE,
                                                      LINE_ENDING):
        where = f" at line {suggestion.line}" if suggestion.line else ""
        return (
            f"The text exists{where} but differs in whitespace "
            f"({suggestion.reason}). Retry with suggested_search copied exactly."
        )

    if not candidates:
        hint = ("No similar content found. The file may have changed "
                "significantly; re-read it before retrying.")
    else:
        best = candidates[0]
        if best.similarity > 0.9:
            hint = (f"Very close match at line {best.line}. Check for minor "
                    f"differences (whitespace, punctuation).")
        elif best.similarity > 0.7:
            hint = (f"Similar content found at line {best.line}. The code may "
                    f"have been modified.")
        else:
            hint = (f"Partial match at line {best.line} ({best.percent}% similar). "
                    f"The code structure may have changed.")

    if anchor:
        hint += (" Copy the anchor exactly from the file, or use insert_at_line "
                 "with a verified line number instead.")
    else:
        hint += " Copy the search text exactly from the closest match."
    return hint


def hint_for(kind: str, **details) -> str:
    """Build a fix hint for the non-search error kinds."""
    if kind == results.MISSING_FILE:
        return ("File does not exist. Check the path, or add a create "
                "operation before this one.")
    if kind == results.ALREADY_EXISTS:
        return ("File already exists. Modify it with replace/append/insert "
                'operations, or set "overwrite": true on the create.')
    if kind == results.LINE_OUT_OF_RANGE:
        total = details.get("total_lines", 0)
        return (f"File has {total} line(s); use a line number between 1 and "
                f"{total + 1}, verified against the current file contents.")
    if kind == results.AMBIGUOUS:
        count = details.get("count", 0)
        return (f"Search text matches {count} locations. Include more "
                f"surrounding lines to make it unique.")
    if kind == results.IO_ERROR:
        return ("Check that the path is relative, stays inside the working "
                "directory, and is a readable UTF-8 text file.")
    if kind == results.VALIDATION:
        return ("Fix the reported field errors; no file was touched because "
                "the batch was rejected before any I/O.")
    return "Re-read the file and retry with corrected operations."
