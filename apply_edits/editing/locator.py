"""
Text locator — finds where a search or anchor string lives in a file.

Exact substring matching is always tried first.  Only when it fails does the
locator fall back to a whitespace/indentation-tolerant sliding-window
comparison, and even then the windows it finds are returned as ranked
*candidates* for diagnostics, never as a hit.
"""

from __future__ import annotations

import difflib
import logging
import re
from dataclasses import dataclass, field
from typing import Union

from .results import MatchCandidate

logger = logging.getLogger(__name__)

MODE_FIRST = "first"
MODE_ALL = "all"
MODE_ANCHOR = "anchor"
_MODES = (MODE_FIRST, MODE_ALL, MODE_ANCHOR)

DEFAULT_SIMILARITY_THRESHOLD = 0.5
DEFAULT_MAX_CANDIDATES = 3
_CONTEXT_LINES = 2
_TAB_SIZE = 4

_INNER_WS = re.compile(r"[ \t]+")


@dataclass
class Span:
    """An exact occurrence of the target inside the file text."""
    start: int         # character offset, inclusive
    end: int           # character offset, exclusive
    line_start: int    # 1-indexed
    line_end: int      # 1-indexed, inclusive


@dataclass
class Found:
    spans: list[Span] = field(default_factory=list)

    @property
    def first(self) -> Span:
        return self.spans[0]


@dataclass
class NotFound:
    candidates: list[MatchCandidate] = field(default_factory=list)


LocateResult = Union[Found, NotFound]


def line_of_offset(text: str, offset: int) -> int:
    """Return the 1-indexed line number that contains character *offset*."""
    return text.count("\n", 0, offset) + 1


def find_spans(text: str, target: str, limit: int | None = None) -> list[Span]:
    """Find non-overlapping exact occurrences, top-to-bottom, left-to-right."""
    spans: list[Span] = []
    if not target:
        return spans
    pos = text.find(target)
    while pos != -1:
        end = pos + len(target)
        spans.append(Span(
            start=pos,
            end=end,
            line_start=line_of_offset(text, pos),
            # The last character of the match decides the end line, so a
            # target ending in "\n" does not bleed into the following line.
            line_end=line_of_offset(text, end - 1),
        ))
        if limit is not None and len(spans) >= limit:
            break
        pos = text.find(target, end)
    return spans


def text_lines(text: str) -> list[str]:
    """Split on "\\n" only, keeping any "\\r" so lines join back to a substring."""
    lines = text.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    return lines


def join_lines(lines: list[str]) -> str:
    """Join lines from ``text_lines`` back into the exact file substring."""
    joined = "\n".join(lines)
    return joined[:-1] if joined.endswith("\r") else joined


def _normalize_block(lines: list[str]) -> list[str]:
    """Normalize a block of lines for fuzzy comparison.

    Tabs are expanded, trailing whitespace trimmed, the common leading
    indent removed (relative indentation is kept) and runs of inner
    whitespace collapsed to a single space.
    """
    expanded = [line.expandtabs(_TAB_SIZE).rstrip() for line in lines]
    indents = [len(l) - len(l.lstrip(" ")) for l in expanded if l.strip()]
    common = min(indents) if indents else 0

    normalized: list[str] = []
    for line in expanded:
        body = line[common:] if line.strip() else ""
        lead = len(body) - len(body.lstrip(" "))
        normalized.append(body[:lead] + _INNER_WS.sub(" ", body[lead:]))
    return normalized


def _line_similarity(a: str, b: str) -> float:
    if a == b:
        return 1.0
    if not a or not b:
        return 0.0
    return difflib.SequenceMatcher(None, a, b, autojunk=False).ratio()


def window_similarity(window: list[str], target: list[str]) -> float:
    """Mean per-line similarity between two equally sized normalized blocks."""
    if not target:
        return 0.0
    total = 0.0
    for i, target_line in enumerate(target):
        window_line = window[i] if i < len(window) else ""
        total += _line_similarity(window_line, target_line)
    return total / len(target)


class TextLocator:
    """Locate search/anchor strings in file text."""

    def __init__(
        self,
        similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
        max_candidates: int = DEFAULT_MAX_CANDIDATES,
    ) -> None:
        self._threshold = similarity_threshold
        self._max_candidates = max_candidates

    def locate(self, text: str, target: str, mode: str = MODE_FIRST) -> LocateResult:
        """Find *target* in *text*.

        Parameters
        ----------
        text:
            Current file content.
        target:
            The search or anchor string (may span several lines).
        mode:
            ``"first"`` for the first occurrence, ``"all"`` for every
            occurrence, ``"anchor"`` for insertion anchors (exact only).

        Returns
        -------
        Found | NotFound
            ``Found`` with one or more spans on an exact hit, otherwise
            ``NotFound`` carrying ranked closest-match candidates.
        """
        if mode not in _MODES:
            raise ValueError(f"Unknown locate mode: {mode!r}")

        limit = None if mode == MODE_ALL else 1
        spans = find_spans(text, target, limit=limit)
        if spans:
            return Found(spans=spans)

        logger.debug(
            "[ApplyEdits] No exact match (%s mode), ranking closest windows",
            mode,
        )
        return NotFound(candidates=self.closest_matches(text, target))

    def count(self, text: str, target: str) -> int:
        return len(find_spans(text, target))

    def closest_matches(self, text: str, target: str) -> list[MatchCandidate]:
        """Rank file windows by similarity to *target*.

        Slides a window of the target's line count over the file, scores it
        against the normalized target, and returns the best windows above
        the similarity threshold, most similar first.
        """
        target_lines = text_lines(target)
        file_lines = text_lines(text)
        if not target_lines or not file_lines or not "".join(target_lines).strip():
            return []

        norm_target = _normalize_block(target_lines)
        size = len(target_lines)
        last_start = max(len(file_lines) - size, 0)

        scored: list[tuple[float, int]] = []
        for start in range(last_start + 1):
            window = file_lines[start:start + size]
            if not "".join(window).strip():
                continue
            score = window_similarity(_normalize_block(window), norm_target)
            if score >= self._threshold:
                scored.append((score, start))

        scored.sort(key=lambda item: (-item[0], item[1]))

        candidates: list[MatchCandidate] = []
        for score, start in scored[:self._max_candidates]:
            end = min(start + size, len(file_lines))
            candidates.append(MatchCandidate(
                line=start + 1,
                content=join_lines(file_lines[start:end]),
                similarity=score,
                context_before=[l.rstrip("\r") for l in
                                file_lines[max(start - _CONTEXT_LINES, 0):start]],
                context_after=[l.rstrip("\r") for l in
                               file_lines[end:end + _CONTEXT_LINES]],
            ))
        return candidates
