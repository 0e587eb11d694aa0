"""
Edit applier — resolves a batch of edit operations against a working
directory and commits them all-or-nothing.

Every file is read once at the start of the call into an in-memory working
copy; operations mutate the working copies in submission order, so later
edits in a batch see the effect of earlier ones.  Nothing touches the disk
until every operation has resolved.  If any operation fails (in the default
atomic mode) the working copies are simply dropped.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from . import results
from .autocorrect import hint_for, hint_for_not_found, suggest_correction
from .locator import MODE_ALL, MODE_ANCHOR, MODE_FIRST, NotFound, Span, TextLocator
from .operations import (
    EditOperation, EditRequest, operation_from_dict,
)
from .results import ApplyReport, MatchCandidate, OperationResult
from .validator import EditPlanValidator, ValidationError

logger = logging.getLogger(__name__)

PREVIEW_LENGTH = 200
_TMP_SUFFIX = ".apply_edits_tmp"


# ---------------------------------------------------------------------------
# Errors raised while resolving a single operation
# ---------------------------------------------------------------------------

class EditError(Exception):
    """Base class for a failure to resolve one operation."""
    kind = results.IO_ERROR

    def __init__(self, message: str, hint: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.hint = hint or hint_for(self.kind)


class SearchNotFound(EditError):
    kind = results.NOT_FOUND

    def __init__(
        self,
        message: str,
        target: str,
        candidates: list[MatchCandidate],
        suggested_search: str | None,
        hint: str,
    ) -> None:
        super().__init__(message, hint)
        self.target = target
        self.candidates = candidates
        self.suggested_search = suggested_search


class AmbiguousMatch(EditError):
    kind = results.AMBIGUOUS

    def __init__(self, message: str, target: str, count: int) -> None:
        super().__init__(message, hint_for(self.kind, count=count))
        self.target = target


class MissingFile(EditError):
    kind = results.MISSING_FILE


class AlreadyExists(EditError):
    kind = results.ALREADY_EXISTS


class LineOutOfRange(EditError):
    kind = results.LINE_OUT_OF_RANGE

    def __init__(self, message: str, total_lines: int) -> None:
        super().__init__(message, hint_for(self.kind, total_lines=total_lines))


class FileAccessError(EditError):
    kind = results.IO_ERROR


class CommitError(Exception):
    """Raised when writing the resolved batch to disk fails part-way."""

    def __init__(self, change: "FileChange", reason: str) -> None:
        super().__init__(f"Failed to write {change.path}: {reason}")
        self.change = change
        self.reason = reason


# ---------------------------------------------------------------------------
# Working copies
# ---------------------------------------------------------------------------

@dataclass
class FileChange:
    """A pending change to one file: ``None`` content means absent."""
    path: str
    abs_path: str
    old: Optional[str]
    new: Optional[str]

    @property
    def is_new(self) -> bool:
        return self.old is None and self.new is not None

    @property
    def is_deleted(self) -> bool:
        return self.old is not None and self.new is None


@dataclass
class _WorkingFile:
    path: str
    abs_path: str
    original: Optional[str] = None
    content: Optional[str] = None
    error: Optional[str] = None

    @property
    def exists(self) -> bool:
        return self.content is not None

    @property
    def changed(self) -> bool:
        return self.error is None and self.content != self.original


def resolve_path(workdir: str, rel_path: str) -> str:
    """Resolve *rel_path* inside *workdir*, refusing anything that escapes it."""
    if os.path.isabs(rel_path) or rel_path.startswith(("/", "\\")):
        raise FileAccessError(f"Path must be relative to the working directory: {rel_path}")
    if "\x00" in rel_path:
        raise FileAccessError(f"Path contains a NUL byte: {rel_path!r}")
    try:
        root = os.path.realpath(workdir)
        full = os.path.realpath(os.path.join(root, rel_path))
    except (OSError, ValueError) as exc:
        raise FileAccessError(f"Invalid path: {rel_path!r} ({exc})") from exc
    if full == root or os.path.commonpath([root, full]) != root:
        raise FileAccessError(f"Path resolves outside the working directory: {rel_path}")
    return full


def _read_current(abs_path: str, rel_path: str) -> Optional[str]:
    """Read the on-disk content, or ``None`` when the file does not exist."""
    if not os.path.lexists(abs_path):
        return None
    if os.path.isdir(abs_path):
        raise FileAccessError(f"Path is a directory: {rel_path}")
    try:
        with open(abs_path, "r", encoding="utf-8", newline="") as f:
            return f.read()
    except UnicodeDecodeError as exc:
        raise FileAccessError(f"File is not valid UTF-8: {rel_path} ({exc.reason})") from exc
    except OSError as exc:
        raise FileAccessError(f"Failed to read {rel_path}: {exc.strerror or exc}") from exc


# ---------------------------------------------------------------------------
# Line helpers (a line is terminated by "\n"; "\r\n" stays on the line)
# ---------------------------------------------------------------------------

def _newline_of(text: str) -> str:
    return "\r\n" if "\r\n" in text else "\n"


def _ends_with_newline(text: str) -> bool:
    return text.endswith("\n")


def _split_lines(text: str) -> list[str]:
    parts = text.split("\n")
    lines = [p + "\n" for p in parts[:-1]]
    if parts[-1]:
        lines.append(parts[-1])
    return lines


def _to_newline(content: str, newline: str) -> str:
    content = content.replace("\r\n", "\n")
    return content.replace("\n", newline) if newline != "\n" else content


def _insert_block(text: str, index: int, content: str) -> tuple[str, int]:
    """Insert *content* as whole lines before 0-based line *index*.

    Returns the new text and the number of lines inserted.
    """
    newline = _newline_of(text)
    lines = _split_lines(text)
    block = _to_newline(content, newline)
    if not block.endswith(newline):
        block += newline
    count = len(_split_lines(block))

    if index >= len(lines) and lines and not _ends_with_newline(lines[-1]):
        # Appending past an unterminated last line: terminate it, and keep
        # the file's "no trailing newline" shape for the new last line.
        lines[-1] += newline
        block = block[:-len(newline)]
    lines.insert(index, block)
    return "".join(lines), count


def _drop_lines(text: str, numbers: set[int]) -> str:
    """Remove the given 1-based line numbers from *text*."""
    kept = [l for i, l in enumerate(_split_lines(text), 1) if i not in numbers]
    out = "".join(kept)
    if text and not _ends_with_newline(text) and out.endswith("\n"):
        out = out[:-2] if out.endswith("\r\n") else out[:-1]
    return out


def _line_label(span_start: int, span_end: int) -> str:
    if span_start == span_end:
        return f"line {span_start}"
    return f"lines {span_start}-{span_end}"


def truncate_preview(text: str, max_len: int = PREVIEW_LENGTH) -> str:
    if len(text) <= max_len:
        return text
    return text[:max(max_len - 3, 0)] + "..."


# ---------------------------------------------------------------------------
# Applier
# ---------------------------------------------------------------------------

class EditApplier:
    """Apply a batch of edit operations atomically.

    Parameters
    ----------
    locator:
        ``TextLocator`` used for exact matching and closest-match ranking.
    dry_run:
        Resolve everything but never write.
    partial:
        Non-atomic mode: skip failed operations and commit the rest.
    require_unique:
        Fail ``replace``/``insert_*`` with ``ambiguous`` when the target
        occurs more than once instead of taking the first occurrence.
    approve:
        Optional review hook called with the pending ``FileChange`` list
        before anything is written; returning ``False`` discards the batch.
    preview_length:
        Maximum length of ``search_preview`` in failure results.
    """

    def __init__(
        self,
        locator: TextLocator | None = None,
        dry_run: bool = False,
        partial: bool = False,
        require_unique: bool = False,
        approve: Callable[[list[FileChange]], bool] | None = None,
        preview_length: int = PREVIEW_LENGTH,
    ) -> None:
        self._locator = locator or TextLocator()
        self._validator = EditPlanValidator()
        self._dry_run = dry_run
        self._partial = partial
        self._require_unique = require_unique
        self._approve = approve
        self._preview_length = preview_length

    def apply(
        self,
        batch: EditRequest | Sequence[dict | EditOperation],
        workdir: str,
    ) -> ApplyReport:
        """Apply *batch* against *workdir* and report every operation.

        The working directory is left byte-identical unless every operation
        resolves (or ``partial`` is set).
        """
        report = ApplyReport(dry_run=self._dry_run)
        if isinstance(batch, EditRequest):
            report.summary = batch.summary
            report.commit_message = batch.commit_message
            batch = batch.edits

        if isinstance(batch, (list, tuple)):
            raw = [op.to_dict() if isinstance(op, EditOperation) else op for op in batch]
        else:
            raw = batch

        # Phase 1: structural validation, no I/O
        errors = self._validator.validate(raw)
        if errors:
            return self._validation_report(raw, errors, report)

        ops = [operation_from_dict(d) for d in raw]
        logger.info(
            "[ApplyEdits] Applying %d edit(s) in %s (dry_run=%s, partial=%s)",
            len(ops), workdir, self._dry_run, self._partial,
        )

        # Phase 2: read every distinct file once
        working, keys = self._load(ops, workdir)

        # Phase 3: resolve in submission order against the working copies
        for index, op in enumerate(ops):
            report.edits.append(self._apply_one(index, op, working[keys[index]]))

        # Phase 4: commit or discard
        changes = [
            FileChange(wf.path, wf.abs_path, wf.original, wf.content)
            for wf in working.values() if wf.changed
        ]
        self._finish(report, changes)
        return report

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------

    def _validation_report(
        self,
        raw,
        errors: list[ValidationError],
        report: ApplyReport,
    ) -> ApplyReport:
        ops = raw if isinstance(raw, (list, tuple)) else [raw]
        batch_level = [e.message for e in errors if e.index < 0]
        by_index: dict[int, list[str]] = {}
        for err in errors:
            by_index.setdefault(err.index, []).append(err.message)

        for index, op in enumerate(ops):
            op = op if isinstance(op, dict) else {}
            path = op.get("path") if isinstance(op.get("path"), str) else ""
            op_type = op.get("type") if isinstance(op.get("type"), str) else ""
            own = by_index.get(index, []) + batch_level
            message = ("; ".join(own) if own else
                       "Not applied: the batch contains invalid operations")
            report.edits.append(OperationResult(
                index=index,
                path=path,
                type=op_type,
                status=results.STATUS_ERROR,
                error_kind=results.VALIDATION,
                message=message,
                hint=hint_for(results.VALIDATION),
            ))

        report.rolled_back = True
        report.reason = f"Batch failed validation with {len(errors)} error(s)"
        logger.warning("[ApplyEdits] %s", report.reason)
        return report

    def _load(
        self,
        ops: list[EditOperation],
        workdir: str,
    ) -> tuple[dict[str, _WorkingFile], list[str]]:
        working: dict[str, _WorkingFile] = {}
        keys: list[str] = []
        workdir_ok = os.path.isdir(workdir)

        for op in ops:
            try:
                if not workdir_ok:
                    raise FileAccessError(f"Working directory does not exist: {workdir}")
                abs_path = resolve_path(workdir, op.path)
            except FileAccessError as exc:
                # Unresolvable paths get a private, always-failing working copy
                key = f"!{len(keys)}:{op.path}"
                working[key] = _WorkingFile(op.path, "", error=exc.message)
                keys.append(key)
                continue

            if abs_path not in working:
                wf = _WorkingFile(op.path, abs_path)
                try:
                    wf.original = _read_current(abs_path, op.path)
                    wf.content = wf.original
                except FileAccessError as exc:
                    wf.error = exc.message
                working[abs_path] = wf
            keys.append(abs_path)

        return working, keys

    def _apply_one(self, index: int, op: EditOperation, wf: _WorkingFile) -> OperationResult:
        result = OperationResult(index=index, path=op.path, type=op.TYPE)
        try:
            if wf.error is not None:
                raise FileAccessError(wf.error)
            if op.NEEDS_FILE and not wf.exists:
                raise MissingFile(f"File not found: {op.path}")
            handler = getattr(self, f"_apply_{op.TYPE}")
            message, lines = handler(op, wf)
        except EditError as exc:
            logger.warning(
                "[ApplyEdits] Edit %d (%s) failed for %s: %s",
                index, op.TYPE, op.path, exc.message,
            )
            result.status = results.STATUS_ERROR
            result.error_kind = exc.kind
            result.message = exc.message
            result.hint = exc.hint
            target = op.target
            if target is not None:
                result.search_preview = truncate_preview(target, self._preview_length)
            if isinstance(exc, SearchNotFound):
                result.closest_matches = exc.candidates
                result.suggested_search = exc.suggested_search
            return result

        result.message = message
        result.lines = lines
        logger.debug("[ApplyEdits] Edit %d (%s) resolved for %s: %s",
                     index, op.TYPE, op.path, message)
        return result

    def _finish(self, report: ApplyReport, changes: list[FileChange]) -> None:
        if self._dry_run:
            report.reason = "Dry run: no files were written"
            return

        if report.failed and not self._partial:
            report.rolled_back = True
            report.reason = (f"{report.failed} edit(s) failed; all changes "
                             f"rolled back, no files were written")
            logger.warning("[ApplyEdits] %s", report.reason)
            return

        if changes and self._approve is not None and not self._approve(changes):
            report.rolled_back = True
            report.reason = "Changes rejected during review; no files were written"
            logger.info("[ApplyEdits] %s", report.reason)
            return

        try:
            self._commit(changes)
        except CommitError as exc:
            for res in report.edits:
                if res.ok and res.path == exc.change.path:
                    res.status = results.STATUS_ERROR
                    res.error_kind = results.IO_ERROR
                    res.message = str(exc)
                    res.hint = hint_for(results.IO_ERROR)
            report.rolled_back = True
            report.reason = f"Write failed, all changes rolled back: {exc}"
            return

        report.committed = True
        logger.info("[ApplyEdits] Committed %d file change(s)", len(changes))

    # ------------------------------------------------------------------
    # Commit / rollback
    # ------------------------------------------------------------------

    def _commit(self, changes: list[FileChange]) -> None:
        written: list[FileChange] = []
        created_dirs: list[str] = []
        for change in changes:
            try:
                if change.new is None:
                    os.remove(change.abs_path)
                else:
                    _make_parents(change.abs_path, created_dirs)
                    _safe_write(change.abs_path, change.new)
            except OSError as exc:
                logger.error(
                    "[ApplyEdits] Write failed for %s, rolling back %d file(s): %s",
                    change.path, len(written), exc,
                )
                _restore(written, created_dirs)
                raise CommitError(change, exc.strerror or str(exc)) from exc
            written.append(change)

    # ------------------------------------------------------------------
    # Per-type handlers: return (message, (first_line, last_line) | None)
    # ------------------------------------------------------------------

    def _not_found(self, text: str, target: str, candidates: list[MatchCandidate],
                   path: str, anchor: bool) -> SearchNotFound:
        suggestion = suggest_correction(text, target, candidates)
        what = "Anchor" if anchor else "Search"
        return SearchNotFound(
            message=f"{what} string not found in file: {path}",
            target=target,
            candidates=candidates,
            suggested_search=suggestion.search if suggestion else None,
            hint=hint_for_not_found(candidates, suggestion, anchor=anchor),
        )

    def _find_one(self, text: str, target: str, path: str, mode: str) -> Span:
        found = self._locator.locate(text, target, mode)
        if isinstance(found, NotFound):
            raise self._not_found(text, target, found.candidates, path,
                                  anchor=(mode == MODE_ANCHOR))
        if self._require_unique:
            count = self._locator.count(text, target)
            if count > 1:
                raise AmbiguousMatch(
                    f"Multiple matches found ({count}); target is not unique: {path}",
                    target, count,
                )
        return found.first

    def _apply_replace(self, op, wf):
        text = wf.content
        span = self._find_one(text, op.search, op.path, MODE_FIRST)
        wf.content = text[:span.start] + op.replace + text[span.end:]
        label = _line_label(span.line_start, span.line_end)
        return f"Replaced 1 occurrence ({label})", (span.line_start, span.line_end)

    def _apply_replace_all(self, op, wf):
        text = wf.content
        found = self._locator.locate(text, op.search, MODE_ALL)
        if isinstance(found, NotFound):
            raise self._not_found(text, op.search, found.candidates, op.path, anchor=False)
        wf.content = text.replace(op.search, op.replace)
        spans = found.spans
        return (f"Replaced {len(spans)} occurrence(s)",
                (spans[0].line_start, spans[-1].line_end))

    def _apply_insert_after(self, op, wf):
        text = wf.content
        span = self._find_one(text, op.anchor, op.path, MODE_ANCHOR)
        wf.content, count = _insert_block(text, span.line_end, op.content)
        return (f"Inserted {count} line(s) after line {span.line_end}",
                (span.line_end + 1, span.line_end + count))

    def _apply_insert_before(self, op, wf):
        text = wf.content
        span = self._find_one(text, op.anchor, op.path, MODE_ANCHOR)
        wf.content, count = _insert_block(text, span.line_start - 1, op.content)
        return (f"Inserted {count} line(s) before line {span.line_start}",
                (span.line_start, span.line_start + count - 1))

    def _apply_insert_at_line(self, op, wf):
        text = wf.content
        total = len(_split_lines(text))
        if op.line > total + 1:
            raise LineOutOfRange(
                f"Line {op.line} out of range (file has {total} lines): {op.path}",
                total,
            )
        wf.content, count = _insert_block(text, op.line - 1, op.content)
        return f"Inserted {count} line(s) at line {op.line}", (op.line, op.line + count - 1)

    def _apply_create(self, op, wf):
        existed = wf.exists
        if existed and not op.overwrite:
            raise AlreadyExists(f"File already exists: {op.path}")
        wf.content = op.content
        total = len(_split_lines(op.content))
        verb = "Overwrote" if existed else "Created"
        return f"{verb} file ({total} lines, {len(op.content.encode('utf-8'))} bytes)", None

    def _apply_append(self, op, wf):
        text = wf.content
        newline = _newline_of(text)
        content = _to_newline(op.content, newline)
        sep = newline if text and content and not _ends_with_newline(text) else ""
        start = len(_split_lines(text)) + 1
        wf.content = text + sep + content
        count = len(_split_lines(content))
        return f"Appended {count} line(s)", (start, start + count - 1) if count else None

    def _apply_prepend(self, op, wf):
        text = wf.content
        newline = _newline_of(text)
        content = _to_newline(op.content, newline)
        if text and content and not _ends_with_newline(content):
            content += newline
        wf.content = content + text
        count = len(_split_lines(content))
        return f"Prepended {count} line(s)", (1, count) if count else None

    def _apply_delete_file(self, op, wf):
        wf.content = None
        return "Deleted file", None

    def _apply_delete_match(self, op, wf):
        text = wf.content
        found = self._locator.locate(text, op.search, MODE_ALL)
        if isinstance(found, NotFound):
            raise self._not_found(text, op.search, found.candidates, op.path, anchor=False)
        numbers: set[int] = set()
        for span in found.spans:
            numbers.update(range(span.line_start, span.line_end + 1))
        wf.content = _drop_lines(text, numbers)
        return (f"Deleted {len(numbers)} matching line(s)",
                (min(numbers), max(numbers)))

    def _apply_delete_lines(self, op, wf):
        text = wf.content
        total = len(_split_lines(text))
        if op.end_line > total:
            raise LineOutOfRange(
                f"Invalid line range {op.start_line}-{op.end_line} "
                f"(file has {total} lines): {op.path}",
                total,
            )
        wf.content = _drop_lines(text, set(range(op.start_line, op.end_line + 1)))
        deleted = op.end_line - op.start_line + 1
        return f"Deleted {deleted} line(s)", (op.start_line, op.end_line)


# ---------------------------------------------------------------------------
# Atomic file write
# ---------------------------------------------------------------------------

def _make_parents(abs_path: str, created: list[str]) -> None:
    """Create missing parent directories, outermost first.

    Each directory is recorded in *created* as soon as it exists, so a
    failure part way down still leaves the earlier ones for ``_restore``.
    """
    missing: list[str] = []
    parent = os.path.dirname(abs_path)
    while parent and not os.path.isdir(parent):
        missing.append(parent)
        parent = os.path.dirname(parent)
    for d in reversed(missing):
        os.mkdir(d)
        created.append(d)


def _safe_write(abs_path: str, content: str) -> None:
    """Write content atomically via temp file + rename."""
    tmp_path = abs_path + _TMP_SUFFIX
    try:
        with open(tmp_path, "w", encoding="utf-8", newline="") as f:
            f.write(content)
        os.replace(tmp_path, abs_path)
    except OSError:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise


def _restore(written: list[FileChange], created_dirs: list[str]) -> None:
    """Put already-written files back to their pre-batch state."""
    for change in reversed(written):
        try:
            if change.old is None:
                if os.path.lexists(change.abs_path):
                    os.remove(change.abs_path)
            else:
                _safe_write(change.abs_path, change.old)
        except OSError as exc:
            logger.error("[ApplyEdits] Rollback failed for %s: %s", change.path, exc)

    for d in reversed(created_dirs):
        try:
            os.rmdir(d)
        except OSError as exc:
            logger.debug("[ApplyEdits] Left directory %s in place: %s", d, exc)
