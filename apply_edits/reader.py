"""
File reader — returns file content with line numbers for edit context.

The numbered form (``  7 | code``) is what a human or an LLM uses to pick
anchors and ``insert_at_line`` positions before building an edit batch.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Optional

from .editing.applier import FileAccessError, resolve_path
from .editing.locator import text_lines

logger = logging.getLogger(__name__)

DEFAULT_MAX_LINES = 500


def _numbered_lines(content: str) -> list[str]:
    # Same "\n"-only numbering the applier uses; a CRLF "\r" is not shown
    return [line[:-1] if line.endswith("\r") else line for line in text_lines(content)]


@dataclass
class FileReadResult:
    """Result of reading a single file."""
    path: str
    exists: bool
    lines: Optional[int] = None
    bytes: Optional[int] = None
    truncated: Optional[bool] = None
    content: Optional[str] = None
    content_with_line_numbers: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> dict:
        data = {"path": self.path, "exists": self.exists}
        for name in ("lines", "bytes", "truncated", "content",
                     "content_with_line_numbers", "error"):
            value = getattr(self, name)
            if value is not None:
                data[name] = value
        return data


@dataclass
class MultiFileReadResult:
    files: list[FileReadResult] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"files": [f.to_dict() for f in self.files]}


def add_line_numbers(content: str, max_lines: int = DEFAULT_MAX_LINES) -> str:
    """Prefix each line with its right-aligned 1-based number.

    Lines past *max_lines* are replaced by a ``... (N more lines)`` marker.
    """
    lines = _numbered_lines(content)
    total = min(len(lines), max_lines)
    width = len(str(total)) if total else 1

    out = [f"{i:>{width}} | {line}" for i, line in enumerate(lines[:max_lines], 1)]
    if len(lines) > max_lines:
        out.append(f"{'...':>{width}} | ... ({len(lines) - max_lines} more lines)")

    result = "\n".join(out)
    if out and content.endswith("\n"):
        result += "\n"
    return result


def read_file_with_line_numbers(
    workdir: str,
    path: str,
    max_lines: int = DEFAULT_MAX_LINES,
) -> FileReadResult:
    """Read one file relative to *workdir*; a missing file is not an error."""
    try:
        full_path = resolve_path(workdir, path)
    except FileAccessError as exc:
        return FileReadResult(path=path, exists=False, error=exc.message)

    if not os.path.exists(full_path):
        return FileReadResult(path=path, exists=False)

    try:
        with open(full_path, "r", encoding="utf-8", newline="") as f:
            content = f.read()
    except (OSError, UnicodeDecodeError) as exc:
        logger.warning("[ApplyEdits] Failed to read %s: %s", path, exc)
        return FileReadResult(path=path, exists=True, error=str(exc))

    lines = _numbered_lines(content)
    return FileReadResult(
        path=path,
        exists=True,
        lines=len(lines),
        bytes=len(content.encode("utf-8")),
        truncated=len(lines) > max_lines,
        content="\n".join(lines[:max_lines]),
        content_with_line_numbers=add_line_numbers(content, max_lines),
    )


def read_files(
    workdir: str,
    paths: list[str],
    max_lines: int = DEFAULT_MAX_LINES,
) -> MultiFileReadResult:
    return MultiFileReadResult(
        files=[read_file_with_line_numbers(workdir, p, max_lines) for p in paths]
    )


def format_for_prompt(results: MultiFileReadResult) -> str:
    """Render read results as markdown sections suitable for an LLM prompt."""
    output: list[str] = []
    for file in results.files:
        if not file.exists:
            if file.error:
                output.append(f"### {file.path}\n\n*Error reading file: {file.error}*\n\n")
            else:
                output.append(f"### {file.path}\n\n*File does not exist - will be created*\n\n")
            continue

        lines_info = f"{file.lines} lines" if file.lines is not None else ""
        truncated_info = " (truncated)" if file.truncated else ""
        output.append(f"### {file.path} ({lines_info}{truncated_info})\n\n")

        if file.content_with_line_numbers is not None:
            ext = os.path.splitext(file.path)[1].lstrip(".")
            body = file.content_with_line_numbers.rstrip("\n")
            output.append(f"```{ext}\n{body}\n```\n\n")
        elif file.error:
            output.append(f"*Error reading file: {file.error}*\n\n")

    return "".join(output)
