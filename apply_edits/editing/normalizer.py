"""
Input normalizer — maps lenient, LLM-produced JSON onto canonical edits.

LLMs drift on field names (``operation`` vs ``type``, ``file`` vs ``path``,
``search`` for an insertion anchor, ...).  All of that tolerance lives here
so the engine only ever sees the strict shapes defined in ``operations``.
Anything this module cannot map is passed through unchanged and left for the
validator to report.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Mapping
from typing import Any

from .operations import EditRequest, LINE_FIELDS

logger = logging.getLogger(__name__)


class RequestParseError(Exception):
    """Raised when the input is not a readable edit request at all."""


_TYPE_KEYS = ("operation", "op", "action", "edit_type")
_PATH_KEYS = ("file", "file_path", "filepath", "filename")
_ANCHOR_KEYS = ("search", "match", "after", "before", "pattern", "at", "location")
_SEARCH_KEYS = ("old", "old_string", "old_text", "find")
_REPLACE_KEYS = ("new", "new_string", "new_text", "replacement")
_CONTENT_KEYS = ("text", "code", "new_content")

_TYPE_ALIASES = {
    "replace_first": "replace",
    "replace_once": "replace",
    "replaceall": "replace_all",
    "replace_every": "replace_all",
    "insertafter": "insert_after",
    "insertbefore": "insert_before",
    "insert_at": "insert_at_line",
    "insert_line": "insert_at_line",
    "insertatline": "insert_at_line",
    "create_file": "create",
    "write": "create",
    "append_file": "append",
    "prepend_file": "prepend",
    "delete": "delete_file",
    "remove": "delete_file",
    "remove_file": "delete_file",
    "deletefile": "delete_file",
    "delete_matching_lines": "delete_match",
    "delete_matching": "delete_match",
    "deletematch": "delete_match",
    "delete_range": "delete_lines",
}

_SEARCH_TYPES = ("replace", "replace_all", "delete_match")
_ANCHOR_TYPES = ("insert_after", "insert_before")
_CONTENT_TYPES = ("insert_after", "insert_before", "insert_at_line",
                  "create", "append", "prepend")

_FENCE_JSON = re.compile(r"```json\s*\n(.*?)```", re.DOTALL)
_FENCE_ANY = re.compile(r"```[\w-]*\s*\n(.*?)```", re.DOTALL)
_CAMEL = re.compile(r"(?<=[a-z0-9])([A-Z])")


def extract_json(text: str) -> str:
    """Strip a surrounding markdown code fence, preferring a ```json block."""
    match = _FENCE_JSON.search(text) or _FENCE_ANY.search(text)
    if match:
        return match.group(1).strip()
    return text.strip()


def parse_request(text: str) -> EditRequest:
    """Parse raw JSON text (optionally fenced) into a normalized request."""
    body = extract_json(text)
    if not body:
        raise RequestParseError("Input is empty")
    try:
        data = json.loads(body)
    except json.JSONDecodeError as exc:
        raise RequestParseError(f"Failed to parse JSON: {exc}") from exc
    return normalize_request(data)


def normalize_type(value: Any) -> Any:
    """Canonicalize an operation type spelling; non-strings pass through."""
    if not isinstance(value, str):
        return value
    name = _CAMEL.sub(r"_\1", value.strip())
    name = re.sub(r"[\s\-]+", "_", name).lower()
    return _TYPE_ALIASES.get(name, _TYPE_ALIASES.get(name.replace("_", ""), name))


def _move(op: dict, keys: tuple[str, ...], dest: str) -> None:
    if op.get(dest) is not None:
        return
    for key in keys:
        if op.get(key) is not None:
            op[dest] = op.pop(key)
            return


def normalize_operation(raw: Any) -> Any:
    """Map one lenient operation onto canonical field names."""
    if not isinstance(raw, Mapping):
        return raw
    op = dict(raw)

    _move(op, _TYPE_KEYS, "type")
    _move(op, _PATH_KEYS, "path")
    op["type"] = normalize_type(op.get("type"))
    op_type = op["type"]

    if op_type in _SEARCH_TYPES:
        _move(op, ("target",) + _SEARCH_KEYS, "search")
    elif op_type in _ANCHOR_TYPES:
        _move(op, ("target",) + _ANCHOR_KEYS, "anchor")

    if op_type in ("replace", "replace_all"):
        _move(op, _REPLACE_KEYS, "replace")

    if op_type in _CONTENT_TYPES:
        # Common mistake: "replace" used as the payload of an insertion
        _move(op, ("replace",) + _CONTENT_KEYS + _REPLACE_KEYS, "content")

    if op_type == "insert_at_line":
        _move(op, ("line_number", "at_line", "insert_location"), "line")
    if op_type == "delete_lines":
        _move(op, ("start", "from_line"), "start_line")
        _move(op, ("end", "to_line"), "end_line")

    for name in LINE_FIELDS:
        value = op.get(name)
        if isinstance(value, str) and value.strip().isdigit():
            op[name] = int(value.strip())

    return op


def _from_legacy_file(entry: Any) -> Any:
    """Map one entry of the legacy ``{"files": [...]}`` shape."""
    if not isinstance(entry, Mapping):
        return entry
    path = entry.get("path")
    action = entry.get("action")
    content = entry.get("content")

    if action == "insert":
        if entry.get("insert_location") is not None:
            return {"path": path, "type": "insert_at_line",
                    "line": entry["insert_location"], "content": content}
        return {"path": path, "type": "create", "content": content, "overwrite": True}
    if action == "replace":
        search = entry.get("search", entry.get("original"))
        if search is None:
            logger.warning(
                "[ApplyEdits] Legacy replace for %s has no search text, skipping", path
            )
            return None
        return {"path": path, "type": "replace", "search": search, "replace": content}
    if action == "delete":
        return {"path": path, "type": "delete_file"}
    # create / modify / anything else: whole-file write
    return {"path": path, "type": "create", "content": content, "overwrite": True}


def normalize_request(data: Any) -> EditRequest:
    """Normalize any accepted top-level shape into an ``EditRequest``.

    Accepted shapes: ``{"edits": [...]}``, ``{"operations": [...]}``, a bare
    list of operations, and the legacy ``{"files": [{path, action, ...}]}``.
    """
    if isinstance(data, list):
        return EditRequest(edits=[normalize_operation(op) for op in data])

    if not isinstance(data, Mapping):
        raise RequestParseError("Edit request must be a JSON object or list")

    summary = data.get("summary")
    commit_message = data.get("commit_message")

    raw_edits = data.get("edits", data.get("operations"))
    if raw_edits is None and isinstance(data.get("files"), list):
        mapped = [_from_legacy_file(entry) for entry in data["files"]]
        return EditRequest(
            edits=[op for op in mapped if op is not None],
            summary=summary,
            commit_message=commit_message,
        )
    if raw_edits is None:
        raise RequestParseError('Edit request has no "edits" list')
    if not isinstance(raw_edits, list):
        # Leave it for the validator to reject with a proper report
        return EditRequest(edits=raw_edits, summary=summary,
                           commit_message=commit_message)

    return EditRequest(
        edits=[normalize_operation(op) for op in raw_edits],
        summary=summary,
        commit_message=commit_message,
    )
