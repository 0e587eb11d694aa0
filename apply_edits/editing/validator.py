"""
Edit plan validator — structural checks on a batch before any file I/O.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass

from .operations import (
    LINE_FIELDS, NON_EMPTY_FIELDS, OPERATION_TYPES, TEXT_FIELDS,
)

logger = logging.getLogger(__name__)


@dataclass
class ValidationError:
    """One structural problem with one operation (index -1 = whole batch)."""
    index: int
    field: str
    message: str

    def __str__(self) -> str:
        if self.index < 0:
            return self.message
        return f"Edit {self.index}: {self.message}"


class EditPlanValidator:
    """Validate a batch of canonical operation dicts.

    Every violation is collected so the caller can fix the whole batch in
    one round-trip.
    """

    def validate(self, batch) -> list[ValidationError]:
        if not isinstance(batch, (list, tuple)):
            return [ValidationError(-1, "edits", "Batch must be a list of operations")]

        errors: list[ValidationError] = []
        for index, op in enumerate(batch):
            errors.extend(self.validate_operation(index, op))

        if errors:
            logger.info(
                "[ApplyEdits] Batch failed validation with %d error(s)", len(errors)
            )
        return errors

    def validate_operation(self, index: int, op) -> list[ValidationError]:
        if not isinstance(op, Mapping):
            return [ValidationError(index, "", "Operation must be an object")]

        errors: list[ValidationError] = []

        path = op.get("path")
        if path is None:
            errors.append(ValidationError(index, "path", 'missing required field "path"'))
        elif not isinstance(path, str):
            errors.append(ValidationError(index, "path", '"path" must be a string'))
        elif not path.strip():
            errors.append(ValidationError(index, "path", '"path" must not be empty'))

        op_type = op.get("type")
        if op_type is None:
            errors.append(ValidationError(index, "type", 'missing required field "type"'))
            return errors
        cls = OPERATION_TYPES.get(op_type) if isinstance(op_type, str) else None
        if cls is None:
            known = ", ".join(sorted(OPERATION_TYPES))
            errors.append(ValidationError(
                index, "type", f'unknown type "{op_type}" (expected one of: {known})'
            ))
            return errors

        for name in cls.REQUIRED:
            value = op.get(name)
            if value is None:
                errors.append(ValidationError(
                    index, name, f'({op_type}): missing required field "{name}"'
                ))
                continue
            if name in TEXT_FIELDS and not isinstance(value, str):
                errors.append(ValidationError(
                    index, name, f'({op_type}): "{name}" must be a string'
                ))
            elif name in NON_EMPTY_FIELDS and value == "":
                errors.append(ValidationError(
                    index, name, f'({op_type}): "{name}" must not be empty'
                ))
            elif name in LINE_FIELDS:
                # bool is an int subclass; reject it explicitly
                if isinstance(value, bool) or not isinstance(value, int):
                    errors.append(ValidationError(
                        index, name, f'({op_type}): "{name}" must be an integer'
                    ))
                elif value < 1:
                    errors.append(ValidationError(
                        index, name, f'({op_type}): "{name}" must be >= 1'
                    ))

        if op_type == "delete_lines":
            start, end = op.get("start_line"), op.get("end_line")
            if (_is_line(start) and _is_line(end) and start > end):
                errors.append(ValidationError(
                    index, "end_line",
                    f"(delete_lines): start_line ({start}) must be <= end_line ({end})",
                ))

        overwrite = op.get("overwrite")
        if op_type == "create" and overwrite is not None and not isinstance(overwrite, bool):
            errors.append(ValidationError(
                index, "overwrite", '(create): "overwrite" must be a boolean'
            ))

        return errors


def _is_line(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 1
