"""Tests for edit operations and the EditPlanValidator."""

import pytest

from apply_edits.editing.operations import (
    Create, DeleteFile, DeleteLines, InsertAfter, OPERATION_TYPES, Replace,
    ReplaceAll, operation_from_dict,
)
from apply_edits.editing.validator import EditPlanValidator, ValidationError


class TestOperations:
    def test_all_types_registered(self):
        assert set(OPERATION_TYPES) == {
            "replace", "replace_all", "insert_after", "insert_before",
            "insert_at_line", "create", "append", "prepend", "delete_file",
            "delete_match", "delete_lines",
        }

    def test_from_dict_builds_variant(self):
        op = operation_from_dict(
            {"path": "a.py", "type": "replace", "search": "x", "replace": "y"}
        )
        assert isinstance(op, Replace)
        assert op.type == "replace"
        assert op.target == "x"

    def test_replace_all_is_distinct_type(self):
        op = operation_from_dict(
            {"path": "a.py", "type": "replace_all", "search": "x", "replace": "y"}
        )
        assert isinstance(op, ReplaceAll)
        assert op.TYPE == "replace_all"

    def test_create_overwrite_defaults_false(self):
        op = operation_from_dict({"path": "n.txt", "type": "create", "content": ""})
        assert isinstance(op, Create)
        assert op.overwrite is False
        assert Create.NEEDS_FILE is False

    def test_to_dict_round_trips_fields(self):
        op = InsertAfter(path="a.py", anchor="import os", content="import sys")
        assert op.to_dict() == {
            "type": "insert_after", "path": "a.py",
            "anchor": "import os", "content": "import sys",
        }

    def test_delete_file_has_no_target(self):
        op = DeleteFile(path="old.txt")
        assert op.target is None
        assert op.to_dict() == {"type": "delete_file", "path": "old.txt"}


class TestValidator:
    def setup_method(self):
        self.validator = EditPlanValidator()

    def test_valid_batch(self):
        batch = [
            {"path": "a.py", "type": "replace", "search": "x", "replace": ""},
            {"path": "b.py", "type": "create", "content": "", "overwrite": True},
            {"path": "c.py", "type": "delete_lines", "start_line": 2, "end_line": 2},
            {"path": "d.py", "type": "delete_file"},
        ]
        assert self.validator.validate(batch) == []

    def test_non_list_batch(self):
        errors = self.validator.validate({"edits": []})
        assert len(errors) == 1
        assert errors[0].index == -1

    def test_empty_batch_is_valid(self):
        assert self.validator.validate([]) == []

    def test_missing_path(self):
        errors = self.validator.validate([{"type": "delete_file"}])
        assert [(e.index, e.field) for e in errors] == [(0, "path")]
        assert 'missing required field "path"' in str(errors[0])

    def test_empty_path(self):
        errors = self.validator.validate([{"path": "  ", "type": "delete_file"}])
        assert errors[0].field == "path"

    def test_unknown_type_lists_known_types(self):
        errors = self.validator.validate([{"path": "a", "type": "rewrite"}])
        assert errors[0].field == "type"
        assert "replace_all" in errors[0].message

    def test_missing_required_field(self):
        errors = self.validator.validate(
            [{"path": "a.py", "type": "insert_after", "content": "x"}]
        )
        assert [e.field for e in errors] == ["anchor"]
        assert str(errors[0]) == 'Edit 0: (insert_after): missing required field "anchor"'

    def test_null_field_is_missing(self):
        errors = self.validator.validate(
            [{"path": "a.py", "type": "replace", "search": "x", "replace": None}]
        )
        assert [e.field for e in errors] == ["replace"]

    def test_empty_search_rejected_but_empty_replace_allowed(self):
        errors = self.validator.validate(
            [{"path": "a.py", "type": "replace", "search": "", "replace": ""}]
        )
        assert [e.field for e in errors] == ["search"]

    def test_wrong_primitive_types(self):
        errors = self.validator.validate([
            {"path": "a.py", "type": "append", "content": 5},
            {"path": "a.py", "type": "insert_at_line", "line": "3", "content": "x"},
            {"path": "a.py", "type": "insert_at_line", "line": True, "content": "x"},
            {"path": "a.py", "type": "insert_at_line", "line": 0, "content": "x"},
        ])
        assert [(e.index, e.field) for e in errors] == [
            (0, "content"), (1, "line"), (2, "line"), (3, "line"),
        ]

    def test_line_range_order(self):
        errors = self.validator.validate(
            [{"path": "a.py", "type": "delete_lines", "start_line": 5, "end_line": 2}]
        )
        assert [e.field for e in errors] == ["end_line"]

    def test_overwrite_must_be_bool(self):
        errors = self.validator.validate(
            [{"path": "a.py", "type": "create", "content": "", "overwrite": "yes"}]
        )
        assert [e.field for e in errors] == ["overwrite"]

    def test_collects_every_violation(self):
        errors = self.validator.validate([
            "not an object",
            {"path": "a.py", "type": "replace"},
            {"path": "ok.py", "type": "append", "content": "x"},
            {"type": "nope"},
        ])
        assert sorted({e.index for e in errors}) == [0, 1, 3]
        assert sum(1 for e in errors if e.index == 1) == 2
        assert all(isinstance(e, ValidationError) for e in errors)
