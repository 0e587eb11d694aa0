"""Tests for edit metrics logging and stats."""

import json
import os

import pytest

from apply_edits.editing.metrics import log_edit_metric, metric_from_report, read_edit_stats
from apply_edits.editing.results import ApplyReport, OperationResult


@pytest.fixture
def tmp_project(tmp_path):
    """Create a temp metrics directory."""
    return str(tmp_path)


def _metrics_file(root):
    return os.path.join(root, "edit_metrics.jsonl")


class TestLogEditMetric:
    def test_creates_file_and_writes_entry(self, tmp_project):
        log_edit_metric({"ops": 2, "applied": 2, "failed": 0}, metrics_dir=tmp_project)

        path = _metrics_file(tmp_project)
        assert os.path.isfile(path)

        with open(path) as f:
            lines = f.readlines()
        assert len(lines) == 1

        entry = json.loads(lines[0])
        assert entry["ops"] == 2
        assert "timestamp" in entry

    def test_appends_multiple_entries(self, tmp_project):
        for _ in range(3):
            log_edit_metric({"ops": 1}, metrics_dir=tmp_project)

        with open(_metrics_file(tmp_project)) as f:
            assert len(f.readlines()) == 3


class TestMetricFromReport:
    def test_summarizes_report(self):
        report = ApplyReport(edits=[
            OperationResult(index=0, path="a", type="replace"),
            OperationResult(index=1, path="b", type="replace", status="error",
                            error_kind="not_found"),
            OperationResult(index=2, path="c", type="create", status="error",
                            error_kind="already_exists"),
        ], rolled_back=True)

        data = metric_from_report(report)
        assert data["ops"] == 3
        assert data["applied"] == 1
        assert data["failed"] == 2
        assert data["error_kinds"] == {"not_found": 1, "already_exists": 1}
        assert data["op_types"] == {"replace": 2, "create": 1}
        assert data["rolled_back"] is True
        assert data["committed"] is False


class TestReadEditStats:
    def test_empty_stats(self, tmp_project):
        stats = read_edit_stats(metrics_dir=tmp_project)

        assert stats["total_batches"] == 0
        assert stats["success_rate"] == 0.0
        assert stats["rollback_rate"] == 0.0
        assert stats["error_kinds"] == {}

    def test_stats_from_entries(self, tmp_project):
        entries = [
            {"ops": 2, "failed": 0, "rolled_back": False, "error_kinds": {}},
            {"ops": 4, "failed": 1, "rolled_back": True, "error_kinds": {"not_found": 1}},
            {"ops": 3, "failed": 2, "rolled_back": True,
             "error_kinds": {"not_found": 1, "missing_file": 1}},
            {"ops": 3, "failed": 0, "rolled_back": False, "error_kinds": {}},
        ]
        for e in entries:
            log_edit_metric(e, metrics_dir=tmp_project)

        stats = read_edit_stats(metrics_dir=tmp_project)

        assert stats["total_batches"] == 4
        assert stats["success_rate"] == pytest.approx(50.0)
        assert stats["rollback_rate"] == pytest.approx(50.0)
        assert stats["avg_ops"] == pytest.approx(3.0)
        assert stats["error_kinds"]["not_found"] == pytest.approx(200 / 3)
        assert stats["error_kinds"]["missing_file"] == pytest.approx(100 / 3)

    def test_last_n(self, tmp_project):
        for i in range(10):
            log_edit_metric({"ops": 1, "failed": 0 if i < 5 else 1},
                            metrics_dir=tmp_project)

        stats = read_edit_stats(last_n=5, metrics_dir=tmp_project)
        assert stats["total_batches"] == 5
        assert stats["success_rate"] == 0.0

    def test_skips_corrupt_lines(self, tmp_project):
        log_edit_metric({"ops": 1, "failed": 0}, metrics_dir=tmp_project)
        with open(_metrics_file(tmp_project), "a") as f:
            f.write("not json\n")

        stats = read_edit_stats(metrics_dir=tmp_project)
        assert stats["total_batches"] == 1


class TestMetricsLocation:
    def test_defaults_to_home(self, tmp_path, monkeypatch):
        monkeypatch.setenv("HOME", str(tmp_path / "home"))
        monkeypatch.chdir(tmp_path)

        log_edit_metric({"ops": 1, "failed": 0})

        assert os.path.isfile(tmp_path / "home" / ".apply_edits" / "edit_metrics.jsonl")
        assert not (tmp_path / ".apply_edits").exists()
        assert read_edit_stats()["total_batches"] == 1
