"""Tests for the apply-edits command line."""

import io
import json
import os

import pytest

from apply_edits.cli import main


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    for key in list(os.environ):
        if key.startswith("APPLY_EDITS_"):
            monkeypatch.delenv(key)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    monkeypatch.chdir(tmp_path)
    work = tmp_path / "work"
    work.mkdir()
    (work / "f.js").write_text("const x = 1;\n")
    return work


def _snapshot(root) -> dict:
    tree = {}
    for dirpath, _, filenames in os.walk(root):
        for name in filenames:
            full = os.path.join(dirpath, name)
            with open(full, "rb") as f:
                tree[os.path.relpath(full, root)] = f.read()
    return tree


def _edits_file(tmp_path, data) -> str:
    path = tmp_path / "edits.json"
    path.write_text(data if isinstance(data, str) else json.dumps(data))
    return str(path)


REPLACE = {"edits": [{"type": "replace", "path": "f.js",
                      "search": "const x = 1;", "replace": "const x = 2;"}],
           "summary": "bump x"}


class TestApplyCommand:
    def test_apply_success(self, workdir, tmp_path, capsys):
        code = main(["apply", "--file", _edits_file(tmp_path, REPLACE),
                     "--workdir", str(workdir), "--no-color"])
        out = capsys.readouterr()

        assert code == 0
        report = json.loads(out.out)
        assert report["success"] is True
        assert report["applied"] == 1
        assert report["summary"] == "bump x"
        assert (workdir / "f.js").read_text() == "const x = 2;\n"
        assert "SUMMARY: 1 applied, 0 failed" in out.err
        assert os.path.isfile(tmp_path / "home" / ".apply_edits" / "edit_metrics.jsonl")
        assert not (workdir / ".apply_edits").exists()

    def test_failed_edits_still_exit_zero(self, workdir, tmp_path, capsys):
        batch = {"edits": [{"type": "replace", "path": "f.js",
                            "search": "const y = 1;", "replace": ""}]}
        code = main(["apply", "--file", _edits_file(tmp_path, batch),
                     "--workdir", str(workdir), "--no-color"])
        out = capsys.readouterr()

        assert code == 0
        report = json.loads(out.out)
        assert report["failed"] == 1
        assert report["edits"][0]["error_kind"] == "not_found"
        assert "Hint:" in out.err
        assert (workdir / "f.js").read_text() == "const x = 1;\n"

    def test_failed_batch_leaves_workdir_untouched(self, workdir, tmp_path, capsys):
        batch = {"edits": [
            {"type": "create", "path": "new/dir/a.js", "content": "x\n"},
            {"type": "replace", "path": "f.js", "search": "missing", "replace": ""},
        ]}
        before = _snapshot(workdir)

        code = main(["apply", "--file", _edits_file(tmp_path, batch),
                     "--workdir", str(workdir), "--no-color"])
        report = json.loads(capsys.readouterr().out)

        assert code == 0
        assert report["rolled_back"] is True
        assert _snapshot(workdir) == before
        assert sorted(os.listdir(workdir)) == ["f.js"]

    def test_fenced_lenient_input(self, workdir, tmp_path, capsys):
        text = ('```json\n{"edits": [{"operation": "replace", "file": "f.js", '
                '"old": "const x = 1;", "new": "const x = 3;"}]}\n```')
        code = main(["apply", "--file", _edits_file(tmp_path, text),
                     "--workdir", str(workdir)])
        capsys.readouterr()
        assert code == 0
        assert (workdir / "f.js").read_text() == "const x = 3;\n"

    def test_stdin(self, workdir, monkeypatch, capsys):
        monkeypatch.setattr("sys.stdin", io.StringIO(json.dumps(REPLACE)))
        code = main(["apply", "--stdin", "--workdir", str(workdir)])
        capsys.readouterr()
        assert code == 0
        assert (workdir / "f.js").read_text() == "const x = 2;\n"

    def test_invalid_json_exits_one(self, workdir, tmp_path, capsys):
        code = main(["apply", "--file", _edits_file(tmp_path, "{broken"),
                     "--workdir", str(workdir), "--no-color"])
        out = capsys.readouterr()
        assert code == 1
        assert out.out == ""
        assert "Failed to parse JSON" in out.err

    def test_missing_input_file_exits_one(self, workdir, tmp_path, capsys):
        code = main(["apply", "--file", str(tmp_path / "nope.json"),
                     "--workdir", str(workdir)])
        assert code == 1
        assert "Failed to read edits file" in capsys.readouterr().err

    def test_dry_run(self, workdir, tmp_path, capsys):
        code = main(["apply", "--file", _edits_file(tmp_path, REPLACE),
                     "--workdir", str(workdir), "--dry-run", "--no-metrics"])
        report = json.loads(capsys.readouterr().out)
        assert code == 0
        assert report["dry_run"] is True
        assert report["committed"] is False
        assert (workdir / "f.js").read_text() == "const x = 1;\n"
        assert not (workdir / ".apply_edits").exists()

    def test_html_report(self, workdir, tmp_path, capsys):
        code = main(["apply", "--file", _edits_file(tmp_path, REPLACE),
                     "--workdir", str(workdir), "--html-report", "--no-metrics"])
        capsys.readouterr()
        assert code == 0
        reports = os.listdir(tmp_path / ".apply_edits" / "reports")
        assert len(reports) == 1
        with open(tmp_path / ".apply_edits" / "reports" / reports[0],
                  encoding="utf-8") as f:
            assert "+const x = 2;" in f.read()


class TestReadCommand:
    def test_read_json(self, workdir, capsys):
        code = main(["read", "--file", "f.js", "--workdir", str(workdir)])
        out = capsys.readouterr()
        data = json.loads(out.out)
        assert code == 0
        assert data["files"][0]["content_with_line_numbers"] == "1 | const x = 1;\n"
        assert "f.js (1 lines, 13 bytes)" in out.err

    def test_read_prompt_format(self, workdir, capsys):
        code = main(["read", "--files", "f.js, new.js", "--workdir", str(workdir),
                     "--format", "prompt"])
        out = capsys.readouterr()
        assert code == 0
        assert "### f.js (1 lines)" in out.out
        assert "*File does not exist - will be created*" in out.out
        assert "new.js (does not exist)" in out.err


class TestStatsCommand:
    def test_stats_after_apply(self, workdir, tmp_path, capsys):
        main(["apply", "--file", _edits_file(tmp_path, REPLACE), "--workdir", str(workdir)])
        capsys.readouterr()

        code = main(["stats"])
        stats = json.loads(capsys.readouterr().out)
        assert code == 0
        assert stats["total_batches"] == 1
        assert stats["success_rate"] == 100.0
