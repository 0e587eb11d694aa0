"""Tests for report rendering."""

import os

from apply_edits.editing.results import ApplyReport, MatchCandidate, OperationResult
from apply_edits.report import generate_html_report, render_retry_context, render_summary


def _failed_report() -> ApplyReport:
    return ApplyReport(
        edits=[
            OperationResult(index=0, path="src/a.py", type="replace",
                            message="Replaced 1 occurrence (line 3)", lines=(3, 3)),
            OperationResult(
                index=1, path="src/b.py", type="replace", status="error",
                error_kind="not_found",
                message="Search string not found in file: src/b.py",
                search_preview="def helper(x):\n    return x",
                closest_matches=[
                    MatchCandidate(line=12, content="def helper(y):\n    return y",
                                   similarity=0.876),
                ],
                hint="Similar content found at line 12.",
            ),
        ],
        rolled_back=True,
        reason="1 edit(s) failed; all changes rolled back, no files were written",
    )


class TestRenderSummary:
    def test_plain_summary(self):
        text = render_summary(_failed_report(), color=False)
        assert "[1/2] replace src/a.py" in text
        assert "Replaced 1 occurrence (line 3)" in text
        assert "✗ ERROR (not_found)" in text
        assert "│ def helper(x):" in text
        assert "Line 12 (88% similar):" in text
        assert "Hint: Similar content found at line 12." in text
        assert "SUMMARY: 1 applied, 1 failed" in text
        assert "ROLLED BACK" in text
        assert "\033[" not in text

    def test_colored_summary(self):
        text = render_summary(_failed_report(), color=True)
        assert "\033[" in text

    def test_success_summary(self):
        report = ApplyReport(edits=[
            OperationResult(index=0, path="a", type="append", message="Appended 1 line(s)"),
        ], committed=True)
        text = render_summary(report)
        assert "SUMMARY: 1 applied, 0 failed" in text
        assert "ROLLED BACK" not in text

    def test_long_preview_is_cut(self):
        report = ApplyReport(edits=[OperationResult(
            index=0, path="a", type="replace", status="error", error_kind="not_found",
            message="m", search_preview="\n".join(f"line {i}" for i in range(10)),
        )])
        text = render_summary(report)
        assert "│ line 4" in text
        assert "│ line 5" not in text


class TestRetryContext:
    def test_only_failures(self):
        text = render_retry_context(_failed_report(), files_context="### src/b.py (20 lines)")
        assert "### Failed Edit #2: src/b.py" in text
        assert "src/a.py" not in text
        assert "**Type:** replace" in text
        assert "**Error:** not_found - Search string not found" in text
        assert "```\ndef helper(x):\n    return x\n```" in text
        assert "Match 1 (line 12, 88% similar):" in text
        assert "rolled back" in text
        assert "## Current File Contents" in text

    def test_similarity_is_rounded(self):
        report = ApplyReport(edits=[OperationResult(
            index=0, path="x.py", type="replace", status="error", error_kind="not_found",
            message="Search string not found in file: x.py",
            closest_matches=[MatchCandidate(line=3, content="y = 2", similarity=0.917)],
        )])
        assert "Match 1 (line 3, 92% similar):" in render_retry_context(report)

    def test_empty_for_success(self):
        assert render_retry_context(ApplyReport()) == ""


class TestHtmlReport:
    def test_writes_file(self, tmp_path):
        diffs = [("src/a.py", "--- a/src/a.py\n+++ b/src/a.py\n@@ -1 +1 @@\n-x\n+<y>")]
        path = generate_html_report(_failed_report(), diffs, output_dir=str(tmp_path))

        assert os.path.isfile(path)
        with open(path, encoding="utf-8") as f:
            content = f.read()
        assert "FAILED" in content
        assert "ROLLED BACK" in content
        assert "src/b.py" in content
        assert "Line 12 (88% similar)" in content
        assert '<span class="diff-add">+&lt;y&gt;</span>' in content
