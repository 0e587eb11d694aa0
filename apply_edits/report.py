"""
Report rendering — human summaries, retry context and HTML reports for a batch.
"""

import html
import os
from datetime import datetime

from .editing.locator import text_lines
from .editing.results import ApplyReport, OperationResult

_STATUS_COLORS = {
    "applied": "#22c55e",
    "error": "#ef4444",
}

_STATUS_ICONS = {
    "applied": "✔",
    "error": "✘",
}

_PREVIEW_LINES = 5
_MATCH_LINES = 4

# ANSI codes for render_summary(color=True)
_C_RED = "\033[38;5;203m"
_C_GREEN = "\033[38;5;114m"
_C_YELLOW = "\033[38;5;221m"
_C_CYAN = "\033[38;5;81m"
_C_DIM = "\033[38;5;243m"
_C_BOLD = "\033[1m"
_C_RESET = "\033[0m"


def _escape(text: str) -> str:
    return html.escape(text)


def _paint(text: str, code: str, color: bool) -> str:
    return f"{code}{text}{_C_RESET}" if color else text


def _display_lines(text: str) -> list[str]:
    return [line.rstrip("\r") for line in text_lines(text)]


def _render_edit(result: OperationResult, total: int, color: bool) -> list[str]:
    out = [f"{_paint(f'[{result.index + 1}/{total}]', _C_DIM, color)} "
           f"{_paint(result.type, _C_CYAN, color)} {result.path}"]

    if result.ok:
        out.append(f"      {_paint('✓', _C_GREEN, color)} "
                   f"{_paint(result.message or 'Success', _C_GREEN, color)}")
        return out

    out.append(f"      {_paint('✗ ERROR', _C_RED, color)} "
               f"{_paint(f'({result.error_kind})', _C_DIM, color)}")
    out.append(f"      {_paint(result.message or '', _C_RED, color)}")

    if result.search_preview:
        preview = _display_lines(result.search_preview)
        out.append("")
        out.append(f"      {_paint('Search string (preview):', _C_DIM, color)}")
        for line in preview[:_PREVIEW_LINES]:
            out.append(f"      │ {line}")
        if len(preview) > _PREVIEW_LINES:
            out.append(f"      │ {_paint('...', _C_DIM, color)}")

    if result.closest_matches:
        out.append("")
        out.append(f"      {_paint('Closest matches in file:', _C_DIM, color)}")
        for match in result.closest_matches:
            out.append(f"      │ Line {_paint(str(match.line), _C_YELLOW, color)} "
                       f"({_paint(str(match.percent), _C_YELLOW, color)}% similar):")
            content = _display_lines(match.content)
            for line in content[:_MATCH_LINES]:
                out.append(f"      │   {line}")
            if len(content) > _MATCH_LINES:
                out.append(f"      │   {_paint('...', _C_DIM, color)}")

    if result.suggested_search is not None:
        out.append("")
        out.append(f"      {_paint('Suggested search:', _C_DIM, color)}")
        for line in _display_lines(result.suggested_search)[:_PREVIEW_LINES]:
            out.append(f"      │ {line}")

    if result.hint:
        out.append("")
        out.append(f"      {_paint('Hint:', _C_CYAN, color)} {result.hint}")
    return out


def render_summary(report: ApplyReport, color: bool = False) -> str:
    """Render a per-edit, human-readable summary of *report*."""
    lines: list[str] = []
    total = len(report.edits)
    for result in report.edits:
        lines.extend(_render_edit(result, total, color))

    lines.append("")
    lines.append(_paint("━" * 50, _C_DIM, color))
    counts = f"{report.applied} applied, {report.failed} failed"
    if report.success:
        lines.append(f"{_paint('SUMMARY:', _C_BOLD, color)} {_paint(counts, _C_GREEN, color)}")
    else:
        lines.append(f"{_paint('SUMMARY:', _C_BOLD, color)} {_paint(counts, _C_RED, color)}")
    if report.dry_run:
        lines.append(_paint("Dry run: no files were written", _C_YELLOW, color))
    elif report.rolled_back:
        lines.append(_paint(f"ROLLED BACK: {report.reason}", _C_YELLOW, color))
    return "\n".join(lines)


def render_retry_context(report: ApplyReport, files_context: str = "") -> str:
    """Render the failed edits of *report* as markdown for a corrected retry.

    *files_context* is typically ``reader.format_for_prompt`` output for the
    failed paths, showing their current (rolled back) content.
    """
    failures = report.failures
    if not failures:
        return ""

    sections: list[str] = []
    for result in failures:
        parts = [f"### Failed Edit #{result.index + 1}: {result.path}\n",
                 f"**Type:** {result.type}\n",
                 f"**Error:** {result.error_kind} - {result.message}\n"]
        if result.search_preview:
            parts.append(f"**Your search string:**\n```\n{result.search_preview}\n```\n")
        if result.suggested_search is not None:
            parts.append(f"**Suggested search:**\n```\n{result.suggested_search}\n```\n")
        if result.hint:
            parts.append(f"**Hint:** {result.hint}\n")
        if result.closest_matches:
            matches = "\n\n".join(
                f"Match {k} (line {m.line}, {m.percent}% similar):\n"
                f"```\n{m.content}\n```"
                for k, m in enumerate(result.closest_matches, 1)
            )
            parts.append(f"**Closest matches found in file:**\n{matches}\n")
        parts.append("\n---\n")
        sections.append("".join(parts))

    out = [f"## Failed Edits\n\n{len(failures)} edit(s) failed to apply.\n"]
    if report.rolled_back:
        out.append("All changes in the batch were rolled back; the files below "
                   "show their actual current state.\n")
    out.append("\n## Error Details\n\n" + "\n".join(sections))
    if files_context:
        out.append("\n## Current File Contents\n\n" + files_context)
    return "".join(out)


def generate_html_report(
    report: ApplyReport,
    diffs: list[tuple[str, str]] | None = None,
    output_dir: str = ".apply_edits/reports",
) -> str:
    """Generate a self-contained HTML report file.

    Returns the path to the generated report.
    """
    os.makedirs(output_dir, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
    filename = f"report_{timestamp}.html"
    filepath = os.path.join(output_dir, filename)

    # Build edit HTML
    edits_html = ""
    for result in report.edits:
        color = _STATUS_COLORS.get(result.status, "#64748b")
        icon = _STATUS_ICONS.get(result.status, "○")
        details = ""
        if not result.ok:
            if result.search_preview:
                details += f'<pre class="preview">{_escape(result.search_preview)}</pre>'
            for match in result.closest_matches or []:
                details += (
                    f'<div class="match">Line {match.line} ({match.percent}% similar)</div>'
                    f'<pre class="preview">{_escape(match.content)}</pre>'
                )
            if result.hint:
                details += f'<div class="hint">Hint: {_escape(result.hint)}</div>'

        edits_html += f"""
        <div class="edit" style="border-left: 3px solid {color};">
            <div class="edit-header">
                <span class="edit-icon" style="color: {color};">{icon}</span>
                <span class="edit-type">[{_escape(result.type)}]</span>
                <span class="edit-path">{_escape(result.path)}</span>
                <span class="edit-msg">{_escape(result.message or "")}</span>
            </div>
            {details}
        </div>
        """

    diffs_html = ""
    for path, diff_text in diffs or []:
        diffs_html += (f'<h3 class="diff-path">{_escape(path)}</h3>'
                       f'<pre class="diff-block">{_diff_to_html(diff_text)}</pre>')

    status_class = "success" if report.success else "failure"
    status_text = "SUCCESS" if report.success else "FAILED"
    if report.rolled_back:
        status_text += " — ROLLED BACK"
    elif report.dry_run:
        status_text += " — DRY RUN"

    title = report.summary or "Edit batch"

    report_html = f"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<meta name="viewport" content="width=device-width, initial-scale=1.0">
<title>apply-edits Report — {_escape(title[:60])}</title>
<style>
  :root {{ --bg: #0f172a; --card: #1e293b; --text: #e2e8f0; --muted: #94a3b8;
           --accent: #3b82f6; --success: #22c55e; --failure: #ef4444; }}
  * {{ margin: 0; padding: 0; box-sizing: border-box; }}
  body {{ font-family: 'Inter', 'Segoe UI', sans-serif; background: var(--bg);
          color: var(--text); line-height: 1.6; padding: 2rem; }}
  .container {{ max-width: 900px; margin: 0 auto; }}
  h1 {{ color: var(--accent); font-size: 1.5rem; margin-bottom: 0.5rem; }}
  .timestamp {{ color: var(--muted); font-size: 0.875rem; margin-bottom: 1.5rem; }}

  .dashboard {{ display: grid; grid-template-columns: repeat(auto-fit, minmax(140px, 1fr));
                gap: 1rem; margin-bottom: 2rem; }}
  .stat {{ background: var(--card); border-radius: 8px; padding: 1rem; text-align: center; }}
  .stat-value {{ font-size: 1.5rem; font-weight: 700; }}
  .stat-label {{ color: var(--muted); font-size: 0.75rem; text-transform: uppercase; }}

  .status-badge {{ display: inline-block; padding: 0.25rem 0.75rem; border-radius: 4px;
                   font-weight: 600; font-size: 0.875rem; margin-bottom: 1.5rem; }}
  .success {{ background: rgba(34, 197, 94, 0.2); color: var(--success); }}
  .failure {{ background: rgba(239, 68, 68, 0.2); color: var(--failure); }}

  .reason {{ background: var(--card); border-radius: 8px; padding: 1rem;
             margin-bottom: 1.5rem; font-style: italic; color: var(--muted); }}

  .edit {{ background: var(--card); border-radius: 8px; padding: 1rem;
           margin-bottom: 0.75rem; }}
  .edit-header {{ display: flex; align-items: center; gap: 0.5rem; flex-wrap: wrap; }}
  .edit-type {{ color: var(--accent); font-size: 0.8rem; font-weight: 600; }}
  .edit-path {{ font-family: 'Consolas', monospace; }}
  .edit-msg {{ flex: 1; min-width: 200px; color: var(--muted); font-size: 0.85rem; }}
  .match {{ color: #e9c46a; margin-top: 0.5rem; font-size: 0.85rem; }}
  .hint {{ color: #60a5fa; margin-top: 0.5rem; font-size: 0.85rem; }}

  .preview, .diff-block {{ background: #0d1117; border-radius: 6px; padding: 1rem;
                 margin-top: 0.5rem; overflow-x: auto; font-family: 'Consolas', monospace;
                 font-size: 0.8rem; line-height: 1.4; }}
  .diff-path {{ font-size: 0.95rem; margin-top: 1rem; }}
  .diff-add {{ color: #22c55e; }}
  .diff-del {{ color: #ef4444; }}
  .diff-hunk {{ color: #60a5fa; }}
  .diff-meta {{ color: #e2e8f0; font-weight: 600; }}

  .footer {{ text-align: center; color: var(--muted); font-size: 0.75rem;
             margin-top: 2rem; padding-top: 1rem; border-top: 1px solid #334155; }}
</style>
</head>
<body>
<div class="container">
  <h1>apply-edits Report</h1>
  <p class="timestamp">Generated {datetime.now().strftime("%Y-%m-%d %H:%M:%S")}</p>

  <span class="status-badge {status_class}">{status_text}</span>

  {f'<div class="reason">{_escape(report.reason)}</div>' if report.reason else ""}

  <div class="dashboard">
    <div class="stat">
      <div class="stat-value">{len(report.edits)}</div>
      <div class="stat-label">Total Edits</div>
    </div>
    <div class="stat">
      <div class="stat-value" style="color: var(--success);">{report.applied}</div>
      <div class="stat-label">Applied</div>
    </div>
    <div class="stat">
      <div class="stat-value" style="color: var(--failure);">{report.failed}</div>
      <div class="stat-label">Failed</div>
    </div>
  </div>

  <h2 style="margin-bottom: 1rem; font-size: 1.1rem;">Edits</h2>
  {edits_html}

  {f'<h2 style="margin: 1.5rem 0 0.5rem; font-size: 1.1rem;">Changes</h2>{diffs_html}' if diffs_html else ""}

  <div class="footer">
    apply-edits — targeted text edits
  </div>
</div>
</body>
</html>"""

    with open(filepath, "w", encoding="utf-8") as f:
        f.write(report_html)

    return filepath


def _diff_to_html(diff_text: str) -> str:
    """Convert a unified diff to syntax-colored HTML."""
    lines: list[str] = []
    for line in diff_text.splitlines():
        escaped = _escape(line)
        if line.startswith("+++") or line.startswith("---"):
            lines.append(f'<span class="diff-meta">{escaped}</span>')
        elif line.startswith("@@"):
            lines.append(f'<span class="diff-hunk">{escaped}</span>')
        elif line.startswith("+"):
            lines.append(f'<span class="diff-add">{escaped}</span>')
        elif line.startswith("-"):
            lines.append(f'<span class="diff-del">{escaped}</span>')
        else:
            lines.append(escaped)
    return "\n".join(lines)
