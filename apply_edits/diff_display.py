"""
Diff display — compute and show colored unified diffs of a resolved batch.

Includes a Textual-based interactive diff viewer that pauses before commit so
the user can review the pending changes and approve/reject them before any
file is written to disk.
"""

from __future__ import annotations

import difflib
import logging
import sys

from .editing.applier import FileChange

logger = logging.getLogger(__name__)


def compute_diff(filepath: str, old_content: str | None,
                 new_content: str | None) -> str | None:
    """Return a unified diff string between two versions of one file.

    ``None`` content stands for "file absent", so created and deleted files
    diff against an empty file. Returns None when nothing changed.
    """
    if old_content == new_content:
        return None  # unchanged

    old_lines = (old_content or "").splitlines(keepends=True)
    new_lines = (new_content or "").splitlines(keepends=True)

    diff = difflib.unified_diff(
        old_lines, new_lines,
        fromfile="/dev/null" if old_content is None else f"a/{filepath}",
        tofile="/dev/null" if new_content is None else f"b/{filepath}",
        lineterm="",
    )
    diff_text = "\n".join(line.rstrip("\r\n") for line in diff)
    return diff_text if diff_text.strip() else None


def format_colored_diff(diff_text: str) -> str:
    """Add ANSI colors to a unified diff string.

    Green for additions (+), red for deletions (-), cyan for @@ hunks.
    """
    lines = diff_text.splitlines()
    colored: list[str] = []
    for line in lines:
        if line.startswith("+++") or line.startswith("---"):
            colored.append(f"\033[1m{line}\033[0m")  # bold
        elif line.startswith("@@"):
            colored.append(f"\033[36m{line}\033[0m")  # cyan
        elif line.startswith("+"):
            colored.append(f"\033[32m{line}\033[0m")  # green
        elif line.startswith("-"):
            colored.append(f"\033[31m{line}\033[0m")  # red
        else:
            colored.append(line)
    return "\n".join(colored)


def compute_diffs(changes: list[FileChange]) -> list[tuple[str, str]]:
    """Compute diffs for all pending changes. Returns list of (filepath, diff_text)."""
    diffs: list[tuple[str, str]] = []
    for change in changes:
        diff = compute_diff(change.path, change.old, change.new)
        if diff:
            diffs.append((change.path, diff))
    return diffs


def _change_summary(changes: list[FileChange]) -> str:
    created = sum(1 for c in changes if c.is_new)
    deleted = sum(1 for c in changes if c.is_deleted)
    modified = len(changes) - created - deleted
    parts = []
    if modified:
        parts.append(f"{modified} modified")
    if created:
        parts.append(f"{created} new")
    if deleted:
        parts.append(f"{deleted} deleted")
    return " | ".join(parts)


# ══════════════════════════════════════════════════════════════════
#  Interactive Diff Approval: Textual TUI
# ══════════════════════════════════════════════════════════════════

def prompt_diff_approval(changes: list[FileChange], auto: bool = False) -> bool:
    """Show pending changes in an interactive Textual viewer and wait for approval.

    Usable directly as the ``approve`` hook of ``EditApplier``.
    Returns ``True`` if the user approves (or if running in auto mode).
    Returns ``False`` if the user rejects.
    """
    # Nothing to review
    if not changes:
        return True

    diffs = compute_diffs(changes)

    # Auto mode: log diffs and approve
    if auto:
        for filepath, diff_text in diffs:
            logger.info("[ApplyEdits] [auto] Diff for %s:\n%s", filepath, diff_text)
        return True

    # Try Textual TUI
    try:
        return _textual_diff_approval(diffs, changes)
    except Exception as e:
        logger.warning("[ApplyEdits] Textual diff viewer failed: %s", e)

    # Fallback: console-based approval
    return _console_diff_approval(diffs, changes)


def _format_rich_diff(diff_text: str) -> str:
    """Convert unified diff text to Rich markup for Textual display."""
    lines = diff_text.splitlines()
    markup_lines: list[str] = []
    for line in lines:
        # Escape Rich markup characters in the line content
        escaped = line.replace("[", "\\[")
        if line.startswith("+++") or line.startswith("---"):
            markup_lines.append(f"[bold white]{escaped}[/bold white]")
        elif line.startswith("@@"):
            markup_lines.append(f"[cyan]{escaped}[/cyan]")
        elif line.startswith("+"):
            markup_lines.append(f"[green]{escaped}[/green]")
        elif line.startswith("-"):
            markup_lines.append(f"[red]{escaped}[/red]")
        else:
            markup_lines.append(escaped)
    return "\n".join(markup_lines)


def _textual_diff_approval(diffs: list[tuple[str, str]],
                           changes: list[FileChange]) -> bool:
    """Launch a Textual app to display diffs and get approval."""
    from textual.app import App, ComposeResult
    from textual.binding import Binding
    from textual.containers import Horizontal, VerticalScroll
    from textual.widgets import Button, Footer, Static

    class DiffApprovalApp(App):
        """Interactive diff viewer with approve/reject."""

        CSS = """
        Screen {
            background: $surface;
        }
        #title-bar {
            dock: top;
            height: 3;
            background: #1a1a2e;
            color: #e94560;
            text-align: center;
            padding: 1;
            text-style: bold;
        }
        #diff-scroll {
            height: 1fr;
            margin: 1 2;
            border: round #444;
            padding: 1;
        }
        .file-header {
            color: #e9c46a;
            text-style: bold;
            margin: 1 0 0 0;
        }
        .diff-content {
            margin: 0 0 1 0;
        }
        #action-buttons {
            dock: bottom;
            height: 3;
            align: center middle;
            padding: 0 2;
        }
        #action-buttons Button {
            margin: 0 2;
            min-width: 20;
        }
        #summary {
            dock: bottom;
            height: 1;
            text-align: center;
            color: #888;
        }
        """

        BINDINGS = [
            Binding("a", "approve", "Approve"),
            Binding("ctrl+s", "approve", "Approve"),
            Binding("escape", "reject", "Reject"),
            Binding("r", "reject", "Reject"),
        ]

        def __init__(self, diffs: list[tuple[str, str]],
                     changes: list[FileChange]) -> None:
            super().__init__()
            self._diffs = diffs
            self._changes = changes
            self._approved: bool = False

        def compose(self) -> ComposeResult:
            yield Static(
                f" ━━  Edit Review — {len(self._changes)} file(s) changed  ━━ ",
                id="title-bar",
            )
            with VerticalScroll(id="diff-scroll"):
                for filepath, diff_text in self._diffs:
                    yield Static(
                        f"[bold yellow]{'─' * 58}[/bold yellow]\n"
                        f"[bold yellow]  {filepath}[/bold yellow]",
                        classes="file-header",
                    )
                    yield Static(
                        _format_rich_diff(diff_text),
                        classes="diff-content",
                    )
            yield Static(
                f"  {_change_summary(self._changes)}  —  "
                f"Press [bold]A[/bold] to approve, [bold]R[/bold] or Esc to reject",
                id="summary",
            )
            with Horizontal(id="action-buttons"):
                yield Button(
                    "✔ Approve", id="approve-btn", variant="success",
                )
                yield Button(
                    "✕ Reject", id="reject-btn", variant="error",
                )
            yield Footer()

        def on_button_pressed(self, event: Button.Pressed) -> None:
            if event.button.id == "approve-btn":
                self._approved = True
                self.exit()
            elif event.button.id == "reject-btn":
                self._approved = False
                self.exit()

        def action_approve(self) -> None:
            self._approved = True
            self.exit()

        def action_reject(self) -> None:
            self._approved = False
            self.exit()

    app = DiffApprovalApp(diffs, changes)
    app.run()
    return app._approved


def _console_diff_approval(diffs: list[tuple[str, str]],
                           changes: list[FileChange],
                           stream=None) -> bool:
    """Fallback console-based diff approval when Textual is unavailable.

    Output goes to stderr; stdout is reserved for the JSON report.
    """
    out = stream or sys.stderr
    out.write("\n" + "=" * 60 + "\n")
    out.write("  EDIT REVIEW\n")
    out.write("=" * 60 + "\n")

    for _, diff_text in diffs:
        out.write(f"\n{'─' * 60}\n")
        out.write(format_colored_diff(diff_text) + "\n")

    out.write(f"\n  {_change_summary(changes)}\n")
    out.write("\n" + "=" * 60 + "\n")
    out.write("  [A]pprove  |  [R]eject\n\n")
    out.flush()

    while True:
        out.write("  Your choice: ")
        out.flush()
        try:
            choice = input().strip().lower()
        except (EOFError, KeyboardInterrupt):
            return False
        if choice in ("a", "approve"):
            return True
        elif choice in ("r", "reject"):
            return False
        else:
            out.write("  Invalid choice. Use A or R.\n")
