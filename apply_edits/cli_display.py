import logging
import os
import shutil
import sys
from datetime import datetime

from .editing.results import ApplyReport
from .report import render_summary


def setup_logger(log_dir: str = ".apply_edits/logs") -> logging.Logger:
    """Creates a file logger. All verbose output goes here."""
    logger = logging.getLogger("apply_edits")
    logger.setLevel(logging.DEBUG)

    # Already set up in this process
    if any(isinstance(h, logging.FileHandler) for h in logger.handlers):
        return logger

    os.makedirs(log_dir, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = os.path.join(log_dir, f"apply_edits_{timestamp}.log")

    # File handler: captures everything
    fh = logging.FileHandler(log_file, encoding="utf-8")
    fh.setLevel(logging.DEBUG)
    fh.setFormatter(logging.Formatter(
        "%(asctime)s [%(levelname)s] %(message)s", datefmt="%H:%M:%S"
    ))
    logger.addHandler(fh)

    return logger


class EditDisplay:
    """Human-readable progress output for an edit batch (written to stderr)."""

    ICONS = {
        "done":     "✔",
        "failed":   "✘",
    }

    C_ORANGE = "\033[38;5;208m"
    C_GREEN  = "\033[38;5;114m"
    C_RED    = "\033[38;5;203m"
    C_DIM    = "\033[38;5;243m"
    C_BOLD   = "\033[1m"
    C_RESET  = "\033[0m"

    def __init__(self, color: bool = True, stream=None):
        self.stream = stream or sys.stderr
        self.color = color
        self.term_width = shutil.get_terminal_size((80, 24)).columns

    def _c(self, code: str, text: str) -> str:
        if not self.color:
            return text
        return f"{code}{text}{self.C_RESET}"

    def _write(self, text: str = "") -> None:
        self.stream.write(text + "\n")
        self.stream.flush()

    def header(self, workdir: str, count: int, dry_run: bool = False) -> None:
        w = min(self.term_width, 72)
        mode = " (dry run)" if dry_run else ""
        self._write(self._c(self.C_ORANGE, "═" * w))
        self._write(f"  {self._c(self.C_BOLD, 'apply-edits')}{mode}  "
                    f"{self._c(self.C_DIM, f'Working directory: {workdir}')}")
        self._write(f"  Processing {self._c(self.C_BOLD, str(count))} edit(s)...")
        self._write(self._c(self.C_ORANGE, "═" * w))

    def show_report(self, report: ApplyReport) -> None:
        """Per-edit results, summary line and final status."""
        self._write(render_summary(report, color=self.color))
        if report.committed:
            self._write(f"  {self._c(self.C_GREEN, self.ICONS['done'])} Changes written")
        else:
            self._write(f"  {self._c(self.C_DIM, 'No files were written')}")

    def error(self, message: str) -> None:
        self._write(f"  {self._c(self.C_RED, self.ICONS['failed'])} {message}")
