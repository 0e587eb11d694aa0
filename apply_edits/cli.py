"""
CLI entry point — argument parsing and main execution flow.

The JSON result always goes to stdout; human-readable progress goes to
stderr so the two can be consumed separately.
"""

import argparse
import json
import sys

from .api import apply_edits
from .cli_display import EditDisplay, setup_logger
from .config import Config
from .diff_display import compute_diffs, prompt_diff_approval
from .editing.metrics import read_edit_stats
from .editing.normalizer import RequestParseError, parse_request
from .reader import read_files, format_for_prompt
from .report import generate_html_report


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="apply-edits",
        description="apply-edits — targeted, atomic text edits with retry diagnostics",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    # apply
    p_apply = sub.add_parser("apply", help="Apply a batch of edits")
    src = p_apply.add_mutually_exclusive_group(required=True)
    src.add_argument("--file", help="Path to a JSON file containing the edits")
    src.add_argument("--stdin", action="store_true",
                     help="Read the edits JSON from stdin")
    p_apply.add_argument("--workdir", default=".",
                         help="Directory the edit paths are relative to")
    p_apply.add_argument("--dry-run", action="store_true",
                         help="Resolve every edit but write nothing")
    p_apply.add_argument("--partial", action="store_true",
                         help="Commit the edits that resolved even if others failed")
    p_apply.add_argument("--review", action="store_true",
                         help="Review the pending diff before anything is written")
    p_apply.add_argument("--config", default=None,
                         help="Path to .apply_edits.yaml config file")
    p_apply.add_argument("--no-color", action="store_true",
                         help="Disable colored output")
    p_apply.add_argument("--html-report", action="store_true",
                         help="Write an HTML report of the batch")
    p_apply.add_argument("--no-metrics", action="store_true",
                         help="Do not record this batch in the metrics log")

    # read
    p_read = sub.add_parser("read", help="Read files with line numbers")
    which = p_read.add_mutually_exclusive_group(required=True)
    which.add_argument("--file", help="Single file to read")
    which.add_argument("--files", help="Comma-separated list of files")
    p_read.add_argument("--workdir", default=".",
                        help="Directory the paths are relative to")
    p_read.add_argument("--max-lines", type=int, default=None,
                        help="Maximum lines per file (default: from config)")
    p_read.add_argument("--format", choices=["json", "prompt"], default="json",
                        help="Output format")
    p_read.add_argument("--config", default=None,
                        help="Path to .apply_edits.yaml config file")

    # stats
    p_stats = sub.add_parser("stats", help="Show rolling edit statistics")
    p_stats.add_argument("--last", type=int, default=50,
                         help="Number of most recent batches to include")
    p_stats.add_argument("--config", default=None,
                         help="Path to .apply_edits.yaml config file")
    return parser


def _cmd_apply(args) -> int:
    cfg = Config.load(args.config)
    setup_logger(cfg.LOG_DIR)
    display = EditDisplay(color=cfg.COLOR and not args.no_color)

    try:
        if args.stdin:
            raw = sys.stdin.read()
        else:
            with open(args.file, "r", encoding="utf-8") as f:
                raw = f.read()
    except OSError as e:
        display.error(f"Failed to read edits file: {e}")
        return 1

    try:
        request = parse_request(raw)
    except RequestParseError as e:
        display.error(str(e))
        return 1

    count = len(request.edits) if isinstance(request.edits, list) else 0
    display.header(args.workdir, count, dry_run=args.dry_run)

    # Capture the pending changes for the HTML report; review if asked
    pending: list = []
    approve = None
    if args.review or args.html_report:
        def approve(changes):
            pending.extend(changes)
            if args.review:
                return prompt_diff_approval(changes)
            return True

    report = apply_edits(
        request,
        args.workdir,
        dry_run=args.dry_run,
        partial=args.partial,
        approve=approve,
        config=cfg,
        record_metrics=not args.no_metrics,
    )

    display.show_report(report)

    if args.html_report:
        path = generate_html_report(report, compute_diffs(pending),
                                    output_dir=cfg.REPORT_DIR)
        sys.stderr.write(f"  Report: {path}\n")

    print(report.to_json())
    # Failed edits are reported in the JSON, not through the exit status
    return 0


def _cmd_read(args) -> int:
    cfg = Config.load(args.config)
    max_lines = args.max_lines if args.max_lines is not None else cfg.READ_MAX_LINES
    if args.file:
        paths = [args.file]
    else:
        paths = [p.strip() for p in args.files.split(",") if p.strip()]

    results = read_files(args.workdir, paths, max_lines)
    for f in results.files:
        if f.error:
            sys.stderr.write(f"{f.path} (error: {f.error})\n")
        elif f.exists:
            sys.stderr.write(f"{f.path} ({f.lines} lines, {f.bytes} bytes)\n")
        else:
            sys.stderr.write(f"{f.path} (does not exist)\n")

    if args.format == "prompt":
        print(format_for_prompt(results))
    else:
        print(json.dumps(results.to_dict(), indent=2, ensure_ascii=False))
    return 0


def _cmd_stats(args) -> int:
    cfg = Config.load(args.config)
    stats = read_edit_stats(last_n=args.last, metrics_dir=cfg.METRICS_DIR)
    print(json.dumps(stats, indent=2))
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command == "apply":
        return _cmd_apply(args)
    if args.command == "read":
        return _cmd_read(args)
    return _cmd_stats(args)


if __name__ == "__main__":
    sys.exit(main())
