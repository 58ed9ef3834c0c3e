#!/usr/bin/env python3
"""
extdu CLI: command line interface for per-extension disk usage and hardlink reclaiming.

  extdu scan PATH...            usage report per extension
  extdu link MASTER DUPLICATE...  replace duplicates with hardlinks to MASTER

Scanning never modifies anything. Linking verifies content before replacing a file
and can be previewed with --dry-run.
"""
from __future__ import annotations  # Enable postponed evaluation of annotations (PEP 563)
import argparse
import os
import signal
import sys
import threading
import time
from typing import Callable, List, NoReturn, Optional, Set
import logging

logging.basicConfig(
    level=logging.ERROR,
    format="%(levelname)-8s | %(name)-25s | %(message)s"
)

from extdu.core.models import ScanParams, ScanResult, Severity
from extdu.commands import ReclaimCommand, ReclaimReport, ScanCommand
from extdu.core.scanner import DiskUsageScanner
from extdu.services.report_service import ReportBuilder, ReportOptions
from extdu.utils.convert_utils import ConvertUtils
from extdu.aliases import (
    PICK_HELP_TEXT, REVERSE_HELP_TEXT, SORT_HELP_TEXT,
    TABLE_ALIASES, TABLE_CHOICES, TABLE_HELP_TEXT,
    COLUMN_ALIASES, COLUMN_CHOICES, COLUMN_HELP_TEXT,
    EPILOG_TEXT, ascending_sort_key, descending_sort_key
)


class CLIApplication:
    """Main CLI application controller."""

    def __init__(self):
        self.start_time: float = time.time()
        self.verbose: bool = False
        self.quiet: bool = False
        self.show_progress: bool = False
        self._stop_event = threading.Event()
        self.column_names: Set[str] = set()

        # Fix encoding for Windows consoles to prevent UnicodeEncodeError.
        # Undecodable file names arrive as surrogate escapes and are printed escaped.
        for stream in (sys.stdout, sys.stderr):
            if hasattr(stream, "reconfigure"):
                stream.reconfigure(encoding="utf-8", errors="backslashreplace")

    @staticmethod
    def build_parser() -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(
            prog="extdu",
            description="extdu: disk usage per file extension, with hardlink space reclaiming",
            formatter_class=argparse.RawTextHelpFormatter,
            epilog=EPILOG_TEXT
        )
        subparsers = parser.add_subparsers(dest="command", required=True)

        # ----- scan -----
        scan_parser = subparsers.add_parser(
            "scan",
            help="Report disk usage per extension",
            formatter_class=argparse.RawTextHelpFormatter
        )
        scan_parser.add_argument(
            "paths",
            nargs="+",
            help="Directories, files or wildcard patterns to scan ('-' reads paths from stdin)"
        )

        # Filtering options
        scan_parser.add_argument(
            "--include", "-i",
            action="append",
            default=[],
            metavar="PATTERN",
            dest="include_items",
            help="Only count files whose name matches PATTERN (repeatable)"
        )
        scan_parser.add_argument(
            "--exclude", "-e",
            action="append",
            default=[],
            metavar="PATTERN",
            dest="exclude_items",
            help="Skip files and directories whose name matches PATTERN (repeatable)"
        )
        scan_parser.add_argument(
            "--include-path",
            action="append",
            default=[],
            metavar="PATTERN",
            dest="include_paths",
            help="Only count files whose full path matches PATTERN (repeatable)"
        )
        scan_parser.add_argument(
            "--exclude-path",
            action="append",
            default=[],
            metavar="PATTERN",
            dest="exclude_paths",
            help="Skip files and directories whose full path matches PATTERN (repeatable)"
        )
        scan_parser.add_argument(
            "--regex",
            action="store_true",
            dest="regex_mode",
            help="Treat patterns as regular expressions instead of DOS wildcards"
        )
        scan_parser.add_argument(
            "--ignore-case",
            action="store_true",
            help="Case-insensitive pattern and pick rule matching"
        )
        scan_parser.add_argument(
            "--pick",
            action="append",
            default=[],
            metavar="RULE",
            dest="pick_rules",
            help=PICK_HELP_TEXT
        )
        scan_parser.add_argument(
            "--depth", "-d",
            default=0,
            type=int,
            metavar="N",
            help="Maximum directory depth to descend (0 = unlimited). Default: 0"
        )
        scan_parser.add_argument(
            "--divide",
            action="store_true",
            dest="divide_by_hardlinks",
            help="Divide each file's sizes by its hardlink count"
        )

        # Scopes and layout
        scan_parser.add_argument(
            "--scope",
            action="append",
            default=[],
            metavar="PATTERN",
            dest="summary_patterns",
            help="Report directories whose full path matches PATTERN on their own (repeatable)"
        )
        scan_parser.add_argument(
            "--scope-top",
            action="store_true",
            dest="summarize_top_level",
            help="Report every top-level directory of a path on its own"
        )
        scan_parser.add_argument(
            "--summary",
            action="store_true",
            help="One line per path or scope instead of one row per extension"
        )
        scan_parser.add_argument(
            "--total",
            action="store_true",
            help="Only print the total row of each path or scope and the grand total"
        )
        scan_parser.add_argument(
            "--table",
            choices=TABLE_CHOICES,
            default=None,
            help=TABLE_HELP_TEXT
        )
        scan_parser.add_argument(
            "--column",
            choices=COLUMN_CHOICES,
            default=None,
            help=COLUMN_HELP_TEXT
        )
        scan_parser.add_argument(
            "--sort",
            action="append",
            type=ascending_sort_key,
            dest="sort_keys",
            metavar="FIELD",
            help=SORT_HELP_TEXT
        )
        scan_parser.add_argument(
            "--reverse",
            action="append",
            type=descending_sort_key,
            dest="sort_keys",
            metavar="FIELD",
            help=REVERSE_HELP_TEXT
        )

        # Output options
        scan_parser.add_argument(
            "--human", "-H",
            action="store_true",
            help="Human-readable sizes (e.g. 1.50MB)"
        )
        scan_parser.add_argument(
            "--no-commas",
            action="store_false",
            dest="commas",
            help="Do not group digits by thousands"
        )
        scan_parser.add_argument(
            "--absolute",
            action="store_true",
            help="Always print absolute paths"
        )
        scan_parser.add_argument(
            "--threads", "-t",
            default=1,
            type=int,
            metavar="N",
            help="Walk top-level subdirectories with N threads. Default: 1"
        )
        scan_parser.add_argument(
            "--show-files",
            action="store_true",
            help="Print every counted file"
        )
        scan_parser.add_argument(
            "--progress",
            action="store_true",
            help="Show file counter on stderr while scanning"
        )
        CLIApplication._add_output_flags(scan_parser)

        # ----- link -----
        link_parser = subparsers.add_parser(
            "link",
            help="Replace duplicates with hardlinks to a master file",
            formatter_class=argparse.RawTextHelpFormatter
        )
        link_parser.add_argument("master", help="File that is kept")
        link_parser.add_argument("duplicates", nargs="+", help="Files replaced by hardlinks to master")
        link_parser.add_argument(
            "--dry-run", "-n",
            action="store_true",
            help="Show what would be linked without changing anything"
        )
        link_parser.add_argument(
            "--no-verify",
            action="store_false",
            dest="verify",
            help="Skip the size and xxHash content comparison before linking"
        )
        CLIApplication._add_output_flags(link_parser)

        return parser

    @staticmethod
    def _add_output_flags(parser: argparse.ArgumentParser) -> None:
        parser.add_argument(
            "--quiet", "-q",
            action="store_true",
            help="Suppress non-essential output"
        )
        parser.add_argument(
            "--verbose", "-v",
            action="store_true",
            help="Log every directory visited and show timing"
        )

    def parse_args(self, args=None) -> argparse.Namespace:
        """Parse command-line arguments."""
        return self.build_parser().parse_args(args)

    def validate_args(self, args: argparse.Namespace) -> None:
        """Validate command-line arguments before execution."""
        if args.command == "scan":
            if args.depth < 0:
                self.error_exit("Depth cannot be negative")
            if args.threads < 1:
                self.error_exit("Thread count must be at least 1")
            if args.table and (args.summary or args.total):
                self.error_exit("--table cannot be combined with --summary or --total")
            if args.column and (args.table or args.summary or args.total):
                self.error_exit("--column cannot be combined with --table, --summary or --total")
        elif args.command == "link":
            if not os.path.isfile(args.master):
                self.error_exit(f"Master file not found: {args.master}")

    @staticmethod
    def read_roots(paths: List[str], stdin=None) -> List[str]:
        """A single '-' means one root per line on stdin."""
        if paths != ["-"]:
            return paths
        stream = stdin or sys.stdin
        return [line.strip() for line in stream if line.strip()]

    def create_params(self, args: argparse.Namespace) -> ScanParams:
        """Create ScanParams from CLI arguments."""
        try:
            return ScanParams(
                roots=self.read_roots(args.paths),
                include_items=args.include_items,
                exclude_items=args.exclude_items,
                include_paths=args.include_paths,
                exclude_paths=args.exclude_paths,
                pick_rules=args.pick_rules,
                summary_patterns=args.summary_patterns,
                summarize_top_level=args.summarize_top_level,
                regex_mode=args.regex_mode,
                ignore_case=args.ignore_case,
                max_depth=1 if args.column else args.depth,
                divide_by_hardlinks=args.divide_by_hardlinks,
                threads=args.threads,
            )
        except ValueError as e:
            self.error_exit(f"Parameter error: {e}")

    def progress_callback(self, stage: str, current: int, total: Optional[int]) -> None:
        """CLI progress callback - shows progress in console."""
        if not self.show_progress:
            return

        if total and total > 0:
            percent = (current / total) * 100
            sys.stderr.write(f"\r  [{stage}] {current}/{total} ({percent:.1f}%)")
        else:
            sys.stderr.write(f"\r  [{stage}] {current} files processed...")
        sys.stderr.flush()

    def stopped_flag(self) -> bool:
        """True once Ctrl+C was pressed during a scan or link run."""
        return self._stop_event.is_set()

    def _handle_sigint(self, signum, frame) -> None:
        self._stop_event.set()

    def install_signal_handler(self):
        """Route Ctrl+C into the stopped flag; returns the previous handler."""
        if threading.current_thread() is not threading.main_thread():
            return None
        return signal.signal(signal.SIGINT, self._handle_sigint)

    @staticmethod
    def restore_signal_handler(previous) -> None:
        if previous is not None:
            signal.signal(signal.SIGINT, previous)

    def print_file(self, path: str) -> None:
        print(path)

    def collect_name(self, path: str) -> None:
        """Remembers a root-level file name for the side-by-side columns."""
        self.column_names.add(os.path.basename(path))

    def file_listener(self, args: argparse.Namespace) -> Optional[Callable[[str], None]]:
        listeners = []
        if args.show_files:
            listeners.append(self.print_file)
        if args.column:
            listeners.append(self.collect_name)
        if not listeners:
            return None
        if len(listeners) == 1:
            return listeners[0]

        def notify_all(path: str) -> None:
            for listener in listeners:
                listener(path)
        return notify_all

    def run_scan(self, params: ScanParams,
                 file_listener: Optional[Callable[[str], None]] = None) -> List[ScanResult]:
        """Execute the scan of every root."""
        try:
            scanner = DiskUsageScanner.from_params(params, file_listener=file_listener)
        except ValueError as e:
            self.error_exit(f"Parameter error: {e}")

        command = ScanCommand(scanner=scanner)
        previous = self.install_signal_handler()
        try:
            return command.execute(
                params,
                progress_callback=self.progress_callback if self.show_progress else None,
                stopped_flag=self.stopped_flag,
            )
        finally:
            self.restore_signal_handler(previous)
            if self.show_progress:
                sys.stderr.write("\n")

    def report_messages(self, result: ScanResult) -> None:
        """Print warnings and errors collected during the scan."""
        for severity, path, message in result.messages:
            if severity is Severity.INFO:
                continue
            self.warning(f"{message}: {path}")

    def output_scan(self, args: argparse.Namespace, results: List[ScanResult]) -> None:
        options = ReportOptions(
            sort_keys=args.sort_keys or (),
            human=args.human,
            commas=args.commas,
            summary=args.summary,
            total_only=args.total,
            absolute_paths=args.absolute,
        )
        builder = ReportBuilder(options)

        for result in results:
            if args.table:
                builder.add_table_column(result.root, builder.combined_table(result))
            elif not self.quiet and not args.column:
                for line in builder.render_result(result):
                    print(line)
            else:
                builder.render_result(result)

        if args.column:
            roots = [result.root for result in results]
            for line in builder.render_columns(roots, self.column_names, COLUMN_ALIASES[args.column]):
                print(line)

        if args.table:
            lines = builder.render_table(TABLE_ALIASES[args.table])
        else:
            lines = builder.render_grand_total()
        for line in lines:
            print(line)

    def scan(self, args: argparse.Namespace) -> int:
        params = self.create_params(args)
        self.show_progress = args.progress and not self.quiet

        if self.verbose:
            print(f"+Start {ConvertUtils.timestamp_to_human(time.time())}")

        results = self.run_scan(params, file_listener=self.file_listener(args))

        for result in results:
            self.report_messages(result)

        if ScanCommand.was_cancelled(results):
            print("scan cancelled", file=sys.stderr)
            return 130

        self.output_scan(args, results)

        if self.verbose:
            files = sum(result.file_count for result in results)
            print(f"+End {ConvertUtils.timestamp_to_human(time.time())}")
            print(f"\n✅ Scanned {files} files in {time.time() - self.start_time:.2f} seconds")
        return 0

    def link(self, args: argparse.Namespace) -> int:
        command = ReclaimCommand()
        previous = self.install_signal_handler()
        try:
            report = command.execute(
                args.master,
                args.duplicates,
                dry_run=args.dry_run,
                verify=args.verify,
                stopped_flag=self.stopped_flag,
            )
        finally:
            self.restore_signal_handler(previous)

        self.output_link(report)

        if report.cancelled:
            print("link cancelled", file=sys.stderr)
            return 130
        return 1 if report.counts.failed else 0

    def output_link(self, report: ReclaimReport) -> None:
        for result in report.results:
            if not self.quiet or result.outcome.is_failure:
                print(result.describe())
            for message in result.warnings:
                self.warning(message)

        for duplicate, reason in report.skipped:
            self.warning(f"Skipped {duplicate}: {reason}")

        if report.residue:
            print("\n❌ Manual cleanup needed:", file=sys.stderr)
            for result in report.residue:
                print(f"   {result.backup_path}: {result.outcome.description}", file=sys.stderr)

        if not self.quiet:
            counts = report.counts
            print(f"\nLinked: {counts.completed}  Already linked: {counts.already}  "
                  f"Would link: {counts.dry_run}  Failed: {counts.failed}  "
                  f"Skipped: {len(report.skipped)}")

    def warning(self, message: str) -> None:
        """Print a warning message to stderr."""
        if not self.quiet:
            print(f"⚠️  {message}", file=sys.stderr)

    @staticmethod
    def error_exit(message: str, code: int = 1) -> NoReturn:
        """Print error and exit."""
        print(f"❌ Error: {message}", file=sys.stderr)
        sys.exit(code)

    def run(self, argv=None) -> int:
        """Main entry point; returns the process exit code."""
        args = self.parse_args(argv)
        self.verbose = args.verbose
        self.quiet = args.quiet
        if self.verbose:
            logging.getLogger().setLevel(logging.INFO)

        self.validate_args(args)

        if args.command == "scan":
            return self.scan(args)
        return self.link(args)


def main(argv=None) -> None:
    """Application entry point."""
    app = CLIApplication()
    try:
        code = app.run(argv)
    except KeyboardInterrupt:
        print("\n⚠️  Operation cancelled by user (Ctrl+C)")
        sys.exit(130)
    except Exception as e:
        if os.environ.get("DEBUG"):
            raise
        print(f"❌ Unexpected error: {e}", file=sys.stderr)
        sys.exit(1)
    sys.exit(code)


if __name__ == "__main__":
    main()
