"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/scanner.py
Recursive disk usage scan of one root path.
Features:
- One DirectoryWalker per directory, recursion bounded by MAX_DIR_DEPTH
  and by the caller's max_depth (0 = unlimited)
- Name/path include/exclude filters applied at every entry
- Summary scopes: matching directories are aggregated and reported on their own
- Optional parallel walk of the root's top-level subdirectories
- Cancellation checked at every entry and every descent
- Per-entry failures are reported on the message channel, never raised
"""

import errno
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Optional, Tuple

from extdu.core.accumulator import UsageAccumulator
from extdu.core.classifier import PathClassifier
from extdu.core.models import DirEntry, ScanMessage, ScanParams, ScanResult, ScopeReport, Severity
from extdu.core.patterns import FilterSet
from extdu.core.walker import MAX_DIR_DEPTH, DirectoryWalker

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, int, Optional[int]], None]
StoppedFlag = Callable[[], bool]

PROGRESS_INTERVAL = 5000  # Report progress every N files


class ScanCancelled(Exception):
    """Raised inside the walk when the stopped flag fires."""


class _ScanContext:
    """
    Mutable state of one walk: the scope stack, counters and messages.
    Parallel workers each get their own context, absorbed when they finish.
    """

    def __init__(
            self,
            classifier: PathClassifier,
            divide_by_hardlinks: bool,
            stopped_flag: Optional[StoppedFlag] = None,
            progress_callback: Optional[ProgressCallback] = None,
    ):
        self.classifier = classifier
        self.divide_by_hardlinks = divide_by_hardlinks
        self.stopped_flag = stopped_flag
        self.progress_callback = progress_callback
        self.accumulator = self._new_accumulator()
        self.file_count = 0
        self.messages: List[ScanMessage] = []
        self.scope_reports: List[ScopeReport] = []
        self._scopes: List[Tuple[str, UsageAccumulator]] = []
        self._progress_counter = 0

    def _new_accumulator(self) -> UsageAccumulator:
        return UsageAccumulator(self.classifier, self.divide_by_hardlinks)

    def child(self) -> "_ScanContext":
        return _ScanContext(self.classifier, self.divide_by_hardlinks,
                            self.stopped_flag, self.progress_callback)

    @property
    def current(self) -> UsageAccumulator:
        return self._scopes[-1][1] if self._scopes else self.accumulator

    def push_scope(self, path: str) -> None:
        self._scopes.append((path, self._new_accumulator()))

    def pop_scope(self) -> None:
        path, accumulator = self._scopes.pop()
        self.scope_reports.append(ScopeReport(path=path, table=accumulator.drain()))
        accumulator.reset()

    def check_stopped(self) -> None:
        if self.stopped_flag and self.stopped_flag():
            raise ScanCancelled()

    def report(self, severity: Severity, path: str, message: str) -> None:
        logger.debug(f"[{severity.value}] {message}: {path}")
        self.messages.append(ScanMessage(severity, path, message))

    def file_recorded(self) -> None:
        self.file_count += 1
        self._progress_counter += 1
        if self.progress_callback and self._progress_counter >= PROGRESS_INTERVAL:
            self.progress_callback("scanning", self.file_count, None)
            self._progress_counter = 0

    def absorb(self, other: "_ScanContext") -> None:
        self.accumulator.merge(other.accumulator.drain())
        self.file_count += other.file_count
        self.messages.extend(other.messages)
        self.scope_reports.extend(other.scope_reports)


class DiskUsageScanner:
    """
    Walks a root path and aggregates usage per classification key.

    Attributes:
        filters: Name/path include/exclude and summary patterns
        classifier: Maps file names to keys
        max_depth: Soft depth limit, 0 = unlimited
        divide_by_hardlinks: Divide sizes by each file's link count
        summarize_top_level: Report every top-level directory as its own scope
        threads: Workers for the root's top-level subdirectories (1 = sequential)
    """

    def __init__(
            self,
            filters: Optional[FilterSet] = None,
            classifier: Optional[PathClassifier] = None,
            max_depth: int = 0,
            divide_by_hardlinks: bool = False,
            summarize_top_level: bool = False,
            threads: int = 1,
            walker_factory: Optional[Callable[[], DirectoryWalker]] = None,
            file_listener: Optional[Callable[[str], None]] = None,
    ):
        self.filters = filters or FilterSet()
        self.classifier = classifier or PathClassifier()
        self.max_depth = max_depth
        self.divide_by_hardlinks = divide_by_hardlinks
        self.summarize_top_level = summarize_top_level
        self.threads = max(1, threads)
        self.walker_factory = walker_factory or DirectoryWalker.for_platform
        self.file_listener = file_listener

    @classmethod
    def from_params(cls, params: ScanParams, file_listener: Optional[Callable[[str], None]] = None) -> "DiskUsageScanner":
        return cls(
            filters=params.build_filters(),
            classifier=params.build_classifier(),
            max_depth=params.max_depth,
            divide_by_hardlinks=params.divide_by_hardlinks,
            summarize_top_level=params.summarize_top_level,
            threads=params.threads,
            file_listener=file_listener,
        )

    def scan(
            self,
            root: str,
            stopped_flag: Optional[StoppedFlag] = None,
            progress_callback: Optional[ProgressCallback] = None,
    ) -> ScanResult:
        """
        Scans root (a directory, a single file or a wildcard pattern).
        A cancelled scan returns an empty table with cancelled=True.
        """
        logger.debug(f"Starting scan of {root}")
        logger.debug(f"Options: max_depth={self.max_depth}, divide={self.divide_by_hardlinks}, "
                     f"threads={self.threads}")
        start_time = time.time()

        ctx = _ScanContext(self.classifier, self.divide_by_hardlinks, stopped_flag, progress_callback)
        try:
            if self.threads > 1:
                self._scan_parallel(root, ctx)
            else:
                self._walk(root, 0, ctx, expand_patterns=True)
        except ScanCancelled:
            logger.debug(f"Scan of {root} cancelled after {ctx.file_count} files")
            return ScanResult(root=root, messages=ctx.messages, cancelled=True)

        if progress_callback:
            progress_callback("scanning", ctx.file_count, None)

        logger.debug(f"Scan of {root} finished in {time.time() - start_time:.2f} seconds, "
                     f"{ctx.file_count} files")
        return ScanResult(
            root=root,
            table=ctx.accumulator.drain(),
            file_count=ctx.file_count,
            messages=ctx.messages,
            scopes=ctx.scope_reports,
        )

    # ----- walk -----

    def _walk(self, dirname: str, depth: int, ctx: _ScanContext,
              expand_patterns: bool = False, deferred: Optional[list] = None) -> None:
        ctx.check_stopped()
        with self.walker_factory() as walker:
            if not walker.open(dirname, expand_patterns=expand_patterns):
                error = walker.error
                reason = error.strerror if error and error.strerror else str(error)
                ctx.report(Severity.ERROR, dirname, f"Cannot open directory ({reason})")
                return

            for entry in walker:
                ctx.check_stopped()
                if entry.is_dir:
                    self._visit_directory(walker, entry, depth, ctx, deferred)
                else:
                    self._examine_file(walker, entry, ctx)

    def _visit_directory(self, walker: DirectoryWalker, entry: DirEntry, depth: int,
                         ctx: _ScanContext, deferred: Optional[list]) -> None:
        if self.max_depth and depth + 1 >= self.max_depth:
            return
        if not self.filters.accepts_directory(entry.name, entry.path):
            logger.debug(f"Skipping excluded directory: {entry.path}")
            return
        if not walker.is_valid_path(entry.path):
            ctx.report(Severity.ERROR, entry.path, "Invalid file name")
            return
        if depth >= MAX_DIR_DEPTH:
            ctx.report(Severity.WARNING, entry.path, f"Exceeded max directory depth {MAX_DIR_DEPTH}")
            return

        scoped = (self.filters.is_summary_directory(entry.path)
                  or (self.summarize_top_level and depth == 0))

        if deferred is not None:
            deferred.append((entry.path, scoped))
            return

        logger.info(f"Dir:{entry.path}")
        self._walk_scope(entry.path, depth + 1, scoped, ctx)

    def _walk_scope(self, path: str, depth: int, scoped: bool, ctx: _ScanContext) -> _ScanContext:
        if scoped:
            ctx.push_scope(path)
        self._walk(path, depth, ctx)
        if scoped:
            ctx.pop_scope()
        return ctx

    def _examine_file(self, walker: DirectoryWalker, entry: DirEntry, ctx: _ScanContext) -> None:
        if not self.filters.accepts_file(entry.name, entry.path):
            return
        try:
            walker.describe(entry)
        except OSError as e:
            if e.errno == errno.EINVAL:
                message = "Invalid"
            elif e.errno in (errno.ENOENT, errno.EACCES, errno.EPERM):
                message = "Special characters or no permission to"
            else:
                message = f"Cannot stat ({e.strerror or e})"
            ctx.report(Severity.ERROR, entry.path, message)
            return

        ctx.current.record(entry)
        ctx.file_recorded()
        if self.file_listener:
            self.file_listener(entry.path)

    def _scan_parallel(self, root: str, ctx: _ScanContext) -> None:
        """
        Files directly under root are handled inline; each top-level
        subdirectory becomes one job with a private context.
        """
        jobs: List[Tuple[str, bool]] = []
        self._walk(root, 0, ctx, expand_patterns=True, deferred=jobs)
        if not jobs:
            return

        logger.debug(f"Walking {len(jobs)} subdirectories with {self.threads} threads")
        with ThreadPoolExecutor(max_workers=self.threads) as executor:
            futures = [
                executor.submit(self._walk_scope, path, 1, scoped, ctx.child())
                for path, scoped in jobs
            ]
            for future in futures:
                ctx.absorb(future.result())


def scan(
        root_path: str,
        filters: Optional[FilterSet] = None,
        max_depth: int = 0,
        divide_by_hardlinks: bool = False,
        classifier: Optional[PathClassifier] = None,
        stopped_flag: Optional[StoppedFlag] = None,
) -> ScanResult:
    """Scans one root with a fresh scanner. See DiskUsageScanner.scan()."""
    scanner = DiskUsageScanner(
        filters=filters,
        classifier=classifier,
        max_depth=max_depth,
        divide_by_hardlinks=divide_by_hardlinks,
    )
    return scanner.scan(root_path, stopped_flag=stopped_flag)
