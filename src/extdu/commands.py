"""
Unified command orchestrators for scanning and reclaiming.
This is the single place the CLI (or any other front end) calls into the core.
"""
import logging
import os
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple

from extdu.core.hasher import ContentVerifier
from extdu.core.interfaces import LinkReplacer, UsageScanner
from extdu.core.linker import HardlinkReplacer
from extdu.core.models import LinkCounts, LinkResult, ScanParams, ScanResult
from extdu.core.scanner import DiskUsageScanner

logger = logging.getLogger(__name__)


class ScanCommand:
    """
    Scans every root of ScanParams with one configured scanner.

    Usage:
        params = ScanParams(roots=["~/src"], exclude_paths=["*/.git"])
        results = ScanCommand().execute(
            params,
            progress_callback=cli_progress_printer,
            stopped_flag=signal_handler_check
        )

    Each root is its own accumulator scope. Scanning stops at the first
    cancelled root; results collected so far are returned with it.
    """

    def __init__(self, scanner: Optional[UsageScanner] = None):
        self.scanner = scanner
        self._results: List[ScanResult] = []

    def execute(
            self,
            params: ScanParams,
            progress_callback: Optional[Callable[[str, int, Optional[int]], None]] = None,
            stopped_flag: Optional[Callable[[], bool]] = None,
            file_listener: Optional[Callable[[str], None]] = None,
    ) -> List[ScanResult]:
        """
        Raises:
            ValueError: If patterns or pick rules in params are invalid
        """
        scanner = self.scanner or DiskUsageScanner.from_params(params, file_listener=file_listener)
        self._results = []

        for root in params.roots:
            result = scanner.scan(root, stopped_flag=stopped_flag, progress_callback=progress_callback)
            self._results.append(result)
            if result.cancelled:
                logger.info(f"Scan cancelled while in {root}")
                break

        return list(self._results)

    @staticmethod
    def was_cancelled(results: List[ScanResult]) -> bool:
        return any(result.cancelled for result in results)


@dataclass
class ReclaimReport:
    """Results of linking a set of duplicates to one master."""
    results: List[LinkResult] = field(default_factory=list)
    skipped: List[Tuple[str, str]] = field(default_factory=list)  # (duplicate, reason)
    counts: LinkCounts = field(default_factory=LinkCounts)
    cancelled: bool = False

    @property
    def residue(self) -> List[LinkResult]:
        return [r for r in self.results if r.outcome.leaves_residue]


class ReclaimCommand:
    """
    Links each duplicate to the master, one pair at a time.
    With verify, a pair is skipped unless sizes and xxHash digests match.
    Completed links are never rolled back, even when cancelled midway.
    """

    def __init__(self, replacer: Optional[LinkReplacer] = None, verifier: Optional[ContentVerifier] = None):
        self.replacer = replacer or HardlinkReplacer()
        self.verifier = verifier or ContentVerifier()

    def execute(
            self,
            master: str,
            duplicates: List[str],
            dry_run: bool = False,
            verify: bool = True,
            stopped_flag: Optional[Callable[[], bool]] = None,
    ) -> ReclaimReport:
        report = ReclaimReport()

        if not os.path.isfile(master):
            for duplicate in duplicates:
                report.skipped.append((duplicate, f"master is not a regular file: {master}"))
            return report

        for duplicate in duplicates:
            if stopped_flag and stopped_flag():
                report.cancelled = True
                break

            reason = self._reject_reason(master, duplicate, verify)
            if reason:
                logger.warning(f"Skipping {duplicate}: {reason}")
                report.skipped.append((duplicate, reason))
                continue

            result = self.replacer.reclaim(master, duplicate, dry_run=dry_run)
            report.results.append(result)
            report.counts.update(result.outcome)

        return report

    def _reject_reason(self, master: str, duplicate: str, verify: bool) -> Optional[str]:
        if os.path.abspath(master) == os.path.abspath(duplicate):
            return "duplicate is the master itself"
        if not os.path.isfile(duplicate):
            return "not a regular file"
        try:
            if os.path.samefile(master, duplicate):
                return None
            if verify and not self.verifier.same_content(master, duplicate):
                return "content differs from master"
        except OSError as e:
            return f"cannot compare ({e.strerror or e})"
        return None
