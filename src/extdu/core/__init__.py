"""
Core disk usage engine: walker, filters, classifier, accumulator, scanner and hardlink replacer.

This package contains the filesystem-facing foundation of extdu:
- DirectoryWalker: per-directory iteration with host-specific size semantics
- FilterSet: DOS-style or regex include/exclude patterns for names and paths
- PathClassifier: extension extraction or pick-rule rewriting of file names
- UsageAccumulator: per-key count, file size, disk size and link aggregation
- DiskUsageScanner: recursive scan with summary scopes and cancellation
- HardlinkReplacer: backup, link, remove-backup replacement of duplicates
- Models: DirEntry, UsageRecord, UsageTable, ScanResult, LinkOutcome, ScanParams

All components are pure Python and never raise for per-file filesystem errors.
"""

from .models import (
    ColumnField, DirEntry, EntryKind, EntryMetadata, LinkCounts, LinkOutcome, LinkResult,
    ScanMessage, ScanParams, ScanResult, ScopeReport, Severity, SortField,
    UsageRecord, UsageTable)
from .classifier import PathClassifier, PickRule, classify
from .patterns import FilterSet, compile_patterns, glob_to_regex, matches
from .walker import DirectoryWalker, PosixDirectoryWalker, WindowsDirectoryWalker, MAX_DIR_DEPTH
from .accumulator import UsageAccumulator
from .scanner import DiskUsageScanner, scan
from .sorter import SortKey, UsageSorter
from .linker import HardlinkReplacer, reclaim
from .hasher import ContentVerifier, XXHashAlgorithmImpl

__all__ = [
    "ColumnField",
    "DirEntry",
    "EntryKind",
    "EntryMetadata",
    "LinkCounts",
    "LinkOutcome",
    "LinkResult",
    "ScanMessage",
    "ScanParams",
    "ScanResult",
    "ScopeReport",
    "Severity",
    "SortField",
    "UsageRecord",
    "UsageTable",
    "PathClassifier",
    "PickRule",
    "classify",
    "FilterSet",
    "compile_patterns",
    "glob_to_regex",
    "matches",
    "DirectoryWalker",
    "PosixDirectoryWalker",
    "WindowsDirectoryWalker",
    "MAX_DIR_DEPTH",
    "UsageAccumulator",
    "DiskUsageScanner",
    "scan",
    "SortKey",
    "UsageSorter",
    "HardlinkReplacer",
    "reclaim",
    "ContentVerifier",
    "XXHashAlgorithmImpl",
]
