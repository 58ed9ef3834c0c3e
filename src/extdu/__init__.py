"""
extdu: disk usage per file extension, with hardlink space reclaiming.

Core features:
- Recursive scan of one or more roots, aggregated by extension or by pick rules
- DOS-style wildcard or regex include/exclude filters for names and paths
- Logical and allocated sizes, optionally divided by hardlink count
- Summary scopes for selected subdirectories
- Safe replacement of duplicate files by hardlinks (backup, link, remove backup)
- CLI interface: `extdu scan` and `extdu link`
"""

# Get version
try:
    from importlib.metadata import version as _version, PackageNotFoundError
    __version__ = _version("extdu")
except PackageNotFoundError:
    __version__ = "0.0.0"

# Public API, only what users should import directly
from extdu.commands import ScanCommand, ReclaimCommand, ReclaimReport
from extdu.core import (
    ScanParams, ScanResult, UsageRecord, UsageTable, LinkOutcome, LinkResult,
    SortField, SortKey, scan, reclaim)
from extdu.utils.convert_utils import ConvertUtils
from extdu.services.report_service import ReportBuilder, ReportOptions

__all__ = [
    "ScanCommand",
    "ReclaimCommand",
    "ReclaimReport",
    "ScanParams",
    "ScanResult",
    "UsageRecord",
    "UsageTable",
    "LinkOutcome",
    "LinkResult",
    "SortField",
    "SortKey",
    "scan",
    "reclaim",
    "ConvertUtils",
    "ReportBuilder",
    "ReportOptions",
    "__version__",
]
