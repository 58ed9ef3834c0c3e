"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/models.py
Data models for disk usage scanning and hardlink reclaiming.
"""

import os
import stat as stat_module
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, NamedTuple, Optional

# Appended to a duplicate while it is being replaced by a hardlink
BACKUP_SUFFIX = "_tmp"


# =============================
# Enums
# =============================

class EntryKind(Enum):
    """Kind of a directory entry as seen by lstat (links are not followed)."""
    FILE = "file"
    DIRECTORY = "directory"
    SYMLINK = "symlink"


class Severity(Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class LinkOutcome(Enum):
    """
    Terminal state of a single hardlink replacement.
    """
    ALREADY_LINKED = "already-linked"
    COMPLETED = "completed"
    DRY_RUN = "dry-run"
    FAILED_BACKUP = "failed-backup"
    FAILED_LINK = "failed-link"
    FAILED_RESTORE_BACKUP = "failed-restore-backup"
    FAILED_DELETE_BACKUP = "failed-delete-backup"

    @property
    def display_name(self) -> str:
        """Human-readable name for reports."""
        mapping = {
            LinkOutcome.ALREADY_LINKED: "Already linked",
            LinkOutcome.COMPLETED: "Linked",
            LinkOutcome.DRY_RUN: "Would link",
            LinkOutcome.FAILED_BACKUP: "Backup failed",
            LinkOutcome.FAILED_LINK: "Link failed",
            LinkOutcome.FAILED_RESTORE_BACKUP: "Restore failed",
            LinkOutcome.FAILED_DELETE_BACKUP: "Backup not removed",
        }
        return mapping.get(self, self.value)

    @property
    def description(self) -> str:
        """Detailed description of what is left on disk."""
        mapping = {
            LinkOutcome.ALREADY_LINKED:
                "Master and duplicate already share the same file; nothing changed",
            LinkOutcome.COMPLETED:
                "Duplicate replaced by a hardlink to the master",
            LinkOutcome.DRY_RUN:
                "Duplicate would be replaced by a hardlink (no changes made)",
            LinkOutcome.FAILED_BACKUP:
                "Could not rename duplicate to its backup name; duplicate untouched",
            LinkOutcome.FAILED_LINK:
                "Hardlink could not be created; duplicate restored from backup",
            LinkOutcome.FAILED_RESTORE_BACKUP:
                "Hardlink failed and the backup could not be renamed back; "
                "duplicate only exists under its backup name",
            LinkOutcome.FAILED_DELETE_BACKUP:
                "Duplicate is linked but the backup file is still on disk; remove it manually",
        }
        return mapping.get(self, self.value)

    @property
    def is_failure(self) -> bool:
        return self in (
            LinkOutcome.FAILED_BACKUP,
            LinkOutcome.FAILED_LINK,
            LinkOutcome.FAILED_RESTORE_BACKUP,
            LinkOutcome.FAILED_DELETE_BACKUP,
        )

    @property
    def leaves_residue(self) -> bool:
        """True when the filesystem needs manual cleanup."""
        return self in (LinkOutcome.FAILED_RESTORE_BACKUP, LinkOutcome.FAILED_DELETE_BACKUP)

    def __repr__(self) -> str:
        return self.value


class SortField(Enum):
    KEY = "ext"
    COUNT = "count"
    FILE_SIZE = "size"
    DISK_SIZE = "disk"
    HARDLINKS = "links"

    @property
    def display_name(self) -> str:
        mapping = {
            SortField.KEY: "Extension",
            SortField.COUNT: "Count",
            SortField.FILE_SIZE: "File Size",
            SortField.DISK_SIZE: "Disk Size",
            SortField.HARDLINKS: "Hardlinks",
        }
        return mapping.get(self, self.value)


class ColumnField(Enum):
    """lstat value compared across roots in side-by-side column mode."""
    SIZE = "size"
    LINKS = "links"
    ACCESS = "access"
    MODIFY = "modify"
    CREATE = "create"

    @property
    def display_name(self) -> str:
        mapping = {
            ColumnField.SIZE: "Size",
            ColumnField.LINKS: "Links",
            ColumnField.ACCESS: "Access Time",
            ColumnField.MODIFY: "Modify Time",
            ColumnField.CREATE: "Change Time",
        }
        return mapping.get(self, self.value)

    @property
    def is_time(self) -> bool:
        return self in (ColumnField.ACCESS, ColumnField.MODIFY, ColumnField.CREATE)

    def value_of(self, st: os.stat_result):
        # "create" is st_ctime, the inode change time on POSIX
        mapping = {
            ColumnField.SIZE: lambda: st.st_size,
            ColumnField.LINKS: lambda: st.st_nlink,
            ColumnField.ACCESS: lambda: st.st_atime,
            ColumnField.MODIFY: lambda: st.st_mtime,
            ColumnField.CREATE: lambda: st.st_ctime,
        }
        return mapping[self]()


# ======================
#  Core Data Models
# ======================

@dataclass
class EntryMetadata:
    """
    Raw lstat values of one entry.
    disk_size is already converted to bytes by the walker for the host OS.
    """
    size: int
    disk_size: int
    nlink: int
    mode: int

    @property
    def is_symlink(self) -> bool:
        return stat_module.S_ISLNK(self.mode)

    @property
    def is_hardlinked(self) -> bool:
        return self.nlink > 1


@dataclass
class DirEntry:
    """
    One step of a directory walk.
    Owned by the walker; callers must copy what they keep.
    """
    name: str
    path: str
    kind: EntryKind
    metadata: Optional[EntryMetadata] = None

    @property
    def is_dir(self) -> bool:
        return self.kind is EntryKind.DIRECTORY

    @property
    def is_symlink(self) -> bool:
        return self.kind is EntryKind.SYMLINK

    def __repr__(self):
        return f"<DirEntry path={self.path}, kind={self.kind.value}>"


@dataclass
class UsageRecord:
    """Aggregate usage for one classification key."""
    key: str
    count: int = 0
    file_size: int = 0
    disk_size: int = 0
    hardlinks: int = 0
    softlinks: int = 0

    def add(self, other: "UsageRecord") -> None:
        self.count += other.count
        self.file_size += other.file_size
        self.disk_size += other.disk_size
        self.hardlinks += other.hardlinks
        self.softlinks += other.softlinks

    def copy(self) -> "UsageRecord":
        return UsageRecord(
            key=self.key,
            count=self.count,
            file_size=self.file_size,
            disk_size=self.disk_size,
            hardlinks=self.hardlinks,
            softlinks=self.softlinks,
        )

    def value_of(self, sort_field: SortField):
        mapping = {
            SortField.KEY: self.key,
            SortField.COUNT: self.count,
            SortField.FILE_SIZE: self.file_size,
            SortField.DISK_SIZE: self.disk_size,
            SortField.HARDLINKS: self.hardlinks,
        }
        return mapping[sort_field]


@dataclass
class UsageTable:
    """
    Mapping of classification key to UsageRecord, iterated in key order.
    """
    records: Dict[str, UsageRecord] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.records)

    def __contains__(self, key: str) -> bool:
        return key in self.records

    def __getitem__(self, key: str) -> UsageRecord:
        return self.records[key]

    def __iter__(self):
        return iter(self.sorted_records())

    def keys(self) -> List[str]:
        return sorted(self.records)

    def sorted_records(self) -> List[UsageRecord]:
        return [self.records[key] for key in sorted(self.records)]

    def merge(self, other: "UsageTable") -> None:
        """Adds other's records into this table."""
        for key, record in other.records.items():
            mine = self.records.get(key)
            if mine is None:
                self.records[key] = record.copy()
            else:
                mine.add(record)

    def total(self, key: str = "_Total") -> UsageRecord:
        result = UsageRecord(key=key)
        for record in self.records.values():
            result.add(record)
        return result

    def is_empty(self) -> bool:
        return not self.records


class ScanMessage(NamedTuple):
    """One item on the scan error/progress channel."""
    severity: Severity
    path: str
    message: str


@dataclass
class ScopeReport:
    """Usage of one summary scope (a directory subtree reported on its own)."""
    path: str
    table: UsageTable


@dataclass
class ScanResult:
    """
    Outcome of scanning one root path.
    A cancelled result carries no usage data.
    """
    root: str
    table: UsageTable = field(default_factory=UsageTable)
    file_count: int = 0
    messages: List[ScanMessage] = field(default_factory=list)
    scopes: List[ScopeReport] = field(default_factory=list)
    cancelled: bool = False

    @property
    def errors(self) -> List[ScanMessage]:
        return [m for m in self.messages if m.severity is Severity.ERROR]

    @property
    def warnings(self) -> List[ScanMessage]:
        return [m for m in self.messages if m.severity is Severity.WARNING]


@dataclass
class LinkResult:
    """Outcome of one hardlink replacement plus what was noticed on the way."""
    outcome: LinkOutcome
    master: str
    duplicate: str
    warnings: List[str] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def backup_path(self) -> str:
        return self.duplicate + BACKUP_SUFFIX

    def describe(self) -> str:
        """Single line suitable for logs and console output."""
        text = f"{self.outcome.display_name}: {self.master} -> {self.duplicate}"
        if self.error:
            text += f" ({self.error})"
        if self.outcome.leaves_residue:
            text += f" [CHECK {self.backup_path}]"
        return text


@dataclass
class LinkCounts:
    """Outcome tallies of one reclaim run."""
    already: int = 0
    completed: int = 0
    failed: int = 0
    dry_run: int = 0

    def update(self, outcome: LinkOutcome) -> None:
        if outcome is LinkOutcome.ALREADY_LINKED:
            self.already += 1
        elif outcome is LinkOutcome.COMPLETED:
            self.completed += 1
        elif outcome is LinkOutcome.DRY_RUN:
            self.dry_run += 1
        else:
            self.failed += 1


# ======================
#  Parameters
# ======================

@dataclass
class ScanParams:
    """Parameters for a disk usage scan with validation."""
    roots: List[str]
    include_items: List[str] = field(default_factory=list)
    exclude_items: List[str] = field(default_factory=list)
    include_paths: List[str] = field(default_factory=list)
    exclude_paths: List[str] = field(default_factory=list)
    pick_rules: List[str] = field(default_factory=list)
    summary_patterns: List[str] = field(default_factory=list)
    summarize_top_level: bool = False
    regex_mode: bool = False
    ignore_case: bool = False
    max_depth: int = 0
    divide_by_hardlinks: bool = False
    threads: int = 1

    def __post_init__(self):
        """Validate parameters immediately after creation."""
        if not self.roots:
            raise ValueError("At least one root path is required")

        if any(not root for root in self.roots):
            raise ValueError("Root path cannot be empty")

        if self.max_depth < 0:
            raise ValueError("Maximum depth cannot be negative")

        if self.threads < 1:
            raise ValueError("Thread count must be at least 1")

        self.roots = [os.path.expanduser(root) for root in self.roots]

    def build_filters(self):
        """Compiles the four name/path pattern lists."""
        from extdu.core.patterns import FilterSet
        return FilterSet.from_patterns(
            include_items=self.include_items,
            exclude_items=self.exclude_items,
            include_paths=self.include_paths,
            exclude_paths=self.exclude_paths,
            summary_paths=self.summary_patterns,
            regex_mode=self.regex_mode,
            ignore_case=self.ignore_case,
        )

    def build_classifier(self):
        from extdu.core.classifier import PathClassifier
        return PathClassifier.from_strings(self.pick_rules, ignore_case=self.ignore_case)
