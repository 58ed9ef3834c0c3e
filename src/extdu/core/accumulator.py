"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/accumulator.py
Per-key usage aggregation for one scan scope.
"""

import logging
import threading
from typing import Optional

from extdu.core.classifier import PathClassifier
from extdu.core.models import DirEntry, EntryKind, UsageRecord, UsageTable

logger = logging.getLogger(__name__)


class UsageAccumulator:
    """
    Collects count, file size, disk size and link counts per classification key.

    record() is safe to call from several walker threads at once. drain()
    returns a snapshot and keeps accumulating; reset() is the explicit clear
    at a scope boundary.

    With divide_by_hardlinks, a file's sizes are divided by its own current
    link count. This is an approximation: links outside the scanned tree still
    count in the divisor, and links inside it are not deduplicated by inode.
    """

    def __init__(self, classifier: Optional[PathClassifier] = None, divide_by_hardlinks: bool = False):
        self.classifier = classifier or PathClassifier()
        self.divide_by_hardlinks = divide_by_hardlinks
        self._records = {}
        self._lock = threading.Lock()

    def record(self, entry: DirEntry) -> None:
        """
        Adds one file to its key's aggregate.
        The entry must already carry metadata (see DirectoryWalker.describe).
        """
        meta = entry.metadata
        if meta is None:
            raise ValueError(f"Entry has no metadata: {entry.path}")

        key = self.classifier.classify(entry.name)
        is_symlink = entry.kind is EntryKind.SYMLINK or meta.is_symlink

        file_size = meta.size
        disk_size = meta.disk_size
        if self.divide_by_hardlinks and meta.is_hardlinked:
            file_size //= meta.nlink
            disk_size //= meta.nlink

        with self._lock:
            usage = self._records.get(key)
            if usage is None:
                usage = self._records[key] = UsageRecord(key=key)
            usage.count += 1
            if meta.is_hardlinked:
                usage.hardlinks += 1
            if is_symlink:
                usage.softlinks += 1
            else:
                usage.file_size += file_size
                usage.disk_size += disk_size

        logger.debug(
            f"File:{entry.path} DiskSize:{meta.disk_size} FileSize:{meta.size} HardLinks:{meta.nlink}"
        )

    def drain(self) -> UsageTable:
        """Snapshot of the current aggregates. Does not clear."""
        with self._lock:
            return UsageTable({key: usage.copy() for key, usage in self._records.items()})

    def reset(self) -> None:
        with self._lock:
            self._records.clear()

    def merge(self, table: UsageTable) -> None:
        """Adds a finished table (e.g. from a worker's private accumulator)."""
        with self._lock:
            for key, usage in table.records.items():
                mine = self._records.get(key)
                if mine is None:
                    self._records[key] = usage.copy()
                else:
                    mine.add(usage)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
