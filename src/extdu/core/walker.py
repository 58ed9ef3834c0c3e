"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/walker.py
Iterates the entries of one directory, hiding host OS differences.

Each DirectoryWalker instance covers a single directory level and moves
through Unopened → Open → Exhausted → Closed. Recursion is left to the caller
(see core/scanner.py), which creates one walker per directory it descends into.

Host variants:
- PosixDirectoryWalker: allocated size from st_blocks (512-byte units)
- WindowsDirectoryWalker: no block counts, allocated size falls back to st_size;
  names containing wildcard characters are rejected as invalid

A walker is stateful and must not be shared between threads.
"""

import glob
import logging
import os
import stat
import sys
from abc import ABC, abstractmethod
from enum import Enum
from typing import Iterator, List, Optional

from extdu.core.models import DirEntry, EntryKind, EntryMetadata

logger = logging.getLogger(__name__)

# Hard ceiling on recursion, independent of the caller's max depth
MAX_DIR_DEPTH = 200

_GLOB_CHARS = frozenset("*?[")


class WalkerState(Enum):
    UNOPENED = "unopened"
    OPEN = "open"
    EXHAUSTED = "exhausted"
    CLOSED = "closed"


def has_glob_chars(path: str) -> bool:
    return any(char in _GLOB_CHARS for char in path)


def is_dot_name(name: str) -> bool:
    """True for '.', '..' and any other name made only of dots."""
    return bool(name) and name.strip(".") == ""


class DirectoryWalker(ABC):
    """
    Platform-neutral directory iterator.

    Usage:
        with DirectoryWalker.for_platform() as walker:
            if walker.open(path):
                for entry in walker:
                    ...
    """

    def __init__(self):
        self.state = WalkerState.UNOPENED
        self.path: Optional[str] = None
        self.error: Optional[OSError] = None
        self._scandir = None
        self._pending: List[DirEntry] = []

    # ----- factory -----

    @staticmethod
    def for_platform(platform: Optional[str] = None) -> "DirectoryWalker":
        """Returns the walker variant for the host (or the given sys.platform value)."""
        platform = platform or sys.platform
        if platform == "win32":
            return WindowsDirectoryWalker()
        return PosixDirectoryWalker()

    # ----- state machine -----

    def open(self, path: str, expand_patterns: bool = False) -> bool:
        """
        Prepares iteration over path.

        - A regular file yields exactly one entry (itself).
        - With expand_patterns, a path containing wildcards is expanded by glob
          and the matches are yielded as entries.
        - Otherwise path is read as a directory.

        Returns False (and stores the error) when the directory cannot be read;
        the walker then behaves as an empty directory.
        """
        if self.state is not WalkerState.UNOPENED:
            raise RuntimeError(f"Walker already used for {self.path}")

        self.path = path
        self.state = WalkerState.OPEN

        if expand_patterns and has_glob_chars(path) and not os.path.exists(path):
            self._pending = self._expand(path)
            return True

        try:
            if stat.S_ISREG(os.stat(path).st_mode):
                entry = self._entry_from_path(path)
                self._pending = [entry] if entry else []
                return True
        except OSError:
            pass  # Not a file we can stat; let scandir report the real error

        try:
            self._scandir = os.scandir(path)
        except OSError as e:
            logger.debug(f"Cannot open directory {path}: {e}")
            self.error = e
            self.state = WalkerState.EXHAUSTED
            return False
        return True

    def next(self) -> Optional[DirEntry]:
        """Returns the next entry, or None once the directory is exhausted."""
        if self.state is not WalkerState.OPEN:
            return None

        while self._pending:
            entry = self._pending.pop(0)
            if not self._is_skipped(entry.name, entry.kind):
                return entry

        while self._scandir is not None:
            try:
                item = next(self._scandir)
            except StopIteration:
                break
            except OSError as e:
                logger.debug(f"Error reading directory {self.path}: {e}")
                self.error = e
                break

            kind = self._kind_of(item)
            if self._is_skipped(item.name, kind):
                continue
            return DirEntry(name=item.name, path=item.path, kind=kind)

        self._release()
        self.state = WalkerState.EXHAUSTED
        return None

    def close(self) -> None:
        self._release()
        self._pending = []
        self.state = WalkerState.CLOSED

    def _release(self) -> None:
        if self._scandir is not None:
            self._scandir.close()
            self._scandir = None

    def __iter__(self) -> Iterator[DirEntry]:
        while True:
            entry = self.next()
            if entry is None:
                return
            yield entry

    def __enter__(self) -> "DirectoryWalker":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # ----- metadata -----

    def describe(self, entry: DirEntry) -> EntryMetadata:
        """
        lstat()s the entry and stores the result on it.
        Raises OSError; the caller decides whether to skip the entry.
        """
        st = os.lstat(entry.path)
        entry.metadata = EntryMetadata(
            size=st.st_size,
            disk_size=self.allocated_size(st),
            nlink=st.st_nlink,
            mode=st.st_mode,
        )
        return entry.metadata

    @staticmethod
    @abstractmethod
    def allocated_size(st: os.stat_result) -> int:
        """Bytes actually allocated on disk for the file."""

    @staticmethod
    def is_valid_path(path: str) -> bool:
        return True

    # ----- helpers -----

    @staticmethod
    def _is_skipped(name: str, kind: EntryKind) -> bool:
        if name in (".", ".."):
            return True
        return kind is EntryKind.DIRECTORY and is_dot_name(name)

    @staticmethod
    def _kind_of(item: os.DirEntry) -> EntryKind:
        try:
            if item.is_symlink():
                return EntryKind.SYMLINK
            if item.is_dir(follow_symlinks=False):
                return EntryKind.DIRECTORY
        except OSError:
            pass
        return EntryKind.FILE

    @staticmethod
    def _entry_from_path(path: str) -> Optional[DirEntry]:
        try:
            mode = os.lstat(path).st_mode
        except OSError as e:
            logger.debug(f"Cannot stat {path}: {e}")
            return None
        if stat.S_ISLNK(mode):
            kind = EntryKind.SYMLINK
        elif stat.S_ISDIR(mode):
            kind = EntryKind.DIRECTORY
        else:
            kind = EntryKind.FILE
        name = os.path.basename(os.path.normpath(path)) or path
        return DirEntry(name=name, path=path, kind=kind)

    def _expand(self, pattern: str) -> List[DirEntry]:
        entries = []
        for match in sorted(glob.glob(pattern)):
            entry = self._entry_from_path(match)
            if entry:
                entries.append(entry)
        logger.debug(f"Pattern {pattern} expanded to {len(entries)} entries")
        return entries


class PosixDirectoryWalker(DirectoryWalker):
    """Linux, macOS and other POSIX hosts."""

    @staticmethod
    def allocated_size(st: os.stat_result) -> int:
        blocks = getattr(st, "st_blocks", None)
        if blocks is None:
            return st.st_size
        return blocks * 512


class WindowsDirectoryWalker(DirectoryWalker):
    """Windows hosts: no block counts are exposed by stat."""

    _INVALID_CHARS = frozenset("*?")

    @staticmethod
    def allocated_size(st: os.stat_result) -> int:
        return st.st_size

    @classmethod
    def is_valid_path(cls, path: str) -> bool:
        return not any(char in cls._INVALID_CHARS for char in path)
