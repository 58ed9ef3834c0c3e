"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

interfaces.py

Defines core interfaces (Protocols) used between the scan engine, the
command layer and the CLI. Structural typing keeps the seams swappable in
tests without inheritance.

Key Components:
---------------
- HashAlgorithm: Incremental hash factory (xxHash by default).
- UsageScanner: Scans a root and returns a ScanResult.
- LinkReplacer: Replaces a duplicate with a hardlink to a master.
"""

from typing import Callable, Optional, Protocol

from extdu.core.models import LinkResult, ScanResult


class HashState(Protocol):
    def update(self, data: bytes) -> None: ...
    def digest(self) -> bytes: ...


class HashAlgorithm(Protocol):
    """Creates fresh incremental hash states."""
    def new(self) -> HashState: ...


class UsageScanner(Protocol):
    def scan(
        self,
        root: str,
        stopped_flag: Optional[Callable[[], bool]] = None,
        progress_callback: Optional[Callable[[str, int, Optional[int]], None]] = None
    ) -> ScanResult:
        """
        Scan one root path.

        Args:
            root: Directory, file or wildcard pattern.
            stopped_flag: Function that returns True if the scan should be cancelled.
            progress_callback: Optional callback for reporting progress (stage, current, total).
        """
        ...


class LinkReplacer(Protocol):
    def reclaim(self, master: str, duplicate: str, dry_run: bool = False) -> LinkResult: ...
