"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/linker.py
Replaces a known duplicate with a hardlink to its master copy.

The duplicate is never simply deleted. The replacement runs in three steps:
1. rename duplicate → duplicate + BACKUP_SUFFIX
2. link master → duplicate's original name (on failure the backup is renamed back)
3. remove the backup

Every path through these steps ends in one LinkOutcome. Only a failed
restore or a failed backup removal leaves files that need manual cleanup.
An existing file under the backup name is never overwritten.

Replacements of the same duplicate path are serialized per process; running
two replacements of one path concurrently would corrupt the backup protocol.
"""

import logging
import os
import threading
import zlib
from typing import List, Optional

from extdu.core.models import BACKUP_SUFFIX, LinkOutcome, LinkResult

logger = logging.getLogger(__name__)

LOCK_STRIPES = 64  # Distinct paths may share a stripe; they are then just serialized


class HardlinkReplacer:
    """
    Stateless replacer; one instance may be shared between threads.
    """

    BACKUP_SUFFIX = BACKUP_SUFFIX

    _stripe_locks = [threading.Lock() for _ in range(LOCK_STRIPES)]

    @classmethod
    def _lock_for(cls, path: str) -> threading.Lock:
        key = os.path.normcase(os.path.abspath(path))
        stripe = zlib.crc32(key.encode("utf-8", "surrogateescape")) % len(cls._stripe_locks)
        return cls._stripe_locks[stripe]

    def reclaim(self, master: str, duplicate: str, dry_run: bool = False) -> LinkResult:
        """
        Replaces duplicate with a hardlink to master.

        Args:
            master: File that is kept
            duplicate: File to be replaced by a link to master
            dry_run: Report the outcome without touching the filesystem

        Returns:
            LinkResult; never raises for filesystem errors.
        """
        with self._lock_for(duplicate):
            result = self._reclaim(master, duplicate, dry_run)

        self._log(result)
        return result

    def _reclaim(self, master: str, duplicate: str, dry_run: bool) -> LinkResult:
        master_stat = _stat_or_none(master)
        duplicate_stat = _stat_or_none(duplicate)

        if (master_stat is not None and duplicate_stat is not None
                and master_stat.st_nlink > 0
                and _same_file(master_stat, duplicate_stat)):
            return LinkResult(LinkOutcome.ALREADY_LINKED, master, duplicate)

        if dry_run:
            return LinkResult(LinkOutcome.DRY_RUN, master, duplicate)

        backup = duplicate + self.BACKUP_SUFFIX
        if os.path.lexists(backup):
            return LinkResult(LinkOutcome.FAILED_BACKUP, master, duplicate,
                              error=f"backup name already exists: {backup}")
        try:
            os.rename(duplicate, backup)
        except OSError as e:
            return LinkResult(LinkOutcome.FAILED_BACKUP, master, duplicate, error=_reason(e))

        try:
            os.link(master, duplicate)
        except OSError as link_error:
            try:
                os.rename(backup, duplicate)
            except OSError as restore_error:
                return LinkResult(
                    LinkOutcome.FAILED_RESTORE_BACKUP, master, duplicate,
                    error=f"link: {_reason(link_error)}; restore: {_reason(restore_error)}",
                )
            return LinkResult(LinkOutcome.FAILED_LINK, master, duplicate, error=_reason(link_error))

        warnings = _metadata_drift(master_stat, duplicate_stat)

        try:
            os.unlink(backup)
        except OSError as e:
            return LinkResult(LinkOutcome.FAILED_DELETE_BACKUP, master, duplicate,
                              warnings=warnings, error=_reason(e))

        return LinkResult(LinkOutcome.COMPLETED, master, duplicate, warnings=warnings)

    @staticmethod
    def _log(result: LinkResult) -> None:
        for warning in result.warnings:
            logger.warning(f"{warning} {result.duplicate}")

        if result.outcome.leaves_residue:
            logger.critical(result.describe())
        elif result.outcome.is_failure:
            logger.error(result.describe())
        elif result.outcome is LinkOutcome.ALREADY_LINKED:
            logger.info(result.describe())
        else:
            logger.debug(result.describe())


def _stat_or_none(path: str) -> Optional[os.stat_result]:
    try:
        return os.stat(path)
    except OSError:
        return None


def _same_file(lhs: os.stat_result, rhs: os.stat_result) -> bool:
    return lhs.st_ino == rhs.st_ino and lhs.st_dev == rhs.st_dev


def _reason(error: OSError) -> str:
    return error.strerror or str(error)


def _metadata_drift(master_stat: Optional[os.stat_result],
                    duplicate_stat: Optional[os.stat_result]) -> List[str]:
    """
    The new link carries the master's mode and owner.
    Lists what changed compared to the replaced duplicate.
    """
    if master_stat is None or duplicate_stat is None:
        return []
    warnings = []
    if master_stat.st_mode != duplicate_stat.st_mode:
        warnings.append(
            f"Link caused permissions to change from={duplicate_stat.st_mode:o} to {master_stat.st_mode:o}"
        )
    if master_stat.st_uid != duplicate_stat.st_uid:
        warnings.append(
            f"Link caused user to change from={duplicate_stat.st_uid} to {master_stat.st_uid}"
        )
    if master_stat.st_gid != duplicate_stat.st_gid:
        warnings.append(
            f"Link caused group to change from={duplicate_stat.st_gid} to {master_stat.st_gid}"
        )
    return warnings


_default_replacer = HardlinkReplacer()


def reclaim(master_path: str, duplicate_path: str, dry_run: bool = False) -> LinkResult:
    """Module-level entry point using a shared replacer."""
    return _default_replacer.reclaim(master_path, duplicate_path, dry_run)
