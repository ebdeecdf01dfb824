# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
DailyBackup Retention Manager - Prune the oldest date folders.

A date folder is a direct child of the backup root whose name parses
with the configured date format and formats back to exactly the same
name. Anything else under the root is never touched.

Deletion goes through a RemovalStrategy that tolerates read-only and
sync-held entries (common in cloud-synced folders): a failed folder is
reported and the sweep moves on to the next one.
"""

import os
import shutil
import stat
import time
from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path
from typing import Callable, List

import structlog

from dailybackup.config import DEFAULT_DATE_FORMAT, KEEP_ALL
from dailybackup.exceptions import ConfigurationError, RetentionError

logger = structlog.get_logger()

# Owner read/write/execute, enough to list and delete an entry
_OWNER_RWX = stat.S_IRUSR | stat.S_IWUSR | stat.S_IXUSR


@dataclass(frozen=True)
class DateFolder:
    """A backup folder named after a calendar day."""

    date: date
    path: Path

    @property
    def name(self) -> str:
        return self.path.name


@dataclass
class RemovalOutcome:
    """Result of removing one folder."""

    path: Path
    removed: bool
    attempts: int
    error: str | None = None


@dataclass
class RetentionResult:
    """Result of a retention sweep."""

    keep: int
    removed: List[str] = field(default_factory=list)
    kept: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    freed_bytes: int = 0
    dry_run: bool = False


def parse_date_folder_name(name: str, date_format: str = DEFAULT_DATE_FORMAT) -> date | None:
    """
    Parse a folder name into a date.

    Returns None unless the name is exactly what the format produces for
    that day (so `2024-1-5` or `2024-01-05-old` are not date folders).
    """
    try:
        parsed = datetime.strptime(name, date_format).date()
    except ValueError:
        return None
    if parsed.strftime(date_format) != name:
        return None
    return parsed


def find_date_folders(backup_root: Path, date_format: str = DEFAULT_DATE_FORMAT) -> List[DateFolder]:
    """
    List date folders directly under the backup root, newest first.

    Args:
        backup_root: Backup root directory
        date_format: strftime format of folder names

    Returns:
        List of DateFolder sorted by date, descending
    """
    folders: List[DateFolder] = []
    with os.scandir(backup_root) as it:
        for child in it:
            if not child.is_dir(follow_symlinks=False):
                continue
            day = parse_date_folder_name(child.name, date_format)
            if day is not None:
                folders.append(DateFolder(date=day, path=Path(child.path)))
    folders.sort(key=lambda folder: folder.date, reverse=True)
    return folders


def directory_size(path: Path) -> int:
    """Total size in bytes of the regular files below a directory."""
    total = 0
    for root, _dirs, files in os.walk(path):
        for name in files:
            try:
                total += os.lstat(os.path.join(root, name)).st_size
            except OSError:
                continue
    return total


class RemovalStrategy:
    """
    Remove a directory tree, working around access-denied errors.

    1. Direct recursive removal; an entry that is denied gets its own and
       its parent's owner permission bits restored and is retried once
    2. On failure, the whole tree is made writable and removal is
       retried, up to `retries` more times with `delay` seconds between
    3. Persistent failure is returned as an outcome, never raised
    """

    def __init__(
        self,
        retries: int = 2,
        delay: float = 0.5,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.retries = retries
        self.delay = delay
        self._sleep = sleep

    def remove(self, path: Path) -> RemovalOutcome:
        """
        Remove `path` recursively.

        Args:
            path: Directory to remove

        Returns:
            RemovalOutcome (removed=False with the last error on failure)
        """
        last_error: OSError | None = None
        attempts = 0

        for attempt in range(self.retries + 1):
            attempts = attempt + 1
            if attempt > 0:
                self._make_tree_writable(path)
                self._sleep(self.delay)
            try:
                self._rmtree(path)
                return RemovalOutcome(path=path, removed=True, attempts=attempts)
            except FileNotFoundError:
                return RemovalOutcome(path=path, removed=True, attempts=attempts)
            except OSError as e:
                last_error = e
                logger.debug(
                    "folder_removal_retry",
                    path=str(path),
                    attempt=attempts,
                    error=str(e),
                )

        return RemovalOutcome(
            path=path,
            removed=False,
            attempts=attempts,
            error=str(last_error),
        )

    def _rmtree(self, path: Path) -> None:
        shutil.rmtree(path, onexc=self._clear_and_retry)

    @staticmethod
    def _clear_and_retry(func: Callable, failed_path: str, exc: BaseException) -> None:
        """shutil.rmtree error hook: clear read-only bits and retry once."""
        if not isinstance(exc, PermissionError) or func not in (os.unlink, os.rmdir, os.remove):
            raise exc
        parent = os.path.dirname(failed_path)
        for target in (parent, failed_path):
            try:
                mode = os.lstat(target).st_mode
                if not stat.S_ISLNK(mode):
                    os.chmod(target, stat.S_IMODE(mode) | _OWNER_RWX)
            except OSError:
                continue
        func(failed_path)

    @staticmethod
    def _make_tree_writable(path: Path) -> None:
        if not path.exists():
            return
        targets = [str(path)]
        for root, dirs, files in os.walk(path):
            targets.extend(os.path.join(root, name) for name in dirs + files)
        for target in targets:
            try:
                mode = os.lstat(target).st_mode
                if not stat.S_ISLNK(mode):
                    os.chmod(target, stat.S_IMODE(mode) | _OWNER_RWX)
            except OSError:
                continue


def prune_date_folders(
    backup_root: Path,
    keep: int,
    *,
    date_format: str = DEFAULT_DATE_FORMAT,
    dry_run: bool = False,
    remover: RemovalStrategy | None = None,
) -> RetentionResult:
    """
    Delete every date folder except the `keep` most recent.

    Args:
        backup_root: Backup root directory
        keep: Number of date folders to retain (0 removes all; KEEP_ALL
              makes this a no-op)
        date_format: strftime format of folder names
        dry_run: If True, only report what would be deleted
        remover: Removal strategy (default: RemovalStrategy())

    Returns:
        RetentionResult with removed, kept and failed folder names
    """
    if keep < KEEP_ALL:
        raise ConfigurationError(f"keep must be >= 0 (or KEEP_ALL), got {keep}")

    result = RetentionResult(keep=keep, dry_run=dry_run)

    if keep == KEEP_ALL:
        logger.debug("retention_skipped_keep_all", backup_root=str(backup_root))
        return result

    if not backup_root.is_dir():
        logger.warning("retention_root_missing", backup_root=str(backup_root))
        return result

    remover = remover or RemovalStrategy()
    folders = find_date_folders(backup_root, date_format)

    result.kept = [folder.name for folder in folders[:keep]]

    for folder in folders[keep:]:
        size = directory_size(folder.path)

        if dry_run:
            result.removed.append(folder.name)
            result.freed_bytes += size
            logger.info("date_folder_would_prune", path=str(folder.path), size=size)
            continue

        outcome = remover.remove(folder.path)
        if outcome.removed:
            result.removed.append(folder.name)
            result.freed_bytes += size
            logger.info("date_folder_pruned", path=str(folder.path), size=size)
        else:
            result.failed.append(folder.name)
            message = f"{folder.path}: {outcome.error}"
            result.errors.append(message)
            logger.warning(
                "date_folder_prune_failed",
                path=str(folder.path),
                attempts=outcome.attempts,
                error=outcome.error,
            )

    logger.info(
        "retention_complete",
        backup_root=str(backup_root),
        keep=keep,
        removed=len(result.removed),
        kept=len(result.kept),
        failed=len(result.failed),
        freed_bytes=result.freed_bytes,
        dry_run=dry_run,
    )

    return result


def remove_date_folder(
    backup_root: Path,
    day: date | str,
    *,
    date_format: str = DEFAULT_DATE_FORMAT,
    dry_run: bool = False,
    remover: RemovalStrategy | None = None,
) -> RemovalOutcome:
    """
    Explicitly remove one date folder.

    Args:
        backup_root: Backup root directory
        day: Date (or folder name) to remove
        date_format: strftime format of folder names
        dry_run: If True, only report what would be deleted
        remover: Removal strategy (default: RemovalStrategy())

    Returns:
        RemovalOutcome for the folder

    Raises:
        RetentionError: If no such date folder exists
    """
    name = day.strftime(date_format) if isinstance(day, date) else day
    path = backup_root / name

    if parse_date_folder_name(name, date_format) is None or not path.is_dir():
        raise RetentionError(
            f"Date folder not found: {path}",
            details={"backup_root": str(backup_root), "date": name},
        )

    if dry_run:
        logger.info("date_folder_would_remove", path=str(path))
        return RemovalOutcome(path=path, removed=False, attempts=0)

    outcome = (remover or RemovalStrategy()).remove(path)
    if outcome.removed:
        logger.info("date_folder_removed", path=str(path))
    else:
        logger.warning("date_folder_remove_failed", path=str(path), error=outcome.error)
    return outcome
