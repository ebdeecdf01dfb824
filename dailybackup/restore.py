# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
DailyBackup Restore Engine - Extract archives back onto the filesystem.

Two placement strategies are supported:
- Destination restore: every member lands under one directory, either
  keeping the archive's internal structure or flattened to base names
- Original-path restore: members are remapped through the archive's
  metadata onto the absolute source paths recorded at backup time

An existing file is never replaced unless `force` is set. Problems with
one archive or one member are reported and the restore carries on.
"""

from __future__ import annotations

import os
import shutil
import time
import zipfile
from dataclasses import dataclass, field
from datetime import date, datetime, UTC
from pathlib import Path, PurePosixPath
from typing import Dict, List

import structlog

from dailybackup.archive.metadata import ArchiveItem
from dailybackup.catalog import CatalogArchive, find_date_folder
from dailybackup.config import DEFAULT_DATE_FORMAT, PathKind
from dailybackup.errors import explain_missing_metadata, explain_no_date_folder
from dailybackup.exceptions import RestoreError

logger = structlog.get_logger()


@dataclass(frozen=True)
class RestoreSelection:
    """Which backups to restore."""

    # Exact date; None selects the most recent date folder
    date: date | str | None = None

    # fnmatch glob over archive file names; None selects all
    name_pattern: str | None = None


@dataclass
class RestoreResult:
    """Result of a restore operation."""

    date_folder: str | None
    restored_count: int = 0
    skipped_count: int = 0
    failed_count: int = 0
    errors: List[str] = field(default_factory=list)
    dry_run: bool = False
    archives: List[str] = field(default_factory=list)
    restored_paths: List[str] = field(default_factory=list)
    skipped_paths: List[str] = field(default_factory=list)
    failed_paths: List[str] = field(default_factory=list)
    duration_seconds: float = 0.0


def is_safe_member(name: str) -> bool:
    """
    Check that a ZIP member name stays inside its extraction root.

    Rejects absolute names, drive-qualified names, backslash paths and
    any `..` component.
    """
    if not name or name.startswith(("/", "\\")) or "\\" in name:
        return False
    if len(name) > 1 and name[1] == ":":
        return False
    parts = PurePosixPath(name).parts
    return all(part not in ("..", "") for part in parts)


def _zip_mtime(info: zipfile.ZipInfo) -> float | None:
    try:
        return time.mktime(info.date_time + (0, 0, -1))
    except (OverflowError, ValueError):
        return None


def _extract_file(archive: zipfile.ZipFile, info: zipfile.ZipInfo, target: Path) -> None:
    """Extract one member to `target` atomically, keeping its timestamp."""
    target.parent.mkdir(parents=True, exist_ok=True)
    temp_path = target.with_name(f".{target.name}.restore.tmp")
    try:
        with archive.open(info, "r") as source, open(temp_path, "wb") as sink:
            shutil.copyfileobj(source, sink, 1024 * 1024)
        mtime = _zip_mtime(info)
        if mtime is not None:
            os.utime(temp_path, (mtime, mtime))
        os.replace(temp_path, target)
    except BaseException:
        temp_path.unlink(missing_ok=True)
        raise


def _original_target(parts: List[str], mapping: Dict[str, ArchiveItem]) -> Path | None:
    """Map member path components onto the recorded source location."""
    item = mapping.get(parts[0])
    if item is None:
        return None
    rest = parts[1:]
    if item.kind == PathKind.FILE and rest:
        return None
    return Path(item.path).joinpath(*rest)


def _restore_archive(
    entry: CatalogArchive,
    result: RestoreResult,
    *,
    destination: Path,
    use_original_paths: bool,
    preserve_structure: bool,
    force: bool,
    dry_run: bool,
) -> None:
    mapping: Dict[str, ArchiveItem] = {}
    if use_original_paths:
        record = entry.metadata.record
        if not entry.metadata.is_valid or record is None:
            message = f"{entry.name}: {explain_missing_metadata(entry.path)} ({entry.metadata.error})"
            result.errors.append(message)
            result.skipped_count += 1
            result.skipped_paths.append(str(entry.path))
            logger.warning(
                "restore_archive_skipped",
                archive=str(entry.path),
                reason=entry.metadata.error,
            )
            return
        mapping = {item.arcname: item for item in record.archived_items()}

    with zipfile.ZipFile(entry.path, "r") as archive:
        for info in archive.infolist():
            name = info.filename
            if not is_safe_member(name.rstrip("/")):
                result.failed_count += 1
                result.failed_paths.append(f"{entry.name}:{name}")
                result.errors.append(f"{entry.name}: unsafe member path {name!r}")
                logger.warning("restore_member_unsafe", archive=str(entry.path), member=name)
                continue

            parts = name.rstrip("/").split("/")

            if use_original_paths:
                target = _original_target(parts, mapping)
                if target is None:
                    result.skipped_count += 1
                    result.skipped_paths.append(f"{entry.name}:{name}")
                    result.errors.append(f"{entry.name}: no metadata entry for member {name!r}")
                    logger.warning("restore_member_unmapped", archive=str(entry.path), member=name)
                    continue
            elif preserve_structure:
                target = destination.joinpath(*parts)
            else:
                target = destination / parts[-1]

            if info.is_dir():
                if (use_original_paths or preserve_structure) and not dry_run:
                    try:
                        target.mkdir(parents=True, exist_ok=True)
                    except OSError as e:
                        result.failed_count += 1
                        result.failed_paths.append(str(target))
                        result.errors.append(f"{target}: {e}")
                        logger.error("restore_directory_failed", target=str(target), error=str(e))
                continue

            if target.exists() or target.is_symlink():
                if not force:
                    result.skipped_count += 1
                    result.skipped_paths.append(str(target))
                    result.errors.append(f"{target}: already exists (use force to overwrite)")
                    logger.warning("restore_item_skipped", target=str(target), reason="exists")
                    continue
                if target.is_dir():
                    result.failed_count += 1
                    result.failed_paths.append(str(target))
                    result.errors.append(f"{target}: a directory is in the way")
                    logger.warning("restore_item_failed", target=str(target), reason="is_directory")
                    continue

            if dry_run:
                result.restored_count += 1
                result.restored_paths.append(str(target))
                logger.info("restore_item_would_write", target=str(target), member=name)
                continue

            try:
                _extract_file(archive, info, target)
            except (OSError, zipfile.BadZipFile, RuntimeError) as e:
                result.failed_count += 1
                result.failed_paths.append(str(target))
                result.errors.append(f"{target}: {e}")
                logger.error("restore_item_failed", target=str(target), error=str(e))
                continue

            result.restored_count += 1
            result.restored_paths.append(str(target))
            logger.debug("restore_item_written", target=str(target), member=name)


def restore_backups(
    backup_root: Path | str,
    selection: RestoreSelection | None = None,
    *,
    destination: Path | str | None = None,
    use_original_paths: bool = False,
    preserve_structure: bool = True,
    force: bool = False,
    dry_run: bool = False,
    date_format: str = DEFAULT_DATE_FORMAT,
) -> RestoreResult:
    """
    Restore archives from a date folder.

    This is the main entry point for restores. It resolves the date
    folder (exact date or most recent), filters its archives by name and
    extracts each one.

    Args:
        backup_root: Backup root directory
        selection: Date and name filter (default: most recent, all archives)
        destination: Target directory (default: current working directory);
                     ignored with use_original_paths
        use_original_paths: Restore to the source paths in the metadata
        preserve_structure: Keep archive-internal directories under destination
        force: Overwrite existing files
        dry_run: If True, only report what would be restored
        date_format: strftime format of folder names

    Returns:
        RestoreResult with operation details

    Raises:
        RestoreError: If no date folder matches the selection
    """
    selection = selection or RestoreSelection()
    start_time = datetime.now(UTC)
    root = Path(backup_root).expanduser()

    folder = find_date_folder(root, selection.date, date_format=date_format)
    if folder is None:
        requested = selection.date.strftime(date_format) if isinstance(selection.date, date) else selection.date
        raise RestoreError(
            explain_no_date_folder(root, requested),
            details={"backup_root": str(root), "date": requested},
        )

    target_root = Path(destination).expanduser() if destination is not None else Path.cwd()
    target_root = target_root.absolute()

    logger.info(
        "restore_started",
        date_folder=str(folder.path),
        name_pattern=selection.name_pattern,
        use_original_paths=use_original_paths,
        destination=None if use_original_paths else str(target_root),
        dry_run=dry_run,
    )

    result = RestoreResult(date_folder=folder.name, dry_run=dry_run)
    archives = folder.matching(selection.name_pattern)

    if not archives:
        result.errors.append(
            f"No archives in {folder.path} match {selection.name_pattern or '*'}"
        )
        logger.warning(
            "restore_no_archives",
            date_folder=str(folder.path),
            name_pattern=selection.name_pattern,
        )

    for entry in archives:
        result.archives.append(entry.name)
        try:
            _restore_archive(
                entry,
                result,
                destination=target_root,
                use_original_paths=use_original_paths,
                preserve_structure=preserve_structure,
                force=force,
                dry_run=dry_run,
            )
        except (OSError, zipfile.BadZipFile) as e:
            result.failed_count += 1
            result.failed_paths.append(str(entry.path))
            result.errors.append(f"{entry.name}: {e}")
            logger.error("restore_archive_failed", archive=str(entry.path), error=str(e))

    result.duration_seconds = (datetime.now(UTC) - start_time).total_seconds()

    logger.info(
        "restore_completed",
        date_folder=folder.name,
        restored=result.restored_count,
        skipped=result.skipped_count,
        failed=result.failed_count,
        duration=result.duration_seconds,
        dry_run=dry_run,
    )

    return result
