# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
DailyBackup Catalog - Discover existing date folders and their archives.

This is the read path shared by restore and verification. Listing never
raises for a missing or unreadable backup root; it returns an empty
listing with a warning instead.
"""

from dataclasses import dataclass, field
from datetime import date
from fnmatch import fnmatch
from pathlib import Path
from typing import List

import structlog

from dailybackup.archive.metadata import ARCHIVE_SUFFIX, MetadataReadResult, read_metadata
from dailybackup.config import DEFAULT_DATE_FORMAT
from dailybackup.retention import DateFolder, find_date_folders

logger = structlog.get_logger()


@dataclass
class CatalogArchive:
    """An archive found in a date folder, with its parsed metadata."""

    path: Path
    size_bytes: int
    metadata: MetadataReadResult

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def has_valid_metadata(self) -> bool:
        return self.metadata.is_valid


@dataclass
class DateFolderSummary:
    """A date folder and everything it contains."""

    date: date
    path: Path
    archives: List[CatalogArchive] = field(default_factory=list)
    total_size: int = 0

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def archive_count(self) -> int:
        return len(self.archives)

    def matching(self, name_pattern: str | None) -> List[CatalogArchive]:
        """Archives whose file name matches a glob (all when None)."""
        if not name_pattern:
            return list(self.archives)
        return [archive for archive in self.archives if fnmatch(archive.name, name_pattern)]


@dataclass
class CatalogListing:
    """Result of listing a backup root."""

    backup_root: Path
    folders: List[DateFolderSummary] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def total_size(self) -> int:
        return sum(folder.total_size for folder in self.folders)

    @property
    def archive_count(self) -> int:
        return sum(folder.archive_count for folder in self.folders)


def _normalize_date(value: date | str | None, date_format: str) -> str | None:
    if value is None:
        return None
    if isinstance(value, date):
        return value.strftime(date_format)
    return value


def summarize_date_folder(folder: DateFolder) -> DateFolderSummary:
    """
    Collect archives, metadata and sizes for one date folder.

    Args:
        folder: Date folder to inspect

    Returns:
        DateFolderSummary with archives sorted by name
    """
    summary = DateFolderSummary(date=folder.date, path=folder.path)

    for child in sorted(folder.path.iterdir()):
        if not child.is_file():
            continue
        size = child.stat().st_size
        summary.total_size += size
        if child.name.endswith(ARCHIVE_SUFFIX):
            summary.archives.append(
                CatalogArchive(path=child, size_bytes=size, metadata=read_metadata(child))
            )

    return summary


def list_backups(
    backup_root: Path | str,
    *,
    date: date | str | None = None,
    date_format: str = DEFAULT_DATE_FORMAT,
) -> CatalogListing:
    """
    List backups under a root, newest date first.

    Args:
        backup_root: Backup root directory
        date: Restrict to this exact date (date or folder name)
        date_format: strftime format of folder names

    Returns:
        CatalogListing (empty, with a warning, when the root is unusable)
    """
    root = Path(backup_root).expanduser()
    listing = CatalogListing(backup_root=root)
    wanted = _normalize_date(date, date_format)

    try:
        folders = find_date_folders(root, date_format)
    except OSError as e:
        message = f"Backup root not readable: {root} ({e.strerror or e})"
        listing.warnings.append(message)
        logger.warning("catalog_root_unreadable", backup_root=str(root), error=str(e))
        return listing

    for folder in folders:
        if wanted is not None and folder.name != wanted:
            continue
        try:
            listing.folders.append(summarize_date_folder(folder))
        except OSError as e:
            message = f"Date folder not readable: {folder.path} ({e.strerror or e})"
            listing.warnings.append(message)
            logger.warning("catalog_folder_unreadable", path=str(folder.path), error=str(e))

    logger.debug(
        "catalog_listed",
        backup_root=str(root),
        folders=len(listing.folders),
        archives=listing.archive_count,
    )
    return listing


def find_date_folder(
    backup_root: Path | str,
    date: date | str | None = None,
    *,
    date_format: str = DEFAULT_DATE_FORMAT,
) -> DateFolderSummary | None:
    """
    Find the folder for an exact date, or the most recent one.

    Returns:
        DateFolderSummary, or None when nothing matches
    """
    listing = list_backups(backup_root, date=date, date_format=date_format)
    if not listing.folders:
        return None
    return listing.folders[0]
