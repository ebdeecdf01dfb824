# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
DailyBackup Archive Writer - Compress source entries into ZIP archives.

This module handles naming archives inside a date folder without ever
overwriting an existing one, writing the ZIP atomically, and hashing
both the produced archive and the live sources it captured.

Archive layout:
- A file is stored under its base name
- A directory is stored as a top-level folder named after it, holding
  every nested file and directory (empty directories included)
"""

import os
import secrets
import zipfile
from dataclasses import dataclass, field
from datetime import datetime, UTC
from pathlib import Path
from typing import List, Sequence, Set

import structlog

from dailybackup.archive.hashing import hash_source, raise_walk_error, sha256_file
from dailybackup.archive.metadata import ARCHIVE_SUFFIX, ArchiveItem, metadata_path_for
from dailybackup.config import ArchiveMode, PathKind
from dailybackup.exceptions import ArchiveError
from dailybackup.paths import SourceEntry

logger = structlog.get_logger()

# Hex characters in the collision suffix
DISAMBIGUATOR_BYTES = 3


@dataclass
class ArchiveRecord:
    """An archive written (or planned, in dry-run) by the writer."""

    path: Path
    mode: ArchiveMode
    items: List[ArchiveItem]
    created_at: datetime
    size_bytes: int = 0
    content_hash: str | None = None
    dry_run: bool = False
    metadata_path: Path | None = None
    warnings: List[str] = field(default_factory=list)


def sanitize_archive_name(name: str) -> str:
    """
    Convert a source name to a safe archive base name.

    Replaces path separators and characters that are invalid in
    Windows file names with underscores.
    """
    safe = name.replace("/", "_").replace("\\", "_")

    for char in [":", "*", "?", '"', "<", ">", "|"]:
        safe = safe.replace(char, "_")

    safe = safe.strip()
    if safe in ("", ".", ".."):
        return "root"
    return safe


def archive_base_name(entry: SourceEntry) -> str:
    """Archive base name for an individual source entry."""
    return sanitize_archive_name(entry.path.name or str(entry.path))


def unique_archive_path(folder: Path, base_name: str, reserved: Set[str] | None = None) -> Path:
    """
    Pick an archive path in `folder` that is not taken yet.

    `<base>.zip` is used when free; otherwise a short random hex
    disambiguator is inserted before the extension. A name also counts
    as taken when its sidecar metadata document exists, or when it is
    in `reserved`. The chosen name is added to `reserved`.

    Args:
        folder: Date folder
        base_name: Base name derived from the source item
        reserved: Names already planned this session (dry runs write nothing)

    Returns:
        Path for the new archive
    """
    if reserved is None:
        reserved = set()

    def taken(path: Path) -> bool:
        return path.name in reserved or path.exists() or metadata_path_for(path).exists()

    candidate = folder / f"{base_name}{ARCHIVE_SUFFIX}"
    while taken(candidate):
        suffix = secrets.token_hex(DISAMBIGUATOR_BYTES)
        candidate = folder / f"{base_name}.{suffix}{ARCHIVE_SUFFIX}"
    reserved.add(candidate.name)
    return candidate


def _top_level_names(entries: Sequence[SourceEntry]) -> List[str]:
    """
    Assign a unique top-level name inside the archive to each entry.

    Duplicate base names (e.g. two `notes.txt` from different folders)
    get `_2`, `_3`... appended to the stem.
    """
    names: List[str] = []
    taken: set[str] = set()
    for entry in entries:
        base = sanitize_archive_name(entry.name)
        name = base
        counter = 2
        while name.lower() in taken:
            stem, ext = os.path.splitext(base)
            if entry.is_directory:
                stem, ext = base, ""
            name = f"{stem}_{counter}{ext}"
            counter += 1
        taken.add(name.lower())
        names.append(name)
    return names


def _add_entry(archive: zipfile.ZipFile, entry: SourceEntry, arcname: str) -> int:
    """Add one source entry to an open archive, returning the member count."""
    if entry.kind == PathKind.FILE:
        archive.write(entry.path, arcname)
        return 1

    members = 1
    archive.write(entry.path, arcname)
    for root, dirs, files in os.walk(entry.path, onerror=raise_walk_error):
        dirs.sort()
        rel_root = os.path.relpath(root, entry.path)
        prefix = arcname if rel_root == os.curdir else "/".join([arcname] + rel_root.split(os.sep))
        for name in dirs:
            archive.write(os.path.join(root, name), f"{prefix}/{name}")
            members += 1
        for name in sorted(files):
            archive.write(os.path.join(root, name), f"{prefix}/{name}")
            members += 1
    return members


def write_archive(
    folder: Path,
    entries: Sequence[SourceEntry],
    *,
    base_name: str,
    mode: ArchiveMode,
    compute_hash: bool = True,
    compression_level: int = 6,
    dry_run: bool = False,
    reserved: Set[str] | None = None,
) -> ArchiveRecord:
    """
    Compress source entries into a new archive inside a date folder.

    The archive is written atomically (write to temp, then rename) so a
    failure never leaves a half-written ZIP under the final name.

    Args:
        folder: Date folder that receives the archive
        entries: Entries to store (one for individual mode, all for combined)
        base_name: Archive base name before disambiguation
        mode: Effective archive mode (recorded on the result)
        compute_hash: Hash the archive and its sources (SHA-256)
        compression_level: zlib level for members (0-9)
        dry_run: If True, only report the archive that would be written
        reserved: Archive names already used this session

    Returns:
        ArchiveRecord describing the archive

    Raises:
        ArchiveError: If the archive cannot be written
    """
    if not entries:
        raise ArchiveError("No entries to archive", details={"folder": str(folder)})

    archive_path = unique_archive_path(folder, base_name, reserved)
    created_at = datetime.now(UTC)
    arcnames = _top_level_names(entries)

    if dry_run:
        items = [
            ArchiveItem(path=str(entry.path), kind=entry.kind, arcname=arcname)
            for entry, arcname in zip(entries, arcnames)
        ]
        logger.info(
            "archive_would_write",
            archive_path=str(archive_path),
            items=len(items),
            mode=mode.value,
        )
        return ArchiveRecord(
            path=archive_path,
            mode=mode,
            items=items,
            created_at=created_at,
            dry_run=True,
        )

    temp_path = archive_path.with_name(archive_path.name + ".tmp")
    members = 0

    try:
        with zipfile.ZipFile(
            temp_path,
            "w",
            compression=zipfile.ZIP_DEFLATED,
            compresslevel=compression_level,
            strict_timestamps=False,
        ) as archive:
            for entry, arcname in zip(entries, arcnames):
                members += _add_entry(archive, entry, arcname)

        # Hash sources right after capture so drift is measured against this copy
        items = [
            ArchiveItem(
                path=str(entry.path),
                kind=entry.kind,
                arcname=arcname,
                source_hash=hash_source(entry.path, entry.kind) if compute_hash else None,
            )
            for entry, arcname in zip(entries, arcnames)
        ]

        size_bytes = temp_path.stat().st_size
        content_hash = sha256_file(temp_path) if compute_hash else None

        # Rename to final path (atomic on most filesystems)
        os.replace(temp_path, archive_path)

    except Exception as e:
        temp_path.unlink(missing_ok=True)
        raise ArchiveError(
            f"Failed to write archive: {e}",
            details={
                "archive_path": str(archive_path),
                "sources": [str(entry.path) for entry in entries],
            },
        )

    logger.info(
        "archive_written",
        archive_path=str(archive_path),
        members=members,
        size=size_bytes,
        hashed=content_hash is not None,
        mode=mode.value,
    )

    return ArchiveRecord(
        path=archive_path,
        mode=mode,
        items=items,
        created_at=created_at,
        size_bytes=size_bytes,
        content_hash=content_hash,
    )
