# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
DailyBackup Integrity Verifier - Compare archives against their metadata.

Verification never raises for a bad archive: a missing stored hash, a
mismatch or an unreadable file is a failed result for that archive.
With `verify_source`, the live sources are rehashed as well and any
difference from the backup-time digest is reported as drift. Neither
the archive nor the sources are modified.
"""

from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import List

import structlog

from dailybackup.archive.hashing import hash_source, sha256_file
from dailybackup.archive.metadata import MetadataRecord, read_metadata
from dailybackup.catalog import list_backups
from dailybackup.config import DEFAULT_DATE_FORMAT

logger = structlog.get_logger()


@dataclass
class VerificationResult:
    """Verification outcome for one archive."""

    archive: Path
    ok: bool
    expected_hash: str | None = None
    actual_hash: str | None = None
    reason: str | None = None
    source_checked: bool = False
    source_drift: bool | None = None
    drifted_sources: List[str] = field(default_factory=list)
    unreachable_sources: List[str] = field(default_factory=list)


def _check_sources(record: MetadataRecord, result: VerificationResult) -> None:
    """Rehash reachable sources and flag drift against backup-time digests."""
    compared = 0
    for item in record.archived_items():
        if item.source_hash is None:
            continue
        source = Path(item.path)
        if not source.exists():
            result.unreachable_sources.append(item.path)
            continue
        try:
            current = hash_source(source, item.kind)
        except OSError as e:
            result.unreachable_sources.append(item.path)
            logger.warning("source_hash_failed", source=item.path, error=str(e))
            continue
        compared += 1
        if current != item.source_hash:
            result.drifted_sources.append(item.path)

    result.source_checked = compared > 0
    if result.source_checked:
        result.source_drift = bool(result.drifted_sources)


def verify_archive(
    archive_path: Path,
    metadata: MetadataRecord | None,
    *,
    verify_source: bool = False,
) -> VerificationResult:
    """
    Verify one archive against its metadata record.

    Args:
        archive_path: Path of the archive
        metadata: Parsed metadata record (None when missing or invalid)
        verify_source: Also compare live sources with backup-time hashes

    Returns:
        VerificationResult (ok is False on any mismatch or missing hash)
    """
    result = VerificationResult(archive=archive_path, ok=False)

    if metadata is None:
        result.reason = "metadata missing or invalid"
    elif metadata.content_hash is None:
        result.reason = "no stored hash (backup was created with hashing disabled)"
    else:
        result.expected_hash = metadata.content_hash
        try:
            result.actual_hash = sha256_file(archive_path)
        except OSError as e:
            result.reason = f"archive unreadable: {e}"
        else:
            if result.actual_hash == result.expected_hash:
                result.ok = True
            else:
                result.reason = "hash mismatch"

    if verify_source and metadata is not None:
        _check_sources(metadata, result)

    if result.ok:
        logger.debug("archive_verified", archive=str(archive_path))
    else:
        logger.warning("verification_failed", archive=str(archive_path), reason=result.reason)

    if result.source_drift:
        logger.warning(
            "source_drift_detected",
            archive=str(archive_path),
            sources=result.drifted_sources,
        )

    return result


def verify_backups(
    backup_root: Path | str,
    *,
    date: date | str | None = None,
    name_pattern: str | None = None,
    verify_source: bool = False,
    date_format: str = DEFAULT_DATE_FORMAT,
) -> List[VerificationResult]:
    """
    Verify every archive in a catalog selection.

    Args:
        backup_root: Backup root directory
        date: Restrict to this exact date (default: all dates)
        name_pattern: fnmatch glob over archive file names
        verify_source: Also compare live sources with backup-time hashes
        date_format: strftime format of folder names

    Returns:
        One VerificationResult per archive, newest date folder first
    """
    listing = list_backups(backup_root, date=date, date_format=date_format)
    results: List[VerificationResult] = []

    for folder in listing.folders:
        for entry in folder.matching(name_pattern):
            record = entry.metadata.record if entry.metadata.is_valid else None
            result = verify_archive(entry.path, record, verify_source=verify_source)
            if record is None and entry.metadata.error:
                result.reason = f"metadata {entry.metadata.error}"
            results.append(result)

    logger.info(
        "verification_complete",
        backup_root=str(listing.backup_root),
        archives=len(results),
        failed=sum(1 for result in results if not result.ok),
    )
    return results


def verify_archive_file(archive_path: Path, *, verify_source: bool = False) -> VerificationResult:
    """Verify an archive, reading its sidecar metadata from disk."""
    metadata = read_metadata(archive_path)
    return verify_archive(archive_path, metadata.record, verify_source=verify_source)
