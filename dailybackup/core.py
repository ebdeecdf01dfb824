# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
DailyBackup Core - Backup session orchestrator.

One call to run_backup() is one session:

    ResolveDestination -> ResolveSources -> HandleExistingDateFolder
    -> CreateDateFolder -> ProcessSources -> Cleanup -> Done

Per-item problems (a source that does not exist, a file that cannot be
read) are collected as warnings and never stop the session. Only
failures that prevent establishing today's date folder abort it.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, UTC
from pathlib import Path
from typing import Callable, Iterable, List, Sequence, Set, Tuple

import structlog

from dailybackup.archive.metadata import build_record, write_metadata
from dailybackup.archive.writer import ArchiveRecord, archive_base_name, write_archive
from dailybackup.config import ArchiveMode, BackupConfig
from dailybackup.errors import (
    explain_date_folder_exists,
    explain_destination_not_directory,
    explain_no_sources,
)
from dailybackup.exceptions import (
    ArchiveError,
    BackupError,
    DateFolderExistsError,
    MetadataError,
)
from dailybackup.modes import select_mode
from dailybackup.paths import SourceEntry, resolve_sources
from dailybackup.retention import RemovalStrategy, RetentionResult, prune_date_folders

logger = structlog.get_logger()

# on_progress(index, total, label) after each archive attempt
ProgressCallback = Callable[[int, int, str], None]


@dataclass
class BackupResult:
    """Result of a backup session."""

    date_folder: Path | None
    mode: str | None
    dry_run: bool
    archives: List[ArchiveRecord] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    sources_resolved: int = 0
    sources_failed: int = 0
    retention: RetentionResult | None = None
    duration_seconds: float = 0.0

    @property
    def archive_count(self) -> int:
        return len(self.archives)

    @property
    def has_warnings(self) -> bool:
        return bool(self.warnings)


def resolve_destination(config: BackupConfig) -> Path:
    """
    Resolve the backup root (current working directory when unset).

    Raises:
        BackupError: If the destination exists but is not a directory
    """
    destination = config.destination if config.destination is not None else Path.cwd()
    destination = Path(destination).expanduser().absolute()

    if destination.exists() and not destination.is_dir():
        raise BackupError(
            explain_destination_not_directory(destination),
            details={"destination": str(destination)},
        )
    return destination


def prepare_date_folder(
    config: BackupConfig,
    backup_root: Path,
    today: date,
    warnings: List[str],
) -> Tuple[Path, bool]:
    """
    Handle an existing date folder and create today's folder.

    Args:
        config: Session configuration
        backup_root: Backup root directory
        today: Session date
        warnings: Session warnings (dry-run conflicts are appended here)

    Returns:
        (folder path, whether the folder exists on disk afterwards)

    Raises:
        DateFolderExistsError: Folder exists and force is not set
        BackupError: Folder cannot be replaced or created
    """
    folder = backup_root / today.strftime(config.date_format)

    if folder.exists():
        if config.dry_run:
            if config.force:
                logger.info("date_folder_would_replace", path=str(folder))
            else:
                message = explain_date_folder_exists(folder)
                warnings.append(message)
                logger.warning("date_folder_exists", path=str(folder), dry_run=True)
            return folder, True

        if not config.force:
            raise DateFolderExistsError(
                explain_date_folder_exists(folder),
                details={"path": str(folder)},
            )

        outcome = RemovalStrategy().remove(folder)
        if not outcome.removed:
            raise BackupError(
                f"Failed to replace existing date folder: {outcome.error}",
                details={"path": str(folder), "attempts": outcome.attempts},
            )
        logger.info("date_folder_replaced", path=str(folder))

    if config.dry_run:
        logger.info("date_folder_would_create", path=str(folder))
        return folder, False

    try:
        folder.mkdir(parents=True, exist_ok=False)
    except OSError as e:
        raise BackupError(
            f"Failed to create date folder: {e}",
            details={"path": str(folder)},
        )

    logger.info("date_folder_created", path=str(folder))
    return folder, True


def plan_archives(
    entries: Sequence[SourceEntry],
    mode: ArchiveMode,
    combined_name: str,
) -> List[Tuple[str, List[SourceEntry]]]:
    """Group entries into (archive base name, entries) work units."""
    if mode == ArchiveMode.COMBINED:
        return [(combined_name, list(entries))]
    return [(archive_base_name(entry), [entry]) for entry in entries]


def _archive_with_metadata(
    config: BackupConfig,
    folder: Path,
    base_name: str,
    group: List[SourceEntry],
    mode: ArchiveMode,
    reserved: Set[str],
) -> ArchiveRecord:
    record = write_archive(
        folder,
        group,
        base_name=base_name,
        mode=mode,
        compute_hash=not config.skip_hash,
        compression_level=config.compression_level,
        dry_run=config.dry_run,
        reserved=reserved,
    )

    metadata = build_record(
        record.path,
        record.items,
        mode="Combined" if mode == ArchiveMode.COMBINED else "Individual",
        content_hash=record.content_hash,
        created_at=record.created_at,
        size_bytes=record.size_bytes,
    )

    try:
        record.metadata_path = write_metadata(record.path, metadata, dry_run=config.dry_run)
    except MetadataError:
        # An archive is never left behind without its sidecar
        record.path.unlink(missing_ok=True)
        raise

    return record


def run_backup(
    config: BackupConfig,
    sources: Iterable[str],
    *,
    today: date | None = None,
    on_progress: ProgressCallback | None = None,
) -> BackupResult:
    """
    Run a complete backup session.

    This is the main entry point for backups. It:
    1. Resolves the backup root and the raw source paths
    2. Handles an existing date folder (error, replace, or report in dry-run)
    3. Creates today's date folder
    4. Archives sources individually or combined, writing metadata
    5. Prunes old date folders unless cleanup is skipped or keep is KEEP_ALL

    Args:
        config: Session configuration
        sources: Raw source path strings
        today: Session date (default: local today)
        on_progress: Called after each archive as (index, total, label)

    Returns:
        BackupResult with session details

    Raises:
        BackupError: If the session cannot establish its date folder
    """
    start_time = datetime.now(UTC)
    today = today or date.today()

    backup_root = resolve_destination(config)
    resolution = resolve_sources(sources)

    result = BackupResult(date_folder=None, mode=None, dry_run=config.dry_run)
    result.warnings.extend(resolution.warnings)
    result.sources_resolved = len(resolution.entries)

    if not resolution.entries:
        result.warnings.append(explain_no_sources())
        logger.warning("backup_no_sources", unresolved=resolution.unresolved)
        return result

    logger.info(
        "backup_started",
        backup_root=str(backup_root),
        date=today.isoformat(),
        sources=len(resolution.entries),
        dry_run=config.dry_run,
    )

    folder, folder_on_disk = prepare_date_folder(config, backup_root, today, result.warnings)
    result.date_folder = folder

    mode = select_mode(resolution.entries, config.mode, config.auto_combine_threshold)
    result.mode = mode.value
    units = plan_archives(resolution.entries, mode, config.combined_archive_name)
    total = len(units)
    reserved: Set[str] = set()

    for index, (base_name, group) in enumerate(units, start=1):
        label = base_name if mode == ArchiveMode.COMBINED else str(group[0].path)
        try:
            record = _archive_with_metadata(config, folder, base_name, group, mode, reserved)
        except (ArchiveError, MetadataError) as e:
            result.sources_failed += len(group)
            result.warnings.append(f"{label}: {e.message}")
            logger.warning("backup_item_failed", item=label, error=str(e))
        else:
            result.archives.append(record)

        logger.info("backup_item_completed", index=index, total=total, item=label)
        if on_progress is not None:
            on_progress(index, total, label)

    result.retention = _cleanup(config, backup_root, folder_on_disk)
    if result.retention is not None:
        result.warnings.extend(result.retention.errors)

    result.duration_seconds = (datetime.now(UTC) - start_time).total_seconds()

    logger.info(
        "backup_completed",
        date_folder=str(folder),
        mode=result.mode,
        archives=result.archive_count,
        failed=result.sources_failed,
        warnings=len(result.warnings),
        duration=result.duration_seconds,
        dry_run=config.dry_run,
    )

    return result


def _cleanup(config: BackupConfig, backup_root: Path, folder_on_disk: bool) -> RetentionResult | None:
    if config.skip_cleanup:
        logger.info("retention_skipped", reason="skip_cleanup", keep=config.keep)
        return None
    if config.keeps_everything:
        logger.debug("retention_skipped", reason="keep_all")
        return None

    keep = config.keep
    if config.dry_run and not folder_on_disk and keep > 0:
        # Today's simulated folder would be the newest one kept
        keep -= 1

    return prune_date_folders(
        backup_root,
        keep,
        date_format=config.date_format,
        dry_run=config.dry_run,
    )
