# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
DailyBackup Configuration - Immutable configuration data structures.

All configuration is frozen (immutable) after creation so that several
sessions can run side by side in one process with independent settings.
"""

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from pathlib import Path
from typing import List

# Keep count meaning "retain every date folder"
KEEP_ALL = -1

DEFAULT_DATE_FORMAT = "%Y-%m-%d"
DEFAULT_COMBINED_ARCHIVE_NAME = "combined-files"

# Auto mode combines when every entry is a file and there are more than this
AUTO_COMBINE_THRESHOLD = 3


class ArchiveMode(str, Enum):
    """How resolved sources are grouped into archives."""

    AUTO = "auto"  # Decide per invocation
    INDIVIDUAL = "individual"  # One archive per source item
    COMBINED = "combined"  # One archive for all source items


class PathKind(str, Enum):
    """Kind of a backed-up filesystem entry."""

    FILE = "File"
    DIRECTORY = "Directory"


def _validate_date_format(fmt: str) -> bool:
    """
    Validate that a date format round-trips through strftime/strptime.

    Retention relies on parsing folder names back into dates, so the
    format must produce a non-empty, filesystem-safe name that parses
    back to the same calendar day.
    """
    if not fmt or "/" in fmt or "\\" in fmt:
        return False
    sample = date(2024, 11, 23)
    try:
        name = sample.strftime(fmt)
        return bool(name) and datetime.strptime(name, fmt).date() == sample
    except (ValueError, TypeError):
        return False


def _validate_archive_name(name: str) -> bool:
    """Validate a bare archive label (no path separators)."""
    if not name or name in (".", ".."):
        return False
    return not any(sep in name for sep in ("/", "\\", "\0"))


@dataclass(frozen=True)
class BackupConfig:
    """
    Immutable configuration for a backup session.

    Every flag that steers a session lives here so the session itself
    carries no ambient state.
    """

    # Backup root; None means the current working directory
    destination: Path | None = None

    # Archive grouping mode
    mode: ArchiveMode = ArchiveMode.AUTO

    # Number of date folders to retain after the run (KEEP_ALL disables pruning)
    keep: int = KEEP_ALL

    # Skip SHA-256 hashing of archives and sources
    skip_hash: bool = False

    # Skip retention cleanup for this run, whatever keep says
    skip_cleanup: bool = False

    # Replace today's date folder if it already exists
    force: bool = False

    # Report every action without touching the filesystem
    dry_run: bool = False

    # strftime format for date folder names
    date_format: str = DEFAULT_DATE_FORMAT

    # Base name for archives created in combined mode
    combined_archive_name: str = DEFAULT_COMBINED_ARCHIVE_NAME

    # Auto mode switches to combined above this many plain files
    auto_combine_threshold: int = AUTO_COMBINE_THRESHOLD

    # zlib compression level for archive members (0-9)
    compression_level: int = 6

    def __post_init__(self) -> None:
        """Validate configuration after creation."""
        errors: List[str] = []

        if not isinstance(self.mode, ArchiveMode):
            errors.append(f"Invalid mode: {self.mode!r}")

        if self.keep < KEEP_ALL:
            errors.append(f"keep must be >= 0 (or KEEP_ALL), got {self.keep}")

        if not _validate_date_format(self.date_format):
            errors.append(f"Invalid date_format: {self.date_format!r}")

        if not _validate_archive_name(self.combined_archive_name):
            errors.append(f"Invalid combined_archive_name: {self.combined_archive_name!r}")

        if self.auto_combine_threshold < 0:
            errors.append(
                f"auto_combine_threshold must be >= 0, got {self.auto_combine_threshold}"
            )

        if not 0 <= self.compression_level <= 9:
            errors.append(f"compression_level must be 0-9, got {self.compression_level}")

        # Raise all errors at once
        if errors:
            from dailybackup.exceptions import ConfigurationError

            raise ConfigurationError(
                "Configuration validation failed",
                details={"errors": errors},
            )

        # Print warning when an existing folder may be replaced
        if self.force and not self.dry_run:
            import sys

            print(
                "\u26a0\ufe0f  WARNING: force enabled. An existing date folder will be replaced.",
                file=sys.stderr,
            )

    @property
    def keeps_everything(self) -> bool:
        """True when retention is disabled for this configuration."""
        return self.keep == KEEP_ALL

    def with_updates(self, **kwargs) -> "BackupConfig":
        """
        Create a new config with updated values.

        Since the config is frozen, this creates a new instance.
        """
        from dataclasses import asdict

        current = asdict(self)
        current.update(kwargs)
        return BackupConfig(**current)
