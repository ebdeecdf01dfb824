# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
DailyBackup - Date-partitioned, retention-bounded local backups.

Archives files and directories into `<root>/YYYY-MM-DD/*.zip` with a
JSON metadata sidecar per archive, prunes old date folders, verifies
archives against their stored hashes, and restores either to a chosen
directory or to the original source locations. Package name: dailybackup.
"""

__version__ = "0.1.0"

# Configuration creation (user-facing API)
from dailybackup.builder import create_config
from dailybackup.config import KEEP_ALL, ArchiveMode, BackupConfig, PathKind

# Core functions
from dailybackup.core import BackupResult, run_backup
from dailybackup.catalog import list_backups
from dailybackup.modes import select_mode
from dailybackup.paths import resolve_sources
from dailybackup.restore import RestoreResult, RestoreSelection, restore_backups
from dailybackup.retention import prune_date_folders, remove_date_folder
from dailybackup.verify import VerificationResult, verify_archive, verify_backups

# Environment-based configuration and profiles (additional helpers)
from dailybackup.env import (
    create_config_from_env,
    fast_backup,
    safe_defaults,
)

__all__ = [
    # Version
    "__version__",
    # Configuration creation (primary user-facing APIs)
    "create_config",
    "create_config_from_env",
    "BackupConfig",
    "ArchiveMode",
    "PathKind",
    "KEEP_ALL",
    # Backup session
    "run_backup",
    "BackupResult",
    "resolve_sources",
    "select_mode",
    # Retention
    "prune_date_folders",
    "remove_date_folder",
    # Catalog, restore and verification
    "list_backups",
    "restore_backups",
    "RestoreSelection",
    "RestoreResult",
    "verify_archive",
    "verify_backups",
    "VerificationResult",
    # Profiles
    "safe_defaults",
    "fast_backup",
]
