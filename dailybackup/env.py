# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Environment-based configuration helpers and backup profiles.

These helpers are small, convenient wrappers around create_config() and
BackupConfig.with_updates(). They make it easy to:

- Build a configuration from environment variables (for cron/systemd jobs)
- Apply ready-made profiles
"""

from __future__ import annotations

import os
from pathlib import Path

from dailybackup.builder import create_config
from dailybackup.config import KEEP_ALL, ArchiveMode, BackupConfig
from dailybackup.errors import (
    explain_invalid_flag_env,
    explain_invalid_keep_env,
    explain_invalid_mode_env,
)
from dailybackup.exceptions import ConfigurationError

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}


def _parse_mode(value: str | None) -> ArchiveMode:
    if not value:
        return ArchiveMode.AUTO
    try:
        return ArchiveMode(value.strip().lower())
    except ValueError as exc:
        raise ConfigurationError(explain_invalid_mode_env(value)) from exc


def _parse_keep(value: str | None) -> int:
    if value is None or not value.strip() or value.strip().lower() == "all":
        return KEEP_ALL
    try:
        keep = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(explain_invalid_keep_env(value)) from exc
    if keep < 0:
        raise ConfigurationError(explain_invalid_keep_env(value))
    return keep


def _parse_flag(name: str) -> bool:
    value = os.getenv(name)
    if value is None:
        return False
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ConfigurationError(explain_invalid_flag_env(name, value))


def create_config_from_env() -> BackupConfig:
    """
    Create a BackupConfig from environment variables.

    Optional environment variables:
        - DAILYBACKUP_DESTINATION: Backup root (default: current directory)
        - DAILYBACKUP_MODE: 'auto' | 'individual' | 'combined' (default: auto)
        - DAILYBACKUP_KEEP: Non-negative integer, or 'all' (default: all)
        - DAILYBACKUP_SKIP_HASH: Boolean flag (default: false)
        - DAILYBACKUP_SKIP_CLEANUP: Boolean flag (default: false)
        - DAILYBACKUP_FORCE: Boolean flag, replace today's folder (default: false)
        - DAILYBACKUP_DRY_RUN: Boolean flag (default: false)
        - DAILYBACKUP_DATE_FORMAT: strftime format (default: %Y-%m-%d)
    """

    destination_env = os.getenv("DAILYBACKUP_DESTINATION")

    return create_config(
        Path(destination_env) if destination_env else None,
        mode=_parse_mode(os.getenv("DAILYBACKUP_MODE")),
        keep=_parse_keep(os.getenv("DAILYBACKUP_KEEP")),
        skip_hash=_parse_flag("DAILYBACKUP_SKIP_HASH"),
        skip_cleanup=_parse_flag("DAILYBACKUP_SKIP_CLEANUP"),
        force=_parse_flag("DAILYBACKUP_FORCE"),
        dry_run=_parse_flag("DAILYBACKUP_DRY_RUN"),
        date_format=os.getenv("DAILYBACKUP_DATE_FORMAT") or None,
    )


# ============================================================================
# Profiles
# ============================================================================

def safe_defaults(config: BackupConfig) -> BackupConfig:
    """
    Apply conservative, safety-first defaults.

    - Always use dry-run
    - Never replace an existing date folder
    - Keep every date folder
    """

    return config.with_updates(
        dry_run=True,
        force=False,
        keep=KEEP_ALL,
    )


def fast_backup(config: BackupConfig) -> BackupConfig:
    """
    Apply a speed-first profile for large or frequent backups.

    - No SHA-256 hashing (verification will report these as unverifiable)
    - Light compression
    """

    return config.with_updates(
        skip_hash=True,
        compression_level=min(config.compression_level, 1),
    )
