# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
DailyBackup Builder - Functional builder pattern for configuration.

This module provides pure functions for building BackupConfig objects.
Every step receives a config dict and hands back a fresh copy with its
change applied; the input dict is never mutated.
"""

from pathlib import Path
from typing import Any, Callable, Dict

from dailybackup.config import (
    AUTO_COMBINE_THRESHOLD,
    DEFAULT_COMBINED_ARCHIVE_NAME,
    DEFAULT_DATE_FORMAT,
    KEEP_ALL,
    ArchiveMode,
    BackupConfig,
)


# A step maps one config dict to the next
ConfigDict = Dict[str, Any]
BuilderFunc = Callable[[ConfigDict], ConfigDict]


def create_empty_config() -> ConfigDict:
    """
    Create an initial configuration dictionary.

    Returns:
        Dict holding every BackupConfig field at its default
    """
    return {
        "destination": None,
        "mode": ArchiveMode.AUTO,
        "keep": KEEP_ALL,
        "skip_hash": False,
        "skip_cleanup": False,
        "force": False,
        "dry_run": False,
        "date_format": DEFAULT_DATE_FORMAT,
        "combined_archive_name": DEFAULT_COMBINED_ARCHIVE_NAME,
        "auto_combine_threshold": AUTO_COMBINE_THRESHOLD,
        "compression_level": 6,
    }


def with_destination(config: ConfigDict, destination: Path | str) -> ConfigDict:
    """
    Set the backup root directory.

    Args:
        config: Current configuration dictionary
        destination: Directory that holds the date folders

    Returns:
        New configuration dictionary with destination set
    """
    path = Path(destination) if isinstance(destination, str) else destination
    return {**config, "destination": path}


def keep_last(config: ConfigDict, count: int) -> ConfigDict:
    """
    Retain only the `count` most recent date folders after each run.

    Args:
        config: Current configuration dictionary
        count: Number of date folders to keep (0 removes all of them)

    Returns:
        New configuration dictionary with the keep count set
    """
    if count < 0:
        raise ValueError(f"keep count must be >= 0, got {count}")
    return {**config, "keep": count}


def keep_all(config: ConfigDict) -> ConfigDict:
    """Retain every date folder (no pruning). This is the default."""
    return {**config, "keep": KEEP_ALL}


def individual_mode(config: ConfigDict) -> ConfigDict:
    """Create one archive per source item."""
    return {**config, "mode": ArchiveMode.INDIVIDUAL}


def combined_mode(config: ConfigDict) -> ConfigDict:
    """Create a single archive holding every source item."""
    return {**config, "mode": ArchiveMode.COMBINED}


def auto_mode(config: ConfigDict) -> ConfigDict:
    """Let each run choose between individual and combined archives."""
    return {**config, "mode": ArchiveMode.AUTO}


def disable_hashing(config: ConfigDict) -> ConfigDict:
    """
    Disable SHA-256 hashing of archives and sources.

    Faster for large backups, but verification will report every
    archive from such a run as unverifiable.
    """
    return {**config, "skip_hash": True}


def disable_cleanup(config: ConfigDict) -> ConfigDict:
    """
    Skip retention cleanup, whatever the keep count says.
    """
    return {**config, "skip_cleanup": True}


def replace_existing(config: ConfigDict) -> ConfigDict:
    """
    Replace today's date folder if it already exists.

    WARNING: The existing folder and all its archives are deleted first.
    """
    return {**config, "force": True}


def dry_run_mode(config: ConfigDict) -> ConfigDict:
    """
    Report every action without creating or deleting anything.
    """
    return {**config, "dry_run": True}


def with_date_format(config: ConfigDict, date_format: str) -> ConfigDict:
    """
    Set the strftime format used to name date folders.

    Args:
        config: Current configuration dictionary
        date_format: Format such as '%Y-%m-%d' or '%Y%m%d'

    Returns:
        New configuration dictionary with the date format set
    """
    return {**config, "date_format": date_format}


def with_compression_level(config: ConfigDict, level: int) -> ConfigDict:
    """
    Set the zlib compression level for archive members.

    Args:
        config: Current configuration dictionary
        level: 0 (store) to 9 (smallest)

    Returns:
        New configuration dictionary with the compression level set
    """
    if not 0 <= level <= 9:
        raise ValueError(f"compression level must be 0-9, got {level}")
    return {**config, "compression_level": level}


def build_config(config_dict: ConfigDict) -> BackupConfig:
    """
    Validate and build an immutable BackupConfig from a configuration dictionary.

    Args:
        config_dict: Configuration dictionary built using builder functions

    Returns:
        Validated, immutable BackupConfig instance

    Raises:
        ConfigurationError: If validation fails
    """
    return BackupConfig(**config_dict)


def pipe(*funcs: BuilderFunc) -> BuilderFunc:
    """
    Chain builder steps, left to right, into one step.

    Useful for naming a reusable policy:

        config = pipe(
            lambda c: with_destination(c, "/mnt/backups"),
            lambda c: keep_last(c, 7),
            disable_hashing,
        )(create_empty_config())

    Args:
        *funcs: Builder functions to compose

    Returns:
        Step that runs each of `funcs` in order
    """

    def composed(config: ConfigDict) -> ConfigDict:
        result = config
        for func in funcs:
            result = func(result)
        return result

    return composed


def build_from_steps(*steps: BuilderFunc) -> BackupConfig:
    """
    Build config by applying a sequence of builder functions.

    Shorthand for `build_config(pipe(*steps)(create_empty_config()))`.

    Example:
        config = build_from_steps(
            lambda c: with_destination(c, "/mnt/backups"),
            lambda c: keep_last(c, 7),
            combined_mode,
        )

    Args:
        *steps: Builder functions to apply in sequence

    Returns:
        Validated, immutable BackupConfig instance
    """
    return build_config(pipe(*steps)(create_empty_config()))


def create_config(
    destination: str | Path | None = None,
    *,
    mode: str | ArchiveMode = "auto",
    keep: int | None = None,
    skip_hash: bool = False,
    skip_cleanup: bool = False,
    force: bool = False,
    dry_run: bool = False,
    date_format: str | None = None,
    **kwargs: Any,
) -> BackupConfig:
    """
    Create a backup configuration from simple parameters.

    Most callers want this: keyword arguments map straight onto
    BackupConfig fields, with a few friendlier spellings.

    Args:
        destination: Backup root (default: current working directory)
        mode: "auto", "individual" or "combined" (default: "auto")
        keep: Date folders to retain; None or KEEP_ALL keeps everything
        skip_hash: Skip SHA-256 hashing
        skip_cleanup: Skip retention cleanup for this run
        force: Replace today's date folder if it exists
        dry_run: Report actions without touching the filesystem
        date_format: strftime format for date folders (default: "%Y-%m-%d")
        **kwargs: Additional configuration options

    Returns:
        Validated, immutable BackupConfig instance

    Example:
        # Keep a week of daily backups
        config = create_config("/mnt/backups", keep=7)

        # Fast run, one archive, no cleanup
        config = create_config(
            "/mnt/backups",
            mode="combined",
            skip_hash=True,
            skip_cleanup=True,
        )
    """
    # Start with defaults
    config_dict = create_empty_config()

    if destination:
        config_dict = with_destination(config_dict, destination)

    if keep is not None and keep != KEEP_ALL:
        config_dict = keep_last(config_dict, keep)

    if skip_hash:
        config_dict = disable_hashing(config_dict)

    if skip_cleanup:
        config_dict = disable_cleanup(config_dict)

    if force:
        config_dict = replace_existing(config_dict)

    if dry_run:
        config_dict = dry_run_mode(config_dict)

    if date_format:
        config_dict = with_date_format(config_dict, date_format)

    # Handle mode
    if isinstance(mode, str):
        mode_lower = mode.lower()
        if mode_lower == "individual":
            config_dict = individual_mode(config_dict)
        elif mode_lower == "combined":
            config_dict = combined_mode(config_dict)
        elif mode_lower == "auto":
            config_dict = auto_mode(config_dict)
        else:
            config_dict["mode"] = mode
    else:
        config_dict["mode"] = mode

    # Remaining keywords are passed through as BackupConfig fields
    for key, value in kwargs.items():
        if key in config_dict:
            config_dict[key] = value

    # BackupConfig validates on construction
    return build_config(config_dict)
