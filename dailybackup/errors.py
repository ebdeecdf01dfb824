# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Human-friendly error message helpers for DailyBackup.

These helpers centralize wording for common errors so that all modules
present consistent, actionable messages.
"""

from pathlib import Path


def explain_date_folder_exists(folder: Path) -> str:
    """
    Explain that today's backup folder already exists.
    """

    return (
        f"Backup folder already exists: {folder}. "
        "Pass force=True (or set DAILYBACKUP_FORCE=1) to replace it."
    )


def explain_destination_not_directory(destination: Path) -> str:
    """
    Explain that the destination exists but is not a directory.
    """

    return (
        f"Backup destination is not a directory: {destination}. "
        "Choose a directory path or remove the file that is in the way."
    )


def explain_unresolved_source(raw_path: str) -> str:
    """
    Explain that a source path did not match anything on disk.
    """

    return (
        f"Source path not found, skipping: {raw_path!r}. "
        "Check the spelling, or quote wildcard patterns so the shell does not expand them."
    )


def explain_no_sources() -> str:
    """
    Explain that the session has nothing to back up.
    """

    return "No source paths could be resolved; nothing was backed up."


def explain_invalid_keep_env(value: str | None) -> str:
    """
    Explain that DAILYBACKUP_KEEP is invalid.
    """

    return (
        f"Invalid DAILYBACKUP_KEEP value: {value!r}. "
        "It must be a non-negative integer number of date folders, or 'all'."
    )


def explain_invalid_mode_env(value: str | None) -> str:
    """
    Explain that DAILYBACKUP_MODE is invalid.
    """

    return (
        f"Invalid DAILYBACKUP_MODE value: {value!r}. "
        "Expected one of: 'auto', 'individual', or 'combined'."
    )


def explain_invalid_flag_env(name: str, value: str | None) -> str:
    """
    Explain that a boolean environment flag is invalid.
    """

    return (
        f"Invalid {name} value: {value!r}. "
        "Expected one of: 1, 0, true, false, yes, no."
    )


def explain_missing_metadata(archive: Path) -> str:
    """
    Explain that an original-path restore needs a metadata document.
    """

    return (
        f"No valid metadata for {archive.name}; cannot restore to the original location. "
        "Restore it to an explicit destination instead."
    )


def explain_no_date_folder(backup_root: Path, date: str | None) -> str:
    """
    Explain that no backup folder matches the restore selection.
    """

    if date:
        return f"No backup folder for {date} under {backup_root}."
    return f"No backup folders found under {backup_root}."
