# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
DailyBackup Exceptions - Custom exceptions for the dailybackup package.
"""


class DailyBackupError(Exception):
    """Base exception for all DailyBackup errors."""

    def __init__(self, message: str, details: dict | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(DailyBackupError):
    """Raised when configuration is invalid."""

    pass


class BackupError(DailyBackupError):
    """Raised when a backup session cannot run at all."""

    pass


class DateFolderExistsError(BackupError):
    """Raised when today's date folder exists and replacing it was not requested."""

    pass


class ArchiveError(DailyBackupError):
    """Raised when a single archive cannot be written."""

    pass


class MetadataError(DailyBackupError):
    """Raised when a metadata document cannot be written."""

    pass


class RetentionError(DailyBackupError):
    """Raised when a date folder cannot be removed."""

    pass


class RestoreError(DailyBackupError):
    """Raised when restore operations fail."""

    pass
