# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Archive Layer - ZIP archives and their sidecar metadata documents.
"""

from dailybackup.archive.hashing import (
    hash_source,
    sha256_directory,
    sha256_file,
)

from dailybackup.archive.metadata import (
    SCHEMA_VERSION,
    ArchiveItem,
    MetadataReadResult,
    MetadataRecord,
    build_record,
    metadata_path_for,
    read_metadata,
    write_metadata,
)

from dailybackup.archive.writer import (
    ArchiveRecord,
    archive_base_name,
    unique_archive_path,
    write_archive,
)

__all__ = [
    # Hashing
    "hash_source",
    "sha256_directory",
    "sha256_file",
    # Metadata
    "SCHEMA_VERSION",
    "ArchiveItem",
    "MetadataReadResult",
    "MetadataRecord",
    "build_record",
    "metadata_path_for",
    "read_metadata",
    "write_metadata",
    # Writer
    "ArchiveRecord",
    "archive_base_name",
    "unique_archive_path",
    "write_archive",
]
