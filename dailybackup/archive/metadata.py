# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
DailyBackup Metadata Store - Sidecar documents describing each archive.

Every archive `<name>.zip` has a JSON companion `<name>.metadata.json`
in the same date folder. The document records where the archived items
came from and the archive's content hash, and drives both restore to
original location and integrity verification.

Only one schema version exists. Documents carrying any other version
are reported as invalid rather than migrated.
"""

import json
import os
import re
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import List, Literal

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from dailybackup.config import PathKind
from dailybackup.exceptions import MetadataError

logger = structlog.get_logger()

SCHEMA_VERSION = 1
METADATA_SUFFIX = ".metadata.json"
ARCHIVE_SUFFIX = ".zip"

_SHA256_HEX = re.compile(r"^[0-9a-f]{64}$")


def _check_hash(value: str | None) -> str | None:
    if value is not None and not _SHA256_HEX.match(value):
        raise ValueError("must be a lowercase hex SHA-256 digest")
    return value


class ArchiveItem(BaseModel):
    """One source item stored at the top level of an archive."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    path: str
    kind: PathKind
    arcname: str
    source_hash: str | None = Field(default=None, alias="sourceHash")

    @field_validator("source_hash")
    @classmethod
    def _validate_source_hash(cls, value: str | None) -> str | None:
        return _check_hash(value)


class MetadataRecord(BaseModel):
    """Sidecar record for a single archive."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    schema_version: int = Field(alias="schemaVersion")
    source_path: str = Field(alias="sourcePath")
    path_kind: PathKind = Field(alias="pathKind")
    created_at: datetime = Field(alias="createdAt")
    content_hash: str | None = Field(alias="contentHash")
    archive_name: str | None = Field(default=None, alias="archiveName")
    mode: Literal["Individual", "Combined"] | None = None
    size_bytes: int | None = Field(default=None, alias="sizeBytes", ge=0)
    items: List[ArchiveItem] = Field(default_factory=list)

    @field_validator("content_hash")
    @classmethod
    def _validate_content_hash(cls, value: str | None) -> str | None:
        return _check_hash(value)

    def archived_items(self) -> List[ArchiveItem]:
        """
        Items stored in the archive.

        Records without an explicit item list describe a single item
        stored under the source's base name.
        """
        if self.items:
            return list(self.items)
        return [
            ArchiveItem(
                path=self.source_path,
                kind=self.path_kind,
                arcname=Path(self.source_path).name,
            )
        ]

    def to_document(self) -> dict:
        """Serialize to the on-disk JSON shape."""
        return self.model_dump(mode="json", by_alias=True)


@dataclass
class MetadataReadResult:
    """Outcome of reading a sidecar document."""

    path: Path
    record: MetadataRecord | None
    is_valid: bool
    error: str | None = None


def metadata_path_for(archive_path: Path) -> Path:
    """
    Return the sidecar path for an archive.

    `photos.zip` -> `photos.metadata.json`, `photos.1a2b3c.zip` ->
    `photos.1a2b3c.metadata.json`.
    """
    name = archive_path.name
    if name.endswith(ARCHIVE_SUFFIX):
        name = name[: -len(ARCHIVE_SUFFIX)]
    return archive_path.with_name(name + METADATA_SUFFIX)


def build_record(
    archive_path: Path,
    items: List[ArchiveItem],
    *,
    mode: Literal["Individual", "Combined"],
    content_hash: str | None,
    created_at: datetime,
    size_bytes: int | None = None,
) -> MetadataRecord:
    """
    Build a metadata record for a freshly written archive.

    Args:
        archive_path: Path of the archive
        items: Items stored in the archive (at least one)
        mode: "Individual" or "Combined"
        content_hash: SHA-256 of the archive, or None when hashing was skipped
        created_at: Creation timestamp (timezone-aware)
        size_bytes: Archive size on disk

    Returns:
        Validated MetadataRecord
    """
    if not items:
        raise MetadataError(
            "An archive must contain at least one item",
            details={"archive": str(archive_path)},
        )

    kinds = {item.kind for item in items}
    path_kind = PathKind.DIRECTORY if PathKind.DIRECTORY in kinds else PathKind.FILE

    return MetadataRecord(
        schema_version=SCHEMA_VERSION,
        source_path=items[0].path,
        path_kind=path_kind,
        created_at=created_at,
        content_hash=content_hash,
        archive_name=archive_path.name,
        mode=mode,
        size_bytes=size_bytes,
        items=items,
    )


def write_metadata(archive_path: Path, record: MetadataRecord, dry_run: bool = False) -> Path:
    """
    Write the sidecar document for an archive.

    The file is written atomically (write to temp, then rename) to
    prevent partial documents.

    Args:
        archive_path: Path of the archive the record describes
        record: Metadata record
        dry_run: If True, only report the path that would be written

    Returns:
        Path to the metadata document
    """
    path = metadata_path_for(archive_path)
    if dry_run:
        logger.info("metadata_would_write", path=str(path))
        return path

    temp_path = path.with_name(path.name + ".tmp")
    try:
        with open(temp_path, "w", encoding="utf-8") as handle:
            json.dump(record.to_document(), handle, indent=2)
            handle.write("\n")
        os.replace(temp_path, path)
    except OSError as e:
        temp_path.unlink(missing_ok=True)
        raise MetadataError(
            f"Failed to write metadata: {e}",
            details={"archive": str(archive_path), "metadata_path": str(path)},
        )

    logger.debug("metadata_written", path=str(path))
    return path


def read_metadata(archive_path: Path) -> MetadataReadResult:
    """
    Read and validate the sidecar document for an archive.

    Never raises for bad documents; problems are reported through
    `is_valid` and `error`.

    Args:
        archive_path: Path of the archive

    Returns:
        MetadataReadResult
    """
    path = metadata_path_for(archive_path)

    if not path.is_file():
        return MetadataReadResult(path=path, record=None, is_valid=False, error="metadata missing")

    try:
        with open(path, "r", encoding="utf-8") as handle:
            document = json.load(handle)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        return MetadataReadResult(path=path, record=None, is_valid=False, error=f"unreadable: {e}")

    if not isinstance(document, dict):
        return MetadataReadResult(path=path, record=None, is_valid=False, error="not a JSON object")

    version = document.get("schemaVersion")
    if version != SCHEMA_VERSION:
        return MetadataReadResult(
            path=path,
            record=None,
            is_valid=False,
            error=f"unsupported schemaVersion {version!r} (expected {SCHEMA_VERSION})",
        )

    try:
        record = MetadataRecord.model_validate(document)
    except ValidationError as e:
        return MetadataReadResult(
            path=path,
            record=None,
            is_valid=False,
            error=f"invalid document: {e.error_count()} error(s)",
        )

    return MetadataReadResult(path=path, record=record, is_valid=True)
