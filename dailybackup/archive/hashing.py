# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
DailyBackup Hashing - SHA-256 digests for archives and live sources.
"""

import hashlib
import os
from pathlib import Path

from dailybackup.config import PathKind

CHUNK_SIZE = 1024 * 1024


def sha256_file(path: Path) -> str:
    """
    Calculate the SHA-256 hash of a file, streaming it in chunks.

    Args:
        path: File to hash

    Returns:
        Hex-encoded hash
    """
    digest = hashlib.sha256()
    with open(path, "rb") as handle:
        for chunk in iter(lambda: handle.read(CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


def sha256_directory(path: Path) -> str:
    """
    Calculate a SHA-256 digest over a directory tree.

    The digest covers every relative directory name, every relative file
    name and every file's content hash, visited in sorted order, so a
    rename, an added or removed entry, or changed bytes all alter it.
    """
    digest = hashlib.sha256()
    for root, dirs, files in os.walk(path, onerror=raise_walk_error):
        dirs.sort()
        rel_root = os.path.relpath(root, path)
        for name in dirs:
            rel = _posix_join(rel_root, name)
            digest.update(f"D {rel}\n".encode("utf-8", "surrogateescape"))
        for name in sorted(files):
            rel = _posix_join(rel_root, name)
            file_hash = sha256_file(Path(root) / name)
            digest.update(f"F {rel} {file_hash}\n".encode("utf-8", "surrogateescape"))
    return digest.hexdigest()


def hash_source(path: Path, kind: PathKind) -> str:
    """Hash a live source entry according to its kind."""
    if kind == PathKind.DIRECTORY:
        return sha256_directory(path)
    return sha256_file(path)


def _posix_join(rel_root: str, name: str) -> str:
    if rel_root in ("", os.curdir):
        return name
    return "/".join(rel_root.split(os.sep) + [name])


def raise_walk_error(error: OSError) -> None:
    """os.walk error hook: fail instead of skipping unreadable directories."""
    raise error
