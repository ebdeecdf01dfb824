# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
DailyBackup Path Resolver - Turn raw user input into existing entries.

Raw source strings may be relative, start with a home-directory marker,
or contain wildcard patterns. Inputs that match nothing are reported
and skipped; they never abort a session.
"""

import glob
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List

import structlog

from dailybackup.config import PathKind
from dailybackup.errors import explain_unresolved_source

logger = structlog.get_logger()

# Conventional MAX_PATH on Windows
WINDOWS_MAX_PATH = 260

_WILDCARD_CHARS = ("*", "?", "[")


@dataclass(frozen=True)
class SourceEntry:
    """A resolved, existing filesystem path."""

    path: Path
    kind: PathKind

    @property
    def is_directory(self) -> bool:
        return self.kind == PathKind.DIRECTORY

    @property
    def name(self) -> str:
        return self.path.name or str(self.path)


@dataclass
class ResolutionResult:
    """Result of resolving raw source paths."""

    entries: List[SourceEntry] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    unresolved: List[str] = field(default_factory=list)


def has_wildcard(raw_path: str) -> bool:
    """Check if a raw path contains glob characters."""
    return any(char in raw_path for char in _WILDCARD_CHARS)


def apply_long_path_prefix(path: str, platform: str | None = None) -> str:
    """
    Apply the Windows extended-length prefix to paths over MAX_PATH.

    Args:
        path: Absolute path
        platform: Platform name (defaults to sys.platform)

    Returns:
        The path, prefixed with \\\\?\\ (or \\\\?\\UNC\\ for shares) when
        running on Windows and the path is too long; unchanged otherwise
    """
    platform = platform or sys.platform
    if not platform.startswith("win") or len(path) < WINDOWS_MAX_PATH:
        return path
    if path.startswith("\\\\?\\"):
        return path
    if path.startswith("\\\\"):
        return "\\\\?\\UNC\\" + path[2:]
    return "\\\\?\\" + path


def _absolute(raw_path: str, cwd: Path) -> str:
    expanded = os.path.expanduser(raw_path)
    if not os.path.isabs(expanded):
        expanded = os.path.join(cwd, expanded)
    return os.path.normpath(expanded)


def _classify(path: str) -> SourceEntry | None:
    if os.path.isdir(path):
        return SourceEntry(path=Path(path), kind=PathKind.DIRECTORY)
    if os.path.isfile(path):
        return SourceEntry(path=Path(path), kind=PathKind.FILE)
    return None


def resolve_sources(raw_paths: Iterable[str], *, cwd: Path | str | None = None) -> ResolutionResult:
    """
    Resolve raw source strings into existing source entries.

    Steps for each input:
    1. Expand a leading ~ to the home directory
    2. Make relative paths absolute against cwd
    3. Expand wildcard patterns (including recursive **), unless the
       input names an existing path literally
    4. Apply the long-path prefix where the platform needs it

    Args:
        raw_paths: Raw path strings as supplied by the user
        cwd: Directory for relative paths (default: process cwd)

    Returns:
        ResolutionResult with entries in input order, duplicates removed
    """
    base = Path(cwd) if cwd is not None else Path.cwd()
    result = ResolutionResult()
    seen: set[str] = set()

    for raw_path in raw_paths:
        if not raw_path or not raw_path.strip():
            continue

        absolute = _absolute(raw_path, base)
        # An existing name like "report[1].txt" is literal, not a pattern
        if has_wildcard(raw_path) and not os.path.lexists(absolute):
            candidates = sorted(glob.glob(absolute, recursive=True))
        else:
            candidates = [absolute]

        matched = 0
        for candidate in candidates:
            entry = _classify(apply_long_path_prefix(candidate))
            if entry is None:
                continue
            matched += 1
            key = os.path.normcase(str(entry.path))
            if key in seen:
                continue
            seen.add(key)
            result.entries.append(entry)

        if matched == 0:
            message = explain_unresolved_source(raw_path)
            result.warnings.append(message)
            result.unresolved.append(raw_path)
            logger.warning("source_unresolved", raw_path=raw_path, resolved=absolute)
        else:
            logger.debug("source_resolved", raw_path=raw_path, matches=matched)

    return result
