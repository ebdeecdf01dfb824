# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
DailyBackup Mode Selector - Decide how sources are grouped into archives.
"""

from typing import Sequence

from dailybackup.config import AUTO_COMBINE_THRESHOLD, ArchiveMode
from dailybackup.paths import SourceEntry


def select_mode(
    entries: Sequence[SourceEntry],
    requested: ArchiveMode,
    threshold: int = AUTO_COMBINE_THRESHOLD,
) -> ArchiveMode:
    """
    Return the effective archive mode for a set of resolved entries.

    Explicit INDIVIDUAL and COMBINED requests are honored as given.
    AUTO combines only when every entry is a plain file and there are
    more than `threshold` of them; any directory, or a small file count,
    keeps one archive per item.

    Args:
        entries: Resolved source entries
        requested: Mode requested by the caller
        threshold: File count that must be exceeded to combine

    Returns:
        ArchiveMode.INDIVIDUAL or ArchiveMode.COMBINED
    """
    if requested != ArchiveMode.AUTO:
        return requested

    all_files = all(not entry.is_directory for entry in entries)
    if all_files and len(entries) > threshold:
        return ArchiveMode.COMBINED
    return ArchiveMode.INDIVIDUAL
