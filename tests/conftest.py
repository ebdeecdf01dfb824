# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Test fixtures for DailyBackup tests.

Provides temporary backup roots, sample source trees and helpers for
building date folders.
"""

import os
import stat
import tempfile
from datetime import date
from pathlib import Path
from typing import Dict, Generator, Iterable, List

import pytest


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)
        # Undo read-only bits left behind by permission tests
        for root, dirs, files in os.walk(tmpdir):
            for name in dirs + files:
                path = os.path.join(root, name)
                if not os.path.islink(path):
                    os.chmod(path, os.stat(path).st_mode | stat.S_IRWXU)


@pytest.fixture
def backup_root(temp_dir: Path) -> Path:
    """Create an empty backup root."""
    root = temp_dir / "backups"
    root.mkdir()
    return root


@pytest.fixture
def source_tree(temp_dir: Path) -> Dict[str, Path]:
    """
    Create a small source tree:

        src/report.txt
        src/notes.md
        src/project/main.py
        src/project/lib/util.py
        src/project/empty/
    """
    src = temp_dir / "src"
    files = {
        "report": write_file(src / "report.txt", b"quarterly numbers\n"),
        "notes": write_file(src / "notes.md", b"# notes\n- buy milk\n"),
        "main": write_file(src / "project" / "main.py", b"print('hello')\n"),
        "util": write_file(src / "project" / "lib" / "util.py", b"def util():\n    return 42\n"),
    }
    (src / "project" / "empty").mkdir()
    files["project"] = src / "project"
    files["src"] = src
    return files


def write_file(path: Path, content: bytes) -> Path:
    """Write a file, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)
    return path


def make_date_folders(root: Path, days: Iterable[date], fmt: str = "%Y-%m-%d") -> List[Path]:
    """Create date folders (each holding one dummy archive)."""
    folders = []
    for day in days:
        folder = root / day.strftime(fmt)
        folder.mkdir(parents=True)
        (folder / "old.zip").write_bytes(b"PK\x05\x06" + b"\x00" * 18)
        folders.append(folder)
    return folders


def date_folder_names(root: Path) -> List[str]:
    """Sorted names of date-like folders under a root."""
    from dailybackup.retention import parse_date_folder_name

    return sorted(
        child.name
        for child in root.iterdir()
        if child.is_dir() and parse_date_folder_name(child.name) is not None
    )


def tree_snapshot(root: Path) -> Dict[str, bytes | None]:
    """Map every path below root to its bytes (None for directories)."""
    snapshot: Dict[str, bytes | None] = {}
    for path in sorted(root.rglob("*")):
        rel = path.relative_to(root).as_posix()
        snapshot[rel] = None if path.is_dir() else path.read_bytes()
    return snapshot
