# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Example nightly backup job with DailyBackup.

This example demonstrates a scheduled backup that keeps a week of date
folders, verifies what it just wrote, and prints a short report. It
reads its settings from the environment so the same script works from
cron, a systemd timer or the Windows task scheduler.

Run with:
    python examples/basic_backup.py ~/Documents ~/.ssh/config "~/notes/*.md"

Environment variables:
    DAILYBACKUP_DESTINATION: Backup root (default: current directory)
    DAILYBACKUP_KEEP: Date folders to retain (default: 7 in this example)
    DAILYBACKUP_DRY_RUN: Set to 1 to preview without writing anything
"""

import os
import sys

from dailybackup import create_config_from_env, run_backup, verify_backups
from dailybackup.exceptions import DailyBackupError


def main(argv: list[str]) -> int:
    if not argv:
        print("usage: basic_backup.py SOURCE [SOURCE ...]", file=sys.stderr)
        return 2

    # A week of history unless the environment says otherwise
    os.environ.setdefault("DAILYBACKUP_KEEP", "7")

    try:
        config = create_config_from_env()
        result = run_backup(
            config,
            argv,
            on_progress=lambda index, total, label: print(f"[{index}/{total}] {label}"),
        )
    except DailyBackupError as e:
        print(f"Backup could not run: {e}", file=sys.stderr)
        return 1

    for warning in result.warnings:
        print(f"warning: {warning}", file=sys.stderr)

    if result.retention is not None and result.retention.removed:
        print(f"pruned: {', '.join(result.retention.removed)}")

    if config.dry_run or result.date_folder is None:
        return 0

    failures = [
        check
        for check in verify_backups(config.destination or os.getcwd(), date=result.date_folder.name)
        if not check.ok
    ]
    for check in failures:
        print(f"verify failed: {check.archive.name}: {check.reason}", file=sys.stderr)

    print(f"{result.archive_count} archive(s) written to {result.date_folder}")
    return 1 if failures and not config.skip_hash else 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
