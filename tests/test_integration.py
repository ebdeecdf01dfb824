# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Integration Tests for DailyBackup.

These tests run whole workflows end to end:
- Backup sessions (modes, retention, progress, warnings)
- Catalog listing
- Restore to a destination and to original locations
- Verification, including source drift
"""

import json
import shutil
import zipfile
from datetime import date, timedelta

import pytest

from dailybackup import (
    BackupConfig,
    RestoreSelection,
    create_config,
    list_backups,
    remove_date_folder,
    restore_backups,
    run_backup,
    verify_backups,
)
from dailybackup.archive.metadata import metadata_path_for
from dailybackup.exceptions import BackupError, RestoreError, RetentionError
from dailybackup.verify import verify_archive_file

from tests.conftest import date_folder_names, make_date_folders, write_file

TODAY = date(2024, 11, 23)


# ============================================================================
# Backup sessions
# ============================================================================

def test_two_files_and_a_directory_in_auto_mode(backup_root, source_tree):
    """Auto mode with a directory keeps one archive per item; no pruning by default."""
    config = create_config(backup_root)

    result = run_backup(
        config,
        [str(source_tree["report"]), str(source_tree["notes"]), str(source_tree["project"])],
    )

    folder = backup_root / date.today().strftime("%Y-%m-%d")
    assert result.date_folder == folder
    assert result.mode == "individual"
    assert sorted(path.name for path in folder.glob("*.zip")) == [
        "notes.md.zip",
        "project.zip",
        "report.txt.zip",
    ]
    assert len(list(folder.glob("*.metadata.json"))) == 3
    assert result.retention is None
    assert result.warnings == []


def test_metadata_describes_each_source(backup_root, source_tree):
    result = run_backup(
        BackupConfig(destination=backup_root),
        [str(source_tree["report"]), str(source_tree["project"])],
        today=TODAY,
    )

    by_name = {record.path.name: record for record in result.archives}
    report_doc = json.loads(metadata_path_for(by_name["report.txt.zip"].path).read_text())
    project_doc = json.loads(metadata_path_for(by_name["project.zip"].path).read_text())

    assert report_doc["sourcePath"] == str(source_tree["report"])
    assert report_doc["pathKind"] == "File"
    assert report_doc["mode"] == "Individual"
    assert report_doc["contentHash"] == by_name["report.txt.zip"].content_hash
    assert project_doc["sourcePath"] == str(source_tree["project"])
    assert project_doc["pathKind"] == "Directory"


def test_many_files_in_auto_mode_are_combined(backup_root, temp_dir):
    files = [write_file(temp_dir / "many" / f"file{i}.txt", f"content {i}".encode()) for i in range(5)]

    result = run_backup(BackupConfig(destination=backup_root), [str(path) for path in files], today=TODAY)

    assert result.mode == "combined"
    assert [record.path.name for record in result.archives] == ["combined-files.zip"]
    with zipfile.ZipFile(result.archives[0].path) as archive:
        assert sorted(archive.namelist()) == [f"file{i}.txt" for i in range(5)]
    document = json.loads(metadata_path_for(result.archives[0].path).read_text())
    assert document["mode"] == "Combined"
    assert document["sourcePath"] == str(files[0])
    assert [item["path"] for item in document["items"]] == [str(path) for path in files]


def test_keep_zero_removes_every_date_folder(backup_root, source_tree):
    """Keep = 0 with two pre-existing folders leaves no date folders at all."""
    make_date_folders(backup_root, [date(2024, 1, 1), date(2024, 2, 1)])
    config = BackupConfig(destination=backup_root, keep=0)

    result = run_backup(config, [str(source_tree["report"])], today=TODAY)

    assert date_folder_names(backup_root) == []
    assert sorted(result.retention.removed) == ["2024-01-01", "2024-02-01", "2024-11-23"]


def test_keep_two_keeps_today_and_previous(backup_root, source_tree):
    make_date_folders(backup_root, [date(2024, 11, 20), date(2024, 11, 21), date(2024, 11, 22)])
    config = BackupConfig(destination=backup_root, keep=2)

    run_backup(config, [str(source_tree["report"])], today=TODAY)

    assert date_folder_names(backup_root) == ["2024-11-22", "2024-11-23"]


def test_unresolved_source_is_skipped_with_warning(backup_root, source_tree, temp_dir):
    result = run_backup(
        BackupConfig(destination=backup_root),
        [str(source_tree["report"]), str(temp_dir / "missing.txt")],
        today=TODAY,
    )

    assert result.archive_count == 1
    assert result.sources_resolved == 1
    assert len(result.warnings) == 1
    assert "missing.txt" in result.warnings[0]


def test_file_with_brackets_in_name_is_backed_up(backup_root, temp_dir):
    source = write_file(temp_dir / "data" / "report[1].txt", b"quarterly numbers")

    result = run_backup(BackupConfig(destination=backup_root), [str(source)], today=TODAY)

    assert result.warnings == []
    assert [record.path.name for record in result.archives] == ["report[1].txt.zip"]
    with zipfile.ZipFile(result.archives[0].path) as archive:
        assert archive.read("report[1].txt") == b"quarterly numbers"


def test_failing_item_is_skipped_and_session_continues(backup_root, source_tree, temp_dir):
    broken = temp_dir / "broken"
    broken.mkdir()
    (broken / "dangling").symlink_to(temp_dir / "never-existed")

    result = run_backup(
        BackupConfig(destination=backup_root),
        [str(broken), str(source_tree["report"])],
        today=TODAY,
    )

    assert result.archive_count == 1
    assert result.sources_failed == 1
    assert result.archives[0].path.name == "report.txt.zip"
    assert any(str(broken) in warning for warning in result.warnings)
    assert sorted(path.name for path in result.date_folder.iterdir()) == [
        "report.txt.metadata.json",
        "report.txt.zip",
    ]


def test_dry_run_plans_distinct_names_for_same_base_name(backup_root, temp_dir):
    first = write_file(temp_dir / "a" / "notes.md", b"first")
    second = write_file(temp_dir / "b" / "notes.md", b"second")
    config = BackupConfig(destination=backup_root, dry_run=True)

    result = run_backup(config, [str(first), str(second)], today=TODAY)

    names = [record.path.name for record in result.archives]
    assert names[0] == "notes.md.zip"
    assert names[1] != names[0]
    assert names[1].startswith("notes.md.")
    assert not (backup_root / "2024-11-23").exists()


def test_no_resolvable_sources_does_nothing(backup_root, temp_dir):
    make_date_folders(backup_root, [date(2024, 1, 1)])
    config = BackupConfig(destination=backup_root, keep=0)

    result = run_backup(config, [str(temp_dir / "nope"), str(temp_dir / "*.none")], today=TODAY)

    assert result.date_folder is None
    assert result.archives == []
    assert result.retention is None
    assert date_folder_names(backup_root) == ["2024-01-01"]
    assert any("nothing was backed up" in warning for warning in result.warnings)


def test_destination_is_created_and_defaults_to_cwd(temp_dir, source_tree, monkeypatch):
    monkeypatch.chdir(temp_dir)

    result = run_backup(BackupConfig(), [str(source_tree["report"])], today=TODAY)

    assert result.date_folder == temp_dir / "2024-11-23"
    assert (temp_dir / "2024-11-23" / "report.txt.zip").exists()

    nested = temp_dir / "fresh" / "root"
    run_backup(BackupConfig(destination=nested), [str(source_tree["report"])], today=TODAY)
    assert (nested / "2024-11-23" / "report.txt.zip").exists()


def test_destination_that_is_a_file_aborts(temp_dir, source_tree):
    blocker = write_file(temp_dir / "not-a-dir", b"x")

    with pytest.raises(BackupError):
        run_backup(BackupConfig(destination=blocker), [str(source_tree["report"])], today=TODAY)


def test_progress_is_reported_per_item(backup_root, source_tree):
    calls = []

    run_backup(
        BackupConfig(destination=backup_root),
        [str(source_tree["report"]), str(source_tree["notes"])],
        today=TODAY,
        on_progress=lambda index, total, label: calls.append((index, total, label)),
    )

    assert calls == [
        (1, 2, str(source_tree["report"])),
        (2, 2, str(source_tree["notes"])),
    ]


def test_custom_date_format(backup_root, source_tree):
    make_date_folders(backup_root, [date(2024, 1, 1)], fmt="%Y%m%d")
    config = BackupConfig(destination=backup_root, date_format="%Y%m%d", keep=1)

    run_backup(config, [str(source_tree["report"])], today=TODAY)

    assert sorted(path.name for path in backup_root.iterdir()) == ["20241123"]


# ============================================================================
# Catalog
# ============================================================================

def test_catalog_lists_newest_first_with_sizes(backup_root, source_tree):
    config = BackupConfig(destination=backup_root)
    run_backup(config, [str(source_tree["report"])], today=TODAY - timedelta(days=1))
    run_backup(config, [str(source_tree["report"]), str(source_tree["project"])], today=TODAY)
    (backup_root / "unrelated").mkdir()

    listing = list_backups(backup_root)

    assert [folder.name for folder in listing.folders] == ["2024-11-23", "2024-11-22"]
    newest = listing.folders[0]
    assert newest.archive_count == 2
    assert all(archive.has_valid_metadata for archive in newest.archives)
    assert newest.total_size == sum(path.stat().st_size for path in newest.path.iterdir())
    assert listing.archive_count == 3
    assert listing.warnings == []


def test_catalog_date_filter(backup_root, source_tree):
    config = BackupConfig(destination=backup_root)
    run_backup(config, [str(source_tree["report"])], today=TODAY - timedelta(days=1))
    run_backup(config, [str(source_tree["report"])], today=TODAY)

    listing = list_backups(backup_root, date=date(2024, 11, 22))

    assert [folder.name for folder in listing.folders] == ["2024-11-22"]
    assert list_backups(backup_root, date="2023-01-01").folders == []


def test_catalog_of_missing_root_is_empty_with_warning(temp_dir):
    listing = list_backups(temp_dir / "does-not-exist")

    assert listing.folders == []
    assert len(listing.warnings) == 1


def test_catalog_flags_invalid_metadata(backup_root, source_tree):
    result = run_backup(BackupConfig(destination=backup_root), [str(source_tree["report"])], today=TODAY)
    metadata_path_for(result.archives[0].path).write_text("[]", encoding="utf-8")

    archive = list_backups(backup_root).folders[0].archives[0]

    assert not archive.has_valid_metadata
    assert archive.metadata.error == "not a JSON object"


# ============================================================================
# Restore
# ============================================================================

def test_round_trip_to_destination_preserves_bytes(backup_root, source_tree, temp_dir):
    run_backup(
        BackupConfig(destination=backup_root),
        [str(source_tree["report"]), str(source_tree["project"])],
        today=TODAY,
    )
    destination = temp_dir / "restore"

    result = restore_backups(backup_root, destination=destination)

    assert result.date_folder == "2024-11-23"
    assert result.failed_count == 0
    assert (destination / "report.txt").read_bytes() == source_tree["report"].read_bytes()
    assert (destination / "project" / "main.py").read_bytes() == source_tree["main"].read_bytes()
    assert (destination / "project" / "lib" / "util.py").read_bytes() == source_tree["util"].read_bytes()
    assert (destination / "project" / "empty").is_dir()


def test_restore_without_structure_flattens(backup_root, source_tree, temp_dir):
    run_backup(BackupConfig(destination=backup_root), [str(source_tree["project"])], today=TODAY)
    destination = temp_dir / "flat"

    restore_backups(backup_root, destination=destination, preserve_structure=False)

    assert sorted(path.name for path in destination.iterdir()) == ["main.py", "util.py"]


def test_blocked_directory_does_not_stop_rest_of_archive(backup_root, source_tree, temp_dir):
    config = create_config(backup_root, mode="combined")
    run_backup(config, [str(source_tree["project"]), str(source_tree["report"])], today=TODAY)
    destination = temp_dir / "restore"
    blocker = write_file(destination / "project", b"a file where a folder belongs")

    result = restore_backups(backup_root, destination=destination)

    assert blocker.read_bytes() == b"a file where a folder belongs"
    assert (destination / "report.txt").read_bytes() == source_tree["report"].read_bytes()
    assert result.restored_count == 1
    assert result.failed_count >= 1
    assert str(destination / "project") in result.failed_paths


def test_restore_filters_by_name_and_date(backup_root, source_tree, temp_dir):
    config = BackupConfig(destination=backup_root)
    run_backup(config, [str(source_tree["notes"])], today=TODAY - timedelta(days=3))
    run_backup(config, [str(source_tree["report"]), str(source_tree["project"])], today=TODAY)
    destination = temp_dir / "restore"

    result = restore_backups(
        backup_root,
        RestoreSelection(date=TODAY, name_pattern="report*"),
        destination=destination,
    )
    assert result.archives == ["report.txt.zip"]
    assert sorted(path.name for path in destination.iterdir()) == ["report.txt"]

    older = restore_backups(backup_root, RestoreSelection(date="2024-11-20"), destination=destination)
    assert older.archives == ["notes.md.zip"]


def test_restore_without_matching_folder_raises(backup_root):
    with pytest.raises(RestoreError):
        restore_backups(backup_root, RestoreSelection(date="1999-12-31"))
    with pytest.raises(RestoreError):
        restore_backups(backup_root)


def test_restore_to_original_path(backup_root, temp_dir):
    """
    Original-path restore recreates the file (and its parents) at the
    recorded location, and skips it when it exists without force.
    """
    source = write_file(temp_dir / "a" / "b" / "c.txt", b"original content")
    run_backup(BackupConfig(destination=backup_root), [str(source)], today=TODAY)
    shutil.rmtree(temp_dir / "a")

    result = restore_backups(backup_root, use_original_paths=True)

    assert source.read_bytes() == b"original content"
    assert result.restored_paths == [str(source)]

    source.write_bytes(b"changed since backup")
    again = restore_backups(backup_root, use_original_paths=True)

    assert source.read_bytes() == b"changed since backup"
    assert again.skipped_count == 1
    assert again.restored_count == 0

    forced = restore_backups(backup_root, use_original_paths=True, force=True)

    assert source.read_bytes() == b"original content"
    assert forced.restored_count == 1


def test_restore_combined_archive_to_original_paths(backup_root, temp_dir):
    files = [write_file(temp_dir / f"dir{i}" / "data.txt", f"payload {i}".encode()) for i in range(4)]
    run_backup(BackupConfig(destination=backup_root), [str(path) for path in files], today=TODAY)
    for path in files:
        path.unlink()

    result = restore_backups(backup_root, use_original_paths=True)

    assert result.restored_count == 4
    for i, path in enumerate(files):
        assert path.read_bytes() == f"payload {i}".encode()


def test_restore_directory_to_original_path(backup_root, source_tree):
    run_backup(BackupConfig(destination=backup_root), [str(source_tree["project"])], today=TODAY)
    shutil.rmtree(source_tree["project"])

    restore_backups(backup_root, use_original_paths=True)

    assert source_tree["util"].read_bytes() == b"def util():\n    return 42\n"
    assert (source_tree["project"] / "empty").is_dir()


def test_original_path_restore_skips_archive_without_metadata(backup_root, source_tree, temp_dir):
    result = run_backup(
        BackupConfig(destination=backup_root),
        [str(source_tree["report"]), str(source_tree["notes"])],
        today=TODAY,
    )
    by_name = {record.path.name: record for record in result.archives}
    metadata_path_for(by_name["report.txt.zip"].path).unlink()
    source_tree["report"].unlink()
    source_tree["notes"].unlink()

    restored = restore_backups(backup_root, use_original_paths=True)

    assert not source_tree["report"].exists()
    assert source_tree["notes"].exists()
    assert restored.skipped_count == 1
    assert any("report.txt.zip" in error for error in restored.errors)


# ============================================================================
# Verification and explicit removal
# ============================================================================

def test_verify_backups_reports_source_drift(backup_root, source_tree):
    run_backup(
        BackupConfig(destination=backup_root),
        [str(source_tree["report"]), str(source_tree["notes"]), str(source_tree["project"])],
        today=TODAY,
    )
    source_tree["report"].write_bytes(b"edited after backup")
    source_tree["notes"].unlink()

    results = {result.archive.name: result for result in verify_backups(backup_root, verify_source=True)}

    assert all(result.ok for result in results.values())
    assert results["report.txt.zip"].source_drift is True
    assert results["report.txt.zip"].drifted_sources == [str(source_tree["report"])]
    assert results["project.zip"].source_drift is False
    assert results["notes.md.zip"].source_checked is False
    assert results["notes.md.zip"].unreachable_sources == [str(source_tree["notes"])]


def test_directory_drift_detected(backup_root, source_tree):
    run_backup(BackupConfig(destination=backup_root), [str(source_tree["project"])], today=TODAY)
    write_file(source_tree["project"] / "new.txt", b"added later")

    (result,) = verify_backups(backup_root, verify_source=True)

    assert result.ok
    assert result.source_drift is True


def test_verify_reports_invalid_metadata(backup_root, source_tree):
    backup = run_backup(BackupConfig(destination=backup_root), [str(source_tree["report"])], today=TODAY)
    metadata_path_for(backup.archives[0].path).unlink()

    (result,) = verify_backups(backup_root)

    assert not result.ok
    assert "missing" in result.reason


def test_verify_single_archive_file(backup_root, source_tree):
    backup = run_backup(BackupConfig(destination=backup_root), [str(source_tree["notes"])], today=TODAY)
    archive_path = backup.archives[0].path

    result = verify_archive_file(archive_path, verify_source=True)

    assert result.ok
    assert result.expected_hash == result.actual_hash == backup.archives[0].content_hash
    assert result.source_drift is False


def test_remove_date_folder(backup_root):
    make_date_folders(backup_root, [date(2024, 1, 1), date(2024, 1, 2)])

    outcome = remove_date_folder(backup_root, date(2024, 1, 1))

    assert outcome.removed
    assert date_folder_names(backup_root) == ["2024-01-02"]
    with pytest.raises(RetentionError):
        remove_date_folder(backup_root, "2024-01-01")
    with pytest.raises(RetentionError):
        remove_date_folder(backup_root, "not-a-date")
