import os
import stat
from pathlib import Path

import pytest

from backup_restore.core.files import FileRestorer
from backup_restore.core.permissions import PermissionFixer
from backup_restore.models.entities import ExtractedTree


def make_tree(root: Path, files: dict) -> ExtractedTree:
    for relative, content in files.items():
        path = root / "var/www/html" / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
    return ExtractedTree(root=root, archive_path="backup.zip")


@pytest.fixture
def tree(tmp_path):
    return make_tree(tmp_path / "tree", {
        "public/uploads/avatar.txt": "new avatar",
        "public/uploads/nested/doc.txt": "new doc",
        "storage/app/reports/report.txt": "new report",
    })


def only_uploads(make_settings, **files_overrides):
    return make_settings(files={"mappings": {"public/uploads": "public/uploads"}, **files_overrides})


def test_missing_sources_are_skipped(settings, tree, app_root):
    result = FileRestorer(settings).restore(tree)

    # public/download and storage/plugins are absent from the backup
    assert result.restored == 2
    assert result.skipped == 2
    assert result.failed == 0
    assert result.success
    assert (app_root / "public/uploads/nested/doc.txt").read_text() == "new doc"
    assert (app_root / "storage/app/reports/report.txt").read_text() == "new report"
    assert not (app_root / "public/download").exists()


def test_skipped_mappings_do_not_change_counts(make_settings, tree):
    settings = make_settings(files={"mappings": {
        "public/uploads": "public/uploads",
        "not/in/backup": "somewhere",
    }})

    result = FileRestorer(settings).restore(tree)

    assert (result.restored, result.failed, result.skipped) == (1, 0, 1)


def test_merge_is_additive(make_settings, tree, app_root):
    destination = app_root / "public/uploads"
    destination.mkdir(parents=True)
    (destination / "avatar.txt").write_text("old avatar")
    (destination / "local-only.txt").write_text("keep me")

    FileRestorer(only_uploads(make_settings, backup_existing_files=False)).restore(tree)

    assert (destination / "avatar.txt").read_text() == "new avatar"
    assert (destination / "local-only.txt").read_text() == "keep me"
    assert (destination / "nested/doc.txt").read_text() == "new doc"


def test_existing_destination_is_snapshotted(make_settings, tree, app_root):
    destination = app_root / "public/uploads"
    destination.mkdir(parents=True)
    (destination / "avatar.txt").write_text("old avatar")

    result = FileRestorer(only_uploads(make_settings)).restore(tree)

    assert len(result.snapshots) == 1
    snapshot = Path(result.snapshots[0])
    assert snapshot.name.startswith("uploads_backup_")
    assert (snapshot / "avatar.txt").read_text() == "old avatar"


def test_repeated_restores_keep_separate_snapshots(make_settings, tree, app_root):
    destination = app_root / "public/uploads"
    destination.mkdir(parents=True)
    (destination / "avatar.txt").write_text("old avatar")
    restorer = FileRestorer(only_uploads(make_settings))

    first = restorer.restore(tree)
    second = restorer.restore(tree)

    assert first.failed == second.failed == 0
    assert first.snapshots != second.snapshots
    assert len(list(destination.parent.glob("uploads_backup_*"))) == 2


def test_no_snapshot_for_new_destination(make_settings, tree):
    result = FileRestorer(only_uploads(make_settings)).restore(tree)

    assert result.snapshots == []


def test_overwrite_disabled_keeps_existing_files(make_settings, tree, app_root):
    destination = app_root / "public/uploads"
    destination.mkdir(parents=True)
    (destination / "avatar.txt").write_text("old avatar")

    settings = only_uploads(make_settings, overwrite_existing=False, backup_existing_files=False)
    result = FileRestorer(settings).restore(tree)

    assert (destination / "avatar.txt").read_text() == "old avatar"
    assert (destination / "nested/doc.txt").read_text() == "new doc"
    assert result.files_copied == 1


def test_failing_mapping_does_not_stop_others(settings, tree, app_root, monkeypatch):
    original_merge = FileRestorer.merge_tree

    def merge(self, source, destination):
        if source.name == "uploads":
            raise PermissionError("read-only destination")
        return original_merge(self, source, destination)

    monkeypatch.setattr(FileRestorer, "merge_tree", merge)

    result = FileRestorer(settings).restore(tree)

    assert result.failed == 1
    assert result.restored == 1
    assert not result.success
    assert "public/uploads" in result.errors[0]
    assert (app_root / "storage/app/reports/report.txt").exists()


def fail_scandir_for(monkeypatch, locked: Path):
    original_scandir = os.scandir

    def scandir(path=".", *args):
        if os.fspath(path) == str(locked):
            raise PermissionError(13, "Permission denied", str(locked))
        return original_scandir(path, *args)

    monkeypatch.setattr(os, "scandir", scandir)


def test_unreadable_source_subdirectory_fails_mapping(make_settings, tree, monkeypatch):
    fail_scandir_for(monkeypatch, tree.root / "var/www/html/public/uploads/nested")

    result = FileRestorer(only_uploads(make_settings)).restore(tree)

    assert result.restored == 0
    assert result.failed == 1
    assert "Permission denied" in result.errors[0]


def test_missing_destination_without_create_directories_fails(make_settings, tree):
    settings = only_uploads(make_settings, create_directories=False)

    result = FileRestorer(settings).restore(tree)

    assert result.failed == 1


@pytest.mark.skipif(os.name == "nt", reason="POSIX permission bits")
class TestPermissionFixer:

    def test_modes_applied_recursively(self, make_settings, app_root):
        uploads = app_root / "public/uploads"
        (uploads / "nested").mkdir(parents=True)
        (uploads / "nested/doc.txt").write_text("doc")
        os.chmod(uploads / "nested", 0o700)
        os.chmod(uploads / "nested/doc.txt", 0o600)
        settings = make_settings(permissions={"directories": "0775", "files": "0664"})

        warnings = PermissionFixer(settings).fix()

        assert warnings == []
        assert stat.S_IMODE(uploads.stat().st_mode) == 0o775
        assert stat.S_IMODE((uploads / "nested").stat().st_mode) == 0o775
        assert stat.S_IMODE((uploads / "nested/doc.txt").stat().st_mode) == 0o664

    def test_missing_directories_are_skipped(self, settings):
        assert PermissionFixer(settings).fix() == []

    def test_chmod_errors_become_warnings(self, settings, app_root, monkeypatch):
        (app_root / "storage/app").mkdir(parents=True)

        def deny(path, mode):
            raise PermissionError("operation not permitted")

        monkeypatch.setattr(os, "chmod", deny)

        warnings = PermissionFixer(settings).fix()

        assert len(warnings) == 1
        assert "Failed to set permissions" in warnings[0]

    def test_unreadable_subdirectory_becomes_warning(self, settings, app_root, monkeypatch):
        (app_root / "storage/app/logs").mkdir(parents=True)
        fail_scandir_for(monkeypatch, app_root / "storage/app/logs")

        warnings = PermissionFixer(settings).fix()

        assert len(warnings) == 1
        assert "Failed to set permissions" in warnings[0]
        assert "Permission denied" in warnings[0]
