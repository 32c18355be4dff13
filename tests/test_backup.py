"""Tests for backup.py — single-file backup outcomes."""
import os
from datetime import datetime, timezone
from unittest.mock import patch

import pytest

from backup import backup_file, extract_file_name
from directories import DirectoryManager
from exif_reader import DateResolver, FilesystemTimeStrategy
from models import (
    AlreadyArchived,
    ArchivedButDifferent,
    Copied,
    CopyFailed,
    FatalBackupError,
    InvalidName,
    Provenance,
)
from tests.conftest import exif_tags, make_file, set_mtime

MTIME = datetime(2021, 5, 6, 12, 0, 0, tzinfo=timezone.utc)


def _backup(root, source, dry_run=False, directories=None):
    """Back up with filesystem dates only, so no metadata reader is involved."""
    return backup_file(
        root,
        source,
        directories or DirectoryManager(dry_run=dry_run),
        DateResolver([FilesystemTimeStrategy()]),
        dry_run=dry_run,
    )


# ── extract_file_name ─────────────────────────────────────────────────────────

class TestExtractFileName:
    def test_plain_name(self):
        assert extract_file_name("/pictures/IMG_0042.JPG") == "IMG_0042.JPG"

    def test_relative_name(self):
        assert extract_file_name("IMG_0042.JPG") == "IMG_0042.JPG"

    def test_name_with_spaces(self):
        assert extract_file_name("/pictures/Summer 2023 .jpg") == "Summer 2023 .jpg"

    @pytest.mark.parametrize("path", ["", "/", "/pictures/", "pictures/..", ".", "/pictures/."])
    def test_no_usable_name(self, path):
        assert extract_file_name(path) is None


# ── backup_file ───────────────────────────────────────────────────────────────

class TestBackupFile:
    def test_copies_into_dated_directory(self, src, root):
        f = set_mtime(make_file(src / "photo.jpg", b"picture bytes"), MTIME)
        outcome = _backup(root, f)
        dest = root / "2021" / "05" / "06" / "photo.jpg"
        assert outcome == Copied(str(f), str(dest), Provenance.FILESYSTEM)
        assert dest.read_bytes() == b"picture bytes"

    def test_source_left_untouched(self, src, root):
        f = set_mtime(make_file(src / "photo.jpg", b"picture bytes"), MTIME)
        _backup(root, f)
        assert f.read_bytes() == b"picture bytes"

    def test_embedded_date_routes_the_copy(self, src, root):
        f = make_file(src / "IMG_0001.JPG", b"jpeg")
        with patch("exif_reader.exifread.process_file", return_value=exif_tags("2023:07:04 10:00:00")), \
             patch("exif_reader.read_create_date", return_value=None):
            outcome = backup_file(root, str(f), DirectoryManager(), DateResolver())
        dest = root / "2023" / "07" / "04" / "IMG_0001.JPG"
        assert outcome == Copied(str(f), str(dest), Provenance.EMBEDDED_METADATA)
        assert dest.is_file()

    def test_second_backup_is_already_archived(self, src, root):
        f = set_mtime(make_file(src / "photo.jpg", b"picture bytes"), MTIME)
        first = _backup(root, f)
        second = _backup(root, f)
        dest = root / "2021" / "05" / "06" / "photo.jpg"
        assert isinstance(first, Copied)
        assert second == AlreadyArchived(str(f), str(dest))
        assert dest.read_bytes() == b"picture bytes"

    def test_same_name_different_size_not_overwritten(self, src, root):
        f = set_mtime(make_file(src / "photo.jpg", b"new picture"), MTIME)
        dest = make_file(root / "2021" / "05" / "06" / "photo.jpg", b"old")
        outcome = _backup(root, f)
        assert outcome == ArchivedButDifferent(str(f), str(dest))
        assert dest.read_bytes() == b"old"

    def test_same_size_different_content_reported_as_duplicate(self, src, root):
        f = set_mtime(make_file(src / "photo.jpg", b"AAAA"), MTIME)
        dest = make_file(root / "2021" / "05" / "06" / "photo.jpg", b"BBBB")
        assert isinstance(_backup(root, f), AlreadyArchived)
        assert dest.read_bytes() == b"BBBB"

    def test_missing_source_is_copy_failure(self, src, root):
        outcome = _backup(root, src / "missing.jpg")
        assert isinstance(outcome, CopyFailed)
        assert outcome.source_path == str(src / "missing.jpg")
        assert list(root.iterdir()) == []

    def test_copy_error_is_copy_failure(self, src, root):
        f = set_mtime(make_file(src / "photo.jpg"), MTIME)
        with patch("backup.copy_file", side_effect=OSError("disk full")):
            outcome = _backup(root, f)
        assert isinstance(outcome, CopyFailed)
        assert "disk full" in outcome.reason

    def test_failed_chmod_is_retried_on_next_run(self, src, root):
        f = set_mtime(make_file(src / "photo.jpg"), MTIME)
        with patch("copier.shutil.copymode", side_effect=PermissionError("Operation not permitted")):
            first = _backup(root, f)
        assert isinstance(first, CopyFailed)
        assert not (root / "2021" / "05" / "06" / "photo.jpg").exists()
        assert isinstance(_backup(root, f), Copied)

    def test_destination_directory_in_the_way_is_copy_failure(self, src, root):
        f = set_mtime(make_file(src / "photo.jpg"), MTIME)
        (root / "2021" / "05" / "06" / "photo.jpg").mkdir(parents=True)
        assert isinstance(_backup(root, f), CopyFailed)

    def test_lost_race_falls_back_to_comparison(self, src, root):
        f = set_mtime(make_file(src / "photo.jpg", b"same"), MTIME)
        dest = root / "2021" / "05" / "06" / "photo.jpg"

        def racing_copy(handle, dest_path):
            make_file(dest_path, b"same")
            raise FileExistsError(dest_path)

        with patch("backup.copy_file", side_effect=racing_copy):
            outcome = _backup(root, f)
        assert outcome == AlreadyArchived(str(f), str(dest))

    def test_unreadable_target_metadata_is_copy_failure(self, src, root):
        f = set_mtime(make_file(src / "photo.jpg"), MTIME)
        make_file(root / "2021" / "05" / "06" / "photo.jpg")
        with patch("backup.is_same_file", side_effect=PermissionError("denied")):
            outcome = _backup(root, f)
        assert isinstance(outcome, CopyFailed)
        assert "denied" in outcome.reason

    def test_path_ending_in_separator_is_invalid_name(self, src, root):
        album = src / "album"
        album.mkdir()
        outcome = _backup(root, str(album) + os.sep)
        assert outcome == InvalidName(str(album) + os.sep)
        assert list(root.iterdir()) == []

    def test_blocked_backup_directory_is_fatal(self, src, root):
        f = set_mtime(make_file(src / "photo.jpg"), MTIME)
        make_file(root / "2021" / "05" / "06", b"not a directory")
        with pytest.raises(FatalBackupError):
            _backup(root, f)

    def test_dry_run_copies_nothing(self, src, root):
        f = set_mtime(make_file(src / "photo.jpg"), MTIME)
        outcome = _backup(root, f, dry_run=True)
        assert isinstance(outcome, Copied)
        assert outcome.destination_path == str(root / "2021" / "05" / "06" / "photo.jpg")
        assert list(root.iterdir()) == []
