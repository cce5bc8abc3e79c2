"""
Tests for upload utility functions.
"""

import datetime
from unittest.mock import patch

import pytest
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import override_settings
from django.utils import timezone

from fileupload.exceptions import UploadErrorCode
from fileupload.upload_utils import cleanup_failed_upload, content_hash_name, dated_upload_dir, save_upload


@pytest.fixture
def simple_uploaded_file():
    """Create a simple uploaded file for testing."""
    return SimpleUploadedFile("test.txt", b"foobar\n", content_type="text/plain")


@pytest.fixture(autouse=True)
def text_mime():
    with patch("fileupload.fileutils.get_mime", return_value="text/plain; charset=us-ascii") as mock_get_mime:
        yield mock_get_mime


class TestSaveUpload:
    def test_saves_file(self, simple_uploaded_file, save_dir):
        upload = save_upload(simple_uploaded_file, str(save_dir), allowExt="txt")

        assert upload.error_code == 0
        assert upload.destination == str(save_dir / "test.txt")
        assert (save_dir / "test.txt").read_bytes() == b"foobar\n"

    def test_save_dir_from_config(self, simple_uploaded_file, save_dir):
        upload = save_upload(simple_uploaded_file, saveDir=save_dir)
        assert upload.destination == str(save_dir / "test.txt")

    def test_rejected_file(self, simple_uploaded_file, save_dir):
        upload = save_upload(simple_uploaded_file, save_dir, allowExt="pdf")

        assert upload.error_code == UploadErrorCode.EXT_DENIED
        assert upload.destination is None
        assert list(save_dir.iterdir()) == []

    def test_spooled_file_is_cleaned_up(self, simple_uploaded_file, save_dir):
        upload = save_upload(simple_uploaded_file, save_dir, allowExt="pdf")
        assert not upload.staged.is_uploaded_file(upload.temp_path)

    def test_content_hash_name(self, simple_uploaded_file, save_dir):
        upload = save_upload(simple_uploaded_file, save_dir, saveName=content_hash_name)
        assert upload.destination == str(save_dir / "TCEIDLOJ7Q3FKB35YLKNOV6UQC26UDQR.txt")

    def test_content_hash_name_deduplicates_with_overwrite(self, save_dir):
        first = SimpleUploadedFile("a.txt", b"foobar\n")
        second = SimpleUploadedFile("b.txt", b"foobar\n")

        save_upload(first, save_dir, saveName=content_hash_name, overwrite=True)
        save_upload(second, save_dir, saveName=content_hash_name, overwrite=True)

        assert [path.name for path in save_dir.iterdir()] == ["TCEIDLOJ7Q3FKB35YLKNOV6UQC26UDQR.txt"]


class TestDatedUploadDir:
    def test_creates_dated_directory(self, simple_uploaded_file, tmp_path):
        base = tmp_path / "uploads"
        upload = save_upload(simple_uploaded_file, saveDir=dated_upload_dir(base))

        today = timezone.localdate()
        expected = base / f"{today:%Y}" / f"{today:%m}" / f"{today:%d}" / "test.txt"
        assert upload.destination == str(expected)
        assert expected.read_bytes() == b"foobar\n"

    @override_settings(USE_TZ=False)
    def test_without_time_zone_support(self, simple_uploaded_file, tmp_path):
        with patch("fileupload.upload_utils.datetime") as mock_datetime:
            mock_datetime.date.today.return_value = datetime.date(2024, 2, 29)
            upload = save_upload(simple_uploaded_file, saveDir=dated_upload_dir(tmp_path))

        assert upload.destination == str(tmp_path / "2024" / "02" / "29" / "test.txt")


class TestCleanupFailedUpload:
    def test_removes_file(self, tmp_path):
        path = tmp_path / "failed.txt"
        path.write_text("partial")

        assert cleanup_failed_upload(path) is True
        assert not path.exists()

    def test_missing_file(self, tmp_path):
        assert cleanup_failed_upload(str(tmp_path / "missing.txt")) is False

    def test_unremovable_file(self, tmp_path):
        with patch("fileupload.fileutils.Path.unlink", side_effect=PermissionError("read-only")):
            assert cleanup_failed_upload(tmp_path / "locked.txt") is False
