"""
Tests for upload descriptors and the staged uploads registry.
"""

import os
from unittest.mock import patch

import pytest
from django.core.files.uploadedfile import SimpleUploadedFile, TemporaryUploadedFile
from django.utils.datastructures import MultiValueDict

from fileupload.descriptor import StagedUploads, TransportStatus, UploadDescriptor, split_extension
from fileupload.exceptions import TransportError, UploadErrorCode, ValidationFailed
from fileupload.upload import FileUpload


@pytest.fixture
def simple_uploaded_file():
    """Create a simple in-memory uploaded file for testing."""
    return SimpleUploadedFile("test.txt", b"test content", content_type="text/plain")


@pytest.fixture
def temp_uploaded_file():
    """Create a temporary uploaded file for testing."""
    file = TemporaryUploadedFile(name="temp_test.txt", content_type="text/plain", size=22, charset="utf-8")
    file.write(b"temporary file content")
    file.flush()
    yield file
    file.close()


@pytest.mark.parametrize(
    "name,expected",
    [
        ("photo.jpg", ("photo", "jpg")),
        ("archive.tar.gz", ("archive.tar", "gz")),
        ("README", ("README", "")),
        (".htaccess", ("", "htaccess")),
        ("backup.d/notes", ("backup.d/notes", "")),
        ("trailing.", ("trailing", "")),
        ("", ("", "")),
    ],
)
def test_split_extension(name, expected):
    assert split_extension(name) == expected


class TestFromMapping:
    def test_defaults(self, staged_file):
        descriptor = UploadDescriptor.from_mapping({"temp_path": staged_file})

        assert descriptor.temp_path == str(staged_file)
        assert descriptor.original_name == "tmpA1b2C3.upload"
        assert descriptor.size_bytes == 2048
        assert descriptor.transport_status is TransportStatus.OK

    def test_explicit_values_win(self, staged_file):
        descriptor = UploadDescriptor.from_mapping(
            {"temp_path": str(staged_file), "original_name": "cv.pdf", "size_bytes": 99}
        )
        assert descriptor.original_name == "cv.pdf"
        assert descriptor.size_bytes == 99
        assert descriptor.extension == "pdf"
        assert descriptor.stem == "cv"

    def test_unreadable_path_is_no_file(self, tmp_path):
        descriptor = UploadDescriptor.from_mapping({"temp_path": tmp_path})
        assert descriptor.transport_status is TransportStatus.NO_FILE

    def test_transport_status_is_kept(self, staged_file):
        descriptor = UploadDescriptor.from_mapping({"temp_path": staged_file, "transport_status": 2})
        assert descriptor.transport_status is TransportStatus.FORM_SIZE
        assert descriptor.original_name == ""

    def test_requires_temp_path(self):
        with pytest.raises(ValueError):
            UploadDescriptor.from_mapping({"original_name": "a.jpg"})

    def test_is_frozen(self, staged_file):
        descriptor = UploadDescriptor.from_mapping({"temp_path": staged_file})
        with pytest.raises(AttributeError):
            descriptor.size_bytes = 1


class TestStagedUploads:
    def test_in_memory_upload_is_spooled(self, simple_uploaded_file, tmp_path):
        staged = StagedUploads({"doc": simple_uploaded_file}, temp_dir=str(tmp_path))

        descriptor = staged.descriptor("doc")

        assert descriptor.original_name == "test.txt"
        assert descriptor.size_bytes == 12
        assert os.path.dirname(descriptor.temp_path) == str(tmp_path)
        with open(descriptor.temp_path, "rb") as f:
            assert f.read() == b"test content"
        assert staged.is_uploaded_file(descriptor.temp_path)
        # looked up once
        assert staged.descriptor("doc") is descriptor

    def test_temporary_upload_is_used_in_place(self, temp_uploaded_file):
        staged = StagedUploads(MultiValueDict({"doc": [temp_uploaded_file]}))

        descriptor = staged.descriptor("doc")

        assert descriptor.temp_path == temp_uploaded_file.temporary_file_path()
        assert descriptor.size_bytes == 22
        assert staged.is_uploaded_file(descriptor.temp_path)

    def test_missing_key(self, simple_uploaded_file):
        staged = StagedUploads({"doc": simple_uploaded_file})
        assert staged.descriptor("other") is None
        assert "doc" in staged
        assert "other" not in staged

    def test_foreign_paths_are_not_uploads(self, staged_file, tmp_path):
        staged = StagedUploads({})

        assert staged.is_uploaded_file(staged_file) is False
        assert staged.is_uploaded_file("") is False
        assert staged.move_uploaded_file(staged_file, tmp_path / "moved") is False
        assert staged_file.exists()

    def test_move_uploaded_file(self, simple_uploaded_file, tmp_path, save_dir):
        staged = StagedUploads({"doc": simple_uploaded_file}, temp_dir=str(tmp_path))
        descriptor = staged.descriptor("doc")

        assert staged.move_uploaded_file(descriptor.temp_path, save_dir / "doc.txt") is True
        assert (save_dir / "doc.txt").read_bytes() == b"test content"
        assert not os.path.exists(descriptor.temp_path)
        # a moved file is no longer a staged upload
        assert staged.is_uploaded_file(descriptor.temp_path) is False

    def test_cleanup_removes_spooled_files(self, simple_uploaded_file, tmp_path):
        with StagedUploads({"doc": simple_uploaded_file}, temp_dir=str(tmp_path)) as staged:
            temp_path = staged.descriptor("doc").temp_path
            assert os.path.exists(temp_path)

        assert not os.path.exists(temp_path)
        assert staged.is_uploaded_file(temp_path) is False

    def test_missing_temp_dir(self, simple_uploaded_file, tmp_path):
        staged = StagedUploads({"doc": simple_uploaded_file}, temp_dir=str(tmp_path / "missing"))
        assert staged.descriptor("doc").transport_status is TransportStatus.NO_TMP_DIR


class TestFileUploadFromRequestFiles:
    def test_save_moves_the_staged_upload(self, temp_uploaded_file, save_dir, upload_settings):
        files = MultiValueDict({"doc": [temp_uploaded_file]})
        upload = FileUpload(
            "doc",
            {"saveDir": save_dir},
            files=files,
            settings=upload_settings,
            mime_detector=lambda path: "text/plain; charset=us-ascii",
        )

        assert upload.config.check_is_uploaded is True
        assert upload.save() is True
        assert (save_dir / "temp_test.txt").read_bytes() == b"temporary file content"
        assert not os.path.exists(temp_uploaded_file.temporary_file_path())

    def test_in_memory_upload(self, simple_uploaded_file, save_dir, upload_settings):
        upload = FileUpload.from_uploaded_file(
            simple_uploaded_file,
            {"saveDir": save_dir, "allowExt": "txt"},
            settings=upload_settings,
            mime_detector=lambda path: "text/plain; charset=us-ascii",
        )

        assert upload.check() is True
        assert upload.save() is True
        assert (save_dir / "test.txt").read_bytes() == b"test content"

    def test_missing_field(self, simple_uploaded_file, upload_settings):
        upload = FileUpload("avatar", files={"doc": simple_uploaded_file}, settings=upload_settings)

        assert upload.error_code == UploadErrorCode.NO_FILE
        assert isinstance(upload.error, TransportError)

    def test_missing_temp_dir_is_a_transport_error(self, simple_uploaded_file, tmp_path, upload_settings):
        staged = StagedUploads({"doc": simple_uploaded_file}, temp_dir=str(tmp_path / "missing"))
        upload = FileUpload("doc", files=staged, settings=upload_settings)

        assert upload.error_code == UploadErrorCode.NO_TMP_DIR
        assert upload.error_message == "missing temporary folder"


class TestSpooledCopiesAreRemoved:
    @pytest.fixture
    def spool_dir(self, tmp_path, settings):
        path = tmp_path / "spool"
        path.mkdir()
        settings.FILE_UPLOAD_TEMP_DIR = str(path)
        return path

    def test_rejected_upload(self, spool_dir, upload_settings):
        files = {"doc": SimpleUploadedFile("a.exe", b"MZ")}
        upload = FileUpload(
            "doc",
            {"allowExt": "jpg"},
            files=files,
            settings=upload_settings,
            mime_detector=lambda path: "application/octet-stream",
        )
        assert list(spool_dir.iterdir()) != []

        assert upload.check() is False
        assert list(spool_dir.iterdir()) == []

    def test_rejected_upload_in_strict_mode(self, spool_dir, upload_settings):
        upload = FileUpload.from_uploaded_file(
            SimpleUploadedFile("a.exe", b"MZ"),
            {"allowExt": "jpg", "noThrow": False},
            settings=upload_settings,
            mime_detector=lambda path: "application/octet-stream",
        )

        with pytest.raises(ValidationFailed):
            upload.check()
        assert list(spool_dir.iterdir()) == []

    def test_saved_by_copy(self, spool_dir, save_dir, upload_settings):
        upload = FileUpload.from_uploaded_file(
            SimpleUploadedFile("notes.txt", b"hello"),
            {"saveDir": save_dir},
            settings=upload_settings,
            mime_detector=lambda path: "text/plain; charset=us-ascii",
        )

        with patch("fileupload.descriptor.shutil.move", side_effect=OSError("cross-device")):
            assert upload.save() is True

        assert (save_dir / "notes.txt").read_bytes() == b"hello"
        assert list(spool_dir.iterdir()) == []

    def test_checked_upload_keeps_its_copy(self, spool_dir, upload_settings):
        upload = FileUpload.from_uploaded_file(
            SimpleUploadedFile("notes.txt", b"hello"),
            settings=upload_settings,
            mime_detector=lambda path: "text/plain; charset=us-ascii",
        )

        assert upload.check() is True
        assert os.path.exists(upload.temp_path)

    def test_shared_registry_is_left_alone(self, spool_dir, upload_settings):
        with StagedUploads({"doc": SimpleUploadedFile("a.exe", b"MZ")}) as staged:
            upload = FileUpload(
                "doc",
                {"allowExt": "jpg"},
                files=staged,
                settings=upload_settings,
                mime_detector=lambda path: "application/octet-stream",
            )
            assert upload.check() is False
            assert os.path.exists(upload.temp_path)

        assert list(spool_dir.iterdir()) == []
