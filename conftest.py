import pytest

from fileupload.conf import UploadSettings
from fileupload.upload import FileUpload

JPEG_MIME = "image/jpeg; charset=binary"


@pytest.fixture
def upload_settings():
    """Built-in defaults and messages, independent of Django settings."""
    return UploadSettings()


@pytest.fixture
def save_dir(tmp_path):
    """An empty, writable destination directory."""
    path = tmp_path / "out"
    path.mkdir()
    return path


@pytest.fixture
def staged_file(tmp_path):
    """A 2KB file standing in for a staged upload."""
    path = tmp_path / "tmpA1b2C3.upload"
    path.write_bytes(b"x" * 2048)
    return path


@pytest.fixture
def make_upload(staged_file, upload_settings):
    """Build a FileUpload for staged_file from an explicit descriptor.

    The MIME detector is stubbed to return ``mime``.
    """

    def make(config=None, name="photo.jpg", mime=JPEG_MIME, **kwargs):
        source = {"temp_path": staged_file, "original_name": name}
        kwargs.setdefault("settings", upload_settings)
        kwargs.setdefault("mime_detector", lambda path: mime)
        return FileUpload(source, config, **kwargs)

    return make
