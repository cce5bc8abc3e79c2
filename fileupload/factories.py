"""Factory definitions for upload descriptors and test files."""

import contextlib
import tempfile
from pathlib import Path

import factory
from PIL import Image

from fileupload.descriptor import TransportStatus, UploadDescriptor


@contextlib.contextmanager
def temporary_test_file(content=b"Test content", suffix=".txt"):
    """Context manager for creating temporary test files."""
    with tempfile.NamedTemporaryFile(mode="wb", suffix=suffix, delete=False) as f:
        f.write(content)
        temp_path = f.name

    try:
        yield temp_path
    finally:
        with contextlib.suppress(FileNotFoundError):
            Path(temp_path).unlink()


def create_test_image_file(filepath, width=200, height=150, color="blue", format="PNG"):
    """Create a test image file at the given path."""
    img = Image.new("RGB", (width, height), color=color)
    img.save(filepath, format)
    return filepath


def write_temp_file(content: bytes, directory=None) -> str:
    with tempfile.NamedTemporaryFile(mode="wb", suffix=".upload", dir=directory, delete=False) as f:
        f.write(content)
        return f.name


class UploadDescriptorFactory(factory.Factory):
    """Factory for UploadDescriptor backed by a real temporary file.

    The temporary file is not removed automatically; pass temp_dir pointing at
    a pytest tmp_path to keep tests clean.

    Usage examples:
        # A 2KB "photo.jpg"
        descriptor = UploadDescriptorFactory(original_name="photo.jpg", temp_dir=tmp_path)

        # Custom content, size follows it
        descriptor = UploadDescriptorFactory(content=b"%PDF-1.4", temp_dir=tmp_path)
    """

    class Meta:
        model = UploadDescriptor

    class Params:
        content = b"x" * 2048
        temp_dir = None

    temp_path = factory.LazyAttribute(lambda o: write_temp_file(o.content, o.temp_dir))
    original_name = factory.Faker("file_name", extension="jpg")
    size_bytes = factory.LazyAttribute(lambda o: len(o.content))
    transport_status = TransportStatus.OK
