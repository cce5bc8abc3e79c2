"""
Upload descriptors and the registry of files staged by the current request.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from dataclasses import dataclass
from enum import IntEnum
from pathlib import Path

from django.conf import settings
from django.core.files.uploadedfile import TemporaryUploadedFile, UploadedFile

from . import fileutils

logger = logging.getLogger(__name__)


class TransportStatus(IntEnum):
    """Outcome reported by the upload mechanism for a single file."""

    OK = 0
    INI_SIZE = 1
    FORM_SIZE = 2
    PARTIAL = 3
    NO_FILE = 4
    NO_TMP_DIR = 5
    CANT_WRITE = 6
    EXTENSION = 7


def split_extension(name: str) -> tuple[str, str]:
    """
    Split a file name into its stem and its extension without the dot.

    The extension is whatever follows the last dot of the base name, so a
    dot-file like ".htaccess" has an empty stem and the extension "htaccess".
    """
    if "." not in os.path.basename(name):
        return name, ""
    stem, _, ext = name.rpartition(".")
    return stem, ext


@dataclass(frozen=True)
class UploadDescriptor:
    """Snapshot of an uploaded file as handed over by the transport."""

    temp_path: str
    original_name: str = ""
    size_bytes: int = 0
    transport_status: TransportStatus = TransportStatus.OK

    @property
    def stem(self) -> str:
        return split_extension(self.original_name)[0]

    @property
    def extension(self) -> str:
        return split_extension(self.original_name)[1]

    @classmethod
    def from_mapping(cls, data) -> UploadDescriptor:
        """
        Build a descriptor from a mapping with at least a temp_path.

        original_name defaults to the base name of the temp file and
        size_bytes to its actual size. A temp path that is not a readable
        file yields a NO_FILE transport status.

        Raises:
            ValueError: If temp_path is missing or empty
        """
        temp_path = data.get("temp_path")
        if not temp_path:
            raise ValueError("descriptor requires a temp_path")
        temp_path = os.fspath(temp_path)
        status = TransportStatus(int(data.get("transport_status") or TransportStatus.OK))
        name = data.get("original_name") or ""
        size = int(data.get("size_bytes") or 0)

        if not fileutils.is_readable_file(temp_path):
            status = TransportStatus.NO_FILE
        elif status == TransportStatus.OK:
            name = name or Path(temp_path).name
            size = size or Path(temp_path).stat().st_size

        return cls(temp_path=temp_path, original_name=name, size_bytes=size, transport_status=status)


class StagedUploads:
    """
    The files staged by one request, looked up by form field name.

    Wraps request.FILES. A TemporaryUploadedFile is used in place; an
    in-memory upload is spooled to a temporary file the first time it is
    looked up. Only paths handed out by this registry count as genuine
    uploads for is_uploaded_file().

    Usage:
        with StagedUploads.from_request(request) as staged:
            upload = FileUpload("avatar", {"saveDir": "/srv/avatars"}, files=staged)
            upload.save()
    """

    def __init__(self, files, temp_dir: str | None = None):
        self._files = files
        self._temp_dir = temp_dir
        self._descriptors: dict[str, UploadDescriptor] = {}
        self._staged: set[str] = set()
        self._spooled: set[str] = set()

    @classmethod
    def from_request(cls, request) -> StagedUploads:
        return cls(request.FILES)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.cleanup()

    def __contains__(self, key) -> bool:
        return key in self._files

    def descriptor(self, key: str) -> UploadDescriptor | None:
        """Return the descriptor for the file posted under key, or None."""
        if key in self._descriptors:
            return self._descriptors[key]

        uploaded_file = self._files.get(key)
        if uploaded_file is None:
            return None

        descriptor = self._stage(uploaded_file)
        self._descriptors[key] = descriptor
        return descriptor

    def _stage(self, uploaded_file: UploadedFile) -> UploadDescriptor:
        name = uploaded_file.name or ""
        size = uploaded_file.size or 0

        if isinstance(uploaded_file, TemporaryUploadedFile):
            temp_path = uploaded_file.temporary_file_path()
        else:
            temp_dir = self._temp_dir or settings.FILE_UPLOAD_TEMP_DIR or tempfile.gettempdir()
            if not os.path.isdir(temp_dir):
                logger.error(f"Upload temp dir {temp_dir!r} does not exist")
                return UploadDescriptor("", name, size, TransportStatus.NO_TMP_DIR)
            try:
                with tempfile.NamedTemporaryFile(dir=temp_dir, suffix=".upload", delete=False) as f:
                    temp_path = f.name
                    for chunk in uploaded_file.chunks():
                        f.write(chunk)
            except OSError as e:
                logger.error(f"Failed to spool upload {name!r} to {temp_dir!r}: {e}")
                return UploadDescriptor("", name, size, TransportStatus.CANT_WRITE)
            self._spooled.add(temp_path)
            logger.debug(f"Spooled in-memory upload {name!r} to {temp_path!r}")

        self._staged.add(os.path.realpath(temp_path))
        return UploadDescriptor(temp_path, name, size, TransportStatus.OK)

    def is_uploaded_file(self, path) -> bool:
        """True if path is a file this registry staged and has not moved yet."""
        return bool(path) and os.path.realpath(path) in self._staged and os.path.isfile(path)

    def move_uploaded_file(self, path, destination) -> bool:
        """Move a staged upload to destination. Refuses anything not staged here."""
        if not self.is_uploaded_file(path):
            logger.warning(f"Refusing to move {path!r}, it is not a staged upload")
            return False
        try:
            shutil.move(path, destination)
        except OSError as e:
            logger.debug(f"Moving staged upload {path!r} to {destination!r} failed: {e}")
            return False
        self._staged.discard(os.path.realpath(path))
        self._spooled.discard(path)
        return True

    def cleanup(self) -> None:
        """Remove temporary files this registry spooled and that are still around."""
        for path in list(self._spooled):
            if fileutils.remove_file(path):
                logger.debug(f"Removed spooled upload {path!r}")
            self._spooled.discard(path)
            self._staged.discard(os.path.realpath(path))
