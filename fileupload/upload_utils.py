"""
Utility functions for common upload handling in views.
"""

from __future__ import annotations

import datetime
import logging
import os
from collections.abc import Callable
from pathlib import Path

from django.conf import settings
from django.utils import timezone

from .fileutils import hash_file, remove_file
from .upload import FileUpload

logger = logging.getLogger(__name__)


def save_upload(uploaded_file, save_dir=None, **config) -> FileUpload:
    """
    Validate a Django UploadedFile and move it into save_dir.

    Usage:
        upload = save_upload(request.FILES["avatar"], "/srv/avatars", sizeLimit="-2M")
        if upload.error_code:
            return HttpResponseBadRequest(upload.error_message)

    Args:
        uploaded_file: The uploaded file from request.FILES or a form
        save_dir: Destination directory, overrides a saveDir in config
        **config: Upload options, e.g. allowExt="jpg,png"

    Returns:
        The FileUpload, saved or carrying the error that stopped it
    """
    upload = FileUpload.from_uploaded_file(uploaded_file, config)
    try:
        upload.save(save_dir)
    finally:
        upload.staged.cleanup()
    return upload


def content_hash_name(upload: FileUpload) -> str:
    """
    A saveName function naming the file after the SHA-1 of its contents.

    Identical uploads end up under the same name, so combine it with
    overwrite=True to deduplicate.
    """
    return hash_file(upload.temp_path)


def dated_upload_dir(base_path) -> Callable[[FileUpload], str]:
    """
    Build a saveDir function returning base_path/YYYY/MM/DD for today.

    Missing directories are created when the function runs.
    """

    def resolve(upload: FileUpload) -> str:
        today = timezone.localdate() if settings.USE_TZ else datetime.date.today()
        path = Path(base_path) / f"{today:%Y}" / f"{today:%m}" / f"{today:%d}"
        path.mkdir(parents=True, exist_ok=True)
        logger.debug(f"Upload {upload} goes to {path}")
        return os.fspath(path)

    return resolve


def cleanup_failed_upload(file_path: str | Path) -> bool:
    """
    Clean up a file after a failed upload or processing.

    Args:
        file_path: Path to the file to clean up

    Returns:
        True if the file was deleted, False if it didn't exist
    """
    try:
        return remove_file(file_path)
    except OSError as e:
        logger.warning(f"Could not clean up {file_path}: {e}")
        return False
