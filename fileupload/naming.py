"""
Final file name and destination directory resolution.

Names and directories are configured either as a literal string or as a
deferred callable. Deferred values are only invoked here, at relocation time,
with the FileUpload as the single argument.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .exceptions import FileUploadError, RelocationError, UploadErrorCode

if TYPE_CHECKING:
    from .upload import FileUpload

logger = logging.getLogger(__name__)

DISALLOWED_NAMES = {"", ".", ".."}


@dataclass(frozen=True)
class Literal:
    value: str


@dataclass(frozen=True)
class Deferred:
    func: Callable[[FileUpload], str]


NameOrDirValue = Literal | Deferred


def to_name_or_dir(value) -> NameOrDirValue:
    """Wrap a configured name or directory, raising ValueError if it is neither."""
    if isinstance(value, Literal | Deferred):
        return value
    if isinstance(value, os.PathLike):
        value = os.fspath(value)
    if isinstance(value, str):
        if not value:
            raise ValueError("empty value")
        return Literal(value)
    if callable(value):
        return Deferred(value)
    raise ValueError(f"expected a string or a callable, got {type(value).__name__}")


def raw_value(value: NameOrDirValue | None):
    """The value as it was configured: the string or the callable."""
    if value is None:
        return None
    if isinstance(value, Deferred):
        return value.func
    return value.value


def _resolve(value: NameOrDirValue, upload: FileUpload):
    if isinstance(value, Deferred):
        logger.debug(f"Resolving deferred value {value.func!r}")
        return value.func(upload)
    return value.value


def resolve_save_name(upload: FileUpload) -> str:
    """
    Compute the file name the upload is saved under.

    Outside of "full" mode the original extension is appended with a dot.

    Raises:
        RelocationError: SAVE_NAME if the name resolves to something unusable
    """
    config = upload.config
    value = config.save_name_full if upload.name_is_full else config.save_name
    messages = upload.settings.messages

    try:
        name = _resolve(value, upload) if value is not None else ""
    except FileUploadError:
        raise
    except Exception as e:
        logger.warning(f"Save name function failed for {upload}: {e}")
        raise messages.error(RelocationError, UploadErrorCode.SAVE_NAME) from e

    if not isinstance(name, str):
        raise messages.error(RelocationError, UploadErrorCode.SAVE_NAME)

    if not upload.name_is_full:
        name = f"{name}.{upload.descriptor.extension}"

    # Path traversal through the name is never allowed
    if name in DISALLOWED_NAMES or "/" in name or os.sep in name:
        raise messages.error(RelocationError, UploadErrorCode.SAVE_NAME)

    return name


def resolve_save_dir(upload: FileUpload, directory=None) -> str:
    """
    Compute the destination directory, always ending in exactly one separator.

    An explicit directory wins outright over the configured saveDir.

    Raises:
        RelocationError: SAVE_DIR if no usable directory is available
    """
    messages = upload.settings.messages

    if directory is None:
        value = upload.config.save_dir
        if value is None:
            raise messages.error(RelocationError, UploadErrorCode.SAVE_DIR)
        try:
            directory = _resolve(value, upload)
        except FileUploadError:
            raise
        except Exception as e:
            logger.warning(f"Save dir function failed for {upload}: {e}")
            raise messages.error(RelocationError, UploadErrorCode.SAVE_DIR) from e

    if isinstance(directory, os.PathLike):
        directory = os.fspath(directory)
    if not isinstance(directory, str) or not directory:
        raise messages.error(RelocationError, UploadErrorCode.SAVE_DIR)

    return directory.rstrip(os.sep) + os.sep
