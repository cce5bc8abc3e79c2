"""
The ordered validation rules run by FileUpload.check().

Each rule either returns quietly or raises ValidationFailed. run_checks()
stops at the first failure, so later rules never see a rejected file.
"""

from __future__ import annotations

import logging
import operator
import re
from typing import TYPE_CHECKING

from django.core.exceptions import ValidationError

from . import fileutils
from .exceptions import FileUploadError, MimeDetectionError, UploadErrorCode, ValidationFailed
from .sizes import pretty_size

if TYPE_CHECKING:
    from .upload import FileUpload

logger = logging.getLogger(__name__)


class ValidatorMessage:
    """
    Mutable message slot handed to custom validators.

    A validator rejecting a file may set ``message.text`` to explain why.
    """

    def __init__(self, text: str):
        self.text = text

    def __str__(self) -> str:
        return self.text

    def __repr__(self) -> str:
        return f"ValidatorMessage({self.text!r})"


def mime_matches(pattern: str, mime: str) -> bool:
    return re.search(pattern, mime, re.IGNORECASE) is not None


def check_file_exists(upload: FileUpload) -> None:
    if not fileutils.is_readable_file(upload.descriptor.temp_path):
        raise upload.settings.messages.error(ValidationFailed, UploadErrorCode.NO_FILE)


def check_is_uploaded(upload: FileUpload) -> None:
    if not upload.config.check_is_uploaded:
        return
    staged = upload.staged
    if staged is None or not staged.is_uploaded_file(upload.descriptor.temp_path):
        raise upload.settings.messages.error(ValidationFailed, UploadErrorCode.NOT_UPLOADED)


def check_size(upload: FileUpload) -> None:
    size = upload.descriptor.size_bytes
    limit = upload.config.size_limit
    if limit.min is not None and size < limit.min:
        raise upload.settings.messages.error(ValidationFailed, UploadErrorCode.SIZE_MIN, pretty_size(limit.min))
    if limit.max is not None and size > limit.max:
        raise upload.settings.messages.error(ValidationFailed, UploadErrorCode.SIZE_MAX, pretty_size(limit.max))


def check_mime(upload: FileUpload) -> None:
    messages = upload.settings.messages
    try:
        mime = upload.mime_detector(upload.descriptor.temp_path)
    except MimeDetectionError as e:
        logger.warning(f"MIME detection failed for {upload}: {e}")
        mime = None
    if not isinstance(mime, str) or not mime:
        raise messages.error(ValidationFailed, UploadErrorCode.MIME_UNKNOWN)

    if not upload.config.allow_mime.permits(mime, mime_matches):
        raise messages.error(ValidationFailed, UploadErrorCode.MIME_DENIED, mime)


def check_extension(upload: FileUpload) -> None:
    # an empty extension is a valid value to check
    ext = upload.descriptor.extension
    if not upload.config.allow_ext.permits(ext, operator.eq):
        raise upload.settings.messages.error(ValidationFailed, UploadErrorCode.EXT_DENIED, ext)


def check_validators(upload: FileUpload) -> None:
    default_message = upload.settings.messages[UploadErrorCode.VALIDATOR_DENIED]
    for validator in upload.config.validators:
        message = ValidatorMessage(default_message)
        try:
            accepted = validator(upload, message)
        except FileUploadError:
            raise
        except ValidationError as e:
            raise ValidationFailed(UploadErrorCode.VALIDATOR_DENIED, "; ".join(e.messages)) from e
        except Exception as e:
            logger.warning(f"Validator {validator!r} raised for {upload}: {e}")
            raise ValidationFailed(UploadErrorCode.VALIDATOR_DENIED, message.text) from e
        if not accepted:
            logger.debug(f"Validator {validator!r} rejected {upload}: {message.text}")
            raise ValidationFailed(UploadErrorCode.VALIDATOR_DENIED, str(message.text))


RULES = (
    check_file_exists,
    check_is_uploaded,
    check_size,
    check_mime,
    check_extension,
    check_validators,
)


def run_checks(upload: FileUpload) -> None:
    """
    Run every rule against the upload in order.

    Raises:
        ValidationFailed: From the first rule that rejects the file
    """
    for rule in RULES:
        rule(upload)
    logger.debug(f"All checks passed for {upload}")
