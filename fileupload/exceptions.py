"""
Custom exceptions and error codes for django-fileupload.
"""

from enum import IntEnum


class UploadErrorCode(IntEnum):
    """Error codes for upload validation and relocation.

    0-7 mirror the transport statuses of the upload mechanism, 17 and up are
    produced by this library. The numbers are stable and safe to branch on.
    """

    OK = 0
    INI_SIZE = 1
    FORM_SIZE = 2
    PARTIAL = 3
    NO_FILE = 4
    NO_TMP_DIR = 5
    CANT_WRITE = 6
    EXTENSION = 7
    # gap reserved for further transport statuses
    INVALID_ARG = 17
    INVALID_CONF = 18
    SIZE_MIN = 19
    SIZE_MAX = 20
    MIME_UNKNOWN = 21
    MIME_DENIED = 22
    EXT_DENIED = 23
    VALIDATOR_DENIED = 24
    NOT_UPLOADED = 25
    SAVE_DIR = 26
    SAVE_MOVE = 27
    SAVE_NAME = 28
    SAVE_EXISTS = 29

    def __str__(self) -> str:
        return self.name


class FileUploadError(Exception):
    """Base class for every failure recorded by a FileUpload."""

    def __init__(self, code: UploadErrorCode, message: str):
        super().__init__(message)
        self.code = UploadErrorCode(code)
        self.message = message

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.code.name}, {self.message!r})"


class TransportError(FileUploadError):
    """The upload mechanism itself failed before the file reached us."""


class ConfigError(FileUploadError):
    """Unknown option key or invalid value for a known option."""


class ValidationFailed(FileUploadError):
    """One of the check() rules rejected the file."""


class RelocationError(FileUploadError):
    """Naming, destination or move failure in save()."""


class SizeParseError(ValueError):
    """A size string like "5.3MB" could not be parsed."""


class MimeDetectionError(Exception):
    """The content-type sniffer could not identify a file."""
