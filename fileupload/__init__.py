"""
Django FileUpload - Validate an uploaded file and move it where it belongs.
"""

from .conf import UploadSettings
from .descriptor import StagedUploads, TransportStatus, UploadDescriptor
from .exceptions import (
    ConfigError,
    FileUploadError,
    RelocationError,
    TransportError,
    UploadErrorCode,
    ValidationFailed,
)
from .forms import FileUploadFormMixin, ValidatedFileField
from .naming import Deferred, Literal
from .options import Option
from .sizes import pretty_size, pretty_size_to_bytes
from .upload import FileUpload, ValidationState
from .upload_utils import cleanup_failed_upload, content_hash_name, dated_upload_dir, save_upload

__version__ = "0.1.0"

__all__ = [
    # Core
    "FileUpload",
    "ValidationState",
    "Option",
    "UploadSettings",
    "Literal",
    "Deferred",
    # Transport
    "StagedUploads",
    "TransportStatus",
    "UploadDescriptor",
    # Errors
    "UploadErrorCode",
    "FileUploadError",
    "TransportError",
    "ConfigError",
    "ValidationFailed",
    "RelocationError",
    # Sizes
    "pretty_size",
    "pretty_size_to_bytes",
    # Forms
    "ValidatedFileField",
    "FileUploadFormMixin",
    # Utilities
    "save_upload",
    "content_hash_name",
    "dated_upload_dir",
    "cleanup_failed_upload",
]
