"""
Defaults and message templates handed to every FileUpload.

Instead of process-wide mutable statics, a FileUpload receives an
UploadSettings object. When none is given, one is built from the Django
settings at construction time:

    FILEUPLOAD_DEFAULTS = {"sizeLimit": "-10M", "allowExt": "jpg,png"}
    FILEUPLOAD_MESSAGES = {"SIZE_MAX": "Please keep it under {}"}
"""

import logging

from django.conf import settings as django_settings
from django.core.exceptions import ImproperlyConfigured

from .exceptions import FileUploadError, UploadErrorCode
from .options import UploadConfig, build_config

logger = logging.getLogger(__name__)

DEFAULT_MESSAGES = {
    UploadErrorCode.OK: "no error, the file uploaded with success",
    UploadErrorCode.INI_SIZE: "the uploaded file exceeds the maximum upload size of the server",
    UploadErrorCode.FORM_SIZE: "the uploaded file exceeds the maximum size specified in the form",
    UploadErrorCode.PARTIAL: "the uploaded file was only partially uploaded",
    UploadErrorCode.NO_FILE: "no file was uploaded",
    UploadErrorCode.NO_TMP_DIR: "missing temporary folder",
    UploadErrorCode.CANT_WRITE: "failed to write temporary file to disk",
    UploadErrorCode.EXTENSION: "an upload handler stopped the file upload",
    UploadErrorCode.INVALID_ARG: "invalid argument passed to {}",
    UploadErrorCode.INVALID_CONF: "invalid configuration: {}",
    UploadErrorCode.SIZE_MIN: "file must be larger than {}",
    UploadErrorCode.SIZE_MAX: "file must be smaller than {}",
    UploadErrorCode.MIME_UNKNOWN: "unknown file type",
    UploadErrorCode.MIME_DENIED: "files are not allowed with type {}",
    UploadErrorCode.EXT_DENIED: "{} files are not allowed",
    # validators are expected to provide their own message
    UploadErrorCode.VALIDATOR_DENIED: "file is invalid",
    UploadErrorCode.NOT_UPLOADED: "not an uploaded file",
    # the save messages never reveal server paths
    UploadErrorCode.SAVE_DIR: "failed to save file to destination",
    UploadErrorCode.SAVE_MOVE: "failed to save file",
    UploadErrorCode.SAVE_NAME: "failed to save file with the current name",
    UploadErrorCode.SAVE_EXISTS: "file already exists on server",
}


def _parse_code(key) -> UploadErrorCode:
    if isinstance(key, str) and not key.isdigit():
        return UploadErrorCode[key.upper()]
    return UploadErrorCode(int(key))


def _check_template(code: UploadErrorCode, template: str) -> None:
    """Raise ImproperlyConfigured unless template formats with the arguments code is given."""
    placeholders = DEFAULT_MESSAGES[code].count("{}")
    try:
        template.format(*["x"] * placeholders)
    except (AttributeError, IndexError, KeyError, ValueError) as e:
        raise ImproperlyConfigured(
            f"Message for {code.name} may only use {placeholders} positional {{}} placeholder(s), got {template!r}"
        ) from e


class MessageTable:
    """Message templates per error code, with str.format placeholders."""

    def __init__(self, overrides=None):
        self._messages = dict(DEFAULT_MESSAGES)
        for key, template in (overrides or {}).items():
            try:
                code = _parse_code(key)
            except (KeyError, ValueError) as e:
                raise ImproperlyConfigured(f"Unknown upload error code in messages: {key!r}") from e
            template = str(template)
            _check_template(code, template)
            self._messages[code] = template

    def __getitem__(self, code) -> str:
        return self._messages[UploadErrorCode(code)]

    def format(self, code, *args) -> str:
        return self[code].format(*args)

    def error(self, error_class: type[FileUploadError], code, *args) -> FileUploadError:
        """Build an exception of error_class carrying the formatted message for code."""
        return error_class(code, self.format(code, *args))


class UploadSettings:
    """
    The default configuration template and message table for new uploads.

    Both arguments are subsets merged over the built-ins.
    """

    def __init__(self, defaults=None, messages=None):
        self.defaults = dict(defaults or {})
        try:
            self._default_config = build_config(self.defaults)
        except KeyError as e:
            raise ImproperlyConfigured(f"Unknown upload option in defaults: {e}") from e
        except ValueError as e:
            raise ImproperlyConfigured(f"Invalid upload option in defaults: {e}") from e
        self.messages = MessageTable(messages)

    def default_config(self) -> UploadConfig:
        return self._default_config.copy()

    def with_overrides(self, defaults=None, messages=None) -> "UploadSettings":
        """Return new settings with further defaults and messages merged in."""
        return UploadSettings(
            defaults={**self.defaults, **(defaults or {})},
            messages={**self.messages._messages, **(messages or {})},
        )

    @classmethod
    def from_django(cls) -> "UploadSettings":
        return cls(
            defaults=getattr(django_settings, "FILEUPLOAD_DEFAULTS", None),
            messages=getattr(django_settings, "FILEUPLOAD_MESSAGES", None),
        )


def get_upload_settings() -> UploadSettings:
    """Settings for a FileUpload constructed now."""
    upload_settings = UploadSettings.from_django()
    logger.debug(f"Loaded upload settings with defaults {upload_settings.defaults!r}")
    return upload_settings
