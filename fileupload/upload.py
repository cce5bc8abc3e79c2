"""
FileUpload: validate one uploaded file and move it to its destination.

Basic usage in a view:

    upload = FileUpload("avatar", {"saveDir": "/srv/avatars", "allowExt": "jpg,png"}, files=request.FILES)
    if not upload.save():
        return HttpResponseBadRequest(upload.error_message)

Configuration can also be chained:

    upload = FileUpload("avatar", files=request.FILES)
    upload.save_name_full(lambda u: f"{uuid4()}.{u.descriptor.extension}").size_limit("-2M").save("/srv/avatars")

By default failures never raise. Every action returns a boolean and the last
error stays available through error_code and error_message until reset().
With noThrow set to False the error is raised where it happens instead.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Mapping
from enum import Enum

from . import fileutils
from .conf import UploadSettings, get_upload_settings
from .descriptor import StagedUploads, TransportStatus, UploadDescriptor
from .exceptions import (
    ConfigError,
    FileUploadError,
    MimeDetectionError,
    RelocationError,
    TransportError,
    UploadErrorCode,
)
from .naming import Literal, raw_value, resolve_save_dir, resolve_save_name
from .options import Option, UploadConfig, check_mime_patterns, resolve_option
from .pipeline import run_checks
from .sizes import pretty_size

logger = logging.getLogger(__name__)


class ValidationState(Enum):
    UNCHECKED = "unchecked"
    CHECKED = "checked"
    DONE = "done"


def _is_no_throw(key) -> bool:
    try:
        return Option.parse(key) is Option.NO_THROW
    except KeyError:
        return False


class FileUpload:
    """
    A single uploaded file going through check() and save().

    Args:
        source: A key into files, an UploadDescriptor, or a mapping with at
            least a temp_path (see UploadDescriptor.from_mapping). Explicit
            descriptors turn off checkIsUploaded.
        config: Mapping of option key to value, applied over the defaults
        files: The request's staged files, a StagedUploads or request.FILES.
            Given request.FILES, the temp files spooled for this upload are
            removed once it is saved or fails.
        settings: Defaults and messages, read from Django settings if omitted
        mime_detector: Callable returning the MIME of a path, including charset
    """

    def __init__(
        self,
        source,
        config: Mapping | None = None,
        *,
        files=None,
        settings: UploadSettings | None = None,
        mime_detector: Callable[[str], str] | None = None,
    ):
        self.settings = settings or get_upload_settings()
        self.mime_detector = mime_detector or fileutils.get_mime
        # A registry built here is ours to clean up, a StagedUploads passed in is not
        self._owns_staged = files is not None and not isinstance(files, StagedUploads)
        if self._owns_staged:
            files = StagedUploads(files)
        self.staged = files
        self.descriptor = UploadDescriptor(temp_path="")
        self._explicit = False
        self._reset_state()

        descriptor, source_error = self._resolve_source(source)
        if descriptor is not None:
            self.descriptor = descriptor

        # Configuration first, so noThrow is in effect for every later failure
        if not self.configure(config or {}):
            return

        if source_error is not None:
            self._fail(source_error)
            return

        if self._explicit:
            self._config.check_is_uploaded = False

        status = self.descriptor.transport_status
        if status != TransportStatus.OK:
            self._fail(self.settings.messages.error(TransportError, UploadErrorCode(status)))
            return

        self._apply_default_name()

    @classmethod
    def from_uploaded_file(cls, uploaded_file, config: Mapping | None = None, **kwargs) -> FileUpload:
        """Build a FileUpload straight from a Django UploadedFile."""
        return cls("file", config, files={"file": uploaded_file}, **kwargs)

    def _resolve_source(self, source) -> tuple[UploadDescriptor | None, FileUploadError | None]:
        messages = self.settings.messages

        if isinstance(source, UploadDescriptor):
            self._explicit = True
            return source, None

        if isinstance(source, str):
            if self.staged is None:
                return None, messages.error(ConfigError, UploadErrorCode.INVALID_ARG, "FileUpload")
            descriptor = self.staged.descriptor(source)
            if descriptor is None:
                return None, messages.error(TransportError, UploadErrorCode.NO_FILE)
            return descriptor, None

        if isinstance(source, Mapping):
            self._explicit = True
            try:
                return UploadDescriptor.from_mapping(source), None
            except (TypeError, ValueError) as e:
                logger.warning(f"Invalid upload descriptor {source!r}: {e}")

        return None, messages.error(ConfigError, UploadErrorCode.INVALID_ARG, "FileUpload")

    def _reset_state(self) -> None:
        self._config: UploadConfig = self.settings.default_config()
        self.name_is_full = self._config.save_name_full is not None and self._config.save_name is None
        self._error: FileUploadError | None = None
        self.state = ValidationState.UNCHECKED
        self.destination: str | None = None

    def _apply_default_name(self) -> None:
        if not self.descriptor.original_name:
            return
        if self.name_is_full:
            if self._config.save_name_full is None:
                self._config.save_name_full = Literal(self.descriptor.original_name)
        elif self._config.save_name is None and self.descriptor.stem:
            self._config.save_name = Literal(self.descriptor.stem)

    def _fail(self, error: FileUploadError) -> bool:
        """Record error as the last error. Raises it unless noThrow is set."""
        self._error = error
        logger.warning(f"Upload {self!s} failed: [{error.code.name}] {error.message}")
        self._release_staged()
        if not self._config.no_throw:
            raise error
        return False

    # Configuration

    @property
    def config(self) -> UploadConfig:
        return self._config

    def get_option(self, key):
        """The current value of an option, names and directories as configured."""
        option = Option.parse(key)
        value = getattr(self._config, option.attr)
        if option in (Option.SAVE_NAME, Option.SAVE_NAME_FULL, Option.SAVE_DIR):
            return raw_value(value)
        return value

    def set_option(self, key, value) -> bool:
        """
        Validate and set a single option.

        Returns:
            True if the option was set. False if it was rejected or an earlier
            error is recorded.

        Raises:
            ConfigError: If the option is rejected and noThrow is off
        """
        if self._error:
            return False
        if self.state is ValidationState.DONE:
            return True

        messages = self.settings.messages
        try:
            option = Option.parse(key)
        except KeyError:
            return self._fail(messages.error(ConfigError, UploadErrorCode.INVALID_ARG, key))

        try:
            resolved = resolve_option(option, value)
        except ValueError as e:
            logger.debug(f"Rejected {option} value {value!r}: {e}")
            return self._fail(messages.error(ConfigError, UploadErrorCode.INVALID_CONF, option))

        setattr(self._config, option.attr, resolved)
        if option is Option.SAVE_NAME:
            self.name_is_full = False
        elif option is Option.SAVE_NAME_FULL:
            self.name_is_full = True
        return True

    def configure(self, options: Mapping) -> bool:
        """
        Set several options at once.

        Options are applied in order and a failure does not undo the options
        set before it. noThrow is applied first so it governs the whole batch.
        """
        if self._error:
            return False
        if self.state is ValidationState.DONE:
            return True

        items = sorted(dict(options).items(), key=lambda item: not _is_no_throw(item[0]))
        for key, value in items:
            if not self.set_option(key, value):
                return False
        return True

    def _append_pattern(self, option: Option, item) -> FileUpload:
        if self._error or self.state is ValidationState.DONE:
            return self
        try:
            if not isinstance(item, str) or not item:
                raise ValueError(f"expected a non-empty string, got {item!r}")
            patterns = getattr(self._config, option.attr).appended(item)
            if option is Option.ALLOW_MIME:
                check_mime_patterns(patterns)
        except ValueError as e:
            logger.debug(f"Rejected {option} item {item!r}: {e}")
            self._fail(self.settings.messages.error(ConfigError, UploadErrorCode.INVALID_CONF, option))
            return self
        setattr(self._config, option.attr, patterns)
        return self

    def add_allow_mime(self, mime_type: str) -> FileUpload:
        """Append one MIME pattern, to the deny list if it starts with "!"."""
        return self._append_pattern(Option.ALLOW_MIME, mime_type)

    def add_allow_ext(self, extension: str) -> FileUpload:
        """Append one extension, to the deny list if it starts with "!"."""
        return self._append_pattern(Option.ALLOW_EXT, extension)

    def add_validator(self, validator: Callable) -> FileUpload:
        """Append a validator. Validators run in the order they were added."""
        if self._error or self.state is ValidationState.DONE:
            return self
        if not callable(validator):
            self._fail(self.settings.messages.error(ConfigError, UploadErrorCode.INVALID_CONF, Option.VALIDATOR))
            return self
        self._config.validators = (*self._config.validators, validator)
        return self

    def save_name(self, name) -> FileUpload:
        self.set_option(Option.SAVE_NAME, name)
        return self

    def save_name_full(self, name) -> FileUpload:
        self.set_option(Option.SAVE_NAME_FULL, name)
        return self

    def save_dir(self, directory) -> FileUpload:
        self.set_option(Option.SAVE_DIR, directory)
        return self

    def size_limit(self, limit) -> FileUpload:
        self.set_option(Option.SIZE_LIMIT, limit)
        return self

    def allow_mime(self, mime_types) -> FileUpload:
        self.set_option(Option.ALLOW_MIME, mime_types)
        return self

    def allow_ext(self, extensions) -> FileUpload:
        self.set_option(Option.ALLOW_EXT, extensions)
        return self

    def validator(self, validators) -> FileUpload:
        self.set_option(Option.VALIDATOR, validators)
        return self

    def check_is_uploaded(self, value: bool) -> FileUpload:
        self.set_option(Option.CHECK_IS_UPLOADED, value)
        return self

    def overwrite(self, value: bool) -> FileUpload:
        self.set_option(Option.OVERWRITE, value)
        return self

    def no_throw(self, value: bool) -> FileUpload:
        self.set_option(Option.NO_THROW, value)
        return self

    # Actions

    def check(self) -> bool:
        """
        Run every validation rule, stopping at the first failure.

        The rules run again on every call, unless an error is recorded
        (False) or the file is already saved (True).
        """
        if self._error:
            return False
        if self.state is ValidationState.DONE:
            return True

        self.state = ValidationState.CHECKED
        try:
            run_checks(self)
        except FileUploadError as e:
            return self._fail(e)
        return True

    def save(self, directory=None) -> bool:
        """
        Move the file to its destination, checking it first if needed.

        Args:
            directory: Overrides the configured saveDir for this call

        Returns:
            True once the file is saved
        """
        if self._error:
            return False
        if self.state is ValidationState.DONE:
            return True
        if self.state is ValidationState.UNCHECKED and not self.check():
            return False

        try:
            name = resolve_save_name(self)
            save_dir = resolve_save_dir(self, directory)
            destination = self._relocate(save_dir, name)
        except FileUploadError as e:
            return self._fail(e)

        self.destination = destination
        self.state = ValidationState.DONE
        logger.info(f"Saved upload {self!s} to {destination}")
        self._release_staged()
        return True

    def _release_staged(self) -> None:
        """Remove the temp files spooled by a registry this upload created."""
        if self._owns_staged:
            self.staged.cleanup()

    def _relocate(self, save_dir: str, name: str) -> str:
        messages = self.settings.messages
        if not fileutils.is_writable_dir(save_dir):
            raise messages.error(RelocationError, UploadErrorCode.SAVE_DIR)

        destination = save_dir + name
        if os.path.exists(destination) and not self._config.overwrite:
            raise messages.error(RelocationError, UploadErrorCode.SAVE_EXISTS)

        move = None
        if self._config.check_is_uploaded and self.staged is not None:
            move = self.staged.move_uploaded_file
        if not fileutils.relocate_file(self.descriptor.temp_path, destination, move=move):
            raise messages.error(RelocationError, UploadErrorCode.SAVE_MOVE)
        return destination

    def reset(self) -> None:
        """Clear the error, the validation state and the configuration. The file is kept."""
        self._reset_state()
        if self._explicit:
            self._config.check_is_uploaded = False
        self._apply_default_name()

    # Information

    @property
    def error(self) -> FileUploadError | None:
        return self._error

    @property
    def error_code(self) -> UploadErrorCode:
        """Code of the last error, UploadErrorCode.OK (0) if there is none."""
        return self._error.code if self._error else UploadErrorCode.OK

    @property
    def error_message(self) -> str:
        return self._error.message if self._error else ""

    @property
    def temp_path(self) -> str:
        return self.descriptor.temp_path

    def get_name(self, with_ext: bool = False) -> str | None:
        """The original file name on the client, without the extension unless with_ext."""
        if not self.descriptor.original_name:
            return None
        return self.descriptor.original_name if with_ext else self.descriptor.stem

    def get_size(self, pretty: bool = False) -> int | str:
        if pretty:
            return pretty_size(self.descriptor.size_bytes)
        return self.descriptor.size_bytes

    def get_mime(self, strip_encoding: bool = True) -> str | None:
        """MIME of the temp file, or None once saved or if it cannot be detected."""
        if not self.temp_path or self.state is ValidationState.DONE:
            return None
        try:
            mime = self.mime_detector(self.temp_path)
        except MimeDetectionError as e:
            logger.debug(f"MIME detection failed for {self!s}: {e}")
            return None
        if strip_encoding and isinstance(mime, str):
            mime = mime.split(";")[0].strip()
        return mime

    def __str__(self) -> str:
        return self.descriptor.original_name

    def __repr__(self) -> str:
        return f"<FileUpload {self.descriptor.original_name!r} {self.state.value} error={self.error_code.name}>"
