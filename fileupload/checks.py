"""
Django system checks for fileupload app.

This module verifies that the MIME sniffing tool is available and that the
FILEUPLOAD_* settings resolve.
"""

from django.conf import settings
from django.core.checks import Error, Warning, register

from fileupload.conf import MessageTable
from fileupload.fileutils import FILE_COMMAND, get_file_command_version
from fileupload.options import Option, resolve_option


@register()
def check_file_command_available(app_configs, **kwargs):
    """Check if the file command is available for MIME detection.

    Without it every check() fails with MIME_UNKNOWN unless a custom
    mime_detector is passed.
    """
    errors = []

    try:
        version = get_file_command_version()
        if version is None:
            errors.append(
                Warning(
                    f"{FILE_COMMAND} is not available or not functional",
                    hint=(
                        "Install the file utility for MIME detection of uploads. "
                        "On macOS it ships with the system. On Ubuntu: apt install file."
                    ),
                    id="fileupload.W001",
                )
            )
    except Exception as e:
        errors.append(
            Warning(
                f"Error checking file command availability: {e}",
                hint="Ensure the file utility is properly installed and accessible.",
                id="fileupload.W002",
            )
        )

    return errors


@register()
def check_upload_settings(app_configs, **kwargs):
    """Check that FILEUPLOAD_DEFAULTS and FILEUPLOAD_MESSAGES resolve."""
    errors = []

    defaults = getattr(settings, "FILEUPLOAD_DEFAULTS", None) or {}
    for key, value in defaults.items():
        try:
            resolve_option(Option.parse(key), value)
        except KeyError:
            errors.append(
                Error(
                    f"Unknown upload option {key!r} in FILEUPLOAD_DEFAULTS",
                    hint=f"Valid options are: {', '.join(option.value for option in Option)}",
                    id="fileupload.E001",
                )
            )
        except ValueError as e:
            errors.append(
                Error(
                    f"Invalid value for {key!r} in FILEUPLOAD_DEFAULTS: {e}",
                    id="fileupload.E001",
                )
            )

    messages = getattr(settings, "FILEUPLOAD_MESSAGES", None) or {}
    for key, template in messages.items():
        try:
            MessageTable({key: template})
        except Exception as e:
            errors.append(
                Error(
                    f"Invalid entry {key!r} in FILEUPLOAD_MESSAGES: {e}",
                    hint="Keys must be upload error codes, e.g. 19 or 'SIZE_MIN'.",
                    id="fileupload.E002",
                )
            )

    return errors
