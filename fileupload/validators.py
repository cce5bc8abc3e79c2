"""
Ready-made validators for the ``validator`` option.

A validator is called as ``validator(upload, message)`` and returns True to
accept the file. To reject it, return False and optionally set
``message.text``.
"""

import logging

from PIL import Image

logger = logging.getLogger(__name__)

DISALLOWED_PATTERNS = ["..", "/", "\\", "\x00"]


def safe_filename_validator(upload, message):
    """Reject original names that try path traversal or carry control bytes."""
    name = upload.get_name(with_ext=True) or ""
    if any(pattern in name for pattern in DISALLOWED_PATTERNS):
        message.text = "file name is not allowed"
        return False
    return True


def image_validator(allowed_formats=None, min_dimensions=None, max_dimensions=None):
    """
    Build a validator accepting only images Pillow can open.

    Args:
        allowed_formats: List of allowed Pillow formats (e.g., ['JPEG', 'PNG'])
        min_dimensions: Minimum (width, height) in pixels
        max_dimensions: Maximum (width, height) in pixels

    Returns:
        A validator for the ``validator`` option
    """
    if allowed_formats is None:
        allowed_formats = ["JPEG", "PNG", "GIF", "WEBP"]

    def validate(upload, message):
        try:
            with Image.open(upload.temp_path) as img:
                if img.format not in allowed_formats:
                    message.text = f"Invalid image format '{img.format}'. Allowed formats: {', '.join(allowed_formats)}"
                    return False

                width, height = img.size

                if min_dimensions:
                    min_w, min_h = min_dimensions
                    if width < min_w or height < min_h:
                        message.text = f"Image dimensions {width}x{height} are below minimum required {min_w}x{min_h}"
                        return False

                if max_dimensions:
                    max_w, max_h = max_dimensions
                    if width > max_w or height > max_h:
                        message.text = f"Image dimensions {width}x{height} exceed maximum allowed {max_w}x{max_h}"
                        return False
        except OSError as e:
            # UnidentifiedImageError is an OSError too
            logger.debug(f"Pillow could not open {upload.temp_path!r}: {e}")
            message.text = "Invalid image file"
            return False

        return True

    return validate
