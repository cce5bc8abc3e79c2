import base64
import hashlib
import logging
import os
import shutil
import subprocess
from pathlib import Path

from .exceptions import MimeDetectionError

logger = logging.getLogger(__name__)

FILE_COMMAND = "/usr/bin/file"


def read_in_chunks(file_object, chunk_size=64 * 1024):
    """Lazy function (generator) to read a file piece by piece."""
    while True:
        data = file_object.read(chunk_size)
        if not data:
            break
        yield data


def hash_file(filepath):
    """Base32 SHA-1 of a file's contents, without padding."""
    sha1 = hashlib.sha1()
    with open(filepath, "rb") as f:
        for piece in read_in_chunks(f):
            sha1.update(piece)
    return str(base64.b32encode(sha1.digest()), "ascii").rstrip("=")


def _run_file_command(filepath, *flags):
    try:
        result = subprocess.run(
            [FILE_COMMAND, *flags, "--brief", os.fspath(filepath)],
            capture_output=True,
            text=True,
            timeout=10,
        )
    except subprocess.TimeoutExpired:
        raise MimeDetectionError(f"'file' command timed out for {filepath!r}") from None
    except OSError as e:
        raise MimeDetectionError(f"'file' command could not run: {e}") from e
    if result.returncode != 0:
        raise MimeDetectionError(f"'file' didn't work {result.stdout!r} {result.stderr!r}")
    return result.stdout.strip()


def get_mime(filepath):
    """Full MIME of a file including the encoding, like "text/plain; charset=us-ascii"."""
    return _run_file_command(filepath, "--mime")


def get_file_command_version():
    """Version line of the file command, or None if it is not usable."""
    try:
        result = subprocess.run([FILE_COMMAND, "--version"], capture_output=True, text=True, timeout=10)
    except (OSError, subprocess.TimeoutExpired):
        return None
    if result.returncode != 0:
        return None
    return result.stdout.splitlines()[0] if result.stdout else None


def is_readable_file(filepath):
    return bool(filepath) and os.path.isfile(filepath) and os.access(filepath, os.R_OK)


def is_writable_dir(dirpath):
    return os.path.isdir(dirpath) and os.access(dirpath, os.W_OK | os.X_OK)


def remove_file(filepath):
    """Delete a file, returning False if it did not exist."""
    try:
        Path(filepath).unlink()
    except FileNotFoundError:
        return False
    return True


def rename_file(src, dst):
    logger.debug(f"rename_file({src!r}, {dst!r})")
    try:
        os.replace(src, dst)
    except OSError as e:
        logger.debug(f"rename of {src!r} failed: {e}")
        return False
    return True


def copy_file(src, dst):
    logger.debug(f"copy_file({src!r}, {dst!r})")
    try:
        shutil.copyfile(src, dst)
    except OSError as e:
        logger.warning(f"copy of {src!r} to {dst!r} failed: {e}")
        return False
    return True


def relocate_file(src, dst, move=None):
    """
    Move src to dst, falling back to a copy.

    move is the primary strategy, defaulting to a plain rename. If it fails the
    bytes are copied instead and src is left in place for the transport to
    reclaim.
    """
    move = move or rename_file
    if move(src, dst):
        return True
    logger.debug(f"moving {src!r} failed, falling back to copy")
    return copy_file(src, dst)
