"""
Upload configuration: the recognized options and how each one is resolved.

Every option has a resolver turning a user supplied value into its canonical
form, or raising ValueError. The mapping from option to resolver is a static
table, so unknown keys never reach an attribute.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from enum import Enum

from .naming import NameOrDirValue, to_name_or_dir
from .sizes import pretty_size_to_bytes

DEFAULT_MIN_SIZE = 1


class Option(str, Enum):
    """Recognized configuration keys."""

    SAVE_NAME = "saveName"
    SAVE_NAME_FULL = "saveName:full"
    SAVE_DIR = "saveDir"
    SIZE_LIMIT = "sizeLimit"
    ALLOW_MIME = "allowMime"
    ALLOW_EXT = "allowExt"
    VALIDATOR = "validator"
    CHECK_IS_UPLOADED = "checkIsUploaded"
    OVERWRITE = "overwrite"
    NO_THROW = "noThrow"

    def __str__(self) -> str:
        return self.value

    @property
    def attr(self) -> str:
        return _OPTION_TABLE[self][0]

    @classmethod
    def parse(cls, key) -> Option:
        """Look up an option by its key ("saveDir") or attribute name ("save_dir")."""
        if isinstance(key, cls):
            return key
        try:
            return cls(key)
        except ValueError:
            pass
        for option, (attr, _) in _OPTION_TABLE.items():
            if attr == key:
                return option
        raise KeyError(key)


@dataclass(frozen=True)
class SizeLimit:
    min: int | None = DEFAULT_MIN_SIZE
    max: int | None = None

    def permits(self, size: int) -> bool:
        if self.min is not None and size < self.min:
            return False
        return self.max is None or size <= self.max


@dataclass(frozen=True)
class AllowDenyList:
    """
    An ordered allow list and deny list.

    An item passes if the allow list is empty or one of its patterns matches,
    and none of the deny patterns match.
    """

    allow: tuple[str, ...] = ()
    deny: tuple[str, ...] = ()

    def permits(self, item: str, matches: Callable[[str, str], bool]) -> bool:
        if self.allow and not any(matches(pattern, item) for pattern in self.allow):
            return False
        return not any(matches(pattern, item) for pattern in self.deny)

    def appended(self, item: str) -> AllowDenyList:
        if item.startswith("!"):
            return replace(self, deny=(*self.deny, item[1:]))
        return replace(self, allow=(*self.allow, item))


@dataclass
class UploadConfig:
    """Canonical, resolved upload configuration."""

    save_name: NameOrDirValue | None = None
    save_name_full: NameOrDirValue | None = None
    save_dir: NameOrDirValue | None = None
    size_limit: SizeLimit = field(default_factory=SizeLimit)
    allow_mime: AllowDenyList = field(default_factory=AllowDenyList)
    allow_ext: AllowDenyList = field(default_factory=AllowDenyList)
    validators: tuple[Callable, ...] = ()
    check_is_uploaded: bool = True
    overwrite: bool = False
    no_throw: bool = True

    def copy(self) -> UploadConfig:
        return replace(self)


def _size_bound(value) -> int | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if isinstance(value, str):
        value = value.strip()
    return pretty_size_to_bytes(value)


def resolve_size_limit(value) -> SizeLimit:
    """
    Resolve a size limit specification.

    Accepted forms:
        - a single size, which becomes the maximum: 2048, "500k", "3.4MB"
        - a (min, max) pair where None or "" means unlimited: (500, "2M")
        - a string with a dash between min and max: "50k-20Mb", "- 1500KB", "20k-"

    Raises:
        ValueError: If the value cannot be resolved, a bound is negative or
            min is greater than max
    """
    if isinstance(value, bool) or value is None or value == "" or value in ((), []):
        raise ValueError(f"empty size limit {value!r}")

    minimum, maximum = DEFAULT_MIN_SIZE, None

    if isinstance(value, int | float):
        maximum = pretty_size_to_bytes(value)
    elif isinstance(value, str | list | tuple):
        parts = value.split("-") if isinstance(value, str) else list(value)
        if len(parts) == 1:
            maximum = _size_bound(parts[0])
            if maximum is None:
                raise ValueError(f"empty size limit {value!r}")
        elif len(parts) == 2:
            minimum = _size_bound(parts[0])
            maximum = _size_bound(parts[1])
        else:
            raise ValueError(f"too many parts in size limit {value!r}")
    else:
        raise ValueError(f"unsupported size limit {value!r}")

    if (minimum is not None and minimum < 0) or (maximum is not None and maximum < 0):
        raise ValueError(f"negative size limit {value!r}")
    if minimum is not None and maximum is not None and minimum > maximum:
        raise ValueError(f"minimum is greater than maximum in {value!r}")

    return SizeLimit(min=minimum, max=maximum)


def resolve_allow_deny(value) -> AllowDenyList:
    """
    Resolve a comma separated string or a list of items into allow and deny lists.

    Items starting with "!" go to the deny list without the marker.
    """
    if isinstance(value, str):
        if not value.strip():
            raise ValueError("empty list")
        items = value.split(",")
    elif isinstance(value, list | tuple):
        if not value:
            raise ValueError("empty list")
        items = list(value)
    else:
        raise ValueError(f"expected a string or a list, got {type(value).__name__}")

    allow, deny = [], []
    for item in items:
        if not isinstance(item, str):
            raise ValueError(f"list items must be strings, got {item!r}")
        item = item.strip()
        # empty items are kept, they match an empty extension
        if item.startswith("!"):
            deny.append(item[1:])
        else:
            allow.append(item)
    return AllowDenyList(allow=tuple(allow), deny=tuple(deny))


def check_mime_patterns(patterns: AllowDenyList) -> AllowDenyList:
    for pattern in (*patterns.allow, *patterns.deny):
        try:
            re.compile(pattern)
        except re.error as e:
            raise ValueError(f"invalid MIME pattern {pattern!r}: {e}") from e
    return patterns


def resolve_allow_mime(value) -> AllowDenyList:
    return check_mime_patterns(resolve_allow_deny(value))


def resolve_validators(value) -> tuple[Callable, ...]:
    if callable(value):
        return (value,)
    if isinstance(value, list | tuple) and value:
        for validator in value:
            if not callable(validator):
                raise ValueError(f"validator is not callable: {validator!r}")
        return tuple(value)
    raise ValueError(f"expected a callable or a list of callables, got {value!r}")


def resolve_bool(value) -> bool:
    if not isinstance(value, bool):
        raise ValueError(f"expected a boolean, got {value!r}")
    return value


_OPTION_TABLE: dict[Option, tuple[str, Callable]] = {
    Option.SAVE_NAME: ("save_name", to_name_or_dir),
    Option.SAVE_NAME_FULL: ("save_name_full", to_name_or_dir),
    Option.SAVE_DIR: ("save_dir", to_name_or_dir),
    Option.SIZE_LIMIT: ("size_limit", resolve_size_limit),
    Option.ALLOW_MIME: ("allow_mime", resolve_allow_mime),
    Option.ALLOW_EXT: ("allow_ext", resolve_allow_deny),
    Option.VALIDATOR: ("validators", resolve_validators),
    Option.CHECK_IS_UPLOADED: ("check_is_uploaded", resolve_bool),
    Option.OVERWRITE: ("overwrite", resolve_bool),
    Option.NO_THROW: ("no_throw", resolve_bool),
}


def resolve_option(option: Option, value):
    """Resolve value for option, raising ValueError if it is malformed."""
    _, resolver = _OPTION_TABLE[option]
    return resolver(value)


def apply_option(config: UploadConfig, option: Option, value) -> None:
    setattr(config, option.attr, resolve_option(option, value))


def build_config(options: dict) -> UploadConfig:
    """
    Build a config from built-in defaults and a mapping of option overrides.

    Raises:
        KeyError: For an unknown option key
        ValueError: For a malformed value
    """
    config = UploadConfig()
    for key, value in options.items():
        apply_option(config, Option.parse(key), value)
    return config
