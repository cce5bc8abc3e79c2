"""Conversion between byte counts and human readable sizes like "5.3MB"."""

import math

from .exceptions import SizeParseError

UNITS = {
    "k": 1024,
    "m": 1024**2,
    "g": 1024**3,
}


def _number(text):
    try:
        value = float(text)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(value):
        return None
    return value


def _integer_value(text):
    """Return text as an int if it is an integer-valued number, else None."""
    try:
        return int(text)
    except ValueError:
        pass
    value = _number(text)
    if value is not None and value.is_integer():
        return int(value)
    return None


def pretty_size(num_bytes) -> str:
    """Format bytes with a binary unit prefix, like "5.3MB", "1021B" or "0B"."""
    num_bytes = max(int(num_bytes), 0)

    unit, factor = "", 1
    for next_unit, next_factor in UNITS.items():
        if num_bytes / factor < 1024:
            break
        unit, factor = next_unit, next_factor

    value = f"{round(num_bytes / factor, 2):.2f}".rstrip("0").rstrip(".")
    return f"{value}{unit.upper()}B"


def pretty_size_to_bytes(pretty) -> int:
    """
    Parse a size into integer bytes.

    Integers and integer-valued numeric strings are taken as bytes. Otherwise
    the value must be a number followed by a case-insensitive unit of k, m or
    g, optionally followed by "b": "500k", "3.4MB", "1.5 G".

    Raises:
        SizeParseError: If the value is not a recognizable size
    """
    if isinstance(pretty, bool):
        raise SizeParseError(f"Not a size: {pretty!r}")
    if isinstance(pretty, int):
        return pretty
    if isinstance(pretty, float):
        if pretty.is_integer():
            return int(pretty)
        raise SizeParseError(f"Fractional byte count: {pretty!r}")
    if not isinstance(pretty, str):
        raise SizeParseError(f"Not a size: {pretty!r}")

    text = pretty.strip().lower()
    as_int = _integer_value(text)
    if as_int is not None:
        return as_int

    # "b" may be the only suffix
    text = text.rstrip("b").rstrip()
    as_int = _integer_value(text)
    if as_int is not None:
        return as_int

    if text and text[-1] in UNITS:
        number = _number(text[:-1])
        if number is not None:
            return math.floor(number * UNITS[text[-1]])

    raise SizeParseError(f"Not a size: {pretty!r}")
