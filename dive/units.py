"""Human-readable byte sizes and number formatting."""

from __future__ import annotations

import math

_SI_SUFFIXES = ("B", "kB", "MB", "GB", "TB", "PB", "EB")

_SIZE_TABLE = {
    "": 1,
    "b": 1,
    "k": 1000,
    "kb": 1000,
    "ki": 1024,
    "kib": 1024,
    "m": 1000**2,
    "mb": 1000**2,
    "mi": 1024**2,
    "mib": 1024**2,
    "g": 1000**3,
    "gb": 1000**3,
    "gi": 1024**3,
    "gib": 1024**3,
    "t": 1000**4,
    "tb": 1000**4,
    "ti": 1024**4,
    "tib": 1024**4,
    "p": 1000**5,
    "pb": 1000**5,
    "pi": 1024**5,
    "pib": 1024**5,
    "e": 1000**6,
    "eb": 1000**6,
    "ei": 1024**6,
    "eib": 1024**6,
}

_NUMBER_CHARS = frozenset("0123456789.,")
_MAX_UINT64 = 2**64


def format_bytes(size: int) -> str:
    """Format a byte count with SI (base 1000) units, e.g. ``82 kB``."""
    if size < 0:
        raise ValueError(f"byte count cannot be negative: {size}")
    if size < 10:
        return f"{size} B"
    exponent = int(math.floor(math.log(size) / math.log(1000)))
    exponent = min(exponent, len(_SI_SUFFIXES) - 1)
    suffix = _SI_SUFFIXES[exponent]
    value = math.floor(size / 1000**exponent * 10 + 0.5) / 10
    if value < 10:
        return f"{value:.1f} {suffix}"
    return f"{value:.0f} {suffix}"


def parse_bytes(text: str) -> int:
    """Parse a human byte size such as ``50kB`` or ``1.5 GiB`` into bytes."""
    digits = 0
    for char in text:
        if char not in _NUMBER_CHARS:
            break
        digits += 1
    number = text[:digits].replace(",", "")
    if not number or number.count(".") > 1 or number == ".":
        raise ValueError(f"invalid size number in {text!r}")
    value = float(number)

    unit = text[digits:].strip().lower()
    multiplier = _SIZE_TABLE.get(unit)
    if multiplier is None:
        raise ValueError(f"unhandled size name: {unit}")
    value *= multiplier
    if value >= _MAX_UINT64:
        raise ValueError(f"too large: {text}")
    return int(value)


def format_comma(number: int) -> str:
    """Format an integer with comma thousands separators."""
    return f"{number:,}"