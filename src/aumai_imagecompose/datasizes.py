"""Byte-size constants and parsing for blueprint size fields."""

from __future__ import annotations

import re

__all__ = [
    "KiB",
    "MiB",
    "GiB",
    "TiB",
    "KB",
    "MB",
    "GB",
    "TB",
    "format_size",
    "parse_size",
    "round_up",
]

KiB = 1024
MiB = 1024 * KiB
GiB = 1024 * MiB
TiB = 1024 * GiB

KB = 1000
MB = 1000 * KB
GB = 1000 * MB
TB = 1000 * GB

_UNITS: dict[str, int] = {
    "": 1,
    "b": 1,
    "kb": KB,
    "kib": KiB,
    "mb": MB,
    "mib": MiB,
    "gb": GB,
    "gib": GiB,
    "tb": TB,
    "tib": TiB,
}

_SIZE_RE = re.compile(r"^\s*(\d+)\s*([A-Za-z]*)\s*$")


def parse_size(value: int | str) -> int:
    """
    Return *value* as a number of bytes.

    Integers are taken as bytes; strings may carry a unit suffix such as
    ``"2 GiB"`` or ``"500MB"``.
    """
    if isinstance(value, bool):
        raise ValueError(f"invalid size: {value!r}")
    if isinstance(value, int):
        if value < 0:
            raise ValueError(f"size must not be negative: {value}")
        return value
    match = _SIZE_RE.match(value)
    if match is None:
        raise ValueError(f"invalid size: {value!r}")
    number, unit = match.groups()
    factor = _UNITS.get(unit.lower())
    if factor is None:
        raise ValueError(f"unknown size unit {unit!r} in {value!r}")
    return int(number) * factor


def round_up(size: int, alignment: int = MiB) -> int:
    """Round *size* up to the next multiple of *alignment*."""
    remainder = size % alignment
    if remainder == 0:
        return size
    return size + alignment - remainder


def format_size(size: int) -> str:
    """Render *size* using the largest binary unit that divides it exactly."""
    for unit, factor in (("TiB", TiB), ("GiB", GiB), ("MiB", MiB), ("KiB", KiB)):
        if size >= factor and size % factor == 0:
            return f"{size // factor} {unit}"
    return f"{size} B"
