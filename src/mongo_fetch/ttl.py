"""
TTL strings for the response cache.

A TTL is written as concatenated ``<number><unit>`` tokens, e.g. ``"2d10m"``.
"""

from __future__ import annotations

import re

from .types import InvalidTtlUnit

__all__ = ["parse_ttl", "TTL_UNITS"]

TTL_UNITS: dict[str, int] = {
    "s": 1,
    "m": 60,
    "h": 60 * 60,
    "d": 60 * 60 * 24,
    "w": 60 * 60 * 24 * 7,
}

_TOKEN = re.compile(r"(\d+)([a-z])")


def parse_ttl(ttl: str | int) -> int:
    """
    Convert a TTL string into a number of seconds.

    Characters outside the token grammar are skipped, so an empty or
    unparseable string yields 0.

    Args:
        ttl: TTL string such as ``"90s"`` or ``"1w2d"``, or seconds as a
             non-negative int.

    Returns:
        Total number of seconds.

    Raises:
        InvalidTtlUnit: If a token uses a unit other than s, m, h, d or w.
        TypeError: If ``ttl`` is a bool.
        ValueError: If ``ttl`` is a negative int.
    """
    if isinstance(ttl, bool):
        raise TypeError(f"TTL must be a string or int, not {ttl!r}")
    if isinstance(ttl, int):
        if ttl < 0:
            raise ValueError(f"TTL must not be negative: {ttl}")
        return ttl

    seconds = 0
    for number, unit in _TOKEN.findall(ttl):
        if unit not in TTL_UNITS:
            raise InvalidTtlUnit(unit)
        seconds += int(number) * TTL_UNITS[unit]
    return seconds
