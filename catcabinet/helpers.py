"""Small numeric and formatting helpers."""

from __future__ import annotations


def format_time(seconds: int) -> str:
    """Format a number of seconds as ``HH:MM:SS`` (at most eight characters)."""
    if seconds < 0:
        raise ValueError("seconds must not be negative")
    hours, rest = divmod(int(seconds), 3600)
    minutes, secs = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"[:8]


def map_float(x: float, in_min: float, in_max: float, out_min: float, out_max: float) -> float:
    """Linearly map ``x`` from one range onto another."""
    return (x - in_min) * (out_max - out_min) / (in_max - in_min) + out_min


def _trunc_div(numerator: int, denominator: int) -> int:
    quotient = abs(numerator) // abs(denominator)
    return quotient if (numerator >= 0) == (denominator > 0) else -quotient


def map_range(x: int, in_min: int, in_max: int, out_min: int, out_max: int) -> int:
    """Integer range mapping whose division truncates toward zero."""
    if in_max == in_min:
        raise ZeroDivisionError("input range is empty")
    x, in_min, in_max, out_min, out_max = (
        int(v) for v in (x, in_min, in_max, out_min, out_max)
    )
    return _trunc_div((x - in_min) * (out_max - out_min), in_max - in_min) + out_min


def constrain(value, low, high):
    """Clamp ``value`` into ``[low, high]``."""
    if value < low:
        return low
    if value > high:
        return high
    return value


def is_in_range(value: float, low: float, high: float) -> bool:
    return low <= value <= high


def rgb_to_565(r: int, g: int, b: int) -> int:
    """Pack 8-bit RGB components into a 16-bit RGB565 colour."""
    return ((r & 0xF8) << 8) | ((g & 0xFC) << 3) | ((b & 0xFF) >> 3)