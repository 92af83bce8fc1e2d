"""
Utility functions for the Floorball Live match tracker.

This module contains the clock arithmetic shared by the whole application:
conversions between period-relative ``mm:ss`` strings, seconds within a
period and the match-wide absolute timeline.
"""
import time


def parse_clock(value: str) -> int:
    """
    Parse a ``mm:ss`` clock string into seconds.

    Malformed or empty input degrades to zero instead of raising.

    Args:
        value: Clock string such as ``"15:34"``

    Returns:
        Number of seconds represented by the clock string

    Example:
        >>> parse_clock("01:30")
        90
        >>> parse_clock("garbage")
        0
    """
    if not value or not isinstance(value, str):
        return 0

    parts = value.strip().split(":")
    if len(parts) != 2:
        return 0

    try:
        minutes = int(parts[0])
        seconds = int(parts[1])
    except ValueError:
        return 0

    if minutes < 0 or seconds < 0:
        return 0
    return minutes * 60 + seconds


def format_clock(seconds: int) -> str:
    """
    Format seconds as a zero-padded MM:SS string.

    Args:
        seconds: Number of seconds to format; negative values clamp to zero

    Returns:
        Formatted time string in MM:SS format

    Example:
        >>> format_clock(90)
        '01:30'
        >>> format_clock(-5)
        '00:00'
    """
    seconds = max(0, int(seconds))
    m = seconds // 60
    s = seconds % 60
    return f"{m:02d}:{s:02d}"


def absolute_game_seconds(period: int, clock_seconds: int, period_duration_seconds: int) -> int:
    """Place a period-relative clock on the match-wide timeline."""
    return (period - 1) * period_duration_seconds + clock_seconds


def now_ts() -> float:
    """
    Get current timestamp in epoch seconds.

    Returns:
        Current time as floating point epoch seconds
    """
    return time.time()


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(now_ts() * 1000)
